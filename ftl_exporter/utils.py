"""Utility functions for the FTL exporter command line."""

from typing import Dict, List, Optional, Tuple


def prepare_headers(remote_write_headers: Optional[List[str]]) -> Dict[str, str]:
    """Prepare headers dictionary from command-line arguments."""
    headers = {}
    if remote_write_headers:
        for header in remote_write_headers:
            if '=' in header:
                key, value = header.split('=', 1)
                headers[key] = value
    return headers


def escape_label_value(value: str) -> str:
    return str(value).replace('\\', r'\\').replace('\n', r'\n').replace('"', r'\"')


def format_labels(labels: Dict[str, str]) -> str:
    """Format labels the way the text exposition format does, e.g. ``{a="1"}``."""
    if not labels:
        return ''
    label_str = ','.join(f'{k}="{escape_label_value(v)}"' for k, v in sorted(labels.items()))
    return f'{{{label_str}}}'


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split ``host:port`` into its parts; an empty host listens on all interfaces.

    Raises:
        ValueError: if the port is missing or not a number
    """
    host, sep, port = address.rpartition(':')
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid listen address '{address}', expected [host]:port")
    return host.strip('[]'), int(port)
