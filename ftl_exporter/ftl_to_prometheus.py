#!/usr/bin/env python3
"""
Query the Pi-hole FTL daemon and expose its statistics as Prometheus metrics,
either over HTTP or pushed once using Prometheus remote write.
"""

import argparse
import contextlib
import socket
import sys
from socketserver import ThreadingMixIn
from typing import Callable, Iterable, List, Optional, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app

from . import __version__
from .client import DEFAULT_SOCKET, FTLClient
from .errors import FTLError
from .exporter import COLLECTORS, build_registry
from .remote_write import RemoteWriteClient
from .utils import parse_listen_address, prepare_headers

LANDING_PAGE = """<html lang="en">
<head><title>FTL Exporter</title></head>
<body>
<h1>FTL Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True

    def server_bind(self):
        # An IPv6 wildcard also accepts IPv4 connections
        if self.address_family == socket.AF_INET6:
            with contextlib.suppress(OSError):
                self.socket.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        super().server_bind()


class QuietHandler(WSGIRequestHandler):
    def log_message(self, format, *args):
        pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Expose Pi-hole FTL statistics as Prometheus metrics'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'FTL Exporter {__version__}'
    )
    parser.add_argument(
        '--socket',
        default=DEFAULT_SOCKET,
        help=f'FTL socket path (default: {DEFAULT_SOCKET})'
    )
    parser.add_argument(
        '--web.listen-address',
        dest='listen_address',
        default=':9311',
        help='Address on which to expose metrics and web interface (default: :9311)'
    )
    parser.add_argument(
        '--web.telemetry-path',
        dest='metrics_path',
        default='/metrics',
        help='Path under which to expose metrics (default: /metrics)'
    )
    parser.add_argument(
        '--ftl.timeout',
        dest='timeout',
        type=float,
        default=None,
        help='Seconds to wait for FTL on each command (default: wait indefinitely)'
    )

    for name, spec in COLLECTORS.items():
        state = 'enabled' if spec.enabled_by_default else 'disabled'
        dest = f'collector_{name}'
        parser.add_argument(
            f'--collector.{name}',
            dest=dest,
            action='store_true',
            help=f'Enable the {name} collector (default: {state}, disable with --no-collector.{name}). {spec.description}'
        )
        parser.add_argument(
            f'--no-collector.{name}',
            dest=dest,
            action='store_false',
            help=argparse.SUPPRESS
        )
        parser.set_defaults(**{dest: spec.enabled_by_default})

    parser.add_argument(
        '--remote-write-url',
        help='Push metrics once to this Prometheus remote write endpoint instead of serving them'
    )
    parser.add_argument(
        '--remote-write-header',
        action='append',
        help='Additional header for remote write (format: Key=Value)'
    )
    parser.add_argument(
        '--instance-label',
        default='ftl',
        help='Value for the instance label added to pushed metrics (default: ftl)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Collect and build the remote write request without sending it'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Print timestamp and metric information to stdout for each pushed metric'
    )
    parser.add_argument(
        '--debug-file',
        help='Save the uncompressed remote write payload as JSON to the specified file'
    )
    return parser


def enabled_collectors(args: argparse.Namespace) -> List[str]:
    return [name for name in COLLECTORS if getattr(args, f'collector_{name}')]


def make_app(registry: CollectorRegistry, metrics_path: str = '/metrics') -> Callable:
    """WSGI app serving metrics on ``metrics_path`` and a landing page elsewhere."""
    metrics_app = make_wsgi_app(registry)
    landing_page = LANDING_PAGE.format(metrics_path=metrics_path).encode('utf-8')

    def app(environ, start_response) -> Iterable[bytes]:
        if environ.get('PATH_INFO', '/') == metrics_path:
            return metrics_app(environ, start_response)
        start_response('200 OK', [('Content-Type', 'text/html; charset=utf-8')])
        return [landing_page]

    return app


def best_family(host: str, port: int) -> Tuple[int, str]:
    """Pick the address family and bind address for ``host``.

    An empty host resolves to the system's wildcard address.
    """
    infos = socket.getaddrinfo(host or None, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE)
    family, _, _, _, sockaddr = next(iter(infos))
    return family, sockaddr[0]


def make_http_server(registry: CollectorRegistry, listen_address: str, metrics_path: str) -> WSGIServer:
    host, port = parse_listen_address(listen_address)
    family, addr = best_family(host, port)

    class Server(ThreadingWSGIServer):
        address_family = family

    return make_server(addr, port, make_app(registry, metrics_path),
                       server_class=Server, handler_class=QuietHandler)


def serve(registry: CollectorRegistry, listen_address: str, metrics_path: str) -> None:
    httpd = make_http_server(registry, listen_address, metrics_path)
    print(f"Listening on {listen_address}", file=sys.stderr)
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        print("Shutting down", file=sys.stderr)
    finally:
        httpd.server_close()


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    print(f"FTL Exporter {__version__}", file=sys.stderr)
    print(f"Initialize exporter using socket path: {args.socket}", file=sys.stderr)

    collectors = enabled_collectors(args)
    for name in collectors:
        print(f"Collector {name} is enabled", file=sys.stderr)

    client = FTLClient(args.socket, timeout=args.timeout)
    try:
        client.probe()
    except FTLError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    registry = build_registry(client, collectors)

    if args.remote_write_url:
        if args.dry_run:
            print(f"\nDry-run mode: Processing metrics (not sending to {args.remote_write_url})...", file=sys.stderr)
        else:
            print(f"\nSending metrics to {args.remote_write_url}...", file=sys.stderr)

        headers = prepare_headers(args.remote_write_header)
        writer = RemoteWriteClient(args.remote_write_url, headers, args.instance_label, args.verbose)
        if not writer.send_metrics(registry.collect(), dry_run=args.dry_run, debug_file=args.debug_file):
            print("Failed to process/send metrics", file=sys.stderr)
            sys.exit(1)
        return

    try:
        serve(registry, args.listen_address, args.metrics_path)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
