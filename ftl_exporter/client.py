"""Client for the Pi-hole FTL daemon's Unix socket API."""

import socket
from typing import BinaryIO, Callable, Dict, Optional, Tuple, TypeVar

from . import decoders
from .errors import FTLTransportError
from .models import (
    ClientTimeBucket,
    DatabaseStats,
    EngineStats,
    NamedClient,
    RankedList,
    TimeSeries,
    UpstreamDestination,
)

T = TypeVar('T')

DEFAULT_SOCKET = '/var/run/pihole/FTL.sock'


class FTLClient:
    """Issue commands to FTL, one fresh connection per command.

    No state is shared between calls, so commands may run concurrently from
    several threads. ``timeout`` (seconds) is applied to each connection;
    None blocks until the daemon answers.
    """

    def __init__(self, socket_path: str = DEFAULT_SOCKET, timeout: Optional[float] = None):
        self.socket_path = socket_path
        self.timeout = timeout

    def _connect(self) -> socket.socket:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.timeout)
            sock.connect(self.socket_path)
        except OSError as e:
            sock.close()
            raise FTLTransportError(f"Could not connect to {self.socket_path}: {e}") from e
        return sock

    def query(self, command: str, decode: Callable[[BinaryIO], T]) -> T:
        """Send ``command`` and decode the response with ``decode``.

        The connection is closed on every path out of this method.
        """
        with self._connect() as sock:
            try:
                sock.sendall(command.encode('ascii'))
            except OSError as e:
                raise FTLTransportError(f"Could not send {command!r}: {e}") from e

            with sock.makefile('rb') as stream:
                try:
                    return decode(stream)
                except OSError as e:
                    raise FTLTransportError(f"Could not read response to {command!r}: {e}") from e

    def probe(self) -> None:
        """Check that the socket accepts connections."""
        self._connect().close()

    def get_stats(self) -> EngineStats:
        return self.query('>stats', decoders.decode_stats)

    def get_db_stats(self) -> DatabaseStats:
        """Query database statistics. Slow on large databases."""
        return self.query('>dbstats', decoders.decode_db_stats)

    def get_top_domains(self) -> RankedList:
        return self.query('>top-domains', decoders.decode_top_entries)

    def get_top_ads(self) -> RankedList:
        return self.query('>top-ads', decoders.decode_top_entries)

    def get_top_clients(self) -> RankedList:
        return self.query('>top-clients', decoders.decode_top_clients)

    def get_top_blocked_clients(self) -> RankedList:
        return self.query('>top-clients blocked', decoders.decode_top_clients)

    def get_forward_destinations(self) -> Tuple[UpstreamDestination, ...]:
        return self.query('>forward-dest', decoders.decode_forward_destinations)

    def get_query_types(self) -> Dict[str, float]:
        return self.query('>querytypes', decoders.decode_query_types)

    def get_queries_over_time(self) -> TimeSeries:
        """Forwarded and blocked queries of the last 24 hours in 10-minute buckets."""
        return self.query('>overTime', decoders.decode_queries_over_time)

    def get_clients_over_time(self) -> Tuple[ClientTimeBucket, ...]:
        """Per-client queries of the last 24 hours in 10-minute buckets.

        Counts line up with ``get_client_names()``. The command is not part of
        FTL's documented API.
        """
        return self.query('>ClientsoverTime', decoders.decode_clients_over_time)

    def get_client_names(self) -> Tuple[NamedClient, ...]:
        return self.query('>client-names', decoders.decode_client_names)
