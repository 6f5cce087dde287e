"""Prometheus exporter for the Pi-hole FTL daemon."""

__version__ = '0.1.0'

from .client import FTLClient
from .errors import (
    EndOfSequence,
    FTLDecodeError,
    FTLError,
    FTLFormatError,
    FTLTransportError,
    FTLTruncatedError,
)
from .exporter import FTLCollector, build_registry
from .models import (
    ClientTimeBucket,
    DatabaseStats,
    EngineStats,
    LabeledCount,
    NamedClient,
    RankedList,
    TimeBucket,
    TimeSeries,
    UpstreamDestination,
)
from .remote_write import RemoteWriteClient

__all__ = [
    'FTLClient',
    'FTLCollector',
    'build_registry',
    'RemoteWriteClient',
    'EndOfSequence',
    'FTLError',
    'FTLDecodeError',
    'FTLFormatError',
    'FTLTransportError',
    'FTLTruncatedError',
    'ClientTimeBucket',
    'DatabaseStats',
    'EngineStats',
    'LabeledCount',
    'NamedClient',
    'RankedList',
    'TimeBucket',
    'TimeSeries',
    'UpstreamDestination',
]
