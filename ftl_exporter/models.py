"""Data models for FTL command responses."""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class EngineStats:
    """Counters from the `>stats` command."""
    domains_being_blocked: int
    dns_queries_today: int
    ads_blocked_today: int
    ads_percentage_today: float
    unique_domains: int
    queries_forwarded: int
    queries_cached: int
    clients_ever_seen: int
    unique_clients: int
    status: int  # blocking status code, 1 = enabled


@dataclass(frozen=True)
class DatabaseStats:
    """Size of the long-term query database from `>dbstats`."""
    rows: int
    file_size: int  # bytes


@dataclass(frozen=True)
class LabeledCount:
    label: str
    count: int


@dataclass(frozen=True)
class RankedList:
    """A ranked response: daemon-reported total plus the listed entries.

    ``total`` is whatever the daemon reports and is not tied to the number of
    entries.
    """
    total: int
    entries: Tuple[LabeledCount, ...] = ()


@dataclass(frozen=True)
class UpstreamDestination:
    name: str
    address: str
    percentage: float


@dataclass(frozen=True)
class TimeBucket:
    """One 10-minute aggregation point."""
    timestamp: int  # unix seconds
    count: int


def latest_bucket(buckets: Sequence[TimeBucket]) -> Optional[TimeBucket]:
    """Return the bucket with the greatest timestamp, or None when empty."""
    if not buckets:
        return None
    return max(buckets, key=lambda bucket: bucket.timestamp)


@dataclass(frozen=True)
class TimeSeries:
    """Forwarded and blocked query counts from `>overTime`."""
    forwarded: Tuple[TimeBucket, ...] = ()
    blocked: Tuple[TimeBucket, ...] = ()

    def latest_forwarded(self) -> Optional[TimeBucket]:
        return latest_bucket(self.forwarded)

    def latest_blocked(self) -> Optional[TimeBucket]:
        return latest_bucket(self.blocked)


@dataclass(frozen=True)
class ClientTimeBucket:
    """Per-client query counts for one timestamp of `>ClientsoverTime`.

    ``counts`` line up by position with the list returned by `>client-names`.
    """
    timestamp: int
    counts: Tuple[int, ...] = ()


@dataclass(frozen=True)
class NamedClient:
    name: str
    address: str
