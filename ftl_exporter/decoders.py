"""Decoders for the responses of FTL socket commands.

Each decoder is a pure function from a binary stream to a result model. The
stream may be a socket reader or an in-memory buffer. Responses use one of
four framings:

* fixed records (`>stats`, `>dbstats`)
* a leading total followed by an END-terminated list (`>top-*`)
* a bare END-terminated list (`>forward-dest`, `>querytypes`, `>client-names`)
* length-prefixed arrays (`>overTime`) and END-terminated groups of
  -1-terminated values (`>ClientsoverTime`)
"""

import functools
from typing import BinaryIO, Callable, Dict, List, Tuple, TypeVar

from .errors import EndOfSequence, FTLFormatError, FTLTruncatedError
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
from .wire import (
    TAG_END,
    read_float32,
    read_int32,
    read_int64,
    read_raw_uint16,
    read_raw_uint32,
    read_string,
    read_tag,
    read_uint8,
)

T = TypeVar('T')

# Value that closes the per-client counts of a `>ClientsoverTime` bucket
CLIENT_COUNTS_END = -1


def response_decoder(func: Callable[[BinaryIO], T]) -> Callable[[BinaryIO], T]:
    """Turn an END that escapes ``func`` into the decode error it stands for.

    An END that reaches the decoder boundary was not at a terminator position:
    it means truncation when the stream closed, and a format mismatch when the
    END tag itself was read.
    """
    @functools.wraps(func)
    def decode(stream: BinaryIO) -> T:
        try:
            return func(stream)
        except EndOfSequence as e:
            if e.closed:
                raise FTLTruncatedError(e.expected) from e
            raise FTLFormatError(TAG_END, e.expected) from e
    return decode


@response_decoder
def decode_stats(stream: BinaryIO) -> EngineStats:
    return EngineStats(
        domains_being_blocked=read_int32(stream),
        dns_queries_today=read_int32(stream),
        ads_blocked_today=read_int32(stream),
        ads_percentage_today=read_float32(stream),
        unique_domains=read_int32(stream),
        queries_forwarded=read_int32(stream),
        queries_cached=read_int32(stream),
        clients_ever_seen=read_int32(stream),
        unique_clients=read_int32(stream),
        status=read_uint8(stream),
    )


@response_decoder
def decode_db_stats(stream: BinaryIO) -> DatabaseStats:
    return DatabaseStats(rows=read_int32(stream), file_size=read_int64(stream))


@response_decoder
def decode_top_entries(stream: BinaryIO) -> RankedList:
    """Decode `>top-domains` and `>top-ads`: total, then (label, count) entries."""
    total = read_int32(stream)
    entries: List[LabeledCount] = []
    while True:
        try:
            label = read_string(stream)
        except EndOfSequence:
            break
        entries.append(LabeledCount(label=label, count=read_int32(stream)))
    return RankedList(total=total, entries=tuple(entries))


@response_decoder
def decode_top_clients(stream: BinaryIO) -> RankedList:
    """Decode `>top-clients` and `>top-clients blocked`.

    Each entry starts with a string the daemon always sends and that is never
    used; the client address that follows becomes the label.
    """
    total = read_int32(stream)
    entries: List[LabeledCount] = []
    while True:
        try:
            read_string(stream)
        except EndOfSequence:
            break
        address = read_string(stream)
        entries.append(LabeledCount(label=address, count=read_int32(stream)))
    return RankedList(total=total, entries=tuple(entries))


@response_decoder
def decode_forward_destinations(stream: BinaryIO) -> Tuple[UpstreamDestination, ...]:
    destinations: List[UpstreamDestination] = []
    while True:
        try:
            name = read_string(stream)
        except EndOfSequence:
            break
        address = read_string(stream)
        destinations.append(UpstreamDestination(
            name=name,
            address=address,
            percentage=read_float32(stream),
        ))
    return tuple(destinations)


@response_decoder
def decode_query_types(stream: BinaryIO) -> Dict[str, float]:
    """Decode query type names mapped to their share of all queries (percent)."""
    query_types: Dict[str, float] = {}
    while True:
        try:
            name = read_string(stream)
        except EndOfSequence:
            break
        query_types[name] = read_float32(stream)
    return query_types


@response_decoder
def decode_client_names(stream: BinaryIO) -> Tuple[NamedClient, ...]:
    clients: List[NamedClient] = []
    while True:
        try:
            name = read_string(stream)
        except EndOfSequence:
            break
        clients.append(NamedClient(name=name, address=read_string(stream)))
    return tuple(clients)


def _read_buckets(stream: BinaryIO) -> Tuple[TimeBucket, ...]:
    # The count is a tagged uint16 whose tag is not checked
    read_tag(stream, 'bucket count')
    count = read_raw_uint16(stream, 'bucket count')
    return tuple(
        TimeBucket(timestamp=read_int32(stream), count=read_int32(stream))
        for _ in range(count)
    )


@response_decoder
def decode_queries_over_time(stream: BinaryIO) -> TimeSeries:
    """Decode the forwarded and blocked arrays of `>overTime`.

    Both arrays are prefixed with their length and have no terminator.
    """
    forwarded = _read_buckets(stream)
    blocked = _read_buckets(stream)
    return TimeSeries(forwarded=forwarded, blocked=blocked)


@response_decoder
def decode_clients_over_time(stream: BinaryIO) -> Tuple[ClientTimeBucket, ...]:
    """Decode per-client query counts grouped by timestamp.

    Buckets end with the END tag in place of the next bucket's leading byte.
    The timestamp after that byte is a raw uint32, and the counts of a bucket
    run until a decoded value equals -1.
    """
    buckets: List[ClientTimeBucket] = []
    while True:
        try:
            read_tag(stream, 'timestamp')
        except EndOfSequence:
            break
        timestamp = read_raw_uint32(stream, 'timestamp')
        counts: List[int] = []
        while True:
            value = read_int32(stream)
            if value == CLIENT_COUNTS_END:
                break
            counts.append(value)
        buckets.append(ClientTimeBucket(timestamp=timestamp, counts=tuple(counts)))
    return tuple(buckets)
