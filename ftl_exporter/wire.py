"""Primitives of the FTL socket wire format.

Every value on the wire is a one-byte format tag followed by a big-endian
payload. The END tag carries no payload and marks the end of a list or
record; it is surfaced as ``EndOfSequence`` rather than as an error so that
list decoders can use it as their terminator.
"""

import struct
from typing import BinaryIO

from .errors import EndOfSequence, FTLDecodeError, FTLFormatError, FTLTruncatedError

TAG_END = 0xC1
TAG_FLOAT32 = 0xCA
TAG_UINT8 = 0xCC
TAG_INT32 = 0xD2
TAG_INT64 = 0xD3
TAG_STRING = 0xDB

TAG_NAMES = {
    TAG_END: 'end',
    TAG_FLOAT32: 'float32',
    TAG_UINT8: 'uint8',
    TAG_INT32: 'int32',
    TAG_INT64: 'int64',
    TAG_STRING: 'string',
}

_INT32 = struct.Struct('>i')
_INT64 = struct.Struct('>q')
_FLOAT32 = struct.Struct('>f')
_UINT8 = struct.Struct('>B')
_UINT16 = struct.Struct('>H')
_UINT32 = struct.Struct('>I')


def read_exact(stream: BinaryIO, size: int, expected: str) -> bytes:
    """Read exactly ``size`` bytes or raise FTLTruncatedError."""
    data = stream.read(size)
    if data is None:
        data = b''
    # Sockets may hand back short reads before the peer is done writing
    while len(data) < size:
        chunk = stream.read(size - len(data))
        if not chunk:
            raise FTLTruncatedError(expected, size, len(data))
        data += chunk
    return data


def read_tag(stream: BinaryIO, expected: str = 'tag') -> int:
    """Consume one tag byte, raising EndOfSequence on END or a closed stream."""
    data = stream.read(1)
    if not data:
        raise EndOfSequence(expected, closed=True)
    tag = data[0]
    if tag == TAG_END:
        raise EndOfSequence(expected)
    return tag


def _expect(stream: BinaryIO, tag: int) -> None:
    found = read_tag(stream, TAG_NAMES[tag])
    if found != tag:
        raise FTLFormatError(found, TAG_NAMES[tag])


def read_int32(stream: BinaryIO) -> int:
    _expect(stream, TAG_INT32)
    return _INT32.unpack(read_exact(stream, _INT32.size, 'int32'))[0]


def read_int64(stream: BinaryIO) -> int:
    _expect(stream, TAG_INT64)
    return _INT64.unpack(read_exact(stream, _INT64.size, 'int64'))[0]


def read_float32(stream: BinaryIO) -> float:
    _expect(stream, TAG_FLOAT32)
    return _FLOAT32.unpack(read_exact(stream, _FLOAT32.size, 'float32'))[0]


def read_uint8(stream: BinaryIO) -> int:
    _expect(stream, TAG_UINT8)
    return _UINT8.unpack(read_exact(stream, _UINT8.size, 'uint8'))[0]


def read_string(stream: BinaryIO) -> str:
    """Read a length-prefixed UTF-8 string."""
    _expect(stream, TAG_STRING)
    length = _UINT32.unpack(read_exact(stream, _UINT32.size, 'string length'))[0]
    data = read_exact(stream, length, 'string')
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError as e:
        raise FTLDecodeError(f'string is not valid UTF-8: {e}') from e


def read_raw_uint16(stream: BinaryIO, expected: str = 'uint16') -> int:
    """Read an untagged big-endian uint16."""
    return _UINT16.unpack(read_exact(stream, _UINT16.size, expected))[0]


def read_raw_uint32(stream: BinaryIO, expected: str = 'uint32') -> int:
    """Read an untagged big-endian uint32."""
    return _UINT32.unpack(read_exact(stream, _UINT32.size, expected))[0]
