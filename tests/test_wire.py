"""Tests for the FTL wire primitives."""

import io

import pytest

from ftl_exporter.errors import EndOfSequence, FTLDecodeError, FTLFormatError, FTLTruncatedError
from ftl_exporter.wire import (
    TAG_END,
    TAG_INT32,
    TAG_STRING,
    read_float32,
    read_int32,
    read_int64,
    read_raw_uint16,
    read_raw_uint32,
    read_string,
    read_tag,
    read_uint8,
)
from tests.helpers import END, float32, int32, int64, string, uint8


class TestScalars:
    def test_int32_is_signed_big_endian(self) -> None:
        assert read_int32(io.BytesIO(int32(94821))) == 94821
        assert read_int32(io.BytesIO(b'\xd2\xff\xff\xff\xff')) == -1

    def test_int64(self) -> None:
        assert read_int64(io.BytesIO(int64(5 * 2 ** 32 + 7))) == 5 * 2 ** 32 + 7

    def test_float32(self) -> None:
        assert read_float32(io.BytesIO(b'\xca\x3f\x47\x20\xfa')) == pytest.approx(0.77784693)

    def test_uint8(self) -> None:
        assert read_uint8(io.BytesIO(uint8(255))) == 255

    def test_string(self) -> None:
        assert read_string(io.BytesIO(string('doubleclick.net'))) == 'doubleclick.net'

    def test_empty_string(self) -> None:
        assert read_string(io.BytesIO(b'\xdb\x00\x00\x00\x00')) == ''

    def test_utf8_string(self) -> None:
        assert read_string(io.BytesIO(string('bücher.de'))) == 'bücher.de'

    def test_invalid_utf8_is_a_decode_error(self) -> None:
        with pytest.raises(FTLDecodeError):
            read_string(io.BytesIO(b'\xdb\x00\x00\x00\x01\xff'))

    def test_consumes_exactly_tag_and_payload(self) -> None:
        stream = io.BytesIO(int32(1) + string('a') + float32(0.5) + uint8(3))
        assert read_int32(stream) == 1
        assert stream.tell() == 5
        assert read_string(stream) == 'a'
        assert stream.tell() == 11
        read_float32(stream)
        assert stream.tell() == 16
        assert read_uint8(stream) == 3
        assert stream.read() == b''


class TestEndOfSequence:
    @pytest.mark.parametrize('reader', [read_int32, read_int64, read_float32, read_uint8, read_string])
    def test_end_tag_is_not_an_error(self, reader) -> None:
        stream = io.BytesIO(END + b'rest')
        with pytest.raises(EndOfSequence) as excinfo:
            reader(stream)
        assert not excinfo.value.closed
        # only the tag byte was consumed
        assert stream.read() == b'rest'

    def test_closed_stream_before_tag(self) -> None:
        with pytest.raises(EndOfSequence) as excinfo:
            read_string(io.BytesIO(b''))
        assert excinfo.value.closed

    def test_end_signal_is_not_an_ftl_error(self) -> None:
        assert not issubclass(EndOfSequence, FTLDecodeError)


class TestFormatMismatch:
    def test_wrong_tag_reports_tag_and_expected_kind(self) -> None:
        with pytest.raises(FTLFormatError) as excinfo:
            read_int32(io.BytesIO(string('x')))
        assert excinfo.value.tag == TAG_STRING
        assert excinfo.value.expected == 'int32'

    def test_payload_is_not_read_on_mismatch(self) -> None:
        stream = io.BytesIO(int32(7))
        with pytest.raises(FTLFormatError):
            read_string(stream)
        assert stream.tell() == 1

    def test_unknown_tag(self) -> None:
        with pytest.raises(FTLFormatError) as excinfo:
            read_uint8(io.BytesIO(b'\x00\x01'))
        assert excinfo.value.tag == 0x00


class TestTruncation:
    def test_short_int32_payload(self) -> None:
        with pytest.raises(FTLTruncatedError):
            read_int32(io.BytesIO(b'\xd2\x00\x01'))

    def test_short_string_body(self) -> None:
        with pytest.raises(FTLTruncatedError):
            read_string(io.BytesIO(b'\xdb\x00\x00\x00\x05abc'))

    def test_short_string_length(self) -> None:
        with pytest.raises(FTLTruncatedError):
            read_string(io.BytesIO(b'\xdb\x00\x00'))


class TestRawFields:
    def test_read_tag_returns_any_non_end_tag(self) -> None:
        assert read_tag(io.BytesIO(bytes([TAG_INT32]))) == TAG_INT32
        assert read_tag(io.BytesIO(b'\x00')) == 0

    def test_read_tag_end(self) -> None:
        with pytest.raises(EndOfSequence):
            read_tag(io.BytesIO(bytes([TAG_END])))

    def test_raw_integers_have_no_tag(self) -> None:
        stream = io.BytesIO(b'\x00\x90' + b'\x5f\x00\x00\x10')
        assert read_raw_uint16(stream) == 144
        assert read_raw_uint32(stream) == 0x5F000010

    def test_raw_uint32_truncated(self) -> None:
        with pytest.raises(FTLTruncatedError):
            read_raw_uint32(io.BytesIO(b'\x00\x00'))
