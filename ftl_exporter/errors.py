"""Errors raised while talking to the FTL daemon."""


class FTLError(Exception):
    """Base class for every failure of an FTL command."""


class FTLTransportError(FTLError):
    """The socket could not be dialed, written to, or read from."""


class FTLDecodeError(FTLError):
    """The response did not have the shape the command expects."""


class FTLFormatError(FTLDecodeError):
    """A tag byte did not match the value expected at that position."""

    def __init__(self, tag: int, expected: str):
        super().__init__(f"unexpected format 0x{tag:02x}, expected {expected}")
        self.tag = tag
        self.expected = expected


class FTLTruncatedError(FTLDecodeError):
    """The stream ended in the middle of a value."""

    def __init__(self, expected: str, wanted: int = 0, got: int = 0):
        if wanted:
            message = f"stream ended while reading {expected} ({got} of {wanted} bytes)"
        else:
            message = f"stream ended while reading {expected}"
        super().__init__(message)
        self.expected = expected


class EndOfSequence(Exception):
    """END sentinel reached where a value was requested.

    Not an FTLError: list decoders catch it at entry boundaries. ``closed`` is
    True when the stream ended before the tag byte instead of carrying END.
    """

    def __init__(self, expected: str, closed: bool = False):
        super().__init__(f"end of sequence while reading {expected}")
        self.expected = expected
        self.closed = closed
