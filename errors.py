class GrinError(Exception):
    """Base class for errors raised while encoding or decoding Grin files."""


class FormatError(GrinError, ValueError):
    """Malformed Grin data.

    Raised for a bad magic number, a truncated or invalid tree header, or a
    payload that ends before the end-of-stream code.
    """


class CodeTableError(GrinError, LookupError):
    """A byte to encode has no code in the Huffman tree."""
