from typing import BinaryIO, Optional

CHUNK_SIZE = 64 * 1024  #: Bytes moved between a bit stream and its file at once


class BitWriter:
    """Bit-packing writer over a binary file object.

    Accumulates individual bits into bytes and buffers them until
    flushed to the underlying sink.

    :ivar sink: Binary file object receiving the packed bytes.
    :type sink: BinaryIO
    :ivar buffer: Internal byte buffer holding fully written bytes.
    :type buffer: bytearray
    :ivar bit_buffer: 8-bit scratch register for accumulating pending bits.
    :type bit_buffer: int
    :ivar bit_count: Number of valid bits currently stored in ``bit_buffer`` (0-7).
    :type bit_count: int
    :ivar bits_written: Total number of bits written so far.
    :type bits_written: int
    """

    def __init__(self, sink: BinaryIO):
        """Initialize an empty bit writer.

        :param sink: Binary file object to write packed bytes to.
        :type sink: BinaryIO
        :returns: None
        :rtype: None
        """
        self.sink = sink
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0
        self.bits_written = 0

    @classmethod
    def open(cls, path: str) -> "BitWriter":
        """Open ``path`` for writing (truncating it) and wrap it.

        :param path: Destination file path.
        :type path: str
        :returns: A writer owning the opened file.
        :rtype: BitWriter
        :raises OSError: If the file cannot be opened.
        """
        return cls(open(path, "wb"))

    def write_bit(self, bit: int):
        """Write a single bit.

        :param bit: ``0`` or ``1``; only the lowest bit is used.
        :type bit: int
        :returns: None
        :rtype: None
        """
        self.bit_buffer = (self.bit_buffer << 1) | (bit & 1)
        self.bit_count += 1
        self.bits_written += 1
        if self.bit_count == 8:
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0
            if len(self.buffer) >= CHUNK_SIZE:
                self._drain()

    def write_bits(self, value: int, nbits: int):
        """Write the lowest ``nbits`` of ``value``, MSB first.

        :param value: Integer whose bits will be written.
        :type value: int
        :param nbits: Number of bits from ``value`` to write (0 is a no-op).
        :type nbits: int
        :returns: None
        :rtype: None
        """
        for i in range(nbits - 1, -1, -1):
            self.write_bit(value >> i)

    def _drain(self):
        self.sink.write(self.buffer)
        self.buffer = bytearray()

    def flush(self):
        """Pad the pending partial byte with zeros and push everything to the sink.

        :returns: None
        :rtype: None
        """
        if self.bit_count > 0:
            self.bit_buffer <<= (8 - self.bit_count)
            self.buffer.append(self.bit_buffer)
            self.bit_buffer = 0
            self.bit_count = 0
        self._drain()
        self.sink.flush()

    def close(self):
        """Flush remaining bits and close the sink.

        The sink is closed even if flushing fails.

        :returns: None
        :rtype: None
        """
        try:
            self.flush()
        finally:
            self.sink.close()

    def __enter__(self) -> "BitWriter":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BitReader:
    """Bit-unpacking reader over a binary file object.

    Reads arbitrary bit lengths, MSB first. Running out of input is not an
    error here: reads return ``None`` and the caller decides what that means.

    :ivar source: Binary file object to read from.
    :type source: BinaryIO
    :ivar data: Current chunk of bytes read from ``source``.
    :type data: bytes
    :ivar pos: Current position in ``data`` (byte index).
    :type pos: int
    :ivar bit_buffer: Scratch register holding the current source byte.
    :type bit_buffer: int
    :ivar bit_count: Number of unread bits remaining in ``bit_buffer`` (0-8).
    :type bit_count: int
    """

    def __init__(self, source: BinaryIO):
        """Create a bit reader for the given ``source``.

        :param source: Binary file object to read from.
        :type source: BinaryIO
        :returns: None
        :rtype: None
        """
        self.source = source
        self.data = b""
        self.pos = 0
        self.bit_buffer = 0
        self.bit_count = 0

    @classmethod
    def open(cls, path: str) -> "BitReader":
        """Open ``path`` for reading and wrap it.

        :param path: Source file path.
        :type path: str
        :returns: A reader owning the opened file.
        :rtype: BitReader
        :raises OSError: If the file cannot be opened.
        """
        return cls(open(path, "rb"))

    def read_bit(self) -> Optional[int]:
        """Read the next bit.

        :returns: ``0`` or ``1``, or ``None`` if the input is exhausted.
        :rtype: Optional[int]
        """
        if self.bit_count == 0:
            if self.pos >= len(self.data):
                self.data = self.source.read(CHUNK_SIZE)
                self.pos = 0
                if not self.data:
                    return None
            self.bit_buffer = self.data[self.pos]
            self.pos += 1
            self.bit_count = 8
        self.bit_count -= 1
        return (self.bit_buffer >> self.bit_count) & 1

    def read_bits(self, nbits: int) -> Optional[int]:
        """Read ``nbits`` bits from the stream and return them as an integer.

        Bits are returned MSB-first in the integer.

        :param nbits: Number of bits to read.
        :type nbits: int
        :returns: The integer value composed of the next ``nbits`` bits, or
            ``None`` if the input ends before ``nbits`` bits were read.
        :rtype: Optional[int]
        """
        result = 0
        for _ in range(nbits):
            bit = self.read_bit()
            if bit is None:
                return None
            result = (result << 1) | bit
        return result

    def close(self):
        """Close the underlying source."""
        self.source.close()

    def __enter__(self) -> "BitReader":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
