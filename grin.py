import os
from collections import Counter

from bitops import BitReader, BitWriter
from errors import FormatError
from huffman import HuffmanTree

MAGIC = 0x736  #: Grin magic number
MAGIC_BITS = 32  #: Width of the magic number field


def frequency_table(path: str) -> Counter:
    """Count how often each byte value occurs in a file.

    :param path: File to scan.
    :type path: str
    :returns: Mapping from byte value to occurrence count.
    :rtype: Counter
    :raises OSError: If the file cannot be read.
    """
    freqs = Counter()
    with BitReader.open(path) as reader:
        while True:
            byte = reader.read_bits(8)
            if byte is None:
                break
            freqs[byte] += 1
    return freqs


def _discard(path: str):
    """Remove a partially written output file, if it exists."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def encode(infile: str, outfile: str) -> int:
    """Compress ``infile`` into the Grin file ``outfile``.

    File format (bit-packed, MSB first):
    - Magic: ``MAGIC`` (32 bits)
    - Serialized Huffman tree (see ``HuffmanTree.serialize``)
    - Payload: Huffman codes of every input byte, then the EOF code

    :param infile: File to compress.
    :type infile: str
    :param outfile: Destination Grin file.
    :type outfile: str
    :returns: Number of input bytes encoded.
    :rtype: int
    :raises OSError: If a file cannot be opened, read or written.
    """
    tree = HuffmanTree.from_frequencies(frequency_table(infile))
    with BitReader.open(infile) as reader:
        writer = BitWriter.open(outfile)
        try:
            with writer:
                writer.write_bits(MAGIC, MAGIC_BITS)
                tree.serialize(writer)
                return tree.encode(reader, writer)
        except Exception:
            _discard(outfile)
            raise


def decode(infile: str, outfile: str) -> int:
    """Decompress the Grin file ``infile`` into ``outfile``.

    The magic number and tree header are validated before ``outfile`` is
    created, so a file that is not a Grin file produces no output at all.

    :param infile: Grin file to decompress.
    :type infile: str
    :param outfile: Destination file.
    :type outfile: str
    :returns: Number of bytes written to ``outfile``.
    :rtype: int
    :raises FormatError: If ``infile`` is not a valid Grin file.
    :raises OSError: If a file cannot be opened, read or written.
    """
    with BitReader.open(infile) as reader:
        magic = reader.read_bits(MAGIC_BITS)
        if magic != MAGIC:
            raise FormatError("not a valid Grin file (bad magic number)")
        tree = HuffmanTree.from_bits(reader)
        writer = BitWriter.open(outfile)
        try:
            with writer:
                return tree.decode(reader, writer)
        except Exception:
            _discard(outfile)
            raise
