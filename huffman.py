import heapq
from dataclasses import dataclass
from itertools import count
from typing import Dict, List, Mapping, Set, Tuple, Union

from bitops import BitReader, BitWriter
from errors import CodeTableError, FormatError

EOF = 256  #: End-of-stream sentinel symbol
SYMBOL_BITS = 9  #: Width of a serialized symbol (0-256 needs 9 bits)
MAX_DEPTH = 256  #: Deepest possible leaf in a full tree over 257 symbols


@dataclass(frozen=True)
class Leaf:
    """Leaf of a Huffman tree.

    :ivar symbol: Byte value (0-255) or :data:`EOF`.
    :type symbol: int
    """

    symbol: int


@dataclass(frozen=True)
class Branch:
    """Internal node of a Huffman tree; always has both children.

    :ivar left: Subtree reached by a ``0`` bit.
    :type left: Node
    :ivar right: Subtree reached by a ``1`` bit.
    :type right: Node
    """

    left: "Node"
    right: "Node"


Node = Union[Leaf, Branch]


class HuffmanTree:
    """Huffman tree over byte values plus the :data:`EOF` sentinel.

    A tree is built either bottom-up from a frequency table
    (:meth:`from_frequencies`) or top-down from its serialized form
    (:meth:`from_bits`). Weights only steer construction and are not kept.

    :ivar root: Root node of the tree.
    :type root: Node
    """

    def __init__(self, root: Node):
        """Wrap an existing node structure.

        :param root: Root node; the tree owns it exclusively.
        :type root: Node
        :returns: None
        :rtype: None
        """
        self.root = root

    def __eq__(self, other):
        if not isinstance(other, HuffmanTree):
            return NotImplemented
        return self.root == other.root

    def __repr__(self):
        return f"HuffmanTree(leaves={self.leaf_count()})"

    @classmethod
    def from_frequencies(cls, frequencies: Mapping[int, int]) -> "HuffmanTree":
        """Build a tree from a symbol frequency table.

        An :data:`EOF` leaf with weight 1 is always added. Leaves enter the
        priority queue in ascending symbol order followed by EOF, and every
        entry carries an increasing sequence number, so equal weights are
        broken by insertion order and the result is deterministic.

        :param frequencies: Mapping from byte value (0-255) to its count.
        :type frequencies: Mapping[int, int]
        :returns: The constructed tree.
        :rtype: HuffmanTree
        :raises ValueError: If a key is not a byte value or a count is not
            positive.
        """
        seq = count()
        heap: List[Tuple[int, int, Node]] = []
        for symbol in sorted(frequencies):
            freq = frequencies[symbol]
            if not 0 <= symbol < EOF:
                raise ValueError(f"Symbol out of byte range: {symbol}")
            if freq <= 0:
                raise ValueError(f"Non-positive frequency {freq} for symbol {symbol}")
            heap.append((freq, next(seq), Leaf(symbol)))
        heap.append((1, next(seq), Leaf(EOF)))
        heapq.heapify(heap)

        while len(heap) > 1:
            left_freq, _, left = heapq.heappop(heap)
            right_freq, _, right = heapq.heappop(heap)
            heapq.heappush(
                heap, (left_freq + right_freq, next(seq), Branch(left, right))
            )

        return cls(heap[0][2])

    @classmethod
    def from_bits(cls, reader: BitReader) -> "HuffmanTree":
        """Rebuild a tree from the serialized form written by :meth:`serialize`.

        :param reader: Bit reader positioned at the start of the tree.
        :type reader: BitReader
        :returns: The reconstructed tree.
        :rtype: HuffmanTree
        :raises FormatError: If the header is truncated or does not describe
            a valid tree (symbol out of range, duplicate symbol, excessive
            depth, or no EOF leaf).
        """
        seen: Set[int] = set()
        root = cls._read_node(reader, 0, seen)
        if EOF not in seen:
            raise FormatError("Huffman tree header has no end-of-stream symbol")
        return cls(root)

    @classmethod
    def _read_node(cls, reader: BitReader, depth: int, seen: Set[int]) -> Node:
        bit = reader.read_bit()
        if bit is None:
            raise FormatError("Truncated Huffman tree header")
        if bit == 0:
            symbol = reader.read_bits(SYMBOL_BITS)
            if symbol is None:
                raise FormatError("Truncated Huffman tree header")
            if symbol > EOF:
                raise FormatError(f"Invalid symbol in tree header: {symbol}")
            if symbol in seen:
                raise FormatError(f"Duplicate symbol in tree header: {symbol}")
            seen.add(symbol)
            return Leaf(symbol)
        if depth >= MAX_DEPTH:
            raise FormatError("Huffman tree header is nested too deeply")
        left = cls._read_node(reader, depth + 1, seen)
        right = cls._read_node(reader, depth + 1, seen)
        return Branch(left, right)

    def serialize(self, writer: BitWriter):
        """Write the tree in pre-order.

        A branch is a ``1`` bit followed by its left and right subtrees; a
        leaf is a ``0`` bit followed by its symbol in :data:`SYMBOL_BITS`
        bits. The format is self-delimiting.

        :param writer: Destination bit writer.
        :type writer: BitWriter
        :returns: None
        :rtype: None
        """
        self._write_node(self.root, writer)

    def _write_node(self, node: Node, writer: BitWriter):
        if isinstance(node, Leaf):
            writer.write_bit(0)
            writer.write_bits(node.symbol, SYMBOL_BITS)
        else:
            writer.write_bit(1)
            self._write_node(node.left, writer)
            self._write_node(node.right, writer)

    def code_table(self) -> Dict[int, Tuple[int, int]]:
        """Derive the code of every symbol from its root-to-leaf path.

        Left is ``0``, right is ``1``. A tree whose root is a leaf gives
        that leaf the empty code ``(0, 0)``.

        :returns: Mapping from symbol to ``(code, length)``.
        :rtype: Dict[int, Tuple[int, int]]
        """
        codes: Dict[int, Tuple[int, int]] = {}
        self._collect_codes(self.root, 0, 0, codes)
        return codes

    def _collect_codes(self, node: Node, code: int, length: int, codes):
        if isinstance(node, Leaf):
            codes[node.symbol] = (code, length)
        else:
            self._collect_codes(node.left, code << 1, length + 1, codes)
            self._collect_codes(node.right, (code << 1) | 1, length + 1, codes)

    def encode(self, reader: BitReader, writer: BitWriter) -> int:
        """Encode every byte of ``reader`` and terminate with the EOF code.

        :param reader: Raw input, consumed 8 bits at a time.
        :type reader: BitReader
        :param writer: Destination for the coded payload.
        :type writer: BitWriter
        :returns: Number of input bytes encoded.
        :rtype: int
        :raises CodeTableError: If an input byte has no code in this tree.
        """
        codes = self.code_table()
        encoded = 0
        while True:
            byte = reader.read_bits(8)
            if byte is None:
                break
            try:
                code, length = codes[byte]
            except KeyError:
                raise CodeTableError(
                    f"No Huffman code for byte 0x{byte:02x}"
                ) from None
            writer.write_bits(code, length)
            encoded += 1
        code, length = codes[EOF]
        writer.write_bits(code, length)
        return encoded

    def decode(self, reader: BitReader, writer: BitWriter) -> int:
        """Decode a payload bit by bit until the EOF code is reached.

        :param reader: Coded payload, positioned right after the tree.
        :type reader: BitReader
        :param writer: Destination for the decoded bytes.
        :type writer: BitWriter
        :returns: Number of bytes written.
        :rtype: int
        :raises FormatError: If the payload ends before the EOF code.
        """
        root = self.root
        if isinstance(root, Leaf):
            if root.symbol == EOF:
                return 0
            raise FormatError("Single-leaf tree has no end-of-stream symbol")

        written = 0
        node: Node = root
        while True:
            bit = reader.read_bit()
            if bit is None:
                raise FormatError("Payload ended before the end-of-stream code")
            node = node.right if bit else node.left
            if isinstance(node, Leaf):
                if node.symbol == EOF:
                    return written
                writer.write_bits(node.symbol & 0xFF, 8)
                written += 1
                node = root

    def leaf_count(self) -> int:
        """Number of leaves (distinct symbols, EOF included)."""
        return sum(1 for node in self._walk() if isinstance(node, Leaf))

    def branch_count(self) -> int:
        """Number of internal nodes."""
        return sum(1 for node in self._walk() if isinstance(node, Branch))

    def _walk(self):
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, Branch):
                stack.append(node.right)
                stack.append(node.left)


def build_tree(source) -> HuffmanTree:
    """Build a tree from a frequency table or from a serialized header.

    :param source: A :class:`BitReader` positioned at a serialized tree, or
        a mapping from byte value to frequency.
    :type source: BitReader | Mapping[int, int]
    :returns: The built tree.
    :rtype: HuffmanTree
    """
    if isinstance(source, BitReader):
        return HuffmanTree.from_bits(source)
    return HuffmanTree.from_frequencies(source)
