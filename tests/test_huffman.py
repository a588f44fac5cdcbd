import random
from collections import Counter
from itertools import combinations

import pytest

from errors import CodeTableError, FormatError
from huffman import EOF, Branch, HuffmanTree, Leaf, build_tree


def _roundtrip(data: bytes, streams) -> bytes:
    tree = HuffmanTree.from_frequencies(Counter(data))
    writer, buf = streams.writer()
    tree.serialize(writer)
    tree.encode(streams.reader(data), writer)
    encoded = streams.contents(writer, buf)

    reader = streams.reader(encoded)
    rebuilt = build_tree(reader)
    out_writer, out_buf = streams.writer()
    rebuilt.decode(reader, out_writer)
    return streams.contents(out_writer, out_buf)


def _as_bits(code, length):
    return format(code, f"0{length}b") if length else ""


def test_empty_frequencies_gives_single_eof_leaf(streams):
    tree = HuffmanTree.from_frequencies({})
    assert tree.root == Leaf(EOF)
    assert tree.code_table() == {EOF: (0, 0)}

    writer, buf = streams.writer()
    assert tree.encode(streams.reader(b""), writer) == 0
    assert writer.bits_written == 0

    out_writer, out_buf = streams.writer()
    assert tree.decode(streams.reader(b""), out_writer) == 0
    assert streams.contents(out_writer, out_buf) == b""


def test_single_symbol_tree_has_two_leaves(streams):
    tree = HuffmanTree.from_frequencies({0x41: 1000})
    assert tree.leaf_count() == 2
    assert tree.branch_count() == 1
    codes = tree.code_table()
    assert codes[0x41][1] == 1
    assert codes[EOF][1] == 1

    writer, _ = streams.writer()
    tree.encode(streams.reader(b"A" * 1000), writer)
    assert writer.bits_written == 1001


def test_ties_break_by_insertion_order():
    tree = HuffmanTree.from_frequencies({ord("b"): 1, ord("a"): 1})
    # a, b, EOF all weigh 1: a and b merge first, then EOF joins
    assert tree.root == Branch(Leaf(EOF), Branch(Leaf(ord("a")), Leaf(ord("b"))))


def test_construction_is_deterministic():
    freqs = {s: (s * 7) % 13 + 1 for s in range(0, 256, 3)}
    assert HuffmanTree.from_frequencies(freqs) == HuffmanTree.from_frequencies(
        dict(reversed(list(freqs.items())))
    )


@pytest.mark.parametrize("freqs", [{EOF: 1}, {-1: 3}, {300: 2}, {65: 0}])
def test_invalid_frequency_table_raises(freqs):
    with pytest.raises(ValueError):
        HuffmanTree.from_frequencies(freqs)


def test_all_256_symbols_shape_and_code_lengths():
    rng = random.Random(1234)
    freqs = {s: rng.randint(1, 5000) for s in range(256)}
    tree = HuffmanTree.from_frequencies(freqs)
    assert tree.leaf_count() == 257
    assert tree.branch_count() == 256

    codes = tree.code_table()
    for a, b in combinations(range(256), 2):
        if freqs[a] > freqs[b]:
            assert codes[a][1] <= codes[b][1]
        elif freqs[b] > freqs[a]:
            assert codes[b][1] <= codes[a][1]


def test_codes_are_prefix_free():
    freqs = Counter(b"the quick brown fox jumps over the lazy dog" * 3)
    codes = HuffmanTree.from_frequencies(freqs).code_table()
    paths = [_as_bits(*c) for c in codes.values()]
    for p1, p2 in combinations(paths, 2):
        assert not p1.startswith(p2)
        assert not p2.startswith(p1)


def test_serialize_layout_for_small_tree(streams):
    tree = HuffmanTree(Branch(Leaf(0x41), Leaf(EOF)))
    writer, buf = streams.writer()
    tree.serialize(writer)
    assert writer.bits_written == 21
    bits = "".join(format(b, "08b") for b in streams.contents(writer, buf))
    assert bits[:21] == "1" + "0" + "001000001" + "0" + "100000000"


def test_tree_serialization_roundtrip(streams):
    rng = random.Random(99)
    for _ in range(10):
        size = rng.randint(0, 256)
        freqs = {s: rng.randint(1, 100) for s in rng.sample(range(256), size)}
        tree = HuffmanTree.from_frequencies(freqs)
        writer, buf = streams.writer()
        tree.serialize(writer)
        # 10 bits per leaf, 1 bit per branch
        assert writer.bits_written == 11 * (size + 1) - 1
        rebuilt = HuffmanTree.from_bits(streams.reader(streams.contents(writer, buf)))
        assert rebuilt == tree
        assert rebuilt.code_table() == tree.code_table()


def test_build_tree_dispatches_on_source(streams):
    tree = build_tree({1: 5, 2: 3})
    writer, buf = streams.writer()
    tree.serialize(writer)
    assert build_tree(streams.reader(streams.contents(writer, buf))) == tree


@pytest.mark.parametrize(
    "data",
    [
        b"a",
        b"hello, huffman",
        bytes(range(256)) * 3,
        b"\x00" * 513,
        b"mississippi river banks",
    ],
)
def test_encode_decode_roundtrip(data, streams):
    assert _roundtrip(data, streams) == data


def test_encode_decode_roundtrip_random(streams):
    rng = random.Random(7)
    data = bytes(rng.choice(b"aaaabbbcdeeeeeeef\x00\xff") for _ in range(2000))
    assert _roundtrip(data, streams) == data


def test_encode_missing_code_raises(streams):
    tree = HuffmanTree.from_frequencies({ord("a"): 2})
    writer, _ = streams.writer()
    with pytest.raises(CodeTableError):
        tree.encode(streams.reader(b"ab"), writer)


def test_from_bits_truncated_header_raises(streams):
    writer, buf = streams.writer()
    writer.write_bit(1)
    writer.write_bit(0)
    writer.write_bits(EOF, 9)
    with pytest.raises(FormatError):
        HuffmanTree.from_bits(streams.reader(streams.contents(writer, buf)))


def test_from_bits_empty_stream_raises(streams):
    with pytest.raises(FormatError):
        HuffmanTree.from_bits(streams.reader(b""))


def test_from_bits_rejects_out_of_range_symbol(streams):
    writer, buf = streams.writer()
    writer.write_bit(0)
    writer.write_bits(300, 9)
    with pytest.raises(FormatError):
        HuffmanTree.from_bits(streams.reader(streams.contents(writer, buf)))


def test_from_bits_rejects_duplicate_and_missing_eof(streams):
    writer, buf = streams.writer()
    writer.write_bit(1)
    for _ in range(2):
        writer.write_bit(0)
        writer.write_bits(65, 9)
    with pytest.raises(FormatError):
        HuffmanTree.from_bits(streams.reader(streams.contents(writer, buf)))

    writer, buf = streams.writer()
    writer.write_bit(0)
    writer.write_bits(65, 9)
    with pytest.raises(FormatError):
        HuffmanTree.from_bits(streams.reader(streams.contents(writer, buf)))


def test_from_bits_rejects_runaway_depth(streams):
    with pytest.raises(FormatError):
        HuffmanTree.from_bits(streams.reader(b"\xff" * 64))


def test_decode_truncated_payload_raises(streams):
    tree = HuffmanTree.from_frequencies({ord("a"): 3, ord("b"): 1})
    writer, buf = streams.writer()
    tree.encode(streams.reader(b"aaab" * 4), writer)
    payload = streams.contents(writer, buf)
    assert len(payload) == 3

    out_writer, _ = streams.writer()
    with pytest.raises(FormatError):
        tree.decode(streams.reader(payload[:2]), out_writer)
