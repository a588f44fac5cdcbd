import argparse
import os
import sys

import grin
from errors import GrinError


def get_parser():
    """Create and configure the CLI argument parser.

    :returns: Configured argument parser.
    :rtype: argparse.ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="grin", description="Huffman-based file compressor"
    )
    subparsers = parser.add_subparsers(
        title="subcommands", dest="cmd", required=True
    )

    encode = subparsers.add_parser(
        "encode", aliases=["e"], help="Compress a file into a .grin file"
    )
    encode.add_argument("input", help="File to compress")
    encode.add_argument("output", help="Destination .grin file")

    decode = subparsers.add_parser(
        "decode", aliases=["d"], help="Decompress a .grin file"
    )
    decode.add_argument("input", help=".grin file to decompress")
    decode.add_argument("output", help="Destination file")

    return parser


def _fmt_bytes(n: int) -> str:
    """Format a byte count into a human-readable string.

    :param n: Number of bytes.
    :type n: int
    :returns: Human-readable string.
    :rtype: str
    """
    for unit in ['', 'Ki', 'Mi', 'Gi', 'Ti']:
        if abs(n) < 1024:
            return f"{n:.2f} {unit}B"
        n /= 1024
    return f"{n:.2f} PiB"


def _fmt_ratio(before: int, after: int) -> str:
    """Format the compression ratio ``before / after``.

    :param before: Uncompressed size in bytes.
    :type before: int
    :param after: Compressed size in bytes.
    :type after: int
    :returns: Ratio with two decimals, ``"n/a"`` if ``after`` is zero.
    :rtype: str
    """
    if after <= 0:
        return "n/a"
    return f"{before / after:.2f}"


def encode_file(input_path: str, output_path: str) -> None:
    """Compress a file and report the size change.

    :param input_path: File to compress.
    :type input_path: str
    :param output_path: Destination .grin file.
    :type output_path: str
    :returns: None
    :rtype: None
    """
    grin.encode(input_path, output_path)
    before = os.path.getsize(input_path)
    after = os.path.getsize(output_path)
    print("Size before compression: ", _fmt_bytes(before))
    print("Size after compression: ", _fmt_bytes(after))
    print(f"Compression ratio: {_fmt_ratio(before, after)}")


def decode_file(input_path: str, output_path: str) -> None:
    """Decompress a .grin file and report the restored size.

    :param input_path: .grin file to decompress.
    :type input_path: str
    :param output_path: Destination file.
    :type output_path: str
    :returns: None
    :rtype: None
    """
    written = grin.decode(input_path, output_path)
    print("Restored: ", _fmt_bytes(written))


def main(argv=None) -> int:
    """Entry point for the CLI tool.

    :param argv: Arguments to parse instead of ``sys.argv[1:]``.
    :type argv: list[str] | None
    :returns: Process exit status.
    :rtype: int
    """
    parser = get_parser()
    args = parser.parse_args(argv)

    try:
        if args.cmd in ["encode", "e"]:
            encode_file(args.input, args.output)
        elif args.cmd in ["decode", "d"]:
            decode_file(args.input, args.output)
    except FileNotFoundError as e:
        print(f"[!] File not found: {e.filename}")
        return 1
    except GrinError as e:
        action = "encode" if args.cmd in ["encode", "e"] else "decode"
        print(f"[!] Failed to {action} {args.input}: {e}")
        return 1
    except OSError as e:
        print(f"[!] I/O error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
