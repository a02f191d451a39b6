#!/usr/bin/env python3
"""Command-line interface for the Lua 4.0 bytecode decompiler."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from lua4dec import (
    ChunkError,
    CodeGenerator,
    Disassembler,
    LuaRenderOptions,
    load_chunk,
    to_nodes,
)


logger = logging.getLogger("lua4_decompile")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("input", type=Path, help="Compiled Lua 4.0 chunk")
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write the generated pseudo-Lua here instead of stdout",
    )
    parser.add_argument(
        "--listing",
        type=Path,
        default=None,
        help="Also write an instruction listing of every function prototype",
    )
    parser.add_argument(
        "--tree",
        type=Path,
        default=None,
        help="Also write the reconstructed node forest of the top-level function",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Replace statements that cannot be reconstructed with comments",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="Number of spaces per indentation level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every decoding step",
    )
    return parser.parse_args()


def validate_input(path: Path) -> None:
    if not path.exists():
        raise SystemExit(f"missing input file: {path}")


def main() -> int:
    start_time = time.perf_counter()
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    validate_input(args.input)

    options = LuaRenderOptions(indent=" " * args.indent, strict=not args.lenient)
    try:
        chunk = load_chunk(args.input.read_bytes())

        if args.listing:
            Disassembler().write_listing(chunk, args.listing)
            print(f"listing written to {args.listing}", file=sys.stderr)

        if args.tree:
            forest = to_nodes(chunk.function.code, chunk.function.constants)
            dump = "\n".join(node.describe() for node in forest)
            args.tree.write_text(dump + "\n", "utf-8")
            print(f"tree written to {args.tree}", file=sys.stderr)

        code = CodeGenerator(chunk.function, options).generate()
    except ChunkError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    # string constants may carry bytes that are not valid UTF-8
    output = (code + "\n").encode("utf-8", "surrogateescape")
    if args.out:
        args.out.write_bytes(output)
        print(f"code written to {args.out}", file=sys.stderr)
    else:
        sys.stdout.buffer.write(output)
        sys.stdout.flush()

    logger.info("total execution time: %.2fs", time.perf_counter() - start_time)
    return 0


if __name__ == "__main__":
    sys.exit(main())
