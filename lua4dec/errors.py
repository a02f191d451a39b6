"""Exception hierarchy shared by the chunk decoder and the code generator."""

from __future__ import annotations

from typing import Optional, Sequence


class ChunkError(ValueError):
    """Base class for every problem detected while decoding a chunk."""


def _locate(message: str, *, offset: Optional[int] = None, index: Optional[int] = None) -> str:
    details = []
    if index is not None:
        details.append(f"instruction {index}")
    if offset is not None:
        details.append(f"offset 0x{offset:X}")
    if details:
        return f"{message} ({', '.join(details)})"
    return message


class HeaderError(ChunkError):
    """The chunk preamble does not carry the Lua 4.0 signature."""

    def __init__(self, message: str, offset: Optional[int] = None) -> None:
        super().__init__(_locate(message, offset=offset))
        self.offset = offset


class UnsupportedEncoding(ChunkError):
    """The header asks for a size/endianness combination we cannot read."""

    def __init__(self, message: str, offset: Optional[int] = None) -> None:
        super().__init__(_locate(message, offset=offset))
        self.offset = offset


class InvalidOpcode(ChunkError):
    """An instruction word whose opcode field maps to no known opcode.

    This almost always means the header's field widths do not describe the
    instruction stream, or that the input is corrupt.
    """

    def __init__(
        self,
        raw: int,
        opcode: int,
        *,
        index: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> None:
        message = f"invalid opcode {opcode} in instruction word 0x{raw:X}"
        super().__init__(_locate(message, offset=offset, index=index))
        self.raw = raw
        self.opcode = opcode
        self.index = index
        self.offset = offset


class MalformedChunk(ChunkError):
    """A structural invariant of the chunk or of its stack model is violated."""

    def __init__(
        self,
        message: str,
        *,
        offset: Optional[int] = None,
        index: Optional[int] = None,
    ) -> None:
        super().__init__(_locate(message, offset=offset, index=index))
        self.offset = offset
        self.index = index


class UnsupportedOpcode(ChunkError):
    """The code generator has no rendering for a reconstructed node."""

    def __init__(self, op: object, children: Sequence[object] = (), index: Optional[int] = None) -> None:
        name = getattr(op, "name", str(op))
        message = f"cannot generate code for {name} with {len(children)} operand(s)"
        super().__init__(_locate(message, index=index))
        self.op = op
        self.children = tuple(children)
        self.index = index
