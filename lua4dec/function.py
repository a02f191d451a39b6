"""Recursive parser for Lua 4.0 function prototypes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from .errors import InvalidOpcode, MalformedChunk
from .header import ChunkHeader, read_header
from .instruction import Instruction
from .opcodes import OpCode
from .reader import ChunkReader


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Local:
    """Debug information for one local variable and its live pc range."""

    name: str
    start: int
    end: int


@dataclass
class Constants:
    """Per-function constant pool referenced by instruction operands."""

    strings: List[str] = field(default_factory=list)
    numbers: List[float] = field(default_factory=list)
    functions: List["Function"] = field(default_factory=list)


@dataclass
class Function:
    """A parsed function prototype.

    Nested prototypes live in ``constants.functions`` and are owned by their
    parent, so the prototypes of a chunk form a tree.
    """

    source: str
    line: int
    param_count: int
    is_vararg: bool
    max_stack_size: int
    locals: List[Local] = field(default_factory=list)
    lines: List[int] = field(default_factory=list)
    constants: Constants = field(default_factory=Constants)
    code: List[Instruction] = field(default_factory=list)

    def iter_functions(self) -> Iterator["Function"]:
        """Yield this prototype followed by every nested one, depth first."""

        yield self
        for nested in self.constants.functions:
            yield from nested.iter_functions()

    def line_for(self, index: int) -> int:
        if 0 <= index < len(self.lines):
            return self.lines[index]
        return self.line

    def describe(self) -> str:
        source = self.source or "?"
        vararg = "+" if self.is_vararg else ""
        return (
            f"function <{source}:{self.line}> params={self.param_count}{vararg} "
            f"stack={self.max_stack_size} locals={len(self.locals)} "
            f"strings={len(self.constants.strings)} numbers={len(self.constants.numbers)} "
            f"functions={len(self.constants.functions)} instructions={len(self.code)}"
        )


@dataclass
class Chunk:
    """A decoded chunk: its header and top-level function."""

    header: ChunkHeader
    function: Function


def parse_function(reader: ChunkReader) -> Function:
    """Parse one function prototype, recursing into nested prototypes."""

    start = reader.offset
    source = reader.read_string()
    line = reader.read_int()
    param_count = reader.read_int()
    is_vararg = reader.read_byte() == 1
    max_stack_size = reader.read_int()

    locals_ = _parse_locals(reader)
    lines = [reader.read_int() for _ in range(reader.read_count("line"))]
    constants = _parse_constants(reader)
    code = _parse_code(reader)

    function = Function(
        source=source,
        line=line,
        param_count=param_count,
        is_vararg=is_vararg,
        max_stack_size=max_stack_size,
        locals=locals_,
        lines=lines,
        constants=constants,
        code=code,
    )
    logger.debug("parsed %s at offset 0x%X", function.describe(), start)
    return function


def _parse_locals(reader: ChunkReader) -> List[Local]:
    locals_: List[Local] = []
    for _ in range(reader.read_count("local")):
        name = reader.read_string()
        start = reader.read_int()
        end = reader.read_int()
        locals_.append(Local(name, start, end))
    return locals_


def _parse_constants(reader: ChunkReader) -> Constants:
    strings = [reader.read_string() for _ in range(reader.read_count("string constant"))]
    numbers = [reader.read_number() for _ in range(reader.read_count("number constant"))]
    functions = [parse_function(reader) for _ in range(reader.read_count("function constant"))]
    return Constants(strings=strings, numbers=numbers, functions=functions)


def _parse_code(reader: ChunkReader) -> List[Instruction]:
    header = reader.header
    count_offset = reader.offset
    count = reader.read_count("instruction")
    if count == 0:
        raise MalformedChunk("function has no instructions", offset=count_offset)

    code: List[Instruction] = []
    for index in range(count):
        offset = reader.offset
        instruction = Instruction(
            reader.read_instruction_word(),
            header.size_instruction,
            header.size_op,
            header.size_b,
        )
        if OpCode.lookup(instruction.opcode_number) is None:
            raise InvalidOpcode(
                instruction.raw, instruction.opcode_number, index=index, offset=offset
            )
        code.append(instruction)

    if code[-1].op is not OpCode.END:
        raise MalformedChunk(
            f"function code ends with {code[-1].format()} instead of END",
            offset=reader.offset - header.sizeof_instruction,
            index=len(code) - 1,
        )
    return code


def parse_chunk(data: bytes) -> Tuple[ChunkHeader, Function, int]:
    """Parse the header and top-level function, returning bytes consumed."""

    header = read_header(data)
    reader = ChunkReader(data, header, header.header_size)
    function = parse_function(reader)
    return header, function, reader.offset


def load_chunk(data: bytes) -> Chunk:
    """Decode a complete chunk, requiring every byte to be consumed."""

    header, function, consumed = parse_chunk(data)
    if consumed != len(data):
        raise MalformedChunk(
            f"{len(data) - consumed} trailing byte(s) after the top-level function",
            offset=consumed,
        )
    return Chunk(header=header, function=function)
