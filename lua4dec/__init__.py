"""Public package exports for the Lua 4.0 bytecode decompiler."""

from .codegen import CodeGenerator, decompile, generate_code
from .disassembler import Disassembler
from .errors import (
    ChunkError,
    HeaderError,
    InvalidOpcode,
    MalformedChunk,
    UnsupportedEncoding,
    UnsupportedOpcode,
)
from .function import Chunk, Constants, Function, Local, load_chunk, parse_function
from .header import ChunkHeader, read_header
from .instruction import Instruction
from .lua_formatter import LuaRenderOptions, LuaWriter
from .opcodes import OpCode, OpCodeMode, StackChange
from .reader import ChunkReader
from .tree import Node, to_nodes

__all__ = [
    "Chunk",
    "ChunkError",
    "ChunkHeader",
    "ChunkReader",
    "CodeGenerator",
    "Constants",
    "Disassembler",
    "Function",
    "HeaderError",
    "Instruction",
    "InvalidOpcode",
    "Local",
    "LuaRenderOptions",
    "LuaWriter",
    "MalformedChunk",
    "Node",
    "OpCode",
    "OpCodeMode",
    "StackChange",
    "UnsupportedEncoding",
    "UnsupportedOpcode",
    "decompile",
    "generate_code",
    "load_chunk",
    "parse_function",
    "read_header",
    "to_nodes",
]
