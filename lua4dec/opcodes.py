"""Static opcode metadata for the Lua 4.0 virtual machine.

Each opcode carries an addressing mode describing how the bits above the
opcode field are interpreted and a push/pop description of its effect on the
value stack.  Effects are either a constant, ``NONE`` or ``DELTA``; the latter
is resolved from the decoded operand by :class:`~lua4dec.instruction.Instruction`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, Optional


class OpCode(IntEnum):
    END = 0
    RETURN = 1
    CALL = 2
    TAIL_CALL = 3
    PUSH_NIL = 4
    POP = 5
    PUSH_INT = 6
    PUSH_STRING = 7
    PUSH_NUMBER = 8
    PUSH_NEGATIVE_NUMBER = 9
    PUSH_UPVALUE = 10
    GET_LOCAL = 11
    GET_GLOBAL = 12
    GET_TABLE = 13
    GET_DOTTED = 14
    GET_INDEXED = 15
    PUSH_SELF = 16
    CREATE_TABLE = 17
    SET_LOCAL = 18
    SET_GLOBAL = 19
    SET_TABLE = 20
    SET_LIST = 21
    SET_MAP = 22
    ADD = 23
    ADD_INT = 24
    SUBTRACT = 25
    MULTIPLY = 26
    DIVIDE = 27
    POWER = 28
    CONCAT = 29
    MINUS = 30
    NOT = 31
    JUMP_NOT_EQUAL = 32
    JUMP_EQUAL = 33
    JUMP_LESS_THAN = 34
    JUMP_LESS_THAN_EQUAL = 35
    JUMP_GREATER_THAN = 36
    JUMP_GREATER_THAN_EQUAL = 37
    JUMP_IF_TRUE = 38
    JUMP_IF_FALSE = 39
    JUMP_ON_TRUE = 40
    JUMP_ON_FALSE = 41
    JUMP = 42
    PUSH_NIL_JUMP = 43
    FOR_PREP = 44
    FOR_LOOP = 45
    LFOR_PREP = 46
    LFOR_LOOP = 47
    CLOSURE = 48

    @classmethod
    def lookup(cls, value: int) -> Optional["OpCode"]:
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def is_jump(self) -> bool:
        return OpCode.JUMP_NOT_EQUAL <= self <= OpCode.JUMP

    @property
    def is_comparison_jump(self) -> bool:
        return OpCode.JUMP_NOT_EQUAL <= self <= OpCode.JUMP_GREATER_THAN_EQUAL

    @property
    def mnemonic(self) -> str:
        """Name used by the reference ``luac`` listing (``PUSHINT``, ``JMPNE``...)."""

        return LUA_MNEMONICS[self]

    @property
    def mode(self) -> "OpCodeMode":
        return OPCODE_INFO[self].mode

    @property
    def push(self) -> "StackChange":
        return OPCODE_INFO[self].push

    @property
    def pop(self) -> "StackChange":
        return OPCODE_INFO[self].pop


class OpCodeMode(Enum):
    UNSIGNED = "U"
    SIGNED = "S"
    AB = "AB"
    NONE = ""


@dataclass(frozen=True)
class StackChange:
    """Push or pop effect of an opcode.

    ``count`` is set for constant effects; ``delta`` marks effects that
    depend on the decoded operand.
    """

    count: int = 0
    delta: bool = False

    @classmethod
    def constant(cls, count: int) -> "StackChange":
        return cls(count=count)

    @property
    def is_none(self) -> bool:
        return not self.delta and self.count == 0

    def describe(self) -> str:
        if self.delta:
            return "Delta"
        if self.count == 0:
            return "None"
        return f"Constant({self.count})"


NONE = StackChange()
DELTA = StackChange(delta=True)
ONE = StackChange.constant(1)
TWO = StackChange.constant(2)
THREE = StackChange.constant(3)


@dataclass(frozen=True)
class OpCodeInfo:
    mode: OpCodeMode
    push: StackChange
    pop: StackChange


def _info(mode: OpCodeMode, push: StackChange, pop: StackChange) -> OpCodeInfo:
    return OpCodeInfo(mode=mode, push=push, pop=pop)


_U = OpCodeMode.UNSIGNED
_S = OpCodeMode.SIGNED
_AB = OpCodeMode.AB
_N = OpCodeMode.NONE


OPCODE_INFO: Dict[OpCode, OpCodeInfo] = {
    OpCode.END: _info(_N, NONE, NONE),
    OpCode.RETURN: _info(_U, NONE, DELTA),
    OpCode.CALL: _info(_AB, DELTA, DELTA),
    OpCode.TAIL_CALL: _info(_AB, NONE, DELTA),
    OpCode.PUSH_NIL: _info(_U, DELTA, NONE),
    OpCode.POP: _info(_U, NONE, DELTA),
    OpCode.PUSH_INT: _info(_S, ONE, NONE),
    OpCode.PUSH_STRING: _info(_U, ONE, NONE),
    OpCode.PUSH_NUMBER: _info(_U, ONE, NONE),
    OpCode.PUSH_NEGATIVE_NUMBER: _info(_U, ONE, NONE),
    OpCode.PUSH_UPVALUE: _info(_U, ONE, NONE),
    OpCode.GET_LOCAL: _info(_U, ONE, NONE),
    OpCode.GET_GLOBAL: _info(_U, ONE, NONE),
    OpCode.GET_TABLE: _info(_N, ONE, TWO),
    OpCode.GET_DOTTED: _info(_U, ONE, ONE),
    OpCode.GET_INDEXED: _info(_U, ONE, ONE),
    OpCode.PUSH_SELF: _info(_U, TWO, ONE),
    OpCode.CREATE_TABLE: _info(_U, ONE, NONE),
    OpCode.SET_LOCAL: _info(_U, NONE, ONE),
    OpCode.SET_GLOBAL: _info(_U, NONE, ONE),
    OpCode.SET_TABLE: _info(_AB, NONE, DELTA),
    # list and map fills leave the table on the stack
    OpCode.SET_LIST: _info(_AB, ONE, DELTA),
    OpCode.SET_MAP: _info(_U, ONE, DELTA),
    OpCode.ADD: _info(_N, ONE, TWO),
    OpCode.ADD_INT: _info(_S, ONE, ONE),
    OpCode.SUBTRACT: _info(_N, ONE, TWO),
    OpCode.MULTIPLY: _info(_N, ONE, TWO),
    OpCode.DIVIDE: _info(_N, ONE, TWO),
    OpCode.POWER: _info(_N, ONE, TWO),
    OpCode.CONCAT: _info(_U, ONE, DELTA),
    OpCode.MINUS: _info(_N, ONE, ONE),
    OpCode.NOT: _info(_N, ONE, ONE),
    OpCode.JUMP_NOT_EQUAL: _info(_S, NONE, TWO),
    OpCode.JUMP_EQUAL: _info(_S, NONE, TWO),
    OpCode.JUMP_LESS_THAN: _info(_S, NONE, TWO),
    OpCode.JUMP_LESS_THAN_EQUAL: _info(_S, NONE, TWO),
    OpCode.JUMP_GREATER_THAN: _info(_S, NONE, TWO),
    OpCode.JUMP_GREATER_THAN_EQUAL: _info(_S, NONE, TWO),
    OpCode.JUMP_IF_TRUE: _info(_S, NONE, ONE),
    OpCode.JUMP_IF_FALSE: _info(_S, NONE, ONE),
    OpCode.JUMP_ON_TRUE: _info(_S, NONE, ONE),
    OpCode.JUMP_ON_FALSE: _info(_S, NONE, ONE),
    OpCode.JUMP: _info(_S, NONE, NONE),
    OpCode.PUSH_NIL_JUMP: _info(_N, NONE, NONE),
    OpCode.FOR_PREP: _info(_S, NONE, NONE),
    OpCode.FOR_LOOP: _info(_S, NONE, THREE),
    OpCode.LFOR_PREP: _info(_S, TWO, NONE),
    OpCode.LFOR_LOOP: _info(_S, NONE, THREE),
    OpCode.CLOSURE: _info(_AB, ONE, DELTA),
}


LUA_MNEMONICS: Dict[OpCode, str] = {
    OpCode.END: "END",
    OpCode.RETURN: "RETURN",
    OpCode.CALL: "CALL",
    OpCode.TAIL_CALL: "TAILCALL",
    OpCode.PUSH_NIL: "PUSHNIL",
    OpCode.POP: "POP",
    OpCode.PUSH_INT: "PUSHINT",
    OpCode.PUSH_STRING: "PUSHSTRING",
    OpCode.PUSH_NUMBER: "PUSHNUM",
    OpCode.PUSH_NEGATIVE_NUMBER: "PUSHNEGNUM",
    OpCode.PUSH_UPVALUE: "PUSHUPVALUE",
    OpCode.GET_LOCAL: "GETLOCAL",
    OpCode.GET_GLOBAL: "GETGLOBAL",
    OpCode.GET_TABLE: "GETTABLE",
    OpCode.GET_DOTTED: "GETDOTTED",
    OpCode.GET_INDEXED: "GETINDEXED",
    OpCode.PUSH_SELF: "PUSHSELF",
    OpCode.CREATE_TABLE: "CREATETABLE",
    OpCode.SET_LOCAL: "SETLOCAL",
    OpCode.SET_GLOBAL: "SETGLOBAL",
    OpCode.SET_TABLE: "SETTABLE",
    OpCode.SET_LIST: "SETLIST",
    OpCode.SET_MAP: "SETMAP",
    OpCode.ADD: "ADD",
    OpCode.ADD_INT: "ADDI",
    OpCode.SUBTRACT: "SUB",
    OpCode.MULTIPLY: "MULT",
    OpCode.DIVIDE: "DIV",
    OpCode.POWER: "POW",
    OpCode.CONCAT: "CONCAT",
    OpCode.MINUS: "MINUS",
    OpCode.NOT: "NOT",
    OpCode.JUMP_NOT_EQUAL: "JMPNE",
    OpCode.JUMP_EQUAL: "JMPEQ",
    OpCode.JUMP_LESS_THAN: "JMPLT",
    OpCode.JUMP_LESS_THAN_EQUAL: "JMPLE",
    OpCode.JUMP_GREATER_THAN: "JMPGT",
    OpCode.JUMP_GREATER_THAN_EQUAL: "JMPGE",
    OpCode.JUMP_IF_TRUE: "JMPT",
    OpCode.JUMP_IF_FALSE: "JMPF",
    OpCode.JUMP_ON_TRUE: "JMPONT",
    OpCode.JUMP_ON_FALSE: "JMPONF",
    OpCode.JUMP: "JMP",
    OpCode.PUSH_NIL_JUMP: "PUSHNILJMP",
    OpCode.FOR_PREP: "FORPREP",
    OpCode.FOR_LOOP: "FORLOOP",
    OpCode.LFOR_PREP: "LFORPREP",
    OpCode.LFOR_LOOP: "LFORLOOP",
    OpCode.CLOSURE: "CLOSURE",
}
