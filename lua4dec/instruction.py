"""Representation utilities for Lua 4.0 instruction words."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import InvalidOpcode
from .opcodes import OpCode, OpCodeMode


def _mask(width: int) -> int:
    return (1 << width) - 1


@dataclass(frozen=True)
class Instruction:
    """One instruction word plus the field widths needed to split it.

    The low ``size_op`` bits select the opcode.  The remaining bits are read
    as an unsigned operand ``u``, a signed operand ``s`` (``u`` recentred
    around the middle of its range) or as two operands where ``b`` occupies
    the low ``size_b`` bits and ``a`` everything above.
    """

    raw: int
    size_instruction: int = 32
    size_op: int = 6
    size_b: int = 9

    @property
    def opcode_number(self) -> int:
        return self.raw & _mask(self.size_op)

    @property
    def op(self) -> OpCode:
        opcode = OpCode.lookup(self.opcode_number)
        if opcode is None:
            raise InvalidOpcode(self.raw, self.opcode_number)
        return opcode

    @property
    def u(self) -> int:
        return self.raw >> self.size_op

    @property
    def s(self) -> int:
        return self.u - (_mask(self.size_instruction - self.size_op) >> 1)

    @property
    def a(self) -> int:
        return self.raw >> (self.size_op + self.size_b)

    @property
    def b(self) -> int:
        return (self.raw >> self.size_op) & _mask(self.size_b)

    @property
    def is_jump(self) -> bool:
        return self.op.is_jump

    @property
    def jumps_forward(self) -> bool:
        return self.op.is_jump and self.s > 0

    @property
    def push_count(self) -> int:
        op = self.op
        change = op.push
        if not change.delta:
            return change.count
        if op is OpCode.PUSH_NIL:
            return self.u
        if op is OpCode.CALL:
            return self.b
        raise AssertionError(f"no push rule for {op.name}")

    @property
    def pop_count(self) -> int:
        op = self.op
        change = op.pop
        if not change.delta:
            return change.count
        if op in (OpCode.POP, OpCode.RETURN, OpCode.CONCAT):
            return self.u
        if op in (OpCode.SET_TABLE, OpCode.CLOSURE):
            return self.b
        if op in (OpCode.CALL, OpCode.TAIL_CALL):
            # arguments plus the callee
            return self.a + 1
        if op is OpCode.SET_LIST:
            return self.b + 1
        if op is OpCode.SET_MAP:
            return 2 * self.u + 1
        raise AssertionError(f"no pop rule for {op.name}")

    def operands(self) -> str:
        mode = self.op.mode
        if mode is OpCodeMode.UNSIGNED:
            return f"{self.u}"
        if mode is OpCodeMode.SIGNED:
            return f"{self.s}"
        if mode is OpCodeMode.AB:
            return f"{self.a}, {self.b}"
        return ""

    def format(self) -> str:
        return f"{self.op.name}({self.operands()})"

    def __str__(self) -> str:
        return self.format()

    @classmethod
    def encode(
        cls,
        op: OpCode,
        *,
        u: int = 0,
        s: Optional[int] = None,
        a: int = 0,
        b: int = 0,
        size_instruction: int = 32,
        size_op: int = 6,
        size_b: int = 9,
    ) -> "Instruction":
        """Assemble an instruction word for ``op`` from its operand(s)."""

        mode = op.mode
        if mode is OpCodeMode.SIGNED:
            bias = _mask(size_instruction - size_op) >> 1
            u = (s or 0) + bias
        elif mode is OpCodeMode.AB:
            u = (a << size_b) | (b & _mask(size_b))
        elif mode is OpCodeMode.NONE:
            u = 0
        raw = (u << size_op) | int(op)
        if raw >> size_instruction:
            raise ValueError(f"operand does not fit in a {size_instruction}-bit instruction")
        return cls(raw, size_instruction, size_op, size_b)
