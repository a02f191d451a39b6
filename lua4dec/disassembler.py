"""Instruction listing utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional

from .function import Chunk, Function
from .instruction import Instruction
from .opcodes import OpCode


class Disassembler:
    """Render textual listings of a chunk's function prototypes."""

    def __init__(self, *, max_instructions: Optional[int] = None) -> None:
        self.max_instructions = max_instructions

    def generate_listing(self, chunk: Chunk) -> str:
        lines = [f"; {chunk.header.describe()}", ""]
        lines.extend(self._render_function(chunk.function, "main"))
        return "\n".join(lines) + "\n"

    def _render_function(self, function: Function, label: str) -> List[str]:
        lines = [f"; {label}: {function.describe()}"]
        lines.extend(self._format_locals(function))

        for index, instruction in enumerate(function.code):
            if self.max_instructions is not None and index >= self.max_instructions:
                lines.append("; ... truncated ...")
                break
            lines.append(self._format_instruction(function, index, instruction))
        lines.append("")

        for position, nested in enumerate(function.constants.functions):
            lines.extend(self._render_function(nested, f"{label}.{position}"))
        return lines

    def _format_instruction(self, function: Function, index: int, instruction: Instruction) -> str:
        op = instruction.op
        digits = (instruction.size_instruction + 3) // 4
        text = (
            f"{index:6d} [{function.line_for(index):4d}] {instruction.raw:0{digits}X}    "
            f"{op.mnemonic:<12} {instruction.operands()}"
        )
        comment = self._describe_operand(function, index, instruction)
        if comment:
            text = f"{text:<56} ; {comment}"
        return text.rstrip()

    @staticmethod
    def _describe_operand(function: Function, index: int, instruction: Instruction) -> str:
        op = instruction.op
        constants = function.constants
        if op in (OpCode.PUSH_STRING, OpCode.GET_GLOBAL, OpCode.SET_GLOBAL, OpCode.GET_DOTTED, OpCode.PUSH_SELF):
            if instruction.u < len(constants.strings):
                return repr(constants.strings[instruction.u])
        elif op in (OpCode.PUSH_NUMBER, OpCode.PUSH_NEGATIVE_NUMBER):
            if instruction.u < len(constants.numbers):
                return f"{constants.numbers[instruction.u]:.16g}"
        elif op in (OpCode.GET_LOCAL, OpCode.SET_LOCAL, OpCode.GET_INDEXED):
            if instruction.u < len(function.locals):
                return function.locals[instruction.u].name
        elif op.is_jump or op in (OpCode.FOR_PREP, OpCode.FOR_LOOP, OpCode.LFOR_PREP, OpCode.LFOR_LOOP):
            return f"to {index + 1 + instruction.s}"
        elif op is OpCode.CLOSURE:
            return f"function {instruction.a}"
        return ""

    @staticmethod
    def _format_locals(function: Function) -> Iterable[str]:
        for slot, local in enumerate(function.locals):
            yield f";   local {slot} {local.name} [{local.start}, {local.end})"

    def write_listing(self, chunk: Chunk, output_path: Path) -> None:
        output_path.write_text(self.generate_listing(chunk), "utf-8")
