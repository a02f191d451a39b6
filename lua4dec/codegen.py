"""Render reconstructed node forests as pseudo-Lua source text.

Rendering is a depth-first walk: a node's operands are rendered first and the
node combines their text.  Opcodes without a faithful rendering raise
:class:`~lua4dec.errors.UnsupportedOpcode` instead of emitting guesses.  In
lenient mode such statements are replaced with a comment placeholder.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .errors import MalformedChunk, UnsupportedOpcode
from .function import Function, load_chunk
from .lua_formatter import LuaRenderOptions, LuaWriter
from .opcodes import OpCode
from .tree import Node, to_nodes


logger = logging.getLogger(__name__)


BINARY_OPERATORS: Dict[OpCode, str] = {
    OpCode.ADD: "+",
    OpCode.SUBTRACT: "-",
    OpCode.MULTIPLY: "*",
    OpCode.DIVIDE: "/",
    OpCode.POWER: "^",
}

# The jump fires when the comparison holds and skips the body, so the body
# runs under the inverted comparison.
INVERTED_COMPARISONS: Dict[OpCode, str] = {
    OpCode.JUMP_NOT_EQUAL: "==",
    OpCode.JUMP_EQUAL: "~=",
    OpCode.JUMP_LESS_THAN: ">=",
    OpCode.JUMP_LESS_THAN_EQUAL: ">",
    OpCode.JUMP_GREATER_THAN: "<=",
    OpCode.JUMP_GREATER_THAN_EQUAL: "<",
}

_COMPOUND = frozenset(BINARY_OPERATORS) | {OpCode.ADD_INT, OpCode.CONCAT, OpCode.MINUS, OpCode.NOT}

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
}


def quote_string(value: str) -> str:
    return '"' + "".join(_ESCAPES.get(char, char) for char in value) + '"'


def format_number(value: float) -> str:
    """Format a number the way Lua 4.0's ``%.16g`` does."""

    return f"{value:.16g}"


class CodeGenerator:
    """Render the node forest of one function prototype."""

    def __init__(
        self,
        function: Function,
        options: Optional[LuaRenderOptions] = None,
        *,
        upvalues: Sequence[str] = (),
    ) -> None:
        self.function = function
        self.options = options or LuaRenderOptions()
        self.upvalues = tuple(upvalues)
        self._handlers: Dict[OpCode, Callable[[Node], str]] = {
            OpCode.END: lambda node: "",
            OpCode.RETURN: self._render_return,
            OpCode.CALL: self._render_call,
            OpCode.PUSH_NIL: self._render_push_nil,
            OpCode.POP: self._render_pop,
            OpCode.PUSH_INT: lambda node: str(node.instruction.s),
            OpCode.PUSH_STRING: lambda node: quote_string(self._string(node)),
            OpCode.PUSH_NUMBER: lambda node: format_number(self._number(node)),
            OpCode.PUSH_NEGATIVE_NUMBER: lambda node: format_number(-self._number(node)),
            OpCode.PUSH_UPVALUE: self._render_upvalue,
            OpCode.GET_LOCAL: lambda node: self.local_name(node.instruction.u),
            OpCode.GET_GLOBAL: self._string,
            OpCode.GET_TABLE: self._render_get_table,
            OpCode.GET_DOTTED: lambda node: self._render_member(node, "."),
            OpCode.GET_INDEXED: self._render_get_indexed,
            OpCode.PUSH_SELF: lambda node: self._render_member(node, ":"),
            OpCode.CREATE_TABLE: lambda node: "{}",
            OpCode.SET_LOCAL: self._render_set_local,
            OpCode.SET_GLOBAL: self._render_set_global,
            OpCode.SET_TABLE: self._render_set_table,
            OpCode.ADD_INT: self._render_add_int,
            OpCode.CONCAT: self._render_concat,
            OpCode.MINUS: self._render_minus,
            OpCode.NOT: lambda node: "not " + self._wrapped(self._operands(node, 1)[0]),
            OpCode.JUMP_IF_TRUE: lambda node: self._render_truth_jump(node, "not "),
            OpCode.JUMP_IF_FALSE: lambda node: self._render_truth_jump(node, ""),
            OpCode.CLOSURE: self._render_closure,
        }
        for op in BINARY_OPERATORS:
            self._handlers[op] = self._render_binary
        for op in OpCode:
            if op.is_comparison_jump:
                self._handlers[op] = self._render_comparison_jump

    # ------------------------------------------------------------------
    # entry points
    # ------------------------------------------------------------------
    def generate(self) -> str:
        """Rebuild and render the whole function body."""

        return self.render_forest(to_nodes(self.function.code, self.function.constants))

    def render_forest(self, nodes: Sequence[Node]) -> str:
        writer = LuaWriter(self.options.indent)
        self._write_statements(writer, nodes)
        return "\n".join(writer.lines)

    def render(self, node: Node) -> str:
        handler = self._handlers.get(node.op)
        if handler is None:
            raise UnsupportedOpcode(node.op, node.children, node.index)
        return handler(node)

    def local_name(self, slot: int) -> str:
        locals_ = self.function.locals
        if slot < len(locals_) and locals_[slot].name:
            return locals_[slot].name
        return f"{self.options.local_prefix}{slot}"

    # ------------------------------------------------------------------
    # operand helpers
    # ------------------------------------------------------------------
    def _write_statements(self, writer: LuaWriter, nodes: Sequence[Node]) -> None:
        """Render ``nodes`` as statements, honouring lenient mode."""

        for node in nodes:
            try:
                text = self.render(node)
            except UnsupportedOpcode as exc:
                if self.options.strict:
                    raise
                logger.warning("%s: emitting placeholder", exc)
                writer.write_comment(f"unsupported: {node.instruction.format()} at {node.index}")
                continue
            if text:
                writer.write_block(text)

    def _split(self, node: Node) -> Tuple[Tuple[Node, ...], Tuple[Node, ...]]:
        """Separate the consumed operands from a jump's nested statements."""

        needed = node.instruction.pop_count
        count = 0
        while needed > 0 and count < len(node.children):
            needed -= node.children[count].push_count
            count += 1
        return node.children[:count], node.children[count:]

    def _operands(self, node: Node, arity: Optional[int] = None) -> Tuple[Node, ...]:
        operands, _ = self._split(node)
        if arity is not None and len(operands) != arity:
            # a multi-value producer feeding several slots at once
            raise UnsupportedOpcode(node.op, node.children, node.index)
        return operands

    def _operand_text(self, node: Node, arity: Optional[int] = None) -> List[str]:
        return [self.render(child) for child in self._operands(node, arity)]

    def _wrapped(self, child: Node) -> str:
        text = self.render(child)
        if child.op in _COMPOUND:
            return f"({text})"
        return text

    def _string(self, node: Node) -> str:
        strings = self.function.constants.strings
        index = node.instruction.u
        if index >= len(strings):
            raise MalformedChunk(
                f"string constant {index} out of range ({len(strings)} available)",
                index=node.index,
            )
        return strings[index]

    def _number(self, node: Node) -> float:
        numbers = self.function.constants.numbers
        index = node.instruction.u
        if index >= len(numbers):
            raise MalformedChunk(
                f"number constant {index} out of range ({len(numbers)} available)",
                index=node.index,
            )
        return numbers[index]

    # ------------------------------------------------------------------
    # node renderers
    # ------------------------------------------------------------------
    def _render_return(self, node: Node) -> str:
        values = self._operand_text(node)
        if not values:
            return "return"
        return "return " + ", ".join(reversed(values))

    def _render_call(self, node: Node) -> str:
        rendered = self._operand_text(node)
        if not rendered:
            raise MalformedChunk("call without a callee", index=node.index)
        callee = rendered[-1]
        arguments = ", ".join(reversed(rendered[:-1]))
        return f"{callee}({arguments})"

    def _render_push_nil(self, node: Node) -> str:
        return ", ".join(["nil"] * node.instruction.u)

    def _render_pop(self, node: Node) -> str:
        return "\n".join(reversed(self._operand_text(node)))

    def _render_upvalue(self, node: Node) -> str:
        index = node.instruction.u
        if index < len(self.upvalues):
            return f"%{self.upvalues[index]}"
        return f"%{self.options.upvalue_prefix}{index}"

    def _render_get_table(self, node: Node) -> str:
        key, table = self._operand_text(node, 2)
        return f"{table}[{key}]"

    def _render_member(self, node: Node, separator: str) -> str:
        (table,) = self._operand_text(node, 1)
        return f"{table}{separator}{self._string(node)}"

    def _render_get_indexed(self, node: Node) -> str:
        (table,) = self._operand_text(node, 1)
        return f"{table}[{self.local_name(node.instruction.u)}]"

    def _render_set_local(self, node: Node) -> str:
        (value,) = self._operand_text(node, 1)
        return f"{self.local_name(node.instruction.u)} = {value}"

    def _render_set_global(self, node: Node) -> str:
        (value,) = self._operand_text(node, 1)
        return f"{self._string(node)} = {value}"

    def _render_set_table(self, node: Node) -> str:
        # anything beyond table, key and value belongs to a multiple assignment
        value, key, table = self._operand_text(node, 3)
        return f"{table}[{key}] = {value}"

    def _render_binary(self, node: Node) -> str:
        right, left = self._operands(node, 2)
        operator = BINARY_OPERATORS[node.op]
        return f"{self._wrapped(left)} {operator} {self._wrapped(right)}"

    def _render_add_int(self, node: Node) -> str:
        (operand,) = self._operands(node, 1)
        amount = node.instruction.s
        if amount < 0:
            return f"{self._wrapped(operand)} - {-amount}"
        return f"{self._wrapped(operand)} + {amount}"

    def _render_minus(self, node: Node) -> str:
        (operand,) = self._operands(node, 1)
        text = self._wrapped(operand)
        # "--" would start a comment
        if text.startswith("-"):
            text = f"({text})"
        return "-" + text

    def _render_concat(self, node: Node) -> str:
        parts = [self._wrapped(child) for child in self._operands(node)]
        return " .. ".join(reversed(parts))

    def _render_comparison_jump(self, node: Node) -> str:
        if not node.instruction.jumps_forward:
            raise UnsupportedOpcode(node.op, node.children, node.index)
        right, left = self._operand_text(node, 2)
        operator = INVERTED_COMPARISONS[node.op]
        return self._render_if(f"{left} {operator} {right}", node)

    def _render_truth_jump(self, node: Node, prefix: str) -> str:
        if not node.instruction.jumps_forward:
            raise UnsupportedOpcode(node.op, node.children, node.index)
        (operand,) = self._operands(node, 1)
        value = self._wrapped(operand) if prefix else self.render(operand)
        return self._render_if(f"{prefix}{value}", node)

    def _render_if(self, condition: str, node: Node) -> str:
        _, body = self._split(node)
        writer = LuaWriter(self.options.indent)
        writer.write_line(f"if ({condition}) then")
        with writer.indented():
            self._write_statements(writer, body)
        writer.write_line("end")
        return "\n".join(writer.lines)

    def _render_closure(self, node: Node) -> str:
        functions = self.function.constants.functions
        index = node.instruction.a
        if index >= len(functions):
            raise MalformedChunk(
                f"function constant {index} out of range ({len(functions)} available)",
                index=node.index,
            )
        nested = functions[index]
        upvalues = list(reversed(self._operand_text(node)))

        generator = CodeGenerator(nested, self.options, upvalues=upvalues)
        parameters = [generator.local_name(slot) for slot in range(nested.param_count)]
        if nested.is_vararg:
            parameters.append("...")

        writer = LuaWriter(self.options.indent)
        writer.write_line(f"function({', '.join(parameters)})")
        with writer.indented():
            body = generator.generate()
            if body:
                writer.write_block(body)
        writer.write_line("end")
        return "\n".join(writer.lines)


def generate_code(function: Function, options: Optional[LuaRenderOptions] = None) -> str:
    """Return pseudo-Lua for ``function``, one statement per line."""

    return CodeGenerator(function, options).generate()


def decompile(data: bytes, options: Optional[LuaRenderOptions] = None) -> str:
    """Decode one chunk and render its top-level function."""

    chunk = load_chunk(data)
    return generate_code(chunk.function, options)
