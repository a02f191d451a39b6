"""Reconstruct expression trees from a flat Lua 4.0 instruction stream.

The Lua 4.0 VM is a stack machine: an instruction consumes the values left
on the stack by earlier instructions and may leave new ones behind.  Replaying
that stack discipline with tree nodes instead of values turns every consumed
producer into a child of its consumer.  Instructions that leave nothing
behind become statements.

Forward conditional jumps are folded into the tree as well: the instructions
a jump skips over are rebuilt recursively and attached as extra children, so
an ``if`` body becomes a nested block rather than a flat jump target.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List, Optional, Sequence, Tuple

from .errors import MalformedChunk
from .function import Constants
from .instruction import Instruction
from .opcodes import OpCode


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Node:
    """One instruction and the already reconstructed operand sub-trees.

    ``children[0]`` is the value pushed most recently before ``instruction``
    ran.  Nodes for forward jumps additionally carry the statements of the
    skipped range after their operands.
    """

    instruction: Instruction
    children: Tuple["Node", ...] = ()
    index: int = 0

    @property
    def op(self) -> OpCode:
        return self.instruction.op

    @property
    def push_count(self) -> int:
        return self.instruction.push_count

    def instruction_count(self) -> int:
        return sum(child.instruction_count() for child in self.children) + 1

    def describe(self, indent: str = "  ") -> str:
        """Return a multi-line dump of the node and its descendants."""

        return "\n".join(self._describe_lines(0, indent))

    def _describe_lines(self, depth: int, indent: str) -> Iterable[str]:
        yield f"{indent * depth}[{self.index}] {self.instruction.format()}"
        for child in self.children:
            yield from child._describe_lines(depth + 1, indent)


def to_nodes(
    instructions: Sequence[Instruction],
    constants: Optional[Constants] = None,
    *,
    base: int = 0,
) -> List[Node]:
    """Rebuild the statement forest for ``instructions``.

    ``base`` is the position of ``instructions[0]`` within its function and is
    only used to label nodes and errors.  When ``constants`` is supplied the
    closure references are checked against the nested prototypes.
    """

    # reversed so that pop() hands out instructions in program order
    queue: Deque[Tuple[int, Instruction]] = deque(
        reversed(list(enumerate(instructions, start=base)))
    )
    unused: Deque[Node] = deque()
    terminated: List[Node] = []

    while queue:
        index, instruction = queue.pop()
        push_count = instruction.push_count
        pop_count = instruction.pop_count
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "%-30s pop=%d push=%d unused=%s",
                f"[{index}] {instruction.format()}",
                pop_count,
                push_count,
                [node.instruction.format() for node in unused],
            )

        if constants is not None and instruction.op is OpCode.CLOSURE:
            _check_closure(instruction, constants, index)

        children: List[Node] = []
        needed = pop_count
        while needed > 0:
            if not unused:
                raise MalformedChunk(
                    f"stack underflow: {instruction.format()} needs {pop_count} value(s), "
                    f"{pop_count - needed} available",
                    index=index,
                )
            producer = unused.pop()
            needed -= producer.push_count
            children.append(producer)

        if instruction.jumps_forward:
            offset = instruction.s
            if offset > len(queue):
                raise MalformedChunk(
                    f"{instruction.format()} jumps past the end of its block "
                    f"({len(queue)} instruction(s) left)",
                    index=index,
                )
            skipped = [queue.pop() for _ in range(offset)]
            body = [entry for _, entry in skipped]
            children.extend(to_nodes(body, constants, base=skipped[0][0]))

        node = Node(instruction, tuple(children), index)
        if push_count:
            unused.append(node)
        else:
            terminated.append(node)

    if unused:
        residue = ", ".join(f"[{node.index}] {node.instruction.format()}" for node in unused)
        raise MalformedChunk(
            f"{len(unused)} value(s) left on the stack: {residue}",
            index=unused[0].index,
        )
    return terminated


def _check_closure(instruction: Instruction, constants: Constants, index: int) -> None:
    if instruction.a >= len(constants.functions):
        raise MalformedChunk(
            f"{instruction.format()} references missing function {instruction.a} "
            f"({len(constants.functions)} available)",
            index=index,
        )
