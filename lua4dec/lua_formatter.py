"""Helpers for laying out generated Lua source code.

The code generator renders every node to a string.  Nested blocks (``if``
bodies, closure bodies) are rendered first and then pasted into their parent
at a deeper indentation level; :class:`LuaWriter` keeps that bookkeeping in
one place so every block shares the same layout rules.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List


@dataclass
class LuaRenderOptions:
    """Customisation knobs that influence Lua rendering."""

    indent: str = "  "
    strict: bool = True
    local_prefix: str = "local_"
    upvalue_prefix: str = "upvalue_"


class LuaWriter:
    """Incremental Lua pretty printer.

    The writer tracks the indentation level and collapses runs of blank lines.
    Multi-line fragments written through :meth:`write_block` are re-indented
    line by line, which is how rendered child blocks end up nested inside
    their parent statement.
    """

    def __init__(self, indent: str = "  ") -> None:
        self._indent = 0
        self._indent_unit = indent
        self._lines: List[str] = []
        self._pending_blank = False
        self._saw_content = False

    # ------------------------------------------------------------------
    # basic line emission helpers
    # ------------------------------------------------------------------
    def write_line(self, text: str = "") -> None:
        """Append ``text`` to the output at the current indentation.

        An empty ``text`` schedules a blank line which only materialises once
        a non-empty line follows.
        """

        if not text:
            # Consecutive blank lines collapse to a single one.
            if self._saw_content:
                self._pending_blank = True
            return

        if self._pending_blank:
            self._lines.append("")
            self._pending_blank = False

        self._lines.append(f"{self._indent_unit * self._indent}{text}")
        self._saw_content = True

    def write_block(self, text: str) -> None:
        """Append every line of a pre-rendered fragment."""

        for line in text.split("\n"):
            self.write_line(line)

    def write_comment(self, text: str) -> None:
        """Emit a single comment line with proper indentation."""

        if not text:
            self.write_line("--")
        else:
            self.write_line(f"-- {text}")

    # ------------------------------------------------------------------
    # indentation helpers
    # ------------------------------------------------------------------
    @contextmanager
    def indented(self) -> Iterator[None]:
        """Context manager that increases indentation within the ``with`` body."""

        self.indent()
        try:
            yield
        finally:
            self.dedent()

    def indent(self) -> None:
        self._indent += 1

    def dedent(self) -> None:
        if self._indent == 0:
            raise ValueError("indentation underflow")
        self._indent -= 1

    # ------------------------------------------------------------------
    # rendering helpers
    # ------------------------------------------------------------------
    @property
    def lines(self) -> List[str]:
        return list(self._lines)