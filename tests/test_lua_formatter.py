"""Unit tests covering Lua rendering utilities."""

from __future__ import annotations

import pytest

from lua4dec.lua_formatter import LuaRenderOptions, LuaWriter


def test_lua_writer_indentation() -> None:
    writer = LuaWriter()
    writer.write_line("if (x) then")
    with writer.indented():
        writer.write_line("y = 1")
    writer.write_line("end")

    assert writer.lines == ["if (x) then", "  y = 1", "end"]


def test_lua_writer_collapses_blank_lines() -> None:
    writer = LuaWriter()
    writer.write_line()
    writer.write_line("a = 1")
    writer.write_line()
    writer.write_line()
    writer.write_line("b = 2")

    assert writer.lines == ["a = 1", "", "b = 2"]


def test_lua_writer_reindents_blocks() -> None:
    writer = LuaWriter("    ")
    writer.write_line("function()")
    with writer.indented():
        writer.write_block("if (x) then\n    return\nend")
    writer.write_line("end")

    assert writer.lines == [
        "function()",
        "    if (x) then",
        "        return",
        "    end",
        "end",
    ]


def test_lua_writer_comments() -> None:
    writer = LuaWriter()
    writer.write_comment("")
    with writer.indented():
        writer.write_comment("unsupported")

    assert writer.lines == ["--", "  -- unsupported"]


def test_lua_writer_dedent_underflow() -> None:
    writer = LuaWriter()
    with pytest.raises(ValueError):
        writer.dedent()


def test_render_options_defaults() -> None:
    options = LuaRenderOptions()

    assert options.indent == "  "
    assert options.strict
    assert options.local_prefix == "local_"
    assert options.upvalue_prefix == "upvalue_"
