"""Tests for luarepl.formatter."""

from __future__ import annotations

import io
import re
import weakref
from dataclasses import dataclass

import pytest

from luarepl.formatter import (
    CYCLE_MARKER,
    TRUNCATION_MARKER,
    FormatOptions,
    Formatter,
    format_number,
    quote,
    quote_string,
)


def _value(lua, expr: str):
    lua.evaluate(f"__probe = {expr}")
    return lua.get_variable("__probe")


class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y
        self._secret = "hidden"

    def move(self, dx, dy):
        self.x += dx
        self.y += dy


@dataclass
class Named:
    Name: str
    _age: int = 0

    def greet(self):
        return "hi"

    def __str__(self):
        return self.Name


# ---------------------------------------------------------------------------
# Leaf rendering
# ---------------------------------------------------------------------------


class TestQuote:
    def test_primitives(self):
        assert quote(None) == "nil"
        assert quote(True) == "true"
        assert quote(False) == "false"
        assert quote(3) == "3"
        assert quote(1.5) == "1.5"

    def test_integral_float_keeps_fraction(self):
        assert format_number(2.0) == "2.0"
        assert format_number(-0.0) == "-0.0"
        assert format_number(1e100) == "1e+100"
        assert format_number(float("inf")) == "inf"

    def test_string_is_quoted(self):
        assert quote("hi") == '"hi"'

    def test_named_escapes(self):
        assert quote_string('a"b\\c\n') == '"a\\"b\\\\c\\n"'
        assert quote_string("\t\r") == '"\\t\\r"'

    def test_control_chars_use_three_digits(self):
        assert quote_string("\x01") == '"\\001"'
        assert quote_string("\x002") == '"\\0002"'

    def test_bytes(self):
        assert quote_string(b"a\xff") == '"a\\255"'

    @pytest.mark.parametrize(
        "text",
        [
            'he said "hi"',
            "tab\tnew\nline",
            "\x00\x01\x7f",
            "back\\slash",
            "crlf\r\n",
            "1\x002",
            "ünïcode ✓",
            "raw\udcffbyte",
        ],
    )
    def test_quoted_string_reads_back(self, lua, text):
        assert _value(lua, quote_string(text)) == text

    def test_placeholders(self, lua):
        assert quote(_value(lua, "string.len")) == "<fun>"
        co = _value(lua, "coroutine.create(function() end)")
        assert quote(co, lua.inspector) == "<thread>"
        assert lua.formatter.format(co) == "<thread>"
        assert quote(_value(lua, "io.stdout")) == "<udata>"
        assert quote(len) == "<fun>"


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class TestTables:
    def test_array_part_is_positional(self, lua):
        assert lua.formatter.format(_value(lua, "{10, 20, 30}")) == "{10,20,30}"

    def test_associative_part(self, lua):
        out = lua.formatter.format(_value(lua, "{x = 1, y = 2}"))
        assert out in ("{x=1,y=2}", "{y=2,x=1}")

    def test_array_before_associative(self, lua):
        out = lua.formatter.format(_value(lua, '{1, 2, name = "n"}'))
        assert out == '{1,2,name="n"}'

    def test_empty_table(self, lua):
        assert lua.formatter.format(_value(lua, "{}")) == "{}"

    def test_nested(self, lua):
        assert lua.formatter.format(_value(lua, "{a = {b = {1}}}")) == "{a={b={1}}}"

    def test_non_string_keys_are_bracketed(self, lua):
        assert lua.formatter.format(_value(lua, "{[true] = 1}")) == "{[true]=1}"
        assert lua.formatter.format(_value(lua, "{[10] = 5}")) == "{[10]=5}"
        assert lua.formatter.format(_value(lua, "{[1.5] = 2}")) == "{[1.5]=2}"

    def test_key_with_whitespace_is_quoted(self, lua):
        assert lua.formatter.format(_value(lua, '{["a b"] = 1}')) == '{"a b"=1}'

    def test_functions_inside_tables(self, lua):
        assert lua.formatter.format(_value(lua, "{f = print}")) == "{f=<fun>}"

    def test_top_level_string(self, lua):
        assert lua.formatter.format("x\ny") == '"x\\ny"'

    def test_invalid_utf8_string(self, lua):
        assert lua.formatter.format(_value(lua, r'"a\255"')) == r'"a\255"'
        assert lua.formatter.format(_value(lua, "string.char(255)")) == r'"\255"'

    def test_invalid_utf8_key_is_quoted(self, lua):
        out = lua.formatter.format(_value(lua, r'{["\255"] = 1}'))
        assert out == r'{"\255"=1}'


class TestCycles:
    def test_direct_self_reference(self, lua):
        lua.evaluate("t = {}; t.self = t")
        assert lua.formatter.format(lua.get_variable("t")) == f"{{self={CYCLE_MARKER}}}"

    def test_indirect_reference(self, lua):
        lua.evaluate("a = {}; b = {a = a}; a.b = b")
        assert lua.formatter.format(lua.get_variable("a")) == "{b={a=<cycle>}}"

    def test_self_reference_in_array_part(self, lua):
        lua.evaluate("t = {1}; t[2] = t")
        assert lua.formatter.format(lua.get_variable("t")) == "{1,<cycle>}"

    def test_deep_chain(self, lua):
        lua.evaluate(
            """
            first = {}
            local node = first
            for i = 1, 50 do
              node.next = {}
              node = node.next
            end
            node.next = first
            """
        )
        out = lua.formatter.format(lua.get_variable("first"))
        assert out.count(CYCLE_MARKER) == 1
        assert out.count("{") == 51

    def test_repeated_reference_is_marked(self, lua):
        lua.evaluate("s = {1}; t = {s, s}")
        assert lua.formatter.format(lua.get_variable("t")) == "{{1},<cycle>}"

    def test_python_list_cycle(self, lua):
        items = [1]
        items.append(items)
        assert lua.formatter.format(items) == "{1,<cycle>}"

    def test_each_call_starts_fresh(self, lua):
        t = _value(lua, "{1}")
        assert lua.formatter.format(t) == "{1}"
        assert lua.formatter.format(t) == "{1}"


class TestCustomHooks:
    def test_tostring_metamethod(self, lua):
        p = _value(lua, 'setmetatable({}, {__tostring = function() return "point" end})')
        assert lua.formatter.format(p) == "point"

    def test_raw_mode_ignores_tostring(self, lua):
        p = _value(lua, 'setmetatable({x = 1}, {__tostring = function() return "point" end})')
        assert lua.formatter.format(p, FormatOptions(raw=True)) == "{x=1}"

    def test_nested_tostring(self, lua):
        lua.evaluate('p = setmetatable({}, {__tostring = function() return "pt" end})')
        assert lua.formatter.format(_value(lua, "{p, p}")) == "{pt,pt}"

    def test_pairs_metamethod_replaces_entries(self, lua):
        t = _value(
            lua,
            "setmetatable({hidden = 1}, {__pairs = function() return next, {a = 1}, nil end})",
        )
        assert lua.formatter.format(t) == "{a=1}"

    def test_pairs_metamethod_array_style(self, lua):
        t = _value(lua, "setmetatable({}, {__pairs = function() return ipairs({7, 8}) end})")
        assert lua.formatter.format(t) == "{7,8}"


class TestLimit:
    def test_truncates_with_marker(self, lua):
        lua.evaluate("big = {} for i = 1, 5000 do big[i] = i end")
        out = lua.formatter.format(lua.get_variable("big"), FormatOptions(limit=10))
        assert out.startswith("{1,2,3")
        assert out.endswith(TRUNCATION_MARKER)
        assert len(out) < 40

    def test_default_limit_bounds_output(self, lua):
        lua.evaluate("big = {} for i = 1, 5000 do big[i] = i end")
        out = lua.formatter.format(lua.get_variable("big"))
        assert out.endswith(TRUNCATION_MARKER)
        assert "4999" not in out

    def test_small_values_untouched(self, lua):
        out = lua.formatter.format(_value(lua, "{1, 2}"), FormatOptions(limit=10))
        assert out == "{1,2}"


# ---------------------------------------------------------------------------
# Host values
# ---------------------------------------------------------------------------


class TestHostValues:
    def test_plain_object_uses_directory(self, lua):
        assert lua.formatter.format(Point(1, 2)) == "{x=1,y=2,move=<method>}"

    def test_str_override_is_custom_stringifier(self, lua):
        assert lua.formatter.format(Named("Dolly", 46)) == "Dolly"

    def test_raw_mode_dumps_structure(self, lua):
        out = lua.formatter.format(Named("Dolly", 46), FormatOptions(raw=True))
        assert out == '{Name="Dolly",greet=<method>}'

    def test_weak_reference_matches_referent(self, lua):
        p = Point(1, 2)
        assert lua.formatter.format(weakref.ref(p)) == lua.formatter.format(p)
        assert lua.formatter.format(weakref.proxy(p)) == lua.formatter.format(p)

    def test_python_containers(self, lua):
        assert lua.formatter.format([1, 2, 3]) == "{1,2,3}"
        assert lua.formatter.format({"a": 1}) == "{a=1}"
        assert lua.formatter.format((1, "x")) == '{1,"x"}'

    def test_compiled_pattern_lists_its_fields(self, lua):
        out = lua.formatter.format(re.compile("a+"))
        assert 'pattern="a+"' in out
        assert "groups=0" in out
        assert "match=<method>" in out

    def test_host_value_inside_table(self, lua):
        lua.register({"pt": Point(3, 4)})
        out = lua.formatter.format(_value(lua, "{pt}"))
        assert out == "{{x=3,y=4,move=<method>}}"


class TestPrint:
    def test_pprint_from_lua(self, lua, capsys):
        lua.evaluate("pprint({1, 2}, 'x', nil)")
        assert capsys.readouterr().out == '{1,2}\t"x"\tnil\n'

    def test_pprint_binds_underscore(self, lua, capsys):
        lua.evaluate("pprint({7})")
        capsys.readouterr()
        lua.evaluate("first = _[1]")
        assert lua.get_variable("first") == 7

    def test_print_to_stream_and_namespace(self, lua):
        buf = io.StringIO()
        ns: dict = {}
        fmt = Formatter(lua.inspector, namespace=ns, stream=buf)
        fmt.print("a", 1)
        assert buf.getvalue() == '"a"\t1\n'
        assert ns["_"] == "a"

    def test_dump_function(self, lua):
        lua.evaluate(
            'p = setmetatable({x = 1}, {__tostring = function() return "P" end})\n'
            "pretty, raw = dump(p), dump(p, true)"
        )
        assert lua.get_variable("pretty") == "P"
        assert lua.get_variable("raw") == "{x=1}"
