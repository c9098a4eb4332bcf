import pytest

from wasmtojs.textutil import (
    join_kv,
    parse_renaming_answer,
    remove_unused_decls,
    replace_all,
    replace_all_regex,
    trim,
)


def test_replace_all_replaces_every_occurrence():
    assert replace_all("func1(func1(x))", "func1(", "add(") == "add(add(x))"


def test_replace_all_does_not_recurse_into_replacement():
    assert replace_all("a-a", "a", "aa") == "aa-aa"


def test_replace_all_empty_pattern_is_noop():
    assert replace_all("abc", "", "x") == "abc"


@pytest.mark.parametrize("raw", ["  x  ", "\tx\r\n", "x"])
def test_trim(raw):
    assert trim(raw) == "x"


def test_trim_keeps_inner_space():
    assert trim("  a b ") == "a b"


def test_join_kv_defaults_and_custom_separators():
    data = {"local0": "count", "local1": "ptr"}
    assert join_kv(data) == "local0=count, local1=ptr"
    assert join_kv(data, "; ", ":") == "local0:count; local1:ptr"
    assert join_kv({}) == ""


def test_replace_all_regex_removes_unused_let():
    src = "function f() {\n  let unused1, unused2;\n  return 1;\n}"
    cleaned = replace_all_regex(src, r"\s*let\s+unused\w*(?:\s*,\s*unused\w*)*\s*;\s*", "")
    assert "unused" not in cleaned
    assert cleaned.startswith("function f() {")
    assert cleaned.endswith("return 1;\n}")


def test_replace_all_regex_dollar_groups():
    assert replace_all_regex("ab", r"(a)(b)", "$2$1$$") == "ba$"
    assert replace_all_regex("xy", r"x", "[$&]") == "[x]y"


def test_parse_renaming_answer_basic():
    text = "# comment\nlocal0 = counter\nlocal1=9bad\nnoequals\nlocal2 = my-name\n"
    result = parse_renaming_answer(text)
    assert result == {"local0": "counter", "local2": "my_name"}


def test_parse_renaming_answer_truncates_and_first_wins():
    long_name = "a" * 45
    result = parse_renaming_answer(f"local0={long_name}\nlocal0=other")
    assert len(result["local0"]) == 30
    assert set(result["local0"]) == {"a"}


def test_parse_renaming_answer_skips_empty_sides():
    assert parse_renaming_answer("=x\ny=\n") == {}


def test_remove_unused_decls_keeps_declared_names():
    body = "  let a, b;\n  a = b;\n"
    assert remove_unused_decls(body) == "  let a, b;\n  a = b;\n"


def test_remove_unused_decls_passes_other_lines_through():
    body = "x = 1;\ny = 2;"
    assert remove_unused_decls(body) == "x = 1;\ny = 2;\n"
    assert remove_unused_decls("") == ""