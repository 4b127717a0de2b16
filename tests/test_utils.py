"""
替换模板工具测试
"""

import re

import pytest

from clipboard_rewriter.utils import GroupRef, expand_template, parse_template, preview_text


def _expand(pattern: str, template: str, text: str) -> str:
    parts = parse_template(template)
    return re.compile(pattern).sub(lambda m: expand_template(parts, m), text)


class TestParseTemplate:

    def test_plain_text(self):
        assert parse_template("hello") == ["hello"]
        assert parse_template("") == []

    def test_numbered_and_named_refs(self):
        assert parse_template("#$1#") == ["#", GroupRef(1), "#"]
        assert parse_template("${word}!") == [GroupRef("word"), "!"]
        assert parse_template("$name") == [GroupRef("name")]

    def test_dollar_escape(self):
        assert parse_template("$$5") == ["$5"]

    @pytest.mark.parametrize("template", ["$", "${", "${}", "$-", "${a-b}"])
    def test_malformed_reference_kept_literally(self, template):
        assert "".join(p for p in parse_template(template) if isinstance(p, str)) == template


class TestExpandTemplate:

    def test_numbered_reference(self):
        assert _expand(r"(\d+)", "#$1#", "a1b22") == "a#1#b#22#"

    def test_braced_reference_before_digits(self):
        assert _expand(r"(\d)", "${1}0", "7") == "70"

    def test_named_reference(self):
        assert _expand(r"(?P<word>[a-z]+)", "<${word}>", "ab 12") == "<ab> 12"

    def test_longest_name_is_taken(self):
        # $1x 指向名为 "1x" 的分组，不存在时为空串
        assert _expand(r"(\d)", "$1x", "5") == ""

    def test_missing_group_expands_to_empty(self):
        assert _expand(r"a", "[$3]", "a") == "[]"
        assert _expand(r"a", "[${nope}]", "a") == "[]"

    def test_oversized_group_number_expands_to_empty(self):
        digits = "1" * 5000
        assert parse_template("$" + digits) == [GroupRef(digits)]
        assert _expand(r"(a)", "<${" + digits + "}>", "a") == "<>"

    def test_unmatched_optional_group_expands_to_empty(self):
        assert _expand(r"a(b)?", "<$1>", "a") == "<>"

    def test_literal_dollar(self):
        assert _expand(r"cost", "$$9", "cost") == "$9"


class TestPreviewText:

    def test_short_text_unchanged(self):
        assert preview_text("abc") == "abc"

    def test_newlines_escaped(self):
        assert preview_text("a\nb") == "a\\nb"

    def test_long_text_truncated(self):
        preview = preview_text("x" * 100, limit=10)
        assert preview.startswith("x" * 10 + "...")
        assert "100" in preview
