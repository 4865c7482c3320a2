"""
tests/test_utils.py
Unit tests for the inflection, merge and emitted-source helpers.
"""

from __future__ import annotations

import pytest

from blueprintc.utils import (
    Timer,
    build_import_block,
    class_basename,
    count_lines,
    indent_lines,
    merge_recursive,
    sha256_hex,
    split_list,
    strip_quotes,
    to_camel_case,
    to_model_name,
    to_pascal_case,
    to_plural,
    to_singular,
    to_snake_case,
)


# ===========================================================================
# Casing
# ===========================================================================


class TestCasing:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("UserProfile", "user_profile"),
            ("getHTTPResponse", "get_http_response"),
            ("already_snake", "already_snake"),
            ("Api/Comment", "api_comment"),
            ("", ""),
        ],
    )
    def test_snake_case(self, value: str, expected: str) -> None:
        assert to_snake_case(value) == expected

    def test_pascal_and_camel(self) -> None:
        assert to_pascal_case("blog_post") == "BlogPost"
        assert to_camel_case("BlogPost") == "blogPost"
        assert to_camel_case("") == ""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("blog_post", "BlogPost"),
            ("Admin/user", "Admin/User"),
            ("Api\\Comment", "Api\\Comment"),
            ("User", "User"),
        ],
    )
    def test_model_name(self, value: str, expected: str) -> None:
        assert to_model_name(value) == expected

    def test_class_basename(self) -> None:
        assert class_basename("Admin\\User") == "User"
        assert class_basename("Api/Comment") == "Comment"
        assert class_basename("Post") == "Post"


# ===========================================================================
# Inflection
# ===========================================================================


class TestInflection:
    @pytest.mark.parametrize(
        ("singular", "plural"),
        [
            ("post", "posts"),
            ("category", "categories"),
            ("status", "statuses"),
            ("box", "boxes"),
            ("leaf", "leaves"),
            ("hero", "heroes"),
            ("person", "people"),
            ("blog_post", "blog_posts"),
        ],
    )
    def test_round_trip_pairs(self, singular: str, plural: str) -> None:
        assert to_plural(singular) == plural
        assert to_singular(plural) == singular

    def test_case_is_kept(self) -> None:
        assert to_plural("Person") == "People"
        assert to_singular("Categories") == "Category"

    def test_uncountable(self) -> None:
        assert to_plural("news") == "news"
        assert to_singular("series") == "series"

    def test_already_inflected(self) -> None:
        assert to_plural("posts") == "posts"
        assert to_singular("status") == "status"
        assert to_singular("analysis") == "analysis"


# ===========================================================================
# Shorthand helpers
# ===========================================================================


class TestShorthandHelpers:
    def test_strip_quotes(self) -> None:
        assert strip_quotes("'draft'") == "draft"
        assert strip_quotes('"draft"') == "draft"
        assert strip_quotes("draft") == "draft"

    def test_split_list(self) -> None:
        assert split_list("title, content,slug") == ["title", "content", "slug"]
        assert split_list("  title,   body ") == ["title", "body"]
        assert split_list("") == []


class TestMergeRecursive:
    def test_lists_concatenate(self) -> None:
        merged = merge_recursive({"created": ["a"]}, {"created": ["b"], "updated": ["c"]})
        assert merged == {"created": ["a", "b"], "updated": ["c"]}

    def test_nested_and_scalars(self) -> None:
        merged = merge_recursive({"a": {"x": 1}}, {"a": {"x": 2, "y": 3}})
        assert merged == {"a": {"x": [1, 2], "y": 3}}

    def test_inputs_untouched(self) -> None:
        left = {"created": ["a"]}
        right = {"created": ["b"]}
        merge_recursive(left, right)
        assert left == {"created": ["a"]}
        assert right == {"created": ["b"]}


# ===========================================================================
# Emitted-source helpers
# ===========================================================================


class TestSourceHelpers:
    def test_count_lines(self) -> None:
        assert count_lines("") == 0
        assert count_lines("a\nb") == 2
        assert count_lines("a\nb\n") == 2

    def test_indent_lines(self) -> None:
        assert indent_lines(["a", "", "b"]) == ["    a", "", "    b"]
        assert indent_lines(["a"], level=2) == ["        a"]

    def test_build_import_block(self) -> None:
        block = build_import_block({"typing": {"Optional", "List"}, "datetime": {"date"}, "enum": set()})
        assert block.splitlines() == [
            "from datetime import date",
            "import enum",
            "from typing import List, Optional",
        ]

    def test_sha256_hex(self) -> None:
        assert sha256_hex("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_timer() -> None:
    with Timer("analyze") as t:
        pass
    assert t.elapsed >= 0
    assert repr(t).startswith("<Timer analyze:")
