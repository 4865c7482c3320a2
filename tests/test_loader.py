"""
tests/test_loader.py
Unit tests for blueprintc.loader: text normalisation, YAML parsing with
located errors, duplicate detection and structural checks.
"""

from __future__ import annotations

import textwrap

import pytest
import yaml

from blueprintc.errors import ParsingError, ValidationError
from blueprintc.filesystem import MemoryFileSystem
from blueprintc.loader import (
    dump_yaml,
    load_draft,
    normalise_draft,
    parse_draft,
    parse_yaml,
    rename_repeated_statements,
    validate_structure,
)


# ===========================================================================
# Normalisation
# ===========================================================================


class TestNormaliseDraft:
    def test_line_endings(self) -> None:
        assert "\r" not in normalise_draft("models:\r\n  Post:\r\n    title: string\r\n")

    def test_bare_flags_become_keys(self) -> None:
        text = normalise_draft("models:\n  Post:\n    title: string\n    softDeletes\n    timestamps\n")
        assert "    softdeletes: softDeletes" in text
        assert "    timestamps: timestamps" in text

    def test_bare_resource_and_invokable(self) -> None:
        text = normalise_draft("controllers:\n  Post:\n    resource\n  Report:\n    invokable\n")
        assert "    resource: web" in text
        assert "    invokable: true" in text

    def test_uuid_key_shorthand(self) -> None:
        text = normalise_draft("models:\n  Post:\n    uuid\n")
        assert "    id: uuid primary" in text

    def test_dashes_stripped(self) -> None:
        text = normalise_draft("seeders:\n  - Post\n  - Comment\n")
        assert "- " not in text

    def test_dashes_kept_with_indexes(self) -> None:
        draft = "models:\n  Post:\n    indexes:\n      - unique: title\n"
        assert "- unique: title" in normalise_draft(draft)

    def test_dashes_kept_on_request(self) -> None:
        assert "- Post" in normalise_draft("seeders:\n  - Post\n", strip_dashes=False)


class TestRenameRepeatedStatements:
    def test_repeated_verbs_get_line_suffix(self) -> None:
        draft = textwrap.dedent(
            """\
            controllers:
              Post:
                store:
                  fire: NewPost
                  fire: PostSaved
                  save: post
            """
        )
        renamed = rename_repeated_statements(draft)
        assert "fire-4: NewPost" in renamed
        assert "fire-5: PostSaved" in renamed

    def test_single_verbs_untouched(self) -> None:
        draft = "controllers:\n  Post:\n    store:\n      fire: NewPost\n    update:\n      fire: PostSaved\n"
        assert rename_repeated_statements(draft) == draft

    def test_repeated_statements_survive_parsing(self) -> None:
        draft = textwrap.dedent(
            """\
            controllers:
              Post:
                store:
                  dispatch: SyncMedia
                  dispatch: NotifyFollowers
            """
        )
        document = parse_draft(draft)
        assert len(document.controllers["Post"]["store"]) == 2


# ===========================================================================
# YAML
# ===========================================================================


class TestParseYaml:
    def test_empty_document(self) -> None:
        assert parse_yaml("") == {}

    def test_syntax_error_carries_line_and_content(self) -> None:
        content = "models:\n  Post:\n    title: string\n   bad: [unclosed\n"
        with pytest.raises(ParsingError) as exc_info:
            parse_yaml(content, "draft.yaml")
        error = exc_info.value
        assert error.code == 1001
        assert error.file_path == "draft.yaml"
        assert error.line_number is not None
        assert error.context["yaml_content"] == content
        assert isinstance(error.__cause__, yaml.YAMLError)

    def test_non_mapping_root(self) -> None:
        with pytest.raises(ParsingError):
            parse_yaml("- a\n- b\n")

    def test_duplicate_model(self) -> None:
        content = "models:\n  Post:\n    title: string\n  Post:\n    body: text\n"
        with pytest.raises(ValidationError) as exc_info:
            parse_yaml(content, "draft.yaml")
        error = exc_info.value
        assert error.code == 3005
        assert error.line_number == 4
        assert error.context["first_defined_on_line"] == 2

    def test_dump_keeps_key_order(self) -> None:
        assert dump_yaml({"b": 1, "a": 2}).splitlines() == ["b: 1", "a: 2"]


# ===========================================================================
# Structure
# ===========================================================================


class TestValidateStructure:
    def test_sections(self) -> None:
        document = validate_structure(
            {
                "models": {"Post": {"title": "string"}},
                "controllers": {"Post": {"index": {"query": "all"}}},
                "seeders": "Post, Comment",
                "settings": {"output_root": "src"},
            }
        )
        assert list(document.models) == ["Post"]
        assert document.seeders == ["Post", "Comment"]
        assert document.settings == {"output_root": "src"}
        assert not document.is_empty

    def test_all_sections_empty(self) -> None:
        with pytest.raises(ParsingError) as exc_info:
            validate_structure({"models": {}, "controllers": None})
        assert exc_info.value.code == 1002

    def test_section_must_be_mapping(self) -> None:
        with pytest.raises(ParsingError):
            validate_structure({"models": ["Post"]})

    def test_bad_model_name(self) -> None:
        with pytest.raises(ParsingError) as exc_info:
            validate_structure({"models": {"1Post": {"title": "string"}}})
        assert exc_info.value.code == 1003

    def test_model_body_must_be_mapping(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_structure({"models": {"Post": "title"}})
        assert exc_info.value.code == 3009

    def test_bad_column_name(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_structure({"models": {"Post": {"Title": "string"}}})
        assert exc_info.value.code == 3002

    def test_relationship_keys_are_not_columns(self) -> None:
        document = validate_structure({"models": {"Post": {"belongsTo": "User"}}})
        assert document.models["Post"] == {"belongsTo": "User"}

    def test_bad_method_name(self) -> None:
        with pytest.raises(ParsingError) as exc_info:
            validate_structure({"controllers": {"Post": {"Index": {"query": "all"}}}})
        assert exc_info.value.code == 1004

    def test_settings_must_be_mapping(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_structure({"models": {"Post": {}}, "settings": "fast"})
        assert exc_info.value.code == 3007


class TestLoadDraft:
    def test_missing_file(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_draft(MemoryFileSystem(), "draft.yaml")

    def test_reads_through_filesystem(self, blog_draft: str) -> None:
        fs = MemoryFileSystem({"draft.yaml": blog_draft})
        document = load_draft(fs, "draft.yaml")
        assert document.file_path == "draft.yaml"
        assert set(document.models) == {"Post", "User"}

    def test_example_draft(self, example_draft: str) -> None:
        document = parse_draft(example_draft, file_path="draft_example.yaml")
        assert set(document.models) == {"User", "Post", "Comment"}
        assert set(document.controllers) == {"Post", "Api/Comment"}
