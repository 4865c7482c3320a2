# File: blueprintc/loader.py
"""
Blueprintc - Draft Loader
===========================
Reads a draft document and returns its sections, ready for analysis.

Workflow::

    1. Normalise the text (line endings, dash stripping, shorthand lines
       such as a bare ``timestamps`` or ``resource``).
    2. Rename repeated ``dispatch``/``fire``/``notify``/``send`` statements
       inside one controller method so YAML keeps every one of them.
    3. Compose the YAML node tree to detect duplicate entity and
       controller names with their line numbers.
    4. ``yaml.safe_load`` the text and run structural checks (section
       presence, entity/column/method naming).

YAML syntax failures become ``ParsingError.invalid_yaml`` carrying the
line, the surrounding source lines and the full text, which is what the
``yaml_syntax`` recovery strategy works from.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set

import yaml

from blueprintc.errors import ParsingError, ValidationError
from blueprintc.filesystem import FileSystem, PathLike
from blueprintc.parser import resolve_relationship_kind

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.loader")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SECTIONS: tuple = ("models", "controllers", "seeders", "components")

ENTITY_NAME_RE: re.Pattern[str] = re.compile(r"^[A-Za-z][A-Za-z0-9_/\\]*$")
COLUMN_NAME_RE: re.Pattern[str] = re.compile(r"^[a-z][a-z0-9_]*$")
METHOD_NAME_RE: re.Pattern[str] = re.compile(r"^(__[A-Za-z0-9_]+|[a-z][A-Za-z0-9_]*)$")

# Keys of a model mapping that are not columns
MODEL_KEYS: frozenset = frozenset({
    "id", "timestamps", "timestampstz", "softdeletes", "softdeletestz",
    "relationships", "traits", "meta", "indexes", "columns",
})

# Keys of a controller mapping that are not methods
CONTROLLER_KEYS: frozenset = frozenset({"resource", "invokable", "meta"})

_DASH_RE: re.Pattern[str] = re.compile(r"^([ \t]*)-[ \t]*", re.M)
_MODEL_FLAG_RE: re.Pattern[str] = re.compile(
    r"^([ \t]+)(id|timestamps(?:Tz)?|softDeletes(?:Tz)?)(?:: true)?$", re.M | re.I
)
_RESOURCE_RE: re.Pattern[str] = re.compile(r"^([ \t]+)resource$", re.M | re.I)
_INVOKABLE_RE: re.Pattern[str] = re.compile(r"^([ \t]+)invokable$", re.M | re.I)
_KEY_TYPE_RE: re.Pattern[str] = re.compile(r"^([ \t]+)(ulid|uuid)(?:: true)?$", re.M | re.I)
_CONTROLLERS_RE: re.Pattern[str] = re.compile(r"^controllers:[ \t]*$", re.M)
_METHOD_HEADER_RE: re.Pattern[str] = re.compile(r"^[ \t]+[\w.]+:[ \t]*$")
_TOP_LEVEL_RE: re.Pattern[str] = re.compile(r"^\S")
_REPEATABLE_RE: re.Pattern[str] = re.compile(r"^([ \t]+)(dispatch|fire|notify|send):(?=\s)")


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class DraftDocument:
    """The sections of one draft, after normalisation and structural checks."""

    models: Dict[str, Any] = field(default_factory=dict)
    controllers: Dict[str, Any] = field(default_factory=dict)
    seeders: List[str] = field(default_factory=list)
    components: List[str] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=dict)
    file_path: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.models or self.controllers or self.seeders or self.components)

    def to_tokens(self) -> Dict[str, Any]:
        return {
            "models": dict(self.models),
            "controllers": dict(self.controllers),
            "seeders": list(self.seeders),
            "components": list(self.components),
            "settings": dict(self.settings),
        }


# ---------------------------------------------------------------------------
# Text normalisation
# ---------------------------------------------------------------------------


def normalise_draft(content: str, *, strip_dashes: bool = True) -> str:
    """
    Rewrite draft shorthand into plain YAML.

    Dash stripping turns list items into plain scalars (``- HasUuids``
    becomes ``HasUuids``), which is how traits and seeders are usually
    written; it is skipped when the draft declares ``indexes:`` because
    index lists need their dashes.
    """
    text: str = content.replace("\r\n", "\n").replace("\r", "\n")

    if strip_dashes and "indexes:" not in text:
        text = _DASH_RE.sub(r"\1", text)

    text = rename_repeated_statements(text)

    text = _MODEL_FLAG_RE.sub(lambda m: f"{m.group(1)}{m.group(2).lower()}: {m.group(2)}", text)
    text = _RESOURCE_RE.sub(r"\1resource: web", text)
    text = _INVOKABLE_RE.sub(r"\1invokable: true", text)
    text = _KEY_TYPE_RE.sub(lambda m: f"{m.group(1)}id: {m.group(2).lower()} primary", text)
    return text


def rename_repeated_statements(content: str) -> str:
    """
    Suffix repeated ``dispatch``/``fire``/``notify``/``send`` keys inside one
    controller method with their 1-based line number (``fire-12:``).
    """
    match = _CONTROLLERS_RE.search(content)
    if match is None:
        return content

    head: str = content[: match.start()]
    lines: List[str] = content[match.start():].split("\n")
    first_line: int = head.count("\n") + 1

    groups: List[Dict[int, str]] = []
    current: Dict[int, str] = {}
    for index, line in enumerate(lines[1:], start=1):
        if _TOP_LEVEL_RE.match(line):
            break
        if _METHOD_HEADER_RE.match(line):
            groups.append(current)
            current = {}
            continue
        statement = _REPEATABLE_RE.match(line)
        if statement:
            current[index] = statement.group(2)
    groups.append(current)

    renamed: int = 0
    for group in groups:
        verbs: List[str] = list(group.values())
        repeated: Set[str] = {verb for verb in verbs if verbs.count(verb) > 1}
        for index, verb in group.items():
            if verb not in repeated:
                continue
            line_number: int = first_line + index
            lines[index] = re.sub(
                rf"^([ \t]+){verb}:", rf"\g<1>{verb}-{line_number}:", lines[index], count=1
            )
            renamed += 1

    if renamed:
        logger.debug("Renamed %d repeated controller statement(s).", renamed)
    return head + "\n".join(lines)


# ---------------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------------


def _source_lines(content: str, line_number: int, radius: int = 2) -> List[str]:
    lines: List[str] = content.split("\n")
    start: int = max(line_number - 1 - radius, 0)
    end: int = min(line_number + radius, len(lines))
    return [f"{number + 1:>4} | {lines[number]}" for number in range(start, end)]


def _yaml_error(exc: yaml.YAMLError, content: str, file_path: str) -> ParsingError:
    message: str = str(exc)
    error: ParsingError = ParsingError.invalid_yaml(file_path, message)
    mark = getattr(exc, "problem_mark", None) or getattr(exc, "context_mark", None)
    if mark is not None:
        line_number: int = mark.line + 1
        error.with_line(line_number)
        error.add_context("source_lines", _source_lines(content, line_number))
    error.add_context("yaml_content", content)
    return error


def find_duplicate_definitions(content: str, file_path: Optional[str] = None) -> None:
    """
    Compose *content* and reject duplicate keys in ``models``/``controllers``.

    Raises:
        ValidationError: ``duplicate_definition`` with the duplicate's line.
    """
    root = yaml.compose(content, Loader=yaml.SafeLoader)
    if not isinstance(root, yaml.MappingNode):
        return

    for section_key, section_node in root.value:
        kind: Optional[str] = {"models": "model", "controllers": "controller"}.get(
            section_key.value
        )
        if kind is None or not isinstance(section_node, yaml.MappingNode):
            continue
        seen: Dict[str, int] = {}
        for key_node, _ in section_node.value:
            name: str = str(key_node.value)
            line: int = key_node.start_mark.line + 1
            if name in seen:
                raise ValidationError.duplicate_definition(kind, name, file_path).with_line(
                    line
                ).add_context("first_defined_on_line", seen[name])
            seen[name] = line


def parse_yaml(content: str, file_path: str = "<draft>") -> Dict[str, Any]:
    """
    Parse normalised draft text into a mapping.

    Raises:
        ParsingError: ``invalid_yaml`` for syntax errors or a non-mapping root.
        ValidationError: ``duplicate_definition``.
    """
    try:
        find_duplicate_definitions(content, file_path)
        data: Any = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise _yaml_error(exc, content, file_path) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParsingError.invalid_yaml(
            file_path, f"expected a mapping at top level, got {type(data).__name__}"
        ).add_context("yaml_content", content)
    return data


# ---------------------------------------------------------------------------
# Structural checks
# ---------------------------------------------------------------------------


def _as_name_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in re.split(r"[,\s]+", value) if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    if isinstance(value, Mapping):
        return [str(key) for key in value]
    return [str(value)]


def _check_model(name: str, definition: Any, file_path: str) -> Dict[str, Any]:
    if not ENTITY_NAME_RE.match(name):
        raise ParsingError.invalid_model_definition(
            name, "model names start with a letter and contain only letters, digits, '_' or namespace separators", file_path
        )
    if definition is None:
        return {}
    if not isinstance(definition, Mapping):
        raise ValidationError.invalid_model_format(name).with_file(file_path)

    columns: Dict[str, Any] = {}
    explicit: Any = definition.get("columns")
    if explicit is not None:
        if not isinstance(explicit, Mapping):
            raise ValidationError.invalid_model_format(name).with_file(file_path)
        columns.update(explicit)
    for key, value in definition.items():
        key_text: str = str(key)
        if key_text.lower() in MODEL_KEYS or resolve_relationship_kind(key_text) is not None:
            continue
        columns[key_text] = value

    for column in columns:
        if not COLUMN_NAME_RE.match(str(column)):
            raise ValidationError.invalid_column_definition(
                str(column),
                name,
                "column names start with a lowercase letter and contain only lowercase letters, digits and underscores",
            ).with_file(file_path)
    return dict(definition)


def _check_controller(name: str, definition: Any, file_path: str) -> Any:
    if not ENTITY_NAME_RE.match(name):
        raise ParsingError.invalid_controller_definition(
            name, "controller names start with a letter and contain only letters, digits, '_' or namespace separators", file_path
        )
    if isinstance(definition, Mapping):
        for method in definition:
            method_name: str = str(method)
            if method_name in CONTROLLER_KEYS:
                continue
            if not METHOD_NAME_RE.match(method_name):
                raise ParsingError.invalid_controller_definition(
                    name, f"invalid method name '{method_name}'", file_path
                )
    return definition


def validate_structure(data: Mapping[str, Any], file_path: str = "<draft>") -> DraftDocument:
    """
    Check section layout and naming, returning a ``DraftDocument``.

    Raises:
        ParsingError: missing/empty sections, bad names, non-mapping sections.
        ValidationError: bad model format, bad column names, bad settings.
    """
    present: List[str] = [section for section in SECTIONS if section in data]
    if present and not any(data.get(section) for section in present):
        raise ParsingError.missing_required_section(present[0], file_path)

    for section in ("models", "controllers"):
        value: Any = data.get(section)
        if value is not None and not isinstance(value, Mapping):
            raise ParsingError.invalid_yaml(
                file_path, f"section '{section}' must be a mapping of names to definitions"
            )

    settings: Any = data.get("settings") or {}
    if not isinstance(settings, Mapping):
        raise ValidationError.invalid_configuration(
            "settings", settings, "the settings section must be a mapping"
        )

    document: DraftDocument = DraftDocument(file_path=file_path, settings=dict(settings))
    for name, definition in (data.get("models") or {}).items():
        document.models[str(name)] = _check_model(str(name), definition, file_path)
    for name, definition in (data.get("controllers") or {}).items():
        document.controllers[str(name)] = _check_controller(str(name), definition, file_path)
    document.seeders = _as_name_list(data.get("seeders"))
    document.components = _as_name_list(data.get("components"))

    logger.debug(
        "Draft %s: %d model(s), %d controller(s), %d seeder(s).",
        file_path,
        len(document.models),
        len(document.controllers),
        len(document.seeders),
    )
    return document


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_draft(
    content: str,
    *,
    file_path: str = "<draft>",
    strip_dashes: bool = True,
) -> DraftDocument:
    """Normalise, parse and structurally check draft text."""
    normalised: str = normalise_draft(content, strip_dashes=strip_dashes)
    return validate_structure(parse_yaml(normalised, file_path), file_path)


def load_draft(
    filesystem: FileSystem,
    path: PathLike,
    *,
    strip_dashes: bool = True,
) -> DraftDocument:
    """
    Read and parse the draft at *path* through *filesystem*.

    Raises:
        FileNotFoundError: when the draft does not exist.
    """
    if not filesystem.exists(path) or filesystem.is_directory(path):
        raise FileNotFoundError(f"Draft file not found: {path}")
    content: str = filesystem.read(path)
    logger.info("Loaded draft %s (%d bytes).", path, len(content.encode("utf-8")))
    return parse_draft(content, file_path=str(path), strip_dashes=strip_dashes)


def dump_yaml(data: Mapping[str, Any]) -> str:
    """Serialise a mapping the way drafts and manifests are written."""
    return yaml.safe_dump(dict(data), default_flow_style=False, sort_keys=False, allow_unicode=True)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SECTIONS",
    "MODEL_KEYS",
    "CONTROLLER_KEYS",
    "ENTITY_NAME_RE",
    "COLUMN_NAME_RE",
    "METHOD_NAME_RE",
    "DraftDocument",
    "normalise_draft",
    "rename_repeated_statements",
    "find_duplicate_definitions",
    "parse_yaml",
    "validate_structure",
    "parse_draft",
    "load_draft",
    "dump_yaml",
]

logger.debug("blueprintc.loader loaded — %d public symbols.", len(__all__))
