# File: blueprintc/utils.py
"""
Blueprintc - Utility Functions & Helpers
==========================================
String inflection, quoting and merge helpers shared by every stage of the
compiler, plus the ``Timer`` used to profile pipeline steps.

Performance strategy:
- Inflection functions are decorated with ``@lru_cache(maxsize=None)``;
  the analyzer derives foreign-key names for every relationship on every
  entity, so the same handful of names is converted over and over.
- No external dependencies beyond the Python standard library.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import re
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_NAMESPACE_SEPARATOR_RE: re.Pattern[str] = re.compile(r"[/\\]")
_SURROUNDING_QUOTES_RE: re.Pattern[str] = re.compile(r"""^['"]?(.*?)['"]?$""", re.S)
_LIST_SEPARATOR_RE: re.Pattern[str] = re.compile(r",[ \t]*")

# Irregular nouns that turn up in data models
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
}
_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}

# Words that are the same in both forms
_UNCOUNTABLE: frozenset = frozenset({
    "equipment", "information", "rice", "money", "species", "series",
    "fish", "sheep", "news", "metadata", "feedback", "media",
})


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("UserProfile")
        'user_profile'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """Split any casing style into a tuple of lowercase words."""
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    return tuple(w.lower() for w in _SPLIT_WORDS_RE.findall(cleaned) if w)


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert any string to PascalCase.

        >>> to_pascal_case("blog_post")
        'BlogPost'
    """
    if not name:
        return ""
    return "".join(word.capitalize() for word in _extract_words(name))


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

        >>> to_camel_case("BlogPost")
        'blogPost'
    """
    words: Tuple[str, ...] = _extract_words(name) if name else ()
    if not words:
        return ""
    return words[0] + "".join(w.capitalize() for w in words[1:])


@functools.lru_cache(maxsize=None)
def to_model_name(name: str) -> str:
    """
    Studly-case an entity reference while keeping namespace separators.

        >>> to_model_name("blog_post")
        'BlogPost'
        >>> to_model_name("Admin/user")
        'Admin/User'
    """
    if not name:
        return ""
    parts: List[str] = re.split(r"([/\\])", name)
    return "".join(
        part if part in ("/", "\\") else _studly_segment(part) for part in parts
    )


def _studly_segment(segment: str) -> str:
    if not segment:
        return ""
    if "_" not in segment and "-" not in segment and segment[0].isupper():
        return segment
    return to_pascal_case(segment)


@functools.lru_cache(maxsize=None)
def class_basename(reference: str) -> str:
    """Return the last segment of a namespaced reference (``Admin\\User`` -> ``User``)."""
    return _NAMESPACE_SEPARATOR_RE.split(reference)[-1]


def _match_case(original: str, replacement: str) -> str:
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation, good enough for table and route names.

    Only the last snake_case word of *name* is inflected.
    """
    if not name:
        return ""
    head, sep, word = name.rpartition("_")
    lower: str = word.lower()

    if lower in _UNCOUNTABLE:
        plural: str = word
    elif lower in _IRREGULAR_PLURALS:
        plural = _match_case(word, _IRREGULAR_PLURALS[lower])
    elif lower in _IRREGULAR_SINGULARS:
        plural = word
    elif lower.endswith(("sh", "ch", "x", "z", "ss", "us")):
        plural = word + "es"
    elif lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        plural = word[:-1] + "ies"
    elif lower.endswith("fe"):
        plural = word[:-2] + "ves"
    elif lower.endswith("f") and not lower.endswith("ff"):
        plural = word[:-1] + "ves"
    elif lower.endswith("o") and len(word) > 1 and lower[-2] not in "aeiou":
        plural = word + "es"
    elif lower.endswith("s"):
        plural = word
    else:
        plural = word + "s"
    return head + sep + plural


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    Naive English singularisation (reverse of :func:`to_plural`).

    Only the last snake_case word of *name* is inflected.
    """
    if not name:
        return ""
    head, sep, word = name.rpartition("_")
    lower: str = word.lower()

    if lower in _UNCOUNTABLE:
        singular: str = word
    elif lower in _IRREGULAR_SINGULARS:
        singular = _match_case(word, _IRREGULAR_SINGULARS[lower])
    elif lower in _IRREGULAR_PLURALS:
        singular = word
    elif lower.endswith("ies") and len(word) > 3:
        singular = word[:-3] + "y"
    elif lower.endswith("ves"):
        singular = word[:-3] + "f"
    elif lower.endswith("oes") and len(word) > 3:
        singular = word[:-2]
    elif lower.endswith(("ses", "xes", "zes", "ches", "shes")):
        singular = word[:-2]
    elif lower.endswith("s") and not lower.endswith(("ss", "us", "is")):
        singular = word[:-1]
    else:
        singular = word
    return head + sep + singular


# ---------------------------------------------------------------------------
# Shorthand helpers
# ---------------------------------------------------------------------------


def strip_quotes(value: str) -> str:
    """Remove one pair of surrounding single or double quotes."""
    match = _SURROUNDING_QUOTES_RE.match(value)
    return match.group(1) if match else value


def split_list(value: str) -> List[str]:
    """Split a comma separated shorthand list (``a, b,c``) into items."""
    return [item for item in _LIST_SEPARATOR_RE.split(value.strip()) if item != ""]


def merge_recursive(left: Mapping[str, Any], right: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Merge two nested mappings, concatenating values that collide.

    Nested mappings merge key by key; colliding leaves are concatenated into
    a list (scalars are wrapped), so two emitters that both report
    ``{"created": [...]}`` end up with one combined ``created`` list.

        >>> merge_recursive({"created": ["a"]}, {"created": ["b"], "updated": ["c"]})
        {'created': ['a', 'b'], 'updated': ['c']}
    """
    merged: Dict[str, Any] = {key: _copy_value(value) for key, value in left.items()}
    for key, value in right.items():
        if key not in merged:
            merged[key] = _copy_value(value)
            continue
        existing: Any = merged[key]
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_recursive(existing, value)
        else:
            merged[key] = _as_list(existing) + _as_list(value)
    return merged


def _copy_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return merge_recursive({}, value)
    if isinstance(value, list):
        return list(value)
    return value


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return list(value)
    if isinstance(value, tuple):
        return list(value)
    return [value]


# ---------------------------------------------------------------------------
# Emitted-source helpers
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    if not content:
        return 0
    return content.count("\n") + (0 if content.endswith("\n") else 1)


def indent_lines(lines: Sequence[str], level: int = 1, size: int = 4) -> List[str]:
    """Indent non-blank lines by *level* × *size* spaces."""
    prefix: str = " " * (level * size)
    return [prefix + line if line.strip() else line for line in lines]


def build_import_block(imports: Mapping[str, Set[str]]) -> str:
    """
    Sorted ``from module import a, b`` lines for a module → names mapping.

        >>> build_import_block({"typing": {"List", "Optional"}, "datetime": {"date"}})
        'from datetime import date\\nfrom typing import List, Optional'
    """
    lines: List[str] = []
    for module in sorted(imports):
        names: List[str] = sorted(imports[module])
        lines.append(f"from {module} import {', '.join(names)}" if names else f"import {module}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("analyze") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.info("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_model_name",
    "class_basename",
    "to_plural",
    "to_singular",
    "strip_quotes",
    "split_list",
    "merge_recursive",
    "sha256_hex",
    "count_lines",
    "indent_lines",
    "build_import_block",
    "Timer",
]

logger.debug("blueprintc.utils loaded — %d public symbols.", len(__all__))
