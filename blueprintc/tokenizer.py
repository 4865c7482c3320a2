# File: blueprintc/tokenizer.py
"""
Blueprintc - Shorthand Tokenizer
==================================
Splits one shorthand definition (a column, relationship or statement
argument) into tokens.

    >>> [t.raw for t in split_definition('enum:"in progress",done default:done')]
    ['enum:"in progress",done', 'default:done']

Whitespace separates tokens except inside a quoted run (``"…"`` or
``'…'``).  Each token is then split on its *first* colon into a keyword and
a raw argument string; the argument keeps any further colons
(``foreign:users.id``, ``default:'12:00'``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from blueprintc.errors import ParsingError
from blueprintc.utils import split_list, strip_quotes

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.tokenizer")

_QUOTES: str = "\"'"


# ---------------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Token:
    """One shorthand unit: ``keyword`` or ``keyword:argument``."""

    raw: str
    keyword: str
    argument: Optional[str] = None

    @property
    def lowered(self) -> str:
        return self.keyword.lower()

    @property
    def has_argument(self) -> bool:
        return self.argument is not None

    def arguments(self, *, unquote: bool = False) -> List[str]:
        """Comma-split argument list; quoted runs are kept whole."""
        if not self.argument:
            return []
        items: List[str] = _split_outside_quotes(self.argument, ",")
        if unquote:
            return [strip_quotes(item.strip()) for item in items]
        return [item.strip() for item in items]

    @classmethod
    def from_raw(cls, raw: str) -> "Token":
        keyword, sep, argument = raw.partition(":")
        return cls(raw=raw, keyword=keyword, argument=argument if sep else None)


# ---------------------------------------------------------------------------
# Splitting
# ---------------------------------------------------------------------------


def _split_outside_quotes(text: str, separator: Optional[str]) -> List[str]:
    """
    Split *text* on *separator* (any whitespace run when ``None``) while
    leaving quoted runs intact.  Unbalanced quotes are reported by the caller.
    """
    parts: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None

    for char in text:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in _QUOTES:
            quote = char
            current.append(char)
            continue
        is_break: bool = char.isspace() if separator is None else char == separator
        if is_break:
            if separator is not None or current:
                parts.append("".join(current))
            current = []
            continue
        current.append(char)

    if current or (separator is not None and parts):
        parts.append("".join(current))
    return parts


def _has_unbalanced_quote(text: str) -> Optional[str]:
    quote: Optional[str] = None
    for char in text:
        if quote is None and char in _QUOTES:
            quote = char
        elif char == quote:
            quote = None
    return quote


def split_definition(definition: str, *, owner: Optional[str] = None) -> List[Token]:
    """
    Tokenize a shorthand *definition*.

    Raises:
        ParsingError: ``invalid_shorthand`` when a quote is never closed.
    """
    text: str = definition.strip()
    if not text:
        return []

    dangling: Optional[str] = _has_unbalanced_quote(text)
    if dangling is not None:
        start: int = text.index(dangling)
        raise ParsingError.invalid_shorthand(
            definition, text[start:], f"unterminated {dangling} quote", owner
        )

    tokens: List[Token] = [Token.from_raw(raw) for raw in _split_outside_quotes(text, None)]
    logger.debug("Tokenized %r into %d token(s).", definition, len(tokens))
    return tokens


def split_references(value: str) -> List[str]:
    """Split a comma separated list of relationship references."""
    return [strip_quotes(item.strip()) for item in split_list(value) if item.strip()]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Token",
    "split_definition",
    "split_references",
]

logger.debug("blueprintc.tokenizer loaded — %d public symbols.", len(__all__))
