# File: blueprintc/statements.py
"""
Blueprintc - Controller Statements
====================================
A controller method body is an ordered mapping of ``verb: argument`` lines::

    store:
      validate: title, content
      save: post
      send: ReviewPost to:post.author with:post
      flash: post.title
      redirect: posts.index

Each line becomes one member of the closed ``Statement`` union below.
Verbs are looked up in ``_VERB_TABLE``; keys of the form ``fire-2``,
``dispatch-x``, ``send-*`` and ``notify-*`` fall back to the base verb
and keep the suffix as the statement's ``label``.  Any other verb is an
``invalid_method_statement`` validation failure.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated, Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from blueprintc.errors import ValidationError
from blueprintc.utils import split_list

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.statements")

_STATEMENT_CONFIG = ConfigDict(frozen=True, extra="forbid")

_WHITESPACE_RE: re.Pattern[str] = re.compile(r"[ \t]+")
_SEND_TO_RE: re.Pattern[str] = re.compile(r"\s+to:(\S+)")
_SEND_VIEW_RE: re.Pattern[str] = re.compile(r"\s+view:(\S+)")
_QUERY_ALL_RE: re.Pattern[str] = re.compile(r"^all:(\S+)$")
_QUERY_AGGREGATE_RE: re.Pattern[str] = re.compile(r"\b(count|exists)\b")
_WILDCARD_RE: re.Pattern[str] = re.compile(r"^(dispatch|fire|send|notify)-(.+)$")


# ---------------------------------------------------------------------------
# Statement variants
# ---------------------------------------------------------------------------


class _BaseStatement(BaseModel):
    model_config = _STATEMENT_CONFIG

    label: Optional[str] = Field(
        default=None, description="Suffix of a wildcard key such as 'fire-2'."
    )


class QueryStatement(_BaseStatement):
    kind: Literal["query"] = "query"
    operation: Literal["all", "get", "pluck", "count", "exists"]
    model: Optional[str] = None
    clauses: List[str] = Field(default_factory=list)

    def describe(self) -> str:
        target: str = self.model or "model"
        if self.clauses:
            return f"query {target} ({self.operation}): {' '.join(self.clauses)}"
        return f"query {target} ({self.operation})"


class EloquentStatement(_BaseStatement):
    kind: Literal["eloquent"] = "eloquent"
    operation: Literal["save", "delete", "find", "update"]
    reference: Optional[str] = None
    columns: List[str] = Field(default_factory=list)

    def describe(self) -> str:
        if self.columns:
            return f"{self.operation} columns {', '.join(self.columns)}"
        return f"{self.operation} {self.reference}"


class RenderStatement(_BaseStatement):
    kind: Literal["render"] = "render"
    view: str
    data: List[str] = Field(default_factory=list)
    engine: Literal["view", "inertia"] = "view"

    def describe(self) -> str:
        suffix: str = f" with {', '.join(self.data)}" if self.data else ""
        return f"render {self.engine} {self.view}{suffix}"


class RedirectStatement(_BaseStatement):
    kind: Literal["redirect"] = "redirect"
    route: str
    data: List[str] = Field(default_factory=list)

    def describe(self) -> str:
        suffix: str = f" with {', '.join(self.data)}" if self.data else ""
        return f"redirect to {self.route}{suffix}"


class RespondStatement(_BaseStatement):
    kind: Literal["respond"] = "respond"
    status: Optional[int] = None
    content: Optional[str] = None

    def describe(self) -> str:
        if self.status is not None:
            return f"respond with status {self.status}"
        return f"respond with {self.content}"


class SendStatement(_BaseStatement):
    """``send`` (mail or notification facade) and ``notify`` (notifiable model)."""

    kind: Literal["send"] = "send"
    mail: str
    to: Optional[str] = None
    data: List[str] = Field(default_factory=list)
    type: Literal["mail", "notification", "notification_with_model"] = "mail"
    view: Optional[str] = None

    def describe(self) -> str:
        target: str = f" to {self.to}" if self.to else ""
        return f"send {self.type} {self.mail}{target}"


class ValidateStatement(_BaseStatement):
    kind: Literal["validate"] = "validate"
    data: List[str] = Field(default_factory=list)

    def describe(self) -> str:
        return f"validate {', '.join(self.data)}"


class SessionStatement(_BaseStatement):
    kind: Literal["session"] = "session"
    operation: Literal["flash", "store"]
    reference: str

    def describe(self) -> str:
        return f"session {self.operation} {self.reference}"


class FireStatement(_BaseStatement):
    kind: Literal["fire"] = "fire"
    event: str
    data: List[str] = Field(default_factory=list)

    def describe(self) -> str:
        return f"fire event {self.event}"


class DispatchStatement(_BaseStatement):
    kind: Literal["dispatch"] = "dispatch"
    job: str
    data: List[str] = Field(default_factory=list)

    def describe(self) -> str:
        return f"dispatch job {self.job}"


class ResourceStatement(_BaseStatement):
    kind: Literal["resource"] = "resource"
    reference: str
    collection: bool = False
    paginate: bool = False

    def describe(self) -> str:
        shape: str = "paginated collection" if self.paginate else (
            "collection" if self.collection else "resource"
        )
        return f"return {shape} of {self.reference}"


Statement = Annotated[
    Union[
        QueryStatement,
        EloquentStatement,
        RenderStatement,
        RedirectStatement,
        RespondStatement,
        SendStatement,
        ValidateStatement,
        SessionStatement,
        FireStatement,
        DispatchStatement,
        ResourceStatement,
    ],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


class StatementSyntaxError(ValueError):
    """Raised by the per-verb parsers; converted to ``ValidationError`` by callers."""


def _extract_tokens(statement: str, limit: int) -> List[Optional[str]]:
    tokens: List[Optional[str]] = list(_WHITESPACE_RE.split(statement.strip(), maxsplit=limit - 1))
    return tokens + [None] * (limit - len(tokens))


def _parse_with(statement: str) -> Tuple[str, List[str]]:
    subject, with_clause = _extract_tokens(statement, 2)
    if not subject:
        raise StatementSyntaxError("missing argument")
    if with_clause is None:
        return subject, []
    if not with_clause.startswith("with:"):
        raise StatementSyntaxError(f"expected a 'with:' data suffix, got '{with_clause}'")
    return subject, split_list(with_clause[5:])


def _normalise_argument(argument: Any) -> str:
    if argument is None:
        return ""
    if isinstance(argument, bool):
        return "true" if argument else "false"
    if isinstance(argument, (list, tuple)):
        return ", ".join(_normalise_argument(item) for item in argument)
    return str(argument).strip()


# ---------------------------------------------------------------------------
# Per-verb parsers
# ---------------------------------------------------------------------------


def _query(verb: str, statement: str) -> QueryStatement:
    if statement == "all":
        return QueryStatement(operation="all")

    match = _QUERY_ALL_RE.match(statement)
    if match:
        return QueryStatement(operation="all", model=match.group(1))

    if "pluck:" in statement:
        return QueryStatement(operation="pluck", clauses=_WHITESPACE_RE.split(statement))

    match = _QUERY_AGGREGATE_RE.search(statement)
    if match:
        remainder: str = statement.replace(match.group(1), "", 1).strip()
        clauses: List[str] = _WHITESPACE_RE.split(remainder) if remainder else []
        return QueryStatement(operation=match.group(1), clauses=clauses)

    if not statement:
        raise StatementSyntaxError("query needs at least one clause")
    return QueryStatement(operation="get", clauses=_WHITESPACE_RE.split(statement))


def _eloquent(verb: str, statement: str) -> EloquentStatement:
    if not statement:
        raise StatementSyntaxError(f"{verb} needs a model reference")
    return EloquentStatement(operation=verb, reference=statement)


def _update(verb: str, statement: str) -> EloquentStatement:
    if "," not in statement:
        return _eloquent(verb, statement)
    return EloquentStatement(operation="update", columns=split_list(statement))


def _render(verb: str, statement: str) -> RenderStatement:
    view, data = _parse_with(statement)
    return RenderStatement(view=view, data=data, engine="inertia" if verb == "inertia" else "view")


def _redirect(verb: str, statement: str) -> RedirectStatement:
    route, data = _parse_with(statement)
    return RedirectStatement(route=route, data=data)


def _respond(verb: str, statement: str) -> RespondStatement:
    if statement.isdigit():
        return RespondStatement(status=int(statement))
    if not statement:
        raise StatementSyntaxError("respond needs a status code or a reference")
    return RespondStatement(content=statement)


def _send(verb: str, statement: str) -> SendStatement:
    to: Optional[str] = None
    view: Optional[str] = None

    match = _SEND_TO_RE.search(statement)
    if match:
        to = match.group(1)
        statement = statement.replace(match.group(0), "", 1)

    match = _SEND_VIEW_RE.search(statement)
    if match:
        view = match.group(1)
        statement = statement.replace(match.group(0), "", 1)

    mail, data = _parse_with(statement)
    kind: str = "notification" if mail.endswith("Notification") else "mail"
    return SendStatement(mail=mail, to=to, data=data, type=kind, view=view)


def _notify(verb: str, statement: str) -> SendStatement:
    model, notification, with_clause = _extract_tokens(statement, 3)
    if not model or not notification:
        raise StatementSyntaxError("notify needs a notifiable model and a notification")
    data: List[str] = []
    if with_clause:
        if not with_clause.startswith("with:"):
            raise StatementSyntaxError(f"expected a 'with:' data suffix, got '{with_clause}'")
        data = split_list(with_clause[5:])
    return SendStatement(mail=notification, to=model, data=data, type="notification_with_model")


def _validate(verb: str, statement: str) -> ValidateStatement:
    if not statement:
        raise StatementSyntaxError("validate needs at least one field or model")
    return ValidateStatement(data=split_list(statement))


def _session(verb: str, statement: str) -> SessionStatement:
    if not statement:
        raise StatementSyntaxError(f"{verb} needs a reference")
    return SessionStatement(operation=verb, reference=statement)


def _fire(verb: str, statement: str) -> FireStatement:
    event, data = _parse_with(statement)
    return FireStatement(event=event, data=data)


def _dispatch(verb: str, statement: str) -> DispatchStatement:
    job, data = _parse_with(statement)
    return DispatchStatement(job=job, data=data)


def _resource(verb: str, statement: str) -> ResourceStatement:
    if ":" not in statement:
        return ResourceStatement(reference=statement)
    wrapper, _, reference = statement.partition(":")
    return ResourceStatement(
        reference=reference, collection=True, paginate=wrapper == "paginate"
    )


_VERB_TABLE: Dict[str, Callable[[str, str], Any]] = {
    "dispatch": _dispatch,
    "fire": _fire,
    "flash": _session,
    "store": _session,
    "inertia": _render,
    "notify": _notify,
    "query": _query,
    "redirect": _redirect,
    "render": _render,
    "resource": _resource,
    "respond": _respond,
    "save": _eloquent,
    "delete": _eloquent,
    "find": _eloquent,
    "send": _send,
    "update": _update,
    "validate": _validate,
}

SUPPORTED_VERBS: Tuple[str, ...] = tuple(sorted(_VERB_TABLE))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_statement(verb: str, argument: Any):
    """
    Parse one ``verb: argument`` line into a ``Statement``.

    Raises:
        StatementSyntaxError: unknown verb or malformed argument.
    """
    label: Optional[str] = None
    handler = _VERB_TABLE.get(verb)
    if handler is None:
        match = _WILDCARD_RE.match(verb)
        if match is None:
            raise StatementSyntaxError(f"unknown statement verb '{verb}'")
        verb, label = match.group(1), match.group(2)
        handler = _VERB_TABLE[verb]

    statement = handler(verb, _normalise_argument(argument))
    if label is not None:
        statement = statement.model_copy(update={"label": label})
    return statement


def parse_statements(
    body: Mapping[str, Any],
    *,
    method: str,
    controller: str,
) -> List[Any]:
    """Parse a whole method body, preserving line order."""
    statements: List[Any] = []
    for verb, argument in body.items():
        try:
            statements.append(parse_statement(str(verb), argument))
        except StatementSyntaxError as exc:
            raise ValidationError.invalid_method_statement(
                method, controller, f"{verb}: {_normalise_argument(argument)}", str(exc)
            ) from exc
    logger.debug(
        "Parsed %d statement(s) for %s@%s.", len(statements), controller, method
    )
    return statements


__all__: List[str] = [
    "Statement",
    "QueryStatement",
    "EloquentStatement",
    "RenderStatement",
    "RedirectStatement",
    "RespondStatement",
    "SendStatement",
    "ValidateStatement",
    "SessionStatement",
    "FireStatement",
    "DispatchStatement",
    "ResourceStatement",
    "StatementSyntaxError",
    "SUPPORTED_VERBS",
    "parse_statement",
    "parse_statements",
]

logger.debug("blueprintc.statements loaded — %d public symbols.", len(__all__))
