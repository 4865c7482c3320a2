# File: blueprintc/parser.py
"""
Blueprintc - Definition Parser
================================
Turns tokenized shorthand into typed records:

* ``parse_column``        — ``"string:400 nullable default:'draft'"`` → ``Column``
* ``parse_relationships`` — ``"User, Tag:labels"`` under a kind → ``Relationship`` list
* ``parse_column_entry``  — a column key whose definition starts with a
  relationship keyword (``author: belongsTo User``) → ``Relationship``
* ``parse_action_entity`` — a controller mapping, including ``resource``
  expansion, ``invokable`` and ``meta`` → ``ActionEntity`` (+ ``Policy``)

Keywords are matched case-insensitively against three disjoint
vocabularies (``DATA_TYPES``, ``MODIFIERS``, ``RELATIONSHIPS``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from blueprintc.errors import ParsingError, ValidationError
from blueprintc.models import ActionEntity, Column, Policy, Relationship, RelationshipKind
from blueprintc.statements import parse_statements
from blueprintc.tokenizer import Token, split_definition, split_references
from blueprintc.utils import (
    class_basename,
    split_list,
    strip_quotes,
    to_camel_case,
    to_plural,
    to_singular,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.parser")

# ---------------------------------------------------------------------------
# Vocabularies (lower-cased keyword → canonical name)
# ---------------------------------------------------------------------------

DATA_TYPES: Dict[str, str] = {
    name.lower(): name
    for name in (
        "bigIncrements", "bigInteger", "binary", "boolean", "char", "date",
        "dateTime", "dateTimeTz", "decimal", "double", "enum", "float",
        "fullText", "geography", "geometry", "geometryCollection", "increments",
        "integer", "ipAddress", "json", "jsonb", "lineString", "longText",
        "macAddress", "mediumIncrements", "mediumInteger", "mediumText",
        "morphs", "uuidMorphs", "multiLineString", "multiPoint", "multiPolygon",
        "nullableMorphs", "nullableUuidMorphs", "nullableTimestamps", "point",
        "polygon", "rememberToken", "set", "smallIncrements", "smallInteger",
        "softDeletes", "softDeletesTz", "string", "text", "time", "timeTz",
        "timestamp", "timestampTz", "timestamps", "timestampsTz",
        "tinyIncrements", "tinyInteger", "unsignedBigInteger",
        "unsignedDecimal", "unsignedInteger", "unsignedMediumInteger",
        "unsignedSmallInteger", "unsignedTinyInteger", "ulid", "uuid", "year",
        "id",
    )
}
DATA_TYPES["int"] = "integer"
DATA_TYPES["bool"] = "boolean"

MODIFIERS: Dict[str, str] = {
    name.lower(): name
    for name in (
        "autoIncrement", "charset", "collation", "default", "nullable",
        "unsigned", "useCurrent", "useCurrentOnUpdate", "always", "unique",
        "index", "primary", "foreign", "onDelete", "onUpdate", "comment",
    )
}

RELATIONSHIPS: Dict[str, str] = {kind.value.lower(): kind.value for kind in RelationshipKind}

# Spellings accepted in drafts that are not the canonical camelCase keyword
RELATIONSHIP_ALIASES: Dict[str, str] = {
    "belongs_to": "belongsTo",
    "has_one": "hasOne",
    "has_many": "hasMany",
    "belongs_to_many": "belongsToMany",
    "many_to_many": "belongsToMany",
    "morph_one": "morphOne",
    "morph_many": "morphMany",
    "morph_to": "morphTo",
    "morph_to_many": "morphToMany",
    "morphed_by_many": "morphedByMany",
}

# Types whose attributes are free text rather than numbers
_TEXT_ATTRIBUTE_TYPES: frozenset = frozenset({"enum", "set", "id"})

# ---------------------------------------------------------------------------
# Controller resource templates
# ---------------------------------------------------------------------------

RESOURCE_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "index": {"query": "all:[plural]", "render": "[singular].index with:[plural]"},
    "create": {"render": "[singular].create"},
    "store": {
        "validate": "[singular]",
        "save": "[singular]",
        "flash": "[singular].id",
        "redirect": "[plural].index",
    },
    "show": {"render": "[singular].show with:[singular]"},
    "edit": {"render": "[singular].edit with:[singular]"},
    "update": {
        "validate": "[singular]",
        "update": "[singular]",
        "flash": "[singular].id",
        "redirect": "[plural].index",
    },
    "destroy": {"delete": "[singular]", "redirect": "[plural].index"},
    "api.index": {"query": "all:[plural]", "resource": "collection:[plural]"},
    "api.store": {"validate": "[singular]", "save": "[singular]", "resource": "[singular]"},
    "api.show": {"resource": "[singular]"},
    "api.update": {"validate": "[singular]", "update": "[singular]", "resource": "[singular]"},
    "api.destroy": {"delete": "[singular]", "respond": 204},
}

WEB_RESOURCE_METHODS: Tuple[str, ...] = (
    "index", "create", "store", "show", "edit", "update", "destroy",
)
API_RESOURCE_METHODS: Tuple[str, ...] = (
    "api.index", "api.store", "api.show", "api.update", "api.destroy",
)

POLICY_METHODS: Tuple[str, ...] = ("viewAny", "view", "create", "update", "delete")
RESOURCE_ABILITY_MAP: Dict[str, str] = {
    "index": "viewAny",
    "show": "view",
    "create": "create",
    "store": "create",
    "edit": "update",
    "update": "update",
    "destroy": "delete",
}


# ---------------------------------------------------------------------------
# Relationship kinds
# ---------------------------------------------------------------------------


def resolve_relationship_kind(
    keyword: str, extra_aliases: Optional[Mapping[str, Any]] = None
) -> Optional[str]:
    """
    Canonical relationship kind for *keyword*, or ``None``.

    The built-in alias table and *extra_aliases* (from
    ``CompilationOptions.relationship_aliases``) are consulted before the
    vocabulary itself.
    """
    lowered: str = keyword.strip().lower()
    if extra_aliases:
        for alias, kind in extra_aliases.items():
            if alias.lower() == lowered:
                return kind.value if isinstance(kind, RelationshipKind) else str(kind)
    if lowered in RELATIONSHIP_ALIASES:
        return RELATIONSHIP_ALIASES[lowered]
    return RELATIONSHIPS.get(lowered)


def parse_relationships(
    kind: str,
    value: Any,
    *,
    owner: str,
    extra_aliases: Optional[Mapping[str, Any]] = None,
) -> List[Relationship]:
    """
    Parse ``kind: "Target, Other:alias"`` from a ``relationships`` section.

    Raises:
        ValidationError: ``invalid_relationship`` for an unknown kind or an
            empty reference list.
    """
    canonical: Optional[str] = resolve_relationship_kind(str(kind), extra_aliases)
    if canonical is None:
        raise ValidationError.invalid_relationship(
            str(kind), owner, f"unknown relationship kind '{kind}'"
        )

    if isinstance(value, (list, tuple)):
        references: List[str] = [strip_quotes(str(item).strip()) for item in value]
    else:
        references = split_references(str(value or ""))
    references = [ref for ref in references if ref]
    if not references:
        raise ValidationError.invalid_relationship(
            canonical, owner, "no related model given"
        )
    return [Relationship.from_reference(canonical, ref) for ref in references]


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def _coerce_attribute(value: str, data_type: str) -> Union[int, str]:
    if data_type not in _TEXT_ATTRIBUTE_TYPES and value.isdigit():
        return int(value)
    return value


def parse_column(name: str, definition: Any, *, owner: Optional[str] = None) -> Column:
    """
    Parse the shorthand *definition* of column *name*.

    * ``id`` / ``id:Target`` selects the identity-reference type
    * a data type keyword takes comma separated attributes
    * modifiers are bare (``nullable``) or valued (``default:0``)
    * several data types: the last one wins and a warning is logged
    * no data type: ``id`` when a ``foreign`` modifier is present, else ``string``

    Raises:
        ParsingError: ``unsupported_column_type`` for an unknown keyword in
            type position, ``invalid_shorthand`` for other unknown tokens.
    """
    text: str = _stringify(definition)
    tokens: List[Token] = split_definition(text, owner=owner)

    data_type: Optional[str] = None
    attributes: List[Union[int, str]] = []
    modifiers: List[Union[str, Dict[str, str]]] = []
    seen_types: List[str] = []

    for position, token in enumerate(tokens):
        lowered: str = token.lowered

        if lowered in DATA_TYPES:
            data_type = DATA_TYPES[lowered]
            seen_types.append(data_type)
            if data_type == "id":
                attributes = [strip_quotes(token.argument)] if token.argument else []
            else:
                attributes = [
                    _coerce_attribute(arg, data_type)
                    for arg in token.arguments(unquote=data_type in _TEXT_ATTRIBUTE_TYPES)
                    if arg != ""
                ]
            continue

        if lowered in MODIFIERS:
            canonical: str = MODIFIERS[lowered]
            if token.has_argument:
                modifiers.append({canonical: strip_quotes(token.argument or "")})
            else:
                modifiers.append(canonical)
            continue

        if position == 0:
            raise ParsingError.unsupported_column_type(token.keyword, owner or name)
        raise ParsingError.invalid_shorthand(
            text, token.raw, f"unknown keyword '{token.keyword}' for column '{name}'", owner
        )

    if len(seen_types) > 1:
        logger.warning(
            "Column '%s'%s declares several data types (%s); using '%s'.",
            name,
            f" on {owner}" if owner else "",
            ", ".join(seen_types),
            data_type,
        )

    if data_type is None:
        has_foreign: bool = any(
            m == "foreign" or (isinstance(m, dict) and "foreign" in m) for m in modifiers
        )
        data_type = "id" if has_foreign else "string"

    return Column(name=name, data_type=data_type, attributes=attributes, modifiers=modifiers)


def count_data_types(definition: Any) -> int:
    """Number of data type keywords in *definition* (used by advisory checks)."""
    return sum(
        1 for token in split_definition(_stringify(definition)) if token.lowered in DATA_TYPES
    )


def parse_column_entry(
    name: str,
    definition: Any,
    *,
    owner: str,
    extra_aliases: Optional[Mapping[str, Any]] = None,
) -> Union[Column, Relationship]:
    """
    Parse one entry of a model's column map.

    ``author: belongsTo User`` (or ``belongsTo:User``) declares a
    relationship named after the key; the key becomes the alias unless it
    is just the target's default name.
    """
    text: str = _stringify(definition)
    tokens: List[Token] = split_definition(text, owner=owner)
    if tokens:
        kind: Optional[str] = resolve_relationship_kind(tokens[0].keyword, extra_aliases)
        if kind is not None:
            return _relationship_from_column(name, text, kind, tokens, owner)
    return parse_column(name, text, owner=owner)


def _relationship_from_column(
    name: str, text: str, kind: str, tokens: List[Token], owner: str
) -> Relationship:
    target: Optional[str] = tokens[0].argument
    if not target and len(tokens) > 1:
        target = tokens[1].raw
    if not target:
        raise ValidationError.invalid_relationship(
            kind, owner, f"column '{name}' declares {kind} without a related model"
        )

    relationship: Relationship = Relationship.from_reference(kind, strip_quotes(target))
    if relationship.alias:
        return relationship

    default_name: str = to_snake_case(to_singular(class_basename(relationship.target)))
    key_name: str = name[:-3] if name.endswith("_id") else name
    if to_snake_case(key_name) == default_name:
        return relationship
    return relationship.model_copy(update={"alias": key_name})


def _stringify(definition: Any) -> str:
    if definition is None:
        return ""
    if isinstance(definition, bool):
        return "true" if definition else "false"
    if isinstance(definition, (list, tuple)):
        return " ".join(_stringify(item) for item in definition)
    return str(definition)


# ---------------------------------------------------------------------------
# Action entities (controllers)
# ---------------------------------------------------------------------------


def resource_methods(resource: str) -> List[str]:
    """Methods a ``resource:`` value expands to (``web``, ``api`` or a list)."""
    value: str = str(resource).strip()
    if value == "api":
        return list(API_RESOURCE_METHODS)
    if value in ("web", "true", "True"):
        return list(WEB_RESOURCE_METHODS)
    return [item.strip().lower() for item in value.split(",") if item.strip()]


def _controller_model_name(controller: str) -> str:
    base: str = class_basename(controller)
    if base.endswith("Controller") and base != "Controller":
        base = base[: -len("Controller")]
    return to_singular(base)


def _expand_resource(controller: str, methods: List[str]) -> Dict[str, Dict[str, Any]]:
    model: str = _controller_model_name(controller)
    singular: str = to_camel_case(model)
    plural: str = to_camel_case(to_plural(model))

    expanded: Dict[str, Dict[str, Any]] = {}
    for method, template in RESOURCE_TEMPLATES.items():
        if method not in methods:
            continue
        expanded[method.replace("api.", "")] = {
            verb: (
                argument.replace("[singular]", singular).replace("[plural]", plural)
                if isinstance(argument, str)
                else argument
            )
            for verb, argument in template.items()
        }
    return expanded


def _policy_for(controller: str, setting: Any, file_path: Optional[str]) -> Policy:
    prefix: str = class_basename(controller)
    if prefix.endswith("Controller") and prefix != "Controller":
        prefix = prefix[: -len("Controller")]

    if setting is True:
        return Policy(name=prefix, methods=list(POLICY_METHODS), authorize_resource=True)

    abilities: List[str] = []
    for method in split_list(str(setting)):
        ability: Optional[str] = RESOURCE_ABILITY_MAP.get(method)
        if ability is None:
            raise ParsingError.invalid_controller_definition(
                controller, f"unknown policy method '{method}'", file_path or ""
            )
        if ability not in abilities:
            abilities.append(ability)
    return Policy(name=prefix, methods=abilities, authorize_resource=False)


def parse_action_entity(
    name: str,
    definition: Any,
    *,
    file_path: Optional[str] = None,
) -> Tuple[ActionEntity, Optional[Policy]]:
    """
    Build an ``ActionEntity`` from a controller mapping.

    Resource methods are expanded first; explicitly written methods with
    the same name replace them.

    Raises:
        ParsingError: ``invalid_controller_definition`` for non-mapping bodies.
        ValidationError: ``invalid_method_statement`` for bad statements.
    """
    if isinstance(definition, str):
        definition = {"resource": "web" if definition == "resource" else definition}
    if definition is None:
        definition = {}
    if not isinstance(definition, Mapping):
        raise ParsingError.invalid_controller_definition(
            name, "controller body must be a mapping of methods", file_path or ""
        )

    body: Dict[str, Any] = dict(definition)
    methods: Dict[str, Any] = {}
    is_api_resource: bool = False
    parent: Optional[str] = None
    policy: Optional[Policy] = None

    if "resource" in body:
        requested: List[str] = resource_methods(body.pop("resource"))
        is_api_resource = bool(requested) and all(m.startswith("api.") for m in requested)
        methods.update(_expand_resource(name, requested))

    invokable: Any = body.pop("invokable", None)
    if invokable is True:
        methods["__invoke"] = {"render": to_camel_case(_controller_model_name(name))}
    elif isinstance(invokable, Mapping):
        methods["__invoke"] = dict(invokable)

    meta: Any = body.pop("meta", None)
    if isinstance(meta, Mapping):
        if "policies" in meta:
            policy = _policy_for(name, meta.get("policies", True), file_path)
        if meta.get("parent"):
            parent = str(meta["parent"])

    for method, statements in body.items():
        if statements is None:
            statements = {}
        if not isinstance(statements, Mapping):
            raise ParsingError.invalid_controller_definition(
                name,
                f"method '{method}' must be a mapping of statements",
                file_path or "",
            )
        methods[str(method)] = dict(statements)

    parsed: Dict[str, List[Any]] = {
        method: parse_statements(statements, method=method, controller=name)
        for method, statements in methods.items()
    }
    entity: ActionEntity = ActionEntity(
        name=name,
        methods=parsed,
        is_api_resource=is_api_resource,
        parent=parent,
        policy=policy,
    )
    logger.debug("Parsed controller '%s' with %d method(s).", name, len(parsed))
    return entity, policy


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DATA_TYPES",
    "MODIFIERS",
    "RELATIONSHIPS",
    "RELATIONSHIP_ALIASES",
    "RESOURCE_TEMPLATES",
    "POLICY_METHODS",
    "RESOURCE_ABILITY_MAP",
    "resolve_relationship_kind",
    "parse_relationships",
    "parse_column",
    "count_data_types",
    "parse_column_entry",
    "resource_methods",
    "parse_action_entity",
]

logger.debug("blueprintc.parser loaded — %d public symbols.", len(__all__))
