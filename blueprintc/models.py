# File: blueprintc/models.py
"""
Blueprintc - Core Data Models
===============================
Pydantic V2 models for the intermediate representation every stage shares:

    draft text → RawEntity → Entity / ActionEntity → ModelRegistry → emitters
                                                          ↓
                                                  GenerationManifest

Entities and the registry are frozen: the analyzer builds them once per run
and downstream stages (validator, emitters) only read them.

``CompilationOptions`` is the single configuration object threaded through
the analyzer, validator, emitters and orchestrator.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    computed_field,
    field_validator,
)

from blueprintc.errors import GenerationError, ValidationError
from blueprintc.statements import Statement
from blueprintc.utils import (
    class_basename,
    to_model_name,
    to_plural,
    to_singular,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.models")

_FROZEN_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    populate_by_name=True,
    use_enum_values=True,
)

# Characters that force a shorthand value into quotes.
_SPECIAL_CHARS: str = ",:\"'"

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RelationshipKind(str, Enum):
    """The fixed relationship vocabulary."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO_MANY = "belongsToMany"
    MORPH_ONE = "morphOne"
    MORPH_MANY = "morphMany"
    MORPH_TO = "morphTo"
    MORPH_TO_MANY = "morphToMany"
    MORPHED_BY_MANY = "morphedByMany"


class ManifestAction(str, Enum):
    """Per-file outcome recorded in the manifest."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    DELETED = "deleted"


# ---------------------------------------------------------------------------
# Column
# ---------------------------------------------------------------------------

Modifier = Union[str, Dict[str, str]]


class Column(BaseModel):
    """
    One column of an entity.

    ``modifiers`` keep declaration order; a modifier is either a bare name
    (``"nullable"``) or a single-entry mapping (``{"default": "0"}``).
    """

    model_config = _FROZEN_CONFIG

    name: str
    data_type: str = "string"
    attributes: List[Union[int, str]] = Field(default_factory=list)
    modifiers: List[Modifier] = Field(default_factory=list)

    def modifier_names(self) -> List[str]:
        return [m if isinstance(m, str) else next(iter(m)) for m in self.modifiers]

    def has_modifier(self, name: str) -> bool:
        return name in self.modifier_names()

    def modifier_value(self, name: str) -> Optional[str]:
        """Value of ``name:value``; ``None`` for bare or absent modifiers."""
        for modifier in self.modifiers:
            if isinstance(modifier, dict) and name in modifier:
                return modifier[name]
        return None

    @property
    def is_nullable(self) -> bool:
        return self.has_modifier("nullable")

    @property
    def is_foreign_key(self) -> bool:
        return self.has_modifier("foreign")

    @property
    def is_reference(self) -> bool:
        """Identity-reference column: ``id`` typed (other than the key) or ``uuid`` ending in ``_id``."""
        return (self.name != "id" and self.data_type == "id") or (
            self.data_type == "uuid" and self.name.endswith("_id")
        )

    def to_definition(self) -> str:
        """
        Canonical shorthand for this column.

        Parsing the result yields an equal ``Column``.
        """
        parts: List[str] = []
        head: str = self.data_type
        if self.attributes:
            head += ":" + ",".join(_quote(str(a)) for a in self.attributes)
        parts.append(head)
        for modifier in self.modifiers:
            if isinstance(modifier, str):
                parts.append(modifier)
            else:
                key, value = next(iter(modifier.items()))
                parts.append(f"{key}:{_quote(value)}")
        return " ".join(parts)


def _quote(value: str) -> str:
    """Wrap *value* in quotes when the tokenizer would otherwise split or misread it."""
    if not any(ch.isspace() or ch in _SPECIAL_CHARS for ch in value):
        return value
    quote: str = "'" if '"' in value else '"'
    return f"{quote}{value}{quote}"


# ---------------------------------------------------------------------------
# Relationship
# ---------------------------------------------------------------------------


class Relationship(BaseModel):
    """
    A typed link to another entity.

    The surface form is ``Target[.key][:alias]``; ``morphTo`` carries the
    morph name in ``target``.  ``inferred`` marks relationships synthesised
    from foreign-key columns rather than declared by the author.
    """

    model_config = _FROZEN_CONFIG

    kind: RelationshipKind
    target: str
    alias: Optional[str] = None
    key: Optional[str] = None
    inferred: bool = False

    @field_validator("target")
    @classmethod
    def _target_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("relationship target must not be empty")
        return value.strip()

    @classmethod
    def from_reference(
        cls, kind: Union[str, RelationshipKind], reference: str, *, inferred: bool = False
    ) -> "Relationship":
        """Parse ``Target[.key][:alias]``."""
        left, _, alias = reference.strip().partition(":")
        target, _, key = left.partition(".")
        return cls(
            kind=kind,
            target=target,
            alias=alias or None,
            key=key or None,
            inferred=inferred,
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def reference(self) -> str:
        text: str = self.target
        if self.key:
            text += f".{self.key}"
        if self.alias:
            text += f":{self.alias}"
        return text

    @property
    def foreign_key_column(self) -> str:
        """Column that stores this link on the owning side (``author_id``, ``user_id``)."""
        name: str = self.alias or class_basename(self.target)
        if name.endswith("_id"):
            return name
        return to_snake_case(name) + "_id"

    @property
    def has_entity_target(self) -> bool:
        return self.kind != RelationshipKind.MORPH_TO


# ---------------------------------------------------------------------------
# Index / Policy
# ---------------------------------------------------------------------------


class Index(BaseModel):
    model_config = _FROZEN_CONFIG

    type: str
    columns: List[str]


class Policy(BaseModel):
    """Authorization policy declared through an action entity's ``meta.policies``."""

    model_config = _FROZEN_CONFIG

    name: str
    methods: List[str]
    authorize_resource: bool = False


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


class Entity(BaseModel):
    """A normalized data entity (model) produced by the semantic analyzer."""

    model_config = _FROZEN_CONFIG

    name: str
    columns: Dict[str, Column] = Field(default_factory=dict)
    relationships: Dict[str, List[Relationship]] = Field(default_factory=dict)
    indexes: List[Index] = Field(default_factory=list)
    traits: List[str] = Field(default_factory=list)
    uses_identity: bool = True
    uses_timestamps: bool = True
    timestamps_tz: bool = False
    uses_soft_delete: bool = False
    soft_delete_tz: bool = False
    is_pivot: bool = False
    table: Optional[str] = Field(default=None, description="Table name override.")
    connection: Optional[str] = None

    # -- Derived names -------------------------------------------------------

    @computed_field  # type: ignore[prop-decorator]
    @property
    def class_name(self) -> str:
        return class_basename(self.name)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def table_name(self) -> str:
        if self.table:
            return self.table
        base: str = to_snake_case(self.class_name)
        return base if self.is_pivot else to_plural(base)

    # -- Lookups ---------------------------------------------------------------

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def column(self, name: str) -> Optional[Column]:
        return self.columns.get(name)

    def relationships_of(self, kind: Union[str, RelationshipKind]) -> List[Relationship]:
        key: str = kind.value if isinstance(kind, RelationshipKind) else kind
        return list(self.relationships.get(key, []))

    def all_relationships(self) -> List[Relationship]:
        return [rel for rels in self.relationships.values() for rel in rels]

    @property
    def belongs_to(self) -> List[Relationship]:
        return self.relationships_of(RelationshipKind.BELONGS_TO)

    @property
    def primary_key_type(self) -> Optional[str]:
        key: Optional[Column] = self.columns.get("id")
        if not self.uses_identity or key is None:
            return None
        return key.data_type

    # -- Snapshot ----------------------------------------------------------------

    def to_definition(self) -> Dict[str, Any]:
        """
        Canonical draft definition of this entity.

        Stored in the manifest and re-analysed as a cached entity on the next
        run; analysing it reproduces an equal ``Entity``.
        """
        definition: Dict[str, Any] = {}
        if not self.uses_identity:
            definition["id"] = False
        if not self.uses_timestamps:
            definition["timestamps"] = False
        elif self.timestamps_tz:
            definition["timestampsTz"] = True
        if self.uses_soft_delete:
            definition["softDeletesTz" if self.soft_delete_tz else "softDeletes"] = True
        definition["columns"] = {
            name: column.to_definition() for name, column in self.columns.items()
        }
        declared: Dict[str, str] = {}
        for kind, rels in self.relationships.items():
            references: List[str] = [r.reference for r in rels if not r.inferred]
            if references:
                declared[kind] = ", ".join(references)
        if declared:
            definition["relationships"] = declared
        if self.indexes:
            definition["indexes"] = [{idx.type: ", ".join(idx.columns)} for idx in self.indexes]
        if self.traits:
            definition["traits"] = list(self.traits)
        meta: Dict[str, Any] = {}
        if self.table:
            meta["table"] = self.table
        if self.connection:
            meta["connection"] = self.connection
        if self.is_pivot:
            meta["pivot"] = True
        if meta:
            definition["meta"] = meta
        return definition


# ---------------------------------------------------------------------------
# ActionEntity
# ---------------------------------------------------------------------------


class ActionEntity(BaseModel):
    """A normalized behaviour definition (controller) with ordered methods."""

    model_config = _FROZEN_CONFIG

    name: str
    methods: Dict[str, List[Statement]] = Field(default_factory=dict)
    is_api_resource: bool = False
    parent: Optional[str] = None
    policy: Optional[Policy] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def prefix(self) -> str:
        base: str = class_basename(self.name)
        if base.endswith("Controller") and base != "Controller":
            return base[: -len("Controller")]
        return base

    @computed_field  # type: ignore[prop-decorator]
    @property
    def model_name(self) -> str:
        return to_singular(self.prefix)

    def statements(self, method: str) -> List[Any]:
        return list(self.methods.get(method, []))


# ---------------------------------------------------------------------------
# ModelRegistry (Tree)
# ---------------------------------------------------------------------------


class ModelRegistry(BaseModel):
    """
    Everything analysis produced for one run, read-only to emitters.

    ``cached_entities`` holds entities known from the previous run's
    manifest, so emitters can resolve references to models the current
    draft does not redefine.
    """

    model_config = _FROZEN_CONFIG

    entities: Dict[str, Entity] = Field(default_factory=dict)
    action_entities: Dict[str, ActionEntity] = Field(default_factory=dict)
    auxiliary: Dict[str, List[Any]] = Field(default_factory=dict)
    cached_entities: Dict[str, Entity] = Field(default_factory=dict)

    @property
    def seeders(self) -> List[str]:
        return list(self.auxiliary.get("seeders", []))

    @property
    def policies(self) -> List[Policy]:
        return list(self.auxiliary.get("policies", []))

    def known_entities(self) -> Dict[str, Entity]:
        """Current entities plus cached ones not redefined in this run."""
        merged: Dict[str, Entity] = dict(self.cached_entities)
        merged.update(self.entities)
        return merged

    def resolve_entity(self, reference: str) -> Optional[Entity]:
        """
        Find an entity by exact name, by separator-normalised name, or by
        unambiguous final segment (``App\\Models\\User`` -> ``User``).
        """
        known: Dict[str, Entity] = self.known_entities()
        if reference in known:
            return known[reference]

        normalised: str = reference.replace("\\", "/")
        for name, entity in known.items():
            if name.replace("\\", "/") == normalised:
                return entity

        basename: str = class_basename(reference)
        matches: List[Entity] = [
            entity for entity in known.values() if entity.class_name == basename
        ]
        if len(matches) == 1:
            return matches[0]
        return None

    def model_for_context(self, context: str, strict: bool = False) -> Optional[Entity]:
        """
        Resolve the entity an emitter is working on (``post`` -> ``Post``).

        Raises:
            GenerationError: with ``strict=True`` when nothing matches.
        """
        for candidate in (context, to_model_name(context), to_model_name(to_singular(context))):
            entity: Optional[Entity] = self.resolve_entity(candidate)
            if entity is not None:
                return entity
        if strict:
            raise GenerationError.model_not_found(context, context)
        return None

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Canonical definitions of every known entity, for the manifest."""
        return {name: entity.to_definition() for name, entity in self.known_entities().items()}


# ---------------------------------------------------------------------------
# GenerationManifest
# ---------------------------------------------------------------------------


class GenerationManifest(BaseModel):
    """
    Persisted result of one run: ``{action: [paths]}`` plus the entity
    snapshot used as the next run's cache.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    actions: Dict[str, List[str]] = Field(default_factory=dict)
    models: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def paths(self, action: Union[str, ManifestAction]) -> List[str]:
        key: str = action.value if isinstance(action, ManifestAction) else action
        return list(self.actions.get(key, []))

    def by_path(self) -> Dict[str, str]:
        """``{path: action}``; a later action for the same path wins."""
        mapping: Dict[str, str] = {}
        for action, paths in self.actions.items():
            for path in paths:
                mapping[path] = action
        return mapping

    @property
    def written_paths(self) -> List[str]:
        return self.paths(ManifestAction.CREATED) + self.paths(ManifestAction.UPDATED)

    def to_document(self) -> Dict[str, Any]:
        """Flat mapping persisted to disk (actions at top level, then ``models``)."""
        document: Dict[str, Any] = {k: list(v) for k, v in self.actions.items() if v}
        if self.models:
            document["models"] = self.models
        return document

    @classmethod
    def from_document(cls, document: Optional[Mapping[str, Any]]) -> "GenerationManifest":
        document = document or {}
        actions: Dict[str, List[str]] = {}
        for key, value in document.items():
            if key == "models":
                continue
            if isinstance(value, list):
                actions[str(key)] = [str(v) for v in value]
            elif isinstance(value, str):
                actions[str(key)] = [value]
        models: Any = document.get("models") or {}
        return cls(actions=actions, models=dict(models))


# ---------------------------------------------------------------------------
# CompilationOptions
# ---------------------------------------------------------------------------


class CompilationOptions(BaseModel):
    """Run-wide settings passed explicitly to every stage."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, frozen=True)

    manifest_path: str = Field(default=".blueprint", min_length=1)
    output_root: str = Field(default="app", min_length=1)
    models_package: str = Field(default="app.models", pattern=r"^[A-Za-z_][A-Za-z0-9_.]*$")
    schemas_package: str = Field(default="app.schemas", pattern=r"^[A-Za-z_][A-Za-z0-9_.]*$")
    routers_package: str = Field(default="app.routers", pattern=r"^[A-Za-z_][A-Za-z0-9_.]*$")
    use_constraints: bool = False
    on_delete: Literal["cascade", "restrict", "null", "no_action"] = "cascade"
    plural_routes: bool = True
    fail_on_warnings: bool = False
    prune_stale: bool = False
    cycle_edges: Literal["all", "belongsTo"] = "all"
    template_paths: List[str] = Field(default_factory=list)
    relationship_aliases: Dict[str, RelationshipKind] = Field(default_factory=dict)

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> "CompilationOptions":
        """
        Return a copy with *overrides* applied and validated.

        Raises:
            ValidationError: ``invalid_configuration`` for unknown keys or bad values.
        """
        if not overrides:
            return self
        data: Dict[str, Any] = self.model_dump()
        data.update(dict(overrides))
        try:
            return CompilationOptions.model_validate(data)
        except PydanticValidationError as exc:
            first: Dict[str, Any] = exc.errors()[0]
            key: str = ".".join(str(part) for part in first.get("loc", ())) or "settings"
            value: Any = overrides.get(key.split(".")[0])
            raise ValidationError.invalid_configuration(key, value, first.get("msg", str(exc))) from exc


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RelationshipKind",
    "ManifestAction",
    "Modifier",
    "Column",
    "Relationship",
    "Index",
    "Policy",
    "Entity",
    "ActionEntity",
    "ModelRegistry",
    "GenerationManifest",
    "CompilationOptions",
]

logger.debug("blueprintc.models loaded — %d public symbols.", len(__all__))
