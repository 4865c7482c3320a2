# File: blueprintc/analyzer.py
"""
Blueprintc - Semantic Analyzer
================================
Turns the raw sections of a draft into the immutable ``ModelRegistry``.

Each model goes through two phases:

1. **Raw** — ``build_raw_entity`` reads the model mapping into a frozen
   ``RawEntity`` (declared columns in order, declared relationships, flags).
2. **Inference** — an ``InferenceContext`` is seeded from the raw entity and
   the four passes run over it:

   * identity defaulting       (``id`` column unless disabled)
   * relationship → column     (``belongsTo User`` adds ``user_id``)
   * column → relationship     (``user_id: id`` adds ``belongsTo User``)
   * alias resolution          (``User:author`` types ``author_id`` as a ``User`` reference)

   Every pass is idempotent, and running them in any order gives the same
   entity.  The context is then frozen into an ``Entity``.

Controllers, seeders and policies are collected alongside, and entities
from the previous run's manifest become ``cached_entities``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from blueprintc.errors import BlueprintError, ValidationError
from blueprintc.loader import MODEL_KEYS, DraftDocument
from blueprintc.models import (
    ActionEntity,
    Column,
    CompilationOptions,
    Entity,
    Index,
    ModelRegistry,
    Policy,
    Relationship,
    RelationshipKind,
)
from blueprintc.parser import (
    parse_action_entity,
    parse_column_entry,
    parse_relationships,
    resolve_relationship_kind,
)
from blueprintc.utils import class_basename, split_list, to_model_name, to_singular, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.analyzer")

ANALYSIS_FAILURE_CODE: int = 4001

_BELONGS_TO: str = RelationshipKind.BELONGS_TO.value


# ---------------------------------------------------------------------------
# Phase 1: raw entity
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawEntity:
    """A model exactly as declared, before any inference."""

    name: str
    columns: Tuple[Column, ...] = ()
    relationships: Tuple[Relationship, ...] = ()
    indexes: Tuple[Index, ...] = ()
    traits: Tuple[str, ...] = ()
    uses_identity: bool = True
    uses_timestamps: bool = True
    timestamps_tz: bool = False
    uses_soft_delete: bool = False
    soft_delete_tz: bool = False
    is_pivot: bool = False
    table: Optional[str] = None
    connection: Optional[str] = None


# ---------------------------------------------------------------------------
# Phase 2: inference
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class InferenceContext:
    """Working copy of one entity threaded through the inference passes."""

    raw: RawEntity
    columns: Dict[str, Column] = field(default_factory=dict)
    relationships: Dict[str, List[Relationship]] = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)

    @classmethod
    def seed(cls, raw: RawEntity) -> "InferenceContext":
        context: InferenceContext = cls(raw=raw)
        for column in raw.columns:
            context.columns[column.name] = column
        for relationship in raw.relationships:
            context.relationships.setdefault(relationship.kind, []).append(relationship)
        return context

    @property
    def declared_belongs_to(self) -> List[Relationship]:
        return [r for r in self.relationships.get(_BELONGS_TO, []) if not r.inferred]

    def belongs_to_columns(self) -> List[str]:
        return [r.foreign_key_column for r in self.relationships.get(_BELONGS_TO, [])]

    def note(self, message: str, *args: Any) -> None:
        text: str = message % args if args else message
        self.notes.append(text)
        logger.debug("[%s] %s", self.raw.name, text)

    def to_entity(self) -> Entity:
        raw: RawEntity = self.raw
        ordered: Dict[str, List[Relationship]] = {}
        for kind, relationships in self.relationships.items():
            declared: List[Relationship] = [r for r in relationships if not r.inferred]
            inferred: List[Relationship] = [r for r in relationships if r.inferred]
            if declared or inferred:
                ordered[kind] = declared + inferred
        return Entity(
            name=raw.name,
            columns=dict(self.columns),
            relationships=ordered,
            indexes=list(raw.indexes),
            traits=list(raw.traits),
            uses_identity=raw.uses_identity,
            uses_timestamps=raw.uses_timestamps,
            timestamps_tz=raw.timestamps_tz,
            uses_soft_delete=raw.uses_soft_delete,
            soft_delete_tz=raw.soft_delete_tz,
            is_pivot=raw.is_pivot,
            table=raw.table,
            connection=raw.connection,
        )


def infer_identity(context: InferenceContext) -> None:
    """Add an ``id`` column of the identity type unless present or disabled."""
    if not context.raw.uses_identity or "id" in context.columns:
        return
    context.columns = {"id": Column(name="id", data_type="id"), **context.columns}
    context.note("added identity column 'id'")


def infer_columns_from_relationships(context: InferenceContext) -> None:
    """Every declared ``belongsTo`` gets an identity-reference column."""
    for relationship in context.declared_belongs_to:
        name: str = relationship.foreign_key_column
        attributes: List[Union[int, str]] = [relationship.target] if relationship.alias else []
        existing: Optional[Column] = context.columns.get(name)

        if existing is None:
            context.columns[name] = Column(name=name, data_type="id", attributes=attributes)
            context.note("added column '%s' for belongsTo %s", name, relationship.reference)
            continue

        if existing.is_reference or existing.is_foreign_key:
            continue

        context.columns[name] = existing.model_copy(
            update={
                "data_type": "id",
                "attributes": [relationship.target],
                "modifiers": [m for m in existing.modifiers if m != "unsigned"],
            }
        )
        context.note("retyped column '%s' as a %s reference", name, relationship.target)


def _relationship_for_column(column: Column) -> Relationship:
    stem: str = column.name[:-3] if column.name.endswith("_id") else column.name
    key: Optional[str] = None

    foreign: Optional[str] = column.modifier_value("foreign")
    if foreign:
        table, _, key_name = foreign.partition(".")
        target: str = to_model_name(to_singular(table))
        key = key_name if key_name and key_name != "id" else None
    elif column.attributes and column.data_type == "id":
        target = str(column.attributes[0])
    else:
        target = to_model_name(stem)

    default_stem: str = to_snake_case(class_basename(target))
    alias: Optional[str] = stem if to_snake_case(stem) != default_stem else None
    return Relationship(kind=_BELONGS_TO, target=target, alias=alias, key=key, inferred=True)


def infer_relationships_from_columns(context: InferenceContext) -> None:
    """
    Foreign-key shaped columns get a ``belongsTo``.

    Deduplication compares the foreign-key column name, so ``User:author``
    and an ``author_id`` column are recognised as the same link.
    """
    for column in list(context.columns.values()):
        if not (column.is_reference or column.is_foreign_key):
            continue
        relationship: Relationship = _relationship_for_column(column)
        if relationship.foreign_key_column in context.belongs_to_columns():
            continue
        context.relationships.setdefault(_BELONGS_TO, []).append(relationship)
        context.note("inferred belongsTo %s from column '%s'", relationship.reference, column.name)


def resolve_aliases(context: InferenceContext) -> None:
    """
    Aliased ``belongsTo`` columns reference the real target; an alias that
    only repeats the target's default name is dropped.
    """
    resolved: List[Relationship] = []
    for relationship in context.relationships.get(_BELONGS_TO, []):
        if relationship.alias:
            alias_stem: str = relationship.alias[:-3] if relationship.alias.endswith("_id") else relationship.alias
            if to_snake_case(alias_stem) == to_snake_case(class_basename(relationship.target)):
                relationship = relationship.model_copy(update={"alias": None})
                context.note("dropped redundant alias on belongsTo %s", relationship.target)

        column: Optional[Column] = context.columns.get(relationship.foreign_key_column)
        if (
            relationship.alias
            and column is not None
            and column.data_type == "id"
            and not column.attributes
            and not column.is_foreign_key
        ):
            context.columns[column.name] = column.model_copy(
                update={"attributes": [relationship.target]}
            )
            context.note("column '%s' references %s", column.name, relationship.target)
        resolved.append(relationship)

    if resolved:
        context.relationships[_BELONGS_TO] = resolved


INFERENCE_PASSES: Tuple[Callable[[InferenceContext], None], ...] = (
    infer_identity,
    infer_columns_from_relationships,
    infer_relationships_from_columns,
    resolve_aliases,
)


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class SemanticAnalyzer:
    """
    Builds normalized entities and the registry for one compilation run.

    Args:
        options: Run settings; ``relationship_aliases`` extends the
            relationship keyword table.
    """

    def __init__(self, options: Optional[CompilationOptions] = None) -> None:
        self.options: CompilationOptions = options or CompilationOptions()

    # -- Raw phase ---------------------------------------------------------------

    def build_raw_entity(self, name: str, definition: Optional[Mapping[str, Any]]) -> RawEntity:
        """Read one model mapping into a ``RawEntity``."""
        definition = definition or {}
        if not isinstance(definition, Mapping):
            raise ValidationError.invalid_model_format(name)

        aliases: Mapping[str, Any] = self.options.relationship_aliases
        flags: Dict[str, Any] = {key.lower(): value for key, value in definition.items() if isinstance(key, str)}

        entries: Dict[str, Any] = {}
        identity: Any = flags.get("id")
        uses_identity: bool = identity is not False
        if isinstance(identity, str):
            entries["id"] = identity

        explicit: Any = definition.get("columns") or {}
        if not isinstance(explicit, Mapping):
            raise ValidationError.invalid_model_format(name)
        entries.update({str(k): v for k, v in explicit.items()})
        for key, value in definition.items():
            if str(key).lower() in MODEL_KEYS or str(key) in entries:
                continue
            entries[str(key)] = value

        columns: List[Column] = []
        relationships: List[Relationship] = []

        for key, value in entries.items():
            kind: Optional[str] = resolve_relationship_kind(key, aliases)
            if kind is not None:
                relationships.extend(
                    parse_relationships(kind, value, owner=name, extra_aliases=aliases)
                )
                continue
            if value is not None and not isinstance(value, (str, int, float)):
                raise ValidationError.invalid_column_definition(
                    key, name, "a column definition must be a shorthand string"
                )
            parsed = parse_column_entry(key, value, owner=name, extra_aliases=aliases)
            if isinstance(parsed, Relationship):
                relationships.append(parsed)
            else:
                columns.append(parsed)

        declared: Any = definition.get("relationships") or {}
        if not isinstance(declared, Mapping):
            raise ValidationError.invalid_relationship(
                "relationships", name, "the relationships key must map kinds to model lists"
            )
        for kind_name, value in declared.items():
            relationships.extend(
                parse_relationships(str(kind_name), value, owner=name, extra_aliases=aliases)
            )

        meta: Any = definition.get("meta") or {}
        if not isinstance(meta, Mapping):
            meta = {}

        timestamps: Any = flags.get("timestamps")
        return RawEntity(
            name=name,
            columns=tuple(columns),
            relationships=tuple(relationships),
            indexes=tuple(self._indexes(definition.get("indexes"))),
            traits=tuple(self._traits(definition.get("traits"))),
            uses_identity=uses_identity,
            uses_timestamps=timestamps is not False,
            timestamps_tz=timestamps is not False and bool(flags.get("timestampstz")),
            uses_soft_delete=bool(flags.get("softdeletes") or flags.get("softdeletestz")),
            soft_delete_tz=bool(flags.get("softdeletestz")),
            is_pivot=bool(meta.get("pivot")),
            table=meta.get("table"),
            connection=meta.get("connection"),
        )

    @staticmethod
    def _indexes(value: Any) -> List[Index]:
        if not value:
            return []
        items: List[Any] = list(value) if isinstance(value, (list, tuple)) else [value]
        indexes: List[Index] = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            for index_type, columns in item.items():
                names: List[str] = (
                    [str(c).strip() for c in columns]
                    if isinstance(columns, (list, tuple))
                    else split_list(str(columns))
                )
                indexes.append(Index(type=str(index_type), columns=names))
        return indexes

    @staticmethod
    def _traits(value: Any) -> List[str]:
        if not value:
            return []
        if isinstance(value, str):
            return [trait for trait in value.split() if trait]
        return [str(trait).strip() for trait in value if str(trait).strip()]

    # -- Inference phase ---------------------------------------------------------

    def analyze_entity(self, raw: RawEntity) -> Entity:
        """Run every inference pass over *raw* and freeze the result."""
        context: InferenceContext = InferenceContext.seed(raw)
        for inference_pass in INFERENCE_PASSES:
            inference_pass(context)
        return context.to_entity()

    def build_entity(self, name: str, definition: Optional[Mapping[str, Any]]) -> Entity:
        return self.analyze_entity(self.build_raw_entity(name, definition))

    # -- Registry ------------------------------------------------------------------

    def analyze(
        self,
        document: Union[DraftDocument, Mapping[str, Any]],
        cache: Optional[Mapping[str, Any]] = None,
    ) -> ModelRegistry:
        """
        Build the ``ModelRegistry`` for *document*.

        *cache* is the ``models`` snapshot of the previous manifest; entries
        the document redefines are not cached.

        Raises:
            BlueprintError: parsing/validation failures, unchanged.
            ValidationError: code 4001 wrapping any other failure.
        """
        try:
            return self._analyze(document, cache or {})
        except BlueprintError:
            raise
        except Exception as exc:
            raise ValidationError(
                f"Failed to analyze blueprint structure: {exc}",
                ANALYSIS_FAILURE_CODE,
                context={"exception": type(exc).__name__},
                suggestions=[
                    "Check the model and controller definitions for unexpected values",
                    "Run with -vv to see the analysis steps",
                ],
            ) from exc

    def _analyze(self, document: Union[DraftDocument, Mapping[str, Any]], cache: Mapping[str, Any]) -> ModelRegistry:
        tokens: Mapping[str, Any] = (
            document.to_tokens() if isinstance(document, DraftDocument) else document
        )

        entities: Dict[str, Entity] = {
            str(name): self.build_entity(str(name), definition)
            for name, definition in (tokens.get("models") or {}).items()
        }

        cached: Dict[str, Entity] = {
            str(name): self.build_entity(str(name), definition)
            for name, definition in cache.items()
            if str(name) not in entities
        }

        action_entities: Dict[str, ActionEntity] = {}
        policies: List[Policy] = []
        file_path: Optional[str] = document.file_path if isinstance(document, DraftDocument) else None
        for name, definition in (tokens.get("controllers") or {}).items():
            action, policy = parse_action_entity(str(name), definition, file_path=file_path)
            action_entities[str(name)] = action
            if policy is not None:
                policies.append(policy)

        auxiliary: Dict[str, List[Any]] = {
            "seeders": list(tokens.get("seeders") or []),
            "policies": policies,
            "components": list(tokens.get("components") or []),
        }

        registry: ModelRegistry = ModelRegistry(
            entities=entities,
            action_entities=action_entities,
            auxiliary=auxiliary,
            cached_entities=cached,
        )
        logger.info(
            "Analyzed %d entit(ies), %d controller(s), %d cached entit(ies).",
            len(entities),
            len(action_entities),
            len(cached),
        )
        return registry


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ANALYSIS_FAILURE_CODE",
    "RawEntity",
    "InferenceContext",
    "INFERENCE_PASSES",
    "infer_identity",
    "infer_columns_from_relationships",
    "infer_relationships_from_columns",
    "resolve_aliases",
    "SemanticAnalyzer",
]

logger.debug("blueprintc.analyzer loaded — %d public symbols.", len(__all__))
