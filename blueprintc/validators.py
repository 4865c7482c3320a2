# File: blueprintc/validators.py
"""
Blueprintc - Registry Validators
==================================
Whole-registry checks that run after analysis and before any emitter.

Two checks are fail-fast and raise a ``ValidationError``:

* ``check_circular_dependencies``: a chain of relationships that leads
  back to where it started (``A -> B -> A``).
* ``check_references``: relationship targets that name no known entity.

The remaining checks are advisory: they collect warnings and notes into a
``ValidationResult`` (naming, indexes, seeders, controllers without a
model).  With ``fail_on_warnings`` any warning aborts the run.

Usage::

    from blueprintc.validators import validate_registry
    report = validate_registry(registry, options)
    print(report.format_report())
"""

from __future__ import annotations

import keyword
import logging
import re
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Set

from blueprintc.errors import ValidationError
from blueprintc.models import CompilationOptions, Entity, ModelRegistry, Relationship
from blueprintc.parser import count_data_types

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight advisory finding (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the advisory checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [item.code for item in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {"error": "❌", "warning": "⚠️", "info": "ℹ️"}.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_PASCAL_SEGMENT_RE: re.Pattern[str] = re.compile(r"^[A-Z][a-zA-Z0-9]*$")

_RESERVED_COLUMN_NAMES: FrozenSet[str] = frozenset(keyword.kwlist) | frozenset(
    {"metadata", "registry", "query"}
)


# ---------------------------------------------------------------------------
# Fail-fast checks
# ---------------------------------------------------------------------------


def dependency_graph(
    registry: ModelRegistry, options: Optional[CompilationOptions] = None
) -> Dict[str, List[str]]:
    """
    ``{entity: [entities its relationships point at]}`` over current entities.

    Every relationship with an entity target is an edge, self-references
    included; ``cycle_edges="belongsTo"`` narrows the edges to
    ``belongsTo`` links.  Targets are resolved through the registry so
    namespaced and short references map to the same node.
    """
    belongs_to_only: bool = (options or CompilationOptions()).cycle_edges == "belongsTo"
    graph: Dict[str, List[str]] = {}
    for name, entity in registry.entities.items():
        edges: List[str] = []
        relationships: List[Relationship] = (
            entity.belongs_to if belongs_to_only else entity.all_relationships()
        )
        for relationship in relationships:
            if not relationship.has_entity_target:
                continue
            target: Optional[Entity] = registry.resolve_entity(relationship.target)
            if target is None or target.name not in registry.entities:
                continue
            if target.name not in edges:
                edges.append(target.name)
        graph[name] = edges
    return graph


def check_circular_dependencies(
    registry: ModelRegistry, options: Optional[CompilationOptions] = None
) -> None:
    """
    Depth-first search from every entity, tracking the current path.

    Nodes whose whole subtree was already explored without a cycle are
    remembered and not walked again.

    Raises:
        ValidationError: ``circular_dependency`` naming the closed path.
    """
    graph: Dict[str, List[str]] = dependency_graph(registry, options)
    acyclic: Set[str] = set()

    def visit(node: str, path: List[str]) -> None:
        for dependency in graph.get(node, []):
            if dependency in path:
                raise ValidationError.circular_dependency(path + [dependency])
            if dependency in acyclic:
                continue
            visit(dependency, path + [dependency])
        acyclic.add(node)

    for start in graph:
        if start not in acyclic:
            visit(start, [start])

    logger.debug("No circular dependencies among %d entit(ies).", len(graph))


def check_references(registry: ModelRegistry) -> None:
    """
    Every relationship target (except ``morphTo``) must name a known entity.

    Raises:
        ValidationError: ``missing_foreign_key`` naming relationship, owner and target.
    """
    for name, entity in registry.entities.items():
        for relationship in entity.all_relationships():
            if not relationship.has_entity_target:
                continue
            if registry.resolve_entity(relationship.target) is None:
                raise ValidationError.missing_foreign_key(
                    f"{relationship.kind} {relationship.reference}",
                    name,
                    relationship.target,
                ).add_context("relationship_kind", relationship.kind)


# ---------------------------------------------------------------------------
# Advisory checks
# ---------------------------------------------------------------------------


def check_entity_names(registry: ModelRegistry) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    tables: Dict[str, str] = {}
    for name, entity in registry.entities.items():
        segments: List[str] = re.split(r"[/\\]", name)
        if not all(_PASCAL_SEGMENT_RE.match(segment) for segment in segments):
            result.add_warning(
                "ENTITY_NAME_NOT_PASCAL_CASE",
                f"Entity name '{name}' is not PascalCase; generated class names may look odd.",
                {"entity": name},
            )
        table: str = entity.table_name
        if table in tables:
            result.add_warning(
                "DUPLICATE_TABLE_NAME",
                f"Entities '{tables[table]}' and '{name}' both map to table '{table}'.",
                {"table": table},
            )
        tables.setdefault(table, name)
    return result


def check_column_names(registry: ModelRegistry) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for name, entity in registry.entities.items():
        for column in entity.columns.values():
            if column.name in _RESERVED_COLUMN_NAMES:
                result.add_warning(
                    "COLUMN_NAME_RESERVED",
                    f"Column '{column.name}' on '{name}' clashes with a reserved Python or ORM name.",
                    {"entity": name, "column": column.name},
                )
    return result


def check_indexes(registry: ModelRegistry) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for name, entity in registry.entities.items():
        for index in entity.indexes:
            missing: List[str] = [c for c in index.columns if not entity.has_column(c)]
            if missing:
                result.add_warning(
                    "INDEX_COLUMN_MISSING",
                    f"{index.type} index on '{name}' references unknown column(s): {missing}.",
                    {"entity": name, "columns": missing},
                )
    return result


def check_pivots(registry: ModelRegistry) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for name, entity in registry.entities.items():
        if entity.is_pivot and len(entity.belongs_to) < 2:
            result.add_info(
                "PIVOT_WITHOUT_TWO_PARENTS",
                f"Pivot entity '{name}' has {len(entity.belongs_to)} belongsTo relationship(s).",
                {"entity": name},
            )
    return result


def check_auxiliary(registry: ModelRegistry) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for seeder in registry.seeders:
        if registry.resolve_entity(str(seeder)) is None:
            result.add_warning(
                "SEEDER_UNKNOWN_MODEL",
                f"Seeder requested for unknown model '{seeder}'.",
                {"seeder": seeder},
            )
    for name, action in registry.action_entities.items():
        if registry.model_for_context(action.model_name) is None:
            result.add_info(
                "CONTROLLER_MODEL_UNKNOWN",
                f"Controller '{name}' does not match a known model ('{action.model_name}').",
                {"controller": name, "model": action.model_name},
            )
        if action.parent and registry.resolve_entity(action.parent) is None:
            result.add_warning(
                "CONTROLLER_PARENT_UNKNOWN",
                f"Controller '{name}' declares unknown parent '{action.parent}'.",
                {"controller": name, "parent": action.parent},
            )
    return result


def check_definitions(models: Mapping[str, Any]) -> ValidationResult:
    """Columns written with more than one data type keyword."""
    result: ValidationResult = ValidationResult()
    for name, definition in models.items():
        if not isinstance(definition, Mapping):
            continue
        columns: Dict[str, Any] = dict(definition.get("columns") or {})
        columns.update({k: v for k, v in definition.items() if isinstance(v, str)})
        for column, text in columns.items():
            if isinstance(text, str) and count_data_types(text) > 1:
                result.add_warning(
                    "MULTIPLE_DATA_TYPES",
                    f"Column '{column}' on '{name}' declares several data types; the last one is used.",
                    {"entity": name, "column": column, "definition": text},
                )
    return result


ADVISORY_CHECKS: List[Callable[[ModelRegistry], ValidationResult]] = [
    check_entity_names,
    check_column_names,
    check_indexes,
    check_pivots,
    check_auxiliary,
]


# ---------------------------------------------------------------------------
# Master entry point
# ---------------------------------------------------------------------------


def validate_registry(
    registry: ModelRegistry,
    options: Optional[CompilationOptions] = None,
    *,
    models: Optional[Mapping[str, Any]] = None,
) -> ValidationResult:
    """
    Run the fail-fast checks, then the advisory ones.

    Args:
        registry: The analysed registry.
        options: Run settings (``cycle_edges``, ``fail_on_warnings``).
        models: Raw model definitions, for checks on the written shorthand.

    Raises:
        ValidationError: cycles, dangling references, or warnings when
            ``fail_on_warnings`` is set.
    """
    options = options or CompilationOptions()
    logger.info("Validating %d entit(ies).", len(registry.entities))

    check_circular_dependencies(registry, options)
    check_references(registry)

    result: ValidationResult = ValidationResult()
    for check in ADVISORY_CHECKS:
        logger.debug("Running validator: %s", check.__name__)
        result.merge(check(registry))
    if models:
        result.merge(check_definitions(models))

    if options.fail_on_warnings and result.has_warnings:
        raise ValidationError.warnings_as_errors([str(w) for w in result.warnings])

    logger.info("Validation PASSED. %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "dependency_graph",
    "check_circular_dependencies",
    "check_references",
    "check_entity_names",
    "check_column_names",
    "check_indexes",
    "check_pivots",
    "check_auxiliary",
    "check_definitions",
    "ADVISORY_CHECKS",
    "validate_registry",
]

logger.debug("blueprintc.validators loaded — %d public symbols.", len(__all__))
