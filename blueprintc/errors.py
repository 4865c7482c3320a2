# File: blueprintc/errors.py
"""
Blueprintc - Error Taxonomy
=============================
Every failure the compiler raises on purpose is a ``BlueprintError``:

    BlueprintError
    ├── ParsingError      1xxx  malformed draft text or shorthand
    ├── GenerationError   2xxx  emitter-side write / template problems
    └── ValidationError   3xxx  structural or integrity violations

Each error carries a message, a numeric code, an optional source location,
a free-form context mapping, an ordered list of suggestions and an opaque
``error_id`` used to correlate log lines.  Context and suggestions may be
accumulated fluently before the error is raised::

    raise ParsingError.invalid_yaml(path, str(exc)).with_line(12)

The classmethod factories below are the canonical way to build errors;
each one fills in the code and a non-empty suggestion list.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.errors")


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------


class BlueprintError(Exception):
    """Base class for all structured compiler failures."""

    kind: str = "blueprint"

    def __init__(
        self,
        message: str = "",
        code: int = 0,
        *,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[Iterable[str]] = None,
        file_path: Optional[str] = None,
        line_number: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.code: int = code
        self.context: Dict[str, Any] = dict(context or {})
        self.suggestions: List[str] = list(suggestions or [])
        self.file_path: Optional[str] = file_path
        self.line_number: Optional[int] = line_number
        self.error_id: str = self._generate_error_id()

    @staticmethod
    def _generate_error_id() -> str:
        return "bp_" + uuid.uuid4().hex[:8]

    # -- Fluent accumulation -------------------------------------------------

    def with_file(self, file_path: Optional[str]) -> "BlueprintError":
        self.file_path = file_path
        return self

    def with_line(self, line_number: Optional[int]) -> "BlueprintError":
        self.line_number = line_number
        return self

    def add_context(self, key: str, value: Any) -> "BlueprintError":
        self.context[key] = value
        return self

    def add_suggestion(self, suggestion: str) -> "BlueprintError":
        self.suggestions.append(suggestion)
        return self

    # -- Presentation --------------------------------------------------------

    @property
    def location(self) -> Optional[str]:
        if not self.file_path:
            return None
        if self.line_number:
            return f"{self.file_path} on line {self.line_number}"
        return self.file_path

    def formatted_message(self) -> str:
        """Message plus location, context and suggestions, ready for a terminal."""
        lines: List[str] = [self.message]

        if self.location:
            lines.extend(["", f"File: {self.location}"])

        if self.context:
            lines.extend(["", "Context:"])
            for key, value in self.context.items():
                lines.append(f"  {key}: {_format_context_value(value)}")

        if self.suggestions:
            lines.extend(["", "Suggestions:"])
            lines.extend(f"  • {suggestion}" for suggestion in self.suggestions)

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "kind": self.kind,
            "code": self.code,
            "message": self.message,
            "file_path": self.file_path,
            "line_number": self.line_number,
            "context": dict(self.context),
            "suggestions": list(self.suggestions),
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.error_id} [{self.code}] {self.message!r}>"


def _format_context_value(value: Any) -> str:
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, indent=2, default=str)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


# ---------------------------------------------------------------------------
# Parsing errors (1xxx)
# ---------------------------------------------------------------------------


class ParsingError(BlueprintError):
    """Malformed draft document, section layout or shorthand."""

    kind = "parsing"

    @classmethod
    def invalid_yaml(cls, file_path: str, original_message: str) -> "ParsingError":
        return cls(
            f"Failed to parse YAML file: {original_message}",
            1001,
            context={"file": file_path},
            suggestions=[
                "Check for proper YAML indentation (use spaces, not tabs)",
                "Ensure all strings with special characters are quoted",
                "Verify that lists and objects are properly formatted",
                "Check for missing colons after keys",
                "Validate that multiline strings use proper YAML syntax",
            ],
            file_path=file_path,
        )

    @classmethod
    def missing_required_section(cls, section: str, file_path: str) -> "ParsingError":
        return cls(
            f"Missing required section '{section}' in YAML file",
            1002,
            context={"section": section, "file": file_path},
            suggestions=[
                f"Add the '{section}' section to your draft file",
                "A draft needs at least one non-empty models, controllers, "
                "seeders or components section",
            ],
            file_path=file_path,
        )

    @classmethod
    def invalid_model_definition(
        cls, model_name: str, reason: str, file_path: str
    ) -> "ParsingError":
        return cls(
            f"Invalid model definition for '{model_name}': {reason}",
            1003,
            context={"model": model_name, "reason": reason, "file": file_path},
            suggestions=[
                "Ensure model names start with a letter and are valid class names",
                "Use '/' or '\\' only as namespace separators",
                "Verify relationship definitions are properly formatted",
            ],
            file_path=file_path,
        )

    @classmethod
    def invalid_controller_definition(
        cls, controller_name: str, reason: str, file_path: str
    ) -> "ParsingError":
        return cls(
            f"Invalid controller definition for '{controller_name}': {reason}",
            1004,
            context={"controller": controller_name, "reason": reason, "file": file_path},
            suggestions=[
                "Ensure controller names are valid class names",
                "Method names must start with a lowercase letter or be a "
                "magic method such as __invoke",
                "Validate statement syntax in controller methods",
            ],
            file_path=file_path,
        )

    @classmethod
    def unsupported_column_type(
        cls, column_type: str, model_name: str, file_path: Optional[str] = None
    ) -> "ParsingError":
        from blueprintc.parser import DATA_TYPES

        return cls(
            f"Unsupported column type '{column_type}' in model '{model_name}'",
            1005,
            context={
                "column_type": column_type,
                "model": model_name,
                "supported_types": sorted(set(DATA_TYPES.values())),
            },
            suggestions=[
                "Use one of the supported column types listed in the context",
                "Check the spelling of the type keyword",
                "Consider using a similar supported type instead",
            ],
            file_path=file_path,
        )

    @classmethod
    def invalid_shorthand(
        cls, definition: str, token: str, reason: str, owner: Optional[str] = None
    ) -> "ParsingError":
        return cls(
            f"Invalid shorthand '{definition}': {reason}",
            1006,
            context={"definition": definition, "token": token, "owner": owner},
            suggestions=[
                "Separate tokens with spaces and arguments with ':'",
                "Quote values that contain spaces",
                f"Check the token '{token}'",
            ],
        )


# ---------------------------------------------------------------------------
# Generation errors (2xxx)
# ---------------------------------------------------------------------------


class GenerationError(BlueprintError):
    """Emitter-side write, directory or template problems."""

    kind = "generation"

    @classmethod
    def file_write_error(
        cls, file_path: str, reason: str, *, permission_error: bool = False
    ) -> "GenerationError":
        context: Dict[str, Any] = {"file": file_path, "reason": reason}
        if permission_error:
            context["permission_error"] = True
        return cls(
            f"Failed to write file '{file_path}': {reason}",
            2001,
            context=context,
            suggestions=[
                "Check file and directory permissions",
                "Ensure the target directory exists and is writable",
                "Verify there is sufficient disk space",
            ],
            file_path=file_path,
        )

    @classmethod
    def directory_create_error(cls, directory: str, reason: str) -> "GenerationError":
        return cls(
            f"Failed to create directory '{directory}': {reason}",
            2002,
            context={"directory": directory, "reason": reason},
            suggestions=[
                "Check parent directory permissions",
                "Verify the path is valid and accessible",
            ],
            file_path=directory,
        )

    @classmethod
    def template_not_found(
        cls, template_name: str, search_paths: Sequence[str]
    ) -> "GenerationError":
        return cls(
            f"Template '{template_name}' not found",
            2003,
            context={
                "template": template_name,
                "search_paths": list(search_paths),
                "template_path": search_paths[0] if search_paths else template_name,
            },
            suggestions=[
                "Check that the template file exists in one of the search paths",
                "Verify the template name is spelled correctly",
                "Check the template_paths compilation option",
            ],
        )

    @classmethod
    def invalid_stub_content(cls, stub_path: str, reason: str) -> "GenerationError":
        return cls(
            f"Invalid stub content in '{stub_path}': {reason}",
            2004,
            context={"stub": stub_path, "reason": reason, "template_path": stub_path},
            suggestions=[
                "Check the template file for syntax errors",
                "Verify placeholder syntax is correct",
            ],
            file_path=stub_path,
        )

    @classmethod
    def model_not_found(cls, model_name: str, context: str) -> "GenerationError":
        return cls(
            f"Model '{model_name}' not found in context '{context}'",
            2005,
            context={"model": model_name, "context": context},
            suggestions=[
                "Ensure the model is defined in your draft file",
                "Check the model name spelling and case",
                "Models from earlier runs are only known while the manifest exists",
            ],
        )

    @classmethod
    def conflicting_file(cls, file_path: str, action: str) -> "GenerationError":
        return cls(
            f"File conflict detected for '{file_path}' during {action}",
            2006,
            context={"file": file_path, "action": action},
            suggestions=[
                "Use the --overwrite flag to overwrite existing files",
                "Rename the existing file to preserve it",
                "Review the existing file content before overwriting",
            ],
            file_path=file_path,
        )

    @classmethod
    def invalid_namespace(cls, namespace: str, reason: str) -> "GenerationError":
        return cls(
            f"Invalid namespace '{namespace}': {reason}",
            2007,
            context={"namespace": namespace, "reason": reason},
            suggestions=[
                "Use dotted package names made of valid identifiers",
                "Check the *_package compilation options",
            ],
        )


# ---------------------------------------------------------------------------
# Validation errors (3xxx)
# ---------------------------------------------------------------------------


class ValidationError(BlueprintError):
    """Structural or integrity violations in the analysed model."""

    kind = "validation"

    @classmethod
    def invalid_relationship(
        cls, relationship_type: str, model_name: str, reason: str
    ) -> "ValidationError":
        return cls(
            f"Invalid {relationship_type} relationship in model '{model_name}': {reason}",
            3001,
            context={
                "relationship_type": relationship_type,
                "model": model_name,
                "reason": reason,
                "invalid_relationship": relationship_type,
            },
            suggestions=[
                "Check that the related model exists",
                "Use a supported relationship type (belongsTo, hasOne, hasMany, "
                "belongsToMany, morphOne, morphMany, morphTo, morphToMany, "
                "morphedByMany)",
                "Ensure foreign key references are correct",
            ],
        )

    @classmethod
    def invalid_column_definition(
        cls, column_name: str, model_name: str, reason: str
    ) -> "ValidationError":
        return cls(
            f"Invalid column definition '{column_name}' in model '{model_name}': {reason}",
            3002,
            context={"column": column_name, "model": model_name, "reason": reason},
            suggestions=[
                "Column names start with a lowercase letter and contain only "
                "lowercase letters, digits and underscores",
                "Verify the column type is supported",
                "Check for duplicate column names",
            ],
        )

    @classmethod
    def missing_foreign_key(
        cls, relationship: str, model_name: str, referenced_model: str
    ) -> "ValidationError":
        return cls(
            f"Foreign key '{relationship}' references non-existent model "
            f"'{referenced_model}' in model '{model_name}'",
            3003,
            context={
                "relationship": relationship,
                "model": model_name,
                "referenced_model": referenced_model,
            },
            suggestions=[
                f"Define the '{referenced_model}' model in your draft file",
                "Check the spelling of the referenced model name",
                "Verify the foreign key column name is correct",
            ],
        )

    @classmethod
    def invalid_method_statement(
        cls, method_name: str, controller_name: str, statement: str, reason: str
    ) -> "ValidationError":
        return cls(
            f"Invalid statement '{statement}' in method '{method_name}' of "
            f"controller '{controller_name}': {reason}",
            3004,
            context={
                "method": method_name,
                "controller": controller_name,
                "statement": statement,
                "reason": reason,
            },
            suggestions=[
                "Use a supported statement verb (query, save, find, delete, update, "
                "render, inertia, redirect, respond, resource, send, notify, "
                "validate, flash, store, fire, dispatch)",
                "Repeated verbs may carry a suffix, e.g. fire-2",
                "Check for proper parameter formatting",
            ],
        )

    @classmethod
    def duplicate_definition(
        cls, definition_type: str, name: str, file_path: Optional[str] = None
    ) -> "ValidationError":
        return cls(
            f"Duplicate {definition_type} definition '{name}' found",
            3005,
            context={"type": definition_type, "name": name, "file": file_path},
            suggestions=[
                f"Remove or rename the duplicate {definition_type} definition",
                "Check for case-sensitive naming conflicts",
            ],
            file_path=file_path,
        )

    @classmethod
    def circular_dependency(cls, dependency_chain: Sequence[str]) -> "ValidationError":
        chain: str = " -> ".join(dependency_chain)
        return cls(
            f"Circular dependency detected: {chain}",
            3006,
            context={
                "dependency_chain": list(dependency_chain),
                "circular_dependency": chain,
            },
            suggestions=[
                "Review model relationships to eliminate circular references",
                "Drop the relationship that closes the loop on one side",
                "Set cycle_edges: belongsTo to check belongsTo links only",
                "Use an intermediate model if necessary",
            ],
        )

    @classmethod
    def invalid_configuration(cls, key: str, value: Any, reason: str) -> "ValidationError":
        return cls(
            f"Invalid configuration for '{key}': {reason}",
            3007,
            context={"config_key": key, "config_value": value, "reason": reason},
            suggestions=[
                "Check the settings section of your draft file",
                "Verify configuration values match expected types",
                "Remove unknown settings keys",
            ],
        )

    @classmethod
    def invalid_model_format(cls, model_name: str) -> "ValidationError":
        return cls(
            f"Model '{model_name}' must be a mapping of columns and model keys",
            3009,
            context={"model": model_name},
            suggestions=[
                "Define the model as a mapping, e.g. 'Post: {title: string}'",
                "Move column definitions under the model name or a columns key",
            ],
        )

    @classmethod
    def warnings_as_errors(cls, warnings: Sequence[str]) -> "ValidationError":
        return cls(
            f"Validation reported {len(warnings)} warning(s) and fail_on_warnings is enabled",
            3010,
            context={"warnings": list(warnings)},
            suggestions=[
                "Fix the reported warnings",
                "Set fail_on_warnings to false in the settings section",
            ],
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BlueprintError",
    "ParsingError",
    "GenerationError",
    "ValidationError",
]

logger.debug("blueprintc.errors loaded — %d public symbols.", len(__all__))
