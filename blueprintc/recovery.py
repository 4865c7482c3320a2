# File: blueprintc/recovery.py
"""
Blueprintc - Error Logging & Recovery
=======================================
Wraps every stage's failures:

    ErrorHandlingManager.handle_exception(error)
        ├── ErrorLogger.log_error(error)            -> error_id
        └── RecoveryManager.attempt_recovery(error) -> RecoveryResult

Recovery is best-effort and never re-runs the failed operation: a
successful strategy only returns actionable data (fixed draft text, a
created directory, a fallback template path, suggested fixes) for the
caller to act on.

Strategies, tried in registration order until one succeeds:

    file_permission     GenerationError   is the target directory writable?
    yaml_syntax         ParsingError      regex fixes, then re-parse
    missing_directory   GenerationError   create the parent directory
    template_fallback   GenerationError   .fallback / .default / default.stub
    validation_autofix  ValidationError   structural fix suggestions
"""

from __future__ import annotations

import logging
import posixpath
import re
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from blueprintc.errors import BlueprintError, GenerationError, ParsingError, ValidationError
from blueprintc.filesystem import FileSystem, LocalFileSystem
from blueprintc.loader import parse_yaml

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.recovery")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# ErrorLogger
# ---------------------------------------------------------------------------


class ErrorLogger:
    """
    Logs ``BlueprintError``s with a structured ``extra`` payload.

    Disabling the logger silences output; ``log_error`` still returns the
    error's id so callers can correlate regardless.
    """

    def __init__(
        self,
        target: Optional[logging.Logger] = None,
        level: int = logging.ERROR,
        enabled: bool = True,
    ) -> None:
        self.target: logging.Logger = target or logging.getLogger("blueprintc.errors")
        self.level: int = level
        self.enabled: bool = enabled

    def log_error(self, error: BlueprintError) -> str:
        if not self.enabled:
            return error.error_id
        self.target.log(self.level, error.message, extra=self.build_payload(error))
        return error.error_id

    def log_recovery_attempt(
        self,
        error_id: str,
        strategy: str,
        success: bool,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self.enabled:
            return
        payload: Dict[str, Any] = {
            "error_id": error_id,
            "recovery_strategy": strategy,
            "success": success,
            "timestamp": _timestamp(),
            "recovery_context": dict(context or {}),
        }
        if success:
            self.target.info("Recovery successful using strategy: %s", strategy, extra=payload)
        else:
            self.target.warning("Recovery failed using strategy: %s", strategy, extra=payload)

    @staticmethod
    def build_payload(error: BlueprintError) -> Dict[str, Any]:
        return {
            "error_id": error.error_id,
            "error_type": type(error).__name__,
            "file_path": error.file_path,
            "line_number": error.line_number,
            "context": dict(error.context),
            "suggestions": list(error.suggestions),
            "timestamp": _timestamp(),
            "stack_trace": "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
        }


# ---------------------------------------------------------------------------
# RecoveryResult
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RecoveryResult:
    successful: bool
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def has_data(self, key: Optional[str] = None) -> bool:
        if key is None:
            return bool(self.data)
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"successful": self.successful, "message": self.message, "data": dict(self.data)}


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

StrategyHandler = Callable[[BlueprintError], RecoveryResult]


@dataclass(frozen=True, slots=True)
class RecoveryStrategy:
    name: str
    applies_to: Tuple[Type[BlueprintError], ...]
    handler: StrategyHandler

    def applies(self, error: BlueprintError) -> bool:
        return isinstance(error, self.applies_to)


# (pattern, replacement) pairs tried in order on malformed draft text
YAML_FIXES: Tuple[Tuple[re.Pattern[str], str], ...] = (
    # missing space after a key's colon
    (re.compile(r"^(\s*[\w\\/]+):(?=[^\s/])", re.M), r"\1: "),
    # missing space after a list dash
    (re.compile(r"^(\s*)-(?=[^\s-])", re.M), r"\1- "),
    # unquoted scalars holding YAML-significant punctuation
    (re.compile(r""":[ \t]*([^"'\s\[{][^:\n]*[!@#$%^&*()][^:\n]*)$""", re.M), r': "\1"'),
)


class RecoveryManager:
    """Runs the registered strategies for an error until one succeeds."""

    def __init__(
        self,
        error_logger: Optional[ErrorLogger] = None,
        filesystem: Optional[FileSystem] = None,
    ) -> None:
        self.error_logger: ErrorLogger = error_logger or ErrorLogger()
        self.filesystem: FileSystem = filesystem if filesystem is not None else LocalFileSystem()
        self._strategies: Dict[str, RecoveryStrategy] = {}
        self._register_defaults()

    # -- Registry --------------------------------------------------------------

    def register(self, strategy: RecoveryStrategy) -> None:
        self._strategies[strategy.name] = strategy

    def strategy_names(self) -> List[str]:
        return list(self._strategies)

    def strategies_for(self, error: BlueprintError) -> List[RecoveryStrategy]:
        return [s for s in self._strategies.values() if s.applies(error)]

    def _register_defaults(self) -> None:
        self.register(RecoveryStrategy("file_permission", (GenerationError,), self.recover_file_permission))
        self.register(RecoveryStrategy("yaml_syntax", (ParsingError,), self.recover_yaml_syntax))
        self.register(RecoveryStrategy("missing_directory", (GenerationError,), self.recover_missing_directory))
        self.register(RecoveryStrategy("template_fallback", (GenerationError,), self.recover_template_fallback))
        self.register(RecoveryStrategy("validation_autofix", (ValidationError,), self.recover_validation))

    # -- Driver ----------------------------------------------------------------

    def attempt_recovery(self, error: BlueprintError) -> RecoveryResult:
        for strategy in self.strategies_for(error):
            logger.debug("Attempting recovery of %s with strategy %s.", error.error_id, strategy.name)
            try:
                result: RecoveryResult = strategy.handler(error)
            except Exception as exc:
                self.error_logger.log_recovery_attempt(
                    error.error_id, strategy.name, False, {"error": str(exc)}
                )
                continue
            if result.successful:
                self.error_logger.log_recovery_attempt(
                    error.error_id, strategy.name, True, {"recovery_data": result.data}
                )
                return result
            logger.debug("Strategy %s declined: %s", strategy.name, result.message)
        return RecoveryResult(False, "No recovery strategies succeeded")

    # -- Built-in strategies -----------------------------------------------------

    def recover_file_permission(self, error: BlueprintError) -> RecoveryResult:
        if not error.file_path or not error.context.get("permission_error"):
            return RecoveryResult(False, "Not a permission error")
        directory: str = posixpath.dirname(error.file_path)
        if directory and not self.filesystem.is_directory(directory):
            return RecoveryResult(False, "Directory does not exist")
        if not self.filesystem.is_writable(directory or "."):
            return RecoveryResult(
                False,
                "Directory is not writable",
                {"suggestion": f"Run: chmod 755 {directory or '.'}"},
            )
        if not self.filesystem.is_writable(error.file_path):
            return RecoveryResult(
                False,
                "File is not writable",
                {"suggestion": f"Run: chmod 644 {error.file_path}"},
            )
        return RecoveryResult(True, "Directory permissions are correct")

    def recover_yaml_syntax(self, error: BlueprintError) -> RecoveryResult:
        content: Optional[str] = error.context.get("yaml_content")
        if not content:
            return RecoveryResult(False, "No YAML content to fix")

        fixes: List[str] = []
        fixed: str = content
        for pattern, replacement in YAML_FIXES:
            candidate: str = pattern.sub(replacement, fixed)
            if candidate != fixed:
                fixes.append(f"Applied fix: {pattern.pattern}")
                fixed = candidate
        if not fixes:
            return RecoveryResult(False, "No automatic YAML fixes available")

        try:
            parse_yaml(fixed, error.file_path or "<draft>")
        except ParsingError as exc:
            return RecoveryResult(
                False,
                "YAML fixes did not produce a valid document",
                {"fixes": fixes, "remaining_error": exc.message},
            )
        return RecoveryResult(
            True, "Applied YAML syntax fixes", {"fixes": fixes, "fixed_content": fixed}
        )

    def recover_missing_directory(self, error: BlueprintError) -> RecoveryResult:
        directory: Optional[str] = error.context.get("directory")
        if directory is None:
            if not error.file_path:
                return RecoveryResult(False, "No file path provided")
            directory = posixpath.dirname(error.file_path)
        if not directory:
            return RecoveryResult(False, "No directory to create")
        if self.filesystem.is_directory(directory):
            return RecoveryResult(True, "Directory already exists")
        try:
            self.filesystem.make_directory(directory)
        except OSError as exc:
            logger.debug("Could not create %s: %s", directory, exc)
            return RecoveryResult(
                False,
                "Failed to create directory",
                {"suggestion": f"Run: mkdir -p {directory}"},
            )
        return RecoveryResult(
            True, "Successfully created directory", {"created_directory": directory}
        )

    @staticmethod
    def fallback_templates(template_path: str) -> List[str]:
        root, ext = posixpath.splitext(template_path)
        return [
            f"{root}.fallback{ext}",
            f"{root}.default{ext}",
            posixpath.join(posixpath.dirname(template_path), "default.stub"),
        ]

    def recover_template_fallback(self, error: BlueprintError) -> RecoveryResult:
        template_path: Optional[str] = error.context.get("template_path")
        if not template_path:
            return RecoveryResult(False, "No template path in context")
        for candidate in self.fallback_templates(template_path):
            if candidate != template_path and self.filesystem.exists(candidate):
                return RecoveryResult(
                    True, "Found fallback template", {"fallback_template": candidate}
                )
        return RecoveryResult(False, "No fallback templates available")

    def recover_validation(self, error: BlueprintError) -> RecoveryResult:
        context: Dict[str, Any] = error.context
        fixes: List[str] = []
        if "invalid_relationship" in context:
            fixes.append(
                f"Use a supported relationship kind instead of '{context['invalid_relationship']}'"
            )
        if "invalid_column_type" in context or "column_type" in context:
            fixes.append("Replace the column type with one of the supported types")
        if "referenced_model" in context:
            fixes.append(f"Define the '{context['referenced_model']}' model or fix the reference")
        chain: Sequence[str] = context.get("dependency_chain") or []
        if "circular_dependency" in context and len(chain) >= 2:
            fixes.append(
                f"Remove the relationship from '{chain[-2]}' to '{chain[-1]}' "
                "or set cycle_edges: belongsTo"
            )
        if not fixes:
            return RecoveryResult(False, "No automatic validation fixes available")
        return RecoveryResult(True, "Validation auto-fixes available", {"fixes": fixes})


# ---------------------------------------------------------------------------
# Handling front end
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ErrorHandlingResult:
    exception: BlueprintError
    error_id: str
    recovery_result: Optional[RecoveryResult] = None

    @property
    def has_recovery_result(self) -> bool:
        return self.recovery_result is not None

    @property
    def recovery_successful(self) -> bool:
        return self.recovery_result is not None and self.recovery_result.successful

    def formatted_message(self) -> str:
        lines: List[str] = [self.exception.formatted_message(), "", f"Error ID: {self.error_id}"]
        if self.recovery_result is not None:
            lines.append("")
            if self.recovery_result.successful:
                lines.append(f"Recovery Attempt: ✅ {self.recovery_result.message}")
                if self.recovery_result.has_data("suggestion"):
                    lines.append(f"  Suggestion: {self.recovery_result.get('suggestion')}")
            else:
                lines.append(f"Recovery Attempt: ❌ {self.recovery_result.message}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_id": self.error_id,
            "exception": self.exception.to_dict(),
            "recovery": self.recovery_result.to_dict() if self.recovery_result else None,
        }


class ErrorHandlingManager:
    """Logs an error, then (optionally) tries to recover from it."""

    def __init__(
        self,
        target: Optional[logging.Logger] = None,
        filesystem: Optional[FileSystem] = None,
        *,
        auto_recovery: bool = True,
    ) -> None:
        self.error_logger: ErrorLogger = ErrorLogger(target)
        self.recovery_manager: RecoveryManager = RecoveryManager(self.error_logger, filesystem)
        self.auto_recovery_enabled: bool = auto_recovery

    def handle_exception(
        self, error: BlueprintError, attempt_recovery: bool = True
    ) -> ErrorHandlingResult:
        error_id: str = self.error_logger.log_error(error)
        recovery: Optional[RecoveryResult] = None
        if attempt_recovery and self.auto_recovery_enabled:
            recovery = self.recovery_manager.attempt_recovery(error)
        return ErrorHandlingResult(error, error_id, recovery)

    def create_and_handle_exception(
        self,
        message: str,
        code: int = 0,
        *,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[Sequence[str]] = None,
        attempt_recovery: bool = True,
    ) -> ErrorHandlingResult:
        error: BlueprintError = BlueprintError(
            message, code, context=context, suggestions=suggestions
        )
        return self.handle_exception(error, attempt_recovery)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ErrorLogger",
    "RecoveryResult",
    "RecoveryStrategy",
    "YAML_FIXES",
    "RecoveryManager",
    "ErrorHandlingResult",
    "ErrorHandlingManager",
]

logger.debug("blueprintc.recovery loaded — %d public symbols.", len(__all__))
