# File: blueprintc/__init__.py
"""
Blueprintc — Declarative Draft Compiler
=========================================

Turns a short YAML "draft" of models and controllers into generated
application code (SQLAlchemy models, Pydantic schemas, FastAPI routers),
and remembers what it wrote in a manifest so the next run can reuse the
models and spot stale files.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│   Blueprint    │────▶│  EmitterRegistry │
    │   (cli.py)   │     │ (generator.py) │     │  (emitters.py)   │
    └──────────────┘     └───────┬────────┘     └──────────────────┘
                                 │
            ┌────────────┬───────┼──────────┬────────────┐
            ▼            ▼       ▼          ▼            ▼
       ┌────────┐  ┌────────┐ ┌────────┐ ┌──────────┐ ┌──────────┐
       │ loader │  │ parser │ │analyzer│ │validators│ │ manifest │
       └────────┘  └────────┘ └────────┘ └──────────┘ └──────────┘

Usage::

    # As a library
    from blueprintc import Blueprint, LocalFileSystem
    report = Blueprint(LocalFileSystem(".")).build("draft.yaml")

    # From the command line
    python -m blueprintc build draft.yaml -v

Public API:
    - Blueprint          — Pipeline orchestrator
    - SemanticAnalyzer   — Draft → ModelRegistry
    - EmitterRegistry    — Category → emitter factory table
    - validate_registry  — Dependency and advisory checks
"""

from __future__ import annotations

__version__: str = "1.0.0"
__author__: str = "Blueprintc Team"
__license__: str = "MIT"

# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------

from blueprintc.errors import BlueprintError, GenerationError, ParsingError, ValidationError
from blueprintc.filesystem import FileSystem, LocalFileSystem, MemoryFileSystem
from blueprintc.models import (
    ActionEntity,
    Column,
    CompilationOptions,
    Entity,
    GenerationManifest,
    Index,
    ManifestAction,
    ModelRegistry,
    Policy,
    Relationship,
    RelationshipKind,
)
from blueprintc.loader import DraftDocument, load_draft, parse_draft
from blueprintc.analyzer import SemanticAnalyzer
from blueprintc.validators import ValidationResult, validate_registry
from blueprintc.emitters import Emitter, EmitterRegistry, FileEmitter, should_generate
from blueprintc.templates import ModelEmitter, RouterEmitter, SchemaEmitter
from blueprintc.manifest import EraseReport, load_manifest
from blueprintc.recovery import ErrorHandlingManager, RecoveryManager
from blueprintc.utils import Timer, merge_recursive, to_plural, to_singular, to_snake_case
from blueprintc.generator import Blueprint, BuildReport

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core orchestrator
    "Blueprint",
    "BuildReport",
    # Errors
    "BlueprintError",
    "ParsingError",
    "GenerationError",
    "ValidationError",
    "ErrorHandlingManager",
    "RecoveryManager",
    # File systems
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
    # Models
    "ActionEntity",
    "Column",
    "CompilationOptions",
    "Entity",
    "GenerationManifest",
    "Index",
    "ManifestAction",
    "ModelRegistry",
    "Policy",
    "Relationship",
    "RelationshipKind",
    # Stages
    "DraftDocument",
    "load_draft",
    "parse_draft",
    "SemanticAnalyzer",
    "ValidationResult",
    "validate_registry",
    # Emitters
    "Emitter",
    "EmitterRegistry",
    "FileEmitter",
    "should_generate",
    "ModelEmitter",
    "SchemaEmitter",
    "RouterEmitter",
    # Manifest
    "EraseReport",
    "load_manifest",
    # Utilities
    "Timer",
    "merge_recursive",
    "to_plural",
    "to_singular",
    "to_snake_case",
]
