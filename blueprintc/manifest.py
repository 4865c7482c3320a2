# File: blueprintc/manifest.py
"""
Blueprintc - Manifest Persistence & Reconciliation
====================================================
The manifest (``.blueprint`` by default) is a YAML document::

    created:
      - app/models/post.py
    updated:
      - app/models/user.py
    models:
      Post: {columns: {...}, ...}

It is read at the start of a run (its ``models`` become the cached
entities), compared against what the emitters produced (stale detection)
and rewritten at the end of a successful run.  ``erase`` rolls back the
last build.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Set

from blueprintc.errors import GenerationError
from blueprintc.filesystem import FileSystem
from blueprintc.loader import dump_yaml, parse_yaml
from blueprintc.models import GenerationManifest, ManifestAction

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.manifest")


# ---------------------------------------------------------------------------
# Load / dump
# ---------------------------------------------------------------------------


def load_manifest(filesystem: FileSystem, path: str) -> GenerationManifest:
    """
    Read the manifest at *path*; an absent or empty file is an empty manifest.

    Raises:
        ParsingError: ``invalid_yaml`` for a corrupt manifest.
    """
    if not filesystem.exists(path):
        logger.debug("No manifest at %s; starting without cache.", path)
        return GenerationManifest()
    document: Dict[str, Any] = parse_yaml(filesystem.read(path), path)
    manifest: GenerationManifest = GenerationManifest.from_document(document)
    logger.info(
        "Loaded manifest %s (%d path(s), %d cached model(s)).",
        path,
        len(manifest.by_path()),
        len(manifest.models),
    )
    return manifest


def dump_manifest(filesystem: FileSystem, path: str, manifest: GenerationManifest) -> None:
    """
    Write *manifest* to *path*.

    Raises:
        GenerationError: ``file_write_error`` when the write fails.
    """
    try:
        filesystem.write(path, dump_yaml(manifest.to_document()))
    except OSError as exc:
        raise GenerationError.file_write_error(
            path, str(exc), permission_error=isinstance(exc, PermissionError)
        ) from exc
    logger.info("Wrote manifest %s.", path)


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class Reconciliation:
    """
    Outcome of comparing this run's output with the previous manifest.

    ``actions`` is what this run did; ``persisted`` is what the next
    manifest records, where a path skipped as unchanged keeps the
    ``created`` or ``updated`` classification it already had.
    """

    actions: Dict[str, List[str]] = field(default_factory=dict)
    stale: List[str] = field(default_factory=list)
    persisted: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def deleted(self) -> List[str]:
        return list(self.actions.get(ManifestAction.DELETED.value, []))


_OWNED_ACTIONS = (ManifestAction.CREATED.value, ManifestAction.UPDATED.value)


def stale_paths(previous: GenerationManifest, actions: Mapping[str, List[str]]) -> List[str]:
    """Paths the previous run wrote that no emitter produced this time."""
    produced: Set[str] = {path for paths in actions.values() for path in paths}
    return [path for path in previous.written_paths if path not in produced]


def carry_forward(
    previous: GenerationManifest, actions: Mapping[str, List[str]]
) -> Dict[str, List[str]]:
    """Reclassify skipped paths the previous manifest owned under their old action."""
    owned: Dict[str, str] = {
        path: action for path, action in previous.by_path().items() if action in _OWNED_ACTIONS
    }
    persisted: Dict[str, List[str]] = {}
    for action, paths in actions.items():
        for path in paths:
            target: str = action
            if action == ManifestAction.SKIPPED.value:
                target = owned.get(path, action)
            persisted.setdefault(target, []).append(path)
    return persisted


def reconcile(
    filesystem: FileSystem,
    previous: GenerationManifest,
    actions: Mapping[str, List[str]],
    *,
    prune: bool = False,
) -> Reconciliation:
    """
    Classify stale files and optionally delete them.

    With *prune*, every stale file still on disk is deleted and recorded
    under ``deleted``; otherwise stale paths are only reported.
    """
    result: Reconciliation = Reconciliation(
        actions={action: list(paths) for action, paths in actions.items()},
        stale=stale_paths(previous, actions),
    )
    if result.stale and not prune:
        logger.warning(
            "%d file(s) from the previous build were not regenerated: %s",
            len(result.stale),
            ", ".join(result.stale),
        )
    elif result.stale:
        deleted: List[str] = filesystem.delete_many(result.stale)
        if deleted:
            result.actions.setdefault(ManifestAction.DELETED.value, []).extend(deleted)
        logger.info("Pruned %d stale file(s).", len(deleted))

    result.persisted = carry_forward(previous, result.actions)
    return result


# ---------------------------------------------------------------------------
# Erase (rollback)
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class EraseReport:
    deleted: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    not_erasable: List[str] = field(default_factory=list)
    manifest_deleted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deleted": list(self.deleted),
            "missing": list(self.missing),
            "not_erasable": list(self.not_erasable),
            "manifest_deleted": self.manifest_deleted,
        }


def erase(filesystem: FileSystem, path: str) -> EraseReport:
    """
    Roll back the build recorded in the manifest at *path*.

    Created files are deleted; updated files cannot be restored and are
    reported as not erasable; the manifest itself is removed.
    """
    report: EraseReport = EraseReport()
    manifest: GenerationManifest = load_manifest(filesystem, path)

    for created in manifest.paths(ManifestAction.CREATED):
        if filesystem.delete(created):
            report.deleted.append(created)
        else:
            report.missing.append(created)
    report.not_erasable = manifest.paths(ManifestAction.UPDATED)
    for updated in report.not_erasable:
        logger.warning("Cannot erase updated file %s; restore it manually.", updated)

    if filesystem.exists(path):
        report.manifest_deleted = filesystem.delete(path)
    logger.info(
        "Erased %d file(s); %d already missing; %d not erasable.",
        len(report.deleted),
        len(report.missing),
        len(report.not_erasable),
    )
    return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "load_manifest",
    "dump_manifest",
    "Reconciliation",
    "stale_paths",
    "carry_forward",
    "reconcile",
    "EraseReport",
    "erase",
]

logger.debug("blueprintc.manifest loaded — %d public symbols.", len(__all__))
