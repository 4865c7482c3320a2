# File: blueprintc/filesystem.py
"""
Blueprintc - Filesystem Capability
====================================
The compiler never touches ``os`` or ``pathlib`` directly outside this
module.  Every stage that reads a draft, writes an artifact or persists the
manifest receives a ``FileSystem`` instance and goes through it.

Two implementations ship with the package:

* ``LocalFileSystem``  — real disk access rooted at a base directory, with
  write-to-temp + rename so an interrupted write never leaves half a file.
* ``MemoryFileSystem`` — a dictionary-backed store used by tests and dry
  runs.
"""

from __future__ import annotations

import logging
import os
import posixpath
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("blueprintc.filesystem")

PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# Abstract capability
# ---------------------------------------------------------------------------


class FileSystem(ABC):
    """Read/write/exists/list/delete operations the compiler depends on."""

    @abstractmethod
    def read(self, path: PathLike) -> str:
        """Return the text content of *path*; raise ``FileNotFoundError`` if absent."""

    @abstractmethod
    def write(self, path: PathLike, content: str) -> int:
        """Write *content* to *path*, creating parents. Returns bytes written."""

    @abstractmethod
    def exists(self, path: PathLike) -> bool:
        """True for existing files and directories."""

    @abstractmethod
    def is_directory(self, path: PathLike) -> bool: ...

    @abstractmethod
    def list(self, path: PathLike) -> List[str]:
        """Sorted names of the direct children of directory *path*."""

    @abstractmethod
    def delete(self, path: PathLike) -> bool:
        """Delete a file. Returns False when nothing was there."""

    @abstractmethod
    def make_directory(self, path: PathLike) -> None: ...

    @abstractmethod
    def is_writable(self, path: PathLike) -> bool: ...

    def delete_many(self, paths: Iterable[PathLike]) -> List[str]:
        """Delete every path, returning the ones that actually existed."""
        return [str(p) for p in paths if self.delete(p)]


# ---------------------------------------------------------------------------
# Local disk
# ---------------------------------------------------------------------------


class LocalFileSystem(FileSystem):
    """
    Disk-backed filesystem.

    Relative paths resolve against *root* (the current working directory
    when omitted), which is how manifest and artifact paths are recorded.
    """

    def __init__(self, root: Optional[PathLike] = None, *, atomic_writes: bool = True) -> None:
        self._root: Path = Path(root).resolve() if root is not None else Path.cwd()
        self._atomic_writes: bool = atomic_writes

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: PathLike) -> Path:
        candidate: Path = Path(path)
        return candidate if candidate.is_absolute() else self._root / candidate

    def read(self, path: PathLike) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    def write(self, path: PathLike, content: str) -> int:
        target: Path = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        data: bytes = content.encode("utf-8")

        if self._atomic_writes:
            self._atomic_write(target, data)
        else:
            target.write_bytes(data)

        logger.debug("Wrote %d bytes to %s", len(data), target)
        return len(data)

    @staticmethod
    def _atomic_write(target: Path, data: bytes) -> None:
        """Write via a temp file in the same directory, then ``os.replace``."""
        fd, tmp_path = tempfile.mkstemp(
            dir=str(target.parent),
            prefix=f".{target.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_path, str(target))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def exists(self, path: PathLike) -> bool:
        return self._resolve(path).exists()

    def is_directory(self, path: PathLike) -> bool:
        return self._resolve(path).is_dir()

    def list(self, path: PathLike) -> List[str]:
        directory: Path = self._resolve(path)
        if not directory.is_dir():
            return []
        return sorted(child.name for child in directory.iterdir())

    def delete(self, path: PathLike) -> bool:
        target: Path = self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        logger.debug("Deleted %s", target)
        return True

    def make_directory(self, path: PathLike) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def is_writable(self, path: PathLike) -> bool:
        return os.access(self._resolve(path), os.W_OK)

    def __repr__(self) -> str:
        return f"<LocalFileSystem root={self._root}>"


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


def _normalise(path: PathLike) -> str:
    text: str = str(path).replace("\\", "/")
    normalised: str = posixpath.normpath(text)
    return "" if normalised == "." else normalised


class MemoryFileSystem(FileSystem):
    """
    Dictionary-backed filesystem.

    Directories exist implicitly as prefixes of stored files, or explicitly
    after ``make_directory``.  Paths listed in *read_only* reject writes with
    ``PermissionError``, which lets tests drive the write-failure paths.
    """

    def __init__(
        self,
        files: Optional[Dict[str, str]] = None,
        *,
        read_only: Optional[Iterable[str]] = None,
    ) -> None:
        self.files: Dict[str, str] = {}
        self._directories: Set[str] = set()
        self._read_only: Set[str] = {_normalise(p) for p in (read_only or ())}
        for path, content in (files or {}).items():
            self.files[_normalise(path)] = content

    def read(self, path: PathLike) -> str:
        key: str = _normalise(path)
        if key not in self.files:
            raise FileNotFoundError(key)
        return self.files[key]

    def write(self, path: PathLike, content: str) -> int:
        key: str = _normalise(path)
        if not self.is_writable(key):
            raise PermissionError(f"Permission denied: '{key}'")
        self.files[key] = content
        return len(content.encode("utf-8"))

    def exists(self, path: PathLike) -> bool:
        key: str = _normalise(path)
        return key in self.files or self.is_directory(key)

    def is_directory(self, path: PathLike) -> bool:
        key: str = _normalise(path)
        if key == "" or key in self._directories:
            return True
        prefix: str = key + "/"
        return any(name.startswith(prefix) for name in self.files)

    def list(self, path: PathLike) -> List[str]:
        key: str = _normalise(path)
        prefix: str = f"{key}/" if key else ""
        children: Set[str] = set()
        for name in list(self.files) + list(self._directories):
            if name.startswith(prefix) and name != key:
                children.add(name[len(prefix):].split("/", 1)[0])
        return sorted(children)

    def delete(self, path: PathLike) -> bool:
        return self.files.pop(_normalise(path), None) is not None

    def make_directory(self, path: PathLike) -> None:
        key: str = _normalise(path)
        while key:
            self._directories.add(key)
            key = posixpath.dirname(key)

    def is_writable(self, path: PathLike) -> bool:
        key: str = _normalise(path)
        return not any(
            key == locked or key.startswith(locked + "/") for locked in self._read_only
        )

    def __len__(self) -> int:
        return len(self.files)

    def __repr__(self) -> str:
        return f"<MemoryFileSystem files={len(self.files)}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
    "PathLike",
]

logger.debug("blueprintc.filesystem loaded — %d public symbols.", len(__all__))
