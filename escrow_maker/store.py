"""
escrow_maker.store
==================

Persistence for the single JSON configuration document.

- `ConfigStore` is the injectable interface (`load` / `save` / `backup`) plus
  flat top-level accessors that read-modify-write the whole document.
- `JsonFileStore` keeps the document at ``~/.escrow/config.json`` with an
  owner-only directory (0700) and file (0600), writing via same-dir temp file,
  fsync and atomic replace.
- `MemoryStore` keeps it in memory and records every save, for tests.

There is no locking. Two CLI processes saving at the same time may lose one
of the writes.
"""

from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import StorageError

log = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".escrow"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.json"
CONFIG_FILE_ENV = "ESCROW_CONFIG_FILE"

DIR_MODE = 0o700
FILE_MODE = 0o600

Document = Dict[str, Any]


class ConfigStore:
    """Abstract document store. Subclasses provide load/save/backup."""

    def load(self) -> Document:
        raise NotImplementedError

    def save(self, document: Document) -> None:
        raise NotImplementedError

    def backup(self) -> str:
        raise NotImplementedError

    # Flat accessors, only for legacy or hand-set top-level keys.

    def get_value(self, key: str, default: Any = None) -> Any:
        return self.load().get(key, default)

    def set_value(self, key: str, value: Any) -> None:
        document = self.load()
        document[key] = value
        self.save(document)

    def unset_value(self, key: str) -> bool:
        document = self.load()
        if key not in document:
            return False
        del document[key]
        self.save(document)
        return True


def _fsync_dir(path: Path) -> None:
    with contextlib.suppress(OSError):
        fd = os.open(str(path), os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)


class JsonFileStore(ConfigStore):
    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path).expanduser() if path else DEFAULT_CONFIG_PATH

    def __repr__(self) -> str:
        return f"JsonFileStore(path={str(self.path)!r})"

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".backup")

    def load(self) -> Document:
        """Read the document; a missing directory or file yields ``{}``."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError as e:
            raise StorageError(str(self.path), f"invalid UTF-8 ({e.reason} at byte {e.start})") from e
        except OSError as e:
            raise StorageError(str(self.path), e.strerror or str(e)) from e

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise StorageError(str(self.path), f"invalid JSON ({e})") from e
        if not isinstance(data, dict):
            raise StorageError(str(self.path), "top-level value is not a JSON object")
        return data

    def _ensure_dir(self) -> Path:
        parent = self.path.parent
        created = not parent.exists()
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(str(self.path), e.strerror or str(e), action="write") from e
        if created:
            with contextlib.suppress(OSError):
                os.chmod(parent, DIR_MODE)
        return parent

    def save(self, document: Document) -> None:
        parent = self._ensure_dir()
        payload = json.dumps(document, indent=2) + "\n"
        try:
            fd, tmpname = tempfile.mkstemp(prefix=".config.", suffix=".tmp", dir=str(parent))
        except OSError as e:
            raise StorageError(str(self.path), e.strerror or str(e), action="write") from e
        tmp = Path(tmpname)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp, FILE_MODE)
            os.replace(str(tmp), str(self.path))
            _fsync_dir(parent)
        except OSError as e:
            raise StorageError(str(self.path), e.strerror or str(e), action="write") from e
        finally:
            if tmp.exists():
                with contextlib.suppress(OSError):
                    tmp.unlink()
        log.debug("saved configuration to %s", self.path)

    def backup(self) -> str:
        """Copy the current file to ``<path>.backup`` and return that path."""
        target = self.backup_path
        try:
            shutil.copyfile(self.path, target)
            os.chmod(target, FILE_MODE)
        except OSError as e:
            raise StorageError(str(target), e.strerror or str(e), action="back up") from e
        return str(target)


class MemoryStore(ConfigStore):
    """
    In-memory store. Every saved document is appended to `saves` (deep
    copies), so tests can assert exactly what would have hit the disk.
    """

    def __init__(self, document: Optional[Document] = None, *, fail_backup: bool = False) -> None:
        self._document: Document = copy.deepcopy(document) if document else {}
        self.saves: List[Document] = []
        self.backups: List[Document] = []
        self.fail_backup = fail_backup

    @property
    def document(self) -> Document:
        return copy.deepcopy(self._document)

    def load(self) -> Document:
        return copy.deepcopy(self._document)

    def save(self, document: Document) -> None:
        self._document = copy.deepcopy(document)
        self.saves.append(copy.deepcopy(document))

    def backup(self) -> str:
        if self.fail_backup:
            raise StorageError("<memory>.backup", "backup disabled", action="back up")
        self.backups.append(copy.deepcopy(self._document))
        return "<memory>.backup"


__all__ = [
    "ConfigStore",
    "JsonFileStore",
    "MemoryStore",
    "DEFAULT_CONFIG_PATH",
    "CONFIG_FILE_ENV",
    "DIR_MODE",
    "FILE_MODE",
]
