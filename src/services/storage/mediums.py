"""
Storage Medium Implementations

InMemoryMedium: a dict. Used by tests and throwaway sessions.
JsonFileMedium: one `<key>.json` file per key inside a data directory.

TRADEOFFS (JsonFileMedium):
- Whole-document rewrites on every save (fine for a personal ledger)
- No locking; a second process writing the same directory can lose updates
- Writes go through a temp file + rename so a crash never leaves half a document
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from src.services.storage.interface import (
    CorruptDataError,
    StorageMedium,
    StorageUnavailableError,
)


class InMemoryMedium(StorageMedium):
    """Process-local medium backed by a dict."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileMedium(StorageMedium):
    """
    Directory-backed medium.

    Keys map to `<data_dir>/<key>.json`. The directory is created on first use.
    """

    SUFFIX = ".json"

    def __init__(self, data_dir: Path | str):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}{self.SUFFIX}"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptDataError(key, f"not valid UTF-8: {e}")
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read {path}: {e}")

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._data_dir, prefix=f".{key}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageUnavailableError(f"Cannot write {path}: {e}")

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot remove {path}: {e}")

    def keys(self) -> list[str]:
        if not self._data_dir.is_dir():
            return []
        return sorted(
            p.name[: -len(self.SUFFIX)]
            for p in self._data_dir.glob(f"*{self.SUFFIX}")
            if not p.name.startswith(".")
        )
