"""Key-value storage for saved reports and schedules.

The store offers get/set/delete plus a bounded scan; there is no prefix query,
so callers scan page by page and filter keys themselves.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

from .config import STORE_SCAN_LIMIT


@dataclass(slots=True)
class ScanPage:
    items: list[tuple[str, Any]] = field(default_factory=list)
    cursor: str | None = None


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def scan(self, limit: int = STORE_SCAN_LIMIT, cursor: str | None = None) -> ScanPage: ...


def _page(data: dict[str, Any], limit: int, cursor: str | None) -> ScanPage:
    keys = sorted(data)
    start = int(cursor) if cursor else 0
    limit = max(1, int(limit))
    chunk = keys[start : start + limit]
    nxt = start + len(chunk)
    return ScanPage(
        items=[(k, data[k]) for k in chunk],
        cursor=str(nxt) if nxt < len(keys) else None,
    )


class MemoryStore:
    """In-process store; values are deep-copied through JSON like a real backend."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = {}
        self._lock = Lock()
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Any:
        with self._lock:
            if key not in self._data:
                return None
            return json.loads(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def scan(self, limit: int = STORE_SCAN_LIMIT, cursor: str | None = None) -> ScanPage:
        with self._lock:
            snapshot = {k: json.loads(v) for k, v in self._data.items()}
        return _page(snapshot, limit, cursor)


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(content, encoding="utf-8")
    os.replace(tmp, path)


class JsonFileStore:
    """Single JSON document on disk; every write replaces the file atomically."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = Lock()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self.path} does not contain a JSON object")
        return data

    def get(self, key: str) -> Any:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            _atomic_write(self.path, json.dumps(data, indent=2, sort_keys=True))

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                _atomic_write(self.path, json.dumps(data, indent=2, sort_keys=True))

    def scan(self, limit: int = STORE_SCAN_LIMIT, cursor: str | None = None) -> ScanPage:
        with self._lock:
            data = self._load()
        return _page(data, limit, cursor)
