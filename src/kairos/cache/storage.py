"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Durable key-value slots used to mirror cache snapshots across restarts.
"""

from __future__ import annotations

import re
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ..errors import CachePersistenceError

_SLOT_NAME = re.compile(r"^[A-Za-z0-9_.:-]+$")


@runtime_checkable
class DurableStorage(Protocol):
    """Synchronous string slot store, modelled on browser ``localStorage``."""

    backend_id: str

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def usage_bytes(self) -> int: ...


class InMemoryStorage:
    """
    Process-local slot store.

    Share one instance between caches to emulate durable storage in tests and
    single-process tools; contents are lost on process exit.
    """

    backend_id = "memory"

    def __init__(self) -> None:
        self._slots: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._slots.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._slots[key] = value

    def remove_item(self, key: str) -> None:
        self._slots.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._slots.keys())

    def usage_bytes(self) -> int:
        return sum(
            len(key.encode("utf-8")) + len(value.encode("utf-8"))
            for key, value in self._slots.items()
        )


class FileStorage:
    """One UTF-8 file per slot under ``directory``; writes are atomic renames."""

    backend_id = "file"

    def __init__(self, directory: str | Path, *, suffix: str = ".json") -> None:
        self._dir = Path(directory)
        self._suffix = suffix
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        if not _SLOT_NAME.match(key):
            raise CachePersistenceError(f"Invalid storage slot name: {key!r}")
        return self._dir / f"{key}{self._suffix}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CachePersistenceError(f"Failed to read slot '{key}': {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_name(path.name + ".tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with self._lock:
                tmp.write_text(value, encoding="utf-8")
                tmp.replace(path)
        except OSError as exc:
            raise CachePersistenceError(f"Failed to write slot '{key}': {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise CachePersistenceError(f"Failed to remove slot '{key}': {exc}") from exc

    def _slot_files(self) -> list[Path]:
        if not self._dir.exists():
            return []
        return [
            path
            for path in self._dir.iterdir()
            if path.is_file() and path.name.endswith(self._suffix)
        ]

    def keys(self) -> list[str]:
        try:
            return sorted(path.name[: -len(self._suffix)] for path in self._slot_files())
        except OSError as exc:
            raise CachePersistenceError(f"Failed to list slots in {self._dir}: {exc}") from exc

    def usage_bytes(self) -> int:
        try:
            return sum(path.stat().st_size for path in self._slot_files())
        except OSError as exc:
            raise CachePersistenceError(f"Failed to size slots in {self._dir}: {exc}") from exc


class RedisStorage:
    """Slot store backed by a synchronous ``redis.Redis`` client."""

    backend_id = "redis"

    def __init__(self, redis_client: Any, *, prefix: str = "kairos:storage") -> None:
        self._redis = redis_client
        self._prefix = prefix.rstrip(":")

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get_item(self, key: str) -> str | None:
        try:
            blob = self._redis.get(self._key(key))
        except Exception as exc:  # noqa: BLE001
            raise CachePersistenceError(f"Redis read failed for '{key}': {exc}") from exc
        if blob is None:
            return None
        if isinstance(blob, bytes):
            return blob.decode("utf-8")
        return str(blob)

    def set_item(self, key: str, value: str) -> None:
        try:
            self._redis.set(self._key(key), value)
        except Exception as exc:  # noqa: BLE001
            raise CachePersistenceError(f"Redis write failed for '{key}': {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            self._redis.delete(self._key(key))
        except Exception as exc:  # noqa: BLE001
            raise CachePersistenceError(f"Redis delete failed for '{key}': {exc}") from exc

    def keys(self) -> list[str]:
        strip = len(self._prefix) + 1
        out: list[str] = []
        try:
            for raw in self._redis.scan_iter(match=f"{self._prefix}:*"):
                name = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
                out.append(name[strip:])
        except Exception as exc:  # noqa: BLE001
            raise CachePersistenceError(f"Redis scan failed for '{self._prefix}': {exc}") from exc
        return sorted(out)

    def usage_bytes(self) -> int:
        total = 0
        for key in self.keys():
            value = self.get_item(key)
            if value is not None:
                total += len(key.encode("utf-8")) + len(value.encode("utf-8"))
        return total


def create_storage(
    backend: str | DurableStorage = "memory",
    *,
    directory: str | Path | None = None,
    redis_client: Any | None = None,
    redis_url: str | None = None,
    prefix: str = "kairos:storage",
) -> DurableStorage:
    """
    Resolve a durable storage backend from id or passthrough instance.

    Backends:
    - `memory` (default)
    - `file` (requires `directory`)
    - `redis` (uses `redis_client`, or builds one from `redis_url`)
    """
    if not isinstance(backend, str):
        return backend

    key = backend.strip().lower()
    if key in ("mem", "memory", "inmemory", "in_memory"):
        return InMemoryStorage()

    if key in ("file", "fs"):
        if directory is None:
            raise ValueError("File storage requires `directory`")
        return FileStorage(directory)

    if key == "redis":
        client = redis_client
        if client is None:
            try:
                import redis
            except ModuleNotFoundError as exc:  # pragma: no cover
                raise RuntimeError(
                    "Redis storage backend requires `redis` to be installed."
                ) from exc
            client = redis.Redis.from_url(redis_url or "redis://localhost:6379/0")
        return RedisStorage(client, prefix=prefix)

    raise ValueError(f"Unknown storage backend: {backend}")
