"""Object-storage abstraction and a filesystem-backed implementation."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .. import logging_manager
from ..errors import NotFoundError, StorageError

logger = logging_manager.get_logger().getChild("storage")


@dataclass(frozen=True)
class StoredObject:
    """A single key in the object store."""

    key: str
    size: int = 0


class ObjectStore:
    """Minimal interface over a bucket of keyed blobs."""

    def list(self, prefix: str) -> List[StoredObject]:
        raise NotImplementedError

    def read_bytes(self, key: str) -> bytes:
        raise NotImplementedError

    def write_bytes(self, key: str, data: bytes, *, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def signed_url(self, key: str, *, expires_in: int = 3600) -> str:
        raise NotImplementedError

    def read_text(self, key: str) -> str:
        return self.read_bytes(key).decode("utf-8")

    def write_text(self, key: str, text: str, *, content_type: str = "text/plain") -> None:
        self.write_bytes(key, text.encode("utf-8"), content_type=content_type)

    def copy(self, source_key: str, target_key: str) -> None:
        self.write_bytes(target_key, self.read_bytes(source_key))

    def delete_many(self, keys: Iterable[str]) -> int:
        count = 0
        for key in keys:
            self.delete(key)
            count += 1
        return count

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key under ``prefix`` and return how many were removed."""
        removed = self.delete_many(obj.key for obj in self.list(prefix))
        logger.info(
            "Deleted objects under prefix",
            extra={"event": "storage.delete_prefix", "attributes": {"prefix": prefix, "count": removed}},
        )
        return removed


class LocalObjectStore(ObjectStore):
    """Store objects as files below ``root``; used for development and tests."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        candidate = (self._root / key.lstrip("/")).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            raise StorageError(f"Invalid object key: {key}")
        return candidate

    def list(self, prefix: str) -> List[StoredObject]:
        results: List[StoredObject] = []
        if not self._root.exists():
            return results
        for path in sorted(self._root.rglob("*")):
            if not path.is_file():
                continue
            key = path.relative_to(self._root).as_posix()
            if key.startswith(prefix):
                results.append(StoredObject(key=key, size=path.stat().st_size))
        return results

    def read_bytes(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"Object {key} not found") from exc
        except OSError as exc:
            raise StorageError(f"Unable to read {key}: {exc}") from exc

    def write_bytes(self, key: str, data: bytes, *, content_type: Optional[str] = None) -> None:
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(f".{path.name}.tmp")
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as exc:
            raise StorageError(f"Unable to write {key}: {exc}") from exc

    def copy(self, source_key: str, target_key: str) -> None:
        source = self._path_for(source_key)
        if not source.is_file():
            raise NotFoundError(f"Object {source_key} not found")
        target = self._path_for(target_key)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"Unable to delete {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    def signed_url(self, key: str, *, expires_in: int = 3600) -> str:
        return self._path_for(key).as_uri()


__all__ = ["LocalObjectStore", "ObjectStore", "StoredObject"]
