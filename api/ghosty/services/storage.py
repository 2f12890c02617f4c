"""Private object storage for verification documents."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO
from urllib.parse import quote

from ghosty import config
from ghosty.auth.security import sign_storage_path, verify_storage_signature


class StorageError(RuntimeError):
    pass


class AbstractStorage(ABC):
    """Interface for storage backends keyed by bucket and relative path."""

    @abstractmethod
    def save(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Persist bytes and return the stored path."""

    @abstractmethod
    def remove(self, bucket: str, path: str) -> None:
        """Delete a stored object."""

    @abstractmethod
    def exists(self, bucket: str, path: str) -> bool:
        """Return whether the object exists."""

    @abstractmethod
    def open(self, bucket: str, path: str) -> BinaryIO:
        """Open a stored object for reading."""

    def signed_url(self, bucket: str, path: str, expires_in: int | None = None) -> str:
        expires = int(time.time()) + int(expires_in or config.SIGNED_URL_TTL_SECONDS)
        signature = sign_storage_path(bucket, path, expires)
        return f"{config.APP_URL}/api/storage/{quote(bucket)}/{quote(path)}?expires={expires}&signature={signature}"

    def verify_signed(self, bucket: str, path: str, expires: int, signature: str) -> bool:
        if int(expires) < int(time.time()):
            return False
        return verify_storage_signature(bucket, path, expires, signature)


class LocalStorage(AbstractStorage):
    """Objects live at ``{base}/{bucket}/{path}`` on the local filesystem."""

    def __init__(self, base_dir: str | Path | None = None):
        self.base_directory = Path(base_dir or config.STORAGE_DIR)

    def _resolve(self, bucket: str, path: str) -> Path:
        root = (self.base_directory / bucket).resolve()
        target = (root / path).resolve()
        if root != target and root not in target.parents:
            raise StorageError("Invalid storage path")
        return target

    def save(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(bucket, path)
        if target.exists():
            raise StorageError("Object already exists")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        return path

    def remove(self, bucket: str, path: str) -> None:
        target = self._resolve(bucket, path)
        try:
            target.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(str(exc)) from exc

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()

    def open(self, bucket: str, path: str) -> BinaryIO:
        return open(self._resolve(bucket, path), "rb")


_storage: AbstractStorage | None = None


def get_storage() -> AbstractStorage:
    global _storage
    if _storage is None:
        _storage = LocalStorage()
    return _storage
