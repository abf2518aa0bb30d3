"""Key-addressable blob storage for ticket and invoice artifacts.

Keys are filenames derived from unguessable tokens, so they are written
once: ``put`` refuses to overwrite an existing key.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from protean.exceptions import ObjectNotFoundError

from ticketing.errors import InvalidStateError


class BlobStore(ABC):
    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return the key."""
        ...

    @abstractmethod
    def get(self, key: str) -> bytes: ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...


class MemoryBlobStore(BlobStore):
    def __init__(self) -> None:
        self.blobs: dict[str, tuple[bytes, str]] = {}

    def put(self, key: str, data: bytes, content_type: str) -> str:
        if key in self.blobs:
            raise InvalidStateError("key", f"Blob {key} already exists")
        self.blobs[key] = (data, content_type)
        return key

    def get(self, key: str) -> bytes:
        try:
            return self.blobs[key][0]
        except KeyError:
            raise ObjectNotFoundError(f"Blob {key} does not exist") from None

    def exists(self, key: str) -> bool:
        return key in self.blobs


class FilesystemBlobStore(BlobStore):
    """Stores blobs as files under ``root``; ``content_type`` is not persisted."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise InvalidStateError("key", f"Blob key {key} escapes the store root")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(path, "xb") as fh:
                fh.write(data)
        except FileExistsError:
            raise InvalidStateError("key", f"Blob {key} already exists") from None
        return key

    def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.exists():
            raise ObjectNotFoundError(f"Blob {key} does not exist")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).exists()
