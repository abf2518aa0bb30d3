"""Artifact renderer and blob store registry.

Same swap pattern as the gateway factory: defaults are built on first use,
tests replace or reset them.
"""

from ticketing.artifacts.blob_store import BlobStore, FilesystemBlobStore, MemoryBlobStore
from ticketing.artifacts.fake_renderer import FakeRenderer
from ticketing.artifacts.renderer_port import ArtifactRenderer
from ticketing.config import get_settings

_renderer: ArtifactRenderer | None = None
_blob_store: BlobStore | None = None


def get_renderer() -> ArtifactRenderer:
    global _renderer
    if _renderer is None:
        _renderer = FakeRenderer()
    return _renderer


def set_renderer(renderer: ArtifactRenderer) -> None:
    global _renderer
    _renderer = renderer


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store is None:
        root = get_settings().blob_root
        _blob_store = FilesystemBlobStore(root) if root else MemoryBlobStore()
    return _blob_store


def set_blob_store(store: BlobStore) -> None:
    global _blob_store
    _blob_store = store


def reset_artifacts() -> None:
    global _renderer, _blob_store
    _renderer = None
    _blob_store = None
