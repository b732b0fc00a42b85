"""Filesystem object storage with named buckets.

Layout:
  <root>/<bucket>/<path>

Writes go through a temp file and ``os.replace`` so a reader never sees a
half-written object. Paths are confined to their bucket directory.
"""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import tempfile
import time
from pathlib import Path, PurePosixPath

from ..errors import StorageError

log = logging.getLogger(__name__)


def build_object_path(prefix: str, owner_id: str, file_name: str) -> str:
    """Unique object path for an upload, keeping the original extension."""
    suffix = PurePosixPath(file_name).suffix
    stamp = int(time.time() * 1000)
    return f"{prefix}/{owner_id}-{stamp}-{secrets.token_hex(4)}{suffix}"


class FileStorage:
    def __init__(self, root_dir: str | Path = "data/storage", public_base_url: str = ""):
        self.root_dir = Path(root_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def path_for(self, bucket: str, path: str) -> Path:
        if not bucket or "/" in bucket or bucket in (".", ".."):
            raise StorageError(f"invalid bucket name {bucket!r}")
        bucket_dir = (self.root_dir / bucket).resolve()
        dest = (bucket_dir / path.lstrip("/")).resolve()
        if dest == bucket_dir or bucket_dir not in dest.parents:
            raise StorageError(f"path {path!r} escapes bucket {bucket!r}")
        return dest

    def exists(self, bucket: str, path: str) -> bool:
        return self.path_for(bucket, path).is_file()

    def _write(self, bucket: str, path: str, data: bytes, upsert: bool) -> str:
        dest = self.path_for(bucket, path)
        if dest.exists() and not upsert:
            raise StorageError(f"object already exists: {bucket}/{path}")
        dest.parent.mkdir(parents=True, exist_ok=True)

        fd = None
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=f"{dest.name}.tmp.", dir=str(dest.parent))
            with os.fdopen(fd, "wb") as f:
                fd = None
                f.write(data or b"")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, dest)
            tmp_path = None
        except OSError as exc:
            raise StorageError(f"upload to {bucket}/{path} failed: {exc}") from exc
        finally:
            if fd is not None:
                try:
                    os.close(fd)
                except OSError:
                    pass
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
        return path

    def _remove(self, bucket: str, paths: list[str]) -> list[str]:
        removed: list[str] = []
        for path in paths:
            target = self.path_for(bucket, path)
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StorageError(f"remove {bucket}/{path} failed: {exc}") from exc
            removed.append(path)
        return removed

    def _read(self, bucket: str, path: str) -> bytes:
        target = self.path_for(bucket, path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise StorageError(f"object not found: {bucket}/{path}") from None

    # Async surface; the file I/O runs in a worker thread.

    async def upload(self, bucket: str, path: str, data: bytes, *, upsert: bool = False) -> str:
        """Store bytes at ``bucket/path``. Refuses to overwrite unless ``upsert``."""
        return await asyncio.to_thread(self._write, bucket, path, data, upsert)

    async def remove(self, bucket: str, paths: list[str]) -> list[str]:
        """Remove objects; returns the paths that existed. Missing paths are ignored."""
        return await asyncio.to_thread(self._remove, bucket, paths)

    async def read(self, bucket: str, path: str) -> bytes:
        return await asyncio.to_thread(self._read, bucket, path)

    def get_public_url(self, bucket: str, path: str) -> str:
        self.path_for(bucket, path)
        return f"{self.public_base_url}/{bucket}/{path.lstrip('/')}"


def get_storage() -> FileStorage:
    """FastAPI dependency for the configured storage root."""
    from ..config import settings

    return FileStorage(settings.storage_root, settings.storage_public_base_url)
