"""Directory-backed implementation of StorageBackend."""

from __future__ import annotations

import asyncio
import os
import posixpath
import tempfile
from pathlib import Path

from certcache_core.exceptions import CacheMissError, ConnectivityError, InvalidKeyError


class DirCache:
    """Persistent cache storing one file per key inside a directory."""

    def __init__(self, cache_dir: Path) -> None:
        """Initialize with a cache directory, creating it if missing."""
        cache_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        self._dir = cache_dir

    @property
    def directory(self) -> Path:
        """Root directory holding the cache files."""
        return self._dir

    def _path(self, key: str) -> Path:
        """Map a key to a file path that cannot leave the cache directory.

        Keys that clean down to the directory itself, such as ``""``, ``"."``
        and ``".."``, and keys containing NUL raise InvalidKeyError.
        """
        if "\0" in key:
            raise InvalidKeyError(key, "contains a NUL character")
        name = posixpath.normpath("/" + key.replace("\\", "/")).lstrip("/")
        if not name:
            raise InvalidKeyError(key, "does not name a file")
        return self._dir / name

    async def get(self, key: str) -> bytes:
        """Read the file stored for key."""
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError):
            raise CacheMissError(key) from None
        except OSError as exc:
            raise ConnectivityError(f"reading {path}: {exc}") from exc

    async def put(self, key: str, data: bytes) -> None:
        """Write data atomically: temp file in the same directory, then rename."""
        path = self._path(key)
        try:
            await asyncio.to_thread(self._write, path, bytes(data))
        except OSError as exc:
            raise ConnectivityError(f"writing {path}: {exc}") from exc

    async def delete(self, key: str) -> None:
        """Remove the file for key; a missing file is not an error."""
        path = self._path(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise ConnectivityError(f"removing {path}: {exc}") from exc

    async def close(self) -> None:
        """Nothing to release; files are closed after every operation."""

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
