"""Local filesystem storage for development."""

from __future__ import annotations

import asyncio
import builtins
import os
import shutil
import tempfile
from pathlib import Path

from topicgraph.storage.port import StoragePort


class LocalStorage(StoragePort):
    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir).resolve()

    def _path(self, path: str) -> Path:
        rel = str(path or "").strip().lstrip("/")
        out = (self.base_dir / rel).resolve()
        if out != self.base_dir and self.base_dir not in out.parents:
            raise ValueError(f"path escapes storage root: {path!r}")
        return out

    def local_path(self, path: str) -> Path:
        return self._path(path)

    async def read(self, path: str) -> bytes:
        p = self._path(path)
        if not p.is_file():
            raise FileNotFoundError(f"artifact not found: {path}")
        return await asyncio.to_thread(p.read_bytes)

    async def write(self, path: str, data: bytes) -> None:
        p = self._path(path)

        def _write() -> None:
            p.parent.mkdir(parents=True, exist_ok=True)
            # Replace atomically so a retried write never leaves a torn file.
            fd, tmp = tempfile.mkstemp(dir=p.parent, prefix=f".{p.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                os.replace(tmp, p)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise

        await asyncio.to_thread(_write)

    async def exists(self, path: str) -> bool:
        return self._path(path).is_file()

    async def delete(self, path: str) -> None:
        self._path(path).unlink(missing_ok=True)

    async def get_url(self, path: str, ttl_s: int | None = None) -> str:
        return self._path(path).as_uri()

    async def list(self, prefix: str) -> builtins.list[str]:
        base = self._path(prefix) if prefix else self.base_dir
        if base.is_file():
            return [prefix]
        if not base.exists():
            return []
        return sorted(
            p.relative_to(self.base_dir).as_posix()
            for p in base.rglob("*")
            if p.is_file() and not p.name.endswith(".tmp")
        )

    async def download_to(self, path: str, dest: Path) -> Path:
        src = self._path(path)
        if not src.is_file():
            raise FileNotFoundError(f"artifact not found: {path}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, src, dest)
        return dest

    async def upload_from(self, path: str, src: Path) -> None:
        dst = self._path(path)
        dst.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, src, dst)
