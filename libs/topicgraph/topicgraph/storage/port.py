"""Storage port and artifact path convention."""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Any

ARTIFACT_CATEGORIES = frozenset(
    {
        "raw",
        "processed",
        "audio",
        "transcripts",
        "scenes",
        "topics",
        "embeddings",
        "graph",
        "snippets",
        "thumbnails",
        "captions",
        "exports",
    }
)


def artifact_path(video_id: str, category: str, name: str) -> str:
    """Return `videos/{video_id}/{category}/{name}`."""
    vid = str(video_id or "").strip().replace("/", "_")
    if not vid:
        raise ValueError("video_id is required")
    if category not in ARTIFACT_CATEGORIES:
        raise ValueError(f"unknown artifact category: {category!r}")
    safe_name = str(name or "").strip().lstrip("/")
    if not safe_name or ".." in safe_name.split("/"):
        raise ValueError(f"invalid artifact name: {name!r}")
    return f"videos/{vid}/{category}/{safe_name}"


def version_artifact_path(video_id: str, category: str, name: str, graph_version_id: str) -> str:
    """Like `artifact_path`, with the graph version in the file name.

    `graph.json` becomes `graph-{graph_version_id}.json`, so a forked version
    never overwrites the files of the version it was forked from.
    """
    gv = str(graph_version_id or "").strip().replace("/", "_")
    if not gv:
        raise ValueError("graph_version_id is required")
    base = PurePosixPath(str(name or "").strip().lstrip("/"))
    return artifact_path(video_id, category, str(base.with_name(f"{base.stem}-{gv}{base.suffix}")))


class StoragePort(ABC):
    """Byte storage addressed by relative paths.

    Writes must be idempotent: writing the same path twice replaces the content.
    """

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read bytes; raises FileNotFoundError when missing."""

    @abstractmethod
    async def write(self, path: str, data: bytes) -> None:
        """Create or replace the object at path."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete path; missing paths are ignored."""

    @abstractmethod
    async def get_url(self, path: str, ttl_s: int | None = None) -> str:
        ...

    @abstractmethod
    async def list(self, prefix: str) -> list[str]:
        """List paths under prefix, sorted."""

    async def read_text(self, path: str) -> str:
        return (await self.read(path)).decode("utf-8")

    async def write_text(self, path: str, text: str) -> None:
        await self.write(path, text.encode("utf-8"))

    async def read_json(self, path: str) -> Any:
        return json.loads(await self.read_text(path))

    async def write_json(self, path: str, obj: Any) -> None:
        raw = json.dumps(obj, ensure_ascii=False, indent=2).encode("utf-8")
        await self.write(path, raw)

    async def download_to(self, path: str, dest: Path) -> Path:
        """Copy an object to a local file (for tools that need a filesystem path)."""
        data = await self.read(path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(dest.write_bytes, data)
        return dest

    async def upload_from(self, path: str, src: Path) -> None:
        data = await asyncio.to_thread(src.read_bytes)
        await self.write(path, data)
