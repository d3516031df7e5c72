"""In-process storage, used for tests and dry runs."""

from __future__ import annotations

import builtins

from topicgraph.storage.port import StoragePort


class InMemoryStorage(StoragePort):
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}

    async def read(self, path: str) -> bytes:
        try:
            return self.objects[path]
        except KeyError as exc:
            raise FileNotFoundError(f"artifact not found: {path}") from exc

    async def write(self, path: str, data: bytes) -> None:
        self.objects[path] = bytes(data)

    async def exists(self, path: str) -> bool:
        return path in self.objects

    async def delete(self, path: str) -> None:
        self.objects.pop(path, None)

    async def get_url(self, path: str, ttl_s: int | None = None) -> str:
        return f"memory://{path}"

    async def list(self, prefix: str) -> builtins.list[str]:
        return sorted(k for k in self.objects if k.startswith(prefix))
