from __future__ import annotations

import json

import pytest

from topicgraph.config import Settings, StorageSettings
from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import ConfigurationError, ProviderError
from topicgraph.storage import (
    InMemoryStorage,
    LocalStorage,
    artifact_path,
    get_storage,
    version_artifact_path,
)
from topicgraph.storage.s3_pagination import iter_list_objects_v2
from topicgraph.utils.llm_json import parse_llm_json
from topicgraph.utils.subprocess import run_tool, run_tool_checked
from topicgraph.utils.text import format_duration, sanitize_filename


def test_artifact_path_convention() -> None:
    assert artifact_path("vid-1", "graph", "graph.json") == "videos/vid-1/graph/graph.json"
    with pytest.raises(ValueError):
        artifact_path("vid-1", "secrets", "x")
    with pytest.raises(ValueError):
        artifact_path("vid-1", "graph", "../escape")
    with pytest.raises(ValueError):
        artifact_path("", "graph", "g.json")


def test_version_artifact_path_puts_version_in_file_name() -> None:
    assert version_artifact_path("vid-1", "graph", "graph.json", "gv-1") == "videos/vid-1/graph/graph-gv-1.json"
    assert version_artifact_path("vid-1", "exports", "export-7.md", "gv-2") == "videos/vid-1/exports/export-7-gv-2.md"
    assert version_artifact_path("vid-1", "graph", "graph.json", "a") != version_artifact_path(
        "vid-1", "graph", "graph.json", "b"
    )
    with pytest.raises(ValueError):
        version_artifact_path("vid-1", "graph", "graph.json", "")


@pytest.mark.asyncio
async def test_local_storage_roundtrip_and_overwrite(tmp_path) -> None:
    storage = LocalStorage(tmp_path)
    await storage.write_json("videos/v/graph/graph.json", {"a": 1})
    await storage.write_json("videos/v/graph/graph.json", {"a": 2})

    assert await storage.read_json("videos/v/graph/graph.json") == {"a": 2}
    assert await storage.list("videos/v") == ["videos/v/graph/graph.json"]
    assert (await storage.get_url("videos/v/graph/graph.json")).startswith("file://")

    await storage.delete("videos/v/graph/graph.json")
    await storage.delete("videos/v/graph/graph.json")
    assert not await storage.exists("videos/v/graph/graph.json")
    with pytest.raises(FileNotFoundError):
        await storage.read("videos/v/graph/graph.json")


def test_local_storage_refuses_paths_outside_root(tmp_path) -> None:
    with pytest.raises(ValueError):
        LocalStorage(tmp_path / "root").local_path("../outside.txt")


@pytest.mark.asyncio
async def test_memory_storage_download_and_upload(tmp_path) -> None:
    storage = InMemoryStorage()
    await storage.write("videos/v/audio/audio.wav", b"RIFF")
    local = await storage.download_to("videos/v/audio/audio.wav", tmp_path / "a.wav")
    assert local.read_bytes() == b"RIFF"
    await storage.upload_from("videos/v/audio/copy.wav", local)
    assert await storage.list("videos/v/audio/") == ["videos/v/audio/audio.wav", "videos/v/audio/copy.wav"]


def _with_backend(settings: Settings, backend: str) -> Settings:
    return settings.model_copy(update={"storage": StorageSettings(_env_file=None, backend=backend)})


def test_get_storage_backends(settings: Settings) -> None:
    assert isinstance(get_storage(settings), LocalStorage)
    assert isinstance(get_storage(_with_backend(settings, "memory")), InMemoryStorage)
    with pytest.raises(ConfigurationError):
        get_storage(_with_backend(settings, "ftp"))


def test_parse_llm_json_variants() -> None:
    assert parse_llm_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_llm_json("<think>hmm</think>{\"a\": 2}") == {"a": 2}
    assert parse_llm_json('Sure! Here it is: {"a": 3} Thanks.') == {"a": 3}
    with pytest.raises(json.JSONDecodeError):
        parse_llm_json("no json here")


def test_text_helpers() -> None:
    assert sanitize_filename("topic-l1-0") == "topic-l1-0"
    assert sanitize_filename("a/b c?") == "a_b_c"
    assert sanitize_filename("...") == "untitled"
    assert format_duration(59.6) == "1:00"
    assert format_duration(3600) == "1:00:00"


@pytest.mark.asyncio
async def test_run_tool_captures_both_streams() -> None:
    result = await run_tool(["bash", "-c", "echo -n hi; echo -n warn >&2"])
    assert result.ok
    assert result.tool == "bash"
    assert result.stdout == b"hi"
    assert result.text() == "hiwarn"


@pytest.mark.asyncio
async def test_run_tool_returns_failed_exit() -> None:
    result = await run_tool(["bash", "-c", "echo oops >&2; exit 3"])
    assert result.returncode == 3
    assert result.stderr_tail() == "oops"


@pytest.mark.asyncio
async def test_run_tool_checked_raises_provider_errors() -> None:
    with pytest.raises(ProviderError, match="exit code 3: oops") as failed:
        await run_tool_checked(["bash", "-c", "echo oops >&2; exit 3"])
    assert failed.value.error_code == ErrorCode.MEDIA_FAILED

    with pytest.raises(ProviderError, match="timed out"):
        await run_tool_checked(["bash", "-c", "sleep 5"], timeout_s=0.2)

    with pytest.raises(ProviderError, match="binary not found") as missing:
        await run_tool_checked(["no-such-media-tool"], error_code=ErrorCode.DOWNLOAD_FAILED)
    assert missing.value.error_code == ErrorCode.DOWNLOAD_FAILED


class _PagedClient:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    def list_objects_v2(self, **kwargs):
        self.calls.append(kwargs)
        if "ContinuationToken" not in kwargs:
            return {"Contents": [{"Key": "a"}], "IsTruncated": True, "NextContinuationToken": "t1"}
        return {"Contents": [{"Key": "b"}], "IsTruncated": False}


def test_s3_listing_follows_continuation_tokens() -> None:
    client = _PagedClient()
    pages = list(iter_list_objects_v2(client, bucket="bkt", Prefix="videos/"))
    assert [p["Contents"][0]["Key"] for p in pages] == ["a", "b"]
    assert client.calls[1] == {"Bucket": "bkt", "Prefix": "videos/", "ContinuationToken": "t1"}
