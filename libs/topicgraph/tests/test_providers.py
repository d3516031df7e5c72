from __future__ import annotations

import json

import httpx
import pytest

from topicgraph.exceptions import ConfigurationError, ProviderError
from topicgraph.graph.similarity import cosine_similarity
from topicgraph.providers import get_asr_provider, get_embedding_provider, get_llm_provider
from topicgraph.providers.asr.openai_compat import parse_verbose_json
from topicgraph.providers.embedding.hashing import HashingEmbeddingProvider
from topicgraph.providers.embedding.openai_compat import OpenAICompatEmbeddingProvider
from topicgraph.providers.llm.base import Message
from topicgraph.providers.llm.openai_compat import OpenAICompatProvider
from topicgraph.providers.media.ffmpeg import FFmpegMediaProvider


def _sse(*chunks: str) -> bytes:
    events = [
        "data: " + json.dumps({"choices": [{"delta": {"content": c}}]}) for c in chunks
    ]
    events.append("data: " + json.dumps({"choices": [], "usage": {"total_tokens": 12}}))
    events.append("data: [DONE]")
    return ("\n\n".join(events) + "\n\n").encode()


@pytest.mark.asyncio
async def test_llm_streams_and_parses_fenced_json() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, content=_sse('```json\n{"title": ', '"Intro", "summary": "x"}\n```'))

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    llm = OpenAICompatProvider("key", "test-model", "http://llm.local/v1", client=client)

    data = await llm.complete_json([Message("system", "be brief"), Message("user", "text")])

    assert data == {"title": "Intro", "summary": "x"}
    assert seen[0]["model"] == "test-model"
    assert seen[0]["stream"] is True
    assert seen[0]["messages"][0]["content"].endswith("Respond with valid JSON only.")
    await llm.close()


@pytest.mark.asyncio
async def test_llm_client_error_is_not_retried() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(401, content=b"bad key")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    llm = OpenAICompatProvider("key", base_url="http://llm.local/v1", client=client)
    with pytest.raises(ProviderError, match="HTTP 401"):
        await llm.complete([Message("user", "hi")])
    assert calls == 1


@pytest.mark.asyncio
async def test_llm_non_object_json_is_rejected() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=_sse("[1, 2]"))))
    llm = OpenAICompatProvider("key", base_url="http://llm.local/v1", client=client)
    with pytest.raises(ProviderError, match="expected JSON object"):
        await llm.complete_json([Message("user", "hi")])


@pytest.mark.asyncio
async def test_openai_embeddings_batch_and_keep_order() -> None:
    batches: list[list[str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        texts = json.loads(request.content)["input"]
        batches.append(texts)
        data = [{"index": i, "embedding": [float(len(t)), 1.0]} for i, t in enumerate(texts)]
        return httpx.Response(200, json={"data": list(reversed(data))})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    embedder = OpenAICompatEmbeddingProvider("key", "emb", "http://emb.local/v1", batch_size=2, client=client)

    vectors = await embedder.embed(["a", "bb", "ccc"])

    assert batches == [["a", "bb"], ["ccc"]]
    assert vectors == [[1.0, 1.0], [2.0, 1.0], [3.0, 1.0]]


@pytest.mark.asyncio
async def test_hashing_embedder_is_deterministic_and_vocabulary_sensitive() -> None:
    embedder = HashingEmbeddingProvider(dimension=128)
    a, b, c = await embedder.embed(
        [
            "gradient descent updates network weights",
            "gradient descent updates the network weights",
            "a recipe for sourdough bread",
        ]
    )
    assert a == embedder.embed_one("gradient descent updates network weights")
    assert cosine_similarity(a, b) > cosine_similarity(a, c)
    assert len(a) == 128


def test_parse_verbose_json_segments_and_words() -> None:
    segments = parse_verbose_json(
        {
            "segments": [
                {"start": 0.0, "end": 2.0, "text": " Hello there "},
                {"start": 2.0, "end": 3.0, "text": "  "},
                {"start": 3.0, "end": 5.0, "text": "General"},
            ],
            "words": [
                {"word": "Hello", "start": 0.0, "end": 0.5},
                {"word": "General", "start": 3.1, "end": 4.0},
            ],
        }
    )
    assert [(s.id, s.text) for s in segments] == [("seg-00000", "Hello there"), ("seg-00002", "General")]
    assert [w.word for w in segments[1].words] == ["General"]


def test_parse_verbose_json_falls_back_to_plain_text() -> None:
    [segment] = parse_verbose_json({"text": "just text", "duration": 4.5})
    assert (segment.start, segment.end, segment.text) == (0.0, 4.5, "just text")


def test_registry_rejects_unknown_providers() -> None:
    with pytest.raises(ConfigurationError):
        get_llm_provider({"provider": "nope"})
    with pytest.raises(ConfigurationError):
        get_asr_provider({"provider": "whisper", "base_url": ""})
    with pytest.raises(ConfigurationError):
        get_embedding_provider({"provider": "openai", "model": ""})
    assert isinstance(get_embedding_provider({"provider": "hashing", "dimension": 16}), HashingEmbeddingProvider)


@pytest.mark.asyncio
async def test_file_download_copies_local_source(tmp_path) -> None:
    src = tmp_path / "in.mp4"
    src.write_bytes(b"video-bytes")
    media = FFmpegMediaProvider()
    dest = await media.download(str(src), "file", tmp_path / "out" / "original.mp4")
    assert dest.read_bytes() == b"video-bytes"

    with pytest.raises(ProviderError, match="source not found"):
        await media.download(str(tmp_path / "missing.mp4"), "file", tmp_path / "x.mp4")


@pytest.mark.asyncio
async def test_missing_binary_becomes_provider_error(tmp_path) -> None:
    media = FFmpegMediaProvider(ffprobe_bin="definitely-not-a-real-ffprobe")
    with pytest.raises(ProviderError, match="binary not found"):
        await media.probe_duration(tmp_path / "x.mp4")
