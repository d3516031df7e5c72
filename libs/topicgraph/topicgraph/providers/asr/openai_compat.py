"""OpenAI-compatible `/audio/transcriptions` provider (Whisper API, vLLM, faster-whisper servers)."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import ProviderError
from topicgraph.models.topic import TranscriptSegment, WordTiming
from topicgraph.providers._retry import (
    RetryableProviderError,
    log_retry,
    raise_for_status,
    wait_retry,
)
from topicgraph.providers.asr.base import ASRProvider

logger = logging.getLogger(__name__)


def _parse_words(items: Any) -> list[WordTiming]:
    out: list[WordTiming] = []
    for w in items or []:
        if not isinstance(w, dict) or "start" not in w or "end" not in w:
            continue
        out.append(
            WordTiming(
                word=str(w.get("word") or "").strip(),
                start=float(w["start"]),
                end=float(w["end"]),
                probability=float(w["probability"]) if w.get("probability") is not None else None,
            )
        )
    return out


def parse_verbose_json(result: dict[str, Any]) -> list[TranscriptSegment]:
    """Turn a `verbose_json` body into segments; top-level words are bucketed by time."""
    words = _parse_words(result.get("words"))
    segments: list[TranscriptSegment] = []
    for idx, item in enumerate(result.get("segments") or []):
        text = str(item.get("text") or "").strip()
        if not text:
            continue
        seg = TranscriptSegment(
            id=f"seg-{idx:05d}",
            start=float(item.get("start", 0.0)),
            end=float(item.get("end", 0.0)),
            text=text,
            words=_parse_words(item.get("words")),
        )
        segments.append(seg)

    if not segments:
        text = str(result.get("text") or "").strip()
        if text:
            end = float(result.get("duration") or (words[-1].end if words else 0.0))
            segments.append(TranscriptSegment(id="seg-00000", start=0.0, end=end, text=text))

    if words:
        for seg in segments:
            if not seg.words:
                seg.words = [w for w in words if w.start >= seg.start and w.end <= seg.end + 0.05]
    return segments


class OpenAICompatASRProvider(ASRProvider):
    def __init__(
        self,
        base_url: str,
        model: str = "whisper-1",
        api_key: str = "",
        *,
        provider: str = "openai_compat",
        timeout: float = 300.0,
    ) -> None:
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    @retry(
        retry=retry_if_exception_type(RetryableProviderError),
        stop=stop_after_attempt(3),
        wait=wait_retry,
        before_sleep=log_retry(logger, "asr"),
        reraise=True,
    )
    async def transcribe(
        self,
        audio_path: str,
        language: str | None = None,
        *,
        word_timestamps: bool = True,
    ) -> list[TranscriptSegment]:
        client = await self._get_client()
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        data: dict[str, Any] = {"model": self.model, "response_format": "verbose_json"}
        granularities = ["segment", "word"] if word_timestamps else ["segment"]
        data["timestamp_granularities[]"] = granularities
        if language:
            data["language"] = language

        audio = await asyncio.to_thread(Path(audio_path).read_bytes)
        files = {"file": (Path(audio_path).name, audio, "audio/wav")}
        try:
            response = await client.post(
                f"{self.base_url}/audio/transcriptions",
                headers=headers,
                files=files,
                data=data,
            )
        except httpx.TransportError as exc:
            raise RetryableProviderError(self.provider, str(exc), error_code=ErrorCode.ASR_FAILED) from exc
        raise_for_status(self.provider, response, response.content, error_code=ErrorCode.ASR_FAILED)

        try:
            result = response.json()
        except ValueError as exc:
            raise ProviderError(self.provider, "non-JSON transcription response", error_code=ErrorCode.ASR_FAILED) from exc
        if not isinstance(result, dict):
            raise ProviderError(self.provider, "unexpected transcription payload", error_code=ErrorCode.ASR_FAILED)
        segments = parse_verbose_json(result)
        logger.info("asr done (provider=%s, model=%s, segments=%s)", self.provider, self.model, len(segments))
        return segments

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
