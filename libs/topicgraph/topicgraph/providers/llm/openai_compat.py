"""OpenAI-compatible chat completions provider."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import ProviderError
from topicgraph.providers._retry import (
    RetryableProviderError,
    log_retry,
    raise_for_status,
    wait_retry,
)
from topicgraph.providers.llm.base import LLMProvider, LLMUsage, Message
from topicgraph.utils.llm_json import parse_llm_json

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


async def _iter_sse_data(response: httpx.Response) -> AsyncIterator[str]:
    data_lines: list[str] = []
    async for line in response.aiter_lines():
        if not line:
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        if line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
    if data_lines:
        yield "\n".join(data_lines)


def _parse_usage(event: object) -> LLMUsage | None:
    if not isinstance(event, dict):
        return None
    usage = event.get("usage")
    if not isinstance(usage, dict):
        return None
    values = [usage.get(k) for k in ("prompt_tokens", "completion_tokens", "total_tokens")]
    if not any(isinstance(v, int) for v in values):
        return None
    prompt, completion, total = (int(v) if isinstance(v, int) else None for v in values)
    return LLMUsage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)


class OpenAICompatProvider(LLMProvider):
    """Works with OpenAI, vLLM, Ollama and other OpenAI-style servers."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        *,
        provider: str = "openai_compat",
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.provider = provider
        resolved = str(base_url or "").strip()
        self.base_url = (resolved or DEFAULT_OPENAI_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = float(timeout)
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @retry(
        retry=retry_if_exception_type(RetryableProviderError),
        stop=stop_after_attempt(3),
        wait=wait_retry,
        before_sleep=log_retry(logger, "llm"),
        reraise=True,
    )
    async def _chat_completions(
        self,
        messages: list[Message],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> tuple[str, LLMUsage | None]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "stream": True,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        client = await self._get_client()
        started = time.perf_counter()
        chunks: list[str] = []
        last_event: object | None = None
        try:
            async with client.stream(
                "POST",
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
            ) as response:
                if response.status_code >= 400:
                    body = await response.aread()
                    raise_for_status(self.provider, response, body, error_code=ErrorCode.LLM_FAILED)

                async for data in _iter_sse_data(response):
                    if data.strip() == "[DONE]":
                        break
                    try:
                        event = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug("llm stream non-json data: %r", data[:200])
                        continue
                    last_event = event
                    if not isinstance(event, dict):
                        continue
                    if isinstance(event.get("error"), dict):
                        error_msg = str(event["error"].get("message") or "unknown error")
                        raise ProviderError(self.provider, error_msg, error_code=ErrorCode.LLM_FAILED)
                    choices = event.get("choices")
                    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
                        continue
                    delta = choices[0].get("delta")
                    content = delta.get("content") if isinstance(delta, dict) else None
                    if isinstance(content, str) and content:
                        chunks.append(content)
        except httpx.TimeoutException as exc:
            logger.warning("llm request timeout: %s", exc)
            raise RetryableProviderError(self.provider, str(exc), error_code=ErrorCode.LLM_FAILED) from exc
        except httpx.TransportError as exc:
            logger.warning("llm request failed: %s", exc)
            raise RetryableProviderError(self.provider, str(exc), error_code=ErrorCode.LLM_FAILED) from exc

        usage = _parse_usage(last_event)
        logger.info(
            "llm call (provider=%s, model=%s, latency_ms=%s, total_tokens=%s)",
            self.provider,
            self.model,
            int((time.perf_counter() - started) * 1000),
            getattr(usage, "total_tokens", None),
        )
        return "".join(chunks), usage

    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        text, _usage = await self._chat_completions(
            messages, temperature=temperature, max_tokens=max_tokens
        )
        return text

    async def complete_json(
        self,
        messages: list[Message],
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        json_messages = list(messages)
        if json_messages and json_messages[0].role == "system":
            json_messages[0] = Message(
                role="system",
                content=json_messages[0].content + "\n\nRespond with valid JSON only.",
            )
        text = await self.complete(json_messages, temperature=temperature, max_tokens=max_tokens)
        try:
            data = parse_llm_json(text)
        except json.JSONDecodeError as exc:
            raise ProviderError(
                self.provider, f"invalid JSON response: {exc}", error_code=ErrorCode.LLM_FAILED
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(
                self.provider,
                f"expected JSON object, got {type(data).__name__}",
                error_code=ErrorCode.LLM_FAILED,
            )
        return data

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
