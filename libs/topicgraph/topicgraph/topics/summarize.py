"""Topic titling/summarization.

`HeuristicSummarizer` needs no model and is used when no LLM is configured.
`LLMSummarizer` asks an OpenAI-compatible chat model for `{title, summary}`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from topicgraph.models.topic import SUMMARY_MAX_CHARS, TITLE_MAX_CHARS, Topic
from topicgraph.pipeline.concurrency import gather_bounded
from topicgraph.providers.llm.base import LLMProvider, Message
from topicgraph.utils.text import truncate

logger = logging.getLogger(__name__)

HEURISTIC_SUMMARY_CHARS = 200

SYSTEM_PROMPT = (
    "You title and summarize one section of a video transcript.\n"
    'Return a JSON object: {"title": "<at most 10 words>", "summary": "<2-3 sentences>"}.\n'
    "Use the transcript language. Do not invent facts."
)


@dataclass(frozen=True)
class TopicSummary:
    title: str
    summary: str


class Summarizer(ABC):
    @abstractmethod
    async def summarize(self, text: str) -> TopicSummary:
        ...


class HeuristicSummarizer(Summarizer):
    async def summarize(self, text: str) -> TopicSummary:
        clean = " ".join(str(text or "").split())
        return TopicSummary(
            title=f"Topic: {clean[:30]}...",
            summary=truncate(clean, HEURISTIC_SUMMARY_CHARS),
        )


class LLMSummarizer(Summarizer):
    def __init__(self, llm: LLMProvider, *, max_tokens: int = 512, max_input_chars: int = 12000) -> None:
        self.llm = llm
        self.max_tokens = int(max_tokens)
        self.max_input_chars = int(max_input_chars)

    async def summarize(self, text: str) -> TopicSummary:
        content = truncate(str(text or "").strip(), self.max_input_chars)
        data = await self.llm.complete_json(
            [
                Message(role="system", content=SYSTEM_PROMPT),
                Message(role="user", content=content),
            ],
            temperature=0.3,
            max_tokens=self.max_tokens,
        )
        title = str(data.get("title") or "").strip()
        summary = str(data.get("summary") or "").strip()
        if not title:
            title = f"Topic: {content[:30]}..."
        return TopicSummary(
            title=truncate(title, TITLE_MAX_CHARS),
            summary=truncate(summary or content, SUMMARY_MAX_CHARS),
        )


async def summarize_topics(
    topics: Sequence[Topic],
    summarizer: Summarizer,
    *,
    concurrency: int = 5,
    on_done: Callable[[int, int], Awaitable[None]] | None = None,
) -> None:
    """Fill `title`/`summary` of every topic in place, `concurrency` calls at a time."""

    async def _one(topic: Topic) -> None:
        result = await summarizer.summarize(topic.summary)
        topic.title = truncate(result.title, TITLE_MAX_CHARS)
        topic.summary = truncate(result.summary, SUMMARY_MAX_CHARS)

    await gather_bounded(topics, _one, limit=concurrency, on_done=on_done)
    logger.debug("topics summarized (count=%s, summarizer=%s)", len(topics), type(summarizer).__name__)
