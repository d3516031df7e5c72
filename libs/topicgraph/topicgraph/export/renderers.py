"""Deck renderers: reveal.js HTML, Markdown and JSON."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from html import escape

from topicgraph.export.deck import ExportDeck
from topicgraph.models.serializers import serialize_topic
from topicgraph.utils.text import format_duration

REVEAL_VERSION = "4.5.0"
REVEAL_CDN = f"https://cdn.jsdelivr.net/npm/reveal.js@{REVEAL_VERSION}/dist"

SUPPORTED_FORMATS = ("html", "markdown", "json")
UNSUPPORTED_FORMATS = ("pptx", "pdf")


class DeckRenderer(ABC):
    extension: str
    content_type: str

    @abstractmethod
    def render(self, deck: ExportDeck) -> str:
        ...


class RevealHTMLRenderer(DeckRenderer):
    extension = "html"
    content_type = "text/html"

    def __init__(self, theme: str = "white") -> None:
        self.theme = theme

    def _slide(self, deck: ExportDeck, index: int) -> str:
        topic = deck.topics[index]
        parts = [
            "<section>",
            f"  <h2>{escape(topic.title or topic.id)}</h2>",
            f"  <p class=\"time\">{format_duration(topic.start)} - {format_duration(topic.end)}</p>",
            f"  <p>{escape(topic.summary)}</p>",
        ]
        if topic.keywords:
            parts.append(f"  <p><strong>Keywords:</strong> {escape(', '.join(topic.keywords))}</p>")
        link = deck.snippets.get(topic.id)
        if link is not None:
            poster = f' poster="{escape(link.thumbnail_url)}"' if link.thumbnail_url else ""
            parts.append(f'  <video controls src="{escape(link.video_url)}"{poster}></video>')
        parts.append("</section>")
        return "\n".join(parts)

    def render(self, deck: ExportDeck) -> str:
        slides = "\n".join(self._slide(deck, i) for i in range(len(deck.topics)))
        appendix = ""
        if deck.include_appendix:
            metrics = escape(json.dumps(dict(deck.metrics), indent=2, ensure_ascii=False))
            appendix = f"<section>\n  <h2>Appendix: Graph Metrics</h2>\n  <pre>{metrics}</pre>\n</section>"
        return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{escape(deck.title)}</title>
  <link rel="stylesheet" href="{REVEAL_CDN}/reveal.css">
  <link rel="stylesheet" href="{REVEAL_CDN}/theme/{escape(self.theme)}.css">
</head>
<body>
  <div class="reveal">
    <div class="slides">
<section>
  <h1>{escape(deck.title)}</h1>
  <p>{len(deck.topics)} topics</p>
</section>
{slides}
{appendix}
    </div>
  </div>
  <script src="{REVEAL_CDN}/reveal.js"></script>
  <script>Reveal.initialize();</script>
</body>
</html>
"""


class MarkdownRenderer(DeckRenderer):
    extension = "md"
    content_type = "text/markdown"

    def render(self, deck: ExportDeck) -> str:
        lines = [f"# {deck.title}", ""]
        for topic in deck.topics:
            lines.append(f"## {topic.title or topic.id}")
            lines.append("")
            lines.append(f"*{format_duration(topic.start)} - {format_duration(topic.end)}*")
            lines.append("")
            if topic.summary:
                lines.append(topic.summary)
                lines.append("")
            if topic.keywords:
                lines.append(f"**Keywords:** {', '.join(topic.keywords)}")
                lines.append("")
            link = deck.snippets.get(topic.id)
            if link is not None:
                lines.append(f"[Watch snippet]({link.video_url})")
                lines.append("")
        if deck.include_appendix and deck.metrics:
            lines.append("## Appendix: Graph Metrics")
            lines.append("")
            lines.append("```json")
            lines.append(json.dumps(dict(deck.metrics), indent=2, ensure_ascii=False))
            lines.append("```")
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"


class JSONRenderer(DeckRenderer):
    extension = "json"
    content_type = "application/json"

    def render(self, deck: ExportDeck) -> str:
        payload = {
            "video_id": deck.video_id,
            "title": deck.title,
            "topics": [serialize_topic(t) for t in deck.topics],
            "snippets": {
                tid: {"video_url": s.video_url, "thumbnail_url": s.thumbnail_url}
                for tid, s in deck.snippets.items()
            },
        }
        if deck.include_appendix:
            payload["metrics"] = dict(deck.metrics)
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def get_renderer(fmt: str, *, html_theme: str = "white") -> DeckRenderer:
    match str(fmt or "").strip().lower():
        case "html":
            return RevealHTMLRenderer(theme=html_theme)
        case "markdown" | "md":
            return MarkdownRenderer()
        case "json":
            return JSONRenderer()
        case other:
            raise ValueError(f"Unsupported export format: {other}")
