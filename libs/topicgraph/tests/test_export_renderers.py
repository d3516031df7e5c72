from __future__ import annotations

import json

import pytest

from topicgraph.export import ExportDeck, SnippetLink, get_renderer, select_topics
from topicgraph.export.renderers import REVEAL_CDN
from topicgraph.models.topic import Topic


def _deck(**kwargs) -> ExportDeck:
    topics = [
        Topic(id="t1", level=1, start=0, end=75, title="Intro <basics>", summary="A & B", keywords=["alpha"]),
        Topic(id="t2", level=2, start=75, end=3700, title="Deep dive", summary="More"),
    ]
    return ExportDeck(video_id="vid-1", title="Lecture", topics=topics, metrics={"node_count": 2}, **kwargs)


def test_html_escapes_text_and_loads_reveal() -> None:
    html = get_renderer("html", html_theme="black").render(_deck())
    assert f"{REVEAL_CDN}/theme/black.css" in html
    assert "Intro &lt;basics&gt;" in html
    assert "A &amp; B" in html
    assert "0:00 - 1:15" in html
    assert "1:15 - 1:01:40" in html
    assert "Appendix: Graph Metrics" in html
    assert html.count("<section>") == 4


def test_html_embeds_snippet_video() -> None:
    deck = _deck(snippets={"t1": SnippetLink("t1", "https://cdn/t1.mp4", "https://cdn/t1.jpg")})
    html = get_renderer("html").render(deck)
    assert '<video controls src="https://cdn/t1.mp4" poster="https://cdn/t1.jpg"></video>' in html


def test_markdown_without_appendix() -> None:
    text = get_renderer("markdown").render(_deck(include_appendix=False))
    assert text.startswith("# Lecture\n")
    assert "## Intro <basics>" in text
    assert "**Keywords:** alpha" in text
    assert "Appendix" not in text


def test_json_payload() -> None:
    data = json.loads(get_renderer("json").render(_deck()))
    assert [t["id"] for t in data["topics"]] == ["t1", "t2"]
    assert data["metrics"] == {"node_count": 2}


def test_unknown_renderer() -> None:
    with pytest.raises(ValueError):
        get_renderer("pptx")


def test_select_topics_drops_micro_topics_and_caps() -> None:
    topics = [
        Topic(id="m", level=0, start=0, end=1, importance=1.0),
        Topic(id="a", level=1, start=5, end=6, importance=0.5),
        Topic(id="b", level=1, start=0, end=1, importance=0.5),
        Topic(id="c", level=2, start=0, end=9, importance=0.9),
    ]
    assert [t.id for t in select_topics(topics, max_topics=2)] == ["c", "b"]
