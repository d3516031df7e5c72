from __future__ import annotations

import pytest

from topicgraph.models.topic import Topic
from topicgraph.topics.importance import ImportanceWeights, apply_importance, compute_importance
from topicgraph.topics.keywords import extract_keywords


def test_keywords_rank_by_frequency_and_skip_short_and_stopwords() -> None:
    text = "Gradient descent moves weights. Gradient updates follow the gradient. Weights change. About that."
    keywords = extract_keywords(text)
    assert keywords[0] == "gradient"
    assert keywords[1] == "weights"
    assert "about" not in keywords
    assert "the" not in keywords


def test_keywords_ties_keep_first_occurrence_and_respect_limit() -> None:
    assert extract_keywords("zebra apple mango", limit=2) == ["zebra", "apple"]
    assert extract_keywords("") == []


def test_keywords_never_exceed_twenty() -> None:
    text = " ".join(f"keyword{chr(97 + i)}{chr(97 + j)}" for i in range(6) for j in range(6))
    assert len(extract_keywords(text, limit=50)) == 20


def test_importance_combines_duration_connections_and_keywords() -> None:
    topic = Topic(
        id="t",
        level=1,
        start=0,
        end=30,
        child_ids=["a", "b"],
        parent_ids=["p"],
        keywords=["k1", "k2", "k3", "k4", "k5"],
    )
    score = compute_importance(topic, ImportanceWeights())
    assert score == pytest.approx(0.3 * 0.5 + 0.3 * 0.6 + 0.4 * 0.5)


def test_importance_is_capped_at_one() -> None:
    topic = Topic(
        id="t",
        level=1,
        start=0,
        end=600,
        child_ids=[f"c{i}" for i in range(10)],
        keywords=[f"k{i}" for i in range(20)],
    )
    apply_importance([topic], ImportanceWeights())
    assert topic.importance == pytest.approx(1.0)
