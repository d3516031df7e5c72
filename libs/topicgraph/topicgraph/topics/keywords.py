"""Frequency-based keyword extraction."""

from __future__ import annotations

import re
from collections import Counter

from topicgraph.models.topic import KEYWORDS_MAX

MIN_KEYWORD_CHARS = 5

STOPWORDS = frozenset(
    """
    about above after again against among because been before being below between
    both cannot could doing during each either every first going having here hers
    herself himself itself just least might more most myself neither never often
    other others ought ourselves over same shall should since some still such than
    that their theirs them themselves then there these they thing things think this
    those though through under until upon very want was were what whatever when
    where whether which while whom whose will with within without would your yours
    yourself yourselves really actually basically maybe something anything
    everything nothing someone anyone everyone right going gonna wanna kind sort
    """.split()
)

_TOKEN_RE = re.compile(r"[^\W\d_][\w'-]*", re.UNICODE)


def tokenize(text: str) -> list[str]:
    return [m.group(0).strip("'-") for m in _TOKEN_RE.finditer(str(text or "").lower())]


def extract_keywords(text: str, *, limit: int = KEYWORDS_MAX) -> list[str]:
    """Top-`limit` words by frequency (ties keep first occurrence), len > 4, no stopwords."""
    limit = max(0, min(int(limit), KEYWORDS_MAX))
    counts: Counter[str] = Counter()
    first_seen: dict[str, int] = {}
    for pos, token in enumerate(tokenize(text)):
        if len(token) < MIN_KEYWORD_CHARS or token in STOPWORDS:
            continue
        counts[token] += 1
        first_seen.setdefault(token, pos)
    ranked = sorted(counts, key=lambda w: (-counts[w], first_seen[w]))
    return ranked[:limit]
