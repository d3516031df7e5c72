"""Topic clustering strategies.

Greedy single-pass centroid clustering is the default. k-means and HDBSCAN
(scikit-learn) are selectable for callers that want the standard algorithms.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np

from topicgraph.exceptions import ConfigurationError
from topicgraph.graph.similarity import as_matrix, centroid, cosine_similarity

logger = logging.getLogger(__name__)


def cluster_label(index: int) -> str:
    return f"cluster-{index}"


def _relabel(raw: Sequence[int]) -> list[int]:
    """Renumber labels by first appearance so output is stable across runs."""
    mapping: dict[int, int] = {}
    out: list[int] = []
    for label in raw:
        if label not in mapping:
            mapping[label] = len(mapping)
        out.append(mapping[label])
    return out


class ClusteringStrategy(ABC):
    name: str

    @abstractmethod
    def fit(self, embeddings: Sequence[Sequence[float]]) -> list[int]:
        """Return one cluster index per embedding, numbered from 0 by first appearance."""


class GreedyCentroidClustering(ClusteringStrategy):
    """Join the best cluster whose centroid similarity exceeds `threshold`, else open a new one."""

    name = "greedy"

    def __init__(self, threshold: float = 0.7) -> None:
        self.threshold = float(threshold)

    def fit(self, embeddings: Sequence[Sequence[float]]) -> list[int]:
        members: list[list[int]] = []
        centroids: list[list[float]] = []
        assignments: list[int] = []
        for i, vector in enumerate(embeddings):
            best, best_sim = -1, self.threshold
            for c, center in enumerate(centroids):
                sim = cosine_similarity(vector, center)
                if sim > best_sim:
                    best, best_sim = c, sim
            if best < 0:
                best = len(members)
                members.append([])
                centroids.append(list(vector))
            members[best].append(i)
            centroids[best] = centroid([embeddings[m] for m in members[best]])
            assignments.append(best)
        return assignments


class KMeansClustering(ClusteringStrategy):
    """scikit-learn KMeans; `n_clusters=0` picks ceil(sqrt(n / 2))."""

    name = "kmeans"

    def __init__(self, n_clusters: int = 0, *, random_state: int = 42) -> None:
        self.n_clusters = int(n_clusters)
        self.random_state = random_state

    def resolve_k(self, n: int) -> int:
        k = self.n_clusters or math.ceil(math.sqrt(n / 2))
        return max(1, min(k, n))

    def fit(self, embeddings: Sequence[Sequence[float]]) -> list[int]:
        if len(embeddings) == 0:
            return []
        from sklearn.cluster import KMeans

        x = as_matrix(embeddings)
        k = self.resolve_k(len(x))
        if k == 1:
            return [0] * len(x)
        km = KMeans(n_clusters=k, random_state=self.random_state, n_init=10)
        labels = km.fit_predict(x)
        return _relabel([int(v) for v in labels])


class HDBSCANClustering(ClusteringStrategy):
    """scikit-learn HDBSCAN; noise points (-1) become singleton clusters."""

    name = "hdbscan"

    def __init__(self, min_cluster_size: int = 2) -> None:
        self.min_cluster_size = max(2, int(min_cluster_size))

    def fit(self, embeddings: Sequence[Sequence[float]]) -> list[int]:
        n = len(embeddings)
        if n == 0:
            return []
        if n < self.min_cluster_size:
            return list(range(n))
        from sklearn.cluster import HDBSCAN

        x = as_matrix(embeddings)
        labels = HDBSCAN(min_cluster_size=self.min_cluster_size, metric="euclidean").fit_predict(x)
        next_label = int(np.max(labels)) + 1 if len(labels) else 0
        raw: list[int] = []
        for label in labels:
            if int(label) < 0:
                raw.append(next_label)
                next_label += 1
            else:
                raw.append(int(label))
        noise = sum(1 for label in labels if int(label) < 0)
        if noise:
            logger.debug("hdbscan noise points kept as singletons (count=%s)", noise)
        return _relabel(raw)


def get_clustering_strategy(
    name: str,
    *,
    threshold: float = 0.7,
    n_clusters: int = 0,
    min_cluster_size: int = 2,
) -> ClusteringStrategy:
    match str(name or "greedy").strip().lower():
        case "greedy":
            return GreedyCentroidClustering(threshold=threshold)
        case "kmeans":
            return KMeansClustering(n_clusters=n_clusters)
        case "hdbscan":
            return HDBSCANClustering(min_cluster_size=min_cluster_size)
        case other:
            raise ConfigurationError(f"Unknown clustering algorithm: {other}")
