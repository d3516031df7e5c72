"""Graph construction: typed edges, pruning, clustering and metrics."""

from topicgraph.graph.builder import build_graph
from topicgraph.graph.clustering import (
    ClusteringStrategy,
    GreedyCentroidClustering,
    HDBSCANClustering,
    KMeansClustering,
    get_clustering_strategy,
)
from topicgraph.graph.edges import hierarchy_edges, reference_edges, semantic_edges, sequence_edges
from topicgraph.graph.metrics import compute_metrics
from topicgraph.graph.pruning import prune_edges

__all__ = [
    "ClusteringStrategy",
    "GreedyCentroidClustering",
    "HDBSCANClustering",
    "KMeansClustering",
    "build_graph",
    "compute_metrics",
    "get_clustering_strategy",
    "hierarchy_edges",
    "prune_edges",
    "reference_edges",
    "semantic_edges",
    "sequence_edges",
]
