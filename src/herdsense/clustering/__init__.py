"""Co-location event clustering for HerdSense.

This module provides the normalized event feature space, k-means++,
isolation forest and DBSCAN, and the engine that ties them together.
"""

from herdsense.clustering.algorithms import (
    NOISE,
    IsolationForestResult,
    KMeansResult,
    average_path_length,
    dbscan,
    isolation_forest,
    kmeans_plus_plus,
)
from herdsense.clustering.engine import (
    METHODS,
    ClusterAssignment,
    ClusteringConfig,
    ClusteringResult,
    ClusterSummary,
    run_clustering,
    summarize_clusters,
)
from herdsense.clustering.features import (
    FEATURE_NAMES,
    event_features,
    filter_by_period,
    normalize_features,
)
from herdsense.clustering.validation import ClusterValidationMetrics, compute_clustering_metrics

__all__ = [
    # Features
    "FEATURE_NAMES",
    "event_features",
    "filter_by_period",
    "normalize_features",
    # Algorithms
    "NOISE",
    "KMeansResult",
    "IsolationForestResult",
    "kmeans_plus_plus",
    "isolation_forest",
    "average_path_length",
    "dbscan",
    # Engine
    "METHODS",
    "ClusteringConfig",
    "ClusterAssignment",
    "ClusterSummary",
    "ClusteringResult",
    "run_clustering",
    "summarize_clusters",
    # Validation
    "ClusterValidationMetrics",
    "compute_clustering_metrics",
]
