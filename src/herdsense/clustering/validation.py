"""Cluster validation metrics.

This module scores a labelling of the co-location feature space. Noise
points (label ``-1``) are left out of every metric.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

import numpy as np
from numpy.typing import NDArray
from sklearn.metrics import calinski_harabasz_score, davies_bouldin_score, silhouette_score

from herdsense.clustering.algorithms import NOISE


@dataclass
class ClusterValidationMetrics:
    """Validation metrics for clustering.

    Attributes:
        n_clusters: Number of non-noise clusters.
        noise_fraction: Fraction of points labeled noise.
        silhouette_score: Overall silhouette score (-1 to 1, higher is better),
            None with fewer than two clusters.
        calinski_harabasz_score: Calinski-Harabasz index (higher is better).
        davies_bouldin_score: Davies-Bouldin index (lower is better).
    """

    n_clusters: int
    noise_fraction: float
    silhouette_score: float | None = None
    calinski_harabasz_score: float | None = None
    davies_bouldin_score: float | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def compute_clustering_metrics(
    feature_matrix: NDArray[np.float64],
    cluster_labels: NDArray[np.int64],
) -> ClusterValidationMetrics:
    """Compute clustering validation metrics.

    Args:
        feature_matrix: Feature matrix of shape (n_samples, n_features).
        cluster_labels: Cluster labels of shape (n_samples,).

    Returns:
        ClusterValidationMetrics; scores are None when they are undefined.
    """
    labels = np.asarray(cluster_labels)
    n = len(labels)
    clustered = labels != NOISE
    X = np.asarray(feature_matrix)[clustered]
    kept = labels[clustered]
    n_unique = len(np.unique(kept))

    metrics = ClusterValidationMetrics(
        n_clusters=n_unique,
        noise_fraction=float((~clustered).sum() / n) if n else 0.0,
    )

    # Silhouette needs 2 <= n_labels <= n_samples - 1
    if 2 <= n_unique <= len(kept) - 1:
        metrics.silhouette_score = float(silhouette_score(X, kept))
        metrics.calinski_harabasz_score = float(calinski_harabasz_score(X, kept))
        metrics.davies_bouldin_score = float(davies_bouldin_score(X, kept))
    return metrics
