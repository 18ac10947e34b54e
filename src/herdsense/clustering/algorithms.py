"""Clustering and anomaly algorithms over the co-location feature space.

k-means++ and the isolation forest draw from an explicit generator so that
results are reproducible when the caller fixes the seed. DBSCAN is
deterministic.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.distance import cdist
from sklearn.cluster import DBSCAN

from herdsense.errors import ConfigurationError
from herdsense.utils.seed import get_rng

NOISE = -1

EULER_GAMMA = 0.5772156649


@dataclass
class KMeansResult:
    labels: NDArray[np.int64]
    centroids: NDArray[np.float64]
    n_iter: int
    converged: bool


def _seed_centroids(X: NDArray[np.float64], k: int, rng: np.random.Generator) -> NDArray[np.float64]:
    n = len(X)
    centroids = [X[rng.integers(n)]]
    while len(centroids) < k:
        d2 = cdist(X, np.array(centroids), "sqeuclidean").min(axis=1)
        total = d2.sum()
        if total <= 0:
            # All points coincide with a centroid already chosen
            idx = rng.integers(n)
        else:
            idx = rng.choice(n, p=d2 / total)
        centroids.append(X[idx])
    return np.array(centroids, dtype=np.float64)


def kmeans_plus_plus(
    X: NDArray[np.float64],
    k: int = 4,
    max_iter: int = 20,
    tol: float = 1e-4,
    rng: np.random.Generator | int | None = None,
) -> KMeansResult:
    """k-means with k-means++ seeding.

    Seeding picks the first centroid uniformly and each further centroid with
    probability proportional to the squared distance to the nearest centroid
    already chosen. The assign/update loop then runs until no centroid moves
    more than ``tol`` or ``max_iter`` iterations have run. A cluster that
    loses all its points keeps its previous centroid.

    Args:
        X: Feature matrix of shape (n_samples, n_features).
        k: Number of clusters; capped at the number of samples.
        max_iter: Iteration cap.
        tol: Convergence threshold on centroid movement.
        rng: Generator or seed.

    Returns:
        KMeansResult with labels in ``[0, k)``.

    Raises:
        ConfigurationError: If ``k < 1`` or ``max_iter < 1``.
    """
    if k < 1:
        raise ConfigurationError(f"k must be at least 1, got {k}")
    if max_iter < 1:
        raise ConfigurationError(f"max_iter must be at least 1, got {max_iter}")

    X = np.asarray(X, dtype=np.float64)
    n = len(X)
    if n == 0:
        return KMeansResult(np.zeros(0, dtype=np.int64), np.zeros((0, X.shape[1] if X.ndim == 2 else 0)), 0, True)

    rng = get_rng(rng)
    centroids = _seed_centroids(X, min(k, n), rng)
    labels = np.zeros(n, dtype=np.int64)
    converged = False
    n_iter = 0

    for n_iter in range(1, max_iter + 1):
        labels = cdist(X, centroids).argmin(axis=1)
        updated = centroids.copy()
        for j in range(len(centroids)):
            members = X[labels == j]
            if len(members):
                updated[j] = members.mean(axis=0)
        shift = np.linalg.norm(updated - centroids, axis=1).max()
        centroids = updated
        if shift <= tol:
            converged = True
            break

    return KMeansResult(labels.astype(np.int64), centroids, n_iter, converged)


def average_path_length(n: int) -> float:
    """Expected path length of an unsuccessful search in a BST of ``n`` nodes."""
    if n <= 1:
        return 0.0
    return 2.0 * (math.log(n - 1) + EULER_GAMMA) - 2.0 * (n - 1) / n


@dataclass
class _IsoNode:
    size: int
    feature: int = -1
    split: float = 0.0
    left: _IsoNode | None = None
    right: _IsoNode | None = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None or self.right is None


def _build_tree(X: NDArray[np.float64], height: int, max_height: int, rng: np.random.Generator) -> _IsoNode:
    n = len(X)
    if n <= 1 or height >= max_height:
        return _IsoNode(size=n)
    feature = int(rng.integers(X.shape[1]))
    column = X[:, feature]
    lo, hi = column.min(), column.max()
    if lo == hi:
        return _IsoNode(size=n)
    split = float(rng.uniform(lo, hi))
    mask = column < split
    return _IsoNode(
        size=n,
        feature=feature,
        split=split,
        left=_build_tree(X[mask], height + 1, max_height, rng),
        right=_build_tree(X[~mask], height + 1, max_height, rng),
    )


def _path_length(x: NDArray[np.float64], node: _IsoNode) -> float:
    height = 0
    while not node.is_leaf:
        node = node.left if x[node.feature] < node.split else node.right
        height += 1
    return height + average_path_length(node.size)


@dataclass
class IsolationForestResult:
    scores: NDArray[np.float64]
    is_anomaly: NDArray[np.bool_]
    threshold: float

    @property
    def n_anomalies(self) -> int:
        return int(self.is_anomaly.sum())


def isolation_forest(
    X: NDArray[np.float64],
    n_trees: int = 40,
    sample_size: int = 64,
    contamination: float = 0.05,
    rng: np.random.Generator | int | None = None,
) -> IsolationForestResult:
    """Score points by how quickly random partitioning isolates them.

    Each tree is grown on a bootstrap subsample of ``min(sample_size, n)``
    points up to depth ``ceil(log2(subsample))``. The score of a point is
    ``2 ** (-mean_path / c(subsample))``. The threshold is the score at
    position ``max(0, floor(contamination * n) - 1)`` of the scores sorted
    in descending order; every point scoring at or above it is anomalous.

    Args:
        X: Feature matrix of shape (n_samples, n_features).
        n_trees: Number of trees.
        sample_size: Subsample size per tree.
        contamination: Expected anomaly fraction, in (0, 0.5].
        rng: Generator or seed.

    Returns:
        IsolationForestResult with one score per point.

    Raises:
        ConfigurationError: On non-positive tree count or sample size, or
            contamination outside (0, 0.5].
    """
    if n_trees < 1:
        raise ConfigurationError(f"n_trees must be at least 1, got {n_trees}")
    if sample_size < 1:
        raise ConfigurationError(f"sample_size must be at least 1, got {sample_size}")
    if not 0 < contamination <= 0.5:
        raise ConfigurationError(f"contamination must be in (0, 0.5], got {contamination}")

    X = np.asarray(X, dtype=np.float64)
    n = len(X)
    if n == 0:
        return IsolationForestResult(np.zeros(0), np.zeros(0, dtype=bool), 0.0)

    rng = get_rng(rng)
    size = min(sample_size, n)
    max_height = math.ceil(math.log2(size)) if size > 1 else 0
    forest = [_build_tree(X[rng.integers(n, size=size)], 0, max_height, rng) for _ in range(n_trees)]

    c = average_path_length(size)
    if c > 0:
        mean_paths = np.array([np.mean([_path_length(x, tree) for tree in forest]) for x in X])
        scores = np.power(2.0, -mean_paths / c)
    else:
        # A single distinct sample carries no isolation signal
        scores = np.full(n, 0.5)

    ordered = np.sort(scores)[::-1]
    threshold = float(ordered[max(0, int(math.floor(contamination * n)) - 1)])
    return IsolationForestResult(scores, scores >= threshold, threshold)


def dbscan(X: NDArray[np.float64], eps: float = 0.6, min_pts: int = 5) -> NDArray[np.int64]:
    """Density-based clustering.

    A point with at least ``min_pts`` points (itself included) within ``eps``
    is a core point; clusters grow from core points and unreached points are
    labeled ``NOISE``. A non-positive ``eps`` labels every point as noise.

    Args:
        X: Feature matrix of shape (n_samples, n_features).
        eps: Neighborhood radius.
        min_pts: Minimum neighborhood size of a core point.

    Returns:
        Cluster labels, ``-1`` for noise.
    """
    if min_pts < 1:
        raise ConfigurationError(f"min_pts must be at least 1, got {min_pts}")
    X = np.asarray(X, dtype=np.float64)
    if len(X) == 0 or eps <= 0:
        return np.full(len(X), NOISE, dtype=np.int64)
    return DBSCAN(eps=eps, min_samples=min_pts).fit_predict(X).astype(np.int64)
