"""Clustering engine for co-location events.

Selects a cohort of events by period, builds the normalized feature space,
runs one of the three algorithms and summarizes the resulting groups.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np

from herdsense.clustering.algorithms import NOISE, dbscan, isolation_forest, kmeans_plus_plus
from herdsense.clustering.features import event_features, filter_by_period, normalize_features
from herdsense.clustering.validation import ClusterValidationMetrics, compute_clustering_metrics
from herdsense.colocation.proximity import CoLocationEvent
from herdsense.errors import ConfigurationError
from herdsense.utils.logging import get_logger, log_metrics

logger = get_logger("clustering.engine")

METHODS = ("kmeans", "isoforest", "dbscan")

ANOMALY_LABEL = "anomaly"
NORMAL_LABEL = "normal"
NOISE_LABEL = "noise"


@dataclass
class ClusteringConfig:
    """Configuration for the clustering engine.

    Attributes:
        method: One of "kmeans", "isoforest", "dbscan".
        period: Event cohort, "all", "day" or "night".
        k: Number of k-means clusters.
        max_iter: k-means iteration cap.
        n_trees: Isolation forest size.
        sample_size: Isolation forest subsample size.
        contamination: Expected anomaly fraction.
        eps: DBSCAN radius in normalized units.
        min_pts: DBSCAN core-point neighborhood size.
        seed: Random seed for k-means++ and the isolation forest.
    """

    method: str = "kmeans"
    period: str = "all"
    k: int = 4
    max_iter: int = 20
    n_trees: int = 40
    sample_size: int = 64
    contamination: float = 0.05
    eps: float = 0.6
    min_pts: int = 5
    seed: Optional[int] = None


@dataclass
class ClusterAssignment:
    """One event with its position in feature space and its group."""

    event: CoLocationEvent
    label: str
    cluster: int
    features: tuple[float, float]
    normalized: tuple[float, float]
    score: float | None = None


@dataclass
class ClusterSummary:
    label: str
    count: int
    mean_duration_sec: float
    mean_distance_m: float
    day_share: float


@dataclass
class ClusteringResult:
    """Results from clustering one cohort of co-location events.

    Attributes:
        method: Algorithm used.
        period: Cohort period.
        assignments: One entry per event, in input order.
        n_clusters: Number of groups (non-noise clusters; for the isolation
            forest, the number of anomalies).
        clusters: Per-group summaries, largest first.
        metrics: Validation metrics (None for the isolation forest).
    """

    method: str
    period: str
    assignments: list[ClusterAssignment] = field(default_factory=list)
    n_clusters: int = 0
    clusters: list[ClusterSummary] = field(default_factory=list)
    metrics: ClusterValidationMetrics | None = None

    @property
    def labels(self) -> list[str]:
        return [a.label for a in self.assignments]

    @property
    def anomalies(self) -> list[ClusterAssignment]:
        """Anomalous events, highest score first."""
        flagged = [a for a in self.assignments if a.label == ANOMALY_LABEL]
        return sorted(flagged, key=lambda a: a.score or 0.0, reverse=True)

    @property
    def noise_count(self) -> int:
        return sum(1 for a in self.assignments if a.label == NOISE_LABEL)

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "period": self.period,
            "n_events": len(self.assignments),
            "n_clusters": self.n_clusters,
            "clusters": [vars(c) for c in self.clusters],
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "assignments": [
                {
                    "pair_id": a.event.pair_id,
                    "start_epoch": a.event.start_epoch,
                    "label": a.label,
                    "score": a.score,
                }
                for a in self.assignments
            ],
        }

    def summary(self, top: int = 3) -> str:
        """Short human-readable interpretation of the result."""
        if not self.assignments:
            return f"{self.method}: no events"
        lines = []
        if self.method == "isoforest":
            lines.append(f"Isolation forest flagged {self.n_clusters} anomalies in {len(self.assignments)} events")
            for i, a in enumerate(self.anomalies[:top], 1):
                lines.append(
                    f"{i}. {a.event.pair_id} {a.event.date_code or ''} {a.event.start_clock} (score {a.score:.3f})"
                )
        else:
            header = f"{self.method}: {self.n_clusters} clusters"
            if self.method == "dbscan":
                header += f", noise: {self.noise_count} events"
            lines.append(header)
            for i, c in enumerate([c for c in self.clusters if c.label != NOISE_LABEL][:top], 1):
                lines.append(
                    f"{i}. {c.label}: {c.count} events, mean duration {c.mean_duration_sec:.0f}s, "
                    f"mean distance {c.mean_distance_m:.2f} m"
                )
        return "\n".join(lines)


def summarize_clusters(assignments: Sequence[ClusterAssignment]) -> list[ClusterSummary]:
    """Count, mean duration, mean distance and day share per label."""
    groups: dict[str, list[CoLocationEvent]] = {}
    for a in assignments:
        groups.setdefault(a.label, []).append(a.event)

    summaries = [
        ClusterSummary(
            label=label,
            count=len(events),
            mean_duration_sec=float(np.mean([e.duration_sec for e in events])),
            mean_distance_m=float(np.mean([e.avg_distance_m for e in events])),
            day_share=sum(1 for e in events if e.period == "day") / len(events),
        )
        for label, events in groups.items()
    ]
    summaries.sort(key=lambda s: s.count, reverse=True)
    return summaries


def run_clustering(
    events: Sequence[CoLocationEvent],
    config: ClusteringConfig | None = None,
) -> ClusteringResult:
    """Cluster co-location events.

    Args:
        events: Co-location events of any period.
        config: Engine configuration.

    Returns:
        ClusteringResult for the selected period.

    Raises:
        ConfigurationError: If the method or period is unknown, or an
            algorithm parameter is invalid.
    """
    config = config or ClusteringConfig()
    if config.method not in METHODS:
        raise ConfigurationError(f"Unknown clustering method: {config.method}. Use one of {METHODS}")

    cohort = filter_by_period(events, config.period)
    result = ClusteringResult(method=config.method, period=config.period)
    if not cohort:
        logger.info(f"No {config.period} events to cluster")
        return result

    raw = event_features(cohort)
    X = normalize_features(raw)
    scores: np.ndarray | None = None

    if config.method == "kmeans":
        km = kmeans_plus_plus(X, k=config.k, max_iter=config.max_iter, rng=config.seed)
        clusters = km.labels
        labels = [f"cluster_{c + 1}" for c in clusters]
        result.n_clusters = len(set(clusters.tolist()))
        logger.debug(f"k-means stopped after {km.n_iter} iterations (converged={km.converged})")
    elif config.method == "isoforest":
        forest = isolation_forest(
            X,
            n_trees=config.n_trees,
            sample_size=config.sample_size,
            contamination=config.contamination,
            rng=config.seed,
        )
        scores = forest.scores
        clusters = forest.is_anomaly.astype(np.int64)
        labels = [ANOMALY_LABEL if flag else NORMAL_LABEL for flag in forest.is_anomaly]
        result.n_clusters = forest.n_anomalies
    else:
        clusters = dbscan(X, eps=config.eps, min_pts=config.min_pts)
        labels = [NOISE_LABEL if c == NOISE else f"cluster_{c + 1}" for c in clusters]
        result.n_clusters = len({c for c in clusters.tolist() if c != NOISE})

    result.assignments = [
        ClusterAssignment(
            event=event,
            label=labels[i],
            cluster=int(clusters[i]),
            features=(float(raw[i, 0]), float(raw[i, 1])),
            normalized=(float(X[i, 0]), float(X[i, 1])),
            score=float(scores[i]) if scores is not None else None,
        )
        for i, event in enumerate(cohort)
    ]
    result.clusters = summarize_clusters(result.assignments)
    if config.method != "isoforest":
        result.metrics = compute_clustering_metrics(X, clusters)
        log_metrics(logger, result.metrics.to_dict(), prefix=config.method, level=logging.DEBUG)

    logger.info(f"{config.method} on {len(cohort)} {config.period} events: {result.n_clusters} groups")
    return result
