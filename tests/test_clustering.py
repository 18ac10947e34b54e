"""Tests for co-location event clustering."""

from __future__ import annotations

import numpy as np
import pytest

from herdsense.clustering import (
    NOISE,
    ClusteringConfig,
    average_path_length,
    compute_clustering_metrics,
    dbscan,
    event_features,
    filter_by_period,
    isolation_forest,
    kmeans_plus_plus,
    normalize_features,
    run_clustering,
)
from herdsense.colocation import CoLocationEvent
from herdsense.errors import ConfigurationError


def make_event(duration_sec, distance_m, period="day", start_epoch=1_765_720_800, pair_id="A x B"):
    return CoLocationEvent(
        pair_id=pair_id,
        start_epoch=start_epoch,
        end_epoch=start_epoch + duration_sec - 1,
        duration_sec=duration_sec,
        period=period,
        min_distance_m=distance_m,
        max_distance_m=distance_m,
        avg_distance_m=distance_m,
    )


@pytest.fixture
def blobs():
    """Two tight, well separated groups of ten points."""
    rng = np.random.default_rng(42)
    a = rng.normal(0.0, 0.01, size=(10, 2))
    b = rng.normal(1.0, 0.01, size=(10, 2))
    return np.vstack([a, b])


@pytest.fixture
def events():
    """Short close day events and long distant night events."""
    short = [make_event(60 + i, 1.0 + 0.01 * i, "day", start_epoch=1_765_720_800 + i) for i in range(8)]
    long = [make_event(3600 + i, 4.5 + 0.01 * i, "night", start_epoch=1_765_680_000 + i) for i in range(8)]
    return short + long


class TestFeatures:
    """Tests for the event feature space."""

    def test_event_features(self):
        """Test duration in minutes and mean distance."""
        X = event_features([make_event(120, 2.5)])
        np.testing.assert_allclose(X, [[2.0, 2.5]])
        assert event_features([]).shape == (0, 2)

    def test_normalize(self):
        """Test min-max scaling with a constant column."""
        X = normalize_features(np.array([[0.0, 10.0], [5.0, 10.0], [10.0, 10.0]]))
        np.testing.assert_allclose(X, [[0.0, 0.0], [0.5, 0.0], [1.0, 0.0]])

    def test_filter_by_period(self, events):
        """Test cohort selection."""
        assert len(filter_by_period(events, "day")) == 8
        assert len(filter_by_period(events, "all")) == 16
        with pytest.raises(ConfigurationError):
            filter_by_period(events, "dusk")


class TestKMeans:
    """Tests for k-means++."""

    def test_single_cluster(self, blobs):
        """Test k=1 puts every point in cluster 0."""
        result = kmeans_plus_plus(blobs, k=1, rng=0)
        assert np.all(result.labels == 0)
        assert result.converged
        np.testing.assert_allclose(result.centroids[0], blobs.mean(axis=0))

    def test_separates_blobs(self, blobs):
        """Test two separated groups are recovered."""
        result = kmeans_plus_plus(blobs, k=2, rng=0)
        assert len(set(result.labels[:10])) == 1
        assert len(set(result.labels[10:])) == 1
        assert result.labels[0] != result.labels[10]

    def test_reproducible(self, blobs):
        """Test the same seed gives the same labels."""
        a = kmeans_plus_plus(blobs, k=3, rng=7)
        b = kmeans_plus_plus(blobs, k=3, rng=7)
        np.testing.assert_array_equal(a.labels, b.labels)

    def test_k_capped_at_n(self):
        """Test k larger than the number of points."""
        X = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0]])
        result = kmeans_plus_plus(X, k=10, rng=0)
        assert result.centroids.shape == (3, 2)
        assert set(result.labels.tolist()) <= {0, 1, 2}

    def test_invalid_k(self, blobs):
        """Test k below one is rejected."""
        with pytest.raises(ConfigurationError):
            kmeans_plus_plus(blobs, k=0)


class TestIsolationForest:
    """Tests for the isolation forest."""

    def test_average_path_length(self):
        """Test c(n) for small n."""
        assert average_path_length(1) == 0.0
        assert average_path_length(2) == pytest.approx(0.1544313298)

    def test_outlier_scores_highest(self):
        """Test a far point gets the top score and is flagged."""
        rng = np.random.default_rng(0)
        X = np.vstack([rng.normal(0.0, 0.05, size=(50, 2)), [[3.0, 3.0]]])

        result = isolation_forest(X, n_trees=40, sample_size=64, contamination=0.05, rng=0)

        assert int(np.argmax(result.scores)) == 50
        assert result.is_anomaly[50]
        assert result.threshold == pytest.approx(np.sort(result.scores)[::-1][1])
        assert np.all((result.scores > 0) & (result.scores <= 1))

    def test_single_sample(self):
        """Test a single point scores 0.5."""
        result = isolation_forest(np.array([[1.0, 2.0]]), rng=0)
        assert result.scores.tolist() == [0.5]

    def test_invalid_contamination(self, blobs):
        """Test contamination must lie in (0, 0.5]."""
        with pytest.raises(ConfigurationError):
            isolation_forest(blobs, contamination=0.6)
        with pytest.raises(ConfigurationError):
            isolation_forest(blobs, contamination=0.0)


class TestDBSCAN:
    """Tests for DBSCAN."""

    def test_zero_eps_is_all_noise(self, blobs):
        """Test a non-positive radius labels everything noise."""
        labels = dbscan(blobs, eps=0.0, min_pts=1)
        assert np.all(labels == NOISE)

    def test_clusters_and_noise(self, blobs):
        """Test dense groups form clusters and a lone point is noise."""
        X = np.vstack([blobs, [[5.0, 5.0]]])
        labels = dbscan(X, eps=0.2, min_pts=3)
        assert labels[-1] == NOISE
        assert len(set(labels[:10])) == 1
        assert labels[0] != labels[10]
        assert NOISE not in labels[:20]

    def test_invalid_min_pts(self, blobs):
        """Test min_pts below one is rejected."""
        with pytest.raises(ConfigurationError):
            dbscan(blobs, min_pts=0)


class TestValidationMetrics:
    """Tests for cluster validation metrics."""

    def test_two_clusters(self, blobs):
        """Test well separated clusters score high."""
        labels = np.array([0] * 10 + [1] * 10)
        metrics = compute_clustering_metrics(blobs, labels)
        assert metrics.n_clusters == 2
        assert metrics.silhouette_score > 0.9
        assert metrics.noise_fraction == 0.0

    def test_single_cluster_has_no_scores(self, blobs):
        """Test undefined scores stay None."""
        labels = np.array([0] * 19 + [NOISE])
        metrics = compute_clustering_metrics(blobs, labels)
        assert metrics.silhouette_score is None
        assert metrics.noise_fraction == pytest.approx(0.05)


class TestRunClustering:
    """Tests for the clustering engine."""

    def test_kmeans(self, events):
        """Test k-means separates short from long events."""
        result = run_clustering(events, ClusteringConfig(method="kmeans", k=2, seed=0))

        assert result.n_clusters == 2
        assert len(set(result.labels[:8])) == 1
        assert result.labels[0] != result.labels[8]
        assert all(label.startswith("cluster_") for label in result.labels)
        assert result.metrics is not None
        assert sorted(c.count for c in result.clusters) == [8, 8]
        assert {c.day_share for c in result.clusters} == {0.0, 1.0}
        assert "2 clusters" in result.summary()

    def test_isoforest(self, events):
        """Test the isolation forest labels anomalies and normals."""
        outlier = make_event(20_000, 4.9, "night", pair_id="C x D")
        result = run_clustering(events + [outlier], ClusteringConfig(method="isoforest", seed=0))

        assert set(result.labels) <= {"anomaly", "normal"}
        assert result.metrics is None
        assert result.n_clusters == len(result.anomalies)
        scores = [a.score for a in result.anomalies]
        assert scores == sorted(scores, reverse=True)

    def test_dbscan(self, events):
        """Test DBSCAN groups and noise labels."""
        lone = make_event(1800, 2.75, "day", pair_id="C x D")
        result = run_clustering(events + [lone], ClusteringConfig(method="dbscan", eps=0.1, min_pts=3))

        assert result.labels[-1] == "noise"
        assert result.noise_count == 1
        assert result.n_clusters == 2
        assert "noise: 1 events" in result.summary()

    def test_period_cohort(self, events):
        """Test only the selected period is clustered."""
        result = run_clustering(events, ClusteringConfig(method="kmeans", period="night", k=1, seed=0))
        assert len(result.assignments) == 8
        assert all(a.event.period == "night" for a in result.assignments)

    def test_empty_cohort(self):
        """Test no events gives an empty result."""
        result = run_clustering([], ClusteringConfig())
        assert result.assignments == []
        assert result.n_clusters == 0
        assert result.summary() == "kmeans: no events"

    def test_unknown_method(self, events):
        """Test unknown algorithms are rejected."""
        with pytest.raises(ConfigurationError):
            run_clustering(events, ClusteringConfig(method="spectral"))

    def test_to_dict(self, events):
        """Test serialization of a result."""
        data = run_clustering(events, ClusteringConfig(k=2, seed=0)).to_dict()
        assert data["n_events"] == 16
        assert len(data["assignments"]) == 16
        assert data["metrics"]["n_clusters"] == 2
