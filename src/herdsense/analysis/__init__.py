"""Per-day analysis for HerdSense.

This module provides 24-hour time accounting, dwell-zone clustering,
isolation and perimeter-outlier detection, and daily summaries.
"""

from herdsense.analysis.accounting import BehaviorTotals, account_day, totals_from_intervals
from herdsense.analysis.dwell import (
    DwellCluster,
    DwellConfig,
    DwellPoint,
    cluster_dwell_zones,
    detect_lying_zones,
    detect_standing_zones,
)
from herdsense.analysis.isolation import (
    IsolationConfig,
    IsolationEvent,
    OutlierEvent,
    collect_perimeter_outliers,
    detect_isolation_events,
    distances_from_center,
    outlier_threshold,
)
from herdsense.analysis.summary import (
    HEAT_WEIGHTS,
    DailySummary,
    FenceCrossing,
    Heading,
    PointSet,
    average_direction,
    bins_2h,
    collect_points,
    detect_fence_crossings,
    hourly_behavior,
    intervals_to_frame,
    summarize_day,
)

__all__ = [
    # Accounting
    "BehaviorTotals",
    "account_day",
    "totals_from_intervals",
    # Dwell zones
    "DwellConfig",
    "DwellPoint",
    "DwellCluster",
    "cluster_dwell_zones",
    "detect_lying_zones",
    "detect_standing_zones",
    # Isolation
    "IsolationConfig",
    "IsolationEvent",
    "OutlierEvent",
    "detect_isolation_events",
    "collect_perimeter_outliers",
    "distances_from_center",
    "outlier_threshold",
    # Summary
    "HEAT_WEIGHTS",
    "Heading",
    "FenceCrossing",
    "PointSet",
    "DailySummary",
    "hourly_behavior",
    "average_direction",
    "bins_2h",
    "collect_points",
    "detect_fence_crossings",
    "summarize_day",
    "intervals_to_frame",
]
