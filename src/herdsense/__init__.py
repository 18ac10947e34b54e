"""HerdSense: livestock GPS and accelerometer behavior analysis.

This package provides tools for:
- Cleaning and 1 Hz resampling of collar telemetry
- Posture extraction with auto-calibration and hysteresis
- GPS/accelerometer behavior fusion and strict 24 h time accounting
- Dwell zones, isolation and perimeter-outlier detection
- Pairwise co-location detection and clustering of co-location events
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("herdsense")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = ["__version__"]
