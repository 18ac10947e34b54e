"""Pytest fixtures for HerdSense tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from herdsense.data.records import RawRecord, Sample, format_clock, parse_date_epoch
from herdsense.geo.zones import Facility

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"

DATE = "14.12.2025"

# Square fence of roughly 220 m x 140 m around (50.0, 14.0)
FENCE = [(49.999, 13.999), (49.999, 14.001), (50.001, 14.001), (50.001, 13.999)]
REST_ZONE = [(49.9995, 13.9995), (49.9995, 14.0005), (50.0005, 14.0005), (50.0005, 13.9995)]


@pytest.fixture
def day_epoch():
    """Epoch of midnight of the test date."""
    return parse_date_epoch(DATE)


@pytest.fixture
def make_records():
    """Factory for raw records at given seconds of the test date.

    ``lat``/``lon`` may be scalars or per-record sequences.
    """

    def _make(seconds, lat=50.0, lon=14.0, acc=(0, 0, 1024), date=DATE):
        n = len(seconds)
        lats = list(lat) if isinstance(lat, (list, tuple)) else [lat] * n
        lons = list(lon) if isinstance(lon, (list, tuple)) else [lon] * n
        return [
            RawRecord(format_clock(s), date, lats[i], lons[i], acc[0], acc[1], acc[2])
            for i, s in enumerate(seconds)
        ]

    return _make


@pytest.fixture
def make_samples(day_epoch):
    """Factory for 1 Hz-style samples at given seconds of the test date."""

    def _make(seconds, lat=50.0, lon=14.0, acc=(0, 0, 1024), stand_by=False):
        n = len(seconds)
        lats = list(lat) if isinstance(lat, (list, tuple)) else [lat] * n
        lons = list(lon) if isinstance(lon, (list, tuple)) else [lon] * n
        return [
            Sample(
                second_of_day=int(s) % 86400,
                epoch=day_epoch + int(s),
                lat=lats[i],
                lon=lons[i],
                acc_x=acc[0],
                acc_y=acc[1],
                acc_z=acc[2],
                stand_by=stand_by,
            )
            for i, s in enumerate(seconds)
        ]

    return _make


@pytest.fixture
def square_facility():
    """Facility with one square fence and a smaller rest zone at its center."""
    return Facility(
        center=(50.0, 14.0),
        fences=[list(FENCE)],
        rest_zone=list(REST_ZONE),
        green_zones={"GREEN_CENTER": list(REST_ZONE)},
    )


@pytest.fixture
def facility_config_path():
    """Path to the bundled facility configuration."""
    return CONFIG_DIR / "facility.yaml"


@pytest.fixture
def default_config_path():
    """Path to the bundled pipeline configuration."""
    return CONFIG_DIR / "default.yaml"
