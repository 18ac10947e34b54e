"""Configuration loading and management utilities.

This module provides utilities for loading pipeline parameters and facility
geometry from YAML files using OmegaConf.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from omegaconf import DictConfig, OmegaConf

if TYPE_CHECKING:
    from herdsense.geo.zones import Facility
    from herdsense.pipeline import PipelineConfig


def load_config(config_path: str | Path) -> DictConfig:
    """Load a YAML configuration file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Configuration as a DictConfig object.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    return OmegaConf.load(config_path)


def merge_configs(*configs: DictConfig) -> DictConfig:
    """Merge multiple configurations.

    Later configurations override earlier ones.

    Args:
        *configs: Configuration objects to merge.

    Returns:
        Merged configuration.
    """
    return OmegaConf.merge(*configs)


def to_dict(config: DictConfig) -> dict[str, Any]:
    """Convert a DictConfig to a plain dictionary.

    Args:
        config: Configuration object.

    Returns:
        Plain dictionary representation.
    """
    return OmegaConf.to_container(config, resolve=True)


def get_nested(config: DictConfig, key: str, default: Any = None) -> Any:
    """Get a nested configuration value safely.

    Args:
        config: Configuration object.
        key: Dot-separated key path (e.g., "posture.min_dwell_sec").
        default: Default value if key not found.

    Returns:
        Configuration value or default.
    """
    value = OmegaConf.select(config, key, default=default)
    return default if value is None else value


def save_config(config: DictConfig | Any, path: str | Path) -> None:
    """Save configuration to a YAML file.

    Args:
        config: Configuration (DictConfig or structured dataclass) to save.
        path: Output file path.
    """
    if not isinstance(config, DictConfig):
        config = OmegaConf.structured(config)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    OmegaConf.save(config, path)


def load_pipeline_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | list[str] | None = None,
) -> PipelineConfig:
    """Build a typed pipeline configuration.

    The defaults of ``PipelineConfig`` form a structured schema; the YAML file
    (if given) and the overrides are merged on top, so unknown keys and wrongly
    typed values are rejected by OmegaConf.

    Args:
        config_path: Optional YAML file with parameter overrides.
        overrides: Optional dict or dotlist (``["posture.min_dwell_sec=120"]``).

    Returns:
        PipelineConfig instance.
    """
    from herdsense.pipeline import PipelineConfig

    schema = OmegaConf.structured(PipelineConfig)
    layers = [schema]
    if config_path is not None:
        layers.append(load_config(config_path))
    if overrides:
        if isinstance(overrides, dict):
            layers.append(OmegaConf.create(overrides))
        else:
            layers.append(OmegaConf.from_dotlist(list(overrides)))

    merged = merge_configs(*layers)
    return OmegaConf.to_object(merged)


def load_facility(config_path: str | Path) -> Facility:
    """Load facility geometry (fences, rest zone, centre) from YAML.

    Expected keys: ``center`` ([lat, lon]), ``fences`` (list of vertex lists),
    optional ``rest_zone`` (vertex list) and ``green_zones`` (mapping of name to
    vertex list).

    Args:
        config_path: Path to the facility YAML file.

    Returns:
        Facility instance.
    """
    from herdsense.geo.zones import Facility

    raw = to_dict(load_config(config_path))
    facility_node = raw.get("facility", raw)
    return Facility.from_dict(facility_node)
