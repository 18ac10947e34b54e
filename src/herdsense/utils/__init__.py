"""Utility functions for HerdSense.

This module provides configuration, logging and random-source utilities.
"""

from herdsense.utils.config import (
    get_nested,
    load_config,
    load_facility,
    load_pipeline_config,
    merge_configs,
    save_config,
    to_dict,
)
from herdsense.utils.logging import (
    LoggerAdapter,
    get_logger,
    log_metrics,
    setup_logging,
)
from herdsense.utils.seed import get_rng

__all__ = [
    # config
    "load_config",
    "merge_configs",
    "to_dict",
    "get_nested",
    "save_config",
    "load_pipeline_config",
    "load_facility",
    # logging
    "setup_logging",
    "get_logger",
    "LoggerAdapter",
    "log_metrics",
    # seed
    "get_rng",
]
