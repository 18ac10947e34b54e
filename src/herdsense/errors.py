"""Exception hierarchy for HerdSense.

Record-level and gap-level problems are absorbed locally by the stages that
meet them; only a structurally unusable day raises out of the pipeline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from herdsense.data.cleaning import CleaningStats


class HerdSenseError(Exception):
    """Base class for all HerdSense errors."""


class ParseError(HerdSenseError, ValueError):
    """A single raw record could not be parsed.

    Raised by the record parsers and always caught (and counted) by the cleaner.
    """


class InsufficientDataError(HerdSenseError):
    """Fewer than two valid samples remain after cleaning.

    Attributes:
        stats: Diagnostic counters collected while cleaning the day.
    """

    def __init__(self, message: str, stats: CleaningStats | None = None):
        super().__init__(message)
        self.stats = stats


class NoOverlapError(HerdSenseError):
    """Two tracks share no time window."""


class ConfigurationError(HerdSenseError, ValueError):
    """Invalid parameter or unknown option."""
