"""Exception and warning types raised by rulenet."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .apriori import FrequentItemsets


class RulenetError(Exception):
    """Base class for all rulenet errors."""


class ConfigurationError(RulenetError, ValueError):
    """An option is out of range or unknown.

    Raised before any mining work starts.
    """


class EmptyInputError(RulenetError, ValueError):
    """The transaction store holds no usable transactions."""


class InconsistentDataError(RulenetError, ValueError):
    """A transaction is malformed (only raised when loading with ``strict=True``)."""


class ResourceExhaustionError(RulenetError, RuntimeError):
    """The number of candidate itemsets at a level exceeded ``max_candidates``.

    Attributes
    ----------
    partial : FrequentItemsets
        Every itemset confirmed frequent before the failing level.
    level : int
        Itemset size whose candidate generation was aborted.
    n_candidates : int
        Number of candidates generated when the ceiling was hit.
    """

    def __init__(self, message: str, partial: FrequentItemsets, level: int, n_candidates: int) -> None:
        super().__init__(message)
        self.partial = partial
        self.level = level
        self.n_candidates = n_candidates


class InconsistentDataWarning(UserWarning):
    """Emitted when malformed transactions or missing supports are skipped."""
