from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ._validation import (
    check_metric,
    check_min_confidence,
    check_min_support,
    check_optional_count,
)
from .exceptions import ConfigurationError


@dataclass(frozen=True)
class MiningConfig:
    """Options for one mining run, validated on construction.

    Attributes
    ----------
    min_support : float, default=0.5
        Minimum itemset support in ``(0, 1]``.
    min_confidence : float, default=0.8
        Minimum rule confidence in ``[0, 1]``.
    metric : str, default='lift'
        Ranking metric for the rule selector (``support``, ``confidence``,
        ``lift``, ``leverage`` or ``conviction``).
    top_n : int | None, default=None
        Number of rules kept by the selector.  ``None`` keeps all.
    max_len : int | None, default=None
        Largest itemset size to mine.  ``None`` means no limit.
    max_candidates : int | None, default=None
        Ceiling on the candidate count of a single level.  ``None`` disables
        the check.
    n_jobs : int, default=1
        Worker threads used to count candidate supports.
    """

    min_support: float = 0.5
    min_confidence: float = 0.8
    metric: str = "lift"
    top_n: int | None = None
    max_len: int | None = None
    max_candidates: int | None = None
    n_jobs: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "min_support", check_min_support(self.min_support))
        object.__setattr__(self, "min_confidence", check_min_confidence(self.min_confidence))
        check_metric(self.metric)
        check_optional_count("top_n", self.top_n)
        check_optional_count("max_len", self.max_len, minimum=1)
        check_optional_count("max_candidates", self.max_candidates, minimum=1)
        if check_optional_count("n_jobs", self.n_jobs, minimum=1) is None:
            raise ConfigurationError("`n_jobs` must be a positive integer. Got None.")

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> MiningConfig:
        """Build a config from a dict, ignoring ``None`` values and rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration option(s): {unknown}. Expected any of {sorted(known)}.")
        kwargs = {k: v for k, v in options.items() if v is not None}
        return cls(**kwargs)

    def replace(self, **changes: Any) -> MiningConfig:
        return dataclasses.replace(self, **changes)

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)
