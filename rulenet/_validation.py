"""Input and option validation shared by the miner, generator and selector."""

from __future__ import annotations

import math
import numbers
from typing import Any

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError

#: Metrics a rule set can be filtered or ranked by.
RULE_METRICS = (
    "support",
    "confidence",
    "lift",
    "antecedent support",
    "consequent support",
    "leverage",
    "conviction",
)

#: Metrics accepted by the selector and the configuration surface.
SORT_METRICS = ("support", "confidence", "lift", "leverage", "conviction")


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool) and not math.isnan(value)


def check_min_support(min_support: Any) -> float:
    if not _is_real(min_support) or not 0.0 < min_support <= 1.0:
        raise ConfigurationError(
            "`min_support` must be a positive number within the interval `(0, 1]`. Got %s." % (min_support,)
        )
    return float(min_support)


def check_min_confidence(min_confidence: Any) -> float:
    if not _is_real(min_confidence) or not 0.0 <= min_confidence <= 1.0:
        raise ConfigurationError(
            "`min_confidence` must be a number within the interval `[0, 1]`. Got %s." % (min_confidence,)
        )
    return float(min_confidence)


def check_metric(metric: Any, allowed: tuple[str, ...] = SORT_METRICS) -> str:
    if metric not in allowed:
        raise ConfigurationError(f"Unknown metric {metric!r}. Expected one of {list(allowed)}.")
    return str(metric)


def check_optional_count(name: str, value: Any, minimum: int = 0) -> int | None:
    """Validate an optional integer option such as ``top_n`` or ``max_len``."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"`{name}` must be an integer or None. Got {value!r}.")
    if value < minimum:
        raise ConfigurationError(f"`{name}` must be >= {minimum}. Got {value}.")
    return int(value)


def valid_onehot_check(df: pd.DataFrame) -> None:
    """Validate a one-hot / boolean DataFrame before loading it as transactions.

    Allowed values are 0/1 or True/False; NaN is rejected.
    """
    if df.size == 0:
        return

    if hasattr(df, "sparse"):
        return

    if df.dtypes.apply(pd.api.types.is_bool_dtype).all():
        return

    if pd.isna(df).any().any():
        raise ValueError("NaN values are not permitted in a one-hot transaction DataFrame.")

    values = df.values
    idxs = np.where((values != 1) & (values != 0))
    if len(idxs[0]) > 0:
        val = values[tuple(loc[0] for loc in idxs)]
        raise ValueError("The allowed values for a DataFrame are True, False, 0, 1. Found value %s" % (val,))
