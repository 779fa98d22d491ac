from __future__ import annotations

import logging
import math
import numbers
import warnings
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from itertools import combinations
from typing import TYPE_CHECKING, Any

from ._validation import RULE_METRICS, check_metric, check_min_confidence, check_min_support, check_optional_count
from .apriori import FrequentItemsets, Itemset, ItemTuple
from .exceptions import ConfigurationError, EmptyInputError, InconsistentDataWarning
from .transactions import TransactionStore

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)


def _fmt(items: Sequence[str]) -> str:
    return "{" + ", ".join(items) + "}"


@dataclass(frozen=True)
class Rule:
    """An association rule ``antecedent -> consequent`` with its metrics.

    Both sides are canonical (sorted) tuples of item labels.  ``count`` is the
    number of transactions containing every item of the rule.
    """

    antecedent: ItemTuple
    consequent: ItemTuple
    support: float
    confidence: float
    lift: float
    antecedent_support: float
    consequent_support: float
    count: int

    @property
    def items(self) -> ItemTuple:
        return tuple(sorted(self.antecedent + self.consequent))

    @property
    def leverage(self) -> float:
        return self.support - self.antecedent_support * self.consequent_support

    @property
    def conviction(self) -> float:
        if self.confidence >= 1.0:
            return math.inf
        return (1.0 - self.consequent_support) / (1.0 - self.confidence)

    @property
    def key(self) -> str:
        """Text form for display, e.g. ``{a, b} -> {c}``.  Not unique when labels contain ``", "``."""
        return f"{_fmt(self.antecedent)} -> {_fmt(self.consequent)}"

    def metric(self, name: str) -> float:
        """Value of a metric by its frame column name (``"antecedent support"`` etc.)."""
        check_metric(name, RULE_METRICS)
        return float(getattr(self, name.replace(" ", "_")))

    def as_record(self, metrics: Sequence[str] = RULE_METRICS) -> dict[str, Any]:
        record: dict[str, Any] = {
            "antecedents": frozenset(self.antecedent),
            "consequents": frozenset(self.consequent),
        }
        for name in metrics:
            record[name] = self.metric(name)
        return record

    def __str__(self) -> str:
        return self.key


def generate_rules(
    itemsets: FrequentItemsets | Iterable[Itemset],
    n_transactions: int | None = None,
    min_support: float | None = None,
    min_confidence: float = 0.8,
    transactions: TransactionStore | None = None,
    max_consequent_len: int | None = None,
) -> list[Rule]:
    """Generate every rule ``A -> C`` with ``A | C`` a frequent itemset.

    Each itemset of size >= 2 is split into all (antecedent, consequent) pairs
    of non-empty disjoint parts.  Metrics come from the precomputed support
    counts; a side missing from the table is recounted from *transactions*
    when given, otherwise that split is skipped with an
    :class:`~rulenet.exceptions.InconsistentDataWarning`.

    Parameters
    ----------
    itemsets : FrequentItemsets or iterable of Itemset
        Output of :func:`rulenet.apriori`, or any itemset table.
    n_transactions : int | None
        Transaction count; defaults to ``itemsets.n_transactions``.
    min_support : float | None
        Minimum rule support; defaults to ``itemsets.min_support``.  ``None``
        with a plain iterable disables the support filter.
    min_confidence : float, default=0.8
        Minimum confidence in ``[0, 1]``.
    transactions : TransactionStore | None
        Used to recount supports missing from the table.
    max_consequent_len : int | None
        Largest consequent size to emit.  ``None`` means no limit.

    Returns
    -------
    list[Rule]
        Rules in generation order: by source itemset (canonical order), then
        by antecedent size, then lexicographically.
    """
    min_confidence = check_min_confidence(min_confidence)
    max_consequent_len = check_optional_count("max_consequent_len", max_consequent_len, minimum=1)

    if isinstance(itemsets, FrequentItemsets):
        table = itemsets
        if n_transactions is None:
            n_transactions = itemsets.n_transactions
        if min_support is None:
            min_support = itemsets.min_support
    else:
        listed = list(itemsets)
        if n_transactions is None:
            if transactions is None:
                raise ConfigurationError("`n_transactions` is required when itemsets is not a FrequentItemsets table.")
            n_transactions = transactions.n_transactions
        table = FrequentItemsets(listed, n_transactions, min_support or 0.0)

    if min_support is not None:
        min_support = check_min_support(min_support)
    if n_transactions <= 0:
        raise EmptyInputError("Cannot generate rules over zero transactions.")

    n_missing = 0

    def _lookup(items: ItemTuple) -> int | None:
        count = table.count(items)
        if count is None and transactions is not None:
            count = transactions.count(items)
        return count

    rules: list[Rule] = []
    for itemset in table.values():
        k = len(itemset.items)
        if k < 2:
            continue
        support = itemset.count / n_transactions
        if min_support is not None and support < min_support:
            continue

        for r in range(1, k):
            if max_consequent_len is not None and k - r > max_consequent_len:
                continue
            for antecedent in combinations(itemset.items, r):
                consequent = tuple(item for item in itemset.items if item not in antecedent)
                ant_count = _lookup(antecedent)
                con_count = _lookup(consequent)
                if not ant_count or not con_count:
                    n_missing += 1
                    continue

                confidence = itemset.count / ant_count
                if confidence < min_confidence:
                    continue
                consequent_support = con_count / n_transactions
                rules.append(
                    Rule(
                        antecedent=antecedent,
                        consequent=consequent,
                        support=support,
                        confidence=confidence,
                        lift=confidence / consequent_support,
                        antecedent_support=ant_count / n_transactions,
                        consequent_support=consequent_support,
                        count=itemset.count,
                    )
                )

    if n_missing:
        warnings.warn(
            f"Skipped {n_missing} candidate rule(s) whose antecedent or consequent support "
            "is not in the itemset table; pass `transactions` to recount them.",
            InconsistentDataWarning,
            stacklevel=2,
        )
    logger.debug("generated %d rules from %d itemsets", len(rules), len(table))
    return rules


def rules_to_frame(rules: Iterable[Rule], return_metrics: Sequence[str] = RULE_METRICS) -> pd.DataFrame:
    """Tabulate rules as ``antecedents`` / ``consequents`` frozensets plus metric columns."""
    import pandas as pd

    for name in return_metrics:
        check_metric(name, RULE_METRICS)
    columns = ["antecedents", "consequents"] + list(return_metrics)
    return pd.DataFrame([rule.as_record(return_metrics) for rule in rules], columns=columns)


def association_rules(
    df: pd.DataFrame | Any,
    num_itemsets: int | None = None,
    metric: str = "confidence",
    min_threshold: float = 0.8,
    transactions: TransactionStore | None = None,
    return_metrics: Sequence[str] = RULE_METRICS,
) -> pd.DataFrame:
    """Generate association rules from a ``support`` / ``itemsets`` frame.

    DataFrame counterpart of :func:`generate_rules`, compatible with the
    frames produced by :meth:`FrequentItemsets.to_pandas` and by
    mlxtend-style miners.

    Parameters
    ----------
    df : pandas.DataFrame
        Frequent itemsets with columns ``support`` and ``itemsets``.
    num_itemsets : int | None
        Number of transactions.  Read from ``df.attrs["num_itemsets"]`` or
        derived from a ``count`` column when omitted.
    metric : str, default='confidence'
        Metric the ``min_threshold`` filter applies to.
    min_threshold : float, default=0.8
        Rules with ``metric < min_threshold`` are dropped.
    transactions : TransactionStore | None
        Used to recount supports missing from *df*.
    return_metrics : list[str]
        Metric columns to include.

    Returns
    -------
    pandas.DataFrame
        Columns ``antecedents``, ``consequents`` and *return_metrics*.
    """
    from ._compat import to_pandas

    df = to_pandas(df)
    check_metric(metric, RULE_METRICS)

    if "support" not in df.columns:
        raise ValueError("The input DataFrame must contain a 'support' column")
    if "itemsets" not in df.columns:
        raise ValueError("The input DataFrame must contain an 'itemsets' column")
    if df.empty:
        raise EmptyInputError("The input DataFrame `df` containing the frequent itemsets is empty.")

    if num_itemsets is None:
        if "num_itemsets" in df.attrs:
            num_itemsets = int(df.attrs["num_itemsets"])
        elif "count" in df.columns:
            first = df.iloc[0]
            num_itemsets = round(float(first["count"]) / float(first["support"]))
        elif transactions is not None:
            num_itemsets = transactions.n_transactions
        else:
            raise ConfigurationError(
                "`num_itemsets` is required: pass it explicitly or use a frame from FrequentItemsets.to_pandas()."
            )
    if isinstance(num_itemsets, bool) or not isinstance(num_itemsets, numbers.Integral) or num_itemsets <= 0:
        raise ConfigurationError(f"`num_itemsets` must be a positive integer. Got {num_itemsets!r}.")

    table: list[Itemset] = []
    for iset, support in zip(df["itemsets"], df["support"].astype(float)):
        members = (iset,) if isinstance(iset, str) else iset
        items = tuple(sorted({str(x) for x in members}))
        count = round(support * num_itemsets)
        table.append(Itemset(items, count, count / num_itemsets))

    rules = generate_rules(
        table,
        n_transactions=num_itemsets,
        min_confidence=0.0,
        transactions=transactions,
    )
    kept = [rule for rule in rules if rule.metric(metric) >= min_threshold]
    return rules_to_frame(kept, return_metrics)
