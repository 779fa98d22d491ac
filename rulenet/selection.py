from __future__ import annotations

from collections.abc import Iterable

from ._validation import SORT_METRICS, check_metric, check_optional_count
from .association_rules import Rule


def select_rules(rules: Iterable[Rule], metric: str = "lift", top_n: int | None = None) -> list[Rule]:
    """Rank rules by *metric* (descending) and keep the first *top_n*.

    Ties are broken by the antecedent, then the consequent label tuples, so
    the result does not depend on the order of the input.

    Parameters
    ----------
    rules : iterable of Rule
        Rules to rank.  Not modified.
    metric : str, default='lift'
        One of ``support``, ``confidence``, ``lift``, ``leverage``,
        ``conviction``.
    top_n : int | None, default=None
        Number of rules to keep.  ``None`` (or a value above the rule count)
        keeps all of them; ``0`` keeps none.

    Raises
    ------
    ConfigurationError
        For an unknown metric or a negative ``top_n``.
    """
    check_metric(metric, SORT_METRICS)
    top_n = check_optional_count("top_n", top_n)

    ranked = sorted(rules, key=lambda rule: (-rule.metric(metric), rule.antecedent, rule.consequent))
    if top_n is None:
        return ranked
    return ranked[:top_n]


def filter_rules(
    rules: Iterable[Rule],
    antecedent: Iterable[str] | None = None,
    consequent: Iterable[str] | None = None,
    min_lift: float | None = None,
) -> list[Rule]:
    """Keep rules mentioning the given items, optionally above a lift floor.

    A rule matches *antecedent* when every listed label is among its
    antecedent items (same for *consequent*).  Order is preserved.
    """
    want_ant = frozenset(antecedent or ())
    want_con = frozenset(consequent or ())
    return [
        rule
        for rule in rules
        if want_ant.issubset(rule.antecedent)
        and want_con.issubset(rule.consequent)
        and (min_lift is None or rule.lift >= min_lift)
    ]
