"""Estimator facade tying the miner, generator, selector and graph builder together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .apriori import FrequentItemsets, apriori
from .association_rules import Rule, generate_rules
from .config import MiningConfig
from .graph import RuleGraph, build_rule_graph
from .selection import select_rules
from .transactions import TransactionStore, as_transaction_store

if TYPE_CHECKING:
    import pandas as pd
    from typing_extensions import Self

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Everything one pipeline run produces."""

    config: MiningConfig
    transactions: TransactionStore
    itemsets: FrequentItemsets
    rules: list[Rule]
    selected: list[Rule]
    graph: RuleGraph


def run_pipeline(
    transactions: TransactionStore | Any,
    config: MiningConfig | None = None,
    verbose: int = 0,
    **options: Any,
) -> PipelineResult:
    """Mine, generate, select and build the rule graph in one call.

    Options may be given as a :class:`MiningConfig` or as keyword arguments
    (``min_support=0.4, top_n=20``), not both.  The configuration is validated
    before the transactions are touched.
    """
    if config is not None and options:
        raise TypeError("Pass either `config` or keyword options, not both.")
    if config is None:
        config = MiningConfig.from_mapping(options)

    store = as_transaction_store(transactions)
    itemsets = apriori(
        store,
        min_support=config.min_support,
        max_len=config.max_len,
        max_candidates=config.max_candidates,
        n_jobs=config.n_jobs,
        verbose=verbose,
    )
    if len(itemsets) == 0:
        logger.info("No itemset reaches min_support=%s; no rules found.", config.min_support)

    rules = generate_rules(itemsets, min_confidence=config.min_confidence, transactions=store)
    selected = select_rules(rules, metric=config.metric, top_n=config.top_n)
    graph = build_rule_graph(selected, item_frequency=store.item_frequency())
    return PipelineResult(config, store, itemsets, rules, selected, graph)


class RuleMiner:
    """Association-rule miner with a fit / attribute estimator API.

    Parameters
    ----------
    min_support : float, default=0.5
        Minimum itemset support in ``(0, 1]``.
    min_confidence : float, default=0.8
        Minimum rule confidence in ``[0, 1]``.
    metric : str, default='lift'
        Ranking metric for :attr:`selected_rules`.
    top_n : int | None, default=None
        Number of rules kept in :attr:`selected_rules`.
    max_len : int | None, default=None
        Largest itemset size to mine.
    max_candidates : int | None, default=None
        Candidate ceiling per level.
    n_jobs : int, default=1
        Worker threads for support counting.
    verbose : int, default=0
        If > 0, print mining progress.

    Examples
    --------
    .. code-block:: python

        from rulenet import RuleMiner

        model = RuleMiner(min_support=0.02, min_confidence=0.3, top_n=30).fit(baskets)
        model.association_rules_      # every rule, as a DataFrame
        model.selected_rules          # top 30 by lift
        model.rule_graph.item_clusters()
    """

    def __init__(
        self,
        min_support: float = 0.5,
        min_confidence: float = 0.8,
        metric: str = "lift",
        top_n: int | None = None,
        max_len: int | None = None,
        max_candidates: int | None = None,
        n_jobs: int = 1,
        verbose: int = 0,
    ) -> None:
        self.config = MiningConfig(
            min_support=min_support,
            min_confidence=min_confidence,
            metric=metric,
            top_n=top_n,
            max_len=max_len,
            max_candidates=max_candidates,
            n_jobs=n_jobs,
        )
        self.verbose = verbose
        self._result: PipelineResult | None = None

    @classmethod
    def from_transactions(
        cls,
        data: Any,
        transaction_col: str | None = None,
        item_col: str | None = None,
        **kwargs: Any,
    ) -> Self:
        """Create and fit from a long-format (transaction id, item) DataFrame."""
        store = TransactionStore.from_long(data, transaction_col=transaction_col, item_col=item_col)
        return cls(**kwargs).fit(store)

    def fit(self, transactions: TransactionStore | Any) -> Self:
        """Run the full pipeline on *transactions* and keep the results."""
        self._result = run_pipeline(transactions, self.config, verbose=self.verbose)
        return self

    # ------------------------------------------------------------------
    # Fitted attributes
    # ------------------------------------------------------------------

    @property
    def result(self) -> PipelineResult:
        if self._result is None:
            raise RuntimeError("Call fit() before accessing mining results.")
        return self._result

    @property
    def freq_itemsets(self) -> FrequentItemsets:
        return self.result.itemsets

    @property
    def rules(self) -> list[Rule]:
        """Every rule passing the thresholds, in generation order."""
        return self.result.rules

    @property
    def association_rules_(self) -> pd.DataFrame:
        """All rules as a DataFrame (``antecedents``, ``consequents``, metrics)."""
        from .association_rules import rules_to_frame

        return rules_to_frame(self.result.rules)

    @property
    def selected_rules(self) -> list[Rule]:
        return self.result.selected

    @property
    def rule_graph(self) -> RuleGraph:
        return self.result.graph

    def select(self, metric: str | None = None, top_n: int | None = None) -> list[Rule]:
        """Re-rank the fitted rules without re-mining."""
        return select_rules(self.result.rules, metric=metric or self.config.metric, top_n=top_n)

    def build_graph(self, rules: list[Rule] | None = None) -> RuleGraph:
        """Graph of *rules* (default: the fitted selection) with item frequencies attached."""
        if rules is None:
            rules = self.result.selected
        return build_rule_graph(rules, item_frequency=self.result.transactions.item_frequency())

    def recommend_for_cart(self, items: list[Any], n: int = 5) -> list[str]:
        """Suggest items to add to an active cart using the fitted rules.

        Rules whose antecedent is contained in the cart are ranked by lift,
        then confidence, and their unseen consequent items are returned in
        that order.

        Parameters
        ----------
        items : list[Any]
            The items currently in the cart or basket.
        n : int, default=5
            The maximum number of items to recommend.
        """
        cart = {str(item) for item in items}
        matching = [rule for rule in self.result.rules if cart.issuperset(rule.antecedent)]
        matching.sort(key=lambda rule: (-rule.lift, -rule.confidence, rule.antecedent, rule.consequent))

        suggestions: list[str] = []
        for rule in matching:
            for item in rule.consequent:
                if item not in cart and item not in suggestions:
                    suggestions.append(item)
                    if len(suggestions) >= n:
                        return suggestions
        return suggestions

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: str | Path) -> None:
        """Save the model to disk using pickle.

        Parameters
        ----------
        path : str or Path
            File path to write the model to (e.g. ``"model.pkl"``).
        """
        import pickle

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "__rulenet_version__": 1,
            "class": type(self).__name__,
            "state": self.__dict__,
        }
        with open(path, "wb") as f:
            pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)

    @classmethod
    def load(cls, path: str | Path) -> Self:
        """Load a model written by :meth:`save`.

        Raises
        ------
        TypeError
            If the file does not contain a saved rulenet model, or holds a
            model saved from a different class.
        """
        import pickle

        path = Path(path)
        with open(path, "rb") as f:
            payload = pickle.load(f)  # noqa: S301

        if not isinstance(payload, dict) or "__rulenet_version__" not in payload:
            raise TypeError(f"{path} does not contain a saved {cls.__name__}")
        saved_cls_name = payload.get("class", "")
        if saved_cls_name != cls.__name__:
            raise TypeError(f"Model was saved as {saved_cls_name} but loaded as {cls.__name__}.")

        instance = cls.__new__(cls)
        instance.__dict__.update(payload["state"])
        return instance

    def __repr__(self) -> str:
        fitted = self._result is not None
        return (
            f"{type(self).__name__}("
            f"min_support={self.config.min_support}, "
            f"min_confidence={self.config.min_confidence}, "
            f"metric={self.config.metric!r}, "
            f"top_n={self.config.top_n}, "
            f"fitted={fitted})"
        )
