"""Level-wise (Apriori) frequent itemset mining."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from itertools import combinations
from typing import TYPE_CHECKING, Any

import numpy as np

from ._validation import check_min_support, check_optional_count
from .exceptions import ConfigurationError, EmptyInputError, ResourceExhaustionError
from .transactions import TransactionStore, as_transaction_store

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)

ItemTuple = tuple[str, ...]


@dataclass(frozen=True)
class Itemset:
    """A frequent itemset: canonical (sorted) items, support count and ratio."""

    items: ItemTuple
    count: int
    support: float

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item: object) -> bool:
        return item in self.items

    def as_record(self) -> dict[str, Any]:
        return {
            "itemsets": frozenset(self.items),
            "length": len(self.items),
            "count": self.count,
            "support": self.support,
        }


def _key(items: Iterable[str] | str) -> frozenset[str]:
    if isinstance(items, str):
        return frozenset((items,))
    return frozenset(items)


class FrequentItemsets(Mapping[frozenset, Itemset]):
    """Read-only table of frequent itemsets keyed by ``frozenset`` of labels.

    Iteration order is canonical: by itemset size, then lexicographically by
    the sorted labels.  Lookups accept any iterable of labels (a bare string
    is treated as a one-item set).

    Attributes
    ----------
    n_transactions : int
        Size of the transaction store the table was mined from.
    min_support : float
        Threshold the table was mined with.
    """

    def __init__(self, itemsets: Iterable[Itemset], n_transactions: int, min_support: float) -> None:
        ordered = sorted(itemsets, key=lambda s: (len(s.items), s.items))
        self._table: dict[frozenset[str], Itemset] = {frozenset(s.items): s for s in ordered}
        self.n_transactions = n_transactions
        self.min_support = min_support

    def __getitem__(self, items: Iterable[str] | str) -> Itemset:
        return self._table[_key(items)]

    def __contains__(self, items: object) -> bool:
        try:
            return _key(items) in self._table  # type: ignore[arg-type]
        except TypeError:
            return False

    def __iter__(self) -> Iterator[frozenset]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def count(self, items: Iterable[str] | str) -> int | None:
        """Support count of *items*, or ``None`` when the set is not in the table."""
        found = self._table.get(_key(items))
        return None if found is None else found.count

    def support(self, items: Iterable[str] | str) -> float | None:
        found = self._table.get(_key(items))
        return None if found is None else found.support

    def level(self, k: int) -> list[Itemset]:
        """All itemsets of size *k*, in canonical order."""
        return [s for s in self._table.values() if len(s.items) == k]

    @property
    def max_len(self) -> int:
        return max((len(s.items) for s in self._table.values()), default=0)

    def to_pandas(self) -> pd.DataFrame:
        """``support`` / ``itemsets`` frame (plus ``count`` and ``length``).

        The transaction count is stored in ``df.attrs["num_itemsets"]`` so
        :func:`rulenet.association_rules` can pick it up.
        """
        import pandas as pd

        columns = ["support", "itemsets", "count", "length"]
        df = pd.DataFrame([s.as_record() for s in self._table.values()], columns=columns)
        df.attrs["num_itemsets"] = self.n_transactions
        return df

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(n_itemsets={len(self)}, max_len={self.max_len}, "
            f"n_transactions={self.n_transactions}, min_support={self.min_support})"
        )


class _CandidateOverflow(Exception):
    def __init__(self, n_candidates: int) -> None:
        self.n_candidates = n_candidates


def _min_count(min_support: float, n_transactions: int) -> int:
    """Smallest count whose ratio ``count / n`` reaches *min_support*."""
    min_count = max(1, math.ceil(min_support * n_transactions))
    while min_count > 1 and (min_count - 1) / n_transactions >= min_support:
        min_count -= 1
    while min_count / n_transactions < min_support:
        min_count += 1
    return min_count


def _generate_candidates(
    frequent: list[ItemTuple],
    max_candidates: int | None,
) -> list[tuple[ItemTuple, ItemTuple, ItemTuple]]:
    """Join frequent k-itemsets sharing a (k-1)-prefix, then prune.

    *frequent* must be sorted lexicographically so prefix groups are
    contiguous.  Returns ``(candidate, left_parent, right_parent)`` triples.
    """
    known = set(frequent)
    candidates: list[tuple[ItemTuple, ItemTuple, ItemTuple]] = []
    for i, left in enumerate(frequent):
        prefix = left[:-1]
        for right in frequent[i + 1 :]:
            if right[:-1] != prefix:
                break
            candidate = left + (right[-1],)
            # left and right are known; check the remaining k-subsets
            if all(sub in known for sub in combinations(candidate, len(candidate) - 1)):
                candidates.append((candidate, left, right))
                if max_candidates is not None and len(candidates) > max_candidates:
                    raise _CandidateOverflow(len(candidates))
    return candidates


def _count_chunk(
    chunk: list[tuple[ItemTuple, ItemTuple, ItemTuple]],
    tids: dict[ItemTuple, np.ndarray],
) -> list[np.ndarray]:
    return [np.intersect1d(tids[left], tids[right], assume_unique=True) for _, left, right in chunk]


def _count_candidates(
    candidates: list[tuple[ItemTuple, ItemTuple, ItemTuple]],
    tids: dict[ItemTuple, np.ndarray],
    n_jobs: int,
) -> list[np.ndarray]:
    if n_jobs == 1 or len(candidates) < 2 * n_jobs:
        return _count_chunk(candidates, tids)

    from concurrent.futures import ThreadPoolExecutor

    # numpy releases the GIL inside intersect1d, so threads count in parallel
    size = math.ceil(len(candidates) / n_jobs)
    chunks = [candidates[i : i + size] for i in range(0, len(candidates), size)]
    results: list[np.ndarray] = []
    with ThreadPoolExecutor(max_workers=n_jobs) as pool:
        for part in pool.map(lambda c: _count_chunk(c, tids), chunks):
            results.extend(part)
    return results


def apriori(
    transactions: TransactionStore | Iterable[Iterable[Any]] | Any,
    min_support: float = 0.5,
    max_len: int | None = None,
    max_candidates: int | None = None,
    n_jobs: int = 1,
    verbose: int = 0,
) -> FrequentItemsets:
    """Mine every itemset whose support reaches *min_support*.

    Classic level-wise search: frequent singletons first, then candidates of
    size k+1 are formed by joining frequent k-itemsets that share their first
    k-1 labels, pruned when any k-subset is infrequent, and counted exactly
    against the store's vertical index.  The search ends when a level yields
    no candidates.

    Parameters
    ----------
    transactions : TransactionStore, one-hot DataFrame, or iterable of baskets
        The transaction data.  Non-store inputs go through
        :func:`~rulenet.transactions.as_transaction_store`.
    min_support : float, default=0.5
        Minimum support ratio in ``(0, 1]``.
    max_len : int | None, default=None
        Largest itemset size to mine.  ``None`` means no limit.
    max_candidates : int | None, default=None
        Maximum number of candidates allowed at any level.  When exceeded a
        :class:`~rulenet.exceptions.ResourceExhaustionError` is raised whose
        ``partial`` attribute holds the itemsets confirmed so far.
    n_jobs : int, default=1
        Worker threads for support counting.
    verbose : int, default=0
        If > 0, print per-level progress.

    Returns
    -------
    FrequentItemsets

    Raises
    ------
    ConfigurationError
        If an option is out of range.  Checked before any work is done.
    EmptyInputError
        If the store has no transactions.

    Examples
    --------
    >>> freq = apriori([["a", "b"], ["a", "c"], ["a", "b", "c"]], min_support=0.6)
    >>> freq["a", "b"].support
    0.6666666666666666
    """
    min_support = check_min_support(min_support)
    max_len = check_optional_count("max_len", max_len, minimum=1)
    max_candidates = check_optional_count("max_candidates", max_candidates, minimum=1)
    if check_optional_count("n_jobs", n_jobs, minimum=1) is None:
        raise ConfigurationError("`n_jobs` must be a positive integer. Got None.")

    store = as_transaction_store(transactions)
    n = store.n_transactions
    if n == 0:
        raise EmptyInputError("Cannot mine itemsets: the transaction store is empty.")

    min_count = _min_count(min_support, n)
    t0 = time.perf_counter()
    confirmed: list[Itemset] = []

    def _fail(level: int, n_candidates: int) -> ResourceExhaustionError:
        partial = FrequentItemsets(confirmed, n, min_support)
        msg = (
            f"Level {level} produced more than {max_candidates} candidate itemsets "
            f"(stopped at {n_candidates}). {len(partial)} itemsets were confirmed before "
            f"this level; retry with a higher min_support or max_candidates."
        )
        logger.warning(msg)
        return ResourceExhaustionError(msg, partial=partial, level=level, n_candidates=n_candidates)

    if max_candidates is not None and len(store.items) > max_candidates:
        raise _fail(1, len(store.items))

    level: dict[ItemTuple, np.ndarray] = {}
    for item in store.items:
        tids = store.tidlist(item)
        if len(tids) >= min_count:
            level[(item,)] = tids

    k = 1
    while level:
        confirmed.extend(Itemset(items, len(tids), len(tids) / n) for items, tids in level.items())
        if verbose:
            print(f"[{time.strftime('%X')}] Level {k}: {len(level):,} frequent itemsets.")
        logger.debug("level %d: %d frequent itemsets", k, len(level))

        k += 1
        if max_len is not None and k > max_len:
            break

        try:
            candidates = _generate_candidates(sorted(level), max_candidates)
        except _CandidateOverflow as e:
            raise _fail(k, e.n_candidates) from None
        if not candidates:
            break

        counted = _count_candidates(candidates, level, n_jobs)
        level = {
            candidate: tids
            for (candidate, _, _), tids in zip(candidates, counted)
            if len(tids) >= min_count
        }

    if verbose:
        print(
            f"[{time.strftime('%X')}] Mined {len(confirmed):,} frequent itemsets from "
            f"{n:,} transactions in {time.perf_counter() - t0:.2f}s."
        )
    return FrequentItemsets(confirmed, n, min_support)
