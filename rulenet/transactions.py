"""Immutable transaction store and the loaders that build it."""

from __future__ import annotations

import csv
import logging
import time
import typing
import warnings
from collections.abc import Callable, Hashable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
from scipy import sparse as sp

from ._compat import to_pandas
from ._validation import valid_onehot_check
from .exceptions import InconsistentDataError, InconsistentDataWarning

if TYPE_CHECKING:
    from ._compat import DataFrame

logger = logging.getLogger(__name__)

Normalizer = Callable[[str], str]


@dataclass(frozen=True)
class Transaction:
    """One basket: an identifier plus its distinct item labels."""

    id: Hashable
    items: frozenset[str]

    def __len__(self) -> int:
        return len(self.items)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    if value is pd.NA or value is pd.NaT:
        return True
    return isinstance(value, str) and not value.strip()


def intersect_tids(arrays: Sequence[np.ndarray]) -> np.ndarray:
    """Intersect sorted transaction-row arrays, smallest first."""
    if not arrays:
        return np.empty(0, dtype=np.int64)
    ordered = sorted(arrays, key=len)
    result = ordered[0]
    for arr in ordered[1:]:
        if len(result) == 0:
            break
        result = np.intersect1d(result, arr, assume_unique=True)
    return result


class _LoadReport:
    """Accumulates data-quality counters while a store is being built."""

    def __init__(self, strict: bool) -> None:
        self.strict = strict
        self.n_empty = 0
        self.n_duplicates = 0
        self.n_collapsed = 0

    def empty(self, txn_id: Hashable) -> None:
        if self.strict:
            raise InconsistentDataError(f"Transaction {txn_id!r} contains no items.")
        self.n_empty += 1

    def collapsed(self, txn_id: Hashable, raw: list[str], label: str) -> None:
        if self.strict:
            raise InconsistentDataError(
                f"Transaction {txn_id!r}: labels {raw} all normalize to {label!r}."
            )
        self.n_collapsed += 1

    def emit(self) -> None:
        problems = []
        if self.n_empty:
            problems.append(f"skipped {self.n_empty} empty transaction(s)")
        if self.n_collapsed:
            problems.append(f"merged {self.n_collapsed} item label(s) that collapsed under normalization")
        if problems:
            msg = "Transaction data is inconsistent: " + "; ".join(problems) + "."
            logger.debug(msg)
            warnings.warn(msg, InconsistentDataWarning, stacklevel=3)


def _clean_basket(
    txn_id: Hashable,
    raw_items: Iterable[Any],
    normalize: Normalizer | None,
    report: _LoadReport,
) -> frozenset[str]:
    if isinstance(raw_items, str):
        raw_items = (raw_items,)
    seen: dict[str, str] = {}
    for raw in raw_items:
        if _is_missing(raw):
            continue
        raw_label = str(raw)
        label = normalize(raw_label) if normalize is not None else raw_label
        if not label:
            continue
        if label in seen:
            report.n_duplicates += 1
            if seen[label] != raw_label:
                report.collapsed(txn_id, [seen[label], raw_label], label)
            continue
        seen[label] = raw_label
    return frozenset(seen)


class TransactionStore:
    """An ordered, read-only collection of transactions.

    The store keeps a vertical index (the sorted row positions of every item,
    taken from a CSC matrix) so itemset supports can be counted exactly by
    intersecting row arrays.

    Build one through the loaders rather than the constructor:

    * :meth:`from_baskets` – list of item lists, or mapping id -> items
    * :meth:`from_long` – long-format (transaction id, item) DataFrame
    * :meth:`from_onehot` – boolean one-hot DataFrame
    * :meth:`from_slots` / :meth:`read_csv` – one row per transaction, items in
      slot columns, reading stops at the first empty cell

    Examples
    --------
    >>> store = TransactionStore.from_baskets([["bread", "milk"], ["bread", "eggs"]])
    >>> store.n_transactions
    2
    >>> store.count(["bread"])
    2
    """

    def __init__(
        self,
        transactions: Iterable[Transaction],
        n_skipped: int = 0,
        n_duplicates: int = 0,
    ) -> None:
        self._transactions: tuple[Transaction, ...] = tuple(transactions)
        self.n_skipped = n_skipped
        self.n_duplicates = n_duplicates

        labels: set[str] = set()
        for txn in self._transactions:
            labels.update(txn.items)
        self._items: tuple[str, ...] = tuple(sorted(labels))
        self._item_index = {item: j for j, item in enumerate(self._items)}
        self._tidlists = self._build_index()

    def _build_index(self) -> dict[str, np.ndarray]:
        row_idx: list[int] = []
        col_idx: list[int] = []
        for i, txn in enumerate(self._transactions):
            for item in txn.items:
                row_idx.append(i)
                col_idx.append(self._item_index[item])

        data = np.ones(len(row_idx), dtype=np.int8)
        csc = sp.csc_matrix(
            (data, (np.array(row_idx, dtype=np.int64), np.array(col_idx, dtype=np.int64))),
            shape=(len(self._transactions), len(self._items)),
        )
        csc.sort_indices()
        indptr, indices = csc.indptr, csc.indices.astype(np.int64)
        return {item: indices[indptr[j] : indptr[j + 1]] for j, item in enumerate(self._items)}

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    @classmethod
    def from_baskets(
        cls,
        baskets: Sequence[Iterable[Any]] | Mapping[Hashable, Iterable[Any]],
        ids: Sequence[Hashable] | None = None,
        normalize: Normalizer | None = None,
        keep_empty: bool = False,
        strict: bool = False,
        verbose: int = 0,
    ) -> TransactionStore:
        """Build a store from item collections.

        Parameters
        ----------
        baskets
            A sequence of item collections (ids default to positions), or a
            mapping of transaction id to item collection.
        ids
            Explicit transaction ids for a sequence input.
        normalize
            Callable applied to every item label (after ``str()``), e.g.
            ``str.strip`` or ``str.lower``.  Labels that normalize to the same
            string within one transaction are merged and reported.
        keep_empty
            Keep transactions without items.  They count towards the support
            denominator but contribute no itemsets.  By default they are
            skipped and reported.
        strict
            Raise :class:`~rulenet.exceptions.InconsistentDataError` on the
            first empty transaction or collapsed label instead of skipping.
        """
        t0 = time.perf_counter()
        if isinstance(baskets, Mapping):
            if ids is not None:
                raise ValueError("`ids` cannot be combined with a mapping of baskets.")
            pairs: Iterable[tuple[Hashable, Iterable[Any]]] = baskets.items()
        else:
            if not isinstance(baskets, Sequence):
                baskets = list(baskets)
            if ids is not None and len(ids) != len(baskets):
                raise ValueError(f"Got {len(ids)} ids for {len(baskets)} baskets.")
            pairs = zip(ids if ids is not None else range(len(baskets)), baskets)

        report = _LoadReport(strict)
        transactions: list[Transaction] = []
        for txn_id, raw_items in pairs:
            items = _clean_basket(txn_id, raw_items, normalize, report)
            if not items and not keep_empty:
                report.empty(txn_id)
                continue
            transactions.append(Transaction(txn_id, items))

        report.emit()
        store = cls(transactions, n_skipped=report.n_empty, n_duplicates=report.n_duplicates)
        if verbose:
            print(
                f"[{time.strftime('%X')}] Loaded {store.n_transactions:,} transactions, "
                f"{len(store.items):,} unique items in {time.perf_counter() - t0:.2f}s."
            )
        return store

    @classmethod
    def from_long(
        cls,
        data: DataFrame | Any,
        transaction_col: str | None = None,
        item_col: str | None = None,
        **kwargs: Any,
    ) -> TransactionStore:
        """Build a store from a long-format frame with one (transaction, item) pair per row.

        Accepts pandas, Polars or PyArrow input.  ``transaction_col`` and
        ``item_col`` default to the first and second column.  Rows with a
        missing transaction id are dropped and counted as skipped.
        """
        df = to_pandas(data)
        if not isinstance(df, pd.DataFrame):
            raise TypeError(f"Expected a Pandas/Polars DataFrame or PyArrow Table, got {type(data)}")

        cols = list(df.columns)
        if len(cols) < 2:
            raise ValueError(f"DataFrame must have at least 2 columns (transaction id + item), got {len(cols)}: {cols}")

        txn_col = transaction_col or cols[0]
        itm_col = item_col or cols[1]
        if txn_col not in df.columns:
            raise ValueError(f"Transaction column '{txn_col}' not found. Available columns: {cols}")
        if itm_col not in df.columns:
            raise ValueError(f"Item column '{itm_col}' not found. Available columns: {cols}")

        missing_id = df[txn_col].isna()
        n_bad_rows = int(missing_id.sum())
        if n_bad_rows:
            warnings.warn(
                f"Dropped {n_bad_rows} row(s) without a transaction id.",
                InconsistentDataWarning,
                stacklevel=2,
            )
        df = df.loc[~missing_id]

        grouped = df.groupby(txn_col, sort=False)[itm_col]
        baskets = {txn_id: list(items) for txn_id, items in grouped}
        store = cls.from_baskets(baskets, **kwargs)
        store.n_skipped += n_bad_rows
        return store

    @classmethod
    def from_onehot(cls, df: DataFrame | Any, **kwargs: Any) -> TransactionStore:
        """Build a store from a one-hot boolean frame (rows are transactions, columns items)."""
        df = to_pandas(df)
        if not isinstance(df, pd.DataFrame):
            raise TypeError(f"Expected a Pandas/Polars DataFrame or PyArrow Table, got {type(df)}")
        valid_onehot_check(df)

        columns = [str(c) for c in df.columns]
        if hasattr(df, "sparse"):
            csr = df.sparse.to_coo().tocsr()
            csr.eliminate_zeros()
            rows = [csr.indices[csr.indptr[i] : csr.indptr[i + 1]] for i in range(csr.shape[0])]
        else:
            dense = np.asarray(df.values, dtype=bool)
            rows = [np.flatnonzero(row) for row in dense]

        baskets = [[columns[j] for j in row] for row in rows]
        return cls.from_baskets(baskets, ids=list(df.index), **kwargs)

    @classmethod
    def from_slots(
        cls,
        rows: Iterable[Sequence[Any]],
        has_ids: bool = False,
        **kwargs: Any,
    ) -> TransactionStore:
        """Build a store from wide rows where each cell after the id is an item slot.

        Reading a row stops at its first empty cell, so ragged rows padded
        with blanks are handled.  With ``has_ids`` the first cell of each row
        is the transaction id; otherwise ids are row positions.
        """
        ids: list[Hashable] = []
        baskets: list[list[Any]] = []
        for pos, row in enumerate(rows):
            cells = list(row)
            if has_ids:
                if not cells or _is_missing(cells[0]):
                    raise ValueError(f"Row {pos} has no transaction id.")
                ids.append(cells[0])
                cells = cells[1:]
            else:
                ids.append(pos)
            items: list[Any] = []
            for cell in cells:
                if _is_missing(cell):
                    break
                items.append(cell)
            baskets.append(items)
        return cls.from_baskets(baskets, ids=ids, **kwargs)

    @classmethod
    def read_csv(
        cls,
        path: str | Path,
        layout: str = "slots",
        has_ids: bool = False,
        delimiter: str = ",",
        skip_header: bool = False,
        transaction_col: str | None = None,
        item_col: str | None = None,
        **kwargs: Any,
    ) -> TransactionStore:
        """Load transactions from a delimited file.

        Parameters
        ----------
        path
            File to read.
        layout : {'slots', 'long'}, default='slots'
            ``'slots'``: one transaction per row, items in consecutive cells
            (ragged rows allowed).  ``'long'``: a header row and one
            (transaction, item) pair per row, read with :func:`pandas.read_csv`.
        has_ids
            Slots layout only: the first cell of each row is the transaction id.
            Blank lines then have no id and are dropped, counted in ``n_skipped``.
            Without ids a blank line is an empty transaction.
        skip_header
            Slots layout only: ignore the first row.
        """
        path = Path(path)
        if layout == "long":
            df = pd.read_csv(path, sep=delimiter)
            return cls.from_long(df, transaction_col=transaction_col, item_col=item_col, **kwargs)
        if layout != "slots":
            raise ValueError(f"`layout` must be 'slots' or 'long'. Got: {layout}")

        with open(path, newline="", encoding="utf-8") as f:
            reader: Iterator[list[str]] = csv.reader(f, delimiter=delimiter)
            if skip_header:
                next(reader, None)
            rows = list(reader)

        if not has_ids:
            # blank lines are empty transactions, reported like rows of empty cells
            return cls.from_slots(rows, **kwargs)

        n_blank = sum(1 for row in rows if not any(cell.strip() for cell in row))
        if n_blank:
            warnings.warn(
                f"Dropped {n_blank} blank line(s) without a transaction id.",
                InconsistentDataWarning,
                stacklevel=2,
            )
        store = cls.from_slots([row for row in rows if any(cell.strip() for cell in row)], has_ids=True, **kwargs)
        store.n_skipped += n_blank
        return store

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._transactions)

    def __getitem__(self, index: int) -> Transaction:
        return self._transactions[index]

    @property
    def n_transactions(self) -> int:
        return len(self._transactions)

    @property
    def items(self) -> tuple[str, ...]:
        """Distinct item labels in sorted order."""
        return self._items

    @property
    def ids(self) -> list[Hashable]:
        return [txn.id for txn in self._transactions]

    @property
    def baskets(self) -> list[frozenset[str]]:
        return [txn.items for txn in self._transactions]

    def tidlist(self, item: str) -> np.ndarray:
        """Sorted row positions of the transactions containing *item*."""
        tids = self._tidlists.get(item)
        if tids is None:
            return np.empty(0, dtype=np.int64)
        return tids

    def count(self, itemset: Iterable[str]) -> int:
        """Number of transactions containing every item of *itemset*."""
        items = set(itemset)
        if not items:
            return self.n_transactions
        if any(item not in self._tidlists for item in items):
            return 0
        return int(len(intersect_tids([self._tidlists[item] for item in items])))

    def support(self, itemset: Iterable[str]) -> float:
        if self.n_transactions == 0:
            return 0.0
        return self.count(itemset) / self.n_transactions

    def item_frequency(self) -> pd.Series:
        """Transaction count per item, most frequent first (ties by label)."""
        counts = pd.Series({item: len(tids) for item, tids in self._tidlists.items()}, dtype="int64")
        if counts.empty:
            return counts
        order = sorted(counts.index, key=lambda item: (-counts[item], item))
        return typing.cast("pd.Series", counts[order])

    def to_onehot(self) -> pd.DataFrame:
        """One-hot boolean matrix (sparse-backed), one column per item."""
        n_txn, n_items = self.n_transactions, len(self._items)
        row_parts = [np.empty(0, dtype=np.int64)]
        col_parts = [np.empty(0, dtype=np.int64)]
        for j, tids in enumerate(self._tidlists.values()):
            row_parts.append(tids)
            col_parts.append(np.full(len(tids), j, dtype=np.int64))
        row_idx = np.concatenate(row_parts)
        col_idx = np.concatenate(col_parts)

        csr = sp.csr_matrix(
            (np.ones(len(row_idx), dtype=bool), (row_idx, col_idx)),
            shape=(n_txn, n_items),
        )
        df = pd.DataFrame.sparse.from_spmatrix(csr, columns=list(self._items)).astype(
            pd.SparseDtype("bool", fill_value=False)
        )
        df.index = pd.Index(self.ids)
        return df

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(n_transactions={self.n_transactions}, "
            f"n_items={len(self._items)}, n_skipped={self.n_skipped})"
        )


def as_transaction_store(data: TransactionStore | DataFrame | Iterable[Iterable[Any]] | Any) -> TransactionStore:
    """Return *data* as a :class:`TransactionStore`.

    Stores pass through unchanged, DataFrames are read as one-hot matrices and
    anything else is treated as an iterable of baskets.
    """
    if isinstance(data, TransactionStore):
        return data
    df = to_pandas(data)
    if isinstance(df, pd.DataFrame):
        return TransactionStore.from_onehot(df)
    if isinstance(data, Mapping):
        return TransactionStore.from_baskets(data)
    return TransactionStore.from_baskets(list(data))
