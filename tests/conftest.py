"""pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from rulenet import TransactionStore

# ---------------------------------------------------------------------------
# Small hand-checked datasets
# ---------------------------------------------------------------------------

ABC_BASKETS = {
    "T1": ["a", "b", "c"],
    "T2": ["a", "b"],
    "T3": ["a", "c"],
    "T4": ["b", "c"],
    "T5": ["a", "b", "c"],
}

GROCERY_BASKETS = [
    ["bread", "milk"],
    ["bread", "diapers", "beer", "eggs"],
    ["milk", "diapers", "beer", "cola"],
    ["bread", "milk", "diapers", "beer"],
    ["bread", "milk", "diapers", "cola"],
]


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: larger synthetic datasets")


@pytest.fixture
def abc_store() -> TransactionStore:
    return TransactionStore.from_baskets(ABC_BASKETS)


@pytest.fixture
def grocery_store() -> TransactionStore:
    return TransactionStore.from_baskets(GROCERY_BASKETS)


@pytest.fixture(scope="session")
def synthetic_baskets() -> list[list[str]]:
    """300 reproducible baskets over 12 items with two planted co-purchase groups."""
    import numpy as np

    rng = np.random.default_rng(7)
    items = [f"item_{i:02d}" for i in range(12)]
    baskets: list[list[str]] = []
    for _ in range(300):
        basket = {items[j] for j in np.flatnonzero(rng.random(12) < 0.15)}
        if rng.random() < 0.4:
            basket.update({"item_00", "item_01", "item_02"})
        if rng.random() < 0.3:
            basket.update({"item_07", "item_08"})
        baskets.append(sorted(basket) or [items[int(rng.integers(12))]])
    return baskets
