"""Association rule tests – dataset and expected counts follow the classic mlxtend example."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from rulenet import (
    ConfigurationError,
    EmptyInputError,
    InconsistentDataWarning,
    Itemset,
    Rule,
    TransactionStore,
    apriori,
    association_rules,
    generate_rules,
    rules_to_frame,
)

# ---------------------------------------------------------------------------
# Shared fixtures (module-level, built once)
# ---------------------------------------------------------------------------

one_ary = np.array(
    [
        [0, 0, 0, 1, 0, 1, 1, 1, 1, 0, 1],
        [0, 0, 1, 1, 0, 1, 0, 1, 1, 0, 1],
        [1, 0, 0, 1, 0, 1, 1, 0, 0, 0, 0],
        [0, 1, 0, 0, 0, 1, 1, 0, 0, 1, 1],
        [0, 1, 0, 1, 1, 1, 0, 0, 1, 0, 0],
    ]
)

cols = [
    "Apple",
    "Corn",
    "Dill",
    "Eggs",
    "Ice cream",
    "Kidney Beans",
    "Milk",
    "Nutmeg",
    "Onion",
    "Unicorn",
    "Yogurt",
]

df = pd.DataFrame(one_ary, columns=cols).astype(bool)
store = TransactionStore.from_onehot(df)
freq = apriori(store, min_support=0.6)
df_freq_items = freq.to_pandas()


def _find(rules: list[Rule], antecedent: tuple[str, ...], consequent: tuple[str, ...]) -> Rule | None:
    for rule in rules:
        if rule.antecedent == antecedent and rule.consequent == consequent:
            return rule
    return None


# ---------------------------------------------------------------------------
# generate_rules
# ---------------------------------------------------------------------------


def test_frequent_itemsets() -> None:
    assert len(freq) == 11


def test_all_rules() -> None:
    rules = generate_rules(freq, min_confidence=0.0)
    assert len(rules) == 16


def test_confidence_filter() -> None:
    rules = generate_rules(freq, min_confidence=0.8)
    assert len(rules) == 9
    assert all(rule.confidence >= 0.8 for rule in rules)


def test_metrics() -> None:
    rules = generate_rules(freq, min_confidence=0.0)
    rule = _find(rules, ("Eggs",), ("Onion",))
    assert rule is not None
    assert rule.support == pytest.approx(0.6)
    assert rule.confidence == pytest.approx(0.75)
    assert rule.lift == pytest.approx(1.25)
    assert rule.antecedent_support == pytest.approx(0.8)
    assert rule.consequent_support == pytest.approx(0.6)
    assert rule.leverage == pytest.approx(0.12)
    assert rule.conviction == pytest.approx(1.6)
    assert rule.count == 3


def test_conviction_is_infinite_for_certain_rules() -> None:
    rule = _find(generate_rules(freq, min_confidence=1.0), ("Milk",), ("Kidney Beans",))
    assert rule is not None
    assert math.isinf(rule.conviction)


def test_multi_item_antecedent() -> None:
    rules = generate_rules(freq, min_confidence=0.0)
    rule = _find(rules, ("Eggs", "Onion"), ("Kidney Beans",))
    assert rule is not None
    assert rule.confidence == pytest.approx(1.0)
    assert rule.key == "{Eggs, Onion} -> {Kidney Beans}"
    assert str(rule) == rule.key


def test_max_consequent_len() -> None:
    rules = generate_rules(freq, min_confidence=0.0, max_consequent_len=1)
    assert len(rules) == 13
    assert all(len(rule.consequent) == 1 for rule in rules)


def test_sides_are_disjoint_and_cover_the_itemset() -> None:
    for rule in generate_rules(freq, min_confidence=0.0):
        assert rule.antecedent and rule.consequent
        assert not set(rule.antecedent) & set(rule.consequent)
        assert freq.count(rule.items) == rule.count


def test_generation_order_is_deterministic() -> None:
    first = generate_rules(freq, min_confidence=0.5)
    second = generate_rules(apriori(store, min_support=0.6), min_confidence=0.5)
    assert [r.key for r in first] == [r.key for r in second]


def test_abc_example(abc_store: TransactionStore) -> None:
    rules = generate_rules(apriori(abc_store, min_support=0.4), min_confidence=0.6)

    a_to_b = _find(rules, ("a",), ("b",))
    assert a_to_b is not None
    assert a_to_b.support == pytest.approx(0.6)
    assert a_to_b.confidence == pytest.approx(0.75)
    # {a} -> {b, c} has confidence 2/4 = 0.5
    assert _find(rules, ("a",), ("b", "c")) is None
    assert all(rule.confidence >= 0.6 for rule in rules)


def test_min_support_filter_on_plain_itemsets() -> None:
    table = [
        Itemset(("a",), 4, 0.8),
        Itemset(("b",), 4, 0.8),
        Itemset(("a", "b"), 1, 0.2),
    ]
    assert generate_rules(table, n_transactions=5, min_support=0.5, min_confidence=0.0) == []
    assert len(generate_rules(table, n_transactions=5, min_confidence=0.0)) == 2


def test_missing_support_is_recounted(abc_store: TransactionStore) -> None:
    table = [Itemset(("a", "b"), 3, 0.6)]
    rules = generate_rules(table, min_confidence=0.0, transactions=abc_store)
    assert [r.key for r in rules] == ["{a} -> {b}", "{b} -> {a}"]
    assert rules[0].confidence == pytest.approx(0.75)


def test_missing_support_without_store_warns() -> None:
    table = [Itemset(("a", "b"), 3, 0.6)]
    with pytest.warns(InconsistentDataWarning, match="Skipped 2"):
        rules = generate_rules(table, n_transactions=5, min_confidence=0.0)
    assert rules == []


def test_plain_itemsets_need_a_transaction_count() -> None:
    with pytest.raises(ConfigurationError):
        generate_rules([Itemset(("a",), 1, 1.0)])


@pytest.mark.parametrize("min_confidence", [-0.1, 1.01, None])
def test_invalid_min_confidence(min_confidence) -> None:
    with pytest.raises(ConfigurationError):
        generate_rules(freq, min_confidence=min_confidence)


def test_rules_to_frame() -> None:
    res_df = rules_to_frame(generate_rules(freq, min_confidence=0.8))
    assert res_df.shape[0] == 9
    assert list(res_df.columns[:2]) == ["antecedents", "consequents"]
    assert "lift" in res_df.columns


# ---------------------------------------------------------------------------
# association_rules (DataFrame API)
# ---------------------------------------------------------------------------


def test_default() -> None:
    res_df = association_rules(df_freq_items, len(df))
    assert res_df.shape[0] > 0
    assert "antecedents" in res_df.columns
    assert "consequents" in res_df.columns


def test_datatypes() -> None:
    res_df = association_rules(df_freq_items, len(df))
    for i in res_df["antecedents"]:
        assert isinstance(i, frozenset)
    for i in res_df["consequents"]:
        assert isinstance(i, frozenset)


def test_num_itemsets_from_attrs() -> None:
    res_df = association_rules(df_freq_items, min_threshold=0.8)
    assert res_df.shape[0] == 9


def test_num_itemsets_from_count_column() -> None:
    plain = df_freq_items.copy()
    plain.attrs = {}
    res_df = association_rules(plain, min_threshold=0.8)
    assert res_df.shape[0] == 9


def test_num_itemsets_required() -> None:
    plain = df_freq_items.loc[:, ["support", "itemsets"]].copy()
    plain.attrs = {}
    with pytest.raises(ConfigurationError):
        association_rules(plain)


def test_no_support_col() -> None:
    with pytest.raises(ValueError):
        association_rules(df_freq_items.loc[:, ["itemsets"]], len(df))


def test_no_itemsets_col() -> None:
    with pytest.raises(ValueError):
        association_rules(df_freq_items.loc[:, ["support"]], len(df))


def test_empty_frame() -> None:
    with pytest.raises(EmptyInputError):
        association_rules(df_freq_items.iloc[:0], len(df))


def test_wrong_metric() -> None:
    with pytest.raises(ValueError):
        association_rules(df_freq_items, len(df), metric="unicorn")


def test_empty_result() -> None:
    res_df = association_rules(df_freq_items, len(df), min_threshold=2)
    assert res_df.shape[0] == 0
    assert "lift" in res_df.columns


def test_leverage() -> None:
    res_df = association_rules(df_freq_items, len(df), min_threshold=0.1, metric="leverage")
    assert res_df.shape[0] == 6


def test_conviction() -> None:
    res_df = association_rules(df_freq_items, len(df), min_threshold=1.5, metric="conviction")
    assert res_df.shape[0] == 11


def test_lift() -> None:
    res_df = association_rules(df_freq_items, len(df), min_threshold=1.1, metric="lift")
    assert res_df.shape[0] == 6


def test_confidence() -> None:
    res_df = association_rules(df_freq_items, len(df), min_threshold=0.8, metric="confidence")
    assert res_df.shape[0] == 9


def test_return_metrics() -> None:
    res_df = association_rules(df_freq_items, len(df), return_metrics=["support", "lift"])
    assert list(res_df.columns) == ["antecedents", "consequents", "support", "lift"]


def test_mlxtend_style_frame() -> None:
    frame = pd.DataFrame(
        {
            "support": [0.8, 0.8, 0.6],
            "itemsets": [frozenset({"a"}), frozenset({"b"}), frozenset({"a", "b"})],
        }
    )
    res_df = association_rules(frame, num_itemsets=5, min_threshold=0.7)
    assert res_df.shape[0] == 2
    assert res_df["confidence"].tolist() == pytest.approx([0.75, 0.75])


@pytest.mark.parametrize("num_itemsets", [0, -5, 2.5])
def test_invalid_num_itemsets(num_itemsets) -> None:
    frame = pd.DataFrame({"support": [0.8, 0.6], "itemsets": [frozenset({"a"}), frozenset({"a", "b"})]})
    with pytest.raises(ConfigurationError, match="num_itemsets"):
        association_rules(frame, num_itemsets=num_itemsets)
