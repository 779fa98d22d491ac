"""Tests for rule ranking and filtering."""

from __future__ import annotations

import math
import random

import pytest

from rulenet import ConfigurationError, Rule, filter_rules, select_rules


def make_rule(ant: str, con: str, lift: float, confidence: float = 0.5, support: float = 0.2) -> Rule:
    antecedent = tuple(sorted(ant))
    consequent = tuple(sorted(con))
    return Rule(
        antecedent=antecedent,
        consequent=consequent,
        support=support,
        confidence=confidence,
        lift=lift,
        antecedent_support=support / confidence,
        consequent_support=confidence / lift,
        count=int(support * 100),
    )


@pytest.fixture
def five_rules() -> list[Rule]:
    return [
        make_rule("a", "b", 1.2),
        make_rule("b", "c", 3.0),
        make_rule("c", "d", 0.8),
        make_rule("d", "e", 2.5),
        make_rule("e", "f", 1.9),
    ]


# ---------------------------------------------------------------------------
# select_rules
# ---------------------------------------------------------------------------


def test_top_two_by_lift(five_rules: list[Rule]) -> None:
    top = select_rules(five_rules, metric="lift", top_n=2)
    assert [r.lift for r in top] == [3.0, 2.5]


def test_sorted_descending(five_rules: list[Rule]) -> None:
    ranked = select_rules(five_rules, metric="lift")
    assert [r.lift for r in ranked] == [3.0, 2.5, 1.9, 1.2, 0.8]


def test_input_is_not_modified(five_rules: list[Rule]) -> None:
    before = list(five_rules)
    select_rules(five_rules, top_n=1)
    assert five_rules == before


def test_top_n_larger_than_input(five_rules: list[Rule]) -> None:
    assert len(select_rules(five_rules, top_n=50)) == 5


def test_top_n_zero(five_rules: list[Rule]) -> None:
    assert select_rules(five_rules, top_n=0) == []


def test_empty_input() -> None:
    assert select_rules([], metric="confidence", top_n=3) == []


def test_ties_are_broken_by_rule_text() -> None:
    rules = [make_rule("c", "d", 2.0), make_rule("a", "b", 2.0), make_rule("b", "c", 2.0)]
    keys = [r.key for r in select_rules(rules, top_n=2)]
    assert keys == ["{a} -> {b}", "{b} -> {c}"]


def test_ties_between_rules_with_the_same_text() -> None:
    # a label containing ", " renders like two labels
    joined = Rule(("a, b",), ("c",), 0.2, 0.5, 2.0, 0.4, 0.25, 20)
    split = Rule(("a", "b"), ("c",), 0.2, 0.5, 2.0, 0.4, 0.25, 20)
    assert joined.key == split.key

    first = select_rules([joined, split], top_n=1)
    second = select_rules([split, joined], top_n=1)
    assert first == second == [split]


def test_result_does_not_depend_on_input_order(five_rules: list[Rule]) -> None:
    shuffled = list(five_rules)
    random.Random(3).shuffle(shuffled)
    assert select_rules(shuffled, metric="confidence") == select_rules(five_rules, metric="confidence")


def test_other_metrics(five_rules: list[Rule]) -> None:
    rules = five_rules + [make_rule("x", "y", 1.0, confidence=0.9, support=0.5)]
    assert select_rules(rules, metric="confidence", top_n=1)[0].key == "{x} -> {y}"
    assert select_rules(rules, metric="support", top_n=1)[0].key == "{x} -> {y}"


def test_conviction_ranks_certain_rules_first(five_rules: list[Rule]) -> None:
    certain = make_rule("p", "q", 1.5, confidence=1.0)
    top = select_rules(five_rules + [certain], metric="conviction", top_n=1)
    assert top == [certain]
    assert math.isinf(top[0].conviction)


@pytest.mark.parametrize("metric", ["jaccard", "Lift", "", None])
def test_unknown_metric(five_rules: list[Rule], metric) -> None:
    with pytest.raises(ConfigurationError):
        select_rules(five_rules, metric=metric)


@pytest.mark.parametrize("top_n", [-1, 1.5, "3", True])
def test_invalid_top_n(five_rules: list[Rule], top_n) -> None:
    with pytest.raises(ConfigurationError):
        select_rules(five_rules, top_n=top_n)


# ---------------------------------------------------------------------------
# filter_rules
# ---------------------------------------------------------------------------


def test_filter_by_antecedent(five_rules: list[Rule]) -> None:
    rules = five_rules + [make_rule("ab", "c", 1.1)]
    kept = filter_rules(rules, antecedent=["a"])
    assert [r.key for r in kept] == ["{a} -> {b}", "{a, b} -> {c}"]


def test_filter_by_consequent_and_lift(five_rules: list[Rule]) -> None:
    assert filter_rules(five_rules, consequent=["c"], min_lift=2.0) == [five_rules[1]]
    assert filter_rules(five_rules, consequent=["c"], min_lift=5.0) == []


def test_filter_without_criteria_keeps_everything(five_rules: list[Rule]) -> None:
    assert filter_rules(five_rules) == five_rules
