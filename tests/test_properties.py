"""Property-based checks of the mining invariants on random basket data."""

from __future__ import annotations

from itertools import combinations

from hypothesis import given, settings
from hypothesis import strategies as st

from rulenet import TransactionStore, apriori, build_rule_graph, generate_rules, select_rules

ITEMS = list("abcdefg")

baskets_strategy = st.lists(
    st.lists(st.sampled_from(ITEMS), min_size=1, max_size=5),
    min_size=1,
    max_size=25,
)
support_strategy = st.sampled_from([0.1, 0.2, 0.25, 0.3, 0.5, 0.75, 1.0])


@settings(max_examples=60, deadline=None)
@given(baskets_strategy, support_strategy)
def test_supports_are_exact(baskets, min_support):
    store = TransactionStore.from_baskets(baskets)
    freq = apriori(store, min_support=min_support)

    for key, itemset in freq.items():
        expected = sum(1 for basket in baskets if key.issubset(basket))
        assert itemset.count == expected
        assert itemset.support >= min_support


@settings(max_examples=60, deadline=None)
@given(baskets_strategy, support_strategy)
def test_every_frequent_itemset_is_found(baskets, min_support):
    store = TransactionStore.from_baskets(baskets)
    freq = apriori(store, min_support=min_support)

    n = len(baskets)
    for k in range(1, len(store.items) + 1):
        for combo in combinations(store.items, k):
            count = sum(1 for basket in baskets if set(combo).issubset(basket))
            assert (combo in freq) == (count / n >= min_support)


@settings(max_examples=60, deadline=None)
@given(baskets_strategy, support_strategy)
def test_downward_closure(baskets, min_support):
    freq = apriori(baskets, min_support=min_support)
    for key, itemset in freq.items():
        for sub in combinations(sorted(key), len(key) - 1):
            if sub:
                assert freq[sub].count >= itemset.count


@settings(max_examples=60, deadline=None)
@given(baskets_strategy, support_strategy, st.sampled_from([0.0, 0.3, 0.6, 0.9]))
def test_rule_metrics_are_consistent(baskets, min_support, min_confidence):
    store = TransactionStore.from_baskets(baskets)
    rules = generate_rules(apriori(store, min_support=min_support), min_confidence=min_confidence)

    for rule in rules:
        assert min_confidence <= rule.confidence <= 1.0
        assert rule.support <= rule.antecedent_support
        assert rule.support == store.support(rule.items)
        assert abs(rule.lift - rule.confidence / rule.consequent_support) < 1e-12
        assert not set(rule.antecedent) & set(rule.consequent)


@settings(max_examples=40, deadline=None)
@given(baskets_strategy, st.integers(min_value=0, max_value=10))
def test_pipeline_is_deterministic(baskets, top_n):
    def run():
        rules = generate_rules(apriori(baskets, min_support=0.2), min_confidence=0.3)
        selected = select_rules(rules, metric="lift", top_n=top_n)
        graph = build_rule_graph(selected)
        return [r.key for r in selected], graph.node_records(), graph.edge_records()

    assert run() == run()


@settings(max_examples=40, deadline=None)
@given(baskets_strategy)
def test_graph_has_no_self_loops(baskets):
    rules = generate_rules(apriori(baskets, min_support=0.2), min_confidence=0.0)
    graph = build_rule_graph(rules)
    assert all(edge.source != edge.target for edge in graph.edges)
    assert len(graph.rule_nodes) == len(rules)
