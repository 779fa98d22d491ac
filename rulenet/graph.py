"""Rule graph: item nodes and rule nodes joined by directed edges.

Every selected rule becomes one rule node.  Each antecedent item points to
the rule node and the rule node points to each consequent item.  Items are
merged by label, so an item shared by several rules becomes a hub that links
them, and the weakly connected components of the graph are the clusters of
mutually associated items.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from .association_rules import Rule

if TYPE_CHECKING:
    import networkx as nx
    import pandas as pd

ITEM = "item"
RULE = "rule"

NODE_COLUMNS = ["id", "label", "kind", "support", "confidence", "lift", "frequency"]
EDGE_COLUMNS = ["source", "target", "role", "rule"]


@dataclass(frozen=True)
class Node:
    id: str
    label: str
    kind: str
    support: float | None = None
    confidence: float | None = None
    lift: float | None = None
    frequency: int | None = None

    def as_record(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Edge:
    """Directed edge.  ``role`` is ``antecedent`` (item -> rule) or ``consequent`` (rule -> item)."""

    source: str
    target: str
    role: str
    rule: str

    def as_record(self) -> dict[str, Any]:
        return asdict(self)


def item_node_id(label: str) -> str:
    return f"item:{label}"


def rule_node_id(index: int) -> str:
    return f"rule:{index}"


class RuleGraph:
    """Immutable directed graph of item and rule nodes.

    Nodes and edges keep the order they were added in, which for
    :func:`build_rule_graph` is a pure function of the rule order.
    """

    def __init__(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise ValueError(f"Duplicate node id {node.id!r}")
            self._nodes[node.id] = node

        self._succ: dict[str, list[str]] = {node_id: [] for node_id in self._nodes}
        self._pred: dict[str, list[str]] = {node_id: [] for node_id in self._nodes}
        seen: set[tuple[str, str]] = set()
        kept: list[Edge] = []
        for edge in edges:
            if edge.source not in self._nodes or edge.target not in self._nodes:
                raise ValueError(f"Edge {edge.source!r} -> {edge.target!r} references an unknown node")
            if edge.source == edge.target:
                raise ValueError(f"Self-loop on node {edge.source!r}")
            if (edge.source, edge.target) in seen:
                continue
            seen.add((edge.source, edge.target))
            kept.append(edge)
            self._succ[edge.source].append(edge.target)
            self._pred[edge.target].append(edge.source)
        self._edges: tuple[Edge, ...] = tuple(kept)

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self._edges

    @property
    def item_nodes(self) -> list[Node]:
        return [node for node in self._nodes.values() if node.kind == ITEM]

    @property
    def rule_nodes(self) -> list[Node]:
        return [node for node in self._nodes.values() if node.kind == RULE]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> Node:
        return self._nodes[node_id]

    def successors(self, node_id: str) -> list[str]:
        return list(self._succ[node_id])

    def predecessors(self, node_id: str) -> list[str]:
        return list(self._pred[node_id])

    def in_degree(self, node_id: str) -> int:
        return len(self._pred[node_id])

    def out_degree(self, node_id: str) -> int:
        return len(self._succ[node_id])

    def degree(self, node_id: str) -> int:
        return self.in_degree(node_id) + self.out_degree(node_id)

    def connected_components(self) -> list[list[str]]:
        """Weakly connected components as lists of node ids.

        Components are ordered by their first node in graph order, and nodes
        within a component keep graph order.
        """
        position = {node_id: i for i, node_id in enumerate(self._nodes)}
        visited: set[str] = set()
        components: list[list[str]] = []
        for start in self._nodes:
            if start in visited:
                continue
            visited.add(start)
            queue = deque([start])
            members: list[str] = []
            while queue:
                current = queue.popleft()
                members.append(current)
                for neighbour in self._succ[current] + self._pred[current]:
                    if neighbour not in visited:
                        visited.add(neighbour)
                        queue.append(neighbour)
            components.append(sorted(members, key=position.__getitem__))
        return components

    def item_clusters(self) -> list[list[str]]:
        """Item labels of every connected component, largest cluster first."""
        clusters = [
            [self._nodes[node_id].label for node_id in component if self._nodes[node_id].kind == ITEM]
            for component in self.connected_components()
        ]
        # sort is stable, so equal-sized clusters keep graph order
        return sorted(clusters, key=len, reverse=True)

    def node_records(self) -> list[dict[str, Any]]:
        return [node.as_record() for node in self._nodes.values()]

    def edge_records(self) -> list[dict[str, Any]]:
        return [edge.as_record() for edge in self._edges]

    def to_pandas(self) -> tuple[pd.DataFrame, pd.DataFrame]:
        """``(nodes, edges)`` frames with one row per record."""
        import pandas as pd

        nodes = pd.DataFrame(self.node_records(), columns=NODE_COLUMNS)
        edges = pd.DataFrame(self.edge_records(), columns=EDGE_COLUMNS)
        return nodes, edges

    def to_networkx(self) -> nx.DiGraph:
        """Export to a :class:`networkx.DiGraph` keyed by node id, records as attributes."""
        from ._dependencies import import_optional_dependency

        nx = import_optional_dependency("networkx", extra="networkx is required for RuleGraph.to_networkx().")

        G = nx.DiGraph()
        for record in self.node_records():
            node_id = record.pop("id")
            G.add_node(node_id, **{k: v for k, v in record.items() if v is not None})
        for edge in self._edges:
            G.add_edge(edge.source, edge.target, role=edge.role, rule=edge.rule)
        return G

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(n_items={len(self.item_nodes)}, "
            f"n_rules={len(self.rule_nodes)}, n_edges={len(self._edges)})"
        )


def build_rule_graph(
    rules: Iterable[Rule],
    item_frequency: Mapping[str, int] | pd.Series | None = None,
) -> RuleGraph:
    """Build the item/rule graph of a rule selection.

    Parameters
    ----------
    rules : iterable of Rule
        Usually the output of :func:`rulenet.select_rules`.  The i-th rule
        (1-based) becomes node ``rule:i``.
    item_frequency : mapping of label -> count, optional
        Display-only frequency attached to item nodes, e.g.
        :meth:`TransactionStore.item_frequency`.

    Returns
    -------
    RuleGraph
    """
    frequency: dict[str, int] = {}
    if item_frequency is not None:
        frequency = {str(k): int(v) for k, v in dict(item_frequency).items()}

    nodes: dict[str, Node] = {}
    edges: list[Edge] = []

    def _item(label: str) -> str:
        node_id = item_node_id(label)
        if node_id not in nodes:
            nodes[node_id] = Node(id=node_id, label=label, kind=ITEM, frequency=frequency.get(label))
        return node_id

    for index, rule in enumerate(rules, start=1):
        rid = rule_node_id(index)
        ant_ids = [_item(label) for label in rule.antecedent]
        nodes[rid] = Node(
            id=rid,
            label=rule.key,
            kind=RULE,
            support=rule.support,
            confidence=rule.confidence,
            lift=rule.lift,
        )
        con_ids = [_item(label) for label in rule.consequent]
        edges.extend(Edge(source=a, target=rid, role="antecedent", rule=rid) for a in ant_ids)
        edges.extend(Edge(source=rid, target=c, role="consequent", rule=rid) for c in con_ids)

    return RuleGraph(nodes.values(), edges)


def _rule_rows(rules: Any) -> Iterable[tuple[Sequence[Any], Sequence[Any], dict[str, Any]]]:
    """Yield ``(antecedents, consequents, attributes)`` from Rule objects, dicts or a frame."""
    from ._compat import to_pandas

    rules = to_pandas(rules)
    if hasattr(rules, "to_dict") and hasattr(rules, "columns"):
        rules = rules.to_dict(orient="records")

    for row in rules:
        if isinstance(row, Rule):
            attrs = {"support": row.support, "confidence": row.confidence, "lift": row.lift, "rule": row.key}
            yield row.antecedent, row.consequent, attrs
        else:
            ants = row["antecedents"]
            cons = row["consequents"]
            attrs = {k: v for k, v in row.items() if k not in ("antecedents", "consequents")}
            yield (
                (ants,) if isinstance(ants, str) else sorted(ants, key=str),
                (cons,) if isinstance(cons, str) else sorted(cons, key=str),
                attrs,
            )


def to_item_network(rules: Any, edge_attr: str = "lift", multigraph: bool = False) -> nx.DiGraph:
    """Item-to-item network with an edge from every antecedent to every consequent item.

    Parameters
    ----------
    rules : list of Rule, list of dicts, or DataFrame
        Rule records with ``antecedents``/``consequents`` and *edge_attr*.
    edge_attr : str, default='lift'
        Rule metric stored on each edge as ``weight``.
    multigraph : bool, default=False
        ``False`` returns a :class:`networkx.DiGraph` where rules sharing an
        item pair collapse into one edge that keeps the largest weight and
        lists every contributing rule.  ``True`` returns a
        :class:`networkx.MultiDiGraph` with one edge per rule.

    Raises
    ------
    ValueError
        If a rule record lacks *edge_attr*.
    """
    from ._dependencies import import_optional_dependency

    nx = import_optional_dependency("networkx", extra="networkx is required for to_item_network().")
    G = nx.MultiDiGraph() if multigraph else nx.DiGraph()

    for index, (ants, cons, attrs) in enumerate(_rule_rows(rules), start=1):
        if edge_attr not in attrs:
            raise ValueError(f"Rule records have no {edge_attr!r} column; available: {sorted(attrs)}")
        weight = float(attrs[edge_attr])
        rule_id = rule_node_id(index)
        for ant in ants:
            for con in cons:
                if ant == con:
                    continue
                if multigraph:
                    G.add_edge(ant, con, key=rule_id, weight=weight, rule=rule_id)
                elif G.has_edge(ant, con):
                    data = G[ant][con]
                    data["weight"] = max(data["weight"], weight)
                    data["rules"].append(rule_id)
                else:
                    G.add_edge(ant, con, weight=weight, rules=[rule_id])
    return G
