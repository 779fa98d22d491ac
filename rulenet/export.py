from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .association_rules import Rule
from .graph import RuleGraph

if TYPE_CHECKING:
    import pandas as pd


def _convert(df: pd.DataFrame, format: str) -> Any:
    from ._dependencies import import_optional_dependency

    if format == "pandas":
        return df
    elif format == "polars":
        pl = import_optional_dependency("polars")

        return pl.from_pandas(df)
    elif format == "arrow":
        pa = import_optional_dependency("pyarrow")

        return pa.Table.from_pandas(df, preserve_index=False)
    else:
        raise ValueError(f"Unknown format: {format}")


def flat_rules_frame(rules: Iterable[Rule], format: str = "pandas") -> Any:
    """Rules as flat rows for CSV or charting: labels joined into strings.

    Parameters
    ----------
    rules : iterable of Rule
        Rules to export, in output order.
    format : str, default="pandas"
        One of "pandas", "polars" or "arrow".

    Returns
    -------
    Any
        A frame with columns ``rule``, ``antecedents``, ``consequents``,
        ``antecedent_len``, ``support``, ``confidence``, ``lift``,
        ``leverage`` and ``conviction``.  Item lists are joined with ``", "``.
    """
    import pandas as pd

    rows = [
        {
            "rule": rule.key,
            "antecedents": ", ".join(rule.antecedent),
            "consequents": ", ".join(rule.consequent),
            "antecedent_len": len(rule.antecedent),
            "support": rule.support,
            "confidence": rule.confidence,
            "lift": rule.lift,
            "leverage": rule.leverage,
            "conviction": rule.conviction,
        }
        for rule in rules
    ]
    columns = [
        "rule",
        "antecedents",
        "consequents",
        "antecedent_len",
        "support",
        "confidence",
        "lift",
        "leverage",
        "conviction",
    ]
    return _convert(pd.DataFrame(rows, columns=columns), format)


def graph_to_frames(graph: RuleGraph, format: str = "pandas") -> tuple[Any, Any]:
    """Exports a rule graph as ``(nodes, edges)`` tables for a rendering backend.

    Parameters
    ----------
    graph : RuleGraph
        Output of :func:`rulenet.build_rule_graph`.
    format : str, default="pandas"
        The DataFrame format to return. One of "pandas", "polars" or "arrow".

    Returns
    -------
    tuple
        Node table (``id``, ``label``, ``kind``, ``support``, ``confidence``,
        ``lift``, ``frequency``) and edge table (``source``, ``target``,
        ``role``, ``rule``).

    Examples
    --------
    >>> nodes, edges = rulenet.graph_to_frames(graph, format="polars")
    """
    nodes, edges = graph.to_pandas()
    return _convert(nodes, format), _convert(edges, format)


def write_graph_csv(graph: RuleGraph, directory: str | Path, prefix: str = "") -> tuple[Path, Path]:
    """Write ``<prefix>nodes.csv`` and ``<prefix>edges.csv`` into *directory*."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    nodes, edges = graph.to_pandas()
    nodes_path = directory / f"{prefix}nodes.csv"
    edges_path = directory / f"{prefix}edges.csv"
    nodes.to_csv(nodes_path, index=False)
    edges.to_csv(edges_path, index=False)
    return nodes_path, edges_path


def write_rules_csv(rules: Iterable[Rule], path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    flat_rules_frame(rules).to_csv(path, index=False)
    return path
