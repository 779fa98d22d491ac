"""rulenet – association-rule mining and rule-network construction."""

from .apriori import FrequentItemsets, Itemset, apriori
from .association_rules import Rule, association_rules, generate_rules, rules_to_frame
from .config import MiningConfig
from .exceptions import (
    ConfigurationError,
    EmptyInputError,
    InconsistentDataError,
    InconsistentDataWarning,
    ResourceExhaustionError,
    RulenetError,
)
from .export import flat_rules_frame, graph_to_frames, write_graph_csv, write_rules_csv
from .graph import Edge, Node, RuleGraph, build_rule_graph, to_item_network
from .model import PipelineResult, RuleMiner, run_pipeline
from .selection import filter_rules, select_rules
from .transactions import Transaction, TransactionStore, as_transaction_store

__version__ = "0.1.0"

__all__ = [
    "Transaction",
    "TransactionStore",
    "as_transaction_store",
    "apriori",
    "Itemset",
    "FrequentItemsets",
    "Rule",
    "generate_rules",
    "association_rules",
    "rules_to_frame",
    "select_rules",
    "filter_rules",
    "Node",
    "Edge",
    "RuleGraph",
    "build_rule_graph",
    "to_item_network",
    "flat_rules_frame",
    "graph_to_frames",
    "write_graph_csv",
    "write_rules_csv",
    "MiningConfig",
    "RuleMiner",
    "PipelineResult",
    "run_pipeline",
    "RulenetError",
    "ConfigurationError",
    "EmptyInputError",
    "InconsistentDataError",
    "InconsistentDataWarning",
    "ResourceExhaustionError",
]
