"""Command line entry point: ``rulenet baskets.csv --min-support 0.02 --out-dir outputs``."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from .config import MiningConfig
from .exceptions import ConfigurationError, EmptyInputError, ResourceExhaustionError
from .export import write_graph_csv, write_rules_csv
from .model import run_pipeline
from .transactions import TransactionStore

logger = logging.getLogger("rulenet")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="rulenet", description="Mine association rules and export the rule graph.")
    ap.add_argument("path", help="delimited transaction file")
    ap.add_argument("--layout", choices=["slots", "long"], default="slots")
    ap.add_argument("--has-ids", action="store_true", help="slots layout: first cell is the transaction id")
    ap.add_argument("--skip-header", action="store_true", help="slots layout: ignore the first row")
    ap.add_argument("--delimiter", default=",")
    ap.add_argument("--transaction-col", default=None)
    ap.add_argument("--item-col", default=None)
    ap.add_argument("--lowercase", action="store_true", help="normalize item labels to lower case")
    ap.add_argument("--min-support", type=float, default=0.01)
    ap.add_argument("--min-confidence", type=float, default=0.2)
    ap.add_argument("--metric", default="lift")
    ap.add_argument("--top-n", type=int, default=None)
    ap.add_argument("--max-len", type=int, default=None)
    ap.add_argument("--max-candidates", type=int, default=None)
    ap.add_argument("--n-jobs", type=int, default=1)
    ap.add_argument("--out-dir", default="outputs")
    ap.add_argument("-v", "--verbose", action="count", default=0)
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose > 1 else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = MiningConfig(
            min_support=args.min_support,
            min_confidence=args.min_confidence,
            metric=args.metric,
            top_n=args.top_n,
            max_len=args.max_len,
            max_candidates=args.max_candidates,
            n_jobs=args.n_jobs,
        )
    except ConfigurationError as e:
        logger.error("%s", e)
        return 2

    normalize = (lambda label: label.strip().lower()) if args.lowercase else str.strip
    try:
        store = TransactionStore.read_csv(
            args.path,
            layout=args.layout,
            has_ids=args.has_ids,
            delimiter=args.delimiter,
            skip_header=args.skip_header,
            transaction_col=args.transaction_col,
            item_col=args.item_col,
            normalize=normalize,
        )
    except (OSError, ValueError) as e:
        logger.error("Cannot read %s: %s", args.path, e)
        return 4
    logger.info("%s", store)

    try:
        result = run_pipeline(store, config, verbose=args.verbose)
    except EmptyInputError as e:
        logger.error("%s", e)
        return 1
    except ResourceExhaustionError as e:
        logger.error("%s", e)
        return 3

    out_dir = Path(args.out_dir)
    rules_path = write_rules_csv(result.rules, out_dir / "rules.csv")
    selected_path = write_rules_csv(result.selected, out_dir / "selected_rules.csv")
    nodes_path, edges_path = write_graph_csv(result.graph, out_dir)

    logger.info(
        "itemsets=%d rules=%d selected=%d clusters=%d",
        len(result.itemsets),
        len(result.rules),
        len(result.selected),
        len(result.graph.connected_components()),
    )
    for path in (rules_path, selected_path, nodes_path, edges_path):
        logger.info("wrote %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
