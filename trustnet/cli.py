from __future__ import annotations

"""CLI for running a consensus simulation.

Usage example:
    python -m trustnet.cli 0.1 0.3 0.05 10 --seed 7 --out ./results/simulation

This runs the simulation, prints per-round convergence and writes a JSON
summary, a per-round CSV and a convergence figure to the output directory.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence
import argparse
import json
import logging

from .config import Settings, get_settings
from .logger import NodeLogger
from .metrics import ConvergenceMetrics
from .nodes.malicious import ADVERSARIES
from .plotting import save_convergence_plot
from .simulation import Simulation, SimulationConfig, SimulationResult

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def parse_args(argv: Optional[Sequence[str]] = None, settings: Optional[Settings] = None) -> argparse.Namespace:
    """Parse CLI arguments, taking defaults from *settings*.

    Returns:
        Parsed arguments as a namespace.
    """
    settings = settings or get_settings()
    parser = argparse.ArgumentParser(description="Simulate trust-based consensus over a random follow graph.")
    parser.add_argument("p_graph", type=float, help="Probability that an edge exists in the follow graph")
    parser.add_argument("p_malicious", type=float, help="Probability that a node is malicious")
    parser.add_argument("p_tx_distribution", type=float,
                        help="Probability of seeding each transaction at each node")
    parser.add_argument("num_rounds", type=int, help="Number of simulation rounds")
    parser.add_argument("num_nodes", type=int, nargs="?", default=settings.num_nodes,
                        help="Number of nodes to create")
    parser.add_argument("--adversary", choices=sorted(ADVERSARIES), default=settings.adversary,
                        help="Strategy used by malicious nodes")
    parser.add_argument("--transactions", dest="num_transactions", type=int,
                        default=settings.num_transactions, help="Number of valid transactions")
    parser.add_argument("--seed", type=int, default=settings.seed, help="Random seed for reproducible runs")
    parser.add_argument("--out", dest="output_dir", type=Path, default=settings.output_dir,
                        help="Directory to write outputs")
    parser.add_argument("--no-plot", dest="plot", action="store_false", default=settings.plot_enabled,
                        help="Skip writing the convergence figure")
    parser.add_argument("--report-transactions", action="store_true",
                        help="Print the transaction ids each compliant node agreed on")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=settings.log_level,
                        help="Logging level (DEBUG shows per-node blacklisting)")
    return parser.parse_args(argv)


def write_outputs(result: SimulationResult, *, output_dir: Path, plot: bool) -> List[Path]:
    """Persist the metrics JSON, the per-round CSV and optionally the figure."""
    output_dir.mkdir(parents=True, exist_ok=True)
    metrics: ConvergenceMetrics = result.metrics
    written: List[Path] = []

    data_path = output_dir / "metrics.json"
    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "params": {
            "p_graph": result.config.p_graph,
            "p_malicious": result.config.p_malicious,
            "p_tx_distribution": result.config.p_tx_distribution,
            "num_rounds": result.config.num_rounds,
            "num_nodes": result.config.num_nodes,
            "num_transactions": result.config.num_transactions,
            "adversary": result.config.adversary,
            "seed": result.config.seed,
        },
        "malicious_nodes": len(result.malicious),
        **metrics.snapshot(),
    }
    with data_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    written.append(data_path)

    csv_path = output_dir / "rounds.csv"
    with csv_path.open("w", encoding="utf-8") as f:
        f.write(",".join(ConvergenceMetrics.csv_header()) + "\n")
        for row in metrics.to_csv_rows():
            f.write(",".join(row) + "\n")
    written.append(csv_path)

    if plot:
        written.append(
            save_convergence_plot(
                metrics.round_numbers(),
                metrics.consensus_series(),
                output_path=output_dir / "convergence.png",
            )
        )
    return written


def report_transactions(result: SimulationResult) -> None:
    for index, transactions in sorted(result.final_sets.items()):
        print(f"Transaction ids that node {index} believes consensus on:")
        for tx in sorted(transactions, key=lambda t: t.id):
            print(tx.id)
        print()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entrypoint for the CLI script."""
    settings = get_settings()
    args = parse_args(argv, settings)
    logging.basicConfig(level=args.log_level, format=settings.log_format)

    config = SimulationConfig(
        p_graph=args.p_graph,
        p_malicious=args.p_malicious,
        p_tx_distribution=args.p_tx_distribution,
        num_rounds=args.num_rounds,
        num_nodes=args.num_nodes,
        num_transactions=args.num_transactions,
        adversary=args.adversary,
        seed=args.seed,
    )
    LOGGER.info(
        "starting(p_graph=%s, p_malicious=%s, p_txDistribution=%s, numRounds=%s, numNodes=%s)",
        config.p_graph, config.p_malicious, config.p_tx_distribution, config.num_rounds, config.num_nodes,
    )

    simulation = Simulation(config, observer_factory=lambda i: NodeLogger(f"node-{i}"))
    print(f"nMaliciousNodes({len(simulation.malicious)}) out of({config.num_nodes}), "
          f"or({100.0 * len(simulation.malicious) / config.num_nodes:.0f}%)")
    result = simulation.run()

    for snap in result.metrics.rounds():
        print(f"round({snap.round}) distinct_sets({snap.distinct_sets}) winner_size({snap.winner_size}) "
              f"winner_weight({snap.winner_weight}/{snap.total_weight}) consensusPct({snap.consensus_pct:.2f}%)")

    if args.report_transactions:
        report_transactions(result)

    for path in write_outputs(result, output_dir=args.output_dir, plot=args.plot):
        LOGGER.info("wrote %s", path)


if __name__ == "__main__":
    main()
