from __future__ import annotations

"""Plotting utilities for convergence metrics.

Figures are saved to files for downstream reporting.
"""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402


def save_convergence_plot(
    rounds: np.ndarray,
    consensus_pct: np.ndarray,
    *,
    output_path: Path,
    title: str = "Consensus vs Round",
    annotate_final: bool = True,
) -> Path:
    """Save a line plot of consensus percentage per round and return the path.

    Args:
        rounds: Round numbers (x-axis).
        consensus_pct: Percentage of compliant nodes sharing the winning set.
        output_path: Destination file path (parent directories will be created).
        title: Figure title.
        annotate_final: Whether to annotate the last recorded point.

    Returns:
        The path to the saved figure file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    _, ax = plt.subplots(figsize=(8, 4.5), constrained_layout=True)
    ax.plot(rounds, consensus_pct, color="#1f77b4", linewidth=2.0, marker="o", markersize=3)
    ax.set_xlabel("Round")
    ax.set_ylabel("Consensus (% of compliant nodes)")
    ax.set_ylim(0.0, 105.0)
    ax.set_title(title)
    ax.grid(True, linestyle=":", linewidth=0.8, alpha=0.8)

    if annotate_final and len(rounds) > 0:
        ax.scatter([rounds[-1]], [consensus_pct[-1]], color="green", zorder=5)
        ax.annotate(
            f"round {rounds[-1]}: {consensus_pct[-1]:.1f}%",
            (rounds[-1], consensus_pct[-1]),
            textcoords="offset points",
            xytext=(-60, -15),
            fontsize=9,
            color="green",
        )

    plt.savefig(output_path, dpi=150)
    plt.close()
    return output_path
