"""Convergence metrics for consensus simulations.

This module records one :class:`RoundSnapshot` per simulated round and exposes
JSON/CSV serialisation plus NumPy series for plotting. It is independent of the
harness so benchmark scripts can reuse it.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

import numpy as np

from trustnet.types import Transaction


@dataclass(frozen=True)
class RoundSnapshot:
    """Agreement among compliant nodes after one round.

    Attributes:
        round: 1-based round number.
        distinct_sets: Number of different output sets.
        winner_size: Size of the most common output set.
        winner_weight: Number of nodes holding the most common set.
        total_weight: Number of nodes measured.
        consensus_pct: ``winner_weight / total_weight`` as a percentage.
        blacklisted: Total blacklisted followees over the measured nodes.
    """

    round: int
    distinct_sets: int
    winner_size: int
    winner_weight: int
    total_weight: int
    consensus_pct: float
    blacklisted: int = 0

    @property
    def reached_consensus(self) -> bool:
        return self.total_weight > 0 and self.distinct_sets == 1

    @classmethod
    def from_outputs(
        cls,
        round_number: int,
        outputs: Iterable[FrozenSet[Transaction]],
        *,
        blacklisted: int = 0,
    ) -> "RoundSnapshot":
        """Summarise the output sets of the measured nodes."""
        weights = Counter(frozenset(output) for output in outputs)
        total = sum(weights.values())
        if not weights:
            return cls(round_number, 0, 0, 0, 0, 0.0, blacklisted)
        # Ties favour the larger set so the winner does not depend on hashing.
        winner, weight = max(weights.items(), key=lambda item: (item[1], len(item[0])))
        return cls(
            round=round_number,
            distinct_sets=len(weights),
            winner_size=len(winner),
            winner_weight=weight,
            total_weight=total,
            consensus_pct=100.0 * weight / total,
            blacklisted=blacklisted,
        )


class ConvergenceMetrics:
    """Per-round convergence aggregator.

    Typical usage:
    - Call :meth:`record` once per round with a :class:`RoundSnapshot`.
    - Call :meth:`snapshot` for a dictionary ready for JSON serialisation.
    """

    def __init__(self, *, run_label: str = "") -> None:
        self._run_label = run_label
        self._rounds: List[RoundSnapshot] = []

    def record(self, snapshot: RoundSnapshot) -> None:
        """Append *snapshot*; rounds must be recorded in increasing order."""
        if self._rounds and snapshot.round <= self._rounds[-1].round:
            raise ValueError(
                f"round {snapshot.round} recorded after round {self._rounds[-1].round}"
            )
        self._rounds.append(snapshot)

    def rounds(self) -> List[RoundSnapshot]:
        """Return a copy of the recorded snapshots."""
        return list(self._rounds)

    def round_numbers(self) -> np.ndarray:
        return np.array([snap.round for snap in self._rounds], dtype=int)

    def consensus_series(self) -> np.ndarray:
        """Return consensus percentages per recorded round."""
        return np.array([snap.consensus_pct for snap in self._rounds], dtype=float)

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON-serialisable summary of the run."""
        final = self._rounds[-1] if self._rounds else None
        series = self.consensus_series()
        return {
            "run_label": self._run_label,
            "rounds_recorded": len(self._rounds),
            "final_consensus_pct": final.consensus_pct if final else 0.0,
            "final_distinct_sets": final.distinct_sets if final else 0,
            "final_winner_size": final.winner_size if final else 0,
            "reached_consensus": bool(final and final.reached_consensus),
            "mean_consensus_pct": float(series.mean()) if series.size else 0.0,
            "rounds": [asdict(snap) for snap in self._rounds],
        }

    def to_json(self) -> str:
        """Return a JSON string with the current snapshot."""
        return json.dumps(self.snapshot(), indent=2)

    def to_csv_rows(self) -> List[Tuple[str, ...]]:
        """Return one CSV row per recorded round."""
        return [
            (
                self._run_label,
                str(snap.round),
                str(snap.distinct_sets),
                str(snap.winner_size),
                str(snap.winner_weight),
                str(snap.total_weight),
                f"{snap.consensus_pct:.2f}",
                str(snap.blacklisted),
            )
            for snap in self._rounds
        ]

    @staticmethod
    def csv_header() -> Tuple[str, ...]:
        """Return the CSV header tuple matching :meth:`to_csv_rows`."""
        return (
            "run_label",
            "round",
            "distinct_sets",
            "winner_size",
            "winner_weight",
            "total_weight",
            "consensus_pct",
            "blacklisted",
        )
