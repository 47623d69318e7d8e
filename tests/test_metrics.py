"""Tests for convergence metrics aggregation and serialisation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from trustnet.metrics import ConvergenceMetrics, RoundSnapshot
from trustnet.types import Transaction

if TYPE_CHECKING:
    from _pytest.fixtures import FixtureRequest


A = frozenset({Transaction(1), Transaction(2)})
B = frozenset({Transaction(1)})


def test_snapshot_from_outputs_picks_most_common_set() -> None:
    snap = RoundSnapshot.from_outputs(3, [A, A, A, B], blacklisted=2)

    assert snap.round == 3
    assert snap.distinct_sets == 2
    assert snap.winner_size == 2
    assert snap.winner_weight == 3
    assert snap.total_weight == 4
    assert snap.consensus_pct == pytest.approx(75.0)
    assert snap.blacklisted == 2
    assert not snap.reached_consensus


def test_snapshot_of_no_outputs_is_empty() -> None:
    snap = RoundSnapshot.from_outputs(1, [])
    assert snap.total_weight == 0
    assert snap.consensus_pct == 0.0
    assert not snap.reached_consensus


def test_metrics_summary_and_export() -> None:
    metrics = ConvergenceMetrics(run_label="unit")
    metrics.record(RoundSnapshot.from_outputs(1, [A, B]))
    metrics.record(RoundSnapshot.from_outputs(2, [A, A]))

    summary = metrics.snapshot()
    assert summary["rounds_recorded"] == 2
    assert summary["reached_consensus"] is True
    assert summary["final_consensus_pct"] == pytest.approx(100.0)
    assert summary["mean_consensus_pct"] == pytest.approx(75.0)
    assert json.loads(metrics.to_json())["run_label"] == "unit"

    rows = metrics.to_csv_rows()
    assert len(rows) == 2
    assert all(len(row) == len(ConvergenceMetrics.csv_header()) for row in rows)
    assert rows[1][6] == "100.00"
    assert list(metrics.round_numbers()) == [1, 2]


def test_rounds_must_increase() -> None:
    metrics = ConvergenceMetrics()
    metrics.record(RoundSnapshot.from_outputs(2, [A]))
    with pytest.raises(ValueError):
        metrics.record(RoundSnapshot.from_outputs(2, [A]))
