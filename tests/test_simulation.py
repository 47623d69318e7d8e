"""Tests for the round-synchronous simulation harness.

Small populations and fixed seeds keep these runs fast and deterministic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, AbstractSet, FrozenSet, List, Optional, Sequence

import numpy as np
import pytest

from trustnet.consensus import ConsensusNode, NodeParams
from trustnet.simulation import Simulation, SimulationConfig
from trustnet.types import Candidate, Transaction

if TYPE_CHECKING:
    from pytest_mock.plugin import MockerFixture


class RecordingNode:
    """Node double that records what the harness delivers."""

    def __init__(self, params: NodeParams) -> None:
        self.params = params
        self.followees: Optional[List[bool]] = None
        self.seed: FrozenSet[Transaction] = frozenset()
        self.outgoing: FrozenSet[Transaction] = frozenset()
        self.batches: List[FrozenSet[Candidate]] = []

    def set_followees(self, followees: Sequence[bool]) -> None:
        self.followees = list(followees)

    def set_pending_transaction(self, transactions: AbstractSet[Transaction]) -> None:
        self.seed = frozenset(transactions)
        self.outgoing = self.seed

    def send_to_followers(self) -> FrozenSet[Transaction]:
        return self.outgoing

    def receive_from_followees(self, candidates: AbstractSet[Candidate]) -> None:
        self.batches.append(frozenset(candidates))


def small_config(**overrides) -> SimulationConfig:
    values = dict(
        p_graph=0.3,
        p_malicious=0.2,
        p_tx_distribution=0.1,
        num_rounds=5,
        num_nodes=20,
        num_transactions=40,
        seed=11,
    )
    values.update(overrides)
    return SimulationConfig(**values)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        small_config(p_graph=1.2)
    with pytest.raises(ValueError):
        small_config(num_nodes=0)
    with pytest.raises(ValueError):
        small_config(adversary="unknown")


def test_follow_graph_has_no_self_edges() -> None:
    sim = Simulation(small_config(p_graph=1.0))
    assert sim.followees.shape == (20, 20)
    assert not np.any(np.diag(sim.followees))
    assert int(sim.followees.sum()) == 20 * 19


def test_valid_transactions_are_distinct() -> None:
    sim = Simulation(small_config(num_transactions=40))
    assert len(sim.valid_ids) == 40


def test_same_seed_reproduces_run() -> None:
    """Equal seeds give identical populations and outcomes."""
    first = Simulation(small_config()).run()
    second = Simulation(small_config()).run()

    assert first.malicious == second.malicious
    assert first.final_sets == second.final_sets
    assert [s.consensus_pct for s in first.metrics.rounds()] == [
        s.consensus_pct for s in second.metrics.rounds()
    ]


def test_fully_connected_honest_network_reaches_consensus() -> None:
    """With no adversaries and a complete graph every node ends with every seed."""
    sim = Simulation(small_config(p_graph=1.0, p_malicious=0.0, num_nodes=10, num_rounds=3))
    seeded = frozenset().union(*(node.send_to_followers() for node in sim.nodes))

    result = sim.run()

    assert result.malicious == frozenset()
    assert result.reached_consensus
    assert all(final == seeded for final in result.final_sets.values())
    assert result.metrics.rounds()[-1].consensus_pct == pytest.approx(100.0)


def test_each_node_receives_once_per_round_from_followees_only() -> None:
    """Batches respect the follow graph and arrive exactly num_rounds times."""
    config = small_config(p_malicious=0.0, num_rounds=4)
    sim = Simulation(config, node_factory=lambda _i, params: RecordingNode(params))
    sim.run()

    for receiver, node in enumerate(sim.nodes):
        assert isinstance(node, RecordingNode)
        assert len(node.batches) == config.num_rounds
        for batch in node.batches:
            for candidate in batch:
                assert sim.followees[receiver, candidate.sender]
                assert candidate.tx in sim.nodes[candidate.sender].seed


def test_invalid_transactions_are_not_delivered() -> None:
    sim = Simulation(
        small_config(p_graph=1.0, p_malicious=0.0, num_nodes=4, num_rounds=1),
        node_factory=lambda _i, params: RecordingNode(params),
    )
    bogus = Transaction(next(i for i in range(1000) if i not in sim.valid_ids))
    sender = sim.nodes[0]
    assert isinstance(sender, RecordingNode)
    sender.outgoing = frozenset({bogus})

    sim.step()

    for node in sim.nodes[1:]:
        assert isinstance(node, RecordingNode)
        assert all(c.tx != bogus for c in node.batches[0])


def test_adversaries_are_built_from_registry() -> None:
    sim = Simulation(small_config(p_malicious=0.5, adversary="do_nothing"))
    for index in sim.malicious:
        assert sim.nodes[index].send_to_followers() == frozenset()
    for index in sim.compliant:
        assert isinstance(sim.nodes[index], ConsensusNode)


def test_all_malicious_population_measures_nothing() -> None:
    result = Simulation(small_config(p_malicious=1.0, adversary="send_one_tx")).run()
    assert result.final_sets == {}
    assert not result.reached_consensus


def test_step_after_last_round_fails() -> None:
    sim = Simulation(small_config(num_rounds=2))
    sim.run()
    with pytest.raises(RuntimeError):
        sim.step()


def test_observer_factory_attaches_per_node_observers(mocker: "MockerFixture") -> None:
    """Every compliant node reports finalization to its own observer."""
    observers = {}

    def factory(index: int):
        observers[index] = mocker.Mock()
        return observers[index]

    sim = Simulation(small_config(p_malicious=0.0, num_rounds=2), observer_factory=factory)
    sim.run()

    assert set(observers) == set(range(20))
    for observer in observers.values():
        observer.on_finalize.assert_called_once()


def test_run_after_manual_step_keeps_every_round() -> None:
    """Rounds driven through step() are part of the result returned by run()."""
    sim = Simulation(small_config(num_rounds=4))
    first = sim.step()

    result = sim.run()

    rounds = result.metrics.rounds()
    assert [snap.round for snap in rounds] == [1, 2, 3, 4]
    assert rounds[0] == first
    assert result.metrics is sim.metrics
