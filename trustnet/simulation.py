"""Round-synchronous simulation harness for trust-based consensus.

The harness owns the random follow graph, the valid transaction id space and
the node population. Each round every node's proposals are collected before any
node receives, so no node can observe a followee's output from a later round.

Usage::

    config = SimulationConfig(p_graph=0.1, p_malicious=0.3,
                              p_tx_distribution=0.05, num_rounds=10, seed=7)
    result = Simulation(config).run()
    print(result.metrics.to_json())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Set

import numpy as np

from trustnet.consensus.base import Node, NodeParams, RoundObserver
from trustnet.consensus.node import ConsensusNode
from trustnet.metrics import ConvergenceMetrics, RoundSnapshot
from trustnet.nodes.malicious import ADVERSARIES, create_adversary
from trustnet.types import Candidate, NodeIndex, Transaction

LOGGER = logging.getLogger(__name__)

NodeFactory = Callable[[NodeIndex, NodeParams], Node]


@dataclass(frozen=True)
class SimulationConfig:
    """Parameters of one simulation run.

    Attributes:
        p_graph: Probability that node ``i`` follows node ``j``.
        p_malicious: Probability that a node is malicious.
        p_tx_distribution: Probability of seeding each transaction at each node.
        num_rounds: Number of rounds to simulate.
        num_nodes: Population size.
        num_transactions: Number of valid transaction ids drawn.
        adversary: Registered adversary strategy for malicious nodes.
        seed: Seed for :func:`numpy.random.default_rng`; ``None`` is random.
    """

    p_graph: float
    p_malicious: float
    p_tx_distribution: float
    num_rounds: int
    num_nodes: int = 100
    num_transactions: int = 500
    adversary: str = "send_one_tx"
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate ranges eagerly so bad runs fail before building the graph."""
        self.node_params()
        if self.num_nodes < 1:
            raise ValueError("num_nodes must be at least 1")
        if self.num_transactions < 0:
            raise ValueError("num_transactions must be non-negative")
        if self.adversary not in ADVERSARIES:
            raise ValueError(f"unknown adversary {self.adversary!r}")

    def node_params(self) -> NodeParams:
        return NodeParams(
            p_graph=self.p_graph,
            p_malicious=self.p_malicious,
            p_tx_distribution=self.p_tx_distribution,
            num_rounds=self.num_rounds,
        )


@dataclass
class SimulationResult:
    """Outcome of :meth:`Simulation.run`."""

    config: SimulationConfig
    malicious: FrozenSet[NodeIndex]
    metrics: ConvergenceMetrics
    final_sets: Dict[NodeIndex, FrozenSet[Transaction]] = field(default_factory=dict)

    @property
    def reached_consensus(self) -> bool:
        rounds = self.metrics.rounds()
        return bool(rounds) and rounds[-1].reached_consensus


class Simulation:
    """Drive a population of nodes over a random follow graph."""

    def __init__(
        self,
        config: SimulationConfig,
        *,
        observer: Optional[RoundObserver] = None,
        observer_factory: Optional[Callable[[NodeIndex], RoundObserver]] = None,
        node_factory: Optional[NodeFactory] = None,
        adversary_factory: Optional[NodeFactory] = None,
    ) -> None:
        """Build nodes, the follow graph and the seeded transactions.

        Args:
            config: Run parameters.
            observer: Observer shared by every compliant node.
            observer_factory: Builds a per-node observer; takes precedence
                over ``observer``.
            node_factory: Builds compliant nodes; defaults to
                :class:`ConsensusNode`.
            adversary_factory: Builds malicious nodes; defaults to the
                strategy registered under ``config.adversary``.
        """
        self.config = config
        self._rng = np.random.default_rng(config.seed)
        self._params = config.node_params()
        self._observer = observer
        self._observer_factory = observer_factory
        self._node_factory = node_factory or self._default_node
        self._adversary_factory = adversary_factory or (
            lambda _index, params: create_adversary(config.adversary, params)
        )
        self._round = 0
        self.metrics = ConvergenceMetrics(
            run_label=(
                f"p_graph={config.p_graph};p_malicious={config.p_malicious};"
                f"p_tx={config.p_tx_distribution};rounds={config.num_rounds};"
                f"adversary={config.adversary}"
            )
        )

        self.malicious: FrozenSet[NodeIndex] = self._pick_malicious()
        self.nodes: List[Node] = self._create_nodes()
        self.followees: np.ndarray = self._build_follow_graph()
        self.valid_ids: FrozenSet[int] = self._draw_transaction_ids()

        for i, node in enumerate(self.nodes):
            node.set_followees([bool(v) for v in self.followees[i]])
        for node in self.nodes:
            node.set_pending_transaction(self._draw_seed())

        LOGGER.info(
            "Simulation ready: %s nodes, %s malicious (%.0f%%), %s valid transactions",
            config.num_nodes,
            len(self.malicious),
            100.0 * len(self.malicious) / config.num_nodes,
            len(self.valid_ids),
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _default_node(self, index: NodeIndex, params: NodeParams) -> Node:
        if self._observer_factory is not None:
            observer: Optional[RoundObserver] = self._observer_factory(index)
        else:
            observer = self._observer
        return ConsensusNode(params, observer=observer)

    def _pick_malicious(self) -> FrozenSet[NodeIndex]:
        draws = self._rng.random(self.config.num_nodes)
        return frozenset(int(i) for i in np.flatnonzero(draws < self.config.p_malicious))

    def _create_nodes(self) -> List[Node]:
        nodes: List[Node] = []
        for i in range(self.config.num_nodes):
            factory = self._adversary_factory if i in self.malicious else self._node_factory
            nodes.append(factory(i, self._params))
        return nodes

    def _build_follow_graph(self) -> np.ndarray:
        """Return ``followees`` where ``followees[i, j]`` is True iff i follows j."""
        n = self.config.num_nodes
        graph = self._rng.random((n, n)) < self.config.p_graph
        np.fill_diagonal(graph, False)
        return graph

    def _draw_transaction_ids(self) -> FrozenSet[int]:
        ids: Set[int] = set()
        info = np.iinfo(np.int64)
        while len(ids) < self.config.num_transactions:
            missing = self.config.num_transactions - len(ids)
            ids.update(int(v) for v in self._rng.integers(info.min, info.max, size=missing))
        return frozenset(ids)

    def _draw_seed(self) -> FrozenSet[Transaction]:
        ordered = sorted(self.valid_ids)
        draws = self._rng.random(len(ordered))
        return frozenset(Transaction(tx_id) for tx_id, d in zip(ordered, draws)
                         if d < self.config.p_tx_distribution)

    # ------------------------------------------------------------------
    # Round driving
    # ------------------------------------------------------------------

    @property
    def round(self) -> int:
        return self._round

    @property
    def compliant(self) -> List[NodeIndex]:
        return [i for i in range(self.config.num_nodes) if i not in self.malicious]

    def collect_proposals(self) -> Dict[NodeIndex, Set[Candidate]]:
        """Gather every node's proposals, fanned out to the nodes following it."""
        outputs = [node.send_to_followers() for node in self.nodes]
        proposals: Dict[NodeIndex, Set[Candidate]] = {i: set() for i in range(self.config.num_nodes)}
        for sender, transactions in enumerate(outputs):
            valid = [tx for tx in transactions if tx.id in self.valid_ids]
            if not valid:
                continue
            for receiver in np.flatnonzero(self.followees[:, sender]):
                proposals[int(receiver)].update(Candidate(tx, sender) for tx in valid)
        return proposals

    def step(self) -> RoundSnapshot:
        """Run one round and return the convergence snapshot after it."""
        if self._round >= self.config.num_rounds:
            raise RuntimeError(f"simulation already ran {self.config.num_rounds} rounds")
        proposals = self.collect_proposals()
        for i, node in enumerate(self.nodes):
            node.receive_from_followees(frozenset(proposals[i]))
        self._round += 1
        snapshot = self.measure()
        self.metrics.record(snapshot)
        LOGGER.info(
            "round(%s) distinct_sets(%s) winner_size(%s) winner_weight(%s/%s) consensus(%.2f%%)",
            snapshot.round,
            snapshot.distinct_sets,
            snapshot.winner_size,
            snapshot.winner_weight,
            snapshot.total_weight,
            snapshot.consensus_pct,
        )
        return snapshot

    def measure(self) -> RoundSnapshot:
        """Summarise agreement among compliant nodes at the current round."""
        outputs = [self.nodes[i].send_to_followers() for i in self.compliant]
        blacklisted = sum(
            len(getattr(self.nodes[i], "blacklisted", ())) for i in self.compliant
        )
        return RoundSnapshot.from_outputs(self._round, outputs, blacklisted=blacklisted)

    def run(self) -> SimulationResult:
        """Run all remaining rounds; the result covers every round, including manual steps."""
        while self._round < self.config.num_rounds:
            self.step()
        final_sets = {i: self.nodes[i].send_to_followers() for i in self.compliant}
        return SimulationResult(
            config=self.config,
            malicious=self.malicious,
            metrics=self.metrics,
            final_sets=final_sets,
        )
