"""Interfaces and configuration for trust-based consensus nodes.

The :class:`Node` protocol is the four-operation capability every participant
exposes to the simulation harness. Compliant and adversarial strategies are
independent implementations of it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Optional, Protocol, Sequence

from trustnet.types import Candidate, NodeIndex, Transaction


class ProtocolViolation(RuntimeError):
    """Raised when a node operation is invoked in the wrong state or with invalid input."""


@dataclass(frozen=True)
class NodeParams:
    """Configuration captured by a node at construction time.

    Attributes:
        p_graph: Probability that an edge exists in the follow graph.
        p_malicious: Estimated fraction of malicious nodes; drives the quorum.
        p_tx_distribution: Probability a transaction is seeded at a node.
        num_rounds: Number of receive rounds the node will run.
    """

    p_graph: float
    p_malicious: float
    p_tx_distribution: float
    num_rounds: int

    def __post_init__(self) -> None:
        """Validate probabilities and round count."""
        for name in ("p_graph", "p_malicious", "p_tx_distribution"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.num_rounds < 1:
            raise ValueError(f"num_rounds must be at least 1, got {self.num_rounds}")


class Node(Protocol):
    """Capability interface driven by the simulation harness."""

    def set_followees(self, followees: Sequence[bool]) -> None:
        """Record which node indices this node follows."""

    def set_pending_transaction(self, transactions: AbstractSet[Transaction]) -> None:
        """Record the node's initial transactions."""

    def send_to_followers(self) -> FrozenSet[Transaction]:
        """Return the transactions proposed to followers this round."""

    def receive_from_followees(self, candidates: AbstractSet[Candidate]) -> None:
        """Ingest all candidates delivered to this node for one round."""


class RoundObserver(Protocol):
    """Optional diagnostics hook attached to a consensus node."""

    def on_round(self, node: object, round_number: int, senders: int, final: bool) -> None:
        """Called after a round has been processed."""

    def on_blacklist(self, node: object, followee: NodeIndex, reason: str) -> None:
        """Called when a followee is blacklisted."""

    def on_finalize(self, node: object, accepted: FrozenSet[Transaction], threshold: int) -> None:
        """Called once the accepted set has been computed."""


def validate_observer(observer: Optional[RoundObserver]) -> Optional[RoundObserver]:
    """Return *observer* unchanged, rejecting objects lacking the hook methods."""
    if observer is None:
        return None
    for hook in ("on_round", "on_blacklist", "on_finalize"):
        if not callable(getattr(observer, hook, None)):
            raise TypeError(f"observer is missing callable {hook!r}")
    return observer
