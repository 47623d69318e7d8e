"""trustnet: trust-based consensus over a directed follow graph.

Compliant nodes gossip transactions for a fixed number of synchronous rounds,
blacklist followees that report inconsistently, and collapse the remaining
evidence into a single accepted set using a quorum derived from the estimated
malicious fraction.

  - trustnet.types                 value types (Transaction, Candidate, Slot)
  - trustnet.consensus             Node interface, ledger, quorum, ConsensusNode
  - trustnet.nodes                 adversarial strategies
  - trustnet.simulation            round-synchronous harness
  - trustnet.metrics / plotting    convergence reporting
"""

from __future__ import annotations

# Domain types
from .types import (  # noqa: F401
    ACCEPTED_SLOT,
    SELF_SLOT,
    Candidate,
    NodeIndex,
    Slot,
    SlotKind,
    Transaction,
)

# Consensus core
from .consensus import (  # noqa: F401
    ConsensusNode,
    FolloweeLedger,
    Node,
    NodeParams,
    ProtocolViolation,
    RoundObserver,
    min_votes,
)

# Adversaries and harness
from .nodes import ADVERSARIES, MalDoNothing, MalIntermittentCompliant, MalSendOneTx  # noqa: F401
from .metrics import ConvergenceMetrics, RoundSnapshot  # noqa: F401
from .simulation import Simulation, SimulationConfig, SimulationResult  # noqa: F401
from .logger import NodeLogger  # noqa: F401

__all__ = [
    # core
    "ACCEPTED_SLOT",
    "SELF_SLOT",
    "Candidate",
    "NodeIndex",
    "Slot",
    "SlotKind",
    "Transaction",
    "ConsensusNode",
    "FolloweeLedger",
    "Node",
    "NodeParams",
    "ProtocolViolation",
    "RoundObserver",
    "min_votes",
    # strategies
    "ADVERSARIES",
    "MalDoNothing",
    "MalIntermittentCompliant",
    "MalSendOneTx",
    # harness
    "ConvergenceMetrics",
    "RoundSnapshot",
    "Simulation",
    "SimulationConfig",
    "SimulationResult",
    "NodeLogger",
]
