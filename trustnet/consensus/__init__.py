"""Consensus package for trustnet.

Provides the node capability interface, the evidence ledger, quorum helpers
and the compliant :class:`ConsensusNode` implementation.
"""

from __future__ import annotations

from .base import Node, NodeParams, ProtocolViolation, RoundObserver
from .ledger import FolloweeLedger
from .node import ConsensusNode
from .quorum import has_quorum, min_votes, select_accepted

__all__ = [
    "Node",
    "NodeParams",
    "ProtocolViolation",
    "RoundObserver",
    "FolloweeLedger",
    "ConsensusNode",
    "has_quorum",
    "min_votes",
    "select_accepted",
]
