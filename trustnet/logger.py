"""Logging-backed observer for consensus nodes."""

from __future__ import annotations

import logging
from typing import FrozenSet, Optional

from trustnet.types import NodeIndex, Transaction


class NodeLogger:
    """Report node progress through the standard :mod:`logging` machinery.

    Implements the :class:`~trustnet.consensus.base.RoundObserver` hooks so
    the harness can attach it to any compliant node for diagnostics.
    """

    def __init__(self, name: str, logger: Optional[logging.Logger] = None) -> None:
        """Initialize the node logger.

        Args:
            name: Label prefixed to every message (e.g. ``node-7``).
            logger: Logger to emit to; defaults to ``trustnet.node``.
        """
        self.name = name
        self.logger = logger or logging.getLogger("trustnet.node")

    def log(self, level: int, message: str) -> None:
        self.logger.log(level, "%s: %s", self.name, message)

    def on_round(self, node: object, round_number: int, senders: int, final: bool) -> None:
        phase = "FINAL" if final else "GATHER"
        self.log(logging.DEBUG, f"[{phase}] round {round_number} processed {senders} senders")

    def on_blacklist(self, node: object, followee: NodeIndex, reason: str) -> None:
        self.log(logging.INFO, f"[BLACKLIST] followee {followee} ({reason})")

    def on_finalize(self, node: object, accepted: FrozenSet[Transaction], threshold: int) -> None:
        self.log(logging.INFO, f"[FINALIZED] {len(accepted)} transactions accepted at threshold {threshold}")
