"""Compliant consensus node.

The node runs a fixed number of synchronous rounds in two phases:

1. **Gathering** (rounds ``1 .. num_rounds - 1``): candidates are grouped by
   sender, followees that went silent or dropped a previously reported
   transaction are blacklisted, and the remaining senders' proposals are
   unioned into the ledger.
2. **Finalization** (round ``num_rounds``): evidence is absorbed a last time,
   every transaction is tallied by the number of trusted followees reporting
   it, and the ledger collapses to the set meeting the quorum derived from the
   estimated malicious fraction. The node's own seed is always kept.

After finalization :meth:`ConsensusNode.send_to_followers` keeps returning the
accepted set.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import AbstractSet, Dict, FrozenSet, Optional, Sequence, Set, Tuple

from trustnet.consensus.base import NodeParams, ProtocolViolation, RoundObserver, validate_observer
from trustnet.consensus.ledger import FolloweeLedger
from trustnet.consensus.quorum import min_votes, select_accepted
from trustnet.types import SELF_SLOT, Candidate, NodeIndex, Slot, Transaction

LOGGER = logging.getLogger(__name__)

BLACKLIST_SILENT = "silent"
BLACKLIST_DROPPED = "dropped"


class ConsensusNode:
    """A participant that follows the trust protocol exactly."""

    def __init__(self, params: NodeParams, *, observer: Optional[RoundObserver] = None) -> None:
        """Create a node.

        Args:
            params: Simulation parameters; ``p_malicious`` drives the quorum
                and ``num_rounds`` bounds the receive calls.
            observer: Optional diagnostics hook notified of rounds,
                blacklisting and finalization.
        """
        self._params = params
        self._observer = validate_observer(observer)
        self._followees: Optional[Tuple[bool, ...]] = None
        self._ledger: Optional[FolloweeLedger] = None
        self._seeded = False
        self._round = 0

    @classmethod
    def configure(
        cls,
        p_graph: float,
        p_malicious: float,
        p_tx_distribution: float,
        num_rounds: int,
        *,
        observer: Optional[RoundObserver] = None,
    ) -> "ConsensusNode":
        """Build a node from raw simulation parameters."""
        params = NodeParams(
            p_graph=p_graph,
            p_malicious=p_malicious,
            p_tx_distribution=p_tx_distribution,
            num_rounds=num_rounds,
        )
        return cls(params, observer=observer)

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def params(self) -> NodeParams:
        return self._params

    @property
    def round(self) -> int:
        """Return the number of receive calls processed so far."""
        return self._round

    @property
    def is_finalized(self) -> bool:
        return self._round >= self._params.num_rounds

    @property
    def followee_count(self) -> int:
        """Return how many nodes this node follows."""
        if self._followees is None:
            return 0
        return sum(1 for follows in self._followees if follows)

    @property
    def blacklisted(self) -> FrozenSet[NodeIndex]:
        if self._ledger is None:
            return frozenset()
        return self._ledger.blacklisted

    def ledger_entry(self, index: NodeIndex) -> FrozenSet[Transaction]:
        """Return the evidence held for followee *index*."""
        if self._ledger is None or self._ledger.is_collapsed:
            return frozenset()
        return self._ledger.entry(Slot.followee(index))

    # ------------------------------------------------------------------
    # Protocol operations
    # ------------------------------------------------------------------

    def set_followees(self, followees: Sequence[bool]) -> None:
        """Record the adjacency row; may be called exactly once."""
        if followees is None:
            raise ProtocolViolation("followees must not be None")
        if self._followees is not None:
            raise ProtocolViolation("followees already set")
        self._followees = tuple(bool(follows) for follows in followees)
        self._ledger = FolloweeLedger(len(self._followees))

    def set_pending_transaction(self, transactions: AbstractSet[Transaction]) -> None:
        """Record the node's own transactions under the self slot."""
        if self._ledger is None:
            raise ProtocolViolation("set_followees must be called before set_pending_transaction")
        if transactions is None:
            raise ProtocolViolation("pending transactions must not be None")
        if self._seeded:
            raise ProtocolViolation("pending transactions already set")
        if self.is_finalized:
            raise ProtocolViolation("cannot seed a finalized node")
        self._ledger.seed(transactions)
        self._seeded = True

    def send_to_followers(self) -> FrozenSet[Transaction]:
        """Return every transaction currently held by trusted slots."""
        if self._ledger is None:
            return frozenset()
        return self._ledger.union()

    def receive_from_followees(self, candidates: AbstractSet[Candidate]) -> None:
        """Process one round of candidates."""
        if self._ledger is None or self._followees is None:
            raise ProtocolViolation("set_followees must be called before receive_from_followees")
        if candidates is None:
            raise ProtocolViolation("candidates must not be None")
        if self._round >= self._params.num_rounds:
            raise ProtocolViolation(
                f"receive_from_followees called more than {self._params.num_rounds} times"
            )

        observations = self._group_by_sender(candidates)
        self._round += 1
        final = self._round == self._params.num_rounds

        if not final:
            self._check_consistency(observations)
        self._absorb(observations)
        if final:
            self._finalize()

        if self._observer is not None:
            self._observer.on_round(self, self._round, len(observations), final)

    # ------------------------------------------------------------------
    # Phase helpers
    # ------------------------------------------------------------------

    def _group_by_sender(self, candidates: AbstractSet[Candidate]) -> Dict[NodeIndex, Set[Transaction]]:
        assert self._followees is not None
        observations: Dict[NodeIndex, Set[Transaction]] = defaultdict(set)
        for candidate in candidates:
            sender = candidate.sender
            if not 0 <= sender < len(self._followees):
                raise ProtocolViolation(
                    f"candidate sender {sender} outside [0, {len(self._followees)})"
                )
            if not self._followees[sender]:
                raise ProtocolViolation(f"candidate sender {sender} is not a followee")
            observations[sender].add(candidate.tx)
        return dict(observations)

    def _check_consistency(self, observations: Dict[NodeIndex, Set[Transaction]]) -> None:
        """Blacklist tracked followees that went silent or dropped evidence."""
        assert self._ledger is not None
        for index in self._ledger.tracked_followees():
            reported = observations.get(index)
            if not reported:
                self._blacklist(index, BLACKLIST_SILENT)
            elif not self._ledger.entry(Slot.followee(index)) <= reported:
                self._blacklist(index, BLACKLIST_DROPPED)

    def _blacklist(self, index: NodeIndex, reason: str) -> None:
        assert self._ledger is not None
        if not self._ledger.blacklist(index):
            return
        LOGGER.debug("Round %s: followee %s blacklisted (%s)", self._round, index, reason)
        if self._observer is not None:
            self._observer.on_blacklist(self, index, reason)

    def _absorb(self, observations: Dict[NodeIndex, Set[Transaction]]) -> None:
        assert self._ledger is not None
        for index, transactions in observations.items():
            self._ledger.absorb(index, transactions)

    def _finalize(self) -> None:
        assert self._ledger is not None
        threshold = min_votes(self.followee_count, len(self._ledger.blacklisted), self._params.p_malicious)
        votes = {tx: len(voters) for tx, voters in self._ledger.voters().items()}
        accepted = select_accepted(votes, threshold, retained=self._ledger.entry(SELF_SLOT))
        self._ledger.collapse(accepted)
        LOGGER.debug("Finalized with threshold %s: %s of %s candidates accepted",
                     threshold, len(accepted), len(votes))
        if self._observer is not None:
            self._observer.on_finalize(self, accepted, threshold)
