"""Malicious node strategies.

Each strategy is an independent implementation of the
:class:`~trustnet.consensus.base.Node` capability, selected by the harness at
construction time.
"""

from __future__ import annotations

from typing import AbstractSet, Callable, Dict, FrozenSet, Optional, Sequence

from trustnet.consensus.base import Node, NodeParams, ProtocolViolation
from trustnet.consensus.node import ConsensusNode
from trustnet.types import Candidate, Transaction


class MalDoNothing:
    """Ignore every input and never propose anything."""

    def __init__(self, params: Optional[NodeParams] = None) -> None:
        pass

    def set_followees(self, followees: Sequence[bool]) -> None:
        pass

    def set_pending_transaction(self, transactions: AbstractSet[Transaction]) -> None:
        pass

    def send_to_followers(self) -> FrozenSet[Transaction]:
        return frozenset()

    def receive_from_followees(self, candidates: AbstractSet[Candidate]) -> None:
        pass


class MalIntermittentCompliant:
    """Behave compliantly, but only propose on odd rounds.

    The wrapped :class:`ConsensusNode` processes every round normally; on even
    rounds the empty set is proposed instead of its output.
    """

    def __init__(self, params: NodeParams) -> None:
        self._inner = ConsensusNode(params)
        self._current_round = 1

    def set_followees(self, followees: Sequence[bool]) -> None:
        self._inner.set_followees(followees)

    def set_pending_transaction(self, transactions: AbstractSet[Transaction]) -> None:
        self._inner.set_pending_transaction(transactions)

    def send_to_followers(self) -> FrozenSet[Transaction]:
        if self._current_round % 2 == 1:
            return self._inner.send_to_followers()
        return frozenset()

    def receive_from_followees(self, candidates: AbstractSet[Candidate]) -> None:
        self._inner.receive_from_followees(candidates)
        self._current_round += 1


class MalSendOneTx:
    """Repeatedly propose a single transaction taken from the seed."""

    def __init__(self, params: Optional[NodeParams] = None) -> None:
        self._pending: Optional[FrozenSet[Transaction]] = None

    def set_followees(self, followees: Sequence[bool]) -> None:
        pass

    def set_pending_transaction(self, transactions: AbstractSet[Transaction]) -> None:
        if transactions is None:
            raise ProtocolViolation("pending transactions must not be None")
        if not transactions:
            self._pending = frozenset()
            return
        # Lowest id keeps the choice independent of set iteration order.
        self._pending = frozenset([min(transactions, key=lambda tx: tx.id)])

    def send_to_followers(self) -> FrozenSet[Transaction]:
        if self._pending is None:
            raise ProtocolViolation("set_pending_transaction must be called before sending")
        return self._pending

    def receive_from_followees(self, candidates: AbstractSet[Candidate]) -> None:
        pass


AdversaryFactory = Callable[[NodeParams], Node]

ADVERSARIES: Dict[str, AdversaryFactory] = {
    "do_nothing": MalDoNothing,
    "intermittent": MalIntermittentCompliant,
    "send_one_tx": MalSendOneTx,
}


def create_adversary(name: str, params: NodeParams) -> Node:
    """Instantiate the adversary registered under *name*."""
    try:
        factory = ADVERSARIES[name]
    except KeyError:
        raise ValueError(f"unknown adversary {name!r}; expected one of {sorted(ADVERSARIES)}") from None
    return factory(params)
