"""Per-node evidence bookkeeping for trust-based consensus."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Set

from trustnet.types import ACCEPTED_SLOT, SELF_SLOT, NodeIndex, Slot, SlotKind, Transaction

LOGGER = logging.getLogger(__name__)


class FolloweeLedger:
    """Map evidence slots to the transactions observed under them.

    Followee entries only grow until the followee is blacklisted; from then on
    the entry is frozen and excluded from every read that feeds the protocol.
    """

    def __init__(self, followee_count: int) -> None:
        """Initialise an empty ledger for a node with *followee_count* adjacency entries."""
        if followee_count < 0:
            raise ValueError("followee_count must be non-negative")
        self._followee_count = followee_count
        self._entries: Dict[Slot, Set[Transaction]] = {}
        self._blacklist: Set[NodeIndex] = set()
        self._collapsed = False

    @property
    def followee_count(self) -> int:
        """Return the size of the adjacency row this ledger was built for."""
        return self._followee_count

    @property
    def blacklisted(self) -> FrozenSet[NodeIndex]:
        """Return the blacklisted followee indices."""
        return frozenset(self._blacklist)

    @property
    def is_collapsed(self) -> bool:
        """Return True once the ledger holds only the accepted set."""
        return self._collapsed

    def _check_index(self, index: NodeIndex) -> None:
        if not 0 <= index < self._followee_count:
            raise IndexError(f"followee index {index} outside [0, {self._followee_count})")

    def seed(self, transactions: Iterable[Transaction]) -> None:
        """Store the node's own transactions under the self slot."""
        if self._collapsed:
            raise RuntimeError("cannot seed a collapsed ledger")
        self._entries.setdefault(SELF_SLOT, set()).update(transactions)

    def entry(self, slot: Slot) -> FrozenSet[Transaction]:
        """Return the transactions held under *slot* (empty if absent)."""
        return frozenset(self._entries.get(slot, ()))

    def tracked_followees(self) -> List[NodeIndex]:
        """Return non-blacklisted followees that already contributed evidence."""
        return sorted(
            slot.index
            for slot in self._entries
            if slot.kind is SlotKind.FOLLOWEE and slot.index not in self._blacklist
        )

    def is_blacklisted(self, index: NodeIndex) -> bool:
        """Return True if followee *index* has been blacklisted."""
        return index in self._blacklist

    def blacklist(self, index: NodeIndex) -> bool:
        """Blacklist followee *index*; return False if it already was."""
        self._check_index(index)
        if index in self._blacklist:
            return False
        self._blacklist.add(index)
        LOGGER.debug("Followee %s blacklisted with %s frozen transactions",
                     index, len(self._entries.get(Slot.followee(index), ())))
        return True

    def absorb(self, index: NodeIndex, transactions: AbstractSet[Transaction]) -> bool:
        """Union *transactions* into the entry of followee *index*.

        Returns False (and changes nothing) when the followee is blacklisted.
        """
        self._check_index(index)
        if self._collapsed:
            raise RuntimeError("cannot absorb evidence into a collapsed ledger")
        if index in self._blacklist:
            return False
        self._entries.setdefault(Slot.followee(index), set()).update(transactions)
        return True

    def union(self) -> FrozenSet[Transaction]:
        """Return every transaction held by trusted slots."""
        merged: Set[Transaction] = set()
        for slot, transactions in self._entries.items():
            if slot.kind is SlotKind.FOLLOWEE and slot.index in self._blacklist:
                continue
            merged |= transactions
        return frozenset(merged)

    def voters(self) -> Dict[Transaction, Set[NodeIndex]]:
        """Return, per transaction, the non-blacklisted followees that reported it."""
        result: Dict[Transaction, Set[NodeIndex]] = defaultdict(set)
        for slot, transactions in self._entries.items():
            if slot.kind is not SlotKind.FOLLOWEE or slot.index in self._blacklist:
                continue
            for tx in transactions:
                result[tx].add(slot.index)
        return dict(result)

    def collapse(self, accepted: Iterable[Transaction]) -> None:
        """Replace every entry by a single accepted-set entry."""
        self._entries = {ACCEPTED_SLOT: set(accepted)}
        self._collapsed = True
