"""Tests for trustnet value types and the FolloweeLedger."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from trustnet.consensus.ledger import FolloweeLedger
from trustnet.types import ACCEPTED_SLOT, SELF_SLOT, Candidate, Slot, SlotKind, Transaction

if TYPE_CHECKING:
    from _pytest.fixtures import FixtureRequest


def test_transaction_identity_is_by_id() -> None:
    """Transactions with the same id are equal and hash alike."""
    assert Transaction(7) == Transaction(7)
    assert len({Transaction(7), Transaction(7), Transaction(8)}) == 2
    assert {Candidate(Transaction(1), 0), Candidate(Transaction(1), 0)} == {Candidate(Transaction(1), 0)}


def test_transaction_is_immutable() -> None:
    tx = Transaction(1)
    with pytest.raises(AttributeError):
        tx.id = 2  # type: ignore[misc]


def test_slot_kinds_validate_index() -> None:
    """Only followee slots carry a non-negative index."""
    assert Slot.followee(3).index == 3
    assert SELF_SLOT.kind is SlotKind.SELF and SELF_SLOT.index is None
    assert len({SELF_SLOT, ACCEPTED_SLOT, Slot.followee(0)}) == 3
    with pytest.raises(ValueError):
        Slot(SlotKind.FOLLOWEE)
    with pytest.raises(ValueError):
        Slot.followee(-1)
    with pytest.raises(ValueError):
        Slot(SlotKind.SELF, 0)


def test_ledger_absorbs_by_union() -> None:
    ledger = FolloweeLedger(3)
    ledger.absorb(1, {Transaction(1)})
    ledger.absorb(1, {Transaction(2)})

    assert ledger.entry(Slot.followee(1)) == frozenset({Transaction(1), Transaction(2)})
    assert ledger.tracked_followees() == [1]


def test_ledger_freezes_blacklisted_entries() -> None:
    """A blacklisted followee's evidence is frozen and excluded from reads."""
    ledger = FolloweeLedger(2)
    ledger.seed({Transaction(9)})
    ledger.absorb(0, {Transaction(1)})
    ledger.absorb(1, {Transaction(2)})

    assert ledger.blacklist(1) is True
    assert ledger.blacklist(1) is False
    assert ledger.absorb(1, {Transaction(3)}) is False

    assert ledger.entry(Slot.followee(1)) == frozenset({Transaction(2)})
    assert ledger.union() == frozenset({Transaction(1), Transaction(9)})
    assert ledger.tracked_followees() == [0]
    assert ledger.voters() == {Transaction(1): {0}}


def test_ledger_counts_voters_per_transaction() -> None:
    ledger = FolloweeLedger(3)
    ledger.seed({Transaction(1)})
    ledger.absorb(0, {Transaction(1), Transaction(2)})
    ledger.absorb(2, {Transaction(2)})

    assert ledger.voters() == {Transaction(1): {0}, Transaction(2): {0, 2}}


def test_ledger_rejects_out_of_range_index() -> None:
    ledger = FolloweeLedger(2)
    with pytest.raises(IndexError):
        ledger.absorb(2, {Transaction(1)})
    with pytest.raises(IndexError):
        ledger.blacklist(-1)


def test_ledger_collapse_keeps_only_accepted_set() -> None:
    ledger = FolloweeLedger(2)
    ledger.seed({Transaction(1)})
    ledger.absorb(0, {Transaction(2)})
    ledger.blacklist(1)

    ledger.collapse({Transaction(2)})

    assert ledger.is_collapsed
    assert ledger.entry(ACCEPTED_SLOT) == frozenset({Transaction(2)})
    assert ledger.entry(SELF_SLOT) == frozenset()
    assert ledger.union() == frozenset({Transaction(2)})
    assert ledger.blacklisted == frozenset({1})
    with pytest.raises(RuntimeError):
        ledger.absorb(0, {Transaction(3)})
    with pytest.raises(RuntimeError):
        ledger.seed({Transaction(3)})
