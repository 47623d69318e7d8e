from __future__ import annotations

"""Quorum helpers for the final consensus round.

Small, pure functions kept independent from node state so they can be
unit-tested in isolation.
"""

from math import floor
from typing import AbstractSet, FrozenSet, Mapping

from trustnet.types import Transaction


def min_votes(followee_count: int, blacklisted_count: int, p_malicious: float) -> int:
    """Return the minimum vote count a transaction needs to be accepted.

    Args:
        followee_count: Number of followees in the node's adjacency row.
        blacklisted_count: Number of those followees that were blacklisted.
        p_malicious: Estimated malicious fraction in [0, 1].

    Returns:
        ``floor((followee_count - blacklisted_count) * p_malicious)``, never
        negative.
    """
    trusted = max(followee_count - blacklisted_count, 0)
    return max(int(floor(trusted * p_malicious)), 0)


def has_quorum(votes: int, threshold: int) -> bool:
    """Return True when *votes* reaches *threshold* (inclusive)."""
    return votes >= threshold


def select_accepted(
    votes: Mapping[Transaction, int],
    threshold: int,
    retained: AbstractSet[Transaction] = frozenset(),
) -> FrozenSet[Transaction]:
    """Return transactions meeting the quorum plus every retained transaction.

    Args:
        votes: Tallied vote count per transaction.
        threshold: Minimum votes, as computed by :func:`min_votes`.
        retained: Transactions kept regardless of votes (the node's own seed).
    """
    accepted = {tx for tx, count in votes.items() if has_quorum(count, threshold)}
    return frozenset(accepted | set(retained))


__all__ = ["min_votes", "has_quorum", "select_accepted"]
