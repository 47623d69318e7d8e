"""Base value types shared by consensus nodes and the simulation harness."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

NodeIndex = int


@dataclass(frozen=True)
class Transaction:
    """A gossiped unit of content, identified by an opaque integer id."""

    id: int

    def __str__(self) -> str:
        """Return string representation of the transaction."""
        return f"tx:{self.id}"


@dataclass(frozen=True)
class Candidate:
    """One followee's proposal of a transaction during a round."""

    tx: Transaction
    sender: NodeIndex


class SlotKind(Enum):
    """Kind of an evidence slot in a node's ledger."""

    SELF = "self"
    FOLLOWEE = "followee"
    ACCEPTED = "accepted"


@dataclass(frozen=True)
class Slot:
    """Key of a ledger entry.

    Only ``FOLLOWEE`` slots carry an index; ``SELF`` holds the node's own seed
    and ``ACCEPTED`` holds the final consensus set after finalization.
    """

    kind: SlotKind
    index: Optional[NodeIndex] = None

    def __post_init__(self) -> None:
        """Reject slots whose index does not match their kind."""
        if self.kind is SlotKind.FOLLOWEE:
            if self.index is None or self.index < 0:
                raise ValueError("followee slot requires a non-negative index")
        elif self.index is not None:
            raise ValueError(f"{self.kind.value} slot cannot carry an index")

    @classmethod
    def followee(cls, index: NodeIndex) -> "Slot":
        """Return the slot of followee *index*."""
        return cls(SlotKind.FOLLOWEE, index)

    def __str__(self) -> str:
        if self.kind is SlotKind.FOLLOWEE:
            return f"followee:{self.index}"
        return self.kind.value


SELF_SLOT = Slot(SlotKind.SELF)
ACCEPTED_SLOT = Slot(SlotKind.ACCEPTED)
