"""Adversarial node strategies used to stress the consensus protocol."""

from __future__ import annotations

from .malicious import (
    ADVERSARIES,
    MalDoNothing,
    MalIntermittentCompliant,
    MalSendOneTx,
    create_adversary,
)

__all__ = [
    "ADVERSARIES",
    "MalDoNothing",
    "MalIntermittentCompliant",
    "MalSendOneTx",
    "create_adversary",
]
