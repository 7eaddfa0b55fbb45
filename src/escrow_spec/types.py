"""Core types for the escrow spec.

Statuses and ruling options are integer enums so snapshots and notifications
carry the same values an on-chain arbitrable contract would emit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Union


class EscrowStatus(IntEnum):
    INITIAL = 0
    RECLAIMED = 1
    DISPUTED = 2
    RESOLVED = 3


class RulingOption(IntEnum):
    PAYER_WINS = 1
    PAYEE_WINS = 2


# --- Notifications (append-only audit records) ---


@dataclass(frozen=True)
class MetaEvidence:
    meta_evidence_id: int
    uri: str


@dataclass(frozen=True)
class Evidence:
    arbitrator: bytes
    evidence_group_id: int
    submitter: bytes
    uri: str


@dataclass(frozen=True)
class Dispute:
    arbitrator: bytes
    dispute_id: int
    meta_evidence_id: int
    evidence_group_id: int


@dataclass(frozen=True)
class Ruling:
    arbitrator: bytes
    dispute_id: int
    ruling: int


Notification = Union[MetaEvidence, Evidence, Dispute, Ruling]


# --- Payouts ---


@dataclass(frozen=True)
class TransferReceipt:
    """Outcome of a best-effort payout. ``ok`` is False if the recipient refused."""
    recipient: bytes
    amount: int
    ok: bool
