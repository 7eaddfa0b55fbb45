"""Arbitrable two-party escrow with third-party dispute resolution."""

from .arbitrator import Arbitrable, Arbitrator, CentralizedArbitrator
from .clock import Clock, ManualClock, SystemClock
from .config import EscrowConfig
from .errors import ErrorCategory, ErrorCode, SpecError
from .escrow import Escrow
from .ledger import InMemoryLedger, Ledger
from .notifications import FanoutSink, LoggingSink, NotificationSink, RecordingSink
from .types import (
    Dispute,
    EscrowStatus,
    Evidence,
    MetaEvidence,
    Ruling,
    RulingOption,
    TransferReceipt,
)

__all__ = [
    "Arbitrable",
    "Arbitrator",
    "CentralizedArbitrator",
    "Clock",
    "Dispute",
    "ErrorCategory",
    "ErrorCode",
    "Escrow",
    "EscrowConfig",
    "EscrowStatus",
    "Evidence",
    "FanoutSink",
    "InMemoryLedger",
    "Ledger",
    "LoggingSink",
    "ManualClock",
    "MetaEvidence",
    "NotificationSink",
    "RecordingSink",
    "Ruling",
    "RulingOption",
    "SpecError",
    "SystemClock",
    "TransferReceipt",
]
