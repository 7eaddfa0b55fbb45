"""Arbitrator interface and a centralized reference arbitrator.

The escrow only relies on ``Arbitrator``: it quotes a dispute cost, accepts a
funded dispute, and later calls back ``Arbitrable.rule``. How a ruling is
reached is outside this package; ``CentralizedArbitrator`` lets a single owner
hand rulings down directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from .config import MAX_EXTRA_DATA_LEN
from .errors import ErrorCode, SpecError

logger = logging.getLogger(__name__)


class Arbitrable(Protocol):
    def rule(self, sender: bytes, dispute_id: int, ruling: int) -> None:
        ...


class Arbitrator(Protocol):
    address: bytes

    def arbitration_cost(self, extra_data: bytes) -> int:
        ...

    def create_dispute(
        self, choices: int, extra_data: bytes, *, value: int, arbitrable: Arbitrable
    ) -> int:
        ...


@dataclass
class DisputeRecord:
    arbitrable: Arbitrable
    choices: int
    fee: int
    ruling: Optional[int] = None


class CentralizedArbitrator:
    """Arbitrator whose owner rules on every dispute."""

    def __init__(self, address: bytes, owner: bytes, cost: int):
        if cost < 0:
            raise SpecError(ErrorCode.INVALID_AMOUNT, "arbitration cost must be >= 0")
        self.address = address
        self.owner = owner
        self.cost = cost
        self.disputes: Dict[int, DisputeRecord] = {}
        self.collected_fees = 0

    def arbitration_cost(self, extra_data: bytes) -> int:
        if len(extra_data) > MAX_EXTRA_DATA_LEN:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "extra_data too long")
        return self.cost

    def create_dispute(
        self, choices: int, extra_data: bytes, *, value: int, arbitrable: Arbitrable
    ) -> int:
        if choices <= 0:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "dispute needs at least one choice")
        if value < self.arbitration_cost(extra_data):
            raise SpecError(ErrorCode.INVALID_PAYMENT, "not enough value to cover arbitration costs")

        dispute_id = len(self.disputes)
        self.disputes[dispute_id] = DisputeRecord(arbitrable=arbitrable, choices=choices, fee=value)
        self.collected_fees += value
        logger.info("dispute %d created (choices=%d, fee=%d)", dispute_id, choices, value)
        return dispute_id

    def give_ruling(self, sender: bytes, dispute_id: int, ruling: int) -> None:
        if sender != self.owner:
            raise SpecError(ErrorCode.UNAUTHORIZED, "only the owner can rule")
        record = self.disputes.get(dispute_id)
        if record is None:
            raise SpecError(ErrorCode.DISPUTE_NOT_FOUND, f"unknown dispute {dispute_id}")
        if record.ruling is not None:
            raise SpecError(ErrorCode.INVALID_STATE, "dispute already ruled")
        if ruling < 0 or ruling > record.choices:
            raise SpecError(ErrorCode.INVALID_RULING, "ruling out of bounds")

        record.arbitrable.rule(self.address, dispute_id, ruling)
        record.ruling = ruling
        logger.info("dispute %d ruled %d", dispute_id, ruling)
