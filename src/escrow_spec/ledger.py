"""Account ledger used for escrow payouts.

Payouts are best-effort: ``send`` reports whether the recipient accepted the
funds instead of raising, and the escrow never rolls back on a refusal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Protocol, Set

from .config import MAX_AMOUNT
from .errors import ErrorCode, SpecError

logger = logging.getLogger(__name__)


class Ledger(Protocol):
    def send(self, recipient: bytes, amount: int) -> bool:
        ...


@dataclass
class AccountState:
    address: bytes
    balance: int = 0


def apply_balance_change(balance: int, delta: int) -> int:
    """Apply +/- balance with u64 bounds."""
    new_balance = balance + delta
    if new_balance < 0:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "negative balance")
    if new_balance > MAX_AMOUNT:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "balance overflow")
    return new_balance


class InMemoryLedger:
    """Ledger keeping balances in a dict; accounts are created on first credit."""

    def __init__(self) -> None:
        self.accounts: Dict[bytes, AccountState] = {}
        self._rejecting: Set[bytes] = set()

    def balance_of(self, address: bytes) -> int:
        account = self.accounts.get(address)
        return account.balance if account is not None else 0

    def credit(self, address: bytes, amount: int) -> None:
        account = self.accounts.setdefault(address, AccountState(address=address))
        account.balance = apply_balance_change(account.balance, amount)

    def debit(self, address: bytes, amount: int) -> None:
        account = self.accounts.get(address)
        if account is None:
            raise SpecError(ErrorCode.INVALID_AMOUNT, "insufficient balance")
        account.balance = apply_balance_change(account.balance, -amount)

    def reject(self, address: bytes) -> None:
        """Make ``address`` refuse every incoming payout."""
        self._rejecting.add(address)

    def accept(self, address: bytes) -> None:
        self._rejecting.discard(address)

    def send(self, recipient: bytes, amount: int) -> bool:
        if recipient in self._rejecting:
            logger.debug("recipient %s refused %d", recipient.hex(), amount)
            return False
        try:
            self.credit(recipient, amount)
        except SpecError as exc:
            logger.debug("credit to %s failed: %s", recipient.hex(), exc)
            return False
        return True
