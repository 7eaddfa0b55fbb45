"""Arbitrable escrow state machine.

An escrow holds ``value`` on behalf of ``payer`` until it is paid to ``payee``
or reclaimed by ``payer``. Status only moves forward::

    INITIAL --release_funds--------------------------------> RESOLVED
    INITIAL --reclaim_funds--> RECLAIMED --reclaim_funds----> RESOLVED
                               RECLAIMED --deposit_fee--> DISPUTED --rule--> RESOLVED

Each operation is split into a ``_verify_*`` step that raises ``SpecError``
without touching state and an ``_apply_*`` step that cannot be rejected, so a
failed call has no observable effect. Timing windows are exclusive-above: a
window lapses only once the elapsed time exceeds its length.

Payouts and notifications are best-effort. The transition always completes;
a recipient refusing funds is recorded as a failed ``TransferReceipt`` and a
failing notification sink is logged.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, List, Optional, Tuple

from blake3 import blake3

from .arbitrator import Arbitrator
from .clock import Clock, SystemClock
from .config import (
    ADDRESS_LEN,
    MAX_AMOUNT,
    MAX_EXTRA_DATA_LEN,
    MAX_URI_LEN,
    META_EVIDENCE_ID,
    RULING_OPTIONS,
    EscrowConfig,
)
from .errors import ErrorCode, SpecError
from .ledger import Ledger
from .notifications import NotificationSink
from .types import (
    Dispute,
    Evidence,
    EscrowStatus,
    MetaEvidence,
    Notification,
    Ruling,
    RulingOption,
    TransferReceipt,
)

logger = logging.getLogger(__name__)

_VALID_RULINGS = frozenset({RulingOption.PAYER_WINS, RulingOption.PAYEE_WINS})

# Default nonces; escrows built in the same process never share an id.
_NONCES = itertools.count()


def escrow_id_for(payer: bytes, payee: bytes, value: int, created_at: int, nonce: int) -> bytes:
    buf = bytearray()
    buf += payer
    buf += payee
    buf += value.to_bytes(8, "big")
    buf += created_at.to_bytes(8, "big")
    buf += nonce.to_bytes(8, "big")
    return blake3(buf).digest()


def remaining_time(start: int, period: int, now: int) -> int:
    """Seconds left in a window, clamped to ``[0, period]``."""
    if now - start > period:
        return 0
    return max(0, min(period, start + period - now))


def _is_address(v: object) -> bool:
    return isinstance(v, bytes) and len(v) == ADDRESS_LEN


def _check_payment(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SpecError(ErrorCode.INVALID_PAYMENT, "attached payment must be a non-negative integer")
    return value


class Escrow:
    """One escrow between a payer and a payee, arbitrated by ``arbitrator``.

    The terms (parties, arbitrator, value, timestamps of creation, windows and
    identity) are plain attributes fixed at construction. Mutable state is
    exposed through read-only properties.
    """

    def __init__(
        self,
        payer: bytes,
        payee: bytes,
        arbitrator: Arbitrator,
        value: int,
        meta_evidence_uri: str,
        *,
        ledger: Ledger,
        sink: NotificationSink,
        clock: Optional[Clock] = None,
        config: Optional[EscrowConfig] = None,
        arbitrator_extra_data: bytes = b"",
        nonce: Optional[int] = None,
    ):
        self._clock = clock or SystemClock()
        config = config or EscrowConfig()
        _verify_create(payer, payee, arbitrator, value, meta_evidence_uri, arbitrator_extra_data)
        if nonce is None:
            nonce = next(_NONCES)
        elif isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= MAX_AMOUNT:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "nonce must be a u64")

        created_at = self._clock.now()
        if created_at < 0:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "clock returned a negative timestamp")

        self.payer = payer
        self.payee = payee
        self.arbitrator = arbitrator
        self.arbitrator_extra_data = arbitrator_extra_data
        self.value = value
        self.created_at = created_at
        self.nonce = nonce
        self.reclamation_period = config.reclamation_period
        self.arbitration_fee_deposit_period = config.arbitration_fee_deposit_period
        self.escrow_id = escrow_id_for(payer, payee, value, created_at, nonce)
        self.evidence_group_id = int.from_bytes(self.escrow_id[:8], "big")

        self._ledger = ledger
        self._sink = sink
        self._lock = threading.RLock()

        self._status = EscrowStatus.INITIAL
        self._balance = value
        self._reclaimed_at: Optional[int] = None
        self._dispute_id: Optional[int] = None
        self._ruling: Optional[int] = None
        self._transfers: List[TransferReceipt] = []

        logger.info(
            "escrow %s created: payer=%s payee=%s value=%d",
            self.short_id, payer.hex(), payee.hex(), value,
        )
        self._emit(MetaEvidence(meta_evidence_id=META_EVIDENCE_ID, uri=meta_evidence_uri))

    @property
    def short_id(self) -> str:
        return self.escrow_id[:4].hex()

    @property
    def status(self) -> EscrowStatus:
        return self._status

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def reclaimed_at(self) -> Optional[int]:
        return self._reclaimed_at

    @property
    def dispute_id(self) -> Optional[int]:
        return self._dispute_id

    @property
    def ruling(self) -> Optional[int]:
        return self._ruling

    @property
    def transfers(self) -> Tuple[TransferReceipt, ...]:
        return tuple(self._transfers)

    # --- queries ---

    def remaining_time_to_reclaim(self) -> int:
        if self._status != EscrowStatus.INITIAL:
            raise SpecError(ErrorCode.INVALID_STATE, "escrow not in Initial state")
        return remaining_time(self.created_at, self.reclamation_period, self._clock.now())

    def remaining_time_to_deposit_arbitration_fee(self) -> int:
        if self._status != EscrowStatus.RECLAIMED:
            raise SpecError(ErrorCode.INVALID_STATE, "escrow not in Reclaimed state")
        return remaining_time(
            self._reclaimed_at, self.arbitration_fee_deposit_period, self._clock.now()
        )

    # --- operations ---

    def release_funds(self, sender: bytes) -> TransferReceipt:
        """Pay ``value`` to the payee.

        The payer may release at any time; anyone else only once the
        reclamation window has lapsed.
        """
        with self._lock:
            now = self._clock.now()
            self._checked("release_funds", self._verify_release, sender, now)
            return self._resolve(self.payee)

    def reclaim_funds(self, sender: bytes, value: int = 0) -> Optional[TransferReceipt]:
        """Start or finish a reclamation by the payer.

        The first call, inside the reclamation window, must attach exactly the
        arbitration cost and moves the escrow to RECLAIMED. The second call,
        once the payee's deposit window has lapsed without a dispute, pays the
        whole custody balance back to the payer.
        """
        with self._lock:
            now = self._clock.now()
            self._checked("reclaim_funds", self._verify_reclaim, sender, value, now)
            if self._status == EscrowStatus.INITIAL:
                self._apply_reclaim(value, now)
                return None
            return self._resolve(self.payer)

    def deposit_arbitration_fee_for_payee(self, sender: bytes, value: int) -> int:
        """Fund a dispute on behalf of the payee and return its id."""
        with self._lock:
            self._checked("deposit_arbitration_fee_for_payee", self._verify_deposit_fee, value)
            return self._apply_deposit_fee(sender, value)

    def rule(self, sender: bytes, dispute_id: int, ruling: int) -> TransferReceipt:
        """Arbitrator callback: pay the whole custody balance to the winner."""
        with self._lock:
            self._checked("rule", self._verify_rule, sender, dispute_id, ruling)
            winner = self.payer if ruling == RulingOption.PAYER_WINS else self.payee
            self._ruling = int(ruling)
            receipt = self._resolve(winner)
            self._emit(
                Ruling(arbitrator=self.arbitrator.address, dispute_id=dispute_id, ruling=int(ruling))
            )
            return receipt

    def submit_evidence(self, sender: bytes, uri: str) -> None:
        with self._lock:
            self._checked("submit_evidence", self._verify_evidence, sender, uri)
            self._emit(
                Evidence(
                    arbitrator=self.arbitrator.address,
                    evidence_group_id=self.evidence_group_id,
                    submitter=sender,
                    uri=uri,
                )
            )

    # --- verification (no state changes) ---

    def _checked(self, op: str, verify: Callable[..., None], *args: object) -> None:
        try:
            verify(*args)
        except SpecError as exc:
            logger.debug("escrow %s: %s rejected: %s", self.short_id, op, exc)
            raise

    def _verify_release(self, sender: bytes, now: int) -> None:
        if self._status != EscrowStatus.INITIAL:
            raise SpecError(ErrorCode.INVALID_STATE, "escrow not in Initial state")
        if sender != self.payer and now - self.created_at <= self.reclamation_period:
            raise SpecError(
                ErrorCode.WINDOW_VIOLATION, "payee cannot release funds before the reclamation period ends"
            )

    def _verify_reclaim(self, sender: bytes, value: int, now: int) -> None:
        if self._status not in (EscrowStatus.INITIAL, EscrowStatus.RECLAIMED):
            raise SpecError(ErrorCode.INVALID_STATE, "escrow not in Initial or Reclaimed state")
        if sender != self.payer:
            raise SpecError(ErrorCode.UNAUTHORIZED, "only the payer can reclaim funds")
        value = _check_payment(value)

        if self._status == EscrowStatus.INITIAL:
            if now - self.created_at > self.reclamation_period:
                raise SpecError(ErrorCode.WINDOW_VIOLATION, "reclamation period ended")
            cost = self.arbitrator.arbitration_cost(self.arbitrator_extra_data)
            if value != cost:
                raise SpecError(
                    ErrorCode.INVALID_PAYMENT,
                    f"reclaiming requires depositing the arbitration fee ({cost}), got {value}",
                )
            if self._balance + value > MAX_AMOUNT:
                raise SpecError(ErrorCode.INVALID_PAYMENT, "custody balance overflow")
            return

        if value != 0:
            raise SpecError(ErrorCode.INVALID_PAYMENT, "no payment accepted when completing a reclaim")
        if now - self._reclaimed_at <= self.arbitration_fee_deposit_period:
            raise SpecError(
                ErrorCode.WINDOW_VIOLATION,
                "payer cannot withdraw funds before the arbitration fee deposit period ends",
            )

    def _verify_deposit_fee(self, value: int) -> None:
        if self._status != EscrowStatus.RECLAIMED:
            raise SpecError(ErrorCode.INVALID_STATE, "escrow not in Reclaimed state")
        value = _check_payment(value)
        cost = self.arbitrator.arbitration_cost(self.arbitrator_extra_data)
        if value < cost:
            raise SpecError(
                ErrorCode.INVALID_PAYMENT, f"arbitration fee is {cost}, got {value}"
            )

    def _verify_rule(self, sender: bytes, dispute_id: int, ruling: int) -> None:
        if sender != self.arbitrator.address:
            raise SpecError(ErrorCode.UNAUTHORIZED, "only the arbitrator can rule")
        if self._status != EscrowStatus.DISPUTED:
            raise SpecError(ErrorCode.INVALID_STATE, "escrow not in Disputed state")
        if dispute_id != self._dispute_id:
            raise SpecError(ErrorCode.DISPUTE_NOT_FOUND, f"unknown dispute {dispute_id}")
        if isinstance(ruling, bool) or ruling not in _VALID_RULINGS:
            raise SpecError(ErrorCode.INVALID_RULING, f"ruling {ruling} out of range")

    def _verify_evidence(self, sender: bytes, uri: str) -> None:
        if sender not in (self.payer, self.payee):
            raise SpecError(ErrorCode.UNAUTHORIZED, "only the payer or payee can submit evidence")
        if self._status == EscrowStatus.RESOLVED:
            raise SpecError(ErrorCode.INVALID_STATE, "escrow already resolved")
        if not isinstance(uri, str) or len(uri) > MAX_URI_LEN:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "invalid evidence uri")

    # --- application ---

    def _apply_reclaim(self, value: int, now: int) -> None:
        self._balance += value
        self._reclaimed_at = now
        self._status = EscrowStatus.RECLAIMED
        logger.info("escrow %s reclaimed at %d (fee bond %d)", self.short_id, now, value)

    def _apply_deposit_fee(self, sender: bytes, value: int) -> int:
        # The arbitrator may still refuse the dispute; nothing is mutated before it accepts.
        dispute_id = self.arbitrator.create_dispute(
            RULING_OPTIONS, self.arbitrator_extra_data, value=value, arbitrable=self
        )
        self._dispute_id = dispute_id
        self._status = EscrowStatus.DISPUTED
        logger.info(
            "escrow %s disputed: dispute_id=%d funded by %s", self.short_id, dispute_id, sender.hex()
        )
        self._emit(
            Dispute(
                arbitrator=self.arbitrator.address,
                dispute_id=dispute_id,
                meta_evidence_id=META_EVIDENCE_ID,
                evidence_group_id=self.evidence_group_id,
            )
        )
        return dispute_id

    def _resolve(self, recipient: bytes) -> TransferReceipt:
        amount = self._balance
        self._balance = 0
        self._status = EscrowStatus.RESOLVED
        logger.info("escrow %s resolved: paying %d to %s", self.short_id, amount, recipient.hex())
        receipt = self._send(recipient, amount)
        self._transfers.append(receipt)
        return receipt

    def _send(self, recipient: bytes, amount: int) -> TransferReceipt:
        try:
            ok = bool(self._ledger.send(recipient, amount))
        except Exception:
            logger.exception("escrow %s: payout to %s raised", self.short_id, recipient.hex())
            ok = False
        if not ok:
            logger.warning(
                "escrow %s: payout of %d to %s was not accepted", self.short_id, amount, recipient.hex()
            )
        return TransferReceipt(recipient=recipient, amount=amount, ok=ok)

    def _emit(self, notification: Notification) -> None:
        try:
            self._sink.emit(notification)
        except Exception:
            logger.exception(
                "escrow %s: %s notification dropped", self.short_id, type(notification).__name__
            )


def _verify_create(
    payer: bytes,
    payee: bytes,
    arbitrator: Arbitrator,
    value: int,
    meta_evidence_uri: str,
    extra_data: bytes,
) -> None:
    if not _is_address(payer) or not _is_address(payee):
        raise SpecError(ErrorCode.INVALID_ADDRESS, f"addresses must be {ADDRESS_LEN} bytes")
    if payer == payee:
        raise SpecError(ErrorCode.INVALID_ADDRESS, "payer cannot be payee")
    if not _is_address(getattr(arbitrator, "address", None)):
        raise SpecError(ErrorCode.INVALID_ADDRESS, "arbitrator has no valid address")
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0 or value > MAX_AMOUNT:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "escrow value must be > 0")
    if not isinstance(meta_evidence_uri, str) or len(meta_evidence_uri) > MAX_URI_LEN:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "invalid meta-evidence uri")
    if not isinstance(extra_data, bytes) or len(extra_data) > MAX_EXTRA_DATA_LEN:
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "invalid arbitrator extra data")
