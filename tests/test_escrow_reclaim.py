"""reclaim_funds specs (both steps)."""

from __future__ import annotations

import pytest

from escrow_spec.config import ARBITRATION_FEE_DEPOSIT_PERIOD, RECLAMATION_PERIOD
from escrow_spec.errors import ErrorCode, SpecError
from escrow_spec.test_accounts import PAYEE, PAYER, STRANGER
from escrow_spec.types import EscrowStatus


# --- first step: Initial -> Reclaimed ---


def test_reclaim_with_exact_fee(escrow, clock, arbitrator, escrow_case) -> None:
    clock.advance(10)
    result = escrow.reclaim_funds(PAYER, value=arbitrator.cost)

    assert result is None
    assert escrow.status == EscrowStatus.RECLAIMED
    assert escrow.reclaimed_at == 10
    assert escrow.balance == 110
    escrow_case("escrow/reclaim.json", "reclaim_with_exact_fee", escrow)


@pytest.mark.parametrize("payment", [0, 9, 11])
def test_reclaim_with_wrong_fee_rejected(escrow, payment) -> None:
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYER, value=payment)
    assert exc.value.code == ErrorCode.INVALID_PAYMENT
    assert escrow.status == EscrowStatus.INITIAL
    assert escrow.reclaimed_at is None
    assert escrow.balance == 100


def test_reclaim_with_negative_payment_rejected(escrow) -> None:
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYER, value=-10)
    assert exc.value.code == ErrorCode.INVALID_PAYMENT


@pytest.mark.parametrize("sender", [PAYEE, STRANGER])
def test_reclaim_by_non_payer_rejected(escrow, arbitrator, sender) -> None:
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(sender, value=arbitrator.cost)
    assert exc.value.code == ErrorCode.UNAUTHORIZED
    assert escrow.status == EscrowStatus.INITIAL


def test_reclaim_at_window_boundary_allowed(escrow, clock, arbitrator) -> None:
    clock.advance(RECLAMATION_PERIOD)
    escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    assert escrow.status == EscrowStatus.RECLAIMED


def test_reclaim_after_window_rejected(escrow, clock, arbitrator) -> None:
    clock.advance(RECLAMATION_PERIOD + 1)
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    assert exc.value.code == ErrorCode.WINDOW_VIOLATION
    assert escrow.status == EscrowStatus.INITIAL


def test_reclaim_uses_current_arbitration_cost(escrow, arbitrator) -> None:
    arbitrator.cost = 25
    with pytest.raises(SpecError):
        escrow.reclaim_funds(PAYER, value=10)
    escrow.reclaim_funds(PAYER, value=25)
    assert escrow.balance == 125


# --- second step: Reclaimed -> Resolved ---


def test_second_reclaim_before_deposit_window_ends_rejected(escrow, clock, arbitrator) -> None:
    escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    clock.advance(ARBITRATION_FEE_DEPOSIT_PERIOD)

    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYER)
    assert exc.value.code == ErrorCode.WINDOW_VIOLATION
    assert escrow.status == EscrowStatus.RECLAIMED
    assert escrow.balance == 110


def test_second_reclaim_after_deposit_window_pays_payer(
    escrow, clock, ledger, arbitrator, escrow_case
) -> None:
    clock.advance(30)
    escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    clock.advance(ARBITRATION_FEE_DEPOSIT_PERIOD + 1)

    receipt = escrow.reclaim_funds(PAYER)

    assert receipt is not None and receipt.ok
    assert receipt.amount == 110
    assert escrow.status == EscrowStatus.RESOLVED
    assert escrow.balance == 0
    assert ledger.balance_of(PAYER) == 110
    assert ledger.balance_of(PAYEE) == 0
    escrow_case("escrow/reclaim.json", "second_reclaim_pays_payer", escrow)


def test_second_reclaim_window_measured_from_reclaim_time(escrow, clock, arbitrator) -> None:
    clock.advance(RECLAMATION_PERIOD)
    escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    # Past created_at + window, still inside reclaimed_at + window.
    clock.advance(ARBITRATION_FEE_DEPOSIT_PERIOD - 1)
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYER)
    assert exc.value.code == ErrorCode.WINDOW_VIOLATION


def test_second_reclaim_with_payment_rejected(escrow, clock, arbitrator) -> None:
    escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    clock.advance(ARBITRATION_FEE_DEPOSIT_PERIOD + 1)
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    assert exc.value.code == ErrorCode.INVALID_PAYMENT
    assert escrow.status == EscrowStatus.RECLAIMED


def test_second_reclaim_by_payee_rejected(escrow, clock, arbitrator) -> None:
    escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    clock.advance(ARBITRATION_FEE_DEPOSIT_PERIOD + 1)
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYEE)
    assert exc.value.code == ErrorCode.UNAUTHORIZED


def test_reclaim_after_resolution_rejected(escrow) -> None:
    escrow.release_funds(PAYER)
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYER, value=10)
    assert exc.value.code == ErrorCode.INVALID_STATE


def test_reclaim_while_disputed_rejected(escrow, arbitrator) -> None:
    escrow.reclaim_funds(PAYER, value=arbitrator.cost)
    escrow.deposit_arbitration_fee_for_payee(PAYEE, value=arbitrator.cost)
    with pytest.raises(SpecError) as exc:
        escrow.reclaim_funds(PAYER)
    assert exc.value.code == ErrorCode.INVALID_STATE
