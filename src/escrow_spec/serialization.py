"""Render escrow state as JSON-friendly dicts for audit and fixtures."""

from __future__ import annotations

from typing import Any, Dict

from .escrow import Escrow


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def escrow_to_json(escrow: Escrow) -> Dict[str, Any]:
    return {
        "escrow_id": _bytes_to_hex(escrow.escrow_id),
        "payer": _bytes_to_hex(escrow.payer),
        "payee": _bytes_to_hex(escrow.payee),
        "arbitrator": _bytes_to_hex(escrow.arbitrator.address),
        "arbitrator_extra_data": _bytes_to_hex(escrow.arbitrator_extra_data),
        "value": escrow.value,
        "balance": escrow.balance,
        "status": escrow.status.name,
        "created_at": escrow.created_at,
        "reclaimed_at": escrow.reclaimed_at,
        "reclamation_period": escrow.reclamation_period,
        "arbitration_fee_deposit_period": escrow.arbitration_fee_deposit_period,
        "dispute_id": escrow.dispute_id,
        "ruling": escrow.ruling,
        "evidence_group_id": escrow.evidence_group_id,
        "transfers": [
            {"recipient": _bytes_to_hex(t.recipient), "amount": t.amount, "ok": t.ok}
            for t in escrow.transfers
        ],
    }
