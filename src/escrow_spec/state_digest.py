"""Canonical escrow state digest (v1)."""
from __future__ import annotations

from typing import Any

from blake3 import blake3

from .types import EscrowStatus


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _opt_u64(value: int | None) -> bytes:
    # Absent values are tagged so that None and 0 hash differently.
    if value is None:
        return b"\x00"
    return b"\x01" + _u64_be(value)


def compute_escrow_digest(snapshot: dict[str, Any]) -> str:
    """Compute escrow digest v1 from an ``escrow_to_json`` snapshot.

    Fields are encoded in canonical order and hashed with BLAKE3-256.
    """
    buf = bytearray()
    for field in ("escrow_id", "payer", "payee", "arbitrator"):
        addr = _hex_to_bytes(snapshot.get(field))
        if len(addr) != 32:
            raise ValueError(f"{field} must be 32 bytes, got {len(addr)}")
        buf += addr

    extra = _hex_to_bytes(snapshot.get("arbitrator_extra_data", ""))
    buf += _u64_be(len(extra))
    buf += extra

    buf += bytes([EscrowStatus[snapshot["status"]]])
    for field in (
        "value",
        "balance",
        "created_at",
        "reclamation_period",
        "arbitration_fee_deposit_period",
        "evidence_group_id",
    ):
        buf += _u64_be(int(snapshot.get(field, 0)))
    for field in ("reclaimed_at", "dispute_id", "ruling"):
        buf += _opt_u64(snapshot.get(field))

    transfers = snapshot.get("transfers", [])
    buf += _u64_be(len(transfers))
    for t in transfers:
        buf += _hex_to_bytes(t["recipient"])
        buf += _u64_be(int(t["amount"]))
        buf += b"\x01" if t["ok"] else b"\x00"

    return blake3(buf).hexdigest()
