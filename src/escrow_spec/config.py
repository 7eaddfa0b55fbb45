"""Escrow spec configuration constants and runtime settings.

The module constants are the reference configuration. ``EscrowConfig`` lets a
deployment override the two timing windows from the environment or a YAML file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from .errors import ErrorCode, SpecError

# Timing windows (seconds)
RECLAMATION_PERIOD = 3 * 60
ARBITRATION_FEE_DEPOSIT_PERIOD = 3 * 60

# Arbitration
RULING_OPTIONS = 2
META_EVIDENCE_ID = 0
MAX_EXTRA_DATA_LEN = 1024

# Notifications
MAX_URI_LEN = 2048

# Units
MAX_AMOUNT = (1 << 64) - 1
ADDRESS_LEN = 32


@dataclass(frozen=True)
class EscrowConfig:
    """Timing windows applied to a single escrow for its whole life."""
    reclamation_period: int = RECLAMATION_PERIOD
    arbitration_fee_deposit_period: int = ARBITRATION_FEE_DEPOSIT_PERIOD

    def __post_init__(self) -> None:
        for name in ("reclamation_period", "arbitration_fee_deposit_period"):
            period = getattr(self, name)
            if isinstance(period, bool) or not isinstance(period, int) or period <= 0:
                raise SpecError(ErrorCode.INVALID_PAYLOAD, f"{name} must be a positive integer")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EscrowConfig":
        unknown = set(data) - {"reclamation_period", "arbitration_fee_deposit_period"}
        if unknown:
            raise SpecError(
                ErrorCode.INVALID_PAYLOAD, f"unknown config keys: {', '.join(sorted(unknown))}"
            )
        return cls(
            reclamation_period=data.get("reclamation_period", RECLAMATION_PERIOD),
            arbitration_fee_deposit_period=data.get(
                "arbitration_fee_deposit_period", ARBITRATION_FEE_DEPOSIT_PERIOD
            ),
        )

    @classmethod
    def from_env(cls) -> "EscrowConfig":
        """Load configuration from environment variables."""
        reclamation = os.environ.get("ESCROW_RECLAMATION_PERIOD")
        deposit = os.environ.get("ESCROW_ARBITRATION_FEE_DEPOSIT_PERIOD")
        try:
            return cls(
                reclamation_period=int(reclamation) if reclamation else RECLAMATION_PERIOD,
                arbitration_fee_deposit_period=(
                    int(deposit) if deposit else ARBITRATION_FEE_DEPOSIT_PERIOD
                ),
            )
        except ValueError as exc:
            raise SpecError(ErrorCode.INVALID_PAYLOAD, f"invalid period in environment: {exc}") from exc

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EscrowConfig":
        """Load configuration from a YAML mapping (missing keys keep defaults)."""
        data = yaml.safe_load(Path(path).read_text())
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise SpecError(ErrorCode.INVALID_PAYLOAD, "escrow config must be a mapping")
        return cls.from_mapping(data)
