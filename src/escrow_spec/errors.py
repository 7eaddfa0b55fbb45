"""Escrow spec error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    STATE = 0x03
    TIMING = 0x04
    PAYMENT = 0x05


class ErrorCode(IntEnum):
    # Validation
    INVALID_PAYLOAD = 0x0100
    INVALID_AMOUNT = 0x0101
    INVALID_ADDRESS = 0x0102
    INVALID_RULING = 0x0103

    # Authorization
    UNAUTHORIZED = 0x0200

    # State
    INVALID_STATE = 0x0300
    DISPUTE_NOT_FOUND = 0x0301

    # Timing
    WINDOW_VIOLATION = 0x0400

    # Payment
    INVALID_PAYMENT = 0x0500

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class SpecError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = SpecError.__setattr__


def _spec_error_setattr(self: SpecError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


SpecError.__setattr__ = _spec_error_setattr  # type: ignore[method-assign]
