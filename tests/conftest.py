"""Pytest hooks and fixtures; ``--output DIR`` writes collected escrow cases."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from escrow_spec.arbitrator import CentralizedArbitrator
from escrow_spec.clock import ManualClock
from escrow_spec.config import EscrowConfig
from escrow_spec.escrow import Escrow
from escrow_spec.ledger import InMemoryLedger
from escrow_spec.notifications import RecordingSink
from escrow_spec.serialization import escrow_to_json
from escrow_spec.state_digest import compute_escrow_digest
from escrow_spec.test_accounts import ARBITRATOR, ARBITRATOR_OWNER, PAYEE, PAYER

ARBITRATION_COST = 10
ESCROW_VALUE = 100
META_EVIDENCE_URI = "/ipfs/QmMetaEvidence/metaEvidence.json"

_ESCROW_CASES: dict[str, list[dict[str, Any]]] = {}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=0)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def arbitrator() -> CentralizedArbitrator:
    return CentralizedArbitrator(address=ARBITRATOR, owner=ARBITRATOR_OWNER, cost=ARBITRATION_COST)


@pytest.fixture
def make_escrow(
    clock: ManualClock,
    ledger: InMemoryLedger,
    sink: RecordingSink,
    arbitrator: CentralizedArbitrator,
) -> Callable[..., Escrow]:
    """Build an escrow wired to the shared test collaborators."""

    def _make_escrow(
        value: int = ESCROW_VALUE, config: EscrowConfig | None = None, **kwargs: Any
    ) -> Escrow:
        options: dict[str, Any] = {"ledger": ledger, "sink": sink, "clock": clock}
        options.update(kwargs)
        return Escrow(PAYER, PAYEE, arbitrator, value, META_EVIDENCE_URI, config=config, **options)

    return _make_escrow


@pytest.fixture
def escrow(make_escrow: Callable[..., Escrow]) -> Escrow:
    return make_escrow()


@pytest.fixture
def escrow_case() -> Callable[[str, str, Escrow], None]:
    """Collect an escrow snapshot (with digest) under a fixture path."""

    def _escrow_case(rel_path: str, name: str, escrow: Escrow) -> None:
        snapshot = escrow_to_json(escrow)
        _ESCROW_CASES.setdefault(rel_path, []).append(
            {
                "name": name,
                "state": snapshot,
                "digest": compute_escrow_digest(snapshot),
            }
        )

    return _escrow_case


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _ESCROW_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"cases": cases}, indent=2))
