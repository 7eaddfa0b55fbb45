"""Notification sinks for escrow audit records."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Optional, Protocol, Type

from .types import Dispute, Evidence, MetaEvidence, Notification, Ruling

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def emit(self, notification: Notification) -> None:
        ...


def notification_to_json(notification: Notification) -> Dict[str, Any]:
    out: Dict[str, Any] = {"kind": type(notification).__name__}
    for key, value in asdict(notification).items():
        out[key] = value.hex() if isinstance(value, bytes) else value
    return out


class RecordingSink:
    """Keeps every notification in emission order."""

    def __init__(self) -> None:
        self.records: List[Notification] = []

    def emit(self, notification: Notification) -> None:
        self.records.append(notification)

    def of_kind(self, kind: Type[Notification]) -> List[Notification]:
        return [r for r in self.records if isinstance(r, kind)]

    @property
    def meta_evidence(self) -> List[MetaEvidence]:
        return self.of_kind(MetaEvidence)  # type: ignore[return-value]

    @property
    def evidence(self) -> List[Evidence]:
        return self.of_kind(Evidence)  # type: ignore[return-value]

    @property
    def disputes(self) -> List[Dispute]:
        return self.of_kind(Dispute)  # type: ignore[return-value]

    @property
    def rulings(self) -> List[Ruling]:
        return self.of_kind(Ruling)  # type: ignore[return-value]


class LoggingSink:
    """Writes each notification as one INFO line."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def emit(self, notification: Notification) -> None:
        self._log.info("%s", notification_to_json(notification))


class FanoutSink:
    """Forwards every notification to several sinks, in order."""

    def __init__(self, sinks: Iterable[NotificationSink]):
        self.sinks = list(sinks)

    def emit(self, notification: Notification) -> None:
        for sink in self.sinks:
            sink.emit(notification)
