"""Typed Kafka event schemas with versioned envelope."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from uuid_extensions import uuid7


@dataclass
class EventEnvelope:
    """Versioned envelope wrapping all Kafka events."""

    version: int
    event_type: str
    payload: dict[str, object]

    def serialize(self) -> bytes:
        return json.dumps(asdict(self)).encode("utf-8")

    @classmethod
    def deserialize(cls, data: bytes) -> EventEnvelope:
        raw = json.loads(data.decode("utf-8"))
        return cls(
            version=raw["version"],
            event_type=raw["event_type"],
            payload=raw["payload"],
        )


@dataclass
class AssessmentStatusChangedEvent:
    """Emitted on every lifecycle transition; notification delivery consumes it."""

    assessment_id: str
    journal_id: str
    owner_id: str
    from_status: str
    to_status: str  # "deleted" when a draft is removed
    actor_id: str
    actor_role: str
    reviewer_id: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid7()))
    event_type: str = "assessment.status.changed"
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_envelope(self) -> EventEnvelope:
        return EventEnvelope(
            version=1,
            event_type=self.event_type,
            payload=asdict(self),
        )


@dataclass
class TemplateClonedEvent:
    source_template_id: str
    template_id: str
    actor_id: str
    event_id: str = field(default_factory=lambda: str(uuid7()))
    event_type: str = "rubric.template.cloned"
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_envelope(self) -> EventEnvelope:
        return EventEnvelope(
            version=1,
            event_type=self.event_type,
            payload=asdict(self),
        )
