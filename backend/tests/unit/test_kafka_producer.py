"""Unit tests for the Kafka producer singleton."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from accreditation.config import settings
from accreditation.pipeline.events import AssessmentStatusChangedEvent, EventEnvelope, TemplateClonedEvent
from accreditation.pipeline.producer import KafkaProducer, get_event_publisher
from accreditation.pipeline.topics import ASSESSMENT_STATUS_CHANGED


class TestKafkaProducer:

    def setup_method(self) -> None:
        KafkaProducer.reset()

    def teardown_method(self) -> None:
        KafkaProducer.reset()

    @patch("confluent_kafka.Producer")
    def test_singleton_creates_one_instance(self, mock_producer_cls: MagicMock) -> None:
        """Two instantiations should return the same object."""
        p1 = KafkaProducer()
        p2 = KafkaProducer()
        assert p1 is p2
        assert mock_producer_cls.call_count == 1

    @patch("confluent_kafka.Producer")
    def test_produce_serializes_and_sends(self, mock_producer_cls: MagicMock) -> None:
        """produce() should serialize the envelope and key it by assessment."""
        mock_inner = MagicMock()
        mock_producer_cls.return_value = mock_inner

        producer = KafkaProducer()
        event = AssessmentStatusChangedEvent(
            assessment_id="assessment-1",
            journal_id="journal-1",
            owner_id="user-1",
            from_status="submitted",
            to_status="admin_approved",
            actor_id="admin-1",
            actor_role="admin_kampus",
        )
        envelope = event.to_envelope()

        producer.produce(ASSESSMENT_STATUS_CHANGED, envelope, key="assessment-1")

        mock_inner.produce.assert_called_once()
        call_kwargs = mock_inner.produce.call_args
        assert call_kwargs.kwargs["topic"] == ASSESSMENT_STATUS_CHANGED
        assert call_kwargs.kwargs["key"] == b"assessment-1"
        sent = EventEnvelope.deserialize(call_kwargs.kwargs["value"])
        assert sent.event_type == "assessment.status.changed"
        assert sent.payload["to_status"] == "admin_approved"
        mock_inner.poll.assert_called_once_with(0)

    @patch("confluent_kafka.Producer")
    def test_flush_delegates_to_inner(self, mock_producer_cls: MagicMock) -> None:
        mock_inner = MagicMock()
        mock_inner.flush.return_value = 0
        mock_producer_cls.return_value = mock_inner

        producer = KafkaProducer()
        result = producer.flush(timeout=5.0)

        mock_inner.flush.assert_called_once_with(timeout=5.0)
        assert result == 0

    @patch("confluent_kafka.Producer")
    def test_reset_flushes_pending_messages(self, mock_producer_cls: MagicMock) -> None:
        mock_inner = MagicMock()
        mock_inner.flush.return_value = 0
        mock_producer_cls.return_value = mock_inner

        first = KafkaProducer()
        KafkaProducer.reset()

        mock_inner.flush.assert_called_once_with(timeout=2.0)
        assert KafkaProducer() is not first


class TestEventPublisherDependency:

    def test_disabled_events_yield_no_publisher(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "events_enabled", False)
        assert get_event_publisher() is None

    @patch("confluent_kafka.Producer")
    def test_enabled_events_use_the_singleton(self, mock_producer_cls: MagicMock, monkeypatch) -> None:
        monkeypatch.setattr(settings, "events_enabled", True)
        try:
            assert get_event_publisher() is KafkaProducer()
        finally:
            KafkaProducer.reset()


class TestEnvelope:

    def test_template_cloned_envelope_round_trips(self) -> None:
        event = TemplateClonedEvent(source_template_id="t-1", template_id="t-2", actor_id="admin-1")
        restored = EventEnvelope.deserialize(event.to_envelope().serialize())

        assert restored.version == 1
        assert restored.event_type == "rubric.template.cloned"
        assert restored.payload["template_id"] == "t-2"
        assert restored.payload["event_id"] == event.event_id
