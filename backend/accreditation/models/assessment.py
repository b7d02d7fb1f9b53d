from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accreditation.models.base import Base, SoftDeleteMixin
from accreditation.schemas.common import AssessmentStatus


class Assessment(SoftDeleteMixin, Base):
    __tablename__ = "journal_assessments"

    journal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("journals.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    # Null for assessments answered against legacy (label-addressed) indicators
    template_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("accreditation_templates.id"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=AssessmentStatus.DRAFT.value,
        index=True,
    )
    assessment_date: Mapped[date | None] = mapped_column(Date)
    period: Mapped[str | None] = mapped_column(String(20))
    notes: Mapped[str | None] = mapped_column(Text)

    total_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    max_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    grade: Mapped[str | None] = mapped_column(String(2))

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reviewed_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"))

    admin_kampus_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    admin_kampus_approved_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"))
    admin_kampus_approval_notes: Mapped[str | None] = mapped_column(Text)

    reviewer_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"), index=True)
    assigned_by: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"))
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    assignment_notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    responses: Mapped[list[Response]] = relationship(back_populates="assessment")
    issues: Mapped[list[Issue]] = relationship(
        back_populates="assessment",
        order_by="Issue.display_order",
    )
    audit_notes: Mapped[list[Note]] = relationship(
        back_populates="assessment",
        order_by="Note.created_at",
    )

    @property
    def is_editable(self) -> bool:
        return self.status == AssessmentStatus.DRAFT.value


class Response(Base):
    __tablename__ = "assessment_responses"
    __table_args__ = (
        UniqueConstraint("assessment_id", "indicator_id", name="uq_assessment_responses_indicator"),
    )

    assessment_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("journal_assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    indicator_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("evaluation_indicators.id"),
        nullable=False,
    )
    answer_boolean: Mapped[bool | None] = mapped_column(Boolean)
    answer_scale: Mapped[int | None] = mapped_column(Integer)
    answer_text: Mapped[str | None] = mapped_column(Text)
    # Derived from the indicator on every write, never set from input
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    assessment: Mapped[Assessment] = relationship(back_populates="responses")
    attachments: Mapped[list[Attachment]] = relationship(back_populates="response")


class EssayResponse(Base):
    __tablename__ = "assessment_essay_responses"
    __table_args__ = (
        UniqueConstraint("assessment_id", "essay_question_id", name="uq_assessment_essay_responses_question"),
    )

    assessment_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("journal_assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    essay_question_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("essay_questions.id"),
        nullable=False,
    )
    answer_text: Mapped[str] = mapped_column(Text, nullable=False, default="")


class Attachment(Base):
    __tablename__ = "assessment_attachments"

    response_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("assessment_responses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    uploaded_by: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"), nullable=False)

    # Relationships
    response: Mapped[Response] = relationship(back_populates="attachments")


class Issue(Base):
    __tablename__ = "assessment_issues"

    assessment_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("journal_assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    assessment: Mapped[Assessment] = relationship(back_populates="issues")


class Note(Base):
    """Audit-log entry. Rows are inserted by the workflow and never updated."""

    __tablename__ = "assessment_notes"
    __table_args__ = (
        Index("ix_assessment_notes_assessment_created", "assessment_id", "created_at"),
    )

    assessment_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("journal_assessments.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"), nullable=False)
    author_role: Mapped[str] = mapped_column(String(50), nullable=False)
    note_type: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    assessment: Mapped[Assessment] = relationship(back_populates="audit_notes")
