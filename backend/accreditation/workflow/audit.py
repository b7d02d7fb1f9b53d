"""Append-only audit trail of assessment transitions."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accreditation.core.authorization import Actor
from accreditation.models.assessment import Note
from accreditation.schemas.common import NoteType


async def append(
    db: AsyncSession,
    assessment_id: str,
    author: Actor,
    note_type: NoteType,
    content: str,
) -> Note:
    """Insert one note. Called by the lifecycle transitions only."""
    note = Note(
        assessment_id=assessment_id,
        user_id=author.user_id,
        author_role=author.role.value,
        note_type=note_type.value,
        content=content,
    )
    db.add(note)
    await db.flush()
    return note


async def list_notes(db: AsyncSession, assessment_id: str) -> Sequence[Note]:
    result = await db.execute(
        select(Note)
        .where(Note.assessment_id == assessment_id)
        .order_by(Note.created_at, Note.id)
    )
    return result.scalars().all()
