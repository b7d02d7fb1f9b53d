"""Persisting the aggregated score of an assessment."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from accreditation.models.assessment import Assessment, Response
from accreditation.models.rubric import Indicator
from accreditation.scoring.engine import ScoreSummary, aggregate

logger = structlog.get_logger()


async def calculate_total_score(db: AsyncSession, assessment: Assessment) -> ScoreSummary:
    """Recompute total/max/percentage/grade from the stored responses.

    Only the four derived columns are written, so repeated calls converge on
    the same values.
    """
    result = await db.execute(
        select(Response.score, Indicator.weight)
        .join(Indicator, Indicator.id == Response.indicator_id)
        .where(Response.assessment_id == assessment.id)
    )
    summary = aggregate((float(s), float(w)) for s, w in result.all())

    assessment.total_score = summary.total_score
    assessment.max_score = summary.max_score
    assessment.percentage = summary.percentage
    assessment.grade = summary.grade
    await db.flush()

    logger.debug(
        "assessment_score_calculated",
        assessment_id=assessment.id,
        total_score=summary.total_score,
        max_score=summary.max_score,
        percentage=summary.percentage,
    )
    return summary
