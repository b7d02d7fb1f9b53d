"""Pure math: per-response scoring, assessment aggregation, grade bands."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Protocol

from accreditation.schemas.common import AnswerType

SCALE_MAX = 5
SCALE_MIN = 1

# (lower bound inclusive, grade), checked top-down
GRADE_BANDS: list[tuple[float, str]] = [
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
]
LOWEST_GRADE = "E"

GRADE_LABELS: dict[str, str] = {
    "A": "Excellent",
    "B": "Very Good",
    "C": "Good",
    "D": "Fair",
    "E": "Needs Improvement",
}


class ScorableIndicator(Protocol):
    weight: float
    answer_type: str


class ScorableAnswer(Protocol):
    answer_boolean: bool | None
    answer_scale: int | None
    answer_text: str | None


@dataclass
class ScoreSummary:
    """The four derived fields persisted on an assessment."""

    total_score: float
    max_score: float
    percentage: float
    grade: str

    def as_dict(self) -> dict[str, float | str]:
        return asdict(self)


def score(indicator: ScorableIndicator, answer: ScorableAnswer) -> float:
    """Score one answer against its indicator.

    boolean: full weight when true.
    scale:   weight * scale / 5. The formula does not clamp; out-of-range
             scales are rejected before they reach it.
    text:    full weight, credited pending manual review.
    """
    weight = float(indicator.weight)

    if indicator.answer_type == AnswerType.BOOLEAN.value:
        return weight if answer.answer_boolean else 0.0
    if indicator.answer_type == AnswerType.SCALE.value:
        return round(weight * ((answer.answer_scale or 0) / SCALE_MAX), 2)
    if indicator.answer_type == AnswerType.TEXT.value:
        return weight
    return 0.0


def grade_for(percentage: float) -> str:
    for lower_bound, grade in GRADE_BANDS:
        if percentage >= lower_bound:
            return grade
    return LOWEST_GRADE


def aggregate(scored: Iterable[tuple[float, float]]) -> ScoreSummary:
    """Aggregate (score, indicator weight) pairs of every answered indicator."""
    total = 0.0
    maximum = 0.0
    for response_score, weight in scored:
        total += response_score
        maximum += weight

    percentage = round(total / maximum * 100, 2) if maximum > 0 else 0.0

    return ScoreSummary(
        total_score=round(total, 2),
        max_score=round(maximum, 2),
        percentage=percentage,
        grade=grade_for(percentage),
    )
