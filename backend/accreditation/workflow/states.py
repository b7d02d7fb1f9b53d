"""Assessment lifecycle: the canonical status enum and its legal transitions.

Every status lives in ``journal_assessments.status``; nothing is inferred
from timestamps or reviewer columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from accreditation.schemas.common import AssessmentStatus, Role


class Scope(str, Enum):
    """Whose assessment an actor may act on."""

    OWNER = "owner"
    TENANT = "tenant"
    GLOBAL = "global"
    ASSIGNED_REVIEWER = "assigned_reviewer"


class Event(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REQUEST_REVISION = "request_revision"
    ASSIGN_REVIEWER = "assign_reviewer"
    REMOVE_REVIEWER = "remove_reviewer"
    START_REVIEW = "start_review"
    COMPLETE_REVIEW = "complete_review"
    DELETE = "delete"
    EDIT = "edit"


@dataclass(frozen=True)
class Transition:
    event: Event
    sources: frozenset[AssessmentStatus]
    # None when the assessment leaves the lifecycle (deleted) or stays put (edits)
    target: AssessmentStatus | None
    roles: frozenset[Role]
    scope: Scope


def _t(
    event: Event,
    sources: set[AssessmentStatus],
    target: AssessmentStatus | None,
    roles: set[Role],
    scope: Scope,
) -> Transition:
    return Transition(event, frozenset(sources), target, frozenset(roles), scope)


S = AssessmentStatus

TRANSITIONS: dict[Event, Transition] = {
    t.event: t
    for t in [
        _t(Event.SUBMIT, {S.DRAFT}, S.SUBMITTED, {Role.USER}, Scope.OWNER),
        _t(Event.APPROVE, {S.SUBMITTED}, S.ADMIN_APPROVED, {Role.ADMIN_KAMPUS, Role.SUPER_ADMIN}, Scope.TENANT),
        _t(Event.REQUEST_REVISION, {S.SUBMITTED}, S.DRAFT, {Role.ADMIN_KAMPUS, Role.SUPER_ADMIN}, Scope.TENANT),
        _t(Event.ASSIGN_REVIEWER, {S.ADMIN_APPROVED}, S.ASSIGNED, {Role.COORDINATOR, Role.SUPER_ADMIN}, Scope.GLOBAL),
        _t(
            Event.REMOVE_REVIEWER,
            {S.ASSIGNED, S.IN_REVIEW},
            S.ADMIN_APPROVED,
            {Role.COORDINATOR, Role.SUPER_ADMIN},
            Scope.GLOBAL,
        ),
        _t(Event.START_REVIEW, {S.ASSIGNED}, S.IN_REVIEW, {Role.REVIEWER}, Scope.ASSIGNED_REVIEWER),
        _t(Event.COMPLETE_REVIEW, {S.IN_REVIEW}, S.REVIEWED, {Role.REVIEWER}, Scope.ASSIGNED_REVIEWER),
        _t(Event.DELETE, {S.DRAFT}, None, {Role.USER}, Scope.OWNER),
        _t(Event.EDIT, {S.DRAFT}, None, {Role.USER}, Scope.OWNER),
    ]
}


def approval_target(reviewer_stage_enabled: bool) -> AssessmentStatus:
    """Institutional approval is final when no reviewer stage follows it."""
    return S.ADMIN_APPROVED if reviewer_stage_enabled else S.REVIEWED
