"""Per-transition guards.

Checks run in a fixed order: role, then organisational scope, then the
current status. A scope failure is reported as not-found so an actor learns nothing
about assessments that belong to another tenant or user.
"""

from __future__ import annotations

from dataclasses import dataclass

from accreditation.core.exceptions import AuthorizationError, NotFoundError, StateConflictError
from accreditation.schemas.common import AssessmentStatus, Role
from accreditation.workflow.states import Scope, Transition

# Roles whose scope is not bound to a single tenant
GLOBAL_ROLES = frozenset({Role.SUPER_ADMIN, Role.COORDINATOR})


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as supplied by the identity layer."""

    user_id: str
    role: Role
    tenant_id: str | None = None


@dataclass(frozen=True)
class AssessmentScope:
    """The ownership facts of one assessment that the guards need."""

    assessment_id: str
    owner_id: str
    tenant_id: str
    reviewer_id: str | None
    status: AssessmentStatus


def require_role(actor: Actor, allowed: frozenset[Role] | set[Role], action: str) -> None:
    if actor.role not in allowed:
        raise AuthorizationError(f"Role '{actor.role.value}' may not {action}")


def in_scope(actor: Actor, scope: Scope, target: AssessmentScope) -> bool:
    if scope is Scope.GLOBAL:
        return True
    if scope is Scope.OWNER:
        return actor.user_id == target.owner_id
    if scope is Scope.ASSIGNED_REVIEWER:
        return target.reviewer_id is not None and actor.user_id == target.reviewer_id
    if scope is Scope.TENANT:
        return actor.role in GLOBAL_ROLES or (
            actor.tenant_id is not None and actor.tenant_id == target.tenant_id
        )
    return False


def can_view(actor: Actor, target: AssessmentScope) -> bool:
    if actor.role in GLOBAL_ROLES:
        return True
    if actor.role is Role.ADMIN_KAMPUS:
        return in_scope(actor, Scope.TENANT, target)
    if actor.role is Role.REVIEWER:
        return in_scope(actor, Scope.ASSIGNED_REVIEWER, target)
    return in_scope(actor, Scope.OWNER, target)


def ensure_can_view(actor: Actor, target: AssessmentScope) -> None:
    if not can_view(actor, target):
        raise NotFoundError("Assessment", target.assessment_id)


def authorize_transition(actor: Actor, transition: Transition, target: AssessmentScope) -> None:
    """Raise unless ``actor`` may fire ``transition`` on ``target`` right now."""
    action = transition.event.value.replace("_", " ")

    require_role(actor, transition.roles, action)

    if not in_scope(actor, transition.scope, target):
        raise NotFoundError("Assessment", target.assessment_id)

    if target.status not in transition.sources:
        allowed = ", ".join(sorted(s.value for s in transition.sources))
        raise StateConflictError(
            f"Cannot {action} an assessment with status '{target.status.value}' (requires {allowed})"
        )
