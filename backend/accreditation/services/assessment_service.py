"""Assessment lifecycle: draft editing and the multi-actor approval chain.

Every transition follows the same steps:

1. load the live assessment and its tenant
2. authorize (role, scope, status) against the transition table
3. validate input, before anything is written
4. compare-and-set the status row, so a concurrent transition loses cleanly
5. append the audit note and commit
6. invalidate cached statistics, publish the event

Each mutating operation commits its own unit of work before returning, so
a failed commit reaches the caller as PersistenceError. Stored files follow
the transaction: new files are removed on rollback, files of deleted rows
are removed only after the commit.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from functools import partial
from pathlib import PurePosixPath
from typing import Any

import structlog
from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from accreditation.config import settings
from accreditation.core.authorization import (
    GLOBAL_ROLES,
    Actor,
    AssessmentScope,
    authorize_transition,
    ensure_can_view,
    require_role,
)
from accreditation.core.exceptions import NotFoundError, StateConflictError, ValidationError
from accreditation.db.session import commit, defer
from accreditation.models.assessment import Assessment, Attachment, EssayResponse, Issue, Note, Response
from accreditation.models.base import new_id, utcnow
from accreditation.models.rubric import Category, Indicator
from accreditation.models.user import Journal, User
from accreditation.pipeline.events import AssessmentStatusChangedEvent
from accreditation.pipeline.producer import EventPublisher
from accreditation.pipeline.topics import ASSESSMENT_STATUS_CHANGED
from accreditation.rubric.essay import count_words, validate_word_count
from accreditation.rubric.service import RubricService
from accreditation.schemas.common import (
    AnswerType,
    AssessmentStatus,
    IssueCategory,
    IssuePriority,
    NoteType,
    Role,
)
from accreditation.scoring.engine import SCALE_MAX, SCALE_MIN, ScoreSummary
from accreditation.scoring.engine import score as score_answer
from accreditation.scoring.service import calculate_total_score
from accreditation.services.stats_cache import StatisticsCache
from accreditation.storage.files import FileStorage, LocalFileStorage
from accreditation.workflow import audit
from accreditation.workflow.states import TRANSITIONS, Event, approval_target

logger = structlog.get_logger()

DELETED = "deleted"


def visible_to(actor: Actor, query: Select[Any]) -> Select[Any]:
    """Restrict an assessment query to what ``actor`` may see."""
    query = query.where(Assessment.deleted_at.is_(None))
    if actor.role in GLOBAL_ROLES:
        return query
    if actor.role is Role.ADMIN_KAMPUS:
        return query.join(Journal, Journal.id == Assessment.journal_id).where(
            Journal.university_id == actor.tenant_id
        )
    if actor.role is Role.REVIEWER:
        return query.where(Assessment.reviewer_id == actor.user_id)
    return query.where(Assessment.user_id == actor.user_id)


class AssessmentService:
    """Operations on one assessment at a time, on behalf of an actor."""

    def __init__(
        self,
        db: AsyncSession,
        storage: FileStorage | None = None,
        cache: StatisticsCache | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self.db = db
        self.storage = storage or LocalFileStorage(settings.storage_root)
        self.cache = cache
        self.publisher = publisher
        self.rubric = RubricService(db)

    # ------------------------------------------------------------------
    # Loading and guards
    # ------------------------------------------------------------------

    async def _load(self, assessment_id: str) -> Assessment:
        result = await self.db.execute(
            select(Assessment).where(
                Assessment.id == assessment_id,
                Assessment.deleted_at.is_(None),
            )
        )
        assessment = result.scalar_one_or_none()
        if not assessment:
            raise NotFoundError("Assessment", assessment_id)
        return assessment

    async def _scope(self, assessment: Assessment) -> AssessmentScope:
        result = await self.db.execute(
            select(Journal.university_id).where(Journal.id == assessment.journal_id)
        )
        tenant_id = result.scalar_one()
        return AssessmentScope(
            assessment_id=assessment.id,
            owner_id=assessment.user_id,
            tenant_id=tenant_id,
            reviewer_id=assessment.reviewer_id,
            status=AssessmentStatus(assessment.status),
        )

    async def _authorize(self, actor: Actor, event: Event, assessment_id: str) -> tuple[Assessment, AssessmentScope]:
        assessment = await self._load(assessment_id)
        scope = await self._scope(assessment)
        authorize_transition(actor, TRANSITIONS[event], scope)
        return assessment, scope

    async def _compare_and_set(
        self,
        assessment: Assessment,
        expected: AssessmentStatus,
        values: dict[str, Any],
        *extra_criteria: Any,
    ) -> None:
        """Write ``values`` only if the row still has the ``expected`` status."""
        result = await self.db.execute(
            update(Assessment)
            .where(
                Assessment.id == assessment.id,
                Assessment.status == expected.value,
                Assessment.deleted_at.is_(None),
                *extra_criteria,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(
                "assessment_transition_conflict",
                assessment_id=assessment.id,
                expected_status=expected.value,
            )
            raise StateConflictError(
                f"Assessment '{assessment.id}' changed while the request was in progress"
            )
        await self.db.refresh(assessment)

    async def _after_transition(
        self,
        actor: Actor,
        assessment: Assessment,
        scope: AssessmentScope,
        to_status: str,
    ) -> None:
        if self.cache is not None:
            await self.cache.invalidate_assessment(
                tenant_id=scope.tenant_id,
                owner_id=scope.owner_id,
                reviewer_id=scope.reviewer_id or assessment.reviewer_id,
            )

        logger.info(
            "assessment_status_changed",
            assessment_id=assessment.id,
            from_status=scope.status.value,
            to_status=to_status,
            actor_id=actor.user_id,
            actor_role=actor.role.value,
        )

        if self.publisher is None:
            return
        event = AssessmentStatusChangedEvent(
            assessment_id=assessment.id,
            journal_id=assessment.journal_id,
            owner_id=assessment.user_id,
            from_status=scope.status.value,
            to_status=to_status,
            actor_id=actor.user_id,
            actor_role=actor.role.value,
            reviewer_id=assessment.reviewer_id,
        )
        try:
            self.publisher.produce(ASSESSMENT_STATUS_CHANGED, event.to_envelope(), key=assessment.id)
        except Exception as e:
            logger.error("status_event_publish_failed", assessment_id=assessment.id, error=str(e))

    async def _authorize_edit(self, actor: Actor, assessment_id: str) -> Assessment:
        assessment, _ = await self._authorize(actor, Event.EDIT, assessment_id)
        return assessment

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_assessment(self, actor: Actor, assessment_id: str) -> Assessment:
        assessment = await self._load(assessment_id)
        ensure_can_view(actor, await self._scope(assessment))
        return assessment

    async def list_assessments(
        self,
        actor: Actor,
        *,
        status: AssessmentStatus | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[Assessment]]:
        query = visible_to(actor, select(Assessment))
        count_query = visible_to(actor, select(func.count(Assessment.id)))
        if status is not None:
            query = query.where(Assessment.status == status.value)
            count_query = count_query.where(Assessment.status == status.value)

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(
            query.order_by(Assessment.created_at.desc()).offset(offset).limit(limit)
        )
        return total, list(result.scalars().all())

    async def list_responses(self, actor: Actor, assessment_id: str) -> Sequence[Response]:
        await self.get_assessment(actor, assessment_id)
        result = await self.db.execute(
            select(Response).where(Response.assessment_id == assessment_id).order_by(Response.created_at)
        )
        return result.scalars().all()

    async def list_essay_responses(self, actor: Actor, assessment_id: str) -> Sequence[EssayResponse]:
        await self.get_assessment(actor, assessment_id)
        result = await self.db.execute(
            select(EssayResponse)
            .where(EssayResponse.assessment_id == assessment_id)
            .order_by(EssayResponse.created_at)
        )
        return result.scalars().all()

    async def list_issues(self, actor: Actor, assessment_id: str) -> Sequence[Issue]:
        await self.get_assessment(actor, assessment_id)
        result = await self.db.execute(
            select(Issue)
            .where(Issue.assessment_id == assessment_id)
            .order_by(Issue.display_order, Issue.created_at)
        )
        return result.scalars().all()

    async def list_attachments(self, actor: Actor, assessment_id: str) -> Sequence[Attachment]:
        await self.get_assessment(actor, assessment_id)
        result = await self.db.execute(
            select(Attachment)
            .join(Response, Response.id == Attachment.response_id)
            .where(Response.assessment_id == assessment_id)
            .order_by(Attachment.created_at)
        )
        return result.scalars().all()

    async def list_notes(self, actor: Actor, assessment_id: str) -> Sequence[Note]:
        await self.get_assessment(actor, assessment_id)
        return await audit.list_notes(self.db, assessment_id)

    async def compute_score(self, actor: Actor, assessment_id: str) -> ScoreSummary:
        assessment = await self.get_assessment(actor, assessment_id)
        summary = await calculate_total_score(self.db, assessment)
        await commit(self.db)
        return summary

    # ------------------------------------------------------------------
    # Draft editing
    # ------------------------------------------------------------------

    async def create_assessment(
        self,
        actor: Actor,
        journal_id: str,
        *,
        template_id: str | None = None,
        assessment_date: date | None = None,
        period: str | None = None,
        notes: str | None = None,
    ) -> Assessment:
        require_role(actor, {Role.USER}, "create assessments")

        result = await self.db.execute(select(Journal).where(Journal.id == journal_id))
        journal = result.scalar_one_or_none()
        if not journal or journal.user_id != actor.user_id:
            raise NotFoundError("Journal", journal_id)

        if template_id is not None:
            template = await self.rubric.get_template(template_id)
            if not template.is_active:
                raise ValidationError(
                    "Assessments can only be opened against an active template",
                    {"template_id": template_id},
                )

        assessment = Assessment(
            journal_id=journal.id,
            user_id=actor.user_id,
            template_id=template_id,
            status=AssessmentStatus.DRAFT.value,
            assessment_date=assessment_date or date.today(),
            period=period,
            notes=notes,
        )
        self.db.add(assessment)
        await self.db.flush()
        await self.db.refresh(assessment)
        await commit(self.db)

        if self.cache is not None:
            await self.cache.invalidate_assessment(tenant_id=journal.university_id, owner_id=actor.user_id)

        logger.info("assessment_created", assessment_id=assessment.id, journal_id=journal.id)
        return assessment

    async def _check_indicator_belongs(self, assessment: Assessment, indicator: Indicator) -> None:
        template = await self.rubric.get_template_for_indicator(indicator)
        if assessment.template_id is None:
            if template is not None:
                raise ValidationError(
                    "This assessment only accepts legacy indicators",
                    {"indicator_id": indicator.id},
                )
        elif template is None or template.id != assessment.template_id:
            raise ValidationError(
                "Indicator does not belong to the assessment's template",
                {"indicator_id": indicator.id},
            )

    @staticmethod
    def _validate_answer(
        indicator: Indicator,
        answer_boolean: bool | None,
        answer_scale: int | None,
        answer_text: str | None,
    ) -> None:
        if indicator.answer_type == AnswerType.BOOLEAN.value and answer_boolean is None:
            raise ValidationError("A yes/no answer is required", {"answer_boolean": "required"})
        if indicator.answer_type == AnswerType.SCALE.value:
            if answer_scale is None or isinstance(answer_scale, bool):
                raise ValidationError("A scale answer is required", {"answer_scale": "required"})
            if not SCALE_MIN <= answer_scale <= SCALE_MAX:
                raise ValidationError(
                    f"Scale answers must be between {SCALE_MIN} and {SCALE_MAX}",
                    {"answer_scale": str(answer_scale)},
                )
        if indicator.answer_type == AnswerType.TEXT.value and not (answer_text or "").strip():
            raise ValidationError("A text answer is required", {"answer_text": "required"})

    async def save_response(
        self,
        actor: Actor,
        assessment_id: str,
        indicator_id: str,
        *,
        answer_boolean: bool | None = None,
        answer_scale: int | None = None,
        answer_text: str | None = None,
        notes: str | None = None,
    ) -> Response:
        """Create or replace the answer to one indicator and rescore the assessment."""
        assessment = await self._authorize_edit(actor, assessment_id)
        indicator = await self.rubric.get_indicator(indicator_id)
        if not indicator.is_active:
            raise ValidationError("Indicator is no longer active", {"indicator_id": indicator_id})
        await self._check_indicator_belongs(assessment, indicator)
        self._validate_answer(indicator, answer_boolean, answer_scale, answer_text)

        result = await self.db.execute(
            select(Response).where(
                Response.assessment_id == assessment.id,
                Response.indicator_id == indicator.id,
            )
        )
        response = result.scalar_one_or_none()
        if response is None:
            response = Response(assessment_id=assessment.id, indicator_id=indicator.id)
            self.db.add(response)

        response.answer_boolean = answer_boolean
        response.answer_scale = answer_scale
        response.answer_text = answer_text
        response.notes = notes
        response.score = score_answer(indicator, response)
        await self.db.flush()

        await calculate_total_score(self.db, assessment)
        await self.db.refresh(response)
        await commit(self.db)
        return response

    async def save_essay_response(
        self,
        actor: Actor,
        assessment_id: str,
        essay_question_id: str,
        answer_text: str,
    ) -> EssayResponse:
        assessment = await self._authorize_edit(actor, assessment_id)
        essay = await self.rubric.get_essay_question(essay_question_id)

        result = await self.db.execute(select(Category.template_id).where(Category.id == essay.category_id))
        if assessment.template_id is None or result.scalar_one_or_none() != assessment.template_id:
            raise ValidationError(
                "Essay question does not belong to the assessment's template",
                {"essay_question_id": essay_question_id},
            )
        if not validate_word_count(essay, answer_text):
            raise ValidationError(
                f"Answer has {count_words(answer_text)} words, the limit is {essay.max_words}",
                {"answer_text": "too_long"},
            )

        result = await self.db.execute(
            select(EssayResponse).where(
                EssayResponse.assessment_id == assessment.id,
                EssayResponse.essay_question_id == essay.id,
            )
        )
        essay_response = result.scalar_one_or_none()
        if essay_response is None:
            essay_response = EssayResponse(assessment_id=assessment.id, essay_question_id=essay.id)
            self.db.add(essay_response)
        essay_response.answer_text = answer_text
        await self.db.flush()
        await self.db.refresh(essay_response)
        await commit(self.db)
        return essay_response

    async def add_issue(
        self,
        actor: Actor,
        assessment_id: str,
        *,
        title: str,
        description: str,
        category: IssueCategory,
        priority: IssuePriority,
    ) -> Issue:
        assessment = await self._authorize_edit(actor, assessment_id)
        result = await self.db.execute(
            select(func.max(Issue.display_order)).where(Issue.assessment_id == assessment.id)
        )
        max_order = result.scalar_one_or_none() or 0

        issue = Issue(
            assessment_id=assessment.id,
            title=title,
            description=description,
            category=category.value,
            priority=priority.value,
            display_order=max_order + 1,
        )
        self.db.add(issue)
        await self.db.flush()
        await self.db.refresh(issue)
        await commit(self.db)
        return issue

    async def _get_issue(self, assessment_id: str, issue_id: str) -> Issue:
        result = await self.db.execute(
            select(Issue).where(Issue.id == issue_id, Issue.assessment_id == assessment_id)
        )
        issue = result.scalar_one_or_none()
        if not issue:
            raise NotFoundError("Issue", issue_id)
        return issue

    async def update_issue(
        self,
        actor: Actor,
        assessment_id: str,
        issue_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        category: IssueCategory | None = None,
        priority: IssuePriority | None = None,
    ) -> Issue:
        assessment = await self._authorize_edit(actor, assessment_id)
        issue = await self._get_issue(assessment.id, issue_id)
        if title is not None:
            issue.title = title
        if description is not None:
            issue.description = description
        if category is not None:
            issue.category = category.value
        if priority is not None:
            issue.priority = priority.value
        await self.db.flush()
        await self.db.refresh(issue)
        await commit(self.db)
        return issue

    async def delete_issue(self, actor: Actor, assessment_id: str, issue_id: str) -> None:
        assessment = await self._authorize_edit(actor, assessment_id)
        issue = await self._get_issue(assessment.id, issue_id)
        await self.db.delete(issue)
        await commit(self.db)

    async def reorder_issues(self, actor: Actor, assessment_id: str, issue_ids: list[str]) -> Sequence[Issue]:
        """Set display_order to each issue's position in ``issue_ids``."""
        assessment = await self._authorize_edit(actor, assessment_id)
        result = await self.db.execute(select(Issue).where(Issue.assessment_id == assessment.id))
        issues = {issue.id: issue for issue in result.scalars().all()}

        unknown = [i for i in issue_ids if i not in issues]
        if unknown or len(set(issue_ids)) != len(issue_ids):
            raise ValidationError("Issue order must list this assessment's issues once each", {"issue_ids": ", ".join(unknown)})

        for index, issue_id in enumerate(issue_ids):
            issues[issue_id].display_order = index
        await commit(self.db)
        return await self.list_issues(actor, assessment_id)

    async def upload_attachment(
        self,
        actor: Actor,
        assessment_id: str,
        response_id: str,
        *,
        filename: str,
        content: bytes,
        mime_type: str,
    ) -> Attachment:
        """Store the file, then record it. The file is removed again if the transaction rolls back."""
        assessment = await self._authorize_edit(actor, assessment_id)
        result = await self.db.execute(
            select(Response).where(Response.id == response_id, Response.assessment_id == assessment.id)
        )
        response = result.scalar_one_or_none()
        if not response:
            raise NotFoundError("Response", response_id)

        if mime_type not in settings.allowed_attachment_types:
            raise ValidationError(f"File type '{mime_type}' is not allowed", {"file": "type"})
        if not content:
            raise ValidationError("File is empty", {"file": "empty"})
        if len(content) > settings.max_attachment_bytes:
            raise ValidationError(
                f"File exceeds the {settings.max_attachment_bytes} byte limit",
                {"file": "size"},
            )

        suffix = PurePosixPath(filename).suffix.lower()[:10]
        stored_filename = f"{new_id()}{suffix}"
        path = f"{assessment.id}/{stored_filename}"

        # Plain values only; rollback expires ORM state
        owning_id = assessment.id

        async def remove_stored_file() -> None:
            await self.storage.delete(path)
            logger.warning("attachment_file_compensated", assessment_id=owning_id, path=path)

        await self.storage.store(path, content)
        defer(self.db, on_rollback=remove_stored_file)

        attachment = Attachment(
            response_id=response.id,
            original_filename=filename,
            stored_filename=stored_filename,
            path=path,
            size=len(content),
            mime_type=mime_type,
            uploaded_by=actor.user_id,
        )
        self.db.add(attachment)
        await self.db.flush()
        await self.db.refresh(attachment)
        await commit(self.db)

        logger.info("attachment_uploaded", assessment_id=assessment.id, attachment_id=attachment.id)
        return attachment

    async def delete_attachment(self, actor: Actor, assessment_id: str, attachment_id: str) -> None:
        assessment = await self._authorize_edit(actor, assessment_id)
        result = await self.db.execute(
            select(Attachment)
            .join(Response, Response.id == Attachment.response_id)
            .where(Attachment.id == attachment_id, Response.assessment_id == assessment.id)
        )
        attachment = result.scalar_one_or_none()
        if not attachment:
            raise NotFoundError("Attachment", attachment_id)

        defer(self.db, on_commit=partial(self.storage.delete, attachment.path))
        await self.db.delete(attachment)
        await commit(self.db)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _completeness_errors(self, assessment: Assessment) -> dict[str, str]:
        responses = (
            await self.db.execute(select(Response).where(Response.assessment_id == assessment.id))
        ).scalars().all()
        if not responses:
            return {"responses": "At least one indicator must be answered"}
        if assessment.template_id is None:
            return {}

        errors: dict[str, str] = {}
        tree = await self.rubric.load_tree(assessment.template_id, active_only=True)
        by_indicator = {r.indicator_id: r for r in responses}

        unanswered = [i.code for i in tree.indicators() if i.id not in by_indicator]
        if unanswered:
            errors["indicators"] = "Unanswered: " + ", ".join(unanswered)

        result = await self.db.execute(
            select(Attachment.response_id, func.count(Attachment.id))
            .join(Response, Response.id == Attachment.response_id)
            .where(Response.assessment_id == assessment.id)
            .group_by(Attachment.response_id)
        )
        attachment_counts: dict[str, int] = {row[0]: row[1] for row in result.all()}
        missing_files = [
            i.code
            for i in tree.indicators()
            if i.requires_attachment
            and i.id in by_indicator
            and not attachment_counts.get(by_indicator[i.id].id)
        ]
        if missing_files:
            errors["attachments"] = "Attachment required: " + ", ".join(missing_files)

        result = await self.db.execute(
            select(EssayResponse.essay_question_id, EssayResponse.answer_text).where(
                EssayResponse.assessment_id == assessment.id
            )
        )
        answers: dict[str, str] = {row[0]: row[1] for row in result.all()}
        missing_essays: list[str] = []
        too_long: list[str] = []
        for essay in tree.essay_questions():
            answer = answers.get(essay.id, "")
            if essay.is_required and not count_words(answer):
                missing_essays.append(essay.code)
            elif answer and not validate_word_count(essay, answer):
                too_long.append(essay.code)
        if missing_essays:
            errors["essays"] = "Unanswered: " + ", ".join(missing_essays)
        if too_long:
            errors["essay_length"] = "Over the word limit: " + ", ".join(too_long)
        return errors

    async def submit_assessment(self, actor: Actor, assessment_id: str) -> Assessment:
        assessment, scope = await self._authorize(actor, Event.SUBMIT, assessment_id)

        errors = await self._completeness_errors(assessment)
        if errors:
            raise ValidationError("Assessment is incomplete", errors)

        summary = await calculate_total_score(self.db, assessment)
        target = TRANSITIONS[Event.SUBMIT].target
        await self._compare_and_set(
            assessment,
            AssessmentStatus.DRAFT,
            {"status": target.value, "submitted_at": utcnow()},  # type: ignore[union-attr]
        )
        await audit.append(
            self.db,
            assessment.id,
            actor,
            NoteType.SUBMISSION,
            f"Assessment submitted with score {summary.total_score:g}/{summary.max_score:g} "
            f"({summary.percentage:g}%, grade {summary.grade})",
        )
        await commit(self.db)
        await self._after_transition(actor, assessment, scope, assessment.status)
        return assessment

    async def approve_assessment(self, actor: Actor, assessment_id: str, notes: str | None = None) -> Assessment:
        assessment, scope = await self._authorize(actor, Event.APPROVE, assessment_id)

        notes = (notes or "").strip()
        if len(notes) < settings.approval_notes_min_length:
            raise ValidationError(
                f"Approval notes must be at least {settings.approval_notes_min_length} characters",
                {"notes": "too_short"},
            )

        now = utcnow()
        target = approval_target(settings.reviewer_stage_enabled)
        values: dict[str, Any] = {
            "status": target.value,
            "admin_kampus_approved_by": actor.user_id,
            "admin_kampus_approved_at": now,
            "admin_kampus_approval_notes": notes or None,
        }
        if target is AssessmentStatus.REVIEWED:
            values["reviewed_by"] = actor.user_id
            values["reviewed_at"] = now

        await self._compare_and_set(assessment, AssessmentStatus.SUBMITTED, values)
        await audit.append(
            self.db,
            assessment.id,
            actor,
            NoteType.APPROVAL,
            notes or "Assessment approved by the institution",
        )
        await commit(self.db)
        await self._after_transition(actor, assessment, scope, target.value)
        return assessment

    async def request_revision(self, actor: Actor, assessment_id: str, notes: str) -> Assessment:
        """Send a submitted assessment back to its owner as a draft."""
        assessment, scope = await self._authorize(actor, Event.REQUEST_REVISION, assessment_id)

        notes = (notes or "").strip()
        if len(notes) < settings.revision_notes_min_length:
            raise ValidationError(
                f"Revision notes must be at least {settings.revision_notes_min_length} characters",
                {"notes": "too_short"},
            )

        await self._compare_and_set(
            assessment,
            AssessmentStatus.SUBMITTED,
            {
                "status": AssessmentStatus.DRAFT.value,
                "submitted_at": None,
                "admin_kampus_approved_by": actor.user_id,
                "admin_kampus_approved_at": utcnow(),
                "admin_kampus_approval_notes": notes,
            },
        )
        await audit.append(self.db, assessment.id, actor, NoteType.REJECTION, notes)
        await commit(self.db)
        await self._after_transition(actor, assessment, scope, AssessmentStatus.DRAFT.value)
        return assessment

    async def assign_reviewer(
        self,
        actor: Actor,
        assessment_id: str,
        reviewer_id: str,
        notes: str | None = None,
    ) -> Assessment:
        assessment, scope = await self._authorize(actor, Event.ASSIGN_REVIEWER, assessment_id)

        result = await self.db.execute(select(User).where(User.id == reviewer_id))
        reviewer = result.scalar_one_or_none()
        if not reviewer:
            raise NotFoundError("Reviewer", reviewer_id)
        if reviewer.role != Role.REVIEWER.value:
            raise ValidationError("Assigned user does not have the reviewer role", {"reviewer_id": reviewer_id})
        if not reviewer.is_active:
            raise ValidationError("Reviewer account is inactive", {"reviewer_id": reviewer_id})
        if assessment.reviewer_id is not None:
            raise StateConflictError("Assessment already has a reviewer assigned")

        notes = (notes or "").strip() or None
        await self._compare_and_set(
            assessment,
            AssessmentStatus.ADMIN_APPROVED,
            {
                "status": AssessmentStatus.ASSIGNED.value,
                "reviewer_id": reviewer.id,
                "assigned_by": actor.user_id,
                "assigned_at": utcnow(),
                "assignment_notes": notes,
            },
            Assessment.reviewer_id.is_(None),
        )
        content = f"Reviewer {reviewer.name} assigned"
        if notes:
            content = f"{content}: {notes}"
        await audit.append(self.db, assessment.id, actor, NoteType.ASSIGNMENT, content)
        await commit(self.db)
        await self._after_transition(actor, assessment, scope, AssessmentStatus.ASSIGNED.value)
        return assessment

    async def remove_reviewer(self, actor: Actor, assessment_id: str, reason: str | None = None) -> Assessment:
        assessment, scope = await self._authorize(actor, Event.REMOVE_REVIEWER, assessment_id)

        await self._compare_and_set(
            assessment,
            scope.status,
            {
                "status": AssessmentStatus.ADMIN_APPROVED.value,
                "reviewer_id": None,
                "assigned_by": None,
                "assigned_at": None,
                "assignment_notes": None,
            },
        )
        content = "Reviewer removed"
        reason = (reason or "").strip()
        if reason:
            content = f"{content}: {reason}"
        await audit.append(self.db, assessment.id, actor, NoteType.UNASSIGNMENT, content)
        await commit(self.db)
        await self._after_transition(actor, assessment, scope, AssessmentStatus.ADMIN_APPROVED.value)
        return assessment

    async def start_review(self, actor: Actor, assessment_id: str) -> Assessment:
        assessment, scope = await self._authorize(actor, Event.START_REVIEW, assessment_id)
        await self._compare_and_set(
            assessment,
            AssessmentStatus.ASSIGNED,
            {"status": AssessmentStatus.IN_REVIEW.value},
        )
        await audit.append(self.db, assessment.id, actor, NoteType.REVIEW, "Review started")
        await commit(self.db)
        await self._after_transition(actor, assessment, scope, AssessmentStatus.IN_REVIEW.value)
        return assessment

    async def complete_review(self, actor: Actor, assessment_id: str, notes: str) -> Assessment:
        assessment, scope = await self._authorize(actor, Event.COMPLETE_REVIEW, assessment_id)

        notes = (notes or "").strip()
        if not notes:
            raise ValidationError("Review notes are required", {"notes": "required"})

        await self._compare_and_set(
            assessment,
            AssessmentStatus.IN_REVIEW,
            {
                "status": AssessmentStatus.REVIEWED.value,
                "reviewed_by": actor.user_id,
                "reviewed_at": utcnow(),
            },
        )
        await audit.append(self.db, assessment.id, actor, NoteType.REVIEW, notes)
        await commit(self.db)
        await self._after_transition(actor, assessment, scope, AssessmentStatus.REVIEWED.value)
        return assessment

    async def delete_assessment(self, actor: Actor, assessment_id: str) -> None:
        """Tombstone a draft and remove everything recorded under it, stored files included."""
        assessment, scope = await self._authorize(actor, Event.DELETE, assessment_id)

        response_ids = select(Response.id).where(Response.assessment_id == assessment.id)
        result = await self.db.execute(select(Attachment.path).where(Attachment.response_id.in_(response_ids)))
        paths = list(result.scalars().all())

        await self._compare_and_set(assessment, AssessmentStatus.DRAFT, {"deleted_at": utcnow()})

        dependents = [
            delete(Attachment).where(Attachment.response_id.in_(response_ids)),
            delete(Response).where(Response.assessment_id == assessment.id),
            delete(EssayResponse).where(EssayResponse.assessment_id == assessment.id),
            delete(Issue).where(Issue.assessment_id == assessment.id),
            delete(Note).where(Note.assessment_id == assessment.id),
        ]
        for statement in dependents:
            await self.db.execute(statement.execution_options(synchronize_session=False))
        for path in paths:
            defer(self.db, on_commit=partial(self.storage.delete, path))

        await commit(self.db)
        await self._after_transition(actor, assessment, scope, DELETED)
        logger.info("assessment_deleted", assessment_id=assessment.id, files_removed=len(paths))
