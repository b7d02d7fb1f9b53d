from fastapi import APIRouter, Depends, File, Query, UploadFile

from accreditation.api.deps import get_assessment_service
from accreditation.core.authorization import Actor
from accreditation.core.security import get_actor
from accreditation.schemas.assessment import (
    AssessmentCreate,
    AssessmentListResponse,
    AssessmentResponse,
    AttachmentResponse,
    EssayResponseResponse,
    EssayResponseUpsert,
    IssueCreate,
    IssueReorder,
    IssueResponse,
    IssueUpdate,
    NoteResponse,
    ResponseResponse,
    ResponseUpsert,
    ReviewCompletion,
    ReviewerAssignment,
    ReviewerRemoval,
    RevisionRequest,
    ScoreResponse,
    TransitionNotes,
)
from accreditation.schemas.common import AssessmentStatus
from accreditation.scoring.engine import GRADE_LABELS
from accreditation.services.assessment_service import AssessmentService

router = APIRouter(prefix="/assessments", tags=["assessments"])


@router.get("", response_model=AssessmentListResponse)
async def list_assessments(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    status: AssessmentStatus | None = None,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentListResponse:
    total, assessments = await service.list_assessments(actor, status=status, offset=offset, limit=limit)
    items = [AssessmentResponse.model_validate(a) for a in assessments]
    return AssessmentListResponse(total=total, offset=offset, limit=limit, items=items)


@router.post("", response_model=AssessmentResponse, status_code=201)
async def create_assessment(
    body: AssessmentCreate,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.create_assessment(
        actor,
        body.journal_id,
        template_id=body.template_id,
        assessment_date=body.assessment_date,
        period=body.period,
        notes=body.notes,
    )
    return AssessmentResponse.model_validate(assessment)


@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.get_assessment(actor, assessment_id)
    return AssessmentResponse.model_validate(assessment)


@router.delete("/{assessment_id}", status_code=204)
async def delete_assessment(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> None:
    """Drafts only. Removes responses, files, issues and notes along with it."""
    await service.delete_assessment(actor, assessment_id)


# -- Draft editing ---------------------------------------------------------


@router.get("/{assessment_id}/responses", response_model=list[ResponseResponse])
async def list_responses(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> list[ResponseResponse]:
    responses = await service.list_responses(actor, assessment_id)
    return [ResponseResponse.model_validate(r) for r in responses]


@router.put("/{assessment_id}/responses/{indicator_id}", response_model=ResponseResponse)
async def save_response(
    assessment_id: str,
    indicator_id: str,
    body: ResponseUpsert,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> ResponseResponse:
    response = await service.save_response(actor, assessment_id, indicator_id, **body.model_dump())
    return ResponseResponse.model_validate(response)


@router.get("/{assessment_id}/essays", response_model=list[EssayResponseResponse])
async def list_essay_responses(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> list[EssayResponseResponse]:
    essays = await service.list_essay_responses(actor, assessment_id)
    return [EssayResponseResponse.model_validate(e) for e in essays]


@router.put("/{assessment_id}/essays/{essay_question_id}", response_model=EssayResponseResponse)
async def save_essay_response(
    assessment_id: str,
    essay_question_id: str,
    body: EssayResponseUpsert,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> EssayResponseResponse:
    essay = await service.save_essay_response(actor, assessment_id, essay_question_id, body.answer_text)
    return EssayResponseResponse.model_validate(essay)


@router.get("/{assessment_id}/issues", response_model=list[IssueResponse])
async def list_issues(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> list[IssueResponse]:
    issues = await service.list_issues(actor, assessment_id)
    return [IssueResponse.model_validate(i) for i in issues]


@router.post("/{assessment_id}/issues", response_model=IssueResponse, status_code=201)
async def add_issue(
    assessment_id: str,
    body: IssueCreate,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> IssueResponse:
    issue = await service.add_issue(actor, assessment_id, **body.model_dump())
    return IssueResponse.model_validate(issue)


@router.put("/{assessment_id}/issues/order", response_model=list[IssueResponse])
async def reorder_issues(
    assessment_id: str,
    body: IssueReorder,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> list[IssueResponse]:
    issues = await service.reorder_issues(actor, assessment_id, body.issue_ids)
    return [IssueResponse.model_validate(i) for i in issues]


@router.patch("/{assessment_id}/issues/{issue_id}", response_model=IssueResponse)
async def update_issue(
    assessment_id: str,
    issue_id: str,
    body: IssueUpdate,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> IssueResponse:
    issue = await service.update_issue(actor, assessment_id, issue_id, **body.model_dump(exclude_unset=True))
    return IssueResponse.model_validate(issue)


@router.delete("/{assessment_id}/issues/{issue_id}", status_code=204)
async def delete_issue(
    assessment_id: str,
    issue_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> None:
    await service.delete_issue(actor, assessment_id, issue_id)


@router.get("/{assessment_id}/attachments", response_model=list[AttachmentResponse])
async def list_attachments(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> list[AttachmentResponse]:
    attachments = await service.list_attachments(actor, assessment_id)
    return [AttachmentResponse.model_validate(a) for a in attachments]


@router.post(
    "/{assessment_id}/responses/{response_id}/attachments",
    response_model=AttachmentResponse,
    status_code=201,
)
async def upload_attachment(
    assessment_id: str,
    response_id: str,
    file: UploadFile = File(...),
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AttachmentResponse:
    content = await file.read()
    attachment = await service.upload_attachment(
        actor,
        assessment_id,
        response_id,
        filename=file.filename or "attachment",
        content=content,
        mime_type=file.content_type or "application/octet-stream",
    )
    return AttachmentResponse.model_validate(attachment)


@router.delete("/{assessment_id}/attachments/{attachment_id}", status_code=204)
async def delete_attachment(
    assessment_id: str,
    attachment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> None:
    await service.delete_attachment(actor, assessment_id, attachment_id)


# -- Lifecycle -------------------------------------------------------------


@router.post("/{assessment_id}/submit", response_model=AssessmentResponse)
async def submit_assessment(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.submit_assessment(actor, assessment_id)
    return AssessmentResponse.model_validate(assessment)


@router.post("/{assessment_id}/approve", response_model=AssessmentResponse)
async def approve_assessment(
    assessment_id: str,
    body: TransitionNotes,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.approve_assessment(actor, assessment_id, body.notes)
    return AssessmentResponse.model_validate(assessment)


@router.post("/{assessment_id}/request-revision", response_model=AssessmentResponse)
async def request_revision(
    assessment_id: str,
    body: RevisionRequest,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.request_revision(actor, assessment_id, body.notes)
    return AssessmentResponse.model_validate(assessment)


@router.post("/{assessment_id}/assign-reviewer", response_model=AssessmentResponse)
async def assign_reviewer(
    assessment_id: str,
    body: ReviewerAssignment,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.assign_reviewer(actor, assessment_id, body.reviewer_id, body.notes)
    return AssessmentResponse.model_validate(assessment)


@router.post("/{assessment_id}/remove-reviewer", response_model=AssessmentResponse)
async def remove_reviewer(
    assessment_id: str,
    body: ReviewerRemoval,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.remove_reviewer(actor, assessment_id, body.reason)
    return AssessmentResponse.model_validate(assessment)


@router.post("/{assessment_id}/start-review", response_model=AssessmentResponse)
async def start_review(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.start_review(actor, assessment_id)
    return AssessmentResponse.model_validate(assessment)


@router.post("/{assessment_id}/complete-review", response_model=AssessmentResponse)
async def complete_review(
    assessment_id: str,
    body: ReviewCompletion,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> AssessmentResponse:
    assessment = await service.complete_review(actor, assessment_id, body.notes)
    return AssessmentResponse.model_validate(assessment)


@router.get("/{assessment_id}/notes", response_model=list[NoteResponse])
async def list_notes(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> list[NoteResponse]:
    """Audit trail, oldest first."""
    notes = await service.list_notes(actor, assessment_id)
    return [NoteResponse.model_validate(n) for n in notes]


@router.post("/{assessment_id}/score", response_model=ScoreResponse)
async def compute_score(
    assessment_id: str,
    service: AssessmentService = Depends(get_assessment_service),
    actor: Actor = Depends(get_actor),
) -> ScoreResponse:
    summary = await service.compute_score(actor, assessment_id)
    return ScoreResponse(**summary.as_dict(), grade_label=GRADE_LABELS[summary.grade])
