from datetime import date, datetime

from pydantic import BaseModel, Field

from accreditation.schemas.common import AssessmentStatus, IssueCategory, IssuePriority


class AssessmentCreate(BaseModel):
    journal_id: str
    template_id: str | None = None
    assessment_date: date | None = None
    period: str | None = Field(default=None, max_length=20)
    notes: str | None = None


class AssessmentResponse(BaseModel):
    id: str
    journal_id: str
    user_id: str
    template_id: str | None
    status: AssessmentStatus
    assessment_date: date | None
    period: str | None
    notes: str | None
    total_score: float
    max_score: float
    percentage: float
    grade: str | None
    submitted_at: datetime | None
    admin_kampus_approved_at: datetime | None
    admin_kampus_approved_by: str | None
    admin_kampus_approval_notes: str | None
    reviewer_id: str | None
    assigned_by: str | None
    assigned_at: datetime | None
    assignment_notes: str | None
    reviewed_at: datetime | None
    reviewed_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AssessmentListResponse(BaseModel):
    total: int
    offset: int
    limit: int
    items: list[AssessmentResponse]


class ResponseUpsert(BaseModel):
    answer_boolean: bool | None = None
    answer_scale: int | None = None
    answer_text: str | None = None
    notes: str | None = None


class ResponseResponse(BaseModel):
    id: str
    assessment_id: str
    indicator_id: str
    answer_boolean: bool | None
    answer_scale: int | None
    answer_text: str | None
    score: float
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class EssayResponseUpsert(BaseModel):
    answer_text: str


class EssayResponseResponse(BaseModel):
    id: str
    assessment_id: str
    essay_question_id: str
    answer_text: str
    created_at: datetime

    model_config = {"from_attributes": True}


class IssueCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    category: IssueCategory
    priority: IssuePriority


class IssueUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    category: IssueCategory | None = None
    priority: IssuePriority | None = None


class IssueReorder(BaseModel):
    issue_ids: list[str]


class IssueResponse(BaseModel):
    id: str
    assessment_id: str
    title: str
    description: str
    category: IssueCategory
    priority: IssuePriority
    display_order: int
    created_at: datetime

    model_config = {"from_attributes": True}


class AttachmentResponse(BaseModel):
    id: str
    response_id: str
    original_filename: str
    size: int
    mime_type: str
    uploaded_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class NoteResponse(BaseModel):
    id: str
    assessment_id: str
    user_id: str
    author_role: str
    note_type: str
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ScoreResponse(BaseModel):
    total_score: float
    max_score: float
    percentage: float
    grade: str
    grade_label: str


class TransitionNotes(BaseModel):
    notes: str | None = None


class RevisionRequest(BaseModel):
    notes: str


class ReviewerAssignment(BaseModel):
    reviewer_id: str
    notes: str | None = None


class ReviewerRemoval(BaseModel):
    reason: str | None = None


class ReviewCompletion(BaseModel):
    notes: str


class DashboardStatistics(BaseModel):
    total: int
    by_status: dict[str, int]
    average_percentage: float
    average_grade: str | None
