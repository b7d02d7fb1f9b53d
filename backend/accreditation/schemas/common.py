from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN_KAMPUS = "admin_kampus"
    COORDINATOR = "coordinator"
    REVIEWER = "reviewer"
    USER = "user"


class TemplateType(str, Enum):
    AKREDITASI = "akreditasi"
    INDEKSASI = "indeksasi"


class AnswerType(str, Enum):
    BOOLEAN = "boolean"
    SCALE = "scale"
    TEXT = "text"


class AssessmentStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    ADMIN_APPROVED = "admin_approved"
    ASSIGNED = "assigned"
    IN_REVIEW = "in_review"
    REVIEWED = "reviewed"


class NoteType(str, Enum):
    SUBMISSION = "submission"
    APPROVAL = "approval"
    REJECTION = "rejection"
    ASSIGNMENT = "assignment"
    UNASSIGNMENT = "unassignment"
    REVIEW = "review"
    GENERAL = "general"


class IssueCategory(str, Enum):
    EDITORIAL = "editorial"
    TECHNICAL = "technical"
    CONTENT_QUALITY = "content_quality"
    MANAGEMENT = "management"


class IssuePriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
