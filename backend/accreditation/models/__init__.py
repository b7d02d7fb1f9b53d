from accreditation.models.assessment import (
    Assessment,
    Attachment,
    EssayResponse,
    Issue,
    Note,
    Response,
)
from accreditation.models.base import Base
from accreditation.models.rubric import Category, EssayQuestion, Indicator, SubCategory, Template
from accreditation.models.user import Journal, University, User

__all__ = [
    "Base",
    "University",
    "User",
    "Journal",
    "Template",
    "Category",
    "SubCategory",
    "Indicator",
    "EssayQuestion",
    "Assessment",
    "Response",
    "EssayResponse",
    "Attachment",
    "Issue",
    "Note",
]
