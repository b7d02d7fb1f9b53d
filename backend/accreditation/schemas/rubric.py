from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from accreditation.schemas.common import AnswerType, TemplateType


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: TemplateType
    description: str | None = None
    version: str | None = Field(default=None, max_length=50)
    is_active: bool = True
    effective_date: date | None = None


class TemplateActivation(BaseModel):
    is_active: bool


class TemplateClone(BaseModel):
    """Name of the copy; defaults to "<source name> - Copy"."""

    name: str | None = Field(default=None, min_length=1, max_length=255)


class TemplateResponse(BaseModel):
    id: str
    name: str
    description: str | None
    version: str | None
    type: str
    is_active: bool
    effective_date: date | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TemplateListResponse(BaseModel):
    total: int
    offset: int
    limit: int
    items: list[TemplateResponse]


class CategoryCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)
    weight: float = Field(..., ge=0, le=100)
    description: str | None = None
    display_order: int = Field(default=0, ge=0)


class SubCategoryCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    display_order: int = Field(default=0, ge=0)


class SubCategoryMove(BaseModel):
    category_id: str


class IndicatorCreate(BaseModel):
    """Either ``sub_category_id`` or ``legacy_category`` addresses the indicator, never both."""

    sub_category_id: str | None = None
    legacy_category: str | None = Field(default=None, max_length=100)
    legacy_sub_category: str | None = Field(default=None, max_length=100)
    code: str = Field(..., min_length=1, max_length=20)
    question: str = Field(..., min_length=1)
    description: str | None = None
    weight: float = Field(..., ge=0)
    answer_type: AnswerType
    requires_attachment: bool = False
    sort_order: int = Field(default=0, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def check_addressing(self) -> "IndicatorCreate":
        hierarchical = self.sub_category_id is not None
        legacy = self.legacy_category is not None or self.legacy_sub_category is not None
        if hierarchical == legacy:
            raise ValueError("Provide either sub_category_id or legacy_category")
        if legacy and not self.legacy_category:
            raise ValueError("legacy_sub_category requires legacy_category")
        return self


class EssayQuestionCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    question: str = Field(..., min_length=1)
    guidance: str | None = None
    max_words: int = Field(default=500, ge=1)
    is_required: bool = True
    is_active: bool = True
    display_order: int = Field(default=0, ge=0)


class IndicatorResponse(BaseModel):
    id: str
    sub_category_id: str | None
    legacy_category: str | None
    legacy_sub_category: str | None
    code: str
    question: str
    description: str | None
    weight: float
    answer_type: str
    requires_attachment: bool
    sort_order: int
    is_active: bool

    model_config = {"from_attributes": True}


class EssayQuestionResponse(BaseModel):
    id: str
    category_id: str
    code: str
    question: str
    guidance: str | None
    max_words: int
    is_required: bool
    is_active: bool
    display_order: int

    model_config = {"from_attributes": True}


class SubCategoryResponse(BaseModel):
    id: str
    category_id: str
    code: str
    name: str
    description: str | None
    display_order: int

    model_config = {"from_attributes": True}


class CategoryResponse(BaseModel):
    id: str
    template_id: str
    code: str
    name: str
    description: str | None
    weight: float
    display_order: int

    model_config = {"from_attributes": True}


class SubCategoryTree(SubCategoryResponse):
    indicators: list[IndicatorResponse] = []


class CategoryTree(CategoryResponse):
    sub_categories: list[SubCategoryTree] = []
    essay_questions: list[EssayQuestionResponse] = []


class TemplateTreeResponse(TemplateResponse):
    categories: list[CategoryTree] = []


class WeightReportResponse(BaseModel):
    total_weight: float
    is_balanced: bool
    warning: str | None

    model_config = {"from_attributes": True}


class TemplateStatisticsResponse(BaseModel):
    categories: int
    sub_categories: int
    indicators: int
    active_indicators: int
    essay_questions: int
    can_be_deleted: bool


class TemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: TemplateType | None = None
    description: str | None = None
    version: str | None = Field(default=None, max_length=50)
    effective_date: date | None = None


class CategoryUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=20)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    weight: float | None = Field(default=None, ge=0, le=100)
    description: str | None = None
    display_order: int | None = Field(default=None, ge=0)


class SubCategoryUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=20)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    display_order: int | None = Field(default=None, ge=0)


class IndicatorUpdate(BaseModel):
    """Question fields only; legacy indicators join the hierarchy through migration."""

    code: str | None = Field(default=None, min_length=1, max_length=20)
    question: str | None = Field(default=None, min_length=1)
    description: str | None = None
    weight: float | None = Field(default=None, ge=0)
    answer_type: AnswerType | None = None
    requires_attachment: bool | None = None
    sort_order: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class IndicatorMigration(BaseModel):
    sub_category_id: str


class EssayQuestionUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=20)
    question: str | None = Field(default=None, min_length=1)
    guidance: str | None = None
    max_words: int | None = Field(default=None, ge=1)
    is_required: bool | None = None
    is_active: bool | None = None
    display_order: int | None = Field(default=None, ge=0)


class RubricOrder(BaseModel):
    """Ids of one parent's children, first to last."""

    ids: list[str] = Field(..., min_length=1)
