from fastapi import APIRouter, Depends, Query

from accreditation.api.deps import get_rubric_service
from accreditation.core.authorization import Actor
from accreditation.core.security import get_actor
from accreditation.rubric.addressing import HierarchicalAddress, IndicatorAddress, LegacyAddress
from accreditation.rubric.service import RubricService, TemplateTree
from accreditation.schemas.common import TemplateType
from accreditation.schemas.rubric import (
    CategoryCreate,
    CategoryResponse,
    CategoryTree,
    CategoryUpdate,
    EssayQuestionCreate,
    EssayQuestionResponse,
    EssayQuestionUpdate,
    IndicatorCreate,
    IndicatorMigration,
    IndicatorResponse,
    IndicatorUpdate,
    RubricOrder,
    SubCategoryCreate,
    SubCategoryMove,
    SubCategoryResponse,
    SubCategoryTree,
    SubCategoryUpdate,
    TemplateActivation,
    TemplateClone,
    TemplateCreate,
    TemplateListResponse,
    TemplateResponse,
    TemplateStatisticsResponse,
    TemplateTreeResponse,
    TemplateUpdate,
    WeightReportResponse,
)

router = APIRouter(prefix="/templates", tags=["templates"])


def _tree_response(tree: TemplateTree) -> TemplateTreeResponse:
    categories = [
        CategoryTree(
            **CategoryResponse.model_validate(node.category).model_dump(),
            sub_categories=[
                SubCategoryTree(
                    **SubCategoryResponse.model_validate(sub.sub_category).model_dump(),
                    indicators=[IndicatorResponse.model_validate(i) for i in sub.indicators],
                )
                for sub in node.sub_categories
            ],
            essay_questions=[EssayQuestionResponse.model_validate(e) for e in node.essay_questions],
        )
        for node in tree.categories
    ]
    return TemplateTreeResponse(
        **TemplateResponse.model_validate(tree.template).model_dump(),
        categories=categories,
    )


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    type: TemplateType | None = None,
    is_active: bool | None = None,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> TemplateListResponse:
    total, templates = await service.list_templates(
        type=type,
        is_active=is_active,
        offset=offset,
        limit=limit,
    )
    items = [TemplateResponse.model_validate(t) for t in templates]
    return TemplateListResponse(total=total, offset=offset, limit=limit, items=items)


@router.post("", response_model=TemplateResponse, status_code=201)
async def create_template(
    body: TemplateCreate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> TemplateResponse:
    template = await service.create_template(actor, **body.model_dump())
    return TemplateResponse.model_validate(template)


@router.get("/legacy-categories", response_model=list[str])
async def list_legacy_categories(
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> list[str]:
    """Category labels of indicators that predate the template hierarchy."""
    return await service.list_legacy_categories()


@router.post("/indicators", response_model=IndicatorResponse, status_code=201)
async def create_indicator(
    body: IndicatorCreate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> IndicatorResponse:
    address: IndicatorAddress
    if body.sub_category_id is not None:
        address = HierarchicalAddress(body.sub_category_id)
    else:
        address = LegacyAddress(body.legacy_category or "", body.legacy_sub_category)

    fields = body.model_dump(exclude={"sub_category_id", "legacy_category", "legacy_sub_category"})
    indicator = await service.create_indicator(actor, address, **fields)
    return IndicatorResponse.model_validate(indicator)


@router.get("/{template_id}", response_model=TemplateTreeResponse)
async def get_template(
    template_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> TemplateTreeResponse:
    tree = await service.load_tree(template_id)
    return _tree_response(tree)


@router.patch("/{template_id}/activation", response_model=TemplateResponse)
async def set_template_activation(
    template_id: str,
    body: TemplateActivation,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> TemplateResponse:
    template = await service.set_active(actor, template_id, body.is_active)
    return TemplateResponse.model_validate(template)


@router.delete("/{template_id}", status_code=204)
async def delete_template(
    template_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> None:
    await service.delete_template(actor, template_id)


@router.post("/{template_id}/clone", response_model=TemplateResponse, status_code=201)
async def clone_template(
    template_id: str,
    body: TemplateClone,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> TemplateResponse:
    """Copy the whole rubric into a new, inactive template."""
    clone = await service.clone_template(actor, template_id, body.name)
    return TemplateResponse.model_validate(clone)


@router.get("/{template_id}/weight-report", response_model=WeightReportResponse)
async def get_weight_report(
    template_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> WeightReportResponse:
    report = await service.weight_report(template_id)
    return WeightReportResponse.model_validate(report)


@router.get("/{template_id}/statistics", response_model=TemplateStatisticsResponse)
async def get_template_statistics(
    template_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> TemplateStatisticsResponse:
    counts = await service.template_statistics(template_id)
    template = await service.get_template(template_id)
    return TemplateStatisticsResponse(**counts, can_be_deleted=await service.can_be_deleted(template))


@router.post("/{template_id}/categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    template_id: str,
    body: CategoryCreate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> CategoryResponse:
    category = await service.create_category(actor, template_id, **body.model_dump())
    return CategoryResponse.model_validate(category)


@router.post("/categories/{category_id}/sub-categories", response_model=SubCategoryResponse, status_code=201)
async def create_sub_category(
    category_id: str,
    body: SubCategoryCreate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> SubCategoryResponse:
    sub_category = await service.create_sub_category(actor, category_id, **body.model_dump())
    return SubCategoryResponse.model_validate(sub_category)


@router.post("/categories/{category_id}/essay-questions", response_model=EssayQuestionResponse, status_code=201)
async def create_essay_question(
    category_id: str,
    body: EssayQuestionCreate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> EssayQuestionResponse:
    essay = await service.create_essay_question(actor, category_id, **body.model_dump())
    return EssayQuestionResponse.model_validate(essay)


@router.post("/sub-categories/{sub_category_id}/move", response_model=SubCategoryResponse)
async def move_sub_category(
    sub_category_id: str,
    body: SubCategoryMove,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> SubCategoryResponse:
    sub_category = await service.move_sub_category(actor, sub_category_id, body.category_id)
    return SubCategoryResponse.model_validate(sub_category)


@router.patch("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> TemplateResponse:
    template = await service.update_template(actor, template_id, **body.model_dump(exclude_none=True))
    return TemplateResponse.model_validate(template)


@router.put("/{template_id}/categories/order", response_model=list[CategoryResponse])
async def reorder_categories(
    template_id: str,
    body: RubricOrder,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> list[CategoryResponse]:
    categories = await service.reorder_categories(actor, template_id, body.ids)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    body: CategoryUpdate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> CategoryResponse:
    category = await service.update_category(actor, category_id, **body.model_dump(exclude_none=True))
    return CategoryResponse.model_validate(category)


@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(
    category_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> None:
    await service.delete_category(actor, category_id)


@router.put("/categories/{category_id}/sub-categories/order", response_model=list[SubCategoryResponse])
async def reorder_sub_categories(
    category_id: str,
    body: RubricOrder,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> list[SubCategoryResponse]:
    sub_categories = await service.reorder_sub_categories(actor, category_id, body.ids)
    return [SubCategoryResponse.model_validate(s) for s in sub_categories]


@router.put("/categories/{category_id}/essay-questions/order", response_model=list[EssayQuestionResponse])
async def reorder_essay_questions(
    category_id: str,
    body: RubricOrder,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> list[EssayQuestionResponse]:
    essays = await service.reorder_essay_questions(actor, category_id, body.ids)
    return [EssayQuestionResponse.model_validate(e) for e in essays]


@router.patch("/sub-categories/{sub_category_id}", response_model=SubCategoryResponse)
async def update_sub_category(
    sub_category_id: str,
    body: SubCategoryUpdate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> SubCategoryResponse:
    sub_category = await service.update_sub_category(actor, sub_category_id, **body.model_dump(exclude_none=True))
    return SubCategoryResponse.model_validate(sub_category)


@router.delete("/sub-categories/{sub_category_id}", status_code=204)
async def delete_sub_category(
    sub_category_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> None:
    await service.delete_sub_category(actor, sub_category_id)


@router.put("/sub-categories/{sub_category_id}/indicators/order", response_model=list[IndicatorResponse])
async def reorder_indicators(
    sub_category_id: str,
    body: RubricOrder,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> list[IndicatorResponse]:
    indicators = await service.reorder_indicators(actor, sub_category_id, body.ids)
    return [IndicatorResponse.model_validate(i) for i in indicators]


@router.patch("/indicators/{indicator_id}", response_model=IndicatorResponse)
async def update_indicator(
    indicator_id: str,
    body: IndicatorUpdate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> IndicatorResponse:
    indicator = await service.update_indicator(actor, indicator_id, **body.model_dump(exclude_none=True))
    return IndicatorResponse.model_validate(indicator)


@router.delete("/indicators/{indicator_id}", status_code=204)
async def delete_indicator(
    indicator_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> None:
    await service.delete_indicator(actor, indicator_id)


@router.post("/indicators/{indicator_id}/migrate", response_model=IndicatorResponse)
async def migrate_indicator(
    indicator_id: str,
    body: IndicatorMigration,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> IndicatorResponse:
    """Attach a legacy indicator to a sub-category, keeping its recorded answers."""
    indicator = await service.migrate_indicator(actor, indicator_id, body.sub_category_id)
    return IndicatorResponse.model_validate(indicator)


@router.patch("/essay-questions/{essay_question_id}", response_model=EssayQuestionResponse)
async def update_essay_question(
    essay_question_id: str,
    body: EssayQuestionUpdate,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> EssayQuestionResponse:
    essay = await service.update_essay_question(actor, essay_question_id, **body.model_dump(exclude_none=True))
    return EssayQuestionResponse.model_validate(essay)


@router.post("/essay-questions/{essay_question_id}/toggle", response_model=EssayQuestionResponse)
async def toggle_essay_question(
    essay_question_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> EssayQuestionResponse:
    essay = await service.toggle_essay_question(actor, essay_question_id)
    return EssayQuestionResponse.model_validate(essay)


@router.delete("/essay-questions/{essay_question_id}", status_code=204)
async def delete_essay_question(
    essay_question_id: str,
    service: RubricService = Depends(get_rubric_service),
    actor: Actor = Depends(get_actor),
) -> None:
    await service.delete_essay_question(actor, essay_question_id)
