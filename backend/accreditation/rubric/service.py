"""Rubric authoring and structural queries.

Templates own categories, categories own sub-categories and essay
questions, sub-categories own indicators. Only live (not soft-deleted)
rows take part in any query here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from accreditation.core.authorization import Actor, require_role
from accreditation.core.exceptions import NotFoundError, StateConflictError, ValidationError
from accreditation.db.session import commit
from accreditation.models.assessment import Assessment, Response
from accreditation.models.rubric import Category, EssayQuestion, Indicator, SubCategory, Template
from accreditation.pipeline.events import TemplateClonedEvent
from accreditation.pipeline.producer import EventPublisher
from accreditation.pipeline.topics import TEMPLATE_CLONED
from accreditation.rubric.addressing import HierarchicalAddress, IndicatorAddress, LegacyAddress, address_columns
from accreditation.schemas.common import AnswerType, AssessmentStatus, Role, TemplateType

logger = structlog.get_logger()

AUTHOR_ROLES = frozenset({Role.SUPER_ADMIN})
WEIGHT_TARGET = 100.0
WEIGHT_TOLERANCE = 0.01

TEMPLATE_FIELDS = frozenset({"name", "description", "version", "type", "effective_date"})
CATEGORY_FIELDS = frozenset({"code", "name", "description", "weight", "display_order"})
SUB_CATEGORY_FIELDS = frozenset({"code", "name", "description", "display_order"})
INDICATOR_FIELDS = frozenset(
    {"code", "question", "description", "weight", "answer_type", "requires_attachment", "sort_order", "is_active"}
)
ESSAY_FIELDS = frozenset(
    {"code", "question", "guidance", "max_words", "is_required", "is_active", "display_order"}
)


@dataclass
class SubCategoryNode:
    sub_category: SubCategory
    indicators: list[Indicator] = field(default_factory=list)


@dataclass
class CategoryNode:
    category: Category
    sub_categories: list[SubCategoryNode] = field(default_factory=list)
    essay_questions: list[EssayQuestion] = field(default_factory=list)


@dataclass
class TemplateTree:
    template: Template
    categories: list[CategoryNode] = field(default_factory=list)

    def indicators(self) -> list[Indicator]:
        return [i for c in self.categories for s in c.sub_categories for i in s.indicators]

    def essay_questions(self) -> list[EssayQuestion]:
        return [e for c in self.categories for e in c.essay_questions]


@dataclass
class WeightReport:
    total_weight: float
    is_balanced: bool
    warning: str | None


class RubricService:
    def __init__(self, db: AsyncSession, publisher: EventPublisher | None = None) -> None:
        self.db = db
        self.publisher = publisher

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_template(self, template_id: str) -> Template:
        result = await self.db.execute(
            select(Template).where(Template.id == template_id, Template.deleted_at.is_(None))
        )
        template = result.scalar_one_or_none()
        if not template:
            raise NotFoundError("Template", template_id)
        return template

    async def get_category(self, category_id: str) -> Category:
        result = await self.db.execute(
            select(Category).where(Category.id == category_id, Category.deleted_at.is_(None))
        )
        category = result.scalar_one_or_none()
        if not category:
            raise NotFoundError("Category", category_id)
        return category

    async def get_sub_category(self, sub_category_id: str) -> SubCategory:
        result = await self.db.execute(
            select(SubCategory).where(
                SubCategory.id == sub_category_id,
                SubCategory.deleted_at.is_(None),
            )
        )
        sub_category = result.scalar_one_or_none()
        if not sub_category:
            raise NotFoundError("SubCategory", sub_category_id)
        return sub_category

    async def get_indicator(self, indicator_id: str) -> Indicator:
        result = await self.db.execute(select(Indicator).where(Indicator.id == indicator_id))
        indicator = result.scalar_one_or_none()
        if not indicator:
            raise NotFoundError("Indicator", indicator_id)
        return indicator

    async def get_essay_question(self, essay_question_id: str) -> EssayQuestion:
        result = await self.db.execute(
            select(EssayQuestion).where(
                EssayQuestion.id == essay_question_id,
                EssayQuestion.deleted_at.is_(None),
            )
        )
        essay = result.scalar_one_or_none()
        if not essay:
            raise NotFoundError("EssayQuestion", essay_question_id)
        return essay

    async def list_templates(
        self,
        *,
        type: TemplateType | None = None,
        is_active: bool | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[Template]]:
        query = select(Template).where(Template.deleted_at.is_(None))
        count_query = select(func.count(Template.id)).where(Template.deleted_at.is_(None))

        if type is not None:
            query = query.where(Template.type == type.value)
            count_query = count_query.where(Template.type == type.value)
        if is_active is not None:
            query = query.where(Template.is_active == is_active)
            count_query = count_query.where(Template.is_active == is_active)

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(
            query.order_by(Template.created_at.desc()).offset(offset).limit(limit)
        )
        return total, list(result.scalars().all())

    async def load_tree(self, template_id: str, *, active_only: bool = False) -> TemplateTree:
        """Load a template with its live categories, sub-categories, indicators and essays.

        With ``active_only`` inactive indicators and essay questions are left out.
        """
        template = await self.get_template(template_id)

        categories = (
            await self.db.execute(
                select(Category)
                .where(Category.template_id == template.id, Category.deleted_at.is_(None))
                .order_by(Category.display_order, Category.created_at)
            )
        ).scalars().all()
        category_ids = [c.id for c in categories]

        sub_categories = (
            await self.db.execute(
                select(SubCategory)
                .where(SubCategory.category_id.in_(category_ids), SubCategory.deleted_at.is_(None))
                .order_by(SubCategory.display_order, SubCategory.created_at)
            )
        ).scalars().all()
        sub_category_ids = [s.id for s in sub_categories]

        indicator_query = (
            select(Indicator)
            .where(Indicator.sub_category_id.in_(sub_category_ids))
            .order_by(Indicator.sort_order, Indicator.created_at)
        )
        essay_query = (
            select(EssayQuestion)
            .where(EssayQuestion.category_id.in_(category_ids), EssayQuestion.deleted_at.is_(None))
            .order_by(EssayQuestion.display_order, EssayQuestion.created_at)
        )
        if active_only:
            indicator_query = indicator_query.where(Indicator.is_active.is_(True))
            essay_query = essay_query.where(EssayQuestion.is_active.is_(True))

        indicators = (await self.db.execute(indicator_query)).scalars().all()
        essays = (await self.db.execute(essay_query)).scalars().all()

        sub_nodes: dict[str, SubCategoryNode] = {s.id: SubCategoryNode(s) for s in sub_categories}
        for indicator in indicators:
            sub_nodes[indicator.sub_category_id].indicators.append(indicator)  # type: ignore[index]

        cat_nodes: dict[str, CategoryNode] = {c.id: CategoryNode(c) for c in categories}
        for sub in sub_categories:
            cat_nodes[sub.category_id].sub_categories.append(sub_nodes[sub.id])
        for essay in essays:
            cat_nodes[essay.category_id].essay_questions.append(essay)

        return TemplateTree(template=template, categories=list(cat_nodes.values()))

    async def get_template_for_indicator(self, indicator: Indicator) -> Template | None:
        """Walk Indicator -> SubCategory -> Category -> Template. None for legacy rows."""
        address = indicator.address
        if isinstance(address, LegacyAddress):
            return None

        result = await self.db.execute(
            select(Template)
            .join(Category, Category.template_id == Template.id)
            .join(SubCategory, SubCategory.category_id == Category.id)
            .where(SubCategory.id == address.sub_category_id)
        )
        return result.scalar_one_or_none()

    async def list_legacy_categories(self) -> list[str]:
        result = await self.db.execute(
            select(Indicator.legacy_category)
            .distinct()
            .where(Indicator.sub_category_id.is_(None), Indicator.is_active.is_(True))
            .order_by(Indicator.legacy_category)
        )
        return [label for label in result.scalars().all() if label]

    # ------------------------------------------------------------------
    # Weights and statistics
    # ------------------------------------------------------------------

    async def get_total_weight(self, template_id: str) -> float:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Category.weight), 0.0)).where(
                Category.template_id == template_id,
                Category.deleted_at.is_(None),
            )
        )
        return round(float(result.scalar_one()), 2)

    async def weight_report(self, template_id: str) -> WeightReport:
        """Category weights should add up to 100; a mismatch is reported, not enforced."""
        await self.get_template(template_id)
        total = await self.get_total_weight(template_id)
        balanced = abs(total - WEIGHT_TARGET) <= WEIGHT_TOLERANCE
        warning = None
        if not balanced:
            warning = f"Category weights total {total:g}, expected {WEIGHT_TARGET:g}"
        return WeightReport(total_weight=total, is_balanced=balanced, warning=warning)

    async def template_statistics(self, template_id: str) -> dict[str, int]:
        tree = await self.load_tree(template_id)
        return {
            "categories": len(tree.categories),
            "sub_categories": sum(len(c.sub_categories) for c in tree.categories),
            "indicators": len(tree.indicators()),
            "active_indicators": sum(1 for i in tree.indicators() if i.is_active),
            "essay_questions": len(tree.essay_questions()),
        }

    # ------------------------------------------------------------------
    # Authoring
    # ------------------------------------------------------------------

    @staticmethod
    def _apply(entity: Any, changes: dict[str, Any], editable: frozenset[str]) -> None:
        unknown = sorted(set(changes) - editable)
        if unknown:
            raise ValidationError(
                "Fields cannot be changed: " + ", ".join(unknown),
                {name: "not_editable" for name in unknown},
            )
        for name, value in changes.items():
            setattr(entity, name, value.value if isinstance(value, Enum) else value)

    async def _reorder(self, query: Select[Any], ids: list[str], attribute: str) -> list[Any]:
        """Number the rows of ``query`` from 1 in the order given by ``ids``."""
        rows = {row.id: row for row in (await self.db.execute(query)).scalars().all()}
        unknown = [i for i in ids if i not in rows]
        repeated = sorted({i for i in ids if ids.count(i) > 1})
        if unknown or repeated:
            raise ValidationError(
                "Order must list items of the same parent once each",
                {"ids": ", ".join(unknown + repeated)},
            )
        for position, row_id in enumerate(ids, start=1):
            setattr(rows[row_id], attribute, position)
        await commit(self.db)
        return [rows[row_id] for row_id in ids]

    async def _answered_past_draft(self, indicator_ids: Select[Any]) -> bool:
        """True when one of the indicators is answered on a live assessment that left draft."""
        result = await self.db.execute(
            select(func.count(Response.id))
            .join(Assessment, Assessment.id == Response.assessment_id)
            .where(
                Response.indicator_id.in_(indicator_ids),
                Assessment.status != AssessmentStatus.DRAFT.value,
                Assessment.deleted_at.is_(None),
            )
        )
        return result.scalar_one() > 0

    async def _warn_on_weight_overflow(self, template_id: str) -> None:
        total = await self.get_total_weight(template_id)
        if total > WEIGHT_TARGET + WEIGHT_TOLERANCE:
            logger.warning("template_weight_exceeded", template_id=template_id, total_weight=total)

    async def create_template(
        self,
        actor: Actor,
        *,
        name: str,
        type: TemplateType,
        description: str | None = None,
        version: str | None = None,
        is_active: bool = True,
        effective_date: Any = None,
    ) -> Template:
        require_role(actor, AUTHOR_ROLES, "author templates")
        template = Template(
            name=name,
            type=type.value,
            description=description,
            version=version,
            is_active=is_active,
            effective_date=effective_date,
        )
        self.db.add(template)
        await self.db.flush()
        await self.db.refresh(template)
        await commit(self.db)
        logger.info("template_created", template_id=template.id, type=template.type)
        return template

    async def update_template(self, actor: Actor, template_id: str, **changes: Any) -> Template:
        require_role(actor, AUTHOR_ROLES, "author templates")
        template = await self.get_template(template_id)
        self._apply(template, changes, TEMPLATE_FIELDS)
        await commit(self.db)
        return template

    async def create_category(
        self,
        actor: Actor,
        template_id: str,
        *,
        code: str,
        name: str,
        weight: float,
        description: str | None = None,
        display_order: int = 0,
    ) -> Category:
        require_role(actor, AUTHOR_ROLES, "author templates")
        template = await self.get_template(template_id)
        if weight < 0 or weight > WEIGHT_TARGET:
            raise ValidationError("Category weight must be between 0 and 100", {"weight": str(weight)})

        category = Category(
            template_id=template.id,
            code=code,
            name=name,
            weight=weight,
            description=description,
            display_order=display_order,
        )
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)
        await commit(self.db)

        await self._warn_on_weight_overflow(template.id)
        return category

    async def update_category(self, actor: Actor, category_id: str, **changes: Any) -> Category:
        require_role(actor, AUTHOR_ROLES, "author templates")
        category = await self.get_category(category_id)
        weight = changes.get("weight")
        if weight is not None and not 0 <= weight <= WEIGHT_TARGET:
            raise ValidationError("Category weight must be between 0 and 100", {"weight": str(weight)})

        self._apply(category, changes, CATEGORY_FIELDS)
        await commit(self.db)
        await self._warn_on_weight_overflow(category.template_id)
        return category

    async def delete_category(self, actor: Actor, category_id: str) -> None:
        """Tombstone a category. Refused once its indicators are answered beyond draft."""
        require_role(actor, AUTHOR_ROLES, "author templates")
        category = await self.get_category(category_id)
        indicator_ids = (
            select(Indicator.id)
            .join(SubCategory, SubCategory.id == Indicator.sub_category_id)
            .where(SubCategory.category_id == category.id)
        )
        if await self._answered_past_draft(indicator_ids):
            raise StateConflictError(
                f"Category '{category.name}' has indicators answered on submitted assessments"
            )

        category.soft_delete()
        await commit(self.db)
        logger.info("category_deleted", category_id=category.id, template_id=category.template_id)

    async def reorder_categories(self, actor: Actor, template_id: str, category_ids: list[str]) -> list[Category]:
        require_role(actor, AUTHOR_ROLES, "author templates")
        template = await self.get_template(template_id)
        query = select(Category).where(Category.template_id == template.id, Category.deleted_at.is_(None))
        return await self._reorder(query, category_ids, "display_order")

    async def create_sub_category(
        self,
        actor: Actor,
        category_id: str,
        *,
        code: str,
        name: str,
        description: str | None = None,
        display_order: int = 0,
    ) -> SubCategory:
        require_role(actor, AUTHOR_ROLES, "author templates")
        category = await self.get_category(category_id)
        sub_category = SubCategory(
            category_id=category.id,
            code=code,
            name=name,
            description=description,
            display_order=display_order,
        )
        self.db.add(sub_category)
        await self.db.flush()
        await self.db.refresh(sub_category)
        await commit(self.db)
        return sub_category

    async def update_sub_category(self, actor: Actor, sub_category_id: str, **changes: Any) -> SubCategory:
        require_role(actor, AUTHOR_ROLES, "author templates")
        sub_category = await self.get_sub_category(sub_category_id)
        self._apply(sub_category, changes, SUB_CATEGORY_FIELDS)
        await commit(self.db)
        return sub_category

    async def delete_sub_category(self, actor: Actor, sub_category_id: str) -> None:
        require_role(actor, AUTHOR_ROLES, "author templates")
        sub_category = await self.get_sub_category(sub_category_id)
        indicator_ids = select(Indicator.id).where(Indicator.sub_category_id == sub_category.id)
        if await self._answered_past_draft(indicator_ids):
            raise StateConflictError(
                f"Sub-category '{sub_category.name}' has indicators answered on submitted assessments"
            )

        sub_category.soft_delete()
        await commit(self.db)
        logger.info("sub_category_deleted", sub_category_id=sub_category.id)

    async def reorder_sub_categories(
        self, actor: Actor, category_id: str, sub_category_ids: list[str]
    ) -> list[SubCategory]:
        require_role(actor, AUTHOR_ROLES, "author templates")
        category = await self.get_category(category_id)
        query = select(SubCategory).where(
            SubCategory.category_id == category.id,
            SubCategory.deleted_at.is_(None),
        )
        return await self._reorder(query, sub_category_ids, "display_order")

    async def move_sub_category(self, actor: Actor, sub_category_id: str, new_category_id: str) -> SubCategory:
        """Re-parent a sub-category. Moves across templates are rejected."""
        require_role(actor, AUTHOR_ROLES, "author templates")
        sub_category = await self.get_sub_category(sub_category_id)
        current = await self.get_category(sub_category.category_id)
        target = await self.get_category(new_category_id)

        if current.template_id != target.template_id:
            raise ValidationError(
                "A sub-category can only move between categories of the same template",
                {"category_id": new_category_id},
            )

        sub_category.category_id = target.id
        await commit(self.db)
        logger.info(
            "sub_category_moved",
            sub_category_id=sub_category.id,
            from_category_id=current.id,
            to_category_id=target.id,
        )
        return sub_category

    async def create_indicator(
        self,
        actor: Actor,
        address: IndicatorAddress,
        *,
        code: str,
        question: str,
        weight: float,
        answer_type: AnswerType,
        description: str | None = None,
        requires_attachment: bool = False,
        sort_order: int = 0,
        is_active: bool = True,
    ) -> Indicator:
        require_role(actor, AUTHOR_ROLES, "author templates")
        if weight < 0:
            raise ValidationError("Indicator weight must not be negative", {"weight": str(weight)})

        fields: dict[str, Any] = {
            "code": code,
            "question": question,
            "weight": weight,
            "answer_type": answer_type.value,
            "description": description,
            "requires_attachment": requires_attachment,
            "sort_order": sort_order,
            "is_active": is_active,
        }
        if isinstance(address, HierarchicalAddress):
            sub_category = await self.get_sub_category(address.sub_category_id)
            indicator = Indicator.hierarchical(sub_category.id, **fields)
        else:
            if not address.category_label.strip():
                raise ValidationError("Legacy indicators need a category label")
            indicator = Indicator.legacy(address.category_label, address.sub_category_label, **fields)

        self.db.add(indicator)
        await self.db.flush()
        await self.db.refresh(indicator)
        await commit(self.db)
        return indicator

    async def update_indicator(self, actor: Actor, indicator_id: str, **changes: Any) -> Indicator:
        """Edit question fields. The addressing columns only change through ``migrate_indicator``."""
        require_role(actor, AUTHOR_ROLES, "author templates")
        indicator = await self.get_indicator(indicator_id)
        weight = changes.get("weight")
        if weight is not None and weight < 0:
            raise ValidationError("Indicator weight must not be negative", {"weight": str(weight)})

        self._apply(indicator, changes, INDICATOR_FIELDS)
        await commit(self.db)
        return indicator

    async def delete_indicator(self, actor: Actor, indicator_id: str) -> None:
        """Remove an indicator nobody has answered; answered ones can only be deactivated."""
        require_role(actor, AUTHOR_ROLES, "author templates")
        indicator = await self.get_indicator(indicator_id)
        result = await self.db.execute(
            select(func.count(Response.id)).where(Response.indicator_id == indicator.id)
        )
        if result.scalar_one():
            raise StateConflictError(f"Indicator '{indicator.code}' has recorded answers, deactivate it instead")

        await self.db.delete(indicator)
        await commit(self.db)
        logger.info("indicator_deleted", indicator_id=indicator_id)

    async def reorder_indicators(self, actor: Actor, sub_category_id: str, indicator_ids: list[str]) -> list[Indicator]:
        require_role(actor, AUTHOR_ROLES, "author templates")
        sub_category = await self.get_sub_category(sub_category_id)
        query = select(Indicator).where(Indicator.sub_category_id == sub_category.id)
        return await self._reorder(query, indicator_ids, "sort_order")

    async def migrate_indicator(self, actor: Actor, indicator_id: str, sub_category_id: str) -> Indicator:
        """Move a legacy indicator into the hierarchy under ``sub_category_id``.

        The row keeps its id, so responses recorded against it stay attached.
        Indicators that already belong to a sub-category are rejected.
        """
        require_role(actor, AUTHOR_ROLES, "author templates")
        indicator = await self.get_indicator(indicator_id)
        address = indicator.address
        if not isinstance(address, LegacyAddress):
            raise StateConflictError(f"Indicator '{indicator.code}' already belongs to a sub-category")
        sub_category = await self.get_sub_category(sub_category_id)

        for column, value in address_columns(HierarchicalAddress(sub_category.id)).items():
            setattr(indicator, column, value)
        await commit(self.db)

        logger.info(
            "indicator_migrated",
            indicator_id=indicator.id,
            sub_category_id=sub_category.id,
            legacy_category=address.category_label,
            legacy_sub_category=address.sub_category_label,
        )
        return indicator

    async def create_essay_question(
        self,
        actor: Actor,
        category_id: str,
        *,
        code: str,
        question: str,
        guidance: str | None = None,
        max_words: int = 500,
        is_required: bool = True,
        is_active: bool = True,
        display_order: int = 0,
    ) -> EssayQuestion:
        require_role(actor, AUTHOR_ROLES, "author templates")
        category = await self.get_category(category_id)
        if max_words < 1:
            raise ValidationError("max_words must be at least 1", {"max_words": str(max_words)})

        essay = EssayQuestion(
            category_id=category.id,
            code=code,
            question=question,
            guidance=guidance,
            max_words=max_words,
            is_required=is_required,
            is_active=is_active,
            display_order=display_order,
        )
        self.db.add(essay)
        await self.db.flush()
        await self.db.refresh(essay)
        await commit(self.db)
        return essay

    async def update_essay_question(self, actor: Actor, essay_question_id: str, **changes: Any) -> EssayQuestion:
        require_role(actor, AUTHOR_ROLES, "author templates")
        essay = await self.get_essay_question(essay_question_id)
        max_words = changes.get("max_words")
        if max_words is not None and max_words < 1:
            raise ValidationError("max_words must be at least 1", {"max_words": str(max_words)})

        self._apply(essay, changes, ESSAY_FIELDS)
        await commit(self.db)
        return essay

    async def toggle_essay_question(self, actor: Actor, essay_question_id: str) -> EssayQuestion:
        require_role(actor, AUTHOR_ROLES, "author templates")
        essay = await self.get_essay_question(essay_question_id)
        essay.is_active = not essay.is_active
        await commit(self.db)
        logger.info("essay_question_toggled", essay_question_id=essay.id, is_active=essay.is_active)
        return essay

    async def delete_essay_question(self, actor: Actor, essay_question_id: str) -> None:
        require_role(actor, AUTHOR_ROLES, "author templates")
        essay = await self.get_essay_question(essay_question_id)
        essay.soft_delete()
        await commit(self.db)
        logger.info("essay_question_deleted", essay_question_id=essay.id)

    async def reorder_essay_questions(
        self, actor: Actor, category_id: str, essay_question_ids: list[str]
    ) -> list[EssayQuestion]:
        require_role(actor, AUTHOR_ROLES, "author templates")
        category = await self.get_category(category_id)
        query = select(EssayQuestion).where(
            EssayQuestion.category_id == category.id,
            EssayQuestion.deleted_at.is_(None),
        )
        return await self._reorder(query, essay_question_ids, "display_order")

    async def set_active(self, actor: Actor, template_id: str, is_active: bool) -> Template:
        require_role(actor, AUTHOR_ROLES, "author templates")
        template = await self.get_template(template_id)
        template.is_active = is_active
        await commit(self.db)
        logger.info("template_activation_changed", template_id=template.id, is_active=is_active)
        return template

    async def can_be_deleted(self, template: Template) -> bool:
        """A template may go unless it is the only active one of its type."""
        if not template.is_active:
            return True
        result = await self.db.execute(
            select(func.count(Template.id)).where(
                Template.type == template.type,
                Template.is_active.is_(True),
                Template.deleted_at.is_(None),
            )
        )
        return result.scalar_one() > 1

    async def delete_template(self, actor: Actor, template_id: str) -> None:
        require_role(actor, AUTHOR_ROLES, "author templates")
        template = await self.get_template(template_id)
        if not await self.can_be_deleted(template):
            raise StateConflictError(
                f"Template '{template.name}' is the only active {template.type} template"
            )
        template.soft_delete()
        await commit(self.db)
        logger.info("template_deleted", template_id=template.id)

    async def clone_template(self, actor: Actor, template_id: str, new_name: str | None = None) -> Template:
        """Deep-copy a template into a new inactive one with fresh identifiers.

        The source template and everything under it is left untouched.
        """
        require_role(actor, AUTHOR_ROLES, "author templates")
        tree = await self.load_tree(template_id)
        source = tree.template

        clone = Template(
            name=new_name or f"{source.name} - Copy",
            description=source.description,
            version=source.version,
            type=source.type,
            is_active=False,
            effective_date=source.effective_date,
        )
        self.db.add(clone)
        await self.db.flush()

        indicator_count = 0
        for cat_node in tree.categories:
            category = cat_node.category
            new_category = Category(
                template_id=clone.id,
                code=category.code,
                name=category.name,
                description=category.description,
                weight=category.weight,
                display_order=category.display_order,
            )
            self.db.add(new_category)
            await self.db.flush()

            for sub_node in cat_node.sub_categories:
                sub = sub_node.sub_category
                new_sub = SubCategory(
                    category_id=new_category.id,
                    code=sub.code,
                    name=sub.name,
                    description=sub.description,
                    display_order=sub.display_order,
                )
                self.db.add(new_sub)
                await self.db.flush()

                for indicator in sub_node.indicators:
                    self.db.add(
                        Indicator.hierarchical(
                            new_sub.id,
                            code=indicator.code,
                            question=indicator.question,
                            description=indicator.description,
                            weight=indicator.weight,
                            answer_type=indicator.answer_type,
                            requires_attachment=indicator.requires_attachment,
                            sort_order=indicator.sort_order,
                            is_active=indicator.is_active,
                        )
                    )
                    indicator_count += 1

            for essay in cat_node.essay_questions:
                self.db.add(
                    EssayQuestion(
                        category_id=new_category.id,
                        code=essay.code,
                        question=essay.question,
                        guidance=essay.guidance,
                        max_words=essay.max_words,
                        is_required=essay.is_required,
                        is_active=essay.is_active,
                        display_order=essay.display_order,
                    )
                )

        await self.db.flush()
        await self.db.refresh(clone)
        await commit(self.db)

        logger.info(
            "template_cloned",
            source_template_id=source.id,
            template_id=clone.id,
            categories=len(tree.categories),
            indicators=indicator_count,
        )

        if self.publisher is not None:
            event = TemplateClonedEvent(
                source_template_id=source.id,
                template_id=clone.id,
                actor_id=actor.user_id,
            )
            try:
                self.publisher.produce(TEMPLATE_CLONED, event.to_envelope(), key=clone.id)
            except Exception as e:
                logger.error("template_event_publish_failed", template_id=clone.id, error=str(e))
        return clone
