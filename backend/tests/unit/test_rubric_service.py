"""Tests for rubric authoring, cloning and structural queries."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from accreditation.core.exceptions import AuthorizationError, NotFoundError, StateConflictError, ValidationError
from accreditation.models import Category, EssayQuestion, Indicator, Response, SubCategory, Template
from accreditation.pipeline.topics import TEMPLATE_CLONED
from accreditation.rubric.addressing import HierarchicalAddress, LegacyAddress
from accreditation.rubric.service import RubricService
from accreditation.schemas.common import AnswerType, TemplateType


@pytest.fixture
def rubric(db_session) -> RubricService:
    return RubricService(db_session)


class TestCloneTemplate:

    @pytest.mark.asyncio
    async def test_clone_has_same_counts_and_disjoint_ids(self, rubric, world, actors) -> None:
        clone = await rubric.clone_template(actors.super_admin, world.template.id, "Akreditasi 2025")

        source_tree = await rubric.load_tree(world.template.id)
        clone_tree = await rubric.load_tree(clone.id)

        assert len(clone_tree.categories) == len(source_tree.categories) == 2
        assert [len(c.sub_categories) for c in clone_tree.categories] == [1, 1]
        assert len(clone_tree.indicators()) == len(source_tree.indicators()) == 4
        assert len(clone_tree.essay_questions()) == 1

        def ids(tree) -> set[str]:
            found = {tree.template.id}
            for c in tree.categories:
                found.add(c.category.id)
                found.update(s.sub_category.id for s in c.sub_categories)
                found.update(e.id for e in c.essay_questions)
            found.update(i.id for i in tree.indicators())
            return found

        assert ids(source_tree).isdisjoint(ids(clone_tree))

    @pytest.mark.asyncio
    async def test_clone_is_inactive_and_preserves_fields(self, rubric, world, actors) -> None:
        clone = await rubric.clone_template(actors.super_admin, world.template.id, "Akreditasi 2025")
        tree = await rubric.load_tree(clone.id)

        assert clone.is_active is False
        assert clone.name == "Akreditasi 2025"
        assert clone.type == world.template.type
        assert [c.category.weight for c in tree.categories] == [60, 40]
        assert [(i.code, i.weight, i.answer_type, i.sort_order) for i in tree.indicators()] == [
            ("I1", 5, "boolean", 1),
            ("I2", 5, "boolean", 2),
            ("I3", 10, "scale", 3),
            ("I4", 5, "text", 1),
        ]
        assert tree.indicators()[-1].is_active is False

    @pytest.mark.asyncio
    async def test_default_clone_name(self, rubric, world, actors) -> None:
        clone = await rubric.clone_template(actors.super_admin, world.template.id)
        assert clone.name == "Akreditasi 2024 - Copy"

    @pytest.mark.asyncio
    async def test_source_is_untouched(self, rubric, world, actors, db_session) -> None:
        before = (await db_session.execute(select(func.count(Category.id)).where(
            Category.template_id == world.template.id
        ))).scalar_one()

        await rubric.clone_template(actors.super_admin, world.template.id)

        after = (await db_session.execute(select(func.count(Category.id)).where(
            Category.template_id == world.template.id
        ))).scalar_one()
        assert before == after == 2
        assert world.template.is_active is True

    @pytest.mark.asyncio
    async def test_soft_deleted_children_are_not_copied(self, rubric, world, actors) -> None:
        world.essay.soft_delete()
        clone = await rubric.clone_template(actors.super_admin, world.template.id)
        tree = await rubric.load_tree(clone.id)
        assert tree.essay_questions() == []

    @pytest.mark.asyncio
    async def test_only_super_admin_may_clone(self, rubric, world, actors) -> None:
        with pytest.raises(AuthorizationError):
            await rubric.clone_template(actors.coordinator, world.template.id)


class TestDeletion:

    @pytest.mark.asyncio
    async def test_only_active_template_of_type_cannot_be_deleted(self, rubric, world, actors) -> None:
        assert await rubric.can_be_deleted(world.template) is False
        with pytest.raises(StateConflictError):
            await rubric.delete_template(actors.super_admin, world.template.id)

    @pytest.mark.asyncio
    async def test_deletable_once_another_active_template_exists(self, rubric, world, actors) -> None:
        clone = await rubric.clone_template(actors.super_admin, world.template.id)
        await rubric.set_active(actors.super_admin, clone.id, True)

        assert await rubric.can_be_deleted(world.template) is True
        await rubric.delete_template(actors.super_admin, world.template.id)

        with pytest.raises(NotFoundError):
            await rubric.get_template(world.template.id)

    @pytest.mark.asyncio
    async def test_inactive_template_can_be_deleted(self, rubric, world, actors) -> None:
        clone = await rubric.clone_template(actors.super_admin, world.template.id)
        assert await rubric.can_be_deleted(clone) is True

    @pytest.mark.asyncio
    async def test_other_types_do_not_count(self, rubric, world, actors) -> None:
        await rubric.create_template(actors.super_admin, name="Indeksasi", type=TemplateType.INDEKSASI)
        assert await rubric.can_be_deleted(world.template) is False


class TestWeights:

    @pytest.mark.asyncio
    async def test_total_weight_sums_live_categories(self, rubric, world) -> None:
        assert await rubric.get_total_weight(world.template.id) == 100.0

        world.category_b.soft_delete()
        assert await rubric.get_total_weight(world.template.id) == 60.0

    @pytest.mark.asyncio
    async def test_weight_report_balanced(self, rubric, world) -> None:
        report = await rubric.weight_report(world.template.id)
        assert report.is_balanced is True
        assert report.warning is None

    @pytest.mark.asyncio
    async def test_weight_report_warns_without_blocking(self, rubric, world, actors) -> None:
        await rubric.create_category(actors.super_admin, world.template.id, code="C", name="Extra", weight=15)

        report = await rubric.weight_report(world.template.id)
        assert report.total_weight == 115.0
        assert report.is_balanced is False
        assert "115" in report.warning


class TestStructure:

    @pytest.mark.asyncio
    async def test_get_template_for_hierarchical_indicator(self, rubric, world) -> None:
        template = await rubric.get_template_for_indicator(world.i1)
        assert template is not None
        assert template.id == world.template.id

    @pytest.mark.asyncio
    async def test_get_template_for_legacy_indicator_is_none(self, rubric, actors) -> None:
        legacy = await rubric.create_indicator(
            actors.super_admin,
            LegacyAddress("Editorial", "Ethics"),
            code="L1",
            question="Ethics statement published?",
            weight=5,
            answer_type=AnswerType.BOOLEAN,
        )
        assert await rubric.get_template_for_indicator(legacy) is None

    @pytest.mark.asyncio
    async def test_create_hierarchical_indicator_needs_live_sub_category(self, rubric, actors) -> None:
        with pytest.raises(NotFoundError):
            await rubric.create_indicator(
                actors.super_admin,
                HierarchicalAddress("00000000-0000-7000-8000-000000000000"),
                code="X",
                question="?",
                weight=1,
                answer_type=AnswerType.TEXT,
            )

    @pytest.mark.asyncio
    async def test_move_sub_category_within_template(self, rubric, world, actors) -> None:
        moved = await rubric.move_sub_category(actors.super_admin, world.sub_b1.id, world.category_a.id)
        assert moved.category_id == world.category_a.id

    @pytest.mark.asyncio
    async def test_move_sub_category_across_templates_is_rejected(self, rubric, world, actors) -> None:
        clone = await rubric.clone_template(actors.super_admin, world.template.id)
        clone_tree = await rubric.load_tree(clone.id)

        with pytest.raises(ValidationError):
            await rubric.move_sub_category(
                actors.super_admin, world.sub_a1.id, clone_tree.categories[0].category.id
            )
        assert world.sub_a1.category_id == world.category_a.id

    @pytest.mark.asyncio
    async def test_template_statistics(self, rubric, world) -> None:
        assert await rubric.template_statistics(world.template.id) == {
            "categories": 2,
            "sub_categories": 2,
            "indicators": 4,
            "active_indicators": 3,
            "essay_questions": 1,
        }

    @pytest.mark.asyncio
    async def test_list_legacy_categories(self, rubric, actors) -> None:
        for code, label in [("L1", "Management"), ("L2", "Editorial"), ("L3", "Editorial")]:
            await rubric.create_indicator(
                actors.super_admin,
                LegacyAddress(label),
                code=code,
                question="?",
                weight=1,
                answer_type=AnswerType.BOOLEAN,
            )
        assert await rubric.list_legacy_categories() == ["Editorial", "Management"]

    @pytest.mark.asyncio
    async def test_active_only_tree_skips_inactive_indicators(self, rubric, world) -> None:
        tree = await rubric.load_tree(world.template.id, active_only=True)
        assert [i.code for i in tree.indicators()] == ["I1", "I2", "I3"]


class TestAuthoring:

    @pytest.mark.asyncio
    async def test_full_hierarchy_can_be_authored(self, rubric, actors, db_session) -> None:
        admin = actors.super_admin
        template = await rubric.create_template(admin, name="Indeksasi 2025", type=TemplateType.INDEKSASI)
        category = await rubric.create_category(admin, template.id, code="A", name="Visibility", weight=100)
        sub = await rubric.create_sub_category(admin, category.id, code="A1", name="Indexing")
        indicator = await rubric.create_indicator(
            admin,
            HierarchicalAddress(sub.id),
            code="A1.1",
            question="Indexed by DOAJ?",
            weight=10,
            answer_type=AnswerType.BOOLEAN,
            requires_attachment=True,
        )
        essay = await rubric.create_essay_question(admin, category.id, code="E1", question="Strategy?", max_words=200)

        assert indicator.sub_category_id == sub.id
        assert indicator.requires_attachment is True
        assert essay.max_words == 200
        counts = await rubric.template_statistics(template.id)
        assert counts["indicators"] == 1

        total = (await db_session.execute(select(func.count(Template.id)))).scalar_one()
        assert total == 2

    @pytest.mark.asyncio
    async def test_authoring_requires_super_admin(self, rubric, actors) -> None:
        with pytest.raises(AuthorizationError):
            await rubric.create_template(actors.admin, name="Nope", type=TemplateType.AKREDITASI)

    @pytest.mark.asyncio
    async def test_category_weight_out_of_range(self, rubric, world, actors) -> None:
        with pytest.raises(ValidationError):
            await rubric.create_category(actors.super_admin, world.template.id, code="X", name="X", weight=120)

    @pytest.mark.asyncio
    async def test_essay_needs_positive_word_limit(self, rubric, world, actors) -> None:
        with pytest.raises(ValidationError):
            await rubric.create_essay_question(
                actors.super_admin, world.category_a.id, code="E9", question="?", max_words=0
            )

    @pytest.mark.asyncio
    async def test_list_templates_filters(self, rubric, world, actors) -> None:
        await rubric.clone_template(actors.super_admin, world.template.id)

        total, items = await rubric.list_templates(is_active=True)
        assert total == 1
        assert items[0].id == world.template.id

        total, _ = await rubric.list_templates(type=TemplateType.AKREDITASI)
        assert total == 2


class TestClonePersistence:

    @pytest.mark.asyncio
    async def test_clone_rows_are_persisted(self, rubric, world, actors, db_session) -> None:
        await rubric.clone_template(actors.super_admin, world.template.id)
        counts = [
            (await db_session.execute(select(func.count(model.id)))).scalar_one()
            for model in (Category, SubCategory, Indicator, EssayQuestion)
        ]
        assert counts == [4, 4, 8, 2]

    @pytest.mark.asyncio
    async def test_clone_is_published(self, db_session, world, actors) -> None:
        publisher = MagicMock()
        rubric = RubricService(db_session, publisher=publisher)

        clone = await rubric.clone_template(actors.super_admin, world.template.id)

        topic, envelope = publisher.produce.call_args.args
        assert topic == TEMPLATE_CLONED
        assert envelope.payload["source_template_id"] == world.template.id
        assert envelope.payload["template_id"] == clone.id
        assert publisher.produce.call_args.kwargs["key"] == clone.id


class TestEditing:

    @pytest.mark.asyncio
    async def test_update_template(self, rubric, world, actors) -> None:
        template = await rubric.update_template(
            actors.super_admin, world.template.id, name="Akreditasi 2024 (rev)", version="2024.2"
        )
        assert (template.name, template.version) == ("Akreditasi 2024 (rev)", "2024.2")
        assert template.is_active is True

    @pytest.mark.asyncio
    async def test_update_category_weight(self, rubric, world, actors) -> None:
        category = await rubric.update_category(actors.super_admin, world.category_b.id, weight=30, name="Board")

        assert (category.name, category.weight) == ("Board", 30)
        assert await rubric.get_total_weight(world.template.id) == 90

    @pytest.mark.asyncio
    async def test_update_category_weight_out_of_range(self, rubric, world, actors) -> None:
        with pytest.raises(ValidationError):
            await rubric.update_category(actors.super_admin, world.category_b.id, weight=101)
        assert world.category_b.weight == 40

    @pytest.mark.asyncio
    async def test_parent_link_is_not_editable(self, rubric, world, actors) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await rubric.update_category(actors.super_admin, world.category_b.id, template_id="elsewhere")
        assert exc_info.value.errors == {"template_id": "not_editable"}

    @pytest.mark.asyncio
    async def test_indicator_addressing_is_not_editable(self, rubric, world, actors) -> None:
        with pytest.raises(ValidationError):
            await rubric.update_indicator(actors.super_admin, world.i1.id, legacy_category="Editorial")

    @pytest.mark.asyncio
    async def test_update_indicator_and_essay(self, rubric, world, actors) -> None:
        indicator = await rubric.update_indicator(
            actors.super_admin, world.i4.id, is_active=True, answer_type=AnswerType.SCALE
        )
        essay = await rubric.update_essay_question(actors.super_admin, world.essay.id, max_words=250)

        assert (indicator.is_active, indicator.answer_type) == (True, "scale")
        assert essay.max_words == 250
        with pytest.raises(ValidationError):
            await rubric.update_essay_question(actors.super_admin, world.essay.id, max_words=0)

    @pytest.mark.asyncio
    async def test_editing_requires_super_admin(self, rubric, world, actors) -> None:
        with pytest.raises(AuthorizationError):
            await rubric.update_category(actors.admin, world.category_a.id, name="Mine")
        with pytest.raises(AuthorizationError):
            await rubric.toggle_essay_question(actors.coordinator, world.essay.id)


class TestRemoval:

    @pytest.mark.asyncio
    async def test_category_is_tombstoned(self, rubric, world, actors) -> None:
        await rubric.delete_category(actors.super_admin, world.category_b.id)

        assert world.category_b.deleted_at is not None
        tree = await rubric.load_tree(world.template.id)
        assert [c.category.code for c in tree.categories] == ["A"]
        with pytest.raises(NotFoundError):
            await rubric.get_category(world.category_b.id)

    @pytest.mark.asyncio
    async def test_category_answered_after_draft_is_kept(self, rubric, world, actors, submitted_id) -> None:
        with pytest.raises(StateConflictError):
            await rubric.delete_category(actors.super_admin, world.category_a.id)
        assert world.category_a.deleted_at is None

    @pytest.mark.asyncio
    async def test_category_answered_only_on_drafts_can_go(self, rubric, world, actors, draft_id) -> None:
        await rubric.delete_category(actors.super_admin, world.category_a.id)
        assert world.category_a.deleted_at is not None

    @pytest.mark.asyncio
    async def test_sub_category_removal(self, rubric, world, actors, submitted_id) -> None:
        with pytest.raises(StateConflictError):
            await rubric.delete_sub_category(actors.super_admin, world.sub_a1.id)

        await rubric.delete_sub_category(actors.super_admin, world.sub_b1.id)

        tree = await rubric.load_tree(world.template.id)
        assert [len(c.sub_categories) for c in tree.categories] == [1, 0]

    @pytest.mark.asyncio
    async def test_answered_indicator_cannot_be_deleted(self, rubric, world, actors, draft_id) -> None:
        with pytest.raises(StateConflictError):
            await rubric.delete_indicator(actors.super_admin, world.i1.id)

    @pytest.mark.asyncio
    async def test_unanswered_indicator_is_deleted(self, rubric, world, actors, draft_id, db_session) -> None:
        indicator_id = world.i4.id

        await rubric.delete_indicator(actors.super_admin, indicator_id)

        count = (
            await db_session.execute(select(func.count(Indicator.id)).where(Indicator.id == indicator_id))
        ).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_essay_toggle_and_delete(self, rubric, world, actors) -> None:
        toggled = await rubric.toggle_essay_question(actors.super_admin, world.essay.id)
        assert toggled.is_active is False
        toggled = await rubric.toggle_essay_question(actors.super_admin, world.essay.id)
        assert toggled.is_active is True

        await rubric.delete_essay_question(actors.super_admin, world.essay.id)

        tree = await rubric.load_tree(world.template.id)
        assert tree.essay_questions() == []


class TestOrdering:

    @pytest.mark.asyncio
    async def test_reorder_indicators(self, rubric, world, actors) -> None:
        ordered = await rubric.reorder_indicators(
            actors.super_admin, world.sub_a1.id, [world.i3.id, world.i1.id, world.i2.id]
        )

        assert [(i.code, i.sort_order) for i in ordered] == [("I3", 1), ("I1", 2), ("I2", 3)]
        tree = await rubric.load_tree(world.template.id)
        assert [i.code for i in tree.categories[0].sub_categories[0].indicators] == ["I3", "I1", "I2"]

    @pytest.mark.asyncio
    async def test_reorder_categories(self, rubric, world, actors) -> None:
        await rubric.reorder_categories(
            actors.super_admin, world.template.id, [world.category_b.id, world.category_a.id]
        )

        tree = await rubric.load_tree(world.template.id)
        assert [c.category.code for c in tree.categories] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_reorder_essay_questions(self, rubric, world, actors) -> None:
        second = await rubric.create_essay_question(
            actors.super_admin, world.category_b.id, code="E2", question="Describe your audience", display_order=5
        )

        ordered = await rubric.reorder_essay_questions(
            actors.super_admin, world.category_b.id, [second.id, world.essay.id]
        )

        assert [(e.code, e.display_order) for e in ordered] == [("E2", 1), ("E1", 2)]

    @pytest.mark.asyncio
    async def test_ids_must_belong_to_the_parent(self, rubric, world, actors) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await rubric.reorder_indicators(actors.super_admin, world.sub_a1.id, [world.i4.id, world.i1.id])
        assert exc_info.value.errors == {"ids": world.i4.id}

        with pytest.raises(ValidationError):
            await rubric.reorder_categories(
                actors.super_admin, world.template.id, [world.category_a.id, world.category_a.id]
            )
        assert [world.category_a.display_order, world.category_b.display_order] == [1, 2]


class TestMigration:

    @pytest.mark.asyncio
    async def test_legacy_indicator_keeps_its_answers(self, rubric, service, world, actors, db_session) -> None:
        legacy = await rubric.create_indicator(
            actors.super_admin,
            LegacyAddress("Editorial", "Peer review"),
            code="L1",
            question="Reviewers listed on the website?",
            weight=2,
            answer_type=AnswerType.BOOLEAN,
        )
        assessment = await service.create_assessment(actors.owner, world.journal.id)
        await service.save_response(actors.owner, assessment.id, legacy.id, answer_boolean=True)

        migrated = await rubric.migrate_indicator(actors.super_admin, legacy.id, world.sub_a1.id)

        assert migrated.address == HierarchicalAddress(world.sub_a1.id)
        assert (migrated.legacy_category, migrated.legacy_sub_category) == (None, None)
        answers = (
            await db_session.execute(select(func.count(Response.id)).where(Response.indicator_id == legacy.id))
        ).scalar_one()
        assert answers == 1
        assert await rubric.list_legacy_categories() == []
        template = await rubric.get_template_for_indicator(migrated)
        assert template is not None
        assert template.id == world.template.id

    @pytest.mark.asyncio
    async def test_hierarchical_indicator_is_rejected(self, rubric, world, actors) -> None:
        with pytest.raises(StateConflictError):
            await rubric.migrate_indicator(actors.super_admin, world.i1.id, world.sub_b1.id)
        assert world.i1.sub_category_id == world.sub_a1.id

    @pytest.mark.asyncio
    async def test_target_sub_category_must_exist(self, rubric, actors) -> None:
        legacy = await rubric.create_indicator(
            actors.super_admin,
            LegacyAddress("Management"),
            code="L2",
            question="?",
            weight=1,
            answer_type=AnswerType.BOOLEAN,
        )

        with pytest.raises(NotFoundError):
            await rubric.migrate_indicator(actors.super_admin, legacy.id, "00000000-0000-7000-8000-000000000000")
        assert legacy.address == LegacyAddress("Management")
