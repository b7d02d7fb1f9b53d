"""Initial schema: tenants, rubric hierarchy, assessments and audit notes.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def _deleted_at() -> sa.Column:
    return sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True)


def upgrade() -> None:
    # Tenants, users and journals (rows owned by the institution-management system)
    op.create_table(
        "universities",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_universities"),
        sa.UniqueConstraint("code", name="uq_universities_code"),
    )

    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(30), server_default="user"),
        sa.Column("university_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.ForeignKeyConstraint(
            ["university_id"], ["universities.id"],
            name="fk_users_university_id_universities",
        ),
    )
    op.create_index("ix_users_university_id", "users", ["university_id"])

    op.create_table(
        "journals",
        _id(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("issn", sa.String(20), nullable=True),
        sa.Column("university_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_journals"),
        sa.ForeignKeyConstraint(
            ["university_id"], ["universities.id"],
            name="fk_journals_university_id_universities",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_journals_user_id_users"),
    )
    op.create_index("ix_journals_university_id", "journals", ["university_id"])
    op.create_index("ix_journals_user_id", "journals", ["user_id"])

    # Rubric hierarchy
    op.create_table(
        "accreditation_templates",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("version", sa.String(50), nullable=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("effective_date", sa.Date(), nullable=True),
        _created_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id", name="pk_accreditation_templates"),
    )
    op.create_index("ix_accreditation_templates_type", "accreditation_templates", ["type"])

    op.create_table(
        "evaluation_categories",
        _id(),
        sa.Column("template_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id", name="pk_evaluation_categories"),
        sa.ForeignKeyConstraint(
            ["template_id"], ["accreditation_templates.id"],
            name="fk_evaluation_categories_template_id_accreditation_templates",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_evaluation_categories_template_id", "evaluation_categories", ["template_id"])

    op.create_table(
        "evaluation_sub_categories",
        _id(),
        sa.Column("category_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id", name="pk_evaluation_sub_categories"),
        sa.ForeignKeyConstraint(
            ["category_id"], ["evaluation_categories.id"],
            name="fk_evaluation_sub_categories_category_id_evaluation_categories",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_evaluation_sub_categories_category_id", "evaluation_sub_categories", ["category_id"])

    op.create_table(
        "evaluation_indicators",
        _id(),
        sa.Column("sub_category_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("legacy_category", sa.String(100), nullable=True),
        sa.Column("legacy_sub_category", sa.String(100), nullable=True),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("answer_type", sa.String(20), nullable=False),
        sa.Column("requires_attachment", sa.Boolean(), server_default=sa.text("false")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_evaluation_indicators"),
        sa.ForeignKeyConstraint(
            ["sub_category_id"], ["evaluation_sub_categories.id"],
            name="fk_evaluation_indicators_sub_category_id_evaluation_sub_categories",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "(sub_category_id IS NOT NULL AND legacy_category IS NULL AND legacy_sub_category IS NULL)"
            " OR (sub_category_id IS NULL AND legacy_category IS NOT NULL)",
            name="ck_evaluation_indicators_addressing",
        ),
    )
    op.create_index("ix_evaluation_indicators_sub_category_id", "evaluation_indicators", ["sub_category_id"])

    op.create_table(
        "essay_questions",
        _id(),
        sa.Column("category_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("guidance", sa.Text(), nullable=True),
        sa.Column("max_words", sa.Integer(), nullable=False, server_default="500"),
        sa.Column("is_required", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id", name="pk_essay_questions"),
        sa.ForeignKeyConstraint(
            ["category_id"], ["evaluation_categories.id"],
            name="fk_essay_questions_category_id_evaluation_categories",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_essay_questions_category_id", "essay_questions", ["category_id"])

    # Assessments
    op.create_table(
        "journal_assessments",
        _id(),
        sa.Column("journal_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("template_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="draft"),
        sa.Column("assessment_date", sa.Date(), nullable=True),
        sa.Column("period", sa.String(20), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("max_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("grade", sa.String(2), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("admin_kampus_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_kampus_approved_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("admin_kampus_approval_notes", sa.Text(), nullable=True),
        sa.Column("reviewer_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("assigned_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assignment_notes", sa.Text(), nullable=True),
        _created_at(),
        _deleted_at(),
        sa.PrimaryKeyConstraint("id", name="pk_journal_assessments"),
        sa.ForeignKeyConstraint(["journal_id"], ["journals.id"], name="fk_journal_assessments_journal_id_journals"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_journal_assessments_user_id_users"),
        sa.ForeignKeyConstraint(
            ["template_id"], ["accreditation_templates.id"],
            name="fk_journal_assessments_template_id_accreditation_templates",
        ),
        sa.ForeignKeyConstraint(["reviewed_by"], ["users.id"], name="fk_journal_assessments_reviewed_by_users"),
        sa.ForeignKeyConstraint(
            ["admin_kampus_approved_by"], ["users.id"],
            name="fk_journal_assessments_admin_kampus_approved_by_users",
        ),
        sa.ForeignKeyConstraint(["reviewer_id"], ["users.id"], name="fk_journal_assessments_reviewer_id_users"),
        sa.ForeignKeyConstraint(["assigned_by"], ["users.id"], name="fk_journal_assessments_assigned_by_users"),
    )
    op.create_index("ix_journal_assessments_journal_id", "journal_assessments", ["journal_id"])
    op.create_index("ix_journal_assessments_user_id", "journal_assessments", ["user_id"])
    op.create_index("ix_journal_assessments_status", "journal_assessments", ["status"])
    op.create_index("ix_journal_assessments_reviewer_id", "journal_assessments", ["reviewer_id"])

    op.create_table(
        "assessment_responses",
        _id(),
        sa.Column("assessment_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("indicator_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("answer_boolean", sa.Boolean(), nullable=True),
        sa.Column("answer_scale", sa.Integer(), nullable=True),
        sa.Column("answer_text", sa.Text(), nullable=True),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_assessment_responses"),
        sa.ForeignKeyConstraint(
            ["assessment_id"], ["journal_assessments.id"],
            name="fk_assessment_responses_assessment_id_journal_assessments",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["indicator_id"], ["evaluation_indicators.id"],
            name="fk_assessment_responses_indicator_id_evaluation_indicators",
        ),
        sa.UniqueConstraint("assessment_id", "indicator_id", name="uq_assessment_responses_indicator"),
    )
    op.create_index("ix_assessment_responses_assessment_id", "assessment_responses", ["assessment_id"])

    op.create_table(
        "assessment_essay_responses",
        _id(),
        sa.Column("assessment_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("essay_question_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("answer_text", sa.Text(), nullable=False, server_default=""),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_assessment_essay_responses"),
        sa.ForeignKeyConstraint(
            ["assessment_id"], ["journal_assessments.id"],
            name="fk_assessment_essay_responses_assessment_id_journal_assessments",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["essay_question_id"], ["essay_questions.id"],
            name="fk_assessment_essay_responses_essay_question_id_essay_questions",
        ),
        sa.UniqueConstraint(
            "assessment_id", "essay_question_id",
            name="uq_assessment_essay_responses_question",
        ),
    )
    op.create_index(
        "ix_assessment_essay_responses_assessment_id", "assessment_essay_responses", ["assessment_id"]
    )

    op.create_table(
        "assessment_attachments",
        _id(),
        sa.Column("response_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("original_filename", sa.String(255), nullable=False),
        sa.Column("stored_filename", sa.String(255), nullable=False),
        sa.Column("path", sa.String(500), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("uploaded_by", postgresql.UUID(as_uuid=False), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_assessment_attachments"),
        sa.ForeignKeyConstraint(
            ["response_id"], ["assessment_responses.id"],
            name="fk_assessment_attachments_response_id_assessment_responses",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"], name="fk_assessment_attachments_uploaded_by_users"),
    )
    op.create_index("ix_assessment_attachments_response_id", "assessment_attachments", ["response_id"])

    op.create_table(
        "assessment_issues",
        _id(),
        sa.Column("assessment_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("priority", sa.String(10), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_assessment_issues"),
        sa.ForeignKeyConstraint(
            ["assessment_id"], ["journal_assessments.id"],
            name="fk_assessment_issues_assessment_id_journal_assessments",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_assessment_issues_assessment_id", "assessment_issues", ["assessment_id"])

    # Audit trail (append-only)
    op.create_table(
        "assessment_notes",
        _id(),
        sa.Column("assessment_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("author_role", sa.String(50), nullable=False),
        sa.Column("note_type", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_assessment_notes"),
        sa.ForeignKeyConstraint(
            ["assessment_id"], ["journal_assessments.id"],
            name="fk_assessment_notes_assessment_id_journal_assessments",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_assessment_notes_user_id_users"),
    )
    op.create_index(
        "ix_assessment_notes_assessment_created", "assessment_notes", ["assessment_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_table("assessment_notes")
    op.drop_table("assessment_issues")
    op.drop_table("assessment_attachments")
    op.drop_table("assessment_essay_responses")
    op.drop_table("assessment_responses")
    op.drop_table("journal_assessments")
    op.drop_table("essay_questions")
    op.drop_table("evaluation_indicators")
    op.drop_table("evaluation_sub_categories")
    op.drop_table("evaluation_categories")
    op.drop_table("accreditation_templates")
    op.drop_table("journals")
    op.drop_table("users")
    op.drop_table("universities")
