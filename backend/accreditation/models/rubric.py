from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Date, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accreditation.models.base import Base, SoftDeleteMixin
from accreditation.rubric.addressing import (
    HierarchicalAddress,
    IndicatorAddress,
    LegacyAddress,
    address_columns,
    address_from_columns,
)


class Template(SoftDeleteMixin, Base):
    __tablename__ = "accreditation_templates"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    version: Mapped[str | None] = mapped_column(String(50))
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    effective_date: Mapped[date | None] = mapped_column(Date)

    # Relationships
    categories: Mapped[list[Category]] = relationship(
        back_populates="template",
        order_by="Category.display_order",
    )


class Category(SoftDeleteMixin, Base):
    __tablename__ = "evaluation_categories"

    template_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("accreditation_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # Share of the template total, 0-100
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    template: Mapped[Template] = relationship(back_populates="categories")
    sub_categories: Mapped[list[SubCategory]] = relationship(
        back_populates="category",
        order_by="SubCategory.display_order",
    )
    essay_questions: Mapped[list[EssayQuestion]] = relationship(
        back_populates="category",
        order_by="EssayQuestion.display_order",
    )


class SubCategory(SoftDeleteMixin, Base):
    __tablename__ = "evaluation_sub_categories"

    category_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("evaluation_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    category: Mapped[Category] = relationship(back_populates="sub_categories")
    indicators: Mapped[list[Indicator]] = relationship(
        back_populates="sub_category",
        order_by="Indicator.sort_order",
    )


class Indicator(Base):
    __tablename__ = "evaluation_indicators"
    __table_args__ = (
        CheckConstraint(
            "(sub_category_id IS NOT NULL AND legacy_category IS NULL AND legacy_sub_category IS NULL)"
            " OR (sub_category_id IS NULL AND legacy_category IS NOT NULL)",
            name="addressing",
        ),
    )

    sub_category_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("evaluation_sub_categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    # Pre-hierarchy free-text labels; only set when sub_category_id is null
    legacy_category: Mapped[str | None] = mapped_column(String(100))
    legacy_sub_category: Mapped[str | None] = mapped_column(String(100))
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    answer_type: Mapped[str] = mapped_column(String(20), nullable=False)
    requires_attachment: Mapped[bool] = mapped_column(Boolean, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    sub_category: Mapped[SubCategory | None] = relationship(back_populates="indicators")

    @classmethod
    def hierarchical(cls, sub_category_id: str, **fields: Any) -> Indicator:
        return cls(**address_columns(HierarchicalAddress(sub_category_id)), **fields)

    @classmethod
    def legacy(cls, category_label: str, sub_category_label: str | None = None, **fields: Any) -> Indicator:
        return cls(**address_columns(LegacyAddress(category_label, sub_category_label)), **fields)

    @property
    def address(self) -> IndicatorAddress:
        return address_from_columns(self.sub_category_id, self.legacy_category, self.legacy_sub_category)

    @property
    def is_legacy(self) -> bool:
        return isinstance(self.address, LegacyAddress)


class EssayQuestion(SoftDeleteMixin, Base):
    __tablename__ = "essay_questions"

    category_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("evaluation_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    guidance: Mapped[str | None] = mapped_column(Text)
    max_words: Mapped[int] = mapped_column(Integer, nullable=False, default=500)
    is_required: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    category: Mapped[Category] = relationship(back_populates="essay_questions")
