from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from accreditation.models.base import Base


class University(Base):
    """Tenant. Rows are owned by the institution-management system."""

    __tablename__ = "universities"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class User(Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(30), default="user")
    university_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("universities.id"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class Journal(Base):
    __tablename__ = "journals"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    issn: Mapped[str | None] = mapped_column(String(20))
    university_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("universities.id"),
        nullable=False,
        index=True,
    )
    # Managing user; the only actor who may open assessments for the journal
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
