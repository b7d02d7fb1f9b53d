"""Test fixtures for the accreditation engine."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from accreditation.api.deps import get_stats_cache, get_storage
from accreditation.core.authorization import Actor
from accreditation.db.session import get_db, unit_of_work
from accreditation.main import app
from accreditation.models import (
    Category,
    EssayQuestion,
    Indicator,
    Journal,
    SubCategory,
    Template,
    University,
    User,
)
from accreditation.models.base import Base
from accreditation.pipeline.producer import get_event_publisher
from accreditation.schemas.common import Role
from accreditation.services.assessment_service import AssessmentService
from accreditation.storage.files import LocalFileStorage

# One private in-memory database per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "assessments")


def actor_for(user: User) -> Actor:
    return Actor(user_id=user.id, role=Role(user.role), tenant_id=user.university_id)


def headers_for(user: User) -> dict[str, str]:
    headers = {"X-User-Id": user.id, "X-User-Role": user.role}
    if user.university_id:
        headers["X-Tenant-Id"] = user.university_id
    return headers


@dataclass
class World:
    """A tenant pair, one user per role, a journal and a small active rubric.

    Category A (weight 60) / sub-category A1:
        I1 boolean weight 5, I2 boolean weight 5, I3 scale weight 10
    Category B (weight 40) / sub-category B1:
        I4 text weight 5, inactive
        essay E1, required, max 10 words
    """

    university: University
    other_university: University
    owner: User
    admin: User
    other_admin: User
    coordinator: User
    reviewer: User
    inactive_reviewer: User
    super_admin: User
    journal: Journal
    template: Template
    category_a: Category
    category_b: Category
    sub_a1: SubCategory
    sub_b1: SubCategory
    i1: Indicator
    i2: Indicator
    i3: Indicator
    i4: Indicator
    essay: EssayQuestion


@pytest.fixture
async def world(db_session: AsyncSession) -> World:
    university = University(name="Universitas Nusantara", code="UNUS")
    other_university = University(name="Universitas Seberang", code="USEB")
    db_session.add_all([university, other_university])
    await db_session.flush()

    def user(name: str, role: Role, university_id: str | None, is_active: bool = True) -> User:
        return User(
            email=f"{name}@example.test",
            name=name.replace("_", " ").title(),
            role=role.value,
            university_id=university_id,
            is_active=is_active,
        )

    owner = user("journal_manager", Role.USER, university.id)
    admin = user("campus_admin", Role.ADMIN_KAMPUS, university.id)
    other_admin = user("other_campus_admin", Role.ADMIN_KAMPUS, other_university.id)
    coordinator = user("coordinator", Role.COORDINATOR, None)
    reviewer = user("reviewer", Role.REVIEWER, None)
    inactive_reviewer = user("retired_reviewer", Role.REVIEWER, None, is_active=False)
    super_admin = user("super_admin", Role.SUPER_ADMIN, None)
    db_session.add_all([owner, admin, other_admin, coordinator, reviewer, inactive_reviewer, super_admin])
    await db_session.flush()

    journal = Journal(title="Jurnal Ilmu Komputer", issn="1234-5678", university_id=university.id, user_id=owner.id)
    template = Template(name="Akreditasi 2024", type="akreditasi", version="2024.1", is_active=True)
    db_session.add_all([journal, template])
    await db_session.flush()

    category_a = Category(template_id=template.id, code="A", name="Editorial", weight=60, display_order=1)
    category_b = Category(template_id=template.id, code="B", name="Management", weight=40, display_order=2)
    db_session.add_all([category_a, category_b])
    await db_session.flush()

    sub_a1 = SubCategory(category_id=category_a.id, code="A1", name="Peer review", display_order=1)
    sub_b1 = SubCategory(category_id=category_b.id, code="B1", name="Governance", display_order=1)
    db_session.add_all([sub_a1, sub_b1])
    await db_session.flush()

    i1 = Indicator.hierarchical(sub_a1.id, code="I1", question="Double-blind review?", weight=5, answer_type="boolean", sort_order=1)
    i2 = Indicator.hierarchical(sub_a1.id, code="I2", question="Published ethics policy?", weight=5, answer_type="boolean", sort_order=2)
    i3 = Indicator.hierarchical(sub_a1.id, code="I3", question="Reviewer pool quality", weight=10, answer_type="scale", sort_order=3)
    i4 = Indicator.hierarchical(
        sub_b1.id, code="I4", question="Describe the board", weight=5, answer_type="text", sort_order=1, is_active=False
    )
    essay = EssayQuestion(category_id=category_b.id, code="E1", question="Describe your editorial vision", max_words=10)
    db_session.add_all([i1, i2, i3, i4, essay])
    await db_session.flush()

    return World(
        university=university,
        other_university=other_university,
        owner=owner,
        admin=admin,
        other_admin=other_admin,
        coordinator=coordinator,
        reviewer=reviewer,
        inactive_reviewer=inactive_reviewer,
        super_admin=super_admin,
        journal=journal,
        template=template,
        category_a=category_a,
        category_b=category_b,
        sub_a1=sub_a1,
        sub_b1=sub_b1,
        i1=i1,
        i2=i2,
        i3=i3,
        i4=i4,
        essay=essay,
    )


@pytest.fixture
def service(db_session: AsyncSession, storage: LocalFileStorage) -> AssessmentService:
    return AssessmentService(db_session, storage=storage)


async def fill_draft(service: AssessmentService, world: World) -> str:
    """Create a draft with every required answer: 13 of 20 points, 65%."""
    owner = actor_for(world.owner)
    assessment = await service.create_assessment(owner, world.journal.id, template_id=world.template.id)
    await service.save_response(owner, assessment.id, world.i1.id, answer_boolean=True)
    await service.save_response(owner, assessment.id, world.i2.id, answer_boolean=False)
    await service.save_response(owner, assessment.id, world.i3.id, answer_scale=4)
    await service.save_essay_response(owner, assessment.id, world.essay.id, "We publish <b>open</b> science.")
    return assessment.id


@pytest.fixture
async def draft_id(service: AssessmentService, world: World) -> str:
    return await fill_draft(service, world)


@pytest.fixture
async def submitted_id(service: AssessmentService, world: World, draft_id: str) -> str:
    await service.submit_assessment(actor_for(world.owner), draft_id)
    return draft_id


@pytest.fixture
async def approved_id(service: AssessmentService, world: World, submitted_id: str) -> str:
    await service.approve_assessment(actor_for(world.admin), submitted_id, "Looks complete")
    return submitted_id


@pytest.fixture
async def client(
    db_session: AsyncSession, world: World, storage: LocalFileStorage
) -> AsyncGenerator[AsyncClient, None]:
    # Requests see committed data only, like separate connections would
    await db_session.commit()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with unit_of_work(db_session) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stats_cache] = lambda: None
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_event_publisher] = lambda: None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@dataclass
class Actors:
    owner: Actor
    admin: Actor
    other_admin: Actor
    coordinator: Actor
    reviewer: Actor
    super_admin: Actor


@pytest.fixture
def actors(world: World) -> Actors:
    return Actors(
        owner=actor_for(world.owner),
        admin=actor_for(world.admin),
        other_admin=actor_for(world.other_admin),
        coordinator=actor_for(world.coordinator),
        reviewer=actor_for(world.reviewer),
        super_admin=actor_for(world.super_admin),
    )


@pytest.fixture
def make_draft(service: AssessmentService, world: World):
    async def _make() -> str:
        return await fill_draft(service, world)

    return _make


@pytest.fixture
def auth_headers():
    return headers_for
