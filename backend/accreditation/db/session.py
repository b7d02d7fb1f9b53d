from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, SessionTransaction

from accreditation.config import settings
from accreditation.core.exceptions import PersistenceError

logger = structlog.get_logger()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Action = Callable[[], Awaitable[None]]

# session.info keys
_ON_COMMIT = "on_commit_actions"
_ON_ROLLBACK = "on_rollback_actions"
_DUE = "due_actions"


def defer(session: AsyncSession, *, on_commit: Action | None = None, on_rollback: Action | None = None) -> None:
    """Tie a side effect outside the database to the fate of the current transaction.

    ``on_commit`` runs once the transaction commits, ``on_rollback`` once it
    rolls back; the other one is discarded.
    """
    if on_commit is not None:
        session.info.setdefault(_ON_COMMIT, []).append(on_commit)
    if on_rollback is not None:
        session.info.setdefault(_ON_ROLLBACK, []).append(on_rollback)


def _settle(info: dict, committed: bool) -> None:
    keep, drop = (_ON_COMMIT, _ON_ROLLBACK) if committed else (_ON_ROLLBACK, _ON_COMMIT)
    info.pop(drop, None)
    info.setdefault(_DUE, []).extend(info.pop(keep, []))


@event.listens_for(Session, "after_commit")
def _after_commit(session: Session) -> None:
    _settle(session.info, committed=True)


@event.listens_for(Session, "after_soft_rollback")
def _after_soft_rollback(session: Session, previous_transaction: SessionTransaction) -> None:
    if previous_transaction.nested:
        return
    _settle(session.info, committed=False)


async def run_deferred(session: AsyncSession) -> None:
    """Run the actions released by the last commit or rollback."""
    actions = session.info.pop(_DUE, [])
    for action in actions:
        try:
            await action()
        except Exception as e:
            logger.error("deferred_action_failed", action=getattr(action, "__name__", repr(action)), error=str(e))


async def rollback(session: AsyncSession) -> None:
    await session.rollback()
    # No transaction was open, so no rollback event fired
    _settle(session.info, committed=False)
    await run_deferred(session)


async def commit(session: AsyncSession) -> None:
    """Commit the unit of work. A database failure rolls it back and surfaces as PersistenceError."""
    try:
        await session.commit()
    except SQLAlchemyError as e:
        logger.error("database_operation_failed", error=str(e))
        await rollback(session)
        raise PersistenceError() from e
    await run_deferred(session)


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Whatever the request left uncommitted is discarded and compensated on exit."""
    try:
        yield session
    finally:
        await session.close()
        _settle(session.info, committed=False)
        await run_deferred(session)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request. Services commit their own writes before the response is built."""
    async with async_session_factory() as session, unit_of_work(session):
        yield session
