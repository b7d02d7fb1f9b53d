"""Tests for transaction-bound side effects."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from accreditation.core.exceptions import PersistenceError
from accreditation.db.session import commit, defer, rollback, unit_of_work


class TestDeferredActions:

    @pytest.mark.asyncio
    async def test_commit_runs_commit_actions_only(self, db_session) -> None:
        on_commit, on_rollback = AsyncMock(), AsyncMock()
        await db_session.execute(select(1))
        defer(db_session, on_commit=on_commit, on_rollback=on_rollback)

        await commit(db_session)

        on_commit.assert_awaited_once()
        on_rollback.assert_not_awaited()

        # Settled actions do not fire again
        await rollback(db_session)
        on_rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rollback_runs_rollback_actions_only(self, db_session) -> None:
        on_commit, on_rollback = AsyncMock(), AsyncMock()
        await db_session.execute(select(1))
        defer(db_session, on_commit=on_commit, on_rollback=on_rollback)

        await rollback(db_session)

        on_rollback.assert_awaited_once()
        on_commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_commit_compensates_and_raises(self, db_session, monkeypatch) -> None:
        on_commit, on_rollback = AsyncMock(), AsyncMock()
        defer(db_session, on_commit=on_commit, on_rollback=on_rollback)
        monkeypatch.setattr(
            db_session, "commit", AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("locked")))
        )

        with pytest.raises(PersistenceError):
            await commit(db_session)

        on_rollback.assert_awaited_once()
        on_commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_action_does_not_stop_the_rest(self, db_session) -> None:
        broken = AsyncMock(side_effect=OSError("read-only file system"))
        after = AsyncMock()
        defer(db_session, on_rollback=broken)
        defer(db_session, on_rollback=after)

        await rollback(db_session)

        broken.assert_awaited_once()
        after.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unit_of_work_discards_uncommitted_work(self, db_session) -> None:
        on_commit, on_rollback = AsyncMock(), AsyncMock()

        with pytest.raises(RuntimeError):
            async with unit_of_work(db_session) as session:
                await session.execute(select(1))
                defer(session, on_commit=on_commit, on_rollback=on_rollback)
                raise RuntimeError("handler failed")

        on_rollback.assert_awaited_once()
        on_commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unit_of_work_leaves_committed_work_alone(self, db_session) -> None:
        on_commit, on_rollback = AsyncMock(), AsyncMock()

        async with unit_of_work(db_session) as session:
            await session.execute(select(1))
            defer(session, on_commit=on_commit, on_rollback=on_rollback)
            await commit(session)

        on_commit.assert_awaited_once()
        on_rollback.assert_not_awaited()
