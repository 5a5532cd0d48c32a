"""Tests for repository guards, the unit of work and storage retries."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from campusfix.exceptions import (
    DuplicateSupportError,
    NotFoundError,
    StaleStateError,
    ValidationError,
)
from campusfix.repositories.base import MAX_QUERY_LIMIT, parse_uuid, validate_pagination
from campusfix.repositories.engagement_repository import SupportRepository
from campusfix.repositories.issue_repository import IssueRepository
from campusfix.repositories.resilience import RetryConfig, run_with_retry
from campusfix.repositories.unit_of_work import UnitOfWork
from campusfix.repositories.user_repository import UserRepository
from tests.factories import FIXED_NOW


def _session() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


class TestPagination:
    def test_caps_limit(self):
        assert validate_pagination(MAX_QUERY_LIMIT + 50, 0) == (MAX_QUERY_LIMIT, 0)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            validate_pagination(-1, 0)
        with pytest.raises(ValidationError):
            validate_pagination(10, -5)

    def test_parse_uuid(self):
        value = uuid4()
        assert parse_uuid(value) is value
        assert parse_uuid(str(value)) == value
        assert parse_uuid("nope") is None
        assert parse_uuid(None) is None


class TestIssueRepository:
    @pytest.mark.asyncio
    async def test_get_required_malformed_id_skips_query(self):
        session = _session()

        with pytest.raises(NotFoundError):
            await IssueRepository(session).get_required("not-a-uuid")
        session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_compare_and_set_conflict(self):
        session = _session()
        session.execute.return_value = MagicMock(rowcount=0)
        issue = MagicMock(id=uuid4())

        with pytest.raises(StaleStateError):
            await IssueRepository(session).compare_and_set(issue, 3, FIXED_NOW, status="OPEN")
        session.refresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_compare_and_set_refreshes_winner(self):
        session = _session()
        session.execute.return_value = MagicMock(rowcount=1)
        issue = MagicMock(id=uuid4())

        result = await IssueRepository(session).compare_and_set(issue, 3, FIXED_NOW, status="OPEN")

        assert result is issue
        session.refresh.assert_awaited_once_with(issue)

    @pytest.mark.asyncio
    async def test_support_increment_on_closed_issue(self):
        session = _session()
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        session.execute.return_value = result

        with pytest.raises(StaleStateError):
            await IssueRepository(session).increment_support_count(uuid4(), FIXED_NOW)

    @pytest.mark.asyncio
    async def test_contest_increment_returns_count_and_version(self):
        session = _session()
        result = MagicMock()
        result.one_or_none.return_value = (2, 7)
        session.execute.return_value = result

        assert await IssueRepository(session).increment_contest_count(uuid4(), FIXED_NOW) == (2, 7)

    @pytest.mark.asyncio
    async def test_ranking_pages_in_sql(self):
        session = _session()
        result = MagicMock()
        result.all.return_value = []
        session.execute.return_value = result

        await IssueRepository(session).list_ranked(FIXED_NOW, status="OPEN", limit=5, offset=10)

        statement = session.execute.await_args.args[0]
        sql = str(statement.compile(dialect=postgresql.dialect()))
        assert "ORDER BY score DESC, issues.created_at" in sql
        assert "LIMIT" in sql
        assert "OFFSET" in sql
        assert "EXTRACT(epoch FROM" in sql


class TestAddUnique:
    @pytest.mark.asyncio
    async def test_unique_violation_becomes_duplicate_error(self):
        session = _session()
        session.begin_nested = MagicMock(return_value=MagicMock())
        session.begin_nested.return_value.__aenter__ = AsyncMock(return_value=None)
        session.begin_nested.return_value.__aexit__ = AsyncMock(return_value=False)
        session.flush.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(DuplicateSupportError):
            await SupportRepository(session).create(uuid4(), uuid4())


class TestUserRepository:
    @pytest.mark.asyncio
    async def test_credibility_of_unknown_user(self):
        session = _session()
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        session.execute.return_value = result

        with pytest.raises(NotFoundError):
            await UserRepository(session).get_credibility_for_update(uuid4())

    @pytest.mark.asyncio
    async def test_credibility_read_locks_row(self):
        session = _session()
        result = MagicMock()
        result.scalar_one_or_none.return_value = 42
        session.execute.return_value = result

        assert await UserRepository(session).get_credibility_for_update(uuid4()) == 42
        statement = session.execute.await_args.args[0]
        assert statement._for_update_arg is not None


class TestUnitOfWork:
    @pytest.mark.asyncio
    async def test_rolls_back_without_commit(self):
        session = _session()

        async with UnitOfWork(lambda: session) as uow:
            assert isinstance(uow.issues, IssueRepository)
            assert uow.issues is uow.issues

        session.rollback.assert_awaited_once()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit(self):
        session = _session()

        async with UnitOfWork(lambda: session) as uow:
            await uow.commit()

        session.commit.assert_awaited_once()
        session.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self):
        session = _session()

        with pytest.raises(ValidationError):
            async with UnitOfWork(lambda: session):
                raise ValidationError("bad")

        session.rollback.assert_awaited_once()

    def test_session_required(self):
        uow = UnitOfWork(lambda: _session())

        with pytest.raises(RuntimeError):
            uow.session

    @pytest.mark.asyncio
    async def test_unknown_repository(self):
        async with UnitOfWork(lambda: _session()) as uow:
            with pytest.raises(AttributeError):
                uow.widgets


class TestRetry:
    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        func = AsyncMock(side_effect=[OperationalError("SELECT 1", {}, Exception("reset")), "ok"])

        result = await run_with_retry(func, RetryConfig(base_delay=0, jitter=False), name="op")

        assert result == "ok"
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_domain_errors_not_retried(self):
        func = AsyncMock(side_effect=StaleStateError("x"))

        with pytest.raises(StaleStateError):
            await run_with_retry(func, RetryConfig(base_delay=0, jitter=False), name="op")
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        func = AsyncMock(side_effect=ConnectionError("down"))

        with pytest.raises(ConnectionError):
            await run_with_retry(func, RetryConfig(max_attempts=2, base_delay=0, jitter=False), name="op")
        assert func.await_count == 2

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=2.0, jitter=False)
        assert config.calculate_delay(0) == 1.0
        assert config.calculate_delay(5) == 2.0
