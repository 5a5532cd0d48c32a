"""FastAPI dependencies shared by the routers."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from campusfix.config import get_settings
from campusfix.database import get_session_factory
from campusfix.repositories.resilience import RetryConfig, run_with_retry
from campusfix.repositories.unit_of_work import UnitOfWork

T = TypeVar("T")

UnitOfWorkFactory = Callable[[], UnitOfWork]


def get_uow_factory() -> UnitOfWorkFactory:
    """FastAPI dependency: a factory opening one UnitOfWork per attempt."""
    session_factory = get_session_factory()
    return lambda: UnitOfWork(session_factory)


async def run_in_uow(
    uow_factory: UnitOfWorkFactory,
    operation: Callable[[UnitOfWork], Awaitable[T]],
    commit: bool = True,
) -> T:
    """
    Run ``operation`` in a fresh unit of work, committing on success.

    Transient storage failures re-run the whole operation in a new unit of
    work; domain errors propagate after rollback.
    """

    async def attempt() -> T:
        async with uow_factory() as uow:
            result = await operation(uow)
            if commit:
                await uow.commit()
            return result

    config = RetryConfig(max_attempts=get_settings().storage_retry_attempts)
    return await run_with_retry(attempt, config, name=getattr(operation, "__name__", None))
