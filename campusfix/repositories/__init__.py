"""Repository layer for database operations."""

from campusfix.repositories.base import BaseRepository
from campusfix.repositories.resilience import RetryConfig, run_with_retry
from campusfix.repositories.unit_of_work import UnitOfWork

__all__ = [
    "BaseRepository",
    "RetryConfig",
    "UnitOfWork",
    "run_with_retry",
]
