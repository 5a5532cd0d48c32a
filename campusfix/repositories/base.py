"""Base repository class.

Provides the generic lookups shared by every repository and the helpers for
pagination, id parsing and unique-key inserts.
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campusfix.exceptions import CampusFixError, ValidationError

T = TypeVar("T")

# Upper bound for any page size
MAX_QUERY_LIMIT = 200


def validate_pagination(limit: int, offset: int) -> tuple[int, int]:
    """Validate pagination parameters.

    Args:
        limit: Requested limit
        offset: Requested offset

    Returns:
        Validated (limit, offset) tuple, with limit capped at MAX_QUERY_LIMIT

    Raises:
        ValidationError: If parameters are negative
    """
    if limit < 0:
        raise ValidationError("Limit must be non-negative", field="limit")
    if offset < 0:
        raise ValidationError("Offset must be non-negative", field="offset")
    return min(limit, MAX_QUERY_LIMIT), offset


def parse_uuid(value: str | UUID) -> UUID | None:
    """Parse a string to UUID safely, returning None for malformed input."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None


class BaseRepository(Generic[T]):
    """Common operations for repositories bound to one model class."""

    model_class: type[T]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, entity_id: Any) -> T | None:
        result = await self.session.execute(
            select(self.model_class).where(self.model_class.id == entity_id)
        )
        return result.scalar_one_or_none()

    async def add(self, entity: T) -> T:
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def add_unique(self, entity: T, duplicate_error: CampusFixError) -> T:
        """Insert a row guarded by a UNIQUE constraint.

        The insert runs in a savepoint so a constraint violation leaves the
        surrounding transaction usable; the violation surfaces as
        ``duplicate_error``.
        """
        try:
            async with self.session.begin_nested():
                self.session.add(entity)
                await self.session.flush()
        except IntegrityError as e:
            raise duplicate_error from e
        return entity
