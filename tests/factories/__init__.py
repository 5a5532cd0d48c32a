"""Test data factories for the CampusFix workflow."""

from tests.factories.issue_factory import IssueFactory
from tests.factories.user_factory import FIXED_NOW, UserFactory, actor_for, make_department

__all__ = [
    "FIXED_NOW",
    "IssueFactory",
    "UserFactory",
    "actor_for",
    "make_department",
]
