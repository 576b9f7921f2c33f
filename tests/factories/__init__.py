"""Test data factories."""

from tests.factories.user import UserFactory


__all__ = ["UserFactory"]
