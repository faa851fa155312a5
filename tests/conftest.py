"""Shared fixtures for service tests that run against a mocked AsyncSession."""

from unittest.mock import AsyncMock, MagicMock

import pytest

import trekmate.models  # noqa: F401  (registers all mappers)


def make_result(value=None, rows=None, rowcount=None) -> MagicMock:
    """A stand-in for an SQLAlchemy Result.

    ``value`` answers the scalar accessors, ``rows`` answers ``scalars().all()``
    and ``all()``.
    """
    result = MagicMock()
    result.unique.return_value = result
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    result.scalar.return_value = value
    result.first.return_value = value
    result.scalars.return_value.all.return_value = list(rows or [])
    result.all.return_value = list(rows or [])
    result.rowcount = rowcount
    return result


@pytest.fixture
def result():
    return make_result


@pytest.fixture
def db() -> MagicMock:
    """AsyncSession double: awaitable execute/flush/get, sync add, nested transactions."""
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.get = AsyncMock()
    session.begin_nested = MagicMock()
    return session
