"""Tests for database URL handling."""

import pytest

from src.taskflow.services.database.connection import _normalize_url


@pytest.mark.parametrize(
    "url,expected",
    [
        ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgresql+asyncpg://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
    ],
)
def test_normalize_url_selects_asyncpg_driver(url, expected):
    assert _normalize_url(url) == expected
