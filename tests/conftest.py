"""
Shared pytest fixtures and configuration for spine-ops tests.

This module provides:
- Settings and logging-context cleanup fixtures for test isolation
- Sample users for association and authorization tests
- A patched entity lookup for asserting how entities are found

Usage:
    Fixtures are auto-discovered by pytest:

    def test_something(doug, lookup):
        lookup.return_value = doug
        ...
"""

import sys
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Ensure spine_ops package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from spine_ops.core.settings import reset_settings
from spine_ops.framework.fields.mixin import Fields
from spine_ops.framework.logging import clear_context
from tests._support.models import Account, User

# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_fixture() -> Generator[None, None, None]:
    """
    Reset engine settings before and after each test.

    Tests that call ``configure()`` cannot leak configuration into
    other tests.
    """
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def clean_log_context_fixture() -> Generator[None, None, None]:
    """Clear the logging context so span/op ids never leak between tests."""
    clear_context()
    yield
    clear_context()


# =============================================================================
# Entity Fixtures
# =============================================================================


@pytest.fixture
def doug() -> User:
    return User(id=1, email_address="doug@example.com")


@pytest.fixture
def fred() -> User:
    return User(id=2, email_address="fred@example.com")


@pytest.fixture
def account() -> Account:
    return Account(id=1)


@pytest.fixture
def lookup() -> Generator[MagicMock, None, None]:
    """
    Replace the default entity lookup for every op class.

    The mock receives ``(entity_type, find_by, key, unscoped=..., raise_on_miss=...)``.
    """
    mock = MagicMock(name="entity_lookup")
    with patch.object(Fields, "entity_lookup", staticmethod(mock)):
        yield mock
