"""Shared fixtures: an in-memory ledger, owners, and a fixed clock."""

import asyncio
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from finsight.audit import AuditLogger
from finsight.config import AppSettings
from finsight.models.ledger import User
from finsight.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


# Mid-month so "now" is inside 2024-06 and after its first days
FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0)


def run(coro):
    """Drive an engine coroutine from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def settings():
    return AppSettings()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def other_owner_id():
    return uuid4()


@pytest.fixture
def user(storage, owner_id):
    """A user earning 50000 a month."""
    return run(storage.save_user(User(
        id=owner_id,
        name="Asha",
        email="asha@example.com",
        monthly_income=Decimal("50000"),
    )))
