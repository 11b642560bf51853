import uuid

import pytest
from mongomock_motor import AsyncMongoMockClient

from services.lead_pool import LeadPool


@pytest.fixture
def db():
    """Fresh in-memory database per test"""
    client = AsyncMongoMockClient()
    return client[f"lead_pool_test_{uuid.uuid4().hex[:8]}"]


@pytest.fixture
def pool(db):
    return LeadPool(db, retry_attempts=3, retry_delay=0)
