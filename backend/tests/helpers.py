"""
Lead Pool - shared test helpers (document factories, async runner)
"""

import asyncio
import uuid

from config import now_iso


def _db_op(coro):
    """Run async DB operation in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def make_lead(index: int = 0, **overrides) -> dict:
    """Clean unowned platform lead, created_at ordered by index"""
    lead = {
        "id": f"lead-{index:04d}",
        "origin": "platform_pool",
        "pool_state": "unowned",
        "first_name": "Jordan",
        "last_name": f"Miller{index}",
        "email": f"driver{index}@gmail.com",
        "phone": f"312555{index:04d}",
        "source": "Driver App",
        "created_at": f"2026-01-01T{index // 3600:02d}:{(index // 60) % 60:02d}:{index % 60:02d}+00:00",
    }
    lead.update(overrides)
    return lead


def make_company(company_id: str, quota: int, active: bool = True, **overrides) -> dict:
    company = {
        "id": company_id,
        "company_name": f"Company {company_id.upper()}",
        "slug": company_id,
        "is_active": active,
        "daily_quota": quota,
    }
    company.update(overrides)
    return company


def make_session(db, role: str = "super_admin", active: bool = True) -> str:
    """Creates user + session, returns the bearer token"""
    user_id = str(uuid.uuid4())
    token = f"token-{user_id}"
    _db_op(db.users.insert_one({
        "id": user_id,
        "email": f"{role}-{user_id[:8]}@leadpool.test",
        "role": role,
        "is_active": active,
    }))
    _db_op(db.sessions.insert_one({
        "token": token,
        "user_id": user_id,
        "created_at": now_iso(),
        "expires_at": "2999-01-01T00:00:00+00:00",
    }))
    return token


def seed(db, leads=None, companies=None, copies=None):
    if leads:
        _db_op(db.leads.insert_many([dict(l) for l in leads]))
    if companies:
        _db_op(db.companies.insert_many([dict(c) for c in companies]))
    if copies:
        _db_op(db.company_leads.insert_many([dict(c) for c in copies]))


class CollectionProxy:
    """Wraps a collection; keyword arguments replace single methods"""

    def __init__(self, collection, **overrides):
        self._collection = collection
        self._overrides = overrides

    def __getattr__(self, name):
        if name in self._overrides:
            return self._overrides[name]
        return getattr(self._collection, name)


class DbProxy:
    """Wraps a database; keyword arguments replace whole collections"""

    def __init__(self, db, **collections):
        self._db = db
        self._collections = collections

    def __getattr__(self, name):
        if name in self._collections:
            return self._collections[name]
        return getattr(self._db, name)
