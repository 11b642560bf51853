"""
Lead Pool - Recall, force unlock (crash recovery), driver migration
Run: cd backend && pytest tests/test_lead_recall.py -v
"""

from datetime import datetime, timezone, timedelta

import pytest

from config import now_iso
from models.lead import LeadPoolError
from tests.helpers import _db_op, make_lead, make_company, seed


def _ago(seconds):
    return (datetime.now(timezone.utc) - timedelta(seconds=seconds)).isoformat()


# ═══════════════════════════════════════════════════════════════
# 1. RECALL
# ═══════════════════════════════════════════════════════════════

class TestRecall:
    def test_recall_after_distribution(self, db, pool):
        seed(db, leads=[make_lead(i) for i in range(10)], companies=[make_company("a", 4), make_company("b", 3)])
        _db_op(pool.engine.distribute())
        _db_op(db.company_leads.insert_one({
            "id": "upload-1", "company_id": "a", "original_lead_id": "", "is_platform_lead": False
        }))

        result = _db_op(pool.recall.recall_all())

        assert result["deleted_count"] == 7
        assert result["unlocked_count"] == 7
        assert _db_op(db.leads.count_documents({"pool_state": "unowned"})) == 10
        assert _db_op(db.leads.count_documents({"owner_company_id": {"$exists": True}})) == 0
        # Private uploads untouched
        assert _db_op(db.company_leads.count_documents({"is_platform_lead": False})) == 1

    def test_recall_is_idempotent(self, db, pool):
        seed(db, leads=[make_lead(i) for i in range(5)], companies=[make_company("a", 5)])
        _db_op(pool.engine.distribute())

        _db_op(pool.recall.recall_all())
        second = _db_op(pool.recall.recall_all())

        assert second["deleted_count"] == 0
        assert second["unlocked_count"] == 0

    def test_recall_releases_locked_leads(self, db, pool):
        seed(db, leads=[make_lead(0, pool_state="locked", owner_company_id="a", locked_at=now_iso())])

        result = _db_op(pool.recall.recall_all())

        assert result["unlocked_count"] == 1
        lead = _db_op(db.leads.find_one({"id": "lead-0000"}, {"_id": 0}))
        assert lead["pool_state"] == "unowned"
        assert "locked_at" not in lead

    def test_recall_reports_maintenance_mode(self, db, pool):
        _db_op(pool.gate.set_paused(True))
        assert _db_op(pool.recall.recall_all())["maintenance_mode"] is True

    def test_recalled_leads_can_be_redistributed(self, db, pool):
        seed(db, leads=[make_lead(i) for i in range(3)], companies=[make_company("a", 3)])
        _db_op(pool.engine.distribute())
        _db_op(pool.recall.recall_all())

        result = _db_op(pool.engine.distribute())

        assert result["moved_total"] == 3


# ═══════════════════════════════════════════════════════════════
# 2. FORCE UNLOCK
# ═══════════════════════════════════════════════════════════════

class TestForceUnlock:
    def test_lock_without_copy_is_released(self, db, pool):
        seed(db, leads=[make_lead(0, pool_state="locked", owner_company_id="a", locked_at=_ago(3600))])

        result = _db_op(pool.recall.force_unlock_pool())

        assert result["unlocked_count"] == 1
        assert result["completed_count"] == 0
        assert _db_op(db.leads.find_one({"id": "lead-0000"}))["pool_state"] == "unowned"

    def test_lock_with_copy_is_completed(self, db, pool):
        seed(db,
             leads=[make_lead(0, pool_state="locked", owner_company_id="a", locked_at=_ago(3600))],
             copies=[{"id": "c1", "company_id": "a", "original_lead_id": "lead-0000",
                      "is_platform_lead": True, "distributed_at": _ago(3500)}])

        result = _db_op(pool.recall.force_unlock_pool())

        assert result["completed_count"] == 1
        lead = _db_op(db.leads.find_one({"id": "lead-0000"}, {"_id": 0}))
        assert lead["pool_state"] == "distributed"
        assert lead["owner_company_id"] == "a"
        assert "locked_at" not in lead

    def test_orphan_lock_is_released(self, db, pool):
        seed(db, leads=[make_lead(0, pool_state="locked", locked_at=_ago(3600))])

        result = _db_op(pool.recall.force_unlock_pool())

        assert result["unlocked_count"] == 1

    def test_recent_locks_kept_with_cutoff(self, db, pool):
        seed(db, leads=[
            make_lead(0, pool_state="locked", owner_company_id="a", locked_at=_ago(3600)),
            make_lead(1, pool_state="locked", owner_company_id="a", locked_at=_ago(10)),
        ])

        result = _db_op(pool.recall.force_unlock_pool(stale_after_seconds=900))

        assert result["scanned"] == 1
        assert _db_op(db.leads.find_one({"id": "lead-0001"}))["pool_state"] == "locked"

    def test_negative_cutoff_rejected(self, pool):
        with pytest.raises(LeadPoolError):
            _db_op(pool.recall.force_unlock_pool(stale_after_seconds=-1))

    def test_nothing_locked(self, db, pool):
        seed(db, leads=[make_lead(0)])
        result = _db_op(pool.recall.force_unlock_pool())
        assert result == {
            "unlocked_count": 0,
            "completed_count": 0,
            "scanned": 0,
            "message": "Unlocked 0 leads, completed 0 interrupted assignments",
        }


# ═══════════════════════════════════════════════════════════════
# 3. DRIVER MIGRATION
# ═══════════════════════════════════════════════════════════════

class TestDriverMigration:
    def test_drivers_imported_once(self, db, pool):
        _db_op(db.drivers.insert_many([
            {"id": "drv-1", "first_name": "Ana", "last_name": "Reyes", "phone": "3125550101",
             "email": "ana@gmail.com", "created_at": "2025-12-01T10:00:00+00:00"},
            {"id": "drv-2", "first_name": "Ben", "phone": "3125550102"},
            {"first_name": "No", "last_name": "Id"},
        ]))

        first = _db_op(pool.migrate_drivers())
        second = _db_op(pool.migrate_drivers())

        assert (first["imported"], first["skipped"], first["ignored"]) == (2, 0, 1)
        assert (second["imported"], second["skipped"]) == (0, 2)
        lead = _db_op(db.leads.find_one({"id": "drv-1"}, {"_id": 0}))
        assert lead["origin"] == "platform_pool"
        assert lead["pool_state"] == "unowned"
        assert lead["created_at"] == "2025-12-01T10:00:00+00:00"

    def test_existing_pool_lead_not_modified(self, db, pool):
        seed(db, leads=[make_lead(0, id="drv-1", pool_state="distributed",
                                  owner_company_id="a", distributed_at=now_iso())])
        _db_op(db.drivers.insert_one({"id": "drv-1", "first_name": "Changed"}))

        result = _db_op(pool.migrate_drivers())

        assert result["skipped"] == 1
        lead = _db_op(db.leads.find_one({"id": "drv-1"}, {"_id": 0}))
        assert lead["pool_state"] == "distributed"
        assert lead["first_name"] == "Jordan"

    def test_migrated_leads_are_distributable(self, db, pool):
        _db_op(db.drivers.insert_one({"id": "drv-1", "first_name": "Ana", "phone": "3125550101"}))
        seed(db, companies=[make_company("a", 5)])
        _db_op(pool.migrate_drivers())

        result = _db_op(pool.engine.distribute())

        assert result["moved_total"] == 1
