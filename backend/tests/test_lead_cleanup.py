"""
Lead Pool - Bad lead rules, analytics and cleanup
Run: cd backend && pytest tests/test_lead_cleanup.py -v
"""

from config import now_iso
from services.settings import DEFAULT_LEAD_QUALITY, upsert_setting
from services.lead_quality import (
    classify_lead,
    primary_reason,
    find_duplicate_phone_ids,
    is_missing_names,
)
from tests.helpers import _db_op, make_lead, seed


def _ids(db, **query):
    return {l["id"] for l in _db_op(db.leads.find(query, {"_id": 0, "id": 1}).to_list(None))}


# ═══════════════════════════════════════════════════════════════
# 1. UNIT: quality rules
# ═══════════════════════════════════════════════════════════════

class TestQualityRules:
    def _flags(self, **fields):
        return classify_lead(make_lead(0, **fields), DEFAULT_LEAD_QUALITY, set())

    def test_clean_lead(self):
        assert self._flags() == []

    def test_missing_contact(self):
        assert "missing_contact" in self._flags(phone="", email="")

    def test_placeholder_domain_case_insensitive(self):
        assert self._flags(email="john@Example.COM") == ["placeholder_emails"]

    def test_test_marker_name(self):
        assert "test_data" in self._flags(first_name="Test")

    def test_email_starting_with_test(self):
        assert "test_data" in self._flags(email="tester99@gmail.com")

    def test_placeholder_wins_over_test_data(self):
        flags = self._flags(email="test@placeholder.com")
        assert primary_reason(flags) == "placeholder_emails"

    def test_short_phone(self):
        assert self._flags(phone="555-0142") == ["short_phones"]

    def test_no_phone_is_not_short(self):
        assert "short_phones" not in self._flags(phone="")

    def test_missing_names_report_only(self):
        flags = self._flags(first_name="Unknown", last_name="Driver")
        assert flags == ["missing_names"]
        assert primary_reason(flags) is None

    def test_one_real_name_is_enough(self):
        assert not is_missing_names({"first_name": "Ana", "last_name": ""})


class TestDuplicatePhones:
    def test_oldest_unowned_is_kept(self):
        leads = [
            make_lead(2, phone="(312) 555-9999"),
            make_lead(1, phone="3125559999"),
            make_lead(3, phone="+1 312 555 9999"),
        ]
        assert find_duplicate_phone_ids(leads) == {"lead-0002", "lead-0003"}

    def test_owned_lead_is_keeper(self):
        leads = [
            make_lead(1, phone="3125559999"),
            make_lead(2, phone="3125559999", pool_state="distributed",
                      owner_company_id="a", distributed_at=now_iso()),
        ]
        assert find_duplicate_phone_ids(leads) == {"lead-0001"}

    def test_distinct_phones(self):
        assert find_duplicate_phone_ids([make_lead(1), make_lead(2)]) == set()


# ═══════════════════════════════════════════════════════════════
# 2. ANALYTICS + CLEANUP
# ═══════════════════════════════════════════════════════════════

class TestCleanup:
    def test_placeholder_emails_removed(self, db, pool):
        """3 placeholder leads among 10 -> 3 removed, 7 remain."""
        leads = [make_lead(i) for i in range(7)] + [
            make_lead(7, email="a@placeholder.com"),
            make_lead(8, email="b@example.com"),
            make_lead(9, email="c@mailinator.com"),
        ]
        seed(db, leads=leads)

        result = _db_op(pool.cleanup.cleanup_bad_leads())

        assert result["removed_count"] == 3
        assert result["by_reason"]["placeholder_emails"] == 3
        assert _db_op(db.leads.count_documents({})) == 7

    def test_owned_leads_never_removed(self, db, pool):
        seed(db, leads=[
            make_lead(0, email="a@placeholder.com"),
            make_lead(1, email="b@placeholder.com", pool_state="locked",
                      owner_company_id="a", locked_at=now_iso()),
            make_lead(2, email="c@placeholder.com", pool_state="distributed",
                      owner_company_id="a", distributed_at=now_iso()),
        ])

        result = _db_op(pool.cleanup.cleanup_bad_leads())

        assert result["removed_count"] == 1
        assert _ids(db) == {"lead-0001", "lead-0002"}

    def test_one_reason_per_lead(self, db, pool):
        seed(db, leads=[
            make_lead(0, phone="", email=""),
            make_lead(1, first_name="Fake", phone="12345"),
        ])

        result = _db_op(pool.cleanup.cleanup_bad_leads())

        assert result["removed_count"] == 2
        assert result["by_reason"]["missing_contact"] == 1
        assert result["by_reason"]["test_data"] == 1
        assert result["by_reason"]["short_phones"] == 0

    def test_duplicates_keep_one(self, db, pool):
        seed(db, leads=[make_lead(1, phone="3125559999"), make_lead(2, phone="312-555-9999")])

        result = _db_op(pool.cleanup.cleanup_bad_leads())

        assert result["by_reason"]["duplicate_phones"] == 1
        assert _ids(db) == {"lead-0001"}

    def test_idempotent(self, db, pool):
        seed(db, leads=[make_lead(0), make_lead(1, email="x@fake.com"), make_lead(2, phone="3125550000")])

        first = _db_op(pool.cleanup.cleanup_bad_leads())
        second = _db_op(pool.cleanup.cleanup_bad_leads())

        assert first["removed_count"] == 2
        assert second["removed_count"] == 0

    def test_settings_override_rules(self, db, pool):
        _db_op(upsert_setting(db, "lead_quality", {"placeholder_domains": ["corp-temp.io"]}))
        seed(db, leads=[make_lead(0, email="a@corp-temp.io"), make_lead(1, email="b@example.com")])

        result = _db_op(pool.cleanup.cleanup_bad_leads())

        assert result["removed_count"] == 1
        assert _ids(db) == {"lead-0001"}

    def test_reports_maintenance_mode(self, db, pool):
        _db_op(pool.gate.set_paused(True))

        result = _db_op(pool.cleanup.cleanup_bad_leads())

        assert result["maintenance_mode"] is True
        assert result["removed_count"] == 0


class TestBadLeadsAnalytics:
    def test_flags_counted_independently(self, db, pool):
        seed(db, leads=[
            make_lead(0),
            make_lead(1, first_name="Unknown", last_name="Driver", email="test@placeholder.com"),
            make_lead(2, phone="555"),
            make_lead(3, pool_state="archived"),
        ])

        report = _db_op(pool.cleanup.get_bad_leads_analytics())

        stats = report["stats"]
        assert stats["placeholder_emails"] == 1
        assert stats["test_data"] == 1
        assert stats["missing_names"] == 1
        assert stats["short_phones"] == 1
        assert stats["total_bad"] == 2
        assert report["scanned"] == 3
        assert report["ignored"] == 1

    def test_analytics_is_read_only(self, db, pool):
        seed(db, leads=[make_lead(0, email="a@placeholder.com")])

        _db_op(pool.cleanup.get_bad_leads_analytics())

        assert _db_op(db.leads.count_documents({})) == 1
