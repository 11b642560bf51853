"""
Lead Pool - config helpers, CompanyPolicy, PoolLead
Run: cd backend && pytest tests/test_models_config.py -v
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from config import normalize_phone, parse_iso, day_start_iso, DEFAULT_INTERVAL_HOURS
from models import CompanyPolicy, PoolLead, PoolState


class TestNormalizePhone:
    def test_formatted_us_number(self):
        assert normalize_phone("+1 (312) 555-0142") == "3125550142"

    def test_ten_digits_unchanged(self):
        assert normalize_phone("312-555-0142") == "3125550142"

    def test_no_digits(self):
        assert normalize_phone("n/a") == ""

    def test_non_string(self):
        assert normalize_phone(None) == ""
        assert normalize_phone(3125550142) == ""


class TestDates:
    def test_parse_iso_z_suffix(self):
        parsed = parse_iso("2026-03-01T06:30:00Z")
        assert parsed == datetime(2026, 3, 1, 6, 30, tzinfo=timezone.utc)

    def test_parse_iso_naive_is_utc(self):
        assert parse_iso("2026-03-01T06:30:00").tzinfo == timezone.utc

    def test_parse_iso_garbage(self):
        assert parse_iso("yesterday") is None
        assert parse_iso(None) is None

    def test_day_start(self):
        now = datetime(2026, 3, 1, 17, 45, 12, tzinfo=timezone.utc)
        assert day_start_iso(now) == "2026-03-01T00:00:00+00:00"


class TestCompanyPolicy:
    def test_snake_case_document(self):
        policy = CompanyPolicy.from_document({
            "id": "acme", "company_name": "Acme", "is_active": True, "daily_quota": 30
        })
        assert policy.is_active is True
        assert policy.daily_quota == 30
        assert policy.distribution_interval_hours == DEFAULT_INTERVAL_HOURS

    def test_legacy_camel_case_document(self):
        policy = CompanyPolicy.from_document({
            "id": "acme", "companyName": "Acme", "isActive": True, "dailyQuota": "12", "appSlug": "acme-app"
        })
        assert policy.company_name == "Acme"
        assert policy.daily_quota == 12
        assert policy.slug == "acme-app"

    def test_invalid_fields_default_safely(self):
        policy = CompanyPolicy.from_document({
            "id": "acme", "is_active": "yes", "daily_quota": -5, "distribution_interval_hours": "soon"
        })
        assert policy.is_active is False
        assert policy.daily_quota == 0
        assert policy.distribution_interval_hours == DEFAULT_INTERVAL_HOURS

    def test_missing_id_is_malformed(self):
        assert CompanyPolicy.from_document({"company_name": "No Id", "daily_quota": 10}) is None
        assert CompanyPolicy.from_document({"id": "   "}) is None
        assert CompanyPolicy.from_document("not a dict") is None

    def test_numeric_id(self):
        assert CompanyPolicy.from_document({"id": 42}).id == "42"


class TestPoolLead:
    def test_unowned_valid(self):
        lead = PoolLead.model_validate({"id": "l1", "origin": "platform_pool", "pool_state": "unowned"})
        assert lead.pool_state == PoolState.UNOWNED

    def test_distributed_requires_owner(self):
        with pytest.raises(ValidationError):
            PoolLead.model_validate({
                "id": "l1", "origin": "platform_pool", "pool_state": "distributed",
                "distributed_at": "2026-01-01T00:00:00+00:00"
            })

    def test_unowned_with_owner_is_malformed(self):
        with pytest.raises(ValidationError):
            PoolLead.model_validate({
                "id": "l1", "origin": "platform_pool", "pool_state": "unowned", "owner_company_id": "acme"
            })

    def test_unknown_state(self):
        with pytest.raises(ValidationError):
            PoolLead.model_validate({"id": "l1", "origin": "platform_pool", "pool_state": "archived"})
