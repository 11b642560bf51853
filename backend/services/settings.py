"""
Lead Pool - Settings service

Dynamic system settings.
Collection: settings (each document identified by key)

Available settings:
- distribution: maintenance_mode (global pause of distribution)
- lead_quality: placeholder email domains, test markers, minimum phone digits
"""

import logging
from typing import Optional, Dict, Any
from config import now_iso

logger = logging.getLogger("settings")


async def get_setting(db, key: str) -> Optional[Dict]:
    """Fetch a setting by key"""
    doc = await db.settings.find_one({"key": key}, {"_id": 0})
    return doc


async def upsert_setting(db, key: str, data: Dict[str, Any], updated_by: str = "system") -> Dict:
    """Create or update a setting (last write wins)"""
    data = {**data, "key": key, "updated_at": now_iso(), "updated_by": updated_by}

    await db.settings.update_one(
        {"key": key},
        {"$set": data, "$setOnInsert": {"created_at": now_iso()}},
        upsert=True
    )

    return await db.settings.find_one({"key": key}, {"_id": 0})


# ---- Distribution helpers ----

DEFAULT_DISTRIBUTION = {
    "maintenance_mode": False,
}


async def get_distribution_settings(db) -> Dict:
    """Distribution settings (with defaults)"""
    doc = await get_setting(db, "distribution")
    if not doc:
        return dict(DEFAULT_DISTRIBUTION)
    return {**DEFAULT_DISTRIBUTION, **doc}


# ---- Lead quality helpers ----

DEFAULT_LEAD_QUALITY = {
    "placeholder_domains": [
        "placeholder.com",
        "example.com",
        "test.com",
        "fake.com",
        "noemail.com",
        "none.com",
        "mailinator.com",
    ],
    "test_markers": ["test", "testing", "fake", "asdf", "dummy", "sample"],
    "min_phone_digits": 10,
}


async def get_lead_quality_settings(db) -> Dict:
    """Lead quality rules (merged with defaults)"""
    doc = await get_setting(db, "lead_quality")
    if not doc:
        return dict(DEFAULT_LEAD_QUALITY)
    merged = {**DEFAULT_LEAD_QUALITY, **doc}
    if not isinstance(merged.get("min_phone_digits"), int) or merged["min_phone_digits"] < 1:
        logger.warning(f"[SETTINGS] invalid min_phone_digits={merged.get('min_phone_digits')!r}, using default")
        merged["min_phone_digits"] = DEFAULT_LEAD_QUALITY["min_phone_digits"]
    return merged
