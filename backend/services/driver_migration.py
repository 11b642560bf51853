"""
Lead Pool - Driver migration

Copies every driver profile into the shared pool as an unowned
platform_pool lead. Existing pool leads are never modified ($setOnInsert),
so the migration can be re-run safely.
"""

import logging
from typing import Dict

from config import now_iso
from services.lead_store import PLATFORM, UNOWNED

logger = logging.getLogger("driver_migration")


def _driver_id(driver: Dict) -> str:
    value = driver.get("id")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return ""
    return str(value).strip()


async def migrate_drivers_to_leads(db) -> Dict:
    drivers = await db.drivers.find({}, {"_id": 0}).to_list(None)

    imported = 0
    skipped = 0
    ignored = 0

    for driver in drivers:
        driver_id = _driver_id(driver)
        if not driver_id:
            ignored += 1
            continue

        result = await db.leads.update_one(
            {"id": driver_id},
            {"$setOnInsert": {
                "origin": PLATFORM,
                "pool_state": UNOWNED,
                "first_name": driver.get("first_name") or "",
                "last_name": driver.get("last_name") or "",
                "email": driver.get("email") or "",
                "phone": driver.get("phone") or "",
                "source": driver.get("source") or "Driver Profile",
                "created_at": driver.get("created_at") or now_iso(),
            }},
            upsert=True
        )

        if result.upserted_id is not None:
            imported += 1
        else:
            skipped += 1

    if ignored:
        logger.warning(f"[MIGRATION] {ignored} driver documents without id ignored")
    logger.info(f"[MIGRATION] {imported} drivers imported, {skipped} already in pool")

    return {
        "imported": imported,
        "skipped": skipped,
        "ignored": ignored,
        "message": f"Imported {imported} drivers into the lead pool",
    }
