"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Rotation of company-held platform leads                         ║
║                                                                              ║
║  Runs at the start of every distribution round (never while paused).         ║
║  A platform copy goes back to the pool when:                                 ║
║  - older than COPY_EXPIRY_LONG_DAYS and not Hired / Offer Accepted /         ║
║    Approved                                              -> "expired"        ║
║  - older than COPY_EXPIRY_SHORT_HOURS and not engaged    -> "expired"        ║
║  - no readable distributed_at                            -> "expired"        ║
║  - force_rotate, not engaged, distributed before today   -> "rotated"        ║
║                                                                              ║
║  Return = copy deleted, then distributed(company) -> unowned.                ║
║  Recruiter notes on the copy are kept on the pool lead (shared_history).     ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Optional
from pymongo.errors import PyMongoError

from config import parse_iso, day_start_iso, COPY_EXPIRY_SHORT_HOURS, COPY_EXPIRY_LONG_DAYS

logger = logging.getLogger("lead_rotation")

ENGAGED_STATUSES = [
    "Contacted",
    "Application Started",
    "Offer Sent",
    "Offer Accepted",
    "Interview Scheduled",
    "Hired",
    "Approved",
]
# Never expire, whatever their age
PLACED_STATUSES = ["Hired", "Offer Accepted", "Approved"]


def rotation_reason(copy: Dict, now: datetime, day_start: datetime, force_rotate: bool = False) -> Optional[str]:
    """Why a platform copy should go back to the pool (None = company keeps it)"""
    status = copy.get("status") or "New Lead"
    engaged = status in ENGAGED_STATUSES

    distributed = parse_iso(copy.get("distributed_at"))
    if distributed is None:
        return "expired"

    age = now - distributed
    if age > timedelta(days=COPY_EXPIRY_LONG_DAYS):
        return None if status in PLACED_STATUSES else "expired"
    if age > timedelta(hours=COPY_EXPIRY_SHORT_HOURS) and not engaged:
        return "expired"

    if force_rotate and not engaged and distributed < day_start:
        return "rotated"
    return None


def harvest_notes(copy: Dict) -> List[Dict]:
    """Recruiter notes of a copy, as shared_history entries for the pool lead"""
    history = []
    for note in copy.get("notes") or []:
        if isinstance(note, dict):
            text, date = note.get("text"), note.get("created_at")
        else:
            text, date = note, None
        if not isinstance(text, str) or not text.strip():
            continue
        history.append({
            "text": text.strip(),
            "date": date,
            "source": "Previous Recruiter",
            "company_id": copy.get("company_id"),
        })
    return history


class LeadRotation:

    def __init__(self, store):
        self.store = store

    async def rotate(self, force_rotate: bool = False, now: datetime = None) -> Dict:
        now = now or datetime.now(timezone.utc)
        day_start = parse_iso(day_start_iso(now))

        copies = await self.store.scan_platform_copies()

        by_reason = {"rotated": 0, "expired": 0}
        kept = 0
        ignored = 0
        failed = []

        for copy in copies:
            if not copy.get("company_id") or not copy.get("original_lead_id"):
                ignored += 1
                continue

            reason = rotation_reason(copy, now, day_start, force_rotate)
            if reason is None:
                kept += 1
                continue

            try:
                returned = await self.store.return_copy(copy, harvest_notes(copy))
            except PyMongoError as e:
                logger.error(
                    f"[ROTATION] {copy['original_lead_id']} <- {copy['company_id']} failed: {e}"
                )
                failed.append({"company_id": copy["company_id"], "lead_id": copy["original_lead_id"]})
                continue

            if returned:
                by_reason[reason] += 1
            else:
                kept += 1

        returned_total = sum(by_reason.values())
        if returned_total or failed:
            logger.info(
                f"[ROTATION] {returned_total} leads back to pool {by_reason}, "
                f"{kept} kept, {len(failed)} failed"
            )

        return {
            "returned": returned_total,
            "by_reason": by_reason,
            "kept": kept,
            "ignored": ignored,
            "failed": failed,
        }
