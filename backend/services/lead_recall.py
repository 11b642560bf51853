"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Recall & force unlock                                           ║
║                                                                              ║
║  RECALL (destructive, confirmed by the caller):                              ║
║  - deletes every platform copy held by companies                             ║
║  - puts every locked/distributed platform lead back to unowned               ║
║  - idempotent: second call -> deleted_count = 0, unlocked_count = 0          ║
║                                                                              ║
║  FORCE UNLOCK (crash recovery):                                              ║
║  - locked lead + company copy present  -> commit completed (distributed)     ║
║  - locked lead without copy / owner    -> back to unowned                    ║
║                                                                              ║
║  Maintenance mode is ADVISORY here: reported, never blocking.                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional

from config import now_iso
from models.lead import LeadPoolError

logger = logging.getLogger("lead_recall")


class LeadRecall:

    def __init__(self, store, gate):
        self.store = store
        self.gate = gate

    async def recall_all(self) -> Dict:
        paused = await self.gate.is_paused()
        if not paused:
            logger.warning("[RECALL] Running while distribution is NOT paused")

        # Copies first: a timeout after this step leaves nothing a rerun cannot finish
        deleted = await self.store.delete_platform_copies()
        unlocked = await self.store.reset_owned_platform_leads()

        logger.info(f"[RECALL] {deleted} company copies deleted, {unlocked} pool leads unlocked")

        return {
            "deleted_count": deleted,
            "unlocked_count": unlocked,
            "maintenance_mode": paused,
        }

    async def force_unlock_pool(self, stale_after_seconds: Optional[int] = None) -> Dict:
        """
        Args:
            stale_after_seconds: only locks older than this are touched
                                 (None or 0 = every locked lead)
        """
        if stale_after_seconds is not None and stale_after_seconds < 0:
            raise LeadPoolError("stale_after_seconds must be >= 0")

        cutoff = None
        if stale_after_seconds:
            cutoff = (datetime.now(timezone.utc) - timedelta(seconds=stale_after_seconds)).isoformat()

        locked = await self.store.find_locked_before(cutoff)

        unlocked = 0
        completed = 0
        for lead in locked:
            lead_id = lead["id"]
            owner = lead.get("owner_company_id")

            if not owner:
                if await self.store.release_orphan_lock(lead_id):
                    unlocked += 1
                continue

            copy = await self.store.find_platform_copy(owner, lead_id)
            if copy:
                if await self.store.complete_stale_commit(lead_id, owner, copy.get("distributed_at") or now_iso()):
                    completed += 1
            elif await self.store.release_lead(lead_id, owner):
                unlocked += 1

        if unlocked or completed:
            logger.info(f"[FORCE_UNLOCK] {unlocked} leads unlocked, {completed} commits completed")

        return {
            "unlocked_count": unlocked,
            "completed_count": completed,
            "scanned": len(locked),
            "message": f"Unlocked {unlocked} leads, completed {completed} interrupted assignments",
        }
