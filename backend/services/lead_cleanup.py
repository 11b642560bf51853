"""
Lead Pool - Cleanup of bad leads

Scope: UNOWNED platform-pool leads only. Locked and distributed leads are
never removed, even when they match a rule.
Idempotent: a second run finds nothing left to remove.
"""

import logging
from typing import Dict, List, Tuple
from pydantic import ValidationError

from models.lead import PoolLead, PoolState
from services.settings import get_lead_quality_settings
from services.lead_quality import (
    REMOVAL_ORDER,
    REPORT_ONLY,
    classify_lead,
    find_duplicate_phone_ids,
    primary_reason,
)

logger = logging.getLogger("lead_cleanup")


class LeadCleanup:

    def __init__(self, db, store, gate):
        self.db = db
        self.store = store
        self.gate = gate

    async def _scan(self) -> Tuple[List[Tuple[Dict, List[str]]], int]:
        """
        Returns:
            ([(unowned_lead, flags), ...], ignored_count)
        """
        rules = await get_lead_quality_settings(self.db)
        docs = await self.store.scan_platform_leads()

        valid = []
        ignored = 0
        for doc in docs:
            try:
                PoolLead.model_validate(doc)
            except ValidationError:
                ignored += 1
                continue
            valid.append(doc)

        duplicate_ids = find_duplicate_phone_ids(valid)

        scanned = []
        for lead in valid:
            if lead.get("pool_state") != PoolState.UNOWNED.value:
                continue
            scanned.append((lead, classify_lead(lead, rules, duplicate_ids)))

        return scanned, ignored

    async def get_bad_leads_analytics(self) -> Dict:
        scanned, ignored = await self._scan()

        stats = {reason: 0 for reason in REMOVAL_ORDER + REPORT_ONLY}
        total_bad = 0
        for _lead, flags in scanned:
            for flag in flags:
                stats[flag] += 1
            if primary_reason(flags):
                total_bad += 1
        stats["total_bad"] = total_bad

        return {"stats": stats, "scanned": len(scanned), "ignored": ignored}

    async def cleanup_bad_leads(self) -> Dict:
        paused = await self.gate.is_paused()
        if not paused:
            logger.warning("[CLEANUP] Running while distribution is NOT paused")

        scanned, ignored = await self._scan()

        ids_by_reason = {reason: [] for reason in REMOVAL_ORDER}
        for lead, flags in scanned:
            reason = primary_reason(flags)
            if reason:
                ids_by_reason[reason].append(lead["id"])

        by_reason = {}
        for reason in REMOVAL_ORDER:
            by_reason[reason] = await self.store.delete_unowned(ids_by_reason[reason])

        removed = sum(by_reason.values())
        logger.info(f"[CLEANUP] {removed} bad leads removed from pool: {by_reason}")

        return {
            "removed_count": removed,
            "by_reason": by_reason,
            "scanned": len(scanned),
            "ignored": ignored,
            "maintenance_mode": paused,
            "message": f"Removed {removed} bad leads from the pool",
        }
