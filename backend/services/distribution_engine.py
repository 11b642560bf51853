"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Distribution Engine                                             ║
║                                                                              ║
║  CRON: every day at 06:30 America/Chicago + manual "Distribute Now"          ║
║                                                                              ║
║  1. Maintenance mode ON -> no-op, status "paused"                            ║
║  2. Rotation: stale / un-engaged company copies go back to the pool          ║
║     Companies sorted by id (deterministic order)                             ║
║  3. remaining = daily_quota - distributed today                              ║
║     inactive -> skipped "inactive" | remaining <= 0 -> "quota_reached"       ║
║  4. Candidates: unowned platform leads, oldest first                         ║
║  5. Per lead: claim (unowned -> locked) then commit (locked -> distributed)  ║
║     lost claim = already taken -> next candidate                             ║
║  6. NEVER more than remaining per company, NEVER two owners per lead         ║
║                                                                              ║
║  A failing lead or company never aborts the run: it is recorded in           ║
║  "skipped" and the run status becomes "partial".                             ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import asyncio
import logging
from typing import Dict, List, Optional
from pymongo.errors import PyMongoError

from config import now_iso, day_start_iso, CLAIM_RETRY_ATTEMPTS, CLAIM_RETRY_DELAY_SECONDS
from models.company import CompanyPolicy

logger = logging.getLogger("distribution_engine")

# Outcome of a single lead assignment
ASSIGNED = "assigned"
TAKEN = "taken"
FAILED = "failed"


class DistributionEngine:

    def __init__(
        self,
        store,
        registry,
        gate,
        rotation=None,
        retry_attempts: int = CLAIM_RETRY_ATTEMPTS,
        retry_delay: float = CLAIM_RETRY_DELAY_SECONDS
    ):
        self.store = store
        self.registry = registry
        self.gate = gate
        self.rotation = rotation
        self.retry_attempts = max(1, retry_attempts)
        self.retry_delay = retry_delay

    async def distribute(self, force_rotate: bool = False) -> Dict:
        """
        Args:
            force_rotate: also take back un-engaged leads handed out before
                          today (daily morning rotation)
        """
        started_at = now_iso()

        if await self.gate.is_paused():
            logger.info("[DISTRIBUTION] maintenance_mode ON - run skipped")
            return {
                "status": "paused",
                "moved_total": 0,
                "per_company": [],
                "skipped": [],
                "events": [],
                "rotation": None,
                "ignored_companies": 0,
                "started_at": started_at,
                "finished_at": now_iso(),
            }

        per_company: List[Dict] = []
        skipped: List[Dict] = []
        events: List[Dict] = []
        partial = False

        rotation = None
        if self.rotation is not None:
            rotation = await self.rotation.rotate(force_rotate=force_rotate)
            for failure in rotation["failed"]:
                skipped.append({**failure, "reason": "rotation_failed"})
                partial = True

        policies, ignored = await self.registry.load_policies()
        day_start = day_start_iso()

        logger.info(f"[DISTRIBUTION] Run started: {len(policies)} companies, {ignored} ignored")

        for policy in policies:
            if not policy.is_active:
                skipped.append({"company_id": policy.id, "reason": "inactive"})
                continue

            try:
                outcome = await self._allocate_company(policy, day_start)
            except Exception as e:
                logger.error(f"[DISTRIBUTION] {policy.company_name or policy.id}: company failed: {e}")
                skipped.append({"company_id": policy.id, "reason": "error", "detail": str(e)})
                partial = True
                continue

            if outcome is None:
                skipped.append({"company_id": policy.id, "reason": "quota_reached"})
                continue

            per_company.append({
                "company_id": policy.id,
                "company_name": policy.company_name,
                "remaining_quota": outcome["remaining"],
                "moved": len(outcome["lead_ids"]),
                "conflicts": outcome["conflicts"],
            })

            for lead_id in outcome["failed_ids"]:
                skipped.append({"company_id": policy.id, "lead_id": lead_id, "reason": "lead_write_failed"})
                partial = True

            shortfall = outcome["remaining"] - len(outcome["lead_ids"])
            if shortfall > 0 and outcome["exhausted"]:
                skipped.append({"company_id": policy.id, "reason": "pool_exhausted", "shortfall": shortfall})

            if outcome["lead_ids"]:
                events.append({
                    "type": "leads_distributed",
                    "company_id": policy.id,
                    "lead_ids": outcome["lead_ids"],
                    "count": len(outcome["lead_ids"]),
                    "at": now_iso(),
                })

            logger.info(
                f"[DISTRIBUTION] {policy.company_name or policy.id}: "
                f"remaining {outcome['remaining']}, added {len(outcome['lead_ids'])}, "
                f"conflicts {outcome['conflicts']}, failed {len(outcome['failed_ids'])}"
            )

        moved_total = sum(row["moved"] for row in per_company)
        logger.info(f"[DISTRIBUTION] Run finished: {moved_total} leads moved, partial={partial}")

        return {
            "status": "partial" if partial else "completed",
            "moved_total": moved_total,
            "per_company": per_company,
            "skipped": skipped,
            "events": events,
            "rotation": rotation,
            "ignored_companies": ignored,
            "started_at": started_at,
            "finished_at": now_iso(),
        }

    async def _allocate_company(self, policy: CompanyPolicy, day_start: str) -> Optional[Dict]:
        """
        Fills one company up to its remaining quota.
        Returns None when nothing is left to give today.
        """
        already = await self.store.count_distributed_since(policy.id, day_start)
        remaining = policy.daily_quota - already
        if remaining <= 0:
            return None

        lead_ids: List[str] = []
        failed_ids: List[str] = []
        conflicts = 0
        visited = set()
        exhausted = False

        while len(lead_ids) < remaining:
            batch = await self.store.fetch_candidates(remaining - len(lead_ids), visited)
            if not batch:
                exhausted = True
                break

            for lead in batch:
                if len(lead_ids) >= remaining:
                    break
                visited.add(lead["id"])

                result = await self._assign(lead, policy.id)
                if result == ASSIGNED:
                    lead_ids.append(lead["id"])
                elif result == TAKEN:
                    conflicts += 1
                else:
                    failed_ids.append(lead["id"])

        return {
            "remaining": remaining,
            "lead_ids": lead_ids,
            "failed_ids": failed_ids,
            "conflicts": conflicts,
            "exhausted": exhausted,
        }

    async def _assign(self, lead: Dict, company_id: str) -> str:
        lead_id = lead["id"]

        try:
            claimed = await self._with_retry(self.store.claim_lead, lead_id, company_id)
        except PyMongoError as e:
            logger.error(f"[DISTRIBUTION] claim {lead_id} -> {company_id} failed: {e}")
            return FAILED

        if not claimed:
            return TAKEN

        try:
            committed = await self._with_retry(self.store.commit_lead, lead, company_id)
        except PyMongoError as e:
            logger.error(f"[DISTRIBUTION] commit {lead_id} -> {company_id} failed: {e}")
            landed = await self._rollback_quietly(lead_id, company_id)
            return ASSIGNED if landed else FAILED

        return ASSIGNED if committed else TAKEN

    async def _with_retry(self, operation, *args):
        """Retries transient store errors, re-raises the last one"""
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return await operation(*args)
            except PyMongoError as e:
                if attempt >= self.retry_attempts:
                    raise
                logger.warning(
                    f"[DISTRIBUTION] {getattr(operation, '__name__', 'store_op')} attempt {attempt}/{self.retry_attempts} failed: {e}"
                )
                if self.retry_delay > 0:
                    await asyncio.sleep(self.retry_delay)

    async def _rollback_quietly(self, lead_id: str, company_id: str) -> bool:
        """Returns True when the failed commit had in fact landed"""
        try:
            rolled_back = await self.store.rollback_commit(lead_id, company_id)
        except PyMongoError as e:
            # Left locked: the stale-lock sweep completes or releases it
            logger.error(f"[DISTRIBUTION] rollback {lead_id} failed: {e}")
            return False
        return not rolled_back
