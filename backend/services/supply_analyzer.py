"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Supply / Demand analyzer                                        ║
║                                                                              ║
║  READ-ONLY snapshot. Fail-open per source (leads, companies, copies):        ║
║  a failing source nulls its own section and is listed in _errors.            ║
║                                                                              ║
║  supply.available_now = total_in_pool - locked - distributed_from_pool       ║
║  health.gap           = available_now - demand.total_daily_quota             ║
║  health.status        = "deficit" if gap < 0 else "surplus"                  ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from typing import Dict
from pydantic import ValidationError

from config import now_iso
from models.lead import PoolLead, PoolState

logger = logging.getLogger("supply_analyzer")


class SupplyAnalyzer:

    def __init__(self, store, registry):
        self.store = store
        self.registry = registry

    async def compute_supply(self) -> Dict:
        result = {
            "supply": None,
            "distribution": {
                "distributed_from_pool": None,
                "total_distributed_in_circulation": None,
                "total_private_uploads": None,
            },
            "demand": None,
            "health": None,
            "ignored": {"leads": 0, "companies": 0},
            "_errors": [],
        }

        # ═══════════════════════════════════════════════════════════
        # 1. POOL LEADS
        # ═══════════════════════════════════════════════════════════
        try:
            docs = await self.store.scan_platform_leads()
            counts = {state.value: 0 for state in PoolState}
            ignored = 0
            for doc in docs:
                try:
                    lead = PoolLead.model_validate(doc)
                except ValidationError:
                    ignored += 1
                    continue
                counts[lead.pool_state.value] += 1

            total = sum(counts.values())
            result["supply"] = {
                "total_in_pool": total,
                "available_now": total - counts[PoolState.LOCKED.value] - counts[PoolState.DISTRIBUTED.value],
                "locked": counts[PoolState.LOCKED.value],
            }
            result["distribution"]["distributed_from_pool"] = counts[PoolState.DISTRIBUTED.value]
            result["ignored"]["leads"] = ignored
        except Exception as e:
            logger.error(f"[SUPPLY] leads failed: {e}")
            result["_errors"].append("leads")

        # ═══════════════════════════════════════════════════════════
        # 2. COMPANY DEMAND
        # ═══════════════════════════════════════════════════════════
        try:
            policies, ignored = await self.registry.load_policies()
            active = [p for p in policies if p.is_active]
            result["demand"] = {
                "total_daily_quota": sum(p.daily_quota for p in active),
                "companies_count": len(active),
            }
            result["ignored"]["companies"] = ignored
        except Exception as e:
            logger.error(f"[SUPPLY] companies failed: {e}")
            result["_errors"].append("companies")

        # ═══════════════════════════════════════════════════════════
        # 3. COMPANY COPIES
        # ═══════════════════════════════════════════════════════════
        try:
            result["distribution"]["total_distributed_in_circulation"] = \
                await self.store.count_company_leads(None, True)
            result["distribution"]["total_private_uploads"] = \
                await self.store.count_company_leads(None, False)
        except Exception as e:
            logger.error(f"[SUPPLY] company_leads failed: {e}")
            result["_errors"].append("company_leads")

        if result["supply"] is not None and result["demand"] is not None:
            gap = result["supply"]["available_now"] - result["demand"]["total_daily_quota"]
            result["health"] = {
                "status": "deficit" if gap < 0 else "surplus",
                "gap": gap,
            }

        if result["ignored"]["leads"] or result["ignored"]["companies"]:
            logger.warning(f"[SUPPLY] malformed documents ignored: {result['ignored']}")

        result["generated_at"] = now_iso()
        return result
