"""
Lead Pool - Admin reporting

Per-company distribution status for the super-admin dashboard:
lead counts, last distribution, next scheduled distribution.
A failing company row never fails the whole table.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Optional

from config import parse_iso
from models.company import CompanyPolicy

logger = logging.getLogger("admin_reporting")


def format_countdown(seconds: int) -> str:
    """3725 -> "1h 2m", 0 or less -> "Due now" """
    if seconds <= 0:
        return "Due now"
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def describe_last(last_iso: Optional[str]) -> Optional[Dict]:
    last = parse_iso(last_iso)
    if last is None:
        return None
    return {
        "at": last.isoformat(),
        "date": last.strftime("%Y-%m-%d"),
        "time": last.strftime("%H:%M UTC"),
    }


def describe_next(policy: CompanyPolicy, last_iso: Optional[str], now: datetime = None) -> Optional[Dict]:
    """
    Next distribution = last + distribution_interval_hours (due now if never).
    None for an inactive company.
    """
    if not policy.is_active:
        return None

    now = now or datetime.now(timezone.utc)
    last = parse_iso(last_iso)
    due = now if last is None else last + timedelta(hours=policy.distribution_interval_hours)
    in_seconds = max(0, int((due - now).total_seconds()))

    return {
        "at": due.isoformat(),
        "in_seconds": in_seconds,
        "countdown": format_countdown(in_seconds),
    }


class AdminReporting:

    def __init__(self, store, registry):
        self.store = store
        self.registry = registry

    async def get_company_distribution_status(self) -> List[Dict]:
        policies, _ignored = await self.registry.load_policies()
        now = datetime.now(timezone.utc)

        rows = []
        for policy in policies:
            row = {
                "company_id": policy.id,
                "company_name": policy.company_name,
                "slug": policy.slug,
                "is_active": policy.is_active,
                "daily_quota": policy.daily_quota,
                "platform_leads_count": 0,
                "private_leads_count": 0,
                "last_distribution": None,
                "next_distribution": None,
            }
            try:
                last_iso = await self.store.last_distribution_at(policy.id)
                row["platform_leads_count"] = await self.store.count_company_leads(policy.id, True)
                row["private_leads_count"] = await self.store.count_company_leads(policy.id, False)
                row["last_distribution"] = describe_last(last_iso)
                row["next_distribution"] = describe_next(policy, last_iso, now)
            except Exception as e:
                logger.error(f"[REPORTING] {policy.id} failed: {e}")
                row["platform_leads_count"] = 0
                row["private_leads_count"] = 0
                row["_error"] = str(e)
            rows.append(row)

        rows.sort(key=lambda r: ((r["company_name"] or r["company_id"]).lower(), r["company_id"]))
        return rows

    async def set_company_active(self, company_id: str, is_active: bool) -> bool:
        updated = await self.registry.set_active(company_id, is_active)
        if updated:
            logger.info(f"[REPORTING] company {company_id} is_active={bool(is_active)}")
        return updated
