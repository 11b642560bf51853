"""
Lead Pool - Maintenance gate

Process-wide pause switch for distribution.
Backed by settings key "distribution" (field maintenance_mode).
Read-through on every call: no cache, last write wins.
"""

import logging
from services.settings import get_distribution_settings, upsert_setting

logger = logging.getLogger("control_gate")


class ControlGate:
    """Injected into the engines so they never touch a global flag"""

    def __init__(self, db):
        self.db = db

    async def is_paused(self) -> bool:
        settings = await get_distribution_settings(self.db)
        return settings.get("maintenance_mode") is True

    async def set_paused(self, paused: bool, updated_by: str = "system") -> bool:
        await upsert_setting(
            self.db,
            "distribution",
            {"maintenance_mode": bool(paused)},
            updated_by=updated_by
        )
        logger.info(f"[MAINTENANCE] maintenance_mode={bool(paused)} by {updated_by}")
        return bool(paused)
