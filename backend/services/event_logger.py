"""
Lead Pool - Event Logger

Audit trail for every sensitive lead pool action.
Single function to call from any route/service.
"""

import uuid
import logging
from typing import List, Dict
from config import now_iso

logger = logging.getLogger("event_logger")


async def log_event(
    db,
    action: str,
    entity_type: str,
    entity_id: str,
    user: str = "system",
    details: dict = None,
    related: dict = None
):
    """
    Write a single event to the event_log collection.

    Args:
        action: e.g. distribute_leads, recall_platform_leads, maintenance_on
        entity_type: lead_pool | company | settings
        entity_id: ID of the primary entity
        user: email of user performing action
        details: free-form dict (counts, reasons, old_value, new_value, etc.)
        related: linked entity IDs (company_id, lead_ids, etc.)
    """
    await db.event_log.insert_one({
        "id": str(uuid.uuid4()),
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "user": user,
        "details": details or {},
        "related": related or {},
        "created_at": now_iso()
    })


async def dispatch_events(db, events: List[Dict], user: str = "system") -> int:
    """
    Persist the events returned by a distribution run.
    An audit write failure never fails the run that produced it.
    """
    written = 0
    for event in events:
        try:
            await log_event(
                db,
                action=event.get("type", "unknown"),
                entity_type="company",
                entity_id=event.get("company_id", ""),
                user=user,
                details={"count": event.get("count", 0), "at": event.get("at")},
                related={"lead_ids": event.get("lead_ids", [])}
            )
            written += 1
        except Exception as e:
            logger.error(f"[EVENT_LOG] Failed to write {event.get('type')}: {e}")
    return written
