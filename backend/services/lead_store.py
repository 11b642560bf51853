"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Lead store (MongoDB adapter)                                    ║
║                                                                              ║
║  Collections:                                                                ║
║  - leads          : shared pool, one doc per lead, pool_state = ownership    ║
║  - company_leads  : company-scoped copies (platform + private uploads)       ║
║                                                                              ║
║  LOCK-THEN-COMMIT PROTOCOL:                                                  ║
║  1. claim_lead   unowned -> locked(company)   (atomic, conditional)          ║
║  2. commit_lead  upsert company copy, locked(company) -> distributed         ║
║  3. rollback_commit  delete copy, locked(company) -> unowned (commit failed) ║
║  4. return_copy      delete copy, distributed(company) -> unowned (rotation) ║
║  Every transition filters on the expected current state: two writers         ║
║  racing on the same lead always produce exactly one winner.                  ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
import uuid
from typing import List, Dict, Optional

from config import now_iso
from models.lead import PoolState, LeadOrigin, OWNERSHIP_FIELDS

logger = logging.getLogger("lead_store")

PLATFORM = LeadOrigin.PLATFORM_POOL.value
UNOWNED = PoolState.UNOWNED.value
LOCKED = PoolState.LOCKED.value
DISTRIBUTED = PoolState.DISTRIBUTED.value


def build_company_copy(lead: Dict, company_id: str, distributed_at: str) -> Dict:
    """Company-scoped copy of a pool lead (safe defaults on missing fields)"""
    return {
        "company_id": company_id,
        "original_lead_id": lead["id"],
        "is_platform_lead": True,
        "status": "New Lead",
        "first_name": lead.get("first_name") or "Unknown",
        "last_name": lead.get("last_name") or "Driver",
        "email": lead.get("email") or "",
        "phone": lead.get("phone") or "",
        "source": lead.get("source") or "Platform Network",
        "distributed_at": distributed_at,
    }


class LeadStore:

    def __init__(self, db):
        self.db = db

    # ==================== POOL READS ====================

    async def fetch_candidates(self, limit: int, exclude_ids: Optional[List[str]] = None) -> List[Dict]:
        """Unowned platform leads, oldest first (created_at, then id)"""
        if limit <= 0:
            return []
        query = {"origin": PLATFORM, "pool_state": UNOWNED}
        if exclude_ids:
            query["id"] = {"$nin": list(exclude_ids)}
        cursor = self.db.leads.find(query, {"_id": 0}).sort([("created_at", 1), ("id", 1)]).limit(limit)
        return await cursor.to_list(limit)

    async def count_distributed_since(self, company_id: str, since_iso: str) -> int:
        return await self.db.leads.count_documents({
            "origin": PLATFORM,
            "pool_state": DISTRIBUTED,
            "owner_company_id": company_id,
            "distributed_at": {"$gte": since_iso}
        })

    async def scan_platform_leads(self, query: Optional[Dict] = None) -> List[Dict]:
        """Full scan of platform-pool leads (analytics, cleanup)"""
        full_query = {"origin": PLATFORM, **(query or {})}
        return await self.db.leads.find(full_query, {"_id": 0}).to_list(None)

    async def find_locked_before(self, cutoff_iso: Optional[str]) -> List[Dict]:
        query = {"pool_state": LOCKED}
        if cutoff_iso:
            query["locked_at"] = {"$lte": cutoff_iso}
        return await self.db.leads.find(query, {"_id": 0}).to_list(None)

    # ==================== OWNERSHIP TRANSITIONS ====================

    async def claim_lead(self, lead_id: str, company_id: str) -> bool:
        """
        unowned -> locked(company_id).
        Returns False if the lead was no longer unowned (another run won).
        """
        result = await self.db.leads.update_one(
            {"id": lead_id, "pool_state": UNOWNED},
            {"$set": {
                "pool_state": LOCKED,
                "owner_company_id": company_id,
                "locked_at": now_iso()
            }}
        )
        return result.modified_count == 1

    async def commit_lead(self, lead: Dict, company_id: str) -> bool:
        """
        Writes the company copy then locked(company_id) -> distributed.
        Returns False if the lock was cleared meanwhile (recall / force unlock);
        the copy written by this call is removed in that case.
        """
        distributed_at = now_iso()
        copy = build_company_copy(lead, company_id, distributed_at)

        await self.db.company_leads.update_one(
            {"company_id": company_id, "original_lead_id": lead["id"]},
            {"$set": copy, "$setOnInsert": {"id": str(uuid.uuid4()), "created_at": distributed_at}},
            upsert=True
        )

        result = await self.db.leads.update_one(
            {"id": lead["id"], "pool_state": LOCKED, "owner_company_id": company_id},
            {"$set": {"pool_state": DISTRIBUTED, "distributed_at": distributed_at},
             "$unset": {"locked_at": ""}}
        )

        if result.modified_count == 1:
            return True

        # Already completed by the stale-lock sweep
        current = await self.db.leads.find_one(
            {"id": lead["id"]}, {"_id": 0, "pool_state": 1, "owner_company_id": 1}
        )
        if current and current.get("pool_state") == DISTRIBUTED and current.get("owner_company_id") == company_id:
            return True

        logger.warning(
            f"[LEAD_STORE] commit lost for lead {lead['id']} -> {company_id}: lock cleared, removing copy"
        )
        # Only this call's copy: a later commit by the same company keeps its own
        await self.db.company_leads.delete_one({
            "company_id": company_id,
            "original_lead_id": lead["id"],
            "is_platform_lead": True,
            "distributed_at": distributed_at
        })
        return False

    async def rollback_commit(self, lead_id: str, company_id: str) -> bool:
        """
        Undoes a commit that raised: copy removed while the lock is still
        held, then locked(company_id) -> unowned.
        Returns False when the commit had landed (lead distributed to company_id).
        """
        current = await self.db.leads.find_one(
            {"id": lead_id}, {"_id": 0, "pool_state": 1, "owner_company_id": 1}
        )
        if current and current.get("pool_state") == DISTRIBUTED and current.get("owner_company_id") == company_id:
            return False

        await self.db.company_leads.delete_one({
            "company_id": company_id,
            "original_lead_id": lead_id,
            "is_platform_lead": True
        })
        await self.release_lead(lead_id, company_id)
        return True

    async def release_lead(self, lead_id: str, company_id: str) -> bool:
        """locked(company_id) -> unowned"""
        result = await self.db.leads.update_one(
            {"id": lead_id, "pool_state": LOCKED, "owner_company_id": company_id},
            {"$set": {"pool_state": UNOWNED}, "$unset": OWNERSHIP_FIELDS}
        )
        return result.modified_count == 1

    async def release_orphan_lock(self, lead_id: str) -> bool:
        """locked without owner -> unowned"""
        result = await self.db.leads.update_one(
            {"id": lead_id, "pool_state": LOCKED, "owner_company_id": {"$in": [None, ""]}},
            {"$set": {"pool_state": UNOWNED}, "$unset": OWNERSHIP_FIELDS}
        )
        return result.modified_count == 1

    async def complete_stale_commit(self, lead_id: str, company_id: str, distributed_at: str) -> bool:
        """locked(company_id) -> distributed, for a copy written before a crash"""
        result = await self.db.leads.update_one(
            {"id": lead_id, "pool_state": LOCKED, "owner_company_id": company_id},
            {"$set": {"pool_state": DISTRIBUTED, "distributed_at": distributed_at},
             "$unset": {"locked_at": ""}}
        )
        return result.modified_count == 1

    # ==================== RECALL ====================

    async def delete_platform_copies(self) -> int:
        result = await self.db.company_leads.delete_many({"is_platform_lead": True})
        return result.deleted_count

    async def reset_owned_platform_leads(self) -> int:
        """locked | distributed -> unowned, for every platform-pool lead"""
        result = await self.db.leads.update_many(
            {"origin": PLATFORM, "pool_state": {"$in": [LOCKED, DISTRIBUTED]}},
            {"$set": {"pool_state": UNOWNED}, "$unset": OWNERSHIP_FIELDS}
        )
        return result.modified_count

    # ==================== ROTATION ====================

    async def scan_platform_copies(self) -> List[Dict]:
        return await self.db.company_leads.find({"is_platform_lead": True}, {"_id": 0}).to_list(None)

    async def return_copy(self, copy: Dict, shared_history: Optional[List[Dict]] = None) -> bool:
        """
        Takes a platform lead back from a company: deletes the copy, then
        distributed(company) -> unowned.
        The copy is only deleted if its status and distributed_at are unchanged
        since it was read (a lead the company just worked on stays).
        Returns False when the copy was already gone or changed.
        """
        deleted = await self.db.company_leads.delete_one({
            "company_id": copy["company_id"],
            "original_lead_id": copy["original_lead_id"],
            "is_platform_lead": True,
            "status": copy.get("status"),
            "distributed_at": copy.get("distributed_at")
        })
        if deleted.deleted_count != 1:
            return False

        update = {"$set": {"pool_state": UNOWNED}, "$unset": OWNERSHIP_FIELDS}
        if shared_history:
            update["$push"] = {"shared_history": {"$each": shared_history}}

        await self.db.leads.update_one(
            {
                "id": copy["original_lead_id"],
                "origin": PLATFORM,
                "pool_state": DISTRIBUTED,
                "owner_company_id": copy["company_id"]
            },
            update
        )
        return True

    # ==================== CLEANUP ====================

    async def delete_unowned(self, lead_ids: List[str]) -> int:
        """Deletes only leads still unowned (never touches in-flight allocations)"""
        if not lead_ids:
            return 0
        result = await self.db.leads.delete_many({
            "id": {"$in": list(lead_ids)},
            "origin": PLATFORM,
            "pool_state": UNOWNED
        })
        return result.deleted_count

    # ==================== COMPANY COPIES ====================

    async def find_platform_copy(self, company_id: str, lead_id: str) -> Optional[Dict]:
        return await self.db.company_leads.find_one(
            {"company_id": company_id, "original_lead_id": lead_id, "is_platform_lead": True},
            {"_id": 0}
        )

    async def count_company_leads(self, company_id: Optional[str], is_platform_lead: bool) -> int:
        """company_id=None counts across every company"""
        query = {"is_platform_lead": is_platform_lead}
        if company_id is not None:
            query["company_id"] = company_id
        return await self.db.company_leads.count_documents(query)

    async def last_distribution_at(self, company_id: str) -> Optional[str]:
        docs = await self.db.company_leads.find(
            {"company_id": company_id, "is_platform_lead": True},
            {"_id": 0, "distributed_at": 1}
        ).sort("distributed_at", -1).limit(1).to_list(1)
        if not docs:
            return None
        return docs[0].get("distributed_at")
