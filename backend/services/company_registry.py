"""
Lead Pool - Company registry (MongoDB adapter)

Companies are read as CompanyPolicy value objects.
Malformed documents are skipped and counted.
"""

import logging
from typing import List, Tuple
from models.company import CompanyPolicy

logger = logging.getLogger("company_registry")


class CompanyRegistry:

    def __init__(self, db):
        self.db = db

    async def load_policies(self) -> Tuple[List[CompanyPolicy], int]:
        """
        All companies sorted by id (stable tie-break across runs).

        Returns:
            (policies, ignored_count)
        """
        docs = await self.db.companies.find({}, {"_id": 0}).to_list(None)

        policies = []
        ignored = 0
        for doc in docs:
            policy = CompanyPolicy.from_document(doc)
            if policy is None:
                ignored += 1
                logger.warning(f"[REGISTRY] Malformed company document skipped: {str(doc)[:120]}")
                continue
            policies.append(policy)

        policies.sort(key=lambda p: p.id)
        return policies, ignored

    async def set_active(self, company_id: str, is_active: bool) -> bool:
        """Returns False when the company does not exist"""
        result = await self.db.companies.update_one(
            {"id": company_id},
            {"$set": {"is_active": bool(is_active)}}
        )
        return result.matched_count == 1
