"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LEAD POOL - Lead model                                                      ║
║                                                                              ║
║  OWNERSHIP RULES:                                                            ║
║  1. unowned      -> no owner_company_id, no locked_at, no distributed_at     ║
║  2. locked       -> owner_company_id + locked_at                             ║
║  3. distributed  -> owner_company_id + distributed_at                        ║
║  4. A lead is owned by AT MOST one company at a time                         ║
║  5. Only the distribution / recall / cleanup engines change pool_state       ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, model_validator


class PoolState(str, Enum):
    UNOWNED = "unowned"
    LOCKED = "locked"
    DISTRIBUTED = "distributed"


class LeadOrigin(str, Enum):
    PLATFORM_POOL = "platform_pool"
    COMPANY_UPLOAD = "company_upload"
    BULK_IMPORT = "bulk_import"


# Fields cleared when a lead goes back to the pool
OWNERSHIP_FIELDS = {"owner_company_id": "", "locked_at": "", "distributed_at": ""}


class PoolLead(BaseModel):
    """
    Ownership view of a pool lead document.
    Raises ValidationError when the document breaks the ownership rules.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    origin: LeadOrigin
    pool_state: PoolState
    owner_company_id: Optional[str] = None
    locked_at: Optional[str] = None
    distributed_at: Optional[str] = None
    created_at: Optional[str] = None

    @model_validator(mode="after")
    def check_ownership(self):
        if self.pool_state == PoolState.UNOWNED:
            if self.owner_company_id or self.distributed_at:
                raise ValueError("unowned lead must not carry an owner or distribution date")
        elif self.pool_state == PoolState.LOCKED:
            if not self.owner_company_id or not self.locked_at:
                raise ValueError("locked lead requires owner_company_id and locked_at")
        elif self.pool_state == PoolState.DISTRIBUTED:
            if not self.owner_company_id or not self.distributed_at:
                raise ValueError("distributed lead requires owner_company_id and distributed_at")
        return self


class LeadPoolError(Exception):
    """Raised on invalid input to a lead pool operation"""
    pass
