"""
Lead Pool - Routes (Super Admin)

Endpoints:
- GET  /lead-pool/supply                   supply / demand snapshot
- GET  /lead-pool/bad-leads                quality report of the unowned pool
- GET  /lead-pool/companies                per-company distribution status
- POST /lead-pool/distribute               manual "Distribute Now" (optional force_rotate)
- POST /lead-pool/cleanup                  remove bad unowned leads
- POST /lead-pool/recall                   recall every platform lead (confirm required)
- POST /lead-pool/force-unlock             release / complete stuck locks
- POST /lead-pool/migrate-drivers          import driver profiles into the pool
- GET|PUT /lead-pool/maintenance           distribution pause switch
- PUT  /lead-pool/companies/{id}/active    enable / disable a company

Store unreachable -> 503. Invalid input -> 400.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional
from pymongo.errors import PyMongoError

from config import get_db
from models.lead import LeadPoolError
from routes.auth import require_super_admin
from services.lead_pool import LeadPool
from services.event_logger import log_event, dispatch_events

router = APIRouter(prefix="/lead-pool", tags=["Lead Pool"])
logger = logging.getLogger("lead_pool_routes")


# ---- Models ----

class DistributeRequest(BaseModel):
    force_rotate: bool = False


class RecallRequest(BaseModel):
    confirm: bool = False


class ForceUnlockRequest(BaseModel):
    stale_after_seconds: Optional[int] = None


class MaintenanceUpdate(BaseModel):
    maintenance_mode: bool


class CompanyActiveUpdate(BaseModel):
    is_active: bool


# ---- Helpers ----

def get_lead_pool(db=Depends(get_db)) -> LeadPool:
    return LeadPool(db)


async def _guarded(label: str, call):
    """Runs a service call, maps failures to HTTP errors"""
    try:
        return await call
    except LeadPoolError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PyMongoError as e:
        logger.error(f"[LEAD_POOL] {label}: store unavailable: {e}")
        raise HTTPException(status_code=503, detail="Lead store unavailable")
    except Exception as e:
        logger.error(f"[LEAD_POOL] {label} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


async def _audit(db, action: str, entity_type: str, entity_id: str, user: dict, details: dict = None):
    try:
        await log_event(
            db,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user=user.get("email", "unknown"),
            details=details
        )
    except Exception as e:
        logger.error(f"[LEAD_POOL] audit {action} not written: {e}")


# ---- Analytics ----

@router.get("/supply")
async def get_supply(
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    """Supply / demand snapshot (read-only)"""
    return await _guarded("supply", pool.analyzer.compute_supply())


@router.get("/bad-leads")
async def get_bad_leads(
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    return await _guarded("bad_leads", pool.cleanup.get_bad_leads_analytics())


@router.get("/companies")
async def get_companies(
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    companies = await _guarded("companies", pool.reporting.get_company_distribution_status())
    return {"companies": companies, "count": len(companies)}


# ---- Actions ----

@router.post("/distribute")
async def distribute_now(
    data: Optional[DistributeRequest] = None,
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    """Manual distribution round (same engine as the daily job)"""
    force_rotate = data.force_rotate if data else False
    result = await _guarded("distribute", pool.engine.distribute(force_rotate=force_rotate))

    await dispatch_events(pool.db, result["events"], user=user.get("email", "unknown"))
    await _audit(pool.db, "distribute_leads", "lead_pool", "distribution", user, {
        "status": result["status"],
        "moved_total": result["moved_total"],
        "skipped": len(result["skipped"]),
        "rotated_back": (result["rotation"] or {}).get("returned", 0),
        "force_rotate": force_rotate,
    })
    return result


@router.post("/cleanup")
async def cleanup_bad_leads(
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    result = await _guarded("cleanup", pool.cleanup.cleanup_bad_leads())
    await _audit(pool.db, "cleanup_bad_leads", "lead_pool", "cleanup", user, {
        "removed_count": result["removed_count"],
        "by_reason": result["by_reason"],
    })
    return result


@router.post("/recall")
async def recall_platform_leads(
    data: Optional[RecallRequest] = None,
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    """Destructive: every company loses its platform leads"""
    if not data or not data.confirm:
        raise HTTPException(status_code=400, detail="Recall requires confirm=true")

    result = await _guarded("recall", pool.recall.recall_all())
    await _audit(pool.db, "recall_platform_leads", "lead_pool", "recall", user, {
        "deleted_count": result["deleted_count"],
        "unlocked_count": result["unlocked_count"],
    })
    return result


@router.post("/force-unlock")
async def force_unlock(
    data: Optional[ForceUnlockRequest] = None,
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    stale_after = data.stale_after_seconds if data else None
    result = await _guarded("force_unlock", pool.recall.force_unlock_pool(stale_after))
    await _audit(pool.db, "force_unlock_pool", "lead_pool", "force_unlock", user, {
        "unlocked_count": result["unlocked_count"],
        "completed_count": result["completed_count"],
    })
    return result


@router.post("/migrate-drivers")
async def migrate_drivers(
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    result = await _guarded("migrate_drivers", pool.migrate_drivers())
    await _audit(pool.db, "migrate_drivers", "lead_pool", "migration", user, {
        "imported": result["imported"],
        "skipped": result["skipped"],
    })
    return result


# ---- Switches ----

@router.get("/maintenance")
async def get_maintenance(
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    paused = await _guarded("maintenance", pool.gate.is_paused())
    return {"maintenance_mode": paused}


@router.put("/maintenance")
async def set_maintenance(
    data: MaintenanceUpdate,
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    paused = await _guarded(
        "maintenance",
        pool.gate.set_paused(data.maintenance_mode, updated_by=user.get("email", "unknown"))
    )
    await _audit(
        pool.db, "maintenance_on" if paused else "maintenance_off",
        "settings", "distribution", user, {"maintenance_mode": paused}
    )
    return {"maintenance_mode": paused}


@router.put("/companies/{company_id}/active")
async def set_company_active(
    company_id: str,
    data: CompanyActiveUpdate,
    user: dict = Depends(require_super_admin),
    pool: LeadPool = Depends(get_lead_pool)
):
    updated = await _guarded("company_active", pool.reporting.set_company_active(company_id, data.is_active))
    if not updated:
        raise HTTPException(status_code=404, detail="Company not found")

    await _audit(pool.db, "company_activated" if data.is_active else "company_deactivated",
                 "company", company_id, user, {"is_active": data.is_active})
    return {"success": True, "company_id": company_id, "is_active": data.is_active}
