"""
Lead Pool - API Backend

Start with:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config import db, client, CORS_ORIGINS

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("lead_pool")

app = FastAPI(
    title="Lead Pool",
    description="Platform lead pool distribution & supply/demand engine",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== ROUTES ====================

from routes import auth, lead_pool
from scheduler_service import task_scheduler

app.include_router(auth.router, prefix="/api")
app.include_router(lead_pool.router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": "Lead Pool API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


# ==================== STARTUP / SHUTDOWN ====================

@app.on_event("startup")
async def startup():
    logger.info("🚀 Lead Pool API started")

    await db.sessions.create_index("token")
    await db.sessions.create_index("expires_at")
    await db.leads.create_index("id", unique=True)
    await db.leads.create_index([("origin", 1), ("pool_state", 1), ("created_at", 1), ("id", 1)])
    await db.leads.create_index([("owner_company_id", 1), ("distributed_at", 1)])
    await db.leads.create_index("phone")
    await db.company_leads.create_index([("company_id", 1), ("original_lead_id", 1)])
    await db.company_leads.create_index([("company_id", 1), ("is_platform_lead", 1)])
    await db.companies.create_index("id", unique=True)
    await db.settings.create_index("key", unique=True)
    await db.event_log.create_index("created_at")

    logger.info("✅ MongoDB indexes created")

    task_scheduler.start()


@app.on_event("shutdown")
async def shutdown():
    task_scheduler.stop()
    client.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
