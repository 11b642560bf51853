"""
Lead Pool - Routes Auth
Session lookup (bearer token -> sessions -> users) and role guards.
Sessions are issued by the identity service; this API only reads them.
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import get_db, now_iso

router = APIRouter(prefix="/auth", tags=["Auth"])
security = HTTPBearer(auto_error=False)

SUPER_ADMIN = "super_admin"


# ==================== HELPERS ====================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db=Depends(get_db)
):
    """Logged-in user from the bearer token."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    session = await db.sessions.find_one({
        "token": credentials.credentials,
        "expires_at": {"$gt": now_iso()}
    })

    if not session:
        raise HTTPException(status_code=401, detail="Session expired")

    user = await db.users.find_one(
        {"id": session["user_id"]},
        {"_id": 0, "password": 0}
    )

    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.get("is_active", user.get("active", True)):
        raise HTTPException(status_code=403, detail="Account disabled")

    return user


async def require_super_admin(user: dict = Depends(get_current_user)):
    """super_admin access only."""
    if user.get("role") != SUPER_ADMIN:
        raise HTTPException(status_code=403, detail="Super Admin only")
    return user


# ==================== SESSION ====================

@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    return user
