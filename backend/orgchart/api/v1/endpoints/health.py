from __future__ import annotations

from fastapi import APIRouter, Depends

from orgchart.core.config import settings
from orgchart.core.dependencies import get_current_user
from orgchart.models.auth import UserInfo
from orgchart.services.organization_service import organization_service

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    services: dict[str, str] = {
        "storage": "ok" if organization_service.initialized else "not_initialized",
    }
    all_ok = all(v == "ok" for v in services.values())

    return {
        "status": "healthy" if all_ok else "degraded",
        "version": settings.APP_VERSION,
        "services": services,
    }


@router.get("/protected")
async def health_protected(user: UserInfo = Depends(get_current_user)):
    return {"status": "ok", "user": user.model_dump()}


@router.get("/ready")
async def readiness_probe():
    return {"ready": organization_service.initialized}
