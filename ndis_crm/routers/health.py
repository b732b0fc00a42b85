"""Health and readiness checks for the back-office API."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return {"status": "healthy", "service": "ndis"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    storage_ok = settings.storage_root.exists()
    return {
        "status": "ready" if storage_ok else "degraded",
        "service": "ndis",
        "storage": "ok" if storage_ok else "missing",
    }
