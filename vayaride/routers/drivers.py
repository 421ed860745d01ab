"""Driver admin API — listing, review (approve/reject) and dashboard PIN check."""

import logging
import uuid

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.config import settings
from vayaride.db.database import get_db
from vayaride.models.driver import Driver
from vayaride.schemas.driver import (
    DriverResponse,
    PinVerifyRequest,
    PinVerifyResponse,
    ReviewAction,
)
from vayaride.services.credentials import check_pin
from vayaride.services.exceptions import NotFoundError, ValidationError
from vayaride.services.onboarding import get_driver
from vayaride.services.review import review_driver

logger = logging.getLogger(__name__)


async def require_admin_key(x_admin_key: str | None = Header(None)):
    if settings.ADMIN_API_KEY and x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=401, detail="Invalid admin key")


router = APIRouter(dependencies=[Depends(require_admin_key)])


# ── GET /api/drivers ──────────────────────────────────────

@router.get("/", response_model=list[DriverResponse])
async def list_drivers(
    status: str | None = Query(None, description="Filter by status: pending, approved, rejected"),
    skip: int = 0,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
):
    query = select(Driver).order_by(Driver.created_at.desc())
    if status:
        query = query.where(Driver.status == status)
    result = await db.execute(query.offset(skip).limit(limit))
    return result.scalars().all()


# ── POST /api/drivers/pin/verify ──────────────────────────

@router.post("/pin/verify", response_model=PinVerifyResponse)
async def verify_pin(data: PinVerifyRequest, db: AsyncSession = Depends(get_db)):
    """Dashboard login check: the PIN must match and must not have expired."""
    driver = await get_driver(db, data.chat_id)
    if not driver or driver.status != "approved":
        return PinVerifyResponse(valid=False)
    return PinVerifyResponse(valid=check_pin(data.pin, driver.pin_hash, driver.pin_expires_at))


# ── GET /api/drivers/{id} ─────────────────────────────────

@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver_by_id(driver_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    driver = await db.get(Driver, driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return driver


# ── PUT /api/drivers/{id}/review ──────────────────────────

@router.put("/{driver_id}/review", response_model=DriverResponse)
async def review(
    driver_id: uuid.UUID,
    data: ReviewAction,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a driver. Approval starts the PIN step in the driver bot."""
    try:
        driver = await review_driver(
            db,
            driver_id,
            data.action,
            request.app.state.driver_bot,
            request.app.state.sessions,
            data.admin_note,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return driver
