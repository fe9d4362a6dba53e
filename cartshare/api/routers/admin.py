# cartshare/api/routers/admin.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cartshare.api.dependencies import get_clock
from cartshare.data.database import get_db
from cartshare.domain.errors import TransientStoreError
from cartshare.domain.schemas import AnalyticsRowOut, PurgeOut, SweepOut
from cartshare.services.expiry_sweeper import ExpirySweeper
from cartshare.services.shareable_cart_service import ShareableCartService
from cartshare.utils.clock import Clock
from cartshare.utils.settings import SHARE_RETENTION_DAYS

router = APIRouter(prefix="/admin/shared-carts", tags=["admin"])


@router.post("/sweep", response_model=SweepOut)
def sweep(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    try:
        return {"expired": ExpirySweeper(db, clock=clock).sweep()}
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.post("/purge", response_model=PurgeOut)
def purge(
    retention_days: int = Query(SHARE_RETENTION_DAYS, ge=1),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        return {"deleted": ExpirySweeper(db, clock=clock).purge(retention_days=retention_days)}
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.get("/analytics", response_model=List[AnalyticsRowOut])
def analytics(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    try:
        return ShareableCartService(db, clock=clock).analytics(days=days)
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)
