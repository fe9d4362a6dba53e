# cartshare/api/routers/notifications.py
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cartshare.api.dependencies import get_clock
from cartshare.data.database import get_db
from cartshare.domain.errors import TransientStoreError
from cartshare.domain.schemas import NotificationOut
from cartshare.services.notification_service import NotificationService
from cartshare.utils.clock import Clock

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=List[NotificationOut])
def notifications_for(
    owner_ref: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Feed odpytywany przez klienta wlasciciela (polling)."""
    svc = NotificationService(db, clock=clock)
    try:
        return [asdict(n) for n in svc.notifications_for(owner_ref)]
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)
