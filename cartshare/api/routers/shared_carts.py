# cartshare/api/routers/shared_carts.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cartshare.api.dependencies import get_clock
from cartshare.data.database import get_db
from cartshare.domain.errors import (
    AlreadyFinalized,
    Expired,
    InvalidMetadata,
    NotFound,
    NotOwner,
    TransientStoreError,
)
from cartshare.domain.schemas import (
    PaymentCompleteIn,
    PaymentOutcomeOut,
    ResolvedCartOut,
    ShareableCartList,
    ShareableCartOut,
    ShareCartIn,
)
from cartshare.services.shareable_cart_service import ShareableCartService
from cartshare.utils.clock import Clock

router = APIRouter(prefix="/shared-carts", tags=["shared-carts"])


def get_service(db: Session, clock: Clock):
    return ShareableCartService(db=db, clock=clock)


@router.post("/", response_model=ShareableCartOut, status_code=201)
def share_cart(
    payload: ShareCartIn,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    svc = get_service(db, clock)
    try:
        return svc.share_cart(
            cart=payload.cart,
            metadata=payload.metadata,
            owner_ref=payload.owner_ref,
            owner_session_ref=payload.owner_session_ref,
        )
    except InvalidMetadata as e:
        raise HTTPException(status_code=422, detail=e.message)
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.get("/", response_model=ShareableCartList)
def list_shared_carts(
    owner_ref: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    svc = get_service(db, clock)
    try:
        return {"items": svc.list_for_owner(owner_ref)}
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.get("/{token}", response_model=ResolvedCartOut)
def resolve_shared_cart(
    token: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Wejscie dla odbiorcy linku. 404 i 410 maja rozne komunikaty:
    niewazny link (popros o nowy) vs wygasly link.
    """
    svc = get_service(db, clock)
    try:
        return svc.resolve(token)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Expired as e:
        raise HTTPException(status_code=410, detail=e.message)
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)


@router.post("/{token}/payment", response_model=PaymentOutcomeOut)
def complete_payment(
    token: str,
    payload: PaymentCompleteIn,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Callback z modulu zamowien. AlreadyFinalized to zwykly wynik
    ("ktos juz zaplacil"), nie blad platnosci.
    """
    svc = get_service(db, clock)
    try:
        cart = svc.complete_payment(token, paid_by_ref=payload.paid_by_ref, order_ref=payload.order_ref)
    except AlreadyFinalized as e:
        return {"completed": False, "status": e.status, "message": e.message}
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Expired as e:
        raise HTTPException(status_code=410, detail=e.message)
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)

    return {
        "completed": True,
        "status": cart["status"],
        "message": "Payment recorded for the shared cart.",
        "order_ref": cart["order_ref"],
    }


@router.post("/{token}/cancel", response_model=ShareableCartOut)
def cancel_shared_cart(
    token: str,
    owner_ref: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    svc = get_service(db, clock)
    try:
        return svc.cancel(token, owner_ref)
    except NotOwner as e:
        raise HTTPException(status_code=403, detail=e.message)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except AlreadyFinalized as e:
        raise HTTPException(status_code=409, detail=e.message)
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=e.message)
