# cartshare/domain/schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cartshare.utils.settings import SHARE_DEFAULT_EXPIRY_DAYS


# =====================================================
# SNAPSHOT - zamrozony w momencie udostepnienia
# =====================================================
class CartLineItem(BaseModel):
    """Pozycja koszyka w snapshocie."""

    model_config = ConfigDict(frozen=True)

    product_id: str = Field(..., min_length=1)
    name: str
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    image_url: str | None = None


class AppliedPromotion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    discount_amount: Decimal = Decimal("0.00")


class CartSnapshot(BaseModel):
    """
    Caly koszyk tak jak widzial go wlasciciel: pozycje, rabaty, promocje,
    punkty lojalnosciowe i total. Po zapisie nigdy nie jest zmieniany.
    """

    model_config = ConfigDict(frozen=True)

    items: Tuple[CartLineItem, ...] = Field(..., min_length=1)
    subtotal: Decimal = Field(..., ge=0)
    discount_amount: Decimal = Decimal("0.00")
    promotion_discount: Decimal = Decimal("0.00")
    total: Decimal = Field(..., ge=0)
    applied_promotions: Tuple[AppliedPromotion, ...] = ()
    loyalty_points_used: int = Field(0, ge=0)
    loyalty_discount: Decimal = Decimal("0.00")


class ShareMetadata(BaseModel):
    """Ustawienia udostepnienia podane przez wlasciciela."""

    message: str | None = None
    expires_in_days: int = SHARE_DEFAULT_EXPIRY_DAYS
    owner_display_name: str | None = Field(None, max_length=200)


# =====================================================
# REQUESTS
# =====================================================
class ShareCartIn(BaseModel):
    """Schema dla udostepnienia koszyka."""

    owner_ref: str | None = Field(None, description="ID zalogowanego uzytkownika")
    owner_session_ref: str | None = Field(None, description="ID sesji goscia")
    cart: CartSnapshot
    metadata: ShareMetadata = Field(default_factory=ShareMetadata)

    @model_validator(mode="after")
    def _owner_present(self):
        if not self.owner_ref and not self.owner_session_ref:
            raise ValueError("owner_ref or owner_session_ref is required")
        return self


class PaymentCompleteIn(BaseModel):
    """Callback z modulu zamowien po udanej platnosci."""

    paid_by_ref: str = Field(..., min_length=1)
    order_ref: str = Field(..., min_length=1)


# =====================================================
# RESPONSES
# =====================================================
class ShareableCartOut(BaseModel):
    id: str
    share_token: str
    share_url: str
    owner_ref: str | None = None
    owner_session_ref: str | None = None
    cart: CartSnapshot
    metadata: ShareMetadata
    status: str
    expires_at: datetime
    paid_by_ref: str | None = None
    paid_at: datetime | None = None
    order_ref: str | None = None
    access_count: int
    last_accessed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ResolvedCartOut(BaseModel):
    """To co widzi odbiorca linku."""

    share_token: str
    cart: CartSnapshot
    metadata: ShareMetadata
    status: str
    payable: bool
    expires_at: datetime
    paid_at: datetime | None = None
    access_count: int


class PaymentOutcomeOut(BaseModel):
    completed: bool
    status: str
    message: str
    order_ref: str | None = None


class NotificationOut(BaseModel):
    id: str
    category: str
    cart_id: str
    share_token: str
    message: str
    timestamp: datetime


class AnalyticsRowOut(BaseModel):
    date: date
    total_created: int
    total_paid: int
    total_expired: int
    avg_access_count: float
    total_revenue: Decimal


class SweepOut(BaseModel):
    expired: int


class PurgeOut(BaseModel):
    deleted: int


class ShareableCartList(BaseModel):
    items: List[ShareableCartOut]
