# cartshare/data/models/shareable_cart.py
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, JSON, String
from sqlalchemy.orm import validates

from cartshare.data.database import Base


class ShareableCartModel(Base):
    __tablename__ = "shareable_carts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    share_token = Column(String(64), nullable=False, unique=True)

    #wlasciciel: zalogowany user albo sesja goscia
    owner_ref = Column(String(64), nullable=True, index=True)
    owner_session_ref = Column(String(128), nullable=True)

    cart_snapshot = Column(JSON, nullable=False)
    share_metadata = Column(JSON, nullable=False, default=dict)

    status = Column(String(16), nullable=False, default="active", index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    #ustawiane razem, tylko przy active -> paid
    paid_by_ref = Column(String(64), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    order_ref = Column(String(64), nullable=True)

    access_count = Column(Integer, nullable=False, default=0)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'paid', 'cancelled', 'expired')",
            name="ck_shareable_carts_status",
        ),
        Index("ix_shareable_carts_status_expires", "status", "expires_at"),
    )

    @validates("share_token", "cart_snapshot")
    def _write_once(self, key, value):
        if getattr(self, key) is not None:
            raise ValueError(f"{key} is write-once")
        return value
