# cartshare/services/notification_service.py
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List

from sqlalchemy.orm import Session

from cartshare.data.models.shareable_cart import ShareableCartModel
from cartshare.domain.lifecycle import CartStatus
from cartshare.repos.shareable_cart_repo import ShareableCartRepo
from cartshare.utils.clock import Clock, as_utc, utcnow
from cartshare.utils.logging import get_logger
from cartshare.utils.settings import (
    SHARE_NOTIFY_ACCESS_HOURS,
    SHARE_NOTIFY_ACCESS_THRESHOLD,
    SHARE_NOTIFY_EXPIRED_HOURS,
    SHARE_NOTIFY_PAID_HOURS,
)

logger = get_logger(__name__)

PAID = "paid"
EXPIRED = "expired"
ACCESSED = "accessed"


@dataclass(frozen=True)
class NotificationWindows:
    paid: timedelta = field(default_factory=lambda: timedelta(hours=SHARE_NOTIFY_PAID_HOURS))
    expired: timedelta = field(default_factory=lambda: timedelta(hours=SHARE_NOTIFY_EXPIRED_HOURS))
    accessed: timedelta = field(default_factory=lambda: timedelta(hours=SHARE_NOTIFY_ACCESS_HOURS))
    access_threshold: int = SHARE_NOTIFY_ACCESS_THRESHOLD


@dataclass(frozen=True)
class Notification:
    id: str
    category: str
    cart_id: str
    share_token: str
    message: str
    timestamp: datetime


def _recent(ts: datetime | None, now: datetime, window: timedelta) -> bool:
    return ts is not None and now - ts <= window


def derive_notifications(
    carts: Iterable[ShareableCartModel],
    now: datetime,
    windows: NotificationWindows | None = None,
) -> List[Notification]:
    """
    Powiadomienia liczone na nowo z aktualnych wierszy, bez osobnej tabeli.
    Max jedno zdarzenie na kategorie na koszyk, id = "{kategoria}_{id koszyka}",
    wiec kolejne odpytanie bez zmian daje dokladnie to samo.
    """
    windows = windows or NotificationWindows()
    events: List[Notification] = []

    for cart in carts:
        paid_at = as_utc(cart.paid_at)
        expires_at = as_utc(cart.expires_at)
        last_accessed_at = as_utc(cart.last_accessed_at)

        if cart.status == CartStatus.PAID.value and _recent(paid_at, now, windows.paid):
            payer = "a user" if cart.paid_by_ref else "someone"
            events.append(
                Notification(
                    id=f"{PAID}_{cart.id}",
                    category=PAID,
                    cart_id=cart.id,
                    share_token=cart.share_token,
                    message=f"Your shared cart was paid for by {payer}",
                    timestamp=paid_at,
                )
            )

        #czas wygasniecia = expires_at, stabilny miedzy odpytaniami
        if cart.status == CartStatus.EXPIRED.value and _recent(expires_at, now, windows.expired):
            events.append(
                Notification(
                    id=f"{EXPIRED}_{cart.id}",
                    category=EXPIRED,
                    cart_id=cart.id,
                    share_token=cart.share_token,
                    message="Your shared cart has expired",
                    timestamp=expires_at,
                )
            )

        if cart.access_count > windows.access_threshold and _recent(last_accessed_at, now, windows.accessed):
            events.append(
                Notification(
                    id=f"{ACCESSED}_{cart.id}",
                    category=ACCESSED,
                    cart_id=cart.id,
                    share_token=cart.share_token,
                    message=f"Your shared cart has been viewed {cart.access_count} times",
                    timestamp=last_accessed_at,
                )
            )

    #najnowsze pierwsze
    events.sort(key=lambda n: (n.timestamp, n.id), reverse=True)
    return events


class NotificationService:
    """
    Feed powiadomien dla wlasciciela, odpytywany przez klienta co kilkadziesiat sekund.
    Przeczytane / odrzucone trzyma klient, tutaj nic nie zapisujemy.
    """

    def __init__(self, db: Session, clock: Clock = utcnow, windows: NotificationWindows | None = None):
        self.repo = ShareableCartRepo(db)
        self.clock = clock
        self.windows = windows or NotificationWindows()

    def notifications_for(self, owner_ref: str) -> List[Notification]:
        now = self.clock()
        widest = max(self.windows.paid, self.windows.expired, self.windows.accessed)
        carts = self.repo.feed_candidates(owner_ref, since=now - widest)
        events = derive_notifications(carts, now, self.windows)

        logger.info(f"Notifications for {owner_ref}: {len(events)} events from {len(carts)} shared carts")
        return events
