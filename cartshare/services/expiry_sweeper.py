# cartshare/services/expiry_sweeper.py
from datetime import timedelta

from sqlalchemy.orm import Session

from cartshare.domain.lifecycle import CartStatus
from cartshare.repos.shareable_cart_repo import ShareableCartRepo
from cartshare.utils.clock import Clock, utcnow
from cartshare.utils.logging import get_logger
from cartshare.utils.settings import SHARE_PURGE_PAID, SHARE_RETENTION_DAYS

logger = get_logger(__name__)


class ExpirySweeper:
    """
    Przestawia active po terminie na expired jednym UPDATE.
    Poprawnosc zapewnia juz leniwe sprawdzenie przy odczycie - sweeper
    trzyma zbior active maly i sprawia ze powiadomienia o wygasnieciu
    pojawiaja sie nawet jesli nikt nie kliknie linku.
    """

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.repo = ShareableCartRepo(db)
        self.clock = clock

    def sweep(self) -> int:
        now = self.clock()
        expired = self.repo.expire_overdue(now)
        self.repo.commit()

        logger.info(f"Expiry sweep: {expired} shared carts expired")
        return expired

    def purge(self, retention_days: int = SHARE_RETENTION_DAYS, include_paid: bool = SHARE_PURGE_PAID) -> int:
        """Usuwa rekordy terminalne starsze niz retention_days (higiena storage)."""
        statuses = [CartStatus.EXPIRED.value, CartStatus.CANCELLED.value]
        #paid trzymamy domyslnie - wskazuja na zamowienia
        if include_paid:
            statuses.append(CartStatus.PAID.value)

        before = self.clock() - timedelta(days=retention_days)
        deleted = self.repo.purge_terminal(statuses, before)
        self.repo.commit()

        logger.info(f"Retention purge: {deleted} shared carts deleted (older than {retention_days} days)")
        return deleted
