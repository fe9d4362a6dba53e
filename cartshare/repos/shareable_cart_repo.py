# cartshare/repos/shareable_cart_repo.py
import functools
from datetime import datetime
from typing import Iterable, List

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from cartshare.data.models.shareable_cart import ShareableCartModel
from cartshare.domain.errors import TransientStoreError
from cartshare.domain.lifecycle import CartStatus
from cartshare.utils.logging import get_logger
from cartshare.utils.retry import db_retry

logger = get_logger(__name__)

ACTIVE = CartStatus.ACTIVE.value


def _store_errors(fn):
    """Bledy polaczenia / locki -> TransientStoreError, sesja wycofana."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except (OperationalError, InterfaceError) as e:
            self.db.rollback()
            logger.warning(f"Store error in {fn.__name__}: {e}")
            raise TransientStoreError() from e

    return wrapper


class ShareableCartRepo:
    """
    Jedyne miejsce z SQL dla shareable_carts.
    Kazda zmiana stanu to pojedynczy warunkowy UPDATE na jednym wierszu,
    zwracamy rowcount - 0 znaczy ze warunek (stan) juz nie pasowal.
    Commit robi serwis.
    """

    def __init__(self, db: Session):
        self.db = db

    # =====================================================
    # QUERY
    # =====================================================
    @db_retry()
    @_store_errors
    def get_by_token(self, token: str) -> ShareableCartModel | None:
        return self.db.execute(
            select(ShareableCartModel).where(ShareableCartModel.share_token == token)
        ).scalar_one_or_none()

    @db_retry()
    @_store_errors
    def token_exists(self, token: str) -> bool:
        row = self.db.execute(
            select(ShareableCartModel.id).where(ShareableCartModel.share_token == token).limit(1)
        ).scalar()
        return row is not None

    @db_retry()
    @_store_errors
    def list_by_owner(self, owner_ref: str) -> List[ShareableCartModel]:
        return list(
            self.db.execute(
                select(ShareableCartModel)
                .where(ShareableCartModel.owner_ref == owner_ref)
                .order_by(ShareableCartModel.created_at.desc())
            ).scalars()
        )

    @db_retry()
    @_store_errors
    def feed_candidates(self, owner_ref: str, since: datetime) -> List[ShareableCartModel]:
        # tylko wiersze z jakims znacznikiem czasu w oknie, stare terminalne odpadaja
        return list(
            self.db.execute(
                select(ShareableCartModel).where(
                    ShareableCartModel.owner_ref == owner_ref,
                    or_(
                        ShareableCartModel.paid_at >= since,
                        ShareableCartModel.expires_at >= since,
                        ShareableCartModel.last_accessed_at >= since,
                    ),
                )
            ).scalars()
        )

    @db_retry()
    @_store_errors
    def created_since(self, since: datetime) -> List[ShareableCartModel]:
        return list(
            self.db.execute(
                select(ShareableCartModel).where(ShareableCartModel.created_at >= since)
            ).scalars()
        )

    # =====================================================
    # COMMANDS
    # =====================================================
    @_store_errors
    def create(self, cart: ShareableCartModel) -> ShareableCartModel:
        #IntegrityError (kolizja tokenu) idzie wyzej, serwis ponawia z nowym tokenem
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    @_store_errors
    def record_access(self, token: str, now: datetime) -> int:
        # access_count = access_count + 1 liczy baza, nie aplikacja
        # warunek: nie expired i nie po terminie jesli jeszcze active
        stmt = (
            update(ShareableCartModel)
            .where(
                ShareableCartModel.share_token == token,
                ShareableCartModel.status != CartStatus.EXPIRED.value,
                or_(
                    ShareableCartModel.status != ACTIVE,
                    ShareableCartModel.expires_at > now,
                ),
            )
            .values(
                access_count=ShareableCartModel.access_count + 1,
                last_accessed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    @_store_errors
    def mark_paid(self, token: str, paid_by_ref: str, order_ref: str, now: datetime) -> int:
        #UPDATE ... SET status='paid' ... WHERE status='active' - wygrywa dokladnie jeden
        stmt = (
            update(ShareableCartModel)
            .where(
                ShareableCartModel.share_token == token,
                ShareableCartModel.status == ACTIVE,
                ShareableCartModel.expires_at > now,
            )
            .values(
                status=CartStatus.PAID.value,
                paid_by_ref=paid_by_ref,
                paid_at=now,
                order_ref=order_ref,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    @_store_errors
    def cancel(self, token: str, owner_ref: str, now: datetime) -> int:
        stmt = (
            update(ShareableCartModel)
            .where(
                ShareableCartModel.share_token == token,
                ShareableCartModel.owner_ref == owner_ref,
                ShareableCartModel.status == ACTIVE,
                ShareableCartModel.expires_at > now,
            )
            .values(status=CartStatus.CANCELLED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    @_store_errors
    def expire_one(self, token: str, now: datetime) -> int:
        stmt = (
            update(ShareableCartModel)
            .where(
                ShareableCartModel.share_token == token,
                ShareableCartModel.status == ACTIVE,
                ShareableCartModel.expires_at <= now,
            )
            .values(status=CartStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    @_store_errors
    def expire_overdue(self, now: datetime) -> int:
        stmt = (
            update(ShareableCartModel)
            .where(
                ShareableCartModel.status == ACTIVE,
                ShareableCartModel.expires_at <= now,
            )
            .values(status=CartStatus.EXPIRED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    @_store_errors
    def purge_terminal(self, statuses: Iterable[str], before: datetime) -> int:
        stmt = (
            delete(ShareableCartModel)
            .where(
                ShareableCartModel.status.in_(list(statuses)),
                ShareableCartModel.updated_at < before,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    @_store_errors
    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
