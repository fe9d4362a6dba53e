# cartshare/services/shareable_cart_service.py
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cartshare.data.models.shareable_cart import ShareableCartModel
from cartshare.domain.errors import (
    AlreadyFinalized,
    Expired,
    InvalidMetadata,
    NotFound,
    NotOwner,
    TransientStoreError,
)
from cartshare.domain.lifecycle import CartEvent, CartStatus, is_terminal, next_status
from cartshare.domain.schemas import CartSnapshot, ShareMetadata
from cartshare.repos.shareable_cart_repo import ShareableCartRepo
from cartshare.services.token_service import TokenGenerator, build_share_url
from cartshare.utils.clock import Clock, as_utc, utcnow
from cartshare.utils.logging import get_logger, token_hint
from cartshare.utils.settings import (
    SHARE_ALLOWED_EXPIRY_DAYS,
    SHARE_MESSAGE_MAX_LENGTH,
    SHARE_TOKEN_MAX_ATTEMPTS,
)

logger = get_logger(__name__)


def validate_metadata(metadata: ShareMetadata) -> ShareMetadata:
    """Sprawdza ustawienia udostepnienia, zwraca znormalizowana kopie."""
    if metadata.expires_in_days not in SHARE_ALLOWED_EXPIRY_DAYS:
        allowed = ", ".join(str(d) for d in SHARE_ALLOWED_EXPIRY_DAYS)
        raise InvalidMetadata(f"Link expiry must be one of: {allowed} days.")

    message = (metadata.message or "").strip() or None
    if message and len(message) > SHARE_MESSAGE_MAX_LENGTH:
        raise InvalidMetadata(f"Message can be at most {SHARE_MESSAGE_MAX_LENGTH} characters long.")

    return metadata.model_copy(update={"message": message})


def _is_token_collision(error: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: shareable_carts.share_token"
    # postgres: unique constraint "shareable_carts_share_token_key"
    return "share_token" in str(error.orig)


class ShareableCartService:
    """
    Use case'y dla udostepnianych koszykow.
    commands: share, resolve (liczy odczyt), complete_payment, cancel
    query: list_for_owner, analytics

    Wszystkie przejscia stanu ida przez warunkowy UPDATE w repo,
    tabela z lifecycle odrzuca tylko oczywiste przypadki wczesniej.
    """

    def __init__(
        self,
        db: Session,
        clock: Clock = utcnow,
        token_generator: TokenGenerator | None = None,
    ):
        self.repo = ShareableCartRepo(db)
        self.clock = clock
        self.token_generator = token_generator or TokenGenerator(exists=self.repo.token_exists)

    # =====================================================
    # COMMANDS
    # =====================================================
    def share_cart(
        self,
        cart: CartSnapshot,
        metadata: ShareMetadata | None = None,
        owner_ref: str | None = None,
        owner_session_ref: str | None = None,
    ) -> Dict[str, Any]:
        if not owner_ref and not owner_session_ref:
            raise InvalidMetadata("A shared cart needs an owner or a guest session.")

        metadata = validate_metadata(metadata or ShareMetadata())
        snapshot = cart.model_dump(mode="json")
        meta = metadata.model_dump(mode="json", exclude_none=True)

        now = self.clock()
        expires = now + timedelta(days=metadata.expires_in_days)

        for attempt in range(1, SHARE_TOKEN_MAX_ATTEMPTS + 1):
            token = self.token_generator.generate()
            record = ShareableCartModel(
                share_token=token,
                owner_ref=owner_ref,
                owner_session_ref=owner_session_ref,
                cart_snapshot=snapshot,
                share_metadata=meta,
                status=CartStatus.ACTIVE.value,
                expires_at=expires,
                access_count=0,
                created_at=now,
                updated_at=now,
            )
            try:
                created = self.repo.create(record)
            except IntegrityError as e:
                self.repo.rollback()
                if not _is_token_collision(e):
                    raise
                #ktos wstawil ten sam token miedzy sprawdzeniem a insertem
                logger.warning(f"Share token taken at insert, retrying (attempt {attempt})")
                continue

            logger.info(
                f"Cart shared {created.id} by {owner_ref or 'guest'}: token {token_hint(token)}, "
                f"{len(cart.items)} items, expires in {metadata.expires_in_days} days"
            )
            return self._serialize(created)

        raise TransientStoreError("Could not allocate a unique share link, please retry.")

    def resolve(self, token: str) -> Dict[str, Any]:
        """
        Odczyt linku przez odbiorce.
        active po terminie -> leniwie expired + Expired.
        paid / cancelled da sie dalej obejrzec, ale payable=False.
        Kazdy udany odczyt = access_count + 1 atomowo w bazie.
        """
        cart = self.repo.get_by_token(token)
        if not cart:
            logger.info(f"Resolve: unknown token {token_hint(token)}")
            raise NotFound()

        now = self.clock()

        if cart.status == CartStatus.EXPIRED.value:
            raise Expired()

        if self._is_overdue(cart, now):
            self._expire_lazily(token, now)
            raise Expired()

        rowcount = self.repo.record_access(token, now)

        if rowcount == 0:
            #wyscig: rekord wygasl albo zniknal miedzy odczytem a update
            self.repo.rollback()
            current = self.repo.get_by_token(token)
            if not current:
                raise NotFound()
            if current.status == CartStatus.EXPIRED.value or self._is_overdue(current, now):
                self._expire_lazily(token, now)
                raise Expired()
            raise TransientStoreError()

        self.repo.commit()

        cart = self.repo.get_by_token(token)
        logger.info(f"Shared cart {cart.id} accessed ({cart.access_count} total), status {cart.status}")

        data = self._serialize(cart)
        data["payable"] = cart.status == CartStatus.ACTIVE.value
        return data

    def complete_payment(self, token: str, paid_by_ref: str, order_ref: str) -> Dict[str, Any]:
        """
        Callback z zamowien. Tylko jedno wywolanie wygrywa active -> paid,
        reszta dostaje AlreadyFinalized (to nie jest blad systemu).
        """
        cart = self.repo.get_by_token(token)
        if not cart:
            raise NotFound()

        now = self.clock()

        #wygasly przez sweeper czy leniwie - odbiorca widzi to samo
        if cart.status == CartStatus.EXPIRED.value:
            raise Expired()

        try:
            next_status(cart.status, CartEvent.PAY)
        except AlreadyFinalized:
            logger.warning(f"Payment for shared cart {cart.id} rejected, already {cart.status}")
            raise

        if self._is_overdue(cart, now):
            self._expire_lazily(token, now)
            raise Expired()

        rowcount = self.repo.mark_paid(token, paid_by_ref=paid_by_ref, order_ref=order_ref, now=now)

        if rowcount == 0:
            self.repo.rollback()
            current = self.repo.get_by_token(token)
            if not current:
                raise NotFound()
            if current.status == CartStatus.EXPIRED.value or self._is_overdue(current, now):
                self._expire_lazily(token, now)
                raise Expired()
            logger.warning(f"Payment race lost for shared cart {current.id}, status {current.status}")
            raise AlreadyFinalized(current.status)

        self.repo.commit()

        cart = self.repo.get_by_token(token)
        logger.info(f"Shared cart {cart.id} paid by {paid_by_ref}, order {order_ref}")
        return self._serialize(cart)

    def cancel(self, token: str, owner_ref: str) -> Dict[str, Any]:
        cart = self.repo.get_by_token(token)
        if not cart:
            raise NotFound()

        if not owner_ref or cart.owner_ref != owner_ref:
            raise NotOwner()

        now = self.clock()
        next_status(cart.status, CartEvent.CANCEL)

        if self._is_overdue(cart, now):
            self._expire_lazily(token, now)
            raise AlreadyFinalized(CartStatus.EXPIRED.value)

        rowcount = self.repo.cancel(token, owner_ref=owner_ref, now=now)

        if rowcount == 0:
            self.repo.rollback()
            current = self.repo.get_by_token(token)
            if not current:
                raise NotFound()
            if current.status == CartStatus.ACTIVE.value and self._is_overdue(current, now):
                self._expire_lazily(token, now)
                raise AlreadyFinalized(CartStatus.EXPIRED.value)
            raise AlreadyFinalized(current.status)

        self.repo.commit()

        cart = self.repo.get_by_token(token)
        logger.info(f"Shared cart {cart.id} cancelled by owner {owner_ref}")
        return self._serialize(cart)

    # =====================================================
    # QUERY
    # =====================================================
    def list_for_owner(self, owner_ref: str) -> List[Dict[str, Any]]:
        return [self._serialize(c) for c in self.repo.list_by_owner(owner_ref)]

    def analytics(self, days: int = 30) -> List[Dict[str, Any]]:
        """Statystyki dzienne: utworzone, oplacone, wygasle, srednia odslon, przychod."""
        since = self.clock() - timedelta(days=days)
        rows: Dict[Any, Dict[str, Any]] = defaultdict(
            lambda: {
                "total_created": 0,
                "total_paid": 0,
                "total_expired": 0,
                "access_sum": 0,
                "total_revenue": Decimal("0.00"),
            }
        )

        for cart in self.repo.created_since(since):
            day = as_utc(cart.created_at).date()
            row = rows[day]
            row["total_created"] += 1
            row["access_sum"] += cart.access_count
            if cart.status == CartStatus.PAID.value:
                row["total_paid"] += 1
                row["total_revenue"] += Decimal(str(cart.cart_snapshot.get("total", "0")))
            elif cart.status == CartStatus.EXPIRED.value:
                row["total_expired"] += 1

        return [
            {
                "date": day,
                "total_created": row["total_created"],
                "total_paid": row["total_paid"],
                "total_expired": row["total_expired"],
                "avg_access_count": row["access_sum"] / row["total_created"],
                "total_revenue": row["total_revenue"],
            }
            for day, row in sorted(rows.items(), reverse=True)
        ]

    # =====================================================
    # HELPERS
    # =====================================================
    @staticmethod
    def _is_overdue(cart: ShareableCartModel, now: datetime) -> bool:
        return not is_terminal(cart.status) and now >= as_utc(cart.expires_at)

    def _expire_lazily(self, token: str, now: datetime) -> None:
        rowcount = self.repo.expire_one(token, now)
        self.repo.commit()
        if rowcount:
            logger.info(f"Shared cart {token_hint(token)} expired on access")

    @staticmethod
    def _serialize(cart: ShareableCartModel) -> Dict[str, Any]:
        #dict przeksztalcany w jsona przez response_model
        return {
            "id": cart.id,
            "share_token": cart.share_token,
            "share_url": build_share_url(cart.share_token),
            "owner_ref": cart.owner_ref,
            "owner_session_ref": cart.owner_session_ref,
            "cart": cart.cart_snapshot,
            "metadata": cart.share_metadata or {},
            "status": cart.status,
            "expires_at": as_utc(cart.expires_at),
            "paid_by_ref": cart.paid_by_ref,
            "paid_at": as_utc(cart.paid_at),
            "order_ref": cart.order_ref,
            "access_count": cart.access_count,
            "last_accessed_at": as_utc(cart.last_accessed_at),
            "created_at": as_utc(cart.created_at),
            "updated_at": as_utc(cart.updated_at),
        }
