import os

#modulowy engine ma nie dotykac postgresa w testach
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from cartshare.data.database import Base, make_engine, make_session_factory
from cartshare.data.models import ShareableCartModel
from cartshare.domain.schemas import AppliedPromotion, CartLineItem, CartSnapshot, ShareMetadata
from cartshare.services.shareable_cart_service import ShareableCartService


class FakeClock:
    """Symulowany czas - testy przesuwaja go o dni / godziny."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'cartshare.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def service(db, clock):
    return ShareableCartService(db, clock=clock)


@pytest.fixture
def snapshot():
    """3 pozycje, razem 150.00."""
    return CartSnapshot(
        items=(
            CartLineItem(product_id="p-1", name="Keyboard", quantity=1, unit_price=Decimal("60.00")),
            CartLineItem(product_id="p-2", name="Mouse", quantity=2, unit_price=Decimal("25.00")),
            CartLineItem(product_id="p-3", name="Mouse pad", quantity=1, unit_price=Decimal("50.00")),
        ),
        subtotal=Decimal("160.00"),
        promotion_discount=Decimal("10.00"),
        total=Decimal("150.00"),
        applied_promotions=(
            AppliedPromotion(id="promo-1", name="Spring sale", discount_amount=Decimal("10.00")),
        ),
    )


@pytest.fixture
def share(service, snapshot):
    """Udostepnia koszyk wlasciciela owner-1, zwraca dict z serwisu."""

    def _share(days: int = 7, owner_ref: str = "owner-1", message: str | None = None):
        return service.share_cart(
            cart=snapshot,
            metadata=ShareMetadata(expires_in_days=days, message=message),
            owner_ref=owner_ref,
        )

    return _share


@pytest.fixture
def reload(db):
    """Swiezy odczyt rekordu z bazy (po zapisach z innych sesji)."""

    def _reload(cart_id: str) -> ShareableCartModel:
        db.rollback()
        db.expire_all()
        return db.get(ShareableCartModel, cart_id)

    return _reload
