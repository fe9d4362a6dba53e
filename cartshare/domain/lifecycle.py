# cartshare/domain/lifecycle.py
"""
Maszyna stanow shared cart.

    active --pay-->    paid
    active --cancel--> cancelled
    active --expire--> expired

Wszystkie stany poza `active` sa terminalne, nie ma powrotu do `active`.
Tabela mowi co jest legalne; faktyczna ochrona przed wyscigiem to
warunkowy UPDATE w repo (`... WHERE status = 'active'`).
"""
from enum import Enum

from cartshare.domain.errors import AlreadyFinalized


class CartStatus(str, Enum):
    ACTIVE = "active"
    PAID = "paid"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class CartEvent(str, Enum):
    PAY = "pay"
    CANCEL = "cancel"
    EXPIRE = "expire"


TERMINAL_STATES = frozenset({CartStatus.PAID, CartStatus.CANCELLED, CartStatus.EXPIRED})

TRANSITIONS: dict[tuple[CartStatus, CartEvent], CartStatus] = {
    (CartStatus.ACTIVE, CartEvent.PAY): CartStatus.PAID,
    (CartStatus.ACTIVE, CartEvent.CANCEL): CartStatus.CANCELLED,
    (CartStatus.ACTIVE, CartEvent.EXPIRE): CartStatus.EXPIRED,
}


def is_terminal(status: str) -> bool:
    return CartStatus(status) in TERMINAL_STATES


def next_status(current: str, event: CartEvent) -> CartStatus:
    current = CartStatus(current)
    target = TRANSITIONS.get((current, event))
    if target is None:
        raise AlreadyFinalized(current.value)
    return target
