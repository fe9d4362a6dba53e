import pytest

from cartshare.domain.errors import AlreadyFinalized
from cartshare.domain.lifecycle import TERMINAL_STATES, CartEvent, CartStatus, is_terminal, next_status


@pytest.mark.parametrize(
    "event, expected",
    [
        (CartEvent.PAY, CartStatus.PAID),
        (CartEvent.CANCEL, CartStatus.CANCELLED),
        (CartEvent.EXPIRE, CartStatus.EXPIRED),
    ],
)
def test_active_transitions(event, expected):
    assert next_status("active", event) == expected


@pytest.mark.parametrize("status", ["paid", "cancelled", "expired"])
@pytest.mark.parametrize("event", list(CartEvent))
def test_terminal_states_reject_every_event(status, event):
    with pytest.raises(AlreadyFinalized) as exc:
        next_status(status, event)

    assert exc.value.status == status


def test_no_transition_leads_back_to_active():
    for status in TERMINAL_STATES:
        assert is_terminal(status.value)
    assert not is_terminal("active")


def test_already_paid_message_is_user_facing():
    assert AlreadyFinalized("paid").message == "This cart was already paid for."
