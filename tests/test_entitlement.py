"""Sign-in and trial accounting."""

import pytest

from memory.entitlement import (
    TOP_UP_MESSAGE,
    EntitlementDeniedError,
    EntitlementGate,
    InvalidLoginError,
    NotSignedInError,
)
from memory.session_store import InMemorySessionStore


def test_login_validates_email_and_code() -> None:
    gate = EntitlementGate(InMemorySessionStore())

    with pytest.raises(InvalidLoginError):
        gate.login("not-an-email", "123456")
    with pytest.raises(InvalidLoginError, match="6-digit"):
        gate.login("ava@example.com", "12ab56")
    assert gate.session is None

    session = gate.login(" ava@example.com ", "123456")
    assert session.email == "ava@example.com"
    assert session.trials_used == 0
    assert gate.trials_left == 1


def test_trial_is_consumed_then_denied_until_top_up() -> None:
    store = InMemorySessionStore()
    gate = EntitlementGate(store)
    gate.login("ava@example.com", "123456")

    gate.ensure_can_analyze()
    gate.record_analysis()
    assert store.load().trials_used == 1
    with pytest.raises(EntitlementDeniedError) as excinfo:
        gate.ensure_can_analyze()
    assert excinfo.value.message == TOP_UP_MESSAGE

    gate.top_up()
    assert gate.trials_left == 1
    gate.ensure_can_analyze()


def test_session_is_restored_from_store_and_cleared_on_logout() -> None:
    store = InMemorySessionStore()
    EntitlementGate(store).login("ava@example.com", "654321")

    gate = EntitlementGate(store)
    assert gate.session.email == "ava@example.com"

    gate.logout()
    assert store.load() is None
    with pytest.raises(NotSignedInError):
        gate.require_session()
    assert gate.trials_left == 0
