"""Unit tests for session persistence backends."""

from pathlib import Path

import pytest

from memory.entitlement import EntitlementGate
from memory.session_store import InMemorySessionStore, JSONSessionStore, SQLiteSessionStore
from models.session import UserSession


@pytest.mark.parametrize(
    "factory",
    [
        lambda tmp: InMemorySessionStore(),
        lambda tmp: JSONSessionStore(base_dir=tmp / "sessions"),
        lambda tmp: SQLiteSessionStore(db_path=tmp / "db" / "session.db"),
    ],
    ids=["memory", "json", "sqlite"],
)
def test_session_store_roundtrip(tmp_path: Path, factory) -> None:
    store = factory(tmp_path)
    assert store.load() is None

    store.save(UserSession(email="ava@example.com", trials_used=1))
    loaded = store.load()
    assert loaded == UserSession(email="ava@example.com", trials_used=1, is_verified=True)

    store.save(UserSession(email="ben@example.com"))
    assert store.load().email == "ben@example.com"

    store.clear()
    assert store.load() is None


def test_json_store_survives_restart(tmp_path: Path) -> None:
    JSONSessionStore(base_dir=tmp_path).save(UserSession(email="ava@example.com", trials_used=1))

    reopened = JSONSessionStore(base_dir=tmp_path)

    assert reopened.load().trials_used == 1


def test_unreadable_json_session_is_treated_as_signed_out(tmp_path: Path) -> None:
    store = JSONSessionStore(base_dir=tmp_path)
    store.path.write_text("{not json")

    assert store.load() is None


def test_user_session_requires_email_and_clamps_trials() -> None:
    with pytest.raises(ValueError):
        UserSession(email="   ")
    assert UserSession(email="a@b.c", trials_used=-3).trials_used == 0


@pytest.mark.parametrize("content", ["[1, 2]", '"text"', "42", "null"])
def test_non_object_json_session_is_treated_as_signed_out(tmp_path: Path, content: str) -> None:
    store = JSONSessionStore(base_dir=tmp_path)
    store.path.write_text(content)

    assert store.load() is None
    assert EntitlementGate(store).session is None
