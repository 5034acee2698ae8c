"""Durable storage for the signed-in user session."""
from __future__ import annotations

import json
import sqlite3
import time
from pathlib import Path
from typing import Optional

from models.session import UserSession


class SessionStore:
    """Interface for session persistence; holds at most one session."""

    def load(self) -> Optional[UserSession]:
        raise NotImplementedError

    def save(self, session: UserSession) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    """Process-local store used when durability is not needed."""

    def __init__(self, session: UserSession | None = None) -> None:
        self._payload = session.to_dict() if session else None

    def load(self) -> Optional[UserSession]:
        return UserSession.from_dict(self._payload) if self._payload else None

    def save(self, session: UserSession) -> None:
        self._payload = session.to_dict()

    def clear(self) -> None:
        self._payload = None


class JSONSessionStore(SessionStore):
    """JSON-file-backed SessionStore suitable for local runs."""

    def __init__(self, base_dir: str | Path = "data/sessions") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.base_dir / "session.json"

    def load(self) -> Optional[UserSession]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text())
        except ValueError:
            # Unreadable or hand-edited file: treat as signed out.
            return None
        if not isinstance(payload, dict):
            return None
        try:
            return UserSession.from_dict(payload)
        except (ValueError, TypeError):
            return None

    def save(self, session: UserSession) -> None:
        payload = {**session.to_dict(), "updated_at": time.time()}
        self.path.write_text(json.dumps(payload, indent=2))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SQLiteSessionStore(SessionStore):
    """SQLite-backed session store for lightweight durability."""

    def __init__(self, db_path: str | Path = "data/session_store.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS user_session (
                    slot INTEGER PRIMARY KEY CHECK (slot = 1),
                    email TEXT NOT NULL,
                    trials_used INTEGER NOT NULL DEFAULT 0,
                    is_verified INTEGER NOT NULL DEFAULT 1,
                    updated_at REAL
                );
                """
            )

    def load(self) -> Optional[UserSession]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT email, trials_used, is_verified FROM user_session WHERE slot = 1"
            ).fetchone()
        if row is None:
            return None
        return UserSession(
            email=row["email"],
            trials_used=int(row["trials_used"]),
            is_verified=bool(row["is_verified"]),
        )

    def save(self, session: UserSession) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO user_session(slot, email, trials_used, is_verified, updated_at) "
                "VALUES (1, ?, ?, ?, ?)\n"
                "ON CONFLICT(slot) DO UPDATE SET email=excluded.email, trials_used=excluded.trials_used, "
                "is_verified=excluded.is_verified, updated_at=excluded.updated_at",
                (session.email, session.trials_used, int(session.is_verified), time.time()),
            )

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM user_session")


__all__ = [
    "InMemorySessionStore",
    "JSONSessionStore",
    "SQLiteSessionStore",
    "SessionStore",
]
