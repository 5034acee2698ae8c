"""Per-user trial counter gating access to outfit analysis."""
from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional

from aura_app.logging_config import get_logger, log_event
from memory.session_store import SessionStore
from models.session import UserSession

LOGGER = get_logger(__name__)

TOP_UP_MESSAGE = "Free trial used. A contribution of ₹10 is required per analysis."
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")
_OTP_PATTERN = re.compile(r"^\d{6}$")


class NotSignedInError(PermissionError):
    """Raised when an operation needs a signed-in user."""


class EntitlementDeniedError(PermissionError):
    """Raised when the user has no analysis credit left."""

    def __init__(self, message: str = TOP_UP_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class InvalidLoginError(ValueError):
    """Raised for a malformed email or one-time code."""


class EntitlementGate:
    """Owns the signed-in session and its trial counter.

    ``trials_used`` only changes through :meth:`record_analysis` (after a
    successful primary analysis) and :meth:`top_up`.
    """

    def __init__(self, store: SessionStore, free_trials: int = 1) -> None:
        self.store = store
        self.free_trials = free_trials
        self._session: Optional[UserSession] = store.load()

    @property
    def session(self) -> Optional[UserSession]:
        return self._session

    @property
    def trials_left(self) -> int:
        if self._session is None:
            return 0
        return max(0, self.free_trials - self._session.trials_used)

    def login(self, email: str, otp: str) -> UserSession:
        """Start a session for ``email``; the one-time code is checked for shape only."""

        email = (email or "").strip()
        if not _EMAIL_PATTERN.match(email):
            raise InvalidLoginError("Enter a valid email address.")
        if not _OTP_PATTERN.match((otp or "").strip()):
            raise InvalidLoginError("Please enter a valid 6-digit OTP.")
        session = self._commit(UserSession(email=email, trials_used=0))
        log_event(LOGGER, logging.INFO, "session_started", email=email)
        return session

    def logout(self) -> None:
        self.store.clear()
        self._session = None
        log_event(LOGGER, logging.INFO, "session_ended")

    def require_session(self) -> UserSession:
        if self._session is None:
            raise NotSignedInError("Sign in to continue.")
        return self._session

    def ensure_can_analyze(self) -> UserSession:
        session = self.require_session()
        if session.trials_used >= self.free_trials:
            log_event(LOGGER, logging.INFO, "entitlement_denied", trials_used=session.trials_used)
            raise EntitlementDeniedError()
        return session

    def _commit(self, session: UserSession) -> UserSession:
        """Persist ``session`` and only then make it current."""

        self.store.save(session)
        self._session = session
        return session

    def record_analysis(self) -> UserSession:
        session = self.require_session()
        updated = self._commit(replace(session, trials_used=session.trials_used + 1))
        log_event(LOGGER, logging.INFO, "trial_consumed", trials_used=updated.trials_used)
        return updated

    def top_up(self) -> UserSession:
        """Restore one analysis credit after a contribution."""

        session = self.require_session()
        updated = self._commit(replace(session, trials_used=max(0, self.free_trials - 1)))
        log_event(LOGGER, logging.INFO, "entitlement_topped_up", trials_used=updated.trials_used)
        return updated


__all__ = [
    "EntitlementDeniedError",
    "EntitlementGate",
    "InvalidLoginError",
    "NotSignedInError",
    "TOP_UP_MESSAGE",
]
