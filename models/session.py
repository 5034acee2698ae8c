"""Signed-in user record used by the entitlement gate."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class UserSession:
    email: str
    trials_used: int = 0
    is_verified: bool = True

    def __post_init__(self) -> None:
        self.email = self.email.strip()
        if not self.email:
            raise ValueError("email is required for a session")
        self.trials_used = max(0, int(self.trials_used))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "trials_used": self.trials_used,
            "is_verified": self.is_verified,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "UserSession":
        return cls(
            email=str(payload.get("email", "")),
            trials_used=int(payload.get("trials_used", 0) or 0),
            is_verified=bool(payload.get("is_verified", True)),
        )


__all__ = ["UserSession"]
