"""
imani_session.domain.state

Immutable snapshot of one client's session state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from imani_session.domain.errors import ErrorKind
from imani_session.domain.models import Actor


@dataclass(frozen=True, slots=True)
class SessionState:
    actor: Actor | None = None
    is_loading: bool = True
    last_error: ErrorKind | None = None
    last_error_message: str | None = None
    demo_mode: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.actor is not None

    def evolve(self, **changes) -> SessionState:
        return replace(self, **changes)

    def as_dict(self) -> dict:
        return {
            "actor": self.actor.model_dump(mode="json", exclude={"pin": {"pin_hash"}})
            if self.actor
            else None,
            "is_loading": self.is_loading,
            "last_error": self.last_error.value if self.last_error else None,
            "last_error_message": self.last_error_message,
            "demo_mode": self.demo_mode,
        }
