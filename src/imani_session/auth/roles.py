"""
imani_session.auth.roles

Role gating for actors held in session state.
"""

from __future__ import annotations

from imani_session.domain.errors import NotAuthenticated, PermissionDenied
from imani_session.domain.models import Actor, Role
from imani_session.domain.state import SessionState


def require_role(state: SessionState, *roles: Role | str) -> Actor:
    """
    Return the current actor if it holds one of `roles`.

    Demo mode bypasses role checks: the demo dataset is simulated and the seeded
    actor is an HR admin anyway.
    """

    actor = state.actor
    if actor is None:
        raise NotAuthenticated()
    if state.demo_mode or not roles:
        return actor
    if not actor.has_role(*roles):
        raise PermissionDenied(f"Role {actor.role.value!r} may not perform this operation")
    return actor
