"""
imani_session.auth.profiles

Profile Resolver.

Responsibilities:
- Turn the auth provider's current identity into a full `Actor`
  (profile joined with tenant and PIN credential).
- Answer "is this phone registered / is its PIN set" lookups.
"""

from __future__ import annotations

import pydantic

from imani_session.auth.validators import normalize_phone
from imani_session.backends.base import Backend, Row
from imani_session.domain.errors import ProfileNotFound
from imani_session.domain.models import Actor, PhoneStatus


class ProfileResolver:
    def actor_from_row(self, row: Row) -> Actor:
        if not row.get("companies"):
            # An actor always belongs to exactly one tenant.
            raise ProfileNotFound("Profile has no company")
        try:
            return Actor.from_row(row)
        except pydantic.ValidationError as e:
            raise ProfileNotFound(
                f"Profile is incomplete: {e.error_count()} invalid field(s)"
            ) from e

    async def resolve_current_actor(self, backend: Backend) -> Actor | None:
        """
        `None` means nobody is signed in, which is a normal state, not an error.
        """

        user = await backend.get_current_user()
        if user is None:
            return None
        row = await backend.fetch_profile(user.id)
        if row is None:
            raise ProfileNotFound()
        return self.actor_from_row(row)

    async def check_phone_number(
        self, backend: Backend, *, phone_number: str, dial_code: str | None = None
    ) -> PhoneStatus:
        row = await backend.fetch_profile_by_phone(normalize_phone(phone_number, dial_code))
        if row is None:
            return PhoneStatus(is_registered=False, is_pin_set=False)
        actor = self.actor_from_row(row)
        return PhoneStatus(is_registered=True, is_pin_set=actor.pin_set, actor=actor)
