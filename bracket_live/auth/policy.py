"""Admin eligibility.

A signed-in user carries an opaque user id plus the id of their linked
external account. Admin rights come from membership of that external id in a
configured allow-list. The tournament page and the admin panel each have
their own list.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from bracket_live.config import Settings


class Role(str, Enum):
    ADMIN = "admin"
    VIEWER = "viewer"


@dataclass(frozen=True)
class UserIdentity:
    """What the identity provider tells us about the signed-in user."""

    user_id: str
    external_id: Optional[str] = None


class AdminPolicy:
    """Allow-list check for one surface."""

    def __init__(self, admin_ids: Iterable[str]):
        self.admin_ids = frozenset(admin_ids)

    @classmethod
    def for_tournament(cls, settings: Settings) -> AdminPolicy:
        return cls(settings.tournament_admins)

    @classmethod
    def for_panel(cls, settings: Settings) -> AdminPolicy:
        return cls(settings.panel_admins)

    def is_admin(self, identity: Optional[UserIdentity]) -> bool:
        if identity is None or not identity.external_id:
            return False
        return identity.external_id in self.admin_ids

    def role_for(self, identity: Optional[UserIdentity]) -> Role:
        return Role.ADMIN if self.is_admin(identity) else Role.VIEWER
