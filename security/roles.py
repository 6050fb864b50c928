"""Caller roles used for rate-limit policy selection."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    GUEST = "guest"
    USER = "user"
    ADMIN = "admin"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def infer_role(identity: Optional[object]) -> Role:
    """Map an optional caller identity to exactly one role.

    No identity means a guest. Any identity that is not an admin is a user.
    """

    if identity is None:
        return Role.GUEST
    if getattr(identity, "role", None) == Role.ADMIN.value:
        return Role.ADMIN
    return Role.USER
