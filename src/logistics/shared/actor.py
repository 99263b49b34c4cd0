"""Credential context passed explicitly into every operation."""

from dataclasses import dataclass
from enum import Enum

from logistics.shared.errors import PermissionDeniedError


class Role(Enum):
    CLIENT = "client"
    STAFF = "staff"
    ADMIN = "admin"
    DRIVER = "driver"


_STAFF_ROLES = {Role.STAFF, Role.ADMIN}


@dataclass(frozen=True)
class Actor:
    id: str
    role: Role

    @classmethod
    def of(cls, actor_id: str, role: str) -> "Actor":
        try:
            return cls(id=actor_id, role=Role(role))
        except ValueError:
            raise PermissionDeniedError(f"Unknown role: {role}") from None

    @property
    def is_staff(self) -> bool:
        return self.role in _STAFF_ROLES

    def require(self, *roles: Role) -> None:
        if self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise PermissionDeniedError(f"Requires one of: {allowed}", role=self.role.value)

    def require_staff(self) -> None:
        self.require(Role.STAFF, Role.ADMIN)

    def require_owner_or_staff(self, owner_id: str) -> None:
        if not self.is_staff and str(owner_id) != self.id:
            raise PermissionDeniedError("Only the owner or staff may do this")
