"""
Identity context and the creator-or-admin mutation policy.
"""

from dataclasses import dataclass
from typing import Optional

from database.models import UserRole
from papers.errors import PermissionDeniedError


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def ensure_owner_or_admin(owner_id: Optional[int], user: CurrentUser) -> None:
    """Only the record's creator or an admin may update/delete it."""
    if user.is_admin:
        return
    if owner_id is None or owner_id != user.user_id:
        raise PermissionDeniedError()
