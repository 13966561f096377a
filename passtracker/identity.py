from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from .db import Database
from .errors import NotAuthenticated
from .models import Role


@dataclass(frozen=True, slots=True)
class CurrentUser:
    id: str
    name: str | None
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


# Either an already resolved caller, or a resolver that operations invoke
# inside their error boundary.
UserSource = Union[CurrentUser, Callable[[], "CurrentUser | None"], None]


def resolve_current_user(db: Database, user_id: str | None, name: str | None = None) -> CurrentUser | None:
    """Register the caller (refreshing their display name) and return their stored identity and role."""
    if not user_id:
        return None

    db.upsert_user(user_id, name)
    user = db.get_user(user_id)
    if user is None:
        return None
    return CurrentUser(id=user.id, name=user.name, role=user.role)


def require_user(source: UserSource) -> CurrentUser:
    user = source() if callable(source) else source
    if user is None:
        raise NotAuthenticated()
    return user
