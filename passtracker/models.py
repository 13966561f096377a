from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class Side(str, Enum):
    CT = "CT"
    T = "T"


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True, slots=True)
class User:
    id: str
    name: str | None
    role: Role


@dataclass(frozen=True, slots=True)
class Account:
    id: str
    external_id: str
    side: Side


@dataclass(frozen=True, slots=True)
class Pass:
    id: str
    user_id: str
    name: str
    description: str
    start_date: datetime
    end_date: datetime
    current_stars: int
    total_stars: int


@dataclass(frozen=True, slots=True)
class Session:
    id: str
    user_id: str
    account_id: str
    pass_id: str
    stars_start: int
    stars_end: int
    stars_earned: int
    purchased_pass: bool
    created_at: datetime
    start_date: datetime
    complete_date: datetime


@dataclass(frozen=True, slots=True)
class SessionRequest:
    """Input for one recorded session, exactly as submitted by a user."""

    account_external_id: str
    start_time: datetime | str | None
    end_time: datetime | str | None
    stars_start: int
    stars_end: int
    purchased_pass: bool = False


@dataclass(frozen=True, slots=True)
class StarsOutcome:
    stars_end: int
    stars_earned: int
    total_stars: int


@dataclass(frozen=True, slots=True)
class SessionRow:
    """A stored session joined with the name of the user who recorded it."""

    user_id: str
    user_name: str | None
    stars_start: int
    stars_end: int
    stars_earned: int
    purchased_pass: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class SessionDetail:
    stars_start: int
    stars_end: int
    stars_earned: int
    created_at: datetime
    purchased_pass: bool


@dataclass(slots=True)
class UserDaySummary:
    id: str
    name: str | None
    session_count: int = 0
    total_stars_earned: int = 0
    sessions: list[SessionDetail] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DailyReport:
    date: date
    count: int
    users: list[UserDaySummary]

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "count": self.count,
            "users": [
                {
                    "id": summary.id,
                    "name": summary.name,
                    "sessionCount": summary.session_count,
                    "totalStarsEarned": summary.total_stars_earned,
                    "sessions": [
                        {
                            "starsStart": detail.stars_start,
                            "starsEnd": detail.stars_end,
                            "starsEarned": detail.stars_earned,
                            "createdAt": detail.created_at.isoformat(),
                            "purchasedPass": detail.purchased_pass,
                        }
                        for detail in summary.sessions
                    ],
                }
                for summary in self.users
            ],
        }


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Uniform outcome of a core operation: either `data` or an `error` message."""

    data: T | None = None
    error: str | None = None
    error_type: type | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict:
        if self.error is not None:
            return {"error": self.error}
        data = self.data
        if hasattr(data, "__dataclass_fields__"):
            data = asdict(data)
        return {"data": data}
