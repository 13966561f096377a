from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from .db import Database
from .errors import FetchFailed, InvalidDate, NotAdmin, run_operation
from .identity import UserSource, require_user
from .models import DailyReport, OperationResult, SessionDetail, SessionRow, UserDaySummary


def parse_day(value: date | str, tz: ZoneInfo) -> date:
    # A datetime is also a date; use its calendar day in the report timezone.
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidDate() from exc


def local_day_bounds_utc(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return [start, end) of a local calendar day as UTC datetimes."""
    start_local = datetime.combine(day, time.min, tzinfo=tz)
    end_local = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def group_sessions_by_user(rows: list[SessionRow]) -> list[UserDaySummary]:
    # dict keeps first-occurrence order, so users appear in the order of their first session.
    buckets: dict[str, UserDaySummary] = {}
    for row in rows:
        summary = buckets.get(row.user_id)
        if summary is None:
            summary = UserDaySummary(id=row.user_id, name=row.user_name)
            buckets[row.user_id] = summary

        summary.session_count += 1
        summary.total_stars_earned += row.stars_earned
        summary.sessions.append(
            SessionDetail(
                stars_start=row.stars_start,
                stars_end=row.stars_end,
                stars_earned=row.stars_earned,
                created_at=row.created_at,
                purchased_pass=row.purchased_pass,
            )
        )
    return list(buckets.values())


class DailyAggregator:
    def __init__(self, db: Database, tz: ZoneInfo, logger: logging.Logger | None = None) -> None:
        self.db = db
        self.tz = tz
        self.logger = logger or logging.getLogger(__name__)

    def daily_report(self, user: UserSource, day: date | str) -> OperationResult[DailyReport]:
        return run_operation(
            self.logger,
            "daily report",
            FetchFailed,
            "Failed to fetch sessions",
            lambda: self._daily_report(user, day),
        )

    def _daily_report(self, user: UserSource, day: date | str) -> DailyReport:
        user = require_user(user)
        if not user.is_admin:
            raise NotAdmin()

        target_day = parse_day(day, self.tz)
        start_utc, end_utc = local_day_bounds_utc(target_day, self.tz)
        rows = self.db.list_sessions_between(start_utc, end_utc)

        self.logger.debug("Fetched %d sessions for %s", len(rows), target_day.isoformat())
        return DailyReport(date=target_day, count=len(rows), users=group_sessions_by_user(rows))
