from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from .db import Database
from .errors import (
    AccountNotFound,
    InvalidDate,
    InvalidSide,
    InvalidStars,
    MissingFields,
    NotAdmin,
    ReadFailed,
    WriteFailed,
    run_operation,
)
from .identity import UserSource, require_user
from .models import Account, OperationResult, Pass, Session, SessionRequest, Side, StarsOutcome

MIN_STARS = 0
MAX_STARS = 40
# A purchased pass always counts as one full bar.
PASS_STARS = 40


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso_utc(value: datetime | str | None) -> datetime | None:
    """Parse an ISO timestamp (or take a datetime) and normalize to UTC."""
    if isinstance(value, str):
        value = value.strip()
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError as exc:
            raise InvalidDate(f"Invalid timestamp: {value}") from exc

    if parsed.tzinfo is None:
        # Treat naive values as UTC, the same way they are stored.
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def compute_stars(stars_start: int, stars_end: int, purchased_pass: bool) -> StarsOutcome:
    if purchased_pass:
        normalized_end = stars_start + PASS_STARS
        return StarsOutcome(stars_end=normalized_end, stars_earned=PASS_STARS, total_stars=normalized_end)
    return StarsOutcome(stars_end=stars_end, stars_earned=stars_end - stars_start, total_stars=stars_end)


def parse_side(value: Side | str | None) -> Side | None:
    if value is None or value == "":
        return None
    if isinstance(value, Side):
        return value
    try:
        return Side(value.strip().upper())
    except ValueError as exc:
        raise InvalidSide() from exc


def _validate_stars(stars_start: int, stars_end: int, purchased_pass: bool) -> None:
    for name, value in (("Stars start", stars_start), ("Stars end", stars_end)):
        if not MIN_STARS <= value <= MAX_STARS:
            raise InvalidStars(f"{name} must be between {MIN_STARS} and {MAX_STARS}, got {value}")

    if not purchased_pass and stars_end < stars_start:
        raise InvalidStars("Stars end must not be lower than stars start unless a pass was purchased")


class SessionRecorder:
    def __init__(self, db: Database, logger: logging.Logger | None = None) -> None:
        self.db = db
        self.logger = logger or logging.getLogger(__name__)

    def record_session(
        self,
        user: UserSource,
        request: SessionRequest,
        now_utc: datetime | None = None,
    ) -> OperationResult[Session]:
        return run_operation(
            self.logger,
            "record session",
            WriteFailed,
            "Failed to create pass session",
            lambda: self._record_session(user, request, now_utc),
        )

    def _record_session(
        self,
        user: UserSource,
        request: SessionRequest,
        now_utc: datetime | None,
    ) -> Session:
        user = require_user(user)

        external_id = (request.account_external_id or "").strip()
        start = parse_iso_utc(request.start_time)
        end = parse_iso_utc(request.end_time)
        if not external_id or start is None or end is None:
            raise MissingFields("Steam ID, start date, and end date are required")

        _validate_stars(request.stars_start, request.stars_end, request.purchased_pass)

        account = self.db.get_account_by_external_id(external_id)
        if account is None:
            raise AccountNotFound()

        outcome = compute_stars(request.stars_start, request.stars_end, request.purchased_pass)
        created = (now_utc or utc_now()).astimezone(timezone.utc)

        pass_record = Pass(
            id=uuid.uuid4().hex,
            user_id=user.id,
            name=f"Pass for {external_id}",
            description=f"Pass session for {external_id}",
            start_date=start,
            end_date=end,
            current_stars=request.stars_start,
            total_stars=outcome.total_stars,
        )
        session = Session(
            id=uuid.uuid4().hex,
            user_id=user.id,
            account_id=account.id,
            pass_id=pass_record.id,
            stars_start=request.stars_start,
            stars_end=outcome.stars_end,
            stars_earned=outcome.stars_earned,
            purchased_pass=request.purchased_pass,
            created_at=created,
            start_date=start,
            complete_date=end,
        )
        self.db.insert_pass_session(pass_record, session)

        self.logger.info(
            "Session recorded: user=%s account=%s stars=%s->%s earned=%s purchased=%s",
            user.id,
            external_id,
            session.stars_start,
            session.stars_end,
            session.stars_earned,
            session.purchased_pass,
        )
        return session

    def last_known_stars(self, user: UserSource, account_external_id: str) -> OperationResult[int]:
        return run_operation(
            self.logger,
            "last session lookup",
            ReadFailed,
            "Failed to fetch last session stars",
            lambda: self._last_known_stars(user, account_external_id),
        )

    def _last_known_stars(self, user: UserSource, account_external_id: str) -> int:
        user = require_user(user)

        account = self.db.get_account_by_external_id((account_external_id or "").strip())
        if account is None:
            raise AccountNotFound()

        latest = self.db.get_latest_session_for_account(account.id)
        return latest.stars_end if latest is not None else 0

    def list_accounts(self, side: Side | str | None = None) -> OperationResult[list[Account]]:
        return run_operation(
            self.logger,
            "account listing",
            ReadFailed,
            "Failed to fetch steam accounts",
            lambda: self.db.list_accounts(parse_side(side)),
        )

    def create_account(
        self,
        user: UserSource,
        external_id: str,
        side: Side | str | None,
    ) -> OperationResult[Account]:
        return run_operation(
            self.logger,
            "account creation",
            WriteFailed,
            "Failed to create steam account",
            lambda: self._create_account(user, external_id, side),
        )

    def _create_account(self, user: UserSource, external_id: str, side: Side | str | None) -> Account:
        user = require_user(user)

        external_id = (external_id or "").strip()
        parsed_side = parse_side(side)
        if not external_id or parsed_side is None:
            raise MissingFields("Steam ID and side are required")

        account = self.db.create_account(external_id, parsed_side)
        self.logger.info("Account created: %s (%s) by user=%s", account.external_id, account.side.value, user.id)
        return account

    def delete_account(self, user: UserSource, external_id: str) -> OperationResult[bool]:
        return run_operation(
            self.logger,
            "account deletion",
            WriteFailed,
            "Failed to delete steam account",
            lambda: self._delete_account(user, external_id),
        )

    def _delete_account(self, user: UserSource, external_id: str) -> bool:
        user = require_user(user)
        if not user.is_admin:
            raise NotAdmin()

        account = self.db.get_account_by_external_id((external_id or "").strip())
        if account is None:
            raise AccountNotFound()

        self.db.delete_account(account.id)
        self.logger.info("Account deleted: %s by user=%s", account.external_id, user.id)
        return True
