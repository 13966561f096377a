from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from passtracker.aggregator import DailyAggregator, group_sessions_by_user, local_day_bounds_utc
from passtracker.db import Database
from passtracker.errors import FetchFailed, InvalidDate, NotAdmin, NotAuthenticated
from passtracker.identity import resolve_current_user
from passtracker.models import Role, SessionRequest
from passtracker.recorder import SessionRecorder
from passtracker.seed import seed_accounts

UTC = ZoneInfo("UTC")


def setup_tracker(tz: ZoneInfo = UTC):
    db = Database(":memory:")
    db.initialize()
    seed_accounts(db)
    db.set_user_role("99", Role.ADMIN)
    admin = resolve_current_user(db, "99", "Admin")
    return db, SessionRecorder(db), DailyAggregator(db, tz=tz), admin


def record(recorder, user, created_at, account="ponce", stars_start=0, stars_end=10, purchased_pass=False):
    request = SessionRequest(
        account_external_id=account,
        start_time=created_at,
        end_time=created_at + timedelta(days=8),
        stars_start=stars_start,
        stars_end=stars_end,
        purchased_pass=purchased_pass,
    )
    result = recorder.record_session(user, request, now_utc=created_at)
    assert result.ok, result.error
    return result.data


def test_empty_day_has_no_users() -> None:
    _, _, aggregator, admin = setup_tracker()

    result = aggregator.daily_report(admin, "2026-02-01")

    assert result.ok
    assert result.data.date == date(2026, 2, 1)
    assert result.data.count == 0
    assert result.data.users == []


def test_two_sessions_by_one_user_share_a_bucket() -> None:
    db, recorder, aggregator, admin = setup_tracker()
    alice = resolve_current_user(db, "1", "Alice")
    record(recorder, alice, datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc), stars_start=0, stars_end=12)
    record(recorder, alice, datetime(2026, 2, 1, 18, 30, tzinfo=timezone.utc), account="niyah", stars_start=3, stars_end=0, purchased_pass=True)

    report = aggregator.daily_report(admin, date(2026, 2, 1)).data

    assert report.count == 2
    assert len(report.users) == 1
    bucket = report.users[0]
    assert bucket.id == "1"
    assert bucket.name == "Alice"
    assert bucket.session_count == 2
    assert bucket.total_stars_earned == 12 + 40
    assert [detail.stars_end for detail in bucket.sessions] == [12, 43]
    assert [detail.purchased_pass for detail in bucket.sessions] == [False, True]


def test_users_follow_first_session_order() -> None:
    db, recorder, aggregator, admin = setup_tracker()
    alice = resolve_current_user(db, "1", "Alice")
    bob = resolve_current_user(db, "2", "Bob")
    # Recorded out of order; the report sorts by creation time.
    record(recorder, alice, datetime(2026, 2, 1, 15, 0, tzinfo=timezone.utc))
    record(recorder, bob, datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc))
    record(recorder, alice, datetime(2026, 2, 1, 7, 0, tzinfo=timezone.utc))

    report = aggregator.daily_report(admin, "2026-02-01").data

    assert [user.name for user in report.users] == ["Alice", "Bob"]
    assert [user.session_count for user in report.users] == [2, 1]


def test_day_boundaries_use_local_timezone() -> None:
    tz = ZoneInfo("America/New_York")
    db, recorder, aggregator, admin = setup_tracker(tz)
    alice = resolve_current_user(db, "1", "Alice")

    # 2026-02-01 23:30 in New York is already 2026-02-02 in UTC.
    late_local = datetime(2026, 2, 1, 23, 30, tzinfo=tz)
    next_morning_local = datetime(2026, 2, 2, 0, 0, tzinfo=tz)
    record(recorder, alice, late_local.astimezone(timezone.utc))
    record(recorder, alice, next_morning_local.astimezone(timezone.utc), account="niyah")

    feb_1 = aggregator.daily_report(admin, "2026-02-01").data
    feb_2 = aggregator.daily_report(admin, "2026-02-02").data

    assert feb_1.count == 1
    assert feb_2.count == 1


def test_local_day_bounds_utc() -> None:
    start, end = local_day_bounds_utc(date(2026, 2, 1), ZoneInfo("America/New_York"))

    assert start == datetime(2026, 2, 1, 5, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 2, 2, 5, 0, tzinfo=timezone.utc)


def test_report_requires_admin() -> None:
    db, _, aggregator, _ = setup_tracker()
    alice = resolve_current_user(db, "1", "Alice")

    not_logged_in = aggregator.daily_report(None, "2026-02-01")
    not_admin = aggregator.daily_report(alice, "2026-02-01")

    assert not_logged_in.error_type is NotAuthenticated
    assert not_admin.error_type is NotAdmin
    assert not_logged_in.error != not_admin.error


def test_invalid_date_is_rejected() -> None:
    _, _, aggregator, admin = setup_tracker()

    assert aggregator.daily_report(admin, "02/01/2026").error_type is InvalidDate


def test_store_error_is_reported_as_fetch_failed() -> None:
    db, _, aggregator, admin = setup_tracker()
    db.close()

    result = aggregator.daily_report(admin, "2026-02-01")

    assert result.error_type is FetchFailed
    assert result.error == "Failed to fetch sessions"
    assert result.data is None


def test_report_payload_uses_camel_case_keys() -> None:
    db, recorder, aggregator, admin = setup_tracker()
    alice = resolve_current_user(db, "1", "Alice")
    record(recorder, alice, datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc), stars_start=5, stars_end=9)

    payload = aggregator.daily_report(admin, "2026-02-01").data.to_dict()

    assert payload["date"] == "2026-02-01"
    assert payload["count"] == 1
    user = payload["users"][0]
    assert user["sessionCount"] == 1
    assert user["totalStarsEarned"] == 4
    assert user["sessions"][0] == {
        "starsStart": 5,
        "starsEnd": 9,
        "starsEarned": 4,
        "createdAt": "2026-02-01T09:00:00+00:00",
        "purchasedPass": False,
    }


def test_group_sessions_by_user_handles_no_rows() -> None:
    assert group_sessions_by_user([]) == []


def test_datetime_day_uses_report_timezone() -> None:
    tz = ZoneInfo("America/New_York")
    _, _, aggregator, admin = setup_tracker(tz)

    # 03:00 UTC on Feb 2 is still the evening of Feb 1 in New York.
    report = aggregator.daily_report(admin, datetime(2026, 2, 2, 3, 0, tzinfo=timezone.utc)).data

    assert report.date == date(2026, 2, 1)
    assert report.to_dict()["date"] == "2026-02-01"


def test_identity_resolution_failure_is_reported_as_fetch_failed() -> None:
    db, _, aggregator, _ = setup_tracker()
    db.close()

    result = aggregator.daily_report(lambda: resolve_current_user(db, "1", "Alice"), "2026-02-01")

    assert result.error_type is FetchFailed
    assert result.error == "Failed to fetch sessions"
