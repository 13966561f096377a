from __future__ import annotations

from zoneinfo import ZoneInfo

from .models import Account, DailyReport, SessionDetail


def format_session_line(detail: SessionDetail, tz: ZoneInfo) -> str:
    """Render one session as `HH:MM  10 -> 30 (20 stars earned)`."""
    created_local = detail.created_at.astimezone(tz)
    line = (
        f"`{created_local:%H:%M}` {detail.stars_start} -> {detail.stars_end} "
        f"({detail.stars_earned} stars earned)"
    )
    if detail.purchased_pass:
        line += " - Purchased Pass"
    return line


def build_report_content(report: DailyReport, tz: ZoneInfo) -> str:
    header = f"**Session Results - {report.date:%B} {report.date.day}, {report.date.year}**"

    if not report.users:
        return f"{header}\nNo sessions found for {report.date.isoformat()}."

    lines = [header, f"Total Sessions: {report.count}"]
    for summary in report.users:
        name = summary.name or "Unknown"
        lines.append(f"**{name}**: {summary.session_count} sessions, {summary.total_stars_earned} stars earned")
        lines.extend(f"- {format_session_line(detail, tz)}" for detail in summary.sessions)
    return "\n".join(lines)


def build_accounts_content(accounts: list[Account], side_label: str | None = None) -> str:
    title = f"{side_label} Side Accounts" if side_label else "Accounts"
    if not accounts:
        return f"**{title}**\nNo accounts found."

    lines = [f"**{title}**"]
    lines.extend(f"- {account.external_id} ({account.side.value})" for account in accounts)
    return "\n".join(lines)
