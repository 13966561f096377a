from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from .models import Account, Pass, Role, Session, SessionRow, Side, User


class Database:
    """Thin SQLite access layer for accounts, passes and recorded sessions."""

    def __init__(self, db_path: str | Path) -> None:
        self._conn = sqlite3.connect(str(db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._conn.close()
        self._closed = True

    def initialize(self) -> None:
        # users: everyone who has issued a command, with their role.
        # accounts: shared game accounts, one row per external id.
        # passes/sessions: written together, never updated afterwards.
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS users (
              id TEXT PRIMARY KEY,
              name TEXT,
              role TEXT NOT NULL DEFAULT 'USER'
            );

            CREATE TABLE IF NOT EXISTS accounts (
              id TEXT PRIMARY KEY,
              external_id TEXT NOT NULL UNIQUE,
              side TEXT NOT NULL CHECK (side IN ('CT', 'T'))
            );

            CREATE TABLE IF NOT EXISTS passes (
              id TEXT PRIMARY KEY,
              user_id TEXT NOT NULL REFERENCES users(id),
              name TEXT NOT NULL,
              description TEXT NOT NULL,
              start_date_utc TEXT NOT NULL,
              end_date_utc TEXT NOT NULL,
              current_stars INTEGER NOT NULL,
              total_stars INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS sessions (
              id TEXT PRIMARY KEY,
              user_id TEXT NOT NULL REFERENCES users(id),
              account_id TEXT NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
              pass_id TEXT NOT NULL REFERENCES passes(id),
              stars_start INTEGER NOT NULL,
              stars_end INTEGER NOT NULL,
              stars_earned INTEGER NOT NULL,
              purchased_pass INTEGER NOT NULL DEFAULT 0,
              created_at_utc TEXT NOT NULL,
              start_date_utc TEXT NOT NULL,
              complete_date_utc TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_sessions_created_at ON sessions (created_at_utc);
            CREATE INDEX IF NOT EXISTS idx_sessions_account ON sessions (account_id, created_at_utc);
            """
        )
        self._conn.commit()

    def upsert_user(self, user_id: str, name: str | None) -> None:
        # The role is never touched here so that promotions survive name changes.
        self._conn.execute(
            """
            INSERT INTO users (id, name)
            VALUES (?, ?)
            ON CONFLICT(id)
            DO UPDATE SET name=excluded.name
            """,
            (user_id, name),
        )
        self._conn.commit()

    def get_user(self, user_id: str) -> User | None:
        row = self._conn.execute("SELECT id, name, role FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return User(id=row["id"], name=row["name"], role=Role(row["role"]))

    def set_user_role(self, user_id: str, role: Role) -> None:
        self._conn.execute(
            """
            INSERT INTO users (id, name, role)
            VALUES (?, NULL, ?)
            ON CONFLICT(id)
            DO UPDATE SET role=excluded.role
            """,
            (user_id, role.value),
        )
        self._conn.commit()

    def create_account(self, external_id: str, side: Side) -> Account:
        account = Account(id=uuid.uuid4().hex, external_id=external_id, side=side)
        self._conn.execute(
            "INSERT INTO accounts (id, external_id, side) VALUES (?, ?, ?)",
            (account.id, account.external_id, account.side.value),
        )
        self._conn.commit()
        return account

    def upsert_account(self, external_id: str, side: Side) -> bool:
        """Insert the account unless the external id exists. Returns True when a row was added."""
        cur = self._conn.execute(
            """
            INSERT INTO accounts (id, external_id, side)
            VALUES (?, ?, ?)
            ON CONFLICT(external_id) DO NOTHING
            """,
            (uuid.uuid4().hex, external_id, side.value),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def get_account_by_external_id(self, external_id: str) -> Account | None:
        row = self._conn.execute(
            "SELECT id, external_id, side FROM accounts WHERE external_id = ?",
            (external_id,),
        ).fetchone()
        if row is None:
            return None
        return _account_from_row(row)

    def list_accounts(self, side: Side | None = None) -> list[Account]:
        if side is None:
            rows = self._conn.execute(
                "SELECT id, external_id, side FROM accounts ORDER BY external_id ASC"
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT id, external_id, side FROM accounts WHERE side = ? ORDER BY external_id ASC",
                (side.value,),
            ).fetchall()
        return [_account_from_row(row) for row in rows]

    def delete_account(self, account_id: str) -> None:
        # Sessions go with the account; their passes are collected first since
        # nothing else references them.
        with self._conn:
            pass_ids = [
                row["pass_id"]
                for row in self._conn.execute(
                    "SELECT pass_id FROM sessions WHERE account_id = ?", (account_id,)
                ).fetchall()
            ]
            self._conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
            self._conn.executemany("DELETE FROM passes WHERE id = ?", [(pass_id,) for pass_id in pass_ids])

    def insert_pass_session(self, pass_record: Pass, session: Session) -> None:
        # One transaction: a failed session insert must not leave the pass behind.
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO passes (
                  id, user_id, name, description, start_date_utc, end_date_utc,
                  current_stars, total_stars
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    pass_record.id,
                    pass_record.user_id,
                    pass_record.name,
                    pass_record.description,
                    _to_iso(pass_record.start_date),
                    _to_iso(pass_record.end_date),
                    pass_record.current_stars,
                    pass_record.total_stars,
                ),
            )
            self._conn.execute(
                """
                INSERT INTO sessions (
                  id, user_id, account_id, pass_id, stars_start, stars_end, stars_earned,
                  purchased_pass, created_at_utc, start_date_utc, complete_date_utc
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.user_id,
                    session.account_id,
                    session.pass_id,
                    session.stars_start,
                    session.stars_end,
                    session.stars_earned,
                    int(session.purchased_pass),
                    _to_iso(session.created_at),
                    _to_iso(session.start_date),
                    _to_iso(session.complete_date),
                ),
            )

    def get_latest_session_for_account(self, account_id: str) -> Session | None:
        row = self._conn.execute(
            """
            SELECT *
            FROM sessions
            WHERE account_id = ?
            ORDER BY created_at_utc DESC, rowid DESC
            LIMIT 1
            """,
            (account_id,),
        ).fetchone()
        if row is None:
            return None
        return _session_from_row(row)

    def list_sessions_between(self, start_utc: datetime, end_utc: datetime) -> list[SessionRow]:
        """Sessions created in [start_utc, end_utc), oldest first."""
        rows = self._conn.execute(
            """
            SELECT s.user_id, u.name AS user_name, s.stars_start, s.stars_end,
                   s.stars_earned, s.purchased_pass, s.created_at_utc
            FROM sessions AS s
            JOIN users AS u ON u.id = s.user_id
            WHERE s.created_at_utc >= ? AND s.created_at_utc < ?
            ORDER BY s.created_at_utc ASC, s.rowid ASC
            """,
            (_to_iso(start_utc), _to_iso(end_utc)),
        ).fetchall()

        return [
            SessionRow(
                user_id=row["user_id"],
                user_name=row["user_name"],
                stars_start=row["stars_start"],
                stars_end=row["stars_end"],
                stars_earned=row["stars_earned"],
                purchased_pass=bool(row["purchased_pass"]),
                created_at=datetime.fromisoformat(row["created_at_utc"]),
            )
            for row in rows
        ]


def _account_from_row(row: sqlite3.Row) -> Account:
    return Account(id=row["id"], external_id=row["external_id"], side=Side(row["side"]))


def _session_from_row(row: sqlite3.Row) -> Session:
    return Session(
        id=row["id"],
        user_id=row["user_id"],
        account_id=row["account_id"],
        pass_id=row["pass_id"],
        stars_start=row["stars_start"],
        stars_end=row["stars_end"],
        stars_earned=row["stars_earned"],
        purchased_pass=bool(row["purchased_pass"]),
        created_at=datetime.fromisoformat(row["created_at_utc"]),
        start_date=datetime.fromisoformat(row["start_date_utc"]),
        complete_date=datetime.fromisoformat(row["complete_date_utc"]),
    )


def _to_utc(value: datetime) -> datetime:
    """Normalize a timezone-aware datetime to UTC for storage."""
    if value.tzinfo is None:
        raise ValueError("Datetime must be timezone-aware")
    return value.astimezone(timezone.utc)


def _to_iso(value: datetime) -> str:
    # Fixed precision keeps lexical order equal to time order in range queries.
    return _to_utc(value).isoformat(timespec="microseconds")
