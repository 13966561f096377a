from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from .config import DEFAULT_DB_PATH, LOG_FORMAT
from .db import Database
from .models import Role, Side

DEFAULT_ACCOUNTS: tuple[tuple[str, Side], ...] = (
    ("ponce", Side.CT),
    ("nashax", Side.CT),
    ("niyah", Side.CT),
    ("money tree", Side.T),
    ("intelek", Side.T),
)

logger = logging.getLogger(__name__)


def seed_accounts(db: Database, accounts: tuple[tuple[str, Side], ...] = DEFAULT_ACCOUNTS) -> int:
    """Create any missing accounts; existing ones are left untouched. Returns the number added."""
    added = 0
    for external_id, side in accounts:
        if db.upsert_account(external_id, side):
            added += 1
    logger.info("Seeded steam accounts: %d added, %d already present", added, len(accounts) - added)
    return added


def seed_admins(db: Database, user_ids: tuple[str, ...]) -> None:
    for user_id in user_ids:
        db.set_user_role(user_id, Role.ADMIN)
    if user_ids:
        logger.info("Granted admin role to %d users", len(user_ids))


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    args = sys.argv[1:] if argv is None else argv
    db_path = args[0] if args else os.getenv("DB_PATH", DEFAULT_DB_PATH)

    db = Database(db_path)
    try:
        db.initialize()
        seed_accounts(db)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
