from passtracker.db import Database
from passtracker.identity import resolve_current_user
from passtracker.models import Role, Side
from passtracker.seed import DEFAULT_ACCOUNTS, seed_accounts, seed_admins


def make_db() -> Database:
    db = Database(":memory:")
    db.initialize()
    return db


def test_seed_accounts_is_idempotent() -> None:
    db = make_db()

    assert seed_accounts(db) == len(DEFAULT_ACCOUNTS)
    assert seed_accounts(db) == 0

    ct = [account.external_id for account in db.list_accounts(Side.CT)]
    assert ct == ["nashax", "niyah", "ponce"]
    assert db.get_account_by_external_id("money tree").side is Side.T


def test_seed_admins_survive_name_refresh() -> None:
    db = make_db()
    seed_admins(db, ("42",))

    admin = resolve_current_user(db, "42", "Renamed")
    regular = resolve_current_user(db, "7", "Player")

    assert admin.is_admin
    assert admin.name == "Renamed"
    assert regular.role is Role.USER
    assert not regular.is_admin


def test_resolve_current_user_without_id() -> None:
    db = make_db()

    assert resolve_current_user(db, None) is None
    assert resolve_current_user(db, "") is None
