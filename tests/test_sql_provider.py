from datetime import datetime

import pytest

from skyexplorer_auth.auth.errors import IdentityConflictError
from skyexplorer_auth.auth.providers.sql import PeeweeUserProvider, UserRoleTable, UserTable


def test_tables_are_created(db_provider):
    tables = set(db_provider.db.get_tables())
    assert {"users", "user_roles"} <= tables


def test_construction_is_idempotent(db_url, make_identity):
    PeeweeUserProvider({"DATABASE_URL": db_url}).save(make_identity("alice"))

    again = PeeweeUserProvider({"DATABASE_URL": db_url})

    assert again.find_by_username("alice") is not None


def test_duplicate_username_is_a_conflict(db_provider, make_identity):
    db_provider.save(make_identity("alice", email="a1@example.com"))

    with pytest.raises(IdentityConflictError):
        db_provider.save(make_identity("alice", email="a2@example.com"))


def test_duplicate_email_is_a_conflict(db_provider, make_identity):
    db_provider.save(make_identity("alice", email="shared@example.com"))

    with pytest.raises(IdentityConflictError):
        db_provider.save(make_identity("bob", email="shared@example.com"))


def test_failed_insert_leaves_no_role_rows(db_provider, make_identity):
    db_provider.save(make_identity("alice"))

    with pytest.raises(IdentityConflictError):
        db_provider.save(make_identity("alice", email="other@example.com", roles={"ADMIN"}))

    assert UserTable.select().count() == 1
    assert UserRoleTable.select().where(UserRoleTable.role == "ADMIN").count() == 0


def test_timestamps_are_filled_in(db_provider, make_identity):
    saved = db_provider.save(make_identity("alice"))

    found = db_provider.find_by_username("alice")
    assert isinstance(found.created_at, datetime)
    assert found.created_at == saved.created_at
    assert found.updated_at == saved.updated_at


def test_explicit_timestamps_are_kept(db_provider, make_identity):
    stamp = datetime(2023, 5, 1, 8, 30, 0)
    db_provider.save(make_identity("alice", created_at=stamp, updated_at=stamp))

    found = db_provider.find_by_username("alice")
    assert found.created_at == stamp
    assert found.updated_at == stamp


def test_names_round_trip(db_provider, make_identity):
    db_provider.save(make_identity("alice", first_name="Alice", last_name="Liddell"))

    found = db_provider.find_by_username("alice")
    assert found.display_name == "Alice Liddell"


def test_transaction_rolls_back_on_error(db_provider, make_identity):
    with pytest.raises(RuntimeError):
        with db_provider.transaction():
            db_provider.save(make_identity("ghost"))
            raise RuntimeError("abort")

    assert db_provider.find_by_username("ghost") is None


def test_role_rows_are_replaced_on_update(db_provider, make_identity):
    saved = db_provider.save(make_identity("alice", roles={"USER", "ADMIN"}))

    saved.roles = {"USER"}
    db_provider.save(saved)

    rows = UserRoleTable.select().where(UserRoleTable.user == saved.id)
    assert sorted(r.role for r in rows) == ["USER"]


def test_delete_removes_role_rows(db_provider, make_identity):
    saved = db_provider.save(make_identity("alice", roles={"USER", "ADMIN"}))

    db_provider.delete_by_id(saved.id)

    assert UserRoleTable.select().count() == 0
