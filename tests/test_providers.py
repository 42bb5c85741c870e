"""
Behaviour shared by every UserProvider (run against both xml and database).
"""

import pytest

from skyexplorer_auth.auth.errors import IdentityConflictError


def test_save_assigns_id_and_round_trips(provider, make_identity):
    saved = provider.save(make_identity("alice", roles={"USER", "ADMIN"}))

    assert saved.id
    found = provider.find_by_username("alice")
    assert found.id == saved.id
    assert found.email == "alice@example.com"
    assert found.password_hash == "$2b$04$hash"
    assert found.roles == {"USER", "ADMIN"}


def test_new_users_get_distinct_ids(provider, make_identity):
    ids = {provider.save(make_identity(name)).id for name in ("a", "b", "c")}
    assert len(ids) == 3


def test_zero_id_is_treated_as_new(provider, make_identity):
    saved = provider.save(make_identity("zed", id=0))
    assert saved.id > 0


def test_lookups_by_email_and_id(provider, make_identity):
    saved = provider.save(make_identity("bob"))

    assert provider.find_by_email("bob@example.com").username == "bob"
    assert provider.find_by_id(saved.id).username == "bob"


def test_missing_lookups_return_none(provider):
    assert provider.find_by_username("ghost") is None
    assert provider.find_by_email("ghost@example.com") is None
    assert provider.find_by_id(999) is None


def test_username_lookup_is_case_sensitive(provider, make_identity):
    provider.save(make_identity("Alice"))
    assert provider.find_by_username("alice") is None


@pytest.mark.parametrize("name", ["alice", "bob", "nobody"])
def test_exists_matches_find(provider, make_identity, name):
    provider.save(make_identity("alice"))
    provider.save(make_identity("bob"))

    assert provider.exists_by_username(name) == (provider.find_by_username(name) is not None)
    email = f"{name}@example.com"
    assert provider.exists_by_email(email) == (provider.find_by_email(email) is not None)


def test_update_existing_record(provider, make_identity):
    saved = provider.save(make_identity("carol"))

    saved.email = "carol@new.example.com"
    saved.roles = {"USER", "PILOT"}
    provider.save(saved)

    found = provider.find_by_id(saved.id)
    assert found.email == "carol@new.example.com"
    assert found.roles == {"USER", "PILOT"}
    assert len(provider.find_all()) == 1


def test_save_with_unknown_id_inserts(provider, make_identity):
    provider.save(make_identity("dave", id=42))

    assert provider.find_by_id(42).username == "dave"
    assert provider.save(make_identity("erin")).id != 42


def test_empty_role_set_round_trips(provider, make_identity):
    provider.save(make_identity("norole", roles=()))
    assert provider.find_by_username("norole").roles == set()


def test_delete_by_id(provider, make_identity):
    saved = provider.save(make_identity("frank"))

    provider.delete_by_id(saved.id)

    assert provider.find_by_username("frank") is None
    assert provider.find_all() == []


def test_delete_unknown_id_is_noop(provider, make_identity):
    provider.save(make_identity("gina"))
    provider.delete_by_id(12345)
    assert len(provider.find_all()) == 1


def test_find_all_lists_every_user(provider, make_identity):
    for name in ("u1", "u2", "u3"):
        provider.save(make_identity(name))

    assert sorted(u.username for u in provider.find_all()) == ["u1", "u2", "u3"]


def test_duplicate_username_is_rejected(provider, make_identity):
    provider.save(make_identity("hank"))

    with pytest.raises(IdentityConflictError):
        provider.save(make_identity("hank", email="other@example.com"))

    assert len(provider.find_all()) == 1


def test_duplicate_email_is_rejected(provider, make_identity):
    provider.save(make_identity("ivy", email="shared@example.com"))

    with pytest.raises(IdentityConflictError):
        provider.save(make_identity("jack", email="shared@example.com"))

    assert provider.find_by_username("jack") is None


def test_update_may_keep_its_own_username_and_email(provider, make_identity):
    saved = provider.save(make_identity("kate"))
    saved.roles = {"USER", "PILOT"}

    provider.save(saved)

    assert provider.find_by_username("kate").roles == {"USER", "PILOT"}
