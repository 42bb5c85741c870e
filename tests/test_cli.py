import pytest

from skyexplorer_auth.cli.cli_tools import handle_user_management
from tests.conftest import JWT_SECRET


@pytest.fixture(autouse=True)
def cli_env(monkeypatch):
    monkeypatch.setenv("SKYEXPLORER_AUTH_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("SKYEXPLORER_AUTH_BCRYPT_ROUNDS", "4")
    monkeypatch.delenv("SKYEXPLORER_AUTH_PROVIDER", raising=False)
    monkeypatch.delenv("SKYEXPLORER_AUTH_ADMIN_PASSWORD", raising=False)


@pytest.fixture
def db_args(tmp_path):
    return ["--db-url", str(tmp_path / "cli.db")]


@pytest.fixture
def xml_args(tmp_path):
    return [
        "--provider", "xml",
        "--xml-file", str(tmp_path / "users.xml"),
        "--db-url", str(tmp_path / "mirror.db"),
    ]


def run(*argv):
    return handle_user_management(list(argv))


def test_no_command_prints_help(capsys):
    assert run() == 1
    assert "usage" in capsys.readouterr().out


def test_init_creates_admin_once(db_args, capsys):
    assert run("init", "--password", "adminpw", *db_args) == 0
    assert "Admin user 'admin' created" in capsys.readouterr().out

    assert run("init", "--password", "adminpw", *db_args) == 0
    assert "already exists" in capsys.readouterr().out


def test_init_generates_password_when_missing(db_args, capsys):
    assert run("init", "--username", "root", *db_args) == 0

    out = capsys.readouterr().out
    assert "ADMIN ACCOUNT CREATED" in out
    assert "Username: root" in out


def test_add_and_list_users(db_args, capsys):
    assert run("add-user", "bob", "--email", "bob@example.com", "--password", "pw", "--role", "pilot", *db_args) == 0
    assert run("list-users", *db_args) == 0

    out = capsys.readouterr().out
    assert "bob@example.com" in out
    assert "PILOT,USER" in out


def test_add_duplicate_user_fails(db_args, capsys):
    run("add-user", "bob", "--email", "bob@example.com", "--password", "pw", *db_args)

    assert run("add-user", "bob", "--email", "other@example.com", "--password", "pw", *db_args) == 1
    assert "Username already exists" in capsys.readouterr().out


def test_role_commands(db_args, capsys):
    run("add-user", "bob", "--email", "bob@example.com", "--password", "pw", *db_args)

    assert run("add-role", "bob", "admin", *db_args) == 0
    assert "Roles now: ADMIN,USER" in capsys.readouterr().out

    assert run("add-role", "bob", "ADMIN", *db_args) == 0
    assert "already has role ADMIN" in capsys.readouterr().out

    assert run("remove-role", "bob", "ADMIN", *db_args) == 0
    assert "Roles now: USER" in capsys.readouterr().out

    assert run("remove-role", "ghost", "ADMIN", *db_args) == 1


def test_delete_user(db_args):
    run("add-user", "bob", "--email", "bob@example.com", "--password", "pw", *db_args)

    assert run("delete-user", "bob", "--yes", *db_args) == 0
    assert run("delete-user", "bob", "--yes", *db_args) == 1


def test_hash_password(capsys):
    assert run("hash-password", "s3cret", "--rounds", "4") == 0

    out = capsys.readouterr().out
    assert "$2b$04$" in out
    assert "Verification: OK" in out


def test_sync_user_in_xml_mode(xml_args, capsys):
    assert run("add-user", "alice", "--email", "alice@example.com", "--password", "pw", *xml_args) == 0
    assert run("sync-user", "alice", *xml_args) == 0
    assert "'alice' synchronized to database" in capsys.readouterr().out

    assert run("sync-user", "ghost", *xml_args) == 1


def test_sync_user_needs_xml_provider(db_args, capsys):
    assert run("sync-user", "alice", *db_args) == 1
    assert "only runs with the xml provider" in capsys.readouterr().out
