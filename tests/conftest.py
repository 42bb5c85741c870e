"""
Shared fixtures: temporary XML file, temporary SQLite database,
controllable clocks and a fast password encoder.
"""

from datetime import datetime, timedelta

import pytest

from skyexplorer_auth.auth.models import Identity
from skyexplorer_auth.auth.providers.sql import PeeweeUserProvider
from skyexplorer_auth.auth.providers.xml import XmlUserProvider
from skyexplorer_auth.auth.security import PasswordEncoder
from skyexplorer_auth.utils.config import AuthConfig

JWT_SECRET = "0123456789abcdef" * 8


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0))


@pytest.fixture
def xml_path(tmp_path):
    return tmp_path / "data" / "users.xml"


@pytest.fixture
def xml_provider(xml_path):
    return XmlUserProvider({"XML_FILE": str(xml_path)})


@pytest.fixture
def db_url(tmp_path):
    # File-backed: Peewee connections are per thread, the TestClient runs
    # requests on its own thread
    return f"sqlite:///{tmp_path / 'auth.db'}"


@pytest.fixture
def db_provider(db_url):
    provider = PeeweeUserProvider({"DATABASE_URL": db_url})
    yield provider
    provider.db.close()


@pytest.fixture(params=["xml", "database"])
def provider(request):
    fixture = "xml_provider" if request.param == "xml" else "db_provider"
    return request.getfixturevalue(fixture)


@pytest.fixture
def encoder():
    return PasswordEncoder(rounds=4)


@pytest.fixture
def make_identity():
    def _make(username="alice", email=None, roles=("USER",), password_hash="$2b$04$hash", **kwargs):
        return Identity(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=password_hash,
            roles=set(roles),
            **kwargs,
        )

    return _make


@pytest.fixture
def auth_env(tmp_path, db_url, xml_path):
    return {
        "SKYEXPLORER_AUTH_JWT_SECRET": JWT_SECRET,
        "SKYEXPLORER_AUTH_BCRYPT_ROUNDS": "4",
        "SKYEXPLORER_AUTH_DATABASE_URL": db_url,
        "SKYEXPLORER_AUTH_XML_FILE": str(xml_path),
    }


@pytest.fixture
def auth_config(auth_env):
    return AuthConfig(env=auth_env)
