import pytest
from pydantic import ValidationError

from user_records.core.config import Settings
from user_records.core.exceptions import ConfigurationError


def make_settings(**kwargs):
    # Ignore any .env in the working directory and a DATABASE_URL set in the environment
    kwargs.setdefault("DATABASE_URL", None)
    return Settings(_env_file=None, **kwargs)


def test_postgres_url_from_parts():
    settings = make_settings(
        DB_DIALECT="postgres",
        DB_HOST="db.internal",
        DB_PORT=5433,
        DB_NAME="people",
        DB_USER="devuser",
        DB_PASSWORD="s3cret",
    )

    url = settings.database_url()

    assert url.drivername == "postgresql+psycopg2"
    assert url.host == "db.internal"
    assert url.port == 5433
    assert url.database == "people"
    assert url.username == "devuser"
    assert url.password == "s3cret"


def test_database_url_overrides_parts():
    settings = make_settings(DATABASE_URL="sqlite://", DB_DIALECT="postgres")

    assert settings.database_url().get_backend_name() == "sqlite"


def test_sqlite_dialect_uses_name_as_path():
    settings = make_settings(DB_DIALECT="sqlite", DB_NAME="users.db")

    url = settings.database_url()

    assert url.drivername == "sqlite"
    assert url.database == "users.db"
    assert url.host is None


def test_unknown_dialect():
    with pytest.raises(ConfigurationError):
        make_settings(DB_DIALECT="oracle", DATABASE_URL=None).database_url()


def test_port_range_is_validated():
    with pytest.raises(ValidationError):
        make_settings(DB_PORT=70000)


def test_log_level_is_normalized():
    assert make_settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    with pytest.raises(ValidationError):
        make_settings(LOG_LEVEL="chatty")


@pytest.mark.parametrize(
    "environment, confirm, expected",
    [
        ("development", False, True),
        ("test", False, True),
        ("production", False, False),
        ("Production", True, True),
    ],
)
def test_destructive_sync_confirmation(environment, confirm, expected):
    settings = make_settings(ENVIRONMENT=environment, CONFIRM_DESTRUCTIVE_SYNC=confirm)

    assert settings.destructive_sync_confirmed() is expected
