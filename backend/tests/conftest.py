import pytest

from user_records.core.config import Settings
from user_records.core.database import Database, get_db
from user_records.models.user import User
from user_records.services.schema_sync import SchemaSynchronizer
from user_records.services.user_repository import user_repository


@pytest.fixture
def sqlite_settings():
    # In-memory SQLite keeps every test isolated and needs no server
    return Settings(DATABASE_URL="sqlite://", ENVIRONMENT="test")


@pytest.fixture
def database(sqlite_settings):
    database = Database.open(sqlite_settings)
    SchemaSynchronizer(database.engine).sync(User, destructive=True, confirmed=True)
    yield database
    database.close()


@pytest.fixture
def db(database):
    # get_db closes the handle once the test is done with the session
    yield from get_db(database)


@pytest.fixture
def sample_users(db):
    """Alice (30), Bob (age left to the default) and Charlie (25)"""
    return [
        user_repository.insert(db, {"first_name": "Alice", "last_name": "Smith", "email": "alice@x.com", "age": 30}),
        user_repository.insert(db, {"first_name": "Bob", "last_name": "Johnson", "email": "bob@x.com"}),
        user_repository.insert(db, {"first_name": "Charlie", "last_name": "Brown", "email": "charlie@x.com", "age": 25}),
    ]
