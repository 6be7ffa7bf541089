"""
Lifecycle walkthrough for User records.

Connects, recreates the users table, then creates, reads, updates and
deletes a few records, logging each step. The connection is closed on every
exit path.
"""

import logging
from typing import Iterable, Optional

from user_records.core.config import Settings, settings as default_settings
from user_records.core.database import Database
from user_records.core.logging import setup_logging
from user_records.models.user import User
from user_records.schemas.user import to_dict
from user_records.services.schema_sync import SchemaSynchronizer
from user_records.services.user_repository import user_repository

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    {"first_name": "Alice", "last_name": "Smith", "email": "alice.smith@example.com", "age": 30},
    # No age given - the default of 18 applies
    {"first_name": "Bob", "last_name": "Johnson", "email": "bob.johnson@example.com"},
    {"first_name": "Charlie", "last_name": "Brown", "email": "charlie.brown@example.com", "age": 25},
]


def _log_users(title: str, users: Iterable[User]) -> None:
    logger.info(title)
    for user in users:
        logger.info(f"- {user.full_name} ({user.email}, age {user.age})")


def run_database_operations(settings: Optional[Settings] = None) -> bool:
    """
    Run the full create/read/update/delete sequence once.

    Returns True when every step succeeded. Any error stops the remaining
    steps, is logged, and the connection is still closed.
    """
    settings = settings or default_settings
    database = Database(settings)
    try:
        with database:
            database.authenticate()
            logger.info("Database connection established")

            synchronizer = SchemaSynchronizer(database.engine)
            synchronizer.sync(User, destructive=True, confirmed=settings.destructive_sync_confirmed())
            logger.info("Users table synchronized (recreated if it already existed)")

            db = database.session

            # Create
            logger.info("--- Creating users ---")
            created = []
            for fields in SAMPLE_USERS:
                user = user_repository.insert(db, fields)
                created.append(user)
                logger.info(f"User created: {to_dict(user)}")
            alice = created[0]

            # Read
            logger.info("--- Finding users ---")
            _log_users("All users in the database:", user_repository.find_all(db))

            user_by_id = user_repository.find_by_id(db, alice.id)
            if user_by_id:
                logger.info(f"User found by id ({alice.id}): {to_dict(user_by_id)}")
            else:
                logger.info(f"User with id {alice.id} not found")

            bob = user_repository.find_one(db, {"email": "bob.johnson@example.com"})
            if bob:
                logger.info(f"User found by email: {to_dict(bob)}")
            else:
                logger.info("User bob.johnson@example.com not found")

            older_than_20 = user_repository.find_all(
                db, where={"age": {"greater_than": 20}}, order_by=("first_name", "asc")
            )
            _log_users("Users older than 20:", older_than_20)

            # Update
            logger.info("--- Updating users ---")
            if bob:
                bob.last_name = "Williams"
                user_repository.update_one(db, bob)
                logger.info(f"User updated: {to_dict(bob)}")

            affected, updated_rows = user_repository.update_many(
                db, where={"last_name": "Smith"}, changes={"age": 35}
            )
            logger.info(f"Updated {affected} user(s) with last name Smith")
            if updated_rows:
                logger.info(f"Updated record: {to_dict(updated_rows[0])}")

            # Delete
            logger.info("--- Deleting users ---")
            charlie = user_repository.find_one(db, {"email": "charlie.brown@example.com"})
            if charlie:
                user_repository.delete_one(db, charlie)
                logger.info("User Charlie deleted")
            else:
                logger.info("User Charlie not found for deletion")

            _log_users("Users remaining after deletion:", user_repository.find_all(db))
        return True
    except Exception as e:
        logger.exception(f"Error while connecting to or operating on the database: {str(e)}")
        return False
    finally:
        # The with-block has released the connection by now, on either path
        logger.info("Database connection closed")


def main() -> int:
    setup_logging(default_settings.LOG_LEVEL)
    run_database_operations(default_settings)
    # Success or failure is reported through the log only
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
