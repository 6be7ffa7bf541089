import logging
from typing import Any, List, Mapping, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from user_records.core.exceptions import (
    RecordNotFoundError,
    RecordValidationError,
    UniqueConstraintViolation,
)
from user_records.models.user import User, next_timestamp
from user_records.schemas.user import UserCreate, UserUpdate
from user_records.services.predicates import OrderSpec, Predicate, build_conditions, build_ordering

logger = logging.getLogger(__name__)


def _validation_error(e: ValidationError, action: str) -> RecordValidationError:
    errors = e.errors(include_url=False)
    fields = ", ".join(".".join(str(part) for part in err["loc"]) or "record" for err in errors)
    return RecordValidationError(f"Invalid data to {action} user ({fields})", errors)


class UserRepository:
    """CRUD operations for User records. Every method takes the session first."""

    @staticmethod
    def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def _exists(db: Session, user_id: Any) -> bool:
        return db.query(User.id).filter(User.id == user_id).first() is not None

    @staticmethod
    def insert(db: Session, fields: Mapping[str, Any]) -> User:
        """
        Create a user from a mapping of field values.

        id and timestamps are generated; age defaults to 18 when omitted.
        Raises RecordValidationError when first_name or email is missing and
        UniqueConstraintViolation when the email is already registered.
        """
        try:
            data = UserCreate.model_validate(dict(fields))
        except ValidationError as e:
            raise _validation_error(e, "create") from e

        # Explicit check gives a clearer error than the database constraint;
        # the IntegrityError branch below still covers a concurrent insert
        if UserRepository._email_taken(db, data.email):
            raise UniqueConstraintViolation("email", data.email)

        db_user = User(**data.model_dump())
        try:
            db.add(db_user)
            db.commit()
            # Refresh to load auto-generated fields (id, timestamps) from database
            db.refresh(db_user)
        except IntegrityError as e:
            db.rollback()
            raise UniqueConstraintViolation("email", data.email) from e
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.debug(f"Inserted user {db_user.id} ({db_user.email})")
        return db_user

    @staticmethod
    def find_all(
        db: Session,
        where: Optional[Predicate] = None,
        order_by: Optional[OrderSpec] = None,
    ) -> List[User]:
        """All users matching `where` (every user when empty), as a list snapshot"""
        query = db.query(User).filter(*build_conditions(User, where))
        ordering = build_ordering(User, order_by)
        if ordering:
            query = query.order_by(*ordering)
        return query.all()

    @staticmethod
    def find_by_id(db: Session, user_id: Any) -> Optional[User]:
        """User with the given primary key, or None"""
        return db.get(User, user_id)

    @staticmethod
    def find_one(db: Session, where: Predicate) -> Optional[User]:
        """
        First user matching `where`, or None.

        When several rows match, the one with the lowest id wins so repeated
        calls return the same record.
        """
        return (
            db.query(User)
            .filter(*build_conditions(User, where))
            .order_by(User.id.asc())
            .first()
        )

    @staticmethod
    def count(db: Session, where: Optional[Predicate] = None) -> int:
        statement = select(func.count()).select_from(User).where(*build_conditions(User, where))
        return db.execute(statement).scalar_one()

    @staticmethod
    def update_one(db: Session, user: User, changes: Optional[Mapping[str, Any]] = None) -> User:
        """
        Persist changed fields of `user` and refresh updated_at.

        `changes` is applied on top of any attributes already modified on the
        instance, so both `user.last_name = "X"; update_one(db, user)` and
        `update_one(db, user, {"last_name": "X"})` work.
        """
        if user.id is None or not UserRepository._exists(db, user.id):
            db.rollback()
            raise RecordNotFoundError("User", user.id)

        try:
            values = UserUpdate.model_validate(dict(changes or {})).changes()
        except ValidationError as e:
            # Drop edits made directly on the instance so a later commit cannot save them
            db.rollback()
            raise _validation_error(e, "update") from e

        for field, value in values.items():
            setattr(user, field, value)

        # Validate attributes set directly on the instance as well
        if not user.first_name or not user.email:
            db.rollback()
            raise RecordValidationError("first_name and email are required")

        if "email" in values and UserRepository._email_taken(db, user.email, exclude_id=user.id):
            db.rollback()
            raise UniqueConstraintViolation("email", user.email)

        user.updated_at = next_timestamp(user.updated_at)
        try:
            db.commit()
            db.refresh(user)
        except IntegrityError as e:
            db.rollback()
            raise UniqueConstraintViolation("email", user.email) from e
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.debug(f"Updated user {user.id}")
        return user

    @staticmethod
    def update_many(
        db: Session,
        where: Optional[Predicate],
        changes: Mapping[str, Any],
    ) -> Tuple[int, List[User]]:
        """
        Apply the same field changes to every user matching `where`.

        Returns (number of affected rows, the updated rows).
        """
        try:
            values = UserUpdate.model_validate(dict(changes)).changes()
        except ValidationError as e:
            db.rollback()
            raise _validation_error(e, "update") from e

        # Nothing to write means nothing is touched, updated_at included
        if not values:
            return 0, []

        users = (
            db.query(User)
            .filter(*build_conditions(User, where))
            .order_by(User.id.asc())
            .all()
        )
        if not users:
            return 0, []

        # A unique column cannot take the same value on several rows
        if "email" in values:
            if len(users) > 1 or UserRepository._email_taken(db, values["email"], exclude_id=users[0].id):
                db.rollback()
                raise UniqueConstraintViolation("email", values["email"])

        for user in users:
            for field, value in values.items():
                setattr(user, field, value)
            user.updated_at = next_timestamp(user.updated_at)

        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise UniqueConstraintViolation("email", values.get("email")) from e
        except SQLAlchemyError:
            db.rollback()
            raise

        for user in users:
            db.refresh(user)

        logger.debug(f"Bulk update touched {len(users)} user(s)")
        return len(users), users

    @staticmethod
    def delete_one(db: Session, user: User) -> None:
        """Permanently remove the user's row. Raises RecordNotFoundError if it is already gone."""
        if user.id is None or not UserRepository._exists(db, user.id):
            raise RecordNotFoundError("User", user.id)

        try:
            db.delete(user)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.debug(f"Deleted user {user.id}")


user_repository = UserRepository()
