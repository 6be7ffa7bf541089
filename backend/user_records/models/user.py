from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, DateTime, Integer, String

from user_records.core.database import Base

DEFAULT_AGE = 18


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (stored the same way on every backend)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def next_timestamp(previous: datetime | None) -> datetime:
    """
    Timestamp for a mutation that is strictly later than `previous`.

    Two saves inside the same clock tick would otherwise share a value.
    """
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class User(Base):
    """
    User record - the only entity of the lifecycle demo.

    The table name is declared explicitly; nothing is derived from the
    class name.
    """
    __tablename__ = "users"
    # sqlite_autoincrement keeps SQLite from reusing ids of deleted rows
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=True)
    # Email is unique and indexed for lookups by email
    email = Column(String(255), unique=True, index=True, nullable=False)
    age = Column(Integer, nullable=True, default=DEFAULT_AGE)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    # The repository sets updated_at on every mutation (see next_timestamp)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
