"""
Error hierarchy for the user records lifecycle.

SQLAlchemy and pydantic errors are translated into these at the boundary
where they happen (connection handle, schema sync, repository), so the run
script only has to know about one family of exceptions.
"""

from typing import Any, Dict, List, Optional


class UserRecordsError(Exception):
    """Base class for every error raised by this package"""


class ConfigurationError(UserRecordsError):
    """Connection settings cannot be turned into a usable database URL"""


class DatabaseConnectionError(UserRecordsError):
    """Authentication or network failure while talking to the database"""


class RecordValidationError(UserRecordsError):
    """A required field is missing or a field value is invalid"""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @property
    def fields(self) -> List[str]:
        """Names of the fields that failed validation"""
        return [".".join(str(part) for part in error.get("loc", ())) for error in self.errors]


class UniqueConstraintViolation(UserRecordsError):
    """A value for a unique column is already taken by another record"""

    def __init__(self, field: str, value: Any):
        super().__init__(f"{field} '{value}' is already in use")
        self.field = field
        self.value = value


class RecordNotFoundError(UserRecordsError):
    """The record an operation targets does not exist (anymore)"""

    def __init__(self, model: str, record_id: Any):
        super().__init__(f"{model} with id {record_id} not found")
        self.model = model
        self.record_id = record_id


class SchemaSyncError(UserRecordsError):
    """The schema synchronizer refused or failed to reconcile a table"""


class InvalidQueryError(UserRecordsError):
    """A predicate or ordering refers to an unknown field or operator"""
