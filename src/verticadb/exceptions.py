"""
Database-specific exception classes and native error classification.

Native ``vertica_python`` errors never reach callers directly. The executor
passes them through :func:`classify_error`, which walks an ordered rule table
of (message regex, exception class) pairs and returns the first match.
"""
import enum
import re

import vertica_python.errors


class ErrorKind(enum.Enum):
    """Stable, adapter-independent failure categories.
    """
    GENERIC = 'generic'
    CONNECTION = 'connection'
    CONNECTION_CLOSED = 'connection_closed'
    NOT_NULL_VIOLATION = 'not_null_violation'
    UNIQUE_VIOLATION = 'unique_violation'
    FOREIGN_KEY_VIOLATION = 'foreign_key_violation'
    CHECK_VIOLATION = 'check_violation'
    SERIALIZATION_FAILURE = 'serialization_failure'
    COPY_REJECTED = 'copy_rejected'
    TRANSACTION = 'transaction'
    VALIDATION = 'validation'


class DatabaseError(Exception):
    """Base class for all database module errors.

    Keeps the original native message (verbatim) and the native exception
    for diagnosis.
    """
    kind = ErrorKind.GENERIC

    def __init__(self, message: str = '', native: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.native = native


class GenericDatabaseError(DatabaseError):
    """Unclassified native failure.
    """


class DatabaseConnectionError(DatabaseError):
    """Error establishing or maintaining database connection.
    """
    kind = ErrorKind.CONNECTION


class ConnectionClosedError(DatabaseConnectionError):
    """Operation attempted on a closed connection.
    """
    kind = ErrorKind.CONNECTION_CLOSED


class ConstraintViolation(DatabaseError):
    """Database constraint violation error.
    """


class NotNullConstraintViolation(ConstraintViolation):
    kind = ErrorKind.NOT_NULL_VIOLATION


class UniqueConstraintViolation(ConstraintViolation):
    kind = ErrorKind.UNIQUE_VIOLATION


class ForeignKeyConstraintViolation(ConstraintViolation):
    kind = ErrorKind.FOREIGN_KEY_VIOLATION


class CheckConstraintViolation(ConstraintViolation):
    kind = ErrorKind.CHECK_VIOLATION


class SerializationFailure(DatabaseError):
    kind = ErrorKind.SERIALIZATION_FAILURE


class CopyRejectedError(DatabaseError):
    """COPY rejected some or all of the streamed records.
    """
    kind = ErrorKind.COPY_REJECTED


class TransactionError(DatabaseError):
    """Invalid transaction state transition.
    """
    kind = ErrorKind.TRANSACTION


class ValidationError(DatabaseError):
    """Error in input validation.
    """
    kind = ErrorKind.VALIDATION


# Evaluated top to bottom, first match wins
DATABASE_ERROR_PATTERNS: list[tuple[re.Pattern, type[DatabaseError]]] = [
    (re.compile(r'Sqlstate: 22004', re.IGNORECASE), NotNullConstraintViolation),
    (re.compile(r'Sqlstate: 23502', re.IGNORECASE), NotNullConstraintViolation),
    (re.compile(r'Sqlstate: 23505', re.IGNORECASE), UniqueConstraintViolation),
    (re.compile(r'Sqlstate: 23503', re.IGNORECASE), ForeignKeyConstraintViolation),
    (re.compile(r'Sqlstate: 23514', re.IGNORECASE), CheckConstraintViolation),
    (re.compile(r'Sqlstate: 40001', re.IGNORECASE), SerializationFailure),
    (re.compile(r'Sqlstate: 22V04', re.IGNORECASE), CopyRejectedError),
]


def register_error_pattern(pattern: str | re.Pattern, error_class: type[DatabaseError]) -> None:
    """Append a rule to the classification table.
    """
    if isinstance(pattern, str):
        pattern = re.compile(pattern, re.IGNORECASE)
    DATABASE_ERROR_PATTERNS.append((pattern, error_class))


def classify_message(message: str,
                     patterns: list[tuple[re.Pattern, type[DatabaseError]]] | None = None,
                     ) -> type[DatabaseError]:
    """Return the error class for a native message, GenericDatabaseError if none matches.
    """
    for regex, error_class in (DATABASE_ERROR_PATTERNS if patterns is None else patterns):
        if regex.search(message):
            return error_class
    return GenericDatabaseError


def classify_error(exc: BaseException,
                   patterns: list[tuple[re.Pattern, type[DatabaseError]]] | None = None,
                   ) -> DatabaseError:
    """Convert a native driver exception into a package error.

    Message rules are tried first; native connection failures that match no
    rule become DatabaseConnectionError.
    """
    if isinstance(exc, DatabaseError):
        return exc
    message = str(exc)
    error_class = classify_message(message, patterns)
    if error_class is GenericDatabaseError and isinstance(exc, vertica_python.errors.ConnectionError):
        error_class = DatabaseConnectionError
    return error_class(message, native=exc)


NativeError = vertica_python.errors.Error
