"""
Exception hierarchy for crust_data.

Catch `CrustDataError` to handle every failure raised by the library, or one
of the subclasses when the caller needs to react to a specific outcome
(e.g. map `CrustNotFound` to a 404).

Backends translate their driver errors into these classes, so callers never
need to import azure or database exceptions.
"""


class CrustDataError(Exception):
    """
    Base exception for all crust_data errors.

    Example
    -------
    >>> try:
    ...     crusts.decrement_stock("thin9")
    ... except CrustDataError:
    ...     handle_failure()
    """

    #: Stable error code for programmatic handling.
    code: str = "crust_data_error"

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "An unspecified crust_data error occurred."
        super().__init__(message)


class ConfigurationError(CrustDataError):
    """Raised when the library cannot build a backend from its settings."""

    code: str = "configuration_error"


class InitializationError(CrustDataError):
    """
    Raised when the table cannot be created or seeded on first use.

    Initialization is attempted again on the next call.
    """

    code: str = "initialization_error"


class CrustNotFound(CrustDataError):
    """Raised when no row exists for the requested crust id."""

    code: str = "crust_not_found"


class OutOfStock(CrustDataError):
    """
    Raised when taking stock from a row whose stock count is already zero.

    The row is left untouched.
    """

    code: str = "out_of_stock"


class EntityAlreadyExists(CrustDataError):
    """Raised when inserting a row whose key is already taken."""

    code: str = "entity_already_exists"


class VersionConflict(CrustDataError):
    """
    Raised when a conditional write loses against a concurrent writer.

    The row's version tag (ETag) changed between the read and the write.
    Callers usually re-read the row and try again.
    """

    code: str = "version_conflict"


class RetriesExhausted(CrustDataError):
    """
    Raised when every optimistic retry attempt ended in a version conflict.

    Common causes
    -------------
    - Heavy write contention on a single row
    - The retry budget is too small for the expected concurrency
    """

    code: str = "retries_exhausted"

    def __init__(self, message: str | None = None, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts
