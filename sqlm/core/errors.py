"""
Error kinds raised by sqlm.

Every stage error chains the driver exception (``raise ... from exc``) so the
underlying cause stays reachable through ``__cause__``. Errors that carry two
causes (the original failure and a failed rollback) are exception groups so
both remain inspectable through ``.exceptions``.
"""


class SqlmError(Exception):
    """Base class for all single-cause sqlm errors."""


# --- pool initialisation ---


class ConnectionOpenError(SqlmError):
    """The driver / data source combination (or pool arguments) is invalid."""


class PingError(SqlmError):
    """The connectivity probe failed or did not finish within its timeout."""


# --- transaction lifecycle ---


class BeginError(SqlmError):
    pass


class CommitError(SqlmError):
    pass


class TransactionClosedError(SqlmError):
    """A transaction capability was used after its unit of work returned."""


class RollbackOnErrorError(ExceptionGroup):
    """The unit of work raised an error and the rollback failed as well."""

    @property
    def error(self) -> Exception:
        return self.exceptions[0]

    @property
    def rollback_error(self) -> Exception:
        return self.exceptions[1]


class RollbackOnFaultError(BaseExceptionGroup):
    """The unit of work faulted (non-``Exception`` abort) and the rollback failed."""

    @property
    def fault(self) -> BaseException:
        return self.exceptions[0]

    @property
    def rollback_error(self) -> BaseException:
        return self.exceptions[1]


# --- dynamic row scanning ---


class QueryExecError(SqlmError):
    pass


class ColumnDescribeError(SqlmError):
    pass


class RowScanError(SqlmError):
    pass


class CursorReleaseError(SqlmError):
    """
    Releasing the row cursor failed.

    ``iteration_error`` holds the stream fault seen before the release, if any.
    """

    iteration_error: Exception | None = None


class IterationError(SqlmError):
    """The driver reported a fault while streaming rows (checked after release)."""


class NotFoundError(SqlmError, LookupError):
    """A single-row query matched no rows."""


# --- cancellation ---


class DeadlineExceededError(SqlmError, TimeoutError):
    """The caller's deadline expired or was cancelled before the call finished."""
