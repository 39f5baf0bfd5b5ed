import enum
from dataclasses import dataclass
from typing import Any, Optional

import httpx


class FailureCause(str, enum.Enum):
    NOT_FOUND = 'not_found'
    PERMISSION_DENIED = 'permission_denied'
    ALREADY_EXISTS = 'already_exists'
    IO_ERROR = 'io_error'
    INVALID_ARGUMENT = 'invalid_argument'
    TRANSFER_ERROR = 'transfer_error'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class FSResult:
    """Operation outcome.

    Evaluates to ``ok`` in boolean context, so callers interested only in
    success or failure can keep treating it as a flag.

    Attributes
    ----------
    ok : bool
        Success flag.
    path : str, optional
        Affected path.
    value : Any, optional
        Operation payload.
    cause : FailureCause, optional
        Failure category.
    error : BaseException, optional
        Underlying exception, may be absent even on failure.
    """

    ok: bool
    path: Optional[str] = None
    value: Any = None
    cause: Optional[FailureCause] = None
    error: Optional[BaseException] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, path: Optional[str] = None, value: Any = None) -> 'FSResult':
        return cls(True, path, value)

    @classmethod
    def failure(
        cls,
        cause: FailureCause,
        path: Optional[str] = None,
        error: Optional[BaseException] = None,
        value: Any = None
    ) -> 'FSResult':
        return cls(False, path, value, cause, error)

    @classmethod
    def from_exception(cls, error: BaseException, path: Optional[str] = None, value: Any = None) -> 'FSResult':
        """Classify exception into failure result.

        Parameters
        ----------
        error : BaseException
            Caught exception.
        path : str, optional
            Affected path.
        value : Any, optional
            Payload to keep on the failure.

        Returns
        -------
        FSResult
            Failure result.
        """
        if isinstance(error, FileNotFoundError):
            cause = FailureCause.NOT_FOUND
        elif isinstance(error, PermissionError):
            cause = FailureCause.PERMISSION_DENIED
        elif isinstance(error, FileExistsError):
            cause = FailureCause.ALREADY_EXISTS
        elif isinstance(error, httpx.InvalidURL):
            cause = FailureCause.INVALID_ARGUMENT
        elif isinstance(error, httpx.HTTPError):
            cause = FailureCause.TRANSFER_ERROR
        else:
            cause = FailureCause.IO_ERROR
        return cls.failure(cause, path, error, value)
