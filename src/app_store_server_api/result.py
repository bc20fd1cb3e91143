"""Result values returned by every App Store Server API call.

A call never raises for an expected failure. It returns either a
``Success`` holding the decoded response or a ``Failure`` describing what
went wrong:

- transport problems (connection, timeout, oversized body) and decode
  problems set ``cause`` and leave ``status_code`` empty
- non-2xx responses set ``status_code``, plus ``raw_api_error`` when the body
  is an error envelope, plus ``api_error`` when that code is a known one
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from .api_error import APIError
from .exceptions import APIException

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful call carrying the decoded response."""

    response: T

    @property
    def is_success(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.response


@dataclass(frozen=True)
class Failure:
    """Failed call.

    Attributes:
        status_code: HTTP status of a non-2xx response
        raw_api_error: Numeric error code from the error envelope
        api_error: Known error for ``raw_api_error``, None when unrecognized
        error_message: Optional message from the error envelope
        cause: Exception behind a failure that has no usable HTTP response
    """

    status_code: Optional[int] = None
    raw_api_error: Optional[int] = None
    api_error: Optional[APIError] = None
    error_message: Optional[str] = None
    cause: Optional[BaseException] = None

    def __post_init__(self):
        if self.status_code is None and self.cause is None:
            raise ValueError("Failure requires a status_code or a cause")

    @property
    def is_success(self) -> bool:
        return False

    def to_exception(self) -> APIException:
        """Convert this failure into an ``APIException``."""
        return APIException(
            status_code=self.status_code,
            raw_api_error=self.raw_api_error,
            api_error=self.api_error,
            error_message=self.error_message,
            cause=self.cause,
        )

    def unwrap(self):
        """Raise this failure as an ``APIException``."""
        raise self.to_exception() from self.cause


APIResult = Union[Success[T], Failure]
