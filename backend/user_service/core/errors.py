"""Domain errors raised by the token and verification flows, tagged by kind.

Handlers never build HTTP responses from arbitrary exceptions: the kind decides
the status code and the message is always one of ours.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    UPSTREAM_FAILURE = "upstream_failure"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.UPSTREAM_FAILURE: 502,
}


class UserServiceError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class InvalidInputError(UserServiceError):
    kind = ErrorKind.INVALID_INPUT


class UnauthorizedError(UserServiceError):
    kind = ErrorKind.UNAUTHORIZED


class UpstreamFailureError(UserServiceError):
    kind = ErrorKind.UPSTREAM_FAILURE
