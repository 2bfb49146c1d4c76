"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Expected failures are VALUES, not exceptions. The store and the validator
return them, the handlers turn them into responses:

    ┌──────────────────┬────────┬──────────────────────────────────────────┐
    │ Type             │ Status │ Produced by                              │
    ├──────────────────┼────────┼──────────────────────────────────────────┤
    │ ValidationError  │  400   │ validate_user()                          │
    │ ConflictError    │  400   │ UserHandlers (insert refused / rename)   │
    │ NotFoundError    │  404   │ UserStore.replace(), UserHandlers        │
    │ AuthError        │  401   │ AuthenticationMiddleware                 │
    └──────────────────┴────────┴──────────────────────────────────────────┘

Anything else is an unexpected fault: a plain Python exception that travels
up the chain until ErrorHandlingMiddleware turns it into a 500.

    handler result ──► error value?  ──yes──► error.to_response()
                            │
                            no
                            ▼
                       success response

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from .http.response import HTTPResponse, json_error, not_found
from .http.status_codes import HTTPStatus


class ValidationCode(Enum):
    """Why a candidate user was rejected."""

    NAME_EMPTY = "NameEmpty"
    NAME_TOO_SHORT = "NameTooShort"
    NAME_CONTAINS_WHITESPACE = "NameContainsWhitespace"
    AGE_OUT_OF_RANGE = "AgeOutOfRange"


@dataclass(frozen=True)
class ServiceError:
    """Base for every expected failure."""

    message: str

    status: ClassVar[HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR

    def to_response(self) -> HTTPResponse:
        return json_error(self.status, self.message)


@dataclass(frozen=True)
class ValidationError(ServiceError):
    code: ValidationCode = ValidationCode.NAME_EMPTY

    status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST


@dataclass(frozen=True)
class ConflictError(ServiceError):
    message: str = "A user with the same username already exists."

    status: ClassVar[HTTPStatus] = HTTPStatus.BAD_REQUEST


@dataclass(frozen=True)
class NotFoundError(ServiceError):
    message: str = "User not found."

    status: ClassVar[HTTPStatus] = HTTPStatus.NOT_FOUND

    def to_response(self) -> HTTPResponse:
        # Missing users answer with an empty 404.
        return not_found()


@dataclass(frozen=True)
class AuthError(ServiceError):
    status: ClassVar[HTTPStatus] = HTTPStatus.UNAUTHORIZED


MISSING_TOKEN = AuthError("Authorization token is missing.")
INVALID_TOKEN = AuthError("Invalid or expired token.")
