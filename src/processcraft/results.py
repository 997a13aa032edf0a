"""
Tagged results returned across the service boundary.

Services never raise for validation, authorization, or persistence failures;
they return ``Ok`` or ``Err`` and let the caller (router or board controller)
decide how to render the outcome.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Generic, List, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

T = TypeVar("T")

FORM_FIELD = "_form"
_REQUEST_LOCATIONS = ("body", "query", "path", "header")


# PUBLIC_INTERFACE
class ErrorKind(str, enum.Enum):
    """Failure taxonomy shared by the server and the board client."""

    VALIDATION = "ValidationError"
    AUTHORIZATION = "AuthorizationError"
    PERSISTENCE = "PersistenceError"
    NETWORK = "NetworkError"


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T
    message: str = ""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    field_errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def validation_error(message: str, field_errors: Dict[str, List[str]]) -> Err:
    return Err(ErrorKind.VALIDATION, message, field_errors)


def authorization_error(message: str, form_error: str = "Access denied.") -> Err:
    return Err(ErrorKind.AUTHORIZATION, message, {FORM_FIELD: [form_error]})


def persistence_error(message: str) -> Err:
    return Err(ErrorKind.PERSISTENCE, message, {FORM_FIELD: ["Database error occurred."]})


def network_error(message: str = "Could not reach the server. Please try again.") -> Err:
    return Err(ErrorKind.NETWORK, message)


# PUBLIC_INTERFACE
def field_errors_from(exc: PydanticValidationError) -> Dict[str, List[str]]:
    """
    Flatten pydantic errors into ``{field: [messages]}``.

    Errors without a location are reported under ``_form``.
    """
    errors: Dict[str, List[str]] = {}
    for item in exc.errors():
        loc = item.get("loc") or ()
        # Request errors are located as ("body", field); keep only the field name
        parts = [str(p) for p in loc if p not in _REQUEST_LOCATIONS]
        key = parts[0] if parts else FORM_FIELD
        msg = str(item.get("msg", "Invalid value"))
        # pydantic prefixes custom validator messages with "Value error, "
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.setdefault(key, []).append(msg)
    return errors

