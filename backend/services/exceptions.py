"""
ChargeSphere - Domain Exceptions
Error taxonomy shared by services and routers.

Every exception carries the HTTP status it is rendered with by the
application-level handler registered in main.py.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class ChargeSphereError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChargeSphereError):
    """Malformed or missing input. Carries one entry per violated field."""

    status_code = 422

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @property
    def fields(self) -> List[str]:
        return [error["field"] for error in self.errors]


class AuthenticationError(ChargeSphereError):
    """Missing or wrong credentials."""

    status_code = 401


class AuthorizationError(ChargeSphereError):
    """Caller lacks ownership of the resource or the required role."""

    status_code = 403


class NotFoundError(ChargeSphereError):
    status_code = 404


class ConflictError(ChargeSphereError):
    """The request collides with existing state."""

    status_code = 409


class InvalidTransitionError(ConflictError):
    """A booking status change the state machine does not allow."""


class DuplicateActionError(ConflictError):
    """A one-time action (helpful vote, favorite) repeated by the same user."""

    status_code = 400


class ServerError(ChargeSphereError):
    """Persistence or upstream failure. The message stays generic."""

    status_code = 500


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten pydantic error dicts into {field, message, type} entries."""
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]


def parse_payload(model: Type[ModelT], payload: Union[ModelT, Dict[str, Any]]) -> ModelT:
    """
    Coerce a raw payload into a request schema.

    Model instances pass through untouched. Dicts are validated and every
    violated field is reported in a single ValidationError.
    """
    if isinstance(payload, model):
        return payload

    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            "Validation error",
            errors=format_validation_errors(e.errors()),
        ) from e
