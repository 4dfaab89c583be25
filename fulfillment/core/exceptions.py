"""
Custom exceptions for the fulfillment orchestrator.
Provides consistent error handling across services and the HTTP layer.
"""
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError


class FulfillmentError(Exception):
    """Base exception for the fulfillment orchestrator"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": type(self).__name__}


class NotFoundError(FulfillmentError):
    """Resource not found"""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource", resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message)


class ValidationError(FulfillmentError):
    """Caller-supplied input violates a precondition"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str = "Validation failed", field: str = None):
        if field:
            message = f"Validation failed for field '{field}': {message}"
        self.field = field
        super().__init__(message)


class PreconditionError(FulfillmentError):
    """
    A state-machine guard failed.

    `current_status` carries the state that blocked the move and `hint`
    tells the caller what has to happen first.
    """
    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        message: str = "Operation not allowed in the current state",
        current_status: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        self.current_status = current_status
        self.hint = hint
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.current_status is not None:
            data["current_status"] = self.current_status
        if self.hint:
            data["hint"] = self.hint
        return data


class ConfigurationError(FulfillmentError):
    """A required derived value (e.g. a payment amount) is missing"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str = "Required configuration is missing"):
        super().__init__(message)


class ForbiddenError(FulfillmentError):
    """Access denied"""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "You don't have permission to perform this action"):
        super().__init__(message)


# Exception handlers
async def fulfillment_error_handler(request: Request, exc: FulfillmentError) -> JSONResponse:
    """Translate a domain error into its HTTP status."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Storage constraint violations are surfaced opaquely."""
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Conflict with existing data", "error": "IntegrityError"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FulfillmentError, fulfillment_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
