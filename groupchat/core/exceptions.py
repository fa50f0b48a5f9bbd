# =============================================================================
# File: groupchat/core/exceptions.py
# Description: Exception handlers for FastAPI application
# =============================================================================
#
# Every failure is rendered as a graph envelope: {"data": null, "errors": [..]}
# with the error taxonomy code in each entry.
# =============================================================================

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from starlette import status
from starlette.responses import JSONResponse

from groupchat.common.exceptions.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    GroupChatException,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger("groupchat.exceptions")

_STATUS_BY_EXCEPTION = (
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictError, status.HTTP_409_CONFLICT),
)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""

    app.add_exception_handler(GroupChatException, groupchat_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")


def status_for(exc: GroupChatException) -> int:
    for exc_class, status_code in _STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def error_response(status_code: int, *errors: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"data": None, "errors": list(errors)})


async def groupchat_exception_handler(request: Request, exc: GroupChatException) -> JSONResponse:
    """Handle taxonomy errors raised by handlers and dependencies"""
    logger.info(f"{type(exc).__name__} on path {request.url.path}: {exc.message}")
    return error_response(status_for(exc), exc.to_error_dict())


async def validation_exception_handler(request: Request, exc) -> JSONResponse:
    """Handle request and command validation errors"""
    logger.warning(f"Validation error on path {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        error_dict = {
            "loc": list(error["loc"]),
            "msg": error["msg"],
            "type": error["type"],
        }
        if "ctx" in error:
            error_dict["ctx"] = {
                key: str(value) if isinstance(value, Exception) else value
                for key, value in error["ctx"].items()
            }
        errors.append(error_dict)

    first_message = errors[0]["msg"] if errors else "Invalid request"
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ValidationError(first_message, details={"errors": errors}).to_error_dict(),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general unhandled exceptions"""
    logger.error(f"Unhandled exception on path {request.url.path}: {str(exc)}", exc_info=True)

    if os.getenv("ENVIRONMENT", "development") == "production":
        message = "An internal server error occurred."
    else:
        message = f"{type(exc).__name__}: {exc}"

    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"code": GroupChatException.code, "message": message},
    )
