"""Translate application exceptions into JSON error responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from ashteams_chat.application.exceptions import ChatAppError
from ashteams_chat.presentation.schemas import ErrorResponse


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(message=message).model_dump()
    return JSONResponse(status_code=status_code, content=body)


def _describe_validation_error(exc: RequestValidationError) -> str:
    """First validation problem as ``"<field>: <reason>"``."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    reason = first.get("msg", "invalid value")
    return f"{field}: {reason}" if field else f"Invalid request body: {reason}"


async def _handle_app_error(request: Request, exc: ChatAppError) -> JSONResponse:
    logger.info("{} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.message)
    return _error_response(exc.status_code, exc.message)


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _describe_validation_error(exc)
    logger.info("{} {} -> 400 {}", request.method, request.url.path, message)
    return _error_response(400, message)


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return _error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChatAppError, _handle_app_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
