# mnv_scorecard/core/exceptions.py
import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class EvaluationException(Exception):
    """Base exception for evaluation errors"""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationException(EvaluationException):
    """Missing provider credential or other server configuration"""
    pass


class ValidationException(EvaluationException):
    """Input validation errors"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.field = field
        super().__init__(message, details)


class LLMConnectionException(EvaluationException):
    """Network failure while calling the LLM provider"""
    pass


class UpstreamStatusException(EvaluationException):
    """Non-2xx answer from the LLM provider; status and body are passed through."""

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Upstream provider returned {status_code}", {"status_code": status_code})


class MalformedRubric(EvaluationException):
    """Rubric or checklist data that cannot drive prompt building or scoring"""
    pass


def error_body(message: str, error_type: str) -> Dict[str, Any]:
    return {"error": message, "type": error_type}


# Exception handlers
async def evaluation_exception_handler(request: Request, exc: EvaluationException) -> JSONResponse:
    logger.error(f"Evaluation error: {exc.message}", extra={"details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.__class__.__name__),
    )


async def llm_connection_exception_handler(request: Request, exc: LLMConnectionException) -> JSONResponse:
    logger.error(f"LLM connection error: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("API request failed", "LLMConnectionException"),
    )


async def upstream_status_exception_handler(request: Request, exc: UpstreamStatusException) -> JSONResponse:
    logger.warning(f"Upstream provider answered {exc.status_code}; passing through")
    return JSONResponse(status_code=exc.status_code, content=exc.body)


# Body fields whose type errors carry the same message as a missing value
FIELD_MESSAGES = {
    "content": "Content is required",
}


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.info(f"Rejected request body on {request.url.path}: {errors}")
    message = "Invalid request body"
    for error in errors:
        loc = tuple(error.get("loc", ()))
        if len(loc) >= 2 and loc[0] == "body" and loc[1] in FIELD_MESSAGES:
            message = FIELD_MESSAGES[loc[1]]
            break
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, "ValidationException"),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Method not allowed" if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, "HTTPException"),
        headers=getattr(exc, "headers", None),
    )
