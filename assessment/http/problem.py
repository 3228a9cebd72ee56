"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that turn core errors,
FastAPI HTTP errors and request-body validation failures into
application/problem+json responses. Core errors keep their ``code`` and
``context`` so clients can resolve a conflict without a second lookup.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from assessment.http.error_mapping import status_for
from assessment.logic.errors import AssessmentError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_body(exc: AssessmentError) -> Dict[str, Any]:
    status, title = status_for(exc)
    return {
        "title": title,
        "status": status,
        "detail": exc.message,
        "code": exc.code,
        "context": dict(exc.context),
    }


async def handle_assessment_error(request: Request, exc: AssessmentError) -> JSONResponse:  # noqa: D401
    body = problem_body(exc)
    logger.info(
        "problem_response status=%s code=%s method=%s path=%s",
        body["status"],
        exc.code,
        request.method,
        request.url.path,
    )
    return JSONResponse(body, status_code=body["status"], media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(exc.status_code or 500)
    if isinstance(exc.detail, dict):
        detail = {"status": status_code, **exc.detail}
    else:
        detail = {"title": "Error", "status": status_code, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(
        detail,
        status_code=status_code,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers or None,
    )


def _jsonable_errors(exc: RequestValidationError) -> list[Dict[str, Any]]:
    out = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        out.append({"path": f"$.{loc}" if loc else "$", "message": str(err.get("msg", ""))})
    return out


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "code": "VALIDATION_ERROR",
        "context": {"errors": _jsonable_errors(exc)},
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error method=%s path=%s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_body",
    "handle_assessment_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
