"""FastAPI exception handlers producing a uniform ErrorResponse."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ratedeck.errors.exceptions import RateDeckError
from ratedeck.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(RateDeckError)
    async def ratedeck_error_handler(request: Request, exc: RateDeckError):
        trace_id = getattr(request.state, "trace_id", "unknown")
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info(
                "%s %s rejected (%s): %s",
                request.method, request.url.path, exc.code, exc.message,
            )
        error_response = ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
                trace_id=trace_id,
                timestamp=datetime.now(timezone.utc),
            ),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
