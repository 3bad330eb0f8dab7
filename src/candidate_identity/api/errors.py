"""Exception handlers mapping the error taxonomy onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from candidate_identity.errors import IdentityError, ValidationError

logger = logging.getLogger(__name__)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(IdentityError)
    async def identity_error(request: Request, exc: IdentityError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("%s %s → %s: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def request_shape_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Wrong JSON types (null, numbers) answer like any other invalid field.
        first = exc.errors()[0] if exc.errors() else {}
        loc = first.get("loc", ())
        field = str(loc[1]) if len(loc) > 1 else "body"
        error = ValidationError(field, f"Invalid value for {field}")
        return JSONResponse(status_code=error.status_code, content=error.to_body())

    @app.exception_handler(SQLAlchemyError)
    async def store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Store failure on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "message": "Server error"})
