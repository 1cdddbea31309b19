"""
Mapping of domain errors onto HTTP responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from treasury.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    TreasuryError,
    ValidationError,
    VersionConflictError,
)
from treasury.schemas.transaction import ConflictMetadata, VersionConflictResponse

logger = logging.getLogger(__name__)


def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"detail": exc.message, "entity": exc.entity, "entity_id": exc.entity_id},
    )


def _validation(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": exc.message, "field": exc.field},
    )


def _invalid_transition(request: Request, exc: InvalidStatusTransitionError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": exc.message, "reason": exc.reason.value},
    )


def _version_conflict(request: Request, exc: VersionConflictError) -> JSONResponse:
    logger.info("Returning version conflict", extra={"path": request.url.path})
    body = VersionConflictResponse(
        message=exc.message,
        conflict=ConflictMetadata(**exc.conflict_metadata()),
        current_transaction=exc.current_transaction,
    )
    return JSONResponse(
        status_code=409,
        content={"detail": exc.message, **body.model_dump(mode="json")},
    )


def _treasury_error(request: Request, exc: TreasuryError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(ValidationError, _validation)
    app.add_exception_handler(InvalidStatusTransitionError, _invalid_transition)
    app.add_exception_handler(VersionConflictError, _version_conflict)
    app.add_exception_handler(TreasuryError, _treasury_error)
