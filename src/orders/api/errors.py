"""Mapping of domain errors to HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from orders.order.errors import Forbidden, InvalidInput, Locked, NotFound

logger = structlog.get_logger(__name__)


def _body(exc) -> dict:
    messages = getattr(exc, "messages", None)
    return {"error": messages if isinstance(messages, dict) else {"_": [str(exc)]}}


async def forbidden_handler(request: Request, exc: Forbidden) -> JSONResponse:
    return JSONResponse(status_code=403, content=_body(exc))


async def locked_handler(request: Request, exc: Locked) -> JSONResponse:
    content = _body(exc)
    content["holder"] = exc.holder
    return JSONResponse(status_code=409, content=content)


async def invalid_input_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_body(exc))


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_body(exc))


def register_error_handlers(app: FastAPI) -> None:
    """Install the domain error handlers on ``app``.

    Forbidden → 403, Locked → 409, invalid input → 400, unknown order or
    product → 404.
    """
    app.add_exception_handler(Forbidden, forbidden_handler)
    app.add_exception_handler(Locked, locked_handler)
    app.add_exception_handler(InvalidInput, invalid_input_handler)
    app.add_exception_handler(ValidationError, invalid_input_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    logger.debug("Registered order error handlers")
