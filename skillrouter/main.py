from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from skillrouter.api.routes_route import router as route_router
from skillrouter.api.routes_skills import router as skills_router
from skillrouter.core.config import get_settings
from skillrouter.core.errors import RoutingError
from skillrouter.core.logging import configure_logging
from skillrouter.persistence.pg import init_db

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    logger.info("skill router ready: env=%s auth_enabled=%s", settings.env, settings.auth_enabled)


@app.exception_handler(RoutingError)
async def routing_error_handler(_: Request, exc: RoutingError):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.message,
            "error_code": exc.error_code,
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "invalid request",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(_: Request, exc: Exception):
    logger.exception("unhandled error: %s", exc)
    content = {"success": False, "error": "internal server error"}
    if get_settings().debug_errors:
        content["error"] = str(exc) or exc.__class__.__name__
        content["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content)


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(route_router)
app.include_router(skills_router)
