from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import get_settings
from core.logging_config import configure_logging
from core.rate_limit import limiter
from routes import waitlist_router
from routes.waitlist import METHOD_NOT_ALLOWED, envelope_response
from services.waitlist import GENERIC_FAILURE

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

NOT_FOUND = "Not found"
TOO_MANY_REQUESTS = "Too many requests. Please try again later."

app = FastAPI(title=settings.app_name, docs_url=None, redoc_url=None, openapi_url=None)
app.state.limiter = limiter


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return envelope_response(404, {"success": False, "error": NOT_FOUND}, with_cors=False)
    if exc.status_code == 405:
        return envelope_response(405, {"success": False, "error": METHOD_NOT_ALLOWED})
    logger.warning("Unhandled HTTP error %s on %s", exc.status_code, request.url.path)
    return envelope_response(exc.status_code, {"success": False, "error": str(exc.detail)})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.info("Rate limit exceeded on %s: %s", request.url.path, exc.detail)
    return envelope_response(429, {"success": False, "error": TOO_MANY_REQUESTS})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
    return envelope_response(500, {"success": False, "error": GENERIC_FAILURE})


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "geolocation=()"
    return response


app.include_router(waitlist_router)
