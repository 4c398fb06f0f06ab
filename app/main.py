# Run from project root: uvicorn app.main:app --reload

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import router
from app.core.config import LOG_LEVEL
from app.core.errors import ConfigurationError

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


app = FastAPI(title="Web Research Agent")
app.include_router(router)


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    """Same CORS headers on every response, errors and preflight included."""
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> PlainTextResponse:
    logger.error("[app] configuration error on %s %s: %s", request.method, request.url.path, exc.message)
    return PlainTextResponse(exc.message, status_code=500)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    # Unknown paths and unsupported methods are both plain 404s
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not Found", status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    logger.info("[app] invalid request body on %s: %s", request.url.path, exc.errors())
    return PlainTextResponse("Invalid request body", status_code=400)
