"""
Backoffice API

FastAPI app exposing the chat redirect engine.

Responsibilities:
- Immediate and scheduled chat redirects
- Listing and removal of overrides and scheduled records
- Directory pass-through (user listing, user sectors)
- Manual reconciliation trigger (the worker runs it on a timer)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from basecore.logging import setup_logging
from basecore.settings import get_settings
from chat_redirects.directory import DirectoryError
from chat_redirects.errors import RedirectError

from backoffice_api.router import directory_router, redirects_router

setup_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(
    title="Backoffice API",
    description="Chat redirect administration",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RedirectError)
async def redirect_error_handler(request: Request, exc: RedirectError):
    if exc.status_code >= 500:
        logger.error(f"Redirect error on {request.url.path}: {exc.message}", extra={"code": exc.code})
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError):
    logger.error(
        f"Directory failure on {request.url.path}: {exc}",
        extra={"code": exc.code, "retryable": exc.retryable},
    )
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "code": exc.code or "DIRECTORY_ERROR"},
    )


app.include_router(redirects_router)
app.include_router(directory_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "backoffice-api"}
