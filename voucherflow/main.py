"""Entrypoint for the FastAPI application."""

import os

from dotenv import load_dotenv

# Load .env locally only; deployed environments inject env vars
env_path = os.path.join(os.path.dirname(__file__), "../.env")
if os.path.exists(env_path):
    load_dotenv(dotenv_path=os.path.abspath(env_path))

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import admin, auth, health, vouchers
from .core.errors import WorkflowError
from .core.logging import configure_logging

LOGGER = structlog.get_logger(__name__)


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    LOGGER.info(
        "request_refused",
        path=request.url.path,
        error=type(exc).__name__,
        detail=exc.detail,
    )
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Voucherflow", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(WorkflowError, workflow_error_handler)

    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(vouchers.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    return app


app = create_app()
