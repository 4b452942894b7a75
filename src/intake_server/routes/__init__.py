"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from intake_server.routes.applications import router as applications_router
from intake_server.routes.question_sets import router as question_sets_router
from intake_server.routes.telegram import router as telegram_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(telegram_router, prefix=API_PREFIX)
    app.include_router(question_sets_router, prefix=API_PREFIX)
    app.include_router(applications_router, prefix=API_PREFIX)
