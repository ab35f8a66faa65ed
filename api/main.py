from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import config, db
from core.log import configure_logging
from users import repository as users_repository
from users import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    database = db.Database(
        config.database_url(),
        min_size=config.pool_min_size(),
        max_size=config.pool_max_size(),
        command_timeout=config.command_timeout(),
        on_connect=users_repository.ensure_schema if config.auto_create_schema() else None,
    )
    app.state.database = database

    # An unreachable store does not stop the listener; requests answer 500
    # until a connection (and the schema bootstrap) succeeds.
    try:
        await database.connect()
    except db.StoreError:
        logger.exception("database_unavailable_at_startup")

    try:
        yield
    finally:
        await database.close()


async def request_validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    reason = first.get("msg", "invalid value")
    detail = f"Invalid request: {location}: {reason}" if location else f"Invalid request: {reason}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


def create_app() -> FastAPI:
    app = FastAPI(title="usuarios-api", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)

    app.include_router(users_router.router, tags=["users"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "usuarios api"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=config.host(), port=config.port())
