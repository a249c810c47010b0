"""Application entrypoint for the FastAPI service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from quote_engine.api.v1.router import get_api_router
from quote_engine.core.config import get_config
from quote_engine.core.exceptions import QuoteEngineError
from quote_engine.core.startup import bootstrap
from quote_engine.orchestration.penalty_scheduler import PenaltyScheduler, get_penalty_runner
from quote_engine.schemas.common import ErrorEnvelope

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap()
    scheduler = None
    if get_config().PENALTY_SCHEDULER_MODE == "thread":
        scheduler = PenaltyScheduler(get_penalty_runner())
        scheduler.start()
    app.state.penalty_scheduler = scheduler
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()


async def handle_quote_engine_error(request: Request, exc: QuoteEngineError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "api.error",
            extra={"event": "api.error", "path": request.url.path, "error_code": exc.error_code, "detail": str(exc)},
        )
    body = ErrorEnvelope(error_code=exc.error_code, detail=str(exc))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def create_app() -> FastAPI:
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION, debug=cfg.DEBUG, lifespan=lifespan)
    app.add_exception_handler(QuoteEngineError, handle_quote_engine_error)
    app.include_router(get_api_router())

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# Expose ASGI app for `uvicorn quote_engine.main:app`.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run("quote_engine.main:app", host=config.API_HOST, port=config.API_PORT)
