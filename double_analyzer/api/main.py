import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from double_analyzer.api.routes import router
from double_analyzer.collector.supervisor import CollectorSupervisor
from double_analyzer.config import settings
from double_analyzer.db.base import engine, init_db
from double_analyzer.db.store import OutcomeStore
from double_analyzer.errors import AnalyzerError, CollectorStartError, StoreWriteError
from double_analyzer.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(store: OutcomeStore | None = None, supervisor: CollectorSupervisor | None = None,
               auto_start: bool | None = None) -> FastAPI:
    auto_start = settings.auto_start if auto_start is None else auto_start

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_dir)
        if store is None:
            init_db()
        app.state.store = store or OutcomeStore(engine)
        app.state.supervisor = supervisor or CollectorSupervisor(app.state.store)
        if auto_start:
            try:
                await run_in_threadpool(app.state.supervisor.start)
            except CollectorStartError as e:
                logger.error("Auto-start failed: %s", e)
        yield
        await run_in_threadpool(app.state.supervisor.stop)

    app = FastAPI(title="Double Analyzer", lifespan=lifespan)
    app.include_router(router)

    @app.exception_handler(StoreWriteError)
    async def store_unavailable(request: Request, exc: StoreWriteError):
        logger.error("Store error on %s: %s", request.url.path, exc)
        return JSONResponse({"error": "store unavailable"}, status_code=503)

    @app.exception_handler(AnalyzerError)
    async def internal_error(request: Request, exc: AnalyzerError):
        logger.error("Error on %s: %s", request.url.path, exc)
        return JSONResponse({"error": "internal error"}, status_code=500)

    @app.get("/")
    def home():
        return {"ok": True, "app": "Double Analyzer"}

    return app


app = create_app()
