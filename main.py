import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from adapters.entry.http.error_handlers import register_error_handlers
from adapters.entry.http.price_router import router as price_router
from config.settings import settings
from workers.pool_supervisor import PoolSupervisor


def _setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


supervisor = PoolSupervisor()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logging.getLogger(__name__).info("Starting %s (lifespan startup)...", settings.APP_NAME)

    await supervisor.start()
    app.state.supervisor = supervisor

    try:
        yield
    finally:
        logging.getLogger(__name__).info("Shutting down %s (lifespan shutdown)...", settings.APP_NAME)
        await supervisor.stop()


app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)
app.include_router(price_router)
register_error_handlers(app)


@app.get("/healthz")
async def healthz():
    return {"status": "ok", "pools": len(supervisor.registry)}
