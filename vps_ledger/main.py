import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .api.exceptions import register_exception_handlers
from .api.routes import router as accounts_router, transfer_router
from .core.config import Settings, get_settings
from .core.db import Database
from .core.logging import setup_logging

logger = logging.getLogger(__name__)

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings.database_url)
        database.create_all()
        database.seed_accounts(settings.seed_accounts)
        app.state.database = database
        logger.info(
            "Virtual Payment Service (VPS) is running",
            extra={"database_url": database.engine.url.render_as_string(hide_password=True)},
        )
        try:
            yield
        finally:
            database.dispose()
            logger.info("service.stopped")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.dependency_overrides[get_settings] = lambda: settings

    app.include_router(accounts_router)
    app.include_router(transfer_router)
    register_exception_handlers(app)

    @app.get("/health")
    def read_health() -> dict[str, str]:
        return {"status": "ok"}

    return app

app = create_app()
