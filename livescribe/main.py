import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from livescribe.core.config import DATABASE_URL
from livescribe.core.database import build_engine, init_db
from livescribe.core.errors import ScribeError
from livescribe.core.logging import configure_logging
from livescribe.routers import auth, health, sessions, transcription
from livescribe.services import build_services
from livescribe.services.gemini import GeminiClient
from livescribe.services.retry import RetryPolicy

logger = logging.getLogger(__name__)


def create_app(database_url: str = DATABASE_URL, gemini: Optional[GeminiClient] = None,
               retry: Optional[RetryPolicy] = None) -> FastAPI:
    configure_logging()

    engine = build_engine(database_url)
    app = FastAPI(title="LiveScribe")
    app.state.services = build_services(engine, gemini or GeminiClient(), retry=retry)

    # Подключаем роутеры
    app.include_router(auth.router)
    app.include_router(sessions.router)
    app.include_router(transcription.router)
    app.include_router(health.router)

    @app.exception_handler(ScribeError)
    async def scribe_error_handler(request: Request, exc: ScribeError):
        if exc.status_code >= 500:
            logger.error("%s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.on_event("startup")
    def on_startup():
        init_db(engine)
        logger.info("База данных готова: %s", engine.url)

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.services.close()
        engine.dispose()

    return app


app = create_app()
