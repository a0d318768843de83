"""Точка входа FastAPI‑приложения SmartPRD.

Запуск локально:
    uvicorn SmartPRD.app.main:app --reload --port 8000
"""
from contextlib import asynccontextmanager
import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from SmartPRD.core.db import init_db
from SmartPRD.core.errors import register_exception_handlers
from SmartPRD.core.logging import setup_logging, request_id_var
from SmartPRD.core.settings import settings

from .routers import router

setup_logging(level=settings.log_level, json_logs=bool(settings.log_json))

logger = logging.getLogger("SmartPRD.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Создать таблицы БД при старте сервиса."""
    init_db()
    logger.info("service started db=%s storage=%s", settings.database_url, settings.storage_dir)
    yield
    logger.info("service stopped")


app = FastAPI(
    title="SmartPRD API",
    version="1.0.0",
    description=("Загрузка PRD, выжимки под роли стейкхолдеров (LLM), "
        "ревью и учёт вопросов/ответов по проекту."),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(router)


if settings.request_log:
    @app.middleware("http")
    async def _access_log_middleware(request: Request, call_next):
        """Access‑middleware: проставляет request_id и логирует начало/ошибку/завершение запроса."""
        rid = request.headers.get(settings.request_id_header) or uuid4().hex
        token = request_id_var.set(rid)
        start = time.monotonic()
        try:
            logger.info(
                "request.start method=%s path=%s client=%s",
                request.method,
                request.url.path,
                request.client.host if request.client else "-",
            )
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "request.error method=%s path=%s dur_ms=%s",
                    request.method,
                    request.url.path,
                    int((time.monotonic() - start) * 1000),
                )
                raise
            logger.info(
                "request.end method=%s path=%s status=%s dur_ms=%s",
                request.method,
                request.url.path,
                response.status_code,
                int((time.monotonic() - start) * 1000),
            )
            response.headers[settings.request_id_header] = rid
            return response
        finally:
            request_id_var.reset(token)
