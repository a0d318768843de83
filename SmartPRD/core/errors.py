"""Исключения уровня приложения и обработчики ошибок FastAPI.

Каждый обработчик возвращает тело `{"error": "<текст>"}` с HTTP‑статусом,
соответствующим классу ошибки.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

_log = logging.getLogger(__name__)


class AppError(Exception):
    """Базовая ошибка приложения."""

    def __init__(self, detail: str, status_code: int = 500) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class ValidationError(AppError):
    """Не передано обязательное поле / некорректный ввод (400)."""

    def __init__(self, detail: str = "Validation error") -> None:
        super().__init__(detail=detail, status_code=400)


class UnauthenticatedError(AppError):
    """Нет сессии или токен недействителен (401)."""

    def __init__(self, detail: str = "Not authenticated") -> None:
        super().__init__(detail=detail, status_code=401)


class UnauthorizedError(AppError):
    """Вызывающий не владелец ресурса (403)."""

    def __init__(self, detail: str = "Not authorized") -> None:
        super().__init__(detail=detail, status_code=403)


class NotFoundError(AppError):
    """Ресурс не найден (404)."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(detail=detail, status_code=404)


class UpstreamError(AppError):
    """Ошибка внешнего сервиса (хранилище, LLM)."""

    def __init__(self, detail: str = "Upstream failure", status_code: int = 502) -> None:
        super().__init__(detail=detail, status_code=status_code)


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form"))
    msg = err.get("msg", "invalid value")
    return f"{loc}: {msg}" if loc else msg


def register_exception_handlers(app: FastAPI) -> None:
    """Зарегистрировать обработчики `AppError` и ошибок валидации запроса."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            _log.error("app error status=%s path=%s detail=%s", exc.status_code, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _first_validation_message(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        _log.exception("unexpected error path=%s", request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})
