"""DI‑хелперы FastAPI: репозиторий, LLM, хранилище, контекст запроса.

В тестах подменяются через `app.dependency_overrides`.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from SmartPRD.core.auth import RequestContext, context_from_authorization
from SmartPRD.core.logging import request_id_var
from SmartPRD.core.settings import settings
from SmartPRD.services.jobs import JobRunner
from SmartPRD.services.llm_client import LLMClient
from SmartPRD.services.repository import Repo
from SmartPRD.services.storage import LocalBlobStorage
from SmartPRD.services.tailoring import TailoringService


def get_repo() -> Repo:
    """Вернуть новый экземпляр репозитория (сессия открывается на каждую операцию)."""
    return Repo()


@lru_cache(maxsize=1)
def get_llm() -> LLMClient:
    return LLMClient()


@lru_cache(maxsize=1)
def get_storage() -> LocalBlobStorage:
    return LocalBlobStorage(settings.storage_dir, settings.public_base_url)


def get_context(authorization: Optional[str] = Header(None)) -> RequestContext:
    """Контекст аутентифицированного пользователя из заголовка Authorization."""
    return context_from_authorization(authorization, request_id=request_id_var.get("-"))


def get_tailoring(repo: Repo = Depends(get_repo), llm: LLMClient = Depends(get_llm)) -> TailoringService:
    return TailoringService(repo, llm)


def get_job_runner(
    repo: Repo = Depends(get_repo),
    tailoring: TailoringService = Depends(get_tailoring),
) -> JobRunner:
    return JobRunner(repo, tailoring)
