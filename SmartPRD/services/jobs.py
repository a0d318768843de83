"""Фоновая генерация выжимок после загрузки PRD.

Задача сохраняется в таблицу generation_jobs и выполняется через
`BackgroundTasks` FastAPI после отправки ответа клиенту. Статус задачи
(queued → running → succeeded/failed) доступен по `GET /api/jobs/{id}`.
"""
from __future__ import annotations

import logging

from fastapi import BackgroundTasks
from starlette.concurrency import run_in_threadpool

from SmartPRD.core.auth import RequestContext
from SmartPRD.core.errors import NotFoundError, UnauthorizedError
from SmartPRD.schemas import JobOut
from SmartPRD.services.repository import Repo
from SmartPRD.services.tailoring import TailoringService


class JobRunner:
    """Постановка и выполнение задач генерации."""

    def __init__(self, repo: Repo, tailoring: TailoringService) -> None:
        self._repo = repo
        self._tailoring = tailoring
        self._log = logging.getLogger(__name__)

    def enqueue(self, background_tasks: BackgroundTasks, ctx: RequestContext, project_id: str) -> JobOut:
        job = self._repo.create_job(project_id=project_id, owner_id=ctx.user_id)
        background_tasks.add_task(self.run, job.id, ctx, project_id)
        self._log.info("jobs: queued job=%s project=%s", job.id, project_id)
        return job

    async def run(self, job_id: str, ctx: RequestContext, project_id: str) -> JobOut:
        """Выполнить задачу; ошибка фиксируется в задаче и в логе, но не пробрасывается."""
        await run_in_threadpool(self._repo.update_job, job_id, status="running")
        try:
            results = await self._tailoring.generate_for_project(ctx, project_id)
        except Exception as exc:
            self._log.exception("jobs: failed job=%s project=%s", job_id, project_id)
            return await run_in_threadpool(
                self._repo.update_job, job_id, status="failed", error=str(exc) or exc.__class__.__name__
            )

        payload = [r.model_dump(exclude_none=True) for r in results]
        failed = [r for r in results if not r.success]
        self._log.info("jobs: finished job=%s ok=%s failed=%s", job_id, len(results) - len(failed), len(failed))
        return await run_in_threadpool(self._repo.update_job, job_id, status="succeeded", results=payload)

    def get(self, ctx: RequestContext, job_id: str) -> JobOut:
        job = self._repo.get_job(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if job.owner_id != ctx.user_id:
            raise UnauthorizedError()
        return job
