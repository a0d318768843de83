"""Service generating role-tailored PRD summaries for project stakeholders."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from starlette.concurrency import run_in_threadpool

from SmartPRD.core.auth import RequestContext, require_owner
from SmartPRD.core.errors import NotFoundError
from SmartPRD.schemas import AnswerOut, Draft, ProjectOut, QuestionOut, StakeholderOut, TailoringResult
from SmartPRD.services.llm_client import LLMClient
from SmartPRD.services.repository import Repo
from SmartPRD.services.templates import as_messages, build_answer_prompt, build_tailoring_prompt


def best_prd_text(project: ProjectOut) -> Optional[str]:
    """Текст PRD для промпта: извлечённый текст приоритетнее исходного содержимого."""
    return project.prd_extracted_text or project.prd_content or None


class TailoringService:
    """Генерация выжимок PRD под роли стейкхолдеров.

    Стейкхолдеры обрабатываются строго последовательно, по одному вызову LLM
    на каждого. Ошибка для одного стейкхолдера не прерывает обработку
    остальных: она попадает в массив результатов.
    """

    def __init__(self, repo: Repo, llm: LLMClient) -> None:
        self._repo = repo
        self._llm = llm
        self._log = logging.getLogger(__name__)

    def _load(self, ctx: RequestContext, project_id: str) -> Tuple[ProjectOut, str, List[StakeholderOut]]:
        """Загрузить проект, текст PRD и стейкхолдеров с проверкой владения."""
        project = self._repo.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        require_owner(ctx, project.owner_id)

        document = best_prd_text(project)
        if not document:
            raise NotFoundError("No PRD content available")

        stakeholders = self._repo.list_stakeholders(project_id)
        if not stakeholders:
            raise NotFoundError("No stakeholders found")
        return project, document, stakeholders

    async def _generate(self, stakeholder: StakeholderOut, document: str) -> str:
        system_msg, user_msg = build_tailoring_prompt(role=stakeholder.role, document=document)
        return await self._llm.complete(as_messages(system_msg, user_msg))

    async def generate_for_project(self, ctx: RequestContext, project_id: str) -> List[TailoringResult]:
        """Сгенерировать и сохранить выжимки для всех стейкхолдеров проекта.

        При успехе `tailored_content` перезаписывается целиком, а
        `review_status` становится "in_progress".
        """
        _, document, stakeholders = await run_in_threadpool(self._load, ctx, project_id)
        self._log.info(
            "tailoring: project=%s stakeholders=%s doc_len=%s",
            project_id,
            len(stakeholders),
            len(document),
        )

        results: List[TailoringResult] = []
        for stakeholder in stakeholders:
            try:
                text = await self._generate(stakeholder, document)
                await run_in_threadpool(
                    self._repo.update_stakeholder,
                    stakeholder.id,
                    tailored_content=text,
                    review_status="in_progress",
                )
            except Exception as exc:
                self._log.warning(
                    "tailoring: failed stakeholder=%s role=%s: %s",
                    stakeholder.id,
                    stakeholder.role,
                    exc,
                )
                results.append(TailoringResult(stakeholderId=stakeholder.id, success=False, error=str(exc) or "Unknown error"))
                continue
            self._log.info("tailoring: updated stakeholder=%s role=%s", stakeholder.id, stakeholder.role)
            results.append(TailoringResult(stakeholderId=stakeholder.id, success=True))

        self._log.info(
            "tailoring: done project=%s ok=%s failed=%s",
            project_id,
            sum(1 for r in results if r.success),
            sum(1 for r in results if not r.success),
        )
        return results

    async def draft_for_stakeholders(
        self,
        ctx: RequestContext,
        project_id: str,
        stakeholder_ids: Optional[Sequence[str]] = None,
    ) -> List[Draft]:
        """Черновики выжимок для ревью PM‑ом (в БД не сохраняются)."""
        _, document, stakeholders = await run_in_threadpool(self._load, ctx, project_id)
        if stakeholder_ids is not None:
            wanted = set(stakeholder_ids)
            unknown = wanted - {s.id for s in stakeholders}
            if unknown:
                raise NotFoundError(f"Stakeholder not found: {sorted(unknown)[0]}")
            stakeholders = [s for s in stakeholders if s.id in wanted]

        drafts: List[Draft] = []
        for stakeholder in stakeholders:
            try:
                text = await self._generate(stakeholder, document)
            except Exception as exc:
                self._log.warning("draft: failed stakeholder=%s: %s", stakeholder.id, exc)
                drafts.append(Draft(stakeholderId=stakeholder.id, success=False, error=str(exc) or "Unknown error"))
                continue
            drafts.append(Draft(stakeholderId=stakeholder.id, success=True, content=text))
        return drafts

    def _load_question(self, ctx: RequestContext, question_id: str) -> Tuple[QuestionOut, str, str]:
        question = self._repo.get_question(question_id)
        if question is None:
            raise NotFoundError("Question not found")
        project = self._repo.get_project(question.project_id)
        if project is None:
            raise NotFoundError("Project not found")
        require_owner(ctx, project.owner_id)

        document = best_prd_text(project)
        if not document:
            raise NotFoundError("No PRD content available")
        stakeholder = self._repo.get_stakeholder(question.stakeholder_id)
        return question, document, stakeholder.role if stakeholder else ""

    async def suggest_answer(self, ctx: RequestContext, question_id: str) -> AnswerOut:
        """Сгенерировать ответ на вопрос по тексту PRD и сохранить его как AI‑ответ.

        Статус вопроса не меняется.
        """
        question, document, role = await run_in_threadpool(self._load_question, ctx, question_id)
        system_msg, user_msg = build_answer_prompt(question=question.question_text, role=role, document=document)
        text = await self._llm.complete(as_messages(system_msg, user_msg))
        self._log.info("answer: generated question=%s len=%s", question_id, len(text))
        return await run_in_threadpool(
            self._repo.add_answer,
            question_id=question_id,
            answer_text=text,
            is_ai_generated=True,
            created_by=ctx.user_id,
        )
