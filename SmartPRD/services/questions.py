"""Вопросы стейкхолдеров и ответы на них.

Статус вопроса (unresolved ⇄ resolved) меняется только явными вызовами
resolve/unresolve; добавление ответа статус не трогает.
"""
from __future__ import annotations

import logging
from typing import List

from SmartPRD.core.auth import RequestContext, require_owner
from SmartPRD.core.errors import NotFoundError, UnauthorizedError, ValidationError
from SmartPRD.schemas import AnswerOut, ProjectOut, QuestionOut, QuestionWithAnswers, StakeholderOut
from SmartPRD.services.repository import Repo

_log = logging.getLogger(__name__)


def is_linked_stakeholder(ctx: RequestContext, stakeholder: StakeholderOut) -> bool:
    """Является ли вызывающий этим стейкхолдером (по user_id или email)."""
    if stakeholder.user_id and stakeholder.user_id == ctx.user_id:
        return True
    return bool(ctx.email) and ctx.email.strip().lower() == stakeholder.email.strip().lower()


def _project(repo: Repo, project_id: str) -> ProjectOut:
    project = repo.get_project(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


def require_member(repo: Repo, ctx: RequestContext, project: ProjectOut) -> None:
    """Доступ владельца проекта или любого связанного с вызывающим стейкхолдера."""
    if project.owner_id == ctx.user_id:
        return
    if any(is_linked_stakeholder(ctx, s) for s in repo.list_stakeholders(project.id)):
        return
    raise UnauthorizedError()


def list_questions(repo: Repo, ctx: RequestContext, project_id: str) -> List[QuestionWithAnswers]:
    project = _project(repo, project_id)
    require_member(repo, ctx, project)
    return repo.list_questions(project_id)


def create_question(
    repo: Repo,
    ctx: RequestContext,
    project_id: str,
    stakeholder_id: str,
    question_text: str,
) -> QuestionOut:
    """Создать вопрос от имени стейкхолдера проекта (сам стейкхолдер или PM)."""
    text = question_text.strip()
    if not text:
        raise ValidationError("Question text is required")
    project = _project(repo, project_id)
    stakeholder = repo.get_stakeholder(stakeholder_id)
    if stakeholder is None or stakeholder.project_id != project_id:
        raise NotFoundError("Stakeholder not found")
    if project.owner_id != ctx.user_id and not is_linked_stakeholder(ctx, stakeholder):
        raise UnauthorizedError()
    return repo.create_question(
        project_id=project_id,
        stakeholder_id=stakeholder_id,
        question_text=text,
    )


def _owned_question(repo: Repo, ctx: RequestContext, question_id: str) -> QuestionOut:
    question = repo.get_question(question_id)
    if question is None:
        raise NotFoundError("Question not found")
    require_owner(ctx, _project(repo, question.project_id).owner_id)
    return question


def add_answer(
    repo: Repo,
    ctx: RequestContext,
    question_id: str,
    answer_text: str,
    *,
    is_ai_generated: bool = False,
) -> AnswerOut:
    text = answer_text.strip()
    if not text:
        raise ValidationError("Answer text is required")
    _owned_question(repo, ctx, question_id)
    answer = repo.add_answer(
        question_id=question_id,
        answer_text=text,
        is_ai_generated=is_ai_generated,
        created_by=ctx.user_id,
    )
    _log.info("questions: answer added question=%s ai=%s", question_id, is_ai_generated)
    return answer


def resolve_question(repo: Repo, ctx: RequestContext, question_id: str) -> QuestionOut:
    """Пометить вопрос решённым; повторный вызов обновляет resolved_at."""
    _owned_question(repo, ctx, question_id)
    return repo.set_question_status(question_id, "resolved")


def unresolve_question(repo: Repo, ctx: RequestContext, question_id: str) -> QuestionOut:
    _owned_question(repo, ctx, question_id)
    return repo.set_question_status(question_id, "unresolved")
