"""Ревью выжимок: отправка стейкхолдерам и ручная смена статусов."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from SmartPRD.core.auth import RequestContext, require_owner
from SmartPRD.core.errors import NotFoundError, ValidationError
from SmartPRD.schemas import ProjectOut, ReviewDraftIn, StakeholderOut
from SmartPRD.services.repository import Repo

_log = logging.getLogger(__name__)


def owned_project(repo: Repo, ctx: RequestContext, project_id: str) -> ProjectOut:
    """Вернуть проект, если он существует и принадлежит вызывающему."""
    project = repo.get_project(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    require_owner(ctx, project.owner_id)
    return project


def owned_stakeholder(repo: Repo, ctx: RequestContext, stakeholder_id: str) -> StakeholderOut:
    stakeholder = repo.get_stakeholder(stakeholder_id)
    if stakeholder is None:
        raise NotFoundError("Stakeholder not found")
    owned_project(repo, ctx, stakeholder.project_id)
    return stakeholder


def send_review(
    repo: Repo,
    ctx: RequestContext,
    project_id: str,
    drafts: Sequence[ReviewDraftIn],
) -> List[StakeholderOut]:
    """Отправить отредактированные выжимки: все изменения одной транзакцией.

    Черновики с пустым текстом пропускаются. Если хотя бы один стейкхолдер
    не найден в проекте, не сохраняется ничего.
    """
    owned_project(repo, ctx, project_id)
    to_send: Dict[str, str] = {}
    for d in drafts:
        if d.tailoredContent and d.tailoredContent.strip():
            to_send[d.stakeholderId] = d.tailoredContent
    if not to_send:
        raise ValidationError("No tailored content to send")
    _log.info("review: sending project=%s stakeholders=%s skipped=%s", project_id, len(to_send), len(drafts) - len(to_send))
    return repo.send_review(project_id, to_send)


def update_stakeholder(
    repo: Repo,
    ctx: RequestContext,
    stakeholder_id: str,
    *,
    tailored_content: Optional[str] = None,
    review_status: Optional[str] = None,
) -> StakeholderOut:
    """Сохранить правку выжимки и/или выставить статус ревью (без ограничений переходов)."""
    owned_stakeholder(repo, ctx, stakeholder_id)
    if tailored_content is None and review_status is None:
        raise ValidationError("Nothing to update")
    return repo.update_stakeholder(
        stakeholder_id,
        tailored_content=tailored_content,
        review_status=review_status,
    )
