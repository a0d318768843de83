"""Агрегация метрик по уже загруженным строкам проектов, стейкхолдеров и вопросов."""
from __future__ import annotations

from collections import Counter, defaultdict
from typing import Dict, List, Sequence

from SmartPRD.schemas import MetricsOut, ProjectOut, QuestionOut, ResolutionTime, RoleCount, StakeholderOut

REVIEW_STATUSES = ("pending", "in_progress", "resolved")


def resolution_rate(total: int, resolved: int) -> int:
    # half-up, not banker's rounding
    return int(resolved * 100 / total + 0.5) if total > 0 else 0


def average_resolution_hours(questions: Sequence[QuestionOut]) -> float | None:
    """Среднее время решения (часы) по решённым вопросам; None, если таких нет."""
    spans = [
        (q.resolved_at - q.created_at).total_seconds() / 3600.0
        for q in questions
        if q.status == "resolved" and q.resolved_at is not None
    ]
    if not spans:
        return None
    return round(sum(spans) / len(spans), 1)


def compute_metrics(
    projects: Sequence[ProjectOut],
    stakeholders: Sequence[StakeholderOut],
    questions: Sequence[QuestionOut],
    *,
    max_projects: int = 3,
) -> MetricsOut:
    """Посчитать сводные метрики владельца.

    meetingsAvoided равен числу решённых вопросов; время решения считается
    для первых `max_projects` проектов, где есть решённые вопросы.
    """
    total = len(questions)
    resolved = sum(1 for q in questions if q.status == "resolved")

    roles = Counter(s.role for s in stakeholders)
    statuses: Dict[str, int] = {status: 0 for status in REVIEW_STATUSES}
    for s in stakeholders:
        statuses[s.review_status] = statuses.get(s.review_status, 0) + 1

    by_project: Dict[str, List[QuestionOut]] = defaultdict(list)
    for q in questions:
        by_project[q.project_id].append(q)

    times: List[ResolutionTime] = []
    for project in projects:
        avg = average_resolution_hours(by_project.get(project.id, []))
        if avg is None:
            continue
        times.append(ResolutionTime(project=project.name, avgHours=avg))
        if len(times) >= max_projects:
            break

    return MetricsOut(
        totalProjects=len(projects),
        totalQuestions=total,
        resolvedQuestions=resolved,
        resolutionRate=resolution_rate(total, resolved),
        meetingsAvoided=resolved,
        stakeholdersByRole=[RoleCount(role=r, count=c) for r, c in sorted(roles.items())],
        reviewStatus=statuses,
        resolutionTimes=times,
    )
