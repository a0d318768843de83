"""DB access layer for SmartPRD (projects, stakeholders, questions, jobs)."""
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from SmartPRD.core.db import SessionLocal
from SmartPRD.core.errors import NotFoundError
from SmartPRD.models.orm import Answer, GenerationJob, Project, Question, Stakeholder, utcnow
from SmartPRD.schemas import (
    AnswerOut,
    JobOut,
    ProjectOut,
    QuestionOut,
    QuestionWithAnswers,
    StakeholderOut,
    StakeholderRef,
)
import logging


class Repo:
    """Репозиторий SmartPRD поверх SQLAlchemy.

    Методы возвращают Pydantic‑модели чтения (а не ORM‑объекты), поэтому
    результат можно безопасно использовать после закрытия сессии. Проверки
    владения выполняют вызывающие сервисы/роуты по `RequestContext`.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None) -> None:
        self._session_factory = session_factory or SessionLocal
        self._log = logging.getLogger(__name__)

    @contextmanager
    def _session_scope(self):
        """Контекст менеджер сессии SQLAlchemy.

        Обеспечивает закрытие сессии и rollback при исключении. Коммит
        выполняется в конце блока: один блок соответствует одной транзакции.
        """
        s: Session = self._session_factory()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # ---- projects ----

    def list_projects(self, owner_id: str) -> List[ProjectOut]:
        """Проекты владельца, новые первыми."""
        with self._session_scope() as s:
            rows = s.scalars(
                select(Project).where(Project.owner_id == owner_id).order_by(Project.created_at.desc())
            ).all()
            self._log.debug("repo: projects=%s (owner=%s)", len(rows), owner_id)
            return [ProjectOut.model_validate(r) for r in rows]

    def get_project(self, project_id: str) -> Optional[ProjectOut]:
        with self._session_scope() as s:
            row = s.get(Project, project_id)
            return ProjectOut.model_validate(row) if row else None

    def create_project(
        self,
        *,
        owner_id: str,
        name: str,
        prd_content: Optional[str] = None,
        prd_file_name: Optional[str] = None,
    ) -> ProjectOut:
        with self._session_scope() as s:
            row = Project(
                name=name,
                prd_content=prd_content or None,
                prd_file_name=prd_file_name or None,
                owner_id=owner_id,
            )
            s.add(row)
            s.flush()
            self._log.info("repo: project created id=%s owner=%s", row.id, owner_id)
            return ProjectOut.model_validate(row)

    def update_project(self, project_id: str, **fields: Any) -> ProjectOut:
        """Обновить поля проекта; `updated_at` проставляется всегда."""
        with self._session_scope() as s:
            row = s.get(Project, project_id)
            if row is None:
                raise NotFoundError("Project not found")
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            s.flush()
            return ProjectOut.model_validate(row)

    def attach_prd(
        self,
        project_id: str,
        *,
        content: str,
        file_name: str,
        file_url: Optional[str] = None,
        extracted_text: Optional[str] = None,
    ) -> ProjectOut:
        """Сохранить PRD проекта (каждый вызов полностью заменяет предыдущий)."""
        self._log.info(
            "repo: attach prd project=%s file=%s extracted=%s",
            project_id,
            file_name,
            "yes" if extracted_text else "no",
        )
        return self.update_project(
            project_id,
            prd_content=content,
            prd_file_name=file_name,
            prd_file_url=file_url,
            prd_extracted_text=extracted_text,
        )

    def delete_project(self, project_id: str) -> None:
        with self._session_scope() as s:
            row = s.get(Project, project_id)
            if row is not None:
                s.delete(row)
                self._log.info("repo: project deleted id=%s", project_id)

    # ---- stakeholders ----

    def list_stakeholders(self, project_id: str) -> List[StakeholderOut]:
        """Стейкхолдеры проекта в порядке добавления."""
        with self._session_scope() as s:
            rows = s.scalars(
                select(Stakeholder)
                .where(Stakeholder.project_id == project_id)
                .order_by(Stakeholder.created_at.asc())
            ).all()
            return [StakeholderOut.model_validate(r) for r in rows]

    def list_stakeholders_for_projects(self, project_ids: Sequence[str]) -> List[StakeholderOut]:
        if not project_ids:
            return []
        with self._session_scope() as s:
            rows = s.scalars(select(Stakeholder).where(Stakeholder.project_id.in_(list(project_ids)))).all()
            return [StakeholderOut.model_validate(r) for r in rows]

    def create_stakeholders(self, project_id: str, items: Iterable[Dict[str, Any]]) -> List[StakeholderOut]:
        with self._session_scope() as s:
            rows = [
                Stakeholder(
                    project_id=project_id,
                    name=item["name"],
                    email=item["email"],
                    role=item["role"],
                    user_id=item.get("user_id"),
                )
                for item in items
            ]
            s.add_all(rows)
            s.flush()
            self._log.info("repo: stakeholders created=%s (project=%s)", len(rows), project_id)
            return [StakeholderOut.model_validate(r) for r in rows]

    def get_stakeholder(self, stakeholder_id: str) -> Optional[StakeholderOut]:
        with self._session_scope() as s:
            row = s.get(Stakeholder, stakeholder_id)
            return StakeholderOut.model_validate(row) if row else None

    def update_stakeholder(
        self,
        stakeholder_id: str,
        *,
        tailored_content: Optional[str] = None,
        review_status: Optional[str] = None,
    ) -> StakeholderOut:
        """Обновить выжимку и/или статус ревью (переходы статуса не ограничены)."""
        with self._session_scope() as s:
            row = s.get(Stakeholder, stakeholder_id)
            if row is None:
                raise NotFoundError("Stakeholder not found")
            if tailored_content is not None:
                row.tailored_content = tailored_content
            if review_status is not None:
                row.review_status = review_status
            s.flush()
            return StakeholderOut.model_validate(row)

    def send_review(self, project_id: str, drafts: Dict[str, str]) -> List[StakeholderOut]:
        """Записать выжимки нескольких стейкхолдеров одной транзакцией.

        Любая ошибка (в т.ч. чужой/несуществующий стейкхолдер) откатывает
        все изменения.
        """
        with self._session_scope() as s:
            out: List[StakeholderOut] = []
            for stakeholder_id, content in drafts.items():
                row = s.get(Stakeholder, stakeholder_id)
                if row is None or row.project_id != project_id:
                    raise NotFoundError(f"Stakeholder not found: {stakeholder_id}")
                row.tailored_content = content
                row.review_status = "in_progress"
                out.append(row)
            s.flush()
            self._log.info("repo: review sent project=%s stakeholders=%s", project_id, len(out))
            return [StakeholderOut.model_validate(r) for r in out]

    def delete_stakeholder(self, stakeholder_id: str) -> None:
        with self._session_scope() as s:
            row = s.get(Stakeholder, stakeholder_id)
            if row is not None:
                s.delete(row)

    # ---- questions / answers ----

    def list_questions(self, project_id: str) -> List[QuestionWithAnswers]:
        """Вопросы проекта (новые первыми) вместе с ответами и автором."""
        with self._session_scope() as s:
            rows = s.scalars(
                select(Question)
                .options(selectinload(Question.answers), selectinload(Question.stakeholder))
                .where(Question.project_id == project_id)
                .order_by(Question.created_at.desc())
            ).all()
            return [self._question_with_answers(q) for q in rows]

    def list_questions_for_projects(self, project_ids: Sequence[str]) -> List[QuestionOut]:
        if not project_ids:
            return []
        with self._session_scope() as s:
            rows = s.scalars(select(Question).where(Question.project_id.in_(list(project_ids)))).all()
            return [QuestionOut.model_validate(r) for r in rows]

    @staticmethod
    def _question_with_answers(q: Question) -> QuestionWithAnswers:
        base = QuestionOut.model_validate(q).model_dump()
        return QuestionWithAnswers(
            **base,
            answers=[AnswerOut.model_validate(a) for a in q.answers],
            stakeholder=StakeholderRef(name=q.stakeholder.name, role=q.stakeholder.role) if q.stakeholder else None,
        )

    def create_question(self, *, project_id: str, stakeholder_id: str, question_text: str) -> QuestionOut:
        with self._session_scope() as s:
            row = Question(project_id=project_id, stakeholder_id=stakeholder_id, question_text=question_text)
            s.add(row)
            s.flush()
            self._log.info("repo: question created id=%s project=%s", row.id, project_id)
            return QuestionOut.model_validate(row)

    def get_question(self, question_id: str) -> Optional[QuestionOut]:
        with self._session_scope() as s:
            row = s.get(Question, question_id)
            return QuestionOut.model_validate(row) if row else None

    def add_answer(
        self,
        *,
        question_id: str,
        answer_text: str,
        is_ai_generated: bool = False,
        created_by: Optional[str] = None,
    ) -> AnswerOut:
        """Добавить ответ. Статус вопроса при этом не меняется."""
        with self._session_scope() as s:
            row = Answer(
                question_id=question_id,
                answer_text=answer_text,
                is_ai_generated=is_ai_generated,
                created_by=created_by,
            )
            s.add(row)
            s.flush()
            return AnswerOut.model_validate(row)

    def set_question_status(self, question_id: str, status: str, *, at: Optional[datetime] = None) -> QuestionOut:
        """resolved: всегда новая отметка resolved_at; unresolved: сброс отметки."""
        with self._session_scope() as s:
            row = s.get(Question, question_id)
            if row is None:
                raise NotFoundError("Question not found")
            row.status = status
            row.resolved_at = (at or utcnow()) if status == "resolved" else None
            s.flush()
            return QuestionOut.model_validate(row)

    # ---- generation jobs ----

    def create_job(self, *, project_id: str, owner_id: str) -> JobOut:
        with self._session_scope() as s:
            row = GenerationJob(project_id=project_id, owner_id=owner_id, status="queued")
            s.add(row)
            s.flush()
            return JobOut.model_validate(row)

    def update_job(
        self,
        job_id: str,
        *,
        status: str,
        error: Optional[str] = None,
        results: Optional[List[Dict[str, Any]]] = None,
    ) -> JobOut:
        with self._session_scope() as s:
            row = s.get(GenerationJob, job_id)
            if row is None:
                raise NotFoundError("Job not found")
            row.status = status
            row.error = error
            if results is not None:
                row.results = results
            if status in ("succeeded", "failed"):
                row.finished_at = utcnow()
            s.flush()
            return JobOut.model_validate(row)

    def get_job(self, job_id: str) -> Optional[JobOut]:
        with self._session_scope() as s:
            row = s.get(GenerationJob, job_id)
            return JobOut.model_validate(row) if row else None
