"""ORM‑модели SmartPRD (SQLAlchemy 2.x, declarative mapping).

Таблицы: projects, project_stakeholders, questions, answers, generation_jobs.
Ссылки между таблицами хранятся без FOREIGN KEY: удаление проекта или
стейкхолдера не трогает связанные строки, они остаются «сиротами».
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from SmartPRD.core.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    """Проект PM‑а с загруженным PRD."""
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255))
    # raw text, blob URL or data:application/pdf;base64,... URL
    prd_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prd_file_name: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    prd_file_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    prd_extracted_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Stakeholder(Base):
    """Стейкхолдер проекта с ролью и персональной выжимкой PRD."""
    __tablename__ = "project_stakeholders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(String(36), index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(320))
    role: Mapped[str] = mapped_column(String(128))
    tailored_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    review_status: Mapped[str] = mapped_column(String(32), default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Question(Base):
    """Вопрос стейкхолдера по проекту."""
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(String(36), index=True)
    stakeholder_id: Mapped[str] = mapped_column(String(36), index=True)
    question_text: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), default="unresolved")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    stakeholder: Mapped[Optional[Stakeholder]] = relationship(
        primaryjoin="foreign(Question.stakeholder_id) == Stakeholder.id",
        viewonly=True,
    )
    answers: Mapped[List["Answer"]] = relationship(
        primaryjoin="Question.id == foreign(Answer.question_id)",
        order_by="Answer.created_at",
        viewonly=True,
    )


class Answer(Base):
    """Ответ на вопрос (от PM или сгенерированный LLM)."""
    __tablename__ = "answers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    question_id: Mapped[str] = mapped_column(String(36), index=True)
    answer_text: Mapped[str] = mapped_column(Text)
    is_ai_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class GenerationJob(Base):
    """Фоновая задача генерации выжимок для проекта."""
    __tablename__ = "generation_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(String(36), index=True)
    owner_id: Mapped[str] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(String(32), default="queued")
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    results: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
