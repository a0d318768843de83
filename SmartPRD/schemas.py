"""Pydantic‑модели (DTO) SmartPRD.

Содержит:
- модели чтения строк БД (ProjectOut, StakeholderOut, QuestionOut, AnswerOut, JobOut);
- входные DTO HTTP‑эндпоинтов (создание проекта, стейкхолдеров, вопросов, ответов);
- ответы генерации выжимок, ревью, загрузки PRD, просмотра документа и метрик.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

ReviewStatus = Literal["pending", "in_progress", "resolved"]
QuestionStatus = Literal["unresolved", "resolved"]
JobStatus = Literal["queued", "running", "succeeded", "failed"]

STAKEHOLDER_ROLES: List[str] = [
    "UI/UX Designer",
    "Frontend Engineer",
    "Backend Engineer",
    "Data Scientist",
    "Product Marketing",
    "QA Engineer",
]


# =============================
# Rows
# =============================


class _Row(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ProjectOut(_Row):
    id: str
    name: str
    prd_content: Optional[str] = None
    prd_file_name: Optional[str] = None
    prd_file_url: Optional[str] = None
    prd_extracted_text: Optional[str] = None
    owner_id: str
    created_at: datetime
    updated_at: datetime


class StakeholderOut(_Row):
    id: str
    project_id: str
    user_id: Optional[str] = None
    name: str
    email: str
    role: str
    tailored_content: Optional[str] = None
    review_status: ReviewStatus
    created_at: datetime


class AnswerOut(_Row):
    id: str
    question_id: str
    answer_text: str
    is_ai_generated: bool
    created_by: Optional[str] = None
    created_at: datetime


class StakeholderRef(BaseModel):
    """Краткие сведения об авторе вопроса."""
    name: str
    role: str


class QuestionOut(_Row):
    id: str
    project_id: str
    stakeholder_id: str
    question_text: str
    status: QuestionStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None


class QuestionWithAnswers(QuestionOut):
    answers: List[AnswerOut] = Field(default_factory=list)
    stakeholder: Optional[StakeholderRef] = None


class JobOut(_Row):
    id: str
    project_id: str
    owner_id: str
    status: JobStatus
    error: Optional[str] = None
    results: Optional[List[Dict[str, Any]]] = None
    created_at: datetime
    finished_at: Optional[datetime] = None


# =============================
# Requests
# =============================


class _TextInput(BaseModel):
    # "   " is rejected by min_length after stripping
    model_config = ConfigDict(str_strip_whitespace=True)


class StakeholderIn(_TextInput):
    """Новый стейкхолдер (роль из фиксированного списка или свободный текст)."""
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    role: str = Field(..., min_length=1)
    userId: Optional[str] = None


class ProjectCreateRequest(_TextInput):
    name: str = Field(..., min_length=1)
    prdContent: Optional[str] = None
    prdFileName: Optional[str] = None
    stakeholders: List[StakeholderIn] = Field(default_factory=list)


class ProjectUpdateRequest(_TextInput):
    name: Optional[str] = Field(None, min_length=1)
    prdContent: Optional[str] = None
    prdFileName: Optional[str] = None


class PrdAttachRequest(BaseModel):
    """Прикрепить PRD к проекту (текст, blob URL или data URL PDF)."""
    prdContent: str = Field(..., min_length=1)
    fileName: str = Field(..., min_length=1)
    fileUrl: Optional[str] = None
    extractedText: Optional[str] = None


class StakeholderCreateRequest(BaseModel):
    stakeholders: List[StakeholderIn] = Field(..., min_length=1)


class StakeholderUpdateRequest(BaseModel):
    tailoredContent: Optional[str] = None
    reviewStatus: Optional[ReviewStatus] = None


class GenerateRequest(BaseModel):
    # Optional so that a missing id yields a domain 400 rather than a schema error
    projectId: Optional[str] = None


class DraftRequest(BaseModel):
    """Какие стейкхолдеры нужны для предпросмотра; None означает всех."""
    stakeholderIds: Optional[List[str]] = None


class ReviewDraftIn(BaseModel):
    stakeholderId: str
    tailoredContent: Optional[str] = None


class ReviewSendRequest(BaseModel):
    drafts: List[ReviewDraftIn] = Field(..., min_length=1)


class QuestionCreateRequest(_TextInput):
    stakeholderId: str = Field(..., min_length=1)
    questionText: str = Field(..., min_length=1)


class AnswerCreateRequest(_TextInput):
    answerText: str = Field(..., min_length=1)
    isAiGenerated: bool = False


# =============================
# Responses
# =============================


class TailoringResult(BaseModel):
    """Результат генерации для одного стейкхолдера."""
    stakeholderId: str
    success: bool
    error: Optional[str] = None


class GenerateResponse(BaseModel):
    success: bool = True
    results: List[TailoringResult]


class Draft(BaseModel):
    """Черновик выжимки (не сохраняется до отправки ревью)."""
    stakeholderId: str
    success: bool
    content: Optional[str] = None
    error: Optional[str] = None


class DraftsResponse(BaseModel):
    drafts: List[Draft]


class ReviewSendResponse(BaseModel):
    stakeholders: List[StakeholderOut]


class UploadResponse(BaseModel):
    url: str
    filename: str
    extractedText: Optional[str] = None
    jobId: Optional[str] = None


class DocumentView(BaseModel):
    """Данные для просмотрщика документа.

    mode: markdown | pdf_inline | pdf_download | empty
    """
    mode: Literal["markdown", "pdf_inline", "pdf_download", "empty"]
    fileName: str
    fileUrl: Optional[str] = None
    blocks: List[Dict[str, Any]] = Field(default_factory=list)
    html: str = ""


class RoleCount(BaseModel):
    role: str
    count: int


class ResolutionTime(BaseModel):
    project: str
    avgHours: float


class MetricsOut(BaseModel):
    totalProjects: int
    totalQuestions: int
    resolvedQuestions: int
    resolutionRate: int
    meetingsAvoided: int
    stakeholdersByRole: List[RoleCount]
    reviewStatus: Dict[str, int]
    resolutionTimes: List[ResolutionTime]
