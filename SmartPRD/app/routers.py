"""HTTP‑роуты FastAPI для SmartPRD.

Основные эндпоинты:
- POST /api/upload-prd: загрузка файла PRD (+ извлечение текста, фоновая генерация);
- POST /api/generate-tailored-prd: выжимки PRD под роли всех стейкхолдеров;
- GET  /api/projects/{id}/prd: PDF из data URL проекта.

Плюс CRUD проектов/стейкхолдеров, ревью, вопросы/ответы, метрики и задачи.
Все эндпоинты /api требуют `Authorization: Bearer <jwt>`.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, Form, Response, UploadFile
from fastapi.responses import FileResponse

from SmartPRD.app.deps import get_context, get_job_runner, get_repo, get_storage, get_tailoring
from SmartPRD.core.auth import RequestContext
from SmartPRD.core.errors import NotFoundError, UnauthorizedError, UpstreamError, ValidationError
from SmartPRD.core.settings import settings
from SmartPRD.schemas import (
    STAKEHOLDER_ROLES,
    AnswerCreateRequest,
    AnswerOut,
    DocumentView,
    DraftRequest,
    DraftsResponse,
    GenerateRequest,
    GenerateResponse,
    JobOut,
    MetricsOut,
    PrdAttachRequest,
    ProjectCreateRequest,
    ProjectOut,
    ProjectUpdateRequest,
    QuestionCreateRequest,
    QuestionOut,
    QuestionWithAnswers,
    ReviewSendRequest,
    ReviewSendResponse,
    StakeholderCreateRequest,
    StakeholderOut,
    StakeholderUpdateRequest,
    UploadResponse,
)
from SmartPRD.services import questions as qa
from SmartPRD.services.documents import decode_pdf_data_url, document_view, render_markdown_view
from SmartPRD.services.extraction import extract_text
from SmartPRD.services.jobs import JobRunner
from SmartPRD.services.llm_client import LLMError
from SmartPRD.services.metrics import compute_metrics
from SmartPRD.services.repository import Repo
from SmartPRD.services.review import owned_project, owned_stakeholder, send_review, update_stakeholder
from SmartPRD.services.storage import LocalBlobStorage
from SmartPRD.services.tailoring import TailoringService

router = APIRouter(tags=["SmartPRD"])
_log = logging.getLogger(__name__)


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/blobs/{pathname}", summary="Download a stored file")
def get_blob(pathname: str, storage: LocalBlobStorage = Depends(get_storage)):
    return FileResponse(storage.open(pathname))


@router.get("/api/roles")
def list_roles():
    return {"roles": STAKEHOLDER_ROLES}


# ---- upload / generation ----


@router.post("/api/upload-prd", response_model=UploadResponse, summary="Upload a PRD file")
def upload_prd(
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    projectId: Optional[str] = Form(None),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
    storage: LocalBlobStorage = Depends(get_storage),
    jobs: JobRunner = Depends(get_job_runner),
):
    """
    Сохранить файл PRD в хранилище и извлечь из него текст.

    - Ошибка извлечения не фатальна: extractedText = null.
    - С `projectId` PRD прикрепляется к проекту, а при наличии текста
      ставится фоновая задача генерации выжимок (jobId в ответе).
    """
    if file is None or not file.filename:
        raise ValidationError("No file provided")
    data = file.file.read()
    _log.info(
        "upload: file=%s type=%s size=%s project=%s",
        file.filename,
        file.content_type,
        len(data),
        projectId or "-",
    )
    if not data:
        raise ValidationError("Empty file")
    if len(data) > settings.max_upload_bytes:
        raise ValidationError(f"File too large (max {settings.max_upload_bytes} bytes)")

    project = owned_project(repo, ctx, projectId) if projectId else None

    try:
        blob = storage.put(file.filename, data, content_type=file.content_type)
    except OSError as exc:
        _log.exception("upload: storage failed file=%s", file.filename)
        raise UpstreamError(f"Upload failed: {exc}", status_code=500) from exc

    extracted = extract_text(file.filename, file.content_type, data)

    job_id = None
    if project is not None:
        repo.attach_prd(
            project.id,
            content=extracted or blob.url,
            file_name=file.filename,
            file_url=blob.url,
            extracted_text=extracted,
        )
        if extracted:
            job_id = jobs.enqueue(background_tasks, ctx, project.id).id

    return UploadResponse(url=blob.url, filename=file.filename, extractedText=extracted, jobId=job_id)


@router.post(
    "/api/generate-tailored-prd",
    response_model=GenerateResponse,
    response_model_exclude_none=True,
    summary="Generate tailored PRD content for all stakeholders",
)
async def generate_tailored_prd(
    req: GenerateRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    tailoring: TailoringService = Depends(get_tailoring),
):
    """Последовательная генерация; ошибки по стейкхолдерам попадают в results."""
    if not req.projectId:
        raise ValidationError("Project ID is required")
    results = await tailoring.generate_for_project(ctx, req.projectId)
    return GenerateResponse(success=True, results=results)


@router.get("/api/jobs/{job_id}", response_model=JobOut)
def get_job(job_id: str, ctx: RequestContext = Depends(get_context), jobs: JobRunner = Depends(get_job_runner)):
    return jobs.get(ctx, job_id)


# ---- projects ----


@router.get("/api/projects", response_model=List[ProjectOut])
def list_projects(ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    return repo.list_projects(ctx.user_id)


@router.post("/api/projects", response_model=ProjectOut, status_code=201)
def create_project(
    req: ProjectCreateRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
):
    """Создать проект (и, опционально, сразу его стейкхолдеров)."""
    project = repo.create_project(
        owner_id=ctx.user_id,
        name=req.name.strip(),
        prd_content=req.prdContent,
        prd_file_name=req.prdFileName,
    )
    if req.stakeholders:
        repo.create_stakeholders(project.id, [_stakeholder_row(s) for s in req.stakeholders])
    return project


@router.get("/api/projects/{project_id}", response_model=ProjectOut)
def get_project(project_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    return owned_project(repo, ctx, project_id)


@router.patch("/api/projects/{project_id}", response_model=ProjectOut)
def update_project(
    project_id: str,
    req: ProjectUpdateRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
):
    owned_project(repo, ctx, project_id)
    fields = {}
    if req.name is not None:
        fields["name"] = req.name.strip()
    if req.prdContent is not None:
        fields["prd_content"] = req.prdContent
    if req.prdFileName is not None:
        fields["prd_file_name"] = req.prdFileName
    return repo.update_project(project_id, **fields)


@router.delete("/api/projects/{project_id}", status_code=204)
def delete_project(project_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    owned_project(repo, ctx, project_id)
    repo.delete_project(project_id)
    return Response(status_code=204)


@router.put("/api/projects/{project_id}/prd", response_model=ProjectOut)
def attach_prd(
    project_id: str,
    req: PrdAttachRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
):
    owned_project(repo, ctx, project_id)
    return repo.attach_prd(
        project_id,
        content=req.prdContent,
        file_name=req.fileName,
        file_url=req.fileUrl,
        extracted_text=req.extractedText,
    )


@router.get("/api/projects/{project_id}/prd", summary="Serve the project PDF stored as a data URL")
def get_prd_pdf(project_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    project = owned_project(repo, ctx, project_id)
    data = decode_pdf_data_url(project.prd_content)
    if data is None:
        raise NotFoundError("No PDF content available")
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": "inline", "Cache-Control": "private, max-age=3600"},
    )


@router.get("/api/projects/{project_id}/document", response_model=DocumentView)
def get_document(project_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    return document_view(owned_project(repo, ctx, project_id))


# ---- stakeholders / review ----


def _stakeholder_row(s) -> dict:
    return {"name": s.name.strip(), "email": s.email.strip(), "role": s.role.strip(), "user_id": s.userId}


@router.get("/api/projects/{project_id}/stakeholders", response_model=List[StakeholderOut])
def list_stakeholders(project_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    owned_project(repo, ctx, project_id)
    return repo.list_stakeholders(project_id)


@router.post("/api/projects/{project_id}/stakeholders", response_model=List[StakeholderOut], status_code=201)
def create_stakeholders(
    project_id: str,
    req: StakeholderCreateRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
):
    owned_project(repo, ctx, project_id)
    return repo.create_stakeholders(project_id, [_stakeholder_row(s) for s in req.stakeholders])


@router.patch("/api/stakeholders/{stakeholder_id}", response_model=StakeholderOut)
def patch_stakeholder(
    stakeholder_id: str,
    req: StakeholderUpdateRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
):
    return update_stakeholder(
        repo,
        ctx,
        stakeholder_id,
        tailored_content=req.tailoredContent,
        review_status=req.reviewStatus,
    )


@router.delete("/api/stakeholders/{stakeholder_id}", status_code=204)
def delete_stakeholder(stakeholder_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    owned_stakeholder(repo, ctx, stakeholder_id)
    repo.delete_stakeholder(stakeholder_id)
    return Response(status_code=204)


@router.get("/api/stakeholders/{stakeholder_id}/tailored", response_model=DocumentView)
def get_tailored(stakeholder_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    """Выжимка стейкхолдера в виде блоков/HTML (для PM‑а и самого стейкхолдера)."""
    stakeholder = repo.get_stakeholder(stakeholder_id)
    if stakeholder is None:
        raise NotFoundError("Stakeholder not found")
    project = repo.get_project(stakeholder.project_id)
    if project is None:
        raise NotFoundError("Project not found")
    if project.owner_id != ctx.user_id and not qa.is_linked_stakeholder(ctx, stakeholder):
        raise UnauthorizedError()
    title = f"{project.name} ({stakeholder.role})"
    if not stakeholder.tailored_content:
        return DocumentView(mode="empty", fileName=title)
    return render_markdown_view(stakeholder.tailored_content, title)


@router.post(
    "/api/projects/{project_id}/review/drafts",
    response_model=DraftsResponse,
    response_model_exclude_none=True,
)
async def review_drafts(
    project_id: str,
    req: Optional[DraftRequest] = Body(None),
    ctx: RequestContext = Depends(get_context),
    tailoring: TailoringService = Depends(get_tailoring),
):
    """Черновики выжимок для ревью (без сохранения)."""
    drafts = await tailoring.draft_for_stakeholders(ctx, project_id, req.stakeholderIds if req else None)
    return DraftsResponse(drafts=drafts)


@router.post("/api/projects/{project_id}/review/send", response_model=ReviewSendResponse)
def review_send(
    project_id: str,
    req: ReviewSendRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
):
    return ReviewSendResponse(stakeholders=send_review(repo, ctx, project_id, req.drafts))


# ---- questions / answers ----


@router.get("/api/projects/{project_id}/questions", response_model=List[QuestionWithAnswers])
def list_questions(project_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    return qa.list_questions(repo, ctx, project_id)


@router.post("/api/projects/{project_id}/questions", response_model=QuestionOut, status_code=201)
def create_question(
    project_id: str,
    req: QuestionCreateRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
):
    return qa.create_question(repo, ctx, project_id, req.stakeholderId, req.questionText)


@router.post("/api/questions/{question_id}/answers", response_model=AnswerOut, status_code=201)
def add_answer(
    question_id: str,
    req: AnswerCreateRequest = Body(...),
    ctx: RequestContext = Depends(get_context),
    repo: Repo = Depends(get_repo),
):
    return qa.add_answer(repo, ctx, question_id, req.answerText, is_ai_generated=req.isAiGenerated)


@router.post("/api/questions/{question_id}/answers/suggest", response_model=AnswerOut, status_code=201)
async def suggest_answer(
    question_id: str,
    ctx: RequestContext = Depends(get_context),
    tailoring: TailoringService = Depends(get_tailoring),
):
    try:
        return await tailoring.suggest_answer(ctx, question_id)
    except LLMError as exc:
        _log.warning("suggest: LLMError code=%s status=%s msg=%s", exc.code, exc.provider_status, exc)
        raise UpstreamError(f"Generation failed: {exc}") from exc


@router.post("/api/questions/{question_id}/resolve", response_model=QuestionOut)
def resolve_question(question_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    return qa.resolve_question(repo, ctx, question_id)


@router.post("/api/questions/{question_id}/unresolve", response_model=QuestionOut)
def unresolve_question(question_id: str, ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    return qa.unresolve_question(repo, ctx, question_id)


# ---- metrics ----


@router.get("/api/metrics", response_model=MetricsOut)
def get_metrics(ctx: RequestContext = Depends(get_context), repo: Repo = Depends(get_repo)):
    projects = repo.list_projects(ctx.user_id)
    ids = [p.id for p in projects]
    return compute_metrics(
        projects,
        repo.list_stakeholders_for_projects(ids),
        repo.list_questions_for_projects(ids),
    )
