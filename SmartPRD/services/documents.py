"""Просмотр PRD: выбор режима отображения и выдача PDF из data URL."""
from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional

from SmartPRD.schemas import DocumentView, ProjectOut
from SmartPRD.services.markdown import block_to_dict, parse_markdown, render_html

_log = logging.getLogger(__name__)

PDF_DATA_URL_PREFIX = "data:application/pdf;base64,"


def decode_pdf_data_url(content: Optional[str]) -> Optional[bytes]:
    """Байты PDF из `data:application/pdf;base64,...`; None, если это не PDF data URL."""
    if not content or not content.startswith(PDF_DATA_URL_PREFIX):
        return None
    try:
        return base64.b64decode(content[len(PDF_DATA_URL_PREFIX):], validate=False)
    except (binascii.Error, ValueError) as exc:
        _log.warning("documents: bad pdf data url: %s", exc)
        return None


def _is_link(content: str) -> bool:
    return content.startswith(("http://", "https://", "data:"))


def display_text(project: ProjectOut) -> Optional[str]:
    """Текст для markdown‑просмотра: извлечённый текст или сырое содержимое, если это не ссылка."""
    if project.prd_extracted_text:
        return project.prd_extracted_text
    if project.prd_content and not _is_link(project.prd_content):
        return project.prd_content
    return None


def render_markdown_view(text: str, file_name: str, file_url: Optional[str] = None) -> DocumentView:
    blocks = parse_markdown(text)
    return DocumentView(
        mode="markdown",
        fileName=file_name,
        fileUrl=file_url,
        blocks=[block_to_dict(b) for b in blocks],
        html=render_html(blocks),
    )


def document_view(project: ProjectOut) -> DocumentView:
    """Собрать данные просмотрщика PRD проекта.

    - markdown: есть текст, он разбирается в блоки и HTML;
    - pdf_inline: текста нет, но есть PDF‑файл, он показывается во фрейме;
    - pdf_download: текста нет, файл не PDF, доступна только ссылка на скачивание;
    - empty: PRD ещё не загружен.
    """
    file_name = project.prd_file_name or "No PRD uploaded"
    file_url = project.prd_file_url
    if not file_url and decode_pdf_data_url(project.prd_content) is not None:
        file_url = f"/api/projects/{project.id}/prd"

    text = display_text(project)
    if text:
        return render_markdown_view(text, file_name, file_url)
    if file_url:
        is_pdf = (project.prd_file_name or "").lower().endswith(".pdf")
        return DocumentView(mode="pdf_inline" if is_pdf else "pdf_download", fileName=file_name, fileUrl=file_url)
    return DocumentView(mode="empty", fileName=file_name)
