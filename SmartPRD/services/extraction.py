"""Извлечение текста из загруженных документов (PDF, DOCX, текстовые файлы).

Извлечение best effort: любая ошибка парсера логируется, а результатом
становится None, загрузка при этом не прерывается.
"""
from __future__ import annotations

import io
import logging
from typing import Optional

import PyPDF2
from docx import Document

_log = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".txt", ".md", ".markdown")
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def detect_kind(filename: str, content_type: Optional[str] = None) -> str:
    """Тип документа по расширению/MIME: pdf | docx | text | other."""
    lower = (filename or "").lower()
    ctype = (content_type or "").lower()
    if lower.endswith(".pdf") or ctype == "application/pdf":
        return "pdf"
    if lower.endswith(".docx") or ctype == DOCX_MIME:
        return "docx"
    if lower.endswith(TEXT_EXTENSIONS) or ctype.startswith("text/"):
        return "text"
    return "other"


def extract_text_from_pdf(data: bytes) -> str:
    reader = PyPDF2.PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def extract_text_from_docx(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    return "\n".join(p.text for p in doc.paragraphs)


def extract_text(filename: str, content_type: Optional[str], data: bytes) -> Optional[str]:
    """Вернуть текст документа или None, если извлечь не удалось."""
    kind = detect_kind(filename, content_type)
    try:
        if kind == "pdf":
            text = extract_text_from_pdf(data)
        elif kind == "docx":
            text = extract_text_from_docx(data)
        elif kind == "text":
            text = data.decode("utf-8", errors="replace")
        else:
            _log.info("extract: unsupported file=%s type=%s", filename, content_type)
            return None
    except Exception as exc:
        _log.warning("extract: failed file=%s kind=%s: %s", filename, kind, exc)
        return None

    text = text.strip()
    _log.info("extract: file=%s kind=%s chars=%s", filename, kind, len(text))
    return text or None
