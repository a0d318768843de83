"""Хранилище загруженных файлов (локальная директория, публичные URL).

Файлы доступны по адресу `<public_base_url>/<pathname>`; в приложении
отдаются роутом `GET /blobs/{pathname}`.
"""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from SmartPRD.core.errors import NotFoundError

_log = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass(frozen=True)
class StoredBlob:
    url: str
    pathname: str
    size: int
    content_type: Optional[str] = None


def sanitize_filename(name: str) -> str:
    """Оставить только безопасные символы имени файла (letters, digits, _ . -)."""
    base = PurePosixPath(name.replace("\\", "/")).name
    cleaned = _UNSAFE.sub("_", base).strip("._")
    return cleaned or "file"


class LocalBlobStorage:
    """Файловое хранилище blob‑ов с опциональным случайным суффиксом имени."""

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def put(
        self,
        name: str,
        data: bytes,
        *,
        content_type: Optional[str] = None,
        add_random_suffix: bool = True,
    ) -> StoredBlob:
        """Сохранить байты и вернуть публичный URL."""
        safe = sanitize_filename(name)
        if add_random_suffix:
            stem, dot, ext = safe.rpartition(".")
            suffix = uuid.uuid4().hex[:12]
            safe = f"{stem}-{suffix}.{ext}" if dot and stem else f"{safe}-{suffix}"
        path = self.root / safe
        path.write_bytes(data)
        _log.info("storage: stored pathname=%s size=%s", safe, len(data))
        return StoredBlob(
            url=f"{self.public_base_url}/{safe}",
            pathname=safe,
            size=len(data),
            content_type=content_type,
        )

    def open(self, pathname: str) -> Path:
        """Путь к сохранённому файлу; выход за пределы корня запрещён."""
        path = (self.root / pathname).resolve()
        if path.parent != self.root or not path.is_file():
            raise NotFoundError("File not found")
        return path
