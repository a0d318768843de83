"""Помощники для загрузки шаблонов и сборки текстов промптов."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Tuple
import logging


# Prompts directory
_SP_ROOT = Path(__file__).resolve().parents[1]
PROMPT_DIR = _SP_ROOT / "prompts"

_log = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([A-Z_]+)\}")

TAILOR_SYSTEM = (PROMPT_DIR / "tailor.system.md").read_text(encoding="utf-8").strip()
TAILOR_USER_TEMPLATE = (PROMPT_DIR / "tailor_user.tpl.md").read_text(encoding="utf-8")

ANSWER_SYSTEM = (PROMPT_DIR / "answer.system.md").read_text(encoding="utf-8").strip()
ANSWER_USER_TEMPLATE = (PROMPT_DIR / "answer_user.tpl.md").read_text(encoding="utf-8")


def _fill(template: str, values: Dict[str, str]) -> str:
    # single pass: braces inside the PRD text itself are left alone
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template).strip()


def build_tailoring_prompt(*, role: str, document: str) -> Tuple[str, str]:
    """Вернуть пару (system, user) сообщений для выжимки PRD под роль."""
    user = _fill(TAILOR_USER_TEMPLATE, {"ROLE": role.strip() or "team member", "DOCUMENT": document})
    _log.debug("tmpl: tailoring user built (role=%s, doc_len=%s, out_len=%s)", role, len(document), len(user))
    return TAILOR_SYSTEM, user


def build_answer_prompt(*, question: str, role: str, document: str) -> Tuple[str, str]:
    """Вернуть пару (system, user) сообщений для черновика ответа на вопрос."""
    user = _fill(
        ANSWER_USER_TEMPLATE,
        {"ROLE": role.strip() or "stakeholder", "QUESTION": question, "DOCUMENT": document},
    )
    return ANSWER_SYSTEM, user


def as_messages(system_msg: str, user_msg: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system_msg},
        {"role": "user", "content": user_msg},
    ]
