"""Shared fixtures: in-memory database, fake LLM, temp blob storage, tokens."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from SmartPRD.app import deps
from SmartPRD.app.main import app
from SmartPRD.core.auth import RequestContext
from SmartPRD.core.db import Base
from SmartPRD.core.settings import settings
from SmartPRD.models import orm  # noqa: F401
from SmartPRD.services.llm_client import LLMError
from SmartPRD.services.repository import Repo
from SmartPRD.services.storage import LocalBlobStorage

OWNER_ID = "owner-1"
OWNER_EMAIL = "pm@example.com"

SAMPLE_PRD = """\
# SmartShot Basketball

## Goals
* Deliver **>95% accuracy** in make/miss detection.
* Real-time feedback via the mobile app.

## Milestones

| Phase | Deliverable | Owner |
| ----- | ----------- | ----- |
| P0 | Hardware prototype | HW Eng |
| P1 | MVP mobile app | Frontend |
"""


class FakeLLM:
    """Stand-in for LLMClient: records prompts, fails for selected roles."""

    def __init__(self, reply: Optional[Callable[[List[Dict[str, str]]], str]] = None) -> None:
        self.calls: List[List[Dict[str, str]]] = []
        self.fail_roles: set = set()
        self._reply = reply

    async def complete(self, messages, *, model=None) -> str:
        self.calls.append(messages)
        user = messages[-1]["content"]
        for role in self.fail_roles:
            if f"to a {role}." in user:
                raise LLMError(f"provider unavailable for {role}", code="upstream_error")
        if self._reply is not None:
            return self._reply(messages)
        return f"## Summary {len(self.calls)}\n\n- relevant item"


def make_token(user_id: str, email: Optional[str] = None, **extra) -> str:
    claims = {"sub": user_id, "aud": settings.jwt_audience, **extra}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.jwt_secret, algorithm="HS256")


def auth_headers(user_id: str = OWNER_ID, email: Optional[str] = OWNER_EMAIL) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def repo(session_factory) -> Repo:
    return Repo(session_factory)


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def storage(tmp_path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "blobs", "http://testserver/blobs")


@pytest.fixture
def client(repo, llm, storage):
    app.dependency_overrides[deps.get_repo] = lambda: repo
    app.dependency_overrides[deps.get_llm] = lambda: llm
    app.dependency_overrides[deps.get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def owner_ctx() -> RequestContext:
    return RequestContext(user_id=OWNER_ID, email=OWNER_EMAIL)


@pytest.fixture
def owner_headers() -> Dict[str, str]:
    return auth_headers()


@pytest.fixture
def project(repo):
    """Owned project with a markdown PRD and three stakeholders."""
    p = repo.create_project(owner_id=OWNER_ID, name="SmartShot", prd_content=SAMPLE_PRD, prd_file_name="prd.md")
    repo.create_stakeholders(
        p.id,
        [
            {"name": "Sarah Chen", "email": "sarah@example.com", "role": "UI/UX Designer"},
            {"name": "Michael Rodriguez", "email": "michael@example.com", "role": "Frontend Engineer"},
            {"name": "Emily Watson", "email": "emily@example.com", "role": "Backend Engineer"},
        ],
    )
    return p
