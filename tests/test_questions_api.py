"""HTTP tests for stakeholder questions, answers and metrics."""
from __future__ import annotations

import pytest

from SmartPRD.core.errors import ValidationError
from SmartPRD.services import questions
from SmartPRD.services.llm_client import LLMError
from tests.conftest import auth_headers

SARAH = auth_headers("u-sarah", "Sarah@Example.com")
STRANGER = auth_headers("stranger", "nobody@example.com")


@pytest.fixture
def sarah_id(repo, project):
    return next(s.id for s in repo.list_stakeholders(project.id) if s.email == "sarah@example.com")


def _ask(client, headers, project_id, stakeholder_id, text="Which screens are in the MVP?"):
    return client.post(
        f"/api/projects/{project_id}/questions",
        headers=headers,
        json={"stakeholderId": stakeholder_id, "questionText": text},
    )


class TestAskQuestion:
    def test_linked_stakeholder_can_ask(self, client, project, sarah_id):
        resp = _ask(client, SARAH, project.id, sarah_id)
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "unresolved"
        assert body["resolved_at"] is None

    def test_owner_can_ask_on_behalf(self, client, owner_headers, project, sarah_id):
        assert _ask(client, owner_headers, project.id, sarah_id).status_code == 201

    def test_stranger_cannot_ask(self, client, project, sarah_id):
        assert _ask(client, STRANGER, project.id, sarah_id).status_code == 403

    def test_stakeholder_of_other_project(self, client, owner_headers, repo, project, sarah_id):
        other = repo.create_project(owner_id=project.owner_id, name="Other")
        assert _ask(client, owner_headers, other.id, sarah_id).status_code == 404

    def test_empty_text(self, client, owner_headers, project, sarah_id):
        assert _ask(client, owner_headers, project.id, sarah_id, text="").status_code == 400


class TestAnswersAndStatus:
    def test_answer_does_not_resolve(self, client, owner_headers, project, sarah_id):
        qid = _ask(client, SARAH, project.id, sarah_id).json()["id"]
        resp = client.post(f"/api/questions/{qid}/answers", headers=owner_headers, json={"answerText": "Home and Stats."})
        assert resp.status_code == 201
        assert resp.json()["is_ai_generated"] is False

        listed = client.get(f"/api/projects/{project.id}/questions", headers=SARAH).json()
        assert listed[0]["status"] == "unresolved"
        assert [a["answer_text"] for a in listed[0]["answers"]] == ["Home and Stats."]
        assert listed[0]["stakeholder"] == {"name": "Sarah Chen", "role": "UI/UX Designer"}

    def test_only_owner_answers(self, client, project, sarah_id):
        qid = _ask(client, SARAH, project.id, sarah_id).json()["id"]
        resp = client.post(f"/api/questions/{qid}/answers", headers=SARAH, json={"answerText": "self-answer"})
        assert resp.status_code == 403

    def test_resolve_and_unresolve(self, client, owner_headers, project, sarah_id):
        qid = _ask(client, SARAH, project.id, sarah_id).json()["id"]

        first = client.post(f"/api/questions/{qid}/resolve", headers=owner_headers).json()
        assert first["status"] == "resolved"
        assert first["resolved_at"] is not None

        second = client.post(f"/api/questions/{qid}/resolve", headers=owner_headers).json()
        assert second["status"] == "resolved"
        assert second["resolved_at"] >= first["resolved_at"]

        reopened = client.post(f"/api/questions/{qid}/unresolve", headers=owner_headers).json()
        assert reopened["status"] == "unresolved"
        assert reopened["resolved_at"] is None

    def test_unknown_question(self, client, owner_headers):
        assert client.post("/api/questions/missing/resolve", headers=owner_headers).status_code == 404

    def test_stranger_cannot_list(self, client, project):
        assert client.get(f"/api/projects/{project.id}/questions", headers=STRANGER).status_code == 403


class TestSuggestAnswer:
    def test_ai_answer_is_stored(self, client, owner_headers, project, sarah_id, llm):
        qid = _ask(client, SARAH, project.id, sarah_id).json()["id"]
        resp = client.post(f"/api/questions/{qid}/answers/suggest", headers=owner_headers)
        assert resp.status_code == 201
        assert resp.json()["is_ai_generated"] is True
        assert "Which screens are in the MVP?" in llm.calls[-1][-1]["content"]

    def test_provider_failure_is_502(self, client, owner_headers, project, sarah_id, llm, monkeypatch):
        async def boom(messages, *, model=None):
            raise LLMError("quota exceeded", code="rate_limited", status_code=429)

        monkeypatch.setattr(llm, "complete", boom)
        qid = _ask(client, SARAH, project.id, sarah_id).json()["id"]
        resp = client.post(f"/api/questions/{qid}/answers/suggest", headers=owner_headers)
        assert resp.status_code == 502
        assert resp.json() == {"error": "Generation failed: quota exceeded"}


class TestMetrics:
    def test_empty_account(self, client):
        body = client.get("/api/metrics", headers=auth_headers("new-user", None)).json()
        assert body["totalProjects"] == 0
        assert body["resolutionRate"] == 0
        assert body["reviewStatus"] == {"pending": 0, "in_progress": 0, "resolved": 0}
        assert body["resolutionTimes"] == []

    def test_counts(self, client, owner_headers, project, sarah_id):
        q1 = _ask(client, SARAH, project.id, sarah_id).json()["id"]
        _ask(client, SARAH, project.id, sarah_id, text="Dark mode?")
        _ask(client, SARAH, project.id, sarah_id, text="Fonts?")
        client.post(f"/api/questions/{q1}/resolve", headers=owner_headers)

        body = client.get("/api/metrics", headers=owner_headers).json()
        assert body["totalProjects"] == 1
        assert body["totalQuestions"] == 3
        assert body["resolvedQuestions"] == 1
        assert body["resolutionRate"] == 33
        assert body["meetingsAvoided"] == 1
        assert body["stakeholdersByRole"] == [
            {"role": "Backend Engineer", "count": 1},
            {"role": "Frontend Engineer", "count": 1},
            {"role": "UI/UX Designer", "count": 1},
        ]
        assert body["reviewStatus"]["pending"] == 3
        assert [t["project"] for t in body["resolutionTimes"]] == ["SmartShot"]


class TestBlankText:
    def test_blank_question(self, client, owner_headers, project, sarah_id, repo):
        resp = _ask(client, owner_headers, project.id, sarah_id, text="   ")
        assert resp.status_code == 400
        assert "questionText" in resp.json()["error"]
        assert repo.list_questions(project.id) == []

    def test_blank_answer(self, client, owner_headers, project, sarah_id, repo):
        qid = _ask(client, SARAH, project.id, sarah_id).json()["id"]
        resp = client.post(f"/api/questions/{qid}/answers", headers=owner_headers, json={"answerText": " \n\t "})
        assert resp.status_code == 400
        assert repo.list_questions(project.id)[0].answers == []

    def test_text_is_trimmed(self, client, owner_headers, project, sarah_id):
        body = _ask(client, owner_headers, project.id, sarah_id, text="  Dark mode?  ").json()
        assert body["question_text"] == "Dark mode?"


def test_service_rejects_blank_question(repo, project, owner_ctx, sarah_id):
    with pytest.raises(ValidationError, match="Question text is required"):
        questions.create_question(repo, owner_ctx, project.id, sarah_id, "  ")
