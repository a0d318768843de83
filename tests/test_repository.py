"""Repository behaviour not visible through the HTTP layer."""
from __future__ import annotations

from datetime import datetime, timezone

from tests.conftest import OWNER_ID


def _question(repo, project):
    stakeholder = repo.list_stakeholders(project.id)[0]
    return repo.create_question(project_id=project.id, stakeholder_id=stakeholder.id, question_text="When?")


class TestQuestionStatus:
    def test_second_resolve_replaces_timestamp(self, repo, project):
        q = _question(repo, project)
        t1 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        t2 = datetime(2026, 3, 2, 17, 30, tzinfo=timezone.utc)

        assert repo.set_question_status(q.id, "resolved", at=t1).resolved_at == t1
        again = repo.set_question_status(q.id, "resolved", at=t2)

        assert again.status == "resolved"
        assert again.resolved_at == t2
        stored = repo.get_question(q.id).resolved_at
        assert stored.replace(tzinfo=None) == t2.replace(tzinfo=None)

    def test_unresolve_clears_timestamp(self, repo, project):
        q = _question(repo, project)
        repo.set_question_status(q.id, "resolved", at=datetime(2026, 3, 1, tzinfo=timezone.utc))

        reopened = repo.set_question_status(q.id, "unresolved")

        assert reopened.status == "unresolved"
        assert repo.get_question(q.id).resolved_at is None

    def test_answer_keeps_status(self, repo, project):
        q = _question(repo, project)
        repo.add_answer(question_id=q.id, answer_text="Soon.", created_by=OWNER_ID)
        assert repo.get_question(q.id).status == "unresolved"


def test_update_project_touches_updated_at(repo, project):
    updated = repo.update_project(project.id, name="Renamed")
    assert updated.name == "Renamed"
    assert updated.updated_at >= project.updated_at.replace(tzinfo=updated.updated_at.tzinfo)
