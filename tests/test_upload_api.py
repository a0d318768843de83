"""HTTP tests for PRD upload, generation and job status."""
from __future__ import annotations

from tests.conftest import auth_headers


def _upload(client, headers, name="prd.md", data=b"# PRD\n\n## Goals\n* Ship", ctype="text/markdown", **form):
    return client.post("/api/upload-prd", headers=headers, files={"file": (name, data, ctype)}, data=form)


class TestUploadPrd:
    def test_plain_text_upload(self, client, owner_headers):
        resp = _upload(client, owner_headers, name="hello.txt", data=b"Hello", ctype="text/plain")
        assert resp.status_code == 200
        body = resp.json()
        assert body["filename"] == "hello.txt"
        assert body["extractedText"] == "Hello"
        assert body["jobId"] is None
        assert body["url"].startswith("http://testserver/blobs/hello-")

    def test_uploaded_blob_is_downloadable(self, client, owner_headers):
        url = _upload(client, owner_headers, name="hello.txt", data=b"Hello", ctype="text/plain").json()["url"]
        resp = client.get(f"/blobs/{url.rsplit('/', 1)[-1]}")
        assert resp.status_code == 200
        assert resp.content == b"Hello"

    def test_unreadable_pdf_still_uploads(self, client, owner_headers):
        resp = _upload(client, owner_headers, name="prd.pdf", data=b"not really a pdf", ctype="application/pdf")
        assert resp.status_code == 200
        assert resp.json()["extractedText"] is None

    def test_missing_file(self, client, owner_headers):
        resp = client.post("/api/upload-prd", headers=owner_headers, data={"projectId": "x"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No file provided"}

    def test_empty_file(self, client, owner_headers):
        resp = _upload(client, owner_headers, data=b"")
        assert resp.status_code == 400

    def test_requires_authentication(self, client):
        resp = _upload(client, {})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Not authenticated"}

    def test_foreign_project_is_rejected(self, client, project):
        resp = _upload(client, auth_headers("someone-else", "x@y.io"), projectId=project.id)
        assert resp.status_code == 403

    def test_upload_into_project_runs_generation(self, client, owner_headers, project, repo, llm):
        resp = _upload(client, owner_headers, projectId=project.id)
        assert resp.status_code == 200
        job_id = resp.json()["jobId"]
        assert job_id

        stored = repo.get_project(project.id)
        assert stored.prd_extracted_text.startswith("# PRD")
        assert stored.prd_file_name == "prd.md"
        assert stored.prd_file_url == resp.json()["url"]

        job = client.get(f"/api/jobs/{job_id}", headers=owner_headers).json()
        assert job["status"] == "succeeded"
        assert len(job["results"]) == 3
        assert len(llm.calls) == 3
        assert {s.review_status for s in repo.list_stakeholders(project.id)} == {"in_progress"}

    def test_upload_without_text_skips_generation(self, client, owner_headers, project, repo, llm):
        resp = _upload(client, owner_headers, name="scan.pdf", data=b"garbage", ctype="application/pdf", projectId=project.id)
        assert resp.json()["jobId"] is None
        assert llm.calls == []
        stored = repo.get_project(project.id)
        assert stored.prd_content == resp.json()["url"]
        assert stored.prd_extracted_text is None


class TestGenerateTailoredPrd:
    def test_project_id_required(self, client, owner_headers):
        resp = client.post("/api/generate-tailored-prd", headers=owner_headers, json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Project ID is required"}

    def test_generates_for_every_stakeholder(self, client, owner_headers, project, llm):
        llm.fail_roles = {"UI/UX Designer"}
        resp = client.post("/api/generate-tailored-prd", headers=owner_headers, json={"projectId": project.id})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert len(body["results"]) == 3
        ok = [r for r in body["results"] if r["success"]]
        failed = [r for r in body["results"] if not r["success"]]
        assert len(ok) == 2 and all("error" not in r for r in ok)
        assert len(failed) == 1 and failed[0]["error"]

    def test_unknown_project(self, client, owner_headers):
        resp = client.post("/api/generate-tailored-prd", headers=owner_headers, json={"projectId": "missing"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Project not found"}

    def test_not_owner(self, client, project):
        resp = client.post(
            "/api/generate-tailored-prd",
            headers=auth_headers("other", "o@x.io"),
            json={"projectId": project.id},
        )
        assert resp.status_code == 403

    def test_unauthenticated(self, client, project):
        resp = client.post("/api/generate-tailored-prd", json={"projectId": project.id})
        assert resp.status_code == 401


def test_job_of_other_user_is_hidden(client, repo, project):
    job = repo.create_job(project_id=project.id, owner_id=project.owner_id)
    resp = client.get(f"/api/jobs/{job.id}", headers=auth_headers("other", None))
    assert resp.status_code == 403


def test_health_and_roles(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert "QA Engineer" in client.get("/api/roles").json()["roles"]
