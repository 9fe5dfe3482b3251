from __future__ import annotations

from fastapi.testclient import TestClient

from staffmatrix.api.app import create_app
from staffmatrix.errors import GatewayError

PDF = b"%PDF-1.4 test"


def _client(fake_gateway) -> TestClient:
    return TestClient(create_app(gateway_factory=lambda settings, key: fake_gateway))


def _pdf(name: str) -> tuple[str, tuple[str, bytes, str]]:
    return ("files", (name, PDF, "application/pdf"))


def _authorized(fake_gateway) -> TestClient:
    client = _client(fake_gateway)
    response = client.post("/api/session/credential", json={"apiKey": "secret"})
    assert response.status_code == 200
    return client


def _seeded(fake_gateway) -> TestClient:
    client = _authorized(fake_gateway)
    client.post("/api/lcats", files={"file": ("j5.pdf", PDF, "application/pdf")})
    client.post("/api/candidates", files=[_pdf("resume_1.pdf"), _pdf("resume_2.pdf")])
    client.post("/api/proposals", files=[_pdf("alpha.pdf")])
    return client


def test_health_and_empty_session(fake_gateway) -> None:
    client = _client(fake_gateway)

    assert client.get("/health").json() == {"status": "ok"}
    status = client.get("/api/session").json()
    assert status == {
        "hasCredential": False,
        "lcatCount": 0,
        "candidateCount": 0,
        "proposalCount": 0,
        "assignmentCount": 0,
    }


def test_analysis_without_credential_is_rejected(fake_gateway) -> None:
    client = _client(fake_gateway)

    response = client.post("/api/lcats", files={"file": ("j5.pdf", PDF, "application/pdf")})

    assert response.status_code == 401
    assert fake_gateway.calls == []


def test_credential_can_be_cleared(fake_gateway) -> None:
    client = _authorized(fake_gateway)
    assert client.get("/api/session").json()["hasCredential"] is True

    assert client.delete("/api/session/credential").json()["hasCredential"] is False


def test_resumes_without_lcats_return_400(fake_gateway) -> None:
    client = _authorized(fake_gateway)

    response = client.post("/api/candidates", files=[_pdf("resume_1.pdf")])

    assert response.status_code == 400
    assert "J-5" in response.json()["detail"]


def test_resume_batch_reports_per_file_failures(fake_gateway) -> None:
    client = _authorized(fake_gateway)
    client.post("/api/lcats", files={"file": ("j5.pdf", PDF, "application/pdf")})
    fake_gateway.failing_sources.add("resume_2.pdf")

    response = client.post(
        "/api/candidates",
        files=[
            _pdf("resume_1.pdf"),
            _pdf("resume_2.pdf"),
            ("files", ("resume_3.docx", b"PK", "application/msword")),
            _pdf("resume_4.pdf"),
        ],
    )

    assert response.status_code == 200
    body = response.json()
    assert [c["name"] for c in body["added"]] == ["Resume 1", "Resume 4"]
    assert [f["source"] for f in body["failures"]] == ["resume_2.pdf", "resume_3.docx"]
    assert len(client.get("/api/candidates").json()) == 2


def test_lcat_gateway_failure_maps_to_502(fake_gateway) -> None:
    client = _authorized(fake_gateway)
    fake_gateway.failing_sources.add("j5.pdf")

    response = client.post("/api/lcats", files={"file": ("j5.pdf", PDF, "application/pdf")})

    assert response.status_code == 502
    assert response.json()["operation"] == "lcat_extraction"
    assert client.get("/api/lcats").json() == {"lcats": []}


def test_unsupported_lcat_document_maps_to_415(fake_gateway) -> None:
    client = _authorized(fake_gateway)

    response = client.post("/api/lcats", files={"file": ("j5.xlsx", b"data", "application/vnd.ms-excel")})

    assert response.status_code == 415


def test_pasted_proposal_and_delete(fake_gateway) -> None:
    client = _authorized(fake_gateway)

    created = client.post("/api/proposals/text", json={"text": "Need a PM at 0.5 FTE"})
    assert created.status_code == 200
    proposal = created.json()
    assert proposal["name"] == "Pasted Proposal"
    assert proposal["positions"][1]["loe"] == 0.5

    assert client.delete(f"/api/proposals/{proposal['id']}").status_code == 204
    assert client.delete(f"/api/proposals/{proposal['id']}").status_code == 404
    assert client.get("/api/proposals").json() == []


def test_blank_pasted_text_is_rejected_locally(fake_gateway) -> None:
    client = _authorized(fake_gateway)

    response = client.post("/api/proposals/text", json={"text": "   "})

    assert response.status_code == 400
    assert fake_gateway.calls == []


def test_optimize_builds_matrix_and_exports(fake_gateway) -> None:
    client = _seeded(fake_gateway)

    response = client.post("/api/matrix/optimize")
    assert response.status_code == 200
    body = response.json()
    assert len(body["assignments"]) == 2
    assert body["coverage"] == 100
    assert body["issues"] == []

    matrix = client.get("/api/matrix").json()
    assert matrix["filledPositions"] == 2
    assert [row["candidate"]["name"] for row in matrix["proposals"][0]["rows"]] == ["Resume 1", "Resume 2"]

    export = client.get("/api/exports/staffing")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert 'filename="Staffing_Matrix_' in export.headers["content-disposition"]
    assert export.text.splitlines()[0].startswith('"Proposal Name","Position Title"')


def test_optimize_failure_keeps_previous_assignments(fake_gateway) -> None:
    client = _seeded(fake_gateway)
    first = client.post("/api/matrix/optimize").json()["assignments"]

    fake_gateway.optimize_error = GatewayError("staffing_optimization", "malformed output")
    response = client.post("/api/matrix/optimize")

    assert response.status_code == 502
    assert response.json()["error"] == "malformed output"
    assert client.get("/api/session").json()["assignmentCount"] == len(first)


def test_deleting_assigned_candidate_leaves_unresolved_issue(fake_gateway) -> None:
    client = _seeded(fake_gateway)
    client.post("/api/matrix/optimize")
    candidate_id = client.get("/api/candidates").json()[0]["id"]

    assert client.delete(f"/api/candidates/{candidate_id}").status_code == 204
    assert client.delete(f"/api/candidates/{candidate_id}").status_code == 404

    issues = client.get("/api/matrix/issues").json()
    assert [issue["kind"] for issue in issues] == ["unresolved_candidate"]
    assert issues[0]["candidateId"] == candidate_id


def test_unknown_export_variant_is_rejected(fake_gateway) -> None:
    client = _client(fake_gateway)
    assert client.get("/api/exports/everything").status_code == 422
