from __future__ import annotations

import pytest

from staffmatrix.config import Settings, get_settings
from staffmatrix.core.documents import document_from_bytes, document_from_text
from staffmatrix.errors import GatewayError
from staffmatrix.llm.gateway import StaffingGateway, distinct_titles, minimize_proposals
from staffmatrix.types import Position, Proposal


class FakeProvider:
    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload
        self.error = error
        self.calls: list[dict] = []

    def complete_json(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.payload


def _gateway(provider: FakeProvider) -> StaffingGateway:
    return StaffingGateway(get_settings(), provider=provider)


def _pdf(name: str = "doc.pdf"):
    return document_from_bytes(name, b"%PDF-1.4", "application/pdf")


def test_extract_lcats_dedupes_and_keeps_order() -> None:
    provider = FakeProvider({"lcats": ["Program Manager", " Systems  Engineer", "Program Manager", ""]})

    lcats = _gateway(provider).extract_lcats(_pdf("j5.pdf"))

    assert lcats == ["Program Manager", "Systems Engineer"]
    call = provider.calls[0]
    assert call["document"].filename == "j5.pdf"
    assert call["output_schema"].name == "lcat_extraction"
    assert call["model"] == get_settings().llm_model


def test_extract_candidate_embeds_allowed_lcats_in_prompt() -> None:
    provider = FakeProvider(
        {
            "name": "Ada Lovelace",
            "lcat": "Systems Engineer",
            "level": "iii",
            "yearsExperience": 12,
            "summary": "Engineer",
        }
    )

    extraction = _gateway(provider).extract_candidate(_pdf("ada.pdf"), ["Program Manager", "Systems Engineer"])

    assert extraction.level == "III"
    assert extraction.location == "Unknown"
    assert '["Program Manager", "Systems Engineer"]' in provider.calls[0]["prompt"]


def test_extract_candidate_without_lcats_uses_open_instruction() -> None:
    provider = FakeProvider(
        {"name": "Ada", "lcat": "Engineer", "level": "II", "yearsExperience": 3, "summary": ""}
    )

    _gateway(provider).extract_candidate(_pdf())

    assert "Program Manager" not in provider.calls[0]["prompt"]


def test_invalid_level_is_rejected_as_gateway_error() -> None:
    provider = FakeProvider(
        {"name": "Ada", "lcat": "Engineer", "level": "Senior", "yearsExperience": 3, "summary": ""}
    )

    with pytest.raises(GatewayError) as excinfo:
        _gateway(provider).extract_candidate(_pdf())
    assert excinfo.value.operation == "candidate_extraction"


def test_provider_failure_is_wrapped() -> None:
    provider = FakeProvider(error=ValueError("model output is not valid JSON"))

    with pytest.raises(GatewayError, match="not valid JSON"):
        _gateway(provider).extract_proposal(_pdf("rfp.pdf"))


def test_pasted_proposal_text_goes_into_prompt() -> None:
    provider = FakeProvider(
        {"proposalName": "Cloud Migration", "positions": [{"title": "Architect", "lcat": "Cloud Architect"}]}
    )

    extraction = _gateway(provider).extract_proposal(document_from_text("Need one cloud architect, Secret."))

    call = provider.calls[0]
    assert call["document"] is None
    assert "Need one cloud architect, Secret." in call["prompt"]
    assert extraction.positions[0].loe == 1.0
    assert extraction.positions[0].location == "TBD"


def test_optimize_staffing_returns_clamped_drafts(builders) -> None:
    provider = FakeProvider(
        {
            "assignments": [
                {
                    "proposalId": "prop",
                    "positionId": "p1",
                    "candidateId": "c1",
                    "score": 130,
                    "reasoning": "strong match",
                    "assignedLoe": 1.0,
                }
            ]
        }
    )
    candidates = [builders.candidate("c1", "Ada")]
    proposals = [builders.proposal("prop", "Alpha", ["p1"])]

    drafts = _gateway(provider).optimize_staffing(candidates, proposals)

    assert [(d.candidate_id, d.score) for d in drafts] == [("c1", 100)]
    call = provider.calls[0]
    assert call["document"] is None
    assert '"id": "c1"' in call["prompt"]
    assert '"positions"' in call["prompt"]


def test_optimize_staffing_rejects_missing_fields(builders) -> None:
    provider = FakeProvider({"assignments": [{"proposalId": "prop", "score": 50}]})

    with pytest.raises(GatewayError) as excinfo:
        _gateway(provider).optimize_staffing([builders.candidate("c1")], [builders.proposal("prop", "A", ["p1"])])
    assert excinfo.value.operation == "staffing_optimization"


def test_minimize_proposals_folds_education_into_requirements() -> None:
    proposal = Proposal(
        id="prop",
        name="Alpha",
        positions=[
            Position(
                id="p1",
                title="Analyst",
                lcat="Data Analyst",
                education_req="MS",
                certifications_req=["PMP"],
                skills_req=["SQL"],
            )
        ],
    )

    minimized = minimize_proposals([proposal])

    position = minimized[0]["positions"][0]
    assert position["reqs"] == ["MS", "PMP"]
    assert position["skills"] == ["SQL"]
    assert "location" not in position


def test_distinct_titles_collapses_whitespace() -> None:
    assert distinct_titles(["A  B", "A B", " C "]) == ["A B", "C"]


def test_pasted_proposal_text_is_truncated_to_document_limit() -> None:
    provider = FakeProvider({"proposalName": "Big RFP", "positions": []})
    gateway = StaffingGateway(Settings(llm_document_char_limit=10), provider=provider)

    gateway.extract_proposal(document_from_text("0123456789" + "overflow" * 50))

    prompt = provider.calls[0]["prompt"]
    assert "0123456789" in prompt
    assert "overflow" not in prompt
