from __future__ import annotations

from collections.abc import Callable

import pytest

from staffmatrix.config import get_settings
from staffmatrix.core.session import StaffingSession
from staffmatrix.errors import GatewayError
from staffmatrix.types import (
    Assignment,
    AssignmentDraft,
    Candidate,
    CandidateExtraction,
    Position,
    PositionExtraction,
    Proposal,
    ProposalExtraction,
)


@pytest.fixture(autouse=True)
def test_settings(monkeypatch) -> None:
    monkeypatch.setenv("STAFFMATRIX_APP_ENV", "test")
    monkeypatch.delenv("STAFFMATRIX_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeGateway:
    """Stands in for StaffingGateway; records every call it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.lcats = ["Program Manager", "Systems Engineer", "Cyber Security Specialist"]
        self.failing_sources: set[str] = set()
        self.optimize_error: Exception | None = None
        self.assignment_plan: Callable[[list[Candidate], list[Proposal]], list[AssignmentDraft]] | None = None

    def extract_lcats(self, document) -> list[str]:
        self.calls.append(("lcats", document.filename))
        if document.filename in self.failing_sources:
            raise GatewayError("lcat_extraction", "no titles found")
        return list(self.lcats)

    def extract_candidate(self, document, allowed_lcats=()) -> CandidateExtraction:
        self.calls.append(("candidate", document.filename))
        if document.filename in self.failing_sources:
            raise GatewayError("candidate_extraction", "model returned garbage")
        return CandidateExtraction(
            name=document.filename.rsplit(".", 1)[0].replace("_", " ").title(),
            lcat=allowed_lcats[1] if len(allowed_lcats) > 1 else "Systems Engineer",
            level="III",
            years_experience=12,
            education="BS Computer Science",
            certifications=["CISSP"],
            summary="Systems engineering lead",
        )

    def extract_proposal(self, document) -> ProposalExtraction:
        self.calls.append(("proposal", document.filename))
        if document.filename in self.failing_sources:
            raise GatewayError("proposal_extraction", "timeout")
        name = "Pasted Proposal" if document.text is not None else document.filename.rsplit(".", 1)[0]
        return ProposalExtraction(
            proposal_name=name,
            positions=[
                PositionExtraction(title="Lead Systems Engineer", lcat="Systems Engineer", level="III"),
                PositionExtraction(title="Program Manager", lcat="Program Manager", level="IV", loe=0.5),
            ],
        )

    def optimize_staffing(self, candidates, proposals) -> list[AssignmentDraft]:
        self.calls.append(("optimize", ""))
        if self.optimize_error is not None:
            raise self.optimize_error
        if self.assignment_plan is not None:
            return self.assignment_plan(list(candidates), list(proposals))

        slots = [(p, pos) for p in proposals for pos in p.positions]
        return [
            AssignmentDraft(
                proposal_id=p.id,
                position_id=pos.id,
                candidate_id=c.id,
                score=88,
                reasoning="LCAT and level match",
                assigned_loe=pos.loe,
            )
            for (p, pos), c in zip(slots, candidates)
        ]


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def staffing(fake_gateway: FakeGateway) -> StaffingSession:
    session = StaffingSession(get_settings(), gateway_factory=lambda settings, key: fake_gateway)
    session.set_credential("test-key")
    return session


def make_candidate(candidate_id: str, name: str = "Ada", **overrides) -> Candidate:
    values = {
        "id": candidate_id,
        "name": name,
        "lcat": "Systems Engineer",
        "level": "III",
        "years_experience": 12,
        "education": "BS",
        "certifications": [],
        "clearance": "Secret",
        "location": "Remote",
        "summary": "",
    }
    values.update(overrides)
    return Candidate(**values)


def make_proposal(proposal_id: str, name: str, position_ids: list[str], loe: float = 1.0) -> Proposal:
    return Proposal(
        id=proposal_id,
        name=name,
        positions=[
            Position(id=pid, title=f"Role {pid}", lcat="Systems Engineer", level="III", loe=loe)
            for pid in position_ids
        ],
    )


def make_assignment(
    assignment_id: str,
    *,
    proposal_id: str,
    position_id: str,
    candidate_id: str,
    assigned_loe: float = 1.0,
    score: float = 80,
) -> Assignment:
    return Assignment(
        id=assignment_id,
        proposal_id=proposal_id,
        position_id=position_id,
        candidate_id=candidate_id,
        score=score,
        reasoning="fit",
        assigned_loe=assigned_loe,
    )


@pytest.fixture
def builders():
    class Builders:
        candidate = staticmethod(make_candidate)
        proposal = staticmethod(make_proposal)
        assignment = staticmethod(make_assignment)

    return Builders
