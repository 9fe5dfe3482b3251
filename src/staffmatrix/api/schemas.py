from __future__ import annotations

from pydantic import Field

from staffmatrix.core.adapters import ItemFailure
from staffmatrix.core.reconciler import DataQualityIssue
from staffmatrix.types import Assignment, Candidate, Proposal, StaffingModel


class CredentialRequest(StaffingModel):
    api_key: str = Field(min_length=1)


class SessionStatusResponse(StaffingModel):
    has_credential: bool
    lcat_count: int
    candidate_count: int
    proposal_count: int
    assignment_count: int


class LCATListResponse(StaffingModel):
    lcats: list[str] = Field(default_factory=list)


class ItemFailureResponse(StaffingModel):
    source: str
    operation: str
    message: str

    @classmethod
    def from_failure(cls, failure: ItemFailure) -> ItemFailureResponse:
        return cls(source=failure.source, operation=failure.operation, message=failure.message)


class CandidateBatchResponse(StaffingModel):
    added: list[Candidate] = Field(default_factory=list)
    failures: list[ItemFailureResponse] = Field(default_factory=list)


class ProposalBatchResponse(StaffingModel):
    added: list[Proposal] = Field(default_factory=list)
    failures: list[ItemFailureResponse] = Field(default_factory=list)


class ProposalTextRequest(StaffingModel):
    text: str = Field(min_length=1)


class OptimizationResponse(StaffingModel):
    assignments: list[Assignment] = Field(default_factory=list)
    coverage: int
    issues: list[DataQualityIssue] = Field(default_factory=list)
