"""Derived views over the in-memory staffing collections.

Everything here is a pure function of ``(candidates, proposals, assignments)``:
nothing is mutated, nothing is cached, and broken references resolve to
``None`` instead of raising. Assignments are weak references by id, so a
removed candidate or proposal simply leaves unresolved rows behind.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from collections.abc import Sequence
from typing import Literal

from pydantic import Field

from staffmatrix.types import (
    Assignment,
    Candidate,
    Position,
    Proposal,
    StaffingModel,
    UtilizationBand,
)

FTE_EPSILON = 1e-9

IssueKind = Literal[
    "over_position_loe",
    "over_allocated_candidate",
    "unresolved_candidate",
    "unresolved_position",
    "duplicate_position_assignment",
    "lcat_not_allowed",
]


class FillStatus(StaffingModel):
    filled: int
    total: int

    @property
    def complete(self) -> bool:
        return self.filled >= self.total


class CandidateUtilization(StaffingModel):
    candidate_id: str
    name: str
    percent: int
    band: UtilizationBand


class MatrixRow(StaffingModel):
    position: Position
    assignment: Assignment | None = None
    candidate: Candidate | None = None

    @property
    def vacant(self) -> bool:
        return self.candidate is None

    @property
    def unresolved(self) -> bool:
        return self.assignment is not None and self.candidate is None


class ProposalMatrix(StaffingModel):
    proposal_id: str
    name: str
    fill: FillStatus
    coverage: int
    rows: list[MatrixRow] = Field(default_factory=list)


class StaffingMatrix(StaffingModel):
    coverage: int
    total_positions: int
    filled_positions: int
    proposals: list[ProposalMatrix] = Field(default_factory=list)
    utilization: list[CandidateUtilization] = Field(default_factory=list)


class DataQualityIssue(StaffingModel):
    kind: IssueKind
    message: str
    assignment_id: str | None = None
    candidate_id: str | None = None
    position_id: str | None = None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(numerator: float, denominator: float) -> int:
    if denominator <= 0:
        return 0
    return max(0, min(100, round_half_up(numerator / denominator * 100)))


def total_positions(proposals: Sequence[Proposal]) -> int:
    return sum(len(p.positions) for p in proposals)


def filled_position_ids(assignments: Sequence[Assignment]) -> set[str]:
    return {a.position_id for a in assignments}


def filled_live_positions(proposals: Sequence[Proposal], assignments: Sequence[Assignment]) -> set[str]:
    # assignments to positions that no longer exist count as vacant
    live = {pos.id for p in proposals for pos in p.positions}
    return live & filled_position_ids(assignments)


def coverage(proposals: Sequence[Proposal], assignments: Sequence[Assignment]) -> int:
    """Distinct live positions with an assignment over all positions, as a 0-100 integer."""
    return percent(len(filled_live_positions(proposals, assignments)), total_positions(proposals))


def proposal_coverage(proposal: Proposal, assignments: Sequence[Assignment]) -> int:
    own = {pos.id for pos in proposal.positions}
    filled = own & filled_position_ids(assignments)
    return percent(len(filled), len(own))


def candidate_fte(candidate_id: str, assignments: Sequence[Assignment]) -> float:
    return sum(a.assigned_loe for a in assignments if a.candidate_id == candidate_id)


def utilization(candidate_id: str, assignments: Sequence[Assignment]) -> int:
    return round_half_up(100 * candidate_fte(candidate_id, assignments))


def utilization_band(value: int) -> UtilizationBand:
    if value > 120:
        return "over"
    if value == 0:
        return "idle"
    if value < 50:
        return "under"
    if 90 <= value <= 110:
        return "optimal"
    return "nominal"


def proposal_fill(proposal: Proposal, assignments: Sequence[Assignment]) -> FillStatus:
    filled = sum(1 for a in assignments if a.proposal_id == proposal.id)
    return FillStatus(filled=filled, total=len(proposal.positions))


def assignment_for_position(position_id: str, assignments: Sequence[Assignment]) -> Assignment | None:
    # first match wins; duplicates are reported by data_quality_issues
    for assignment in assignments:
        if assignment.position_id == position_id:
            return assignment
    return None


def resolve_candidate(candidate_id: str, candidates: Sequence[Candidate]) -> Candidate | None:
    for candidate in candidates:
        if candidate.id == candidate_id:
            return candidate
    return None


def resolve_position(position_id: str, proposals: Sequence[Proposal]) -> Position | None:
    for proposal in proposals:
        for position in proposal.positions:
            if position.id == position_id:
                return position
    return None


def sorted_proposals(proposals: Sequence[Proposal]) -> list[Proposal]:
    return sorted(proposals, key=lambda p: p.name.casefold())


def utilization_report(
    candidates: Sequence[Candidate],
    assignments: Sequence[Assignment],
) -> list[CandidateUtilization]:
    report = []
    for candidate in candidates:
        value = utilization(candidate.id, assignments)
        report.append(
            CandidateUtilization(
                candidate_id=candidate.id,
                name=candidate.name,
                percent=value,
                band=utilization_band(value),
            )
        )
    return report


def build_matrix(
    candidates: Sequence[Candidate],
    proposals: Sequence[Proposal],
    assignments: Sequence[Assignment],
) -> StaffingMatrix:
    proposal_views = []
    for proposal in sorted_proposals(proposals):
        rows = []
        for position in proposal.positions:
            match = assignment_for_position(position.id, assignments)
            candidate = resolve_candidate(match.candidate_id, candidates) if match else None
            rows.append(MatrixRow(position=position, assignment=match, candidate=candidate))
        proposal_views.append(
            ProposalMatrix(
                proposal_id=proposal.id,
                name=proposal.name,
                fill=proposal_fill(proposal, assignments),
                coverage=proposal_coverage(proposal, assignments),
                rows=rows,
            )
        )

    return StaffingMatrix(
        coverage=coverage(proposals, assignments),
        total_positions=total_positions(proposals),
        filled_positions=len(filled_live_positions(proposals, assignments)),
        proposals=proposal_views,
        utilization=utilization_report(candidates, assignments),
    )


def data_quality_issues(
    candidates: Sequence[Candidate],
    proposals: Sequence[Proposal],
    assignments: Sequence[Assignment],
    allowed_lcats: Sequence[str] = (),
) -> list[DataQualityIssue]:
    """Report invariant violations the completion service was asked to respect.

    Nothing is corrected; callers decide whether to show, export or re-run.
    """
    issues: list[DataQualityIssue] = []
    fte_by_candidate: dict[str, float] = defaultdict(float)
    per_position = Counter(a.position_id for a in assignments)

    for assignment in assignments:
        fte_by_candidate[assignment.candidate_id] += assignment.assigned_loe

        position = resolve_position(assignment.position_id, proposals)
        if position is None:
            issues.append(
                DataQualityIssue(
                    kind="unresolved_position",
                    message=f"assignment references unknown position {assignment.position_id}",
                    assignment_id=assignment.id,
                    position_id=assignment.position_id,
                )
            )
        elif assignment.assigned_loe > position.loe + FTE_EPSILON:
            issues.append(
                DataQualityIssue(
                    kind="over_position_loe",
                    message=(
                        f"assigned {assignment.assigned_loe:g} FTE to '{position.title}' "
                        f"which only needs {position.loe:g}"
                    ),
                    assignment_id=assignment.id,
                    position_id=position.id,
                    candidate_id=assignment.candidate_id,
                )
            )

        if resolve_candidate(assignment.candidate_id, candidates) is None:
            issues.append(
                DataQualityIssue(
                    kind="unresolved_candidate",
                    message=f"assignment references unknown candidate {assignment.candidate_id}",
                    assignment_id=assignment.id,
                    candidate_id=assignment.candidate_id,
                )
            )

    for position_id, count in per_position.items():
        if count > 1:
            issues.append(
                DataQualityIssue(
                    kind="duplicate_position_assignment",
                    message=f"{count} assignments share position {position_id}; only the first is used",
                    position_id=position_id,
                )
            )

    for candidate_id, fte in fte_by_candidate.items():
        if fte > 1.0 + FTE_EPSILON:
            candidate = resolve_candidate(candidate_id, candidates)
            label = candidate.name if candidate else candidate_id
            issues.append(
                DataQualityIssue(
                    kind="over_allocated_candidate",
                    message=f"{label} is allocated {fte:g} FTE in total",
                    candidate_id=candidate_id,
                )
            )

    if allowed_lcats:
        allowed = set(allowed_lcats)
        for candidate in candidates:
            if candidate.lcat not in allowed:
                issues.append(
                    DataQualityIssue(
                        kind="lcat_not_allowed",
                        message=f"{candidate.name} mapped to '{candidate.lcat}', which is not in the J-5 list",
                        candidate_id=candidate.id,
                    )
                )
    return issues
