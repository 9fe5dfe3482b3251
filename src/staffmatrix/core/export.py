from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from staffmatrix.core.reconciler import assignment_for_position, resolve_candidate, sorted_proposals
from staffmatrix.types import Assignment, Candidate, ExportVariant, Proposal

Cell = str | int | float | None

CANDIDATE_HEADERS = [
    "Name",
    "LCAT",
    "Level",
    "Years Experience",
    "Education",
    "Clearance",
    "Location",
    "Summary",
    "Certifications",
]

PROPOSAL_HEADERS = [
    "Proposal Name",
    "Position Title",
    "Required LCAT",
    "Required Level",
    "LOE (FTE)",
    "Location",
    "Education",
    "Certifications",
    "Clearance Required",
    "Skills",
]

STAFFING_HEADERS = [
    "Proposal Name",
    "Position Title",
    "Required LCAT",
    "Required Level",
    "Location",
    "Assigned Candidate Name",
    "Candidate LCAT",
    "Candidate Level",
    "Fit Score",
    "Assigned FTE",
    "Fit Reason",
]

FILE_PREFIXES: dict[str, str] = {
    "candidates": "Candidate_Matrix",
    "proposals": "Proposal_Matrix",
    "staffing": "Staffing_Matrix",
}

VACANT = "VACANT"
LIST_SEPARATOR = "; "


@dataclass(frozen=True, slots=True)
class CSVExport:
    filename: str
    content: str
    media_type: str = "text/csv; charset=utf-8"


def format_cell(cell: Cell) -> str | None:
    if cell is None:
        return None
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(cell)


def render_csv(headers: Sequence[str], rows: Sequence[Sequence[Cell]]) -> str:
    """Quote every cell, double internal quotes, render ``None`` as an empty field."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if value is None else value for value in map(format_cell, row)])
    return buffer.getvalue().rstrip("\n")


def export_filename(variant: ExportVariant, on: date | None = None) -> str:
    stamp = (on or date.today()).isoformat()
    return f"{FILE_PREFIXES[variant]}_{stamp}.csv"


def candidate_rows(candidates: Sequence[Candidate]) -> list[list[Cell]]:
    return [
        [
            c.name,
            c.lcat,
            c.level,
            c.years_experience,
            c.education,
            c.clearance,
            c.location,
            c.summary,
            LIST_SEPARATOR.join(c.certifications),
        ]
        for c in candidates
    ]


def proposal_rows(proposals: Sequence[Proposal]) -> list[list[Cell]]:
    rows: list[list[Cell]] = []
    for proposal in proposals:
        for pos in proposal.positions:
            rows.append(
                [
                    proposal.name,
                    pos.title,
                    pos.lcat,
                    pos.level,
                    pos.loe,
                    pos.location,
                    pos.education_req,
                    LIST_SEPARATOR.join(pos.certifications_req),
                    pos.clearance,
                    LIST_SEPARATOR.join(pos.skills_req),
                ]
            )
    return rows


def staffing_rows(
    candidates: Sequence[Candidate],
    proposals: Sequence[Proposal],
    assignments: Sequence[Assignment],
) -> list[list[Cell]]:
    rows: list[list[Cell]] = []
    for proposal in sorted_proposals(proposals):
        for pos in proposal.positions:
            match = assignment_for_position(pos.id, assignments)
            candidate = resolve_candidate(match.candidate_id, candidates) if match else None
            rows.append(
                [
                    proposal.name,
                    pos.title,
                    pos.lcat,
                    pos.level,
                    pos.location,
                    candidate.name if candidate else VACANT,
                    candidate.lcat if candidate else "",
                    candidate.level if candidate else "",
                    match.score if match else "",
                    match.assigned_loe if match else "",
                    match.reasoning if match else "",
                ]
            )
    return rows


def build_export(
    variant: ExportVariant,
    *,
    candidates: Sequence[Candidate],
    proposals: Sequence[Proposal],
    assignments: Sequence[Assignment],
    on: date | None = None,
) -> CSVExport:
    if variant == "candidates":
        content = render_csv(CANDIDATE_HEADERS, candidate_rows(candidates))
    elif variant == "proposals":
        content = render_csv(PROPOSAL_HEADERS, proposal_rows(proposals))
    elif variant == "staffing":
        content = render_csv(STAFFING_HEADERS, staffing_rows(candidates, proposals, assignments))
    else:
        raise ValueError(f"unsupported export variant '{variant}'")
    return CSVExport(filename=export_filename(variant, on), content=content)
