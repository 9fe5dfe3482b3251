from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from staffmatrix.api.deps import get_staffing, pending_uploads, read_upload
from staffmatrix.api.schemas import (
    CandidateBatchResponse,
    CredentialRequest,
    ItemFailureResponse,
    LCATListResponse,
    OptimizationResponse,
    ProposalBatchResponse,
    ProposalTextRequest,
    SessionStatusResponse,
)
from staffmatrix.core.reconciler import DataQualityIssue, StaffingMatrix
from staffmatrix.core.session import StaffingSession
from staffmatrix.types import Candidate, ExportVariant, Proposal

router = APIRouter(prefix="/api", tags=["api"])


def _status(staffing: StaffingSession) -> SessionStatusResponse:
    return SessionStatusResponse(
        has_credential=staffing.has_credential,
        lcat_count=len(staffing.allowed_lcats),
        candidate_count=len(staffing.candidates),
        proposal_count=len(staffing.proposals),
        assignment_count=len(staffing.assignments),
    )


@router.get("/session", response_model=SessionStatusResponse)
def get_session(staffing: StaffingSession = Depends(get_staffing)) -> SessionStatusResponse:
    return _status(staffing)


@router.post("/session/credential", response_model=SessionStatusResponse)
def set_credential(
    payload: CredentialRequest,
    staffing: StaffingSession = Depends(get_staffing),
) -> SessionStatusResponse:
    staffing.set_credential(payload.api_key)
    return _status(staffing)


@router.delete("/session/credential", response_model=SessionStatusResponse)
def clear_credential(staffing: StaffingSession = Depends(get_staffing)) -> SessionStatusResponse:
    staffing.clear_credential()
    return _status(staffing)


@router.post("/lcats", response_model=LCATListResponse)
def upload_lcats(
    file: UploadFile = File(...),
    staffing: StaffingSession = Depends(get_staffing),
) -> LCATListResponse:
    document = read_upload(file)
    return LCATListResponse(lcats=staffing.load_lcats(document))


@router.get("/lcats", response_model=LCATListResponse)
def list_lcats(staffing: StaffingSession = Depends(get_staffing)) -> LCATListResponse:
    return LCATListResponse(lcats=staffing.allowed_lcats)


@router.post("/candidates", response_model=CandidateBatchResponse)
def upload_resumes(
    files: list[UploadFile] = File(...),
    staffing: StaffingSession = Depends(get_staffing),
) -> CandidateBatchResponse:
    result = staffing.ingest_resumes(pending_uploads(files))
    return CandidateBatchResponse(
        added=result.added,
        failures=[ItemFailureResponse.from_failure(f) for f in result.failures],
    )


@router.get("/candidates", response_model=list[Candidate])
def list_candidates(staffing: StaffingSession = Depends(get_staffing)) -> list[Candidate]:
    return staffing.candidates


@router.delete("/candidates/{candidate_id}", status_code=204)
def delete_candidate(candidate_id: str, staffing: StaffingSession = Depends(get_staffing)) -> Response:
    if not staffing.remove_candidate(candidate_id):
        raise HTTPException(status_code=404, detail="Candidate not found")
    return Response(status_code=204)


@router.post("/proposals", response_model=ProposalBatchResponse)
def upload_proposals(
    files: list[UploadFile] = File(...),
    staffing: StaffingSession = Depends(get_staffing),
) -> ProposalBatchResponse:
    result = staffing.ingest_proposals(pending_uploads(files))
    return ProposalBatchResponse(
        added=result.added,
        failures=[ItemFailureResponse.from_failure(f) for f in result.failures],
    )


@router.post("/proposals/text", response_model=Proposal)
def paste_proposal(
    payload: ProposalTextRequest,
    staffing: StaffingSession = Depends(get_staffing),
) -> Proposal:
    return staffing.ingest_proposal_text(payload.text)


@router.get("/proposals", response_model=list[Proposal])
def list_proposals(staffing: StaffingSession = Depends(get_staffing)) -> list[Proposal]:
    return staffing.proposals


@router.delete("/proposals/{proposal_id}", status_code=204)
def delete_proposal(proposal_id: str, staffing: StaffingSession = Depends(get_staffing)) -> Response:
    if not staffing.remove_proposal(proposal_id):
        raise HTTPException(status_code=404, detail="Proposal not found")
    return Response(status_code=204)


@router.post("/matrix/optimize", response_model=OptimizationResponse)
def optimize(staffing: StaffingSession = Depends(get_staffing)) -> OptimizationResponse:
    assignments = staffing.optimize()
    return OptimizationResponse(
        assignments=assignments,
        coverage=staffing.matrix().coverage,
        issues=staffing.data_quality(),
    )


@router.get("/matrix", response_model=StaffingMatrix)
def get_matrix(staffing: StaffingSession = Depends(get_staffing)) -> StaffingMatrix:
    return staffing.matrix()


@router.get("/matrix/issues", response_model=list[DataQualityIssue])
def get_issues(staffing: StaffingSession = Depends(get_staffing)) -> list[DataQualityIssue]:
    return staffing.data_quality()


@router.get("/exports/{variant}")
def export_csv(variant: ExportVariant, staffing: StaffingSession = Depends(get_staffing)) -> Response:
    export = staffing.export(variant)
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )
