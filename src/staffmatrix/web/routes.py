from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from staffmatrix.api.deps import get_staffing, pending_uploads, read_upload
from staffmatrix.core.adapters import ItemFailure
from staffmatrix.core.session import StaffingSession
from staffmatrix.errors import GatewayError, MissingPrerequisiteError, UnsupportedDocumentError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["web"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
static_dir = Path(__file__).resolve().parent / "static"

_USER_ERRORS = (GatewayError, MissingPrerequisiteError, UnsupportedDocumentError)


def _back(*, notice: str = "", error: str = "", tab: str = "") -> RedirectResponse:
    params = {key: value for key, value in {"notice": notice, "error": error, "tab": tab}.items() if value}
    url = "/" + (f"?{urlencode(params)}" if params else "")
    return RedirectResponse(url=url, status_code=303)


def _failure_text(failures: list[ItemFailure]) -> str:
    return "; ".join(f"Failed to parse {f.source}" for f in failures)


@router.get("/favicon.ico", include_in_schema=False)
def favicon() -> Response:
    icon_path = static_dir / "favicon.ico"
    if icon_path.is_file():
        return FileResponse(icon_path)
    return Response(status_code=204)


@router.get("/", response_class=HTMLResponse)
def dashboard(
    request: Request,
    notice: str = "",
    error: str = "",
    tab: str = "candidates",
    staffing: StaffingSession = Depends(get_staffing),
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "tab": tab,
            "notice": notice,
            "error": error,
            "has_credential": staffing.has_credential,
            "lcats": staffing.allowed_lcats,
            "candidates": sorted(staffing.candidates, key=lambda c: c.name.casefold()),
            "proposals": staffing.proposals,
            "assignments": staffing.assignments,
            "matrix": staffing.matrix(),
            "issues": staffing.data_quality(),
        },
    )


@router.post("/web/credential")
def web_set_credential(
    api_key: str = Form(""),
    staffing: StaffingSession = Depends(get_staffing),
):
    try:
        staffing.set_credential(api_key)
    except MissingPrerequisiteError as exc:
        return _back(error=str(exc))
    return _back(notice="API key accepted for this session")


@router.post("/web/lcats")
def web_upload_lcats(
    file: UploadFile = File(...),
    staffing: StaffingSession = Depends(get_staffing),
):
    try:
        lcats = staffing.load_lcats(read_upload(file))
    except _USER_ERRORS as exc:
        logger.warning("J-5 upload failed: %s", exc)
        return _back(
            error="Failed to parse J-5 document. Make sure it contains a list of Labor Categories.",
            tab="candidates",
        )
    return _back(notice=f"{len(lcats)} LCATs active", tab="candidates")


@router.post("/web/candidates")
def web_upload_resumes(
    files: list[UploadFile] = File(...),
    staffing: StaffingSession = Depends(get_staffing),
):
    try:
        result = staffing.ingest_resumes(pending_uploads(files))
    except MissingPrerequisiteError as exc:
        return _back(error=str(exc), tab="candidates")
    return _back(
        notice=f"Added {len(result.added)} candidate(s)",
        error=_failure_text(result.failures),
        tab="candidates",
    )


@router.post("/web/candidates/{candidate_id}/delete")
def web_remove_candidate(candidate_id: str, staffing: StaffingSession = Depends(get_staffing)):
    staffing.remove_candidate(candidate_id)
    return _back(tab="candidates")


@router.post("/web/proposals")
def web_upload_proposals(
    files: list[UploadFile] = File(...),
    staffing: StaffingSession = Depends(get_staffing),
):
    try:
        result = staffing.ingest_proposals(pending_uploads(files))
    except MissingPrerequisiteError as exc:
        return _back(error=str(exc), tab="proposals")
    return _back(
        notice=f"Added {len(result.added)} proposal(s)",
        error=_failure_text(result.failures),
        tab="proposals",
    )


@router.post("/web/proposals/text")
def web_paste_proposal(
    proposal_text: str = Form(""),
    staffing: StaffingSession = Depends(get_staffing),
):
    try:
        proposal = staffing.ingest_proposal_text(proposal_text)
    except _USER_ERRORS as exc:
        logger.warning("Proposal text parse failed: %s", exc)
        return _back(error="Parsing failed. Check the text and try again.", tab="proposals")
    return _back(notice=f"Added proposal {proposal.name}", tab="proposals")


@router.post("/web/proposals/{proposal_id}/delete")
def web_remove_proposal(proposal_id: str, staffing: StaffingSession = Depends(get_staffing)):
    staffing.remove_proposal(proposal_id)
    return _back(tab="proposals")


@router.post("/web/optimize")
def web_optimize(staffing: StaffingSession = Depends(get_staffing)):
    try:
        assignments = staffing.optimize()
    except _USER_ERRORS as exc:
        logger.warning("Optimization failed: %s", exc)
        return _back(error=f"Optimization failed: {exc}", tab="matrix")
    return _back(notice=f"Generated {len(assignments)} assignment(s)", tab="matrix")
