from __future__ import annotations

import json
from pathlib import Path

import typer
import uvicorn

from staffmatrix.api.app import create_app
from staffmatrix.config import get_settings
from staffmatrix.core.adapters import ItemFailure
from staffmatrix.core.documents import document_from_path, pending_document_from_path
from staffmatrix.core.session import StaffingSession
from staffmatrix.errors import GatewayError, MissingPrerequisiteError, UnsupportedDocumentError
from staffmatrix.logging_config import configure_logging

app = typer.Typer(help="StaffMatrix CLI")

API_KEY_OPTION = typer.Option(
    None,
    "--api-key",
    envvar="STAFFMATRIX_API_KEY",
    help="Completion API key; prompted for when omitted. Never stored.",
    show_default=False,
)


def _session(api_key: str | None) -> StaffingSession:
    staffing = StaffingSession(get_settings())
    key = api_key or typer.prompt("API key", hide_input=True)
    try:
        staffing.set_credential(key)
    except MissingPrerequisiteError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return staffing


def _failure_dicts(failures: list[ItemFailure]) -> list[dict[str, str]]:
    return [{"source": f.source, "operation": f.operation, "message": f.message} for f in failures]


@app.command("lcats")
def lcats_cmd(
    file: Path = typer.Option(..., "--file", exists=True, readable=True, dir_okay=False),
    api_key: str | None = API_KEY_OPTION,
) -> None:
    """Extract the LCAT titles from a J-5 document."""
    configure_logging()
    staffing = _session(api_key)
    try:
        titles = staffing.load_lcats(document_from_path(file))
    except (GatewayError, UnsupportedDocumentError) as exc:
        typer.echo(f"Failed to extract LCATs from {file.name}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps({"lcats": titles}, indent=2))


@app.command("run")
def run_cmd(
    j5: Path = typer.Option(..., "--j5", exists=True, readable=True, dir_okay=False),
    resumes: list[Path] = typer.Option(..., "--resume", exists=True, readable=True, dir_okay=False),
    proposals: list[Path] | None = typer.Option(
        None, "--proposal", exists=True, readable=True, dir_okay=False
    ),
    proposal_text: Path | None = typer.Option(
        None, "--proposal-text", exists=True, readable=True, dir_okay=False
    ),
    out: Path = typer.Option(Path("."), "--out", file_okay=False),
    api_key: str | None = API_KEY_OPTION,
) -> None:
    """Load a J-5, ingest resumes and proposals, optimize, and write the three CSV exports."""
    configure_logging()
    staffing = _session(api_key)
    failures: list[ItemFailure] = []

    try:
        staffing.load_lcats(document_from_path(j5))
    except (GatewayError, UnsupportedDocumentError) as exc:
        typer.echo(f"Failed to parse J-5 document {j5.name}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not staffing.allowed_lcats:
        typer.echo(f"No LCAT titles found in {j5.name}", err=True)
        raise typer.Exit(code=1)

    failures.extend(staffing.ingest_resumes([pending_document_from_path(p) for p in resumes]).failures)
    failures.extend(
        staffing.ingest_proposals([pending_document_from_path(p) for p in proposals or []]).failures
    )

    if proposal_text is not None:
        try:
            staffing.ingest_proposal_text(proposal_text.read_text(encoding="utf-8"))
        except (GatewayError, MissingPrerequisiteError) as exc:
            failures.append(ItemFailure(source=proposal_text.name, operation="proposal", message=str(exc)))

    try:
        staffing.optimize()
    except (GatewayError, MissingPrerequisiteError) as exc:
        typer.echo(f"Optimization failed: {exc}", err=True)
        typer.echo(json.dumps({"failures": _failure_dicts(failures)}, indent=2))
        raise typer.Exit(code=1) from exc

    out.mkdir(parents=True, exist_ok=True)
    written = []
    for variant in ("candidates", "proposals", "staffing"):
        export = staffing.export(variant)
        target = out / export.filename
        target.write_text(export.content, encoding="utf-8")
        written.append(str(target))

    matrix = staffing.matrix()
    typer.echo(
        json.dumps(
            {
                "candidates": len(staffing.candidates),
                "proposals": len(staffing.proposals),
                "assignments": len(staffing.assignments),
                "coverage": matrix.coverage,
                "utilization": [
                    {"name": u.name, "percent": u.percent, "band": u.band} for u in matrix.utilization
                ],
                "issues": [issue.message for issue in staffing.data_quality()],
                "failures": _failure_dicts(failures),
                "exports": written,
            },
            indent=2,
        )
    )


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    """Serve the browser dashboard and JSON API."""
    configure_logging()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
