from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import date

from staffmatrix.config import Settings, get_settings
from staffmatrix.core.adapters import (
    BatchResult,
    build_assignments,
    build_candidate,
    build_proposal,
    run_batch,
)
from staffmatrix.core.documents import DocumentPayload, DocumentSource, document_from_text
from staffmatrix.core.export import CSVExport, build_export
from staffmatrix.core.reconciler import DataQualityIssue, StaffingMatrix, build_matrix, data_quality_issues
from staffmatrix.errors import CredentialRequiredError, MissingPrerequisiteError
from staffmatrix.llm.gateway import StaffingGateway
from staffmatrix.types import Assignment, Candidate, ExportVariant, Proposal

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[Settings, str], StaffingGateway]


def default_gateway_factory(settings: Settings, api_key: str) -> StaffingGateway:
    return StaffingGateway(settings, api_key=api_key)


class StaffingSession:
    """All mutable state for one user session.

    Holds the candidate, proposal and assignment collections, the allowed J-5
    LCAT titles, and the API credential. The credential lives only on this
    object and is never logged or written anywhere.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        gateway_factory: GatewayFactory | None = None,
    ):
        self.settings = settings or get_settings()
        self._gateway_factory = gateway_factory or default_gateway_factory
        self._gateway: StaffingGateway | None = None
        self._api_key = ""
        self._lock = threading.Lock()

        self.candidates: list[Candidate] = []
        self.proposals: list[Proposal] = []
        self.assignments: list[Assignment] = []
        self.allowed_lcats: list[str] = []

    @property
    def has_credential(self) -> bool:
        return bool(self._api_key)

    def set_credential(self, api_key: str) -> None:
        value = api_key.strip()
        if not value:
            raise MissingPrerequisiteError("API key must not be blank")
        self._api_key = value
        self._gateway = None
        logger.info("Session credential set")

    def clear_credential(self) -> None:
        self._api_key = ""
        self._gateway = None

    def gateway(self) -> StaffingGateway:
        if not self._api_key:
            raise CredentialRequiredError("Enter an API key before running any analysis")
        if self._gateway is None:
            self._gateway = self._gateway_factory(self.settings, self._api_key)
        return self._gateway

    def load_lcats(self, document: DocumentPayload) -> list[str]:
        gateway = self.gateway()
        with self._lock:
            lcats = gateway.extract_lcats(document)
            self.allowed_lcats = lcats
        logger.info("Loaded %s LCAT titles from %s", len(lcats), document.filename)
        return lcats

    def ingest_resumes(self, documents: Sequence[DocumentSource]) -> BatchResult[Candidate]:
        if not self.allowed_lcats:
            raise MissingPrerequisiteError(
                "Upload a J-5 Labor Category Definitions document first; "
                "candidates are mapped strictly to its LCAT titles"
            )
        gateway = self.gateway()
        allowed = list(self.allowed_lcats)

        with self._lock:
            return run_batch(
                documents,
                lambda source: build_candidate(gateway.extract_candidate(source.load(), allowed)),
                operation="resume",
                on_success=self.candidates.append,
            )

    def ingest_proposals(self, documents: Sequence[DocumentSource]) -> BatchResult[Proposal]:
        gateway = self.gateway()
        with self._lock:
            return run_batch(
                documents,
                lambda source: build_proposal(gateway.extract_proposal(source.load())),
                operation="proposal",
                on_success=self.proposals.append,
            )

    def ingest_proposal_text(self, text: str) -> Proposal:
        if not text.strip():
            raise MissingPrerequisiteError("Paste the proposal text before parsing")
        document = document_from_text(text)
        gateway = self.gateway()
        with self._lock:
            proposal = build_proposal(gateway.extract_proposal(document))
            self.proposals.append(proposal)
        return proposal

    def remove_candidate(self, candidate_id: str) -> bool:
        # assignments stay; they resolve as unresolved from now on
        with self._lock:
            before = len(self.candidates)
            self.candidates = [c for c in self.candidates if c.id != candidate_id]
            return len(self.candidates) != before

    def remove_proposal(self, proposal_id: str) -> bool:
        with self._lock:
            before = len(self.proposals)
            self.proposals = [p for p in self.proposals if p.id != proposal_id]
            return len(self.proposals) != before

    def optimize(self) -> list[Assignment]:
        if not self.candidates or not self.proposals:
            raise MissingPrerequisiteError("Add at least one candidate and one proposal before optimizing")
        gateway = self.gateway()

        with self._lock:
            drafts = gateway.optimize_staffing(self.candidates, self.proposals)
            # wholesale replacement; a failed run above leaves the previous set untouched
            self.assignments = build_assignments(drafts)
        logger.info("Optimization produced %s assignments", len(self.assignments))
        return self.assignments

    def matrix(self) -> StaffingMatrix:
        return build_matrix(self.candidates, self.proposals, self.assignments)

    def data_quality(self) -> list[DataQualityIssue]:
        return data_quality_issues(self.candidates, self.proposals, self.assignments, self.allowed_lcats)

    def export(self, variant: ExportVariant, on: date | None = None) -> CSVExport:
        return build_export(
            variant,
            candidates=self.candidates,
            proposals=self.proposals,
            assignments=self.assignments,
            on=on,
        )

    def reset(self) -> None:
        with self._lock:
            self.candidates = []
            self.proposals = []
            self.assignments = []
            self.allowed_lcats = []
