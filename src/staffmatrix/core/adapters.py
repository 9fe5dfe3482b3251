from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from staffmatrix.core.documents import DocumentSource
from staffmatrix.types import (
    Assignment,
    AssignmentDraft,
    Candidate,
    CandidateExtraction,
    Position,
    Proposal,
    ProposalExtraction,
    new_id,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ItemFailure:
    source: str
    operation: str
    message: str


@dataclass(slots=True)
class BatchResult(Generic[T]):
    added: list[T] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def build_candidate(extraction: CandidateExtraction) -> Candidate:
    return Candidate(id=new_id(), **extraction.model_dump())


def build_proposal(extraction: ProposalExtraction) -> Proposal:
    return Proposal(
        id=new_id(),
        name=extraction.proposal_name,
        positions=[Position(id=new_id(), **pos.model_dump()) for pos in extraction.positions],
    )


def build_assignments(drafts: Iterable[AssignmentDraft]) -> list[Assignment]:
    return [Assignment(id=new_id(), **draft.model_dump()) for draft in drafts]


def run_batch(
    documents: Sequence[DocumentSource],
    handler: Callable[[DocumentSource], T],
    *,
    operation: str,
    on_success: Callable[[T], None] | None = None,
) -> BatchResult[T]:
    """Process documents one at a time, in order.

    A failing document is recorded and skipped; it never aborts the rest of the
    batch and never leaves a partial entity behind. Pending documents are read
    inside the handler, so read errors land in the same ordered failure list.
    ``on_success`` runs right after each item so earlier successes are kept
    even if a later one fails.
    """
    result: BatchResult[T] = BatchResult()
    for index, document in enumerate(documents, start=1):
        logger.info("%s %s/%s source=%s", operation, index, len(documents), document.filename)
        try:
            item = handler(document)
        except Exception as exc:
            logger.warning("%s failed source=%s error=%s", operation, document.filename, exc)
            result.failures.append(
                ItemFailure(source=document.filename, operation=operation, message=str(exc))
            )
            continue

        result.added.append(item)
        if on_success is not None:
            on_success(item)
    return result
