from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from staffmatrix.config import Settings, get_settings
from staffmatrix.core.documents import DocumentPayload
from staffmatrix.errors import GatewayError
from staffmatrix.llm.prompts import (
    ALLOWED_LCAT_INSTRUCTION,
    CANDIDATE_PROMPT,
    LCAT_LIST_PROMPT,
    OPEN_LCAT_INSTRUCTION,
    OPTIMIZATION_PROMPT,
    PROPOSAL_PROMPT,
    PROPOSAL_TEXT_PREFIX,
)
from staffmatrix.llm.providers import LLMProvider, OutputSchema, build_provider, truncate_text
from staffmatrix.types import (
    AssignmentDraft,
    Candidate,
    CandidateExtraction,
    LCATExtraction,
    OptimizationResult,
    Proposal,
    ProposalExtraction,
)

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class StaffingGateway:
    """Calls the completion service for the four extraction/optimization contracts.

    Every method either returns a validated response shape or raises
    :class:`GatewayError`; nothing is partially accepted.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        api_key: str = "",
        provider: LLMProvider | None = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider or build_provider(self.settings, api_key)

    def extract_lcats(self, document: DocumentPayload) -> list[str]:
        result = self._call_json(
            operation="lcat_extraction",
            prompt=LCAT_LIST_PROMPT,
            document=document,
            response_model=LCATExtraction,
        )
        return distinct_titles(result.lcats)

    def extract_candidate(
        self,
        document: DocumentPayload,
        allowed_lcats: Sequence[str] = (),
    ) -> CandidateExtraction:
        if allowed_lcats:
            lcat_instruction = ALLOWED_LCAT_INSTRUCTION.format(
                allowed_lcats_json=json.dumps(list(allowed_lcats), ensure_ascii=True)
            )
        else:
            lcat_instruction = OPEN_LCAT_INSTRUCTION

        return self._call_json(
            operation="candidate_extraction",
            prompt=CANDIDATE_PROMPT.format(lcat_instruction=lcat_instruction),
            document=document,
            response_model=CandidateExtraction,
        )

    def extract_proposal(self, document: DocumentPayload) -> ProposalExtraction:
        if document.text is not None:
            # pasted text goes in the prompt itself rather than as a document part
            text = truncate_text(document.text, self.settings.llm_document_char_limit, document.filename)
            prompt = PROPOSAL_TEXT_PREFIX.format(proposal_text=text) + PROPOSAL_PROMPT
            return self._call_json(
                operation="proposal_extraction",
                prompt=prompt,
                response_model=ProposalExtraction,
            )

        return self._call_json(
            operation="proposal_extraction",
            prompt=PROPOSAL_PROMPT,
            document=document,
            response_model=ProposalExtraction,
        )

    def optimize_staffing(
        self,
        candidates: Sequence[Candidate],
        proposals: Sequence[Proposal],
    ) -> list[AssignmentDraft]:
        prompt = OPTIMIZATION_PROMPT.format(
            candidates_json=json.dumps(minimize_candidates(candidates), ensure_ascii=True),
            proposals_json=json.dumps(minimize_proposals(proposals), ensure_ascii=True),
        )
        result = self._call_json(
            operation="staffing_optimization",
            prompt=prompt,
            response_model=OptimizationResult,
        )
        return result.assignments

    def _call_json(
        self,
        *,
        operation: str,
        prompt: str,
        response_model: type[ResponseT],
        document: DocumentPayload | None = None,
    ) -> ResponseT:
        output_schema = OutputSchema(
            name=operation,
            schema=response_model.model_json_schema(by_alias=True),
        )
        try:
            data = self.provider.complete_json(
                model=self.settings.llm_model,
                prompt=prompt,
                document=document,
                output_schema=output_schema,
            )
        except Exception as exc:
            logger.warning("Gateway call failed operation=%s error=%s", operation, exc)
            raise GatewayError(operation, str(exc) or type(exc).__name__) from exc

        try:
            return response_model.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Gateway response rejected operation=%s errors=%s", operation, exc.error_count()
            )
            raise GatewayError(operation, f"response failed validation ({exc.error_count()} errors)") from exc


def distinct_titles(titles: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for title in titles:
        value = " ".join(str(title).split())
        if not value or value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def minimize_candidates(candidates: Sequence[Candidate]) -> list[dict[str, Any]]:
    return [
        {
            "id": c.id,
            "name": c.name,
            "lcat": c.lcat,
            "level": c.level,
            "edu": c.education,
            "certs": list(c.certifications),
            "clearance": c.clearance,
        }
        for c in candidates
    ]


def minimize_proposals(proposals: Sequence[Proposal]) -> list[dict[str, Any]]:
    return [
        {
            "id": p.id,
            "name": p.name,
            "positions": [
                {
                    "id": pos.id,
                    "title": pos.title,
                    "lcat": pos.lcat,
                    "level": pos.level,
                    "loe": pos.loe,
                    "clearance": pos.clearance,
                    "reqs": [pos.education_req, *pos.certifications_req],
                    "skills": list(pos.skills_req),
                }
                for pos in p.positions
            ],
        }
        for p in proposals
    ]
