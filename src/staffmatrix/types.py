from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

LCATLevel = Literal["I", "II", "III", "IV", "V", "PENDING"]
PositionLevel = Literal["I", "II", "III", "IV", "V"]
UtilizationBand = Literal["over", "under", "optimal", "idle", "nominal"]
ExportVariant = Literal["candidates", "proposals", "staffing"]

POSITION_DEFAULTS: dict[str, Any] = {
    "level": "I",
    "loe": 1.0,
    "location": "TBD",
    "clearance": "None",
    "education_req": "None",
}


def new_id() -> str:
    return str(uuid.uuid4())


def _normalize_level(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class StaffingModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Candidate(StaffingModel):
    id: str
    name: str
    lcat: str
    level: LCATLevel
    years_experience: float = Field(ge=0)
    education: str
    certifications: list[str]
    clearance: str
    location: str
    summary: str
    email: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> Any:
        return _normalize_level(value)


class PositionFields(StaffingModel):
    title: str
    lcat: str
    level: PositionLevel = "I"
    loe: float = Field(default=1.0, gt=0)
    location: str = "TBD"
    clearance: str = "None"
    education_req: str = "None"
    certifications_req: list[str] = Field(default_factory=list)
    skills_req: list[str] = Field(default_factory=list)

    @field_validator("level", "loe", "location", "clearance", "education_req", mode="before")
    @classmethod
    def fill_missing(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return POSITION_DEFAULTS[info.field_name]
        if info.field_name == "level":
            return _normalize_level(value)
        return value

    @field_validator("certifications_req", "skills_req", mode="before")
    @classmethod
    def fill_missing_list(cls, value: Any) -> Any:
        return [] if value is None else value


class Position(PositionFields):
    id: str


class Proposal(StaffingModel):
    id: str
    name: str
    positions: list[Position] = Field(default_factory=list)


class Assignment(StaffingModel):
    id: str
    proposal_id: str
    position_id: str
    candidate_id: str
    score: float = Field(ge=0, le=100)
    reasoning: str = ""
    assigned_loe: float = Field(ge=0)


# Shapes returned by the completion service. Identity is never taken from
# these; adapters assign ids locally.


class LCATExtraction(StaffingModel):
    lcats: list[str] = Field(default_factory=list)


class CandidateExtraction(StaffingModel):
    name: str
    lcat: str
    level: LCATLevel
    years_experience: float = Field(ge=0)
    education: str = ""
    certifications: list[str] = Field(default_factory=list)
    clearance: str = "None"
    location: str = "Unknown"
    summary: str
    email: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> Any:
        return _normalize_level(value)

    @field_validator("education", "clearance", "location", mode="before")
    @classmethod
    def fill_missing(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return {"education": "", "clearance": "None", "location": "Unknown"}[info.field_name]
        return value

    @field_validator("certifications", mode="before")
    @classmethod
    def fill_missing_list(cls, value: Any) -> Any:
        return [] if value is None else value


class PositionExtraction(PositionFields):
    pass


class ProposalExtraction(StaffingModel):
    proposal_name: str = "Parsed Proposal"
    positions: list[PositionExtraction] = Field(default_factory=list)

    @field_validator("proposal_name", mode="before")
    @classmethod
    def fill_missing_name(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "Parsed Proposal"
        return value

    @field_validator("positions", mode="before")
    @classmethod
    def fill_missing_positions(cls, value: Any) -> Any:
        return [] if value is None else value


class AssignmentDraft(StaffingModel):
    proposal_id: str
    position_id: str
    candidate_id: str
    score: float
    reasoning: str = ""
    assigned_loe: float = Field(ge=0)

    @field_validator("score")
    @classmethod
    def clamp_score(cls, value: float) -> float:
        return max(0.0, min(100.0, value))


class OptimizationResult(StaffingModel):
    assignments: list[AssignmentDraft] = Field(default_factory=list)


class ModelResponse(BaseModel):
    content: str
    raw: dict[str, Any] = Field(default_factory=dict)
