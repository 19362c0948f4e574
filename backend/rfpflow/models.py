# models.py
# Pydantic models + small helpers

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Union

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator


def check_email(value: str) -> str:
    # Syntax check only: the stored address must keep the caller's exact casing.
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError(f"Invalid email address: {exc}")
    return value


def reject_null(value):
    # Explicit null on a required column; an omitted field never reaches here.
    if value is None:
        raise ValueError("may not be null")
    return value


EmailAddress = Annotated[str, AfterValidator(check_email)]
NonEmptyStr = Annotated[str, Field(min_length=1)]


class RfpStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    CLOSED = "closed"


# --- Vendors ---

class VendorCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailAddress
    description: Optional[str] = None


class VendorUpdate(BaseModel):
    name: Annotated[Optional[NonEmptyStr], AfterValidator(reject_null)] = None
    email: Annotated[Optional[EmailAddress], AfterValidator(reject_null)] = None
    description: Optional[str] = None


class Vendor(BaseModel):
    id: int
    name: str
    email: str
    description: Optional[str] = None
    created_at: datetime


# --- RFPs ---

class RFPCreate(BaseModel):
    title: str = Field(min_length=1)
    raw_requirements: str
    structured_requirements: Optional[Any] = None
    status: RfpStatus = RfpStatus.DRAFT


class RFPUpdate(BaseModel):
    title: Annotated[Optional[NonEmptyStr], AfterValidator(reject_null)] = None
    raw_requirements: Annotated[Optional[str], AfterValidator(reject_null)] = None
    structured_requirements: Optional[Any] = None
    status: Annotated[Optional[RfpStatus], AfterValidator(reject_null)] = None


class RFP(BaseModel):
    id: int
    title: str
    raw_requirements: str
    structured_requirements: Optional[Any] = None
    status: RfpStatus = RfpStatus.DRAFT
    created_at: datetime


class GenerateRequest(BaseModel):
    raw_requirements: str = Field(min_length=1)


class GeneratedRfp(BaseModel):
    title: str
    structured_requirements: Dict[str, Any]


class SendRequest(BaseModel):
    vendor_ids: List[int]


class SendResult(BaseModel):
    success: bool
    message: str


# --- Proposals ---

class ProposalInbound(BaseModel):
    sender: EmailAddress = Field(validation_alias=AliasChoices("from", "from_email", "sender"))
    subject: str
    body: str


class Proposal(BaseModel):
    id: int
    rfp_id: int
    vendor_id: int
    raw_response: str
    structured_response: Optional[Any] = None
    score: Optional[int] = None
    ai_analysis: Optional[str] = None
    created_at: datetime


class InboundResult(BaseModel):
    success: bool
    message: Optional[str] = None
    proposal_id: Optional[int] = None
    duplicate: Optional[bool] = None


class ProposalAnalysis(BaseModel):
    score: int = 0
    analysis: str = "No analysis available"
    structured_response: Dict[str, Any] = Field(default_factory=dict)


class Recommendation(BaseModel):
    recommendation: str
    reasoning: str


# --- Schema-on-read views over stored model JSON ---

class Requirements(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: Optional[str] = None
    summary: Optional[str] = None
    deliverables: List[str] = Field(default_factory=list)
    timeline: Optional[Union[str, int, float]] = None
    budget: Optional[Union[str, int, float]] = None
    constraints: List[str] = Field(default_factory=list)
    success_criteria: List[str] = Field(default_factory=list, alias="successCriteria")


class Findings(BaseModel):
    model_config = ConfigDict(extra="allow")

    matches: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    proposed_timeline: Any = None
    proposed_budget: Any = None
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)

    @field_validator("matches", "gaps", "strengths", "weaknesses", mode="before")
    @classmethod
    def _list_or_empty(cls, value):
        # Each list is read on its own so one odd field does not hide the rest.
        if not isinstance(value, list):
            return []
        return [item if isinstance(item, str) else json.dumps(item) for item in value]


@dataclass(frozen=True)
class Parsed:
    """Stored JSON that matched its declared shape."""
    value: BaseModel
    raw: Any

    def as_json(self):
        return self.raw


@dataclass(frozen=True)
class Unvalidated:
    """Stored JSON that is missing or did not match its declared shape."""
    raw: Any

    def as_json(self):
        return self.raw


StructuredJson = Union[Parsed, Unvalidated]


def _read(model, raw: Any) -> StructuredJson:
    if not isinstance(raw, dict):
        return Unvalidated(raw)
    try:
        return Parsed(model.model_validate(raw), raw)
    except ValidationError:
        return Unvalidated(raw)


def read_requirements(raw: Any) -> StructuredJson:
    return _read(Requirements, raw)


def read_findings(raw: Any) -> StructuredJson:
    return _read(Findings, raw)
