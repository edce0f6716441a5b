"""
Pydantic models for the Policy Query Engine
"""
import uuid
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from enum import Enum

from .config import POLICY_RULES


def _new_id() -> str:
    return str(uuid.uuid4())


class Gender(str, Enum):
    """Genders recognised in a query"""
    MALE = "Male"
    FEMALE = "Female"


class DurationUnit(str, Enum):
    """Units a policy duration can be expressed in"""
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"


class CriterionStatus(str, Enum):
    """Outcome of evaluating one coverage criterion"""
    MET = "met"
    NOT_MET = "not_met"
    UNCLEAR = "unclear"


class Decision(str, Enum):
    """Final coverage decision"""
    APPROVED = "approved"
    REJECTED = "rejected"
    PENDING = "pending"


_GENDER_ALIASES = {
    "m": Gender.MALE, "male": Gender.MALE, "man": Gender.MALE,
    "f": Gender.FEMALE, "female": Gender.FEMALE, "woman": Gender.FEMALE,
}

_UNIT_ALIASES = {
    "d": DurationUnit.DAYS, "day": DurationUnit.DAYS, "days": DurationUnit.DAYS,
    "month": DurationUnit.MONTHS, "months": DurationUnit.MONTHS, "mo": DurationUnit.MONTHS,
    "year": DurationUnit.YEARS, "years": DurationUnit.YEARS,
    "yr": DurationUnit.YEARS, "yrs": DurationUnit.YEARS,
}


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys, accepting either spelling on input"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StructuredQuery(CamelModel):
    """Fields extracted from a natural-language coverage question"""
    model_config = ConfigDict(frozen=True)

    age: Optional[int] = Field(None, ge=0, description="Patient age in years")
    gender: Optional[Gender] = Field(None)
    procedure: Optional[str] = Field(None, description="Medical procedure or condition")
    location: Optional[str] = Field(None, description="City of treatment")
    policy_duration: Optional[int] = Field(None, ge=0, description="How long the policy has been active")
    policy_duration_unit: Optional[DurationUnit] = Field(None)
    pre_existing_conditions: List[str] = Field(default_factory=list)
    additional_info: Optional[str] = Field(None)

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, value):
        if value is None or isinstance(value, Gender):
            return value
        text = str(value).strip().lower()
        if not text:
            return None
        if text not in _GENDER_ALIASES:
            raise ValueError(f"Unrecognised gender: {value!r}")
        return _GENDER_ALIASES[text]

    @field_validator("policy_duration_unit", mode="before")
    @classmethod
    def normalize_unit(cls, value):
        if value is None or isinstance(value, DurationUnit):
            return value
        text = str(value).strip().lower()
        if not text:
            return None
        if text not in _UNIT_ALIASES:
            raise ValueError(f"Unrecognised duration unit: {value!r}")
        return _UNIT_ALIASES[text]

    @field_validator("pre_existing_conditions", mode="before")
    @classmethod
    def dedupe_conditions(cls, value):
        if value is None:
            return []
        seen = []
        for condition in value:
            if condition not in seen:
                seen.append(condition)
        return seen

    def is_empty(self) -> bool:
        """True when no field used by the decision criteria is set"""
        return (
            self.age is None and not self.procedure and not self.location
            and self.policy_duration is None
        )


class ClauseCandidate(CamelModel):
    """A segment of policy text that may be cited in a decision"""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    section: Optional[str] = Field(None, description="Section header in effect for this clause")
    clause_number: Optional[str] = Field(None)


class DecisionJustification(CamelModel):
    """One evaluated coverage criterion"""
    model_config = ConfigDict(frozen=True)

    criterion: str = Field(..., description="Criterion identifier, e.g. age_eligibility")
    status: CriterionStatus
    source_clause: str = Field(..., description="Rule or clause text backing the status")
    description: str = Field(..., description="Human-readable explanation")
    document_id: Optional[str] = Field(None)


class CoverageDetails(CamelModel):
    """Echo of the resolved query fields"""
    model_config = ConfigDict(frozen=True)

    procedure: str = Field(default="Not specified")
    location: str = Field(default="Not specified")
    patient_age: Optional[int] = Field(None)
    policy_duration_months: Optional[int] = Field(None)


class ProcessingResult(CamelModel):
    """Decision produced for one query, by either processing path"""
    model_config = ConfigDict(frozen=True)

    decision: Decision
    amount: Optional[float] = Field(None, ge=0)
    deductible: Optional[float] = Field(None, ge=0)
    coverage_details: CoverageDetails = Field(default_factory=CoverageDetails)
    justification: List[DecisionJustification] = Field(default_factory=list)
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    processing_time_ms: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_decision_consistency(self):
        not_met = self.count_status(CriterionStatus.NOT_MET)
        met = self.count_status(CriterionStatus.MET)

        if not_met and self.decision != Decision.REJECTED:
            raise ValueError("A decision with unmet criteria must be rejected")
        if self.decision == Decision.APPROVED and met < POLICY_RULES["settlement"]["min_met_for_approval"]:
            raise ValueError("An approval needs at least two met criteria")
        if (self.amount or self.deductible) and self.decision != Decision.APPROVED:
            raise ValueError("Amount and deductible are only payable on approval")
        return self

    def count_status(self, status: CriterionStatus) -> int:
        return sum(1 for entry in self.justification if entry.status == status)


class User(BaseModel):
    """Account that owns documents and queries"""
    id: str = Field(default_factory=_new_id)
    username: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=datetime.now)


class PolicyDocument(BaseModel):
    """Uploaded policy document metadata"""
    id: str = Field(default_factory=_new_id)
    user_id: Optional[str] = Field(None)
    filename: str = Field(..., description="Stored file name in the upload directory")
    original_name: str = Field(..., description="File name as uploaded")
    file_size: int = Field(..., ge=0)
    mime_type: str = Field(default="application/octet-stream")
    extracted_text: Optional[str] = Field(None)
    uploaded_at: datetime = Field(default_factory=datetime.now)
    processed_at: Optional[datetime] = Field(None)
    is_processed: bool = Field(default=False)


class DocumentClause(BaseModel):
    """Stored clause belonging to exactly one document"""
    id: str = Field(default_factory=_new_id)
    document_id: str
    clause_text: str
    section: Optional[str] = Field(None)
    clause_number: Optional[str] = Field(None)
    embedding: Optional[List[float]] = Field(None, description="Vector embedding, unused by the rule path")
    created_at: datetime = Field(default_factory=datetime.now)


class QueryRecord(BaseModel):
    """A submitted question and its structured form"""
    id: str = Field(default_factory=_new_id)
    user_id: Optional[str] = Field(None)
    query_text: str
    structured_data: StructuredQuery = Field(default_factory=StructuredQuery)
    created_at: datetime = Field(default_factory=datetime.now)


class QueryResultRecord(BaseModel):
    """Stored decision for a query"""
    id: str = Field(default_factory=_new_id)
    query_id: str
    result: ProcessingResult
    created_at: datetime = Field(default_factory=datetime.now)


class HistoryEntry(BaseModel):
    """A past query paired with its result, for history display"""
    query: QueryRecord
    result: Optional[QueryResultRecord] = Field(None)


class SystemMetrics(BaseModel):
    """System usage metrics"""
    total_documents: int = Field(default=0)
    total_clauses: int = Field(default=0)
    total_queries: int = Field(default=0)
    fallback_queries: int = Field(default=0)
    average_response_time: float = Field(default=0.0)
    total_tokens_used: int = Field(default=0)
    last_updated: datetime = Field(default_factory=datetime.now)
