"""Pydantic schemas for API and stored JSON payloads."""
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID


CASE_TYPE_PATTERN = "^(INDIVIDUAL|GROUP|POLICY)$"
CASE_STAGE_PATTERN = "^(INFORMAL|FORMAL)$"
CASE_STATUS_PATTERN = "^(ACTIVE|SETTLED|WITHDRAWN|RESOLVED_ARBITRATION)$"
STEP_STATUS_PATTERN = "^(PENDING|IN_PROGRESS|COMPLETED|OVERDUE|EXTENDED)$"


# Stored JSON records (camelCase on disk, versioned)
class StoredRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    schema_version: int = 1

    def to_store(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Grievor(StoredRecord):
    member_number: str = ""
    last_name: str = ""
    first_name: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""
    email: str = ""
    phone_number: str = ""


class WorkInformation(StoredRecord):
    employer: str = ""
    supervisor: str = ""
    job_title: str = ""
    work_location: str = ""
    employment_status: str = ""


class ResolutionDetails(StoredRecord):
    """Resolution record; type, date and resolver always travel together."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    resolution_type: str
    resolution_date: datetime
    resolved_by: str
    details: Optional[str] = None
    outcomes: Optional[str] = None


# Users / reference data
class UserBrief(BaseModel):
    """Brief user info for nested responses."""
    id: UUID
    name: str
    model_config = ConfigDict(from_attributes=True)


class BargainingUnitBrief(BaseModel):
    id: UUID
    name: str
    model_config = ConfigDict(from_attributes=True)


class StepTemplateResponse(BaseModel):
    id: UUID
    agreement_id: UUID
    type: str
    stage: str
    step_number: int
    name: Optional[str] = None
    description: str
    time_limit_days: int
    is_calendar_days: bool
    required_participants: list[Any] = []
    required_documents: list[Any] = []
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ResolvedStepResponse(BaseModel):
    """Initial step a new case of the given type/stage would start at."""
    template: StepTemplateResponse
    step_number: int
    stage: str
    time_limit_days: int
    is_calendar_days: bool
    model_config = ConfigDict(from_attributes=True)


# Cases
class CaseCreate(BaseModel):
    bargaining_unit_id: Optional[UUID] = None
    agreement_id: Optional[UUID] = None
    type: str = Field(pattern=CASE_TYPE_PATTERN)
    stage: str = Field(default="FORMAL", pattern=CASE_STAGE_PATTERN)
    category: Optional[str] = None
    filed_at: Optional[datetime] = None
    external_id: Optional[str] = None
    assigned_to_id: Optional[UUID] = None
    estimated_cost: Optional[Decimal] = Field(default=None, ge=0)
    grievors: list[Grievor] = []
    work_information: WorkInformation = Field(default_factory=WorkInformation)
    statement: str = ""
    settlement_desired: str = ""
    articles_violated: Optional[str] = None


class CaseReportResponse(BaseModel):
    grievors: list[dict[str, Any]]
    work_information: dict[str, Any]
    statement: str
    settlement_desired: str
    articles_violated: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class CaseStepResponse(BaseModel):
    id: UUID
    case_id: UUID
    step_number: int
    stage: str
    status: str
    due_date: date
    completed_date: Optional[datetime] = None
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class StepInfo(BaseModel):
    """Current-step summary shown in case listings."""
    step_name: Optional[str] = None
    stage: str
    time_limit_days: int = 0
    is_calendar_days: bool = False
    due_date: Optional[date] = None
    is_overdue: bool = False
    next_step_name: Optional[str] = None
    has_next_step: bool = False


class CaseResponse(BaseModel):
    id: UUID
    case_number: str
    type: str
    category: Optional[str] = None
    status: str
    current_stage: str
    current_step_number: int
    filed_at: datetime
    external_id: Optional[str] = None
    agreement_id: Optional[UUID] = None
    resolution_details: Optional[dict[str, Any]] = None
    estimated_cost: Optional[Decimal] = None
    actual_cost: Optional[Decimal] = None
    bargaining_unit: Optional[BargainingUnitBrief] = None
    assigned_to: Optional[UserBrief] = None
    creator: Optional[UserBrief] = None
    step_info: Optional[StepInfo] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CaseDetailResponse(CaseResponse):
    report: Optional[CaseReportResponse] = None
    steps: list[CaseStepResponse] = []


class CaseListResponse(BaseModel):
    items: list[CaseResponse]
    total_count: int
    page: int
    page_size: int


class StepCreate(BaseModel):
    step_number: int = Field(gt=0)
    stage: str = Field(pattern=CASE_STAGE_PATTERN)
    due_date: date
    notes: Optional[str] = None


class StepUpdate(BaseModel):
    status: Optional[str] = Field(default=None, pattern=STEP_STATUS_PATTERN)
    notes: Optional[str] = None
    completed_date: Optional[datetime] = None


class AdvanceStepRequest(BaseModel):
    outcomes: str = Field(min_length=1)


class AssigneeUpdate(BaseModel):
    assigned_to_id: Optional[UUID] = None


class StatusUpdate(BaseModel):
    status: str = Field(pattern=CASE_STATUS_PATTERN)
    stage: Optional[str] = Field(default=None, pattern=CASE_STAGE_PATTERN)
    outcomes: Optional[str] = None
    resolution_details: Optional[ResolutionDetails] = None


class ResolutionRequest(BaseModel):
    details: str


class ReportFieldUpdate(BaseModel):
    field: str = Field(pattern="^(statement|articles_violated|settlement_desired)$")
    value: Optional[str] = None
    record_event: bool = True


class FieldChangeResponse(BaseModel):
    field: str
    previous_value: Optional[str] = None
    new_value: Optional[str] = None


class CostUpdate(BaseModel):
    field: str = Field(pattern="^(estimated_cost|actual_cost)$")
    value: Optional[Decimal] = Field(default=None, ge=0)


class CategoryUpdate(BaseModel):
    category: Optional[str] = None


class CaseEventResponse(BaseModel):
    id: UUID
    case_id: UUID
    user_id: UUID
    event_type: str
    previous_value: Optional[str] = None
    new_value: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Complaints / sequences
class ElevationResponse(BaseModel):
    case_id: UUID
    is_new: bool


class SequenceAllocationResponse(BaseModel):
    kind: str
    value: int
    formatted: str


class SequenceSnapshotResponse(BaseModel):
    organization_id: UUID
    case_seq: int
    complaint_seq: int
    model_config = ConfigDict(from_attributes=True)
