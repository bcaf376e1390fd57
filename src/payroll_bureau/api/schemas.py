"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from payroll_bureau.models import ClientStatus, PayFrequency
from payroll_bureau.validation import MAX_NAME_LENGTH, check_contact_email


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str | None = None
    details: list[dict[str, Any]] | None = None


# ============================================================================
# Registration
# ============================================================================


class RegistrationData(BaseModel):
    """Identifiers of the newly registered account."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID = Field(alias="userId")
    tenant_id: UUID = Field(alias="tenantId")
    company_name: str = Field(alias="companyName")
    email: str


class RegistrationResponse(BaseModel):
    """Registration result; the email still has to be verified."""

    success: bool = True
    message: str
    data: RegistrationData


# ============================================================================
# Dashboard
# ============================================================================


class DeadlineResponse(BaseModel):
    """Upcoming RTI submission deadline."""

    model_config = ConfigDict(populate_by_name=True)

    client_name: str = Field(alias="clientName")
    type: str
    due_date: date = Field(alias="date")
    payroll_run_id: UUID = Field(alias="payrollRunId")


class DashboardStatsResponse(BaseModel):
    """Dashboard counters and deadline feed."""

    model_config = ConfigDict(populate_by_name=True)

    total_clients: int = Field(alias="totalClients")
    due_this_week: int = Field(alias="dueThisWeek")
    overdue: int
    completed_this_month: int = Field(alias="completedThisMonth")
    upcoming_deadlines: list[DeadlineResponse] = Field(alias="upcomingDeadlines")


# ============================================================================
# Onboarding
# ============================================================================


class OnboardingRecordResponse(BaseModel):
    """Client onboarding checklist."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    tasks: list[dict[str, Any]]
    progress_percentage: int
    completed_at: datetime | None
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ClientResponse(BaseModel):
    """Client company."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    name: str
    status: str
    email: str | None = None
    phone: str | None = None
    paye_reference: str | None = None
    accounts_office_ref: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    pay_frequency: str | None = None
    pay_day: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OnboardingClientResponse(ClientResponse):
    """Client with its nested onboarding record."""

    client_onboarding: OnboardingRecordResponse | None = Field(
        default=None,
        validation_alias=AliasChoices("onboarding", "client_onboarding"),
    )


class ClientSummary(BaseModel):
    """Minimal client identity."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    status: str


class ClientOnboardingDetailResponse(BaseModel):
    """A single client with its onboarding checklist."""

    client: ClientSummary
    onboarding: OnboardingRecordResponse


class TaskUpdateRequest(BaseModel):
    """Toggle one onboarding task."""

    model_config = ConfigDict(populate_by_name=True)

    client_id: UUID = Field(alias="clientId")
    task_id: str | int = Field(alias="taskId")
    completed: bool
    version: int | None = Field(default=None, ge=0)


class CompleteOnboardingResponse(BaseModel):
    """Result of moving a client out of onboarding."""

    success: bool = True
    message: str
    client: ClientResponse


# ============================================================================
# Payroll Runs
# ============================================================================


class GeneratePayrollRunRequest(BaseModel):
    """Request to schedule a client's next payroll run."""

    client_id: UUID


class PayrollRunResponse(BaseModel):
    """Payroll run."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    client_id: UUID
    status: str
    period_start: date | None
    period_end: date | None
    pay_date: date
    rti_due_date: date | None
    eps_due_date: date | None
    paye_due_date: date | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ============================================================================
# Clients
# ============================================================================


class ChecklistItemInput(BaseModel):
    """One step of a new client's onboarding checklist."""

    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    sort_order: int


class ClientFields(BaseModel):
    """Editable client details shared by create and update."""

    email: str | None = None
    phone: str | None = Field(default=None, max_length=20)
    paye_reference: str | None = None
    accounts_office_ref: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    notes: str | None = None

    @field_validator("email", "contact_email")
    @classmethod
    def email_well_formed(cls, v: str | None) -> str | None:
        return check_contact_email(v)


class ClientCreateRequest(ClientFields):
    """New client; the checklist defaults to the bureau's template."""

    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    pay_frequency: PayFrequency
    pay_day: str = Field(min_length=1)
    checklist_items: list[ChecklistItemInput] | None = Field(default=None, min_length=1)


class ClientUpdateRequest(ClientFields):
    """Partial client update; only fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    pay_frequency: PayFrequency | None = None
    pay_day: str | None = Field(default=None, min_length=1)
    status: ClientStatus | None = None


class ClientListItemResponse(ClientResponse):
    """Client with its most recent payroll run."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    latest_run: PayrollRunResponse | None = Field(default=None, alias="latestRun")


class ClientCreatedResponse(OnboardingClientResponse):
    """New client with its checklist and first payroll run."""

    payroll_run: PayrollRunResponse


class ClientDetailResponse(OnboardingClientResponse):
    """Client with its checklist and the statuses it may move to."""

    next_statuses: list[str]


class ClientDeletedResponse(BaseModel):
    """Confirmation of a deleted client."""

    message: str
    id: UUID
