"""Client onboarding endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from payroll_bureau.api.dependencies import CurrentPrincipal, Onboarding
from payroll_bureau.api.schemas import (
    ClientOnboardingDetailResponse,
    ClientResponse,
    ClientSummary,
    CompleteOnboardingResponse,
    ErrorResponse,
    OnboardingClientResponse,
    OnboardingRecordResponse,
    TaskUpdateRequest,
)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.get(
    "",
    response_model=list[OnboardingClientResponse],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def list_onboarding_clients(
    principal: CurrentPrincipal,
    service: Onboarding,
) -> list[OnboardingClientResponse]:
    """Clients still in onboarding, newest first, with their checklists."""
    clients = await service.list_onboarding_clients(principal)
    return [OnboardingClientResponse.model_validate(client) for client in clients]


@router.post(
    "",
    response_model=OnboardingRecordResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_onboarding_task(
    principal: CurrentPrincipal,
    service: Onboarding,
    payload: TaskUpdateRequest,
) -> OnboardingRecordResponse:
    """Mark one checklist task done or not done."""
    record = await service.update_task(
        principal,
        payload.client_id,
        payload.task_id,
        payload.completed,
        expected_version=payload.version,
    )
    return OnboardingRecordResponse.model_validate(record)


@router.get(
    "/{client_id}",
    response_model=ClientOnboardingDetailResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_client_onboarding(
    principal: CurrentPrincipal,
    service: Onboarding,
    client_id: Annotated[UUID, Path()],
) -> ClientOnboardingDetailResponse:
    """One client with its onboarding checklist."""
    client, record = await service.get_client_onboarding(principal, client_id)
    return ClientOnboardingDetailResponse(
        client=ClientSummary.model_validate(client),
        onboarding=OnboardingRecordResponse.model_validate(record),
    )


@router.post(
    "/{client_id}/complete",
    response_model=CompleteOnboardingResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def complete_onboarding(
    principal: CurrentPrincipal,
    service: Onboarding,
    client_id: Annotated[UUID, Path()],
) -> CompleteOnboardingResponse:
    """Move a fully onboarded client to active."""
    client = await service.complete_onboarding(principal, client_id)
    return CompleteOnboardingResponse(
        message="Client onboarding completed",
        client=ClientResponse.model_validate(client),
    )
