"""Client management endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from payroll_bureau.api.dependencies import Clients, CurrentPrincipal
from payroll_bureau.api.schemas import (
    ClientCreatedResponse,
    ClientCreateRequest,
    ClientDeletedResponse,
    ClientDetailResponse,
    ClientListItemResponse,
    ClientResponse,
    ClientUpdateRequest,
    ErrorResponse,
    OnboardingClientResponse,
    PayrollRunResponse,
)
from payroll_bureau.services import ClientStateMachine

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get(
    "",
    response_model=list[ClientListItemResponse],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def list_clients(
    principal: CurrentPrincipal,
    service: Clients,
) -> list[ClientListItemResponse]:
    """All clients, newest first, each with its latest payroll run."""
    rows = await service.list_clients(principal)
    return [
        ClientListItemResponse(
            **ClientResponse.model_validate(client).model_dump(),
            latest_run=PayrollRunResponse.model_validate(run) if run else None,
        )
        for client, run in rows
    ]


@router.post(
    "",
    response_model=ClientCreatedResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def create_client(
    principal: CurrentPrincipal,
    service: Clients,
    payload: ClientCreateRequest,
) -> ClientCreatedResponse:
    """Create a client in onboarding and schedule its first payroll run."""
    fields = payload.model_dump(mode="json", exclude={"checklist_items"})
    checklist_items = (
        [item.model_dump() for item in payload.checklist_items]
        if payload.checklist_items is not None
        else None
    )
    created = await service.create_client(principal, fields, checklist_items)
    return ClientCreatedResponse(
        **OnboardingClientResponse.model_validate(created.client).model_dump(),
        payroll_run=PayrollRunResponse.model_validate(created.payroll_run),
    )


@router.get(
    "/{client_id}",
    response_model=ClientDetailResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_client(
    principal: CurrentPrincipal,
    service: Clients,
    client_id: Annotated[UUID, Path()],
) -> ClientDetailResponse:
    """One client with its checklist and allowed status changes."""
    client = await service.get_client(principal, client_id)
    next_statuses = ClientStateMachine.get_next_statuses(client.status)
    return ClientDetailResponse(
        **OnboardingClientResponse.model_validate(client).model_dump(),
        next_statuses=[status.value for status in next_statuses],
    )


@router.put(
    "/{client_id}",
    response_model=ClientResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def update_client(
    principal: CurrentPrincipal,
    service: Clients,
    client_id: Annotated[UUID, Path()],
    payload: ClientUpdateRequest,
) -> ClientResponse:
    """Change client details or move the client to another status."""
    changes = payload.model_dump(mode="json", exclude_unset=True)
    client = await service.update_client(principal, client_id, changes)
    return ClientResponse.model_validate(client)


@router.delete(
    "/{client_id}",
    response_model=ClientDeletedResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_client(
    principal: CurrentPrincipal,
    service: Clients,
    client_id: Annotated[UUID, Path()],
) -> ClientDeletedResponse:
    """Delete a client with its checklist and payroll runs."""
    await service.delete_client(principal, client_id)
    return ClientDeletedResponse(message="Client deleted successfully", id=client_id)
