"""Registration endpoint."""

from typing import Any

from fastapi import APIRouter, Body, status

from payroll_bureau.api.dependencies import Provisioning
from payroll_bureau.api.schemas import ErrorResponse, RegistrationData, RegistrationResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=RegistrationResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def register(
    service: Provisioning,
    payload: dict[str, Any] = Body(...),
) -> RegistrationResponse:
    """Register a bureau admin with a new company account.

    The body is validated by the provisioning service so that field errors
    come back in the same ``{field, message}`` shape as other validation
    failures.
    """
    result = await service.register(payload)
    return RegistrationResponse(
        message="Account created successfully. Please check your email to verify your account.",
        data=RegistrationData(
            user_id=result.user_id,
            tenant_id=result.tenant_id,
            company_name=result.company_name,
            email=result.email,
        ),
    )
