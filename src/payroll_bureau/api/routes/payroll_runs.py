"""Payroll run endpoints."""

from fastapi import APIRouter

from payroll_bureau.api.dependencies import CurrentPrincipal, PayrollRuns
from payroll_bureau.api.schemas import (
    ErrorResponse,
    GeneratePayrollRunRequest,
    PayrollRunResponse,
)

router = APIRouter(prefix="/payroll-runs", tags=["payroll-runs"])


@router.post(
    "/generate",
    response_model=PayrollRunResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def generate_payroll_run(
    principal: CurrentPrincipal,
    service: PayrollRuns,
    payload: GeneratePayrollRunRequest,
) -> PayrollRunResponse:
    """Schedule the client's next payroll run from its pay calendar."""
    run = await service.generate_next_run(principal, payload.client_id)
    return PayrollRunResponse.model_validate(run)
