"""Dashboard endpoints."""

from fastapi import APIRouter

from payroll_bureau.api.dependencies import CurrentPrincipal, StatsService
from payroll_bureau.api.schemas import DashboardStatsResponse, DeadlineResponse, ErrorResponse

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get(
    "/stats",
    response_model=DashboardStatsResponse,
    response_model_by_alias=True,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_dashboard_stats(
    principal: CurrentPrincipal,
    service: StatsService,
) -> DashboardStatsResponse:
    """Run counters and upcoming RTI deadlines for the caller's bureau."""
    stats = await service.get_stats(principal)
    return DashboardStatsResponse(
        total_clients=stats.total_clients,
        due_this_week=stats.due_this_week,
        overdue=stats.overdue,
        completed_this_month=stats.completed_this_month,
        upcoming_deadlines=[
            DeadlineResponse(
                client_name=entry.client_name,
                type=entry.type.value,
                due_date=entry.date,
                payroll_run_id=entry.payroll_run_id,
            )
            for entry in stats.upcoming_deadlines
        ],
    )
