"""API routes."""

from payroll_bureau.api.routes.auth import router as auth_router
from payroll_bureau.api.routes.clients import router as clients_router
from payroll_bureau.api.routes.dashboard import router as dashboard_router
from payroll_bureau.api.routes.health import router as health_router
from payroll_bureau.api.routes.onboarding import router as onboarding_router
from payroll_bureau.api.routes.payroll_runs import router as payroll_runs_router

__all__ = [
    "auth_router",
    "clients_router",
    "dashboard_router",
    "health_router",
    "onboarding_router",
    "payroll_runs_router",
]
