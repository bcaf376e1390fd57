"""Payroll bureau services."""

from payroll_bureau.services.client_lifecycle import ClientStateMachine
from payroll_bureau.services.clients import ClientCreation, ClientService
from payroll_bureau.services.dashboard_stats import DashboardStats, DashboardStatsService
from payroll_bureau.services.onboarding import OnboardingService
from payroll_bureau.services.payroll_run_service import PayrollRunService
from payroll_bureau.services.provisioning import ProvisioningService, RegistrationResult

__all__ = [
    "ClientCreation",
    "ClientService",
    "ClientStateMachine",
    "DashboardStats",
    "DashboardStatsService",
    "OnboardingService",
    "PayrollRunService",
    "ProvisioningService",
    "RegistrationResult",
]
