"""Dashboard statistics: run counters and the upcoming HMRC deadline feed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_bureau.errors import InternalError
from payroll_bureau.identity.base import Principal
from payroll_bureau.models import Client, PayrollRun, PayrollRunStatus
from payroll_bureau.services.provisioning import ProvisioningService

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "Unknown Client"
DEFAULT_DEADLINE_LIMIT = 10
DUE_WINDOW_DAYS = 7
UPCOMING_WINDOW_DAYS = 14


class DeadlineType(str, Enum):
    """RTI submission kinds shown in the deadline feed."""

    FPS = "FPS"  # Full Payment Submission, due on or before payday
    EPS = "EPS"  # Employer Payment Summary, due 19th after the tax month


@dataclass(frozen=True)
class RunSnapshot:
    """The fields of a payroll run the statistics depend on."""

    id: UUID
    status: str
    pay_date: date
    rti_due_date: date | None = None
    eps_due_date: date | None = None
    updated_at: datetime | None = None
    client_name: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.status == PayrollRunStatus.COMPLETE


@dataclass(frozen=True)
class DeadlineEntry:
    """One upcoming submission deadline."""

    client_name: str
    type: DeadlineType
    date: date
    payroll_run_id: UUID


@dataclass(frozen=True)
class DashboardStats:
    """Snapshot returned to the dashboard."""

    total_clients: int
    due_this_week: int
    overdue: int
    completed_this_month: int
    upcoming_deadlines: list[DeadlineEntry] = field(default_factory=list)


def _day(value: date | datetime) -> date:
    """Truncate to calendar day; aware datetimes are read on the local clock."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def collect_deadlines(
    runs: Iterable[RunSnapshot],
    today: date,
    limit: int = DEFAULT_DEADLINE_LIMIT,
) -> list[DeadlineEntry]:
    """Build the deadline feed for open runs paid within the next two weeks.

    Each run contributes an FPS entry when it has an RTI due date and an EPS
    entry when it has an EPS due date. Entries are sorted by due date (ties
    keep scan order) and capped at ``limit``.
    """
    horizon = today + timedelta(days=UPCOMING_WINDOW_DAYS)
    entries: list[DeadlineEntry] = []

    for run in runs:
        if run.is_complete:
            continue
        pay_date = _day(run.pay_date)
        if pay_date < today or pay_date >= horizon:
            continue

        client_name = run.client_name or UNKNOWN_CLIENT
        if run.rti_due_date:
            entries.append(
                DeadlineEntry(client_name, DeadlineType.FPS, _day(run.rti_due_date), run.id)
            )
        if run.eps_due_date:
            entries.append(
                DeadlineEntry(client_name, DeadlineType.EPS, _day(run.eps_due_date), run.id)
            )

    entries.sort(key=lambda entry: entry.date)
    return entries[:limit]


def compute_dashboard_stats(
    runs: Iterable[RunSnapshot],
    total_clients: int,
    today: date,
    limit: int = DEFAULT_DEADLINE_LIMIT,
) -> DashboardStats:
    """Classify a tenant's runs relative to ``today``.

    Windows are half-open: a run paid exactly ``today`` is due this week, a
    run paid exactly ``today + 7`` is not.
    """
    runs = list(runs)
    week_from_now = today + timedelta(days=DUE_WINDOW_DAYS)
    month_start = today.replace(day=1)

    due_this_week = 0
    overdue = 0
    completed_this_month = 0

    for run in runs:
        pay_date = _day(run.pay_date)
        if run.is_complete:
            if run.updated_at is not None and month_start <= _day(run.updated_at) <= today:
                completed_this_month += 1
            continue
        if pay_date < today:
            overdue += 1
        elif pay_date < week_from_now:
            due_this_week += 1

    return DashboardStats(
        total_clients=total_clients,
        due_this_week=due_this_week,
        overdue=overdue,
        completed_this_month=completed_this_month,
        upcoming_deadlines=collect_deadlines(runs, today, limit),
    )


class DashboardStatsService:
    """Loads a tenant's runs and derives the dashboard snapshot."""

    def __init__(
        self,
        session: AsyncSession,
        provisioning: ProvisioningService,
        deadline_limit: int = DEFAULT_DEADLINE_LIMIT,
    ):
        self.session = session
        self.provisioning = provisioning
        self.deadline_limit = deadline_limit

    async def get_stats(self, principal: Principal, today: date | None = None) -> DashboardStats:
        """Compute stats for the principal's tenant, provisioning it if needed."""
        user = await self.provisioning.get_or_provision_user(principal)
        tenant_id = user.tenant_id
        today = today or date.today()

        try:
            total_clients = await self.session.scalar(
                select(func.count()).select_from(Client).where(Client.tenant_id == tenant_id)
            )
            runs = await self.load_runs(tenant_id)
        except SQLAlchemyError as exc:
            logger.exception("Loading dashboard data failed for tenant %s", tenant_id)
            raise InternalError() from exc

        return compute_dashboard_stats(runs, total_clients or 0, today, self.deadline_limit)

    async def load_runs(self, tenant_id: UUID) -> list[RunSnapshot]:
        """All of a tenant's runs, each with its client's name."""
        result = await self.session.execute(
            select(PayrollRun, Client.name)
            .outerjoin(Client, PayrollRun.client_id == Client.id)
            .where(PayrollRun.tenant_id == tenant_id)
            .order_by(PayrollRun.created_at)
        )
        return [
            RunSnapshot(
                id=run.id,
                status=run.status,
                pay_date=run.pay_date,
                rti_due_date=run.rti_due_date,
                eps_due_date=run.eps_due_date,
                updated_at=run.updated_at,
                client_name=client_name,
            )
            for run, client_name in result.all()
        ]
