"""Tests for payroll run generation."""

from datetime import date
from uuid import uuid4

import pytest

from payroll_bureau.errors import NotFoundError, ValidationError
from payroll_bureau.models import Client
from payroll_bureau.services import PayrollRunService


@pytest.fixture
def service(session, provisioning) -> PayrollRunService:
    return PayrollRunService(session, provisioning)


class TestGenerateNextRun:
    """Test scheduling the next run from a client's pay calendar."""

    async def test_first_run_follows_today(self, service, principal, monthly_client):
        run = await service.generate_next_run(principal, monthly_client.id, today=date(2026, 2, 10))

        assert run.status == "not_started"
        assert run.client_id == monthly_client.id
        assert run.pay_date == date(2026, 2, 28)
        assert run.period_start == date(2026, 2, 1)
        assert run.period_end == date(2026, 2, 28)
        assert run.rti_due_date == date(2026, 2, 28)
        assert run.eps_due_date == date(2026, 3, 19)
        assert run.paye_due_date == date(2026, 3, 22)

    async def test_follows_latest_run(self, service, principal, monthly_client, make_run):
        await make_run(monthly_client, date(2026, 1, 28))
        await make_run(monthly_client, date(2026, 3, 28))

        run = await service.generate_next_run(principal, monthly_client.id, today=date(2026, 2, 10))

        assert run.pay_date == date(2026, 4, 28)

    async def test_weekly_client(self, session, service, principal, test_tenant):
        weekly = Client(
            tenant_id=test_tenant.id,
            name="Cafe Ltd",
            status="active",
            pay_frequency="weekly",
            pay_day="friday",
        )
        session.add(weekly)
        await session.commit()

        run = await service.generate_next_run(principal, weekly.id, today=date(2026, 2, 2))

        assert run.pay_date == date(2026, 2, 6)
        assert run.period_start == date(2026, 1, 31)

    async def test_missing_pay_calendar(self, session, service, principal, test_tenant):
        bare = Client(tenant_id=test_tenant.id, name="No Calendar Ltd", status="active")
        session.add(bare)
        await session.commit()

        with pytest.raises(ValidationError) as exc_info:
            await service.generate_next_run(principal, bare.id)

        assert exc_info.value.message == (
            "Client is missing pay frequency or pay day configuration"
        )

    async def test_bad_pay_day(self, session, service, principal, test_tenant):
        odd = Client(
            tenant_id=test_tenant.id,
            name="Odd Ltd",
            status="active",
            pay_frequency="weekly",
            pay_day="payday",
        )
        session.add(odd)
        await session.commit()

        with pytest.raises(ValidationError):
            await service.generate_next_run(principal, odd.id)

    async def test_unknown_client(self, service, principal):
        with pytest.raises(NotFoundError):
            await service.generate_next_run(principal, uuid4())

    async def test_other_tenant_client(self, service, stranger, monthly_client):
        with pytest.raises(NotFoundError):
            await service.generate_next_run(stranger, monthly_client.id)
