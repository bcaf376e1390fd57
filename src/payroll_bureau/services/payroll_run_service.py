"""Payroll run scheduling: creates the next run for a client."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_bureau.calculators.hmrc_deadlines import (
    calculate_eps_due_date,
    calculate_next_pay_date,
    calculate_paye_payment_date,
    calculate_period_dates,
    calculate_rti_due_date,
)
from payroll_bureau.errors import InternalError, NotFoundError, ValidationError
from payroll_bureau.identity.base import Principal
from payroll_bureau.models import Client, PayrollRun, PayrollRunStatus
from payroll_bureau.services.provisioning import ProvisioningService

logger = logging.getLogger(__name__)


class PayrollRunService:
    """Service for scheduling payroll runs."""

    def __init__(self, session: AsyncSession, provisioning: ProvisioningService):
        self.session = session
        self.provisioning = provisioning

    async def generate_next_run(
        self,
        principal: Principal,
        client_id: UUID,
        today: date | None = None,
    ) -> PayrollRun:
        """Create the run following the client's latest one.

        The next pay date follows the latest existing run's pay date, or
        today when the client has no runs yet. Period and RTI/EPS deadlines
        are derived from that pay date.
        """
        user = await self.provisioning.get_or_provision_user(principal)

        try:
            client = await self.session.scalar(
                select(Client).where(Client.id == client_id, Client.tenant_id == user.tenant_id)
            )
            latest_pay_date = None
            if client is not None:
                latest_pay_date = await self.session.scalar(
                    select(PayrollRun.pay_date)
                    .where(PayrollRun.client_id == client.id)
                    .order_by(PayrollRun.pay_date.desc())
                    .limit(1)
                )
        except SQLAlchemyError as exc:
            logger.exception("Loading client %s failed", client_id)
            raise InternalError() from exc

        if client is None:
            raise NotFoundError("Client not found")
        if not client.pay_frequency or not client.pay_day:
            raise ValidationError("Client is missing pay frequency or pay day configuration")

        after = latest_pay_date or today or date.today()
        try:
            pay_date = calculate_next_pay_date(client.pay_frequency, client.pay_day, after)
            period_start, period_end = calculate_period_dates(client.pay_frequency, pay_date)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        run = PayrollRun(
            tenant_id=user.tenant_id,
            client_id=client.id,
            status=PayrollRunStatus.NOT_STARTED.value,
            period_start=period_start,
            period_end=period_end,
            pay_date=pay_date,
            rti_due_date=calculate_rti_due_date(pay_date),
            eps_due_date=calculate_eps_due_date(pay_date),
            paye_due_date=calculate_paye_payment_date(pay_date),
        )
        self.session.add(run)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Creating payroll run for client %s failed", client_id)
            await self.session.rollback()
            raise InternalError() from exc

        logger.info("Payroll run %s scheduled for client %s on %s", run.id, client.id, pay_date)
        return run
