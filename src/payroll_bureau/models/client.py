"""Client company, onboarding checklist and payroll run models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_bureau.models.base import Base, JSONDocument, TimestampMixin

if TYPE_CHECKING:
    from payroll_bureau.models.tenant import Tenant


class ClientStatus(str, Enum):
    """Client lifecycle states."""

    ONBOARDING = "onboarding"
    ACTIVE = "active"
    ARCHIVED = "archived"


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"
    COMPLETE = "complete"


class PayFrequency(str, Enum):
    """Pay frequencies recognised by HMRC RTI."""

    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    FOUR_WEEKLY = "four_weekly"
    MONTHLY = "monthly"


class Client(Base, TimestampMixin):
    """A company whose payroll the bureau runs."""

    __tablename__ = "client"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ClientStatus.ONBOARDING.value
    )
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    paye_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    accounts_office_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    contact_name: Mapped[str | None] = mapped_column(String, nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String, nullable=True)
    pay_frequency: Mapped[str | None] = mapped_column(String, nullable=True)
    pay_day: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('onboarding', 'active', 'archived')",
            name="client_status_check",
        ),
    )

    # Relationships
    tenant: Mapped[Tenant] = relationship(back_populates="clients")
    onboarding: Mapped[ClientOnboarding | None] = relationship(
        back_populates="client", uselist=False
    )
    payroll_runs: Mapped[list[PayrollRun]] = relationship(back_populates="client")


class ClientOnboarding(Base, TimestampMixin):
    """Onboarding checklist for a client in onboarding status."""

    __tablename__ = "client_onboarding"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    client_id: Mapped[UUID] = mapped_column(
        ForeignKey("client.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    tasks: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    progress_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Revision counter for compare-and-swap task updates
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "progress_percentage >= 0 AND progress_percentage <= 100",
            name="client_onboarding_progress_range",
        ),
    )

    # Relationships
    client: Mapped[Client] = relationship(back_populates="onboarding")


class PayrollRun(Base, TimestampMixin):
    """One pay period's payroll for a client."""

    __tablename__ = "payroll_run"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    client_id: Mapped[UUID] = mapped_column(
        ForeignKey("client.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=PayrollRunStatus.NOT_STARTED.value
    )
    period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    period_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    rti_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    eps_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paye_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'due_soon', 'overdue', 'complete')",
            name="payroll_run_status_check",
        ),
    )

    # Relationships
    client: Mapped[Client] = relationship(back_populates="payroll_runs")
