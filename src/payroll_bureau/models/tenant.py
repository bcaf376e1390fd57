"""Tenant (bureau organisation) and user profile models."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_bureau.models.base import Base, JSONDocument, TimestampMixin

if TYPE_CHECKING:
    from payroll_bureau.models.client import Client


class TenantPlan(str, Enum):
    """Subscription plans."""

    TRIAL = "trial"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class TenantMode(str, Enum):
    """Playground tenants carry demo data; live tenants do not."""

    PLAYGROUND = "playground"
    LIVE = "live"


class UserRole(str, Enum):
    """User roles within a tenant."""

    ADMIN = "admin"
    CONSULTANT = "consultant"
    VIEWER = "viewer"


class Tenant(Base, TimestampMixin):
    """A payroll bureau organisation."""

    __tablename__ = "tenant"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    plan: Mapped[str] = mapped_column(String, nullable=False, default=TenantPlan.TRIAL.value)
    mode: Mapped[str] = mapped_column(
        String, nullable=False, default=TenantMode.PLAYGROUND.value
    )
    allowed_domains: Mapped[list[str]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    demo_data_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_switch_modes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    settings: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)

    __table_args__ = (
        CheckConstraint(
            "plan IN ('trial', 'starter', 'professional', 'enterprise')",
            name="tenant_plan_check",
        ),
        CheckConstraint("mode IN ('playground', 'live')", name="tenant_mode_check"),
    )

    # Relationships
    users: Mapped[list[User]] = relationship(back_populates="tenant")
    clients: Mapped[list[Client]] = relationship(back_populates="tenant")


class User(Base, TimestampMixin):
    """User profile, bound 1:1 to an identity at the identity provider."""

    __tablename__ = "app_user"

    # Same value as the identity id; never generated locally
    id: Mapped[UUID] = mapped_column(primary_key=True)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.id", ondelete="CASCADE"),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default=UserRole.ADMIN.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'consultant', 'viewer')", name="app_user_role_check"),
    )

    # Relationships
    tenant: Mapped[Tenant] = relationship(back_populates="users")


class DemoDataTemplate(Base, TimestampMixin):
    """Named seed data copied into playground tenants at registration."""

    __tablename__ = "demo_data_template"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    data: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
