"""Payroll bureau back office: tenant provisioning, dashboard stats, client onboarding."""

__version__ = "0.1.0"
