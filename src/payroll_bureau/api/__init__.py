"""HTTP API for the bureau back office."""

from payroll_bureau.api.app import create_app

__all__ = ["create_app"]
