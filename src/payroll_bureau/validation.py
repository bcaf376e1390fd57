"""Input validation for registration and onboarding requests.

Pure functions and pydantic models: nothing here touches the database or the
identity provider.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from payroll_bureau.errors import ValidationError

# Consumer mailbox providers; bureaus must register with a company address
BLOCKED_DOMAINS = frozenset(
    {
        "gmail.com",
        "outlook.com",
        "hotmail.com",
        "yahoo.com",
        "aol.com",
        "icloud.com",
        "live.com",
        "msn.com",
        "protonmail.com",
    }
)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

MAX_NAME_LENGTH = 255
MIN_PASSWORD_LENGTH = 8


def email_domain(email: str) -> str:
    """Return the part of an address after the ``@``."""
    return email.split("@", 1)[1] if "@" in email else ""


def check_business_email(email: str) -> str | None:
    """Return an error message for a non-business email, or None when valid."""
    if not EMAIL_PATTERN.match(email):
        return "Please enter a valid email address"
    if email_domain(email).lower() in BLOCKED_DOMAINS:
        return (
            "Please use your company email address. "
            "Personal email providers are not allowed."
        )
    return None


def check_contact_email(email: str | None) -> str | None:
    """Client contact addresses may be blank, but not malformed."""
    if email and not EMAIL_PATTERN.match(email):
        raise ValueError("Please enter a valid email address")
    return email


def check_password_strength(password: str) -> list[str]:
    """Return every password rule the value breaks (empty when strong enough)."""
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not re.search(r"[a-z]", password):
        problems.append("Password must include lowercase letter")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must include uppercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must include number")
    return problems


def _check_bounded_name(value: str, required_msg: str, too_long_msg: str) -> str:
    if len(value) < 1:
        raise ValueError(required_msg)
    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(too_long_msg)
    return value


class RegistrationRequest(BaseModel):
    """Admin registration payload."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=False)

    email: str
    password: str
    company_name: str = Field(alias="companyName")
    admin_name: str = Field(alias="adminName")
    phone: str | None = None

    @field_validator("email")
    @classmethod
    def email_must_be_business(cls, v: str) -> str:
        problem = check_business_email(v)
        if problem:
            raise ValueError(problem)
        return v

    @field_validator("password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        problems = check_password_strength(v)
        if problems:
            raise ValueError(problems[0])
        return v

    @field_validator("company_name")
    @classmethod
    def company_name_bounds(cls, v: str) -> str:
        return _check_bounded_name(v, "Company name is required", "Company name too long")

    @field_validator("admin_name")
    @classmethod
    def admin_name_bounds(cls, v: str) -> str:
        return _check_bounded_name(v, "Your full name is required", "Name too long")

    @property
    def company_domain(self) -> str:
        return email_domain(self.email)


def format_validation_errors(exc: PydanticValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{field, message}`` details."""
    details = []
    for err in exc.errors():
        message = str(err.get("msg", ""))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append(
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": message,
            }
        )
    return details


def validate_registration(data: dict[str, Any]) -> RegistrationRequest:
    """Validate a raw registration body.

    Raises:
        ValidationError: with one detail entry per failing field.
    """
    try:
        return RegistrationRequest.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError("Validation error", details=format_validation_errors(exc)) from exc
