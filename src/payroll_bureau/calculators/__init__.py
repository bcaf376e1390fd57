"""Payroll calendar calculators."""

from payroll_bureau.calculators.hmrc_deadlines import (
    calculate_eps_due_date,
    calculate_next_pay_date,
    calculate_paye_payment_date,
    calculate_period_dates,
    calculate_rti_due_date,
    get_payroll_status,
    get_tax_month,
)

__all__ = [
    "get_tax_month",
    "calculate_next_pay_date",
    "calculate_rti_due_date",
    "calculate_eps_due_date",
    "calculate_paye_payment_date",
    "calculate_period_dates",
    "get_payroll_status",
]
