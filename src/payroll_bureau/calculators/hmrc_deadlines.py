"""HMRC payroll calendar calculations.

UK tax months run from the 6th of one calendar month to the 5th of the next:
tax month 1 is 6 April to 5 May, tax month 12 is 6 March to 5 April.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from payroll_bureau.models.client import PayFrequency, PayrollRunStatus

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

EPS_DUE_DAY = 19
PAYE_PAYMENT_DUE_DAY = 22
DUE_SOON_DAYS = 5

# Days before the pay date that a non-monthly period starts
PERIOD_DAYS_BACK = {
    PayFrequency.WEEKLY: 6,
    PayFrequency.FORTNIGHTLY: 13,
    PayFrequency.FOUR_WEEKLY: 27,
}


def get_tax_month(d: date) -> int:
    """Return the HMRC tax month number (1-12) containing ``d``."""
    # Before the 6th the date still belongs to the previous calendar month's tax month
    effective_month = d.month if d.day >= 6 else (d.month - 2) % 12 + 1
    return (effective_month - 4) % 12 + 1


def _weekday_number(day_name: str) -> int:
    try:
        return WEEKDAYS[day_name.lower()]
    except KeyError:
        raise ValueError(f"Unknown weekday: {day_name!r}") from None


def _last_weekday_of_month(year: int, month: int, weekday: int) -> date:
    last = date(year, month, calendar.monthrange(year, month)[1])
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def _clamped_day(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def _next_month(year: int, month: int) -> tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def calculate_next_pay_date(frequency: str, pay_day: str, after: date) -> date:
    """Return the first pay date strictly after ``after``.

    Monthly schedules take either a day number (clamped to the month length)
    or ``last_<weekday>``. Weekly, fortnightly and four-weekly schedules take
    a weekday name and return its next occurrence.
    """
    if frequency == PayFrequency.MONTHLY:
        if pay_day.startswith("last_"):
            weekday = _weekday_number(pay_day[len("last_"):])
            candidate = _last_weekday_of_month(after.year, after.month, weekday)
            if candidate > after:
                return candidate
            year, month = _next_month(after.year, after.month)
            return _last_weekday_of_month(year, month, weekday)

        day_number = int(pay_day)
        candidate = _clamped_day(after.year, after.month, day_number)
        if candidate > after:
            return candidate
        year, month = _next_month(after.year, after.month)
        return _clamped_day(year, month, day_number)

    if frequency not in PERIOD_DAYS_BACK:
        raise ValueError(f"Unknown pay frequency: {frequency!r}")

    # TODO: fortnightly and four-weekly should step from the previous pay date, not the next weekday
    days_until = (_weekday_number(pay_day) - after.weekday()) % 7 or 7
    return after + timedelta(days=days_until)


def calculate_rti_due_date(pay_date: date) -> date:
    """FPS must reach HMRC on or before the pay date."""
    return pay_date


def _month_after_tax_month(pay_date: date) -> tuple[int, int]:
    """Calendar (year, month) in which the pay date's tax month ends."""
    tax_month = get_tax_month(pay_date)
    month = (tax_month + 3) % 12 + 1
    year = pay_date.year + 1 if month < pay_date.month else pay_date.year
    return year, month


def calculate_eps_due_date(pay_date: date) -> date:
    """EPS is due by the 19th of the month following the tax month."""
    year, month = _month_after_tax_month(pay_date)
    return date(year, month, EPS_DUE_DAY)


def calculate_paye_payment_date(pay_date: date) -> date:
    """Electronic PAYE payment is due by the 22nd following the tax month."""
    year, month = _month_after_tax_month(pay_date)
    return date(year, month, PAYE_PAYMENT_DUE_DAY)


def calculate_period_dates(frequency: str, pay_date: date) -> tuple[date, date]:
    """Return ``(period_start, period_end)`` for the period paid on ``pay_date``."""
    if frequency == PayFrequency.MONTHLY:
        last_day = calendar.monthrange(pay_date.year, pay_date.month)[1]
        return pay_date.replace(day=1), pay_date.replace(day=last_day)

    try:
        days_back = PERIOD_DAYS_BACK[PayFrequency(frequency)]
    except ValueError:
        raise ValueError(f"Unknown pay frequency: {frequency!r}") from None
    return pay_date - timedelta(days=days_back), pay_date


def get_payroll_status(
    pay_date: date,
    total_items: int,
    completed_items: int,
    today: date | None = None,
) -> PayrollRunStatus:
    """Derive a run's status from its checklist progress and pay date."""
    today = today or date.today()

    if total_items > 0 and completed_items == total_items:
        return PayrollRunStatus.COMPLETE

    if pay_date < today and completed_items < total_items:
        return PayrollRunStatus.OVERDUE

    days_until = (pay_date - today).days
    if days_until <= DUE_SOON_DAYS:
        return PayrollRunStatus.DUE_SOON if completed_items == 0 else PayrollRunStatus.IN_PROGRESS

    if 0 < completed_items < total_items:
        return PayrollRunStatus.IN_PROGRESS

    return PayrollRunStatus.NOT_STARTED
