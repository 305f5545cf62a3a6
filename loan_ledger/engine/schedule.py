"""Flat-rate totalization and monthly installment schedule."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, localcontext
from typing import Any

from loan_ledger.engine.dates import add_months, parse_date
from loan_ledger.engine.money import LEDGER_CONTEXT, round2, to_decimal
from loan_ledger.exceptions import InvalidScheduleInput
from loan_ledger.models import Installment, InstallmentStatus


@dataclass(frozen=True)
class LoanTotals:
    """Derived loan values."""

    total_value: Decimal
    installment_value: Decimal


def calculate_totals(amount: Any, interest_rate: Any, installments_count: Any) -> LoanTotals:
    """Compute the total and per-installment value of a loan.

    The interest rate is charged once, flat, and the result is multiplied
    by the installment count::

        total_value = round2(amount * (1 + interest_rate / 100) * installments_count)
        installment_value = round2(total_value / installments_count)

    This is not an amortization table. The two roundings may not add back
    up to ``total_value`` exactly.

    Parameters
    ----------
    amount : Any
        Principal, must be > 0.
    interest_rate : Any
        Percent, must be >= 0.
    installments_count : Any
        Positive integer.

    Returns
    -------
    LoanTotals
        Rounded totals.

    Raises
    ------
    InvalidScheduleInput
        If any argument is missing or out of range.
    """
    principal = _decimal_arg(amount, "amount")
    rate = _decimal_arg(interest_rate, "interest_rate")
    count = _count_arg(installments_count)

    if principal <= 0:
        raise InvalidScheduleInput(f"amount must be greater than zero, got {principal}")
    if rate < 0:
        raise InvalidScheduleInput(f"interest_rate must not be negative, got {rate}")

    with localcontext(LEDGER_CONTEXT):
        total_value = round2(principal * (1 + rate / 100) * count)
        installment_value = round2(total_value / count)

    return LoanTotals(total_value=total_value, installment_value=installment_value)


def generate_schedule(
    loan_id: str,
    installments_count: Any,
    installment_amount: Any,
    first_due_date: date | str,
) -> list[Installment]:
    """Build the installment list of a loan.

    Installment ``i`` (1-based) is due ``i - 1`` calendar months after
    ``first_due_date``; see :func:`loan_ledger.engine.dates.add_months`
    for the month-end rule. All installments start ``PENDING``.

    Raises
    ------
    InvalidScheduleInput
        If the count or amount is not positive, or the date is unreadable.
    """
    count = _count_arg(installments_count)
    amount = _decimal_arg(installment_amount, "installment_amount")
    if amount <= 0:
        raise InvalidScheduleInput(f"installment_amount must be greater than zero, got {amount}")
    try:
        start = parse_date(first_due_date)
    except ValueError as e:
        raise InvalidScheduleInput(f"first_due_date is not a valid date: {first_due_date!r}") from e

    return [
        Installment(
            installment_id=None,
            loan_id=loan_id,
            installment_number=i,
            due_date=add_months(start, i - 1),
            amount=amount,
            status=InstallmentStatus.PENDING,
        )
        for i in range(1, count + 1)
    ]


def _decimal_arg(value: Any, name: str) -> Decimal:
    if value is None:
        raise InvalidScheduleInput(f"{name} is required")
    try:
        return to_decimal(value)
    except (TypeError, ValueError) as e:
        raise InvalidScheduleInput(f"{name} is not a number: {value!r}") from e


def _count_arg(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScheduleInput(f"installments_count must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidScheduleInput(f"installments_count must be greater than zero, got {value}")
    return value
