"""Overdue interest engine: daily-compounding mora plus a flat late fee."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, localcontext
from typing import Any, Callable

from loan_ledger.engine.dates import overdue_days as count_overdue_days
from loan_ledger.engine.money import LEDGER_CONTEXT, ZERO, round2, to_decimal
from loan_ledger.exceptions import InvalidAccrualInput
from loan_ledger.models import Installment, InstallmentStatus, Loan


@dataclass(frozen=True)
class Accrual:
    """Charges due on one installment as of a given moment."""

    mora_interest: Decimal
    late_fee: Decimal
    total: Decimal
    overdue_days: int

    @property
    def is_overdue(self) -> bool:
        return self.overdue_days > 0

    @property
    def charges(self) -> Decimal:
        """Mora interest plus late fee."""
        return self.mora_interest + self.late_fee


def rate_or_zero(value: Any) -> Decimal:
    """Read a percentage rate, falling back to 0 when absent, invalid or negative."""
    if value is None:
        return ZERO
    try:
        rate = to_decimal(value)
    except (TypeError, ValueError):
        return ZERO
    return rate if rate >= 0 else ZERO


def accrue_amount(
    amount: Decimal,
    due_date: date,
    status: InstallmentStatus | str,
    mora_interest_rate: Any,
    late_fee_rate: Any,
    as_of: date | datetime,
) -> Accrual:
    """Compute mora interest and late fee for an installment amount.

    Unpaid installments whose due date (at midnight) is before ``as_of``
    are overdue::

        mora_interest = amount * ((1 + mora_rate / 100) ** days - 1)
        late_fee = amount * late_fee_rate / 100
        total = amount + mora_interest + late_fee

    Mora compounds daily on the installment amount only. Both charges are
    rounded to cents. Everything else returns zero charges and
    ``total == amount``.
    """
    days = count_overdue_days(due_date, as_of)
    if status == InstallmentStatus.PAID or days == 0:
        return Accrual(mora_interest=ZERO, late_fee=ZERO, total=amount, overdue_days=0)

    mora_rate = rate_or_zero(mora_interest_rate)
    fee_rate = rate_or_zero(late_fee_rate)

    with localcontext(LEDGER_CONTEXT):
        factor = (1 + mora_rate / 100) ** days
        mora_interest = round2(amount * (factor - 1))
        late_fee = round2(amount * fee_rate / 100)
        total = amount + mora_interest + late_fee

    return Accrual(
        mora_interest=mora_interest,
        late_fee=late_fee,
        total=total,
        overdue_days=days,
    )


def accrue(
    installment: Installment,
    loan: Loan,
    as_of: date | datetime | None = None,
    clock: Callable[[], datetime] | None = None,
) -> Accrual:
    """Compute the overdue charges of ``installment`` under ``loan``'s rates.

    Pure and idempotent: only the installment's amount, due date and
    status and the loan's current rates are read. Previously applied
    charges stored on the installment are ignored.

    Parameters
    ----------
    installment : Installment
        Installment to evaluate.
    loan : Loan
        Owning loan, source of ``mora_interest_rate`` and ``late_fee_rate``.
    as_of : date | datetime | None
        Evaluation moment. Defaults to ``clock()``.
    clock : Callable[[], datetime] | None
        Time source used when ``as_of`` is omitted (default ``datetime.now``).

    Raises
    ------
    InvalidAccrualInput
        If the installment has no usable amount or due date.
    """
    if as_of is None:
        as_of = (clock or datetime.now)()

    if installment.amount is None or installment.due_date is None:
        raise InvalidAccrualInput(
            f"Installment {installment.installment_id} has no amount or due date"
        )
    try:
        amount = to_decimal(installment.amount)
    except (TypeError, ValueError) as e:
        raise InvalidAccrualInput(f"Installment amount is not a number: {installment.amount!r}") from e

    return accrue_amount(
        amount,
        installment.due_date,
        installment.status,
        loan.mora_interest_rate,
        loan.late_fee_rate,
        as_of,
    )
