"""Loan interest and installment accrual engine."""

from loan_ledger.engine.accrual import Accrual, accrue, accrue_amount
from loan_ledger.engine.dates import add_months, overdue_days, parse_date
from loan_ledger.engine.money import round2, to_decimal
from loan_ledger.engine.schedule import LoanTotals, calculate_totals, generate_schedule
from loan_ledger.engine.status import resolve_loan_status

__all__ = [
    "Accrual",
    "LoanTotals",
    "accrue",
    "accrue_amount",
    "add_months",
    "calculate_totals",
    "generate_schedule",
    "overdue_days",
    "parse_date",
    "resolve_loan_status",
    "round2",
    "to_decimal",
]
