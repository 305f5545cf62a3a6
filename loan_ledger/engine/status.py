"""Loan status resolution."""

from typing import Iterable

from loan_ledger.models import Installment, InstallmentStatus, LoanStatus


def resolve_loan_status(installments: Iterable[Installment]) -> LoanStatus:
    """Return ``SETTLED`` iff there is at least one installment and all are paid."""
    statuses = [installment.status for installment in installments]
    if statuses and all(status == InstallmentStatus.PAID for status in statuses):
        return LoanStatus.SETTLED
    return LoanStatus.ACTIVE
