"""Loan and installment models."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from loan_ledger.models.enums import InstallmentStatus, LoanStatus


@dataclass
class Loan:
    """Loan contract entity."""

    loan_id: str | None
    client_id: str
    amount: Decimal  # Principal
    interest_rate: Decimal  # Percent, applied once (flat)
    mora_interest_rate: Decimal  # Percent per day on overdue installments
    late_fee_rate: Decimal  # Percent, one-time on overdue installments
    installments_count: int
    first_due_date: date
    total_value: Decimal
    installment_value: Decimal
    status: LoanStatus = LoanStatus.ACTIVE
    owner_id: str | None = None
    payment_location: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Installment:
    """Scheduled repayment of a loan (parcela)."""

    installment_id: str | None
    loan_id: str
    installment_number: int  # 1, 2, 3, ...
    due_date: date
    amount: Decimal
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_at: date | None = None
    mora_interest_applied: Decimal | None = None
    late_fee_applied: Decimal | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
