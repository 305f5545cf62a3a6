"""Domain models for the lending ledger."""

from loan_ledger.models.base import Address
from loan_ledger.models.client import Client
from loan_ledger.models.enums import InstallmentStatus, LoanStatus
from loan_ledger.models.loan import Installment, Loan

__all__ = [
    "Address",
    "Client",
    "Installment",
    "InstallmentStatus",
    "Loan",
    "LoanStatus",
]
