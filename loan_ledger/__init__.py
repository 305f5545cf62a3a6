"""Loan interest and installment accrual engine for a client-managed lending ledger."""

__version__ = "0.1.0"
