"""Ledger services used by the application layer."""

from loan_ledger.services.clients import ClientOverview, ClientService
from loan_ledger.services.ledger import DashboardStats, LoanDetails, LoanLedgerService

__all__ = [
    "ClientOverview",
    "ClientService",
    "DashboardStats",
    "LoanDetails",
    "LoanLedgerService",
]
