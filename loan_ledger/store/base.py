"""Persistence interface consumed by the ledger services."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any

from loan_ledger.models import Client, Installment, Loan, LoanStatus


class LedgerRepository(ABC):
    """Storage of clients, loans and installments.

    Implementations raise ``EntityNotFoundError`` for unknown ids,
    ``ReferentialIntegrityError`` for dangling references and
    ``PersistenceError`` for backend failures. Created entities are
    returned with their identifiers and timestamps filled in.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Any]:
        """Group writes so observers see them all or none of them."""

    # Clients
    @abstractmethod
    def add_client(self, client: Client) -> Client:
        """Insert a client."""

    @abstractmethod
    def update_client(self, client_id: str, changes: dict[str, Any]) -> Client:
        """Apply field changes to a client."""

    @abstractmethod
    def delete_client(self, client_id: str) -> None:
        """Delete a client and, in cascade, its loans."""

    @abstractmethod
    def get_client(self, client_id: str) -> Client:
        """Get a client by id."""

    @abstractmethod
    def find_clients(
        self,
        owner_id: str | None = None,
        cpf: str | None = None,
        name: str | None = None,
    ) -> list[Client]:
        """Clients newest first; ``cpf`` and ``name`` match substrings."""

    # Loans
    @abstractmethod
    def add_loan(self, loan: Loan) -> Loan:
        """Insert a loan."""

    @abstractmethod
    def update_loan(self, loan_id: str, changes: dict[str, Any]) -> Loan:
        """Apply field changes to a loan."""

    @abstractmethod
    def delete_loan(self, loan_id: str) -> None:
        """Delete a loan and its installments."""

    @abstractmethod
    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by id."""

    @abstractmethod
    def find_loans(
        self,
        owner_id: str | None = None,
        client_id: str | None = None,
        status: LoanStatus | None = None,
    ) -> list[Loan]:
        """Loans newest first, optionally filtered."""

    # Installments
    @abstractmethod
    def add_installments(self, installments: list[Installment]) -> list[Installment]:
        """Batch insert a generated schedule."""

    @abstractmethod
    def update_installment(self, installment_id: str, changes: dict[str, Any]) -> Installment:
        """Apply field changes to an installment."""

    @abstractmethod
    def get_installment(self, installment_id: str, for_update: bool = False) -> Installment:
        """Get an installment by id.

        With ``for_update`` inside :meth:`transaction`, the row stays locked
        against concurrent writers until the transaction ends.
        """

    @abstractmethod
    def get_loan_installments(self, loan_id: str) -> list[Installment]:
        """All installments of a loan ordered by installment number."""
