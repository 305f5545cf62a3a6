"""Client registry service."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable

from loan_ledger.engine import overdue_days
from loan_ledger.exceptions import InvalidClientData
from loan_ledger.formatting import clean_digits, validate_cpf, validate_email
from loan_ledger.models import Address, Client, InstallmentStatus, Loan, LoanStatus
from loan_ledger.services.pagination import paginate
from loan_ledger.store.base import LedgerRepository

logger = logging.getLogger(__name__)


@dataclass
class ClientOverview:
    """A client with its loans, as listed on the clients screen."""

    client: Client
    loans: list[Loan] = field(default_factory=list)
    has_overdue_payments: bool = False

    @property
    def has_active_loans(self) -> bool:
        return any(loan.status == LoanStatus.ACTIVE for loan in self.loans)


class ClientService:
    """Create, edit and search clients.

    CPF, phone and CEP are stored as digits only.
    """

    def __init__(self, store: LedgerRepository, clock: Callable[[], datetime] = datetime.now) -> None:
        self.store = store
        self.clock = clock

    def create_client(self, client: Client) -> Client:
        """Validate and store a new client.

        Raises
        ------
        InvalidClientData
            If the name is empty, the CPF or email is invalid, or the CPF is
            already registered for the same owner.
        """
        client = self._normalized(client)
        self._validate(client)
        if self.search_by_cpf(client.cpf, owner_id=client.owner_id) is not None:
            raise InvalidClientData(f"CPF {client.cpf} already registered")

        client = self.store.add_client(client)
        logger.info("Created client %s", client.client_id)
        return client

    def update_client(self, client_id: str, **changes: Any) -> Client:
        """Apply edits with the same normalization and checks as creation.

        Raises
        ------
        InvalidClientData
            If the edited record is invalid or its CPF belongs to another
            client of the same owner.
        """
        current = self.store.get_client(client_id)
        candidate = self._normalized(replace(current, **changes))
        self._validate(candidate)
        if "cpf" in changes:
            holder = self.search_by_cpf(candidate.cpf, owner_id=candidate.owner_id)
            if holder is not None and holder.client_id != client_id:
                raise InvalidClientData(f"CPF {candidate.cpf} already registered")
        normalized = {name: getattr(candidate, name) for name in changes}
        return self.store.update_client(client_id, normalized)

    def delete_client(self, client_id: str) -> None:
        """Delete a client together with its loans."""
        self.store.delete_client(client_id)
        logger.info("Deleted client %s", client_id)

    def get_client(self, client_id: str) -> Client:
        return self.store.get_client(client_id)

    def search_by_cpf(self, cpf: str, owner_id: str | None = None) -> Client | None:
        """Exact CPF lookup (punctuation ignored)."""
        digits = clean_digits(cpf)
        if not digits:
            return None
        for client in self.store.find_clients(owner_id=owner_id, cpf=digits):
            if client.cpf == digits:
                return client
        return None

    def list_clients(
        self,
        owner_id: str | None = None,
        name: str | None = None,
        cpf: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> list[Client]:
        """Clients newest first; ``name`` and ``cpf`` match partially."""
        clients = self.store.find_clients(owner_id=owner_id, cpf=clean_digits(cpf) or None, name=name)
        return paginate(clients, page, limit)

    def get_clients_with_loans(self, owner_id: str | None = None) -> list[ClientOverview]:
        """Every client with its loans and whether any installment is past due."""
        now = self.clock()
        overviews = []
        for client in self.store.find_clients(owner_id=owner_id):
            loans = self.store.find_loans(client_id=client.client_id)
            has_overdue = any(
                installment.status != InstallmentStatus.PAID and overdue_days(installment.due_date, now) > 0
                for loan in loans
                for installment in self.store.get_loan_installments(loan.loan_id)
            )
            overviews.append(ClientOverview(client=client, loans=loans, has_overdue_payments=has_overdue))
        return overviews

    @staticmethod
    def _normalized(client: Client) -> Client:
        address = client.address or Address()
        return replace(
            client,
            name=(client.name or "").strip(),
            cpf=clean_digits(client.cpf),
            phone=clean_digits(client.phone),
            email=(client.email or "").strip(),
            address=replace(address, postal_code=clean_digits(address.postal_code)),
        )

    @staticmethod
    def _validate(client: Client) -> None:
        if not client.name:
            raise InvalidClientData("Client name is required")
        if not validate_cpf(client.cpf):
            raise InvalidClientData(f"Invalid CPF: {client.cpf!r}")
        if client.email and not validate_email(client.email):
            raise InvalidClientData(f"Invalid email: {client.email!r}")
