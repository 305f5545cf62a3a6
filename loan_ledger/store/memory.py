"""In-memory ledger store with referential integrity."""

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Iterator, TypeVar

from loan_ledger.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    ReferentialIntegrityError,
)
from loan_ledger.models import Client, Installment, Loan, LoanStatus
from loan_ledger.store.base import LedgerRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class InMemoryLedgerStore(LedgerRepository):
    """Dict-backed store with relationship tracking.

    A single re-entrant lock guards reads, writes and :meth:`transaction`,
    so a reader never observes half of a grouped update.
    """

    # Primary entities
    clients: dict[str, Client] = field(default_factory=dict)
    loans: dict[str, Loan] = field(default_factory=dict)
    installments: dict[str, Installment] = field(default_factory=dict)

    # Relationship indexes
    _client_loans: dict[str, list[str]] = field(default_factory=dict)
    _loan_installments: dict[str, list[str]] = field(default_factory=dict)

    _lock: Any = field(default_factory=threading.RLock, repr=False)
    _depth: int = field(default=0, repr=False)

    @contextmanager
    def transaction(self) -> Iterator["InMemoryLedgerStore"]:
        """Hold the lock for a group of writes.

        If an exception escapes the outermost block, every table and index
        is restored to its state on entry. Nested blocks join the outer one.
        """
        with self._lock:
            snapshot = self._snapshot() if self._depth == 0 else None
            self._depth += 1
            try:
                yield self
            except BaseException:
                if snapshot is not None:
                    self._restore(snapshot)
                    logger.debug("Rolled back in-memory transaction")
                raise
            finally:
                self._depth -= 1

    def _snapshot(self) -> dict[str, dict]:
        # Entities are replaced on update, never mutated, so shallow copies suffice
        return {
            "clients": dict(self.clients),
            "loans": dict(self.loans),
            "installments": dict(self.installments),
            "_client_loans": {k: list(v) for k, v in self._client_loans.items()},
            "_loan_installments": {k: list(v) for k, v in self._loan_installments.items()},
        }

    def _restore(self, snapshot: dict[str, dict]) -> None:
        for name, table in snapshot.items():
            setattr(self, name, table)

    # Clients
    def add_client(self, client: Client) -> Client:
        """Add a client to the store."""
        with self._lock:
            client = replace(
                client,
                client_id=client.client_id or _new_id(),
                created_at=client.created_at or datetime.now(),
            )
            self.clients[client.client_id] = client
            self._client_loans[client.client_id] = []
            return client

    def update_client(self, client_id: str, changes: dict[str, Any]) -> Client:
        with self._lock:
            client = _apply(self.get_client(client_id), changes, "client_id")
            self.clients[client_id] = client
            return client

    def delete_client(self, client_id: str) -> None:
        with self._lock:
            self.get_client(client_id)
            for loan_id in list(self._client_loans.get(client_id, [])):
                self.delete_loan(loan_id)
            del self.clients[client_id]
            del self._client_loans[client_id]

    def get_client(self, client_id: str) -> Client:
        with self._lock:
            try:
                return self.clients[client_id]
            except KeyError:
                raise EntityNotFoundError(f"Client {client_id} not found") from None

    def find_clients(
        self,
        owner_id: str | None = None,
        cpf: str | None = None,
        name: str | None = None,
    ) -> list[Client]:
        with self._lock:
            result = []
            for client in reversed(list(self.clients.values())):
                if owner_id is not None and client.owner_id != owner_id:
                    continue
                if cpf and cpf not in client.cpf:
                    continue
                if name and name.lower() not in client.name.lower():
                    continue
                result.append(client)
            return result

    # Loans
    def add_loan(self, loan: Loan) -> Loan:
        """Add a loan to the store."""
        with self._lock:
            if loan.client_id not in self.clients:
                raise ReferentialIntegrityError(f"Client {loan.client_id} not found")

            loan = replace(
                loan,
                loan_id=loan.loan_id or _new_id(),
                created_at=loan.created_at or datetime.now(),
            )
            self.loans[loan.loan_id] = loan
            self._client_loans[loan.client_id].append(loan.loan_id)
            self._loan_installments[loan.loan_id] = []
            logger.debug("Stored loan %s for client %s", loan.loan_id, loan.client_id)
            return loan

    def update_loan(self, loan_id: str, changes: dict[str, Any]) -> Loan:
        with self._lock:
            current = self.get_loan(loan_id)
            new_client = changes.get("client_id", current.client_id)
            if new_client not in self.clients:
                raise ReferentialIntegrityError(f"Client {new_client} not found")

            loan = _apply(current, changes, "loan_id")
            if loan.client_id != current.client_id:
                self._client_loans[current.client_id].remove(loan_id)
                self._client_loans[loan.client_id].append(loan_id)
            self.loans[loan_id] = loan
            return loan

    def delete_loan(self, loan_id: str) -> None:
        with self._lock:
            loan = self.get_loan(loan_id)
            for installment_id in self._loan_installments.pop(loan_id, []):
                del self.installments[installment_id]
            self._client_loans[loan.client_id].remove(loan_id)
            del self.loans[loan_id]
            logger.debug("Deleted loan %s", loan_id)

    def get_loan(self, loan_id: str) -> Loan:
        with self._lock:
            try:
                return self.loans[loan_id]
            except KeyError:
                raise EntityNotFoundError(f"Loan {loan_id} not found") from None

    def find_loans(
        self,
        owner_id: str | None = None,
        client_id: str | None = None,
        status: LoanStatus | None = None,
    ) -> list[Loan]:
        with self._lock:
            if client_id is not None:
                candidates = [self.loans[lid] for lid in self._client_loans.get(client_id, [])]
            else:
                candidates = list(self.loans.values())
            return [
                loan
                for loan in reversed(candidates)
                if (owner_id is None or loan.owner_id == owner_id)
                and (status is None or loan.status == status)
            ]

    # Installments
    def add_installments(self, installments: list[Installment]) -> list[Installment]:
        """Add a batch of installments; nothing is stored if any reference is invalid."""
        with self._lock:
            for installment in installments:
                if installment.loan_id not in self.loans:
                    raise ReferentialIntegrityError(f"Loan {installment.loan_id} not found")

            now = datetime.now()
            stored = []
            for installment in installments:
                installment = replace(
                    installment,
                    installment_id=installment.installment_id or _new_id(),
                    created_at=installment.created_at or now,
                )
                self.installments[installment.installment_id] = installment
                self._loan_installments[installment.loan_id].append(installment.installment_id)
                stored.append(installment)
            return stored

    def update_installment(self, installment_id: str, changes: dict[str, Any]) -> Installment:
        with self._lock:
            installment = _apply(self.get_installment(installment_id), changes, "installment_id")
            self.installments[installment_id] = installment
            return installment

    def get_installment(self, installment_id: str, for_update: bool = False) -> Installment:
        # The store lock already serializes writers
        with self._lock:
            try:
                return self.installments[installment_id]
            except KeyError:
                raise EntityNotFoundError(f"Installment {installment_id} not found") from None

    def get_loan_installments(self, loan_id: str) -> list[Installment]:
        """Get all installments for a loan."""
        with self._lock:
            ids = self._loan_installments.get(loan_id, [])
            return sorted(
                (self.installments[iid] for iid in ids),
                key=lambda i: i.installment_number,
            )

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        with self._lock:
            return {
                "clients": len(self.clients),
                "loans": len(self.loans),
                "installments": len(self.installments),
            }


def _new_id() -> str:
    return str(uuid.uuid4())


def _apply(entity: T, changes: dict[str, Any], id_field: str) -> T:
    """Return a copy of ``entity`` with ``changes`` applied and ``updated_at`` bumped."""
    allowed = {f.name for f in fields(entity)} - {id_field, "created_at", "updated_at"}
    unknown = set(changes) - allowed
    if unknown:
        raise InvalidEntityStateError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    return replace(entity, **changes, updated_at=datetime.now())
