"""Tests for InMemoryLedgerStore and backend selection."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import psycopg
import pytest

from loan_ledger.config import LedgerConfig
from loan_ledger.engine import generate_schedule
from loan_ledger.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    ReferentialIntegrityError,
)
from loan_ledger.models import Client, Installment, InstallmentStatus, Loan, LoanStatus
from loan_ledger.store import InMemoryLedgerStore, PostgresLedgerStore, create_store


def make_loan(client_id: str, **overrides) -> Loan:
    values = dict(
        loan_id=None,
        client_id=client_id,
        amount=Decimal("1000.00"),
        interest_rate=Decimal("5"),
        mora_interest_rate=Decimal("1"),
        late_fee_rate=Decimal("2"),
        installments_count=3,
        first_due_date=date(2024, 1, 10),
        total_value=Decimal("3150.00"),
        installment_value=Decimal("1050.00"),
    )
    values.update(overrides)
    return Loan(**values)


@pytest.fixture
def loan(store: InMemoryLedgerStore, stored_client: Client) -> Loan:
    return store.add_loan(make_loan(stored_client.client_id))


@pytest.fixture
def installments(store: InMemoryLedgerStore, loan: Loan) -> list[Installment]:
    return store.add_installments(generate_schedule(loan.loan_id, 3, loan.installment_value, loan.first_due_date))


class TestClients:
    """Tests for client storage."""

    def test_add_assigns_id_and_timestamp(self, store: InMemoryLedgerStore) -> None:
        client = store.add_client(Client(client_id=None, name="João", cpf="11144477735"))

        assert client.client_id
        assert client.created_at is not None
        assert store.get_client(client.client_id) == client

    def test_get_missing(self, store: InMemoryLedgerStore) -> None:
        with pytest.raises(EntityNotFoundError):
            store.get_client("nope")

    def test_update(self, store: InMemoryLedgerStore, stored_client: Client) -> None:
        updated = store.update_client(stored_client.client_id, {"phone": "11987654321"})

        assert updated.phone == "11987654321"
        assert updated.updated_at is not None
        assert store.get_client(stored_client.client_id).phone == "11987654321"

    def test_update_rejects_unknown_and_id_fields(self, store: InMemoryLedgerStore, stored_client: Client) -> None:
        with pytest.raises(InvalidEntityStateError):
            store.update_client(stored_client.client_id, {"nickname": "x"})
        with pytest.raises(InvalidEntityStateError):
            store.update_client(stored_client.client_id, {"client_id": "other"})

    def test_find_newest_first_with_filters(self, store: InMemoryLedgerStore) -> None:
        first = store.add_client(Client(client_id=None, name="Ana Souza", cpf="52998224725", owner_id="u1"))
        second = store.add_client(Client(client_id=None, name="Bruno Lima", cpf="11144477735", owner_id="u1"))
        store.add_client(Client(client_id=None, name="Ana Costa", cpf="11144477735", owner_id="u2"))

        assert store.find_clients(owner_id="u1") == [second, first]
        assert store.find_clients(owner_id="u1", name="ana") == [first]
        assert store.find_clients(cpf="5299") == [first]

    def test_delete_cascades(self, store: InMemoryLedgerStore, stored_client: Client, installments) -> None:
        store.delete_client(stored_client.client_id)

        assert store.summary() == {"clients": 0, "loans": 0, "installments": 0}


class TestLoans:
    """Tests for loan storage."""

    def test_add_requires_client(self, store: InMemoryLedgerStore) -> None:
        with pytest.raises(ReferentialIntegrityError):
            store.add_loan(make_loan("missing"))

    def test_find_by_status_and_client(self, store: InMemoryLedgerStore, stored_client: Client, loan: Loan) -> None:
        settled = store.add_loan(make_loan(stored_client.client_id, status=LoanStatus.SETTLED))

        assert store.find_loans(client_id=stored_client.client_id) == [settled, loan]
        assert store.find_loans(status=LoanStatus.ACTIVE) == [loan]
        assert store.find_loans(owner_id="someone") == []

    def test_update_moves_client_index(self, store: InMemoryLedgerStore, stored_client: Client, loan: Loan) -> None:
        other = store.add_client(Client(client_id=None, name="João", cpf="11144477735"))

        store.update_loan(loan.loan_id, {"client_id": other.client_id})

        assert store.find_loans(client_id=stored_client.client_id) == []
        assert [l.loan_id for l in store.find_loans(client_id=other.client_id)] == [loan.loan_id]

    def test_update_to_missing_client(self, store: InMemoryLedgerStore, loan: Loan) -> None:
        with pytest.raises(ReferentialIntegrityError):
            store.update_loan(loan.loan_id, {"client_id": "missing"})

    def test_delete_removes_installments(self, store: InMemoryLedgerStore, loan: Loan, installments) -> None:
        store.delete_loan(loan.loan_id)

        assert store.installments == {}
        with pytest.raises(EntityNotFoundError):
            store.get_loan(loan.loan_id)
        with pytest.raises(EntityNotFoundError):
            store.delete_loan(loan.loan_id)


class TestInstallments:
    """Tests for installment storage."""

    def test_add_batch(self, installments: list[Installment]) -> None:
        assert len(installments) == 3
        assert len({i.installment_id for i in installments}) == 3

    def test_batch_is_all_or_nothing(self, store: InMemoryLedgerStore, loan: Loan) -> None:
        batch = generate_schedule(loan.loan_id, 2, 10, date(2024, 1, 1))
        batch.append(Installment(None, "missing", 3, date(2024, 3, 1), Decimal("10")))

        with pytest.raises(ReferentialIntegrityError):
            store.add_installments(batch)
        assert store.get_loan_installments(loan.loan_id) == []

    def test_loan_installments_sorted(self, store: InMemoryLedgerStore, loan: Loan) -> None:
        batch = generate_schedule(loan.loan_id, 3, 10, date(2024, 1, 1))
        store.add_installments(list(reversed(batch)))

        assert [i.installment_number for i in store.get_loan_installments(loan.loan_id)] == [1, 2, 3]

    def test_update_status(self, store: InMemoryLedgerStore, installments: list[Installment]) -> None:
        target = installments[0]

        updated = store.update_installment(
            target.installment_id, {"status": InstallmentStatus.PAID, "paid_at": date(2024, 1, 9)}
        )

        assert updated.status == InstallmentStatus.PAID
        assert store.get_installment(target.installment_id).paid_at == date(2024, 1, 9)

    def test_transaction_is_reentrant(self, store: InMemoryLedgerStore, installments: list[Installment]) -> None:
        with store.transaction():
            with store.transaction():
                store.update_installment(installments[0].installment_id, {"status": InstallmentStatus.OVERDUE})

        assert store.get_installment(installments[0].installment_id).status == InstallmentStatus.OVERDUE

    def test_transaction_rolls_back_on_error(
        self, store: InMemoryLedgerStore, loan: Loan, installments: list[Installment]
    ) -> None:
        target = installments[0].installment_id

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.update_installment(target, {"status": InstallmentStatus.PAID})
                with store.transaction():
                    store.update_loan(loan.loan_id, {"status": LoanStatus.SETTLED})
                store.delete_loan(loan.loan_id)
                raise RuntimeError("abort")

        assert store.get_installment(target).status == InstallmentStatus.PENDING
        assert store.get_loan(loan.loan_id).status == LoanStatus.ACTIVE
        assert [i.installment_id for i in store.get_loan_installments(loan.loan_id)] == [
            i.installment_id for i in installments
        ]


class TestCreateStore:
    """Tests for backend selection."""

    def test_memory_backend(self) -> None:
        assert isinstance(create_store(LedgerConfig()), InMemoryLedgerStore)

    def test_postgres_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        connect = MagicMock()
        monkeypatch.setattr(psycopg, "connect", connect)

        store = create_store(LedgerConfig(store="postgres"))

        assert isinstance(store, PostgresLedgerStore)
        connect.assert_called_once()
