"""Pytest configuration and fixtures."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from loan_ledger.models import Address, Client, Installment, InstallmentStatus, Loan
from loan_ledger.services import ClientService, LoanLedgerService
from loan_ledger.store import InMemoryLedgerStore

VALID_CPF = "52998224725"
OTHER_VALID_CPF = "11144477735"


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def now() -> datetime:
    """Fixed wall clock for services and reports."""
    return datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def clock(now: datetime):
    """Clock callable returning ``now``."""
    return lambda: now


@pytest.fixture
def store() -> InMemoryLedgerStore:
    """Create a fresh store for each test."""
    return InMemoryLedgerStore()


@pytest.fixture
def ledger(store: InMemoryLedgerStore, clock) -> LoanLedgerService:
    return LoanLedgerService(store, clock=clock)


@pytest.fixture
def client_service(store: InMemoryLedgerStore, clock) -> ClientService:
    return ClientService(store, clock=clock)


@pytest.fixture
def sample_client() -> Client:
    """Client as typed into the registration form."""
    return Client(
        client_id=None,
        name="Maria da Silva",
        cpf="529.982.247-25",
        rg="12.345.678-9",
        birth_date=date(1985, 4, 12),
        mother_name="Ana da Silva",
        phone="(11) 98765-4321",
        email="maria@example.com",
        address=Address(
            street="Rua das Flores",
            number="100",
            neighborhood="Centro",
            city="São Paulo",
            state="SP",
            postal_code="01310-100",
        ),
    )


@pytest.fixture
def stored_client(store: InMemoryLedgerStore, sample_client: Client) -> Client:
    """Client already in the store, CPF as digits."""
    return store.add_client(Client(client_id=None, name=sample_client.name, cpf=VALID_CPF, address=sample_client.address))


@pytest.fixture
def sample_loan() -> Loan:
    """100.00 at 0% in one installment, 1%/day mora and 2% late fee."""
    return Loan(
        loan_id="loan-001",
        client_id="client-001",
        amount=Decimal("100.00"),
        interest_rate=Decimal("0"),
        mora_interest_rate=Decimal("1"),
        late_fee_rate=Decimal("2"),
        installments_count=1,
        first_due_date=date(2024, 3, 1),
        total_value=Decimal("100.00"),
        installment_value=Decimal("100.00"),
    )


@pytest.fixture
def sample_installment() -> Installment:
    return Installment(
        installment_id="inst-001",
        loan_id="loan-001",
        installment_number=1,
        due_date=date(2024, 3, 1),
        amount=Decimal("100.00"),
        status=InstallmentStatus.PENDING,
    )
