"""Client model."""

from dataclasses import dataclass, field
from datetime import date, datetime

from loan_ledger.models.base import Address


@dataclass
class Client:
    """Borrower registered by an account owner."""

    client_id: str | None
    name: str
    cpf: str  # digits only
    owner_id: str | None = None
    rg: str = ""
    birth_date: date | None = None
    mother_name: str = ""
    father_name: str = ""
    phone: str = ""
    email: str = ""
    address: Address = field(default_factory=Address)
    created_at: datetime | None = None
    updated_at: datetime | None = None
