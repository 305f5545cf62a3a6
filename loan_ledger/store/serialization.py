"""Mapping between ledger models and persisted records.

Column names are the ones the ledger database has always used (``amount``,
``interest_rate``, ``mora_interest_rate``, ``late_fee_rate``,
``installments_count``, ``first_due_date``, ``total_value``, ``status``,
``due_date``, ``paid_at``) and must not be renamed.
"""

from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from loan_ledger.engine.dates import parse_date
from loan_ledger.engine.money import to_decimal
from loan_ledger.models import (
    Address,
    Client,
    Installment,
    InstallmentStatus,
    Loan,
    LoanStatus,
)

# Client address fields are stored flat, with the source's column names.
ADDRESS_COLUMNS = {
    "street": "address",
    "number": "number",
    "complement": "complement",
    "neighborhood": "neighborhood",
    "city": "city",
    "state": "state",
    "postal_code": "cep",
    "country": "country",
}

LOAN_COLUMNS = (
    "client_id",
    "owner_id",
    "amount",
    "interest_rate",
    "mora_interest_rate",
    "late_fee_rate",
    "installments_count",
    "first_due_date",
    "total_value",
    "installment_value",
    "status",
    "payment_location",
)

INSTALLMENT_COLUMNS = (
    "loan_id",
    "installment_number",
    "due_date",
    "amount",
    "status",
    "paid_at",
    "mora_interest_applied",
    "late_fee_applied",
)

CLIENT_COLUMNS = (
    "owner_id",
    "name",
    "cpf",
    "rg",
    "birth_date",
    "mother_name",
    "father_name",
    "phone",
    "email",
)


def dataclass_to_dict(obj: Any) -> dict:
    """Convert dataclass to dict with proper serialization."""
    result = {}
    for key, value in asdict(obj).items():
        result[key] = serialize_value(value)
    return result


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def changes_to_columns(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Translate model field changes into column assignments."""
    columns: dict[str, Any] = {}
    for key, value in changes.items():
        if key == "address":
            columns.update(_address_to_columns(value))
        else:
            columns[key] = value.value if isinstance(value, Enum) else value
    return columns


# Loans
def loan_to_row(loan: Loan) -> dict[str, Any]:
    """Insertable record for a loan (without ``id``)."""
    row = {name: getattr(loan, name) for name in LOAN_COLUMNS}
    row["status"] = LoanStatus(loan.status).value
    return row


def row_to_loan(row: Mapping[str, Any]) -> Loan:
    """Build a loan from a stored record."""
    return Loan(
        loan_id=_str_or_none(row["id"]),
        client_id=str(row["client_id"]),
        owner_id=_str_or_none(row.get("owner_id")),
        amount=to_decimal(row["amount"]),
        interest_rate=to_decimal(row["interest_rate"]),
        mora_interest_rate=_decimal_or_zero(row.get("mora_interest_rate")),
        late_fee_rate=_decimal_or_zero(row.get("late_fee_rate")),
        installments_count=int(row["installments_count"]),
        first_due_date=parse_date(row["first_due_date"]),
        total_value=to_decimal(row["total_value"]),
        installment_value=to_decimal(row["installment_value"]),
        status=LoanStatus(row["status"]),
        payment_location=row.get("payment_location") or "",
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


# Installments
def installment_to_row(installment: Installment) -> dict[str, Any]:
    """Insertable record for an installment (without ``id``)."""
    row = {name: getattr(installment, name) for name in INSTALLMENT_COLUMNS}
    row["status"] = InstallmentStatus(installment.status).value
    return row


def row_to_installment(row: Mapping[str, Any]) -> Installment:
    """Build an installment from a stored record."""
    paid_at = row.get("paid_at")
    mora = row.get("mora_interest_applied")
    fee = row.get("late_fee_applied")
    return Installment(
        installment_id=_str_or_none(row["id"]),
        loan_id=str(row["loan_id"]),
        installment_number=int(row["installment_number"]),
        due_date=parse_date(row["due_date"]),
        amount=to_decimal(row["amount"]),
        status=InstallmentStatus(row["status"]),
        paid_at=parse_date(paid_at) if paid_at else None,
        mora_interest_applied=to_decimal(mora) if mora is not None else None,
        late_fee_applied=to_decimal(fee) if fee is not None else None,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


# Clients
def client_to_row(client: Client) -> dict[str, Any]:
    """Insertable record for a client (without ``id``)."""
    row = {name: getattr(client, name) for name in CLIENT_COLUMNS}
    row.update(_address_to_columns(client.address))
    return row


def row_to_client(row: Mapping[str, Any]) -> Client:
    """Build a client from a stored record."""
    birth_date = row.get("birth_date")
    address = Address(
        **{attr: row.get(column) or "" for attr, column in ADDRESS_COLUMNS.items() if attr != "country"},
        country=row.get("country") or "BR",
    )
    return Client(
        client_id=_str_or_none(row["id"]),
        owner_id=_str_or_none(row.get("owner_id")),
        name=row["name"],
        cpf=row["cpf"],
        rg=row.get("rg") or "",
        birth_date=parse_date(birth_date) if birth_date else None,
        mother_name=row.get("mother_name") or "",
        father_name=row.get("father_name") or "",
        phone=row.get("phone") or "",
        email=row.get("email") or "",
        address=address,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _address_to_columns(address: Address) -> dict[str, Any]:
    return {column: getattr(address, attr) for attr, column in ADDRESS_COLUMNS.items()}


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


def _decimal_or_zero(value: Any) -> Decimal:
    return Decimal("0") if value is None else to_decimal(value)
