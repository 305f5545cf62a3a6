"""Brazilian display formatting for currency, dates and documents.

Used for rendering only; computed values always stay ``Decimal``.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any

from loan_ledger.engine.dates import parse_date
from loan_ledger.engine.money import round2, to_decimal

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

STATUS_TEXTS = {
    "ativo": "Ativo",
    "liquidado": "Liquidado",
    "pendente": "Pendente",
    "pago": "Pago",
    "atrasado": "Atrasado",
}


def format_currency(value: Any) -> str:
    """Format as BRL, e.g. ``R$ 1.234,56``. Missing or invalid values give ``R$ 0,00``."""
    try:
        amount = round2(value)
    except (TypeError, ValueError):
        amount = Decimal("0.00")
    text = f"{abs(amount):,.2f}".translate(str.maketrans(",.", ".,"))
    sign = "-" if amount < 0 else ""
    return f"{sign}R$ {text}"


def format_percent(value: Any) -> str:
    """Format a percentage without trailing zeros, e.g. ``1,5%``."""
    rate = to_decimal(value)
    text = format(rate.normalize(), "f").replace(".", ",")
    return f"{text}%"


def format_date(value: Any) -> str:
    """Format as ``dd/mm/yyyy``; empty string for missing or unreadable dates."""
    if not value:
        return ""
    try:
        return parse_date(value).strftime("%d/%m/%Y")
    except ValueError:
        return ""


def format_datetime(value: datetime | None) -> str:
    """Format as ``dd/mm/yyyy, HH:MM:SS``."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y, %H:%M:%S")


def clean_digits(value: str | None) -> str:
    """Strip everything but digits."""
    if not value:
        return ""
    return re.sub(r"\D", "", value)


def format_cpf(cpf: str | None) -> str:
    digits = clean_digits(cpf)
    if len(digits) != 11:
        return cpf or ""
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_phone(phone: str | None) -> str:
    digits = clean_digits(phone)
    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"
    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return phone or ""


def format_cep(cep: str | None) -> str:
    digits = clean_digits(cep)
    if len(digits) != 8:
        return cep or ""
    return f"{digits[:5]}-{digits[5:]}"


def validate_cpf(cpf: str | None) -> bool:
    """Check length, repeated digits and both CPF check digits."""
    digits = clean_digits(cpf)
    if len(digits) != 11 or digits == digits[0] * 11:
        return False

    for position in (9, 10):
        total = sum(int(digits[i]) * (position + 1 - i) for i in range(position))
        check = 11 - total % 11
        if check >= 10:
            check = 0
        if check != int(digits[position]):
            return False
    return True


def validate_email(email: str | None) -> bool:
    return bool(email) and _EMAIL_RE.match(email) is not None


def status_text(status: Any) -> str:
    """Capitalized Portuguese label of a loan or installment status."""
    code = getattr(status, "value", status)
    if not code:
        return "Indefinido"
    return STATUS_TEXTS.get(code, str(code).capitalize())
