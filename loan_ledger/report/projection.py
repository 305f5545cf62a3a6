"""Client history report as a rendering-agnostic display model.

The projection recomputes totals and overdue charges from the loan terms
at render time. Persisted accrual fields are never read, and the input
objects are never modified. Incomplete historical records are shown with
conservative defaults and flagged instead of failing the whole report.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from loan_ledger.engine import Accrual, accrue_amount, calculate_totals, parse_date
from loan_ledger.engine.dates import as_naive_datetime
from loan_ledger.engine.accrual import rate_or_zero
from loan_ledger.engine.money import ZERO, to_decimal
from loan_ledger.formatting import (
    format_cep,
    format_cpf,
    format_currency,
    format_date,
    format_datetime,
    format_percent,
    format_phone,
    status_text,
)
from loan_ledger.models import InstallmentStatus
from loan_ledger.store.serialization import dataclass_to_dict

logger = logging.getLogger(__name__)

REPORT_TITLE = "Relatório de Histórico do Cliente"
NOT_INFORMED = "Não informado"
NOT_INFORMED_F = "Não informada"
NO_LOANS_MESSAGE = "Nenhum empréstimo registrado para este cliente."
INVALID_AMOUNT = "Valor inválido"
INVALID_RATE = "Taxa inválida"
INVALID_DATE = "Data inválida"
EMPTY_CELL = "---"

INSTALLMENT_HEADERS = ("#", "Vencimento", "Valor", "Juros/Multa", "Total", "Status", "Data Pagto.")

SIGNATURE_TERMS = (
    "Declaro que todas as informações prestadas são verdadeiras e que estou ciente das condições",
    "do(s) empréstimo(s) acima descrito(s), incluindo taxas de juros, multas e encargos por atraso.",
    "Comprometo-me a cumprir com os pagamentos nas datas estabelecidas.",
)


@dataclass(frozen=True)
class ReportField:
    """Label/value pair; ``valid`` is False when a default was substituted."""

    label: str
    value: str
    valid: bool = True


@dataclass(frozen=True)
class InstallmentRow:
    """One line of a loan's installment breakdown."""

    number: int | None
    due_date: date | None
    amount: Decimal
    mora_interest: Decimal
    late_fee: Decimal
    total: Decimal
    overdue_days: int
    status: str
    paid_at: date | None
    due_date_valid: bool = True
    amount_valid: bool = True

    @property
    def is_overdue(self) -> bool:
        return self.overdue_days > 0

    @property
    def charges(self) -> Decimal:
        return self.mora_interest + self.late_fee

    def cells(self) -> list[str]:
        """Display texts in ``INSTALLMENT_HEADERS`` order."""
        return [
            "" if self.number is None else str(self.number),
            format_date(self.due_date) or INVALID_DATE,
            format_currency(self.amount),
            format_currency(self.charges) if self.is_overdue else EMPTY_CELL,
            format_currency(self.total),
            status_text(self.status),
            format_date(self.paid_at) or EMPTY_CELL,
        ]


@dataclass
class LoanSection:
    """Summary and installment breakdown of one loan."""

    loan_id: str | None
    summary: list[ReportField]
    installments: list[InstallmentRow]
    total_value: Decimal | None
    installment_value: Decimal | None

    @property
    def invalid_fields(self) -> list[str]:
        return [f.label for f in self.summary if not f.valid]

    @property
    def amount_due(self) -> Decimal:
        """What is still owed today, charges included."""
        return sum(
            (row.total for row in self.installments if row.status != InstallmentStatus.PAID.value),
            ZERO,
        )


@dataclass
class ClientReport:
    """Everything a document renderer needs to lay out the report."""

    title: str
    generated_at: datetime
    client_name: str
    client_fields: list[ReportField]
    loans: list[LoanSection] = field(default_factory=list)
    empty_message: str = NO_LOANS_MESSAGE
    terms: tuple[str, ...] = SIGNATURE_TERMS
    brand: str = "SharkPro"

    @property
    def generated_at_text(self) -> str:
        return f"Gerado em: {format_datetime(self.generated_at)}"

    @property
    def filename(self) -> str:
        return report_filename(self.client_name)

    def to_dict(self) -> dict:
        return dataclass_to_dict(self)


def report_filename(client_name: str) -> str:
    """``Relatorio_<name with underscores>.pdf``."""
    name = re.sub(r"\s", "_", client_name or "Cliente")
    return f"Relatorio_{name}.pdf"


def build_client_report(
    client: Any,
    loans: Iterable[Any],
    as_of: date | datetime | None = None,
    clock: Callable[[], datetime] | None = None,
    brand: str = "SharkPro",
) -> ClientReport:
    """Project a client and its loans into a :class:`ClientReport`.

    Parameters
    ----------
    client : Any
        ``Client`` or a mapping with the same keys.
    loans : Iterable[Any]
        ``LoanDetails``-like entries (``loan`` + ``installments``), or loan
        objects/mappings carrying ``installments`` (or ``payments``).
    as_of : date | datetime | None
        Render moment; a date means its midnight. Defaults to ``clock()``.
    clock : Callable[[], datetime] | None
        Time source when ``as_of`` is omitted (default ``datetime.now``).
    brand : str
        Name printed in the page footer.

    Returns
    -------
    ClientReport
        Display model; never raises on missing or malformed loan fields.
    """
    if as_of is None:
        as_of = (clock or datetime.now)()
    elif not isinstance(as_of, datetime):
        as_of = as_naive_datetime(as_of)

    sections = [_loan_section(loan, installments, as_of) for loan, installments in map(_unpack, loans)]

    return ClientReport(
        title=REPORT_TITLE,
        generated_at=as_of,
        client_name=_text(_get(client, "name")) or NOT_INFORMED,
        client_fields=_client_fields(client),
        loans=sections,
        brand=brand,
    )


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _unpack(entry: Any) -> tuple[Any, list[Any]]:
    loan = _get(entry, "loan")
    if loan is not None:
        return loan, list(_get(entry, "installments") or [])
    installments = _get(entry, "installments")
    if installments is None:
        installments = _get(entry, "payments")
    return entry, list(installments or [])


def _client_fields(client: Any) -> list[ReportField]:
    address = _get(client, "address")
    if address is None or isinstance(address, str):
        # Flat record: address columns live on the client itself
        street, source = address, client
    else:
        street, source = _get(address, "street"), address

    birth_date = _get(client, "birth_date")
    postal_code = _get(source, "postal_code") or _get(source, "cep")

    def pair(label: str, value: Any, fallback: str = NOT_INFORMED) -> ReportField:
        text = _text(value)
        return ReportField(label, text or fallback, valid=True)

    return [
        pair("Nome:", _get(client, "name")),
        pair("CPF:", format_cpf(_get(client, "cpf"))),
        pair("RG:", _get(client, "rg")),
        pair("Data de Nascimento:", format_date(birth_date), NOT_INFORMED_F),
        pair("Nome da Mãe:", _get(client, "mother_name")),
        pair("Nome do Pai:", _get(client, "father_name")),
        pair("Telefone:", format_phone(_get(client, "phone"))),
        pair("Email:", _get(client, "email")),
        pair("Endereço:", street),
        pair("Número:", _get(source, "number"), "S/N"),
        pair("Complemento:", _get(source, "complement")),
        pair("Bairro:", _get(source, "neighborhood")),
        pair("Cidade:", _get(source, "city"), NOT_INFORMED_F),
        pair("Estado:", _get(source, "state")),
        pair("CEP:", format_cep(postal_code)),
    ]


def _decimal_or_none(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return to_decimal(value)
    except (TypeError, ValueError):
        return None


def _date_or_none(value: Any) -> date | None:
    if not value:
        return None
    try:
        return parse_date(value)
    except (ValueError, OverflowError):
        return None


def _loan_section(loan: Any, installments: list[Any], as_of: datetime) -> LoanSection:
    loan_id = _get(loan, "loan_id") or _get(loan, "id")

    raw_amount = _decimal_or_none(_get(loan, "amount"))
    amount_valid = raw_amount is not None and raw_amount > 0
    amount = raw_amount if amount_valid else ZERO

    raw_rate = _decimal_or_none(_get(loan, "interest_rate"))
    rate_valid = raw_rate is not None and raw_rate >= 0
    interest_rate = raw_rate if rate_valid else ZERO

    mora_rate = rate_or_zero(_get(loan, "mora_interest_rate"))
    fee_rate = rate_or_zero(_get(loan, "late_fee_rate"))

    raw_count = _get(loan, "installments_count")
    count_valid = isinstance(raw_count, int) and not isinstance(raw_count, bool) and raw_count > 0
    count = raw_count if count_valid else (len(installments) or 1)

    total_value = installment_value = None
    if amount_valid:
        totals = calculate_totals(amount, interest_rate, count)
        total_value, installment_value = totals.total_value, totals.installment_value

    if not (amount_valid and rate_valid):
        logger.debug("Loan %s rendered with defaults (amount=%s, rate=%s)", loan_id, raw_amount, raw_rate)

    created_at = _date_or_none(_get(loan, "created_at"))
    summary = [
        ReportField("ID do Empréstimo:", _text(loan_id) or "N/A", loan_id is not None),
        ReportField("Data de Início:", format_date(created_at) or INVALID_DATE, created_at is not None),
        ReportField("Valor Original:", format_currency(amount) if amount_valid else INVALID_AMOUNT, amount_valid),
        ReportField("Taxa de Juros:", format_percent(interest_rate) if rate_valid else INVALID_RATE, rate_valid),
        ReportField("Juros de Mora (ao dia):", format_percent(mora_rate)),
        ReportField("Multa por Atraso:", format_percent(fee_rate)),
        ReportField("Nº de Parcelas:", str(count), count_valid),
        ReportField(
            "Valor da Parcela:",
            format_currency(installment_value) if installment_value is not None else INVALID_AMOUNT,
            installment_value is not None,
        ),
        ReportField(
            "Valor Total:",
            format_currency(total_value) if total_value is not None else INVALID_AMOUNT,
            total_value is not None,
        ),
        ReportField("Status:", status_text(_get(loan, "status"))),
        ReportField("Local de Pagamento:", _text(_get(loan, "payment_location")) or NOT_INFORMED),
    ]

    ordered = sorted(
        installments,
        key=lambda i: (_get(i, "installment_number") is None, _get(i, "installment_number") or 0),
    )
    rows = [
        _installment_row(installment, position == 0, mora_rate, fee_rate, as_of)
        for position, installment in enumerate(ordered)
    ]

    return LoanSection(
        loan_id=None if loan_id is None else str(loan_id),
        summary=summary,
        installments=rows,
        total_value=total_value,
        installment_value=installment_value,
    )


def _installment_row(
    installment: Any,
    is_first: bool,
    mora_rate: Decimal,
    fee_rate: Decimal,
    as_of: datetime,
) -> InstallmentRow:
    raw_amount = _decimal_or_none(_get(installment, "amount"))
    amount_valid = raw_amount is not None
    amount = raw_amount if amount_valid else ZERO

    due_date = _date_or_none(_get(installment, "due_date"))
    due_date_valid = due_date is not None
    if due_date is None and is_first:
        due_date = as_of.date()

    raw_status = _get(installment, "status")
    status = _text(getattr(raw_status, "value", raw_status))

    if due_date is not None:
        accrual = accrue_amount(amount, due_date, status, mora_rate, fee_rate, as_of)
    else:
        accrual = Accrual(mora_interest=ZERO, late_fee=ZERO, total=amount, overdue_days=0)

    if accrual.is_overdue:
        # Past due and unpaid reads as overdue here whatever the stored status says
        status = InstallmentStatus.OVERDUE.value

    number = _get(installment, "installment_number")
    return InstallmentRow(
        number=number if isinstance(number, int) else None,
        due_date=due_date,
        amount=amount,
        mora_interest=accrual.mora_interest,
        late_fee=accrual.late_fee,
        total=accrual.total,
        overdue_days=accrual.overdue_days,
        status=status,
        paid_at=_date_or_none(_get(installment, "paid_at")),
        due_date_valid=due_date_valid,
        amount_valid=amount_valid,
    )
