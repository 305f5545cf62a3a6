"""Loan lifecycle service for the lending ledger.

This service handles all loan-related operations including:
- Loan creation with its installment schedule
- Installment payments and status changes
- Overdue accrual (mora interest and late fee) persistence
- Loan queries and dashboard figures
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

from loan_ledger.engine import (
    Accrual,
    accrue,
    calculate_totals,
    generate_schedule,
    overdue_days,
    parse_date,
    resolve_loan_status,
)
from loan_ledger.engine.money import to_decimal
from loan_ledger.exceptions import (
    InvalidEntityStateError,
    InvalidScheduleInput,
    OrphanScheduleFailure,
    StaleAccrualRead,
)
from loan_ledger.formatting import clean_digits
from loan_ledger.models import Client, Installment, InstallmentStatus, Loan, LoanStatus
from loan_ledger.services.pagination import paginate
from loan_ledger.store.base import LedgerRepository

logger = logging.getLogger(__name__)

# Totals and the schedule are fixed at creation.
UPDATABLE_LOAN_FIELDS = frozenset({"mora_interest_rate", "late_fee_rate", "payment_location", "client_id"})


@dataclass
class LoanDetails:
    """A loan hydrated with its installments (and client when loaded)."""

    loan: Loan
    installments: list[Installment] = field(default_factory=list)
    client: Client | None = None


@dataclass
class DashboardStats:
    """Headline figures for an account owner."""

    total_clients: int
    active_loans: int
    pending_collections: int  # Unpaid installments past due
    total_outstanding: Decimal  # Sum of total_value over active loans


class LoanLedgerService:
    """Handles loan lifecycle operations.

    Every installment status change is followed by loan status resolution
    inside one store transaction, so no caller sees an installment paid
    while its fully paid loan still reads ``ACTIVE``.

    Parameters
    ----------
    store : LedgerRepository
        Persistence backend.
    clock : Callable[[], datetime]
        Time source for payment dates and accrual (default ``datetime.now``).
    """

    def __init__(self, store: LedgerRepository, clock: Callable[[], datetime] = datetime.now) -> None:
        self.store = store
        self.clock = clock

    def create_loan(
        self,
        client_id: str,
        amount: Any,
        interest_rate: Any,
        installments_count: int,
        first_due_date: date | str,
        mora_interest_rate: Any = 0,
        late_fee_rate: Any = 0,
        owner_id: str | None = None,
        payment_location: str = "",
    ) -> LoanDetails:
        """Create a loan and its installment schedule.

        Parameters
        ----------
        client_id : str
            Borrowing client.
        amount : Any
            Principal, > 0.
        interest_rate : Any
            Flat interest percent, >= 0.
        installments_count : int
            Number of monthly installments, > 0.
        first_due_date : date | str
            Due date of installment 1.
        mora_interest_rate : Any
            Daily mora percent on overdue installments (default 0).
        late_fee_rate : Any
            One-time late fee percent (default 0).
        owner_id : str | None
            Account owner the loan belongs to.
        payment_location : str
            Free text shown on reports.

        Returns
        -------
        LoanDetails
            Stored loan and installments.

        Raises
        ------
        InvalidScheduleInput
            If any numeric input or the date is invalid (nothing is stored).
        OrphanScheduleFailure
            If the installments could not be stored; the loan row is
            deleted before this is raised.
        """
        totals = calculate_totals(amount, interest_rate, installments_count)
        if totals.installment_value <= 0:
            raise InvalidScheduleInput(f"amount {amount} is too small to split into {installments_count} installments")
        mora = _penalty_rate(mora_interest_rate, "mora_interest_rate")
        fee = _penalty_rate(late_fee_rate, "late_fee_rate")
        try:
            first_due = parse_date(first_due_date)
        except ValueError as e:
            raise InvalidScheduleInput(f"first_due_date is not a valid date: {first_due_date!r}") from e

        loan = self.store.add_loan(
            Loan(
                loan_id=None,
                client_id=client_id,
                owner_id=owner_id,
                amount=to_decimal(amount),
                interest_rate=to_decimal(interest_rate),
                mora_interest_rate=mora,
                late_fee_rate=fee,
                installments_count=installments_count,
                first_due_date=first_due,
                total_value=totals.total_value,
                installment_value=totals.installment_value,
                status=LoanStatus.ACTIVE,
                payment_location=payment_location,
            )
        )

        schedule = generate_schedule(loan.loan_id, installments_count, totals.installment_value, first_due)
        try:
            installments = self.store.add_installments(schedule)
        except Exception as e:
            cleanup_error = None
            try:
                self.store.delete_loan(loan.loan_id)
            except Exception as cleanup:
                cleanup_error = cleanup
                logger.error("Could not delete orphan loan %s: %s", loan.loan_id, cleanup)
            logger.warning("Rolled back loan %s after installment insert failed: %s", loan.loan_id, e)
            raise OrphanScheduleFailure(loan.loan_id, e, cleanup_error) from e

        logger.info(
            "Created loan %s for client %s: %d x %s (total %s)",
            loan.loan_id,
            client_id,
            installments_count,
            totals.installment_value,
            totals.total_value,
        )
        return LoanDetails(loan=loan, installments=installments)

    def update_loan(self, loan_id: str, **changes: Any) -> Loan:
        """Change the editable fields of a loan.

        Only penalty rates, payment location and client can change. After a
        rate change every overdue installment is re-accrued at the new rates.
        """
        fixed = set(changes) - UPDATABLE_LOAN_FIELDS
        if fixed:
            raise InvalidEntityStateError(
                f"Loan field(s) cannot change after creation: {', '.join(sorted(fixed))}"
            )
        for name in ("mora_interest_rate", "late_fee_rate"):
            if name in changes:
                changes[name] = _penalty_rate(changes[name], name)

        loan = self.store.update_loan(loan_id, changes)
        if {"mora_interest_rate", "late_fee_rate"} & set(changes):
            self.refresh_loan_accruals(loan_id)
            loan = self.store.get_loan(loan_id)
        return loan

    def delete_loan(self, loan_id: str) -> None:
        """Delete a loan with its installments."""
        self.store.delete_loan(loan_id)
        logger.info("Deleted loan %s", loan_id)

    def get_loan(self, loan_id: str) -> LoanDetails:
        """Loan with client and installments."""
        loan = self.store.get_loan(loan_id)
        return LoanDetails(
            loan=loan,
            installments=self.store.get_loan_installments(loan_id),
            client=self.store.get_client(loan.client_id),
        )

    def list_loans(
        self,
        owner_id: str | None = None,
        client_cpf: str | None = None,
        status: LoanStatus | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> list[LoanDetails]:
        """Loans newest first, filtered by owner, exact client CPF and status."""
        if client_cpf:
            cpf = clean_digits(client_cpf)
            clients = [c for c in self.store.find_clients(owner_id=owner_id, cpf=cpf) if c.cpf == cpf]
            loans = [
                loan
                for client in clients
                for loan in self.store.find_loans(owner_id=owner_id, client_id=client.client_id, status=status)
            ]
        else:
            loans = self.store.find_loans(owner_id=owner_id, status=status)

        return [
            LoanDetails(
                loan=loan,
                installments=self.store.get_loan_installments(loan.loan_id),
                client=self.store.get_client(loan.client_id),
            )
            for loan in paginate(loans, page, limit)
        ]

    def get_loans_by_client_cpf(self, cpf: str) -> list[LoanDetails]:
        return self.list_loans(client_cpf=cpf)

    def update_installment_status(
        self,
        installment_id: str,
        status: InstallmentStatus,
        paid_at: date | None = None,
    ) -> tuple[Installment, Loan]:
        """Change an installment's status and re-resolve its loan's status.

        ``PAID`` is terminal and records ``paid_at`` (today by default).

        Returns
        -------
        tuple[Installment, Loan]
            Updated installment and loan.

        Raises
        ------
        InvalidEntityStateError
            If the installment is already paid.
        """
        status = InstallmentStatus(status)
        with self.store.transaction():
            installment = self.store.get_installment(installment_id, for_update=True)
            if installment.status == InstallmentStatus.PAID:
                raise InvalidEntityStateError(f"Installment {installment_id} is already paid")

            changes: dict[str, Any] = {"status": status}
            if status == InstallmentStatus.PAID:
                changes["paid_at"] = paid_at or self.clock().date()
            installment = self.store.update_installment(installment_id, changes)
            loan = self._resolve_loan_status(installment.loan_id)

        logger.info(
            "Installment %d of loan %s set to %s (loan %s)",
            installment.installment_number,
            loan.loan_id,
            status.value,
            loan.status.value,
            extra={"loan_id": loan.loan_id, "installment_id": installment_id},
        )
        return installment, loan

    def pay_installment(self, installment_id: str, paid_at: date | None = None) -> tuple[Installment, Loan]:
        """Record payment of an installment."""
        return self.update_installment_status(installment_id, InstallmentStatus.PAID, paid_at)

    def calculate_accrual(self, installment_id: str, as_of: date | datetime | None = None) -> Accrual:
        """Overdue charges of an installment without persisting anything."""
        installment = self.store.get_installment(installment_id)
        loan = self.store.get_loan(installment.loan_id)
        return accrue(installment, loan, as_of, clock=self.clock)

    def apply_accrual(self, installment_id: str, as_of: date | datetime | None = None) -> Accrual:
        """Compute overdue charges and store them on the installment.

        An overdue installment gets ``mora_interest_applied`` and
        ``late_fee_applied`` overwritten and its status set to ``OVERDUE``.
        Nothing is written when it is not overdue.

        Raises
        ------
        StaleAccrualRead
            If the installment was paid between the computation and the write.
        """
        as_of = as_of or self.clock()
        accrual = self.calculate_accrual(installment_id, as_of)
        if not accrual.is_overdue:
            return accrual

        with self.store.transaction():
            current = self.store.get_installment(installment_id, for_update=True)
            if current.status == InstallmentStatus.PAID:
                raise StaleAccrualRead(f"Installment {installment_id} was paid while its accrual was computed")

            self.store.update_installment(
                installment_id,
                {
                    "mora_interest_applied": accrual.mora_interest,
                    "late_fee_applied": accrual.late_fee,
                    "status": InstallmentStatus.OVERDUE,
                },
            )
            self._resolve_loan_status(current.loan_id)

        logger.info(
            "Installment %s overdue %d day(s): mora %s, late fee %s",
            installment_id,
            accrual.overdue_days,
            accrual.mora_interest,
            accrual.late_fee,
        )
        return accrual

    def refresh_loan_accruals(self, loan_id: str, as_of: date | datetime | None = None) -> dict[str, Accrual]:
        """Apply accrual to every unpaid overdue installment of a loan.

        Returns
        -------
        dict[str, Accrual]
            Applied accruals by installment id.
        """
        as_of = as_of or self.clock()
        applied: dict[str, Accrual] = {}
        for installment in self.store.get_loan_installments(loan_id):
            if installment.status == InstallmentStatus.PAID:
                continue
            try:
                accrual = self.apply_accrual(installment.installment_id, as_of)
            except StaleAccrualRead as e:
                logger.info("Skipped accrual: %s", e)
                continue
            if accrual.is_overdue:
                applied[installment.installment_id] = accrual
        return applied

    def dashboard_stats(self, owner_id: str | None = None, as_of: date | datetime | None = None) -> DashboardStats:
        """Client count, active loans, overdue installments and outstanding total."""
        as_of = as_of or self.clock()
        loans = self.store.find_loans(owner_id=owner_id)
        active = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]

        pending_collections = 0
        for loan in loans:
            for installment in self.store.get_loan_installments(loan.loan_id):
                if installment.status != InstallmentStatus.PAID and overdue_days(installment.due_date, as_of) > 0:
                    pending_collections += 1

        return DashboardStats(
            total_clients=len(self.store.find_clients(owner_id=owner_id)),
            active_loans=len(active),
            pending_collections=pending_collections,
            total_outstanding=sum((loan.total_value for loan in active), Decimal("0.00")),
        )

    def _resolve_loan_status(self, loan_id: str) -> Loan:
        loan = self.store.get_loan(loan_id)
        status = resolve_loan_status(self.store.get_loan_installments(loan_id))
        if loan.status != status:
            loan = self.store.update_loan(loan_id, {"status": status})
            logger.info("Loan %s is now %s", loan_id, status.value)
        return loan


def _penalty_rate(value: Any, name: str) -> Decimal:
    """Validate a mora or late fee percent; ``None`` means 0."""
    if value is None:
        return Decimal("0")
    try:
        rate = to_decimal(value)
    except (TypeError, ValueError) as e:
        raise InvalidScheduleInput(f"{name} is not a number: {value!r}") from e
    if rate < 0:
        raise InvalidScheduleInput(f"{name} must not be negative, got {rate}")
    return rate
