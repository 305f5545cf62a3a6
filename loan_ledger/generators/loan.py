"""Loan terms generator."""

from __future__ import annotations

import random
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterator

from loan_ledger.generators.base import BaseGenerator


@dataclass(frozen=True)
class LoanTerms:
    """Arguments for ``LoanLedgerService.create_loan`` minus the client."""

    amount: Decimal
    interest_rate: Decimal
    installments_count: int
    first_due_date: date
    mora_interest_rate: Decimal
    late_fee_rate: Decimal
    payment_location: str

    def as_kwargs(self) -> dict[str, Any]:
        return asdict(self)


class LoanTermsGenerator(BaseGenerator):
    """Generate synthetic loan terms typical of small personal lending."""

    # Principal in BRL, drawn in steps of 50
    AMOUNT_RANGE = (300, 15000)
    INSTALLMENT_OPTIONS = [1, 2, 3, 4, 5, 6, 8, 10, 12]
    INSTALLMENT_WEIGHTS = [0.08, 0.12, 0.15, 0.12, 0.10, 0.15, 0.10, 0.10, 0.08]

    # Percentages: interest per installment, mora per day, flat late fee
    INTEREST_RANGE = (5.0, 30.0)
    MORA_OPTIONS = ["0", "0.033", "0.1", "0.2", "0.5", "1"]
    LATE_FEE_OPTIONS = ["0", "2", "5", "10"]

    LOCATIONS = ["Escritório", "Pix", "Transferência bancária", "Boleto", "Domicílio do cliente"]

    def generate(self, start: date | None = None) -> LoanTerms:
        """Generate one set of loan terms.

        Parameters
        ----------
        start : date | None
            Reference date; the first due date falls 7 to 45 days before or
            after it so that generated ledgers include overdue installments.

        Returns
        -------
        LoanTerms
            Generated terms.
        """
        start = start or date.today()
        amount = random.randint(self.AMOUNT_RANGE[0] // 50, self.AMOUNT_RANGE[1] // 50) * 50
        interest = round(random.uniform(*self.INTEREST_RANGE), 1)
        offset = random.randint(7, 45) * random.choice([-1, 1])

        return LoanTerms(
            amount=Decimal(amount),
            interest_rate=Decimal(str(interest)),
            installments_count=random.choices(self.INSTALLMENT_OPTIONS, weights=self.INSTALLMENT_WEIGHTS, k=1)[0],
            first_due_date=start + timedelta(days=offset),
            mora_interest_rate=Decimal(random.choice(self.MORA_OPTIONS)),
            late_fee_rate=Decimal(random.choice(self.LATE_FEE_OPTIONS)),
            payment_location=random.choice(self.LOCATIONS),
        )

    def generate_batch(self, count: int, start: date | None = None) -> Iterator[LoanTerms]:
        for _ in range(count):
            yield self.generate(start)
