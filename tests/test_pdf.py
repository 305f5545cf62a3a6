"""Tests for PDF rendering."""

import io
import re
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal

from loan_ledger.report import build_client_report, render_pdf
from loan_ledger.services import LoanDetails

AS_OF = datetime(2024, 3, 11, 10, 0, 0)


class TestRenderPdf:
    """Tests for render_pdf."""

    def test_renders_to_stream(self, sample_client, sample_loan, sample_installment) -> None:
        report = build_client_report(
            sample_client,
            [LoanDetails(loan=sample_loan, installments=[sample_installment])],
            as_of=AS_OF,
        )
        buffer = io.BytesIO()

        assert render_pdf(report, buffer) is buffer
        assert buffer.getvalue().startswith(b"%PDF")

    def test_renders_empty_history_to_path(self, tmp_path, sample_client) -> None:
        report = build_client_report(sample_client, [], as_of=AS_OF)
        target = tmp_path / "out" / report.filename

        render_pdf(report, target)

        assert target.read_bytes().startswith(b"%PDF")

    def test_long_history_spans_pages(self, sample_client, sample_loan, sample_installment) -> None:
        installments = [
            replace(
                sample_installment,
                installment_number=n,
                due_date=sample_installment.due_date + timedelta(days=30 * (n - 1)),
            )
            for n in range(1, 61)
        ]
        loan = replace(sample_loan, installments_count=60, amount=Decimal("6000.00"))
        report = build_client_report(sample_client, [LoanDetails(loan=loan, installments=installments)], as_of=AS_OF)
        buffer = io.BytesIO()

        render_pdf(report, buffer)

        assert len(re.findall(rb"/Type /Page\b", buffer.getvalue())) >= 2

    def test_malformed_fields_render(self, sample_client) -> None:
        legacy = {"id": "legacy-1", "payments": [{"installment_number": 1, "due_date": "??", "amount": None}]}
        report = build_client_report({"name": "Cliente & Filhos"}, [legacy], as_of=AS_OF)
        buffer = io.BytesIO()

        render_pdf(report, buffer)

        assert buffer.getvalue().startswith(b"%PDF")
        assert date(2024, 3, 11) == report.loans[0].installments[0].due_date
