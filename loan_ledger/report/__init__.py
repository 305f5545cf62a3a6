"""Client history report: display projection and PDF renderer."""

from loan_ledger.report.pdf import render_pdf
from loan_ledger.report.projection import (
    ClientReport,
    InstallmentRow,
    LoanSection,
    ReportField,
    build_client_report,
    report_filename,
)

__all__ = [
    "ClientReport",
    "InstallmentRow",
    "LoanSection",
    "ReportField",
    "build_client_report",
    "render_pdf",
    "report_filename",
]
