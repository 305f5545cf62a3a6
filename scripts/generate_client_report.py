#!/usr/bin/env python3
"""Generate demo clients and loans, then render their history reports.

This script fills a ledger (in memory by default) with Faker clients and
loan terms, pays part of the schedule, applies overdue accruals and writes
one PDF report per client:
- reports/Relatorio_<Client_Name>.pdf
- reports/Relatorio_<Client_Name>.json (with --json)
"""

import argparse
import json
import logging
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_ledger.config import LedgerConfig
from loan_ledger.generators import ClientGenerator, LoanTermsGenerator
from loan_ledger.logging import setup_logging
from loan_ledger.report import build_client_report, render_pdf
from loan_ledger.services import ClientService, LoanLedgerService
from loan_ledger.store import PostgresLedgerStore, create_store

logger = logging.getLogger(__name__)


def populate(
    clients: ClientService,
    ledger: LoanLedgerService,
    num_clients: int,
    max_loans: int,
    seed: int | None,
    locale: str = "pt_BR",
) -> list[str]:
    """Create clients with loans and partial payments; return client ids."""
    client_gen = ClientGenerator(seed=seed, locale=locale)
    terms_gen = LoanTermsGenerator(seed=seed)
    today = ledger.clock().date()

    client_ids = []
    for candidate in client_gen.generate_batch(num_clients):
        client = clients.create_client(candidate)
        client_ids.append(client.client_id)

        for terms in terms_gen.generate_batch(random.randint(0, max_loans), start=today):
            details = ledger.create_loan(client.client_id, **terms.as_kwargs())
            for installment in details.installments:
                # Pay most installments already due, on or shortly after the due date
                if installment.due_date <= today and random.random() < 0.7:
                    paid_at = min(today, installment.due_date + timedelta(days=random.randint(0, 5)))
                    ledger.pay_installment(installment.installment_id, paid_at=paid_at)
            ledger.refresh_loan_accruals(details.loan.loan_id)

    logger.info("Created %d clients", len(client_ids))
    return client_ids


def write_reports(
    clients: ClientService,
    ledger: LoanLedgerService,
    client_ids: list[str],
    output_dir: Path,
    brand: str,
    with_json: bool,
) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    as_of = datetime.now()

    for client_id in client_ids:
        client = clients.get_client(client_id)
        loans = ledger.list_loans(client_cpf=client.cpf)
        report = build_client_report(client, loans, as_of=as_of, brand=brand)

        pdf_path = output_dir / report.filename
        render_pdf(report, pdf_path)
        if with_json:
            with open(pdf_path.with_suffix(".json"), "w", encoding="utf-8") as f:
                json.dump(report.to_dict(), f, indent=2, ensure_ascii=False, default=str)
        print(f"Saved {pdf_path}")


def main() -> None:
    """Main entry point."""
    config = LedgerConfig.from_env()

    parser = argparse.ArgumentParser(description="Generate demo ledger data and client reports")
    parser.add_argument(
        "--clients",
        type=int,
        default=5,
        help="Number of clients to generate (default: 5)",
    )
    parser.add_argument(
        "--max-loans",
        type=int,
        default=3,
        help="Maximum loans per client (default: 3)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.seed if config.seed is not None else 42,
        help="Random seed for reproducibility (default: SEED or 42)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=config.report.output_dir,
        help="Directory for the generated reports",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Also write the report model as JSON next to each PDF",
    )
    args = parser.parse_args()

    setup_logging(level=config.log_level, format_type=config.log_format)

    store = create_store(config)
    if isinstance(store, PostgresLedgerStore):
        store.create_schema()

    clients = ClientService(store)
    ledger = LoanLedgerService(store)
    try:
        client_ids = populate(clients, ledger, args.clients, args.max_loans, args.seed, config.report.locale)
        write_reports(clients, ledger, client_ids, args.output_dir, config.report.brand, args.json)
    finally:
        if isinstance(store, PostgresLedgerStore):
            store.close()


if __name__ == "__main__":
    main()
