"""Ledger persistence backends."""

from loan_ledger.config import LedgerConfig
from loan_ledger.store.base import LedgerRepository
from loan_ledger.store.memory import InMemoryLedgerStore
from loan_ledger.store.postgres import PostgresLedgerStore


def create_store(config: LedgerConfig) -> LedgerRepository:
    """Build the store backend selected in ``config``."""
    if config.store == "postgres":
        return PostgresLedgerStore.connect(config.postgres)
    return InMemoryLedgerStore()


__all__ = [
    "InMemoryLedgerStore",
    "LedgerRepository",
    "PostgresLedgerStore",
    "create_store",
]
