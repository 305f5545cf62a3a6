"""PostgreSQL ledger store backed by psycopg."""

import logging
from contextlib import AbstractContextManager
from typing import Any, Iterable

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from loan_ledger.config import PostgresConfig
from loan_ledger.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    PersistenceError,
    ReferentialIntegrityError,
)
from loan_ledger.models import Client, Installment, Loan, LoanStatus
from loan_ledger.store.base import LedgerRepository
from loan_ledger.store.serialization import (
    ADDRESS_COLUMNS,
    CLIENT_COLUMNS,
    INSTALLMENT_COLUMNS,
    LOAN_COLUMNS,
    changes_to_columns,
    client_to_row,
    installment_to_row,
    loan_to_row,
    row_to_client,
    row_to_installment,
    row_to_loan,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS clients (
    id           uuid PRIMARY KEY DEFAULT gen_random_uuid(),
    owner_id     text,
    name         text NOT NULL,
    cpf          varchar(11) NOT NULL,
    rg           text,
    birth_date   date,
    mother_name  text,
    father_name  text,
    phone        text,
    email        text,
    address      text,
    number       text,
    complement   text,
    neighborhood text,
    city         text,
    state        text,
    cep          text,
    country      text NOT NULL DEFAULT 'BR',
    created_at   timestamptz NOT NULL DEFAULT now(),
    updated_at   timestamptz
);

CREATE TABLE IF NOT EXISTS loans (
    id                 uuid PRIMARY KEY DEFAULT gen_random_uuid(),
    client_id          uuid NOT NULL REFERENCES clients (id) ON DELETE CASCADE,
    owner_id           text,
    amount             numeric(14, 2) NOT NULL CHECK (amount > 0),
    interest_rate      numeric(9, 4) NOT NULL CHECK (interest_rate >= 0),
    mora_interest_rate numeric(9, 4) NOT NULL DEFAULT 0,
    late_fee_rate      numeric(9, 4) NOT NULL DEFAULT 0,
    installments_count integer NOT NULL CHECK (installments_count > 0),
    first_due_date     date NOT NULL,
    total_value        numeric(14, 2) NOT NULL,
    installment_value  numeric(14, 2) NOT NULL,
    status             text NOT NULL DEFAULT 'ativo' CHECK (status IN ('ativo', 'liquidado')),
    payment_location   text,
    created_at         timestamptz NOT NULL DEFAULT now(),
    updated_at         timestamptz
);

CREATE TABLE IF NOT EXISTS payments (
    id                    uuid PRIMARY KEY DEFAULT gen_random_uuid(),
    loan_id               uuid NOT NULL REFERENCES loans (id) ON DELETE CASCADE,
    installment_number    integer NOT NULL,
    due_date              date NOT NULL,
    amount                numeric(14, 2) NOT NULL,
    status                text NOT NULL DEFAULT 'pendente'
                          CHECK (status IN ('pendente', 'pago', 'atrasado')),
    paid_at               date,
    mora_interest_applied numeric(14, 2),
    late_fee_applied      numeric(14, 2),
    created_at            timestamptz NOT NULL DEFAULT now(),
    updated_at            timestamptz,
    UNIQUE (loan_id, installment_number)
);
"""

_UPDATABLE = {
    "clients": set(CLIENT_COLUMNS) | set(ADDRESS_COLUMNS.values()),
    "loans": set(LOAN_COLUMNS),
    "payments": set(INSTALLMENT_COLUMNS) - {"loan_id"},
}


class PostgresLedgerStore(LedgerRepository):
    """Ledger tables ``clients``, ``loans`` and ``payments`` in PostgreSQL.

    Parameters
    ----------
    conn : psycopg.Connection
        Open connection. Autocommit mode is expected; grouped writes go
        through :meth:`transaction`.
    """

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    @classmethod
    def connect(cls, config: PostgresConfig) -> "PostgresLedgerStore":
        """Open a connection from configuration."""
        try:
            conn = psycopg.connect(config.connection_string, autocommit=True)
        except psycopg.Error as e:
            raise PersistenceError(str(e), "Não foi possível conectar ao banco de dados") from e
        logger.info("Connected to PostgreSQL at %s:%d/%s", config.host, config.port, config.database)
        return cls(conn)

    def create_schema(self) -> None:
        """Create the ledger tables if they do not exist."""
        self._fetch(sql.SQL(SCHEMA_SQL))

    def close(self) -> None:
        self._conn.close()

    def transaction(self) -> AbstractContextManager[Any]:
        return self._conn.transaction()

    # Clients
    def add_client(self, client: Client) -> Client:
        row = self._insert("clients", client_to_row(client), "Erro ao criar cliente")
        return row_to_client(row)

    def update_client(self, client_id: str, changes: dict[str, Any]) -> Client:
        row = self._update("clients", client_id, changes, "Erro ao atualizar cliente")
        return row_to_client(row)

    def delete_client(self, client_id: str) -> None:
        self._delete("clients", client_id, "Erro ao excluir cliente")

    def get_client(self, client_id: str) -> Client:
        return row_to_client(self._get("clients", client_id, "Erro ao buscar cliente"))

    def find_clients(
        self,
        owner_id: str | None = None,
        cpf: str | None = None,
        name: str | None = None,
    ) -> list[Client]:
        conditions = []
        params: list[Any] = []
        if owner_id is not None:
            conditions.append(sql.SQL("owner_id = %s"))
            params.append(owner_id)
        if cpf:
            conditions.append(sql.SQL("cpf LIKE %s"))
            params.append(f"%{cpf}%")
        if name:
            conditions.append(sql.SQL("name ILIKE %s"))
            params.append(f"%{name}%")
        rows = self._select("clients", conditions, params, "Erro ao buscar clientes")
        return [row_to_client(row) for row in rows]

    # Loans
    def add_loan(self, loan: Loan) -> Loan:
        row = self._insert("loans", loan_to_row(loan), "Erro ao criar empréstimo")
        logger.debug("Stored loan %s for client %s", row["id"], loan.client_id)
        return row_to_loan(row)

    def update_loan(self, loan_id: str, changes: dict[str, Any]) -> Loan:
        return row_to_loan(self._update("loans", loan_id, changes, "Erro ao atualizar empréstimo"))

    def delete_loan(self, loan_id: str) -> None:
        # payments rows go with it (ON DELETE CASCADE)
        self._delete("loans", loan_id, "Erro ao excluir empréstimo")
        logger.debug("Deleted loan %s", loan_id)

    def get_loan(self, loan_id: str) -> Loan:
        return row_to_loan(self._get("loans", loan_id, "Erro ao buscar empréstimo"))

    def find_loans(
        self,
        owner_id: str | None = None,
        client_id: str | None = None,
        status: LoanStatus | None = None,
    ) -> list[Loan]:
        conditions = []
        params: list[Any] = []
        if owner_id is not None:
            conditions.append(sql.SQL("owner_id = %s"))
            params.append(owner_id)
        if client_id is not None:
            conditions.append(sql.SQL("client_id = %s"))
            params.append(client_id)
        if status is not None:
            conditions.append(sql.SQL("status = %s"))
            params.append(LoanStatus(status).value)
        rows = self._select("loans", conditions, params, "Erro ao buscar empréstimos")
        return [row_to_loan(row) for row in rows]

    # Installments
    def add_installments(self, installments: list[Installment]) -> list[Installment]:
        with self._conn.transaction():
            rows = [
                self._insert("payments", installment_to_row(installment), "Erro ao criar parcelas")
                for installment in installments
            ]
        return [row_to_installment(row) for row in rows]

    def update_installment(self, installment_id: str, changes: dict[str, Any]) -> Installment:
        row = self._update("payments", installment_id, changes, "Erro ao atualizar status do pagamento")
        return row_to_installment(row)

    def get_installment(self, installment_id: str, for_update: bool = False) -> Installment:
        row = self._get("payments", installment_id, "Erro ao buscar parcela", for_update=for_update)
        return row_to_installment(row)

    def get_loan_installments(self, loan_id: str) -> list[Installment]:
        query = sql.SQL("SELECT * FROM payments WHERE loan_id = %s ORDER BY installment_number")
        rows = self._fetch(query, [loan_id], "Erro ao buscar parcelas")
        return [row_to_installment(row) for row in rows]

    # Helpers
    def _fetch(
        self,
        query: sql.Composable,
        params: Iterable[Any] | None = None,
        user_message: str = "Erro ao acessar os dados",
    ) -> list[dict[str, Any]]:
        try:
            with self._conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                return cur.fetchall() if cur.description else []
        except psycopg.errors.ForeignKeyViolation as e:
            raise ReferentialIntegrityError(str(e)) from e
        except psycopg.Error as e:
            raise PersistenceError(str(e), user_message) from e

    def _insert(self, table: str, row: dict[str, Any], user_message: str) -> dict[str, Any]:
        columns = list(row)
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING *").format(
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
            values=sql.SQL(", ").join([sql.Placeholder()] * len(columns)),
        )
        return self._fetch(query, [row[c] for c in columns], user_message)[0]

    def _update(self, table: str, entity_id: str, changes: dict[str, Any], user_message: str) -> dict[str, Any]:
        columns = changes_to_columns(changes)
        unknown = set(columns) - _UPDATABLE[table]
        if unknown:
            raise InvalidEntityStateError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if not columns:
            return self._get(table, entity_id, user_message)

        assignments = [sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns]
        assignments.append(sql.SQL("updated_at = now()"))
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s RETURNING *").format(
            table=sql.Identifier(table),
            assignments=sql.SQL(", ").join(assignments),
        )
        rows = self._fetch(query, [*columns.values(), entity_id], user_message)
        if not rows:
            raise EntityNotFoundError(f"{table} row {entity_id} not found")
        return rows[0]

    def _delete(self, table: str, entity_id: str, user_message: str) -> None:
        query = sql.SQL("DELETE FROM {table} WHERE id = %s RETURNING id").format(table=sql.Identifier(table))
        if not self._fetch(query, [entity_id], user_message):
            raise EntityNotFoundError(f"{table} row {entity_id} not found")

    def _get(self, table: str, entity_id: str, user_message: str, for_update: bool = False) -> dict[str, Any]:
        query = sql.SQL("SELECT * FROM {table} WHERE id = %s").format(table=sql.Identifier(table))
        if for_update:
            query = query + sql.SQL(" FOR UPDATE")
        rows = self._fetch(query, [entity_id], user_message)
        if not rows:
            raise EntityNotFoundError(f"{table} row {entity_id} not found")
        return rows[0]

    def _select(
        self,
        table: str,
        conditions: list[sql.Composable],
        params: list[Any],
        user_message: str,
    ) -> list[dict[str, Any]]:
        query = sql.SQL("SELECT * FROM {table}").format(table=sql.Identifier(table))
        if conditions:
            query = query + sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions)
        query = query + sql.SQL(" ORDER BY created_at DESC")
        return self._fetch(query, params, user_message)
