"""Enumeration types for ledger entities.

Values are the status codes stored by the ledger backend.
"""

from enum import Enum


class LoanStatus(str, Enum):
    ACTIVE = "ativo"
    SETTLED = "liquidado"


class InstallmentStatus(str, Enum):
    PENDING = "pendente"
    PAID = "pago"
    OVERDUE = "atrasado"
