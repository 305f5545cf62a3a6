"""Custom exception hierarchy for loan-ledger."""


class LedgerError(Exception):
    """Base exception for all loan-ledger errors."""


class EntityNotFoundError(LedgerError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a foreign key reference is violated."""


class InvalidEntityStateError(LedgerError):
    """Raised when an entity is in an invalid state for the operation."""


class ConfigurationError(LedgerError):
    """Raised when configuration is invalid or missing."""


class ValidationError(LedgerError):
    """Raised when input values are rejected before any persistence attempt."""


class InvalidScheduleInput(ValidationError):
    """Raised for non-positive amounts, negative rates or installment counts."""


class InvalidAccrualInput(ValidationError):
    """Raised when an installment lacks the amount or due date to accrue on."""


class InvalidClientData(ValidationError):
    """Raised when client fields fail validation (CPF, email, name)."""


class PersistenceError(LedgerError):
    """Opaque failure coming from the persistence layer.

    Parameters
    ----------
    message : str
        Technical description, kept for logs.
    user_message : str
        Localized text safe to show to the end user.
    """

    def __init__(self, message: str, user_message: str = "Erro ao acessar os dados") -> None:
        super().__init__(message)
        self.user_message = user_message


class OrphanScheduleFailure(LedgerError):
    """Raised when the installment batch failed after the loan row was created.

    The loan is deleted before this is raised. ``cleanup_error`` is set when
    that compensating delete failed too, in which case the orphan loan id is
    in ``loan_id`` for manual cleanup.
    """

    def __init__(
        self,
        loan_id: str,
        cause: BaseException,
        cleanup_error: BaseException | None = None,
    ) -> None:
        message = f"Installments for loan {loan_id} could not be saved: {cause}"
        if cleanup_error is not None:
            message += f" (compensating delete failed: {cleanup_error})"
        super().__init__(message)
        self.loan_id = loan_id
        self.cause = cause
        self.cleanup_error = cleanup_error


class StaleAccrualRead(LedgerError):
    """Raised when an accrual was computed for an installment that has since been paid."""
