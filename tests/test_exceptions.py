"""Tests for custom exception hierarchy."""

from loan_ledger.exceptions import (
    ConfigurationError,
    EntityNotFoundError,
    InvalidAccrualInput,
    InvalidClientData,
    InvalidEntityStateError,
    InvalidScheduleInput,
    LedgerError,
    OrphanScheduleFailure,
    PersistenceError,
    ReferentialIntegrityError,
    StaleAccrualRead,
    ValidationError,
)


class TestExceptionHierarchy:
    """Test exception inheritance chain."""

    def test_ledger_error_is_exception(self) -> None:
        assert isinstance(LedgerError("test"), Exception)

    def test_referential_integrity_is_entity_not_found(self) -> None:
        err = ReferentialIntegrityError("test")
        assert isinstance(err, EntityNotFoundError)
        assert isinstance(err, LedgerError)

    def test_validation_errors(self) -> None:
        for cls in (InvalidScheduleInput, InvalidAccrualInput, InvalidClientData):
            assert issubclass(cls, ValidationError)
            assert issubclass(cls, LedgerError)

    def test_other_errors_are_ledger_errors(self) -> None:
        for cls in (InvalidEntityStateError, ConfigurationError, StaleAccrualRead):
            assert isinstance(cls("test"), LedgerError)

    def test_exception_message(self) -> None:
        err = ReferentialIntegrityError("Client c-001 not found")
        assert str(err) == "Client c-001 not found"


class TestPersistenceError:
    """Tests for PersistenceError."""

    def test_default_user_message(self) -> None:
        err = PersistenceError("connection reset")
        assert str(err) == "connection reset"
        assert err.user_message == "Erro ao acessar os dados"

    def test_custom_user_message(self) -> None:
        err = PersistenceError("timeout", "Erro ao criar empréstimo")
        assert err.user_message == "Erro ao criar empréstimo"


class TestOrphanScheduleFailure:
    """Tests for OrphanScheduleFailure."""

    def test_carries_cause(self) -> None:
        cause = PersistenceError("insert failed")
        err = OrphanScheduleFailure("loan-001", cause)

        assert err.loan_id == "loan-001"
        assert err.cause is cause
        assert err.cleanup_error is None
        assert "loan-001" in str(err)
        assert "compensating delete" not in str(err)

    def test_reports_failed_cleanup(self) -> None:
        err = OrphanScheduleFailure("loan-001", PersistenceError("a"), PersistenceError("b"))

        assert isinstance(err.cleanup_error, PersistenceError)
        assert "compensating delete failed: b" in str(err)
