"""Tests for the schedule, accrual and status engine."""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from loan_ledger.engine import (
    accrue,
    accrue_amount,
    add_months,
    calculate_totals,
    generate_schedule,
    overdue_days,
    parse_date,
    resolve_loan_status,
    round2,
    to_decimal,
)
from loan_ledger.engine.accrual import rate_or_zero
from loan_ledger.exceptions import InvalidAccrualInput, InvalidScheduleInput
from loan_ledger.models import InstallmentStatus, LoanStatus


class TestMoney:
    """Tests for decimal helpers."""

    def test_float_goes_through_str(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")

    def test_rejects_bool(self) -> None:
        with pytest.raises(TypeError):
            to_decimal(True)

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            to_decimal("abc")
        with pytest.raises(ValueError):
            to_decimal("NaN")

    def test_round2_half_up(self) -> None:
        assert round2("0.005") == Decimal("0.01")
        assert round2("2.675") == Decimal("2.68")
        assert round2("-0.005") == Decimal("-0.01")


class TestDates:
    """Tests for date helpers."""

    def test_parse_date_variants(self) -> None:
        assert parse_date("2024-03-05") == date(2024, 3, 5)
        assert parse_date("2024-03-05T10:30:00") == date(2024, 3, 5)
        assert parse_date(datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)

    def test_parse_date_rejects(self) -> None:
        for value in ("", "05/03/2024x", None, 20240305):
            with pytest.raises(ValueError):
                parse_date(value)

    def test_add_months_clamps_month_end(self) -> None:
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
        assert add_months(date(2024, 8, 31), 1) == date(2024, 9, 30)

    def test_overdue_days_counts_partial_days_up(self) -> None:
        due = date(2024, 3, 1)

        assert overdue_days(due, datetime(2024, 3, 1, 0, 0)) == 0
        assert overdue_days(due, datetime(2024, 3, 1, 9, 0)) == 1
        assert overdue_days(due, datetime(2024, 3, 11, 0, 0)) == 10
        assert overdue_days(due, datetime(2024, 3, 11, 0, 0, 1)) == 11
        assert overdue_days(due, date(2024, 3, 11)) == 10
        assert overdue_days(due, date(2024, 2, 20)) == 0

    def test_overdue_days_aware_datetime_uses_wall_clock(self) -> None:
        as_of = datetime(2024, 3, 11, 0, 0, tzinfo=timezone(timedelta(hours=-3)))

        assert overdue_days(date(2024, 3, 1), as_of) == 10


class TestCalculateTotals:
    """Tests for flat-rate totalization."""

    def test_basic_example(self) -> None:
        totals = calculate_totals(1000, 5, 3)

        assert totals.total_value == Decimal("3150.00")
        assert totals.installment_value == Decimal("1050.00")

    def test_rounds_each_value(self) -> None:
        totals = calculate_totals(Decimal("10.01"), 5, 3)

        assert totals.total_value == Decimal("31.53")
        assert totals.installment_value == Decimal("10.51")

    def test_rounds_half_up(self) -> None:
        assert calculate_totals("0.05", "10", 1).total_value == Decimal("0.06")

    def test_zero_rate(self) -> None:
        totals = calculate_totals(500, 0, 4)

        assert totals.total_value == Decimal("2000.00")
        assert totals.installment_value == Decimal("500.00")

    def test_deterministic(self) -> None:
        assert calculate_totals("1234.56", "7.5", 7) == calculate_totals("1234.56", "7.5", 7)

    def test_float_and_string_inputs_agree(self) -> None:
        assert calculate_totals(1234.56, 7.5, 7) == calculate_totals("1234.56", "7.5", 7)

    @pytest.mark.parametrize(
        "amount, rate, count",
        [
            (0, 5, 3),
            (-10, 5, 3),
            (None, 5, 3),
            ("abc", 5, 3),
            (1000, -1, 3),
            (1000, None, 3),
            (1000, 5, 0),
            (1000, 5, -2),
            (1000, 5, 2.5),
            (1000, 5, True),
        ],
    )
    def test_rejects_invalid_input(self, amount, rate, count) -> None:
        with pytest.raises(InvalidScheduleInput):
            calculate_totals(amount, rate, count)


class TestGenerateSchedule:
    """Tests for schedule generation."""

    def test_month_end_rule(self) -> None:
        schedule = generate_schedule("loan-001", 3, Decimal("100.00"), date(2024, 1, 31))

        assert [i.due_date for i in schedule] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    def test_installments(self) -> None:
        schedule = generate_schedule("loan-001", 12, "1050.00", "2024-01-15")

        assert len(schedule) == 12
        assert [i.installment_number for i in schedule] == list(range(1, 13))
        assert schedule[0].due_date == date(2024, 1, 15)
        assert schedule[-1].due_date == date(2024, 12, 15)
        assert all(i.loan_id == "loan-001" for i in schedule)
        assert all(i.amount == Decimal("1050.00") for i in schedule)
        assert all(i.status == InstallmentStatus.PENDING for i in schedule)
        assert all(i.installment_id is None and i.paid_at is None for i in schedule)

    def test_due_dates_strictly_increasing(self) -> None:
        schedule = generate_schedule("loan-001", 24, 10, date(2023, 10, 31))
        dates = [i.due_date for i in schedule]

        assert all(a < b for a, b in zip(dates, dates[1:]))

    def test_rejects_invalid_input(self) -> None:
        with pytest.raises(InvalidScheduleInput):
            generate_schedule("loan-001", 0, 100, date(2024, 1, 1))
        with pytest.raises(InvalidScheduleInput):
            generate_schedule("loan-001", 3, 0, date(2024, 1, 1))
        with pytest.raises(InvalidScheduleInput):
            generate_schedule("loan-001", 3, 100, "not a date")


class TestAccrue:
    """Tests for overdue accrual."""

    def test_compounding_example(self, sample_installment, sample_loan) -> None:
        accrual = accrue(sample_installment, sample_loan, as_of=datetime(2024, 3, 11))

        assert accrual.overdue_days == 10
        assert accrual.mora_interest == Decimal("10.46")
        assert accrual.late_fee == Decimal("2.00")
        assert accrual.total == Decimal("112.46")
        assert accrual.is_overdue
        assert accrual.charges == Decimal("12.46")

    def test_not_overdue(self, sample_installment, sample_loan) -> None:
        for as_of in (datetime(2024, 2, 1), datetime(2024, 3, 1, 0, 0)):
            accrual = accrue(sample_installment, sample_loan, as_of=as_of)

            assert accrual.mora_interest == Decimal("0")
            assert accrual.late_fee == Decimal("0")
            assert accrual.total == sample_installment.amount
            assert accrual.overdue_days == 0

    def test_paid_is_never_charged(self, sample_installment, sample_loan) -> None:
        paid = replace(sample_installment, status=InstallmentStatus.PAID, paid_at=date(2024, 3, 20))

        accrual = accrue(paid, sample_loan, as_of=datetime(2024, 6, 1))

        assert accrual.charges == Decimal("0")
        assert accrual.total == paid.amount
        assert not accrual.is_overdue

    def test_overdue_status_is_reaccrued(self, sample_installment, sample_loan) -> None:
        overdue = replace(sample_installment, status=InstallmentStatus.OVERDUE)

        assert accrue(overdue, sample_loan, as_of=datetime(2024, 3, 11)).total == Decimal("112.46")

    def test_partial_day_counts_as_one(self, sample_installment, sample_loan) -> None:
        accrual = accrue(sample_installment, sample_loan, as_of=datetime(2024, 3, 1, 0, 1))

        assert accrual.overdue_days == 1
        assert accrual.mora_interest == Decimal("1.00")

    def test_idempotent(self, sample_installment, sample_loan) -> None:
        as_of = datetime(2024, 4, 17, 8, 30)

        assert accrue(sample_installment, sample_loan, as_of) == accrue(sample_installment, sample_loan, as_of)

    def test_ignores_previously_applied_charges(self, sample_installment, sample_loan) -> None:
        applied = replace(
            sample_installment,
            status=InstallmentStatus.OVERDUE,
            mora_interest_applied=Decimal("999.99"),
            late_fee_applied=Decimal("50.00"),
        )
        as_of = datetime(2024, 3, 11)

        assert accrue(applied, sample_loan, as_of) == accrue(sample_installment, sample_loan, as_of)

    def test_missing_rates_default_to_zero(self, sample_installment, sample_loan) -> None:
        loan = replace(sample_loan, mora_interest_rate=None, late_fee_rate="abc")

        accrual = accrue(sample_installment, loan, as_of=datetime(2024, 3, 11))

        assert accrual.overdue_days == 10
        assert accrual.charges == Decimal("0")
        assert accrual.total == Decimal("100.00")

    def test_uses_clock_when_as_of_omitted(self, sample_installment, sample_loan) -> None:
        accrual = accrue(sample_installment, sample_loan, clock=lambda: datetime(2024, 3, 11))

        assert accrual.overdue_days == 10

    def test_missing_amount_rejected(self, sample_installment, sample_loan) -> None:
        with pytest.raises(InvalidAccrualInput):
            accrue(replace(sample_installment, amount=None), sample_loan, as_of=datetime(2024, 3, 11))
        with pytest.raises(InvalidAccrualInput):
            accrue(replace(sample_installment, due_date=None), sample_loan, as_of=datetime(2024, 3, 11))

    def test_accrue_amount_accepts_status_codes(self) -> None:
        accrual = accrue_amount(Decimal("100.00"), date(2024, 3, 1), "pago", 1, 2, datetime(2024, 3, 11))

        assert accrual.total == Decimal("100.00")


class TestRateOrZero:
    """Tests for rate defaulting."""

    def test_values(self) -> None:
        assert rate_or_zero(None) == Decimal("0")
        assert rate_or_zero("x") == Decimal("0")
        assert rate_or_zero(-1) == Decimal("0")
        assert rate_or_zero("0.5") == Decimal("0.5")


class TestResolveLoanStatus:
    """Tests for loan status resolution."""

    def test_empty_is_active(self) -> None:
        assert resolve_loan_status([]) == LoanStatus.ACTIVE

    def test_all_paid_is_settled(self, sample_installment) -> None:
        paid = replace(sample_installment, status=InstallmentStatus.PAID)

        assert resolve_loan_status([paid, replace(paid, installment_number=2)]) == LoanStatus.SETTLED

    def test_any_unpaid_is_active(self, sample_installment) -> None:
        paid = replace(sample_installment, status=InstallmentStatus.PAID)
        overdue = replace(sample_installment, installment_number=2, status=InstallmentStatus.OVERDUE)

        assert resolve_loan_status([paid, overdue]) == LoanStatus.ACTIVE
        assert resolve_loan_status([paid, replace(overdue, status=InstallmentStatus.PENDING)]) == LoanStatus.ACTIVE
