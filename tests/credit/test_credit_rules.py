"""Test cases for the upgrade credit pricing rules."""

from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.schemas.order import OrderRecord
from app.services.credit_service import (
    adjusted_price,
    candidate_base_price,
    compute_credit,
    credit_basis_price,
    days_left,
    eligible_upgrades,
    latest_order,
    price_candidate,
    to_minor_units,
    total_duration_days,
    utc_day,
)
from tests.conftest import make_plan


class TestWorkedExample:
    """Plan A with ten of thirty days left, upgrading to Plan B on 2024-01-21."""

    today = date(2024, 1, 21)

    def test_days_left(self, order_on_plan_a):
        assert days_left(order_on_plan_a.endDate, self.today) == 10

    def test_total_duration(self, order_on_plan_a):
        assert (
            total_duration_days(
                order_on_plan_a.startDate, order_on_plan_a.endDate, "MONTH"
            )
            == 30
        )

    def test_credit(self, plan_a):
        assert compute_credit(10, 30, credit_basis_price(plan_a)) == Decimal("333.33")

    def test_adjusted_price_and_paise(self, plan_b):
        candidate = price_candidate(plan_b, Decimal("333.33"))

        assert candidate.basePrice == Decimal("2000.00")
        assert candidate.creditApplied == Decimal("333.33")
        assert candidate.adjustedPrice == Decimal("1666.67")
        assert candidate.amountInPaise == 166667

    def test_cheaper_plan_excluded_regardless_of_discount(self, plan_a, plan_b, plan_c):
        eligible = eligible_upgrades([plan_a, plan_b, plan_c], plan_a)

        assert [plan.planId for plan in eligible] == ["plan-b"]


class TestDaysLeft:
    def test_absent_end_date(self):
        assert days_left(None, date(2024, 1, 1)) == 0

    def test_expired_term_is_zero(self):
        assert days_left(datetime(2024, 1, 1), date(2024, 3, 1)) == 0

    def test_end_date_in_other_timezone_uses_utc_day(self):
        # 2024-01-31 02:00 in IST is still 2024-01-30 in UTC
        end = datetime(2024, 1, 31, 2, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))

        assert days_left(end, date(2024, 1, 21)) == 9

    def test_naive_datetime_taken_as_utc(self):
        assert utc_day(datetime(2024, 1, 31, 23, 59)) == date(2024, 1, 31)
        assert utc_day(datetime(2024, 1, 31, 23, 59, tzinfo=UTC)) == date(2024, 1, 31)


class TestTotalDuration:
    @pytest.mark.parametrize(
        "duration, expected",
        [
            ("YEAR", 365),
            ("quarter", 90),
            ("MONTH", 30),
            ("WEEKLY", 0),
            ("YEARLY", 0),
            ("monthly", 0),
            ("3 months", 0),
            (None, 0),
        ],
    )
    def test_nominal_fallback(self, duration, expected):
        assert total_duration_days(None, None, duration) == expected

    def test_end_before_start_falls_back(self):
        start, end = datetime(2024, 2, 1), datetime(2024, 1, 1)

        assert total_duration_days(start, end, "QUARTER") == 90


class TestComputeCredit:
    def test_zero_total_days(self):
        assert compute_credit(10, 0, Decimal("1000")) == Decimal("0.00")

    def test_clamped_to_price_under_clock_skew(self):
        # More days left than the term is long
        assert compute_credit(45, 30, Decimal("1000")) == Decimal("1000.00")

    def test_never_negative(self):
        assert compute_credit(-3, 30, Decimal("1000")) == Decimal("0.00")

    def test_rounds_half_up(self):
        # 1 * 100.01 / 2 = 50.005
        assert compute_credit(1, 2, Decimal("100.01")) == Decimal("50.01")

    @pytest.mark.parametrize("remaining", range(0, 31))
    def test_bounded_by_effective_price(self, remaining):
        plan = make_plan("p", "Basic", 999, discounted=749, discount_active=True)

        credit = compute_credit(remaining, 30, credit_basis_price(plan))

        assert Decimal("0") <= credit <= Decimal("749")


class TestBasisPrices:
    def test_credit_basis_uses_discount_when_active(self):
        plan = make_plan("p", "Basic", 1000, discounted=800, discount_active=True)

        assert credit_basis_price(plan) == Decimal("800")

    def test_credit_basis_ignores_inactive_discount(self):
        plan = make_plan("p", "Basic", 1000, discounted=800, discount_active=False)

        assert credit_basis_price(plan) == Decimal("1000")

    def test_candidate_base_ignores_zero_discounted_price(self):
        plan = make_plan("p", "Basic", 1000, discounted=0, discount_active=True)

        assert candidate_base_price(plan) == Decimal("1000")


class TestEligibility:
    def test_equal_price_is_not_an_upgrade(self, plan_a):
        lateral = make_plan("plan-x", "Basic Plus", 1000)

        assert eligible_upgrades([lateral], plan_a) == []

    def test_no_current_plan_keeps_whole_catalog(self, plan_a, plan_b, plan_c):
        assert eligible_upgrades([plan_a, plan_b, plan_c], None) == [
            plan_a,
            plan_b,
            plan_c,
        ]


class TestAdjustedPrice:
    def test_floor_at_zero(self):
        assert adjusted_price(Decimal("500"), Decimal("750")) == Decimal("0.00")

    def test_minor_units_round_half_up(self):
        assert to_minor_units(Decimal("1666.665")) == 166667
        assert to_minor_units(Decimal("0.00")) == 0

    def test_credit_applied_never_exceeds_base(self):
        plan = make_plan("p", "Advanced", 500)

        candidate = price_candidate(plan, Decimal("750.00"))

        assert candidate.creditApplied == Decimal("500.00")
        assert candidate.adjustedPrice == Decimal("0.00")


class TestLatestOrder:
    def test_empty(self):
        assert latest_order([]) is None

    def test_newest_by_creation_time(self):
        old = OrderRecord(id="a", createdAt=datetime(2024, 1, 1))
        new = OrderRecord(id="b", createdAt=datetime(2024, 2, 1))

        assert latest_order([new, old]).id == "b"

    def test_ties_broken_by_id(self):
        created = datetime(2024, 1, 1, tzinfo=UTC)
        first = OrderRecord(id="order-1", createdAt=created)
        second = OrderRecord(id="order-2", createdAt=created)

        assert latest_order([second, first]).id == "order-2"
        assert latest_order([first, second]).id == "order-2"

    def test_missing_creation_time_sorts_oldest(self):
        undated = OrderRecord(id="z")
        dated = OrderRecord(id="a", createdAt=datetime(2023, 5, 1))

        assert latest_order([undated, dated]).id == "a"
