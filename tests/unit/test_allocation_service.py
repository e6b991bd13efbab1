"""Unit tests for allocation service."""

import pytest

from src.services.allocation_service import AllocationService, allocate
from src.services.errors import InvalidAmountError, InvalidScheduleError


class TestAllocationService:
    """Test allocation service methods."""

    @pytest.fixture
    def service(self):
        """Create allocation service instance."""
        return AllocationService()

    def test_repair_then_one_month(self, service):
        """Negative credit is repaired before whole months are bought."""
        plan = service.allocate(8000, 5000, -2000)

        assert plan.credit_repair_amount == 2000
        assert plan.credit_balance_after_repair == 0
        assert plan.remaining_for_dues == 6000
        assert plan.per_month_amounts == (5000,)
        assert plan.remaining_credit == 1000

    def test_repair_leaves_month_and_credit(self, service):
        """5000 against 2000/month with -1500 credit: repair, one month, 1500 credit."""
        plan = service.allocate(5000, 2000, -1500)

        assert plan.credit_repair_amount == 1500
        assert plan.credit_balance_after_repair == 0
        assert plan.remaining_for_dues == 3500
        assert plan.per_month_amounts == (2000,)
        assert plan.remaining_credit == 1500

    def test_pure_credit_addition(self, service):
        """Half a month is banked entirely as credit."""
        plan = service.allocate(1000, 2000, 0)

        assert plan.per_month_amounts == ()
        assert plan.remaining_credit == 1000

    def test_three_months_keep_existing_credit(self, service):
        """6000 at 2000/month buys three months, credit 500 stays."""
        plan = service.allocate(6000, 2000, 500)

        assert plan.per_month_amounts == (2000, 2000, 2000)
        assert plan.remaining_credit == 500
        assert plan.credit_repair_amount == 0

    def test_positive_credit_untouched(self, service):
        """Existing positive credit is carried, not spent."""
        plan = service.allocate(12000, 5000, 1500)

        assert plan.credit_repair_amount == 0
        assert plan.per_month_amounts == (5000, 5000)
        assert plan.remaining_credit == 3500

    def test_payment_smaller_than_debt(self, service):
        """Whole payment goes to repair when debt exceeds it."""
        plan = service.allocate(3000, 5000, -10000)

        assert plan.credit_repair_amount == 3000
        assert plan.credit_balance_after_repair == -7000
        assert plan.per_month_amounts == ()
        assert plan.remaining_credit == -7000
        assert plan.is_credit_only

    def test_payment_below_schedule_goes_to_credit(self, service):
        """Less than one month buys nothing and is banked."""
        plan = service.allocate(4999, 5000, 0)

        assert plan.month_count == 0
        assert plan.remaining_credit == 4999
        assert plan.credit_added == 4999

    def test_exact_multiple(self, service):
        """Exact multiples of the schedule leave credit unchanged."""
        plan = service.allocate(15000, 5000, 0)

        assert plan.month_count == 3
        assert plan.dues_total == 15000
        assert plan.remaining_credit == 0

    @pytest.mark.parametrize(
        "payment,scheduled,credit",
        [(1, 1, 0), (8000, 5000, -2000), (123457, 5000, -999), (5000, 7, 3), (100, 5000, -100)],
    )
    def test_payment_is_conserved(self, service, payment, scheduled, credit):
        """Repair, months and credit added always sum to the payment."""
        plan = service.allocate(payment, scheduled, credit)

        assert plan.credit_repair_amount + plan.dues_total + plan.credit_added == payment
        assert all(amount == scheduled for amount in plan.per_month_amounts)

    def test_repair_never_overshoots_zero(self, service):
        """Repair stops at zero; the rest is allocated normally."""
        plan = service.allocate(100000, 5000, -2000)

        assert plan.credit_balance_after_repair == 0
        assert plan.credit_repair_amount == 2000
        assert plan.remaining_for_dues == 98000

    @pytest.mark.parametrize("payment", [0, -100, 10.5, "100", True])
    def test_invalid_payment(self, service, payment):
        """Non-positive or non-integer payments are rejected."""
        with pytest.raises(InvalidAmountError):
            service.allocate(payment, 5000, 0)

    @pytest.mark.parametrize("scheduled", [0, -1, 50.0, None])
    def test_invalid_schedule(self, service, scheduled):
        """Non-positive or non-integer schedules are rejected."""
        with pytest.raises(InvalidScheduleError):
            service.allocate(5000, scheduled, 0)

    def test_invalid_credit(self, service):
        """Credit must be an integer."""
        with pytest.raises(InvalidAmountError):
            service.allocate(5000, 5000, 1.5)

    def test_module_shortcut(self):
        """allocate() matches the service method."""
        assert allocate(8000, 5000, -2000) == AllocationService().allocate(8000, 5000, -2000)
