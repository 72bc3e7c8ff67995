"""Borrow-request state machine and pricing rules."""

from datetime import date, datetime

import pytest

from lifecycle import (
    InvalidTransition,
    acceptance_content,
    available_actions,
    can_transition,
    compute_total,
    ensure_transition,
    is_chat_open,
    is_negotiable,
    item_rate,
    offer_content,
    progress_percent,
    rate_unit,
    rental_days,
    status_group,
)
from models.request_models import PaymentStatus, RequestStatus, StatusGroup


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "negotiating"),
            ("pending", "accepted"),
            ("pending", "rejected"),
            ("pending", "cancelled"),
            ("negotiating", "negotiating"),
            ("negotiating", "accepted"),
            ("accepted", "active"),
            ("accepted", "cancelled"),
            ("active", "completed"),
            ("active", "overdue"),
            ("overdue", "completed"),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)
        assert ensure_transition(current, target) == RequestStatus(target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "active"),
            ("pending", "completed"),
            ("accepted", "negotiating"),
            ("active", "cancelled"),
            ("overdue", "active"),
        ],
    )
    def test_rejected(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidTransition) as exc_info:
            ensure_transition(current, target)
        assert exc_info.value.current == RequestStatus(current)
        assert current in str(exc_info.value)

    @pytest.mark.parametrize("terminal", ["rejected", "cancelled", "completed"])
    def test_terminal_statuses_never_move(self, terminal):
        for target in RequestStatus:
            assert not can_transition(terminal, target)
        assert not is_chat_open(terminal)

    def test_unknown_status_is_an_error(self):
        with pytest.raises(ValueError):
            can_transition("shipped", "completed")


class TestStatusViews:
    def test_negotiable_only_before_acceptance(self):
        assert is_negotiable("pending")
        assert is_negotiable("negotiating")
        assert not is_negotiable("accepted")

    def test_groups_match_dashboard_tabs(self):
        assert status_group("negotiating") == StatusGroup.PENDING
        assert status_group("overdue") == StatusGroup.ACTIVE
        assert status_group("rejected") == StatusGroup.COMPLETED

    def test_progress(self):
        assert progress_percent("pending") == 25
        assert progress_percent("negotiating") == 50
        assert progress_percent("active") == 75
        assert progress_percent("completed") == 100
        assert progress_percent("cancelled") == 0

    def test_accepted_offers_payment_until_paid(self):
        assert available_actions("accepted", PaymentStatus.PENDING) == ["chat", "payment"]
        assert available_actions("accepted", "completed") == ["chat", "complete"]
        assert available_actions("accepted") == ["chat", "payment"]

    def test_actions_for_other_statuses(self):
        assert available_actions("pending") == ["chat"]
        assert available_actions("active") == ["chat", "complete"]
        assert available_actions("completed") == ["review"]
        assert available_actions("rejected") == []


class TestPricing:
    def test_rental_days_counts_whole_days(self):
        assert rental_days(date(2026, 11, 1), date(2026, 11, 4)) == 3

    def test_same_day_counts_as_one(self):
        assert rental_days(date(2026, 11, 1), date(2026, 11, 1)) == 1

    def test_accepts_datetimes(self):
        assert rental_days(datetime(2026, 11, 1, 9), datetime(2026, 11, 3, 8)) == 2

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            rental_days(date(2026, 11, 4), date(2026, 11, 1))

    def test_total_is_rate_times_duration(self):
        assert compute_total(12.5, 3) == 37.5
        assert compute_total(0.1, 3) == 0.3

    def test_negative_inputs(self):
        with pytest.raises(ValueError):
            compute_total(-1, 3)

    def test_services_are_priced_hourly(self):
        service = {"is_service": True, "hourly_rate": 25, "daily_rate": 100}
        assert item_rate(service) == 25.0
        assert rate_unit(service) == "hour"
        assert item_rate({"daily_rate": None}) == 0.0
        assert rate_unit({}) == "day"

    def test_offer_wording(self):
        assert offer_content(12.5, 3, "day") == "Offer: $12.5/day for 3 days"
        assert offer_content(20.0, 2, "hour") == "Offer: $20/hour for 2 days"
        assert acceptance_content(8, 4, "day") == "Offer accepted! Final terms: $8/day for 4 days"

    def test_amounts_that_round_to_whole_dollars(self):
        assert offer_content(12.999, 3, "day") == "Offer: $13/day for 3 days"
        assert acceptance_content(10.001, 2, "hour") == "Offer accepted! Final terms: $10/hour for 2 days"
