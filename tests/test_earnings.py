"""
Earnings and dashboard tests
"""

from datetime import datetime

import pytest

from fannu.actions import (
    create_booking_request,
    initiate_booking_payment,
    initiate_purchase,
    send_quote,
    subscribe_to_vip,
)
from fannu.database.models import VipChannel, VipSource
from fannu.queries import (
    get_creator_earnings,
    get_dashboard_data,
    get_drop_stats_by_creator_id,
    get_earnings_stats_by_creator_id,
    get_recent_activity,
    get_vip_stats_by_creator_id,
)
from fannu.queries.earnings import month_bounds, month_change_percent


class TestMonthMath:
    """month_bounds and month_change_percent"""

    def test_month_bounds(self):
        start, previous = month_bounds(datetime(2025, 3, 15, 10, 30))

        assert start == datetime(2025, 3, 1)
        assert previous == datetime(2025, 2, 1)

    def test_month_bounds_january(self):
        start, previous = month_bounds(datetime(2025, 1, 5))

        assert previous == datetime(2024, 12, 1)

    @pytest.mark.parametrize("this_month,last_month,expected", [
        (150, 100, 50),
        (50, 100, -50),
        (100, 0, 0),
        (0, 0, 0),
    ])
    def test_change_percent(self, this_month, last_month, expected):
        assert month_change_percent(this_month, last_month) == expected


class TestCreatorEarnings:
    """get_creator_earnings"""

    def test_no_activity(self, creator):
        summary = get_creator_earnings(creator.id)

        assert summary.data.total_earned == 0
        assert summary.transactions == []

    def test_drop_sales_and_deposits(self, creator, live_drop, booking_payload, quote_payload):
        initiate_purchase(live_drop.id, "+251911000001", quantity=2)
        booking = create_booking_request(booking_payload).data
        quote = send_quote(booking.id, quote_payload).data
        initiate_booking_payment(booking.id, quote.id)

        summary = get_creator_earnings(creator.id)

        assert summary.data.total_earned == 100000 + 1800000
        assert summary.data.available_balance == summary.data.total_earned
        assert summary.data.pending_balance == 0
        assert summary.data.this_month == summary.data.total_earned
        assert summary.data.transactions_this_month == 2
        assert {t.type for t in summary.transactions} == {"drop_sales", "booking_deposit"}
        sale = next(t for t in summary.transactions if t.type == "drop_sales")
        assert sale.subtitle == f"{live_drop.title} · 2 tickets"
        deposit = next(t for t in summary.transactions if t.type == "booking_deposit")
        assert deposit.subtitle == "Abebe Kebede · Concert"

    def test_pending_purchase(self, creator, live_drop, monkeypatch):
        from fannu.config import settings
        monkeypatch.setattr(settings, "simulate_payments", False)

        initiate_purchase(live_drop.id, "+251911000001")

        data = get_creator_earnings(creator.id).data
        assert data.pending_balance == 50000
        assert data.total_earned == 0

    def test_other_creators_excluded(self, make_creator, live_drop):
        initiate_purchase(live_drop.id, "+251911000001")
        other = make_creator()

        assert get_creator_earnings(other.id).data.total_earned == 0


class TestDashboard:
    """Dashboard aggregates"""

    def test_stats(self, creator, live_drop, booking_payload):
        subscribe_to_vip(creator.id, "+251911000001", VipChannel.TELEGRAM, VipSource.CREATOR_PROFILE)
        subscribe_to_vip(creator.id, "+251911000002", VipChannel.SMS, VipSource.DROP_PAGE)
        initiate_purchase(live_drop.id, "+251911000001", quantity=3)
        create_booking_request(booking_payload)

        data = get_dashboard_data(creator.id)

        assert data.creator.slug == creator.slug
        assert data.vip_stats.total == 2
        assert data.vip_stats.last_30_days == 2
        assert data.vip_stats.by_channel["TELEGRAM"] == 1
        assert data.vip_stats.by_source["DROP_PAGE"] == 1
        assert data.drop_stats.total_drops == 1
        assert data.drop_stats.live_drops == 1
        assert data.drop_stats.total_revenue == 150000
        assert data.drop_stats.total_sales == 3
        assert data.earnings_stats.average_order_value == 150000
        assert data.booking_stats.requested == 1
        assert len(data.pending_bookings) == 1
        assert len(data.recent_purchases) == 1

    def test_missing_creator(self):
        assert get_dashboard_data("missing") is None

    def test_empty_stats(self, creator):
        assert get_vip_stats_by_creator_id(creator.id).total == 0
        assert get_drop_stats_by_creator_id(creator.id).total_revenue == 0
        assert get_earnings_stats_by_creator_id(creator.id).average_order_value == 0

    def test_recent_activity(self, creator, live_drop, booking_payload):
        subscribe_to_vip(creator.id, "+251911000001", VipChannel.TELEGRAM, VipSource.CREATOR_PROFILE,
                         fan_name="Hana")
        initiate_purchase(live_drop.id, "+251911009876")
        create_booking_request(booking_payload)

        activity = get_recent_activity(creator.id)

        assert [item.type for item in activity] == ["booking", "purchase", "vip"]
        assert activity[1].name == "9876"
        assert activity[1].amount == 50000
        assert activity[2].name == "Hana"
        assert activity[2].source == "creator profile"
