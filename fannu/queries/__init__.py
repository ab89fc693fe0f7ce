"""
Read queries

Each function opens its own session and returns detached objects.
Database errors are logged and mapped to None, [] or zeroed stats.
"""

from .creators import get_creator_by_slug, get_creator_by_id, get_creator_by_user_id, get_all_creators
from .drops import (
    DropStats,
    get_drop_by_slug,
    get_drop_by_id,
    get_drops_by_creator_id,
    get_live_drops_by_creator_id,
    get_drops_by_creator_slug,
    get_drop_stats_by_creator_id,
)
from .broadcasts import (
    BroadcastStats,
    get_broadcasts_by_creator_id,
    get_broadcast_by_id,
    get_broadcast_stats_by_creator_id,
    get_recipients_count,
)
from .vip import (
    VipStats,
    get_audience,
    get_vip_count,
    get_recent_vips,
    get_vip_subscription,
    get_vip_stats_by_creator_id,
)
from .bookings import (
    BookingStats,
    get_booking_by_id,
    get_booking_by_reference_code,
    get_bookings_by_creator_id,
    get_all_bookings,
    get_pending_bookings_count,
    get_booking_stats_by_creator_id,
    get_booking_payment_by_receipt_id,
)
from .purchases import (
    EarningsStats,
    get_purchase_by_receipt_id,
    get_purchases_by_drop_id,
    get_recent_purchases_by_creator_id,
    get_earnings_stats_by_creator_id,
)
from .earnings import EarningsData, EarningsSummary, Transaction, get_creator_earnings
from .dashboard import ActivityItem, DashboardData, get_dashboard_data, get_recent_activity
