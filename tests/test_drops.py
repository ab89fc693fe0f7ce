"""
Drop lifecycle tests
"""

from datetime import timedelta

import pytest

from fannu.actions import (
    INVALID_STATE,
    NOT_FOUND,
    VALIDATION_ERROR,
    advance_drop_windows,
    create_drop,
    delete_drop,
    end_drop,
    initiate_purchase,
    publish_drop,
    update_drop,
)
from fannu.database.models import DropStatus
from fannu.queries import get_drop_by_id, get_drops_by_creator_id, get_drops_by_creator_slug
from fannu.utils import utcnow
from fannu.web.page_cache import page_cache


class TestCreateDrop:
    """create_drop"""

    @pytest.fixture
    def payload(self):
        return {
            "title": "Live at Ghion Hotel",
            "description": "One night only",
            "type": "EVENT",
            "price": "150000",
            "total_slots": "50",
        }

    def test_creates_draft(self, creator, payload):
        """New drops start as DRAFT with every slot remaining"""
        result = create_drop(creator.id, payload)

        assert result.success
        drop = result.data
        assert drop.status == DropStatus.DRAFT
        assert drop.slug == "live-at-ghion-hotel"
        assert drop.price == 150000
        assert drop.total_slots == 50
        assert drop.slots_remaining == 50
        assert drop.currency == "ETB"
        assert drop.vip_required is False

    def test_duplicate_title_gets_suffix(self, creator, payload):
        first = create_drop(creator.id, payload).data
        second = create_drop(creator.id, payload).data

        assert first.slug != second.slug
        assert second.slug.startswith("live-at-ghion-hotel-")

    def test_unlimited_slots(self, creator, payload):
        del payload["total_slots"]
        drop = create_drop(creator.id, payload).data

        assert drop.total_slots is None
        assert drop.slots_remaining is None

    def test_missing_title(self, creator, payload):
        payload["title"] = "   "
        result = create_drop(creator.id, payload)

        assert result.code == VALIDATION_ERROR
        assert "title" in result.field_errors

    def test_unknown_type(self, creator, payload):
        payload["type"] = "CONCERT"
        result = create_drop(creator.id, payload)

        assert result.code == VALIDATION_ERROR
        assert "type" in result.field_errors

    def test_zero_slots_rejected(self, creator, payload):
        payload["total_slots"] = "0"
        result = create_drop(creator.id, payload)

        assert "total_slots" in result.field_errors

    def test_negative_price_rejected(self, creator, payload):
        """Rejected before anything is written"""
        payload["price"] = "-1"
        result = create_drop(creator.id, payload)

        assert result.code == VALIDATION_ERROR
        assert "price" in result.field_errors
        assert get_drops_by_creator_id(creator.id) == []


class TestUpdateDrop:
    """update_drop"""

    def test_partial_update(self, live_drop):
        """Only the provided fields change"""
        result = update_drop(live_drop.id, {"title": "VIP soundcheck"})

        assert result.success
        drop = get_drop_by_id(live_drop.id)
        assert drop.title == "VIP soundcheck"
        assert drop.description == live_drop.description
        assert drop.price == live_drop.price

    def test_total_slots_keeps_sold_count(self, live_drop):
        """3 sold of 10; raising to 20 leaves 17"""
        assert initiate_purchase(live_drop.id, "+251911000111", quantity=3).success

        update_drop(live_drop.id, {"total_slots": 20})

        drop = get_drop_by_id(live_drop.id)
        assert drop.total_slots == 20
        assert drop.slots_remaining == 17

    def test_total_slots_never_negative(self, live_drop):
        initiate_purchase(live_drop.id, "+251911000111", quantity=5)

        update_drop(live_drop.id, {"total_slots": 2})

        assert get_drop_by_id(live_drop.id).slots_remaining == 0

    def test_missing_drop(self):
        assert update_drop("missing", {"title": "x"}).code == NOT_FOUND


class TestDropStatus:
    """publish_drop, end_drop, delete_drop"""

    def test_publish_now(self, make_drop):
        drop = make_drop(status=DropStatus.DRAFT)
        result = publish_drop(drop.id)

        assert result.success
        assert result.data.status == DropStatus.LIVE

    def test_publish_later(self, make_drop):
        """A future schedule_for makes the drop SCHEDULED"""
        drop = make_drop(status=DropStatus.DRAFT)
        when = utcnow() + timedelta(days=2)
        result = publish_drop(drop.id, {"schedule_for": when.isoformat()})

        assert result.data.status == DropStatus.SCHEDULED
        assert result.data.scheduled_at == when

    def test_publish_past_schedule_goes_live(self, make_drop):
        drop = make_drop(status=DropStatus.DRAFT)
        when = utcnow() - timedelta(hours=1)
        result = publish_drop(drop.id, {"schedule_for": when.isoformat()})

        assert result.data.status == DropStatus.LIVE

    def test_publish_ended_drop(self, make_drop):
        drop = make_drop(status=DropStatus.ENDED)
        result = publish_drop(drop.id)

        assert result.code == INVALID_STATE
        assert get_drop_by_id(drop.id).status == DropStatus.ENDED

    def test_end_drop(self, live_drop):
        assert end_drop(live_drop.id).data.status == DropStatus.ENDED
        assert end_drop(live_drop.id).code == INVALID_STATE

    def test_delete_without_purchases(self, live_drop):
        assert delete_drop(live_drop.id).success
        assert get_drop_by_id(live_drop.id) is None

    def test_delete_with_purchases_refused(self, live_drop):
        initiate_purchase(live_drop.id, "+251911000111")

        result = delete_drop(live_drop.id)

        assert result.code == INVALID_STATE
        assert get_drop_by_id(live_drop.id) is not None

    def test_status_change_evicts_public_pages(self, creator, live_drop):
        page_cache.set(f"/d/{live_drop.slug}", "<html>drop</html>")
        page_cache.set(f"/c/{creator.slug}", "<html>creator</html>")

        end_drop(live_drop.id)

        assert page_cache.get(f"/d/{live_drop.slug}") is None
        assert page_cache.get(f"/c/{creator.slug}") is None


class TestAdvanceDropWindows:
    """advance_drop_windows"""

    def test_scheduled_goes_live(self, make_drop):
        now = utcnow()
        due = make_drop(status=DropStatus.SCHEDULED, scheduled_at=now - timedelta(minutes=1))
        later = make_drop(status=DropStatus.SCHEDULED, scheduled_at=now + timedelta(days=1))

        counts = advance_drop_windows(now)

        assert counts == {"went_live": 1, "ended": 0}
        assert get_drop_by_id(due.id).status == DropStatus.LIVE
        assert get_drop_by_id(later.id).status == DropStatus.SCHEDULED

    def test_live_past_end_is_ended(self, make_drop):
        now = utcnow()
        expired = make_drop(ends_at=now - timedelta(minutes=1))
        open_ended = make_drop(ends_at=None)

        counts = advance_drop_windows(now)

        assert counts["ended"] == 1
        assert get_drop_by_id(expired.id).status == DropStatus.ENDED
        assert get_drop_by_id(open_ended.id).status == DropStatus.LIVE

    def test_nothing_due(self, live_drop):
        assert advance_drop_windows() == {"went_live": 0, "ended": 0}


class TestVisibleDrops:
    """Fan-facing drop lists"""

    def test_only_live_and_scheduled(self, creator, make_drop):
        make_drop(status=DropStatus.DRAFT)
        make_drop(status=DropStatus.ENDED)
        live = make_drop()
        scheduled = make_drop(status=DropStatus.SCHEDULED, scheduled_at=utcnow() + timedelta(days=1))

        slugs = {drop.slug for drop in get_drops_by_creator_slug(creator.slug)}

        assert slugs == {live.slug, scheduled.slug}

    def test_unknown_creator(self):
        assert get_drops_by_creator_slug("nobody") == []
