"""
Creator settings and moderation tests
"""

from fannu.actions import (
    INVALID_STATE,
    NOT_FOUND,
    VALIDATION_ERROR,
    moderate_creator,
    set_booking_approval,
    update_creator_booking_settings,
    update_creator_profile,
)
from fannu.database.models import CreatorStatus
from fannu.queries import get_creator_by_id, get_creator_by_slug
from fannu.web.page_cache import page_cache


class TestCreatorSettings:
    """update_creator_profile and update_creator_booking_settings"""

    def test_profile_update(self, creator):
        result = update_creator_profile(creator.id, {
            "display_name": "Teddy",
            "bio": "Singer from Addis",
            "avatar_url": "https://cdn.example.com/teddy.jpg",
        })

        assert result.success
        updated = get_creator_by_id(creator.id)
        assert updated.display_name == "Teddy"
        assert updated.bio == "Singer from Addis"
        assert updated.avatar_url == "https://cdn.example.com/teddy.jpg"

    def test_profile_update_evicts_public_pages(self, creator):
        page_cache.set(f"/c/{creator.slug}", "<html></html>")
        page_cache.set("/d/drop-1", "<html></html>")

        update_creator_profile(creator.id, {"display_name": "Teddy"})

        assert len(page_cache) == 0

    def test_display_name_required(self, creator):
        result = update_creator_profile(creator.id, {"display_name": ""})

        assert result.code == VALIDATION_ERROR
        assert get_creator_by_id(creator.id).display_name == "Teddy Afro"

    def test_bad_email(self, creator):
        result = update_creator_profile(creator.id, {"display_name": "Teddy", "email": "not-an-email"})

        assert "email" in result.field_errors

    def test_booking_settings(self, creator):
        result = update_creator_booking_settings(creator.id, {
            "booking_enabled": False,
            "default_deposit_percent": 40,
            "default_deposit_refundable": True,
        })

        assert result.success
        updated = get_creator_by_id(creator.id)
        assert updated.booking_enabled is False
        assert updated.default_deposit_percent == 40
        assert updated.default_deposit_refundable is True

    def test_deposit_percent_range(self, creator):
        result = update_creator_booking_settings(creator.id, {"default_deposit_percent": 101})

        assert "default_deposit_percent" in result.field_errors

    def test_missing_creator(self):
        assert update_creator_profile("missing", {"display_name": "X"}).code == NOT_FOUND


class TestModeration:
    """moderate_creator and set_booking_approval"""

    def test_approve_pending(self, make_creator):
        pending = make_creator(status=CreatorStatus.PENDING_APPROVAL)

        assert moderate_creator(pending.id, "approve").success
        assert get_creator_by_id(pending.id).status == CreatorStatus.ACTIVE

    def test_suspend_disables_bookings(self, creator):
        assert moderate_creator(creator.id, "suspend").success

        suspended = get_creator_by_id(creator.id)
        assert suspended.status == CreatorStatus.SUSPENDED
        assert suspended.booking_enabled is False
        assert get_creator_by_slug(creator.slug) is None

    def test_reactivate(self, creator):
        moderate_creator(creator.id, "suspend")

        assert moderate_creator(creator.id, "reactivate").success
        assert get_creator_by_id(creator.id).status == CreatorStatus.ACTIVE

    def test_wrong_starting_status(self, creator):
        result = moderate_creator(creator.id, "approve")

        assert result.code == INVALID_STATE
        assert get_creator_by_id(creator.id).status == CreatorStatus.ACTIVE

    def test_unknown_move(self, creator):
        assert moderate_creator(creator.id, "delete").code == INVALID_STATE

    def test_booking_approval(self, creator):
        assert set_booking_approval(creator.id, False).success
        assert get_creator_by_id(creator.id).booking_approved is False
