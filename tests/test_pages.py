"""
HTML page tests: public pages, the creator app and the admin area
"""

import bcrypt
import pytest
from fastapi.testclient import TestClient

from fannu.config import settings
from fannu.database.models import BookingStatus, DropStatus
from fannu.queries import get_bookings_by_creator_id, get_drop_by_id, get_vip_count
from fannu.web.app import app
from fannu.web.page_cache import page_cache


@pytest.fixture
def client():
    return TestClient(app)


class TestPublicPages:
    """Creator profile, drop page and checkout"""

    def test_home_lists_active_creators(self, client, creator):
        response = client.get("/")

        assert response.status_code == 200
        assert creator.display_name in response.text

    def test_creator_page_is_cached(self, client, creator, live_drop):
        response = client.get(f"/c/{creator.slug}")

        assert response.status_code == 200
        assert live_drop.title in response.text
        assert page_cache.get(f"/c/{creator.slug}") == response.text

    def test_unknown_creator(self, client):
        response = client.get("/c/nobody")

        assert response.status_code == 404
        assert "text/html" in response.headers["content-type"]

    def test_join_vip_from_profile(self, client, creator):
        response = client.post(
            f"/c/{creator.slug}/vip",
            data={"fan_phone": "0911223344", "channel": "SMS"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"].startswith(f"/c/{creator.slug}/vip-success?confirmation=VIP-")
        assert get_vip_count(creator.id) == 1

    def test_join_vip_bad_phone(self, client, creator):
        response = client.post(f"/c/{creator.slug}/vip", data={"fan_phone": "123", "channel": "SMS"})

        assert response.status_code == 400
        assert get_vip_count(creator.id) == 0

    def test_vip_success_page(self, client, creator):
        response = client.get(f"/c/{creator.slug}/vip-success?confirmation=VIP-ABC123&state=new")

        assert response.status_code == 200
        assert "VIP-ABC123" in response.text

    def test_drop_page(self, client, live_drop):
        response = client.get(f"/d/{live_drop.slug}")

        assert response.status_code == 200
        assert live_drop.title in response.text

    def test_draft_drop_hidden(self, client, make_drop):
        draft = make_drop(status=DropStatus.DRAFT)

        assert client.get(f"/d/{draft.slug}").status_code == 404

    def test_checkout(self, client, live_drop):
        response = client.post(
            f"/d/{live_drop.slug}/checkout",
            data={"fan_phone": "0911223344", "quantity": "2"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        confirmed = client.get(response.headers["location"])
        assert confirmed.status_code == 200
        assert get_drop_by_id(live_drop.id).slots_remaining == 8

    def test_checkout_evicts_cached_drop_page(self, client, live_drop):
        client.get(f"/d/{live_drop.slug}")
        assert page_cache.get(f"/d/{live_drop.slug}") is not None

        client.post(f"/d/{live_drop.slug}/checkout", data={"fan_phone": "0911223344"})

        assert page_cache.get(f"/d/{live_drop.slug}") is None

    def test_checkout_sold_out(self, client, make_drop):
        drop = make_drop(total_slots=1, slots_remaining=0)

        response = client.post(f"/d/{drop.slug}/checkout", data={"fan_phone": "0911223344"})

        assert response.status_code == 400


class TestBookingPages:
    """Booking form, tracking and deposit payment"""

    @pytest.fixture
    def form(self, booking_payload):
        return dict(booking_payload, budget_min="50,000", budget_max="80000")

    def test_submit_booking(self, client, creator, form):
        response = client.post(f"/book/{creator.slug}", data=form, follow_redirects=False)

        assert response.status_code == 303
        assert "/track/BK-" in response.headers["location"]
        booking = get_bookings_by_creator_id(creator.id)[0]
        assert booking.budget_min == 5000000
        assert booking.budget_max == 8000000

    def test_submit_invalid_booking(self, client, creator, form):
        form["notes"] = "Too short"

        response = client.post(f"/book/{creator.slug}", data=form)

        assert response.status_code == 400
        assert get_bookings_by_creator_id(creator.id) == []

    def test_track_by_code(self, client, creator, form):
        client.post(f"/book/{creator.slug}", data=form)
        code = get_bookings_by_creator_id(creator.id)[0].reference_code

        response = client.get(f"/track?code={code.lower()}", follow_redirects=False)

        assert response.headers["location"] == f"/track/{code}"
        assert client.get(f"/track/{code}").status_code == 200

    def test_track_unknown_code(self, client):
        assert client.get("/track/BK-ZZZZ").status_code == 404

    def test_pay_deposit(self, client, creator, booking_payload, quote_payload):
        from fannu.actions import create_booking_request, send_quote
        booking = create_booking_request(booking_payload).data
        quote = send_quote(booking.id, quote_payload).data

        assert client.get(f"/booking/{booking.id}").status_code == 200
        response = client.post(f"/booking/{booking.id}/pay", data={"quote_id": quote.id}, follow_redirects=False)

        assert response.status_code == 303
        assert f"/booking/{booking.id}/receipt/RCP-" in response.headers["location"]
        assert client.get(response.headers["location"]).status_code == 200
        assert get_bookings_by_creator_id(creator.id)[0].status == BookingStatus.DEPOSIT_PAID


class TestCreatorApp:
    """/app pages behind the gateway header"""

    @pytest.fixture
    def headers(self, creator):
        return {settings.auth_user_header: creator.user_id}

    def test_dashboard(self, client, headers, creator):
        response = client.get("/app/dashboard", headers=headers)

        assert response.status_code == 200
        assert creator.display_name in response.text

    @pytest.mark.parametrize("path", [
        "/app/drops", "/app/drops/new", "/app/broadcasts", "/app/broadcasts/new",
        "/app/audience", "/app/bookings", "/app/earnings", "/app/settings",
    ])
    def test_pages_render(self, client, headers, path):
        assert client.get(path, headers=headers).status_code == 200

    def test_unknown_user(self, client):
        response = client.get("/app/dashboard", headers={settings.auth_user_header: "nobody"})

        assert response.status_code == 401

    def test_no_header_outside_development(self, client, creator, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")

        assert client.get("/app/dashboard").status_code == 401

    def test_create_drop_in_etb(self, client, headers, creator):
        response = client.post("/app/drops/new", headers=headers, follow_redirects=False, data={
            "title": "Hoodie",
            "description": "Tour hoodie",
            "type": "MERCH",
            "price": "1500",
            "total_slots": "20",
            "vip_required": "on",
        })

        assert response.status_code == 303
        drop_id = response.headers["location"].split("?")[0].rsplit("/", 1)[-1]
        drop = get_drop_by_id(drop_id)
        assert drop.price == 150000
        assert drop.vip_required is True
        assert drop.status == DropStatus.DRAFT

    def test_other_creators_drop(self, client, make_creator, live_drop):
        """Drops are only visible to their owner"""
        other = make_creator()

        response = client.get(f"/app/drops/{live_drop.id}", headers={settings.auth_user_header: other.user_id})

        assert response.status_code == 404

    def test_booking_detail(self, client, headers, booking_payload):
        from fannu.actions import create_booking_request
        booking = create_booking_request(booking_payload).data

        response = client.get(f"/app/bookings/{booking.id}", headers=headers)

        assert response.status_code == 200
        assert booking.reference_code in response.text


class TestAudiencePages:
    """Audience filters, CSV export and removing a fan"""

    @pytest.fixture
    def headers(self, creator):
        return {settings.auth_user_header: creator.user_id}

    @pytest.fixture
    def fans(self, creator):
        from fannu.actions import subscribe_to_vip, unsubscribe_from_vip
        from fannu.database.models import VipChannel, VipSource

        subscribe_to_vip(creator.id, "+251911000001", VipChannel.TELEGRAM, VipSource.CREATOR_PROFILE, fan_name="Hana")
        subscribe_to_vip(creator.id, "+251911000002", VipChannel.SMS, VipSource.DROP_PAGE, fan_name="Dawit")
        subscribe_to_vip(creator.id, "+251911000003", VipChannel.SMS, VipSource.DIRECT_LINK, fan_name="Selam")
        unsubscribe_from_vip(creator.id, "+251911000003")

    def test_active_by_default(self, client, headers, fans):
        response = client.get("/app/audience", headers=headers)

        assert response.status_code == 200
        assert "Hana" in response.text
        assert "Selam" not in response.text

    def test_unsubscribed_filter(self, client, headers, fans):
        response = client.get("/app/audience?status=UNSUBSCRIBED", headers=headers)

        assert "Selam" in response.text
        assert "Hana" not in response.text

    def test_channel_and_search(self, client, headers, fans):
        by_channel = client.get("/app/audience?status=all&channel=SMS", headers=headers)
        by_search = client.get("/app/audience?q=daw", headers=headers)

        assert "Dawit" in by_channel.text and "Selam" in by_channel.text
        assert "Hana" not in by_channel.text
        assert "Dawit" in by_search.text and "Hana" not in by_search.text

    def test_csv_export(self, client, headers, fans, creator):
        response = client.get("/app/audience.csv?status=all", headers=headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert f"vip-audience-{creator.slug}.csv" in response.headers["content-disposition"]
        lines = response.text.strip().splitlines()
        assert lines[0] == "Name,Phone,Channel,Status,Source,Joined"
        assert len(lines) == 4
        assert any(line.startswith("Selam,+251911000003,SMS,UNSUBSCRIBED,DIRECT_LINK,") for line in lines)

    def test_remove_fan(self, client, headers, fans, creator):
        response = client.post(
            "/app/audience/remove", headers=headers, data={"fan_phone": "+251911000001"}, follow_redirects=False,
        )

        assert response.status_code == 303
        assert "notice=" in response.headers["location"]
        assert get_vip_count(creator.id) == 1

    def test_remove_only_touches_own_list(self, client, make_creator, fans, creator):
        """Another creator posting the same phone leaves this list alone"""
        other = make_creator()

        client.post("/app/audience/remove", headers={settings.auth_user_header: other.user_id},
                    data={"fan_phone": "+251911000001"})

        assert get_vip_count(creator.id) == 2


class TestAdminPages:
    """Admin login and moderation"""

    PASSWORD = "correct horse"

    @pytest.fixture
    def password_hash(self, monkeypatch):
        hashed = bcrypt.hashpw(self.PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
        monkeypatch.setattr(settings, "admin_password_hash", hashed)

    def test_requires_login(self, client):
        response = client.get("/admin/creators", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/admin/login"

    def test_wrong_password(self, client, password_hash):
        assert client.post("/admin/login", data={"password": "guess"}).status_code == 401

    def test_login_and_suspend(self, client, password_hash, creator):
        login = client.post("/admin/login", data={"password": self.PASSWORD}, follow_redirects=False)
        assert login.status_code == 303

        listing = client.get("/admin/creators")
        assert listing.status_code == 200
        assert creator.display_name in listing.text

        response = client.post(f"/admin/creators/{creator.id}/suspend", follow_redirects=False)
        assert response.status_code == 303
        assert "notice=" in response.headers["location"]
        assert client.get(f"/c/{creator.slug}").status_code == 404
