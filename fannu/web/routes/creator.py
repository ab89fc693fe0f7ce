"""Creator Routes - dashboard, drops, broadcasts, audience, bookings, earnings and settings"""

import csv
import io
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Form
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from ...actions import (
    cancel_booking,
    cancel_scheduled_broadcast,
    complete_booking,
    confirm_booking,
    create_broadcast,
    create_drop,
    decline_booking,
    delete_broadcast,
    delete_drop,
    end_drop,
    publish_drop,
    save_broadcast_draft,
    send_quote,
    unsubscribe_from_vip,
    update_creator_booking_settings,
    update_creator_profile,
    update_drop,
)
from ...actions.bookings import can_transition
from ...database.models import (
    BookingStatus,
    BroadcastSegment,
    Creator,
    DropStatus,
    DropType,
    QuoteStatus,
    VipChannel,
    VipSource,
    VipStatus,
)
from ...queries import (
    get_audience,
    get_booking_by_id,
    get_booking_stats_by_creator_id,
    get_bookings_by_creator_id,
    get_broadcast_by_id,
    get_broadcast_stats_by_creator_id,
    get_broadcasts_by_creator_id,
    get_creator_earnings,
    get_dashboard_data,
    get_drop_by_id,
    get_drops_by_creator_id,
    get_purchases_by_drop_id,
    get_recent_activity,
    get_recipients_count,
    get_vip_stats_by_creator_id,
)
from ...validation.schemas import BROADCAST_MAX_CHARACTERS, QUOTE_EXPIRY_HOURS
from ..auth import ensure_owner, require_creator
from ..forms import checkbox, read_form, to_cents
from ..templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/app")


def _redirect(url: str, notice: Optional[str] = None, error: Optional[str] = None) -> RedirectResponse:
    params = {key: value for key, value in (("notice", notice), ("error", error)) if value}
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url=url, status_code=303)


def _render(request: Request, name: str, creator: Creator, context: dict, status_code: int = 200):
    context = {
        "creator": creator,
        "notice": request.query_params.get("notice"),
        "error": request.query_params.get("error"),
        **context,
    }
    return templates.TemplateResponse(request, name, context, status_code=status_code)


@router.get("")
async def app_home():
    return RedirectResponse(url="/app/dashboard", status_code=303)


# ==================== Dashboard ====================

@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request, creator: Creator = Depends(require_creator)):
    return _render(request, "creator/dashboard.html", creator, {
        "title": "Dashboard - FanNu",
        "data": get_dashboard_data(creator.id),
        "activity": get_recent_activity(creator.id),
    })


# ==================== Drops ====================

def _drop_form_payload(payload: dict) -> dict:
    checkbox(payload, "vip_required")
    return to_cents(payload, "price")


@router.get("/drops", response_class=HTMLResponse)
async def drops_list(request: Request, creator: Creator = Depends(require_creator)):
    return _render(request, "creator/drops.html", creator, {
        "title": "Drops - FanNu",
        "drops": get_drops_by_creator_id(creator.id),
    })


@router.get("/drops/new", response_class=HTMLResponse)
async def drop_new(request: Request, creator: Creator = Depends(require_creator)):
    return _render(request, "creator/drop_form.html", creator, {
        "title": "New drop - FanNu",
        "drop_types": list(DropType),
        "form": {},
    })


@router.post("/drops/new", response_class=HTMLResponse)
async def drop_create(request: Request, creator: Creator = Depends(require_creator)):
    form = await read_form(request)
    result = create_drop(creator.id, _drop_form_payload(dict(form)))
    if result.success:
        return _redirect(f"/app/drops/{result.data.id}", notice="Drop created as a draft")

    return _render(request, "creator/drop_form.html", creator, {
        "title": "New drop - FanNu",
        "drop_types": list(DropType),
        "form": form,
        "error": result.error,
        "field_errors": result.field_errors,
    }, status_code=400)


def _drop_detail(request: Request, creator: Creator, drop, status_code: int = 200, **extra):
    context = {
        "title": f"{drop.title} - FanNu",
        "drop": drop,
        "drop_types": list(DropType),
        "purchases": get_purchases_by_drop_id(drop.id),
        "editable": drop.status not in (DropStatus.ENDED, DropStatus.CANCELLED),
        "form": {},
    }
    context.update(extra)
    return _render(request, "creator/drop_detail.html", creator, context, status_code=status_code)


@router.get("/drops/{drop_id}", response_class=HTMLResponse)
async def drop_detail(request: Request, drop_id: str, creator: Creator = Depends(require_creator)):
    drop = ensure_owner(get_drop_by_id(drop_id), creator)
    return _drop_detail(request, creator, drop)


@router.post("/drops/{drop_id}/edit", response_class=HTMLResponse)
async def drop_edit(request: Request, drop_id: str, creator: Creator = Depends(require_creator)):
    drop = ensure_owner(get_drop_by_id(drop_id), creator)
    form = await read_form(request)
    result = update_drop(drop.id, _drop_form_payload(dict(form)))
    if result.success:
        return _redirect(f"/app/drops/{drop.id}", notice="Drop updated")
    return _drop_detail(
        request, creator, drop, status_code=400,
        form=form, error=result.error, field_errors=result.field_errors,
    )


@router.post("/drops/{drop_id}/publish")
async def drop_publish(
    drop_id: str,
    schedule_for: str = Form(default=""),
    creator: Creator = Depends(require_creator),
):
    drop = ensure_owner(get_drop_by_id(drop_id), creator)
    result = publish_drop(drop.id, {"schedule_for": schedule_for})
    if not result.success:
        return _redirect(f"/app/drops/{drop.id}", error=result.error)
    notice = "Drop scheduled" if result.data.status == DropStatus.SCHEDULED else "Drop is live"
    return _redirect(f"/app/drops/{drop.id}", notice=notice)


@router.post("/drops/{drop_id}/end")
async def drop_end(drop_id: str, creator: Creator = Depends(require_creator)):
    drop = ensure_owner(get_drop_by_id(drop_id), creator)
    result = end_drop(drop.id)
    if not result.success:
        return _redirect(f"/app/drops/{drop.id}", error=result.error)
    return _redirect(f"/app/drops/{drop.id}", notice="Drop ended")


@router.post("/drops/{drop_id}/delete")
async def drop_delete(drop_id: str, creator: Creator = Depends(require_creator)):
    drop = ensure_owner(get_drop_by_id(drop_id), creator)
    result = delete_drop(drop.id)
    if not result.success:
        return _redirect(f"/app/drops/{drop.id}", error=result.error)
    return _redirect("/app/drops", notice="Drop deleted")


# ==================== Broadcasts ====================

def _compose_context(creator: Creator, **extra) -> dict:
    context = {
        "title": "New broadcast - FanNu",
        "segments": list(BroadcastSegment),
        "channels": list(VipChannel),
        "recipient_counts": {
            segment.value: get_recipients_count(creator.id, segment) for segment in BroadcastSegment
        },
        "drops": get_drops_by_creator_id(creator.id),
        "max_characters": BROADCAST_MAX_CHARACTERS,
        "form": {"segment": BroadcastSegment.ALL.value, "channels": [VipChannel.TELEGRAM.value]},
    }
    context.update(extra)
    return context


@router.get("/broadcasts", response_class=HTMLResponse)
async def broadcasts_list(request: Request, creator: Creator = Depends(require_creator)):
    return _render(request, "creator/broadcasts.html", creator, {
        "title": "Broadcasts - FanNu",
        "broadcasts": get_broadcasts_by_creator_id(creator.id),
        "stats": get_broadcast_stats_by_creator_id(creator.id),
    })


@router.get("/broadcasts/new", response_class=HTMLResponse)
async def broadcast_new(request: Request, creator: Creator = Depends(require_creator)):
    return _render(request, "creator/broadcast_form.html", creator, _compose_context(creator))


@router.post("/broadcasts/new", response_class=HTMLResponse)
async def broadcast_create(request: Request, creator: Creator = Depends(require_creator)):
    form = await read_form(request, list_fields=("channels",))
    intent = form.pop("intent", "send")
    if intent == "draft":
        result = save_broadcast_draft(creator.id, dict(form))
    else:
        result = create_broadcast(creator.id, dict(form))

    if result.success:
        if intent == "draft":
            notice = "Draft saved"
        elif result.data.scheduled_at:
            notice = "Broadcast scheduled"
        else:
            notice = f"Broadcast sent to {result.data.recipients_count} fan(s)"
        return _redirect("/app/broadcasts", notice=notice)

    return _render(request, "creator/broadcast_form.html", creator, _compose_context(
        creator, form=form, error=result.error, field_errors=result.field_errors,
    ), status_code=400)


@router.post("/broadcasts/{broadcast_id}/cancel")
async def broadcast_cancel(broadcast_id: str, creator: Creator = Depends(require_creator)):
    broadcast = ensure_owner(get_broadcast_by_id(broadcast_id), creator)
    result = cancel_scheduled_broadcast(broadcast.id)
    if not result.success:
        return _redirect("/app/broadcasts", error=result.error)
    return _redirect("/app/broadcasts", notice="Broadcast cancelled")


@router.post("/broadcasts/{broadcast_id}/delete")
async def broadcast_delete(broadcast_id: str, creator: Creator = Depends(require_creator)):
    broadcast = ensure_owner(get_broadcast_by_id(broadcast_id), creator)
    result = delete_broadcast(broadcast.id)
    if not result.success:
        return _redirect("/app/broadcasts", error=result.error)
    return _redirect("/app/broadcasts", notice="Broadcast deleted")


# ==================== Audience ====================

AUDIENCE_CSV_HEADER = ["Name", "Phone", "Channel", "Status", "Source", "Joined"]


def _enum_or_none(enum_cls, value: str):
    """"all", blank or unknown values mean no filter"""
    try:
        return enum_cls(value.upper()) if value else None
    except ValueError:
        return None


def _audience_filters(status: str, channel: str, source: str, q: str) -> dict:
    return {
        "status": _enum_or_none(VipStatus, status),
        "channel": _enum_or_none(VipChannel, channel),
        "source": _enum_or_none(VipSource, source),
        "search": q.strip(),
    }


@router.get("/audience", response_class=HTMLResponse)
async def audience(
    request: Request,
    status: str = "ACTIVE",
    channel: str = "",
    source: str = "",
    q: str = "",
    creator: Creator = Depends(require_creator),
):
    filters = _audience_filters(status, channel, source, q)
    return _render(request, "creator/audience.html", creator, {
        "title": "Audience - FanNu",
        "vips": get_audience(creator.id, **filters),
        "stats": get_vip_stats_by_creator_id(creator.id),
        "filters": filters,
        "query_string": request.url.query,
        "statuses": list(VipStatus),
        "channels": list(VipChannel),
        "sources": list(VipSource),
    })


@router.get("/audience.csv")
async def audience_csv(
    status: str = "ACTIVE",
    channel: str = "",
    source: str = "",
    q: str = "",
    creator: Creator = Depends(require_creator),
):
    vips = get_audience(creator.id, **_audience_filters(status, channel, source, q))

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(AUDIENCE_CSV_HEADER)
    for vip in vips:
        writer.writerow([
            vip.fan_name or "",
            vip.fan_phone,
            vip.channel.value,
            vip.status.value,
            vip.source.value,
            vip.joined_at.date().isoformat(),
        ])
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="vip-audience-{creator.slug}.csv"'},
    )


@router.post("/audience/remove")
async def audience_remove(fan_phone: str = Form(...), creator: Creator = Depends(require_creator)):
    """Take a fan off the VIP list; they can rejoin from the public page"""
    result = unsubscribe_from_vip(creator.id, fan_phone)
    if not result.success:
        return _redirect("/app/audience", error=result.error)
    return _redirect("/app/audience", notice="Fan removed from your VIP list")


# ==================== Bookings ====================

@router.get("/bookings", response_class=HTMLResponse)
async def bookings_list(request: Request, status: str = "", creator: Creator = Depends(require_creator)):
    try:
        status_filter = BookingStatus(status) if status else None
    except ValueError:
        status_filter = None
    return _render(request, "creator/bookings.html", creator, {
        "title": "Bookings - FanNu",
        "bookings": get_bookings_by_creator_id(creator.id, status_filter),
        "stats": get_booking_stats_by_creator_id(creator.id),
        "statuses": list(BookingStatus),
        "status_filter": status_filter,
    })


def _booking_detail(request: Request, creator: Creator, booking, status_code: int = 200, **extra):
    context = {
        "title": f"Booking {booking.reference_code} - FanNu",
        "booking": booking,
        "active_quote": next((q for q in booking.quotes if q.status == QuoteStatus.ACTIVE), None),
        "can_quote": can_transition(booking.status, BookingStatus.QUOTED),
        "can_decline": can_transition(booking.status, BookingStatus.DECLINED),
        "can_confirm": can_transition(booking.status, BookingStatus.CONFIRMED),
        "can_complete": can_transition(booking.status, BookingStatus.COMPLETED),
        "can_cancel": can_transition(booking.status, BookingStatus.CANCELLED),
        "expiry_options": QUOTE_EXPIRY_HOURS,
        "quote_form": {
            "deposit_percent": creator.default_deposit_percent,
            "deposit_refundable": creator.default_deposit_refundable,
            "terms_text": creator.default_additional_terms or "",
            "expires_in_hours": 48,
        },
    }
    context.update(extra)
    return _render(request, "creator/booking_detail.html", creator, context, status_code=status_code)


def _owned_booking(booking_id: str, creator: Creator):
    return ensure_owner(get_booking_by_id(booking_id), creator)


@router.get("/bookings/{booking_id}", response_class=HTMLResponse)
async def booking_detail(request: Request, booking_id: str, creator: Creator = Depends(require_creator)):
    return _booking_detail(request, creator, _owned_booking(booking_id, creator))


@router.post("/bookings/{booking_id}/quote", response_class=HTMLResponse)
async def booking_quote(request: Request, booking_id: str, creator: Creator = Depends(require_creator)):
    booking = _owned_booking(booking_id, creator)
    form = await read_form(request)
    payload = to_cents(checkbox(dict(form), "deposit_refundable"), "total_amount")
    result = send_quote(booking.id, payload)
    if result.success:
        return _redirect(f"/app/bookings/{booking.id}", notice="Quote sent")
    return _booking_detail(
        request, creator, booking, status_code=400,
        quote_form=form, error=result.error, field_errors=result.field_errors,
    )


@router.post("/bookings/{booking_id}/decline")
async def booking_decline(booking_id: str, reason: str = Form(default=""), creator: Creator = Depends(require_creator)):
    booking = _owned_booking(booking_id, creator)
    result = decline_booking(booking.id, {"reason": reason})
    if not result.success:
        return _redirect(f"/app/bookings/{booking.id}", error=result.error)
    return _redirect(f"/app/bookings/{booking.id}", notice="Booking declined")


@router.post("/bookings/{booking_id}/confirm")
async def booking_confirm(booking_id: str, creator: Creator = Depends(require_creator)):
    booking = _owned_booking(booking_id, creator)
    result = confirm_booking(booking.id)
    if not result.success:
        return _redirect(f"/app/bookings/{booking.id}", error=result.error)
    return _redirect(f"/app/bookings/{booking.id}", notice="Booking confirmed")


@router.post("/bookings/{booking_id}/complete")
async def booking_complete(booking_id: str, creator: Creator = Depends(require_creator)):
    booking = _owned_booking(booking_id, creator)
    result = complete_booking(booking.id)
    if not result.success:
        return _redirect(f"/app/bookings/{booking.id}", error=result.error)
    return _redirect(f"/app/bookings/{booking.id}", notice="Booking completed")


@router.post("/bookings/{booking_id}/cancel")
async def booking_cancel(booking_id: str, reason: str = Form(default=""), creator: Creator = Depends(require_creator)):
    booking = _owned_booking(booking_id, creator)
    result = cancel_booking(booking.id, {"reason": reason})
    if not result.success:
        message = "; ".join(result.field_errors.get("reason", [])) or result.error
        return _redirect(f"/app/bookings/{booking.id}", error=message)
    return _redirect(f"/app/bookings/{booking.id}", notice="Booking cancelled")


# ==================== Earnings ====================

@router.get("/earnings", response_class=HTMLResponse)
async def earnings(request: Request, creator: Creator = Depends(require_creator)):
    return _render(request, "creator/earnings.html", creator, {
        "title": "Earnings - FanNu",
        "summary": get_creator_earnings(creator.id),
    })


# ==================== Settings ====================

def _settings_page(request: Request, creator: Creator, status_code: int = 200, **extra):
    context = {
        "title": "Settings - FanNu",
        "profile_form": {
            "display_name": creator.display_name,
            "bio": creator.bio or "",
            "email": creator.email or "",
            "avatar_url": creator.avatar_url or "",
        },
        "booking_form": {
            "booking_enabled": creator.booking_enabled,
            "default_deposit_percent": creator.default_deposit_percent,
            "default_deposit_refundable": creator.default_deposit_refundable,
            "default_additional_terms": creator.default_additional_terms or "",
        },
    }
    context.update(extra)
    return _render(request, "creator/settings.html", creator, context, status_code=status_code)


@router.get("/settings", response_class=HTMLResponse)
async def settings_page(request: Request, creator: Creator = Depends(require_creator)):
    return _settings_page(request, creator)


@router.post("/settings/profile", response_class=HTMLResponse)
async def settings_profile(request: Request, creator: Creator = Depends(require_creator)):
    form = await read_form(request)
    result = update_creator_profile(creator.id, dict(form))
    if result.success:
        return _redirect("/app/settings", notice="Profile saved")
    return _settings_page(
        request, creator, status_code=400,
        profile_form=form, error=result.error, field_errors=result.field_errors,
    )


@router.post("/settings/booking", response_class=HTMLResponse)
async def settings_booking(request: Request, creator: Creator = Depends(require_creator)):
    form = checkbox(await read_form(request), "booking_enabled", "default_deposit_refundable")
    result = update_creator_booking_settings(creator.id, dict(form))
    if result.success:
        return _redirect("/app/settings", notice="Booking settings saved")
    return _settings_page(
        request, creator, status_code=400,
        booking_form=form, error=result.error, field_errors=result.field_errors,
    )
