"""Public Routes - creator profiles, drops, checkout, bookings and receipts"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, Form, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from ...actions import (
    ActionResult,
    create_booking_request,
    initiate_booking_payment,
    initiate_purchase,
    join_vip,
)
from ...database.models import (
    BookingType,
    CreatorStatus,
    DropStatus,
    PaymentStatus,
    QuoteStatus,
    VipChannel,
    VipSource,
)
from ...queries import (
    get_all_creators,
    get_booking_by_id,
    get_booking_by_reference_code,
    get_booking_payment_by_receipt_id,
    get_creator_by_slug,
    get_drop_by_slug,
    get_live_drops_by_creator_id,
    get_purchase_by_receipt_id,
)
from ...utils import utcnow
from ..forms import read_form, to_cents
from ..page_cache import page_cache
from ..templating import templates

logger = logging.getLogger(__name__)

router = APIRouter()

PUBLIC_DROP_STATUSES = (DropStatus.SCHEDULED, DropStatus.LIVE, DropStatus.ENDED)


def _render_cached(request: Request, name: str, context: dict) -> HTMLResponse:
    response = templates.TemplateResponse(request, name, context)
    page_cache.set(request.url.path, response.body.decode("utf-8"))
    return response


def _cached(request: Request) -> Optional[HTMLResponse]:
    body = page_cache.get(request.url.path)
    return HTMLResponse(body) if body is not None else None


def _public_creator(slug: str):
    creator = get_creator_by_slug(slug)
    if creator is None:
        raise HTTPException(status_code=404, detail="Creator not found")
    return creator


def _public_drop(slug: str):
    drop = get_drop_by_slug(slug)
    if (
        drop is None
        or drop.status not in PUBLIC_DROP_STATUSES
        or drop.creator is None
        or drop.creator.status != CreatorStatus.ACTIVE
    ):
        raise HTTPException(status_code=404, detail="Drop not found")
    return drop


def _vip_redirect(creator_slug: str, result: ActionResult) -> RedirectResponse:
    if result.already_subscribed:
        state = "already"
    elif result.resubscribed:
        state = "resubscribed"
    else:
        state = "new"
    return RedirectResponse(
        url=f"/c/{creator_slug}/vip-success?confirmation={result.confirmation_id}&state={state}",
        status_code=303,
    )


def _creator_context(creator, **extra) -> dict:
    context = {
        "title": f"{creator.display_name} - FanNu",
        "creator": creator,
        "drops": get_live_drops_by_creator_id(creator.id),
        "channels": list(VipChannel),
        "accepting_bookings": creator.booking_enabled and creator.booking_approved,
    }
    context.update(extra)
    return context


# ==================== Home ====================

@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    creators = [c for c in get_all_creators() if c.status == CreatorStatus.ACTIVE]
    return templates.TemplateResponse(request, "public/index.html", {
        "title": "FanNu", "creators": creators,
    })


# ==================== Creator profile ====================

@router.get("/c/{slug}", response_class=HTMLResponse)
async def creator_profile(request: Request, slug: str):
    cached = _cached(request)
    if cached is not None:
        return cached
    creator = _public_creator(slug)
    return _render_cached(request, "public/creator.html", _creator_context(creator))


@router.post("/c/{slug}/vip", response_class=HTMLResponse)
async def creator_vip_join(
    request: Request,
    slug: str,
    fan_phone: str = Form(default=""),
    fan_name: str = Form(default=""),
    channel: str = Form(default=VipChannel.TELEGRAM.value),
):
    creator = _public_creator(slug)
    result = join_vip({
        "creator_id": creator.id,
        "fan_phone": fan_phone,
        "fan_name": fan_name,
        "channel": channel,
        "source": VipSource.CREATOR_PROFILE.value,
    })
    if result.success:
        return _vip_redirect(slug, result)

    return templates.TemplateResponse(request, "public/creator.html", _creator_context(
        creator,
        error=result.error,
        field_errors=result.field_errors,
        form={"fan_phone": fan_phone, "fan_name": fan_name, "channel": channel},
    ), status_code=400)


@router.get("/c/{slug}/vip-success", response_class=HTMLResponse)
async def vip_success(request: Request, slug: str, confirmation: str = "", state: str = "new"):
    creator = _public_creator(slug)
    return templates.TemplateResponse(request, "public/vip_success.html", {
        "title": f"You're on {creator.display_name}'s VIP list",
        "creator": creator,
        "confirmation_id": confirmation,
        "state": state,
    })


# ==================== Drops ====================

@router.get("/d/{slug}", response_class=HTMLResponse)
async def drop_page(request: Request, slug: str):
    cached = _cached(request)
    if cached is not None:
        return cached
    drop = _public_drop(slug)
    return _render_cached(request, "public/drop.html", {
        "title": f"{drop.title} - FanNu",
        "drop": drop,
        "creator": drop.creator,
        "channels": list(VipChannel),
    })


@router.post("/d/{slug}/vip", response_class=HTMLResponse)
async def drop_vip_join(
    request: Request,
    slug: str,
    fan_phone: str = Form(default=""),
    fan_name: str = Form(default=""),
    channel: str = Form(default=VipChannel.TELEGRAM.value),
):
    drop = _public_drop(slug)
    result = join_vip({
        "creator_id": drop.creator_id,
        "fan_phone": fan_phone,
        "fan_name": fan_name,
        "channel": channel,
        "source": VipSource.DROP_PAGE.value,
        "source_ref": drop.id,
    })
    if result.success:
        return _vip_redirect(drop.creator.slug, result)

    return templates.TemplateResponse(request, "public/drop.html", {
        "title": f"{drop.title} - FanNu",
        "drop": drop,
        "creator": drop.creator,
        "channels": list(VipChannel),
        "error": result.error,
        "field_errors": result.field_errors,
        "form": {"fan_phone": fan_phone, "fan_name": fan_name, "channel": channel},
    }, status_code=400)


@router.get("/d/{slug}/checkout", response_class=HTMLResponse)
async def checkout_page(request: Request, slug: str):
    drop = _public_drop(slug)
    if drop.status != DropStatus.LIVE:
        return RedirectResponse(url=f"/d/{slug}", status_code=303)
    return templates.TemplateResponse(request, "public/checkout.html", {
        "title": f"Checkout - {drop.title}",
        "drop": drop,
        "form": {"quantity": 1},
    })


@router.post("/d/{slug}/checkout", response_class=HTMLResponse)
async def checkout_submit(
    request: Request,
    slug: str,
    fan_phone: str = Form(default=""),
    fan_name: str = Form(default=""),
    quantity: str = Form(default="1"),
):
    drop = _public_drop(slug)
    result = initiate_purchase(drop.id, fan_phone, fan_name or None, quantity)
    if result.success:
        return RedirectResponse(url=f"/d/{slug}/confirmed/{result.data.receipt_id}", status_code=303)

    return templates.TemplateResponse(request, "public/checkout.html", {
        "title": f"Checkout - {drop.title}",
        "drop": drop,
        "error": result.error,
        "field_errors": result.field_errors,
        "form": {"fan_phone": fan_phone, "fan_name": fan_name, "quantity": quantity},
    }, status_code=400)


@router.get("/d/{slug}/confirmed/{receipt_id}", response_class=HTMLResponse)
async def purchase_confirmed(request: Request, slug: str, receipt_id: str):
    purchase = get_purchase_by_receipt_id(receipt_id)
    if purchase is None or purchase.drop is None or purchase.drop.slug != slug:
        raise HTTPException(status_code=404, detail="Order not found")
    return templates.TemplateResponse(request, "public/purchase_confirmed.html", {
        "title": "Order confirmed - FanNu",
        "purchase": purchase,
        "drop": purchase.drop,
        "creator": purchase.drop.creator,
    })


@router.get("/r/{receipt_id}", response_class=HTMLResponse)
async def receipt(request: Request, receipt_id: str):
    """Shareable receipt for a drop order (ORD-) or a booking payment (RCP-)"""
    purchase = get_purchase_by_receipt_id(receipt_id)
    if purchase is not None:
        return templates.TemplateResponse(request, "public/receipt.html", {
            "title": f"Receipt {purchase.receipt_id}",
            "kind": "purchase",
            "purchase": purchase,
            "creator": purchase.drop.creator,
        })

    payment = get_booking_payment_by_receipt_id(receipt_id)
    if payment is None:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return templates.TemplateResponse(request, "public/receipt.html", {
        "title": f"Receipt {payment.receipt_id}",
        "kind": "booking",
        "payment": payment,
        "booking": payment.booking,
        "creator": payment.booking.creator,
    })


# ==================== Bookings ====================

@router.get("/book/{slug}", response_class=HTMLResponse)
async def booking_form(request: Request, slug: str):
    creator = _public_creator(slug)
    return templates.TemplateResponse(request, "public/book.html", {
        "title": f"Book {creator.display_name}",
        "creator": creator,
        "booking_types": list(BookingType),
        "accepting": creator.booking_enabled and creator.booking_approved,
        "form": {},
    })


@router.post("/book/{slug}", response_class=HTMLResponse)
async def booking_submit(request: Request, slug: str):
    creator = _public_creator(slug)
    form = await read_form(request, list_fields=("attachments",))
    payload = to_cents(dict(form), "budget_min", "budget_max")
    payload["creator_slug"] = slug

    result = create_booking_request(payload)
    if result.success:
        return RedirectResponse(url=f"/track/{result.data.reference_code}?new=1", status_code=303)

    return templates.TemplateResponse(request, "public/book.html", {
        "title": f"Book {creator.display_name}",
        "creator": creator,
        "booking_types": list(BookingType),
        "accepting": creator.booking_enabled and creator.booking_approved,
        "error": result.error,
        "field_errors": result.field_errors,
        "form": form,
    }, status_code=400)


def _booking_page(request: Request, booking, status_code: int = 200, **extra):
    active_quote = next((q for q in booking.quotes if q.status == QuoteStatus.ACTIVE), None)
    paid = next((p for p in booking.payments if p.status == PaymentStatus.PAID), None)
    context = {
        "title": f"Booking {booking.reference_code}",
        "booking": booking,
        "creator": booking.creator,
        "quote": active_quote,
        "quote_expired": active_quote is not None and active_quote.expires_at < utcnow(),
        "paid_payment": paid,
    }
    context.update(extra)
    return templates.TemplateResponse(request, "public/booking.html", context, status_code=status_code)


@router.get("/booking/{booking_id}", response_class=HTMLResponse)
async def booking_page(request: Request, booking_id: str, pending: int = 0):
    booking = get_booking_by_id(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return _booking_page(request, booking, pending=bool(pending))


@router.post("/booking/{booking_id}/pay", response_class=HTMLResponse)
async def booking_pay(request: Request, booking_id: str, quote_id: str = Form(...)):
    booking = get_booking_by_id(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")

    result = initiate_booking_payment(booking_id, quote_id)
    if not result.success:
        return _booking_page(request, booking, status_code=400, error=result.error)

    payment = result.data
    if payment.status == PaymentStatus.PAID:
        return RedirectResponse(url=f"/booking/{booking_id}/receipt/{payment.receipt_id}", status_code=303)
    return RedirectResponse(url=f"/booking/{booking_id}?pending=1", status_code=303)


@router.get("/booking/{booking_id}/receipt/{receipt_id}", response_class=HTMLResponse)
async def booking_receipt(request: Request, booking_id: str, receipt_id: str):
    payment = get_booking_payment_by_receipt_id(receipt_id)
    if payment is None or payment.booking_id != booking_id:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return templates.TemplateResponse(request, "public/receipt.html", {
        "title": f"Receipt {payment.receipt_id}",
        "kind": "booking",
        "payment": payment,
        "booking": payment.booking,
        "creator": payment.booking.creator,
    })


@router.get("/track", response_class=HTMLResponse)
async def track_lookup(request: Request, code: str = ""):
    if code.strip():
        return RedirectResponse(url=f"/track/{code.strip().upper()}", status_code=303)
    return templates.TemplateResponse(request, "public/track.html", {
        "title": "Track your booking", "booking": None,
    })


@router.get("/track/{reference_code}", response_class=HTMLResponse)
async def track_booking(request: Request, reference_code: str, new: int = 0):
    booking = get_booking_by_reference_code(reference_code)
    if booking is None:
        return templates.TemplateResponse(request, "public/track.html", {
            "title": "Track your booking",
            "booking": None,
            "error": f"No booking found for {reference_code.upper()}",
        }, status_code=404)
    return templates.TemplateResponse(request, "public/track.html", {
        "title": f"Booking {booking.reference_code}",
        "booking": booking,
        "creator": booking.creator,
        "just_created": bool(new),
    })
