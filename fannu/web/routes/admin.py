"""Admin Routes - creator moderation and booking overview"""

import secrets
import logging
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import bcrypt
from fastapi import APIRouter, Request, Form, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from ...actions import moderate_creator, set_booking_approval
from ...config import settings
from ...database.models import BookingStatus, CreatorStatus
from ...queries import get_all_bookings, get_all_creators
from ..templating import templates

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("security")

router = APIRouter()

# Admin session management
ADMIN_SESSION_COOKIE = "fannu_admin_session"
ADMIN_SESSION_MAX_AGE = 3600 * 8

_admin_sessions: dict[str, datetime] = {}


def verify_admin_session(session_token: Optional[str]) -> bool:
    if not session_token or session_token not in _admin_sessions:
        return False
    expires_at = _admin_sessions[session_token]
    if datetime.now() > expires_at:
        _admin_sessions.pop(session_token, None)
        return False
    return True


def check_admin_password(password: str) -> bool:
    if not settings.admin_password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), settings.admin_password_hash.encode("utf-8"))
    except ValueError:
        security_logger.error("ADMIN_PASSWORD_HASH is not a valid bcrypt hash")
        return False


def _require_admin_or_redirect(request: Request):
    session_token = request.cookies.get(ADMIN_SESSION_COOKIE)
    if not verify_admin_session(session_token):
        return RedirectResponse(url="/admin/login", status_code=303)
    return None


@router.get("/admin/login", response_class=HTMLResponse)
async def admin_login_page(request: Request):
    session_token = request.cookies.get(ADMIN_SESSION_COOKIE)
    if verify_admin_session(session_token):
        return RedirectResponse(url="/admin/creators", status_code=303)
    return templates.TemplateResponse(request, "admin/login.html", {
        "title": "Admin login - FanNu",
    })


@router.post("/admin/login", response_class=HTMLResponse)
async def admin_login_submit(request: Request, password: str = Form(...)):
    client = request.client.host if request.client else "unknown"
    if not settings.admin_password_hash:
        security_logger.error("ADMIN_PASSWORD_HASH not configured")
        raise HTTPException(status_code=500, detail="Admin password not configured")

    if check_admin_password(password):
        security_logger.info("Admin login success from %s", client)
        token = secrets.token_hex(32)
        _admin_sessions[token] = datetime.now() + timedelta(seconds=ADMIN_SESSION_MAX_AGE)
        response = RedirectResponse(url="/admin/creators", status_code=303)
        response.set_cookie(
            key=ADMIN_SESSION_COOKIE, value=token,
            max_age=ADMIN_SESSION_MAX_AGE, httponly=True, samesite="lax",
        )
        return response

    security_logger.warning("Admin login failed from %s", client)
    return templates.TemplateResponse(request, "admin/login.html", {
        "title": "Admin login - FanNu",
        "error": "Incorrect password.",
    }, status_code=401)


@router.get("/admin/logout")
async def admin_logout(request: Request):
    session_token = request.cookies.get(ADMIN_SESSION_COOKIE)
    if session_token:
        _admin_sessions.pop(session_token, None)
    response = RedirectResponse(url="/admin/login", status_code=303)
    response.delete_cookie(ADMIN_SESSION_COOKIE)
    return response


@router.get("/admin")
async def admin_home(request: Request):
    redirect = _require_admin_or_redirect(request)
    if redirect:
        return redirect
    return RedirectResponse(url="/admin/creators", status_code=303)


@router.get("/admin/creators", response_class=HTMLResponse)
async def admin_creators(request: Request, status: str = "all"):
    redirect = _require_admin_or_redirect(request)
    if redirect:
        return redirect

    creators = get_all_creators()
    counts = {s.value: sum(1 for c in creators if c.status == s) for s in CreatorStatus}
    if status != "all":
        creators = [c for c in creators if c.status.value == status]

    return templates.TemplateResponse(request, "admin/creators.html", {
        "title": "Creators - FanNu Admin",
        "creators": creators,
        "counts": counts,
        "status": status,
        "statuses": list(CreatorStatus),
        "notice": request.query_params.get("notice"),
        "error": request.query_params.get("error"),
    })


@router.post("/admin/creators/{creator_id}/{move}")
async def admin_moderate_creator(request: Request, creator_id: str, move: str):
    redirect = _require_admin_or_redirect(request)
    if redirect:
        return redirect

    if move in ("approve-booking", "revoke-booking"):
        result = set_booking_approval(creator_id, move == "approve-booking")
    else:
        result = moderate_creator(creator_id, move)

    if not result.success:
        return RedirectResponse(url=f"/admin/creators?{urlencode({'error': result.error})}", status_code=303)
    security_logger.info("Admin %s on creator %s", move, creator_id)
    notice = f"{result.data.display_name}: {move.replace('-', ' ')}"
    return RedirectResponse(url=f"/admin/creators?{urlencode({'notice': notice})}", status_code=303)


@router.get("/admin/bookings", response_class=HTMLResponse)
async def admin_bookings(request: Request, status: str = "all"):
    redirect = _require_admin_or_redirect(request)
    if redirect:
        return redirect

    bookings = get_all_bookings()
    if status != "all":
        bookings = [b for b in bookings if b.status.value == status]

    return templates.TemplateResponse(request, "admin/bookings.html", {
        "title": "Bookings - FanNu Admin",
        "bookings": bookings,
        "status": status,
        "statuses": list(BookingStatus),
    })
