"""
Shared helpers: identifiers, phone numbers, money and date formatting
"""

import re
import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import Union

ETHIOPIAN_PHONE_PATTERN = re.compile(r"^\+251[0-9]{9}$")

# No I, O, 0 or 1 so codes can be read out over the phone
REFERENCE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def utcnow() -> datetime:
    """Naive UTC now, the format every timestamp column uses"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def random_token(length: int, alphabet: str = string.ascii_uppercase + string.digits) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_confirmation_id() -> str:
    """VIP join confirmation, e.g. VIP-7KQ2ZD"""
    return f"VIP-{random_token(6)}"


def generate_reference_code() -> str:
    """Booking reference, e.g. BK-7KQ2"""
    return f"BK-{random_token(4, REFERENCE_CODE_ALPHABET)}"


def generate_order_receipt_id() -> str:
    return f"ORD-{random_token(6)}"


def generate_payment_receipt_id() -> str:
    return f"RCP-{random_token(8)}"


def generate_psp_ref() -> str:
    return f"TXN-{random_token(10)}"


def slugify(title: str, max_length: int = 50) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug[:max_length]


def is_ethiopian_phone(phone: str) -> bool:
    return bool(ETHIOPIAN_PHONE_PATTERN.match(phone or ""))


def parse_phone_to_e164(phone: str) -> str:
    """Normalise local input (0911..., 911..., 251911...) to +251911..."""
    cleaned = re.sub(r"\D", "", phone or "")
    if cleaned.startswith("251"):
        return f"+{cleaned}"
    if cleaned.startswith("0"):
        return f"+251{cleaned[1:]}"
    return f"+251{cleaned}"


def format_phone_number(phone: str) -> str:
    if phone and phone.startswith("+251"):
        return "0" + phone[len("+251"):]
    return phone


def format_etb(amount_in_cents: int) -> str:
    amount = (amount_in_cents or 0) / 100
    return f"ETB {amount:,.0f}"


def format_date(value: Union[datetime, str, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return f"{value:%b} {value.day}, {value.year}"


def format_datetime(value: Union[datetime, str, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{format_date(value)}, {hour}:{value.minute:02d} {meridiem}"


def format_relative_time(value: datetime, now: datetime = None) -> str:
    """'just now', '5m ago', '3h ago', '2d ago', then a plain date"""
    now = now or utcnow()
    seconds = int((now - value).total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return format_date(value)
