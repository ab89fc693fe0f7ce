"""
Input schemas for every mutation

Form posts and JSON bodies both go through these models. Blank form
fields are treated as missing so optional fields fall back to their
defaults.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from ..database.models import (
    BookingType,
    BroadcastSegment,
    DropType,
    VipChannel,
    VipSource,
)
from ..utils import is_ethiopian_phone, parse_phone_to_e164, utcnow

PHONE_ERROR = "Valid Ethiopian phone number required (+251...)"
QUOTE_EXPIRY_HOURS = (24, 48, 72, 168)
BROADCAST_MAX_CHARACTERS = 160
MAX_ATTACHMENTS = 3
MAX_QUANTITY = 10


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _normalize_phone(value):
    if isinstance(value, str):
        value = value.strip()
        if value and not value.startswith("+"):
            value = parse_phone_to_e164(value)
    return value


class FormModel(BaseModel):
    """Base for all input schemas"""

    model_config = ConfigDict(str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_fields(cls, data):
        if isinstance(data, dict):
            return {
                key: value
                for key, value in data.items()
                if not (isinstance(value, str) and value.strip() == "")
            }
        return data


# Drops

class DropCreate(FormModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)
    type: DropType
    price: Optional[int] = Field(default=None, ge=0)
    currency: str = "ETB"
    total_slots: Optional[int] = Field(default=None, gt=0)
    vip_required: bool = False
    scheduled_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    cover_image_url: Optional[HttpUrl] = None

    @field_validator("scheduled_at", "ends_at")
    @classmethod
    def _naive_utc(cls, value):
        return _to_naive_utc(value)


class DropUpdate(FormModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    type: Optional[DropType] = None
    price: Optional[int] = Field(default=None, ge=0)
    currency: Optional[str] = None
    total_slots: Optional[int] = Field(default=None, gt=0)
    vip_required: Optional[bool] = None
    scheduled_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    cover_image_url: Optional[HttpUrl] = None

    @field_validator("scheduled_at", "ends_at")
    @classmethod
    def _naive_utc(cls, value):
        return _to_naive_utc(value)


class DropPublish(FormModel):
    schedule_for: Optional[datetime] = None

    @field_validator("schedule_for")
    @classmethod
    def _naive_utc(cls, value):
        return _to_naive_utc(value)


# VIP

class VipJoin(FormModel):
    creator_id: UUID
    fan_phone: str
    fan_name: Optional[str] = Field(default=None, max_length=100)
    channel: VipChannel
    source: VipSource
    source_ref: Optional[str] = Field(default=None, max_length=255)

    @field_validator("fan_phone", mode="before")
    @classmethod
    def _normalize(cls, value):
        return _normalize_phone(value)

    @field_validator("fan_phone")
    @classmethod
    def _ethiopian(cls, value):
        if not is_ethiopian_phone(value):
            raise ValueError(PHONE_ERROR)
        return value


# Purchases

class PurchaseRequest(FormModel):
    fan_phone: str
    fan_name: Optional[str] = Field(default=None, max_length=100)
    quantity: int = Field(default=1, ge=1, le=MAX_QUANTITY)

    @field_validator("fan_phone", mode="before")
    @classmethod
    def _normalize(cls, value):
        return _normalize_phone(value)

    @field_validator("fan_phone")
    @classmethod
    def _ethiopian(cls, value):
        if not is_ethiopian_phone(value):
            raise ValueError(PHONE_ERROR)
        return value


# Bookings

class BookingRequest(FormModel):
    creator_slug: str = Field(min_length=1)
    booker_name: str = Field(min_length=2, max_length=100)
    booker_phone: str
    booker_email: Optional[EmailStr] = None
    type: BookingType
    start_at: datetime
    end_at: datetime
    location_city: str = Field(min_length=2, max_length=100)
    location_venue: Optional[str] = Field(default=None, max_length=200)
    budget_min: int = Field(gt=0)
    budget_max: int = Field(gt=0)
    notes: str = Field(min_length=20, max_length=2000)
    attachments: list[HttpUrl] = Field(default_factory=list, max_length=MAX_ATTACHMENTS)

    @field_validator("booker_phone", mode="before")
    @classmethod
    def _normalize(cls, value):
        return _normalize_phone(value)

    @field_validator("booker_phone")
    @classmethod
    def _ethiopian(cls, value):
        if not is_ethiopian_phone(value):
            raise ValueError(PHONE_ERROR)
        return value

    @field_validator("start_at")
    @classmethod
    def _start_in_future(cls, value):
        value = _to_naive_utc(value)
        if value <= utcnow():
            raise ValueError("Event date must be in the future")
        return value

    @field_validator("end_at")
    @classmethod
    def _end_after_start(cls, value, info: ValidationInfo):
        value = _to_naive_utc(value)
        start_at = info.data.get("start_at")
        if start_at is not None and value <= start_at:
            raise ValueError("End time must be after start time")
        return value

    @field_validator("budget_max")
    @classmethod
    def _max_over_min(cls, value, info: ValidationInfo):
        budget_min = info.data.get("budget_min")
        if budget_min is not None and value < budget_min:
            raise ValueError("Maximum budget must be >= minimum")
        return value


class Quote(FormModel):
    total_amount: int = Field(gt=0)
    deposit_percent: int = Field(ge=10, le=100)
    deposit_refundable: bool = False
    expires_in_hours: int
    terms_text: str = Field(min_length=20, max_length=5000)

    @field_validator("expires_in_hours")
    @classmethod
    def _known_expiry(cls, value):
        if value not in QUOTE_EXPIRY_HOURS:
            raise ValueError(f"Expiry must be one of {', '.join(str(h) for h in QUOTE_EXPIRY_HOURS)} hours")
        return value


class DeclineBooking(FormModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class CancelBooking(FormModel):
    reason: str = Field(min_length=10, max_length=500)


# Creators

class CreatorProfileUpdate(FormModel):
    display_name: str = Field(min_length=1, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    email: Optional[EmailStr] = None
    avatar_url: Optional[HttpUrl] = None


class BookingSettingsUpdate(FormModel):
    booking_enabled: bool = False
    default_deposit_percent: int = Field(default=50, ge=10, le=100)
    default_deposit_refundable: bool = False
    default_additional_terms: Optional[str] = Field(default=None, max_length=2000)


# Broadcasts

class BroadcastCompose(FormModel):
    message_text: str = Field(min_length=1, max_length=BROADCAST_MAX_CHARACTERS)
    segment: BroadcastSegment = BroadcastSegment.ALL
    channels: list[VipChannel] = Field(min_length=1)
    media_url: Optional[HttpUrl] = None
    drop_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None

    @field_validator("scheduled_at")
    @classmethod
    def _naive_utc(cls, value):
        return _to_naive_utc(value)


def field_errors(exc: ValidationError) -> dict[str, list[str]]:
    """Flatten a ValidationError into {field: [messages]}"""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        field = loc[0] if loc else "_form"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, []).append(message)
    return errors
