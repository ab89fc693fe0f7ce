"""
SQLAlchemy models for creators, drops, VIP lists, broadcasts, purchases and bookings
"""

from enum import Enum as PyEnum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from ..utils import new_id, utcnow

Base = declarative_base()


class CreatorStatus(str, PyEnum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class DropType(str, PyEnum):
    EVENT = "EVENT"
    MERCH = "MERCH"
    CONTENT = "CONTENT"
    CUSTOM = "CUSTOM"


class DropStatus(str, PyEnum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class VipChannel(str, PyEnum):
    TELEGRAM = "TELEGRAM"
    WHATSAPP = "WHATSAPP"
    SMS = "SMS"


class VipSource(str, PyEnum):
    DROP_PAGE = "DROP_PAGE"
    CREATOR_PROFILE = "CREATOR_PROFILE"
    DIRECT_LINK = "DIRECT_LINK"


class VipStatus(str, PyEnum):
    ACTIVE = "ACTIVE"
    UNSUBSCRIBED = "UNSUBSCRIBED"


class PaymentStatus(str, PyEnum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class BookingType(str, PyEnum):
    LIVE_PERFORMANCE = "LIVE_PERFORMANCE"
    MC_HOSTING = "MC_HOSTING"
    BRAND_CONTENT = "BRAND_CONTENT"
    CUSTOM = "CUSTOM"


class BookingStatus(str, PyEnum):
    REQUESTED = "REQUESTED"
    QUOTED = "QUOTED"
    DEPOSIT_PENDING = "DEPOSIT_PENDING"
    DEPOSIT_PAID = "DEPOSIT_PAID"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DECLINED = "DECLINED"
    DISPUTED = "DISPUTED"


class QuoteStatus(str, PyEnum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    SUPERSEDED = "SUPERSEDED"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class BookingPaymentType(str, PyEnum):
    DEPOSIT = "DEPOSIT"
    REMAINDER = "REMAINDER"


class ActorType(str, PyEnum):
    BOOKER = "BOOKER"
    CREATOR = "CREATOR"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class BroadcastSegment(str, PyEnum):
    ALL = "ALL"
    VIP_ONLY = "VIP_ONLY"
    PURCHASERS = "PURCHASERS"


class BroadcastStatus(str, PyEnum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    SENDING = "SENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Creator(Base):
    """Creator profile, owned by one user account"""
    __tablename__ = "creators"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), unique=True, nullable=False)

    slug = Column(String(60), unique=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    bio = Column(Text)
    avatar_url = Column(String(1000))
    cover_url = Column(String(1000))
    phone = Column(String(20), nullable=False)
    email = Column(String(255))

    # Booking settings
    booking_enabled = Column(Boolean, default=False, nullable=False)
    booking_approved = Column(Boolean, default=False, nullable=False)
    default_deposit_percent = Column(Integer, default=50, nullable=False)
    default_deposit_refundable = Column(Boolean, default=False, nullable=False)
    default_additional_terms = Column(Text)

    status = Column(Enum(CreatorStatus), default=CreatorStatus.PENDING_APPROVAL, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    drops = relationship("Drop", back_populates="creator")
    bookings = relationship("Booking", back_populates="creator")

    def __repr__(self):
        return f"<Creator(slug='{self.slug}', status='{self.status.value}')>"


class Drop(Base):
    """Time-boxed offer published by a creator"""
    __tablename__ = "drops"

    id = Column(String(36), primary_key=True, default=new_id)
    creator_id = Column(String(36), ForeignKey("creators.id"), nullable=False)

    slug = Column(String(60), unique=True, nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    cover_image_url = Column(String(1000))
    type = Column(Enum(DropType), nullable=False)
    status = Column(Enum(DropStatus), default=DropStatus.DRAFT, nullable=False)

    # Scheduling window
    scheduled_at = Column(DateTime)
    ends_at = Column(DateTime)

    price = Column(Integer)  # smallest currency unit
    currency = Column(String(3), default="ETB", nullable=False)
    total_slots = Column(Integer)
    slots_remaining = Column(Integer)
    vip_required = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("Creator", back_populates="drops")
    purchases = relationship("Purchase", back_populates="drop")

    __table_args__ = (
        Index("idx_drop_creator", "creator_id"),
        Index("idx_drop_status", "status"),
    )

    def __repr__(self):
        return f"<Drop(slug='{self.slug}', status='{self.status.value}')>"


class VipSubscription(Base):
    """A fan's opt-in to a creator's messaging list, keyed by phone"""
    __tablename__ = "vip_subscriptions"

    id = Column(String(36), primary_key=True, default=new_id)
    creator_id = Column(String(36), ForeignKey("creators.id"), nullable=False)

    fan_phone = Column(String(20), nullable=False)
    fan_name = Column(String(100))
    channel = Column(Enum(VipChannel), nullable=False)
    channel_id = Column(String(100))
    source = Column(Enum(VipSource), nullable=False)
    source_ref = Column(String(255))

    status = Column(Enum(VipStatus), default=VipStatus.ACTIVE, nullable=False)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    creator = relationship("Creator")

    __table_args__ = (
        UniqueConstraint("creator_id", "fan_phone", name="uq_vip_creator_phone"),
        Index("idx_vip_creator_status", "creator_id", "status"),
    )

    def __repr__(self):
        return f"<VipSubscription(creator_id='{self.creator_id}', status='{self.status.value}')>"


class Purchase(Base):
    """A fan's order for a drop"""
    __tablename__ = "purchases"

    id = Column(String(36), primary_key=True, default=new_id)
    drop_id = Column(String(36), ForeignKey("drops.id"), nullable=False)

    fan_phone = Column(String(20), nullable=False)
    fan_name = Column(String(100))
    quantity = Column(Integer, default=1, nullable=False)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), default="ETB", nullable=False)

    psp_ref = Column(String(64))
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    receipt_id = Column(String(32), unique=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    paid_at = Column(DateTime)

    drop = relationship("Drop", back_populates="purchases")

    __table_args__ = (
        Index("idx_purchase_drop", "drop_id"),
        Index("idx_purchase_status", "payment_status"),
    )

    def __repr__(self):
        return f"<Purchase(receipt_id='{self.receipt_id}', status='{self.payment_status.value}')>"


class Booking(Base):
    """Booking request for a paid engagement"""
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=new_id)
    creator_id = Column(String(36), ForeignKey("creators.id"), nullable=False)

    booker_name = Column(String(100), nullable=False)
    booker_phone = Column(String(20), nullable=False)
    booker_email = Column(String(255))

    type = Column(Enum(BookingType), nullable=False)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    location_city = Column(String(100), nullable=False)
    location_venue = Column(String(200))
    budget_min = Column(Integer, nullable=False)
    budget_max = Column(Integer, nullable=False)
    notes = Column(Text, nullable=False)
    attachments = Column(JSON, default=list, nullable=False)

    status = Column(Enum(BookingStatus), default=BookingStatus.REQUESTED, nullable=False)
    reference_code = Column(String(16), unique=True, nullable=False)
    decline_reason = Column(Text)
    cancellation_reason = Column(Text)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("Creator", back_populates="bookings")
    quotes = relationship(
        "BookingQuote", back_populates="booking",
        order_by="BookingQuote.created_at.desc()", cascade="all, delete-orphan",
    )
    payments = relationship(
        "BookingPayment", back_populates="booking",
        order_by="BookingPayment.created_at.desc()", cascade="all, delete-orphan",
    )
    events = relationship(
        "BookingEvent", back_populates="booking",
        order_by="BookingEvent.created_at", cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_booking_creator_status", "creator_id", "status"),
    )

    def __repr__(self):
        return f"<Booking(reference_code='{self.reference_code}', status='{self.status.value}')>"


class BookingQuote(Base):
    __tablename__ = "booking_quotes"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False)

    total_amount = Column(Integer, nullable=False)
    deposit_percent = Column(Integer, nullable=False)
    deposit_amount = Column(Integer, nullable=False)
    currency = Column(String(3), default="ETB", nullable=False)
    deposit_refundable = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    terms_text = Column(Text, nullable=False)

    status = Column(Enum(QuoteStatus), default=QuoteStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    booking = relationship("Booking", back_populates="quotes")

    def __repr__(self):
        return f"<BookingQuote(booking_id='{self.booking_id}', status='{self.status.value}')>"


class BookingPayment(Base):
    """Deposit or remainder payment; its receipt is public"""
    __tablename__ = "booking_payments"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False)
    quote_id = Column(String(36), ForeignKey("booking_quotes.id"), nullable=False)

    psp_ref = Column(String(64), unique=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), default="ETB", nullable=False)
    type = Column(Enum(BookingPaymentType), default=BookingPaymentType.DEPOSIT, nullable=False)
    status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    receipt_id = Column(String(32), unique=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    paid_at = Column(DateTime)

    booking = relationship("Booking", back_populates="payments")
    quote = relationship("BookingQuote")

    def __repr__(self):
        return f"<BookingPayment(receipt_id='{self.receipt_id}', status='{self.status.value}')>"


class BookingEvent(Base):
    """Append-only booking audit log"""
    __tablename__ = "booking_event_log"

    id = Column(String(36), primary_key=True, default=new_id)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False)

    event_type = Column(String(50), nullable=False)
    actor_type = Column(Enum(ActorType), nullable=False)
    actor_id = Column(String(64))
    event_metadata = Column("metadata", JSON, default=dict, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    booking = relationship("Booking", back_populates="events")

    def __repr__(self):
        return f"<BookingEvent(booking_id='{self.booking_id}', event_type='{self.event_type}')>"


class Broadcast(Base):
    """One-to-many message to a creator's fan segment"""
    __tablename__ = "broadcasts"

    id = Column(String(36), primary_key=True, default=new_id)
    creator_id = Column(String(36), ForeignKey("creators.id"), nullable=False)
    drop_id = Column(String(36), ForeignKey("drops.id"))

    message_text = Column(Text, nullable=False)
    media_url = Column(String(1000))
    segment = Column(Enum(BroadcastSegment), default=BroadcastSegment.ALL, nullable=False)
    channels = Column(JSON, default=list, nullable=False)

    status = Column(Enum(BroadcastStatus), default=BroadcastStatus.DRAFT, nullable=False)
    scheduled_at = Column(DateTime)
    sent_at = Column(DateTime)

    # Delivery stats
    recipients_count = Column(Integer)
    delivered_count = Column(Integer)
    failed_count = Column(Integer)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    drop = relationship("Drop")

    __table_args__ = (
        Index("idx_broadcast_creator_status", "creator_id", "status"),
        Index("idx_broadcast_scheduled", "scheduled_at"),
    )

    def __repr__(self):
        return f"<Broadcast(id='{self.id}', status='{self.status.value}')>"
