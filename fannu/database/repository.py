"""
Database engine, session factory and repositories
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, event, and_, or_, func, update, delete
from sqlalchemy.orm import sessionmaker, Session, joinedload, selectinload
from sqlalchemy.pool import StaticPool

from .models import (
    Base,
    Creator,
    CreatorStatus,
    Drop,
    DropStatus,
    VipSubscription,
    VipStatus,
    VipChannel,
    VipSource,
    Purchase,
    PaymentStatus,
    Booking,
    BookingStatus,
    BookingQuote,
    QuoteStatus,
    BookingPayment,
    BookingPaymentType,
    BookingEvent,
    ActorType,
    Broadcast,
    BroadcastStatus,
)
from ..utils import utcnow

logger = logging.getLogger(__name__)


# Engine and session factory
_engine = None
_SessionLocal = None


def init_db(database_url: str = "sqlite:///./data/fannu.db") -> None:
    """Create the engine, the session factory and any missing tables"""
    global _engine, _SessionLocal

    engine_kwargs = {"echo": False}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
            db_path = database_url.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        else:
            # in-memory: every session must share the one connection
            engine_kwargs["poolclass"] = StaticPool

    _engine = create_engine(database_url, **engine_kwargs)

    if _engine.dialect.name == "sqlite":
        @event.listens_for(_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    _SessionLocal = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=_engine
    )

    Base.metadata.create_all(bind=_engine)
    logger.info("Database initialized: %s", _engine.url.render_as_string(hide_password=True))


def is_initialized() -> bool:
    return _SessionLocal is not None


def dispose_db() -> None:
    """Drop the engine; the next init_db starts from scratch"""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


@contextmanager
def get_session():
    """Session context manager: commit on success, rollback on error"""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _dialect_insert(session: Session, table):
    """INSERT construct that supports ON CONFLICT for the bound dialect"""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"ON CONFLICT is not supported for {dialect}")
    return insert(table)


class CreatorRepository:
    """Creator store"""

    @staticmethod
    def create(session: Session, **fields) -> Creator:
        creator = Creator(**fields)
        session.add(creator)
        session.flush()
        return creator

    @staticmethod
    def get_by_id(session: Session, creator_id: str) -> Optional[Creator]:
        return session.query(Creator).filter(Creator.id == creator_id).first()

    @staticmethod
    def get_active_by_id(session: Session, creator_id: str) -> Optional[Creator]:
        return (
            session.query(Creator)
            .filter(and_(Creator.id == creator_id, Creator.status == CreatorStatus.ACTIVE))
            .first()
        )

    @staticmethod
    def get_active_by_slug(session: Session, slug: str) -> Optional[Creator]:
        return (
            session.query(Creator)
            .filter(and_(Creator.slug == slug, Creator.status == CreatorStatus.ACTIVE))
            .first()
        )

    @staticmethod
    def get_by_slug(session: Session, slug: str) -> Optional[Creator]:
        return session.query(Creator).filter(Creator.slug == slug).first()

    @staticmethod
    def get_by_user_id(session: Session, user_id: str) -> Optional[Creator]:
        return session.query(Creator).filter(Creator.user_id == user_id).first()

    @staticmethod
    def get_first_active(session: Session) -> Optional[Creator]:
        return (
            session.query(Creator)
            .filter(Creator.status == CreatorStatus.ACTIVE)
            .order_by(Creator.created_at)
            .first()
        )

    @staticmethod
    def get_all(session: Session) -> list[Creator]:
        return session.query(Creator).order_by(Creator.created_at.desc()).all()

    @staticmethod
    def update_fields(session: Session, creator_id: str, values: dict) -> int:
        """Single-row column update; returns the number of rows touched"""
        values = dict(values, updated_at=utcnow())
        result = session.execute(
            update(Creator.__table__).where(Creator.__table__.c.id == creator_id).values(**values)
        )
        return result.rowcount


class DropRepository:
    """Drop store"""

    @staticmethod
    def create(session: Session, **fields) -> Drop:
        drop = Drop(**fields)
        session.add(drop)
        session.flush()
        return drop

    @staticmethod
    def slug_exists(session: Session, slug: str) -> bool:
        return session.query(Drop.id).filter(Drop.slug == slug).first() is not None

    @staticmethod
    def get_by_id(session: Session, drop_id: str) -> Optional[Drop]:
        return (
            session.query(Drop)
            .options(joinedload(Drop.creator))
            .filter(Drop.id == drop_id)
            .first()
        )

    @staticmethod
    def get_by_slug(session: Session, slug: str) -> Optional[Drop]:
        return (
            session.query(Drop)
            .options(joinedload(Drop.creator))
            .filter(Drop.slug == slug)
            .first()
        )

    @staticmethod
    def get_by_creator(session: Session, creator_id: str) -> list[Drop]:
        return (
            session.query(Drop)
            .filter(Drop.creator_id == creator_id)
            .order_by(Drop.created_at.desc())
            .all()
        )

    @staticmethod
    def get_visible_by_creator(session: Session, creator_id: str) -> list[Drop]:
        """LIVE and SCHEDULED drops, the ones fans can see"""
        return (
            session.query(Drop)
            .filter(
                and_(
                    Drop.creator_id == creator_id,
                    Drop.status.in_([DropStatus.LIVE, DropStatus.SCHEDULED]),
                )
            )
            .order_by(Drop.created_at.desc())
            .all()
        )

    @staticmethod
    def get_ids_by_creator(session: Session, creator_id: str) -> list[str]:
        return [row[0] for row in session.query(Drop.id).filter(Drop.creator_id == creator_id).all()]

    @staticmethod
    def update_fields(session: Session, drop_id: str, values: dict) -> int:
        values = dict(values, updated_at=utcnow())
        result = session.execute(
            update(Drop.__table__).where(Drop.__table__.c.id == drop_id).values(**values)
        )
        return result.rowcount

    @staticmethod
    def transition(session: Session, drop_id: str, from_statuses: list[DropStatus], values: dict) -> int:
        """Status change that only applies while the row is in one of `from_statuses`"""
        table = Drop.__table__
        values = dict(values, updated_at=utcnow())
        result = session.execute(
            update(table)
            .where(and_(table.c.id == drop_id, table.c.status.in_(from_statuses)))
            .values(**values)
        )
        return result.rowcount

    @staticmethod
    def reserve_slots(session: Session, drop_id: str, quantity: int) -> bool:
        """Atomically take `quantity` slots; False if not enough remain"""
        table = Drop.__table__
        result = session.execute(
            update(table)
            .where(and_(table.c.id == drop_id, table.c.slots_remaining >= quantity))
            .values(slots_remaining=table.c.slots_remaining - quantity, updated_at=utcnow())
        )
        return result.rowcount == 1

    @staticmethod
    def has_purchases(session: Session, drop_id: str) -> bool:
        return session.query(Purchase.id).filter(Purchase.drop_id == drop_id).first() is not None

    @staticmethod
    def delete(session: Session, drop_id: str) -> int:
        session.execute(
            update(Broadcast.__table__)
            .where(Broadcast.__table__.c.drop_id == drop_id)
            .values(drop_id=None)
        )
        result = session.execute(delete(Drop.__table__).where(Drop.__table__.c.id == drop_id))
        return result.rowcount

    @staticmethod
    def get_due_scheduled(session: Session, now: datetime) -> list[Drop]:
        return (
            session.query(Drop)
            .filter(and_(Drop.status == DropStatus.SCHEDULED, Drop.scheduled_at <= now))
            .all()
        )

    @staticmethod
    def get_expired_live(session: Session, now: datetime) -> list[Drop]:
        return (
            session.query(Drop)
            .filter(and_(Drop.status == DropStatus.LIVE, Drop.ends_at.isnot(None), Drop.ends_at <= now))
            .all()
        )


class VipRepository:
    """VIP subscription store"""

    @staticmethod
    def insert_if_absent(session: Session, values: dict) -> bool:
        """INSERT ... ON CONFLICT (creator_id, fan_phone) DO NOTHING; True if a row was created"""
        stmt = (
            _dialect_insert(session, VipSubscription.__table__)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["creator_id", "fan_phone"])
        )
        return session.execute(stmt).rowcount == 1

    @staticmethod
    def reactivate(session: Session, creator_id: str, fan_phone: str, extra: Optional[dict] = None) -> bool:
        """UNSUBSCRIBED -> ACTIVE in one conditional statement; True if a row changed"""
        table = VipSubscription.__table__
        values = {"status": VipStatus.ACTIVE}
        if extra:
            values.update(extra)
        result = session.execute(
            update(table)
            .where(
                and_(
                    table.c.creator_id == creator_id,
                    table.c.fan_phone == fan_phone,
                    table.c.status == VipStatus.UNSUBSCRIBED,
                )
            )
            .values(**values)
        )
        return result.rowcount == 1

    @staticmethod
    def set_unsubscribed(session: Session, creator_id: str, fan_phone: str) -> int:
        table = VipSubscription.__table__
        result = session.execute(
            update(table)
            .where(and_(table.c.creator_id == creator_id, table.c.fan_phone == fan_phone))
            .values(status=VipStatus.UNSUBSCRIBED)
        )
        return result.rowcount

    @staticmethod
    def get(session: Session, creator_id: str, fan_phone: str) -> Optional[VipSubscription]:
        return (
            session.query(VipSubscription)
            .filter(
                and_(
                    VipSubscription.creator_id == creator_id,
                    VipSubscription.fan_phone == fan_phone,
                )
            )
            .first()
        )

    @staticmethod
    def get_active_with_creator(session: Session, creator_id: str, fan_phone: str) -> Optional[VipSubscription]:
        return (
            session.query(VipSubscription)
            .options(joinedload(VipSubscription.creator))
            .filter(
                and_(
                    VipSubscription.creator_id == creator_id,
                    VipSubscription.fan_phone == fan_phone,
                    VipSubscription.status == VipStatus.ACTIVE,
                )
            )
            .first()
        )

    @staticmethod
    def get_active_by_creator(session: Session, creator_id: str, limit: Optional[int] = None) -> list[VipSubscription]:
        query = (
            session.query(VipSubscription)
            .filter(
                and_(
                    VipSubscription.creator_id == creator_id,
                    VipSubscription.status == VipStatus.ACTIVE,
                )
            )
            .order_by(VipSubscription.joined_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def search(
        session: Session,
        creator_id: str,
        status: Optional[VipStatus] = None,
        channel: Optional[VipChannel] = None,
        source: Optional[VipSource] = None,
        text: Optional[str] = None,
    ) -> list[VipSubscription]:
        """Audience list; None means no filter on that column"""
        query = session.query(VipSubscription).filter(VipSubscription.creator_id == creator_id)
        if status is not None:
            query = query.filter(VipSubscription.status == status)
        if channel is not None:
            query = query.filter(VipSubscription.channel == channel)
        if source is not None:
            query = query.filter(VipSubscription.source == source)
        if text:
            pattern = f"%{text}%"
            query = query.filter(
                or_(VipSubscription.fan_name.ilike(pattern), VipSubscription.fan_phone.like(pattern))
            )
        return query.order_by(VipSubscription.joined_at.desc()).all()

    @staticmethod
    def count_active(session: Session, creator_id: str) -> int:
        return (
            session.query(func.count(VipSubscription.id))
            .filter(
                and_(
                    VipSubscription.creator_id == creator_id,
                    VipSubscription.status == VipStatus.ACTIVE,
                )
            )
            .scalar()
        ) or 0


class PurchaseRepository:
    """Drop purchase store"""

    @staticmethod
    def create(session: Session, **fields) -> Purchase:
        purchase = Purchase(**fields)
        session.add(purchase)
        session.flush()
        return purchase

    @staticmethod
    def get_by_receipt_id(session: Session, receipt_id: str) -> Optional[Purchase]:
        return (
            session.query(Purchase)
            .options(joinedload(Purchase.drop).joinedload(Drop.creator))
            .filter(Purchase.receipt_id == receipt_id)
            .first()
        )

    @staticmethod
    def get_by_drop(session: Session, drop_id: str) -> list[Purchase]:
        return (
            session.query(Purchase)
            .filter(Purchase.drop_id == drop_id)
            .order_by(Purchase.created_at.desc())
            .all()
        )

    @staticmethod
    def get_by_creator(
        session: Session,
        creator_id: str,
        status: Optional[PaymentStatus] = None,
        limit: Optional[int] = None,
    ) -> list[Purchase]:
        query = (
            session.query(Purchase)
            .join(Drop, Purchase.drop_id == Drop.id)
            .options(joinedload(Purchase.drop))
            .filter(Drop.creator_id == creator_id)
        )
        if status is not None:
            query = query.filter(Purchase.payment_status == status)
            if status == PaymentStatus.PAID:
                query = query.order_by(Purchase.paid_at.desc())
        query = query.order_by(Purchase.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def count_distinct_paid_buyers(session: Session, creator_id: str) -> int:
        return (
            session.query(func.count(func.distinct(Purchase.fan_phone)))
            .join(Drop, Purchase.drop_id == Drop.id)
            .filter(
                and_(
                    Drop.creator_id == creator_id,
                    Purchase.payment_status == PaymentStatus.PAID,
                )
            )
            .scalar()
        ) or 0

    @staticmethod
    def mark_paid(session: Session, purchase_id: str) -> int:
        table = Purchase.__table__
        result = session.execute(
            update(table)
            .where(table.c.id == purchase_id)
            .values(payment_status=PaymentStatus.PAID, paid_at=utcnow())
        )
        return result.rowcount


class BookingRepository:
    """Booking, quote, payment and event-log store"""

    @staticmethod
    def create(session: Session, **fields) -> Booking:
        booking = Booking(**fields)
        session.add(booking)
        session.flush()
        return booking

    @staticmethod
    def reference_code_exists(session: Session, code: str) -> bool:
        return session.query(Booking.id).filter(Booking.reference_code == code).first() is not None

    @staticmethod
    def _with_details(session: Session):
        return session.query(Booking).options(
            joinedload(Booking.creator),
            selectinload(Booking.quotes),
            selectinload(Booking.payments),
            selectinload(Booking.events),
        )

    @staticmethod
    def get_by_id(session: Session, booking_id: str) -> Optional[Booking]:
        return BookingRepository._with_details(session).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_by_reference_code(session: Session, code: str) -> Optional[Booking]:
        return BookingRepository._with_details(session).filter(Booking.reference_code == code).first()

    @staticmethod
    def get_by_creator(
        session: Session,
        creator_id: str,
        status: Optional[BookingStatus] = None,
        limit: Optional[int] = None,
    ) -> list[Booking]:
        query = session.query(Booking).filter(Booking.creator_id == creator_id)
        if status is not None:
            query = query.filter(Booking.status == status)
        query = query.order_by(Booking.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def get_all(session: Session) -> list[Booking]:
        return (
            session.query(Booking)
            .options(joinedload(Booking.creator))
            .order_by(Booking.created_at.desc())
            .all()
        )

    @staticmethod
    def set_status(
        session: Session,
        booking_id: str,
        status: BookingStatus,
        expected: Optional[list[BookingStatus]] = None,
        **extra,
    ) -> int:
        """Status update, optionally guarded by the statuses it may leave from"""
        table = Booking.__table__
        condition = table.c.id == booking_id
        if expected:
            condition = and_(condition, table.c.status.in_(expected))
        result = session.execute(
            update(table).where(condition).values(status=status, updated_at=utcnow(), **extra)
        )
        return result.rowcount

    @staticmethod
    def log_event(
        session: Session,
        booking_id: str,
        event_type: str,
        actor_type: ActorType,
        metadata: Optional[dict] = None,
        actor_id: Optional[str] = None,
    ) -> BookingEvent:
        entry = BookingEvent(
            booking_id=booking_id,
            event_type=event_type,
            actor_type=actor_type,
            actor_id=actor_id,
            event_metadata=metadata or {},
        )
        session.add(entry)
        session.flush()
        return entry

    # Quotes

    @staticmethod
    def create_quote(session: Session, **fields) -> BookingQuote:
        quote = BookingQuote(**fields)
        session.add(quote)
        session.flush()
        return quote

    @staticmethod
    def supersede_active_quotes(session: Session, booking_id: str) -> int:
        table = BookingQuote.__table__
        result = session.execute(
            update(table)
            .where(and_(table.c.booking_id == booking_id, table.c.status == QuoteStatus.ACTIVE))
            .values(status=QuoteStatus.SUPERSEDED)
        )
        return result.rowcount

    @staticmethod
    def get_quote(session: Session, quote_id: str) -> Optional[BookingQuote]:
        return session.query(BookingQuote).filter(BookingQuote.id == quote_id).first()

    @staticmethod
    def set_quote_status(session: Session, quote_id: str, status: QuoteStatus) -> int:
        table = BookingQuote.__table__
        result = session.execute(update(table).where(table.c.id == quote_id).values(status=status))
        return result.rowcount

    # Payments

    @staticmethod
    def create_payment(session: Session, **fields) -> BookingPayment:
        payment = BookingPayment(**fields)
        session.add(payment)
        session.flush()
        return payment

    @staticmethod
    def get_deposit(session: Session, booking_id: str, quote_id: str) -> Optional[BookingPayment]:
        return (
            session.query(BookingPayment)
            .filter(
                and_(
                    BookingPayment.booking_id == booking_id,
                    BookingPayment.quote_id == quote_id,
                    BookingPayment.type == BookingPaymentType.DEPOSIT,
                )
            )
            .order_by(BookingPayment.created_at.desc())
            .first()
        )

    @staticmethod
    def get_payment_by_psp_ref(session: Session, psp_ref: str) -> Optional[BookingPayment]:
        return session.query(BookingPayment).filter(BookingPayment.psp_ref == psp_ref).first()

    @staticmethod
    def get_payment_by_receipt_id(session: Session, receipt_id: str) -> Optional[BookingPayment]:
        return (
            session.query(BookingPayment)
            .options(
                joinedload(BookingPayment.booking).joinedload(Booking.creator),
                joinedload(BookingPayment.quote),
            )
            .filter(BookingPayment.receipt_id == receipt_id)
            .first()
        )

    @staticmethod
    def get_payments_by_creator(session: Session, creator_id: str) -> list[BookingPayment]:
        return (
            session.query(BookingPayment)
            .join(Booking, BookingPayment.booking_id == Booking.id)
            .options(joinedload(BookingPayment.booking))
            .filter(Booking.creator_id == creator_id)
            .order_by(BookingPayment.created_at.desc())
            .all()
        )

    @staticmethod
    def set_payment_status(session: Session, payment_id: str, status: PaymentStatus) -> int:
        table = BookingPayment.__table__
        values = {"status": status}
        if status == PaymentStatus.PAID:
            values["paid_at"] = utcnow()
        result = session.execute(update(table).where(table.c.id == payment_id).values(**values))
        return result.rowcount

    @staticmethod
    def fail_pending_payments(session: Session, booking_id: str) -> int:
        """Void deposits still waiting on the provider"""
        table = BookingPayment.__table__
        result = session.execute(
            update(table)
            .where(and_(table.c.booking_id == booking_id, table.c.status == PaymentStatus.PENDING))
            .values(status=PaymentStatus.FAILED)
        )
        return result.rowcount


class BroadcastRepository:
    """Broadcast store"""

    @staticmethod
    def create(session: Session, **fields) -> Broadcast:
        broadcast = Broadcast(**fields)
        session.add(broadcast)
        session.flush()
        return broadcast

    @staticmethod
    def get_by_id(session: Session, broadcast_id: str) -> Optional[Broadcast]:
        return (
            session.query(Broadcast)
            .options(joinedload(Broadcast.drop))
            .filter(Broadcast.id == broadcast_id)
            .first()
        )

    @staticmethod
    def get_by_creator(
        session: Session, creator_id: str, status: Optional[BroadcastStatus] = None
    ) -> list[Broadcast]:
        query = (
            session.query(Broadcast)
            .options(joinedload(Broadcast.drop))
            .filter(Broadcast.creator_id == creator_id)
        )
        if status is not None:
            query = query.filter(Broadcast.status == status)
        return query.order_by(Broadcast.created_at.desc()).all()

    @staticmethod
    def get_due_scheduled(session: Session, now: datetime) -> list[Broadcast]:
        return (
            session.query(Broadcast)
            .filter(and_(Broadcast.status == BroadcastStatus.SCHEDULED, Broadcast.scheduled_at <= now))
            .order_by(Broadcast.scheduled_at)
            .all()
        )

    @staticmethod
    def transition(
        session: Session,
        broadcast_id: str,
        from_statuses: list[BroadcastStatus],
        values: dict,
    ) -> int:
        """Column update that only applies while the row is still in one of `from_statuses`"""
        table = Broadcast.__table__
        result = session.execute(
            update(table)
            .where(and_(table.c.id == broadcast_id, table.c.status.in_(from_statuses)))
            .values(**values)
        )
        return result.rowcount

    @staticmethod
    def delete_unsent(session: Session, broadcast_id: str) -> int:
        table = Broadcast.__table__
        result = session.execute(
            delete(table).where(and_(table.c.id == broadcast_id, table.c.status != BroadcastStatus.SENT))
        )
        return result.rowcount
