"""
Booking Store Client
Typed read/write access to booking rows. No business rules live here.
"""
from datetime import datetime
from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from booking_cron.models import Booking, BookingStatus


class StoreError(Exception):
    """Raised when the booking store cannot complete a query or write"""


def _affected(result, default: int) -> int:
    """Row count of an UPDATE, or `default` when the driver reports none"""
    if result.rowcount is None or result.rowcount < 0:
        return default
    return result.rowcount


class BookingStore:
    """Thin wrapper around a SQLAlchemy session for the booking table"""

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError):
        self.db.rollback()
        raise StoreError(f"Failed to {action}: {error}") from error

    def select_due(self, status: BookingStatus, scheduled_before: datetime) -> list[Booking]:
        """Bookings in `status` whose start time is at or before `scheduled_before`"""
        try:
            stmt = (
                select(Booking)
                .where(Booking.status == status.value, Booking.scheduled_at <= scheduled_before)
                .order_by(Booking.scheduled_at, Booking.id)
            )
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as e:
            self._fail(f"select {status.value} bookings", e)

    def select_by_status(self, status: BookingStatus) -> list[Booking]:
        """All bookings in `status`, ordered by start time"""
        try:
            stmt = (
                select(Booking)
                .where(Booking.status == status.value)
                .order_by(Booking.scheduled_at, Booking.id)
            )
            return list(self.db.scalars(stmt))
        except SQLAlchemyError as e:
            self._fail(f"select {status.value} bookings", e)

    def select_reminder_candidates(self, window_start: datetime, window_end: datetime) -> list[Booking]:
        """Confirmed bookings starting in [window_start, window_end) with no reminder yet"""
        try:
            stmt = (
                select(Booking)
                .options(joinedload(Booking.service))
                .where(
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.scheduled_at >= window_start,
                    Booking.scheduled_at < window_end,
                    Booking.reminder_1h_sent.is_(None),
                )
                .order_by(Booking.scheduled_at, Booking.id)
            )
            return list(self.db.scalars(stmt).unique())
        except SQLAlchemyError as e:
            self._fail("select reminder candidates", e)

    def bulk_update_status(
        self,
        booking_ids: list[str],
        from_status: BookingStatus,
        to_status: BookingStatus,
        now: datetime,
    ) -> int:
        """
        Move every listed booking still in `from_status` to `to_status`.

        Returns:
            Number of rows affected, or len(booking_ids) when the driver
            cannot report it
        """
        if not booking_ids:
            return 0
        try:
            stmt = (
                update(Booking)
                .where(Booking.id.in_(booking_ids), Booking.status == from_status.value)
                .values(status=to_status.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"update bookings to {to_status.value}", e)
        return _affected(result, len(booking_ids))

    def update_booking(self, booking_id: str, values: dict, expected_status: BookingStatus | None = None) -> int:
        """Update a single row; optionally only while it still has `expected_status`"""
        try:
            stmt = update(Booking).where(Booking.id == booking_id)
            if expected_status is not None:
                stmt = stmt.where(Booking.status == expected_status.value)
            stmt = stmt.values(**values).execution_options(synchronize_session=False)
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"update booking {booking_id}", e)
        return _affected(result, 1)

    def mark_reminders_sent(self, booking_ids: list[str], now: datetime) -> int:
        """Stamp reminder_1h_sent on rows that do not have it yet"""
        if not booking_ids:
            return 0
        try:
            stmt = (
                update(Booking)
                .where(Booking.id.in_(booking_ids), Booking.reminder_1h_sent.is_(None))
                .values(reminder_1h_sent=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("mark reminders as sent", e)
        return _affected(result, len(booking_ids))

    def set_meeting_link(
        self,
        booking_id: str,
        meeting_link: str,
        now: datetime,
        meeting_id: str | None = None,
        meeting_platform: str | None = None,
    ) -> int:
        """Store a meeting link and its event details only if the booking has no link yet"""
        try:
            stmt = (
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    or_(Booking.meeting_link.is_(None), Booking.meeting_link == ""),
                )
                .values(
                    meeting_link=meeting_link,
                    meeting_id=meeting_id,
                    meeting_platform=meeting_platform,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail(f"store meeting link for booking {booking_id}", e)
        return _affected(result, 1)
