"""
Automated booking status transitions
Handles confirmed → in_progress when the start time arrives and
in_progress → completed when the end time has passed.
"""
import logging
import math
import queue
import threading
from concurrent.futures import Future, wait
from datetime import datetime
from booking_cron.config import settings
from booking_cron.models import BookingStatus
from booking_cron.services.booking_store import BookingStore, StoreError

logger = logging.getLogger(__name__)

NOTES_SETTLEMENT_REJECTED = "Auto-completed by cron (blockchain completion failed)"
NOTES_SETTLEMENT_FAILED = "Auto-completed by cron (blockchain call failed)"


def run_in_daemon_threads(fn, items: list, workers: int, name: str) -> dict[Future, object]:
    """
    Run fn over items on daemon worker threads.

    Unlike ThreadPoolExecutor, the workers are never joined at interpreter
    exit, so a call that outlives its timeout cannot hold the process open.

    Returns:
        dict mapping each item's Future to the item
    """
    futures = {Future(): item for item in items}
    work = queue.SimpleQueue()
    for future, item in futures.items():
        work.put((future, item))

    def worker():
        while True:
            try:
                future, item = work.get_nowait()
            except queue.Empty:
                return
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(item))
            except Exception as e:
                future.set_exception(e)

    for i in range(workers):
        threading.Thread(target=worker, name=f"{name}-{i}", daemon=True).start()
    return futures


class TransitionEngine:
    """Runs both time-based transitions against a single `now`"""

    def __init__(
        self,
        store: BookingStore,
        settlement,
        provisioner=None,
        meeting_link_workers: int | None = None,
        meeting_link_timeout: float | None = None,
    ):
        self.store = store
        self.settlement = settlement
        self.provisioner = provisioner
        self.meeting_link_workers = meeting_link_workers or settings.meeting_link_max_workers
        self.meeting_link_timeout = (
            meeting_link_timeout if meeting_link_timeout is not None
            else settings.meeting_link_timeout_seconds
        )

    def start_due_bookings(self, now: datetime) -> int:
        """
        Move confirmed bookings whose start time has passed to in_progress.

        Returns:
            Number of bookings started
        """
        logger.info("🔄 Checking confirmed bookings to start...")

        try:
            bookings = self.store.select_due(BookingStatus.CONFIRMED, now)
        except StoreError as e:
            logger.error(f"Error fetching confirmed bookings: {e}")
            return 0

        if not bookings:
            logger.info("📋 No confirmed bookings to start")
            return 0

        # Read everything needed before the update expires the loaded rows
        booking_ids = [b.id for b in bookings]
        needs_link = [b.id for b in bookings if b.is_online and not b.meeting_link]
        logger.info(f"📋 Found {len(booking_ids)} bookings to start: {[i[:8] for i in booking_ids]}")

        started = 0
        try:
            started = self.store.bulk_update_status(
                booking_ids, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, now
            )
            logger.info(f"✅ Successfully started {started} bookings")
        except StoreError as e:
            logger.error(f"Error updating bookings to in_progress: {e}")

        if needs_link and self.provisioner is not None:
            self._provision_meeting_links(needs_link, now)

        return started

    def _provision_meeting_links(self, booking_ids: list[str], now: datetime):
        """Generate fallback meeting links concurrently; failures only get logged"""
        logger.info(f"🔗 Generating meeting links for {len(booking_ids)} online bookings without links (fallback)...")

        workers = max(1, min(self.meeting_link_workers, len(booking_ids)))
        # Each worker handles its queue one task at a time
        budget = self.meeting_link_timeout * math.ceil(len(booking_ids) / workers)

        futures = run_in_daemon_threads(
            lambda booking_id: self.provisioner.generate_link(booking_id, now),
            booking_ids,
            workers,
            name="meeting-link",
        )
        done, not_done = wait(futures, timeout=budget)

        for future in done:
            booking_id = futures[future]
            try:
                link = future.result()
            except Exception as e:
                logger.error(f"❌ Failed to generate meeting link for booking {booking_id}: {e}")
                continue
            if link:
                logger.info(f"✅ Meeting link generated for booking {booking_id[:8]}... (fallback)")
            else:
                logger.info(
                    f"⚠️ No meeting link generated for booking {booking_id[:8]}... "
                    "(provider may not have integrations)"
                )

        for future in not_done:
            # Queued tasks are dropped; a running one is abandoned to its daemon thread
            future.cancel()
            logger.error(f"❌ Timed out generating meeting link for booking {futures[future]}")

    def complete_finished_bookings(self, now: datetime) -> int:
        """
        Complete in_progress bookings whose end time has passed.

        Each booking goes through the settlement backend first, one at a time.
        When settlement is rejected or fails the booking is completed directly
        in the database. A failed fallback write leaves the booking in
        in_progress for the next run.

        Returns:
            Number of bookings completed
        """
        logger.info("🏁 Checking in_progress bookings to complete...")

        try:
            bookings = self.store.select_by_status(BookingStatus.IN_PROGRESS)
        except StoreError as e:
            logger.error(f"Error fetching in_progress bookings: {e}")
            return 0

        if not bookings:
            logger.info("📋 No in_progress bookings to check")
            return 0

        to_complete = []
        for booking in bookings:
            end_time = booking.end_time
            if end_time <= now:
                to_complete.append(booking.id)
                logger.info(f"📋 Booking {booking.id[:8]}... should complete (ended at {end_time.isoformat()})")

        if not to_complete:
            logger.info("📋 No in_progress bookings to complete yet")
            return 0

        # Ordered and de-duplicated; each booking is attempted once per run
        to_complete = list(dict.fromkeys(to_complete))
        logger.info(f"📋 Found {len(to_complete)} bookings to complete")

        completed = 0
        for booking_id in to_complete:
            if self._complete_booking(booking_id, now):
                completed += 1

        logger.info(
            f"✅ Successfully completed {completed} bookings "
            f"({len(to_complete) - completed} left for the next run)"
        )
        return completed

    def _complete_booking(self, booking_id: str, now: datetime) -> bool:
        logger.info(f"🎉 Auto-completing booking {booking_id[:8]}... via settlement")

        try:
            result = self.settlement.complete_booking(booking_id)
        except Exception as e:
            logger.error(f"❌ Error completing booking {booking_id}: {e}")
            return self._fallback_complete(booking_id, now, NOTES_SETTLEMENT_FAILED)

        if result.ok:
            logger.info(f"✅ Settlement completion successful for {booking_id[:8]}...: {result.tx_ref}")
            return True

        logger.error(f"❌ Settlement completion failed for {booking_id[:8]}...: {result.detail}")
        return self._fallback_complete(booking_id, now, NOTES_SETTLEMENT_REJECTED)

    def _fallback_complete(self, booking_id: str, now: datetime, notes: str) -> bool:
        """Mark the booking completed directly; True if the row was written"""
        try:
            rows = self.store.update_booking(
                booking_id,
                {
                    "status": BookingStatus.COMPLETED.value,
                    "completed_at": now,
                    "updated_at": now,
                    "auto_status_updated": True,
                    "completion_notes": notes,
                },
                expected_status=BookingStatus.IN_PROGRESS,
            )
        except StoreError as e:
            logger.error(f"❌ Failed to update booking {booking_id} as fallback: {e}")
            return False

        if rows == 0:
            logger.warning(f"⚠️ Booking {booking_id[:8]}... is no longer in_progress, fallback skipped")
            return False

        logger.info(f"✅ Booking {booking_id[:8]}... completed by fallback")
        return True
