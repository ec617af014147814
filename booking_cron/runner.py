"""
Booking automation cron job
Runs one pass of the booking lifecycle automation and exits.

The external scheduler (e.g. every 15 minutes) owns cadence and retries; no
state is kept between runs. The process must exit for the scheduler to
consider the run finished.
"""
import json
import logging
import os
import signal
import sys
import threading
import time
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from booking_cron.config import settings
from booking_cron.database import SessionLocal
from booking_cron.services.booking_store import BookingStore
from booking_cron.services.meeting_links import MeetingLinkProvisioner
from booking_cron.services.reminders import ReminderDispatcher
from booking_cron.services.settlement_client import SettlementClient
from booking_cron.services.sms_service import TwilioService
from booking_cron.services.transitions import TransitionEngine

logger = logging.getLogger(__name__)


class Transitions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    confirmed_to_in_progress: int = Field(0, alias="confirmedToInProgress")
    in_progress_to_completed: int = Field(0, alias="inProgressToCompleted")
    reminders_sent: int = Field(0, alias="remindersSent")


class RunReport(BaseModel):
    """Outcome of one pass"""

    success: bool
    duration_ms: int
    transitions: Transitions


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching stored timestamps"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def run_pipeline(
    session_factory=None,
    settlement=None,
    provisioner=None,
    notifier=None,
    clock=None,
) -> RunReport:
    """
    Run one pass: start due bookings, complete finished ones, send reminders.

    Phase failures are logged inside each phase. Anything that escapes is
    raised to the caller.
    """
    started = time.monotonic()
    session_factory = session_factory or SessionLocal
    now = (clock or utcnow)()

    logger.info("🤖 Starting booking automation job...")
    logger.info(f"⏰ Current time: {now.isoformat()}")

    db = session_factory()
    try:
        store = BookingStore(db)
        engine = TransitionEngine(
            store,
            settlement if settlement is not None else SettlementClient(),
            provisioner if provisioner is not None else MeetingLinkProvisioner(session_factory),
        )
        dispatcher = ReminderDispatcher(store, notifier if notifier is not None else TwilioService())

        confirmed_to_in_progress = engine.start_due_bookings(now)
        in_progress_to_completed = engine.complete_finished_bookings(now)
        reminders_sent = dispatcher.dispatch(now)
    finally:
        db.close()

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"✅ Automation job completed in {duration_ms}ms")
    logger.info(
        f"📊 Summary: {confirmed_to_in_progress} started, "
        f"{in_progress_to_completed} completed, {reminders_sent} reminders sent"
    )

    return RunReport(
        success=True,
        duration_ms=duration_ms,
        transitions=Transitions(
            confirmed_to_in_progress=confirmed_to_in_progress,
            in_progress_to_completed=in_progress_to_completed,
            reminders_sent=reminders_sent,
        ),
    )


def configure_logging(level: str | None = None):
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)


def _handle_signal(signum, frame):
    # Runs are stateless; the next scheduled tick picks up the rest
    logger.info(f"📡 Received {signal.Signals(signum).name}, shutting down gracefully...")
    sys.exit(0)


def _handle_uncaught(exc_type, exc_value, exc_traceback):
    # The interpreter exits with status 1 once this hook returns
    logger.critical("❌ Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


def _handle_thread_exception(args):
    logger.critical(
        f"❌ Unhandled exception in thread {args.thread.name if args.thread else 'unknown'}",
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )
    # sys.exit would only end the worker thread
    logging.shutdown()
    os._exit(1)


def install_handlers():
    """Make termination signals exit cleanly and unhandled errors fatal"""
    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)
    sys.excepthook = _handle_uncaught
    threading.excepthook = _handle_thread_exception


def main():
    configure_logging()
    install_handlers()

    logger.info("🚀 Booking cron starting...")
    logger.info(f"📅 Execution time: {utcnow().isoformat()}")

    try:
        report = run_pipeline()
    except Exception as e:
        logger.exception(f"❌ Cron job failed: {e}")
        sys.exit(1)

    logger.info("✅ Cron job completed successfully")
    print(json.dumps(report.model_dump(by_alias=True), indent=2))
    sys.exit(0)


if __name__ == "__main__":
    main()
