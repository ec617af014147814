"""
Unit tests for the reminder dispatcher
"""
from booking_cron.models import BookingStatus
from booking_cron.services.booking_store import BookingStore, StoreError
from booking_cron.services.reminders import ReminderDispatcher
from conftest import NOW, FakeNotifier, reload


def make_dispatcher(session, notifier):
    return ReminderDispatcher(BookingStore(session), notifier, window_start_minutes=60, window_end_minutes=120)


class TestReminderDispatcher:
    """Test one-hour reminders"""

    def test_sends_and_marks_bookings_in_window(self, test_db_session, make_booking, notifier):
        booking = make_booking(offset_minutes=90)
        make_booking(offset_minutes=30)
        make_booking(offset_minutes=150)

        count = make_dispatcher(test_db_session, notifier).dispatch(NOW)

        assert count == 1
        assert [s.booking_id for s in notifier.sent] == [booking.id]
        summary = notifier.sent[0]
        assert summary.service_title == "Guitar Lesson"
        assert summary.customer_phone == "+1234567890"
        assert reload(test_db_session, booking.id).reminder_1h_sent == NOW

    def test_second_dispatch_does_not_reselect(self, test_db_session, make_booking, notifier):
        make_booking(offset_minutes=90)
        dispatcher = make_dispatcher(test_db_session, notifier)

        assert dispatcher.dispatch(NOW) == 1
        assert dispatcher.dispatch(NOW) == 0
        assert len(notifier.sent) == 1

    def test_whole_batch_marked_even_when_sends_fail(self, test_db_session, make_booking):
        raises = make_booking(offset_minutes=70)
        errors = make_booking(offset_minutes=80)
        works = make_booking(offset_minutes=90)
        notifier = FakeNotifier(failing={raises.id}, error={errors.id})

        count = make_dispatcher(test_db_session, notifier).dispatch(NOW)

        assert count == 3
        assert len(notifier.sent) == 3
        for booking_id in (raises.id, errors.id, works.id):
            assert reload(test_db_session, booking_id).reminder_1h_sent == NOW

    def test_only_confirmed_bookings(self, test_db_session, make_booking, notifier):
        make_booking(status=BookingStatus.PENDING, offset_minutes=90)
        make_booking(status=BookingStatus.CANCELLED, offset_minutes=90)

        assert make_dispatcher(test_db_session, notifier).dispatch(NOW) == 0
        assert notifier.sent == []

    def test_query_failure_yields_zero(self, test_db_session, notifier, monkeypatch):
        store = BookingStore(test_db_session)

        def broken(*args, **kwargs):
            raise StoreError("database unavailable")

        monkeypatch.setattr(store, "select_reminder_candidates", broken)

        assert ReminderDispatcher(store, notifier).dispatch(NOW) == 0

    def test_marker_failure_still_reports_selected(self, test_db_session, make_booking, notifier, monkeypatch):
        booking = make_booking(offset_minutes=90)
        store = BookingStore(test_db_session)

        def broken(*args, **kwargs):
            raise StoreError("write failed")

        monkeypatch.setattr(store, "mark_reminders_sent", broken)

        count = ReminderDispatcher(store, notifier, window_start_minutes=60, window_end_minutes=120).dispatch(NOW)

        assert count == 1
        assert [s.booking_id for s in notifier.sent] == [booking.id]
        assert reload(test_db_session, booking.id).reminder_1h_sent is None

    def test_non_dict_send_result(self, test_db_session, make_booking):
        booking = make_booking(offset_minutes=90)

        class StringNotifier:
            def send(self, summary):
                return "queued"

        count = make_dispatcher(test_db_session, StringNotifier()).dispatch(NOW)

        assert count == 1
        assert reload(test_db_session, booking.id).reminder_1h_sent == NOW
