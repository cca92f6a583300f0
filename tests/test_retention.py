"""Tests for keepstatus retention."""

from datetime import datetime, timedelta, timezone

from logcheck.models import ClassifiedEvent, FileState, KeptMessage, Message, Severity
from logcheck.retention import RetentionWindow


T0 = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


def make_event(severity, at, text='boom', line_number=1):
    message = Message(text=text, path='/app.log', start_offset=0, end_offset=5, line_number=line_number, line_count=1)
    return ClassifiedEvent(message=message, severity=severity, evaluated_at=at)


class TestRetentionWindow:
    def test_disabled_by_default(self):
        window = RetentionWindow()
        state = FileState(path='/app.log', last_critical_at=T0)

        outcome = window.apply(state, [], T0 + timedelta(seconds=1))

        assert not window.enabled
        assert outcome.severity == Severity.OK
        assert state.kept_messages == []

    def test_events_of_this_run_decide(self):
        window = RetentionWindow(timedelta(hours=1))
        state = FileState(path='/app.log')

        outcome = window.apply(state, [make_event(Severity.WARNING, T0)], T0)

        assert outcome.severity == Severity.WARNING
        assert state.last_warning_at == T0
        assert state.last_critical_at is None

    def test_retained_within_window(self):
        window = RetentionWindow(timedelta(hours=1))
        state = FileState(path='/app.log')
        window.apply(state, [make_event(Severity.CRITICAL, T0)], T0)

        outcome = window.apply(state, [], T0 + timedelta(minutes=30))

        assert outcome.severity == Severity.CRITICAL
        assert outcome.retained == [Severity.CRITICAL]
        assert [m.text for m in outcome.retained_messages] == ['boom']

    def test_window_boundary_is_inclusive(self):
        window = RetentionWindow(timedelta(hours=1))
        state = FileState(path='/app.log', last_critical_at=T0)

        assert window.apply(state, [], T0 + timedelta(hours=1)).severity == Severity.CRITICAL

    def test_expired_after_window(self):
        window = RetentionWindow(timedelta(hours=1))
        state = FileState(path='/app.log', last_critical_at=T0)

        outcome = window.apply(state, [], T0 + timedelta(hours=1, seconds=1))

        assert outcome.severity == Severity.OK
        assert state.last_critical_at == T0

    def test_new_event_overwrites_expired_timestamp(self):
        window = RetentionWindow(timedelta(hours=1))
        state = FileState(path='/app.log', last_critical_at=T0)
        later = T0 + timedelta(days=1)

        window.apply(state, [make_event(Severity.CRITICAL, later)], later)

        assert state.last_critical_at == later

    def test_retained_and_new_combine(self):
        window = RetentionWindow(timedelta(hours=1))
        state = FileState(path='/app.log', last_critical_at=T0)

        now = T0 + timedelta(minutes=5)

        outcome = window.apply(state, [make_event(Severity.WARNING, now)], now)

        assert outcome.severity == Severity.CRITICAL
        assert state.last_warning_at == now

    def test_kept_messages_pruned_and_capped(self):
        window = RetentionWindow(timedelta(hours=1), max_kept=2)
        state = FileState(
            path='/app.log',
            kept_messages=[KeptMessage(severity=Severity.WARNING, line_number=1, text='old', seen_at=T0)],
        )
        now = T0 + timedelta(hours=2)
        events = [make_event(Severity.CRITICAL, now, text=f'new {i}', line_number=i) for i in range(3)]

        window.apply(state, events, now)

        assert [m.text for m in state.kept_messages] == ['new 1', 'new 2']

    def test_future_timestamp_not_retained(self):
        window = RetentionWindow(timedelta(hours=1))
        state = FileState(path='/app.log', last_critical_at=T0 + timedelta(hours=5))

        assert window.apply(state, [], T0).severity == Severity.OK
