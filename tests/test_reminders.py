"""Barrido de recordatorios: vencimientos, avance de estado y fallos aislados."""
from datetime import timedelta

import pytest
from django.core.exceptions import ImproperlyConfigured

from apps.cart.exceptions import StoreConfigurationError, TransientStoreError
from apps.cart.reminders import ReminderSweep, reminder_delays_from_settings
from apps.cart.status import CartStatus

from .factories import START, make_record

DELAYS = [timedelta(hours=h) for h in (1, 24, 48, 72)]


class RecordingSender:
    def __init__(self, result=True):
        self.result = result
        self.calls = []

    def __call__(self, step, record):
        self.calls.append((step, record.email))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def sweep(store, sender, clock):
    return ReminderSweep(store, send_reminder=sender, delays=DELAYS, clock=clock)


class TestDueStep:
    def test_not_due_before_delay(self, sweep):
        record = make_record()
        assert sweep.due_step(record, START + timedelta(minutes=59)) is None
        assert sweep.due_step(record, START + timedelta(hours=1)) == 1

    def test_later_steps_use_their_own_delay(self, sweep):
        record = make_record(status=CartStatus.SENT_2_PENDING_3)
        assert sweep.due_step(record, START + timedelta(hours=47)) is None
        assert sweep.due_step(record, START + timedelta(hours=48)) == 3

    def test_terminal_is_never_due(self, sweep):
        record = make_record(status=CartStatus.COMPLETED)
        assert sweep.due_step(record, START + timedelta(days=30)) is None


class TestRun:
    def test_due_record_advances_after_successful_send(self, sweep, store, sender, clock):
        store.upsert(make_record(email="a@x.com"))
        clock.advance(hours=2)

        result = sweep.run()

        assert sender.calls == [(1, "a@x.com")]
        record = store.get("a@x.com")
        assert record.status == CartStatus.SENT_1_PENDING_2
        assert record.updated_at == START + timedelta(hours=2)
        assert (result.seen, result.due, result.advanced, result.failed) == (1, 1, 1, 0)

    def test_failed_send_leaves_record_untouched(self, store, clock):
        sweep = ReminderSweep(store, send_reminder=RecordingSender(False), delays=DELAYS, clock=clock)
        store.upsert(make_record(email="a@x.com"))
        clock.advance(hours=2)

        result = sweep.run()

        record = store.get("a@x.com")
        assert record.status == CartStatus.PENDING_1
        assert record.updated_at == START
        assert result.failed == 1
        assert result.advanced == 0

    def test_fourth_reminder_completes_sequence(self, sweep, store, sender, clock):
        store.upsert(make_record(email="a@x.com", status=CartStatus.SENT_3_PENDING_4))
        clock.advance(hours=72)

        sweep.run()

        assert sender.calls == [(4, "a@x.com")]
        assert store.get("a@x.com").status == CartStatus.COMPLETED
        assert store.list_active() == []

    def test_records_not_yet_due_are_not_sent(self, sweep, store, sender, clock):
        store.upsert(make_record(email="a@x.com", status=CartStatus.SENT_1_PENDING_2))
        clock.advance(hours=23)

        result = sweep.run()

        assert sender.calls == []
        assert result.seen == 1
        assert result.due == 0

    def test_one_step_per_sweep(self, sweep, store, sender, clock):
        store.upsert(make_record(email="a@x.com"))
        clock.advance(days=10)

        sweep.run()

        assert store.get("a@x.com").status == CartStatus.SENT_1_PENDING_2

    def test_terminal_records_are_ignored(self, sweep, store, sender, clock):
        store.upsert(make_record(email="paid@x.com", status=CartStatus.CONVERTED))
        store.upsert(make_record(email="done@x.com", status=CartStatus.COMPLETED))
        clock.advance(days=10)

        result = sweep.run()

        assert sender.calls == []
        assert result.seen == 0

    def test_dry_run_sends_nothing(self, sweep, store, sender, clock):
        store.upsert(make_record(email="a@x.com"))
        clock.advance(hours=2)

        result = sweep.run(dry_run=True)

        assert sender.calls == []
        assert result.due == 1
        assert result.due_emails == ["a@x.com"]
        assert store.get("a@x.com").status == CartStatus.PENDING_1

    def test_error_for_one_record_does_not_stop_the_sweep(self, store, clock):
        def flaky(step, record):
            if record.email == "b@x.com":
                raise RuntimeError("smtp caído")
            return True

        sweep = ReminderSweep(store, send_reminder=flaky, delays=DELAYS, clock=clock)
        for email in ("a@x.com", "b@x.com", "c@x.com"):
            store.upsert(make_record(email=email))
        clock.advance(hours=2)

        result = sweep.run()

        assert result.advanced == 2
        assert result.failed == 1
        assert store.get("b@x.com").status == CartStatus.PENDING_1
        assert store.get("c@x.com").status == CartStatus.SENT_1_PENDING_2

    def test_record_changed_during_sweep_is_skipped(self, store, clock):
        sweep = ReminderSweep(store, send_reminder=RecordingSender(), delays=DELAYS, clock=clock)
        store.upsert(make_record(email="a@x.com"))
        clock.advance(hours=2)
        snapshot = store.list_active()
        # El cliente vuelve al checkout entre el SCAN y el envío
        store.upsert(make_record(email="a@x.com", updated_at=clock.now))
        store.list_active = lambda: snapshot

        result = sweep.run()

        assert result.skipped == 1
        assert sweep.send_reminder.calls == []
        assert store.get("a@x.com").status == CartStatus.PENDING_1

    def test_converted_during_sweep_is_skipped(self, store, clock):
        sweep = ReminderSweep(store, send_reminder=RecordingSender(), delays=DELAYS, clock=clock)
        store.upsert(make_record(email="a@x.com"))
        clock.advance(hours=2)
        snapshot = store.list_active()
        store.upsert(make_record(email="a@x.com", status=CartStatus.CONVERTED))
        store.list_active = lambda: snapshot

        result = sweep.run()

        assert result.skipped == 1
        assert store.get("a@x.com").status == CartStatus.CONVERTED

    def test_transient_store_error_counts_as_failed(self, store, sender, clock):
        sweep = ReminderSweep(store, send_reminder=sender, delays=DELAYS, clock=clock)
        store.upsert(make_record(email="a@x.com"))
        clock.advance(hours=2)

        def broken_get(email):
            raise TransientStoreError("timeout")

        store.get = broken_get

        result = sweep.run()

        assert result.failed == 1
        assert sender.calls == []

    def test_configuration_error_aborts(self, store, sender, clock):
        sweep = ReminderSweep(store, send_reminder=sender, delays=DELAYS, clock=clock)

        def unconfigured():
            raise StoreConfigurationError("REDIS_URL no configurado")

        store.list_active = unconfigured

        with pytest.raises(StoreConfigurationError):
            sweep.run()

    def test_as_dict(self, sweep, store, clock):
        store.upsert(make_record(email="a@x.com"))
        store.upsert(make_record(email="b@x.com", updated_at=START + timedelta(hours=5)))
        clock.advance(hours=2)

        assert sweep.run().as_dict() == {
            "activeCartsCount": 2,
            "due": 1,
            "advanced": 1,
            "failed": 0,
            "skipped": 0,
        }


class TestDelaysFromSettings:
    def test_defaults(self, settings):
        settings.ABANDONED_CART_REMINDER_DELAYS_HOURS = None
        assert reminder_delays_from_settings() == DELAYS

    def test_custom_delays(self, settings):
        settings.ABANDONED_CART_REMINDER_DELAYS_HOURS = [0.5, 2, 6, 12]
        assert reminder_delays_from_settings()[0] == timedelta(minutes=30)

    def test_wrong_count(self, settings):
        settings.ABANDONED_CART_REMINDER_DELAYS_HOURS = [1, 2]
        with pytest.raises(ImproperlyConfigured):
            reminder_delays_from_settings()
