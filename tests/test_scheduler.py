import asyncio
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from calendar_todo.errors import PermissionDeniedError
from calendar_todo.models import Todo
from calendar_todo.notifications import InboxChannel
from calendar_todo.scheduler import NotificationScheduler, fire_time


def make_todo(todo_id=1, time="09:00", minutes=15, enabled=True, date="2024-03-15", title="Dentist"):
    return Todo(
        id=todo_id,
        date=date,
        time=time,
        title=title,
        enable_notification=enabled,
        notification_minutes=minutes,
    )


class TestFireTime:
    def test_fire_time_subtracts_lead_minutes(self):
        assert fire_time(make_todo()) == datetime(2024, 3, 15, 8, 45)

    def test_no_fire_time_without_time_of_day(self):
        assert fire_time(make_todo(time=None)) is None

    def test_no_fire_time_when_disabled(self):
        assert fire_time(make_todo(enabled=False)) is None

    def test_lead_time_can_cross_midnight(self):
        todo = make_todo(time="00:10", minutes=30)
        assert fire_time(todo) == datetime(2024, 3, 14, 23, 40)


class TestSchedule:
    def test_schedule_then_cancel_leaves_nothing_pending(self, scheduler, loop):
        todo = make_todo()
        entry = scheduler.schedule(todo)
        assert entry is not None
        assert 1 in scheduler

        assert scheduler.cancel(1) is True
        assert len(scheduler) == 0
        assert 1 not in scheduler
        assert loop.active() == []

    def test_cancel_is_idempotent(self, scheduler):
        assert scheduler.cancel(42) is False
        scheduler.schedule(make_todo(todo_id=42))
        assert scheduler.cancel(42) is True
        assert scheduler.cancel(42) is False

    def test_future_reminder_is_registered_with_delay(self, scheduler, loop, clock):
        clock.now = datetime(2024, 3, 15, 8, 44)
        entry = scheduler.schedule(make_todo())
        assert entry.fire_at == datetime(2024, 3, 15, 8, 45)
        assert len(loop.active()) == 1
        assert loop.active()[0].when == datetime(2024, 3, 15, 8, 45)

    def test_delay_counts_elapsed_time_across_dst_change(self, channel, clock, loop):
        # New York springs forward at 02:00 on 10 March 2024: 01:00 to 04:00 is two real hours
        clock.now = datetime(2024, 3, 10, 1, 0)
        todo = make_todo(date="2024-03-10", time="04:00", minutes=0)

        scheduler = NotificationScheduler(channel, clock=clock, loop=loop, zone=ZoneInfo("America/New_York"))
        scheduler.schedule(todo)
        assert loop.active()[0].delay == 2 * 3600

        naive = NotificationScheduler(channel, clock=clock, loop=loop)
        naive.schedule(todo)
        assert loop.active()[-1].delay == 3 * 3600

    def test_due_reminder_fires_immediately(self, scheduler, channel, clock, loop):
        clock.now = datetime(2024, 3, 15, 8, 50)
        assert scheduler.schedule(make_todo()) is None
        assert len(scheduler) == 0
        assert loop.active() == []
        assert [r.tag for r in channel.list()] == ["todo-1"]

    def test_exactly_due_counts_as_due(self, scheduler, channel, clock):
        clock.now = datetime(2024, 3, 15, 8, 45)
        assert scheduler.schedule(make_todo()) is None
        assert len(channel.list()) == 1

    def test_all_day_todo_is_not_scheduled(self, scheduler, channel, loop):
        assert scheduler.schedule(make_todo(time=None)) is None
        assert len(scheduler) == 0
        assert loop.active() == []
        assert channel.list() == []

    def test_rescheduling_replaces_previous_timer(self, scheduler, loop):
        scheduler.schedule(make_todo(time="09:00"))
        scheduler.schedule(make_todo(time="10:00"))
        scheduler.schedule(make_todo(time="11:00"))
        assert len(scheduler) == 1
        assert len(loop.active()) == 1
        assert scheduler.get(1).fire_at == datetime(2024, 3, 15, 10, 45)

    def test_timer_fires_once_and_is_discarded(self, scheduler, channel, loop):
        scheduler.schedule(make_todo())
        loop.advance(hours=1)
        reminders = channel.list()
        assert len(reminders) == 1
        assert reminders[0].body == "Dentist - 09:00"
        assert reminders[0].title == "Calendar Todo Reminder"
        assert reminders[0].fired_at == datetime(2024, 3, 15, 8, 45)
        assert len(scheduler) == 0

        loop.advance(hours=1)
        assert len(channel.list()) == 1

    def test_cancelled_timer_never_fires(self, scheduler, channel, loop):
        scheduler.schedule(make_todo())
        scheduler.cancel(1)
        loop.advance(hours=2)
        assert channel.list() == []

    def test_pending_is_ordered_by_fire_time(self, scheduler):
        scheduler.schedule(make_todo(todo_id=1, time="12:00"))
        scheduler.schedule(make_todo(todo_id=2, time="09:00"))
        scheduler.schedule(make_todo(todo_id="evt-3", time="10:00"))
        assert [n.todo_id for n in scheduler.pending()] == [2, "evt-3", 1]

    def test_cancel_all(self, scheduler, loop):
        scheduler.schedule(make_todo(todo_id=1))
        scheduler.schedule(make_todo(todo_id=2))
        assert scheduler.cancel_all() == 2
        assert len(scheduler) == 0
        assert loop.active() == []


class TestReconcileAll:
    def test_grace_window_rules(self, scheduler, channel):
        now = datetime(2024, 3, 15, 12, 0, 0)
        # fire time 12:00 is 30s before now -> within grace window
        recent = Todo(
            id=1, date="2024-03-15", time="12:00", title="Recent",
            enable_notification=True, notification_minutes=0,
        )
        # fire time = 11:55 -> stale
        stale = make_todo(todo_id=2, time="12:00", minutes=5, title="Stale")
        # fire time = 12:10 -> future
        future = make_todo(todo_id=3, time="12:25", minutes=15, title="Future")

        counts = scheduler.reconcile_all([recent, stale, future], now=now + timedelta(seconds=30))

        assert counts == {"fired": 1, "scheduled": 1, "stale": 1}
        assert [r.todo_id for r in channel.list()] == [1]
        assert [n.todo_id for n in scheduler.pending()] == [3]
        assert scheduler.get(3).fire_at == datetime(2024, 3, 15, 12, 10)

    def test_worked_example(self, scheduler, channel, clock):
        todo = make_todo()

        clock.now = datetime(2024, 3, 15, 8, 44)
        scheduler.reconcile_all([todo])
        assert scheduler.get(1).fire_at == datetime(2024, 3, 15, 8, 45)
        assert channel.list() == []

        scheduler.cancel_all()
        clock.now = datetime(2024, 3, 15, 8, 46)
        scheduler.reconcile_all([todo])
        assert len(scheduler) == 0
        assert [r.tag for r in channel.list()] == ["todo-1"]

    def test_grace_window_boundary(self, scheduler, channel):
        # fire time 08:45 is exactly 60s old: still honored
        counts = scheduler.reconcile_all([make_todo()], now=datetime(2024, 3, 15, 8, 46))
        assert counts["fired"] == 1

        channel.clear()
        counts = scheduler.reconcile_all([make_todo()], now=datetime(2024, 3, 15, 8, 46, 1))
        assert counts["stale"] == 1
        assert channel.list() == []

    def test_ineligible_todos_are_ignored(self, scheduler):
        counts = scheduler.reconcile_all([make_todo(time=None), make_todo(todo_id=2, enabled=False)])
        assert counts == {"fired": 0, "scheduled": 0, "stale": 0}

    def test_custom_grace_window(self, channel, clock, loop):
        scheduler = NotificationScheduler(channel, clock=clock, loop=loop, grace_window=timedelta(minutes=10))
        counts = scheduler.reconcile_all([make_todo()], now=datetime(2024, 3, 15, 8, 50))
        assert counts["fired"] == 1


class TestFire:
    def test_denied_permission_is_a_silent_no_op(self, clock, loop):
        channel = InboxChannel(enabled=False)
        assert asyncio.run(channel.request_permission()) == "denied"
        scheduler = NotificationScheduler(channel, clock=clock, loop=loop)
        assert scheduler.fire(make_todo()) is False
        assert channel.list() == []

    def test_permission_never_requested_is_a_no_op(self, clock, loop):
        channel = InboxChannel(enabled=True)
        scheduler = NotificationScheduler(channel, clock=clock, loop=loop)
        assert channel.permission == "default"
        assert scheduler.fire(make_todo()) is False

    def test_channel_refusal_does_not_reach_caller(self, channel, clock, loop):
        class RefusingChannel(InboxChannel):
            def show(self, reminder):
                raise PermissionDeniedError("revoked")

        refusing = RefusingChannel(enabled=True)
        asyncio.run(refusing.request_permission())
        scheduler = NotificationScheduler(refusing, clock=clock, loop=loop)
        assert scheduler.fire(make_todo()) is False

    def test_refiring_replaces_visible_reminder(self, scheduler, channel, clock):
        scheduler.fire(make_todo(title="First"))
        clock.advance(minutes=5)
        scheduler.fire(make_todo(title="Second"))
        reminders = channel.list()
        assert len(reminders) == 1
        assert reminders[0].body == "Second - 09:00"

    def test_all_day_body(self, scheduler, channel):
        scheduler.fire(make_todo(time=None))
        assert channel.list()[0].body == "Dentist - All day"
