import threading

import pytest

from tutor.timing import RepeatingTask, TimerScheduler, TkScheduler


class FakeScheduler:
    """Collects scheduled callbacks; ``run_next`` fires the oldest live one."""

    def __init__(self):
        self.queue = []
        self.cancelled = []
        self._next = 0

    def schedule(self, delay_ms, callback):
        self._next += 1
        self.queue.append((self._next, delay_ms, callback))
        return self._next

    def cancel(self, handle):
        self.cancelled.append(handle)
        self.queue = [item for item in self.queue if item[0] != handle]

    def run_next(self):
        handle, _, callback = self.queue.pop(0)
        callback()
        return handle


class FakeWidget:
    def __init__(self):
        self.calls = []

    def after(self, ms, fn):
        self.calls.append(("after", ms, fn))
        return f"after#{len(self.calls)}"

    def after_cancel(self, handle):
        self.calls.append(("cancel", handle))


def test_repeating_task_rearms_and_passes_interval() -> None:
    sched = FakeScheduler()
    seen = []
    task = RepeatingTask(sched, 250, seen.append)
    task.start()
    assert task.active
    sched.run_next()
    sched.run_next()
    assert seen == [250, 250]
    assert len(sched.queue) == 1
    assert sched.queue[0][1] == 250


def test_start_twice_schedules_once() -> None:
    sched = FakeScheduler()
    task = RepeatingTask(sched, 10, lambda ms: None)
    task.start()
    task.start()
    assert len(sched.queue) == 1


def test_stop_cancels_pending_handle() -> None:
    sched = FakeScheduler()
    task = RepeatingTask(sched, 10, lambda ms: None)
    task.start()
    task.stop()
    assert not task.active
    assert sched.queue == []
    assert sched.cancelled == [1]
    task.stop()  # idempotent


def test_stale_callback_is_ignored_after_stop() -> None:
    sched = FakeScheduler()
    seen = []
    task = RepeatingTask(sched, 10, seen.append)
    task.start()
    _, _, stale = sched.queue[0]
    task.stop()
    stale()
    assert seen == []
    assert sched.queue == []


def test_callback_may_stop_its_own_task() -> None:
    sched = FakeScheduler()
    holder = {}

    def once(ms):
        holder["task"].stop()

    holder["task"] = RepeatingTask(sched, 10, once)
    holder["task"].start()
    sched.run_next()
    assert sched.queue == []
    assert not holder["task"].active


def test_stop_while_rearming_leaves_nothing_scheduled() -> None:
    calls = []

    class _InterleavingScheduler(FakeScheduler):
        """Runs ``on_schedule`` once, after queueing, to mimic stop() from another thread."""

        on_schedule = None

        def schedule(self, delay_ms, callback):
            handle = super().schedule(delay_ms, callback)
            hook, self.on_schedule = self.on_schedule, None
            if hook is not None:
                hook()
            return handle

    sched = _InterleavingScheduler()
    task = RepeatingTask(sched, 10, calls.append)
    task.start()
    sched.on_schedule = task.stop
    sched.run_next()

    assert calls == []
    assert not task.active
    assert sched.queue == []


@pytest.mark.parametrize("interval", [0, -5])
def test_interval_must_be_positive(interval) -> None:
    with pytest.raises(ValueError):
        RepeatingTask(FakeScheduler(), interval, lambda ms: None)


def test_tk_scheduler_delegates_to_after() -> None:
    widget = FakeWidget()
    sched = TkScheduler(widget)
    handle = sched.schedule(100, print)
    sched.cancel(handle)
    assert widget.calls[0][:2] == ("after", 100)
    assert widget.calls[1] == ("cancel", "after#1")


class TestTimerScheduler:
    def test_fires_callback_on_thread(self):
        sched = TimerScheduler()
        fired = threading.Event()
        sched.schedule(1, fired.set)
        assert fired.wait(2.0)

    def test_cancel_all(self):
        sched = TimerScheduler()
        fired = threading.Event()
        sched.schedule(60_000, fired.set)
        sched.schedule(60_000, fired.set)
        assert sched.pending == 2
        sched.cancel_all()
        assert sched.pending == 0
        assert not fired.is_set()

    def test_cancel_single(self):
        sched = TimerScheduler()
        handle = sched.schedule(60_000, lambda: None)
        sched.cancel(handle)
        assert sched.pending == 0
