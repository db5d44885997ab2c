from tapsprint.services.sprint.scheduler import SocketIOScheduler


class FakeSocketIO:
    """Runs no real tasks; sleeping advances a shared clock."""

    def __init__(self):
        self.clock = 0.0
        self.sleeps = []
        self.tasks = []
        self.on_sleep = None

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.clock += seconds
        if self.on_sleep:
            self.on_sleep()

    def start_background_task(self, fn, *args):
        self.tasks.append((fn, args))

    def run_tasks(self):
        while self.tasks:
            fn, args = self.tasks.pop(0)
            fn(*args)


class ClockedScheduler(SocketIOScheduler):
    def now(self):
        return self.socketio.clock


def test_cancelled_timer_stops_sleeping_within_one_step():
    fake = FakeSocketIO()
    scheduler = ClockedScheduler(fake, max_step=1.0)
    fired = []
    handle = scheduler.call_later(300, fired.append, 'idle')
    fake.on_sleep = lambda: len(fake.sleeps) == 3 and handle.cancel()
    fake.run_tasks()
    assert fired == []
    assert fake.sleeps == [1.0, 1.0, 1.0]


def test_call_later_fires_at_deadline():
    fake = FakeSocketIO()
    scheduler = ClockedScheduler(fake, max_step=1.0)
    fired = []
    scheduler.call_later(2.5, lambda: fired.append(fake.clock))
    fake.run_tasks()
    assert fired == [2.5]
    assert fake.sleeps == [1.0, 1.0, 0.5]


def test_call_every_stops_when_callback_returns_false():
    fake = FakeSocketIO()
    scheduler = ClockedScheduler(fake, max_step=1.0)
    ticks = []

    def tick():
        ticks.append(fake.clock)
        return len(ticks) < 3

    scheduler.call_every(1.0, tick)
    fake.run_tasks()
    assert ticks == [1.0, 2.0, 3.0]


def test_callback_errors_are_logged_and_stop_the_ticker(caplog):
    fake = FakeSocketIO()
    scheduler = ClockedScheduler(fake, max_step=1.0)
    calls = []

    def boom():
        calls.append(fake.clock)
        raise RuntimeError('tick failed')

    scheduler.call_every(1.0, boom, label='countdown:x')
    fake.run_tasks()
    assert calls == [1.0]
    assert '[timer-error] countdown:x failed' in caplog.text


def test_spawn_runs_on_a_background_task():
    fake = FakeSocketIO()
    scheduler = ClockedScheduler(fake)
    done = []
    scheduler.spawn(done.append, 'persist')
    assert done == []
    fake.run_tasks()
    assert done == ['persist']
