from pulse_app.core.debounce import Debouncer


def test_rapid_submissions_coalesce_into_latest_value(scheduler):
    saved: list[str] = []
    debouncer = Debouncer(scheduler, 1.0, saved.append)

    debouncer.submit("W")
    scheduler.advance(0.5)
    debouncer.submit("Wh")
    scheduler.advance(0.5)
    debouncer.submit("What")

    assert saved == []
    assert debouncer.has_pending

    scheduler.advance(1.0)

    assert saved == ["What"]
    assert not debouncer.has_pending


def test_flush_runs_pending_value_immediately(scheduler):
    saved: list[str] = []
    debouncer = Debouncer(scheduler, 1.0, saved.append)

    debouncer.submit("draft")
    debouncer.flush()
    scheduler.advance(5.0)

    assert saved == ["draft"]


def test_flush_without_pending_value_does_nothing(scheduler):
    saved: list[str] = []
    Debouncer(scheduler, 1.0, saved.append).flush()

    assert saved == []


def test_cancel_discards_pending_value(scheduler):
    saved: list[str] = []
    debouncer = Debouncer(scheduler, 1.0, saved.append)

    debouncer.submit("draft")
    debouncer.cancel()
    scheduler.advance(5.0)

    assert saved == []


def test_stale_timer_callback_is_ignored(scheduler):
    saved: list[str] = []
    debouncer = Debouncer(scheduler, 1.0, saved.append)
    debouncer.submit("old")
    stale = scheduler.handles[0]
    debouncer.submit("new")

    # A timer that fires despite being cancelled must not save anything.
    stale.callback()
    assert saved == []

    scheduler.advance(1.0)
    assert saved == ["new"]
