from hypotrack.preview.redraw import RedrawScheduler


class _FrameQueue:
    def __init__(self):
        self.pending = []

    def schedule(self, callback):
        self.pending.append(callback)

    def run(self):
        callbacks, self.pending = self.pending, []
        for callback in callbacks:
            callback()


def test_many_requests_collapse_into_one_frame():
    frames = _FrameQueue()
    draws = []
    scheduler = RedrawScheduler(frames.schedule, lambda: draws.append(1))

    for _ in range(5):
        scheduler.request()

    assert len(frames.pending) == 1
    frames.run()
    assert draws == [1]
    assert not scheduler.needs_redraw
    assert not scheduler.scheduled


def test_request_during_draw_schedules_another_frame():
    frames = _FrameQueue()
    draws = []

    def draw():
        draws.append(1)
        if len(draws) == 1:
            scheduler.request()

    scheduler = RedrawScheduler(frames.schedule, draw)
    scheduler.request()

    frames.run()
    assert draws == [1]
    assert len(frames.pending) == 1

    frames.run()
    assert draws == [1, 1]
    assert frames.pending == []


def test_no_frame_without_request():
    frames = _FrameQueue()
    scheduler = RedrawScheduler(frames.schedule, lambda: None)

    assert frames.pending == []
    assert not scheduler.scheduled
