import asyncio

import pytest

from escapetime.model import FractalModel
from escapetime.renderer import (
    ArraySink,
    ProgressiveRenderer,
    RenderState,
    Signal,
    band_height_for,
)

BLACK = (0, 0, 0, 255)


class FakeClock:
    """Returns the next of the given readings, repeating the last one."""

    def __init__(self, *readings):
        self.readings = list(readings)

    def __call__(self):
        if len(self.readings) > 1:
            return self.readings.pop(0)
        return self.readings[0]


class RecordingSink(ArraySink):
    """ArraySink that records writes and can run a hook after the Nth one."""

    def __init__(self, after=None, hook=None):
        super().__init__()
        self.writes = []
        self.flushes = []
        self.after = after
        self.hook = hook

    def set_pixel(self, x, y, rgba):
        super().set_pixel(x, y, rgba)
        self.writes.append((x, y))
        if self.hook is not None and len(self.writes) == self.after:
            hook, self.hook = self.hook, None
            hook()

    def flush_rows(self, start, stop):
        self.flushes.append((start, stop))


def record_signals(renderer):
    events = []
    renderer.render_started.connect(lambda: events.append('started'))
    renderer.render_progress.connect(lambda percent: events.append(('progress', percent)))
    renderer.render_completed.connect(lambda: events.append('completed'))
    renderer.render_aborted.connect(lambda: events.append('aborted'))
    return events


@pytest.fixture
def small_model(formulas, two_colour_map):
    # Pixel centres at -1.5, -0.5, 0.5, 1.5 on both axes
    return FractalModel(formulas, [two_colour_map], 4, 4, max_iterations=2).set_scale(1.0)


@pytest.fixture
def tall_model(formulas, two_colour_map):
    return FractalModel(formulas, [two_colour_map], 2, 25, max_iterations=5)


@pytest.mark.parametrize('height, expected', [
    (4, 10), (99, 10), (100, 10), (150, 15), (200, 20), (1080, 20),
])
def test_band_height(height, expected):
    assert band_height_for(height) == expected


def test_signal_connect_disconnect():
    received = []
    signal = Signal('test')
    callback = signal.connect(received.append)
    signal.emit(1)
    signal.disconnect(callback)
    signal.emit(2)
    assert received == [1]


def test_small_render_matches_hand_computed_grid(small_model, two_colour_map):
    sink = ArraySink()
    renderer = ProgressiveRenderer(small_model, sink)
    assert renderer.run() is RenderState.COMPLETED

    p0 = tuple(two_colour_map.palette[0])
    p1 = tuple(two_colour_map.palette[1])
    expected = [
        [p0, p1, p1, p0],
        [BLACK, BLACK, BLACK, p1],
        [BLACK, BLACK, BLACK, p1],
        [p0, p1, p1, p0],
    ]
    assert sink.pixels.shape == (4, 4, 4)
    for row in range(4):
        for column in range(4):
            assert tuple(sink.pixels[row, column]) == expected[row][column], (row, column)


def test_every_pixel_written_once(tall_model):
    sink = RecordingSink()
    ProgressiveRenderer(tall_model, sink).run()
    assert sorted(sink.writes) == sorted((x, y) for x in range(2) for y in range(25))
    assert sink.flushes == [(0, 10), (10, 20), (20, 25)]


def test_progress_and_signal_order(tall_model):
    renderer = ProgressiveRenderer(tall_model, ArraySink())
    events = record_signals(renderer)
    renderer.run()
    assert events == [
        'started',
        ('progress', 40.0),
        ('progress', 80.0),
        ('progress', 100.0),
        'completed',
    ]


def test_step_returns_true_until_last_band(tall_model):
    renderer = ProgressiveRenderer(tall_model, ArraySink())
    renderer.start()
    assert renderer.running
    assert renderer.step() is True
    assert renderer.step() is True
    assert renderer.step() is False
    assert renderer.state is RenderState.COMPLETED
    assert renderer.step() is False


def test_step_without_render_does_nothing(small_model):
    renderer = ProgressiveRenderer(small_model, ArraySink())
    assert renderer.state is RenderState.IDLE
    assert renderer.step() is False
    renderer.stop()
    assert renderer.state is RenderState.IDLE


def test_pixels_per_second(small_model):
    renderer = ProgressiveRenderer(small_model, ArraySink(), clock=FakeClock(10.0, 10.5))
    rates = []
    renderer.pixels_per_second.connect(rates.append)
    renderer.run()
    assert rates == [pytest.approx(32.0)]


def test_no_rate_without_elapsed_time(small_model):
    renderer = ProgressiveRenderer(small_model, ArraySink(), clock=FakeClock(3.0))
    rates = []
    renderer.pixels_per_second.connect(rates.append)
    renderer.run()
    assert rates == []


def test_stop_during_band_writes_nothing_more(tall_model):
    renderer = ProgressiveRenderer(tall_model, None)
    renderer.sink = sink = RecordingSink(after=5, hook=renderer.stop)
    events = record_signals(renderer)
    renderer.start()
    assert renderer.step() is False
    assert len(sink.writes) == 5
    assert sink.flushes == []
    assert renderer.state is RenderState.ABORTED
    assert events == ['started', 'aborted']
    # Later steps leave the aborted render alone
    assert renderer.step() is False
    assert len(sink.writes) == 5


def test_stop_between_bands(tall_model):
    renderer = ProgressiveRenderer(tall_model, RecordingSink())
    events = record_signals(renderer)
    renderer.start()
    assert renderer.step() is True
    renderer.stop()
    assert renderer.step() is False
    assert renderer.state is RenderState.ABORTED
    assert len(renderer.sink.writes) == 20
    assert events == ['started', ('progress', 40.0), 'aborted']


def test_restart_during_band_supersedes_old_render(small_model):
    renderer = ProgressiveRenderer(small_model, None)
    sessions = []
    renderer.sink = sink = RecordingSink(after=3, hook=lambda: sessions.append(renderer.start()))
    events = record_signals(renderer)
    first = renderer.start()

    # The band in progress stops right after the restart
    assert renderer.step() is False
    assert len(sink.writes) == 3
    assert first.state is RenderState.ABORTED
    assert renderer.session is sessions[0]
    assert renderer.running

    while renderer.step():
        pass
    assert len(sink.writes) == 3 + 16
    assert renderer.state is RenderState.COMPLETED
    assert events == ['started', 'aborted', 'started', ('progress', 100.0), 'completed']


def test_start_while_running_aborts_previous(tall_model):
    renderer = ProgressiveRenderer(tall_model, ArraySink())
    events = record_signals(renderer)
    first = renderer.start()
    renderer.step()
    second = renderer.start()
    assert first.cancelled and first.state is RenderState.ABORTED
    assert second.token != first.token
    assert second.row == 0
    assert events[-2:] == ['aborted', 'started']


def test_start_after_completion_does_not_abort(small_model):
    renderer = ProgressiveRenderer(small_model, ArraySink())
    events = record_signals(renderer)
    renderer.run()
    renderer.run()
    assert 'aborted' not in events
    assert events.count('completed') == 2


def test_sink_buffer_reused_for_same_size(small_model):
    sink = ArraySink()
    renderer = ProgressiveRenderer(small_model, sink)
    renderer.run()
    pixels = sink.pixels
    renderer.run()
    assert sink.pixels is pixels
    small_model.set_size(5, 3)
    renderer.run()
    assert sink.pixels.shape == (3, 5, 4)


def test_on_flush_callback(tall_model):
    flushed = []
    sink = ArraySink(on_flush=lambda pixels, start, stop: flushed.append((pixels.shape, start, stop)))
    ProgressiveRenderer(tall_model, sink).run()
    assert flushed == [((25, 2, 4), 0, 10), ((25, 2, 4), 10, 20), ((25, 2, 4), 20, 25)]


def test_julia_render_uses_constant(formulas, two_colour_map):
    # With c = 0 the filled Julia set is the unit disc; both pixels of the
    # strip sit at +-0.25 on the real axis
    model = FractalModel(formulas, [two_colour_map], 2, 1, max_iterations=50)
    model.set_scale(0.5).set_julia(True).set_julia_constant(0.0, 0.0)
    sink = ArraySink()
    ProgressiveRenderer(model, sink).run()
    assert tuple(sink.pixels[0, 0]) == BLACK
    assert tuple(sink.pixels[0, 1]) == BLACK


def test_run_async(tall_model):
    renderer = ProgressiveRenderer(tall_model, RecordingSink())
    events = record_signals(renderer)
    assert asyncio.run(renderer.run_async()) is RenderState.COMPLETED
    assert len(renderer.sink.writes) == 50
    assert events[-1] == 'completed'


def test_run_async_yields_between_bands(tall_model):
    renderer = ProgressiveRenderer(tall_model, ArraySink())
    observed = []

    async def watcher():
        # Runs while the render is suspended between bands
        for _ in range(3):
            observed.append(renderer.session.row)
            await asyncio.sleep(0)

    async def main():
        render = asyncio.ensure_future(renderer.run_async())
        await asyncio.sleep(0)
        await watcher()
        return await render

    assert asyncio.run(main()) is RenderState.COMPLETED
    assert any(0 < row < 25 for row in observed)


def test_view_changes_wait_for_next_render(tall_model):
    reference = ArraySink()
    ProgressiveRenderer(tall_model, reference).run()

    sink = ArraySink()
    renderer = ProgressiveRenderer(tall_model, sink)
    renderer.start()
    assert renderer.step() is True
    # Changing the view mid-render must not leak into the remaining bands
    tall_model.set_centre(10.0, -3.0).set_scale(1e-6).set_max_iterations(1)
    tall_model.set_julia(True).set_formula('mandelbrot quintic')
    while renderer.step():
        pass
    assert renderer.state is RenderState.COMPLETED
    assert (sink.pixels == reference.pixels).all()


def test_session_keeps_its_own_view(small_model):
    renderer = ProgressiveRenderer(small_model, ArraySink())
    session = renderer.start()
    small_model.set_centre(1.0, 1.0)
    assert session.view is not small_model
    assert (session.view.centre_real, session.view.centre_imag) == (0.0, 0.0)
    assert session.view.formula is small_model.formula
