"""
Progressive escape-time renderer.

The ProgressiveRenderer class handles:
- Band-by-band computation so the host event loop stays responsive
- Cancellation when a render is stopped or superseded by a new one
- Progress and throughput notifications through signals
- Writing into an injectable pixel sink

Everything runs on the caller's thread. A render is split into bands of
rows; each call to step() computes exactly one band, so the host decides
when to yield (once per frame, or via run_async() between awaits).

start() takes a snapshot of the model, and every band of that render is
computed from the snapshot. Changes made to the model afterwards show up
only in the next render.
"""

import asyncio
import copy
import enum
import itertools
import logging
import time

import numpy as np

logger = logging.getLogger(__name__)


class Signal:
    """
    A minimal observer list.

    Usage:
        renderer.render_progress.connect(lambda percent: print(percent))
    """

    def __init__(self, name):
        self.name = name
        self._callbacks = []

    def connect(self, callback):
        self._callbacks.append(callback)
        return callback

    def disconnect(self, callback):
        self._callbacks.remove(callback)

    def emit(self, *args):
        for callback in list(self._callbacks):
            callback(*args)


class PixelSink:
    """
    Destination for rendered pixels.

    Subclasses store pixels written with set_pixel() and make rows visible
    when flush_rows() is called after each band.
    """

    def prepare(self, width, height):
        """Called at the start of every render with the canvas size."""

    def set_pixel(self, x, y, rgba):
        raise NotImplementedError

    def flush_rows(self, start, stop):
        """Commit rows [start, stop) to the visible surface."""


class ArraySink(PixelSink):
    """
    Pixel sink backed by a numpy RGBA array of shape (height, width, 4).

    Args:
        on_flush: Optional callable(pixels, start, stop) invoked after each
            band, e.g. to copy the rows to a window
    """

    def __init__(self, on_flush=None):
        self.pixels = np.zeros((0, 0, 4), dtype=np.uint8)
        self.on_flush = on_flush

    def prepare(self, width, height):
        # Reuse the buffer across renders of the same size
        if self.pixels.shape[:2] != (height, width):
            self.pixels = np.zeros((height, width, 4), dtype=np.uint8)

    def set_pixel(self, x, y, rgba):
        self.pixels[y, x] = rgba

    def flush_rows(self, start, stop):
        if self.on_flush is not None:
            self.on_flush(self.pixels, start, stop)


class RenderState(enum.Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETED = 'completed'
    ABORTED = 'aborted'


class RenderSession:
    """
    One render of the current view.

    Attributes:
        token: Distinguishes this session from every other one
        view: Copy of the FractalModel taken when the render started
        row: Next row to compute
        started_at: Clock reading at start
        cancelled: Set by stop() or when superseded
        state: RenderState
        pixels_done: Pixels computed so far
    """

    _tokens = itertools.count(1)

    def __init__(self, view, started_at):
        self.token = next(self._tokens)
        self.view = view
        self.width = view.width
        self.height = view.height
        self.row = 0
        self.started_at = started_at
        self.cancelled = False
        self.state = RenderState.RUNNING
        self.pixels_done = 0

    def __repr__(self):
        return f'RenderSession(token={self.token}, row={self.row}/{self.height}, {self.state.value})'

    @property
    def percent_complete(self):
        if self.height <= 0:
            return 100.0
        return 100.0 * self.row / self.height


def band_height_for(height):
    """Rows per band: a tenth of the canvas, kept between 10 and 20."""
    return min(20, max(10, height // 10))


class ProgressiveRenderer:
    """
    Drives a FractalModel over the pixel grid, one band at a time.

    Usage:
        renderer = ProgressiveRenderer(model, ArraySink())
        renderer.render_completed.connect(on_done)
        renderer.start()

        # In your event loop:
        renderer.step()

    Signals:
        render_started(), render_progress(percent), render_completed(),
        render_aborted(), pixels_per_second(rate)
    """

    def __init__(self, model, sink, clock=time.perf_counter):
        """
        Args:
            model: FractalModel to render
            sink: PixelSink receiving the pixels
            clock: Callable returning seconds, for throughput measurement
        """
        self.model = model
        self.sink = sink
        self.clock = clock
        self.session = None

        self.render_started = Signal('render_started')
        self.render_progress = Signal('render_progress')
        self.render_completed = Signal('render_completed')
        self.render_aborted = Signal('render_aborted')
        self.pixels_per_second = Signal('pixels_per_second')

    @property
    def state(self):
        if self.session is None:
            return RenderState.IDLE
        return self.session.state

    @property
    def running(self):
        return self.session is not None and self.session.state is RenderState.RUNNING

    def start(self):
        """
        Begin a new render of the model's current view.

        A render still in progress is cancelled first, so its remaining
        pixels are never written. The first band is computed by the next
        call to step().

        Returns:
            The new RenderSession
        """
        previous = self.session
        if previous is not None and previous.state is RenderState.RUNNING:
            self._abort(previous)

        # Formulas and colour maps are shared, the view parameters are not
        view = copy.copy(self.model)
        self.sink.prepare(view.width, view.height)
        session = RenderSession(view, self.clock())
        self.session = session
        logger.debug("Render %d started: %s", session.token, view.describe())
        self.render_started.emit()
        return session

    def stop(self):
        """Request cancellation of the current render. Does not block."""
        if self.session is not None and self.session.state is RenderState.RUNNING:
            self.session.cancelled = True

    def step(self):
        """
        Compute the next band of the current render.

        Returns:
            True if more bands remain, False when the render has completed,
            been aborted, or there is nothing to render
        """
        session = self.session
        if session is None or session.state is not RenderState.RUNNING:
            return False
        if not self._is_live(session):
            self._abort(session)
            return False

        first = session.row
        stop = min(session.height, first + band_height_for(session.height))
        if not self._render_rows(session, first, stop):
            # Superseded sessions were already aborted by start()
            if session.state is RenderState.RUNNING:
                self._abort(session)
            return False

        session.row = stop
        self.sink.flush_rows(first, stop)
        self.render_progress.emit(session.percent_complete)
        elapsed = self.clock() - session.started_at
        if elapsed > 0:
            self.pixels_per_second.emit(session.pixels_done / elapsed)

        if session.row < session.height:
            return True
        session.state = RenderState.COMPLETED
        logger.debug("Render %d completed: %d pixels in %.3fs",
                     session.token, session.pixels_done, elapsed)
        self.render_completed.emit()
        return False

    def run(self):
        """Start a render and compute it to the end. Returns the final state."""
        session = self.start()
        while self.step():
            pass
        return session.state

    async def run_async(self):
        """
        Start a render and compute it, yielding to the event loop between bands.

        Returns:
            The final RenderState of this render
        """
        session = self.start()
        while self.step():
            await asyncio.sleep(0)
        return session.state

    def _is_live(self, session):
        return session is self.session and not session.cancelled

    def _abort(self, session):
        session.cancelled = True
        session.state = RenderState.ABORTED
        logger.debug("Render %d aborted at row %d", session.token, session.row)
        self.render_aborted.emit()

    def _render_rows(self, session, first, stop):
        """
        Compute and write rows [first, stop).

        Returns:
            False if the session was cancelled or superseded part way
        """
        model = session.view
        formula = model.formula
        cmap = model.colour_map
        julia = model.julia
        max_iter = model.max_iterations
        radius = model.escape_radius
        normalised = model.normalised
        sink = self.sink

        for row in range(first, stop):
            y = model.pixel_row_to_imag(row)
            for column in range(session.width):
                x = model.pixel_column_to_real(column)
                c_re, c_im = model.iteration_constant(x, y)
                result = formula.iterate(julia, x, y, c_re, c_im, max_iter, radius, normalised)
                colour = cmap.make_colour(result.iterations, result.last_value,
                                          result.degree, max_iter, normalised)
                # Stopped or replaced while computing this pixel
                if not self._is_live(session):
                    return False
                sink.set_pixel(column, row, colour)
                session.pixels_done += 1
        return True
