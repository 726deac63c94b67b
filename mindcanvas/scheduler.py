"""Per-frame coalescing of high-rate pointer updates."""

from typing import Optional, Callable, Generic, TypeVar

T = TypeVar("T")

_NOTHING = object()


class FrameCoalescer(Generic[T]):
    """Keep only the latest pending value and apply it once per tick.

    ``request_frame`` is called with a zero-argument callback the first time
    a value is submitted after a flush; the host scheduler (a GTK frame
    clock, a test) must invoke that callback on its next tick. Superseded
    values are dropped, never queued.
    """

    def __init__(self, apply: Callable[[T], None],
                 request_frame: Optional[Callable[[Callable[[], None]], None]] = None):
        self._apply = apply
        self._request_frame = request_frame
        self._pending = _NOTHING
        self._frame_requested = False

    @property
    def has_pending(self) -> bool:
        return self._pending is not _NOTHING

    def submit(self, value: T):
        self._pending = value
        if self._request_frame and not self._frame_requested:
            self._frame_requested = True
            self._request_frame(self._on_frame)

    def flush(self) -> bool:
        """Apply the pending value, if any. Returns True when something was applied."""
        if self._pending is _NOTHING:
            return False
        value = self._pending
        self._pending = _NOTHING
        self._apply(value)
        return True

    def cancel(self):
        self._pending = _NOTHING

    def _on_frame(self):
        self._frame_requested = False
        self.flush()
