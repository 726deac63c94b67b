"""Tests for FrameCoalescer."""

from mindcanvas.scheduler import FrameCoalescer


class TestFrameCoalescer:

    def test_latest_value_wins(self):
        applied = []
        requests = []
        coalescer = FrameCoalescer(applied.append, requests.append)
        for value in range(5):
            coalescer.submit(value)
        assert len(requests) == 1
        requests[0]()
        assert applied == [4]

    def test_new_frame_requested_after_tick(self):
        applied = []
        requests = []
        coalescer = FrameCoalescer(applied.append, requests.append)
        coalescer.submit("a")
        requests.pop()()
        coalescer.submit("b")
        assert len(requests) == 1
        requests.pop()()
        assert applied == ["a", "b"]

    def test_flush_reports_whether_applied(self):
        applied = []
        coalescer = FrameCoalescer(applied.append)
        assert coalescer.flush() is False
        coalescer.submit(1)
        assert coalescer.has_pending
        assert coalescer.flush() is True
        assert not coalescer.has_pending
        assert applied == [1]

    def test_cancel_drops_pending(self):
        applied = []
        requests = []
        coalescer = FrameCoalescer(applied.append, requests.append)
        coalescer.submit(1)
        coalescer.cancel()
        requests[0]()
        assert applied == []

    def test_none_is_a_real_value(self):
        applied = []
        coalescer = FrameCoalescer(applied.append)
        coalescer.submit(None)
        assert coalescer.flush() is True
        assert applied == [None]
