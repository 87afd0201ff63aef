"""Rolling window of per-second hit counts.

Used by the alert listener to keep a trailing count of hits without
storing individual events.  A fixed-size circular array: cell ``ts % size``
holds the hits for second ``ts``.  The array is sized for the trailing
period plus a future buffer, so hits for seconds that have not been
settled yet can accumulate while the older cells are still readable.

Cells are never freed, only zeroed once their second leaves the trailing
period and reused for a later second.
"""


class RollingHitWindow:
    __slots__ = ("period_seconds", "future_buffer_seconds", "_cells")

    def __init__(self, period_seconds: int, future_buffer_seconds: int):
        if period_seconds <= 0:
            raise ValueError(f"period_seconds must be positive, got {period_seconds}")
        if future_buffer_seconds < 0:
            raise ValueError(
                f"future_buffer_seconds must not be negative, got {future_buffer_seconds}"
            )
        self.period_seconds = period_seconds
        self.future_buffer_seconds = future_buffer_seconds
        self._cells = [0] * (period_seconds + future_buffer_seconds)

    def add(self, ts: int, hits: int = 1) -> None:
        self._cells[self._index(ts)] += hits

    def hits_at(self, ts: int) -> int:
        return self._cells[self._index(ts)]

    def clear(self, ts: int) -> None:
        """Zero the cell holding *ts* so it can be reused."""
        self._cells[self._index(ts)] = 0

    def _index(self, ts: int) -> int:
        # Python's modulo is non-negative for a positive divisor, so the
        # seconds before the first event (ts - period) map cleanly too.
        return ts % len(self._cells)

    def __len__(self) -> int:
        return len(self._cells)
