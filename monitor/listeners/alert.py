"""High traffic alert — average hits/second over a trailing period.

Fires when the average over the last ``period_seconds`` settled seconds
reaches ``limit_avg`` and recovers when it drops back below.

Logs do not arrive in timestamp order.  A second is only *settled*
(included in the average and checked) once a log at least
``future_buffer_seconds`` newer has been seen, so hits that arrive a
little late still land in the right second before it is judged.  Alerts
are therefore reported up to ``future_buffer_seconds`` after the second
that triggered them.

Late hits for a second that was already settled are added to the running
total and re-checked at the latest settled second, but cannot change an
earlier check.  Hits older than the trailing period of the latest settled
second are dropped: their cell may already have been reused.
"""

import enum

from monitor.listeners import Listener
from monitor.rolling_window import RollingHitWindow


class AlertReporter:
    """Receives alert transitions. Calls strictly alternate, started first."""

    def alert_started(self, timestamp: int, avg_hits: float) -> None:
        raise NotImplementedError

    def alert_recovered(self, timestamp: int, avg_hits: float) -> None:
        raise NotImplementedError


class AlertState(enum.Enum):
    ALL_GOOD = "all_good"
    ALERTING = "alerting"


class AlertListener(Listener):

    def __init__(self, period_seconds: int, future_buffer_seconds: int,
                 limit_avg: float, reporter: AlertReporter):
        self.limit_avg = limit_avg
        self.period_seconds = period_seconds
        self.future_buffer_seconds = future_buffer_seconds
        self.reporter = reporter

        self._window = RollingHitWindow(period_seconds, future_buffer_seconds)
        self.largest_ts: int | None = None
        self.largest_reported_ts: int | None = None
        self.total_hits = 0
        self.alert_state = AlertState.ALL_GOOD

    def update(self, timestamp, fields):
        if self.largest_ts is None:
            self.largest_ts = timestamp
            self.largest_reported_ts = timestamp - 1
            self._window.add(timestamp)
            return

        if timestamp <= self.largest_reported_ts - self.period_seconds:
            return  # too old, its cell may already hold a newer second

        if timestamp > self.largest_ts:
            # advance() also zeroes the cells leaving the trailing period
            # so they can take the new hits.
            self.advance(timestamp - self.future_buffer_seconds)
            self.largest_ts = timestamp

        self._window.add(timestamp)
        if timestamp <= self.largest_reported_ts:
            self.total_hits += 1
            self.check_alerting_at(self.largest_reported_ts)

    def finalize(self):
        # Seconds still in the future buffer are never settled: no later
        # log will confirm them.
        pass

    def advance(self, target_ts: int) -> None:
        """Settle every second up to *target_ts*, checking each one.

        For each newly settled second the count leaving the trailing period
        is subtracted and the new second's count added before the check;
        the vacated cell is zeroed only after the check.

        Once a full period has passed since the newest hit, every cell is
        zero and the total is 0, so the remaining checks cannot change the
        alert state; the rest of a long gap is skipped in one step.
        """
        quiet_ts = self.largest_ts + self.period_seconds
        for next_ts in range(self.largest_reported_ts + 1, target_ts + 1):
            old_ts = next_ts - self.period_seconds
            self.total_hits -= self._window.hits_at(old_ts)
            self.total_hits += self._window.hits_at(next_ts)
            self.check_alerting_at(next_ts)
            self._window.clear(old_ts)
            self.largest_reported_ts = next_ts
            if next_ts >= quiet_ts:
                self.largest_reported_ts = target_ts
                break

    def check_alerting_at(self, report_ts: int) -> None:
        avg_hits = self.total_hits / self.period_seconds
        if self.alert_state is AlertState.ALL_GOOD and avg_hits >= self.limit_avg:
            self.alert_state = AlertState.ALERTING
            self.reporter.alert_started(report_ts, avg_hits)
        elif self.alert_state is AlertState.ALERTING and avg_hits < self.limit_avg:
            self.alert_state = AlertState.ALL_GOOD
            self.reporter.alert_recovered(report_ts, avg_hits)
