"""Periodic section stats — hits per section over fixed calendar windows.

Windows are aligned to multiples of ``period_seconds`` (0-10, 10-20, ...),
not to the first timestamp seen.  A window is reported, then reset, as soon
as a log at or past its end arrives.  Late logs for an already-reported
window are counted in whichever window is open: an undercount in one
report is cheap, unlike a false alert.
"""

import sys
from dataclasses import dataclass

from monitor.listeners import Listener
from monitor.sections import REQUEST_FIELD, extract_section


@dataclass(frozen=True)
class SectionStats:
    name: str
    hits: int


class PeriodicReporter:
    """Receives one ranked report per non-empty window."""

    def report_stats(self, timestamp: int, period_seconds: int,
                     stats: list[SectionStats]) -> None:
        raise NotImplementedError


class PeriodicStatsListener(Listener):

    def __init__(self, period_seconds: int, reporter: PeriodicReporter):
        if period_seconds <= 0:
            raise ValueError(f"period_seconds must be positive, got {period_seconds}")
        self.period_seconds = period_seconds
        self.reporter = reporter
        self.period_start = 0
        self._hits_by_section: dict[str, int] = {}

    def update(self, timestamp, fields):
        if timestamp - self.period_start >= self.period_seconds:
            self.emit()
            self.period_start = timestamp - (timestamp % self.period_seconds)
            self._hits_by_section = {}

        request = fields.get(REQUEST_FIELD, "")
        section = extract_section(request)
        if not section:
            print(f"could not determine section from '{request}'", file=sys.stderr)
        self._hits_by_section[section] = self._hits_by_section.get(section, 0) + 1

    def finalize(self):
        self.emit()

    def emit(self) -> None:
        """Report the open window, busiest section first. Empty windows are skipped."""
        if not self._hits_by_section:
            return
        stats = sorted(
            (SectionStats(name, hits) for name, hits in self._hits_by_section.items()),
            key=lambda s: (-s.hits, s.name),
        )
        self.reporter.report_stats(
            self.period_start + self.period_seconds, self.period_seconds, stats,
        )
