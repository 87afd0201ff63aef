"""Concrete reporters for the two analyses.

ConsoleReporter prints colored alert lines and a top-N section table;
PrometheusReporter mirrors the same events into metrics.  Both implement
AlertReporter and PeriodicReporter, and TeeReporter fans one call out to
several of them, so each listener still only sees the one interface it
needs.
"""

from prometheus_client import Counter, Gauge
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from monitor.listeners import AlertReporter, PeriodicReporter, SectionStats

# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------
# Registered in the global REGISTRY on import; start_http_server() in
# monitor.main exposes them on /metrics.
alerts_total = Counter(
    "traffic_alerts_total",
    "High traffic alert transitions",
    ["kind"],
)
alert_active = Gauge(
    "traffic_alert_active",
    "1 while the high traffic alert is firing, else 0",
)
avg_hits_per_second = Gauge(
    "traffic_avg_hits_per_second",
    "Average hits/second at the last alert transition",
)
section_hits_total = Counter(
    "traffic_section_hits_total",
    "Hits per section, summed over reported windows",
    ["section"],
)
reports_total = Counter(
    "traffic_reports_total",
    "Section stats reports emitted",
)


class ConsoleReporter(AlertReporter, PeriodicReporter):

    def __init__(self, top_n: int = 3, console: Console | None = None):
        self.top_n = top_n
        self.console = console or Console(highlight=False)

    def alert_started(self, timestamp, avg_hits):
        self.console.print(
            f"[bold red]High traffic generated an alert - hits = {avg_hits:.3f}, "
            f"triggered at time {timestamp}[/bold red]"
        )

    def alert_recovered(self, timestamp, avg_hits):
        self.console.print(
            f"[bold green]High traffic alert recovered at time {timestamp} - "
            f"hits = {avg_hits:.3f}[/bold green]"
        )

    def report_stats(self, timestamp, period_seconds, stats):
        self.console.print(f"Top sections, {period_seconds}s ending at {timestamp}")
        table = Table()
        table.add_column("Section")
        table.add_column("Hits", justify="right")
        for s in stats[:self.top_n]:
            table.add_row(escape(s.name or "(none)"), str(s.hits))
        self.console.print(table)


class PrometheusReporter(AlertReporter, PeriodicReporter):

    def alert_started(self, timestamp, avg_hits):
        alerts_total.labels(kind="started").inc()
        alert_active.set(1)
        avg_hits_per_second.set(avg_hits)

    def alert_recovered(self, timestamp, avg_hits):
        alerts_total.labels(kind="recovered").inc()
        alert_active.set(0)
        avg_hits_per_second.set(avg_hits)

    def report_stats(self, timestamp, period_seconds, stats):
        reports_total.inc()
        for s in stats:
            section_hits_total.labels(section=s.name).inc(s.hits)


class TeeReporter(AlertReporter, PeriodicReporter):
    """Forward every call to each wrapped reporter, in order."""

    def __init__(self, *reporters):
        self.reporters = list(reporters)

    def alert_started(self, timestamp, avg_hits):
        for r in self.reporters:
            r.alert_started(timestamp, avg_hits)

    def alert_recovered(self, timestamp, avg_hits):
        for r in self.reporters:
            r.alert_recovered(timestamp, avg_hits)

    def report_stats(self, timestamp, period_seconds, stats: list[SectionStats]):
        for r in self.reporters:
            r.report_stats(timestamp, period_seconds, stats)
