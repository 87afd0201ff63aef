# Analyses as listener classes fed by the log reader.
#
# Every analysis sees the same stream of (timestamp, fields) pairs, in the
# order the reader delivers them, and is told once when the stream ends.
# That is the whole contract: no analysis knows about the others, and the
# reader knows nothing about what an analysis computes or reports.


class Listener:
    """Base stream listener. Subclass and implement update() + finalize()."""

    def update(self, timestamp: int, fields: dict[str, str]) -> None:
        """Consume one log record.

        *fields* belongs to the reader; copy anything that must outlive
        the call.
        """
        raise NotImplementedError

    def finalize(self) -> None:
        """Called exactly once, after the last record has been delivered."""
        raise NotImplementedError


from monitor.listeners.alert import AlertListener, AlertReporter
from monitor.listeners.periodic import (
    PeriodicReporter,
    PeriodicStatsListener,
    SectionStats,
)


def build_listeners(config, alert_reporter: AlertReporter,
                    periodic_reporter: PeriodicReporter) -> list[Listener]:
    """Wire the two analyses from a MonitorConfig, in dispatch order."""
    return [
        PeriodicStatsListener(config.stats_period_seconds, periodic_reporter),
        AlertListener(
            config.alert_period_seconds,
            config.future_buffer_seconds,
            config.limit_avg,
            alert_reporter,
        ),
    ]
