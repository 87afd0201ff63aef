"""Log reader — turns access-log records into listener updates.

Pure dispatch, no Kafka dependency.  The CSV path reads a file; the Kafka
consumer in monitor.main feeds decoded records through dispatch() one at a
time.  Every listener sees every record, in registration order, and the
reader waits for each update to return before moving to the next record.
"""

import csv
from collections.abc import Iterable, Iterator
from typing import TextIO

from monitor.listeners import Listener

TIMESTAMP_FIELD = "date"


def read_csv_records(stream: TextIO) -> Iterator[list[str]]:
    """Yield the header row, then each data row, skipping blank lines."""
    for row in csv.reader(stream):
        if row:
            yield row


class LogReader:

    def __init__(self, listeners: list[Listener] | None = None):
        self.listeners: list[Listener] = []
        for listener in listeners or []:
            self.add_listener(listener)

    def add_listener(self, listener: Listener) -> None:
        """Register *listener* after the existing ones. Re-adding is a no-op."""
        if listener not in self.listeners:
            self.listeners.append(listener)

    def remove_listener(self, listener: Listener) -> bool:
        """Unregister *listener*; returns False if it was never registered."""
        if listener in self.listeners:
            self.listeners.remove(listener)
            return True
        return False

    def process_csv(self, stream: TextIO) -> int:
        """Dispatch every row of a CSV log, then finalize. Returns the row count.

        The first row names the fields.  A row with the wrong number of
        columns or an unparseable timestamp raises ValueError; listeners
        are not finalized in that case.
        """
        rows = read_csv_records(stream)
        header = next(rows, None)
        if header is None:
            self.finalize()
            return 0
        return self.process(self._map_rows(header, rows))

    def process(self, records: Iterable[dict[str, str]]) -> int:
        """Dispatch already-mapped records, then finalize. Returns the record count."""
        count = 0
        for record in records:
            self.dispatch(record)
            count += 1
        self.finalize()
        return count

    def dispatch(self, record: dict[str, str]) -> None:
        timestamp = parse_timestamp(record)
        for listener in self.listeners:
            listener.update(timestamp, record)

    def finalize(self) -> None:
        for listener in self.listeners:
            listener.finalize()

    @staticmethod
    def _map_rows(header: list[str], rows: Iterable[list[str]]) -> Iterator[dict[str, str]]:
        for row in rows:
            if len(row) != len(header):
                raise ValueError(
                    f"expected {len(header)} fields, got {len(row)}: {row}"
                )
            yield dict(zip(header, row))


def parse_timestamp(record: dict[str, str]) -> int:
    raw = record.get(TIMESTAMP_FIELD)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(
            f"could not parse timestamp field {TIMESTAMP_FIELD}: '{raw}'"
        ) from None
