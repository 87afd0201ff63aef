"""Tests for the CLI wiring and the Kafka source loop."""

import json
from unittest.mock import MagicMock

from monitor.listeners import Listener
from monitor.main import consume_kafka, main
from monitor.reader import LogReader

_HEADER = '"remotehost","rfc931","authuser","date","request","status","bytes"\n'


def _log_file(tmp_path, rows):
    path = tmp_path / "access.csv"
    lines = [f'"10.0.0.1","-","apache",{ts},"GET {p} HTTP/1.0",200,100\n' for ts, p in rows]
    path.write_text(_HEADER + "".join(lines))
    return path


def _msg(value=None, error=None):
    msg = MagicMock()
    msg.error.return_value = error
    msg.value.return_value = value
    return msg


class RecordingListener(Listener):
    def __init__(self):
        self.updates = []
        self.finalized = 0

    def update(self, timestamp, fields):
        self.updates.append((timestamp, fields.get("request")))

    def finalize(self):
        self.finalized += 1


class TestCli:
    def test_alert_and_recovery_from_file(self, tmp_path, capsys):
        hits = [0, 1, 3, 1, 2, 2, 3, 3, 3, 4, 5, 6, 8]
        path = _log_file(tmp_path, [(ts, "/api/user") for ts in hits])
        code = main([str(path), "--alert-period", "5", "--future-buffer", "2",
                     "--alert-limit", "2"])
        out = capsys.readouterr().out
        assert code == 0
        assert "High traffic generated an alert - hits = 2.000, triggered at time 4" in out
        assert "High traffic alert recovered at time 6 - hits = 1.800" in out
        assert "Done. 13 records processed." in out

    def test_section_report_from_file(self, tmp_path, capsys):
        rows = [(0, "/api/login"), (0, "/api/user"), (1, "/report"),
                (2, "/report"), (2, "/api/account"), (3, "/api/login")]
        code = main([str(_log_file(tmp_path, rows)), "--top", "1"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Top sections, 10s ending at 10" in out.splitlines()
        assert "/api" in out
        assert "/report" not in out

    def test_malformed_log_exits_nonzero(self, tmp_path, capsys):
        path = tmp_path / "bad.csv"
        path.write_text(_HEADER + '"h","-","u","soon","GET /a HTTP/1.0",200,1\n')
        assert main([str(path)]) == 1
        assert "could not parse timestamp" in capsys.readouterr().err

    def test_missing_log_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.csv")]) == 1
        assert "missing.csv" in capsys.readouterr().err

    def test_bad_config_exits_with_usage_code(self, tmp_path, capsys):
        cfg = tmp_path / "bad.yml"
        cfg.write_text("alert:\n  limit_avg: -1\n")
        assert main([str(_log_file(tmp_path, [])), "--config", str(cfg)]) == 2
        assert "Config error" in capsys.readouterr().err


class TestConsumeKafka:
    def test_dispatches_records_then_finalizes(self):
        listener = RecordingListener()
        consumer = MagicMock()
        consumer.poll.side_effect = [
            _msg(json.dumps({"date": 5, "request": "GET /a HTTP/1.0"}).encode()),
            _msg(json.dumps({"date": "3", "request": "GET /b HTTP/1.0"}).encode()),
            None,
        ]
        consumed, bad = consume_kafka(consumer, LogReader([listener]), max_idle=1)
        assert (consumed, bad) == (2, 0)
        assert listener.updates == [(5, "GET /a HTTP/1.0"), (3, "GET /b HTTP/1.0")]
        assert listener.finalized == 1
        consumer.close.assert_called_once()

    def test_bad_records_are_skipped(self, capsys):
        listener = RecordingListener()
        consumer = MagicMock()
        consumer.poll.side_effect = [
            _msg(b"not json"),
            _msg(b"[1, 2]"),
            _msg(json.dumps({"request": "GET /a HTTP/1.0"}).encode()),
            _msg(json.dumps({"date": 1, "request": "GET /ok HTTP/1.0"}).encode()),
            None,
        ]
        consumed, bad = consume_kafka(consumer, LogReader([listener]), max_idle=1)
        assert (consumed, bad) == (1, 3)
        assert listener.updates == [(1, "GET /ok HTTP/1.0")]
        assert capsys.readouterr().err.count("Skipping bad record") == 3

    def test_message_without_value_is_skipped(self, capsys):
        listener = RecordingListener()
        consumer = MagicMock()
        consumer.poll.side_effect = [
            _msg(None),
            _msg(json.dumps({"date": 2, "request": "GET /a HTTP/1.0"}).encode()),
            None,
        ]
        consumed, bad = consume_kafka(consumer, LogReader([listener]), max_idle=1)
        assert (consumed, bad) == (1, 1)
        assert listener.updates == [(2, "GET /a HTTP/1.0")]
        assert listener.finalized == 1
        assert "message has no value" in capsys.readouterr().err

    def test_consumer_errors_are_reported(self, capsys):
        error = MagicMock()
        error.code.return_value = -1
        error.__str__.return_value = "broker down"
        consumer = MagicMock()
        consumer.poll.side_effect = [_msg(error=error), None]
        consumed, bad = consume_kafka(consumer, LogReader([RecordingListener()]), max_idle=1)
        assert (consumed, bad) == (0, 0)
        assert "Consumer error: broker down" in capsys.readouterr().err

    def test_idle_polls_counted_consecutively(self):
        listener = RecordingListener()
        consumer = MagicMock()
        consumer.poll.side_effect = [
            None,
            _msg(json.dumps({"date": 1, "request": "GET /a HTTP/1.0"}).encode()),
            None,
            None,
        ]
        consumed, _ = consume_kafka(consumer, LogReader([listener]), max_idle=2)
        assert consumed == 1
        assert consumer.poll.call_count == 4
