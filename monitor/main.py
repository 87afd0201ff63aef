"""Traffic monitor — section stats and high traffic alerts over an access log.

Reads a CSV access log (file or stdin) or JSON log records from a Kafka
topic, feeds every record to the periodic section stats and the high
traffic alert, and prints their reports.  Optionally exposes Prometheus
metrics for both.

Usage:
    python -m monitor.main sample_access_log.csv
    python -m monitor.main - --alert-limit 10 --top 5 < access.csv
    python -m monitor.main --kafka --bootstrap-servers kafka-1:29092 --topic access-logs
"""

import argparse
import json
import signal
import sys

from confluent_kafka import Consumer, KafkaError
from prometheus_client import start_http_server

from monitor.config import load_config
from monitor.listeners import build_listeners
from monitor.reader import LogReader
from monitor.reporters import ConsoleReporter, PrometheusReporter, TeeReporter

running = True


def _shutdown(sig, frame):
    global running
    print("\nShutting down monitor...")
    running = False


signal.signal(signal.SIGINT, _shutdown)
signal.signal(signal.SIGTERM, _shutdown)


def consume_kafka(consumer, reader: LogReader, max_idle: int = 0) -> tuple[int, int]:
    """Dispatch JSON records from *consumer* until shutdown or idle timeout.

    *max_idle* is the number of consecutive empty one-second polls after
    which consumption stops; 0 polls until a signal arrives.  Listeners are
    finalized once, after the last record.  Returns (consumed, bad_records).
    """
    consumed = 0
    bad_records = 0
    idle = 0
    try:
        while running:
            msg = consumer.poll(1.0)
            if msg is None:
                idle += 1
                if max_idle and idle >= max_idle:
                    break
                continue
            idle = 0
            if msg.error():
                if msg.error().code() == KafkaError._PARTITION_EOF:
                    continue
                print(f"Consumer error: {msg.error()}", file=sys.stderr)
                continue

            value = msg.value()
            if value is None:
                bad_records += 1
                print("Skipping bad record: message has no value", file=sys.stderr)
                continue
            try:
                record = json.loads(value.decode("utf-8"))
                if not isinstance(record, dict):
                    raise ValueError(f"expected a JSON object, got {type(record).__name__}")
                reader.dispatch({k: str(v) for k, v in record.items()})
            except ValueError as e:
                # JSONDecodeError and UnicodeDecodeError are ValueErrors too
                bad_records += 1
                print(f"Skipping bad record: {e}", file=sys.stderr)
                continue
            consumed += 1

            if consumed % 500 == 0:
                print(f"  ... {consumed} records consumed")
    finally:
        consumer.close()
    reader.finalize()
    return consumed, bad_records


def _build_parser():
    parser = argparse.ArgumentParser(description="HTTP access log traffic monitor")
    parser.add_argument(
        "logfile", nargs="?", default="-",
        help="CSV access log with a header row; '-' reads stdin",
    )
    parser.add_argument("--config", help="YAML file overriding defaults.yml")
    parser.add_argument("--alert-period", type=int, help="Alert averaging period (s)")
    parser.add_argument("--alert-limit", type=float, help="Alert threshold (hits/s)")
    parser.add_argument("--future-buffer", type=int,
                        help="Seconds to wait for late logs before judging a second")
    parser.add_argument("--stats-period", type=int, help="Section report window (s)")
    parser.add_argument("--top", type=int, help="Sections shown per report")
    parser.add_argument("--metrics-port", type=int,
                        help="Serve Prometheus metrics on this port")

    kafka = parser.add_argument_group("kafka source")
    kafka.add_argument("--kafka", action="store_true",
                       help="Consume JSON records from Kafka instead of a file")
    kafka.add_argument("--bootstrap-servers", default="localhost:9092")
    kafka.add_argument("--topic", default="access-logs")
    kafka.add_argument("--group-id", default="traffic-monitor")
    kafka.add_argument("--max-idle", type=int, default=0,
                       help="Stop after this many empty 1s polls (0 = never)")
    return parser


def main(argv=None):
    args = _build_parser().parse_args(argv)

    try:
        config = load_config(args.config).with_overrides(
            alert_period_seconds=args.alert_period,
            limit_avg=args.alert_limit,
            future_buffer_seconds=args.future_buffer,
            stats_period_seconds=args.stats_period,
            top_n=args.top,
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    reporter = ConsoleReporter(config.top_n)
    if args.metrics_port:
        start_http_server(args.metrics_port)
        print(f"Prometheus metrics server started on :{args.metrics_port}")
        reporter = TeeReporter(reporter, PrometheusReporter())

    reader = LogReader(build_listeners(config, reporter, reporter))

    print(f"Traffic monitor started  alert={config.limit_avg}/s over "
          f"{config.alert_period_seconds}s (buffer {config.future_buffer_seconds}s)  "
          f"stats every {config.stats_period_seconds}s")

    if args.kafka:
        consumer = Consumer({
            "bootstrap.servers": args.bootstrap_servers,
            "group.id": args.group_id,
            "auto.offset.reset": "earliest",
            "enable.auto.commit": True,
        })
        consumer.subscribe([args.topic])
        consumed, bad = consume_kafka(consumer, reader, args.max_idle)
        print(f"Done. {consumed} records consumed, {bad} skipped.")
        return 0

    try:
        if args.logfile == "-":
            count = reader.process_csv(sys.stdin)
        else:
            with open(args.logfile, newline="") as f:
                count = reader.process_csv(f)
    except (OSError, ValueError) as e:
        print(f"{e}", file=sys.stderr)
        return 1
    print(f"Done. {count} records processed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
