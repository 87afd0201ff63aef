"""Access log replayer — publishes a CSV access log to Kafka as JSON records.

Each CSV row becomes one JSON object keyed by the header names, so the
monitor's Kafka source sees exactly the fields the CSV reader would.  With
--jitter N, no record is delivered after one more than N seconds newer,
mimicking the out-of-order arrival of real log shippers.

Usage:
    python producer.py sample_access_log.csv
    python producer.py sample_access_log.csv --jitter 3 --eps 200 --topic access-logs
"""

import argparse
import csv
import json
import random
import signal
import time

from confluent_kafka import Producer
from confluent_kafka.admin import AdminClient, NewTopic

running = True


def _shutdown(sig, frame):
    global running
    print("\nShutting down replayer...")
    running = False


signal.signal(signal.SIGINT, _shutdown)   # Ctrl+C (local dev)
signal.signal(signal.SIGTERM, _shutdown)  # docker stop / k8s pod termination


# ---------------------------------------------------------------------------
# Record loading
# ---------------------------------------------------------------------------

def load_records(path, jitter=0, seed=None):
    """Read *path* as CSV with a header row; optionally reorder by *jitter*.

    Records are sorted by (date + random offset in [0, jitter]), which keeps
    every record within *jitter* seconds of its true position.
    """
    with open(path, newline="") as f:
        records = list(csv.DictReader(f))
    if jitter <= 0:
        return records
    rng = random.Random(seed)
    keyed = [(int(r["date"]) + rng.uniform(0, jitter), i, r) for i, r in enumerate(records)]
    keyed.sort()
    return [r for _, _, r in keyed]


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

def _ensure_topics(bootstrap_servers, topics):
    """Create Kafka topics if they don't already exist."""
    admin = AdminClient({"bootstrap.servers": bootstrap_servers})
    # One partition: the monitor relies on a single ordered stream.
    new_topics = [NewTopic(t, num_partitions=1, replication_factor=1) for t in topics]
    fs = admin.create_topics(new_topics)
    for topic, f in fs.items():
        try:
            f.result()
            print(f"Created topic '{topic}'")
        except Exception as e:
            if "TOPIC_ALREADY_EXISTS" in str(e):
                print(f"Topic '{topic}' already exists")
            else:
                raise


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(description="CSV access log replayer")
    parser.add_argument("logfile", help="CSV access log with a header row")
    parser.add_argument("--bootstrap-servers", default="localhost:9092")
    parser.add_argument("--topic", default="access-logs")
    parser.add_argument("--jitter", type=int, default=0,
                        help="Shuffle records within this many seconds")
    parser.add_argument("--seed", type=int, help="Random seed for --jitter")
    parser.add_argument("--eps", type=float, default=0,
                        help="Target records/sec (0 = as fast as possible)")
    args = parser.parse_args()

    records = load_records(args.logfile, args.jitter, args.seed)
    print(f"Replaying {len(records)} records to topic '{args.topic}'"
          f"  jitter={args.jitter}s")

    _ensure_topics(args.bootstrap_servers, [args.topic])

    producer = Producer({
        "bootstrap.servers": args.bootstrap_servers,
        "acks": "all",
        "client.id": "access-log-replayer",
    })

    count = 0
    delay = 1.0 / args.eps if args.eps > 0 else 0

    for record in records:
        if not running:
            break
        producer.produce(
            topic=args.topic,
            key=record.get("remotehost", "").encode(),
            value=json.dumps(record),
        )
        producer.poll(0)

        count += 1
        if count % 500 == 0:
            print(f"  ... {count} records produced")

        if delay:
            time.sleep(delay)

    producer.flush()
    print(f"Done. {count} records produced.")


if __name__ == "__main__":
    main()
