"""veins-log-ingest: ingest, inspect and watch simulation artifacts."""

import json
import logging
import signal
import sys
from argparse import ArgumentParser

from veinslog.config import load_config
from veinslog.errors import NodeNotFoundError
from veinslog.ingest import ALL, IngestionEngine
from veinslog.models import event_to_dict
from veinslog.nodes import NodeAggregator
from veinslog.validator import EventValidator
from veinslog.watcher import ChangeWatcher

logger = logging.getLogger(__name__)

_running = True


def _signal_handler(sig, frame):
    global _running
    logger.info("Shutdown signal received, stopping...")
    _running = False


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="veins-log-ingest",
        description="Ingest and normalize Veins simulation logs, certificates and quantum-key artifacts.",
    )
    parser.add_argument("--config", help="YAML config file (default: $INGEST_CONFIG)")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Print normalized events, newest first")
    ingest.add_argument(
        "source_type",
        nargs="?",
        default=ALL,
        help="all, veins, certificate (or ca), qca, config (default: all)",
    )
    ingest.add_argument("--limit", type=int, help="Limit output to N events")
    ingest.add_argument(
        "--validate",
        action="store_true",
        help="Check events against the event schema and print a report instead",
    )

    sub.add_parser("nodes", help="List node summaries from the certificate store")

    node = sub.add_parser("node", help="Print one node's full profile")
    node.add_argument("node_id")

    sub.add_parser("watch", help="Stream change notifications as JSON lines")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind address (default from config)")
    serve.add_argument("--port", type=int, help="Port (default from config)")
    return parser


def _dump(data) -> None:
    print(json.dumps(data, indent=2))


def cmd_ingest(engine, args) -> int:
    events = engine.ingest(args.source_type)
    if args.limit:
        events = events[:args.limit]

    if args.validate:
        validator = EventValidator()
        failures = validator.validate_all(events)
        _dump({
            "stats": validator.get_stats(),
            "failures": [{"index": i, "errors": errors} for i, errors in failures],
        })
        return 1 if failures else 0

    _dump([event_to_dict(e) for e in events])
    return 0


def cmd_nodes(engine, args) -> int:
    _dump([p.to_dict() for p in NodeAggregator(engine).list_nodes()])
    return 0


def cmd_node(engine, args) -> int:
    try:
        profile = NodeAggregator(engine).get_node_details(args.node_id)
    except NodeNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _dump(profile.to_dict())
    return 0


def cmd_watch(engine, args) -> int:
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    with ChangeWatcher(engine).watch() as subscription:
        logger.info("Watching for changes, Ctrl+C to stop")
        while _running:
            notification = subscription.get(timeout=1)
            if notification is not None:
                print(json.dumps(notification.to_dict()), flush=True)
    logger.info("Watcher stopped.")
    return 0


def cmd_serve(engine, args) -> int:
    from veinslog.api import create_app

    config = engine.config
    app = create_app(config)
    app.run(host=args.host or config.server_host, port=args.port or config.server_port)
    return 0


COMMANDS = {
    "ingest": cmd_ingest,
    "nodes": cmd_nodes,
    "node": cmd_node,
    "watch": cmd_watch,
    "serve": cmd_serve,
}


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [INGEST] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    args = build_parser().parse_args(argv)
    engine = IngestionEngine(load_config(args.config))
    return COMMANDS[args.command](engine, args)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        sys.exit(0)
