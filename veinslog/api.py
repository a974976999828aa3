"""Read-only HTTP surface over the ingestion engine."""

import logging
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from veinslog.communications import list_all_communications, read_node_transcript
from veinslog.config import IngestConfig, load_config
from veinslog.errors import NodeNotFoundError
from veinslog.ingest import ALL, IngestionEngine
from veinslog.models import event_to_dict
from veinslog.nodes import NodeAggregator
from veinslog.normalizer import to_iso
from veinslog.registry import resolve_source_type

logger = logging.getLogger(__name__)


def _envelope(data, status=200, **extra):
    body = {"success": status < 400, "data": data}
    body.update(extra)
    body["timestamp"] = to_iso(datetime.now(timezone.utc))
    return jsonify(body), status


def _limit_arg():
    limit = request.args.get("limit", type=int)
    return limit if limit and limit > 0 else None


def create_app(config: IngestConfig | None = None) -> Flask:
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = load_config()

    engine = IngestionEngine(config)
    nodes = NodeAggregator(engine)

    # Store components on app for access in tests
    app.config["components"] = {
        "config": config,
        "engine": engine,
        "nodes": nodes,
    }

    @app.route("/")
    def index():
        return jsonify({
            "name": "veins-log-ingest",
            "endpoints": [
                "/api/health",
                "/api/logs",
                "/api/logs/<type>",
                "/api/nodes",
                "/api/nodes/<nodeId>/details",
                "/api/communications/nodes",
                "/api/communications/node/<type>/<id>",
            ],
        })

    @app.route("/api/health")
    def health():
        return _envelope({
            "status": "healthy",
            "sources": {r.source_type: r.root for r in engine.registry.values()},
        })

    @app.route("/api/logs")
    @app.route("/api/logs/<source_type>")
    def logs(source_type=ALL):
        events = engine.ingest(source_type)
        limit = _limit_arg()
        if limit is not None:
            events = events[:limit]
        return _envelope(
            [event_to_dict(e) for e in events],
            count=len(events),
            type=resolve_source_type(source_type),
        )

    @app.route("/api/nodes")
    def list_nodes():
        profiles = nodes.list_nodes()
        return _envelope([p.to_dict() for p in profiles], count=len(profiles))

    @app.route("/api/nodes/<node_id>/details")
    def node_details(node_id):
        try:
            profile = nodes.get_node_details(node_id)
        except NodeNotFoundError as e:
            logger.info("Node details requested for unknown node %s", e.node_id)
            return _envelope(None, status=404, error=f"Node {node_id} not found")
        return _envelope(profile.to_dict())

    @app.route("/api/communications/nodes")
    def all_communications():
        return _envelope(list_all_communications(config.communications_dir))

    @app.route("/api/communications/node/<type_dir>/<file_node_id>")
    def node_transcript(type_dir, file_node_id):
        transcript = read_node_transcript(config.communications_dir, type_dir, file_node_id)
        if transcript is None:
            return _envelope(None, status=404,
                             error=f"No communications for {type_dir}/{file_node_id}")
        return _envelope(transcript, count=transcript["messageCount"])

    return app
