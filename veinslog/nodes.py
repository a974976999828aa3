"""Node aggregator: one merged profile per simulated entity.

A profile combines the node's certificate-store artifacts, its most recent
events, its communications transcript and its quantum-store artifacts. Every
call builds a fresh snapshot; nothing is shared between profiles.
"""

import logging
import os
from datetime import datetime, timezone

from veinslog.certificates import (
    CERT_FILES,
    KEY_FILES,
    REQUESTS_DIR,
    first_existing,
    read_ca_info,
    read_text,
)
from veinslog.communications import node_communications
from veinslog.errors import NodeNotFoundError
from veinslog.ingest import ALL, IngestionEngine, filter_node_events
from veinslog.models import NodeProfile, QuantumInfo
from veinslog.normalizer import to_iso
from veinslog.quantum import (
    OPERATIONS_LOG_NAME,
    key_file_name,
    parse_operations_log_file,
    parse_quantum_key_file,
    parse_signature_log_file,
    signature_file_name,
)

logger = logging.getLogger(__name__)

# qca before ca: "qca_system" contains "ca"
_NODE_TYPES = ("vehicle", "drone", "ship", "rsu", "port", "warehouse", "qca", "ca")


def extract_node_type(node_id: str) -> str:
    lowered = node_id.lower()
    for node_type in _NODE_TYPES:
        if node_type in lowered:
            return node_type
    return "unknown"


def _first_csr(node_dir: str) -> str | None:
    requests_dir = os.path.join(node_dir, REQUESTS_DIR)
    try:
        names = sorted(n for n in os.listdir(requests_dir) if n.endswith(".csr"))
    except OSError:
        return None
    return os.path.join(requests_dir, names[0]) if names else None


def _last_modified(node_dir: str) -> str | None:
    latest = None
    try:
        with os.scandir(node_dir) as it:
            for entry in it:
                try:
                    mtime = entry.stat().st_mtime
                except OSError:
                    continue
                latest = mtime if latest is None else max(latest, mtime)
    except OSError:
        return None
    return to_iso(datetime.fromtimestamp(latest, tz=timezone.utc)) if latest else None


class NodeAggregator:
    def __init__(self, engine: IngestionEngine):
        self._engine = engine
        self._config = engine.config

    def node_dir(self, node_id: str) -> str:
        return os.path.join(self._config.certificate_dir, node_id)

    def get_node_details(self, node_id: str) -> NodeProfile:
        """Full profile for *node_id*. Raises NodeNotFoundError for unknown nodes."""
        node_dir = self.node_dir(node_id)
        if (not node_id or node_id in (".", "..") or "/" in node_id or "\\" in node_id
                or not os.path.isdir(node_dir)):
            raise NodeNotFoundError(node_id, node_dir)

        logger.info("Building profile for node %s", node_id)
        profile = self._basic_profile(node_dir, node_id)
        profile.logs = self._engine.node_events(node_id)
        profile.communications = node_communications(
            self._config.communications_dir,
            profile.type,
            node_id,
            self._config.recent_message_limit,
        )
        profile.qca = self.quantum_info(node_id)
        return profile

    def list_nodes(self) -> list[NodeProfile]:
        """Summary profiles for every node directory in the certificate store."""
        root = self._config.certificate_dir
        try:
            with os.scandir(root) as it:
                node_ids = sorted(entry.name for entry in it if entry.is_dir())
        except OSError as e:
            logger.warning("Node directory unavailable %s: %s", root, e)
            return []

        events = self._engine.ingest(ALL)
        profiles = []
        for node_id in node_ids:
            profile = self._basic_profile(os.path.join(root, node_id), node_id)
            profile.logs = filter_node_events(events, node_id, self._config.node_log_limit)
            profiles.append(profile)
        logger.info("Listed %d nodes", len(profiles))
        return profiles

    def _basic_profile(self, node_dir: str, node_id: str) -> NodeProfile:
        return NodeProfile(
            id=node_id,
            name=node_id,
            type=extract_node_type(node_id),
            last_activity=_last_modified(node_dir),
            certificate=read_ca_info(node_dir),
            certificate_content=read_text(first_existing(node_dir, CERT_FILES)),
            private_key=read_text(first_existing(node_dir, KEY_FILES)),
            certificate_request=read_text(_first_csr(node_dir)),
        )

    def quantum_info(self, node_id: str) -> QuantumInfo:
        """Key, signatures and operations for *node_id*; absent parts stay empty."""
        root = self._config.qca_storage_dir
        info = QuantumInfo()

        key_path = os.path.join(root, "keys", key_file_name(node_id))
        if os.path.isfile(key_path):
            info.key_info = parse_quantum_key_file(key_path, node_id)
            info.has_quantum_key = info.key_info is not None

        signature_path = os.path.join(root, "signatures", signature_file_name(node_id))
        if os.path.isfile(signature_path):
            info.has_signatures = True
            info.signatures = parse_signature_log_file(signature_path)

        operations_path = os.path.join(root, "logs", OPERATIONS_LOG_NAME)
        if os.path.isfile(operations_path):
            info.operations_log = parse_operations_log_file(
                operations_path, node_id, self._config.operation_log_limit,
            )

        logger.debug("Quantum info for %s: key=%s signatures=%d operations=%d",
                     node_id, info.has_quantum_key, info.signature_count,
                     len(info.operations_log))
        return info
