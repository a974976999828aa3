"""Quantum (QCA) store parser.

Key files (node_<id>_key.dat) yield three events: key generation (t),
entanglement check (t + 1s), key distribution (t + 2s), where t is the file's
modification time. Entanglement, error rate, fidelity and coherence time are
drawn exactly as the node profile draws them (seeded from the raw key bytes),
plus algorithm and quantum state; all are descriptive samples tagged
synthetic=True, not measurements.

Signature logs yield one event per valid record; any other text file in the
store (the shared operations log) yields one event per line.
"""

import logging

from veinslog.normalizer import (
    extract_timestamp,
    make_event,
    offset_iso,
    parse_timestamp,
    to_iso,
)
from veinslog.parsers.base import BaseParser, LINE_STEP_SECONDS, STEP_SECONDS
from veinslog.parsers.extract import extract_level, extract_node_id
from veinslog.quantum import (
    ALGORITHMS,
    KEY_FILE_RE,
    QUANTUM_STATES,
    SIGNATURE_FILE_RE,
    descriptive_rng,
    parse_signature_log,
    sample_quantum_properties,
)

logger = logging.getLogger(__name__)

SYSTEM_NODE = "qca_system"
_BINARY_EXTENSIONS = (".dat", ".key", ".pri", ".pub")


def _key_bytes(file_info, content: str) -> bytes:
    """Raw key bytes, as parse_quantum_key_file sees them."""
    try:
        with open(file_info.path, "rb") as f:
            return f.read()
    except OSError:
        return content.encode("utf-8", errors="replace")


class QcaParser(BaseParser):
    source_type = "qca"

    def _parse(self, content, file_info):
        key_match = KEY_FILE_RE.match(file_info.name)
        if key_match:
            return self._key_events(content, file_info, key_match.group(1))

        sig_match = SIGNATURE_FILE_RE.match(file_info.name)
        if sig_match:
            return self._signature_events(content, file_info, sig_match.group(1))

        if file_info.name.lower().endswith(_BINARY_EXTENSIONS):
            logger.debug("Skipping unrecognised binary QCA artifact: %s", file_info.path)
            return []
        return self._operation_events(content, file_info)

    def _key_events(self, content, file_info, node_id):
        rng = descriptive_rng(file_info.name, _key_bytes(file_info, content))
        properties = sample_quantum_properties(rng)
        entangled = properties["entanglement"]
        qca_info = {
            "recordType": "key",
            "keyType": "quantum",
            "keyFile": file_info.name,
            "keySize": f"{file_info.size} bytes",
            "entangled": entangled,
            "algorithm": rng.choice(ALGORITHMS),
            "quantumState": rng.choice(QUANTUM_STATES),
            "errorRate": properties["errorRate"],
            "fidelity": properties["fidelity"],
            "coherenceTime": properties["coherenceTime"],
            "keyGenerationTime": to_iso(file_info.modified_time),
            "synthetic": True,
        }
        base = file_info.modified_time
        common = dict(
            node_id=node_id,
            source_type=self.source_type,
            filename=file_info.name,
            file_path=file_info.path,
            qca_info=qca_info,
        )
        return [
            make_event(
                id_seed=f"qca_keygen_{node_id}",
                position=0,
                timestamp=to_iso(base),
                level="INFO",
                source="qca.key.generator",
                message=f"Quantum key generation - new quantum key generated for node {node_id}",
                line_number=1,
                **common,
            ),
            make_event(
                id_seed=f"qca_entangle_{node_id}",
                position=1,
                timestamp=offset_iso(base, STEP_SECONDS),
                level="INFO" if entangled else "WARNING",
                source="qca.entanglement",
                message=(
                    f"Entanglement check - node {node_id} entanglement "
                    f"{'established' if entangled else 'not established'}"
                ),
                line_number=2,
                **common,
            ),
            make_event(
                id_seed=f"qca_distribute_{node_id}",
                position=2,
                timestamp=offset_iso(base, 2 * STEP_SECONDS),
                level="DEBUG",
                source="qca.distribution",
                message=(
                    f"Quantum key distribution - node {node_id} distribution complete, "
                    f"error rate: {qca_info['errorRate']}"
                ),
                line_number=3,
                **common,
            ),
        ]

    def _signature_events(self, content, file_info, file_node):
        events = []
        for index, record in enumerate(parse_signature_log(content)):
            node_id = record.node_id or file_node
            events.append(make_event(
                id_seed=f"qca_sig_{record.id}",
                position=index,
                timestamp=parse_timestamp(record.timestamp)
                or offset_iso(file_info.modified_time, index * STEP_SECONDS),
                level="INFO",
                source="qca.signature",
                message=f"Quantum signature recorded for node {node_id}",
                node_id=node_id,
                source_type=self.source_type,
                filename=file_info.name,
                file_path=file_info.path,
                line_number=index + 1,
                qca_info={
                    "recordType": "signature",
                    "keyType": record.key_type,
                    "algorithm": record.algorithm,
                    "signatureId": record.id,
                    "signature": record.signature,
                },
            ))
        return events

    def _operation_events(self, content, file_info):
        events = []
        for i, raw in enumerate(content.split("\n")):
            line = raw.strip()
            if not line:
                continue
            events.append(make_event(
                id_seed=f"{file_info.name}_{line}",
                position=i,
                timestamp=extract_timestamp(line)
                or offset_iso(file_info.modified_time, i * LINE_STEP_SECONDS),
                level=extract_level(line) or "INFO",
                source="qca.operations",
                message=line,
                node_id=extract_node_id(line) or SYSTEM_NODE,
                source_type=self.source_type,
                filename=file_info.name,
                file_path=file_info.path,
                line_number=i + 1,
            ))
        return events
