"""Quantum (QCA) store readers: key files, signature logs, operations log.

Layout under the store root:
  keys/node_<nodeId>_key.dat
  signatures/node_<nodeId>_signatures.log
  logs/qca_operations.log
"""

import hashlib
import logging
import math
import os
import random
import re
from collections import Counter
from datetime import datetime, timezone

from veinslog.models import QuantumKeyInfo, SignatureRecord
from veinslog.normalizer import extract_timestamp, parse_timestamp, sort_key, to_iso

logger = logging.getLogger(__name__)

SIGNATURE_DELIMITER = "-----NEW SIGNATURE RECORD-----"
OPERATIONS_LOG_NAME = "qca_operations.log"
KEY_FILE_RE = re.compile(r"^node_(.+)_key\.dat$")
SIGNATURE_FILE_RE = re.compile(r"^node_(.+)_signatures\.log$")

ALGORITHMS = ("BB84", "SARG04")
QUANTUM_STATES = ("superposition", "collapsed")


def key_file_name(node_id: str) -> str:
    return f"node_{node_id}_key.dat"


def signature_file_name(node_id: str) -> str:
    return f"node_{node_id}_signatures.log"


def calculate_entropy(data: bytes) -> float:
    """Shannon entropy in bits over the byte-value frequency distribution."""
    length = len(data)
    if length == 0:
        return 0.0
    entropy = 0.0
    for count in Counter(data).values():
        p = count / length
        entropy -= p * math.log2(p)
    return round(entropy, 3)


def descriptive_rng(name: str, data: bytes) -> random.Random:
    """RNG seeded from file name + content, so unchanged files sample identically."""
    digest = hashlib.sha256(name.encode("utf-8") + b"\0" + data).hexdigest()
    return random.Random(int(digest[:16], 16))


def sample_quantum_properties(rng: random.Random) -> dict:
    """Descriptive placeholders, not measurements; tagged synthetic."""
    return {
        "entanglement": rng.random() > 0.3,
        "superposition": rng.random() > 0.4,
        "coherenceTime": rng.randint(100, 1099),
        "fidelity": round(0.8 + rng.random() * 0.2, 3),
        "errorRate": round(rng.random() * 0.05, 4),
        "synthetic": True,
    }


def key_quality(key_length: int) -> str:
    if key_length > 1024:
        return "high"
    if key_length > 512:
        return "medium"
    return "low"


def parse_quantum_key_file(key_path: str, node_id: str) -> QuantumKeyInfo | None:
    """Describe a key file. Returns None if it cannot be read."""
    try:
        stat = os.stat(key_path)
        with open(key_path, "rb") as f:
            data = f.read()
    except OSError as e:
        logger.warning("Failed to read quantum key file %s: %s", key_path, e)
        return None

    name = os.path.basename(key_path)
    return QuantumKeyInfo(
        file_name=name,
        file_size=stat.st_size,
        created_time=to_iso(datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc)),
        modified_time=to_iso(datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)),
        key_length=len(data),
        entropy=calculate_entropy(data),
        quality=key_quality(len(data)),
        node_id=node_id,
        quantum_properties=sample_quantum_properties(descriptive_rng(name, data)),
    )


def _signature_sort_key(record: SignatureRecord):
    return sort_key(parse_timestamp(record.timestamp)), record.timestamp


def parse_signature_log(content: str) -> list[SignatureRecord]:
    """Split on the record delimiter; keep records with a timestamp and a signature.

    Result is sorted most recent first.
    """
    records = []
    for index, block in enumerate(content.split(SIGNATURE_DELIMITER)[1:]):
        fields: dict[str, str] = {}
        for line in block.splitlines():
            stripped = line.strip()
            if stripped.startswith("Timestamp:"):
                fields["timestamp"] = stripped.split("Timestamp:", 1)[1].strip()
            elif stripped.startswith("Node ID:"):
                fields["node_id"] = stripped.split("Node ID:", 1)[1].strip()
            elif stripped.startswith("Signed Data"):
                fields["signed_data"] = stripped.split(":", 1)[1].strip() if ":" in stripped else ""
            elif stripped.startswith("Signature:"):
                fields["signature"] = stripped.split("Signature:", 1)[1].strip()

        if not fields.get("timestamp") or not fields.get("signature"):
            logger.debug("Dropping signature record %d: missing timestamp or signature", index)
            continue

        digits = re.sub(r"\D", "", fields["timestamp"])
        records.append(SignatureRecord(
            id=f"sig_{digits}_{index}",
            timestamp=fields["timestamp"],
            signature=fields["signature"],
            node_id=fields.get("node_id"),
            signed_data=fields.get("signed_data"),
        ))

    records.sort(key=_signature_sort_key, reverse=True)
    return records


def parse_signature_log_file(path: str) -> list[SignatureRecord]:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            content = f.read()
    except OSError as e:
        logger.warning("Failed to read signature log %s: %s", path, e)
        return []
    return parse_signature_log(content)


def classify_operation(line: str) -> str:
    lowered = line.lower()
    if "key" in lowered:
        return "key_management"
    if "sign" in lowered:
        return "signature"
    if "encrypt" in lowered or "decrypt" in lowered:
        return "encryption"
    if "entangle" in lowered:
        return "entanglement"
    return "general"


_GLOBAL_RE = re.compile(r"\bglobal\b", re.IGNORECASE)


def mentions_node(line: str, node_id: str) -> bool:
    """True if *node_id* appears as a whole token: 'node1' is not in 'node10'."""
    pattern = rf"(?<![\w\[\]]){re.escape(node_id)}(?![\w\[])"
    return re.search(pattern, line) is not None


def parse_operations_log(content: str, node_id: str, default_timestamp: str,
                         limit: int = 20) -> list[dict]:
    """Lines mentioning *node_id* or 'global', most recent first, capped at *limit*."""
    operations = []
    for index, line in enumerate(content.splitlines()):
        stripped = line.strip()
        if not stripped:
            continue
        if not mentions_node(stripped, node_id) and not _GLOBAL_RE.search(stripped):
            continue
        operations.append({
            "id": f"op_{index}",
            "timestamp": extract_timestamp(stripped) or default_timestamp,
            "type": "operation",
            "operationType": classify_operation(stripped),
            "message": stripped,
            "nodeId": node_id,
            "raw": stripped,
        })

    operations.sort(key=lambda op: sort_key(op["timestamp"]), reverse=True)
    return operations[:limit]


def parse_operations_log_file(path: str, node_id: str, limit: int = 20) -> list[dict]:
    try:
        mtime = os.stat(path).st_mtime
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            content = f.read()
    except OSError as e:
        logger.warning("Failed to read operations log %s: %s", path, e)
        return []
    default_ts = to_iso(datetime.fromtimestamp(mtime, tz=timezone.utc))
    return parse_operations_log(content, node_id, default_ts, limit)
