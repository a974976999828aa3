"""Peer-to-peer message transcripts.

Transcripts live at <root>/<type-plural>/<node_id_with_underscores>__messages.txt
and hold loosely delimited records:

    Timestamp: 1749547717
    Sender: vehicle[0]
    Receiver: rsu[0]
    Encryption: AES
    Plaintext: hello
    Signature: 3f2a...

Each 'Timestamp:' line opens a new record.
"""

import logging
import os
import re

from veinslog.models import Communications, Message
from veinslog.normalizer import parse_timestamp, sort_key

logger = logging.getLogger(__name__)

TRANSCRIPT_SUFFIX = "__messages.txt"

NODE_TYPE_DIRS = {
    "vehicle": "vehicles",
    "drone": "drones",
    "ship": "ships",
    "rsu": "rsus",
    "port": "ports",
    "warehouse": "warehouses",
    "ca": "cas",
}
DEFAULT_TYPE_DIR = "vehicles"

_FIELDS = {
    "Sender:": "sender",
    "Receiver:": "receiver",
    "Encryption:": "encryption",
    "Plaintext:": "plaintext",
    "Signature:": "signature",
}
_BRACKET_INDEX_RE = re.compile(r"\[(\d+)\]")


def convert_node_id_for_filename(node_id: str) -> str:
    """'vehicle[6]' -> 'vehicle_6'."""
    return _BRACKET_INDEX_RE.sub(r"_\1", node_id)


def transcript_path(root: str, node_type: str, node_id: str) -> str:
    type_dir = NODE_TYPE_DIRS.get(node_type, DEFAULT_TYPE_DIR)
    name = f"{convert_node_id_for_filename(node_id)}{TRANSCRIPT_SUFFIX}"
    return os.path.join(root, type_dir, name)


def _finish(record: dict, index: int) -> Message:
    raw_ts = record.get("timestamp", "")
    return Message(
        id=f"msg_{raw_ts}_{index}",
        timestamp=parse_timestamp(raw_ts),
        type=record.get("encryption") or "unknown",
        content=record.get("plaintext") or record.get("sender") or "Communication message",
        sender=record.get("sender"),
        receiver=record.get("receiver"),
        encryption=record.get("encryption"),
        signature=record.get("signature"),
        raw="\n".join(record["lines"]),
    )


def parse_messages_content(content: str) -> list[Message]:
    """Split a transcript into Messages in file order.

    A record whose timestamp does not parse is kept with timestamp None.
    Lines before the first 'Timestamp:' and '==='/'---' rules are ignored.
    """
    messages = []
    current: dict | None = None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("===", "---")):
            continue

        if stripped.startswith("Timestamp:"):
            if current is not None:
                messages.append(_finish(current, len(messages)))
            current = {
                "timestamp": stripped.split("Timestamp:", 1)[1].strip(),
                "lines": [stripped],
            }
            continue

        if current is None:
            continue
        for prefix, key in _FIELDS.items():
            if stripped.startswith(prefix):
                current[key] = stripped.split(prefix, 1)[1].strip()
                break
        current["lines"].append(stripped)

    if current is not None:
        messages.append(_finish(current, len(messages)))
    return messages


def summarize_messages(messages: list[Message], limit: int = 50,
                       file_path: str | None = None) -> Communications:
    message_types: dict[str, int] = {}
    for msg in messages:
        message_types[msg.type] = message_types.get(msg.type, 0) + 1

    recent = sorted(messages, key=lambda m: sort_key(m.timestamp), reverse=True)[:limit]
    return Communications(
        has_messages=True,
        total_messages=len(messages),
        recent_messages=recent,
        message_types=message_types,
        last_activity=recent[0].timestamp if recent else None,
        file_path=file_path,
    )


def read_transcript(path: str) -> list[Message] | None:
    """Parse one transcript file; None if it is absent or unreadable."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            content = f.read()
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Failed to read transcript %s: %s", path, e)
        return None
    return parse_messages_content(content)


def node_communications(root: str, node_type: str, node_id: str,
                        limit: int = 50) -> Communications:
    path = transcript_path(root, node_type, node_id)
    messages = read_transcript(path)
    if messages is None:
        logger.info("No transcript for %s at %s", node_id, path)
        return Communications()
    return summarize_messages(messages, limit, file_path=path)


def read_node_transcript(root: str, type_dir: str, file_node_id: str) -> dict | None:
    """Transcript addressed by on-disk names, e.g. ('vehicles', 'vehicle_6')."""
    if type_dir not in NODE_TYPE_DIRS.values() or os.sep in file_node_id or ".." in file_node_id:
        return None
    path = os.path.join(root, type_dir, f"{file_node_id}{TRANSCRIPT_SUFFIX}")
    messages = read_transcript(path)
    if messages is None:
        return None
    ordered = sorted(messages, key=lambda m: sort_key(m.timestamp), reverse=True)
    try:
        last_update = parse_timestamp(os.stat(path).st_mtime)
    except OSError:
        last_update = None
    return {
        "nodeType": type_dir,
        "nodeId": file_node_id,
        "messages": [m.to_dict() for m in ordered],
        "lastUpdate": last_update,
        "messageCount": len(ordered),
    }


def list_all_communications(root: str) -> dict[str, dict[str, list[dict]]]:
    """All transcripts grouped by type directory, then by on-disk node id."""
    result: dict[str, dict[str, list[dict]]] = {}
    for type_dir in sorted(set(NODE_TYPE_DIRS.values())):
        directory = os.path.join(root, type_dir)
        try:
            names = sorted(os.listdir(directory))
        except OSError:
            continue
        per_node: dict[str, list[dict]] = {}
        for name in names:
            if not name.endswith(TRANSCRIPT_SUFFIX):
                continue
            messages = read_transcript(os.path.join(directory, name))
            if messages is None:
                continue
            ordered = sorted(messages, key=lambda m: sort_key(m.timestamp), reverse=True)
            per_node[name[:-len(TRANSCRIPT_SUFFIX)]] = [m.to_dict() for m in ordered]
        result[type_dir] = per_node
    return result
