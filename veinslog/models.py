"""Normalized event model and node profile shapes shared by every reader."""

import copy
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any

SOURCE_TYPES = ("veins", "certificate", "qca", "config", "generic")
LEVELS = ("DEBUG", "INFO", "WARN", "WARNING", "ERROR", "FATAL")

# dataclass field -> external (camelCase) key
_EVENT_KEYS = {
    "id": "id",
    "timestamp": "timestamp",
    "level": "level",
    "source": "source",
    "message": "message",
    "node_id": "nodeId",
    "source_type": "type",
    "filename": "filename",
    "file_path": "filePath",
    "line_number": "lineNumber",
    "certificate_info": "certificateInfo",
    "qca_info": "qcaInfo",
    "position_info": "positionInfo",
    "velocity_info": "velocityInfo",
    "network_info": "networkInfo",
    "config_info": "configInfo",
}


@dataclass(frozen=True)
class FileInfo:
    path: str
    name: str
    source_type: str
    size: int
    modified_time: datetime


@dataclass(frozen=True)
class LogEvent:
    id: str
    timestamp: str          # ISO 8601, UTC, millisecond precision
    level: str
    source: str             # dotted component path, e.g. "ca.key.manager"
    message: str
    node_id: str
    source_type: str        # one of SOURCE_TYPES

    filename: str | None = None
    file_path: str | None = None
    line_number: int | None = None

    certificate_info: dict[str, Any] | None = None
    qca_info: dict[str, Any] | None = None
    position_info: dict[str, float] | None = None
    velocity_info: dict[str, float] | None = None
    network_info: dict[str, str] | None = None
    config_info: dict[str, Any] | None = None


def event_to_dict(event: LogEvent) -> dict[str, Any]:
    """Convert a LogEvent to its external dict shape, dropping absent fields."""
    return {
        _EVENT_KEYS[k]: copy.deepcopy(v)
        for k, v in asdict(event).items()
        if v is not None
    }


@dataclass
class Message:
    id: str
    timestamp: str | None
    type: str
    content: str
    sender: str | None = None
    receiver: str | None = None
    encryption: str | None = None
    signature: str | None = None
    raw: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SignatureRecord:
    id: str
    timestamp: str
    signature: str
    node_id: str | None = None
    signed_data: str | None = None
    algorithm: str = "QCA-SIG"
    key_type: str = "quantum"
    verification_status: str = "unverified"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "nodeId": self.node_id,
            "signedData": self.signed_data,
            "signature": self.signature,
            "algorithm": self.algorithm,
            "keyType": self.key_type,
            "verificationStatus": self.verification_status,
        }


@dataclass
class QuantumKeyInfo:
    file_name: str
    file_size: int
    created_time: str
    modified_time: str
    key_length: int
    entropy: float
    quality: str
    node_id: str
    key_type: str = "quantum"
    algorithm: str = "BB84"
    status: str = "active"
    # Sampled, not measured. Always carries "synthetic": True.
    quantum_properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "createdTime": self.created_time,
            "modifiedTime": self.modified_time,
            "keyType": self.key_type,
            "algorithm": self.algorithm,
            "keyLength": self.key_length,
            "entropy": self.entropy,
            "status": self.status,
            "nodeId": self.node_id,
            "quality": self.quality,
            "quantumProperties": dict(self.quantum_properties),
        }


@dataclass
class Communications:
    has_messages: bool = False
    total_messages: int = 0
    recent_messages: list[Message] = field(default_factory=list)
    message_types: dict[str, int] = field(default_factory=dict)
    last_activity: str | None = None
    file_path: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d = {
            "hasMessages": self.has_messages,
            "totalMessages": self.total_messages,
            "recentMessages": [m.to_dict() for m in self.recent_messages],
            "messageTypes": dict(self.message_types),
            "lastActivity": self.last_activity,
        }
        if self.file_path is not None:
            d["filePath"] = self.file_path
        if self.error is not None:
            d["error"] = self.error
        return d


@dataclass
class QuantumInfo:
    has_quantum_key: bool = False
    has_signatures: bool = False
    key_info: QuantumKeyInfo | None = None
    signatures: list[SignatureRecord] = field(default_factory=list)
    operations_log: list[dict[str, Any]] = field(default_factory=list)

    @property
    def signature_count(self) -> int:
        return len(self.signatures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasQuantumKey": self.has_quantum_key,
            "hasSignatures": self.has_signatures,
            "keyInfo": self.key_info.to_dict() if self.key_info else None,
            "signatures": [s.to_dict() for s in self.signatures],
            "signatureCount": self.signature_count,
            "lastSignature": self.signatures[0].to_dict() if self.signatures else None,
            "operationsLog": copy.deepcopy(self.operations_log),
            "lastOperation": copy.deepcopy(self.operations_log[0]) if self.operations_log else None,
        }


@dataclass
class NodeProfile:
    id: str
    name: str
    type: str
    status: str = "active"
    last_activity: str | None = None
    certificate: dict[str, Any] | None = None
    certificate_content: str | None = None
    private_key: str | None = None
    certificate_request: str | None = None
    logs: list[LogEvent] = field(default_factory=list)
    communications: Communications | None = None
    qca: QuantumInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        d = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "lastActivity": self.last_activity,
            "certificate": copy.deepcopy(self.certificate),
            "certificateContent": self.certificate_content,
            "privateKey": self.private_key,
            "certificateRequest": self.certificate_request,
            "logs": [event_to_dict(e) for e in self.logs],
        }
        if self.communications is not None:
            d["communications"] = self.communications.to_dict()
        if self.qca is not None:
            d["qca"] = self.qca.to_dict()
        return d
