"""Synthetic fallback events, schema-identical to parsed output.

Used whenever ingestion has nothing real to return, so consumers always get a
non-empty, correctly shaped event list. Values are random; shapes are not.
"""

import random
import time
from datetime import datetime, timedelta, timezone

from veinslog.models import LogEvent
from veinslog.normalizer import to_iso
from veinslog.parsers.extract import extract_position, extract_velocity, extract_network
from veinslog.quantum import ALGORITHMS

LEVEL_POOL = ["INFO", "WARNING", "ERROR", "DEBUG"]

SOURCE_POOL = [
    "veins.mobility", "veins.network", "veins.application",
    "ca.server", "ca.certificate", "qca.quantum", "qca.encryption",
    "rsu.beacon", "vehicle.app", "drone.control", "ship.navigation",
]

NODE_POOL = [
    "vehicle[0]", "vehicle[1]", "vehicle[2]", "vehicle[3]",
    "drone[0]", "drone[1]", "drone[2]",
    "ship[0]", "ship[1]", "ship[2]",
    "rsu[0]", "rsu[1]", "port[0]", "warehouse[0]", "ca[0]", "qca_system",
]

MESSAGE_POOL = [
    "Vehicle position update: position=(125.4, 67.8)",
    "Vehicle motion sample: velocity=(12.0, 5.0)",
    "RSU broadcast message received",
    "Certificate verification succeeded",
    "Quantum key exchange complete",
    "Network topology change detected",
    "Security threat detected",
    "Performance metrics collected",
    "V2X link established",
    "Packet sent via UDP",
    "System status nominal",
    "CA certificate issued",
    "QCA quantum key distributed",
    "RSU beacon broadcast nominal",
    "Vehicle handshake complete",
    "Drone mission path planned",
    "Ship navigation system started",
    "Warehouse inventory status updated",
    "Port vessel schedule updated",
]

WINDOW_SECONDS = 3600
VALIDITY_DAYS = 365


def _certificate_info(rng: random.Random, node_id: str, index: int, ts: datetime) -> dict:
    return {
        "subject": f"CN = {node_id}, O = Veins V2X Network, C = DE, L = Erlangen",
        "issuer": 'CN = "CN=Veins CA,O=Veins Project,C=US"',
        "serialNumber": f"{index:02d}",
        "issuedDate": to_iso(ts),
        "validFrom": to_iso(ts),
        "validTo": to_iso(ts + timedelta(days=VALIDITY_DAYS)),
        "fingerprint": f"A1:B2:C3:D4:E5:F6:78:90:AB:CD:EF:12:34:56:78:90:AB:CD:EF:{index % 100:02d}",
        "keySize": "2048",
        "metadataSource": "placeholder",
        "hasCertificate": True,
        "hasPrivateKey": rng.random() > 0.3,
        "hasCSR": rng.random() > 0.5,
        "certFiles": ["cert.pem"],
        "keyFiles": ["private.key"],
        "csrFiles": [f"request_{int(ts.timestamp())}.csr"],
    }


def _qca_info(rng: random.Random, index: int, ts: datetime) -> dict:
    return {
        "recordType": "key",
        "keyType": "quantum",
        "keyFile": f"quantum_key_{index:03d}.dat",
        "keySize": "1024 bytes",
        "entangled": rng.random() > 0.3,
        "algorithm": rng.choice(ALGORITHMS),
        "quantumState": rng.choice(("superposition", "collapsed")),
        "errorRate": round(rng.random() * 0.1, 4),
        "keyGenerationTime": to_iso(ts),
        "synthetic": True,
    }


def generate_synthetic_events(count: int = 100, rng: random.Random | None = None) -> list[LogEvent]:
    """Generate *count* random events timestamped within the past hour."""
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    stamp = time.time_ns() // 1_000_000
    events = []

    for i in range(count):
        ts = now - timedelta(seconds=rng.uniform(0, WINDOW_SECONDS))
        node_id = rng.choice(NODE_POOL)
        source = rng.choice(SOURCE_POOL)
        message = rng.choice(MESSAGE_POOL)

        if source.startswith("qca") or node_id.startswith("qca"):
            source_type = "qca"
        elif source.startswith("ca.") or rng.random() > 0.7:
            source_type = "certificate"
        else:
            source_type = "veins"

        payloads = {}
        if source_type == "certificate":
            payloads["certificate_info"] = _certificate_info(rng, node_id, i, ts)
        elif source_type == "qca":
            payloads["qca_info"] = _qca_info(rng, i, ts)
        else:
            payloads["position_info"] = extract_position(message)
            payloads["velocity_info"] = extract_velocity(message)
            payloads["network_info"] = extract_network(message)

        events.append(LogEvent(
            id=f"synthetic_{i}_{stamp}",
            timestamp=to_iso(ts),
            level=rng.choice(LEVEL_POOL),
            source=source,
            message=message,
            node_id=node_id,
            source_type=source_type,
            filename=f"synthetic_{i % 10}.log",
            line_number=rng.randint(1, 1000),
            **payloads,
        ))

    return events
