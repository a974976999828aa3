"""Regex helpers that pull node, level, source and motion hints out of a line."""

import math
import re

_NODE_RE = re.compile(
    r"\b(?:vehicle|drone|ship|rsu|qca|ca|node|port|warehouse)(?:\[\d+\]|\b)",
    re.IGNORECASE,
)
_FILENAME_NODE_RE = re.compile(r"(vehicle|drone|ship|rsu|ca)\[(\d+)\]")
_LEVEL_RE = re.compile(r"\b(DEBUG|INFO|WARN|WARNING|ERROR|FATAL)\b", re.IGNORECASE)
_SOURCE_RE = re.compile(r"\[([A-Za-z][\w.]*)\]")
_POSITION_RE = re.compile(r"pos[ition]*[\s:=]+\(?([-\d.]+)[,\s]+([-\d.]+)\)?", re.IGNORECASE)
_VELOCITY_RE = re.compile(r"vel[ocity]*[\s:=]+\(?([-\d.]+)[,\s]+([-\d.]+)\)?", re.IGNORECASE)

# Checked in order; the first keyword present names the direction
NETWORK_KEYWORDS = ("received", "sent", "broadcast", "unicast", "multicast")


def extract_node_id(line: str) -> str | None:
    m = _NODE_RE.search(line)
    return m.group(0) if m else None


def node_id_from_filename(filename: str) -> str | None:
    """'vehicle[3].log' -> 'vehicle[3]'."""
    m = _FILENAME_NODE_RE.search(filename)
    return f"{m.group(1)}[{m.group(2)}]" if m else None


def extract_level(line: str) -> str | None:
    m = _LEVEL_RE.search(line)
    return m.group(1).upper() if m else None


def extract_source(line: str) -> str | None:
    """Explicit '[component.path]' tag, else None."""
    m = _SOURCE_RE.search(line)
    return m.group(1) if m else None


def infer_veins_source(line: str) -> str:
    explicit = extract_source(line)
    if explicit:
        return explicit
    if "position" in line or "velocity" in line:
        return "veins.mobility"
    if "received" in line or "sent" in line:
        return "veins.network"
    if "beacon" in line or "broadcast" in line:
        return "veins.application"
    return "veins.simulation"


def _pair(regex: re.Pattern, line: str) -> tuple[float, float] | None:
    m = regex.search(line)
    if not m:
        return None
    try:
        return float(m.group(1)), float(m.group(2))
    except ValueError:
        return None


def extract_position(line: str) -> dict[str, float] | None:
    pair = _pair(_POSITION_RE, line)
    if pair is None:
        return None
    return {"x": pair[0], "y": pair[1]}


def extract_velocity(line: str) -> dict[str, float] | None:
    pair = _pair(_VELOCITY_RE, line)
    if pair is None:
        return None
    x, y = pair
    return {"x": x, "y": y, "speed": round(math.hypot(x, y), 2)}


def extract_network(line: str) -> dict[str, str] | None:
    lowered = line.lower()
    for keyword in NETWORK_KEYWORDS:
        if keyword in lowered:
            if "TCP" in line:
                protocol = "TCP"
            elif "UDP" in line:
                protocol = "UDP"
            else:
                protocol = "unknown"
            return {"type": keyword, "protocol": protocol}
    return None
