"""Event normalization: ISO timestamps, content-derived ids, LogEvent assembly."""

import hashlib
import re
import time
from datetime import datetime, timedelta, timezone

from veinslog.models import LogEvent, SOURCE_TYPES

_LINE_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}(?:\.\d+)?")
_EPOCH_RE = re.compile(r"^\d+(?:\.\d+)?$")


def to_iso(dt: datetime) -> str:
    """Render *dt* as '2024-01-01T10:00:00.000Z'. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def from_iso(value: str) -> datetime:
    """Inverse of to_iso; also accepts any string datetime.fromisoformat understands."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def offset_iso(base: datetime, seconds: float = 0.0) -> str:
    return to_iso(base + timedelta(seconds=seconds))


def parse_timestamp(value) -> str | None:
    """Best-effort conversion of epoch seconds or an ISO-like string to ISO 8601."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return to_iso(datetime.fromtimestamp(value, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if not text:
        return None
    if _EPOCH_RE.match(text):
        return parse_timestamp(float(text))
    try:
        return to_iso(from_iso(text))
    except ValueError:
        return None


def extract_timestamp(line: str) -> str | None:
    """Find a 'YYYY-MM-DD HH:MM:SS' stamp anywhere in *line*."""
    m = _LINE_TIMESTAMP_RE.search(line)
    if not m:
        return None
    return parse_timestamp(m.group(0))


def sort_key(value: str | None) -> datetime:
    """Sort key for ISO timestamps; unparsable or missing values sort oldest."""
    if value:
        try:
            return from_iso(value)
        except ValueError:
            pass
    return datetime.min.replace(tzinfo=timezone.utc)


def generate_event_id(content: str, position: int) -> str:
    """Stable for (content, position) within one pass; includes generation time."""
    digest = hashlib.md5(f"{content}_{position}_{time.time_ns()}".encode("utf-8")).hexdigest()
    return f"log_{digest[:8]}"


def make_event(
    *,
    id_seed: str,
    position: int,
    timestamp: str,
    level: str,
    source: str,
    message: str,
    node_id: str,
    source_type: str,
    **extra,
) -> LogEvent:
    """Wrap parser output in the canonical LogEvent shape."""
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"Unknown source type: {source_type}")
    return LogEvent(
        id=generate_event_id(id_seed, position),
        timestamp=timestamp,
        level=level,
        source=source,
        message=message,
        node_id=node_id or "system",
        source_type=source_type,
        **extra,
    )
