"""Ingestion aggregator: walk -> parse -> merge -> sort, with synthetic fallback."""

import logging
import os
from datetime import datetime, timezone

from veinslog.config import IngestConfig
from veinslog.models import FileInfo, LogEvent
from veinslog.normalizer import sort_key
from veinslog.parsers import BaseParser
from veinslog.registry import (
    SourceRegistration,
    build_registry,
    parser_for,
    resolve_source_type,
)
from veinslog.synthetic import generate_synthetic_events
from veinslog.walker import walk

logger = logging.getLogger(__name__)

ALL = "all"


def read_and_parse(file_path: str, source_type: str, parser: BaseParser) -> list[LogEvent]:
    """Stat, read and parse one file. A vanished or unreadable file yields [].

    Directory-scoped parsers describe the file's directory, not its content,
    so for them an empty or unreadable (but stat-able) file still parses.
    """
    try:
        stat = os.stat(file_path)
    except OSError as e:
        logger.warning("Failed to stat %s: %s", file_path, e)
        return []

    try:
        with open(file_path, "rb") as f:
            raw = f.read()
    except OSError as e:
        if not parser.directory_scoped:
            logger.warning("Failed to read %s: %s", file_path, e)
            return []
        logger.debug("Unreadable %s, parsing its directory anyway: %s", file_path, e)
        raw = b""

    content = raw.decode("utf-8", errors="replace")
    if not content.strip() and not parser.directory_scoped:
        return []

    file_info = FileInfo(
        path=file_path,
        name=os.path.basename(file_path),
        source_type=source_type,
        size=stat.st_size,
        modified_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )
    return parser.parse(content, file_info)


class IngestionEngine:
    """Runs ingestion for one or all registered source types.

    Every call re-walks and re-parses; nothing is cached between calls, so
    concurrent calls share no mutable state.
    """

    def __init__(self, config: IngestConfig, registry: dict[str, SourceRegistration] | None = None):
        self._config = config
        self._registry = registry or build_registry(config)

    @property
    def config(self) -> IngestConfig:
        return self._config

    @property
    def registry(self) -> dict[str, SourceRegistration]:
        return self._registry

    def ingestable(self) -> list[SourceRegistration]:
        return [r for r in self._registry.values() if r.ingestable]

    def ingest(self, source_type: str = ALL) -> list[LogEvent]:
        """Return events newest first. Never raises; falls back to synthetic data."""
        try:
            requested = resolve_source_type(source_type)
            logger.info("Ingesting %s sources", requested)

            if requested == ALL:
                events = []
                for registration in self.ingestable():
                    try:
                        found = self.ingest_registration(registration)
                    except Exception as e:
                        logger.warning("Ingesting %s failed: %s", registration.source_type, e)
                        continue
                    logger.info("%s: %d events", registration.source_type, len(found))
                    events.extend(found)
            else:
                registration = self._registry.get(requested)
                if registration is None or not registration.ingestable:
                    logger.info("Unsupported source type %r, returning synthetic events", source_type)
                    return self.synthetic()
                events = self.ingest_registration(registration)

            if not events:
                logger.info("No events found for %s, returning synthetic events", requested)
                return self.synthetic()

            events.sort(key=lambda e: sort_key(e.timestamp), reverse=True)
            logger.info("Ingested %d events", len(events))
            return events
        except Exception:
            logger.exception("Ingestion failed, returning synthetic events")
            return self.synthetic()

    def ingest_registration(self, registration: SourceRegistration) -> list[LogEvent]:
        parser = parser_for(self._registry, registration.source_type)
        paths = walk(registration.root, self._config.max_walk_depth, registration.extra_extensions)
        logger.debug("%s: %d candidate files under %s",
                     registration.source_type, len(paths), registration.root)

        if parser.directory_scoped:
            paths = parser.select_representatives(paths)

        events: list[LogEvent] = []
        for path in paths:
            events.extend(read_and_parse(path, registration.source_type, parser))
        return events

    def parse_file(self, file_path: str, source_type: str) -> list[LogEvent]:
        """Re-parse one file with its type's parser (used by the change watcher)."""
        return read_and_parse(file_path, source_type, parser_for(self._registry, source_type))

    def node_events(self, node_id: str, limit: int | None = None) -> list[LogEvent]:
        limit = self._config.node_log_limit if limit is None else limit
        return filter_node_events(self.ingest(ALL), node_id, limit)

    def synthetic(self) -> list[LogEvent]:
        events = generate_synthetic_events(self._config.synthetic_count)
        events.sort(key=lambda e: sort_key(e.timestamp), reverse=True)
        return events


def filter_node_events(events: list[LogEvent], node_id: str, limit: int) -> list[LogEvent]:
    return [e for e in events if e.node_id == node_id][:limit]
