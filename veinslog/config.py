"""Configuration loading from an optional YAML file plus environment overrides."""

import logging
import os
from dataclasses import dataclass, field

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = {
    "veins": "./messages/logs",
    "certificate": "./messages/cafiles/nodes",
    "qca": "./messages/qca_storage",
    "config": "./messages/config",
}
DEFAULT_COMMUNICATIONS_DIR = "./messages/communications"

# env var -> source type it overrides
_SOURCE_ENV = {
    "VEINS_LOG_PATH": "veins",
    "CA_LOG_PATH": "certificate",
    "QCA_LOG_PATH": "qca",
    "CONFIG_LOG_PATH": "config",
}


@dataclass(frozen=True)
class IngestConfig:
    sources: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SOURCES))
    communications_dir: str = DEFAULT_COMMUNICATIONS_DIR
    synthetic_count: int = 100
    node_log_limit: int = 50
    recent_message_limit: int = 50
    operation_log_limit: int = 20
    max_walk_depth: int = 32
    primary_config_name: str = "omnetpp.ini"
    debounce_seconds: float = 0.5
    watch_workers: int = 4
    server_host: str = "0.0.0.0"
    server_port: int = 5000

    @property
    def qca_storage_dir(self) -> str:
        """The quantum store doubles as the qca ingestion root."""
        return self.sources["qca"]

    @property
    def certificate_dir(self) -> str:
        return self.sources["certificate"]

    @classmethod
    def from_dict(cls, d: dict) -> "IngestConfig":
        sources = dict(DEFAULT_SOURCES)
        sources.update(d.get("sources") or {})
        ingest = d.get("ingest") or {}
        watch = d.get("watch") or {}
        server = d.get("server") or {}
        return cls(
            sources=sources,
            communications_dir=d.get("communications_dir", DEFAULT_COMMUNICATIONS_DIR),
            synthetic_count=int(ingest.get("synthetic_count", 100)),
            node_log_limit=int(ingest.get("node_log_limit", 50)),
            recent_message_limit=int(ingest.get("recent_message_limit", 50)),
            operation_log_limit=int(ingest.get("operation_log_limit", 20)),
            max_walk_depth=int(ingest.get("max_walk_depth", 32)),
            primary_config_name=ingest.get("primary_config_name", "omnetpp.ini"),
            debounce_seconds=float(watch.get("debounce_seconds", 0.5)),
            watch_workers=int(watch.get("workers", 4)),
            server_host=server.get("host", "0.0.0.0"),
            server_port=int(server.get("port", 5000)),
        )


def load_yaml_config(path: str | None) -> dict:
    """Load a YAML mapping from *path*. Missing or invalid files yield {}."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        logger.warning("Invalid YAML in %s (%s), using defaults", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, using defaults", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return data


def apply_env_overrides(data: dict) -> dict:
    """Return a copy of *data* with path env vars folded into it."""
    merged = dict(data)
    sources = dict(merged.get("sources") or {})
    for env_name, source_type in _SOURCE_ENV.items():
        value = os.environ.get(env_name)
        if value:
            sources[source_type] = value
    merged["sources"] = sources
    comms = os.environ.get("COMMUNICATIONS_PATH")
    if comms:
        merged["communications_dir"] = comms
    return merged


def load_config(path: str | None = None) -> IngestConfig:
    """Build IngestConfig from YAML (path or $INGEST_CONFIG) and env vars."""
    path = path or os.environ.get("INGEST_CONFIG")
    return IngestConfig.from_dict(apply_env_overrides(load_yaml_config(path)))
