"""Source type registry: logical source type -> root directory + parser."""

from dataclasses import dataclass

from veinslog.config import IngestConfig
from veinslog.parsers import (
    BaseParser,
    CertificateParser,
    ConfigStoreParser,
    GenericParser,
    QcaParser,
    VeinsParser,
)

INGESTABLE_TYPES = ("veins", "certificate", "qca", "config")
COMMUNICATIONS = "communications"
SOURCE_ALIASES = {"ca": "certificate"}

# Config files are not picked up by the default walk categories
CONFIG_EXTENSIONS = (".ini", ".cfg", ".xml", ".ned", ".json")

_GENERIC = GenericParser()


@dataclass(frozen=True)
class SourceRegistration:
    source_type: str
    root: str
    parser: BaseParser | None
    ingestable: bool = True
    extra_extensions: tuple[str, ...] = ()


def build_registry(config: IngestConfig) -> dict[str, SourceRegistration]:
    parsers = {
        "veins": VeinsParser(),
        "certificate": CertificateParser(config.certificate_dir),
        "qca": QcaParser(),
        "config": ConfigStoreParser(config.primary_config_name),
    }
    registry = {
        source_type: SourceRegistration(
            source_type=source_type,
            root=config.sources[source_type],
            parser=parsers[source_type],
            extra_extensions=CONFIG_EXTENSIONS if source_type == "config" else (),
        )
        for source_type in INGESTABLE_TYPES
    }
    registry[COMMUNICATIONS] = SourceRegistration(
        source_type=COMMUNICATIONS,
        root=config.communications_dir,
        parser=None,
        ingestable=False,
    )
    return registry


def resolve_source_type(name: str) -> str:
    lowered = (name or "").strip().lower()
    return SOURCE_ALIASES.get(lowered, lowered)


def parser_for(registry: dict[str, SourceRegistration], source_type: str) -> BaseParser:
    """Table lookup keyed on source type, defaulting to the generic parser."""
    registration = registry.get(source_type)
    if registration is None or registration.parser is None:
        return _GENERIC
    return registration.parser
