"""Configuration-store parser.

Per file: a "config loaded" event (t), a high-importance event when the file is
the primary simulation config (t + 1s), and a "parameters parsed" event
(t + 2s) counting 'key = value' lines that are not comments.
"""

import os

from veinslog.normalizer import make_event, offset_iso, to_iso
from veinslog.parsers.base import BaseParser, STEP_SECONDS

DEFAULT_PRIMARY_CONFIG = "omnetpp.ini"
COMMENT_MARKERS = ("#", "//")

_CONFIG_KINDS = (
    ((".ini", ".cfg"), "ini"),
    ((".xml",), "xml"),
    ((".ned",), "ned"),
    ((".json",), "json"),
)


def detect_config_type(filename: str) -> str:
    name = filename.lower()
    for markers, kind in _CONFIG_KINDS:
        if any(marker in name for marker in markers):
            return kind
    return "unknown"


def count_parameters(content: str) -> int:
    count = 0
    for line in content.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_MARKERS):
            continue
        if "=" in stripped:
            count += 1
    return count


class ConfigStoreParser(BaseParser):
    source_type = "config"

    def __init__(self, primary_config_name: str = DEFAULT_PRIMARY_CONFIG):
        self._primary = primary_config_name.lower()

    def _parse(self, content, file_info):
        name = file_info.name.lower()
        kind = detect_config_type(name)
        source = f"veins.config.{kind}" if kind != "unknown" else "veins.config"
        base = file_info.modified_time
        common = dict(
            node_id="system",
            source_type=self.source_type,
            filename=file_info.name,
            file_path=file_info.path,
        )

        events = [make_event(
            id_seed=f"config_{name}",
            position=0,
            timestamp=to_iso(base),
            level="INFO",
            source=source,
            message=f"Configuration updated - {file_info.name} ({kind.upper()}) loaded",
            line_number=1,
            config_info={
                "type": kind,
                "size": file_info.size,
                "lastModified": to_iso(base),
                "encoding": "utf-8",
            },
            **common,
        )]

        if self._primary in name:
            events.append(make_event(
                id_seed=f"config_primary_{name}",
                position=1,
                timestamp=offset_iso(base, STEP_SECONDS),
                level="DEBUG",
                source="veins.config.omnetpp",
                message=f"Primary simulation config reloaded - {file_info.name}",
                line_number=1,
                config_info={
                    "type": f"{os.path.splitext(self._primary)[0]}_ini",
                    "importance": "high",
                    "affects": ["simulation", "network", "mobility"],
                },
                **common,
            ))

        parameter_count = count_parameters(content)
        if parameter_count > 0:
            total_lines = len(content.split("\n"))
            events.append(make_event(
                id_seed=f"config_params_{name}",
                position=2,
                timestamp=offset_iso(base, 2 * STEP_SECONDS),
                level="DEBUG",
                source="veins.config.parser",
                message=f"Configuration parsed - {file_info.name} contains {parameter_count} parameters",
                line_number=total_lines,
                config_info={
                    "parameterCount": parameter_count,
                    "totalLines": total_lines,
                    "parsed": True,
                },
                **common,
            ))

        return events
