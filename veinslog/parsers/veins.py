"""Simulation log parser: per-line events with mobility and network hints.

Node identity comes from the file name ('vehicle[3].log'), falling back to an
identity mentioned in the line itself, then 'system'.
"""

from veinslog.normalizer import extract_timestamp, make_event, offset_iso
from veinslog.parsers.base import BaseParser, LINE_STEP_SECONDS
from veinslog.parsers.extract import (
    extract_level,
    extract_network,
    extract_node_id,
    extract_position,
    extract_velocity,
    infer_veins_source,
    node_id_from_filename,
)


class VeinsParser(BaseParser):
    source_type = "veins"

    def _parse(self, content, file_info):
        file_node = node_id_from_filename(file_info.name)

        for i, raw in enumerate(content.split("\n")):
            line = raw.strip()
            if not line:
                continue
            yield make_event(
                id_seed=f"{file_info.name}_{line}",
                position=i,
                timestamp=extract_timestamp(line)
                or offset_iso(file_info.modified_time, i * LINE_STEP_SECONDS),
                level=extract_level(line) or "INFO",
                source=infer_veins_source(line),
                message=line,
                node_id=file_node or extract_node_id(line) or "system",
                source_type=self.source_type,
                filename=file_info.name,
                file_path=file_info.path,
                line_number=i + 1,
                position_info=extract_position(line),
                velocity_info=extract_velocity(line),
                network_info=extract_network(line),
            )
