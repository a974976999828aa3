"""Fallback parser: one event per non-blank line."""

from veinslog.normalizer import extract_timestamp, make_event, offset_iso
from veinslog.parsers.base import BaseParser, LINE_STEP_SECONDS
from veinslog.parsers.extract import extract_level, extract_node_id


class GenericParser(BaseParser):
    source_type = "generic"

    def _parse(self, content, file_info):
        for i, raw in enumerate(content.split("\n")):
            line = raw.strip()
            if not line:
                continue
            yield make_event(
                id_seed=line,
                position=i,
                timestamp=extract_timestamp(line)
                or offset_iso(file_info.modified_time, i * LINE_STEP_SECONDS),
                level=extract_level(line) or "DEBUG",
                source="system.generic",
                message=line,
                node_id=extract_node_id(line) or "system",
                source_type=self.source_type,
                filename=file_info.name,
                file_path=file_info.path,
                line_number=i + 1,
            )
