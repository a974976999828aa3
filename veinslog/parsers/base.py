"""Parser boundary shared by every format parser."""

import logging
from typing import Iterable

from veinslog.models import FileInfo, LogEvent

logger = logging.getLogger(__name__)

# Seconds between synthesized events derived from one file
STEP_SECONDS = 1.0
# Seconds between consecutive lines when a line carries no timestamp
LINE_STEP_SECONDS = 0.1


class BaseParser:
    """parse(content, file_info) -> list[LogEvent]; never raises.

    Subclasses implement _parse. Any exception escaping it is logged and the
    file contributes no events.
    """

    source_type = "generic"
    # Directory-scoped parsers emit per directory, not per file
    directory_scoped = False

    def parse(self, content: str, file_info: FileInfo) -> list[LogEvent]:
        try:
            return list(self._parse(content, file_info))
        except Exception as e:
            logger.warning("%s failed on %s: %s", type(self).__name__, file_info.path, e)
            return []

    def _parse(self, content: str, file_info: FileInfo) -> Iterable[LogEvent]:
        raise NotImplementedError
