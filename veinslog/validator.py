"""Schema check for the canonical event dict.

Parsed and synthetic events must share one shape; ingest --validate and the
tests run every event through EventValidator to prove it.
"""

import json
import os
from collections import Counter

import jsonschema

from veinslog.models import LogEvent, event_to_dict

DEFAULT_SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "log_event.json")


def load_schema(path: str = DEFAULT_SCHEMA_PATH) -> dict:
    """Read a schema file and reject it early if it is not valid Draft 2020-12."""
    with open(path, "r", encoding="utf-8") as f:
        schema = json.load(f)
    jsonschema.Draft202012Validator.check_schema(schema)
    return schema


def _describe(error: jsonschema.ValidationError) -> str:
    location = ".".join(str(part) for part in error.absolute_path)
    return f"{location}: {error.message}" if location else error.message


class EventValidator:
    def __init__(self, schema_path: str = DEFAULT_SCHEMA_PATH):
        self._validator = jsonschema.Draft202012Validator(load_schema(schema_path))
        self.reset_stats()

    def validate(self, event: LogEvent | dict) -> tuple[bool, list[str]]:
        """(True, []) for a conforming event, else (False, messages by location)."""
        if isinstance(event, LogEvent):
            event = event_to_dict(event)

        self._checked += 1
        errors = sorted(self._validator.iter_errors(event), key=lambda e: e.json_path)
        if not errors:
            return True, []

        self._failed += 1
        for error in errors:
            self._by_keyword[error.validator] += 1
            field = error.absolute_path[0] if error.absolute_path else "(event)"
            self._by_field[str(field)] += 1
        return False, [_describe(e) for e in errors]

    def validate_all(self, events) -> list[tuple[int, list[str]]]:
        """(index, messages) for each event that does not conform."""
        failures = []
        for index, event in enumerate(events):
            ok, messages = self.validate(event)
            if not ok:
                failures.append((index, messages))
        return failures

    def get_stats(self) -> dict:
        return {
            "total": self._checked,
            "valid": self._checked - self._failed,
            "invalid": self._failed,
            "error_types": dict(self._by_keyword),
            "error_fields": dict(self._by_field),
        }

    def reset_stats(self) -> None:
        self._checked = 0
        self._failed = 0
        self._by_keyword: Counter = Counter()
        self._by_field: Counter = Counter()
