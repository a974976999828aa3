import pytest

from veinslog.models import event_to_dict


@pytest.fixture
def valid_event():
    return {
        "id": "log_1a2b3c4d",
        "timestamp": "2024-01-01T10:00:00.000Z",
        "level": "INFO",
        "source": "veins.mobility",
        "message": "position: (1, 2)",
        "nodeId": "vehicle[0]",
        "type": "veins",
        "positionInfo": {"x": 1.0, "y": 2.0},
    }


class TestEventValidator:

    def test_valid(self, validator, valid_event):
        assert validator.validate(valid_event) == (True, [])

    def test_missing_required(self, validator, valid_event):
        del valid_event["nodeId"]
        ok, errors = validator.validate(valid_event)
        assert not ok
        assert any("nodeId" in e for e in errors)

    def test_unknown_type(self, validator, valid_event):
        valid_event["type"] = "telemetry"
        ok, errors = validator.validate(valid_event)
        assert not ok
        assert errors[0].startswith("type:")

    def test_bad_timestamp(self, validator, valid_event):
        valid_event["timestamp"] = "01/01/2024"
        assert validator.validate(valid_event)[0] is False

    def test_extra_field_rejected(self, validator, valid_event):
        valid_event["extra"] = True
        assert validator.validate(valid_event)[0] is False

    def test_stats(self, validator, valid_event):
        validator.validate(valid_event)
        validator.validate({})
        stats = validator.get_stats()
        assert stats["total"] == 2
        assert stats["valid"] == 1
        assert stats["invalid"] == 1
        assert stats["error_types"]["required"] == 7

        validator.reset_stats()
        assert validator.get_stats()["total"] == 0

    def test_error_fields(self, validator, valid_event):
        valid_event["type"] = "telemetry"
        valid_event["positionInfo"] = {"x": "east", "y": 2.0}
        validator.validate(valid_event)
        validator.validate({})

        fields = validator.get_stats()["error_fields"]
        assert fields["type"] == 1
        assert fields["positionInfo"] == 1
        assert fields["(event)"] == 7

    def test_validate_all_reports_indexes(self, validator, valid_event):
        failures = validator.validate_all([valid_event, {}, valid_event])
        assert [index for index, _ in failures] == [1]

    def test_every_ingested_event_conforms(self, engine, validator):
        events = engine.ingest()
        assert validator.validate_all(events) == []
        assert validator.validate_all([event_to_dict(e) for e in events]) == []
