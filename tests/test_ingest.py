"""Tests for veinslog/ingest.py"""

import os
from collections import Counter

import pytest

from veinslog.config import IngestConfig
from veinslog.ingest import IngestionEngine, filter_node_events, read_and_parse
from veinslog.models import event_to_dict
from veinslog.nodes import NodeAggregator
from veinslog.normalizer import from_iso
from veinslog.parsers import CertificateParser, VeinsParser

REQUIRED_KEYS = {"id", "timestamp", "level", "source", "message", "nodeId", "type"}


def _without_ids(events):
    dicts = []
    for event in events:
        d = event_to_dict(event)
        d.pop("id")
        dicts.append(d)
    return sorted(dicts, key=lambda d: (d["timestamp"], d["type"], d["message"], d.get("filePath", "")))


class TestIngestAll:

    def test_sorted_newest_first(self, engine):
        events = engine.ingest()
        stamps = [from_iso(e.timestamp) for e in events]
        assert stamps == sorted(stamps, reverse=True)

    def test_counts_per_type(self, engine):
        counts = Counter(e.source_type for e in engine.ingest("all"))
        assert counts == {"veins": 2, "certificate": 4, "qca": 8, "config": 3}

    def test_no_synthetic_when_real_data(self, engine):
        assert not any(e.id.startswith("synthetic_") for e in engine.ingest())


class TestIngestSingleType:

    def test_veins_scenario(self, engine):
        events = [e for e in engine.ingest("veins") if e.filename == "vehicle[0].log"]
        assert len(events) == 2
        first, second = sorted(events, key=lambda e: e.line_number)
        assert first.position_info == {"x": 10.0, "y": 20.0}
        assert second.network_info == {"type": "sent", "protocol": "UDP"}
        assert first.node_id == second.node_id == "vehicle[0]"

    def test_ca_alias(self, engine):
        events = engine.ingest("ca")
        assert {e.source_type for e in events} == {"certificate"}

    def test_config_files_found(self, engine):
        events = engine.ingest("config")
        assert {e.filename for e in events} == {"omnetpp.ini"}

    def test_unknown_type_is_synthetic(self, engine):
        events = engine.ingest("bogus")
        assert len(events) == engine.config.synthetic_count
        assert all(e.id.startswith("synthetic_") for e in events)

    def test_communications_is_not_ingestable(self, engine):
        events = engine.ingest("communications")
        assert all(e.id.startswith("synthetic_") for e in events)


class TestSyntheticFallback:

    @pytest.mark.parametrize("source_type", ["all", "veins", "certificate", "qca", "config"])
    def test_missing_directories(self, empty_config, validator, source_type):
        events = IngestionEngine(empty_config).ingest(source_type)
        assert len(events) == empty_config.synthetic_count
        for event in events:
            assert REQUIRED_KEYS <= set(event_to_dict(event))
            assert validator.validate(event) == (True, [])

    def test_internal_failure_falls_back(self, engine, monkeypatch):
        def explode(registration):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(engine, "ingest_registration", explode)
        events = engine.ingest("veins")
        assert events
        assert all(e.id.startswith("synthetic_") for e in events)

    def test_one_failing_type_does_not_sink_others(self, engine, monkeypatch):
        original = engine.ingest_registration

        def flaky(registration):
            if registration.source_type == "qca":
                raise RuntimeError("unreadable store")
            return original(registration)

        monkeypatch.setattr(engine, "ingest_registration", flaky)
        types = {e.source_type for e in engine.ingest()}
        assert types == {"veins", "certificate", "config"}


class TestIdempotence:

    @pytest.mark.parametrize("source_type", ["veins", "certificate", "qca", "config"])
    def test_same_content_twice(self, engine, source_type):
        first = engine.ingest(source_type)
        second = engine.ingest(source_type)
        assert _without_ids(first) == _without_ids(second)


class TestHelpers:

    def test_read_and_parse_missing_file(self, tmp_path):
        assert read_and_parse(str(tmp_path / "gone.log"), "veins", VeinsParser()) == []

    def test_read_and_parse_empty_file(self, tmp_path):
        path = tmp_path / "empty.log"
        path.write_text("  \n")
        assert read_and_parse(str(path), "veins", VeinsParser()) == []

    def test_read_and_parse_invalid_utf8(self, tmp_path):
        path = tmp_path / "vehicle[1].log"
        path.write_bytes(b"bad \xff\xfe bytes\n")
        events = read_and_parse(str(path), "veins", VeinsParser())
        assert len(events) == 1
        assert events[0].node_id == "vehicle[1]"

    def test_node_events(self, engine):
        events = engine.node_events("vehicle[0]")
        assert events
        assert {e.node_id for e in events} == {"vehicle[0]"}

    def test_filter_node_events_limit(self, engine):
        events = engine.ingest()
        assert len(filter_node_events(events, "vehicle[0]", 2)) == 2

    def test_parse_file(self, engine, config):
        path = os.path.join(config.sources["veins"], "vehicle[0].log")
        assert len(engine.parse_file(path, "veins")) == 2


def _certificate_only_config(store_root, tmp_path):
    absent = str(tmp_path / "absent")
    return IngestConfig(
        sources={
            "veins": os.path.join(absent, "logs"),
            "certificate": str(store_root),
            "qca": os.path.join(absent, "qca"),
            "config": os.path.join(absent, "config"),
        },
        communications_dir=os.path.join(absent, "comms"),
        synthetic_count=5,
    )


def _write(path, content=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


class TestCertificateStore:

    def test_newer_empty_request_keeps_node(self, tmp_path):
        store = tmp_path / "cafiles" / "nodes"
        cert = _write(store / "vehicle[0]" / "cert.pem", "-----BEGIN CERTIFICATE-----\n")
        os.utime(cert, (1_700_000_000, 1_700_000_000))
        _write(store / "vehicle[0]" / "requests" / "pending.csr")

        events = IngestionEngine(_certificate_only_config(store, tmp_path)).ingest("certificate")

        assert not any(e.id.startswith("synthetic_") for e in events)
        assert {e.node_id for e in events} == {"vehicle[0]"}
        sources = sorted(e.source for e in events)
        assert sources == ["ca.certificate.manager", "ca.request.processor"]
        # the non-empty certificate was chosen, so its mtime anchors the events
        updated = next(e for e in events if e.source == "ca.certificate.manager")
        assert updated.timestamp == "2023-11-14T22:13:20.000Z"

    def test_node_with_only_empty_files(self, tmp_path):
        store = tmp_path / "nodes"
        _write(store / "drone[1]" / "requests" / "pending.csr")

        events = IngestionEngine(_certificate_only_config(store, tmp_path)).ingest("certificate")

        assert [e.node_id for e in events if e.source == "ca.certificate.manager"] == ["drone[1]"]

    def test_nodes_substring_in_parent_directory(self, tmp_path):
        store = tmp_path / "edge-nodes" / "cafiles" / "nodes"
        _write(store / "vehicle[0]" / "cert.pem", "pem\n")
        _write(store / "rsu[2]" / "private.key", "key\n")
        config = _certificate_only_config(store, tmp_path)
        engine = IngestionEngine(config)

        assert {e.node_id for e in engine.ingest("certificate")} == {"vehicle[0]", "rsu[2]"}

        profile = NodeAggregator(engine).get_node_details("vehicle[0]")
        assert any(e.source == "ca.certificate.manager" for e in profile.logs)

    def test_store_root_named_other_than_nodes(self, tmp_path):
        store = tmp_path / "pki"
        _write(store / "ship[3]" / "cert.pem", "pem\n")

        events = IngestionEngine(_certificate_only_config(store, tmp_path)).ingest("certificate")

        assert {e.node_id for e in events} == {"ship[3]"}

    def test_read_and_parse_empty_file_for_directory_parser(self, tmp_path):
        store = tmp_path / "store"
        empty = _write(store / "rsu[0]" / "request.csr")

        assert read_and_parse(str(empty), "veins", VeinsParser()) == []
        events = read_and_parse(str(empty), "certificate", CertificateParser(str(store)))
        assert [e.node_id for e in events][:1] == ["rsu[0]"]
