"""Tests for veinslog/nodes.py"""

import os

import pytest

from veinslog.errors import NodeNotFoundError
from veinslog.nodes import NodeAggregator, extract_node_type


class TestExtractNodeType:

    @pytest.mark.parametrize("node_id,expected", [
        ("vehicle[0]", "vehicle"),
        ("rsu[3]", "rsu"),
        ("qca_system", "qca"),
        ("ca[0]", "ca"),
        ("warehouse[1]", "warehouse"),
        ("mystery", "unknown"),
    ])
    def test_types(self, node_id, expected):
        assert extract_node_type(node_id) == expected


class TestNodeDetails:

    def test_unknown_node(self, engine):
        with pytest.raises(NodeNotFoundError) as exc:
            NodeAggregator(engine).get_node_details("no-such-node")
        assert exc.value.node_id == "no-such-node"

    @pytest.mark.parametrize("node_id", ["", ".", "..", "../nodes", "a/b"])
    def test_path_like_ids_not_found(self, engine, node_id):
        with pytest.raises(NodeNotFoundError):
            NodeAggregator(engine).get_node_details(node_id)

    def test_full_profile(self, engine):
        profile = NodeAggregator(engine).get_node_details("vehicle[0]")

        assert profile.type == "vehicle"
        assert profile.status == "active"
        assert profile.certificate["serialNumber"] == "1A2B"
        assert "BEGIN CERTIFICATE" in profile.certificate_content
        assert "BEGIN PRIVATE KEY" in profile.private_key
        assert "CERTIFICATE REQUEST" in profile.certificate_request
        assert profile.last_activity is not None

        assert profile.logs
        assert {e.node_id for e in profile.logs} == {"vehicle[0]"}

        assert profile.communications.has_messages is True
        assert profile.communications.total_messages == 2

        qca = profile.qca
        assert qca.has_quantum_key is True
        assert qca.key_info.entropy == 8.0
        assert qca.has_signatures is True
        assert qca.signature_count == 2
        assert len(qca.operations_log) == 2

    def test_node_without_communications(self, engine):
        profile = NodeAggregator(engine).get_node_details("rsu[0]")
        d = profile.to_dict()["communications"]
        assert d["hasMessages"] is False
        assert d["totalMessages"] == 0
        assert d["recentMessages"] == []

    def test_node_without_quantum_artifacts(self, engine):
        qca = NodeAggregator(engine).get_node_details("rsu[0]").qca.to_dict()
        assert qca["hasQuantumKey"] is False
        assert qca["keyInfo"] is None
        assert qca["signatures"] == []
        assert qca["lastSignature"] is None

    def test_profile_dict_shape(self, engine):
        d = NodeAggregator(engine).get_node_details("vehicle[0]").to_dict()
        assert d["id"] == d["name"] == "vehicle[0]"
        assert d["qca"]["lastSignature"]["signature"] == "def456"
        assert d["qca"]["lastOperation"]["operationType"] == "entanglement"
        assert all(log["nodeId"] == "vehicle[0]" for log in d["logs"])


class TestListNodes:

    def test_lists_every_node_dir(self, engine):
        profiles = NodeAggregator(engine).list_nodes()
        assert [p.id for p in profiles] == ["rsu[0]", "vehicle[0]"]
        assert profiles[0].private_key is None
        assert profiles[1].logs

    def test_missing_store(self, empty_config):
        from veinslog.ingest import IngestionEngine

        assert NodeAggregator(IngestionEngine(empty_config)).list_nodes() == []


class TestKeyDescriptionsAgree:

    def test_key_events_match_profile(self, engine, config):
        from veinslog.quantum import parse_quantum_key_file

        keys_dir = os.path.join(config.qca_storage_dir, "keys")
        for i in range(8):
            node_id = f"ship[{i}]"
            path = os.path.join(keys_dir, f"node_{node_id}_key.dat")
            with open(path, "wb") as f:
                f.write(bytes([0xFF, 0xFE, i, 0x80]) * 64)

            events = engine.parse_file(path, "qca")
            properties = parse_quantum_key_file(path, node_id).quantum_properties
            qca_info = events[0].qca_info
            assert qca_info["entangled"] == properties["entanglement"]
            assert qca_info["errorRate"] == properties["errorRate"]
            assert qca_info["fidelity"] == properties["fidelity"]
