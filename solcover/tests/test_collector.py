"""Tests for solcover.coverage.collector — probe hit detection."""

from __future__ import annotations

import re
from types import SimpleNamespace

import pytest

from solcover.coverage.collector import (
    TraceStep,
    collect_struct_logs,
    create_collector,
    to_hex,
)
from solcover.instrumentation.orchestrator import instrument


class TestToHex:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("", "0x00"),
            ("0x", "0x00"),
            ("1", "0x01"),
            ("0x1", "0x01"),
            ("abc", "0x0abc"),
            ("0x0000000012", "0x12"),
            ("0x00", "0x00"),
            ("-0x00", "0x00"),
            ("-5", "-0x05"),
            ("0x01a1", "0x01a1"),
        ],
    )
    def test_canonical_form(self, value, expected):
        assert to_hex(value) == expected

    def test_idempotent(self):
        assert to_hex(to_hex("0x000abc")) == to_hex("0x000abc")


class TestCreateCollector:
    def test_counts_known_probe(self, sample_metadata):
        hits: dict[str, int] = {}
        on_step = create_collector(sample_metadata, hits)

        on_step(TraceStep("PUSH1", [0x01A1]))
        on_step(TraceStep("PUSH1", [0x01A1]))

        assert hits == {"0x01a1": 2}

    def test_only_top_of_stack_is_checked(self, sample_metadata):
        hits: dict[str, int] = {}
        on_step = create_collector(sample_metadata, hits)

        on_step(TraceStep("PUSH1", [0x01A1, 0x99]))

        assert hits == {}

    def test_other_opcodes_ignored(self, sample_metadata):
        hits: dict[str, int] = {}
        on_step = create_collector(sample_metadata, hits)

        on_step(TraceStep("PUSH32", [0x01A1]))
        on_step(TraceStep("SSTORE", [0x02B2]))

        assert hits == {}

    def test_empty_stack_ignored(self, sample_metadata):
        hits: dict[str, int] = {}
        create_collector(sample_metadata, hits)(TraceStep("PUSH1", []))
        assert hits == {}

    def test_unknown_values_ignored(self, sample_metadata):
        hits: dict[str, int] = {}
        create_collector(sample_metadata, hits)(TraceStep("PUSH1", [42]))
        assert hits == {}

    def test_opcode_object_with_name(self, sample_metadata):
        hits: dict[str, int] = {}
        on_step = create_collector(sample_metadata, hits)

        on_step(SimpleNamespace(opcode=SimpleNamespace(name="PUSH1"), stack=[0x02B2]))

        assert hits == {"0x02b2": 1}

    def test_opcode_override(self, sample_metadata):
        hits: dict[str, int] = {}
        on_step = create_collector(sample_metadata, hits, opcode="PUSH32")

        on_step(TraceStep("PUSH1", [0x01A1]))
        on_step(TraceStep("PUSH32", [0x01A1]))

        assert hits == {"0x01a1": 1}

    def test_opcode_from_settings(self, sample_metadata, monkeypatch):
        monkeypatch.setenv("SOLCOVER_PROBE_OPCODE", "PUSH32")
        hits: dict[str, int] = {}
        on_step = create_collector(sample_metadata, hits)

        on_step(TraceStep("PUSH32", [0x03C3]))

        assert hits == {"0x03c3": 1}

    def test_push_family_matches_every_width(self, sample_metadata):
        hits: dict[str, int] = {}
        on_step = create_collector(sample_metadata, hits, opcode="PUSH")

        on_step(TraceStep("PUSH32", [0x01A1]))
        on_step(TraceStep("PUSH2", [0x01A1]))
        on_step(TraceStep("POP", [0x01A1]))

        assert hits == {"0x01a1": 2}

    def test_accumulates_into_existing_record(self, sample_metadata):
        hits = {"0x01a1": 5}
        create_collector(sample_metadata, hits)(TraceStep("PUSH1", [0x01A1]))
        assert hits == {"0x01a1": 6}


class TestStructLogs:
    def test_from_struct_log(self):
        step = TraceStep.from_struct_log({"op": "PUSH1", "pc": 7, "stack": ["0x01", "0x01a1"]})
        assert step.opcode == "PUSH1"
        assert step.stack == [1, 0x01A1]

    def test_from_struct_log_without_stack(self):
        step = TraceStep.from_struct_log({"op": "STOP", "stack": None})
        assert step.stack == []

    def test_collect_struct_logs(self, sample_metadata):
        logs = [
            {"op": "PUSH1", "stack": ["0x04d4"]},
            {"op": "JUMPDEST", "stack": ["0x04d4"]},
            {"op": "PUSH1", "stack": ["0x0000000000000000000000000000000000000000000000000000000000000004d4"]},
            {"op": "PUSH1", "stack": []},
        ]
        assert collect_struct_logs(logs, sample_metadata) == {"0x04d4": 2}

    def test_struct_logs_match_full_width_pushes(self, sample_metadata):
        logs = [{"op": "PUSH32", "stack": ["0x02b2"]}, {"op": "PUSH31", "stack": ["0x03c3"]}]
        assert collect_struct_logs(logs, sample_metadata) == {"0x02b2": 1, "0x03c3": 1}

    def test_struct_logs_opcode_override(self, sample_metadata):
        logs = [{"op": "PUSH32", "stack": ["0x02b2"]}]
        assert collect_struct_logs(logs, sample_metadata, opcode="PUSH1") == {}


class TestEndToEnd:
    def test_instrumented_literals_are_recognised(self, scenario_b):
        source, ast = scenario_b
        result = instrument({"B.sol": source}, {"B.sol": ast})
        literals = re.findall(r"\((0x[0-9a-f]{64})\)", result.sources["B.sol"])

        # the EVM reports stack values as padded hex words
        logs = [{"op": "PUSH32", "stack": [literal]} for literal in literals]
        hits = collect_struct_logs(logs, result.metadata)

        assert len(hits) == 5
        assert set(hits) == set(result.metadata.instrumentations)
        assert set(hits.values()) == {1}
