"""Fold probe hits and instrumentation metadata into an istanbul report."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from solcover.core.errors import StaleMetadataError
from solcover.core.types import (
    CoverageReport,
    CoverageType,
    FileCoverage,
    HitRecord,
    InstrumentationMetadata,
)


def merge_hits(*records: HitRecord) -> HitRecord:
    """Sum hit records from independent traced runs."""
    merged: HitRecord = {}
    for record in records:
        for probe_hash, count in record.items():
            merged[probe_hash] = merged.get(probe_hash, 0) + count
    return merged


def build_report(hits: HitRecord, metadata: InstrumentationMetadata) -> CoverageReport:
    """Build per-file coverage; raises :class:`StaleMetadataError` on unknown hashes."""
    report: CoverageReport = {}
    for path, target in metadata.targets.items():
        report[path] = FileCoverage(
            path=path,
            statement_map={str(i): rng for i, rng in enumerate(target.statements)},
            fn_map={str(i): fn for i, fn in enumerate(target.functions)},
            branch_map={str(i): br for i, br in enumerate(target.branches)},
            s={str(i): 0 for i in range(len(target.statements))},
            f={str(i): 0 for i in range(len(target.functions))},
            b={str(i): [0] * len(br.locations) for i, br in enumerate(target.branches)},
        )

    for probe_hash, count in hits.items():
        instrumentation = metadata.instrumentations.get(probe_hash)
        coverage = report.get(instrumentation.target) if instrumentation else None
        if instrumentation is None or coverage is None:
            raise StaleMetadataError(probe_hash)

        key = str(instrumentation.id)
        if instrumentation.type is CoverageType.STATEMENT:
            coverage.s[key] = coverage.s.get(key, 0) + count
        elif instrumentation.type is CoverageType.FUNCTION:
            coverage.f[key] = coverage.f.get(key, 0) + count
        else:
            slots = coverage.b.setdefault(key, [])
            slot = instrumentation.branch or 0
            if len(slots) <= slot:
                slots.extend([0] * (slot + 1 - len(slots)))
            slots[slot] += count

    return report


def report_to_json(report: CoverageReport) -> dict[str, Any]:
    """``coverage-final.json`` compatible dict."""
    return {
        path: coverage.model_dump(by_alias=True, mode="json")
        for path, coverage in report.items()
    }


def write_report(report: CoverageReport, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report_to_json(report), indent=2), encoding="utf-8")
    return path
