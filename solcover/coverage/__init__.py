"""Runtime side of solcover: probe hit collection and report building.

  - Step handler decoding probe hashes from EVM traces
  - JSON-RPC trace source (``debug_traceTransaction``)
  - istanbul report builder
"""

from solcover.coverage.collector import (
    TraceStep,
    collect_struct_logs,
    create_collector,
    to_hex,
)
from solcover.coverage.report import build_report, merge_hits, report_to_json, write_report

__all__ = [
    "TraceStep",
    "build_report",
    "collect_struct_logs",
    "create_collector",
    "merge_hits",
    "report_to_json",
    "to_hex",
    "write_report",
]
