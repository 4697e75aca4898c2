"""solcover CLI — Solidity source coverage.

Usage:
    solcover instrument <path>...       Instrument .sol files or directories
    solcover trace --tx <hash>...       Collect probe hits from mined transactions
    solcover report --hits <file>...    Build an istanbul coverage-final.json
    solcover config                     Show current configuration

Examples:
    solcover instrument contracts/ -o build/instrumented
    solcover trace --metadata build/instrumented/coverage-metadata.json --tx 0xabc... -o hits.json
    solcover report --metadata build/instrumented/coverage-metadata.json --hits hits.json -o coverage.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from solcover import __version__
from solcover.core.config import get_settings
from solcover.core.errors import CoverageError
from solcover.core.logging import setup_logging
from solcover.core.types import CoverageReport, HitRecord, InstrumentationMetadata


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="solcover",
        description="solcover — Solidity source coverage instrumentation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")

    sub = parser.add_subparsers(dest="command")

    # ── instrument ───────────────────────────────────────────────────────────
    inst_p = sub.add_parser("instrument", help="Instrument Solidity sources")
    inst_p.add_argument("paths", nargs="+", help=".sol files or directories")
    inst_p.add_argument("--root", default=".", help="Base directory for source paths (default: .)")
    inst_p.add_argument("--output", "-o", required=True, help="Directory for instrumented sources")
    inst_p.add_argument("--metadata", "-m", help="Metadata file (default: <output>/%s)" % settings.metadata_file)
    inst_p.add_argument("--workers", "-j", type=int, default=0, help="Parallel workers (0=settings)")
    inst_p.add_argument("--check", action="store_true", help="Compile instrumented sources with solc")

    # ── trace ────────────────────────────────────────────────────────────────
    trace_p = sub.add_parser("trace", help="Collect probe hits via debug_traceTransaction")
    trace_p.add_argument("--metadata", "-m", default=settings.metadata_file, help="Metadata file")
    trace_p.add_argument("--tx", nargs="+", required=True, help="Transaction hash(es)")
    trace_p.add_argument("--rpc", default=settings.rpc_url, help=f"JSON-RPC URL (default: {settings.rpc_url})")
    trace_p.add_argument("--output", "-o", help="Write hits JSON to file instead of stdout")

    # ── report ───────────────────────────────────────────────────────────────
    report_p = sub.add_parser("report", help="Build a coverage report from hit files")
    report_p.add_argument("--metadata", "-m", default=settings.metadata_file, help="Metadata file")
    report_p.add_argument("--hits", nargs="+", required=True, help="Hit record JSON file(s)")
    report_p.add_argument("--output", "-o", default="coverage.json", help="Report path (default: coverage.json)")

    # ── config ───────────────────────────────────────────────────────────────
    sub.add_parser("config", help="Show current configuration")

    return parser


# ── Instrument command ───────────────────────────────────────────────────────


def _collect_sources(paths: list[str], root: Path) -> dict[str, str]:
    files: list[Path] = []
    for raw in paths:
        path = Path(raw).resolve()
        if not path.exists():
            raise FileNotFoundError(f"path '{raw}' does not exist")
        files.extend(sorted(path.rglob("*.sol")) if path.is_dir() else [path])

    sources: dict[str, str] = {}
    for file in files:
        try:
            key = file.relative_to(root).as_posix()
        except ValueError:
            key = file.as_posix()
        sources[key] = file.read_text(encoding="utf-8")
    return sources


def _run_instrument(args: argparse.Namespace) -> int:
    from solcover.instrumentation.orchestrator import instrument, write_instrumented

    root = Path(args.root).resolve()
    try:
        sources = _collect_sources(args.paths, root)
    except FileNotFoundError as exc:
        print(_c(f"Error: {exc}.", _RED), file=sys.stderr)
        return 1
    if not sources:
        print(_c("Error: no .sol files found.", _RED), file=sys.stderr)
        return 1

    result = instrument(sources, max_workers=args.workers or None)
    metadata_path = write_instrumented(result, args.output, args.metadata)

    if not args.quiet:
        meta = result.metadata
        print(
            f"  Instrumented {_c(str(len(meta.targets)), _CYAN)} of {len(sources)} files"
            f"  |  {len(meta.instrumentations)} probes"
            f"  |  metadata: {_c(str(metadata_path), _DIM)}"
        )

    if args.check:
        from solcover.ingestion.solidity_compiler import SolidityCompiler

        compiled = SolidityCompiler().compile_files(result.sources)
        if not compiled.success:
            for error in compiled.errors:
                print(_c(error, _RED), file=sys.stderr)
            return 1
        if not args.quiet:
            print(_c("  ✓ Instrumented sources compile.", _GREEN))

    return 0


# ── Trace command ────────────────────────────────────────────────────────────


def _run_trace(args: argparse.Namespace) -> int:
    import httpx

    from solcover.coverage.collector import collect_struct_logs
    from solcover.coverage.rpc import fetch_struct_logs

    metadata = InstrumentationMetadata.load(args.metadata)
    hits: HitRecord = {}
    with httpx.Client(timeout=get_settings().rpc_timeout_seconds) as client:
        for tx_hash in args.tx:
            collect_struct_logs(fetch_struct_logs(tx_hash, args.rpc, client=client), metadata, hits)

    output = json.dumps(hits, indent=2, sort_keys=True)
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        if not args.quiet:
            print(f"  {len(hits)} probes hit, written to {_c(args.output, _CYAN)}")
    else:
        print(output)
    return 0


# ── Report command ───────────────────────────────────────────────────────────


def _summarize(report: CoverageReport) -> dict[str, tuple[int, int]]:
    totals = {"statements": [0, 0], "functions": [0, 0], "branches": [0, 0]}
    for coverage in report.values():
        for name, counts in (
            ("statements", list(coverage.s.values())),
            ("functions", list(coverage.f.values())),
            ("branches", [hit for slots in coverage.b.values() for hit in slots]),
        ):
            totals[name][0] += sum(1 for hit in counts if hit > 0)
            totals[name][1] += len(counts)
    return {name: (covered, total) for name, (covered, total) in totals.items()}


def _run_report(args: argparse.Namespace) -> int:
    from solcover.coverage.report import build_report, merge_hits, write_report

    metadata = InstrumentationMetadata.load(args.metadata)
    records = [json.loads(Path(path).read_text(encoding="utf-8")) for path in args.hits]
    report = build_report(merge_hits(*records), metadata)
    write_report(report, args.output)

    if not args.quiet:
        print(f"\n{_BOLD}Coverage{_RESET} — {len(report)} files\n")
        for name, (covered, total) in _summarize(report).items():
            pct = 100.0 * covered / total if total else 100.0
            color = _GREEN if pct >= 80 else _YELLOW if pct >= 50 else _RED
            print(f"  {name:<11} {_c(f'{pct:5.1f}%', color)}  ({covered}/{total})")
        print(f"\n  Written to {_c(args.output, _CYAN)}")
    return 0


# ── Config command ───────────────────────────────────────────────────────────


def _run_config() -> int:
    """Print current settings."""
    s = get_settings()
    print(f"\n{_BOLD}solcover Configuration{_RESET}\n")
    for field_name in sorted(type(s).model_fields.keys()):
        print(f"  {_DIM}{field_name}:{_RESET}  {getattr(s, field_name, '')}")
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"solcover {__version__}")
        return 0

    settings = get_settings()
    setup_logging(settings.app_env, "WARNING" if args.quiet else settings.log_level)

    commands = {
        "instrument": _run_instrument,
        "trace": _run_trace,
        "report": _run_report,
    }

    if args.command == "config":
        return _run_config()

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args)
    except CoverageError as exc:
        print(_c(f"\n{args.command} failed: {exc}", _RED), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
