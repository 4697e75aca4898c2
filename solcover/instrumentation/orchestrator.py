"""Instrumentation orchestrator — runs parser and injector over a file set.

Files are independent of each other (each gets a private parse state), so
they can be processed on a thread pool; results are folded back in input
order into one :class:`InstrumentationMetadata`.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from solcover.core.config import get_settings
from solcover.core.errors import UnsupportedNodeError
from solcover.core.types import InstrumentationMetadata, TargetSkeleton
from solcover.instrumentation.injector import InstrumentationTarget, inject
from solcover.instrumentation.parser import parse

logger = logging.getLogger(__name__)


@dataclass
class InstrumentationResult:
    instrumented: dict[str, InstrumentationTarget] = field(default_factory=dict)
    metadata: InstrumentationMetadata = field(default_factory=InstrumentationMetadata)

    @property
    def sources(self) -> dict[str, str]:
        """Instrumented text per path, ready for the compiler."""
        return {path: target.instrumented for path, target in self.instrumented.items()}


def instrument_file(path: str, source: str, ast: dict[str, Any]) -> InstrumentationTarget:
    """Parse and inject a single file."""
    try:
        parsed = parse(source, ast)
    except UnsupportedNodeError as exc:
        raise exc.with_target(path) from exc
    return inject(parsed, path)


def instrument(
    sources: dict[str, str],
    asts: dict[str, dict[str, Any]] | None = None,
    *,
    max_workers: int | None = None,
    compiler: Any = None,
) -> InstrumentationResult:
    """Instrument every file in ``sources``.

    Args:
        sources: Mapping of path -> Solidity source text
        asts: Pre-parsed compact ASTs per path; missing ones are parsed with solc
        max_workers: Thread count (defaults to ``instrument_workers`` setting)
        compiler: Object providing ``parse_sources``; a ``SolidityCompiler`` by default

    Returns:
        InstrumentationResult with every instrumented file and the aggregated metadata
    """
    start = time.monotonic()
    asts = dict(asts or {})
    missing = {path: source for path, source in sources.items() if path not in asts}
    if missing:
        if compiler is None:
            from solcover.ingestion.solidity_compiler import SolidityCompiler

            compiler = SolidityCompiler()
        asts.update(compiler.parse_sources(missing))

    workers = max_workers or get_settings().instrument_workers
    paths = list(sources)
    if workers > 1 and len(paths) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            targets = list(pool.map(
                lambda path: instrument_file(path, sources[path], asts[path]), paths,
            ))
    else:
        targets = [instrument_file(path, sources[path], asts[path]) for path in paths]

    result = aggregate(dict(zip(paths, targets)))
    logger.info(
        "Instrumented %d of %d files (%d probes) in %.0fms",
        len(result.metadata.targets), len(paths), len(result.metadata.instrumentations),
        (time.monotonic() - start) * 1000,
        extra={"files": len(paths)},
    )
    return result


def aggregate(instrumented: dict[str, InstrumentationTarget]) -> InstrumentationResult:
    """Fold per-file targets into global metadata, dropping files without probes."""
    metadata = InstrumentationMetadata()
    for path, target in instrumented.items():
        if not target.instrumentations:
            logger.debug("No instrumentations in %s", path, extra={"target": path})
            continue

        metadata.instrumentations.update(target.instrumentations)
        metadata.targets[path] = TargetSkeleton(
            path=path,
            functions=target.functions,
            branches=target.branches,
            statements=target.statements,
        )

    return InstrumentationResult(instrumented=instrumented, metadata=metadata)


def write_instrumented(
    result: InstrumentationResult,
    out_dir: str | Path,
    metadata_file: str | Path | None = None,
) -> Path:
    """Write instrumented sources under ``out_dir`` and the metadata file.

    Returns the metadata file path.
    """
    out_dir = Path(out_dir)
    for path, text in result.sources.items():
        destination = out_dir / path.lstrip("/")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(text, encoding="utf-8")

    metadata_path = Path(metadata_file) if metadata_file else out_dir / get_settings().metadata_file
    return result.metadata.save(metadata_path)
