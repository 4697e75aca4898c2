"""Probe hit collection from EVM step traces.

The handler returned by :func:`create_collector` is called once per executed
instruction. Probe hashes are recognised purely by value: whenever the
configured push opcode runs, the value on top of the stack is looked up in
the instrumentation metadata, and ordinary literals simply miss.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from solcover.core.config import get_settings
from solcover.core.types import HitRecord, InstrumentationMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceStep:
    """One executed instruction. ``stack`` has the top of the stack last."""
    opcode: str
    stack: list[int] = field(default_factory=list)

    @classmethod
    def from_struct_log(cls, log: dict[str, Any]) -> "TraceStep":
        """Build a step from a ``debug_traceTransaction`` struct log entry."""
        return cls(
            opcode=log.get("op", ""),
            stack=[int(value, 16) for value in log.get("stack") or [] if value],
        )


StepHandler = Callable[[Any], None]

# Struct logs name every push width (PUSH1..PUSH32); a probe literal with
# leading zero bytes is pushed with a narrower one.
PUSH_FAMILY = "PUSH"


def to_hex(value: str) -> str:
    """Canonical minimal-width hex form of a stack value's digits.

    >>> to_hex("1")
    '0x01'
    >>> to_hex("0x0000000012")
    '0x12'
    """
    if value.startswith("-"):
        unsigned = to_hex(value[1:])
        return unsigned if unsigned == "0x00" else f"-{unsigned}"

    if not value.startswith("0x"):
        value = f"0x{value}"
    if value == "0x":
        return "0x00"
    if len(value) % 2:
        value = f"0x0{value[2:]}"
    while len(value) > 4 and value.startswith("0x00"):
        value = f"0x{value[4:]}"
    return value


def create_collector(
    metadata: InstrumentationMetadata,
    hits: HitRecord,
    opcode: str | None = None,
) -> StepHandler:
    """Return a step handler that counts probe hits into ``hits``.

    Steps may carry the opcode as a plain name or as an object with a
    ``name`` attribute. An ``opcode`` of ``"PUSH"`` matches every push width.
    """
    probe_opcode = opcode or get_settings().probe_opcode
    family = probe_opcode == PUSH_FAMILY
    known = metadata.instrumentations

    def on_step(step: Any) -> None:
        name = getattr(step.opcode, "name", step.opcode)
        matched = name.startswith(PUSH_FAMILY) if family else name == probe_opcode
        if not matched or not step.stack:
            return

        key = to_hex(format(step.stack[-1], "x"))
        if key in known:
            hits[key] = hits.get(key, 0) + 1

    return on_step


def collect_struct_logs(
    struct_logs: Iterable[dict[str, Any]],
    metadata: InstrumentationMetadata,
    hits: HitRecord | None = None,
    opcode: str = PUSH_FAMILY,
) -> HitRecord:
    """Feed a whole struct-log trace through a collector."""
    hits = {} if hits is None else hits
    on_step = create_collector(metadata, hits, opcode)
    steps = 0
    for log in struct_logs:
        on_step(TraceStep.from_struct_log(log))
        steps += 1
    logger.debug("Collected %d probe hashes from %d steps", len(hits), steps)
    return hits
