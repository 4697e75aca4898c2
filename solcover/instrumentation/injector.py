"""Source rewriter — turns a :class:`ParseResult` into instrumented Solidity.

Every probe is a call ``c_<id>(0x<hash>)`` to a private pure no-op method
injected at the top of its contract. Calling a separate method gives the
hash literal a fresh stack frame, so probes never push a large function
over the stack limit.

Insertions are applied from the highest offset to the lowest: inserting text
only shifts what comes after it, so every offset still pending stays valid.
"""

from __future__ import annotations

import hashlib
import secrets
import threading
from dataclasses import dataclass, field
from typing import Literal

from solcover.core.types import Instrumentation
from solcover.coverage.collector import to_hex
from solcover.instrumentation.injections import (
    BlockDelimiterInjection,
    HashMethodInjection,
    Injection,
    ProbeInjection,
)
from solcover.instrumentation.registrar import ParseResult

HASH_PARAM_TYPE = "bytes32"


@dataclass
class InstrumentationTarget(ParseResult):
    target: str = ""
    instrumented: str = ""
    instrumentations: dict[str, Instrumentation] = field(default_factory=dict)


class HashRegistry:
    """Issues salted probe hashes, never the same one twice per process."""

    def __init__(self) -> None:
        self._issued: set[str] = set()
        self._lock = threading.Lock()

    def issue(self, seed: str) -> tuple[str, str]:
        """Return ``(literal, key)``: the 32-byte hex literal and its lookup key."""
        while True:
            digest = hashlib.sha3_256(f"{seed}{secrets.token_hex(16)}".encode()).hexdigest()
            key = to_hex(digest)
            with self._lock:
                if key not in self._issued:
                    self._issued.add(key)
                    return f"0x{digest}", key


_registry = HashRegistry()


def hash_method_name(target: str, contract: str) -> str:
    return "c_" + hashlib.sha3_256(f"{target}:{contract}".encode()).hexdigest()[:8]


def apply_injections(
    text: str,
    snippets: dict[int, list[str]],
    order: Literal["descending", "ascending"] = "descending",
) -> str:
    """Insert ``snippets`` into ``text`` at their UTF-8 byte offsets.

    Snippets sharing an offset are inserted one after the other at that same
    offset, each in front of the previous one. Only descending order yields
    correct output; ascending is accepted so the difference can be shown.
    """
    data = text.encode("utf-8")
    for offset in sorted(snippets, reverse=order == "descending"):
        for snippet in snippets[offset]:
            data = data[:offset] + snippet.encode("utf-8") + data[offset:]
    return data.decode("utf-8")


def inject(parsed: ParseResult, target: str) -> InstrumentationTarget:
    """Render every injection of ``parsed`` and rewrite its source."""
    instrumentations: dict[str, Instrumentation] = {}
    snippets = {
        offset: [_render(injection, target, instrumentations) for injection in injections]
        for offset, injections in parsed.injections.items()
    }

    return InstrumentationTarget(
        source=parsed.source,
        injections=parsed.injections,
        functions=parsed.functions,
        branches=parsed.branches,
        statements=parsed.statements,
        target=target,
        instrumented=apply_injections(parsed.source, snippets),
        instrumentations=instrumentations,
    )


def _render(injection: Injection, target: str, instrumentations: dict[str, Instrumentation]) -> str:
    if isinstance(injection, BlockDelimiterInjection):
        return injection.delimiter.value

    method = hash_method_name(target, injection.contract)
    if isinstance(injection, HashMethodInjection):
        return f"function {method}({HASH_PARAM_TYPE} c_{method}) private pure {{}}"

    return _render_probe(injection, target, method, instrumentations)


def _render_probe(
    injection: ProbeInjection,
    target: str,
    method: str,
    instrumentations: dict[str, Instrumentation],
) -> str:
    literal, key = _registry.issue(f"{target}:{injection.contract}")
    branch = getattr(injection, "branch", None)
    instrumentations[key] = Instrumentation(
        type=injection.coverage_type,
        id=injection.id,
        target=target,
        branch=branch,
    )

    label = f"{injection.coverage_type.value} {injection.id}"
    if branch is not None:
        label += f":{branch}"
    return f"{method}({literal}); /* {label} */"
