"""Byte-offset bookkeeping for Solidity sources.

solc reports every AST node location as ``"<offset>:<length>:<fileIndex>"``
where offset and length count UTF-8 bytes, not characters. All of the
instrumentation works on the encoded bytes so those offsets can be used
as-is; :class:`SourceIndex` translates them into the 1-based line / 0-based
column positions used by coverage reports.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any

from solcover.core.types import Position, Range


@dataclass(frozen=True)
class SourceLocation:
    """Location from an AST ``src`` field."""
    offset: int = 0
    length: int = 0
    file_index: int = 0

    @classmethod
    def from_src(cls, src: str) -> "SourceLocation":
        """Parse an AST 'src' field like '120:45:0'."""
        parts = src.split(":")
        if len(parts) < 2:
            raise ValueError(f"Malformed src attribute: {src!r}")
        file_index = int(parts[2]) if len(parts) > 2 else 0
        return cls(offset=int(parts[0]), length=int(parts[1]), file_index=file_index)

    @classmethod
    def of(cls, node: dict[str, Any]) -> "SourceLocation":
        return cls.from_src(node.get("src", ""))

    @property
    def start(self) -> int:
        return self.offset

    @property
    def end(self) -> int:
        """Offset of the last byte covered by the node (inclusive)."""
        return self.offset + self.length - 1

    @property
    def stop(self) -> int:
        """Offset one past the last byte covered by the node."""
        return self.offset + self.length


class SourceIndex:
    """Maps UTF-8 byte offsets of a source file to line/column positions."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.data = source.encode("utf-8")
        self._line_starts = [0]
        for i, byte in enumerate(self.data):
            if byte == 0x0A:
                self._line_starts.append(i + 1)

    def position(self, offset: int) -> Position:
        line = bisect_right(self._line_starts, offset)
        return Position(line=line, column=offset - self._line_starts[line - 1])

    def range(self, start: int, stop: int) -> Range:
        return Range(start=self.position(start), end=self.position(stop))

    def find(self, needle: str, start: int = 0) -> int:
        """Byte offset of the first ``needle`` at or after ``start`` (-1 if absent)."""
        return self.data.find(needle.encode("utf-8"), start)
