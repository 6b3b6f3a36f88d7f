#!/usr/bin/env python3
"""
Histogram Report Rendering

Serializes a HashTable into one text blob:

    word: count\\n
    word: count\\n
    ...

Lines follow the table traversal order (bucket index ascending, then chain
order). The blob is built in a buffer that starts at a fixed capacity and
doubles whenever the next line might not fit.
"""

from dataclasses import dataclass
from typing import List, Optional

from .hashtable import HashTable
from .models import RENDER_INITIAL_CAPACITY, STR_MAX_LEN, AllocationError


# =============================================================================
# Constants
# =============================================================================

SEPARATOR = b": "

# Digits of a 64-bit count
COUNT_MAX_DIGITS = 20

# Longest line a tokenizer-produced word can render to
LINE_MARGIN = STR_MAX_LEN + len(SEPARATOR) + COUNT_MAX_DIGITS + 1


# =============================================================================
# Report
# =============================================================================

@dataclass(frozen=True)
class Report:
    """Immutable snapshot of a rendered table."""
    data: bytes
    capacity: int = 0
    grow_count: int = 0

    @property
    def length(self) -> int:
        return len(self.data)

    @property
    def text(self) -> str:
        return self.data.decode("latin-1")

    def lines(self) -> List[str]:
        return self.text.splitlines()

    def read(self, offset: int, size: int) -> bytes:
        """
        Copy at most size bytes starting at offset.

        Returns:
            The bytes copied; empty once offset reaches the end.
        """
        if offset < 0 or size < 0:
            raise ValueError(f"Invalid read: offset={offset}, size={size}")
        if offset >= len(self.data):
            return b""
        return self.data[offset:offset + size]


# =============================================================================
# Render Buffer
# =============================================================================

class RenderBuffer:
    """Byte buffer with explicit capacity doubling."""

    def __init__(self, capacity: int = RENDER_INITIAL_CAPACITY, margin: int = LINE_MARGIN):
        if capacity < 1:
            raise ValueError(f"Render capacity must be positive, got {capacity}")
        try:
            self._storage: Optional[bytearray] = bytearray(capacity)
        except MemoryError as e:
            raise AllocationError(f"Cannot allocate {capacity} byte render buffer") from e
        self.capacity = capacity
        self.margin = margin
        self.length = 0
        self.grow_count = 0

    def _grow(self):
        new_capacity = self.capacity * 2
        try:
            storage = bytearray(new_capacity)
        except MemoryError as e:
            self.release()
            raise AllocationError(f"Cannot grow render buffer to {new_capacity} bytes") from e

        storage[:self.length] = self._storage[:self.length]
        self._storage = storage
        self.capacity = new_capacity
        self.grow_count += 1

    def append(self, line: bytes):
        """Append a line, growing first if it might not fit."""
        if self._storage is None:
            raise AllocationError("Render buffer has been released")

        needed = max(self.margin, len(line))
        while self.length + needed > self.capacity:
            self._grow()

        end = self.length + len(line)
        self._storage[self.length:end] = line
        self.length = end

    def getvalue(self) -> bytes:
        if self._storage is None:
            raise AllocationError("Render buffer has been released")
        return bytes(self._storage[:self.length])

    def release(self):
        self._storage = None
        self.length = 0


# =============================================================================
# Rendering
# =============================================================================

def format_line(key: bytes, count: int) -> bytes:
    return key + SEPARATOR + str(count).encode("ascii") + b"\n"


def render(table: HashTable, initial_capacity: int = RENDER_INITIAL_CAPACITY) -> Report:
    """
    Render every (word, count) pair of a table.

    Args:
        table: Table to serialize.
        initial_capacity: Starting buffer capacity in bytes.

    Returns:
        Report snapshot; later table changes are not reflected.

    Raises:
        AllocationError: A buffer allocation failed. Nothing partial is
            returned.
    """
    buf = RenderBuffer(initial_capacity)
    for entry in table.entries():
        buf.append(format_line(entry.key, entry.count))

    report = Report(data=buf.getvalue(), capacity=buf.capacity, grow_count=buf.grow_count)
    buf.release()
    return report
