#!/usr/bin/env python3
"""
Streaming Word Tokenizer

Turns single-character key events into completed words and records each
word in a HashTable.

The tokenizer is a two-state machine, idle (empty accumulator) and
accumulating, handling exactly one character per call:

    DEL           -> drop last pending character
    word char     -> append if printable ('!'..'~'), ignore otherwise
    boundary      -> emit pending word (if any), reset
    overflow      -> discard pending word, reset

Memory is bounded by the accumulator capacity whatever the stream length.
"""

import logging
from typing import Iterable, Optional, Union

from .hashtable import HashTable
from .models import ASCII_DEL, SENTINEL, STR_MAX_LEN, AllocationError


# =============================================================================
# Character Classes
# =============================================================================

WHITESPACE = frozenset(b" \t\n\r")

PRINTABLE_MIN = ord("!")
PRINTABLE_MAX = ord("~")

Char = Union[int, str, bytes]


def char_code(c: Char) -> int:
    """Normalize a 1-char str, a 1-byte bytes or an int to its code."""
    if isinstance(c, int):
        return c
    if not isinstance(c, (str, bytes, bytearray)):
        raise ValueError(f"Unsupported character type: {type(c).__name__}")
    if len(c) != 1:
        raise ValueError(f"Expected a single character, got {c!r}")
    return ord(c) if isinstance(c, str) else c[0]


def is_word_char(code: int) -> bool:
    """Anything that is neither the sentinel nor whitespace."""
    return code != SENTINEL and code not in WHITESPACE


def is_printable(code: int) -> bool:
    return PRINTABLE_MIN <= code <= PRINTABLE_MAX


# =============================================================================
# Word Accumulator
# =============================================================================

class WordAccumulator:
    """Fixed-capacity buffer holding the word being typed."""

    def __init__(self, capacity: int = STR_MAX_LEN):
        if capacity < 2:
            raise ValueError(f"Accumulator capacity must be at least 2, got {capacity}")
        self.capacity = capacity
        self._storage = bytearray(capacity)
        self.length = 0

    @property
    def is_empty(self) -> bool:
        return self.length == 0

    @property
    def full(self) -> bool:
        """No room left for another character plus a terminator."""
        return self.length + 1 >= self.capacity

    def push(self, code: int):
        self._storage[self.length] = code
        self.length += 1

    def pop(self):
        if self.length > 0:
            self.length -= 1

    def peek(self) -> bytes:
        """Copy of the pending characters."""
        return bytes(self._storage[:self.length])

    def take(self) -> bytes:
        """Copy out the pending word and reset."""
        word = self.peek()
        self.reset()
        return word

    def reset(self):
        self.length = 0


# =============================================================================
# Stream Tokenizer
# =============================================================================

class StreamTokenizer:
    """
    Feeds characters into a WordAccumulator and records completed words.
    """

    def __init__(self, table: HashTable, accumulator: WordAccumulator = None):
        """
        Args:
            table: Table receiving completed words.
            accumulator: Pending-word buffer (one of STR_MAX_LEN is created
                if not provided).
        """
        self.table = table
        self.accumulator = accumulator or WordAccumulator()
        self.logger = logging.getLogger("StreamTokenizer")

        # Statistics
        self.words_emitted = 0
        self.dropped_words = 0  # Overflowed the accumulator
        self.lost_words = 0  # Table could not allocate an entry

    def handle_char(self, c: Char) -> Optional[bytes]:
        """
        Process one character.

        Args:
            c: Character as int code, 1-char str or 1-byte bytes.

        Returns:
            The completed word when this character ended one, else None.
        """
        code = char_code(c)
        acc = self.accumulator
        word = None

        if code == ASCII_DEL:
            acc.pop()
        elif is_word_char(code):
            if is_printable(code):
                acc.push(code)
        elif not acc.is_empty:
            word = acc.take()
            self._record(word)

        if acc.full:
            self.logger.debug(f"Word too long, discarding {acc.peek()!r}")
            acc.reset()
            self.dropped_words += 1

        return word

    def feed(self, chars: Iterable[Char]) -> int:
        """
        Process a sequence of characters.

        Returns:
            Number of words completed.
        """
        completed = 0
        for c in chars:
            if self.handle_char(c) is not None:
                completed += 1
        return completed

    def _record(self, word: bytes):
        try:
            count = self.table.increment(word)
        except AllocationError as e:
            self.lost_words += 1
            self.logger.warning(f"Word not recorded: {e}")
            return

        self.words_emitted += 1
        self.logger.debug(f"Word {word!r} -> {count}")
