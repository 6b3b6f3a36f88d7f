#!/usr/bin/env python3
"""
Word Hash Table

Separate-chaining hash table mapping word bytes to an occurrence count.

Layout:
    buckets[0]  -> None
    buckets[1]  -> WordEntry("the", 4) -> WordEntry("cat", 1)
    ...
    buckets[n-1]

- Bucket index is jenkins_hash(key) % buckets_nb
- New entries are prepended, so a chain is ordered most-recent-first
- The bucket array is fixed at construction and never resized
- Entries are never removed individually, only by destroy()
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Union

from .models import HT_BUCKETS_NB, AllocationError, HistogramError


# =============================================================================
# Constants
# =============================================================================

HASH_MASK = 0xFFFFFFFF

Word = Union[bytes, bytearray, memoryview, str]


# =============================================================================
# Hashing
# =============================================================================

def jenkins_hash(key: bytes) -> int:
    """
    Jenkins one-at-a-time hash.

    Args:
        key: Raw key bytes.

    Returns:
        Unsigned 32-bit hash.
    """
    h = 0
    for byte in key:
        h = (h + byte) & HASH_MASK
        h = (h + (h << 10)) & HASH_MASK
        h ^= h >> 6
    h = (h + (h << 3)) & HASH_MASK
    h ^= h >> 11
    h = (h + (h << 15)) & HASH_MASK
    return h


def to_key(word: Word) -> bytes:
    """Return an independent bytes copy of a word."""
    if isinstance(word, str):
        return word.encode("latin-1")
    return bytes(word)


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class WordEntry:
    """One word in a bucket chain."""
    key: bytes
    count: int = 1
    next: Optional["WordEntry"] = None


# =============================================================================
# Hash Table
# =============================================================================

class HashTable:
    """
    Word -> count map with a fixed number of chained buckets.
    """

    def __init__(self, buckets_nb: int = HT_BUCKETS_NB):
        """
        Allocate the bucket array.

        Args:
            buckets_nb: Number of buckets.

        Raises:
            ValueError: buckets_nb is not positive.
            AllocationError: The bucket array could not be allocated.
        """
        if buckets_nb < 1:
            raise ValueError(f"buckets_nb must be positive, got {buckets_nb}")

        self.logger = logging.getLogger("HashTable")
        try:
            self.buckets: List[Optional[WordEntry]] = [None] * buckets_nb
        except MemoryError as e:
            raise AllocationError(f"Cannot allocate {buckets_nb} buckets") from e

        self.buckets_nb = buckets_nb
        self._size = 0
        self._destroyed = False

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def bucket_index(self, word: Word) -> int:
        """Bucket a word lands in."""
        return jenkins_hash(to_key(word)) % self.buckets_nb

    def _find(self, head: Optional[WordEntry], key: bytes) -> Optional[WordEntry]:
        item = head
        while item is not None:
            if item.key == key:
                return item
            item = item.next
        return None

    def count(self, word: Word) -> int:
        """Occurrences of a word, 0 if never recorded."""
        if self._destroyed:
            return 0
        key = to_key(word)
        item = self._find(self.buckets[self.bucket_index(key)], key)
        return item.count if item else 0

    def __contains__(self, word: Word) -> bool:
        return self.count(word) > 0

    def __len__(self) -> int:
        return self._size

    @property
    def total(self) -> int:
        """Sum of all counts."""
        return sum(item.count for item in self.entries())

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def increment(self, word: Word) -> int:
        """
        Increment the count of a word, creating it with count 1 if absent.

        The table stores its own copy of the key; the caller's buffer is
        neither kept nor modified.

        Args:
            word: Word to record.

        Returns:
            The word's count after the increment.

        Raises:
            ValueError: Empty word.
            AllocationError: A new entry could not be allocated. The table
                is left unchanged.
            HistogramError: The table has been destroyed.
        """
        if self._destroyed:
            raise HistogramError("Hash table has been destroyed")

        key = to_key(word)
        if not key:
            raise ValueError("Cannot record an empty word")

        index = jenkins_hash(key) % self.buckets_nb
        head = self.buckets[index]

        item = self._find(head, key)
        if item is not None:
            item.count += 1
            return item.count

        try:
            item = WordEntry(key=key, count=1, next=head)
        except MemoryError as e:
            raise AllocationError(f"Cannot allocate entry for {key!r}") from e

        self.buckets[index] = item
        self._size += 1
        return 1

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def chain(self, index: int) -> Iterator[WordEntry]:
        """Entries of one bucket, chain head first."""
        if self._destroyed:
            return
        item = self.buckets[index]
        while item is not None:
            yield item
            item = item.next

    def entries(self) -> Iterator[WordEntry]:
        """All entries, bucket index ascending then chain order."""
        if self._destroyed:
            return
        for index in range(self.buckets_nb):
            yield from self.chain(index)

    def dump(self):
        """Log every non-empty bucket at DEBUG level."""
        if not self.logger.isEnabledFor(logging.DEBUG):
            return

        for index in range(self.buckets_nb):
            items = [f"{e.key.decode('latin-1')} ({e.count})" for e in self.chain(index)]
            if items:
                self.logger.debug(f"[{index + 1}] = {' -> '.join(items)}")

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def destroy(self):
        """
        Release every chain, then the bucket array.

        Safe to call more than once.
        """
        if self._destroyed:
            return

        released = 0
        for index in range(self.buckets_nb):
            item = self.buckets[index]
            self.buckets[index] = None
            while item is not None:
                item.next, item = None, item.next
                released += 1

        self.buckets = []
        self._size = 0
        self._destroyed = True
        self.logger.debug(f"Released {released} entries")
