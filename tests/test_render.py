#!/usr/bin/env python3
"""
Report rendering tests: line format, traversal order and buffer growth.
"""

import importlib

import pytest

from keystroke_histogram import AllocationError, HashTable, render
from keystroke_histogram.render import LINE_MARGIN, RenderBuffer

# The package re-exports render(), which shadows the submodule attribute
render_module = importlib.import_module("keystroke_histogram.render")


def fill(table, counts):
    for word, n in counts.items():
        for _ in range(n):
            table.increment(word)


# =============================================================================
# Format
# =============================================================================

def test_empty_table_renders_empty_report(table):
    report = render(table)
    assert report.data == b""
    assert report.length == 0
    assert report.lines() == []


def test_cat_dog_lines(table):
    fill(table, {"cat": 2, "dog": 1})
    report = render(table)

    if table.bucket_index("cat") == table.bucket_index("dog"):
        expected = ["dog: 1", "cat: 2"]
    else:
        expected = sorted(["cat: 2", "dog: 1"], key=lambda line: table.bucket_index(line.split(":")[0]))

    assert report.lines() == expected
    assert report.data.endswith(b"\n")
    assert report.length == len(b"cat: 2\ndog: 1\n")


def test_chain_order_within_bucket():
    table = HashTable(1)
    fill(table, {"first": 1, "second": 3, "third": 2})
    assert render(table).text == "third: 2\nsecond: 3\nfirst: 1\n"


def test_length_matches_content(table):
    fill(table, {"alpha": 12, "beta": 1})
    report = render(table)
    assert report.length == len(report.data) == sum(len(line) + 1 for line in report.lines())


# =============================================================================
# Snapshot
# =============================================================================

def test_report_is_a_snapshot(table):
    fill(table, {"before": 1})
    report = render(table)
    table.increment("after")
    table.increment("before")

    assert report.text == "before: 1\n"
    assert "after: 1" in render(table).lines()


def test_report_partial_reads(table):
    fill(table, {"hi": 2})
    report = render(table)

    assert report.read(0, 3) == b"hi:"
    assert report.read(3, 100) == b" 2\n"
    assert report.read(report.length, 10) == b""
    assert report.read(report.length + 5, 10) == b""
    with pytest.raises(ValueError):
        report.read(-1, 1)


# =============================================================================
# Growth
# =============================================================================

def test_growth_matches_presized_buffer():
    table = HashTable()
    fill(table, {f"word{i}": (i % 7) + 1 for i in range(300)})

    grown = render(table)
    presized = render(table, initial_capacity=1 << 16)

    assert grown.grow_count >= 2
    assert presized.grow_count == 0
    assert grown.data == presized.data
    assert grown.length == presized.length
    assert len(grown.lines()) == 300


def test_buffer_grows_before_overflow():
    buf = RenderBuffer(capacity=64, margin=LINE_MARGIN)
    buf.append(b"x" * 10)
    assert buf.grow_count == 0

    # 10 written + margin would pass 64
    buf.append(b"y" * 5)
    assert buf.grow_count == 1
    assert buf.capacity == 128
    assert buf.getvalue() == b"x" * 10 + b"y" * 5


def test_line_longer_than_margin_still_fits():
    buf = RenderBuffer(capacity=16, margin=4)
    line = b"z" * 100
    buf.append(line)
    assert buf.capacity >= 100
    assert buf.getvalue() == line


def test_growth_failure_releases_buffer(monkeypatch):
    table = HashTable()
    fill(table, {f"w{i}": 1 for i in range(200)})
    real_bytearray = bytearray

    def limited(size=0):
        if isinstance(size, int) and size > 1024:
            raise MemoryError()
        return real_bytearray(size)

    monkeypatch.setattr(render_module, "bytearray", limited, raising=False)

    with pytest.raises(AllocationError):
        render(table)


def test_released_buffer_refuses_use():
    buf = RenderBuffer(capacity=32)
    buf.release()
    with pytest.raises(AllocationError):
        buf.append(b"x")
    with pytest.raises(AllocationError):
        buf.getvalue()


def test_invalid_capacity():
    with pytest.raises(ValueError):
        RenderBuffer(capacity=0)
