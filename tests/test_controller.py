#!/usr/bin/env python3
"""
Controller tests: lifecycle, key event handling and registration unwinding.
"""

import importlib
import threading

import pytest

from keystroke_histogram import (
    ASCII_DEL,
    AllocationError,
    CharacterSource,
    EndpointRegistry,
    HistogramConfig,
    HistogramController,
    HistogramError,
    HistogramState,
    KeyEvent,
    RegistrationError,
    ReportEndpoint,
)


def report_lines(master):
    return master.endpoint.read_all().decode().splitlines()


# =============================================================================
# Lifecycle
# =============================================================================

def test_initialize_builds_context(controller):
    assert controller.state == HistogramState.READY
    assert controller.table is not None
    assert controller.table.buckets_nb == 128
    assert controller.endpoint.registered
    assert controller.registry.get("histogram") is controller.endpoint
    assert controller.source.listener_count == 1


def test_initialize_twice_is_noop(controller):
    table = controller.table
    assert controller.initialize()
    assert controller.table is table
    assert controller.source.listener_count == 1


def test_teardown_releases_everything(config):
    master = HistogramController(config, setup_logging=False)
    master.initialize()
    table = master.table
    master.endpoint.open()

    master.teardown()
    assert master.state == HistogramState.STOPPED
    assert table.destroyed
    assert master.table is None
    assert master.endpoint is None
    assert master.registry.names() == []
    assert master.source.listener_count == 0

    master.teardown()
    assert master.state == HistogramState.STOPPED


def test_handle_char_before_initialize(config):
    master = HistogramController(config, setup_logging=False)
    with pytest.raises(HistogramError):
        master.handle_char("a")
    with pytest.raises(HistogramError):
        master.render()


def test_config_sizes_are_used():
    config = HistogramConfig(buckets_nb=7, word_max_len=5, log_file="")
    master = HistogramController(config, setup_logging=False)
    master.initialize()
    try:
        master.source.type_text("abc abcd ab ")
        assert master.table.buckets_nb == 7
        assert master.count("abc") == 1
        assert master.count("abcd") == 0
        assert master.count("ab") == 1
    finally:
        master.teardown()


# =============================================================================
# Key Events
# =============================================================================

def test_scenario_hi_there(controller):
    controller.source.type_text("hi there ")
    assert sorted(report_lines(controller)) == ["hi: 1", "there: 1"]


def test_scenario_hi_hi(controller):
    controller.source.type_text("hi hi ")
    assert report_lines(controller) == ["hi: 2"]


def test_release_events_are_ignored(controller):
    for ch in "ab ":
        controller.source.release(ch)
    assert controller.key_events == 0
    assert len(controller.table) == 0


def test_erase_key_through_source(controller):
    for ch in ["a", "b", "c", ASCII_DEL, " "]:
        controller.source.press(ch)
    assert report_lines(controller) == ["ab: 1"]


def test_malformed_events_are_logged_and_ignored(controller, caplog):
    controller.source.publish(None)
    controller.source.publish(KeyEvent(None))
    controller.source.publish(KeyEvent("too long"))
    controller.source.publish(KeyEvent(3.5))
    controller.source.type_text("ok ")

    assert controller.malformed_events == 4
    assert controller.count("ok") == 1
    assert "malformed" in caplog.text


def test_stats(controller):
    controller.source.type_text("one two one " + "x" * 40)
    stats = controller.get_stats()

    assert stats["state"] == "ready"
    assert stats["distinct_words"] == 2
    assert stats["total_words"] == 3
    assert stats["dropped_words"] == 1
    assert stats["pending_length"] == 9
    assert stats["session_open"] is False


def test_lookup_returns_count_and_bucket(controller):
    controller.source.type_text("cat cat ")
    assert controller.lookup("cat") == (2, controller.table.bucket_index("cat"))
    assert controller.lookup("dog")[0] == 0


def test_lookup_after_teardown_fails(controller):
    controller.teardown()
    with pytest.raises(HistogramError):
        controller.lookup("cat")
    assert controller.count("cat") == 0


def test_concurrent_typing_and_rendering(controller):
    def typist():
        for _ in range(200):
            for ch in "tick ":
                controller.handle_char(ch)

    threads = [threading.Thread(target=typist) for _ in range(2)]
    for t in threads:
        t.start()
    for _ in range(20):
        controller.render()
    for t in threads:
        t.join()

    assert controller.count("tick") == 400


# =============================================================================
# Registration Failures
# =============================================================================

class FailingSource(CharacterSource):
    def register(self, listener):
        raise RegistrationError("keyboard unavailable")


def test_source_failure_unwinds(config):
    master = HistogramController(config, source=FailingSource(), setup_logging=False)

    with pytest.raises(RegistrationError):
        master.initialize()

    assert master.state == HistogramState.ERROR
    assert master.table is None
    assert master.endpoint is None
    assert master.registry.names() == []


def test_table_allocation_failure_unwinds(config, monkeypatch):
    def no_memory(buckets_nb):
        raise AllocationError(f"Cannot allocate {buckets_nb} buckets")

    controller_module = importlib.import_module("keystroke_histogram.controller")
    monkeypatch.setattr(controller_module, "HashTable", no_memory)
    master = HistogramController(config, setup_logging=False)

    with pytest.raises(AllocationError):
        master.initialize()

    assert master.state == HistogramState.ERROR
    assert master.table is None
    assert master.tokenizer is None
    assert master.endpoint is None
    assert master.registry.names() == []
    assert master.source.listener_count == 0


def test_endpoint_failure_unwinds(config):
    registry = EndpointRegistry()
    registry.register(ReportEndpoint("histogram", lambda: None))
    source = CharacterSource()
    master = HistogramController(config, source=source, registry=registry, setup_logging=False)

    with pytest.raises(RegistrationError):
        master.initialize()

    assert master.state == HistogramState.ERROR
    assert master.table is None
    assert source.listener_count == 0
    assert registry.names() == ["histogram"]


def test_run_returns_false_when_initialization_fails(config):
    master = HistogramController(config, source=FailingSource(), setup_logging=False)
    assert master.run(poll_interval=0) is False
