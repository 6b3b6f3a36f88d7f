#!/usr/bin/env python3
"""
Keystroke Histogram Controller

Owns the whole histogram context and its lifecycle:

    CharacterSource --(KeyEvent)--> HistogramController._on_key
                                        │
                                        ▼
                                  StreamTokenizer -> HashTable
                                                        │
    ReportEndpoint.open() ---- render() ◄───────────────┘

initialize() builds the table, registers the report endpoint and subscribes
to the character source. A failure at any step unwinds the steps already
taken. teardown() undoes everything in reverse order.

One lock serializes key handling against rendering.
"""

import logging
import sys
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

from .endpoint import EndpointRegistry, ReportEndpoint
from .hashtable import HashTable
from .models import (
    HistogramConfig,
    HistogramError,
    HistogramState,
    KeyEvent,
    SourceType,
)
from .render import Report, render
from .source import CharacterSource, MeshKeystrokeSource
from .tokenizer import StreamTokenizer, WordAccumulator


class HistogramController:
    """
    Word histogram over a live keystroke stream.
    """

    def __init__(
        self,
        config: HistogramConfig = None,
        source: CharacterSource = None,
        registry: EndpointRegistry = None,
        setup_logging: bool = True,
    ):
        """
        Initialize the controller. Nothing is allocated or registered
        until initialize().

        Args:
            config: Histogram configuration (defaults if not provided).
            source: Character source (built from config if not provided).
            registry: Endpoint namespace (a private one if not provided).
            setup_logging: Configure the root logger from config.
        """
        self.config = config or HistogramConfig()
        if setup_logging:
            self._setup_logging()

        self.logger = logging.getLogger("HistogramController")
        self.state = HistogramState.STOPPED
        self.running = False

        self.source = source or self._create_source()
        self.registry = registry or EndpointRegistry()

        self.table: Optional[HashTable] = None
        self.tokenizer: Optional[StreamTokenizer] = None
        self.endpoint: Optional[ReportEndpoint] = None

        self._lock = threading.RLock()
        self._source_registered = False

        # Statistics
        self.key_events = 0
        self.malformed_events = 0
        self.started_at = 0.0

    def _setup_logging(self):
        """Configure logging."""
        level = getattr(logging, self.config.log_level.upper())

        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if self.config.log_file:
            handlers.insert(0, logging.FileHandler(self.config.log_file))

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            handlers=handlers,
        )

    def _create_source(self) -> CharacterSource:
        if self.config.source.type == SourceType.MESH:
            return MeshKeystrokeSource(self.config.source)
        return CharacterSource()

    def _set_state(self, state: HistogramState):
        old_state = self.state
        self.state = state
        self.logger.info(f"State: {old_state.value} -> {state.value}")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self) -> bool:
        """
        Build the table and register with the endpoint registry and the
        character source.

        Returns:
            True once ready (also when already initialized).

        Raises:
            AllocationError: The table could not be allocated.
            RegistrationError: Endpoint or source registration failed.
        """
        if self.state == HistogramState.READY:
            return True

        self.logger.info("=" * 60)
        self.logger.info("KEYSTROKE HISTOGRAM INITIALIZING")
        self.logger.info(f"Buckets: {self.config.buckets_nb}")
        self.logger.info(f"Max word length: {self.config.word_max_len - 1}")
        self.logger.info(f"Source: {self.config.source.type.value}")
        self.logger.info("=" * 60)
        self._set_state(HistogramState.STARTING)

        try:
            with self._lock:
                self.table = HashTable(self.config.buckets_nb)
                self.tokenizer = StreamTokenizer(
                    self.table, WordAccumulator(self.config.word_max_len)
                )

            self.endpoint = ReportEndpoint(self.config.report.name, self.render)
            self.registry.register(self.endpoint)

            self.source.register(self._on_key)
            self._source_registered = True

        except HistogramError as e:
            self.logger.error(f"Initialization failed: {e}")
            self._release()
            self._set_state(HistogramState.ERROR)
            raise

        self.started_at = time.time()
        self._set_state(HistogramState.READY)
        self.logger.info("Histogram ready - listening for keystrokes")
        return True

    def teardown(self):
        """
        Unregister from the source and the registry, then destroy the table.

        Safe to call more than once.
        """
        if self.state == HistogramState.STOPPED:
            return

        self.logger.info("Shutting down histogram...")
        self.running = False
        self._release()
        self._set_state(HistogramState.STOPPED)
        self.logger.info("Histogram stopped")

    def _release(self):
        """Undo whatever initialize() managed to do, newest first."""
        if self._source_registered:
            self.source.unregister(self._on_key)
            self._source_registered = False

        if self.endpoint is not None:
            if self.endpoint.registered:
                self.registry.unregister(self.endpoint)
            self.endpoint = None

        with self._lock:
            if self.table is not None:
                self.table.destroy()
            self.table = None
            self.tokenizer = None

    # -------------------------------------------------------------------------
    # Event Handlers
    # -------------------------------------------------------------------------

    def _on_key(self, event=None):
        """Handle a key event from the character source."""
        if not isinstance(event, KeyEvent) or event.character is None:
            self.malformed_events += 1
            self.logger.warning(f"Ignoring malformed key event: {event!r}")
            return

        if not event.is_press:
            return

        try:
            self.handle_char(event.character)
        except (HistogramError, ValueError) as e:
            self.malformed_events += 1
            self.logger.warning(f"Ignoring key event {event!r}: {e}")

    def handle_char(self, character) -> Optional[bytes]:
        """
        Feed one character to the tokenizer.

        Returns:
            The word completed by this character, if any.

        Raises:
            HistogramError: Not initialized.
        """
        with self._lock:
            if self.tokenizer is None:
                raise HistogramError("Histogram is not initialized")

            self.key_events += 1
            word = self.tokenizer.handle_char(character)
            if word is not None:
                self.table.dump()
            return word

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def render(self) -> Report:
        """Render a snapshot of the current histogram."""
        with self._lock:
            if self.table is None:
                raise HistogramError("Histogram is not initialized")
            return render(self.table, self.config.report.initial_capacity)

    def count(self, word) -> int:
        """Occurrences of a word so far."""
        with self._lock:
            return self.table.count(word) if self.table is not None else 0

    def lookup(self, word) -> Tuple[int, int]:
        """
        Count and bucket index of a word.

        Raises:
            HistogramError: Not initialized.
        """
        with self._lock:
            if self.table is None:
                raise HistogramError("Histogram is not initialized")
            return self.table.count(word), self.table.bucket_index(word)

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the histogram."""
        with self._lock:
            table = self.table
            tokenizer = self.tokenizer
            return {
                "state": self.state.value,
                "buckets": self.config.buckets_nb,
                "distinct_words": len(table) if table else 0,
                "total_words": table.total if table else 0,
                "key_events": self.key_events,
                "malformed_events": self.malformed_events,
                "dropped_words": tokenizer.dropped_words if tokenizer else 0,
                "lost_words": tokenizer.lost_words if tokenizer else 0,
                "pending_length": tokenizer.accumulator.length if tokenizer else 0,
                "session_open": self.endpoint.is_open if self.endpoint else False,
                "uptime": time.time() - self.started_at if self.started_at else 0.0,
            }

    # -------------------------------------------------------------------------
    # Public API - Run Loop
    # -------------------------------------------------------------------------

    def run(self, poll_interval: float = 1.0) -> bool:
        """
        Run until interrupted, then tear down.

        Returns:
            False if initialization failed.
        """
        try:
            self.initialize()
        except HistogramError:
            self.logger.error("Initialization failed")
            return False

        self.running = True
        try:
            while self.running:
                time.sleep(poll_interval)
        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
        finally:
            self.teardown()

        return True

    def run_with_api(self, api_host: str = None, api_port: int = None) -> bool:
        """
        Run with the REST API server (blocking).

        Args:
            api_host: Host to bind API server to (uses config if None).
            api_port: Port for API server (uses config if None).
        """
        try:
            from .api import create_api
        except ImportError:
            self.logger.error("API module requires fastapi and uvicorn")
            self.logger.error("Install with: pip3 install fastapi uvicorn")
            return False

        host = api_host or self.config.api.host
        port = api_port or self.config.api.port

        try:
            self.initialize()
        except HistogramError:
            self.logger.error("Initialization failed")
            return False

        app = create_api(self)
        self.running = True

        self.logger.info(f"API server starting on http://{host}:{port}")
        self.logger.info(f"API docs available at http://{host}:{port}/api/docs")

        try:
            import uvicorn
            uvicorn.run(app, host=host, port=port, log_level="info")
        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
        finally:
            self.teardown()

        return True
