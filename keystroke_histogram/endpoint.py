#!/usr/bin/env python3
"""
Report Endpoint

Read-only, file-like access to the rendered histogram.

Session Flow:
    1. open()  - render the table once and cache the report
    2. read()  - partial reads from the cached report (offset, size)
    3. close() - release the cached report

Only one session may be open at a time; a second open is rejected with
EndpointBusyError. Endpoints are registered by name in an EndpointRegistry.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .models import EndpointBusyError, HistogramError, RegistrationError
from .render import Report


# =============================================================================
# Session
# =============================================================================

class ReportSession:
    """An open read session over one cached report."""

    def __init__(self, report: Report):
        self.report: Optional[Report] = report
        self.bytes_read = 0

    @property
    def length(self) -> int:
        return self.report.length if self.report else 0

    def read(self, offset: int, size: int) -> bytes:
        if self.report is None:
            raise HistogramError("Report session is closed")
        data = self.report.read(offset, size)
        self.bytes_read += len(data)
        return data

    def release(self):
        self.report = None


# =============================================================================
# Endpoint
# =============================================================================

class ReportEndpoint:
    """
    Single-session report endpoint.

    The renderer callable is invoked once per open; it must return a Report.
    """

    def __init__(self, name: str, renderer: Callable[[], Report]):
        self.name = name
        self._renderer = renderer
        self._lock = threading.Lock()
        self._session: Optional[ReportSession] = None
        self.registered = False
        self.logger = logging.getLogger("ReportEndpoint")

        # Statistics
        self.open_count = 0
        self.busy_count = 0

    @property
    def is_open(self) -> bool:
        return self._session is not None

    def open(self) -> ReportSession:
        """
        Render the table and start a session.

        Raises:
            EndpointBusyError: A session is already open.
            HistogramError: The endpoint is not registered.
            AllocationError: Rendering failed; no session is opened.
        """
        with self._lock:
            if not self.registered:
                raise HistogramError(f"Endpoint '{self.name}' is not registered")
            if self._session is not None:
                self.busy_count += 1
                raise EndpointBusyError(f"Endpoint '{self.name}' already has an open session")

            self._session = ReportSession(self._renderer())
            self.open_count += 1

        self.logger.debug(f"[{self.name}] opened, {self._session.length} bytes")
        return self._session

    def read(self, offset: int, size: int) -> bytes:
        """
        Read from the open session.

        Args:
            offset: Start position in the report.
            size: Maximum bytes to return.

        Returns:
            Bytes copied; empty at end of data.
        """
        with self._lock:
            if self._session is None:
                raise HistogramError(f"Endpoint '{self.name}' has no open session")
            return self._session.read(offset, size)

    def close(self):
        """Release the cached report. No-op without an open session."""
        with self._lock:
            if self._session is None:
                return
            self._session.release()
            self._session = None

        self.logger.debug(f"[{self.name}] closed")

    @contextmanager
    def session(self) -> Iterator[ReportSession]:
        session = self.open()
        try:
            yield session
        finally:
            self.close()

    def read_all(self, chunk_size: int = 4096) -> bytes:
        """Open, read the whole report in chunks, close."""
        chunks = []
        with self.session() as session:
            offset = 0
            while True:
                chunk = session.read(offset, chunk_size)
                if not chunk:
                    break
                chunks.append(chunk)
                offset += len(chunk)
        return b"".join(chunks)


# =============================================================================
# Registry
# =============================================================================

class EndpointRegistry:
    """Namespace of registered report endpoints."""

    def __init__(self):
        self._endpoints: Dict[str, ReportEndpoint] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger("EndpointRegistry")

    def register(self, endpoint: ReportEndpoint):
        """
        Register an endpoint under its name.

        Raises:
            RegistrationError: The name is empty or already taken.
        """
        with self._lock:
            if not endpoint.name:
                raise RegistrationError("Endpoint name must not be empty")
            if endpoint.name in self._endpoints:
                raise RegistrationError(f"Endpoint '{endpoint.name}' already registered")
            self._endpoints[endpoint.name] = endpoint
            endpoint.registered = True

        self.logger.info(f"Endpoint registered: {endpoint.name}")

    def unregister(self, endpoint: ReportEndpoint):
        """Close any open session and remove the endpoint."""
        endpoint.close()
        with self._lock:
            if self._endpoints.get(endpoint.name) is endpoint:
                del self._endpoints[endpoint.name]
            endpoint.registered = False

        self.logger.info(f"Endpoint unregistered: {endpoint.name}")

    def get(self, name: str) -> Optional[ReportEndpoint]:
        return self._endpoints.get(name)

    def names(self) -> List[str]:
        return sorted(self._endpoints)
