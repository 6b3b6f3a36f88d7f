"""
Keystroke Histogram

Word frequency histogram built incrementally from a live stream of
keystrokes, rendered to a `word: count` text report on demand.

Architecture:
    Character source (local keyboard topic or Meshtastic text messages)
        │
        ├── KeyEvent over pypubsub
        ▼
    HistogramController
        │
        ├── StreamTokenizer (bounded word accumulator)
        ▼
    HashTable (Jenkins one-at-a-time, chained buckets)
        │
        ├── render()
        ▼
    ReportEndpoint (single-session open / read / close)

Usage:
    from keystroke_histogram import HistogramController, HistogramConfig

    config = HistogramConfig.from_yaml("config.yaml")
    master = HistogramController(config)
    master.initialize()

    master.source.type_text("hi there hi ")
    print(master.endpoint.read_all().decode())

    master.teardown()
"""

from .controller import HistogramController
from .endpoint import EndpointRegistry, ReportEndpoint, ReportSession
from .hashtable import HashTable, WordEntry, jenkins_hash
from .models import (
    ASCII_DEL,
    HT_BUCKETS_NB,
    SENTINEL,
    STR_MAX_LEN,
    AllocationError,
    EndpointBusyError,
    HistogramConfig,
    HistogramError,
    HistogramState,
    KeyEvent,
    RegistrationError,
)
from .render import Report, render
from .source import CharacterSource, MeshKeystrokeSource
from .tokenizer import StreamTokenizer, WordAccumulator

__version__ = "0.1.0"
__all__ = [
    # Controller
    "HistogramController",
    "HistogramConfig",
    "HistogramState",
    # Core
    "HashTable",
    "WordEntry",
    "jenkins_hash",
    "StreamTokenizer",
    "WordAccumulator",
    "Report",
    "render",
    # Collaborators
    "CharacterSource",
    "MeshKeystrokeSource",
    "KeyEvent",
    "EndpointRegistry",
    "ReportEndpoint",
    "ReportSession",
    # Constants
    "ASCII_DEL",
    "SENTINEL",
    "STR_MAX_LEN",
    "HT_BUCKETS_NB",
    # Errors
    "HistogramError",
    "AllocationError",
    "EndpointBusyError",
    "RegistrationError",
]
