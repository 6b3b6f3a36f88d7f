#!/usr/bin/env python3
"""
Data Models for the Keystroke Histogram

This module contains the constants, data classes, enums and exceptions
shared by the histogram core, the character sources and the report endpoint.
"""

import yaml
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Union


# =============================================================================
# Constants
# =============================================================================

# Capacity of the word accumulator (terminator slot included)
STR_MAX_LEN = 32

# Number of hash table buckets (never resized)
HT_BUCKETS_NB = 128

# Initial capacity of a render buffer (bytes)
RENDER_INITIAL_CAPACITY = 1024

# Erase key (ASCII DEL)
ASCII_DEL = 0x7F

# Sentinel byte delivered by the keyboard for non-character keys
SENTINEL = 0x01

# Default report endpoint name
DEFAULT_ENDPOINT_NAME = "histogram"


# =============================================================================
# Exceptions
# =============================================================================

class HistogramError(Exception):
    """Base class for histogram errors."""


class AllocationError(HistogramError):
    """Backing storage for the table, an entry or a render buffer could not be allocated."""


class EndpointBusyError(HistogramError):
    """A report session is already open."""


class RegistrationError(HistogramError):
    """A character source or report endpoint could not be registered."""


# =============================================================================
# Enums
# =============================================================================

class HistogramState(Enum):
    """Controller lifecycle states."""
    STOPPED = "stopped"
    STARTING = "starting"
    READY = "ready"
    ERROR = "error"


class SourceType(Enum):
    """Where keystrokes come from."""
    KEYBOARD = "keyboard"
    MESH = "mesh"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class KeyEvent:
    """
    A single key event delivered by a character source.

    The histogram only acts on press events; releases are ignored.
    """
    character: Optional[Union[int, str]]
    is_press: bool = True


@dataclass
class SourceConfig:
    """Character source configuration."""
    type: SourceType = SourceType.KEYBOARD
    device_port: str = ""  # Meshtastic serial port, auto-detect if empty
    device_timeout: int = 30
    channel_index: Optional[int] = None  # None accepts text from every channel


@dataclass
class ReportConfig:
    """Report endpoint configuration."""
    name: str = DEFAULT_ENDPOINT_NAME
    initial_capacity: int = RENDER_INITIAL_CAPACITY


@dataclass
class ApiConfig:
    """API server configuration."""
    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class HistogramConfig:
    """Configuration for the histogram controller."""
    # Table and tokenizer
    buckets_nb: int = HT_BUCKETS_NB
    word_max_len: int = STR_MAX_LEN

    source: SourceConfig = field(default_factory=SourceConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    # Logging
    log_level: str = "INFO"
    log_file: str = "histogram.log"

    @classmethod
    def from_yaml(cls, path: str) -> "HistogramConfig":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict) -> "HistogramConfig":
        """Build configuration from a parsed YAML document."""
        hist = data.get("histogram") or {}
        src = data.get("source") or {}
        report = data.get("report") or {}
        api_data = data.get("api") or {}
        log = data.get("logging") or {}

        return cls(
            buckets_nb=hist.get("buckets", HT_BUCKETS_NB),
            word_max_len=hist.get("word_max_len", STR_MAX_LEN),
            source=SourceConfig(
                type=SourceType(src.get("type", SourceType.KEYBOARD.value)),
                device_port=src.get("device_port", ""),
                device_timeout=src.get("device_timeout", 30),
                channel_index=src.get("channel_index"),
            ),
            report=ReportConfig(
                name=report.get("name", DEFAULT_ENDPOINT_NAME),
                initial_capacity=report.get("initial_capacity", RENDER_INITIAL_CAPACITY),
            ),
            api=ApiConfig(
                enabled=api_data.get("enabled", False),
                host=api_data.get("host", "0.0.0.0"),
                port=api_data.get("port", 8080),
            ),
            log_level=log.get("level", "INFO"),
            log_file=log.get("file", "histogram.log"),
        )

    def to_dict(self) -> Dict:
        """Convert config to dictionary."""
        return {
            "histogram": {
                "buckets": self.buckets_nb,
                "word_max_len": self.word_max_len,
            },
            "source": {
                "type": self.source.type.value,
                "device_port": self.source.device_port,
                "device_timeout": self.source.device_timeout,
                "channel_index": self.source.channel_index,
            },
            "report": {
                "name": self.report.name,
                "initial_capacity": self.report.initial_capacity,
            },
            "api": {
                "enabled": self.api.enabled,
                "host": self.api.host,
                "port": self.api.port,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
            },
        }
