#!/usr/bin/env python3
"""
Character Sources

Key events reach the histogram over a pypubsub topic:

    pub.sendMessage("histogram.keyboard", event=KeyEvent("a", is_press=True))

CharacterSource publishes events typed locally (CLI input, REST API).
MeshKeystrokeSource forwards text messages received by a Meshtastic device:
each message is replayed as key presses followed by a newline, so the end of
a message always ends a word.
"""

import logging
from typing import Callable, List, Optional

from pubsub import pub

from .models import KeyEvent, RegistrationError, SourceConfig


# =============================================================================
# Constants
# =============================================================================

KEYBOARD_TOPIC = "histogram.keyboard"

# Topic published by the meshtastic package for TEXT_MESSAGE_APP packets
MESH_TEXT_TOPIC = "meshtastic.receive.text"


def _key_event_spec(event=None):
    """Message data of the keyboard topic: event is a KeyEvent."""


# =============================================================================
# Local Source
# =============================================================================

class CharacterSource:
    """
    Publishes key events on the keyboard topic.

    Listeners are called synchronously from publish() with a single keyword
    argument, event.
    """

    def __init__(self, topic: str = KEYBOARD_TOPIC):
        self.topic = topic
        self.logger = logging.getLogger("CharacterSource")
        self._listeners: List[Callable] = []

        # Fix the message data spec before anyone subscribes or publishes
        pub.getDefaultTopicMgr().getOrCreateTopic(topic, _key_event_spec)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def register(self, listener: Callable):
        """
        Subscribe a listener to key events.

        Raises:
            RegistrationError: pypubsub refused the listener.
        """
        try:
            pub.subscribe(listener, self.topic)
        except Exception as e:
            raise RegistrationError(f"Cannot subscribe to {self.topic}: {e}") from e

        self._listeners.append(listener)
        self.logger.debug(f"Listener registered on {self.topic}")

    def unregister(self, listener: Callable):
        """Unsubscribe a listener. Unknown listeners are ignored."""
        if pub.isSubscribed(listener, self.topic):
            pub.unsubscribe(listener, self.topic)
        if listener in self._listeners:
            self._listeners.remove(listener)
            self.logger.debug(f"Listener unregistered from {self.topic}")

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    def publish(self, event: Optional[KeyEvent]):
        pub.sendMessage(self.topic, event=event)

    def press(self, character):
        self.publish(KeyEvent(character, is_press=True))

    def release(self, character):
        self.publish(KeyEvent(character, is_press=False))

    def type_text(self, text: str):
        """Press and release every character of text in order."""
        for ch in text:
            self.press(ch)
            self.release(ch)


# =============================================================================
# Meshtastic Source
# =============================================================================

class MeshKeystrokeSource(CharacterSource):
    """
    Keystrokes typed on remote Meshtastic nodes.

    The serial connection is opened when the first listener registers and
    closed when the last one leaves.
    """

    def __init__(self, config: SourceConfig, topic: str = KEYBOARD_TOPIC):
        super().__init__(topic)
        self.config = config
        self.logger = logging.getLogger("MeshKeystrokeSource")
        self.interface = None
        self._subscribed = False

        # Statistics
        self.messages_received = 0

    def register(self, listener: Callable):
        super().register(listener)
        if self.interface is not None:
            return

        try:
            self.connect()
        except RegistrationError:
            super().unregister(listener)
            raise

    def unregister(self, listener: Callable):
        super().unregister(listener)
        if not self._listeners:
            self.disconnect()

    # -------------------------------------------------------------------------
    # Connection Management
    # -------------------------------------------------------------------------

    def connect(self):
        """
        Connect to the Meshtastic device and subscribe to text messages.

        Raises:
            RegistrationError: Package missing or connection failed.
        """
        try:
            import meshtastic.serial_interface
        except ImportError as e:
            raise RegistrationError("meshtastic package not installed") from e

        if not self._subscribed:
            pub.subscribe(self._on_text, MESH_TEXT_TOPIC)
            self._subscribed = True

        try:
            if self.config.device_port:
                self.logger.info(f"Connecting to {self.config.device_port}...")
                self.interface = meshtastic.serial_interface.SerialInterface(
                    devPath=self.config.device_port
                )
            else:
                self.logger.info("Auto-detecting device...")
                self.interface = meshtastic.serial_interface.SerialInterface()
        except Exception as e:
            self._unsubscribe()
            raise RegistrationError(f"Connection failed: {e}") from e

        self.logger.info("Connected to Meshtastic device")

    def disconnect(self):
        """Close the device connection."""
        self._unsubscribe()
        if self.interface:
            self.interface.close()
            self.interface = None
            self.logger.info("Disconnected from Meshtastic device")

    def _unsubscribe(self):
        if self._subscribed:
            pub.unsubscribe(self._on_text, MESH_TEXT_TOPIC)
            self._subscribed = False

    # -------------------------------------------------------------------------
    # Event Handlers
    # -------------------------------------------------------------------------

    def _on_text(self, packet, interface):
        """Replay a received text message as key presses."""
        if not isinstance(packet, dict):
            self.logger.warning("Ignoring malformed text packet")
            return

        channel = packet.get("channel", 0)
        if self.config.channel_index is not None and channel != self.config.channel_index:
            return

        text = (packet.get("decoded") or {}).get("text")
        if not text:
            return

        self.messages_received += 1
        self.logger.debug(f"[TEXT] {packet.get('fromId', 'unknown')}: {len(text)} chars")
        self.type_text(text + "\n")
