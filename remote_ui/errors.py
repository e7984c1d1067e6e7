"""Error types shared by the channel protocol, transport and frame sink."""

from __future__ import annotations


class RemoteConnectionError(ConnectionError):
    """The render server could not be reached."""


class DecodeError(ValueError):
    """An inbound payload does not match the channel's value type."""


class ChannelClosed(RuntimeError):
    """A publish was attempted after outbound sending stopped."""
