"""Shared fixtures for the remote control client tests."""

from __future__ import annotations

import threading
from typing import List, Tuple

import pytest

from remote_ui import protocol
from remote_ui.channels import PacketDemuxer, PacketMuxer
from remote_ui.errors import ChannelClosed


class RecordingTransport:
    """Collects sent packets in memory instead of writing to a socket."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, bytes]] = []
        self.closed = False
        self._lock = threading.Lock()

    def send(self, name: str, payload: bytes) -> None:
        if self.closed:
            raise ChannelClosed("recording transport closed")
        with self._lock:
            self.sent.append((name, payload))

    def values(self, channel: str) -> list:
        codec = protocol.codec_for(channel)
        return [codec.decode(payload) for name, payload in self.sent if name == channel]

    def count(self, channel: str) -> int:
        return sum(1 for name, _ in self.sent if name == channel)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def muxer(transport: RecordingTransport) -> PacketMuxer:
    return PacketMuxer(transport)


@pytest.fixture
def demuxer() -> PacketDemuxer:
    return PacketDemuxer()
