"""Named channel multiplexing over a single packet transport.

``PacketMuxer`` sends ``(name, payload)`` pairs out through the transport and
``PacketDemuxer`` routes inbound pairs to the callbacks subscribed to that
name. Subscriptions are owned by the subscriber through the returned
:class:`SubscriptionHandle`; the demuxer only keeps a weak reference to it.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Any, Callable, Dict, List, Protocol

from . import protocol
from .errors import ChannelClosed, DecodeError

LOGGER = logging.getLogger("remote_ui.channels")

PayloadCallback = Callable[[bytes], None]


class PacketSender(Protocol):
    def send(self, name: str, payload: bytes) -> None: ...


class SubscriptionHandle:
    """Keeps a subscription alive for as long as its owner holds it."""

    __slots__ = ("channel", "callback", "__weakref__")

    def __init__(self, channel: str, callback: PayloadCallback) -> None:
        self.channel = channel
        self.callback = callback

    def __repr__(self) -> str:
        return f"SubscriptionHandle(channel={self.channel!r})"


class PacketMuxer:
    def __init__(self, transport: PacketSender) -> None:
        self._transport = transport
        self._lock = threading.Lock()
        self._closed = False
        self.sent_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, channel: str, payload: bytes) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosed(f"Cannot publish on {channel!r}: sender is closed")
            self._transport.send(channel, payload)
            self.sent_count += 1

    def publish_value(self, channel: str, value: Any) -> None:
        spec = protocol.channel_spec(channel)
        if not spec.outbound:
            raise ValueError(f"Channel {channel!r} is inbound only")
        self.publish(channel, spec.codec.encode(value))

    def close(self) -> None:
        with self._lock:
            self._closed = True


class PacketDemuxer:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List["weakref.ref[SubscriptionHandle]"]] = {}

    def subscribe(self, channel: str, callback: PayloadCallback) -> SubscriptionHandle:
        handle = SubscriptionHandle(channel, callback)
        with self._lock:
            self._subscribers.setdefault(channel, []).append(weakref.ref(handle))
        LOGGER.debug("Subscribed to channel %r", channel)
        return handle

    def subscriber_count(self, channel: str) -> int:
        return len(self._live_handles(channel))

    def _live_handles(self, channel: str) -> List[SubscriptionHandle]:
        with self._lock:
            refs = self._subscribers.get(channel)
            if not refs:
                return []
            handles: List[SubscriptionHandle] = []
            alive: List["weakref.ref[SubscriptionHandle]"] = []
            for ref in refs:
                handle = ref()
                if handle is not None:
                    handles.append(handle)
                    alive.append(ref)
            if len(alive) != len(refs):
                self._subscribers[channel] = alive
            return handles

    def dispatch(self, channel: str, payload: bytes) -> int:
        """Invoke every subscriber of ``channel`` in registration order.

        Returns the number of callbacks that completed. Failures are logged and
        contained to the single message and subscriber that raised them.
        """
        handles = self._live_handles(channel)
        if not handles:
            LOGGER.debug("Discarding packet for channel %r with no subscribers", channel)
            return 0
        delivered = 0
        for handle in handles:
            try:
                handle.callback(payload)
            except DecodeError as exc:
                LOGGER.warning("Dropped malformed packet on %r: %s", channel, exc)
                continue
            except Exception as exc:
                LOGGER.exception("Subscriber for %r failed: %s", channel, exc)
                continue
            delivered += 1
        return delivered


def decoding(channel: str, handler: Callable[[Any], None]) -> PayloadCallback:
    """Wrap ``handler`` so it receives the decoded value for ``channel``."""

    value_codec = protocol.codec_for(channel)

    def _callback(payload: bytes) -> None:
        handler(value_codec.decode(payload))

    _callback.__name__ = f"decode_{channel}"
    return _callback

