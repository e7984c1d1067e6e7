"""gRPC transport carrying named channel packets in both directions."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Iterator, Optional

import grpc

from .channel_proto import EXCHANGE_PATH, ChannelPacket
from .errors import ChannelClosed, RemoteConnectionError

LOGGER = logging.getLogger("remote_ui.transport")

MAX_GRPC_MESSAGE_BYTES = 64 * 1024 * 1024

PacketHandler = Callable[[str, bytes], Any]

_END_OF_STREAM = object()


class GrpcTransport:
    """Bidirectional ``ChannelExchange/Exchange`` stream.

    Outbound packets are queued by :meth:`send` and drained by the gRPC request
    iterator. Inbound packets are delivered on the ``channel-rx`` thread.
    """

    def __init__(self, host: str, port: int, max_message_bytes: int = MAX_GRPC_MESSAGE_BYTES) -> None:
        self.address = f"{host}:{port}"
        self._max_message_bytes = max_message_bytes
        self._lock = threading.Lock()
        self._channel: Optional[grpc.Channel] = None
        self._call: Optional[Any] = None
        self._thread: Optional[threading.Thread] = None
        self._outbox: "queue.Queue[Any]" = queue.Queue()
        self._closed = False
        self._stream_done = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed or self._stream_done.is_set()

    def connect(self, timeout: float = 5.0) -> None:
        options = [
            ("grpc.max_send_message_length", self._max_message_bytes),
            ("grpc.max_receive_message_length", self._max_message_bytes),
        ]
        channel = grpc.insecure_channel(self.address, options=options)
        try:
            grpc.channel_ready_future(channel).result(timeout=timeout)
        except grpc.FutureTimeoutError:
            channel.close()
            raise RemoteConnectionError(f"Unable to connect to server {self.address}") from None
        with self._lock:
            if self._channel is not None:
                self._channel.close()
            self._channel = channel
        LOGGER.info("Connected to server %s", self.address)

    def start(self, on_packet: PacketHandler) -> None:
        with self._lock:
            if self._channel is None:
                raise RemoteConnectionError("Transport is not connected")
            exchange = self._channel.stream_stream(
                EXCHANGE_PATH,
                request_serializer=ChannelPacket.SerializeToString,
                response_deserializer=ChannelPacket.FromString,
            )
            self._call = exchange(self._outgoing())
            call = self._call
        self._thread = threading.Thread(target=self._receive_loop, args=(call, on_packet), name="channel-rx", daemon=True)
        self._thread.start()

    def send(self, name: str, payload: bytes) -> None:
        if self.closed:
            raise ChannelClosed(f"Transport to {self.address} is closed")
        self._outbox.put(ChannelPacket(name=name, payload=bytes(payload)))

    def _outgoing(self) -> Iterator[Any]:
        while True:
            packet = self._outbox.get()
            if packet is _END_OF_STREAM:
                return
            yield packet

    def _receive_loop(self, call: Any, on_packet: PacketHandler) -> None:
        try:
            for packet in call:
                try:
                    on_packet(packet.name, bytes(packet.payload))
                except Exception as exc:  # pragma: no cover - dispatch contains its own failures
                    LOGGER.exception("Failed to handle packet on %r: %s", packet.name, exc)
        except grpc.RpcError as exc:
            if not (self._closed and exc.code() == grpc.StatusCode.CANCELLED):
                LOGGER.warning("Channel stream failed: %s", exc)
        finally:
            self._stream_done.set()
            LOGGER.info("Channel stream to %s ended", self.address)

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        return self._stream_done.wait(timeout)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            call, channel, thread = self._call, self._channel, self._thread
            self._call = None
            self._channel = None
        self._outbox.put(_END_OF_STREAM)
        if call is not None:
            call.cancel()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2)
        if channel is not None:
            channel.close()
