"""Stand-in render server speaking the ChannelExchange protocol.

It pushes an initial field of view, then a tile histogram and a gradient HDR
frame on every tick, and logs the parameters the control panel sends.
"""

from __future__ import annotations

import argparse
import logging
import math
import threading
import time
from concurrent import futures
from typing import Any, Iterator, List, Optional

import grpc
import numpy as np

from . import protocol
from .channel_proto import EXCHANGE_METHOD, SERVICE_NAME, ChannelPacket
from .errors import DecodeError
from .frame_sink import FrameHeader
from .transport import MAX_GRPC_MESSAGE_BYTES

LOGGER = logging.getLogger("remote_ui.demo_server")

DEFAULT_FOV_RADIANS = math.radians(60.0)


def gradient_frame(width: int, height: int, phase: float = 0.0) -> np.ndarray:
    """Return ``height x width x 3`` float32 HDR samples, top row first."""
    xs = np.linspace(0.0, 1.0, width, dtype=np.float32)
    ys = np.linspace(0.0, 1.0, height, dtype=np.float32)
    grid_x, grid_y = np.meshgrid(xs, ys)
    frame = np.empty((height, width, 3), dtype=np.float32)
    frame[:, :, 0] = grid_x * 2.0
    frame[:, :, 1] = grid_y * 2.0
    frame[:, :, 2] = 0.5 + 0.5 * math.sin(phase)
    return frame


def tile_counts(tiles: int, phase: float) -> List[int]:
    return [int(200 + 150 * math.sin(phase + i * 0.4)) for i in range(tiles)]


def _packet(name: str, value: Any) -> Any:
    return ChannelPacket(name=name, payload=protocol.codec_for(name).encode(value))


class ChannelExchangeServicer:
    def __init__(self, width: int, height: int, interval: float, chunks: int, tiles: int = 64) -> None:
        self.width = width
        self.height = height
        self.interval = interval
        self.chunks = max(1, chunks)
        self.tiles = tiles
        self.received: List[tuple] = []
        self._lock = threading.Lock()

    def Exchange(self, request_iterator: Iterator[Any], context: grpc.ServicerContext) -> Iterator[Any]:  # noqa: N802
        stop = threading.Event()
        reader = threading.Thread(
            target=self._consume_requests,
            args=(request_iterator, stop),
            name="demo-server-rx",
            daemon=True,
        )
        reader.start()
        yield _packet(protocol.FOV, DEFAULT_FOV_RADIANS)
        tick = 0
        while context.is_active() and not stop.is_set():
            phase = tick * 0.25
            yield _packet(protocol.TILE_HISTOGRAM, tile_counts(self.tiles, phase))
            yield from self._frame_packets(phase)
            tick += 1
            stop.wait(self.interval)
        LOGGER.info("Client stream finished after %d frames", tick)

    def _frame_packets(self, phase: float) -> Iterator[Any]:
        frame = gradient_frame(self.width, self.height, phase).ravel()
        yield _packet(protocol.HDR_HEADER, FrameHeader(self.width, self.height).to_sequence())
        for chunk in np.array_split(frame, self.chunks):
            yield _packet(protocol.HDR_PACKET, chunk)

    def _consume_requests(self, request_iterator: Iterator[Any], stop: threading.Event) -> None:
        try:
            for packet in request_iterator:
                try:
                    value = protocol.codec_for(packet.name).decode(bytes(packet.payload))
                except (KeyError, DecodeError) as exc:
                    LOGGER.warning("Ignoring packet on %r: %s", packet.name, exc)
                    continue
                LOGGER.info("Received %s = %r", packet.name, value)
                with self._lock:
                    self.received.append((packet.name, value))
                if packet.name == protocol.STOP and value:
                    break
        except grpc.RpcError as exc:
            LOGGER.debug("Request stream closed: %s", exc)
        finally:
            stop.set()


def add_ChannelExchangeServicer_to_server(servicer: ChannelExchangeServicer, server: grpc.Server) -> None:  # noqa: N802
    rpc_method_handlers = {
        EXCHANGE_METHOD: grpc.stream_stream_rpc_method_handler(
            servicer.Exchange,
            request_deserializer=ChannelPacket.FromString,
            response_serializer=ChannelPacket.SerializeToString,
        ),
    }
    generic_handler = grpc.method_handlers_generic_handler(SERVICE_NAME, rpc_method_handlers)
    server.add_generic_rpc_handlers((generic_handler,))


def create_server(
    servicer: ChannelExchangeServicer,
    host: str,
    port: int,
    max_workers: int = 4,
    max_message_bytes: int = MAX_GRPC_MESSAGE_BYTES,
) -> tuple[grpc.Server, int]:
    options = [
        ("grpc.max_send_message_length", max_message_bytes),
        ("grpc.max_receive_message_length", max_message_bytes),
    ]
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers), options=options)
    add_ChannelExchangeServicer_to_server(servicer, server)
    bound_port = server.add_insecure_port(f"{host}:{port}")
    return server, bound_port


def serve(host: str, port: int, width: int, height: int, interval: float, chunks: int) -> None:
    servicer = ChannelExchangeServicer(width, height, interval, chunks)
    server, bound_port = create_server(servicer, host, port)
    server.start()
    LOGGER.info("Demo render server listening on %s:%d", host, bound_port)
    try:
        while True:
            time.sleep(86400)
    except KeyboardInterrupt:
        LOGGER.info("Shutting down demo render server")
    finally:
        server.stop(5).wait()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Demo render server for the remote control panel")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=3000, help="Bind port")
    parser.add_argument("--width", type=int, default=320, help="Streamed frame width")
    parser.add_argument("--height", type=int, default=180, help="Streamed frame height")
    parser.add_argument("--interval", type=float, default=0.5, help="Seconds between frames")
    parser.add_argument("--chunks", type=int, default=4, help="Packets per streamed frame")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    serve(args.host, args.port, args.width, args.height, args.interval, args.chunks)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
