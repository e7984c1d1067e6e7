"""Assembly, preview and export of the streamed HDR frame."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from . import protocol
from .channels import PacketDemuxer, SubscriptionHandle, decoding

LOGGER = logging.getLogger("remote_ui.frame_sink")

FRAME_CHANNELS = 3


@dataclass(frozen=True)
class FrameHeader:
    width: int
    height: int
    channels: int = FRAME_CHANNELS

    @property
    def sample_count(self) -> int:
        return self.width * self.height * self.channels

    @classmethod
    def from_sequence(cls, values: Sequence[int]) -> "FrameHeader":
        if len(values) != 3:
            raise ValueError(f"Frame header needs [width, height, channels], got {len(values)} values")
        header = cls(int(values[0]), int(values[1]), int(values[2]))
        if header.channels != FRAME_CHANNELS:
            raise ValueError(f"Frame header must describe {FRAME_CHANNELS} channels, got {header.channels}")
        if header.width <= 0 or header.height <= 0:
            raise ValueError(f"Frame header has empty size {header.width}x{header.height}")
        return header

    def to_sequence(self) -> List[int]:
        return [self.width, self.height, self.channels]


EMPTY_HEADER = FrameHeader(0, 0, 0)


def pfm_header(header: FrameHeader) -> bytes:
    return f"PF\n{header.width} {header.height}\n-1.0\n".encode("ascii")


class FrameBufferSink:
    """Holds the latest complete HDR frame received from the renderer.

    Chunks are assembled into a pending array; only when the pending array
    reaches the size announced by its header is it swapped in as the current
    frame. Every mutation and the full PFM write run under ``lock``, so a save
    never sees half of one frame and half of another.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._header = EMPTY_HEADER
        self._buffer = np.empty(0, dtype=np.float32)
        self._pending_header: Optional[FrameHeader] = None
        self._pending: Optional[np.ndarray] = None
        self._pending_filled = 0
        self._frame_count = 0
        self._subscriptions: List[SubscriptionHandle] = []

    def attach(self, demuxer: PacketDemuxer) -> None:
        self._subscriptions = [
            demuxer.subscribe(protocol.HDR_HEADER, decoding(protocol.HDR_HEADER, self._on_header)),
            demuxer.subscribe(protocol.HDR_PACKET, decoding(protocol.HDR_PACKET, self.receive_chunk)),
        ]

    def _on_header(self, values: Sequence[int]) -> None:
        self.receive_header(FrameHeader.from_sequence(values))

    @property
    def frame_count(self) -> int:
        with self.lock:
            return self._frame_count

    @property
    def header(self) -> FrameHeader:
        with self.lock:
            return self._header

    def receive_header(self, header: FrameHeader) -> None:
        with self.lock:
            if self._pending is not None and self._pending_filled:
                LOGGER.debug(
                    "New frame header before previous frame completed (%d/%d samples)",
                    self._pending_filled,
                    self._pending.size,
                )
            self._pending_header = header
            self._pending = np.empty(header.sample_count, dtype=np.float32)
            self._pending_filled = 0

    def receive_chunk(self, samples: Union[Sequence[float], np.ndarray]) -> None:
        chunk = np.asarray(samples, dtype=np.float32).ravel()
        with self.lock:
            if self._pending is None or self._pending_header is None:
                LOGGER.debug("Dropping %d HDR samples received without a header", chunk.size)
                return
            end = self._pending_filled + chunk.size
            if end > self._pending.size:
                LOGGER.warning(
                    "HDR chunk overflows frame (%d > %d samples); discarding partial frame",
                    end,
                    self._pending.size,
                )
                self._pending = None
                self._pending_header = None
                self._pending_filled = 0
                return
            self._pending[self._pending_filled : end] = chunk
            self._pending_filled = end
            if end == self._pending.size:
                self._header = self._pending_header
                self._buffer = self._pending
                self._frame_count += 1
                self._pending = None
                self._pending_header = None
                self._pending_filled = 0

    def set_frame(self, header: FrameHeader, samples: Union[Sequence[float], np.ndarray]) -> None:
        frame = np.array(samples, dtype=np.float32).ravel()
        if frame.size != header.sample_count:
            raise ValueError(f"Frame has {frame.size} samples, header expects {header.sample_count}")
        with self.lock:
            self._header = header
            self._buffer = frame
            self._frame_count += 1

    def current_buffer(self) -> Tuple[FrameHeader, np.ndarray]:
        with self.lock:
            return self._header, self._buffer.copy()

    def preview_rgba(self) -> Optional[np.ndarray]:
        header, frame = self.current_buffer()
        if frame.size == 0:
            return None
        rgb = np.clip(frame.reshape(header.height, header.width, FRAME_CHANNELS), 0.0, 1.0)
        rgba = np.ones((header.height, header.width, 4), dtype=np.float32)
        rgba[:, :, 0:3] = rgb
        return rgba

    def save_as_pfm(self, path: Union[str, Path]) -> bool:
        """Write the current frame as a little-endian portable float map.

        Returns ``False`` without touching the file system when no frame has
        been received yet. The lock is held across the file write, which blocks
        frame reception for the duration of the save.
        """
        with self.lock:
            if self._buffer.size == 0 or self._buffer.size != self._header.sample_count:
                return False
            header = self._header
            rows = self._buffer.reshape(header.height, header.width * FRAME_CHANNELS)
            with open(path, "wb") as handle:
                handle.write(pfm_header(header))
                for row in range(header.height - 1, -1, -1):
                    handle.write(rows[row].astype("<f4").tobytes())
        LOGGER.info("Saved %dx%d HDR frame to %s", header.width, header.height, path)
        return True
