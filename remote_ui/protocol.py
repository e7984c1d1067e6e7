"""Channel names and the payload type each one carries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from . import codec
from .codec import ValueCodec

OUT = "out"
IN = "in"
BOTH = "both"

ENV_ROTATION = "env_rotation"
FOV = "fov"
EXPOSURE = "exposure"
GAMMA = "gamma"
X = "X"
Y = "Y"
LAMBDA1 = "lambda1"
LAMBDA2 = "lambda2"
DEVICE = "device"
LOAD_NIF = "load_nif"
STOP = "stop"
TILE_HISTOGRAM = "tile_histogram"
HDR_HEADER = "hdr_header"
HDR_PACKET = "hdr_packet"


@dataclass(frozen=True)
class ChannelSpec:
    name: str
    direction: str
    codec: ValueCodec

    @property
    def outbound(self) -> bool:
        return self.direction in (OUT, BOTH)

    @property
    def inbound(self) -> bool:
        return self.direction in (IN, BOTH)


CHANNELS: Dict[str, ChannelSpec] = {
    spec.name: spec
    for spec in (
        ChannelSpec(ENV_ROTATION, OUT, codec.FLOAT32),
        ChannelSpec(FOV, BOTH, codec.FLOAT32),
        ChannelSpec(EXPOSURE, OUT, codec.FLOAT32),
        ChannelSpec(GAMMA, OUT, codec.FLOAT32),
        ChannelSpec(X, OUT, codec.FLOAT32),
        ChannelSpec(Y, OUT, codec.FLOAT32),
        ChannelSpec(LAMBDA1, OUT, codec.FLOAT32),
        ChannelSpec(LAMBDA2, OUT, codec.FLOAT32),
        ChannelSpec(DEVICE, OUT, codec.STRING),
        ChannelSpec(LOAD_NIF, OUT, codec.STRING),
        ChannelSpec(STOP, OUT, codec.BOOL),
        ChannelSpec(TILE_HISTOGRAM, IN, codec.UINT32_SEQUENCE),
        ChannelSpec(HDR_HEADER, IN, codec.UINT32_SEQUENCE),
        ChannelSpec(HDR_PACKET, IN, codec.FLOAT32_SEQUENCE),
    )
}


def channel_spec(name: str) -> ChannelSpec:
    try:
        return CHANNELS[name]
    except KeyError:
        raise KeyError(f"Unknown channel {name!r}") from None


def codec_for(name: str) -> ValueCodec:
    return channel_spec(name).codec
