"""Binding between on-screen controls and the renderer's named parameters.

Controls work in UI units (sliders in [0, 1], the rotation knob in radians).
Each change is mapped to the physical unit the renderer expects and published
on the control's channel. Values the renderer pushes back are written straight
into the displayed state and queued for the UI loop; they are never published
again.
"""

from __future__ import annotations

import functools
import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from . import protocol
from .channels import PacketDemuxer, PacketMuxer, SubscriptionHandle, decoding
from .errors import ChannelClosed
from .histogram import HistogramDisplay, normalize_histogram
from .log import TRACE

LOGGER = logging.getLogger("remote_ui.parameters")

TWO_PI = 2.0 * math.pi
DEFAULT_DEVICES = ("cpu", "ipu")


@dataclass(frozen=True)
class ControlSpec:
    """One on-screen control and the renderer parameter it drives.

    ``to_physical`` maps the UI value to the unit published on ``channel``.
    ``from_remote`` maps a value the renderer pushes back on that channel to a
    UI value; it is only set for controls whose channel is inbound as well.
    """

    name: str
    label: str
    group: str
    channel: str
    to_physical: Callable[[float], float]
    default: float
    min_value: float = 0.0
    max_value: float = 1.0
    widget: str = "slider"
    from_remote: Optional[Callable[[float], float]] = None
    fires_at_startup: bool = True

    @property
    def direction(self) -> str:
        return protocol.channel_spec(self.channel).direction

    @property
    def accepts_remote(self) -> bool:
        return self.from_remote is not None and protocol.channel_spec(self.channel).inbound


CONTROL_SPECS: List[ControlSpec] = [
    ControlSpec(
        "env_rotation",
        "Env NIF Rotation",
        "Scene Parameters",
        protocol.ENV_ROTATION,
        lambda v: v / TWO_PI * 360.0,
        default=0.0,
        max_value=TWO_PI,
        widget="knob",
    ),
    ControlSpec(
        "fov",
        "Field of View",
        "Camera Parameters",
        protocol.FOV,
        lambda v: v * 360.0,
        default=90.0 / 360.0,
        # The renderer reports the field of view in radians.
        from_remote=lambda radians: radians / TWO_PI,
    ),
    ControlSpec("exposure", "Exposure", "Variable Parameters", protocol.EXPOSURE, lambda v: 4.0 * (v - 0.5), default=0.5),
    ControlSpec("gamma", "Gamma", "Variable Parameters", protocol.GAMMA, lambda v: 4.0 * v, default=2.2 / 4.0),
    ControlSpec("x", "X", "Variable Parameters", protocol.X, lambda v: v * 1280.0, default=640.0 / 1280.0),
    ControlSpec("y", "Y", "Variable Parameters", protocol.Y, lambda v: v * 720.0, default=360.0 / 720.0),
    ControlSpec("lambda1", "Lambda1", "Variable Parameters", protocol.LAMBDA1, lambda v: v * 100.0, default=0.5),
    ControlSpec("lambda2", "Lambda2", "Variable Parameters", protocol.LAMBDA2, lambda v: v * 100.0, default=0.5),
]

CONTROLS_BY_NAME: Dict[str, ControlSpec] = {spec.name: spec for spec in CONTROL_SPECS}


def get_control(name: str) -> ControlSpec:
    try:
        return CONTROLS_BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown control {name!r}") from None


class ControlBindings:
    def __init__(
        self,
        muxer: PacketMuxer,
        demuxer: PacketDemuxer,
        devices: Sequence[str] = DEFAULT_DEVICES,
        nif_paths: Optional[Mapping[str, str]] = None,
        publish_defaults: bool = True,
    ) -> None:
        self._muxer = muxer
        self._lock = threading.Lock()
        self._ui_values: Dict[str, float] = {spec.name: spec.default for spec in CONTROL_SPECS}
        self._pending_field_updates: Dict[str, Any] = {}
        self._histogram: Optional[HistogramDisplay] = None
        self.devices: List[str] = list(devices)
        self.nif_paths: Dict[str, str] = dict(nif_paths or {})
        self.selected_device: Optional[str] = None
        self.selected_nif: Optional[str] = None
        self.stop_requested = False
        self._subscriptions: List[SubscriptionHandle] = [
            demuxer.subscribe(spec.channel, decoding(spec.channel, functools.partial(self._on_remote_value, spec)))
            for spec in CONTROL_SPECS
            if spec.accepts_remote
        ]
        self._subscriptions.append(
            demuxer.subscribe(protocol.TILE_HISTOGRAM, decoding(protocol.TILE_HISTOGRAM, self._on_tile_histogram))
        )
        if publish_defaults:
            self.publish_defaults()

    def publish_defaults(self) -> None:
        for spec in CONTROL_SPECS:
            if spec.fires_at_startup:
                self.on_ui_change(spec.name, spec.default)

    def ui_value(self, name: str) -> float:
        with self._lock:
            return self._ui_values[name]

    def physical_value(self, name: str) -> float:
        return get_control(name).to_physical(self.ui_value(name))

    def histogram(self) -> Optional[HistogramDisplay]:
        with self._lock:
            return self._histogram

    def on_ui_change(self, name: str, ui_value: float) -> None:
        spec = get_control(name)
        value = float(ui_value)
        with self._lock:
            self._ui_values[name] = value
        self._publish(spec.channel, spec.to_physical(value))

    def select_device(self, index: int) -> str:
        device = self.devices[index]
        self.selected_device = device
        LOGGER.debug("Sending new device: %s", device)
        self._publish(protocol.DEVICE, device)
        return device

    def select_device_by_name(self, device: str) -> str:
        return self.select_device(self.devices.index(device))

    def select_nif(self, name: str) -> str:
        path = self.nif_paths[name]
        self.selected_nif = name
        LOGGER.debug("Requesting NIF '%s' at remote path '%s'", name, path)
        self._publish(protocol.LOAD_NIF, path)
        return path

    def request_stop(self) -> None:
        self.stop_requested = True
        self._publish(protocol.STOP, True)

    def drain_field_updates(self) -> Dict[str, Any]:
        with self._lock:
            updates = self._pending_field_updates
            self._pending_field_updates = {}
        return updates

    def _publish(self, channel: str, value: Any) -> None:
        try:
            self._muxer.publish_value(channel, value)
        except ChannelClosed as exc:
            LOGGER.warning("Not sending %s: %s", channel, exc)

    def _on_remote_value(self, spec: ControlSpec, value: float) -> None:
        LOGGER.log(TRACE, "Received %s update: %s", spec.name, value)
        ui_value = spec.from_remote(value)  # type: ignore[misc]
        with self._lock:
            self._ui_values[spec.name] = ui_value
            self._pending_field_updates[spec.name] = ui_value

    def _on_tile_histogram(self, counts: Sequence[int]) -> None:
        display = normalize_histogram(counts)
        with self._lock:
            self._histogram = display
            self._pending_field_updates["tile_histogram"] = display
