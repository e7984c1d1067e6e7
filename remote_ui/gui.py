"""DearPyGui control window for the remote renderer."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np

import dearpygui.dearpygui as dpg

from .frame_sink import FrameBufferSink
from .histogram import HistogramDisplay
from .parameters import CONTROL_SPECS, ControlBindings

LOGGER = logging.getLogger("remote_ui.gui")

DEFAULT_TEXTURE_SIZE = (64, 64)
SLIDER_WIDTH = 250
NIF_TOOLTIP = "Pass a JSON file using '--nif-paths' option to enable selection."


@dataclass
class ControlPanel:
    """State shared between the UI callbacks and the per-frame update."""

    bindings: ControlBindings
    sink: FrameBufferSink
    save_path: str = "frame.pfm"
    lock: threading.Lock = field(default_factory=threading.Lock)
    status_message: str = ""
    texture_tag: Optional[str] = None
    texture_size: Tuple[int, int] = DEFAULT_TEXTURE_SIZE
    shown_frame_count: int = 0
    texture_buffer: Optional[np.ndarray] = None

    def set_status(self, message: str) -> None:
        with self.lock:
            self.status_message = message

    def status(self) -> str:
        with self.lock:
            return self.status_message

    def save_frame(self, path: str) -> bool:
        target = Path(path).expanduser()
        try:
            saved = self.sink.save_as_pfm(target)
        except OSError as exc:
            LOGGER.error("Failed to save HDR frame to %s: %s", target, exc)
            self.set_status(f"Save failed: {exc}")
            return False
        if saved:
            self.set_status(f"Saved {target}")
        else:
            self.set_status("No frame received yet")
        return saved


@dataclass
class UIIds:
    window: str
    controls: Dict[str, str]
    readouts: Dict[str, str]
    device_combo: str
    nif_combo: str
    histogram_plot: str
    save_path_input: str
    status_text: str
    frame_text: str
    texture_registry: str
    preview_image: str


def create_ui(panel: ControlPanel, width: int, height: int) -> UIIds:
    dpg.create_context()
    with dpg.texture_registry(tag="preview_registry"):
        blank = np.zeros((DEFAULT_TEXTURE_SIZE[1], DEFAULT_TEXTURE_SIZE[0], 4), dtype=np.float32)
        blank[:, :, 3] = 1.0
        dpg.add_raw_texture(
            DEFAULT_TEXTURE_SIZE[0],
            DEFAULT_TEXTURE_SIZE[1],
            blank.ravel(),
            format=dpg.mvFormat_Float_rgba,
            tag="preview_texture_0",
        )
    panel.texture_tag = "preview_texture_0"

    bindings = panel.bindings
    controls: Dict[str, str] = {}
    readouts: Dict[str, str] = {}
    group = None
    with dpg.window(label="Control", pos=(10, 10), width=420, height=height - 20, tag="control_window"):
        for spec in CONTROL_SPECS:
            if spec.group != group:
                group = spec.group
                dpg.add_separator()
                dpg.add_text(group)
            tag = f"control_{spec.name}"
            if spec.widget == "knob":
                dpg.add_knob_float(
                    label=spec.label,
                    default_value=bindings.ui_value(spec.name),
                    min_value=spec.min_value,
                    max_value=spec.max_value,
                    tag=tag,
                    callback=_on_control_changed,
                    user_data=(panel, spec.name),
                )
            else:
                dpg.add_slider_float(
                    label=spec.label,
                    default_value=bindings.ui_value(spec.name),
                    min_value=spec.min_value,
                    max_value=spec.max_value,
                    format="%.3f",
                    width=SLIDER_WIDTH,
                    tag=tag,
                    callback=_on_control_changed,
                    user_data=(panel, spec.name),
                )
            controls[spec.name] = tag
            readouts[spec.name] = f"physical_{spec.name}"
            dpg.add_text(_physical_text(bindings, spec.name), tag=readouts[spec.name])

        dpg.add_separator()
        dpg.add_text("Info/Stats")
        dpg.add_simple_plot(
            label="Workload Balance",
            default_value=[0.0],
            histogram=True,
            overlay="Splats per tile",
            height=80,
            width=SLIDER_WIDTH,
            tag="histogram_plot",
        )
        dpg.add_text("No frame", tag="frame_text")

        dpg.add_separator()
        dpg.add_text("Render Status")
        dpg.add_combo(
            label="Choose render device",
            items=bindings.devices,
            default_value="",
            width=SLIDER_WIDTH,
            tag="device_combo",
            callback=_on_device_selected,
            user_data=(panel,),
        )
        nif_names = sorted(bindings.nif_paths)
        dpg.add_combo(
            label="Choose NIF",
            items=nif_names,
            default_value="",
            width=SLIDER_WIDTH,
            enabled=bool(nif_names),
            tag="nif_combo",
            callback=_on_nif_selected,
            user_data=(panel,),
        )
        with dpg.tooltip("nif_combo"):
            dpg.add_text(NIF_TOOLTIP)
        dpg.add_input_text(label="HDR file", default_value=panel.save_path, width=SLIDER_WIDTH, tag="save_path_input")
        with dpg.group(horizontal=True):
            dpg.add_button(label="Save HDR", callback=_on_save_clicked, user_data=(panel, "save_path_input"))
            dpg.add_button(label="Stop", tag="stop_button", callback=_on_stop_clicked, user_data=(panel,))
        with dpg.tooltip("stop_button"):
            dpg.add_text("Stop the remote application.")
        dpg.add_text("", tag="status_text")

    with dpg.window(label="Render Preview", pos=(440, 10), width=max(200, width - 450), height=height - 20, tag="preview_window"):
        dpg.add_image(panel.texture_tag, tag="preview_image")

    dpg.create_viewport(title="Remote Render Controls", width=width, height=height)
    dpg.setup_dearpygui()
    dpg.show_viewport()

    return UIIds(
        window="control_window",
        controls=controls,
        readouts=readouts,
        device_combo="device_combo",
        nif_combo="nif_combo",
        histogram_plot="histogram_plot",
        save_path_input="save_path_input",
        status_text="status_text",
        frame_text="frame_text",
        texture_registry="preview_registry",
        preview_image="preview_image",
    )


def update_ui(panel: ControlPanel, ids: UIIds) -> None:
    # Values pushed by the server are applied here, on the UI thread. set_value
    # does not run widget callbacks, so nothing is published back.
    for key, value in panel.bindings.drain_field_updates().items():
        if key in ids.controls:
            dpg.set_value(ids.controls[key], float(value))
        elif key == "tile_histogram":
            _show_histogram(ids, value)
    for name, tag in ids.readouts.items():
        dpg.set_value(tag, _physical_text(panel.bindings, name))
    dpg.set_value(ids.status_text, panel.status())

    frame_count = panel.sink.frame_count
    if frame_count == panel.shown_frame_count:
        return
    rgba = panel.sink.preview_rgba()
    if rgba is None:
        return
    panel.shown_frame_count = frame_count
    height, width = int(rgba.shape[0]), int(rgba.shape[1])
    payload = rgba.ravel()
    # Raw textures read from this buffer until the next set_value.
    panel.texture_buffer = payload
    if panel.texture_tag is None or (width, height) != tuple(panel.texture_size):
        new_tag = f"preview_texture_{width}x{height}_{int(time.time() * 1000)}"
        if panel.texture_tag and dpg.does_item_exist(panel.texture_tag):
            dpg.delete_item(panel.texture_tag)
        dpg.add_raw_texture(width, height, payload, format=dpg.mvFormat_Float_rgba, tag=new_tag, parent=ids.texture_registry)
        dpg.configure_item(ids.preview_image, texture_tag=new_tag, width=width, height=height)
        panel.texture_tag = new_tag
        panel.texture_size = (width, height)
    else:
        dpg.set_value(panel.texture_tag, payload)
    dpg.set_value(ids.frame_text, f"Frame {frame_count}: {width}x{height}")


def _physical_text(bindings: ControlBindings, name: str) -> str:
    return f"  = {bindings.physical_value(name):.3f}"


def _show_histogram(ids: UIIds, display: HistogramDisplay) -> None:
    values = display.values.tolist() or [0.0]
    dpg.set_value(ids.histogram_plot, values)
    dpg.configure_item(ids.histogram_plot, overlay=display.summary)


def _on_control_changed(sender: int, app_data: Any, user_data: Tuple[ControlPanel, str]) -> None:
    panel, name = user_data
    panel.bindings.on_ui_change(name, float(app_data))


def _on_device_selected(sender: int, app_data: Any, user_data: Tuple[ControlPanel]) -> None:
    (panel,) = user_data
    device = panel.bindings.select_device_by_name(str(app_data))
    panel.set_status(f"Device: {device}")


def _on_nif_selected(sender: int, app_data: Any, user_data: Tuple[ControlPanel]) -> None:
    (panel,) = user_data
    path = panel.bindings.select_nif(str(app_data))
    panel.set_status(f"Loading NIF {panel.bindings.selected_nif} from {path}")


def _on_save_clicked(sender: int, app_data: Any, user_data: Tuple[ControlPanel, str]) -> None:
    panel, path_tag = user_data
    path = str(dpg.get_value(path_tag)).strip() or panel.save_path
    panel.save_frame(path)


def _on_stop_clicked(sender: int, app_data: Any, user_data: Tuple[ControlPanel]) -> None:
    (panel,) = user_data
    panel.bindings.request_stop()
    dpg.stop_dearpygui()


def run_gui(panel: ControlPanel, ids: UIIds) -> None:
    try:
        while dpg.is_dearpygui_running() and not panel.bindings.stop_requested:
            try:
                update_ui(panel, ids)
            except Exception as exc:  # pragma: no cover - UI loop guard
                LOGGER.exception("UI update failed: %s", exc)
            dpg.render_dearpygui_frame()
    finally:
        dpg.destroy_context()
