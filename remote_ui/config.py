"""Command line and file configuration for the remote control client."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .log import LOG_LEVELS
from .parameters import DEFAULT_DEVICES

LOGGER = logging.getLogger("remote_ui.config")

DEFAULT_MAX_MESSAGE_BYTES = 64 * 1024 * 1024


@dataclass
class ClientConfig:
    host: str = "localhost"
    port: int = 3000
    log_level: str = "info"
    nif_paths: str = ""
    width: int = 1320
    height: int = 800
    devices: List[str] = field(default_factory=lambda: list(DEFAULT_DEVICES))
    save_path: str = "frame.pfm"
    connect_timeout: float = 5.0
    max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        valid_keys = {f.name for f in fields(cls)}
        filtered = {}
        for key, value in data.items():
            normalized = str(key).replace("-", "_")
            if normalized not in valid_keys:
                LOGGER.warning("Ignoring unknown config key %r", key)
                continue
            filtered[normalized] = value
        if isinstance(filtered.get("devices"), str):
            filtered["devices"] = _split_devices(filtered["devices"])
        return cls(**filtered)


def _split_devices(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config_file(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping of option defaults."""
    with Path(path).open("r", encoding="utf-8") as cfg_file:
        data = yaml.safe_load(cfg_file) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_nif_paths(path: Path) -> Dict[str, str]:
    """Read a JSON object mapping menu names to NIF paths on the remote."""
    with Path(path).open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"NIF path file {path} must contain a JSON object")
    entries: Dict[str, str] = {}
    for name, remote_path in data.items():
        if not isinstance(remote_path, str):
            raise ValueError(f"NIF entry {name!r} must map to a string path")
        entries[str(name)] = remote_path
        LOGGER.debug("Loaded NIF entry. Name: '%s' remote-path: '%s'", name, remote_path)
    return entries


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Remote control panel for the real-time renderer")
    parser.add_argument("--config", type=Path, default=None, help="YAML file supplying option defaults")
    parser.add_argument("--host", default=None, help="Host to connect to")
    parser.add_argument("--port", type=int, default=None, help="Port number to connect on")
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS),
        default=None,
        help="Set the log level",
    )
    parser.add_argument(
        "--nif-paths",
        default=None,
        help="JSON file containing a mapping from menu names to paths to NIF models on the remote",
    )
    parser.add_argument("--width", "-w", type=int, default=None, help="Main window width in pixels")
    parser.add_argument("--height", "-H", type=int, default=None, help="Main window height in pixels")
    parser.add_argument("--devices", default=None, help="Comma-separated render devices offered in the device menu")
    parser.add_argument("--save-path", default=None, help="Default file name for saved HDR frames")
    parser.add_argument("--connect-timeout", type=float, default=None, help="Seconds to wait for the server")
    parser.add_argument("--max-message-bytes", type=int, default=None, help="Maximum gRPC message size")
    return parser


def parse_config(argv: Optional[Sequence[str]] = None) -> ClientConfig:
    """Merge defaults, the optional YAML file, then explicit command line flags."""
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    merged: Dict[str, Any] = {}
    if args.config is not None:
        merged.update(load_config_file(args.config))
    for key, value in vars(args).items():
        if key == "config" or value is None:
            continue
        merged[key] = value
    return ClientConfig.from_dict(merged)
