"""Entry point for the remote render control panel."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .channels import PacketDemuxer, PacketMuxer
from .config import load_nif_paths, parse_config
from .frame_sink import FrameBufferSink
from .gui import ControlPanel, create_ui, run_gui
from .log import configure_logging
from .parameters import ControlBindings
from .transport import GrpcTransport

LOGGER = logging.getLogger("remote_ui.main")


def main(argv: Optional[List[str]] = None) -> int:
    config = parse_config(argv)
    try:
        configure_logging(config.log_level)
    except ValueError as exc:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
        LOGGER.error("Error: %s", exc)
        return 1

    try:
        # Parse the NIF menu before attempting to connect.
        nif_paths: Dict[str, str] = {}
        if config.nif_paths:
            nif_paths = load_nif_paths(Path(config.nif_paths))
        transport = GrpcTransport(config.host, config.port, config.max_message_bytes)
        transport.connect(timeout=config.connect_timeout)
    except (OSError, ValueError) as exc:
        LOGGER.error("Error: %s", exc)
        return 1

    muxer = PacketMuxer(transport)
    demuxer = PacketDemuxer()
    sink = FrameBufferSink()
    sink.attach(demuxer)
    bindings = ControlBindings(muxer, demuxer, devices=config.devices, nif_paths=nif_paths)
    transport.start(demuxer.dispatch)

    panel = ControlPanel(bindings, sink, save_path=config.save_path)
    panel.set_status(f"Connected to {transport.address}")
    try:
        ids = create_ui(panel, config.width, config.height)
        run_gui(panel, ids)
    except KeyboardInterrupt:
        LOGGER.info("GUI interrupted by user")
    finally:
        # Stop sending before the connection goes away.
        muxer.close()
        transport.close()
        LOGGER.info("Sent %d parameter packets to %s", muxer.sent_count, transport.address)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
