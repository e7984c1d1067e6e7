"""Tests for named channel publish and dispatch."""

import gc
import logging

import pytest

from remote_ui import protocol
from remote_ui.channels import PacketDemuxer, decoding
from remote_ui.errors import ChannelClosed


class TestPacketMuxer:
    """Outbound publish through the transport."""

    def test_publish_hands_payload_to_transport(self, muxer, transport):
        muxer.publish("gamma", b"\x00\x00\x80\x3f")
        assert transport.sent == [("gamma", b"\x00\x00\x80\x3f")]
        assert muxer.sent_count == 1

    def test_publish_value_encodes_with_channel_codec(self, muxer, transport):
        muxer.publish_value(protocol.DEVICE, "ipu")
        muxer.publish_value(protocol.STOP, True)
        assert transport.values(protocol.DEVICE) == ["ipu"]
        assert transport.values(protocol.STOP) == [True]

    def test_publish_after_close_raises(self, muxer, transport):
        muxer.close()
        with pytest.raises(ChannelClosed):
            muxer.publish_value(protocol.FOV, 90.0)
        assert transport.sent == []

    def test_transport_closed_propagates(self, muxer, transport):
        transport.closed = True
        with pytest.raises(ChannelClosed):
            muxer.publish(protocol.FOV, b"")

    def test_inbound_only_channel_rejected(self, muxer):
        with pytest.raises(ValueError):
            muxer.publish_value(protocol.TILE_HISTOGRAM, [1, 2, 3])

    def test_unknown_channel_rejected(self, muxer):
        with pytest.raises(KeyError):
            muxer.publish_value("no_such_channel", 1.0)


class TestPacketDemuxer:
    """Inbound dispatch to channel subscribers."""

    def test_subscribers_called_in_registration_order(self, demuxer):
        calls = []
        first = demuxer.subscribe("fov", lambda payload: calls.append(("first", payload)))
        second = demuxer.subscribe("fov", lambda payload: calls.append(("second", payload)))

        delivered = demuxer.dispatch("fov", b"abcd")

        assert delivered == 2
        assert calls == [("first", b"abcd"), ("second", b"abcd")]
        assert first.channel == second.channel == "fov"

    def test_only_matching_channel_dispatched(self, demuxer):
        calls = []
        handle = demuxer.subscribe("fov", calls.append)
        demuxer.dispatch("gamma", b"x")
        assert calls == []
        assert handle is not None

    def test_unsubscribed_channel_silently_discarded(self, demuxer):
        assert demuxer.dispatch("nobody_listens", b"payload") == 0

    def test_decode_error_logged_and_contained(self, demuxer, caplog):
        received = []
        bad = demuxer.subscribe(protocol.FOV, decoding(protocol.FOV, received.append))
        other = demuxer.subscribe(protocol.FOV, lambda payload: received.append("raw"))

        with caplog.at_level(logging.WARNING, logger="remote_ui.channels"):
            delivered = demuxer.dispatch(protocol.FOV, b"\x01")

        assert delivered == 1
        assert received == ["raw"]
        assert "Dropped malformed packet" in caplog.text
        assert bad and other

    def test_subscriber_exception_does_not_affect_other_channels(self, demuxer):
        received = []

        def explode(payload):
            raise RuntimeError("boom")

        h1 = demuxer.subscribe("exposure", explode)
        h2 = demuxer.subscribe("gamma", received.append)

        assert demuxer.dispatch("exposure", b"1") == 0
        assert demuxer.dispatch("gamma", b"2") == 1
        assert received == [b"2"]
        assert h1 and h2

    def test_dropped_handle_ends_subscription(self):
        demuxer = PacketDemuxer()
        calls = []
        handle = demuxer.subscribe("fov", calls.append)
        assert demuxer.subscriber_count("fov") == 1

        del handle
        gc.collect()

        assert demuxer.subscriber_count("fov") == 0
        assert demuxer.dispatch("fov", b"x") == 0
        assert calls == []

    def test_decoding_wrapper_passes_decoded_value(self, demuxer):
        values = []
        handle = demuxer.subscribe(protocol.TILE_HISTOGRAM, decoding(protocol.TILE_HISTOGRAM, values.append))
        demuxer.dispatch(protocol.TILE_HISTOGRAM, protocol.codec_for(protocol.TILE_HISTOGRAM).encode([3, 1, 4]))
        assert values == [[3, 1, 4]]
        assert handle.channel == protocol.TILE_HISTOGRAM
