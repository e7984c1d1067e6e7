"""Tests for the channel payload codecs."""

import struct

import numpy as np
import pytest

from remote_ui import codec
from remote_ui.errors import DecodeError


class TestRoundTrip:
    """decode(encode(x)) returns x for each value type."""

    @pytest.mark.parametrize("value", [True, False])
    def test_bool(self, value):
        assert codec.BOOL.decode(codec.BOOL.encode(value)) is value

    @pytest.mark.parametrize("value", [0.0, -2.5, 360.0, 1280.0, -0.0])
    def test_float32(self, value):
        assert codec.FLOAT32.decode(codec.FLOAT32.encode(value)) == value

    @pytest.mark.parametrize("value", ["", "cpu", "/remote/models/lego.nif", "λ-ünïcode"])
    def test_string(self, value):
        assert codec.STRING.decode(codec.STRING.encode(value)) == value

    @pytest.mark.parametrize("value", [[], [0], [0, 1, 2**32 - 1], list(range(100))])
    def test_uint32_sequence(self, value):
        assert codec.UINT32_SEQUENCE.decode(codec.UINT32_SEQUENCE.encode(value)) == value

    def test_float32_sequence(self):
        samples = np.array([1.0, -3.5, 0.25, 1e6], dtype=np.float32)
        decoded = codec.FLOAT32_SEQUENCE.decode(codec.FLOAT32_SEQUENCE.encode(samples))
        assert decoded.dtype == np.float32
        np.testing.assert_array_equal(decoded, samples)

    def test_empty_float32_sequence(self):
        decoded = codec.FLOAT32_SEQUENCE.decode(codec.FLOAT32_SEQUENCE.encode([]))
        assert decoded.size == 0


class TestWireLayout:
    """Encoded bytes follow the little-endian layouts."""

    def test_bool_is_single_byte(self):
        assert codec.BOOL.encode(True) == b"\x01"
        assert codec.BOOL.encode(False) == b"\x00"

    def test_float32_is_four_bytes(self):
        assert codec.FLOAT32.encode(90.0) == struct.pack("<f", 90.0)

    def test_string_has_uint64_length_prefix(self):
        assert codec.STRING.encode("ipu") == struct.pack("<Q", 3) + b"ipu"

    def test_uint32_sequence_has_count_prefix(self):
        assert codec.UINT32_SEQUENCE.encode([1, 2]) == struct.pack("<QII", 2, 1, 2)


class TestDecodeErrors:
    """Malformed payloads raise DecodeError."""

    @pytest.mark.parametrize("payload", [b"", b"\x01\x00", b"\x02"])
    def test_bad_bool(self, payload):
        with pytest.raises(DecodeError):
            codec.BOOL.decode(payload)

    @pytest.mark.parametrize("payload", [b"", b"\x00\x00\x80", b"\x00" * 8])
    def test_bad_float(self, payload):
        with pytest.raises(DecodeError):
            codec.FLOAT32.decode(payload)

    def test_string_length_mismatch(self):
        with pytest.raises(DecodeError):
            codec.STRING.decode(struct.pack("<Q", 10) + b"abc")

    def test_string_invalid_utf8(self):
        with pytest.raises(DecodeError):
            codec.STRING.decode(struct.pack("<Q", 2) + b"\xff\xfe")

    def test_string_missing_prefix(self):
        with pytest.raises(DecodeError):
            codec.STRING.decode(b"abc")

    def test_sequence_count_mismatch(self):
        with pytest.raises(DecodeError):
            codec.UINT32_SEQUENCE.decode(struct.pack("<QI", 2, 7))

    def test_sequence_trailing_bytes(self):
        with pytest.raises(DecodeError):
            codec.FLOAT32_SEQUENCE.decode(struct.pack("<Qf", 1, 1.0) + b"\x00")

    def test_decode_error_is_value_error(self):
        assert issubclass(DecodeError, ValueError)
