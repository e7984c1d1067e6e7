"""Binary codecs for channel payloads.

Payloads are not self-describing: each channel carries one value type agreed
out of band (see :mod:`remote_ui.protocol`). All layouts are little-endian:

* ``bool``: one byte, ``0`` or ``1``
* ``float32``: four bytes
* ``string``: ``uint64`` byte length followed by UTF-8 bytes
* ``sequence<uint32>`` / ``sequence<float32>``: ``uint64`` element count
  followed by the packed elements
"""

from __future__ import annotations

import struct
from typing import Any, Sequence

import numpy as np

from .errors import DecodeError

__all__ = [
    "ValueCodec",
    "BoolCodec",
    "Float32Codec",
    "StringCodec",
    "Uint32SequenceCodec",
    "Float32SequenceCodec",
    "BOOL",
    "FLOAT32",
    "STRING",
    "UINT32_SEQUENCE",
    "FLOAT32_SEQUENCE",
]

_LENGTH = struct.Struct("<Q")
_FLOAT = struct.Struct("<f")


class ValueCodec:
    type_name = "opaque"

    def encode(self, value: Any) -> bytes:
        raise NotImplementedError

    def decode(self, payload: bytes) -> Any:
        raise NotImplementedError

    def _expect_size(self, payload: bytes, size: int) -> None:
        if len(payload) != size:
            raise DecodeError(f"{self.type_name} payload must be {size} bytes, got {len(payload)}")

    def _split_length(self, payload: bytes) -> tuple[int, bytes]:
        if len(payload) < _LENGTH.size:
            raise DecodeError(f"{self.type_name} payload too short for length prefix ({len(payload)} bytes)")
        (length,) = _LENGTH.unpack_from(payload)
        return int(length), bytes(payload[_LENGTH.size :])


class BoolCodec(ValueCodec):
    type_name = "bool"

    def encode(self, value: bool) -> bytes:
        return b"\x01" if value else b"\x00"

    def decode(self, payload: bytes) -> bool:
        self._expect_size(payload, 1)
        byte = payload[0]
        if byte not in (0, 1):
            raise DecodeError(f"bool payload must be 0 or 1, got {byte}")
        return byte == 1


class Float32Codec(ValueCodec):
    type_name = "float32"

    def encode(self, value: float) -> bytes:
        return _FLOAT.pack(float(value))

    def decode(self, payload: bytes) -> float:
        self._expect_size(payload, _FLOAT.size)
        (value,) = _FLOAT.unpack(payload)
        return float(value)


class StringCodec(ValueCodec):
    type_name = "string"

    def encode(self, value: str) -> bytes:
        data = str(value).encode("utf-8")
        return _LENGTH.pack(len(data)) + data

    def decode(self, payload: bytes) -> str:
        length, body = self._split_length(payload)
        if len(body) != length:
            raise DecodeError(f"string length prefix {length} disagrees with {len(body)} payload bytes")
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"string payload is not valid UTF-8: {exc}") from exc


class _ArrayCodec(ValueCodec):
    dtype: np.dtype = np.dtype("<u4")

    def encode(self, value: Sequence[Any]) -> bytes:
        array = np.ascontiguousarray(value, dtype=self.dtype).ravel()
        return _LENGTH.pack(array.size) + array.tobytes()

    def decode(self, payload: bytes) -> np.ndarray:
        count, body = self._split_length(payload)
        expected = count * self.dtype.itemsize
        if len(body) != expected:
            raise DecodeError(
                f"{self.type_name} count {count} needs {expected} bytes, got {len(body)}"
            )
        return np.frombuffer(body, dtype=self.dtype).astype(self.dtype.newbyteorder("="))


class Uint32SequenceCodec(_ArrayCodec):
    type_name = "sequence<uint32>"
    dtype = np.dtype("<u4")

    def decode(self, payload: bytes) -> list[int]:  # type: ignore[override]
        return [int(v) for v in super().decode(payload)]


class Float32SequenceCodec(_ArrayCodec):
    type_name = "sequence<float32>"
    dtype = np.dtype("<f4")


BOOL = BoolCodec()
FLOAT32 = Float32Codec()
STRING = StringCodec()
UINT32_SEQUENCE = Uint32SequenceCodec()
FLOAT32_SEQUENCE = Float32SequenceCodec()
