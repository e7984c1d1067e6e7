"""Protobuf messages carried by the ChannelExchange stream.

The schema is small enough to register at import time in a private descriptor
pool, so no generated ``*_pb2`` module is needed.
"""

from __future__ import annotations

from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

__all__ = [
    "ChannelPacket",
    "SERVICE_NAME",
    "EXCHANGE_METHOD",
    "EXCHANGE_PATH",
    "ensure_registered",
]

SERVICE_NAME = "remote.ChannelExchange"
EXCHANGE_METHOD = "Exchange"
EXCHANGE_PATH = f"/{SERVICE_NAME}/{EXCHANGE_METHOD}"

_pool = descriptor_pool.DescriptorPool()
_factory = message_factory.MessageFactory(_pool)


def ensure_registered() -> None:
    """Ensure the channel exchange descriptors exist in the private pool."""

    try:
        _pool.FindFileByName("channel_exchange.proto")
        return
    except KeyError:
        pass

    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "channel_exchange.proto"
    file_proto.package = "remote"
    file_proto.syntax = "proto3"

    message = file_proto.message_type.add()
    message.name = "ChannelPacket"
    field = message.field.add()
    field.name = "name"
    field.number = 1
    field.label = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL
    field.type = descriptor_pb2.FieldDescriptorProto.TYPE_STRING
    field = message.field.add()
    field.name = "payload"
    field.number = 2
    field.label = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL
    field.type = descriptor_pb2.FieldDescriptorProto.TYPE_BYTES

    service = file_proto.service.add()
    service.name = "ChannelExchange"
    method = service.method.add()
    method.name = EXCHANGE_METHOD
    method.input_type = ".remote.ChannelPacket"
    method.output_type = ".remote.ChannelPacket"
    method.client_streaming = True
    method.server_streaming = True

    _pool.AddSerializedFile(file_proto.SerializeToString())


def _load_dynamic() -> Any:
    ensure_registered()
    packet_desc = _pool.FindMessageTypeByName("remote.ChannelPacket")
    try:
        get_cls = message_factory.GetMessageClass  # type: ignore[attr-defined]
    except AttributeError:  # pragma: no cover - protobuf < 4.21
        get_cls = _factory.GetPrototype  # type: ignore[attr-defined]
    return get_cls(packet_desc)


ChannelPacket = _load_dynamic()
