from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

import msgspec

from store_common.utils.json_model import JsonModel

type TypeEncodersMap = dict[Any, Callable[[Any], Any]]


class SerializationError(Exception):
    """Encoding or decoding of an object failed."""


__all__ = (
    "SerializationError",
    "decode_json",
    "default_serializer",
    "encode_json",
    "encode_json_str",
)

DEFAULT_TYPE_ENCODERS: TypeEncodersMap = {
    datetime: lambda val: val.isoformat(),
    date: lambda val: val.isoformat(),
    time: lambda val: val.isoformat(),
    # money is kept exact on the wire
    Decimal: str,
    Enum: lambda val: val.value,
    JsonModel: lambda val: val.to_dict(mode="json"),
    set: list,
    frozenset: list,
}


def default_serializer(value: Any) -> Any:
    """Transform values ``msgspec`` does not support natively.

    Raises:
        TypeError: if no encoder matches the value's type or one of its bases
    """
    for base in value.__class__.__mro__[:-1]:
        encoder = DEFAULT_TYPE_ENCODERS.get(base)
        if encoder is not None:
            return encoder(value)

    raise TypeError(f"Unsupported type: {type(value)!r}")


_default_json_encoder = msgspec.json.Encoder(enc_hook=default_serializer)
_default_json_decoder = msgspec.json.Decoder()


def encode_json(value: Any) -> bytes:
    try:
        return _default_json_encoder.encode(value)
    except (TypeError, msgspec.EncodeError) as msgspec_error:
        raise SerializationError(str(msgspec_error)) from msgspec_error


def encode_json_str(value: Any) -> str:
    return encode_json(value).decode("utf-8")


def decode_json(value: str | bytes) -> Any:
    try:
        return _default_json_decoder.decode(value)
    except msgspec.DecodeError as msgspec_error:
        raise SerializationError(str(msgspec_error)) from msgspec_error
