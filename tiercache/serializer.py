"""
Value encoding for backends that store bytes.

The in-process backend keeps Python objects as they are; the Redis backend
encodes every value with one of the formats below. JSON is the default and
round-trips the common non-JSON types (datetimes, UUIDs, decimals, sets,
bytes, pydantic models and dataclasses) through a ``__type__`` envelope.
"""

from __future__ import annotations

import importlib
import json
import pickle
import warnings
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, Union
from uuid import UUID

import msgpack
from pydantic import BaseModel


class SerializationFormat(str, Enum):
    """Supported serialization formats."""
    JSON = "json"
    PICKLE = "pickle"
    MSGPACK = "msgpack"


def _qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__name__}"


def _import_qualified(path: str) -> Any:
    module_path, name = path.rsplit(".", 1)
    return getattr(importlib.import_module(module_path), name)


class JSONEncoder(json.JSONEncoder):
    """
    JSON encoder that tags non-JSON types so they can be restored on read.
    """

    def default(self, obj: Any) -> Any:
        # datetime is a date subclass, so it has to be checked first
        if isinstance(obj, datetime):
            return {"__type__": "datetime", "value": obj.isoformat()}

        if isinstance(obj, date):
            return {"__type__": "date", "value": obj.isoformat()}

        if isinstance(obj, time):
            return {"__type__": "time", "value": obj.isoformat()}

        if isinstance(obj, timedelta):
            return {"__type__": "timedelta", "value": obj.total_seconds()}

        if isinstance(obj, UUID):
            return {"__type__": "uuid", "value": str(obj)}

        if isinstance(obj, Decimal):
            return {"__type__": "decimal", "value": str(obj)}

        if isinstance(obj, Enum):
            return {"__type__": "enum", "class": _qualified_name(type(obj)), "value": obj.value}

        if isinstance(obj, (bytes, bytearray)):
            return {"__type__": "bytes", "value": bytes(obj).decode("latin-1")}

        if isinstance(obj, (set, frozenset)):
            kind = "frozenset" if isinstance(obj, frozenset) else "set"
            return {"__type__": kind, "value": list(obj)}

        if isinstance(obj, BaseModel):
            return {
                "__type__": "pydantic",
                "class": _qualified_name(type(obj)),
                "value": obj.model_dump(mode="json"),
            }

        if is_dataclass(obj) and not isinstance(obj, type):
            return {
                "__type__": "dataclass",
                "class": _qualified_name(type(obj)),
                "value": asdict(obj),
            }

        return super().default(obj)


_SIMPLE_DECODERS: dict[str, Callable[[Any], Any]] = {
    "datetime": datetime.fromisoformat,
    "date": date.fromisoformat,
    "time": time.fromisoformat,
    "timedelta": lambda value: timedelta(seconds=value),
    "uuid": UUID,
    "decimal": Decimal,
    "bytes": lambda value: value.encode("latin-1"),
    "set": set,
    "frozenset": frozenset,
}


def _json_object_hook(obj: dict) -> Any:
    """
    Restore values tagged by :class:`JSONEncoder`.

    Classes that can no longer be imported decode to their plain value.
    """
    obj_type = obj.get("__type__")
    if obj_type is None:
        return obj

    decoder = _SIMPLE_DECODERS.get(obj_type)
    if decoder is not None:
        return decoder(obj["value"])

    if obj_type in ("enum", "pydantic", "dataclass"):
        try:
            cls = _import_qualified(obj["class"])
        except (ImportError, AttributeError, ValueError):
            return obj["value"]
        if obj_type == "enum":
            return cls(obj["value"])
        if obj_type == "pydantic":
            return cls.model_validate(obj["value"])
        return cls(**obj["value"])

    return obj


def serialize_json(data: Any) -> bytes:
    return json.dumps(
        data, cls=JSONEncoder, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def deserialize_json(data: bytes) -> Any:
    return json.loads(data.decode("utf-8"), object_hook=_json_object_hook)


def serialize_pickle(data: Any) -> bytes:
    """
    Pickle ``data``.

    Pickle restores arbitrary objects; only use it against a Redis server
    nobody untrusted can write to.
    """
    warnings.warn(
        "Pickle serialization is unsafe for untrusted data. "
        "Only use with trusted cache backends.",
        RuntimeWarning,
        stacklevel=2,
    )
    return pickle.dumps(data, protocol=pickle.HIGHEST_PROTOCOL)


def deserialize_pickle(data: bytes) -> Any:
    return pickle.loads(data)


def serialize_msgpack(data: Any) -> bytes:
    # tagged types go through the JSON encoder first so both formats agree
    json_compatible = json.loads(json.dumps(data, cls=JSONEncoder))
    return msgpack.packb(json_compatible, use_bin_type=True)


def deserialize_msgpack(data: bytes) -> Any:
    unpacked = msgpack.unpackb(data, raw=False)
    return json.loads(json.dumps(unpacked), object_hook=_json_object_hook)


_DEFAULT_FORMAT = SerializationFormat.JSON

_SERIALIZERS: dict[SerializationFormat, Callable[[Any], bytes]] = {
    SerializationFormat.JSON: serialize_json,
    SerializationFormat.PICKLE: serialize_pickle,
    SerializationFormat.MSGPACK: serialize_msgpack,
}

_DESERIALIZERS: dict[SerializationFormat, Callable[[bytes], Any]] = {
    SerializationFormat.JSON: deserialize_json,
    SerializationFormat.PICKLE: deserialize_pickle,
    SerializationFormat.MSGPACK: deserialize_msgpack,
}


def set_default_format(format: Union[str, SerializationFormat]) -> None:
    """Set the process-wide default serialization format."""
    global _DEFAULT_FORMAT
    _DEFAULT_FORMAT = SerializationFormat(format)


def get_default_format() -> SerializationFormat:
    return _DEFAULT_FORMAT


def serialize(data: Any, format: Optional[SerializationFormat] = None) -> bytes:
    """
    Serialize data to bytes using the specified or default format.

    :param data: Data to serialize
    :param format: Optional serialization format (uses default if not specified)
    :return: Serialized bytes
    :raises ValueError: If the format is unknown or encoding fails
    """
    if format is None:
        format = _DEFAULT_FORMAT

    serializer = _SERIALIZERS.get(format)
    if serializer is None:
        raise ValueError(f"Unsupported serialization format: {format}")

    try:
        return serializer(data)
    except Exception as e:
        raise ValueError(f"Failed to serialize data with format {format}: {e}") from e


def deserialize(data: bytes, format: Optional[SerializationFormat] = None) -> Any:
    """
    Deserialize bytes using the specified or default format.

    :param data: Serialized bytes
    :param format: Optional serialization format (uses default if not specified)
    :return: Deserialized Python object
    :raises ValueError: If the format is unknown or decoding fails
    """
    if format is None:
        format = _DEFAULT_FORMAT

    deserializer = _DESERIALIZERS.get(format)
    if deserializer is None:
        raise ValueError(f"Unsupported deserialization format: {format}")

    try:
        return deserializer(data)
    except Exception as e:
        raise ValueError(f"Failed to deserialize data with format {format}: {e}") from e


__all__ = [
    "SerializationFormat",
    "JSONEncoder",
    "serialize",
    "deserialize",
    "set_default_format",
    "get_default_format",
]
