"""
Feature payloads and their encoding into tf.Example features.

A Payload is one of three list kinds (bytes, int64, float). The kind fixes
the wire encoding; values are never coerced from one kind to another.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Tuple, Union

import numpy as np

from . import protos

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class PayloadKind(enum.Enum):
    """Wire encoding of a payload."""
    BYTES = "bytes"
    INT64 = "int64"
    FLOAT = "float"


@dataclass(frozen=True)
class Payload:
    """An ordered list of values of a single kind."""
    kind: PayloadKind
    values: Tuple[Any, ...]

    @classmethod
    def bytes_list(cls, values: Iterable[Union[bytes, bytearray, str]]) -> "Payload":
        return cls(PayloadKind.BYTES, tuple(_to_bytes(v) for v in values))

    @classmethod
    def int64_list(cls, values: Iterable[int]) -> "Payload":
        return cls(PayloadKind.INT64, tuple(_to_int64(v) for v in values))

    @classmethod
    def float_list(cls, values: Iterable[float]) -> "Payload":
        return cls(PayloadKind.FLOAT, tuple(float(v) for v in values))

    @classmethod
    def from_value(cls, value: Any) -> "Payload":
        """
        Convert a native container into a payload.

        Lists and tuples must be homogeneous: all bytes/str, all ints or all
        floats. Numpy arrays are converted by dtype. An empty list carries no
        kind information, so use one of the explicit constructors for it.

        Raises:
            TypeError: if the kind of the values cannot be determined
        """
        if isinstance(value, Payload):
            return value

        if isinstance(value, np.ndarray):
            return cls._from_array(value)

        if isinstance(value, (bytes, bytearray, str)):
            raise TypeError(
                "a single bytes or str value is ambiguous, wrap it in a list"
            )

        if not isinstance(value, (list, tuple)):
            raise TypeError(f"cannot build a payload from {type(value).__name__}")

        if not value:
            raise TypeError(
                "cannot infer the payload kind of an empty list, "
                "use Payload.bytes_list/int64_list/float_list"
            )

        if all(isinstance(v, (bytes, bytearray, str)) for v in value):
            return cls.bytes_list(value)
        if all(_is_int(v) for v in value):
            return cls.int64_list(value)
        if all(isinstance(v, (float, np.floating)) for v in value):
            return cls.float_list(value)

        kinds = sorted({type(v).__name__ for v in value})
        raise TypeError(f"payload values must share one kind, got {', '.join(kinds)}")

    @classmethod
    def _from_array(cls, array: np.ndarray) -> "Payload":
        flat = array.reshape(-1)
        if array.dtype == np.bool_ or np.issubdtype(array.dtype, np.integer):
            return cls.int64_list(int(v) for v in flat)
        if np.issubdtype(array.dtype, np.floating):
            return cls.float_list(flat.tolist())
        if array.dtype.kind in ("S", "U", "O"):
            return cls.bytes_list(flat.tolist())
        raise TypeError(f"unsupported array dtype for a payload: {array.dtype}")

    def __len__(self) -> int:
        return len(self.values)


def _is_int(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _to_bytes(value: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f"expected bytes or str, got {type(value).__name__}")


def _to_int64(value: int) -> int:
    value = int(value)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"value {value} does not fit in a signed 64-bit integer")
    return value


def encode_feature(payload: Payload) -> protos.Feature:
    """Encode a single payload into a tf.train.Feature."""
    feature = protos.Feature()
    if payload.kind is PayloadKind.BYTES:
        feature.bytes_list.SetInParent()
        feature.bytes_list.value.extend(payload.values)
    elif payload.kind is PayloadKind.INT64:
        feature.int64_list.SetInParent()
        feature.int64_list.value.extend(payload.values)
    elif payload.kind is PayloadKind.FLOAT:
        feature.float_list.SetInParent()
        feature.float_list.value.extend(payload.values)
    else:
        raise TypeError(f"unknown payload kind: {payload.kind!r}")
    return feature


def encode_features(feature_map: Mapping[str, Any]) -> protos.Features:
    """
    Encode a mapping of field name to payload into a Features message.

    Values may be Payload instances or anything Payload.from_value accepts.
    """
    features = protos.Features()
    for name, value in feature_map.items():
        features.feature[str(name)].CopyFrom(encode_feature(Payload.from_value(value)))
    return features


def build_example_input(feature_map: Mapping[str, Any]) -> protos.Input:
    """Wrap the encoded features as an example list holding one example."""
    example = protos.Example(features=encode_features(feature_map))
    return protos.Input(example_list=protos.ExampleList(examples=[example]))
