"""
Tensor encoding and decoding.

build_image_tensor turns a decoded image into the dense float tensor sent to
image models. make_tensor_proto and make_ndarray convert between numpy
arrays and TensorProto messages for every other input and output.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional

import numpy as np
from PIL import Image

from . import protos
from .exceptions import ProtocolError

PixelFn = Callable[[float], float]

_NUMPY_TO_DTYPE = {
    np.float32: protos.DT_FLOAT,
    np.float64: protos.DT_DOUBLE,
    np.float16: protos.DT_HALF,
    np.int32: protos.DT_INT32,
    np.int64: protos.DT_INT64,
    np.int16: protos.DT_INT16,
    np.int8: protos.DT_INT8,
    np.uint8: protos.DT_UINT8,
    np.uint16: protos.DT_UINT16,
    np.uint32: protos.DT_UINT32,
    np.uint64: protos.DT_UINT64,
    np.bool_: protos.DT_BOOL,
}

_DTYPE_TO_NUMPY = {dtype: np_type for np_type, dtype in _NUMPY_TO_DTYPE.items()}

# Typed value field holding the elements of each dtype when tensor_content is empty
_VALUE_FIELDS = {
    protos.DT_FLOAT: "float_val",
    protos.DT_DOUBLE: "double_val",
    protos.DT_HALF: "half_val",
    protos.DT_INT32: "int_val",
    protos.DT_INT16: "int_val",
    protos.DT_INT8: "int_val",
    protos.DT_UINT8: "int_val",
    protos.DT_UINT16: "int_val",
    protos.DT_INT64: "int64_val",
    protos.DT_UINT32: "uint32_val",
    protos.DT_UINT64: "uint64_val",
    protos.DT_BOOL: "bool_val",
    protos.DT_STRING: "string_val",
}


def identity(p: float) -> float:
    return p


def dtype_name(dtype: int) -> str:
    """Readable name of a DataType value, tolerant of unknown values."""
    try:
        return protos.DataType.Name(dtype)
    except ValueError:
        return f"DataType({dtype})"


def make_tensor_shape(dims: Iterable[int]) -> protos.TensorShapeProto:
    shape = protos.TensorShapeProto()
    for size in dims:
        shape.dim.add(size=int(size))
    return shape


def build_image_tensor(image: Image.Image, preprocess: PixelFn = identity) -> protos.TensorProto:
    """
    Build the float tensor for a single image.

    The pixels are read row by row with the RGB channels interleaved (an
    alpha channel is dropped, grayscale is expanded), every byte is converted
    to float and passed through ``preprocess``. The tensor shape is
    ``[1, width, height, 3]``; the serving signature has to expect that order.
    """
    rgb = image if image.mode == "RGB" else image.convert("RGB")
    width, height = rgb.size
    raw = rgb.tobytes()

    pixels = np.fromiter(
        (preprocess(float(p)) for p in raw),
        dtype=np.float32,
        count=len(raw),
    )

    tensor = protos.TensorProto(
        dtype=protos.DT_FLOAT,
        tensor_shape=make_tensor_shape([1, width, height, 3]),
    )
    tensor.float_val.extend(pixels.tolist())
    return tensor


def make_tensor_proto(values: Any, dtype: Optional[Any] = None) -> protos.TensorProto:
    """
    Encode a numpy array (or anything np.asarray accepts) as a TensorProto.

    Numeric data goes into tensor_content as little-endian bytes, strings into
    string_val (str elements are UTF-8 encoded).
    """
    array = np.asarray(values, dtype=dtype)
    tensor = protos.TensorProto(tensor_shape=make_tensor_shape(array.shape))

    if array.dtype.kind in ("U", "S", "O"):
        tensor.dtype = protos.DT_STRING
        for item in array.reshape(-1).tolist():
            if isinstance(item, str):
                item = item.encode("utf-8")
            if not isinstance(item, bytes):
                raise TypeError(f"string tensors hold bytes or str, got {type(item).__name__}")
            tensor.string_val.append(item)
        return tensor

    tensor_dtype = _NUMPY_TO_DTYPE.get(array.dtype.type)
    if tensor_dtype is None:
        raise TypeError(f"unsupported array dtype: {array.dtype}")
    tensor.dtype = tensor_dtype
    tensor.tensor_content = np.ascontiguousarray(array, dtype=array.dtype.newbyteorder("<")).tobytes()
    return tensor


def make_ndarray(tensor: protos.TensorProto) -> np.ndarray:
    """
    Decode a TensorProto into a numpy array of its shape.

    Raises:
        ProtocolError: if the dtype is not supported or the values do not
            fit the declared shape
    """
    dtype = tensor.dtype
    field = _VALUE_FIELDS.get(dtype)
    if field is None:
        raise ProtocolError(f"unsupported tensor dtype {dtype_name(dtype)}")

    shape = [d.size for d in tensor.tensor_shape.dim]
    count = int(np.prod(shape, dtype=np.int64)) if shape else 1

    if dtype == protos.DT_STRING:
        values = np.empty(len(tensor.string_val), dtype=object)
        values[:] = list(tensor.string_val)
    elif tensor.tensor_content:
        np_type = np.dtype(_DTYPE_TO_NUMPY[dtype]).newbyteorder("<")
        values = np.frombuffer(tensor.tensor_content, dtype=np_type).astype(_DTYPE_TO_NUMPY[dtype])
    elif dtype == protos.DT_HALF:
        values = np.array(tensor.half_val, dtype=np.uint16).view(np.float16)
    else:
        values = np.array(getattr(tensor, field), dtype=_DTYPE_TO_NUMPY[dtype])

    if values.size == count:
        return values.reshape(shape)
    if values.size == 0:
        fill = b"" if dtype == protos.DT_STRING else 0
        return np.full(shape, fill, dtype=values.dtype)
    if values.size < count:
        # Trailing elements repeat the last value given
        padding = np.full(count - values.size, values[-1], dtype=values.dtype)
        return np.concatenate([values, padding]).reshape(shape)
    raise ProtocolError(
        f"tensor holds {values.size} values but its shape {shape} allows {count}"
    )


def decode_outputs(outputs: Dict[str, protos.TensorProto]) -> Dict[str, np.ndarray]:
    """Decode every tensor of a response output map."""
    return {name: make_ndarray(tensor) for name, tensor in outputs.items()}
