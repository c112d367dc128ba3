"""
Image adapters.

An ImageSource yields a decoded Pillow image regardless of where the pixels
come from, so the tensor builder never needs to know whether it was handed a
path, encoded bytes or an image that is already in memory.
"""

from __future__ import annotations

import io
import os
from abc import ABC, abstractmethod
from typing import Any, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError

_DECODE_ERRORS = (OSError, UnidentifiedImageError, Image.DecompressionBombError)


class ImageSource(ABC):
    """Something that can produce a decoded image."""

    @abstractmethod
    def to_image(self) -> Image.Image:
        """
        Extract the decoded image.

        Raises:
            DecodeError: if the image cannot be opened or decoded
        """


class PathImage(ImageSource):
    """An image file on disk."""

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = os.fspath(path)

    def to_image(self) -> Image.Image:
        try:
            with Image.open(self.path) as img:
                img.load()
                return img.copy()
        except _DECODE_ERRORS as e:
            raise DecodeError(f"cannot decode image {self.path!r}: {e}") from e

    def __repr__(self) -> str:
        return f"PathImage({self.path!r})"


class BytesImage(ImageSource):
    """An encoded image (PNG, JPEG, ...) held in memory."""

    def __init__(self, data: Union[bytes, bytearray]):
        self.data = bytes(data)

    def to_image(self) -> Image.Image:
        try:
            with Image.open(io.BytesIO(self.data)) as img:
                img.load()
                return img.copy()
        except _DECODE_ERRORS as e:
            raise DecodeError(f"cannot decode {len(self.data)} bytes of image data: {e}") from e


class InMemoryImage(ImageSource):
    """An already decoded Pillow image."""

    def __init__(self, image: Image.Image):
        self.image = image

    def to_image(self) -> Image.Image:
        return self.image


class ArrayImage(ImageSource):
    """A uint8 pixel array shaped (H, W), (H, W, 3) or (H, W, 4)."""

    def __init__(self, array: np.ndarray):
        self.array = array

    def to_image(self) -> Image.Image:
        array = self.array
        if array.dtype != np.uint8:
            raise DecodeError(f"pixel arrays must be uint8, got {array.dtype}")
        if array.ndim not in (2, 3) or (array.ndim == 3 and array.shape[2] not in (3, 4)):
            raise DecodeError(f"unsupported pixel array shape {array.shape}")
        return Image.fromarray(array)


def as_image_source(value: Any) -> ImageSource:
    """Pick the adapter matching the origin of ``value``."""
    if isinstance(value, ImageSource):
        return value
    if isinstance(value, (str, os.PathLike)):
        return PathImage(value)
    if isinstance(value, Image.Image):
        return InMemoryImage(value)
    if isinstance(value, (bytes, bytearray)):
        return BytesImage(value)
    if isinstance(value, np.ndarray):
        return ArrayImage(value)
    raise TypeError(f"cannot read an image from {type(value).__name__}")
