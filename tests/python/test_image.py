"""Tests for image adapters."""

import io
import os
import pathlib

import numpy as np
import pytest
from PIL import Image

from tfserving_client.exceptions import DecodeError
from tfserving_client.image import (
    ArrayImage,
    BytesImage,
    InMemoryImage,
    PathImage,
    as_image_source,
)


class TestImageSources:
    """Test each adapter yields the decoded pixels."""

    def test_path(self, image_path, pixels):
        """Test decoding from a path string."""
        img = PathImage(image_path).to_image()

        assert img.size == (2, 2)
        np.testing.assert_array_equal(np.asarray(img), pixels)

    def test_pathlib(self, image_path, pixels):
        """Test decoding from a pathlib.Path."""
        img = as_image_source(pathlib.Path(image_path)).to_image()
        np.testing.assert_array_equal(np.asarray(img), pixels)

    def test_in_memory_is_identity(self, rgb_image):
        """Test an already decoded image is returned as is."""
        assert InMemoryImage(rgb_image).to_image() is rgb_image

    def test_bytes(self, rgb_image, pixels):
        """Test decoding encoded bytes."""
        buf = io.BytesIO()
        rgb_image.save(buf, format="PNG")

        img = BytesImage(buf.getvalue()).to_image()
        np.testing.assert_array_equal(np.asarray(img), pixels)

    def test_array(self, pixels):
        """Test wrapping a uint8 array."""
        img = ArrayImage(pixels).to_image()
        assert img.size == (2, 2)

    def test_array_wrong_dtype(self):
        """Test non-uint8 arrays are rejected."""
        with pytest.raises(DecodeError):
            ArrayImage(np.zeros((2, 2, 3), dtype=np.float32)).to_image()


class TestDecodeErrors:
    """Test decode failures surface as DecodeError."""

    def test_missing_file(self, temp_dir):
        """Test an unreadable path."""
        with pytest.raises(DecodeError):
            PathImage(os.path.join(temp_dir, "nope.png")).to_image()

    def test_unrecognized_format(self, temp_dir):
        """Test a file that is not an image."""
        path = os.path.join(temp_dir, "notes.png")
        with open(path, "w") as f:
            f.write("not an image")

        with pytest.raises(DecodeError):
            as_image_source(path).to_image()

    def test_garbage_bytes(self):
        """Test bytes that are not an encoded image."""
        with pytest.raises(DecodeError):
            BytesImage(b"\x00\x01\x02").to_image()


    def test_decompression_bomb(self, image_path, monkeypatch):
        """Test images over the decoder's pixel limit."""
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1)

        with pytest.raises(DecodeError):
            PathImage(image_path).to_image()
        with open(image_path, "rb") as f:
            data = f.read()
        with pytest.raises(DecodeError):
            BytesImage(data).to_image()


class TestDispatch:
    """Test as_image_source picks the adapter by input origin."""

    def test_dispatch(self, image_path, rgb_image, pixels):
        assert isinstance(as_image_source(image_path), PathImage)
        assert isinstance(as_image_source(rgb_image), InMemoryImage)
        assert isinstance(as_image_source(b"\x89PNG"), BytesImage)
        assert isinstance(as_image_source(pixels), ArrayImage)

        source = PathImage(image_path)
        assert as_image_source(source) is source

    def test_unsupported(self):
        with pytest.raises(TypeError):
            as_image_source(42)

    def test_file_closed_after_decode(self, image_path):
        """Test the decoded image does not keep the file open."""
        img = PathImage(image_path).to_image()
        os.remove(image_path)
        assert isinstance(img, Image.Image)
        assert img.getpixel((0, 0)) == (1, 2, 3)
