"""Unit tests for preprocessing utilities."""
from __future__ import annotations

import pytest
import torch
from PIL import Image

from leafify.services import preprocess
from leafify.services.errors import DecodeError


def test_transform_image_bytes(tmp_path):
    path = tmp_path / "image.jpg"
    Image.new("RGB", (400, 300), color="green").save(path)
    tensor = preprocess.transform_image_bytes(path.read_bytes())
    assert tensor.shape == (1, 3, 256, 256)
    assert tensor.dtype == torch.float32
    assert float(tensor.min()) >= 0.0
    assert float(tensor.max()) <= 1.0


def test_decode_image_converts_to_rgb(tmp_path):
    path = tmp_path / "leaf.png"
    Image.new("RGBA", (64, 48), color=(10, 200, 30, 128)).save(path)
    image = preprocess.decode_image(path.read_bytes())
    assert image.mode == "RGB"
    assert image.size == (64, 48)


@pytest.mark.parametrize("payload", [b"", b"not an image at all", b"\x89PNG\r\n\x1a\n broken"])
def test_decode_image_rejects_malformed_bytes(payload):
    with pytest.raises(DecodeError):
        preprocess.decode_image(payload)
