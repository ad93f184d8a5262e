"""Shared preprocessing utilities for Leafify."""
from __future__ import annotations

import io
from functools import lru_cache

import torch
from PIL import Image, UnidentifiedImageError
from torchvision import transforms

from .errors import DecodeError
from .vision import INPUT_SIZE


@lru_cache(maxsize=4)
def build_transform(image_size: int = INPUT_SIZE) -> transforms.Compose:
    # The classifier was trained on raw [0, 1] pixels, no mean/std normalisation.
    return transforms.Compose(
        [
            transforms.Resize((image_size, image_size)),
            transforms.ToTensor(),
        ]
    )


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode raw upload bytes into an RGB image."""
    if not image_bytes:
        raise DecodeError("Empty image payload")
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError(f"Cannot decode image: {exc}") from exc
    return image.convert("RGB")


def image_to_tensor(image: Image.Image, image_size: int = INPUT_SIZE) -> torch.Tensor:
    """Convert an RGB image into a ``[1, 3, size, size]`` tensor in [0, 1]."""
    return build_transform(image_size)(image).unsqueeze(0)


def transform_image_bytes(image_bytes: bytes, image_size: int = INPUT_SIZE) -> torch.Tensor:
    return image_to_tensor(decode_image(image_bytes), image_size)
