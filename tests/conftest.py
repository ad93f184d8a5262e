"""Shared fixtures: synthetic checkpoints and leaf photographs."""
from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pytest
import torch
from PIL import Image

from leafify.services.inference import InferenceService
from leafify.services.labels import PLANT_VILLAGE_CLASSES
from leafify.services.vision import LeafClassifier


def image_bytes(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def leaf_photo(seed: int, size: tuple[int, int] = (320, 240)) -> Image.Image:
    """A noisy green-brown picture; different seeds give clearly different inputs."""
    rng = np.random.default_rng(seed)
    width, height = size
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    pixels[..., 1] = np.maximum(pixels[..., 1], 90 + 40 * (seed % 3))
    return Image.fromarray(pixels)


def save_checkpoint(path: Path, *, seed: int = 0, biased_label: str | None = None, wrap: dict | None = None) -> Path:
    torch.manual_seed(seed)
    model = LeafClassifier(num_classes=len(PLANT_VILLAGE_CLASSES))
    if biased_label is not None:
        head = model.classifier[3]
        with torch.no_grad():
            head.weight.zero_()
            head.bias.zero_()
            head.bias[PLANT_VILLAGE_CLASSES.index(biased_label)] = 6.0
    state = model.state_dict()
    torch.save({"state_dict": state, **wrap} if wrap else state, path)
    return path


@pytest.fixture(scope="session")
def checkpoint_path(tmp_path_factory) -> Path:
    return save_checkpoint(tmp_path_factory.mktemp("models") / "plant-disease-model.pth", seed=7)


@pytest.fixture(scope="session")
def late_blight_checkpoint(tmp_path_factory) -> Path:
    return save_checkpoint(
        tmp_path_factory.mktemp("models") / "late-blight.pth",
        seed=3,
        biased_label="Tomato___Late_blight",
    )


@pytest.fixture(scope="session")
def ready_service(checkpoint_path) -> InferenceService:
    service = InferenceService(checkpoint_path)
    service.load()
    return service


@pytest.fixture
def photo_bytes() -> bytes:
    return image_bytes(leaf_photo(1))
