"""Blend Grad-CAM maps over the source photograph and encode them as data URIs."""
from __future__ import annotations

import base64
import io
from typing import Optional

import numpy as np
from matplotlib import colormaps
from matplotlib.colors import Colormap
from PIL import Image

DEFAULT_IMAGE_WEIGHT = 0.6
DEFAULT_HEATMAP_WEIGHT = 0.4
DEFAULT_COLORMAP = "jet"
DEFAULT_FORMAT = "PNG"


def encode_image(image: Image.Image, image_format: str = DEFAULT_FORMAT) -> str:
    """Encode ``image`` as a self-contained ``data:`` URI."""
    image_format = image_format.upper()
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    payload = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/{image_format.lower()};base64,{payload}"


def decode_data_uri(uri: str) -> Image.Image:
    header, _, payload = uri.partition(",")
    if not header.startswith("data:image/") or not header.endswith(";base64"):
        raise ValueError("Not a base64 image data URI")
    image = Image.open(io.BytesIO(base64.b64decode(payload)))
    image.load()
    return image


def resolve_colormap(name: str) -> Colormap:
    try:
        return colormaps[name]
    except KeyError as exc:
        raise ValueError(f"Unknown colormap {name!r}") from exc


def colorize(cam: np.ndarray, size: tuple[int, int], colormap: str = DEFAULT_COLORMAP) -> np.ndarray:
    """Resize a ``[h, w]`` map in [0, 1] to ``size`` (width, height) and map it to RGB."""
    if cam.ndim != 2:
        raise ValueError(f"Activation map must be 2-D, got shape {cam.shape}")
    resized = Image.fromarray(cam.astype(np.float32)).resize(size, resample=Image.BILINEAR)
    levels = np.round(255 * np.clip(np.asarray(resized), 0.0, 1.0))
    # Float input spreads the 0..255 levels over however many entries the map has.
    rgba = resolve_colormap(colormap)(levels / 255.0)
    return np.uint8(np.round(rgba[..., :3] * 255))


def composite(
    image: Image.Image,
    cam: Optional[np.ndarray],
    *,
    image_weight: float = DEFAULT_IMAGE_WEIGHT,
    heatmap_weight: float = DEFAULT_HEATMAP_WEIGHT,
    colormap: str = DEFAULT_COLORMAP,
    image_format: str = DEFAULT_FORMAT,
) -> str:
    """Overlay ``cam`` on ``image``; without a map the image is returned unchanged."""
    rgb = image.convert("RGB")
    if cam is None:
        return encode_image(rgb, image_format)

    heat = colorize(cam, rgb.size, colormap)
    base = np.asarray(rgb, dtype=np.float32)
    blended = image_weight * base + heatmap_weight * heat.astype(np.float32)
    overlay = Image.fromarray(np.uint8(np.clip(np.round(blended), 0, 255)))
    return encode_image(overlay, image_format)
