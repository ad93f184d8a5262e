"""Heatmap compositing and encoding."""
from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from leafify.services import overlay


def test_missing_map_returns_plain_image():
    image = Image.new("RGB", (30, 20), color=(12, 150, 40))
    uri = overlay.composite(image, None)
    assert uri == overlay.encode_image(image)
    decoded = overlay.decode_data_uri(uri)
    assert np.array_equal(np.asarray(decoded.convert("RGB")), np.asarray(image))


def test_overlay_keeps_original_dimensions():
    image = Image.new("RGB", (123, 77), color=(80, 120, 60))
    cam = np.linspace(0, 1, 16, dtype=np.float32).reshape(4, 4)
    uri = overlay.composite(image, cam)
    assert uri.startswith("data:image/png;base64,")
    assert overlay.decode_data_uri(uri).size == (123, 77)


def test_blend_uses_default_weights_over_jet_ramp():
    image = Image.new("RGB", (8, 8), color=(100, 100, 100))
    low = overlay.decode_data_uri(overlay.composite(image, np.zeros((4, 4), dtype=np.float32)))
    # jet(0) is (0, 0, 128): 0.6 * 100 + 0.4 * (0, 0, 128)
    assert low.getpixel((3, 3)) == (60, 60, 111)

    high = overlay.decode_data_uri(overlay.composite(image, np.ones((4, 4), dtype=np.float32)))
    # jet(1) is (128, 0, 0)
    assert high.getpixel((3, 3)) == (111, 60, 60)


def test_custom_weights_and_format():
    image = Image.new("RGB", (10, 10), color=(200, 200, 200))
    uri = overlay.composite(
        image,
        np.zeros((2, 2), dtype=np.float32),
        image_weight=1.0,
        heatmap_weight=0.0,
        image_format="jpeg",
    )
    assert uri.startswith("data:image/jpeg;base64,")
    assert overlay.decode_data_uri(uri).size == (10, 10)


def test_colorize_maps_low_to_blue_and_high_to_red():
    heat = overlay.colorize(np.array([[0.0, 1.0]], dtype=np.float32), (2, 1))
    low, high = heat[0, 0], heat[0, 1]
    assert low[2] > low[0]
    assert high[0] > high[2]


def test_malformed_map_is_a_programming_error():
    image = Image.new("RGB", (4, 4))
    with pytest.raises(ValueError):
        overlay.composite(image, np.zeros((1, 4, 4), dtype=np.float32))


def test_decode_data_uri_rejects_other_payloads():
    with pytest.raises(ValueError):
        overlay.decode_data_uri("https://example.com/leaf.png")


def test_colorize_spreads_levels_over_short_colormaps():
    ramp = np.linspace(0.0, 1.0, 256, dtype=np.float32)[None, :]
    heat = overlay.colorize(ramp, (256, 1), colormap="tab10")
    colors = {tuple(pixel) for pixel in heat[0]}
    assert len(colors) == 10


def test_unknown_colormap_is_rejected():
    with pytest.raises(ValueError, match="Unknown colormap"):
        overlay.resolve_colormap("not-a-colormap")
