"""Leafify: plant leaf disease diagnosis with Grad-CAM explanations."""

__version__ = "0.1.0"
