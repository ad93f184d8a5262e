"""Route modules for FastAPI application."""
from . import image

__all__ = ["image"]
