"""Logging and evaluation helpers shared by the service and the scripts.

``get_logger`` is imported eagerly because every service module needs it;
the scikit-learn backed ``metrics`` module loads on first access.
"""

from importlib import import_module
from typing import TYPE_CHECKING

from .logger import get_logger

__all__ = ["get_logger", "logger", "metrics"]


def __getattr__(name: str):
    if name == "metrics":
        return import_module(f"{__name__}.metrics")
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:
    from . import metrics  # noqa: F401
