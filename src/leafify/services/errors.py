"""Error taxonomy shared by the inference pipeline."""
from __future__ import annotations


class LeafifyError(Exception):
    """Base class for every error raised by the diagnosis pipeline."""

    kind = "LeafifyError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class LoadError(LeafifyError):
    """The parameter set is missing or does not fit the declared architecture."""

    kind = "LoadError"


class ModelUnavailableError(LeafifyError):
    """A request arrived while the service is not ``READY``."""

    kind = "ModelUnavailable"


class DecodeError(LeafifyError):
    """The request payload is not a decodable image."""

    kind = "DecodeError"


class ExplainabilityUnavailable(LeafifyError):
    """No activation map could be produced for this request."""

    kind = "ExplainabilityUnavailable"


class InferenceError(LeafifyError):
    """Unexpected failure while running forward, backward or compositing."""

    kind = "InferenceError"


__all__ = [
    "LeafifyError",
    "LoadError",
    "ModelUnavailableError",
    "DecodeError",
    "ExplainabilityUnavailable",
    "InferenceError",
]
