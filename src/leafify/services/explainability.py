"""Grad-CAM explanations for the leaf classifier.

The engine hooks the last convolution once, but the hook writes into a
``Capture`` that belongs to the calling request (looked up through a context
variable), so concurrent requests sharing one model never see each other's
activations or gradients.
"""
from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from functools import partial
from typing import Optional, Sequence, Tuple

import numpy as np
import torch
from torch import nn

from ..utils.logger import get_logger
from .errors import ExplainabilityUnavailable
from .vision import LayerDescriptor, describe_layers

logger = get_logger(__name__)

CAM_EPSILON = 1e-7

_active_capture: ContextVar[Optional["Capture"]] = ContextVar("leafify_gradcam_capture", default=None)


@dataclass
class Capture:
    """Everything one forward/backward cycle observed at the target layer."""

    inputs: torch.Tensor
    logits: Optional[torch.Tensor] = None
    activation: Optional[torch.Tensor] = None
    gradient: Optional[torch.Tensor] = None


def find_last_conv(layers: Sequence[LayerDescriptor]) -> Optional[LayerDescriptor]:
    for layer in reversed(layers):
        if layer.kind == "Conv2d":
            return layer
    return None


def _record_gradient(capture: Capture, grad: torch.Tensor) -> None:
    capture.gradient = grad.detach()


def _record_activation(module: nn.Module, inputs, output: torch.Tensor) -> None:
    capture = _active_capture.get()
    if capture is None:
        return
    capture.activation = output.detach()
    if output.requires_grad:
        output.register_hook(partial(_record_gradient, capture))


class GradCAM:
    def __init__(self, model: nn.Module, target: Optional[LayerDescriptor]) -> None:
        self.model = model
        self.target = target
        self._handle = None
        if target is not None:
            self._handle = target.module.register_forward_hook(_record_activation)

    @classmethod
    def attach(cls, model: nn.Module) -> "GradCAM":
        """Instrument the convolution closest to the classifier head."""
        target = find_last_conv(describe_layers(model))
        if target is None:
            logger.warning("No convolutional layer found; Grad-CAM disabled")
        else:
            logger.info("Grad-CAM attached to layer {}", target.name)
        return cls(model, target)

    @property
    def inert(self) -> bool:
        return self.target is None

    def remove(self) -> None:
        if self._handle is not None:
            self._handle.remove()
            self._handle = None

    def forward(self, tensor: torch.Tensor) -> Capture:
        capture = Capture(inputs=tensor)
        token = _active_capture.set(capture)
        try:
            with torch.enable_grad():
                capture.logits = self.model(tensor)
        finally:
            _active_capture.reset(token)
        return capture

    def compute(self, capture: Capture, class_index: Optional[int] = None) -> np.ndarray:
        """Return a ``[h, w]`` map in ``[0, 1]`` or raise ``ExplainabilityUnavailable``."""
        if self.inert:
            raise ExplainabilityUnavailable("Model has no convolutional layer to explain")
        if capture.logits is None or capture.activation is None:
            raise ExplainabilityUnavailable("Target layer did not fire during the forward pass")
        if not capture.inputs.requires_grad:
            raise ExplainabilityUnavailable("Input tensor does not track gradients")

        if class_index is None:
            class_index = int(capture.logits[0].argmax())
        score = capture.logits[0, int(class_index)]

        # Gradients accumulate only on this request's input, never on shared parameters.
        capture.gradient = None
        capture.inputs.grad = None
        torch.autograd.backward(score, inputs=[capture.inputs])
        if capture.gradient is None:
            raise ExplainabilityUnavailable("No gradient reached the target layer")

        activations = capture.activation[0]
        gradients = capture.gradient[0]
        weights = gradients.mean(dim=(1, 2))
        cam = (weights[:, None, None] * activations).sum(dim=0)
        cam = torch.relu(cam)
        cam = cam - cam.min()
        cam = cam / (cam.max() + CAM_EPSILON)
        return cam.cpu().numpy().astype(np.float32)

    def heatmap(self, capture: Capture, class_index: Optional[int] = None) -> Optional[np.ndarray]:
        try:
            return self.compute(capture, class_index)
        except ExplainabilityUnavailable as exc:
            logger.warning("Grad-CAM unavailable: {}", exc.message)
            return None

    def explain(
        self, tensor: torch.Tensor, class_index: Optional[int] = None
    ) -> Tuple[Capture, Optional[np.ndarray]]:
        if not tensor.requires_grad:
            tensor = tensor.detach().clone().requires_grad_(True)
        capture = self.forward(tensor)
        return capture, self.heatmap(capture, class_index)
