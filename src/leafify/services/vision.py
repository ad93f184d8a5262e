"""ResNet9 leaf classifier and its architecture description."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import torch
from torch import nn

INPUT_CHANNELS = 3
INPUT_SIZE = 256
FEATURE_DIM = 512
DROPOUT_RATE = 0.2
# 256 -> 64 -> 16 -> 4 through the three pooled stages, then the 4x4 head pool.
STAGE_POOL = 4
HEAD_POOL = 4


@dataclass(frozen=True)
class LayerDescriptor:
    name: str
    kind: str
    module: nn.Module


def conv_block(in_channels: int, out_channels: int, pool: bool = False) -> nn.Sequential:
    layers: List[nn.Module] = [
        nn.Conv2d(in_channels, out_channels, kernel_size=3, padding=1),
        nn.BatchNorm2d(out_channels),
        nn.ReLU(inplace=True),
    ]
    if pool:
        layers.append(nn.MaxPool2d(STAGE_POOL))
    return nn.Sequential(*layers)


class LeafClassifier(nn.Module):
    """ResNet9 with two identity-shortcut residual blocks.

    Parameter names (``conv1.0.weight``, ``res2.1.0.weight``, ``classifier.3.bias``...)
    are the contract with the trained checkpoint, so the module layout must not
    change.
    """

    def __init__(self, num_classes: int, in_channels: int = INPUT_CHANNELS) -> None:
        super().__init__()
        self.num_classes = num_classes
        self.conv1 = conv_block(in_channels, 64)
        self.conv2 = conv_block(64, 128, pool=True)
        self.res1 = nn.Sequential(conv_block(128, 128), conv_block(128, 128))
        self.conv3 = conv_block(128, 256, pool=True)
        self.conv4 = conv_block(256, FEATURE_DIM, pool=True)
        self.res2 = nn.Sequential(conv_block(FEATURE_DIM, FEATURE_DIM), conv_block(FEATURE_DIM, FEATURE_DIM))
        self.classifier = nn.Sequential(
            nn.MaxPool2d(HEAD_POOL),
            nn.Flatten(),
            nn.Dropout(DROPOUT_RATE),
            nn.Linear(FEATURE_DIM, num_classes),
        )

    def forward(self, tensor: torch.Tensor) -> torch.Tensor:
        out = self.conv1(tensor)
        out = self.conv2(out)
        out = self.res1(out) + out
        out = self.conv3(out)
        out = self.conv4(out)
        out = self.res2(out) + out
        return self.classifier(out)


def check_input_size(image_size: int) -> int:
    """Reject input sizes that do not reach the head as a single 512-wide vector."""
    head_side = image_size // STAGE_POOL**3 // HEAD_POOL
    if head_side != 1:
        low = STAGE_POOL**3 * HEAD_POOL
        raise ValueError(f"Input size {image_size} is unsupported; expected {low} <= size < {2 * low}")
    return image_size


def describe_layers(model: nn.Module) -> List[LayerDescriptor]:
    """Ordered leaf layers of ``model``, closest-to-input first."""
    return [
        LayerDescriptor(name=name, kind=type(module).__name__, module=module)
        for name, module in model.named_modules()
        if name and next(module.children(), None) is None
    ]


def load_checkpoint(
    checkpoint: Path, device: torch.device
) -> Tuple[Dict[str, torch.Tensor], Optional[List[str]]]:
    """Read a checkpoint saved either as a bare ``state_dict`` or as a wrapper dict."""
    state = torch.load(checkpoint, map_location=device)
    if not isinstance(state, dict):
        raise TypeError(f"Checkpoint {checkpoint} does not contain a state dict")
    state_dict = state.get("state_dict", state)
    class_names = state.get("class_names")
    return state_dict, list(class_names) if class_names else None


def infer_num_classes(state_dict: Dict[str, torch.Tensor]) -> int:
    weight = state_dict.get("classifier.3.weight")
    if weight is None:
        raise KeyError("Checkpoint has no 'classifier.3.weight'; not a LeafClassifier parameter set")
    return int(weight.shape[0])


def build_classifier(
    state_dict: Dict[str, torch.Tensor], num_classes: int, device: torch.device
) -> LeafClassifier:
    """Instantiate, strictly load and freeze a classifier for serving."""
    model = LeafClassifier(num_classes=num_classes)
    model.load_state_dict(state_dict, strict=True)
    model.requires_grad_(False)
    model.to(device)
    model.eval()
    return model
