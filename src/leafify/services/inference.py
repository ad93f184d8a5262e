"""Single-request diagnosis pipeline around one loaded classifier."""
from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple

import torch
from PIL import Image

from ..config import Settings
from ..utils.logger import get_logger
from . import overlay, preprocess
from .errors import InferenceError, LoadError, ModelUnavailableError
from .explainability import GradCAM
from .labels import PLANT_VILLAGE_CLASSES, validate_class_names
from .treatments import TreatmentCatalog
from .vision import (
    INPUT_SIZE,
    LeafClassifier,
    build_classifier,
    check_input_size,
    infer_num_classes,
    load_checkpoint,
)

logger = get_logger(__name__)


class ServiceState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class DiagnosisResult:
    prediction: str
    confidence: str
    treatment: Tuple[str, ...]
    heatmap: str

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["treatment"] = list(self.treatment)
        return payload


def format_confidence(probability: float) -> str:
    return f"{probability * 100:.2f}%"


class InferenceService:
    """Owns one classifier + Grad-CAM pair for the lifetime of the process.

    ``UNLOADED -> LOADING -> READY`` on a successful :meth:`load`, or
    ``-> FAILED`` when the checkpoint is missing or does not fit the
    architecture. A failed service rejects every request and is never reloaded.
    """

    def __init__(
        self,
        checkpoint_path: Path | str,
        *,
        device: str = "cpu",
        image_size: int = INPUT_SIZE,
        class_names: Optional[Sequence[str]] = None,
        catalog: Optional[TreatmentCatalog] = None,
        overlay_image_weight: float = overlay.DEFAULT_IMAGE_WEIGHT,
        overlay_heatmap_weight: float = overlay.DEFAULT_HEATMAP_WEIGHT,
        colormap: str = overlay.DEFAULT_COLORMAP,
        heatmap_format: str = overlay.DEFAULT_FORMAT,
    ) -> None:
        self.checkpoint_path = Path(checkpoint_path)
        self.device = torch.device(device)
        self.image_size = image_size
        self.catalog = catalog if catalog is not None else TreatmentCatalog.default()
        self.overlay_image_weight = overlay_image_weight
        self.overlay_heatmap_weight = overlay_heatmap_weight
        self.colormap = colormap
        self.heatmap_format = heatmap_format
        self._configured_classes = tuple(class_names) if class_names else None
        self._class_names: Tuple[str, ...] = ()
        self._model: Optional[LeafClassifier] = None
        self._engine: Optional[GradCAM] = None
        self._state = ServiceState.UNLOADED
        self._failure: Optional[str] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "InferenceService":
        catalog = (
            TreatmentCatalog.from_json(Path(settings.treatment_file))
            if settings.treatment_file
            else TreatmentCatalog.default()
        )
        return cls(
            settings.checkpoint_path,
            device=settings.device,
            image_size=settings.image_size,
            catalog=catalog,
            overlay_image_weight=settings.overlay_image_weight,
            overlay_heatmap_weight=settings.overlay_heatmap_weight,
            colormap=settings.colormap,
            heatmap_format=settings.heatmap_format,
        )

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def failure(self) -> Optional[str]:
        return self._failure

    @property
    def class_names(self) -> Tuple[str, ...]:
        return self._class_names

    @property
    def engine(self) -> Optional[GradCAM]:
        return self._engine

    def load(self) -> None:
        with self._lock:
            if self._state is not ServiceState.UNLOADED:
                raise LoadError(f"Service cannot be loaded from state {self._state.value!r}")
            self._state = ServiceState.LOADING
            try:
                self._load()
            except Exception as exc:
                self._state = ServiceState.FAILED
                self._failure = f"{type(exc).__name__}: {exc}"
                logger.error("Model failed to load from {}: {}", self.checkpoint_path, self._failure)
                raise LoadError(self._failure) from exc
            self._state = ServiceState.READY
        logger.info(
            "Model ready",
            checkpoint=str(self.checkpoint_path),
            classes=len(self._class_names),
            device=str(self.device),
        )

    def _load(self) -> None:
        check_input_size(self.image_size)
        overlay.resolve_colormap(self.colormap)
        if not self.checkpoint_path.exists():
            raise FileNotFoundError(f"Checkpoint {self.checkpoint_path} not found")
        state_dict, checkpoint_classes = load_checkpoint(self.checkpoint_path, self.device)
        class_names = validate_class_names(
            checkpoint_classes or self._configured_classes or PLANT_VILLAGE_CLASSES
        )
        num_classes = infer_num_classes(state_dict)
        if num_classes != len(class_names):
            raise ValueError(
                f"Checkpoint predicts {num_classes} classes but {len(class_names)} labels are configured"
            )
        model = build_classifier(state_dict, num_classes, self.device)
        self._class_names = class_names
        self._model = model
        self._engine = GradCAM.attach(model)

    def diagnose(self, image_bytes: bytes) -> DiagnosisResult:
        if self._state is not ServiceState.READY or self._engine is None:
            raise ModelUnavailableError(
                f"Model unavailable ({self._state.value})" + (f": {self._failure}" if self._failure else "")
            )

        image = preprocess.decode_image(image_bytes)
        try:
            return self._run(image)
        except Exception as exc:
            logger.exception("Diagnosis failed: {}", exc)
            raise InferenceError(str(exc)) from exc

    def _run(self, image: Image.Image) -> DiagnosisResult:
        tensor = preprocess.image_to_tensor(image, self.image_size).to(self.device).requires_grad_(True)

        capture = self._engine.forward(tensor)
        probabilities = torch.softmax(capture.logits.detach(), dim=1)[0]
        confidence, index = torch.max(probabilities, dim=0)
        class_index = int(index.item())

        cam = self._engine.heatmap(capture, class_index)
        heatmap = overlay.composite(
            image,
            cam,
            image_weight=self.overlay_image_weight,
            heatmap_weight=self.overlay_heatmap_weight,
            colormap=self.colormap,
            image_format=self.heatmap_format,
        )

        label = self._class_names[class_index]
        return DiagnosisResult(
            prediction=label,
            confidence=format_confidence(float(confidence.item())),
            treatment=tuple(self.catalog.lookup(label)),
            heatmap=heatmap,
        )
