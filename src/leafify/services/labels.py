"""Class label contract between the trained parameters and the service.

Index ``i`` of the model output corresponds to ``class_names[i]``. The list is
the sorted set of PlantVillage directory names, which is also the order
``torchvision.datasets.ImageFolder`` assigned when the weights were trained.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence, Tuple

PLANT_VILLAGE_CLASSES: Tuple[str, ...] = tuple(
    sorted(
        [
            "Apple___Apple_scab",
            "Apple___Black_rot",
            "Apple___Cedar_apple_rust",
            "Apple___healthy",
            "Blueberry___healthy",
            "Cherry_(including_sour)___Powdery_mildew",
            "Cherry_(including_sour)___healthy",
            "Corn_(maize)___Cercospora_leaf_spot Gray_leaf_spot",
            "Corn_(maize)___Common_rust_",
            "Corn_(maize)___Northern_Leaf_Blight",
            "Corn_(maize)___healthy",
            "Grape___Black_rot",
            "Grape___Esca_(Black_Measles)",
            "Grape___Leaf_blight_(Isariopsis_Leaf_Spot)",
            "Grape___healthy",
            "Orange___Haunglongbing_(Citrus_greening)",
            "Peach___Bacterial_spot",
            "Peach___healthy",
            "Pepper,_bell___Bacterial_spot",
            "Pepper,_bell___healthy",
            "Potato___Early_blight",
            "Potato___Late_blight",
            "Potato___healthy",
            "Raspberry___healthy",
            "Soybean___healthy",
            "Squash___Powdery_mildew",
            "Strawberry___Leaf_scorch",
            "Strawberry___healthy",
            "Tomato___Bacterial_spot",
            "Tomato___Early_blight",
            "Tomato___Late_blight",
            "Tomato___Leaf_Mold",
            "Tomato___Septoria_leaf_spot",
            "Tomato___Spider_mites Two-spotted_spider_mite",
            "Tomato___Target_Spot",
            "Tomato___Tomato_Yellow_Leaf_Curl_Virus",
            "Tomato___Tomato_mosaic_virus",
            "Tomato___healthy",
        ]
    )
)


def validate_class_names(names: Iterable[str]) -> Tuple[str, ...]:
    """Return ``names`` as a tuple, rejecting unsorted or duplicated labels."""
    labels = tuple(str(name) for name in names)
    if not labels:
        raise ValueError("Class name list is empty")
    if len(set(labels)) != len(labels):
        raise ValueError("Class names contain duplicates")
    if list(labels) != sorted(labels):
        raise ValueError("Class names are not in sorted order; index contract would be broken")
    return labels


def discover_class_names(root: Path) -> Tuple[str, ...]:
    """Derive the label order from a dataset laid out as ``root/<label>/<image>``."""
    if not root.is_dir():
        raise FileNotFoundError(f"Dataset directory {root} does not exist")
    return tuple(sorted(path.name for path in root.iterdir() if path.is_dir()))


def index_of(label: str, class_names: Sequence[str]) -> int:
    try:
        return list(class_names).index(label)
    except ValueError as exc:
        raise KeyError(f"Unknown class label {label!r}") from exc
