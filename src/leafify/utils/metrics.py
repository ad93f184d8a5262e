"""Evaluation metrics for served Leafify models."""
from __future__ import annotations

from typing import Dict, Iterable, Sequence

from sklearn.metrics import accuracy_score, f1_score


def classification_report(
    y_true: Iterable[str], y_pred: Iterable[str], labels: Sequence[str] | None = None
) -> Dict[str, float]:
    y_true = list(y_true)
    y_pred = list(y_pred)
    if not y_true:
        raise ValueError("Cannot score an empty evaluation set")
    return {
        "samples": float(len(y_true)),
        "accuracy": float(accuracy_score(y_true, y_pred)),
        "macro_f1": float(
            f1_score(y_true, y_pred, labels=list(labels) if labels else None, average="macro", zero_division=0)
        ),
    }
