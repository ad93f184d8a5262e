"""Score a trained Leafify checkpoint against a labelled image folder."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from leafify.config import settings
from leafify.services.errors import LeafifyError
from leafify.services.inference import InferenceService
from leafify.services.labels import discover_class_names, index_of
from leafify.utils.logger import get_logger
from leafify.utils.metrics import classification_report

SUPPORTED_EXTS = {".png", ".jpg", ".jpeg"}

log = get_logger("evaluate")


def iter_class_images(root: Path) -> Iterable[Tuple[str, Path]]:
    for class_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        for image_path in sorted(class_dir.rglob("*")):
            if image_path.suffix.lower() in SUPPORTED_EXTS:
                yield class_dir.name, image_path


def check_dataset_labels(
    dataset_classes: Sequence[str], served: Sequence[str], allow_partial: bool = False
) -> List[int]:
    """Map dataset folders onto the served class indices.

    The folder list must equal the served label list unless ``allow_partial``
    is set, in which case it may be any subset of it.
    """
    unknown = [label for label in dataset_classes if label not in served]
    if unknown:
        raise ValueError(f"Dataset labels not served by the model: {', '.join(unknown)}")
    if not allow_partial and tuple(dataset_classes) != tuple(served):
        missing = [label for label in served if label not in dataset_classes]
        raise ValueError(f"Dataset is missing {len(missing)} served labels: {', '.join(missing)}")
    return [index_of(label, served) for label in dataset_classes]


def evaluate(
    service: InferenceService,
    data_dir: Path,
    *,
    limit: Optional[int] = None,
    allow_partial: bool = False,
) -> Dict[str, object]:
    served = service.class_names
    dataset_classes = discover_class_names(data_dir)
    check_dataset_labels(dataset_classes, served, allow_partial)

    y_true, y_pred = [], []
    for count, (label, image_path) in enumerate(iter_class_images(data_dir)):
        if limit is not None and count >= limit:
            break
        try:
            result = service.diagnose(image_path.read_bytes())
        except LeafifyError as exc:
            log.warning("Skipping {}: {}", image_path, exc.message)
            continue
        y_true.append(label)
        y_pred.append(result.prediction)

    # Scored over every served label so absent classes count against macro-F1.
    report: Dict[str, object] = dict(classification_report(y_true, y_pred, labels=served))
    report["classes"] = len(served)
    report["dataset_classes"] = list(dataset_classes)
    return report


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate the diagnosis service on a labelled dataset")
    parser.add_argument("--data-dir", default="data/processed/plantvillage/test", help="Directory of <label>/<image> folders")
    parser.add_argument("--checkpoint", default=settings.checkpoint_path, help="Checkpoint to evaluate")
    parser.add_argument("--output", default="reports/metrics.json", help="Where to write the metrics JSON")
    parser.add_argument("--limit", type=int, default=None, help="Stop after this many images")
    parser.add_argument(
        "--allow-partial",
        action="store_true",
        help="Accept a dataset that covers only some of the served labels",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    data_dir = Path(args.data_dir).expanduser().resolve()

    service = InferenceService(
        args.checkpoint,
        device=settings.device,
        image_size=settings.image_size,
    )
    service.load()

    try:
        metrics = evaluate(service, data_dir, limit=args.limit, allow_partial=args.allow_partial)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(metrics, indent=2))
    log.info("Wrote metrics to {}: {}", output_path, metrics)


if __name__ == "__main__":
    main()
