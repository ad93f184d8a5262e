"""Checks on the ResNet9 classifier and its architecture description."""
from __future__ import annotations

import pytest
import torch

from leafify.services import vision


def test_forward_produces_one_logit_per_class():
    model = vision.LeafClassifier(num_classes=38).eval()
    with torch.no_grad():
        logits = model(torch.rand(1, 3, 256, 256))
    assert logits.shape == (1, 38)


def test_dropout_is_inert_in_eval_mode():
    torch.manual_seed(0)
    model = vision.LeafClassifier(num_classes=5).eval()
    tensor = torch.rand(1, 3, 256, 256)
    with torch.no_grad():
        assert torch.equal(model(tensor), model(tensor))


def test_parameter_names_match_checkpoint_layout():
    names = set(vision.LeafClassifier(num_classes=4).state_dict())
    for expected in ("conv1.0.weight", "conv2.1.running_mean", "res1.1.0.weight", "res2.1.0.weight", "classifier.3.bias"):
        assert expected in names
    assert not any(name.startswith("classifier.2.") for name in names)


def test_describe_layers_is_ordered_and_ends_with_head():
    layers = vision.describe_layers(vision.LeafClassifier(num_classes=4))
    names = [layer.name for layer in layers]
    assert names[0] == "conv1.0"
    assert names[-1] == "classifier.3"
    convs = [layer.name for layer in layers if layer.kind == "Conv2d"]
    assert convs == ["conv1.0", "conv2.0", "res1.0.0", "res1.1.0", "conv3.0", "conv4.0", "res2.0.0", "res2.1.0"]


def test_build_classifier_freezes_parameters():
    state = vision.LeafClassifier(num_classes=3).state_dict()
    model = vision.build_classifier(state, vision.infer_num_classes(state), torch.device("cpu"))
    assert not model.training
    assert all(not parameter.requires_grad for parameter in model.parameters())


def test_build_classifier_rejects_mismatched_shapes():
    state = vision.LeafClassifier(num_classes=3).state_dict()
    state["res2.0.0.weight"] = torch.zeros(256, 512, 3, 3)
    with pytest.raises(RuntimeError):
        vision.build_classifier(state, 3, torch.device("cpu"))


def test_infer_num_classes_requires_head():
    with pytest.raises(KeyError):
        vision.infer_num_classes({"conv1.0.weight": torch.zeros(64, 3, 3, 3)})


def test_load_checkpoint_reads_wrapped_class_names(tmp_path):
    state = vision.LeafClassifier(num_classes=2).state_dict()
    path = tmp_path / "wrapped.pth"
    torch.save({"state_dict": state, "class_names": ["a", "b"]}, path)
    loaded, class_names = vision.load_checkpoint(path, torch.device("cpu"))
    assert class_names == ["a", "b"]
    assert set(loaded) == set(state)


@pytest.mark.parametrize("size", [256, 300, 511])
def test_check_input_size_accepts_sizes_that_pool_to_one(size):
    assert vision.check_input_size(size) == size
    model = vision.LeafClassifier(num_classes=2).eval()
    with torch.no_grad():
        assert model(torch.rand(1, 3, size, size)).shape == (1, 2)


@pytest.mark.parametrize("size", [224, 255, 512])
def test_check_input_size_rejects_other_sizes(size):
    with pytest.raises(ValueError, match="256 <= size < 512"):
        vision.check_input_size(size)
