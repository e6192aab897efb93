"""FilterTransform: reconstruction from and spreading back to plain mappings."""

import pytest

from models.filter_transform import FilterTransform


def test_from_dict_round_trips_to_equivalent_mapping():
    raw = {"brightness": 0.25, "contrast": 1, "saturation": -0.5}

    transform = FilterTransform.from_dict(raw)

    assert transform.to_dict() == raw
    assert transform["contrast"] == 1
    assert "saturation" in transform
    assert len(transform) == 3


def test_from_dict_none_is_empty():
    transform = FilterTransform.from_dict(None)

    assert len(transform) == 0
    assert transform.to_dict() == {}


def test_to_dict_returns_a_copy():
    transform = FilterTransform({"brightness": 1.0})

    spread = transform.to_dict()
    spread["brightness"] = 2.0

    assert transform["brightness"] == 1.0


def test_source_mapping_is_not_shared():
    raw = {"brightness": 1.0}
    transform = FilterTransform.from_dict(raw)

    raw["brightness"] = 3.0

    assert transform["brightness"] == 1.0


def test_with_values_returns_new_transform():
    base = FilterTransform({"brightness": 1.0})

    updated = base.with_values(contrast=0.5)

    assert base.to_dict() == {"brightness": 1.0}
    assert updated.to_dict() == {"brightness": 1.0, "contrast": 0.5}


def test_equality_and_get():
    assert FilterTransform({"a": 1.0}) == FilterTransform({"a": 1.0})
    assert FilterTransform({"a": 1.0}) != FilterTransform({"a": 2.0})
    assert FilterTransform({"a": 1.0}).get("missing", 0.0) == 0.0


@pytest.mark.parametrize(
    "raw",
    [
        {"brightness": "bright"},
        {"brightness": None},
        {"brightness": True},
        {1: 0.5},
    ],
)
def test_invalid_parameters_are_rejected(raw):
    with pytest.raises(ValueError):
        FilterTransform.from_dict(raw)
