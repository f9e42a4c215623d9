"""
Tests for prediction ranking

Run: pytest tests/test_prediction.py -v
"""

import asyncio
from types import SimpleNamespace

import pytest

from paddy_expert.errors import InferenceError
from paddy_expert.prediction import predict_image, rank_predictions

from conftest import FakeModel


UNORDERED = [
    {"className": "normal", "probability": 0.05},
    {"className": "blast", "probability": 0.70},
    {"className": "tungro", "probability": 0.15},
    {"className": "brown_spot", "probability": 0.10},
]


def test_prediction_is_sorted_and_primary_is_first():
    prediction = asyncio.run(predict_image(FakeModel(UNORDERED), image=None))

    probs = [entry.probability for entry in prediction.all_predictions]
    assert probs == sorted(probs, reverse=True)
    assert prediction.disease_class == "blast"
    assert prediction.probability == 0.70
    assert prediction.all_predictions[0].class_name == prediction.disease_class
    assert len(prediction.all_predictions) == len(UNORDERED)


def test_sorting_is_idempotent():
    ranked = rank_predictions(UNORDERED)
    again = rank_predictions(ranked)
    assert [e.class_name for e in again] == [e.class_name for e in ranked]
    assert [e.class_name for e in ranked] == ["blast", "tungro", "brown_spot", "normal"]


def test_ties_keep_model_order():
    raw = [
        {"className": "hispa", "probability": 0.4},
        {"className": "blast", "probability": 0.4},
        {"className": "normal", "probability": 0.2},
    ]
    ranked = rank_predictions(raw)
    assert [e.class_name for e in ranked] == ["hispa", "blast", "normal"]


def test_accepts_attribute_style_entries():
    raw = [
        SimpleNamespace(className="normal", probability=0.9),
        SimpleNamespace(className="blast", probability=0.1),
    ]
    prediction = asyncio.run(predict_image(FakeModel(raw), image=None))
    assert prediction.disease_class == "normal"


def test_serializes_with_original_keys():
    prediction = asyncio.run(predict_image(FakeModel(UNORDERED), image=None))
    data = prediction.model_dump(by_alias=True)
    assert data["class"] == "blast"
    assert data["allPredictions"][0] == {"className": "blast", "probability": 0.70}


def test_empty_output_raises():
    with pytest.raises(InferenceError):
        asyncio.run(predict_image(FakeModel(output=[]), image=None))


def test_model_errors_propagate():
    model = FakeModel(error=RuntimeError("graph execution failed"))
    with pytest.raises(RuntimeError, match="graph execution failed"):
        asyncio.run(predict_image(model, image=None))
    assert model.calls == 1
