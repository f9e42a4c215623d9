from __future__ import annotations

import logging
from typing import Any, Iterable, List

from .errors import InferenceError
from .schemas import CategoryProbability, Prediction

logger = logging.getLogger(__name__)


def _normalize(raw: Any) -> CategoryProbability:
    if isinstance(raw, CategoryProbability):
        return raw
    if isinstance(raw, dict):
        return CategoryProbability(class_name=raw["className"], probability=float(raw["probability"]))
    return CategoryProbability(class_name=raw.className, probability=float(raw.probability))


def rank_predictions(raw_predictions: Iterable[Any]) -> List[CategoryProbability]:
    """Sort descending by probability; ties keep the model's output order."""
    entries = [_normalize(raw) for raw in raw_predictions]
    return sorted(entries, key=lambda entry: entry.probability, reverse=True)


async def predict_image(model, image) -> Prediction:
    """
    Run ``model.predict(image)`` and return the ranked result.

    Errors raised by the model propagate unchanged; there is no retry here.
    """
    try:
        raw = await model.predict(image)
    except Exception:
        logger.exception("Error predicting image")
        raise

    ranked = rank_predictions(raw)
    if not ranked:
        raise InferenceError("Model returned no predictions")

    top = ranked[0]
    logger.info("Top prediction: %s (%.3f)", top.class_name, top.probability)
    return Prediction(
        disease_class=top.class_name,
        probability=top.probability,
        all_predictions=ranked,
    )
