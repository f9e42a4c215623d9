"""
Adapter around the image classifier library (TensorFlow / Keras).

The library is imported lazily through ``InferenceLibraryHandle`` because
importing TensorFlow is slow and may fail on machines without it; nothing in
this module touches TensorFlow at import time.

Model artifacts follow the Teachable Machine export layout:
- model.json    (TF.js layers topology + weights manifest)
- weights.bin   (weights, found next to model.json)
- metadata.json (``labels`` in output order, optional ``imageSize``)

A ``.keras`` / ``.h5`` file may be used instead of ``model.json``.
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import numpy as np
from PIL import Image

from .errors import ImageDecodeError, ModelArtifactError

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_SIZE = 224


# -----------------------------------------------------------------------------
# Image decoding / preprocessing
# -----------------------------------------------------------------------------

def decode_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (OSError, ValueError) as e:
        raise ImageDecodeError("Could not decode image: %s" % e) from e
    return img.convert("RGB")


def preprocess_image(img: Image.Image, size: int = DEFAULT_IMAGE_SIZE) -> np.ndarray:
    """
    Centre-crop to a square, resize to (size, size) and scale pixels to
    [-1, 1], the normalization Teachable Machine image models are trained with.
    Returns a batch of one: shape (1, size, size, 3).
    """
    img = img.convert("RGB")
    width, height = img.size
    side = min(width, height)
    left = (width - side) // 2
    top = (height - side) // 2
    img = img.crop((left, top, left + side, top + side))
    img = img.resize((size, size))
    arr = np.asarray(img, dtype="float32") / 127.5 - 1.0
    return np.expand_dims(arr, axis=0)


# -----------------------------------------------------------------------------
# Model + library
# -----------------------------------------------------------------------------

def read_metadata(metadata_url: str) -> Dict[str, Any]:
    path = Path(metadata_url)
    if not path.exists():
        raise ModelArtifactError("metadata not found at %s" % path)
    with path.open("r", encoding="utf-8") as f:
        metadata = json.load(f)
    labels = metadata.get("labels")
    if not isinstance(labels, list) or not labels:
        raise ModelArtifactError("metadata at %s has no 'labels' list" % path)
    return metadata


class KerasImageModel:
    """Loaded network plus its label list. ``predict`` covers every label."""

    def __init__(self, network, labels: List[str], image_size: int = DEFAULT_IMAGE_SIZE) -> None:
        self.network = network
        self.labels = list(labels)
        self.image_size = image_size

    def _predict_sync(self, img: Image.Image) -> List[Dict[str, Any]]:
        batch = preprocess_image(img, self.image_size)
        probs = np.asarray(self.network.predict(batch, verbose=0))[0].astype(float)
        return [
            {"className": name, "probability": float(p)}
            for name, p in zip(self.labels, probs)
        ]

    async def predict(self, img: Image.Image) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._predict_sync, img)


class KerasImageLibrary:
    def __init__(self, load_keras_model: Callable[..., Any]) -> None:
        self._load_keras_model = load_keras_model

    def _load_network(self, model_path: Path):
        if model_path.suffix == ".json":
            # TF.js layers format; weights.bin is resolved relative to model.json
            import tensorflowjs as tfjs

            return tfjs.converters.load_keras_model(str(model_path))
        return self._load_keras_model(model_path, compile=False)

    def _load_sync(self, model_url: str, metadata_url: str) -> KerasImageModel:
        metadata = read_metadata(metadata_url)
        model_path = Path(model_url)
        if not model_path.exists():
            raise ModelArtifactError("model not found at %s" % model_path)

        logger.info("Loading image model from %s", model_path)
        network = self._load_network(model_path)

        labels = metadata["labels"]
        num_outputs = network.output_shape[-1]
        if num_outputs != len(labels):
            raise ModelArtifactError(
                "Model outputs %d units, but %d labels are listed in %s"
                % (num_outputs, len(labels), metadata_url)
            )
        image_size = int(metadata.get("imageSize") or DEFAULT_IMAGE_SIZE)
        return KerasImageModel(network, labels, image_size)

    async def load(self, model_url: str, metadata_url: str) -> KerasImageModel:
        return await asyncio.to_thread(self._load_sync, model_url, metadata_url)


def import_keras_library() -> KerasImageLibrary:
    from tensorflow.keras.models import load_model as load_keras_model

    return KerasImageLibrary(load_keras_model)


class InferenceLibraryHandle:
    """
    Owns the lazily imported inference library.

    The first successful ``get()`` memoizes the library; a failed import is not
    cached, so the next call tries again.
    """

    def __init__(self, importer: Callable[[], Any] = import_keras_library) -> None:
        self._importer = importer
        self._library: Optional[Any] = None

    @property
    def loaded(self) -> bool:
        return self._library is not None

    async def get(self):
        if self._library is not None:
            return self._library
        try:
            library = await asyncio.to_thread(self._importer)
        except Exception:
            logger.exception("Failed to import inference library")
            raise
        self._library = library
        return library
