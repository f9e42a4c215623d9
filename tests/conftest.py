import asyncio
import io

import pytest
from PIL import Image

from paddy_expert.config import DEFAULT_KNOWLEDGE_PATH
from paddy_expert.inference import InferenceLibraryHandle
from paddy_expert.knowledge import load_disease_info
from paddy_expert.model_loader import ModelLoader
from paddy_expert.workflow import DiagnosisWorkflow

LABELS = ["blast", "brown_spot", "normal", "tungro"]


def make_png(size=(32, 24), color=(40, 160, 60)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def spread(top_class: str, top_probability: float, labels=LABELS):
    """Model output (label order) with ``top_probability`` on ``top_class``, rest spread evenly."""
    rest = (1.0 - top_probability) / (len(labels) - 1)
    return [
        {"className": name, "probability": top_probability if name == top_class else rest}
        for name in labels
    ]


class FakeModel:
    def __init__(self, output=None, error=None):
        self.output = output if output is not None else spread("blast", 0.85)
        self.error = error
        self.calls = 0

    async def predict(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.output)


class BlockingModel(FakeModel):
    """predict() waits until ``release`` is set."""

    def __init__(self, output=None, error=None):
        super().__init__(output, error)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def predict(self, image):
        self.started.set()
        await self.release.wait()
        return await super().predict(image)


class FakeLibrary:
    """Fails the first ``failures`` loads, then returns ``model``."""

    def __init__(self, model=None, failures=0):
        self.model = model if model is not None else FakeModel()
        self.failures = failures
        self.calls = []

    async def load(self, model_url, metadata_url):
        self.calls.append((model_url, metadata_url))
        if len(self.calls) <= self.failures:
            raise OSError("fetch failed (%d)" % len(self.calls))
        return self.model


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_loader(library, sleep=None, **kwargs):
    handle = InferenceLibraryHandle(importer=lambda: library)
    return ModelLoader(
        handle,
        "model/model.json",
        "model/metadata.json",
        sleep=sleep or SleepRecorder(),
        **kwargs
    )


@pytest.fixture(scope="session")
def knowledge():
    return load_disease_info(DEFAULT_KNOWLEDGE_PATH)


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def make_workflow(knowledge):
    def factory(model=None, failures=0, **kwargs):
        library = FakeLibrary(model=model, failures=failures)
        return DiagnosisWorkflow(make_loader(library), knowledge, **kwargs)

    return factory
