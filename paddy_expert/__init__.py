"""
Paddy Expert: rice leaf disease diagnosis.

Classifies a leaf photo with a pretrained image model and blends the model
confidence with a three-question symptom questionnaire.
"""

__version__ = "0.1.0"

from .config import Settings
from .errors import (
    ImageDecodeError,
    IncompleteAnswersError,
    InferenceError,
    InvalidTransitionError,
    ModelArtifactError,
    ModelLoadError,
    ModelLoadTimeout,
    PaddyExpertError,
)
from .model_loader import ModelLoader
from .prediction import predict_image
from .schemas import AnswerSet, DiagnosisResult, Prediction, Step
from .workflow import DiagnosisWorkflow

__all__ = [
    "Settings",
    "AnswerSet",
    "DiagnosisResult",
    "Prediction",
    "Step",
    "ModelLoader",
    "predict_image",
    "DiagnosisWorkflow",
    "PaddyExpertError",
    "ModelLoadError",
    "ModelLoadTimeout",
    "ModelArtifactError",
    "InferenceError",
    "ImageDecodeError",
    "InvalidTransitionError",
    "IncompleteAnswersError",
]
