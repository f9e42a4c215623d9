from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .knowledge import DiseaseInfo

ANSWER_MIN = 0
ANSWER_MAX = 100


class Step(str, Enum):
    upload = "upload"
    chart = "chart"
    validation = "validation"
    result = "result"


class AnswerSet(BaseModel):
    """Questionnaire answers. A set may be partial; scoring requires all three."""

    question1: Optional[int] = Field(None, ge=ANSWER_MIN, le=ANSWER_MAX)
    question2: Optional[int] = Field(None, ge=ANSWER_MIN, le=ANSWER_MAX)
    question3: Optional[int] = Field(None, ge=ANSWER_MIN, le=ANSWER_MAX)

    def missing(self) -> List[str]:
        return [name for name in ("question1", "question2", "question3") if getattr(self, name) is None]


class CategoryProbability(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(..., alias="className")
    probability: float = Field(..., ge=0.0, le=1.0)


class Prediction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    disease_class: str = Field(..., alias="class")
    probability: float = Field(..., ge=0.0, le=1.0)
    all_predictions: List[CategoryProbability] = Field(..., alias="allPredictions")


class DiagnosisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    disease_class: str
    disease_name: str
    ai_probability: float
    user_score: int
    final_score: float
    disease_info: Optional[DiseaseInfo] = None
    severity_label: str
    severity_color: str
    confidence_level: str
    confidence_color: str


class SelectedImageInfo(BaseModel):
    filename: str
    content_type: str
    size: int


class WorkflowState(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    step: Step
    model_loading: bool
    model_ready: bool
    model_error: Optional[str] = None
    prediction_pending: bool
    error: Optional[str] = None
    selected_image: Optional[SelectedImageInfo] = None
    prediction: Optional[Prediction] = None
    result: Optional[DiagnosisResult] = None
