"""
Four-step diagnosis flow for one session:

    upload -> chart -> validation -> result

``reset()`` returns to ``upload`` from any step. Failures raised while an
action is awaited are turned into a single human-readable message in
``error``; only calling an action outside its step raises
(``InvalidTransitionError``).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from .errors import ImageDecodeError, IncompleteAnswersError, InvalidTransitionError, ModelLoadError
from .inference import decode_image
from .knowledge import DiseaseInfo, localized_name
from .model_loader import ModelLoader
from .prediction import predict_image
from .schemas import (
    ANSWER_MAX,
    ANSWER_MIN,
    AnswerSet,
    DiagnosisResult,
    Prediction,
    SelectedImageInfo,
    Step,
    WorkflowState,
)
from .scoring import (
    calculate_final_score,
    calculate_user_score,
    confidence_color,
    confidence_level,
    format_probability,
    severity_color,
    severity_label,
)

logger = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.5
MAX_IMAGE_BYTES = 10 * 1024 * 1024

MSG_BUSY = "Wait for the current analysis to finish before uploading a new image."
MSG_NOT_IMAGE = "Please choose a valid image file (JPG, PNG, etc.)."
MSG_TOO_LARGE = "The file is too large. Maximum size is %d MB."
MSG_EMPTY_FILE = "Could not read the file. Please try again."
MSG_NO_IMAGE = "Please choose an image first."
MSG_MODEL_NOT_READY = "The AI model is not loaded yet. Please wait a moment."
MSG_MODEL_FAILED = "Failed to load the AI model (%s). Reload the page or check your connection."
MSG_DECODE_FAILED = "Could not process the image. Please try another image."
MSG_PREDICT_FAILED = "An error occurred while analysing the image. Please try again."
MSG_LOW_CONFIDENCE = (
    "Prediction confidence is low (%s). Try a clearer image or a different angle."
)
MSG_NO_PREDICTION = "Prediction data not found."
MSG_INCOMPLETE_ANSWERS = "Please answer all questions (missing: %s)."
MSG_INVALID_ANSWERS = "Answers must be whole numbers from %d to %d (invalid: %s)."


@dataclass(frozen=True)
class SelectedImage:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class DiagnosisWorkflow:
    def __init__(
        self,
        loader: ModelLoader,
        knowledge: Dict[str, DiseaseInfo],
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        decoder: Callable[[bytes], Any] = decode_image,
    ) -> None:
        self.loader = loader
        self.knowledge = knowledge
        self.confidence_threshold = confidence_threshold
        self.max_image_bytes = max_image_bytes
        self._decode = decoder

        self.step: Step = Step.upload
        self.selected_image: Optional[SelectedImage] = None
        self.prediction: Optional[Prediction] = None
        self.result: Optional[DiagnosisResult] = None
        self.error: Optional[str] = None

        self.model = None
        self.model_loading = False
        self.model_error: Optional[str] = None
        self.prediction_pending = False
        self._generation = 0

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self.model is not None

    def _require_step(self, step: Step, action: str) -> None:
        if self.step != step:
            raise InvalidTransitionError(action, self.step.value)

    def _reject(self, message: str) -> bool:
        logger.info("Rejected: %s", message)
        self.error = message
        return False

    def _move_to(self, step: Step) -> None:
        logger.info("Step %s -> %s", self.step.value, step.value)
        self.step = step

    # ------------------------------------------------------------------
    # model
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """Load the model once for this session. Never raises on load failure."""
        if self.model is not None:
            return True
        self.model_loading = True
        self.error = None
        logger.info("Initializing AI model...")
        try:
            self.model = await self.loader.load()
        except ModelLoadError as e:
            self.model_error = str(e)
            self.error = MSG_MODEL_FAILED % self.model_error
            return False
        finally:
            self.model_loading = False
        logger.info("AI model ready")
        return True

    # ------------------------------------------------------------------
    # upload step
    # ------------------------------------------------------------------

    def select_image(self, filename: str, content_type: Optional[str], data: bytes) -> bool:
        if self.prediction_pending:
            return self._reject(MSG_BUSY)
        self._require_step(Step.upload, "select an image")

        if not (content_type or "").startswith("image/"):
            return self._reject(MSG_NOT_IMAGE)
        if len(data) > self.max_image_bytes:
            return self._reject(MSG_TOO_LARGE % (self.max_image_bytes // (1024 * 1024)))
        if not data:
            return self._reject(MSG_EMPTY_FILE)

        self.selected_image = SelectedImage(filename=filename, content_type=content_type, data=data)
        self.error = None
        logger.info("Selected image %s (%d bytes)", filename, len(data))
        return True

    async def run_prediction(self) -> bool:
        if self.prediction_pending:
            return self._reject(MSG_BUSY)
        self._require_step(Step.upload, "run a prediction")

        if self.selected_image is None:
            return self._reject(MSG_NO_IMAGE)
        if self.model is None:
            if self.model_error:
                return self._reject(MSG_MODEL_FAILED % self.model_error)
            return self._reject(MSG_MODEL_NOT_READY)

        selected = self.selected_image
        generation = self._generation
        self.prediction_pending = True
        self.error = None
        failure: Optional[str] = None
        try:
            try:
                image = await asyncio.to_thread(self._decode, selected.data)
            except ImageDecodeError:
                logger.warning("Could not decode %s", selected.filename, exc_info=True)
                failure = MSG_DECODE_FAILED
            else:
                try:
                    prediction = await predict_image(self.model, image)
                except Exception:
                    logger.exception("Prediction error")
                    failure = MSG_PREDICT_FAILED
        finally:
            self.prediction_pending = False

        # a reset while awaiting owns the error slot now
        if generation != self._generation:
            logger.info("Session was reset during prediction; outcome discarded")
            return False
        if failure is not None:
            return self._reject(failure)
        self.prediction = prediction
        if prediction.probability > self.confidence_threshold:
            self.error = None
            self._move_to(Step.chart)
            return True
        return self._reject(MSG_LOW_CONFIDENCE % format_probability(prediction.probability))

    # ------------------------------------------------------------------
    # chart / validation steps
    # ------------------------------------------------------------------

    def proceed_to_validation(self) -> None:
        self._require_step(Step.chart, "start validation")
        self.error = None
        self._move_to(Step.validation)

    def submit_answers(self, answers: Union[AnswerSet, Mapping[str, Any]]) -> Optional[DiagnosisResult]:
        self._require_step(Step.validation, "submit answers")
        if self.prediction is None:
            self._reject(MSG_NO_PREDICTION)
            return None
        if not isinstance(answers, AnswerSet):
            try:
                answers = AnswerSet.model_validate(dict(answers))
            except ValidationError as e:
                fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
                self._reject(MSG_INVALID_ANSWERS % (ANSWER_MIN, ANSWER_MAX, ", ".join(fields)))
                return None

        try:
            user_score = calculate_user_score(answers)
        except IncompleteAnswersError as e:
            self._reject(MSG_INCOMPLETE_ANSWERS % ", ".join(e.missing))
            return None

        disease_class = self.prediction.disease_class
        ai_probability = self.prediction.probability
        final_score = calculate_final_score(ai_probability, user_score)
        info = self.knowledge.get(disease_class)
        severity = info.severity if info is not None else ""

        self.result = DiagnosisResult(
            disease_class=disease_class,
            disease_name=localized_name(self.knowledge, disease_class),
            ai_probability=ai_probability,
            user_score=user_score,
            final_score=final_score,
            disease_info=info,
            severity_label=severity_label(severity),
            severity_color=severity_color(severity),
            confidence_level=confidence_level(final_score),
            confidence_color=confidence_color(final_score),
        )
        self.error = None
        self._move_to(Step.result)
        return self.result

    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Back to upload, discarding image, prediction and result. The model is kept."""
        self._generation += 1
        self._move_to(Step.upload)
        self.selected_image = None
        self.prediction = None
        self.result = None
        self.error = None
        if self.model_error:
            self.error = MSG_MODEL_FAILED % self.model_error

    def snapshot(self) -> WorkflowState:
        image = self.selected_image
        return WorkflowState(
            step=self.step,
            model_loading=self.model_loading,
            model_ready=self.is_ready,
            model_error=self.model_error,
            prediction_pending=self.prediction_pending,
            error=self.error,
            selected_image=(
                SelectedImageInfo(filename=image.filename, content_type=image.content_type, size=image.size)
                if image is not None else None
            ),
            prediction=self.prediction,
            result=self.result,
        )
