"""
Scoring of questionnaire answers and the blended diagnosis score.

All functions here are pure. Rounding is half-up (0.5 always rounds toward
+inf), not Python's round-half-even.
"""

from __future__ import annotations

import math
from typing import Mapping, Union

from .errors import IncompleteAnswersError
from .schemas import ANSWER_MAX, AnswerSet

QUESTION_KEYS = ("question1", "question2", "question3")
MAX_ANSWER_TOTAL = ANSWER_MAX * len(QUESTION_KEYS)  # 300

AI_WEIGHT = 0.7
USER_WEIGHT = 0.3

SEVERITY_LABELS = {
    "severe": "Parah",
    "moderate": "Sedang",
    "mild": "Ringan",
    "healthy": "Sehat",
}
UNKNOWN_SEVERITY_LABEL = "Tidak Diketahui"

SEVERITY_COLORS = {
    "severe": "red",
    "moderate": "yellow",
    "mild": "blue",
    "healthy": "green",
}
UNKNOWN_SEVERITY_COLOR = "gray"

# (lower bound, label, color), checked top-down
CONFIDENCE_BANDS = (
    (80, "Sangat Tinggi", "green"),
    (60, "Tinggi", "blue"),
    (40, "Sedang", "yellow"),
)
LOWEST_CONFIDENCE = ("Rendah", "red")


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _answer_values(answers: Union[AnswerSet, Mapping[str, object]]):
    if isinstance(answers, AnswerSet):
        answers = answers.model_dump()
    missing = [key for key in QUESTION_KEYS if answers.get(key) is None]
    if missing:
        raise IncompleteAnswersError(missing)
    return [answers[key] for key in QUESTION_KEYS]


def calculate_user_score(answers: Union[AnswerSet, Mapping[str, object]]) -> int:
    """Percentage of the maximum possible questionnaire total, 0-100."""
    total = sum(_answer_values(answers))
    return int(round_half_up(total / MAX_ANSWER_TOTAL * 100))


def calculate_final_score(ai_probability: float, user_score: float) -> float:
    """
    Blend the model confidence with the questionnaire score, 70/30.

    ``ai_probability`` stays on its native 0-1 scale while ``user_score`` is
    0-100, so the AI term contributes at most 0.7 points.
    """
    return round_half_up(ai_probability * AI_WEIGHT + user_score * USER_WEIGHT, 2)


def format_probability(probability: float) -> str:
    return "%d%%" % round_half_up(probability * 100)


def severity_label(severity: str) -> str:
    return SEVERITY_LABELS.get(severity, UNKNOWN_SEVERITY_LABEL)


def severity_color(severity: str) -> str:
    return SEVERITY_COLORS.get(severity, UNKNOWN_SEVERITY_COLOR)


def _confidence_band(final_score: float):
    for lower, label, color in CONFIDENCE_BANDS:
        if final_score >= lower:
            return label, color
    return LOWEST_CONFIDENCE


def confidence_level(final_score: float) -> str:
    return _confidence_band(final_score)[0]


def confidence_color(final_score: float) -> str:
    return _confidence_band(final_score)[1]
