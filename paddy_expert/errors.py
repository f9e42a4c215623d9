"""Exception types raised by the diagnosis pipeline."""

from __future__ import annotations

from typing import Optional


class PaddyExpertError(Exception):
    """Base class for every error raised by this package."""


class ModelArtifactError(PaddyExpertError):
    """Model files are missing, unreadable or inconsistent with their labels."""


class ModelLoadTimeout(PaddyExpertError):
    def __init__(self, timeout: float) -> None:
        super().__init__("Model loading timeout (%gs exceeded)" % timeout)
        self.timeout = timeout


class ModelLoadError(PaddyExpertError):
    """All load attempts failed. Carries the attempt count and the last cause."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]) -> None:
        detail = str(last_error) if last_error is not None else "Unknown error"
        super().__init__(
            "Model failed to load after %d attempts: %s" % (attempts, detail or type(last_error).__name__)
        )
        self.attempts = attempts
        self.last_error = last_error


class InferenceError(PaddyExpertError):
    """The model ran but produced no usable output."""


class ImageDecodeError(PaddyExpertError):
    """Uploaded bytes could not be decoded as an image."""


class InvalidTransitionError(PaddyExpertError):
    def __init__(self, action: str, step: str) -> None:
        super().__init__("Cannot %s while in step '%s'" % (action, step))
        self.action = action
        self.step = step


class IncompleteAnswersError(PaddyExpertError, ValueError):
    def __init__(self, missing) -> None:
        super().__init__("Missing questionnaire answers: %s" % ", ".join(missing))
        self.missing = list(missing)
