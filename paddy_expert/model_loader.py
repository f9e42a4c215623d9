"""
Model acquisition with retry, per-attempt timeout and exponential backoff.

Each attempt awaits ``library.load(model_url, metadata_url)`` under
``asyncio.wait_for``. When the timeout wins, the waiting coroutine is
cancelled but a load already running in a worker thread is not stopped; it is
abandoned and its result discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .errors import ModelLoadError, ModelLoadTimeout
from .inference import InferenceLibraryHandle

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_TIMEOUT = 60.0
BACKOFF_BASE = 1.0
BACKOFF_CAP = 5.0


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after failed ``attempt`` (1-based): 1, 2, 4, then 5."""
    return min(BACKOFF_BASE * 2 ** (attempt - 1), BACKOFF_CAP)


class ModelLoader:
    def __init__(
        self,
        library: InferenceLibraryHandle,
        model_url: str,
        metadata_url: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.library = library
        self.model_url = model_url
        self.metadata_url = metadata_url
        self.max_retries = max_retries
        self.timeout = timeout
        self._sleep = sleep

    async def _attempt(self):
        library = await self.library.get()
        logger.info("Fetching model from: %s", self.model_url)
        logger.info("Fetching metadata from: %s", self.metadata_url)
        try:
            return await asyncio.wait_for(
                library.load(self.model_url, self.metadata_url), self.timeout
            )
        except asyncio.TimeoutError:
            raise ModelLoadTimeout(self.timeout) from None

    async def load(self):
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_retries + 1):
            logger.info("Loading model (attempt %d/%d)...", attempt, self.max_retries)
            try:
                model = await self._attempt()
            except Exception as e:
                last_error = e
                logger.warning("Attempt %d failed: %s", attempt, e, exc_info=True)
                if attempt < self.max_retries:
                    delay = backoff_delay(attempt)
                    logger.info("Retrying in %.0fms...", delay * 1000)
                    await self._sleep(delay)
                continue
            logger.info("Model loaded successfully")
            return model

        error = ModelLoadError(self.max_retries, last_error)
        logger.error("%s", error)
        raise error from last_error
