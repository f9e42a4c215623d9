"""
Runtime settings.

Every value has a default and can be overridden from the environment with
``Settings.from_env()``. Paths are resolved relative to the working directory
unless absolute.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def get_base_dir() -> Path:
    return Path(__file__).resolve().parent


DEFAULT_KNOWLEDGE_PATH = get_base_dir() / "data" / "disease_info.csv"


@dataclass
class Settings:
    # Model artifact (Teachable Machine export)
    model_dir: Path = Path("model")
    model_file: str = "model.json"
    metadata_file: str = "metadata.json"
    weights_file: str = "weights.bin"

    # Loading policy
    model_retries: int = 3
    model_timeout: float = 60.0

    # Workflow guards
    confidence_threshold: float = 0.5
    max_image_mb: int = 10

    knowledge_path: Path = field(default_factory=lambda: DEFAULT_KNOWLEDGE_PATH)
    log_level: str = "INFO"

    @property
    def model_url(self) -> str:
        return str(Path(self.model_dir) / self.model_file)

    @property
    def metadata_url(self) -> str:
        return str(Path(self.model_dir) / self.metadata_file)

    @property
    def weights_url(self) -> str:
        return str(Path(self.model_dir) / self.weights_file)

    @property
    def max_image_bytes(self) -> int:
        return self.max_image_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            model_dir=Path(os.getenv("PADDY_MODEL_DIR", "model")),
            model_file=os.getenv("PADDY_MODEL_FILE", "model.json"),
            metadata_file=os.getenv("PADDY_METADATA_FILE", "metadata.json"),
            weights_file=os.getenv("PADDY_WEIGHTS_FILE", "weights.bin"),
            model_retries=int(os.getenv("PADDY_MODEL_RETRIES", "3")),
            model_timeout=float(os.getenv("PADDY_MODEL_TIMEOUT", "60")),
            confidence_threshold=float(os.getenv("PADDY_CONFIDENCE_THRESHOLD", "0.5")),
            max_image_mb=int(os.getenv("PADDY_MAX_IMAGE_MB", "10")),
            knowledge_path=Path(os.getenv("PADDY_KNOWLEDGE_PATH", str(DEFAULT_KNOWLEDGE_PATH))),
            log_level=os.getenv("PADDY_LOG_LEVEL", "INFO").upper(),
        )
