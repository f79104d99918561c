from __future__ import annotations

import logging
import os
import queue
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from .errors import RunError
from .ocr import ocr_worker_count

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when pipeline settings are invalid."""


@dataclass
class PipelineConfig:
    """Settings shared by every stage of one batch run."""

    chunk_duration: int = 60
    model: str = "gemini-1.5-flash"
    api_key: str | None = None
    whisper_cli: str = "whisper-cli"
    whisper_model: str = "models/ggml-base.bin"
    whisper_threads: int = 4
    whisper_language: str = ""
    tesseract_cmd: str = "tesseract"
    # None means "let pydub locate the ffmpeg/ffprobe pair"
    ffmpeg_binary: str | None = None
    ffprobe_binary: str | None = None
    max_retries: int = 3
    retry_delay: float = 15.0
    activation_delay: float = 30.0
    frame_rate: float = 1.0
    jpeg_quality: int = 90
    max_ocr_workers: int = 8
    context_text: str = ""
    output_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.chunk_duration <= 0:
            raise ConfigError("chunk_duration must be positive")
        if self.whisper_threads <= 0:
            raise ConfigError("whisper_threads must be positive")
        if self.max_retries < 0:
            raise ConfigError("max_retries must not be negative")
        if self.retry_delay < 0 or self.activation_delay < 0:
            raise ConfigError("delays must not be negative")
        if self.frame_rate <= 0:
            raise ConfigError("frame_rate must be positive")
        if not 1 <= self.jpeg_quality <= 100:
            raise ConfigError("jpeg_quality must be between 1 and 100")
        if self.max_ocr_workers <= 0:
            raise ConfigError("max_ocr_workers must be positive")
        if self.output_dir is not None:
            self.output_dir = Path(self.output_dir)

    def resolve_api_key(self) -> str:
        api_key = self.api_key or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY is not set")
        return api_key


@dataclass
class RunContext:
    """State owned by a single batch run and threaded through every stage."""

    config: PipelineConfig
    client: Any
    errors: "queue.Queue[RunError]" = field(default_factory=queue.Queue)
    ocr_workers: int = 0
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.ocr_workers <= 0:
            self.ocr_workers = ocr_worker_count(self.config.max_ocr_workers)

    def report(self, error: RunError) -> None:
        logger.warning("%s", error)
        self.errors.put(error)

    def drain_errors(self) -> list[RunError]:
        collected: list[RunError] = []
        while True:
            try:
                collected.append(self.errors.get_nowait())
            except queue.Empty:
                return collected
