"""On-screen text extraction: remote model description with a local OCR fallback."""

from __future__ import annotations

import enum
import logging
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .errors import UploadError
from .gemini import GeminiClient, UploadedFile, file_part, text_part
from .media import extract_frames
from .ocr import recognize_frames
from .retry import send_prompt

logger = logging.getLogger(__name__)

SCREEN_TEXT_PROMPT = (
    "## Task Description\n"
    "Analyze the video and provide a detailed raw transcription of text displayed in the video."
)


class ScreenTextSource(enum.Enum):
    REMOTE = "remote"
    OCR = "ocr"


@dataclass(frozen=True)
class ScreenTextResult:
    text: str
    source: ScreenTextSource


class ScreenTextExtractor:
    """Per-chunk state machine: remote attempt first, OCR only when it yields nothing.

    The uploaded remote file is always deleted before ``extract`` returns, and the
    fallback's frame directory is removed once OCR has finished.
    """

    def __init__(
        self,
        client: GeminiClient,
        *,
        tesseract_cmd: str = "tesseract",
        max_ocr_workers: int | None = None,
        activation_delay: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 15.0,
        frame_rate: float = 1.0,
        jpeg_quality: int = 90,
        ffmpeg: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.tesseract_cmd = tesseract_cmd
        self.max_ocr_workers = max_ocr_workers
        self.activation_delay = activation_delay
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.frame_rate = frame_rate
        self.jpeg_quality = jpeg_quality
        self.ffmpeg = ffmpeg
        self._sleep = sleep

    def extract(self, video_path: Path | str, *, video_index: int, chunk_num: int) -> ScreenTextResult:
        try:
            uploaded = self.client.upload_file(video_path)
        except UploadError as exc:
            logger.info(
                "Chunk %d for video %d: LLM upload failed (%s), falling back to Tesseract...",
                chunk_num,
                video_index,
                exc,
            )
            return self._ocr_fallback(video_path, video_index=video_index, chunk_num=chunk_num)

        try:
            logger.info("Waiting %.0fs after file upload to ensure file activation...", self.activation_delay)
            self._sleep(self.activation_delay)
            logger.info("Chunk %d for video %d: video chunk uploaded as %s", chunk_num, video_index, uploaded.uri)
            result = send_prompt(
                self.client,
                [text_part(SCREEN_TEXT_PROMPT), file_part(uploaded)],
                max_retries=self.max_retries,
                retry_delay=self.retry_delay,
                label=f"screen text of video {video_index} chunk {chunk_num}",
                sleep=self._sleep,
            )
        finally:
            self._release(uploaded)

        if result.ok and result.text.strip():
            logger.info("Chunk %d for video %d: video transcribed by LLM.", chunk_num, video_index)
            return ScreenTextResult(text=result.text, source=ScreenTextSource.REMOTE)

        reason = "retries exhausted" if result.exhausted else "empty response"
        logger.info(
            "Chunk %d for video %d: LLM transcription failed (%s), falling back to Tesseract...",
            chunk_num,
            video_index,
            reason,
        )
        return self._ocr_fallback(video_path, video_index=video_index, chunk_num=chunk_num)

    def _release(self, uploaded: UploadedFile) -> None:
        try:
            self.client.delete_file(uploaded.name)
        except UploadError as exc:
            logger.warning("Could not delete remote file %s: %s", uploaded.name, exc)

    def _ocr_fallback(self, video_path: Path | str, *, video_index: int, chunk_num: int) -> ScreenTextResult:
        frames_dir = Path(tempfile.mkdtemp(prefix=f"frames_video{video_index}_chunk{chunk_num}_"))
        try:
            frames = extract_frames(
                video_path,
                frame_rate=self.frame_rate,
                output_dir=frames_dir,
                ffmpeg=self.ffmpeg,
            )
            text = recognize_frames(
                frames,
                tesseract_cmd=self.tesseract_cmd,
                max_workers=self.max_ocr_workers,
                jpeg_quality=self.jpeg_quality,
            )
        finally:
            shutil.rmtree(frames_dir, ignore_errors=True)
        return ScreenTextResult(text=text, source=ScreenTextSource.OCR)
