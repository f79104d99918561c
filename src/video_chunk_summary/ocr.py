"""Local OCR over extracted frames with a bounded worker pool."""

from __future__ import annotations

import io
import logging
import os
import subprocess
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Sequence

from PIL import Image

from .errors import OCRError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


def ocr_worker_count(cap: int = DEFAULT_MAX_WORKERS) -> int:
    return max(1, min(os.cpu_count() or 1, cap))


def _normalize_to_jpeg(frame_path: Path, quality: int) -> bytes:
    try:
        with Image.open(frame_path) as image:
            image.load()
            rgb = image.convert("RGB")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise OCRError(f"Error decoding image file {frame_path}: {exc}") from exc

    buffer = io.BytesIO()
    try:
        rgb.save(buffer, format="JPEG", quality=quality)
    except (OSError, ValueError) as exc:
        raise OCRError(f"Error encoding {frame_path} to JPEG: {exc}") from exc
    return buffer.getvalue()


def recognize_frame(
    frame_path: Path | str,
    *,
    tesseract_cmd: str = "tesseract",
    jpeg_quality: int = 90,
) -> str:
    """Run tesseract over a re-encoded copy of ``frame_path`` and return its stdout.

    The private temporary copy is removed before returning, whatever the outcome.
    """

    path = Path(frame_path)
    payload = _normalize_to_jpeg(path, jpeg_quality)

    fd, temp_name = tempfile.mkstemp(prefix="ocr_", suffix=".jpg")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)

        try:
            completed = subprocess.run(
                [tesseract_cmd, str(temp_path), "stdout"],
                capture_output=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise OCRError(f"Error running tesseract on {path}: {exc}") from exc

        if completed.returncode != 0:
            raise OCRError(
                f"Error running tesseract on {path}: exit status {completed.returncode}, "
                f"stderr: {(completed.stderr or '').strip()}"
            )
        return completed.stdout
    except OSError as exc:
        raise OCRError(f"Error writing temp file for {path}: {exc}") from exc
    finally:
        temp_path.unlink(missing_ok=True)


def recognize_frames(
    frame_paths: Sequence[Path | str],
    *,
    tesseract_cmd: str = "tesseract",
    max_workers: int | None = None,
    jpeg_quality: int = 90,
) -> str:
    """OCR every frame concurrently and join the successful results.

    Results are concatenated in completion order, not frame order. Frames that
    fail are logged and left out; the pool never raises for them.
    """

    if not frame_paths:
        return ""

    workers = max_workers if max_workers is not None else ocr_worker_count()
    pieces: list[str] = []
    failures = 0

    with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="ocr") as executor:
        futures = {
            executor.submit(
                recognize_frame,
                frame,
                tesseract_cmd=tesseract_cmd,
                jpeg_quality=jpeg_quality,
            ): frame
            for frame in frame_paths
        }
        for future in as_completed(futures):
            try:
                text = future.result()
            except OCRError as exc:
                failures += 1
                logger.warning("%s", exc)
                continue
            pieces.append(text)
            pieces.append("\n")

    logger.info(
        "OCR finished for %d frame(s), %d failed",
        len(frame_paths),
        failures,
    )
    return "".join(pieces)
