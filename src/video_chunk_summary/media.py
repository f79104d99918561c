from __future__ import annotations

import logging
import math
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydub.utils import get_encoder_name, get_prober_name, which

from .errors import ExtractError, ProbeError, SegmentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """One fixed-length time window of a source video and its scratch artifacts."""

    video_index: int
    chunk_num: int
    audio_path: Path
    video_path: Path
    base_name: str
    start: float
    duration: float


def probe_duration(media_path: Path | str, *, ffprobe: str | None = None) -> float:
    """Return the container duration of ``media_path`` in seconds."""

    prober = ffprobe or get_prober_name()
    command = [
        prober,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(media_path),
    ]

    try:
        completed = subprocess.run(command, check=True, capture_output=True, encoding="utf-8", errors="replace")
    except FileNotFoundError as exc:
        raise ProbeError(f"{prober} is not available") from exc
    except subprocess.CalledProcessError as exc:
        output = (exc.stdout or "") + (exc.stderr or "")
        raise ProbeError(f"Error getting duration of {media_path}, output: {output.strip()}") from exc

    raw = completed.stdout.strip()
    try:
        duration = float(raw)
    except ValueError as exc:
        raise ProbeError(f"Error parsing duration {raw!r} of {media_path}") from exc
    if not math.isfinite(duration):
        raise ProbeError(f"Error parsing duration {raw!r} of {media_path}: not a finite number")
    return duration


def count_chunks(duration: float, chunk_duration: float) -> int:
    if chunk_duration <= 0:
        raise ValueError("chunk_duration must be positive")
    if duration <= 0:
        return 0
    return math.ceil(duration / chunk_duration)


def segment_video(
    video_path: Path | str,
    chunk_duration: int,
    video_index: int,
    base_name: str,
    *,
    scratch_dir: Path | str | None = None,
    ffmpeg: str | None = None,
    ffprobe: str | None = None,
) -> list[Chunk]:
    """Cut ``video_path`` into silent video and PCM audio chunks.

    Each chunk ``i`` covers ``[i * chunk_duration, (i + 1) * chunk_duration)``;
    ffmpeg clips the last window at the end of the media. When ``scratch_dir``
    is omitted a fresh temporary directory is created and owned by this call
    until it returns; it is removed again if probing fails.
    """

    if chunk_duration <= 0:
        raise ValueError("chunk_duration must be positive")

    source = Path(video_path)
    encoder = ffmpeg or get_encoder_name()
    if which(encoder) is None:
        raise SegmentError(f"{encoder} not found in PATH")

    created_scratch = scratch_dir is None
    if scratch_dir is None:
        target_dir = Path(tempfile.mkdtemp(prefix="video_chunks_"))
    else:
        target_dir = Path(scratch_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

    try:
        duration = probe_duration(source, ffprobe=ffprobe)
    except ProbeError:
        if created_scratch:
            shutil.rmtree(target_dir, ignore_errors=True)
        raise

    num_chunks = count_chunks(duration, chunk_duration)
    logger.info(
        "Video %d (%s): %.2fs long, cutting %d chunk(s) of %ds",
        video_index,
        source.name,
        duration,
        num_chunks,
        chunk_duration,
    )

    chunks: list[Chunk] = []
    for index in range(num_chunks):
        start = index * chunk_duration
        chunk_video = target_dir / f"chunk_{index}_video_{video_index}.mp4"
        chunk_audio = target_dir / f"chunk_{index}_video_{video_index}.wav"

        command = [
            encoder,
            "-y",
            "-ss",
            str(start),
            "-i",
            str(source),
            "-t",
            str(chunk_duration),
            "-c",
            "copy",
            "-an",
            str(chunk_video),
            "-ss",
            str(start),
            "-i",
            str(source),
            "-t",
            str(chunk_duration),
            "-vn",
            "-acodec",
            "pcm_s16le",
            str(chunk_audio),
        ]

        try:
            subprocess.run(command, check=True, capture_output=True, encoding="utf-8", errors="replace")
        except (OSError, subprocess.CalledProcessError) as exc:
            output = ""
            if isinstance(exc, subprocess.CalledProcessError):
                output = (exc.stdout or "") + (exc.stderr or "")
            raise SegmentError(
                f"Error creating chunk {index} for video {video_index}",
                output=output,
                scratch_dir=target_dir,
            ) from exc

        chunks.append(
            Chunk(
                video_index=video_index,
                chunk_num=index,
                audio_path=chunk_audio,
                video_path=chunk_video,
                base_name=base_name,
                start=float(start),
                duration=float(chunk_duration),
            )
        )

    return chunks


def extract_frames(
    input_video: Path | str,
    *,
    frame_rate: float = 1.0,
    output_dir: Path | str | None = None,
    ffmpeg: str | None = None,
    frame_prefix: str = "frame",
) -> list[Path]:
    """Sample ``frame_rate`` JPEG frames per second from ``input_video``.

    Returns the extracted frame paths sorted in capture order. A directory
    created here is removed again when ffmpeg fails.
    """

    if frame_rate <= 0:
        raise ValueError("frame_rate must be positive")

    source = Path(input_video)
    created_dir = output_dir is None
    if output_dir is None:
        target_dir = Path(tempfile.mkdtemp(prefix=f"frames_{source.stem}_"))
    else:
        target_dir = Path(output_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

    encoder = ffmpeg or get_encoder_name()
    pattern = target_dir / f"{frame_prefix}_%04d.jpg"
    command = [
        encoder,
        "-y",
        "-i",
        str(source),
        "-r",
        f"{frame_rate:g}",
        "-q:v",
        "2",
        str(pattern),
    ]

    try:
        subprocess.run(command, check=True, capture_output=True, encoding="utf-8", errors="replace")
    except (OSError, subprocess.CalledProcessError) as exc:
        if created_dir:
            shutil.rmtree(target_dir, ignore_errors=True)
        output = ""
        if isinstance(exc, subprocess.CalledProcessError):
            output = (exc.stdout or "") + (exc.stderr or "")
        raise ExtractError(f"Error extracting frames from {source}, output: {output.strip()}") from exc

    return sorted(target_dir.glob(f"{frame_prefix}_*.jpg"))
