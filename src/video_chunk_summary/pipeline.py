from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Optional

from .asr import WhisperCLITranscriber
from .chunks import process_chunk
from .config import RunContext
from .errors import ProbeError, RunError, SegmentError
from .gemini import text_part
from .media import segment_video
from .outputs import OutputPaths, completion_marker, output_paths
from .retry import send_prompt
from .screen_text import ScreenTextExtractor

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".avi", ".wmv", ".mkv", ".flv", ".webm", ".mpeg", ".mpg"})

SUMMARY_INSTRUCTIONS = (
    "Here is a raw transcription of a video. Your task is to refine it into a well-structured, "
    "human-like summary with explanations while keeping all the original details. Analyze the lecture "
    "provided in the audio transcription and video text. Identify the main topic, key arguments, "
    "supporting evidence, and any examples used. Explain the lecture in a structured way, highlighting "
    "the connections between different ideas. Use information from both the audio transcription and "
    "video text to create a comprehensive explanation, also use timestamp to help us correlate with "
    "the audio transcript:"
)


@dataclass
class VideoResult:
    video_path: Path
    video_index: int
    outputs: Optional[OutputPaths] = None
    chunk_count: int = 0
    summary: Optional[str] = None
    completed: bool = False


@dataclass
class BatchResult:
    videos: list[VideoResult] = field(default_factory=list)
    errors: list[RunError] = field(default_factory=list)


def is_video_file(path: Path | str) -> bool:
    return Path(path).suffix.lower() in VIDEO_EXTENSIONS


def discover_videos(input_path: Path | str) -> list[Path]:
    """Return the videos under ``input_path`` (a file or a directory tree).

    Raises ``FileNotFoundError`` when the path itself cannot be accessed.
    """

    path = Path(input_path)
    if not path.exists():
        raise FileNotFoundError(f"Input path does not exist: {path}")

    if path.is_dir():
        logger.info("Processing folder: %s", path)
        return sorted(candidate for candidate in path.rglob("*") if candidate.is_file() and is_video_file(candidate))

    logger.info("Processing single file: %s", path)
    if is_video_file(path):
        return [path]
    logger.warning("Input path is not a video file: %s", path)
    return []


def build_summary_prompt(audio_transcript: str, screen_transcript: str, *, context_text: str = "") -> str:
    prompt = (
        f"{SUMMARY_INSTRUCTIONS}\n\n"
        "--- RAW TRANSCRIPTION of Audio ---\n"
        f"{audio_transcript}\n\n"
        "--- RAW TRANSCRIPTION of Video Text ---\n"
        f"{screen_transcript}\n\n"
        "Please rewrite it clearly with explanations where needed, ensuring it's easy to read and understand."
    )
    if context_text.strip():
        prompt = f"{context_text.strip()}\n\n{prompt}"
    return prompt


def build_transcriber(context: RunContext) -> WhisperCLITranscriber:
    config = context.config
    return WhisperCLITranscriber(
        cli_path=config.whisper_cli,
        model_path=config.whisper_model,
        threads=config.whisper_threads,
        language=config.whisper_language,
    )


def build_screen_extractor(context: RunContext) -> ScreenTextExtractor:
    config = context.config
    return ScreenTextExtractor(
        context.client,
        tesseract_cmd=config.tesseract_cmd,
        max_ocr_workers=context.ocr_workers,
        activation_delay=config.activation_delay,
        max_retries=config.max_retries,
        retry_delay=config.retry_delay,
        frame_rate=config.frame_rate,
        jpeg_quality=config.jpeg_quality,
        ffmpeg=config.ffmpeg_binary,
        sleep=context.sleep,
    )


def process_video(
    video_path: Path | str,
    video_index: int,
    context: RunContext,
    *,
    transcriber: Optional[WhisperCLITranscriber] = None,
    screen_extractor: Optional[ScreenTextExtractor] = None,
) -> VideoResult:
    """Chunk, transcribe and summarize one video.

    Chunks are processed one after another; only the audio and screen-text
    extraction of a single chunk run concurrently, so transcript entries land in
    chunk order. Setup failures abort this video only and are reported on the
    context's error queue.
    """

    config = context.config
    video = Path(video_path).resolve()
    base_name = video.stem
    target_dir = config.output_dir if config.output_dir is not None else video.parent
    paths = output_paths(base_name, target_dir)
    result = VideoResult(video_path=video, video_index=video_index, outputs=paths)

    asr = transcriber if transcriber is not None else build_transcriber(context)
    extractor = screen_extractor if screen_extractor is not None else build_screen_extractor(context)

    logger.info("--- START PROCESSING VIDEO %d: %s ---", video_index, video)

    with contextlib.ExitStack() as stack:
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            summary_out = stack.enter_context(open(paths.summary, "w", encoding="utf-8"))
            audio_out = stack.enter_context(open(paths.audio, "w", encoding="utf-8"))
            screen_out = stack.enter_context(open(paths.screen, "w", encoding="utf-8"))
        except OSError as exc:
            context.report(RunError(video_index, "setup", f"Error creating output files: {exc}"))
            return result
        logger.info("Output files created for video: %s", video)

        with TemporaryDirectory(prefix="video_chunks_") as scratch:
            try:
                chunks = segment_video(
                    video,
                    config.chunk_duration,
                    video_index,
                    base_name,
                    scratch_dir=scratch,
                    ffmpeg=config.ffmpeg_binary,
                    ffprobe=config.ffprobe_binary,
                )
            except (ProbeError, SegmentError) as exc:
                context.report(RunError(video_index, "segment", f"Error chunking video {video}: {exc}"))
                return result
            result.chunk_count = len(chunks)

            for chunk in chunks:
                process_chunk(
                    chunk,
                    transcriber=asr,
                    screen_extractor=extractor,
                    audio_out=audio_out,
                    screen_out=screen_out,
                    report=context.report,
                )

        logger.info("All chunks of video %d processed. Sending combined prompt to LLM...", video_index)
        try:
            audio_out.flush()
            screen_out.flush()
            audio_transcript = paths.audio.read_text(encoding="utf-8")
            screen_transcript = paths.screen.read_text(encoding="utf-8")
        except OSError as exc:
            context.report(RunError(video_index, "read-back", f"Error reading transcript files: {exc}"))
            return result

        prompt = build_summary_prompt(audio_transcript, screen_transcript, context_text=config.context_text)
        summary = send_prompt(
            context.client,
            [text_part(prompt)],
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            sink=summary_out,
            label=f"combined prompt for video {video_index}",
            sleep=context.sleep,
        )
        if summary.exhausted:
            context.report(
                RunError(video_index, "summary", f"Summarization failed after {summary.attempts} attempt(s)")
            )
        result.summary = summary.text

        marker = completion_marker(video_index)
        for handle in (summary_out, audio_out, screen_out):
            handle.write(marker)

    result.completed = True
    logger.info("--- FINISHED PROCESSING VIDEO %d: %s ---", video_index, video)
    return result


def process_batch(
    input_path: Path | str,
    context: RunContext,
    *,
    transcriber: Optional[WhisperCLITranscriber] = None,
    screen_extractor: Optional[ScreenTextExtractor] = None,
) -> BatchResult:
    """Process every video found at ``input_path`` and collect non-fatal errors."""

    videos = discover_videos(input_path)
    batch = BatchResult()
    if not videos:
        logger.info("No video files found to process.")
        return batch

    asr = transcriber if transcriber is not None else build_transcriber(context)
    extractor = screen_extractor if screen_extractor is not None else build_screen_extractor(context)

    for video_index, video in enumerate(videos, start=1):
        batch.videos.append(
            process_video(
                video,
                video_index,
                context,
                transcriber=asr,
                screen_extractor=extractor,
            )
        )

    batch.errors = context.drain_errors()
    for error in batch.errors:
        logger.error("Error from run: %s", error)
    logger.info("All videos processing complete.")
    return batch
