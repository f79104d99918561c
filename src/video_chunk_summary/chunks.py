from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, TextIO

from .asr import WhisperCLITranscriber
from .errors import PipelineError, RunError, TranscribeError
from .media import Chunk
from .outputs import format_chunk_entry
from .screen_text import ScreenTextExtractor

logger = logging.getLogger(__name__)

AUDIO_PLACEHOLDER = "Audio transcription failed for video {video_index} chunk {chunk_num}."
SCREEN_PLACEHOLDER = "Video transcription failed for video {video_index} chunk {chunk_num}."

Reporter = Callable[[RunError], None]


def process_chunk(
    chunk: Chunk,
    *,
    transcriber: WhisperCLITranscriber,
    screen_extractor: ScreenTextExtractor,
    audio_out: TextIO,
    screen_out: TextIO,
    report: Reporter,
) -> None:
    """Transcribe a chunk's audio and screen text in parallel and append both.

    Returns once both tasks have written their entry and deleted their scratch
    artifact. Failures are reported and replaced by a placeholder line. Each
    transcript file has exactly one writer per chunk, and chunks run one at a
    time, so appends need no lock.
    """

    logger.info("Processing chunk %d for video %d...", chunk.chunk_num, chunk.video_index)
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix=f"chunk{chunk.chunk_num}") as executor:
        audio_future = executor.submit(_run_audio, chunk, transcriber, audio_out, report)
        screen_future = executor.submit(_run_screen, chunk, screen_extractor, screen_out, report)
        audio_future.result()
        screen_future.result()
    logger.info("Finished processing chunk %d for video %d.", chunk.chunk_num, chunk.video_index)


def _run_audio(
    chunk: Chunk,
    transcriber: WhisperCLITranscriber,
    audio_out: TextIO,
    report: Reporter,
) -> None:
    try:
        try:
            text = transcriber.transcribe(
                chunk.audio_path,
                video_index=chunk.video_index,
                chunk_num=chunk.chunk_num,
            )
        except TranscribeError as exc:
            report(RunError(chunk.video_index, "audio", str(exc), chunk.chunk_num))
            text = AUDIO_PLACEHOLDER.format(video_index=chunk.video_index, chunk_num=chunk.chunk_num)
        except Exception as exc:
            logger.exception(
                "Unexpected error transcribing audio of video %d chunk %d", chunk.video_index, chunk.chunk_num
            )
            report(RunError(chunk.video_index, "audio", _describe(exc), chunk.chunk_num))
            text = AUDIO_PLACEHOLDER.format(video_index=chunk.video_index, chunk_num=chunk.chunk_num)

        _append(audio_out, chunk, text, "audio", report)
        logger.info(
            "Chunk %d for video %d: audio transcribed and written to audio output file.",
            chunk.chunk_num,
            chunk.video_index,
        )
    finally:
        _remove(chunk.audio_path)


def _run_screen(
    chunk: Chunk,
    screen_extractor: ScreenTextExtractor,
    screen_out: TextIO,
    report: Reporter,
) -> None:
    try:
        try:
            text = screen_extractor.extract(
                chunk.video_path,
                video_index=chunk.video_index,
                chunk_num=chunk.chunk_num,
            ).text
        except (PipelineError, OSError) as exc:
            report(RunError(chunk.video_index, "screen", str(exc), chunk.chunk_num))
            text = SCREEN_PLACEHOLDER.format(video_index=chunk.video_index, chunk_num=chunk.chunk_num)
        except Exception as exc:
            logger.exception(
                "Unexpected error extracting screen text of video %d chunk %d", chunk.video_index, chunk.chunk_num
            )
            report(RunError(chunk.video_index, "screen", _describe(exc), chunk.chunk_num))
            text = SCREEN_PLACEHOLDER.format(video_index=chunk.video_index, chunk_num=chunk.chunk_num)

        _append(screen_out, chunk, text, "screen", report)
        logger.info(
            "Chunk %d for video %d: video transcribed and written to video output file.",
            chunk.chunk_num,
            chunk.video_index,
        )
    finally:
        _remove(chunk.video_path)


def _describe(exc: Exception) -> str:
    return f"unexpected {type(exc).__name__}: {exc}"


def _append(handle: TextIO, chunk: Chunk, text: str, stage: str, report: Reporter) -> None:
    try:
        handle.write(format_chunk_entry(chunk.video_index, chunk.chunk_num, text))
        handle.flush()
    except OSError as exc:
        report(RunError(chunk.video_index, f"{stage}-write", str(exc), chunk.chunk_num))


def _remove(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not delete chunk artifact %s: %s", path, exc)
