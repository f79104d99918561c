from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path

from .errors import TranscribeError

logger = logging.getLogger(__name__)


class WhisperCLITranscriber:
    """Runs a whisper.cpp style command line binary once per audio chunk."""

    def __init__(
        self,
        *,
        cli_path: str | Path = "whisper-cli",
        model_path: str | Path,
        threads: int = 4,
        language: str | None = None,
    ) -> None:
        if threads <= 0:
            raise ValueError("threads must be positive")
        self.cli_path = str(cli_path)
        self.model_path = str(model_path)
        self.threads = threads
        self.language = language or None

    def build_command(self, audio_path: Path | str) -> list[str]:
        command = [
            self.cli_path,
            "--model",
            self.model_path,
            "--threads",
            str(self.threads),
        ]
        if self.language:
            command.extend(["--language", self.language])
        command.append(str(audio_path))
        return command

    def transcribe(
        self,
        audio_path: Path | str,
        *,
        video_index: int = 0,
        chunk_num: int = 0,
    ) -> str:
        """Return the engine's standard output verbatim as the transcript."""

        command = self.build_command(audio_path)
        logger.info(
            "Starting whisper-cli for video %d chunk %d, audio path: %s",
            video_index,
            chunk_num,
            audio_path,
        )
        started = time.monotonic()

        try:
            completed = subprocess.run(command, capture_output=True, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise TranscribeError(
                f"Error running whisper-cli for video {video_index} chunk {chunk_num}: {exc}"
            ) from exc

        logger.info(
            "Whisper-cli finished for video %d chunk %d in %.1fs",
            video_index,
            chunk_num,
            time.monotonic() - started,
        )
        if completed.returncode != 0:
            raise TranscribeError(
                f"Error running whisper-cli for video {video_index} chunk {chunk_num}: "
                f"exit status {completed.returncode}",
                stderr=completed.stderr or "",
            )
        if completed.stderr:
            logger.debug("whisper-cli stderr for video %d chunk %d: %s", video_index, chunk_num, completed.stderr)

        return completed.stdout
