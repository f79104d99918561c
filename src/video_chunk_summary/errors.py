from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class PipelineError(RuntimeError):
    """Base class for failures raised by pipeline stages."""


class ProbeError(PipelineError):
    """Raised when the media duration cannot be determined."""


class SegmentError(PipelineError):
    """Raised when a chunk cannot be cut from the source video.

    ``scratch_dir`` points at the partially populated scratch directory, if one
    was created, so the caller can remove it.
    """

    def __init__(self, message: str, *, output: str = "", scratch_dir: Path | None = None) -> None:
        if output:
            message = f"{message}, output: {output.strip()}"
        super().__init__(message)
        self.output = output
        self.scratch_dir = scratch_dir


class TranscribeError(PipelineError):
    """Raised when the speech engine exits with a failure."""

    def __init__(self, message: str, *, stderr: str = "") -> None:
        if stderr:
            message = f"{message}, stderr: {stderr.strip()}"
        super().__init__(message)
        self.stderr = stderr


class ExtractError(PipelineError):
    """Raised when frames cannot be sampled from a chunk video."""


class OCRError(PipelineError):
    """Raised when a single frame cannot be recognized."""


class UploadError(PipelineError):
    """Raised when the remote service rejects a file upload or delete."""


class PromptError(PipelineError):
    """Raised for a single failed generate request."""


@dataclass(frozen=True)
class RunError:
    """A non-fatal failure collected for end-of-run reporting."""

    video_index: int
    stage: str
    message: str
    chunk_num: int | None = None

    def __str__(self) -> str:
        where = f"video {self.video_index}"
        if self.chunk_num is not None:
            where += f" chunk {self.chunk_num}"
        return f"[{self.stage}] {where}: {self.message}"
