"""Chunked audio and screen-text transcription of videos with LLM summarization."""

from .asr import WhisperCLITranscriber
from .chunks import process_chunk
from .config import ConfigError, PipelineConfig, RunContext
from .errors import (
    ExtractError,
    OCRError,
    PipelineError,
    ProbeError,
    PromptError,
    RunError,
    SegmentError,
    TranscribeError,
    UploadError,
)
from .gemini import GeminiClient
from .media import Chunk, count_chunks, extract_frames, probe_duration, segment_video
from .ocr import recognize_frames
from .outputs import organize_outputs
from .pipeline import BatchResult, VideoResult, discover_videos, process_batch, process_video
from .retry import PromptResult, send_prompt
from .screen_text import ScreenTextExtractor

__all__ = [
    "BatchResult",
    "Chunk",
    "ConfigError",
    "ExtractError",
    "GeminiClient",
    "OCRError",
    "PipelineConfig",
    "PipelineError",
    "ProbeError",
    "PromptError",
    "PromptResult",
    "RunContext",
    "RunError",
    "ScreenTextExtractor",
    "SegmentError",
    "TranscribeError",
    "UploadError",
    "VideoResult",
    "WhisperCLITranscriber",
    "count_chunks",
    "discover_videos",
    "extract_frames",
    "organize_outputs",
    "probe_duration",
    "process_batch",
    "process_chunk",
    "process_video",
    "recognize_frames",
    "segment_video",
    "send_prompt",
]
