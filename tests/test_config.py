from __future__ import annotations

import logging
from pathlib import Path

import pytest

from video_chunk_summary.config import ConfigError, PipelineConfig, RunContext
from video_chunk_summary.errors import RunError, SegmentError, TranscribeError
from video_chunk_summary.logging_utils import setup_logging


def test_defaults_match_documented_values() -> None:
    config = PipelineConfig()

    assert config.chunk_duration == 60
    assert config.max_retries == 3
    assert config.retry_delay == 15.0
    assert config.activation_delay == 30.0
    assert config.frame_rate == 1.0
    assert config.jpeg_quality == 90
    assert config.max_ocr_workers == 8


@pytest.mark.parametrize(
    "overrides",
    [
        {"chunk_duration": 0},
        {"whisper_threads": 0},
        {"max_retries": -1},
        {"retry_delay": -1},
        {"frame_rate": 0},
        {"jpeg_quality": 101},
        {"max_ocr_workers": 0},
    ],
)
def test_invalid_settings_raise(overrides: dict) -> None:
    with pytest.raises(ConfigError):
        PipelineConfig(**overrides)


def test_output_dir_is_coerced_to_path() -> None:
    assert PipelineConfig(output_dir="out").output_dir == Path("out")  # type: ignore[arg-type]


def test_resolve_api_key_prefers_explicit_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")

    assert PipelineConfig(api_key="explicit").resolve_api_key() == "explicit"
    assert PipelineConfig().resolve_api_key() == "from-env"

    monkeypatch.delenv("GEMINI_API_KEY")
    with pytest.raises(RuntimeError):
        PipelineConfig().resolve_api_key()


def test_run_context_collects_errors_in_order(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("video_chunk_summary.ocr.os.cpu_count", lambda: 64)
    context = RunContext(config=PipelineConfig(), client=object())

    context.report(RunError(1, "audio", "boom", 0))
    context.report(RunError(2, "segment", "bad"))

    assert context.ocr_workers == 8
    assert [str(error) for error in context.drain_errors()] == [
        "[audio] video 1 chunk 0: boom",
        "[segment] video 2: bad",
    ]
    assert context.drain_errors() == []


def test_error_messages_carry_tool_output() -> None:
    assert "output: Invalid data" in str(SegmentError("cut failed", output="Invalid data\n"))
    assert str(TranscribeError("whisper failed", stderr="bad wav")) == "whisper failed, stderr: bad wav"


def test_setup_logging_is_idempotent(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setattr(root, "_video_chunk_summary_configured", False, raising=False)
    log_file = tmp_path / "logs" / "run.log"

    setup_logging(log_file=log_file)
    handler_count = len(root.handlers)
    setup_logging(log_file=log_file)

    assert handler_count == 2
    assert len(root.handlers) == 2
    assert log_file.exists()
    for handler in root.handlers:
        handler.close()
