from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from video_chunk_summary.asr import WhisperCLITranscriber
from video_chunk_summary.errors import TranscribeError


def test_transcribe_passes_model_threads_and_language(tmp_path: Path) -> None:
    audio = tmp_path / "chunk_0_video_1.wav"
    transcriber = WhisperCLITranscriber(
        cli_path="/opt/whisper/whisper-cli",
        model_path="/models/ggml-base.bin",
        threads=6,
        language="de",
    )

    with patch("video_chunk_summary.asr.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="[00:00.000 --> 00:02.000]  Hallo zusammen\n", stderr="load time"
        )
        transcript = transcriber.transcribe(audio, video_index=1, chunk_num=0)

    assert transcript == "[00:00.000 --> 00:02.000]  Hallo zusammen\n"
    called_args = mock_run.call_args[0][0]
    assert called_args == [
        "/opt/whisper/whisper-cli",
        "--model",
        "/models/ggml-base.bin",
        "--threads",
        "6",
        "--language",
        "de",
        str(audio),
    ]


def test_transcribe_omits_language_when_empty(tmp_path: Path) -> None:
    transcriber = WhisperCLITranscriber(model_path="model.bin", language="")

    assert "--language" not in transcriber.build_command(tmp_path / "a.wav")


def test_transcribe_raises_with_stderr_on_failure(tmp_path: Path) -> None:
    transcriber = WhisperCLITranscriber(model_path="model.bin")

    with patch("video_chunk_summary.asr.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=2, stdout="", stderr="failed to read WAV"
        )
        with pytest.raises(TranscribeError) as excinfo:
            transcriber.transcribe(tmp_path / "a.wav", video_index=1, chunk_num=4)

    assert "video 1 chunk 4" in str(excinfo.value)
    assert excinfo.value.stderr == "failed to read WAV"


def test_transcribe_raises_when_binary_missing(tmp_path: Path) -> None:
    transcriber = WhisperCLITranscriber(cli_path="/missing/whisper-cli", model_path="model.bin")

    with patch("video_chunk_summary.asr.subprocess.run", side_effect=FileNotFoundError("whisper-cli")):
        with pytest.raises(TranscribeError):
            transcriber.transcribe(tmp_path / "a.wav")


def test_transcriber_rejects_non_positive_threads() -> None:
    with pytest.raises(ValueError):
        WhisperCLITranscriber(model_path="model.bin", threads=0)


def test_transcribe_decodes_output_leniently(tmp_path: Path) -> None:
    transcriber = WhisperCLITranscriber(model_path="model.bin")

    with patch("video_chunk_summary.asr.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0, stdout="caf\ufffd \ufffd", stderr="")
        assert transcriber.transcribe(tmp_path / "a.wav") == "caf\ufffd \ufffd"

    kwargs = mock_run.call_args.kwargs
    assert kwargs["encoding"] == "utf-8"
    assert kwargs["errors"] == "replace"
