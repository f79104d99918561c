from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from video_chunk_summary.errors import PromptError, UploadError
from video_chunk_summary.gemini import GeminiClient, UploadedFile, file_part, text_part


def _setup_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "key")


def _response(payload=None, headers=None) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    response.headers = headers or {}
    response.raise_for_status.return_value = None
    return response


def test_client_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
        GeminiClient()


def test_generate_extracts_text_parts(monkeypatch: pytest.MonkeyPatch) -> None:
    _setup_env(monkeypatch)
    captured: dict[str, object] = {}

    def fake_post(url: str, headers: dict, json: dict, timeout: int) -> MagicMock:  # type: ignore[override]
        captured["url"] = url
        captured["headers"] = headers
        captured["json"] = json
        return _response(
            {
                "candidates": [
                    {
                        "content": {
                            "parts": [
                                {"text": "# Lecture"},
                                {"inline_data": {"mime_type": "image/png", "data": "..."}},
                                {"text": "\nDetails"},
                            ]
                        }
                    }
                ]
            }
        )

    monkeypatch.setattr("video_chunk_summary.gemini.requests.post", fake_post)

    client = GeminiClient(model="gemini-test")
    texts = client.generate([text_part("summarize")])

    assert texts == ["# Lecture", "\nDetails"]
    assert str(captured["url"]).endswith("/v1beta/models/gemini-test:generateContent")
    assert captured["headers"]["x-goog-api-key"] == "key"  # type: ignore[index]
    assert captured["json"] == {"contents": [{"role": "user", "parts": [{"text": "summarize"}]}]}


def test_generate_wraps_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    _setup_env(monkeypatch)

    def failing_post(*_args, **_kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr("video_chunk_summary.gemini.requests.post", failing_post)

    with pytest.raises(PromptError):
        GeminiClient().generate([text_part("hi")])


def test_extract_text_parts_raises_for_blocked_prompt() -> None:
    with pytest.raises(PromptError, match="SAFETY"):
        GeminiClient.extract_text_parts({"promptFeedback": {"blockReason": "SAFETY"}})


def test_extract_text_parts_tolerates_missing_content() -> None:
    assert GeminiClient.extract_text_parts({"candidates": [{"finishReason": "STOP"}]}) == []


def test_upload_file_uses_resumable_protocol(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _setup_env(monkeypatch)
    video = tmp_path / "chunk_0_video_1.mp4"
    video.write_bytes(b"12345")
    calls: list[dict] = []

    def fake_post(url: str, **kwargs) -> MagicMock:
        calls.append({"url": url, **kwargs})
        if len(calls) == 1:
            return _response(headers={"x-goog-upload-url": "https://upload.example/session"})
        return _response({"file": {"name": "files/xyz", "uri": "https://files.example/xyz", "mimeType": "video/mp4"}})

    monkeypatch.setattr("video_chunk_summary.gemini.requests.post", fake_post)

    uploaded = GeminiClient().upload_file(video)

    assert uploaded == UploadedFile(name="files/xyz", uri="https://files.example/xyz", mime_type="video/mp4")
    assert calls[0]["url"].endswith("/upload/v1beta/files")
    assert calls[0]["headers"]["X-Goog-Upload-Command"] == "start"
    assert calls[0]["headers"]["X-Goog-Upload-Header-Content-Length"] == "5"
    assert calls[1]["url"] == "https://upload.example/session"
    assert calls[1]["headers"]["X-Goog-Upload-Command"] == "upload, finalize"
    assert calls[1]["data"] == b"12345"
    assert file_part(uploaded) == {"file_data": {"file_uri": "https://files.example/xyz", "mime_type": "video/mp4"}}


def test_upload_file_raises_upload_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _setup_env(monkeypatch)
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"x")

    def failing_post(*_args, **_kwargs):
        raise requests.HTTPError("429")

    monkeypatch.setattr("video_chunk_summary.gemini.requests.post", failing_post)

    with pytest.raises(UploadError):
        GeminiClient().upload_file(video)


def test_delete_file_calls_delete_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    _setup_env(monkeypatch)
    mock_delete = MagicMock(return_value=_response())
    monkeypatch.setattr("video_chunk_summary.gemini.requests.delete", mock_delete)

    GeminiClient(base_url="https://api.example/").delete_file("files/xyz")

    assert mock_delete.call_args[0][0] == "https://api.example/v1beta/files/xyz"
