from __future__ import annotations

import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import requests

from .errors import PromptError, UploadError


@dataclass(frozen=True)
class UploadedFile:
    """Handle to a file stored by the remote service."""

    name: str
    uri: str
    mime_type: str


def text_part(text: str) -> dict[str, Any]:
    return {"text": text}


def file_part(uploaded: UploadedFile) -> dict[str, Any]:
    return {"file_data": {"file_uri": uploaded.uri, "mime_type": uploaded.mime_type}}


class GeminiClient:
    """Client for the Gemini REST API: file upload, delete and generateContent."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str = "https://generativelanguage.googleapis.com",
        model: str = "gemini-1.5-flash",
        timeout: int = 300,
    ) -> None:
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY is not set")

        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {"x-goog-api-key": str(self.api_key)}
        headers.update(extra)
        return headers

    def upload_file(self, path: Path | str, *, mime_type: str | None = None) -> UploadedFile:
        """Upload ``path`` with the resumable protocol in a single finalize step."""

        source = Path(path)
        resolved_type = mime_type or mimetypes.guess_type(source.name)[0] or "application/octet-stream"

        try:
            payload = source.read_bytes()
        except OSError as exc:
            raise UploadError(f"Cannot read {source} for upload") from exc

        try:
            start = requests.post(
                f"{self.base_url}/upload/v1beta/files",
                headers=self._headers(
                    **{
                        "X-Goog-Upload-Protocol": "resumable",
                        "X-Goog-Upload-Command": "start",
                        "X-Goog-Upload-Header-Content-Length": str(len(payload)),
                        "X-Goog-Upload-Header-Content-Type": resolved_type,
                        "Content-Type": "application/json",
                    }
                ),
                json={"file": {"display_name": source.name}},
                timeout=self.timeout,
            )
            start.raise_for_status()
            upload_url = start.headers.get("x-goog-upload-url")
            if not upload_url:
                raise UploadError("Upload session response did not include an upload URL")

            finished = requests.post(
                upload_url,
                headers=self._headers(
                    **{
                        "Content-Length": str(len(payload)),
                        "X-Goog-Upload-Offset": "0",
                        "X-Goog-Upload-Command": "upload, finalize",
                    }
                ),
                data=payload,
                timeout=self.timeout,
            )
            finished.raise_for_status()
        except requests.RequestException as exc:
            raise UploadError(f"Upload of {source} failed") from exc

        try:
            file_info = finished.json()["file"]
            return UploadedFile(
                name=file_info["name"],
                uri=file_info["uri"],
                mime_type=file_info.get("mimeType", resolved_type),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise UploadError("Unexpected upload response payload") from exc

    def delete_file(self, name: str) -> None:
        try:
            response = requests.delete(
                f"{self.base_url}/v1beta/{name}",
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise UploadError(f"Deleting remote file {name} failed") from exc

    def generate(self, parts: Sequence[dict[str, Any]]) -> list[str]:
        """Send one generateContent request and return its text parts in order."""

        payload = {"contents": [{"role": "user", "parts": list(parts)}]}
        try:
            response = requests.post(
                f"{self.base_url}/v1beta/models/{self.model}:generateContent",
                headers=self._headers(**{"Content-Type": "application/json"}),
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise PromptError("Generate request failed") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise PromptError("Generate response is not JSON") from exc
        return self.extract_text_parts(data)

    @staticmethod
    def extract_text_parts(data: Any) -> list[str]:
        if not isinstance(data, dict):
            raise PromptError("Unexpected generate response payload")

        feedback = data.get("promptFeedback") or {}
        block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if block_reason:
            raise PromptError(f"Prompt was blocked: {block_reason}")

        texts: list[str] = []
        for candidate in data.get("candidates") or []:
            content = candidate.get("content") if isinstance(candidate, dict) else None
            if not isinstance(content, dict):
                continue
            for part in content.get("parts") or []:
                text = part.get("text") if isinstance(part, dict) else None
                if isinstance(text, str):
                    texts.append(text)
        return texts
