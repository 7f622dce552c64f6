import logging
from typing import BinaryIO, Dict, List

import requests


class UpstreamError(RuntimeError):
    """Raised when the provider returns an error or an unusable payload."""


class OpenAIClient:
    """Client for the OpenAI-compatible chat, speech and transcription endpoints."""

    def __init__(self, api_key: str, api_url: str = "https://api.openai.com/v1", timeout: float = 120.0, session=None):
        if not api_key:
            raise ValueError("OpenAI API key is required")
        self.api_key = api_key
        self.api_url = (api_url or "https://api.openai.com/v1").rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logging.getLogger("aitherapist")

    def _headers(self, json_body: bool = True) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _post(self, path: str, **kwargs) -> requests.Response:
        url = f"{self.api_url}{path}"
        resp = self.session.post(url, timeout=self.timeout, **kwargs)
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            self.logger.error("openai.http_failed path=%s status=%s err=%s body=%s", path, resp.status_code, exc, resp.text[:500])
            raise UpstreamError(f"{path} failed with status {resp.status_code}") from exc
        return resp

    def _parse_chat(self, payload: Dict) -> str:
        choices = payload.get("choices") or []
        if not choices:
            raise UpstreamError("completion returned no choices")
        message = (choices[0] or {}).get("message") or {}
        content = message.get("content")
        # null when the model refuses or answers with a tool call
        if not isinstance(content, str):
            raise UpstreamError("completion message has no text content")
        return content.strip()

    def chat_completion(self, messages: List[Dict], model: str, temperature: float, max_tokens: int) -> str:
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        resp = self._post("/chat/completions", json=payload, headers=self._headers())
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError("completion response is not JSON") from exc
        return self._parse_chat(data)

    def synthesize_speech(self, text: str, model: str, voice: str, speed: float, response_format: str) -> bytes:
        payload = {
            "model": model,
            "voice": voice,
            "input": text or "",
            "speed": speed,
            "response_format": response_format,
        }
        resp = self._post("/audio/speech", json=payload, headers=self._headers())
        audio = resp.content
        if not audio:
            raise UpstreamError("speech synthesis returned no audio")
        return audio

    def transcribe(self, fileobj: BinaryIO, filename: str, content_type: str, model: str, language: str) -> str:
        files = {"file": (filename, fileobj, content_type)}
        data = {"model": model, "language": language}
        resp = self._post("/audio/transcriptions", files=files, data=data, headers=self._headers(json_body=False))
        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamError("transcription response is not JSON") from exc
        text = payload.get("text")
        if not isinstance(text, str):
            self.logger.warning("openai.stt.empty_response payload_keys=%s", list(payload.keys()))
            raise UpstreamError("transcription response has no text")
        return text.strip()
