import pytest
from fastapi.testclient import TestClient

from app import main
from app.config import settings


class FakeOpenAI:
    """Stands in for OpenAIClient; records every upstream call."""

    def __init__(self, reply="Take a slow breath with me.", audio=b"ID3-fake-mp3", transcript="hello there"):
        self.reply = reply
        self.audio = audio
        self.transcript = transcript
        self.chat_calls = []
        self.speech_calls = []
        self.transcribe_calls = []
        self.fail_chat = None
        self.fail_speech = None
        self.fail_transcribe = None

    @property
    def total_calls(self):
        return len(self.chat_calls) + len(self.speech_calls) + len(self.transcribe_calls)

    def chat_completion(self, messages, model, temperature, max_tokens):
        self.chat_calls.append({"messages": messages, "model": model, "temperature": temperature, "max_tokens": max_tokens})
        if self.fail_chat:
            raise self.fail_chat
        return self.reply

    def synthesize_speech(self, text, model, voice, speed, response_format):
        self.speech_calls.append({"text": text, "model": model, "voice": voice, "speed": speed, "format": response_format})
        if self.fail_speech:
            raise self.fail_speech
        return self.audio

    def transcribe(self, fileobj, filename, content_type, model, language):
        self.transcribe_calls.append({
            "bytes": fileobj.read(),
            "filename": filename,
            "content_type": content_type,
            "model": model,
            "language": language,
            "path": getattr(fileobj, "name", None),
        })
        if self.fail_transcribe:
            raise self.fail_transcribe
        return self.transcript


@pytest.fixture
def fake_openai():
    return FakeOpenAI()

@pytest.fixture
def stream_tmp(tmp_path, monkeypatch):
    d = tmp_path / "stream"
    d.mkdir()
    monkeypatch.setattr(settings, "STREAM_TMP_DIR", str(d))
    return d

@pytest.fixture
def client(fake_openai, stream_tmp, monkeypatch):
    monkeypatch.setattr(main, "build_client", lambda: fake_openai)
    with TestClient(main.app) as c:
        yield c
