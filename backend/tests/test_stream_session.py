import asyncio
import base64
import os

import pytest
from starlette.websockets import WebSocketDisconnect

from app import main
from app.errors import ErrorKind, GatewayError
from app.services.stream_session import StreamingSession
from app.services.transcription import TranscriptionGateway
from app.config import settings


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode()


# ---- over the websocket ----------------------------------------------------

def test_end_without_chunks_is_error(client, fake_openai):
    with client.websocket_connect("/") as ws:
        ws.send_text("END_STREAM")
        msg = ws.receive_json()
    assert msg["type"] == "error"
    assert msg["details"] == "No audio data received"
    assert fake_openai.transcribe_calls == []


def test_start_then_end_without_chunks_is_error(client, fake_openai):
    with client.websocket_connect("/") as ws:
        ws.send_text("START_STREAM")
        assert ws.receive_json() == {"type": "status", "status": "started"}
        ws.send_text("END_STREAM")
        assert ws.receive_json()["type"] == "error"
    assert fake_openai.transcribe_calls == []


def test_single_chunk_is_transcribed_and_tempfile_removed(client, fake_openai, stream_tmp):
    with client.websocket_connect("/") as ws:
        ws.send_text("START_STREAM")
        ws.receive_json()
        ws.send_text(b64(b"chunk-A-audio"))
        ws.send_text("END_STREAM")
        msg = ws.receive_json()
    assert msg == {"type": "transcription", "text": "hello there"}
    assert len(fake_openai.transcribe_calls) == 1
    call = fake_openai.transcribe_calls[0]
    assert call["bytes"] == b"chunk-A-audio"
    assert call["filename"] == "audio.m4a"
    assert call["path"].startswith(str(stream_tmp))
    assert not os.path.exists(call["path"])
    assert os.listdir(stream_tmp) == []


def test_only_last_chunk_is_transcribed(client, fake_openai):
    with client.websocket_connect("/") as ws:
        ws.send_text("START_STREAM")
        ws.receive_json()
        ws.send_text(b64(b"chunk-A"))
        ws.send_text(b64(b"chunk-B"))
        ws.send_text("END_STREAM")
        ws.receive_json()
    assert [c["bytes"] for c in fake_openai.transcribe_calls] == [b"chunk-B"]


def test_bad_chunk_is_dropped_and_session_continues(client, fake_openai):
    with client.websocket_connect("/") as ws:
        ws.send_text("START_STREAM")
        ws.receive_json()
        ws.send_text(b64(b"good"))
        ws.send_text("!!! definitely not base64 !!!")
        ws.send_text("END_STREAM")
        msg = ws.receive_json()
    assert msg["type"] == "transcription"
    assert fake_openai.transcribe_calls[0]["bytes"] == b"good"


def test_transcription_failure_reports_error_and_cleans_up(client, fake_openai, stream_tmp):
    fake_openai.fail_transcribe = RuntimeError("provider 500")
    with client.websocket_connect("/") as ws:
        ws.send_text("START_STREAM")
        ws.receive_json()
        ws.send_text(b64(b"audio"))
        ws.send_text("END_STREAM")
        msg = ws.receive_json()
    assert msg["type"] == "error"
    assert msg["error"] == "Failed to transcribe audio"
    assert "provider 500" in msg["details"]
    assert os.listdir(stream_tmp) == []


def test_session_can_be_reused_after_end(client, fake_openai):
    with client.websocket_connect("/") as ws:
        for payload in (b"first", b"second"):
            ws.send_text("START_STREAM")
            ws.receive_json()
            ws.send_text(b64(payload))
            ws.send_text("END_STREAM")
            assert ws.receive_json()["type"] == "transcription"
        # buffer was cleared by the previous END_STREAM
        ws.send_text("END_STREAM")
        assert ws.receive_json()["type"] == "error"
    assert [c["bytes"] for c in fake_openai.transcribe_calls] == [b"first", b"second"]


def test_sessions_do_not_share_buffers(client, fake_openai):
    with client.websocket_connect("/") as ws1, client.websocket_connect("/") as ws2:
        ws1.send_text("START_STREAM")
        ws1.receive_json()
        ws1.send_text(b64(b"from-one"))
        ws2.send_text("END_STREAM")
        assert ws2.receive_json()["type"] == "error"
        ws1.send_text("END_STREAM")
        assert ws1.receive_json()["type"] == "transcription"
    assert [c["bytes"] for c in fake_openai.transcribe_calls] == [b"from-one"]


# ---- session object directly -----------------------------------------------

@pytest.fixture
def gateway(fake_openai):
    return TranscriptionGateway(fake_openai, settings)


def test_chunk_while_idle_is_ignored(gateway, tmp_path):
    session = StreamingSession(gateway, tmp_dir=str(tmp_path))
    assert session.add_chunk(b64(b"early")) is False
    assert session.chunks == []


def test_start_clears_previous_chunks(gateway, tmp_path):
    session = StreamingSession(gateway, tmp_dir=str(tmp_path))
    session.start()
    session.add_chunk(b64(b"stale"))
    session.start()
    assert session.chunks == []
    assert session.accumulating


def test_concat_mode_joins_all_chunks(gateway, fake_openai, tmp_path):
    session = StreamingSession(gateway, tmp_dir=str(tmp_path), transcribe_mode="concat")

    async def drive():
        await session.handle("START_STREAM")
        await session.handle(b64(b"A"))
        await session.handle(b64(b"B"))
        return await session.handle("END_STREAM")

    reply = asyncio.run(drive())
    assert reply["type"] == "transcription"
    assert fake_openai.transcribe_calls[0]["bytes"] == b"AB"
    assert not session.accumulating
    assert session.chunks == []


def test_transcribe_file_wraps_failures(gateway, fake_openai, tmp_path):
    fake_openai.fail_transcribe = RuntimeError("boom")
    path = tmp_path / "a.m4a"
    path.write_bytes(b"x")
    with pytest.raises(GatewayError) as exc:
        gateway.transcribe_file(str(path))
    assert exc.value.kind is ErrorKind.UPSTREAM_FAILURE
    assert exc.value.status_code == 500


class DroppingWebSocket:
    """Delivers scripted frames; the client is gone by the time a transcript is sent."""

    client = ("test", 0)

    def __init__(self, frames):
        self.frames = list(frames)
        self.sent = []

    async def accept(self):
        pass

    async def receive(self):
        if not self.frames:
            return {"type": "websocket.disconnect", "code": 1000}
        return {"type": "websocket.receive", "text": self.frames.pop(0)}

    async def send_json(self, data):
        if data["type"] == "transcription":
            raise WebSocketDisconnect(code=1006)
        self.sent.append(data)


def test_disconnect_during_transcription_ends_handler(gateway, fake_openai, stream_tmp, monkeypatch):
    monkeypatch.setattr(main, "TRANSCRIPTION", gateway)
    ws = DroppingWebSocket(["START_STREAM", b64(b"audio"), "END_STREAM", "START_STREAM"])

    asyncio.run(main.audio_stream(ws))

    assert ws.sent == [{"type": "status", "status": "started"}]
    assert ws.frames == ["START_STREAM"]
    assert len(fake_openai.transcribe_calls) == 1
    assert os.listdir(stream_tmp) == []
