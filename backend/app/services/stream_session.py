import logging
import uuid
from typing import List, Optional

from starlette.concurrency import run_in_threadpool

from ..utils.audio import decode_base64_audio, remove_temp_audio, write_temp_audio

START_STREAM = "START_STREAM"
END_STREAM = "END_STREAM"


def status_message(status: str) -> dict:
    return {"type": "status", "status": status}


def transcription_message(text: str) -> dict:
    return {"type": "transcription", "text": text}


def error_message(error: str, details: str) -> dict:
    return {"type": "error", "error": error, "details": details}


class StreamingSession:
    """Per-connection audio accumulator.

    Idle -> (START_STREAM) -> Accumulating -> (END_STREAM) -> Idle.
    Audio chunks are base64 text frames; on END_STREAM the selected audio is
    written to a temp file, transcribed, and the file is removed again.

    With transcribe_mode="last" only the most recent chunk is transcribed,
    which is what existing clients rely on (they send the whole recording as
    one chunk). "concat" joins every chunk received since START_STREAM.
    """

    def __init__(self, transcriber, tmp_dir: str, audio_format: str = "m4a", transcribe_mode: str = "last"):
        self.transcriber = transcriber
        self.tmp_dir = tmp_dir
        self.audio_format = audio_format
        self.transcribe_mode = transcribe_mode
        self.session_id = uuid.uuid4().hex[:8]
        self.chunks: List[bytes] = []
        self.accumulating = False
        self.logger = logging.getLogger("aitherapist")

    async def handle(self, message: str) -> Optional[dict]:
        """Process one inbound frame; returns the envelope to send back, if any."""
        if message == START_STREAM:
            return self.start()
        if message == END_STREAM:
            return await self.end()
        self.add_chunk(message)
        return None

    def start(self) -> dict:
        self.chunks = []
        self.accumulating = True
        self.logger.info("stream.start sid=%s", self.session_id)
        return status_message("started")

    def add_chunk(self, payload: str) -> bool:
        if not self.accumulating:
            self.logger.warning("stream.chunk.ignored sid=%s reason=idle len=%d", self.session_id, len(payload))
            return False
        try:
            raw = decode_base64_audio(payload)
        except ValueError as e:
            self.logger.error("stream.chunk.decode_failed sid=%s err=%s", self.session_id, e)
            return False
        self.chunks.append(raw)
        self.logger.info("stream.chunk sid=%s idx=%d bytes=%d", self.session_id, len(self.chunks), len(raw))
        return True

    def _selected_audio(self) -> bytes:
        if self.transcribe_mode == "concat":
            return b"".join(self.chunks)
        return self.chunks[-1]

    def reset(self):
        self.chunks = []
        self.accumulating = False

    async def end(self) -> dict:
        self.logger.info("stream.end sid=%s chunks=%d", self.session_id, len(self.chunks))
        if not self.chunks:
            self.reset()
            return error_message("Failed to process audio stream", "No audio data received")

        audio = self._selected_audio()
        tmp_path = None
        try:
            tmp_path = await run_in_threadpool(write_temp_audio, audio, self.tmp_dir, self.audio_format)
            self.logger.info("stream.tmpfile sid=%s path=%s bytes=%d", self.session_id, tmp_path, len(audio))
            text = await run_in_threadpool(self.transcriber.transcribe_file, tmp_path, self.audio_format)
            reply = transcription_message(text)
        except Exception as e:
            self.logger.exception("stream.error.transcribe sid=%s err=%s", self.session_id, e)
            reply = error_message("Failed to transcribe audio", getattr(e, "message", None) or str(e))
        finally:
            if tmp_path:
                await run_in_threadpool(remove_temp_audio, tmp_path)
            self.reset()
        return reply

    def close(self):
        self.logger.info("stream.close sid=%s dropped_chunks=%d", self.session_id, len(self.chunks))
        self.reset()
