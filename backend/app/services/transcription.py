import io
import logging

from ..errors import ErrorKind, GatewayError
from ..utils.audio import audio_file_meta, decode_base64_audio

GENERIC_FAILURE = "Error processing audio"


class TranscriptionGateway:
    def __init__(self, client, settings):
        self.client = client
        self.settings = settings
        self.logger = logging.getLogger("aitherapist")

    def _transcribe(self, fileobj, audio_format: str) -> str:
        filename, mime = audio_file_meta(audio_format)
        return self.client.transcribe(
            fileobj,
            filename=filename,
            content_type=mime,
            model=self.settings.STT_MODEL,
            language=self.settings.STT_LANGUAGE,
        )

    def transcribe_base64(self, audio_data, audio_format: str = "mp3") -> str:
        """One-shot transcription of a base64 payload from a request body."""
        if not audio_data:
            raise GatewayError(ErrorKind.MISSING_INPUT, "No audio data provided")
        try:
            raw = decode_base64_audio(audio_data)
            text = self._transcribe(io.BytesIO(raw), audio_format)
        except Exception as e:
            self.logger.exception("transcribe.error fmt=%s err=%s", audio_format, e)
            raise GatewayError(ErrorKind.UPSTREAM_FAILURE, GENERIC_FAILURE) from e
        self.logger.info("transcribe.done fmt=%s bytes=%d chars=%d", audio_format, len(raw), len(text))
        return text

    def transcribe_file(self, path: str, audio_format: str = "m4a") -> str:
        """Transcribe audio already written to temporary storage."""
        try:
            with open(path, "rb") as f:
                text = self._transcribe(f, audio_format)
        except Exception as e:
            self.logger.exception("transcribe.error path=%s err=%s", path, e)
            raise GatewayError(ErrorKind.UPSTREAM_FAILURE, str(e) or GENERIC_FAILURE) from e
        self.logger.info("transcribe.done path=%s chars=%d", path, len(text))
        return text
