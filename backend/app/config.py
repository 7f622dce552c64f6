import os
import tempfile
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the backend directory
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

STREAM_MODES = ("last", "concat")


def _csv(value: str):
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings:
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_API_URL: str = os.getenv("OPENAI_API_URL", "https://api.openai.com/v1").rstrip("/")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3000"))
    CORS_ORIGINS = _csv(os.getenv("CORS_ORIGINS", "*"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4")
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "500"))

    TTS_MODEL: str = os.getenv("TTS_MODEL", "tts-1-hd")
    TTS_VOICE: str = os.getenv("TTS_VOICE", "shimmer")
    TTS_SPEED: float = float(os.getenv("TTS_SPEED", "1.0"))
    TTS_FORMAT: str = os.getenv("TTS_FORMAT", "mp3")

    STT_MODEL: str = os.getenv("STT_MODEL", "whisper-1")
    STT_LANGUAGE: str = os.getenv("STT_LANGUAGE", "en")

    UPSTREAM_TIMEOUT: float = float(os.getenv("UPSTREAM_TIMEOUT", "120"))

    STREAM_TMP_DIR: str = os.getenv("STREAM_TMP_DIR", "") or tempfile.gettempdir()
    STREAM_AUDIO_FORMAT: str = os.getenv("STREAM_AUDIO_FORMAT", "m4a").lower()
    STREAM_TRANSCRIBE_MODE: str = os.getenv("STREAM_TRANSCRIBE_MODE", "last").lower()

    def validate(self):
        if self.STREAM_TRANSCRIBE_MODE not in STREAM_MODES:
            raise RuntimeError(
                f"STREAM_TRANSCRIBE_MODE must be one of {STREAM_MODES}, got {self.STREAM_TRANSCRIBE_MODE!r}"
            )
        Path(self.STREAM_TMP_DIR).mkdir(parents=True, exist_ok=True)

settings = Settings()
