import base64
import binascii
import os
import uuid

# Container format -> (upload filename suffix, MIME type) for the STT endpoint
_FORMATS = {
    "mp3": (".mp3", "audio/mpeg"),
    "mpeg": (".mp3", "audio/mpeg"),
    "m4a": (".m4a", "audio/mp4"),
    "mp4": (".mp4", "audio/mp4"),
    "wav": (".wav", "audio/wav"),
    "webm": (".webm", "audio/webm"),
    "ogg": (".ogg", "audio/ogg"),
}
DEFAULT_FORMAT = "m4a"


def audio_file_meta(audio_format: str):
    """Return (filename, content_type) for an audio container format.

    Unknown formats fall back to m4a, which is what the mobile recorder emits.
    """
    fmt = (audio_format or "").lower().lstrip(".")
    suffix, mime = _FORMATS.get(fmt, _FORMATS[DEFAULT_FORMAT])
    return f"audio{suffix}", mime


def decode_base64_audio(data: str) -> bytes:
    """Strictly decode a base64 audio payload.

    Raises ValueError on malformed input or an empty result.
    """
    if isinstance(data, bytes):
        data = data.decode("ascii", errors="strict")
    try:
        raw = base64.b64decode(data.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid base64 audio: {exc}") from exc
    if not raw:
        raise ValueError("empty audio payload")
    return raw


def encode_base64_audio(raw: bytes) -> str:
    return base64.b64encode(raw).decode("utf-8")


# Writes audio bytes to a uniquely-named file under tmp_dir.
# Returns the path; the caller deletes it.

def write_temp_audio(raw: bytes, tmp_dir: str, audio_format: str = DEFAULT_FORMAT) -> str:
    filename, _ = audio_file_meta(audio_format)
    suffix = os.path.splitext(filename)[1]
    path = os.path.join(tmp_dir, f"audio-{uuid.uuid4().hex}{suffix}")
    with open(path, "wb") as f:
        f.write(raw)
    return path


def remove_temp_audio(path: str) -> bool:
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
