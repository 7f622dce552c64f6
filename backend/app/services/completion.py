import logging
from dataclasses import dataclass
from typing import List

from ..errors import ErrorKind, GatewayError
from ..models.schemas import ChatTurn
from ..prompts import DISCLAIMER, SYSTEM_PROMPTS, ConversationMode
from ..utils.audio import encode_base64_audio

GENERIC_FAILURE = "An error occurred while processing your request"


@dataclass
class CompletionResult:
    text: str
    audio_b64: str


def build_messages(message: str, mode: ConversationMode, is_first_turn: bool) -> List[ChatTurn]:
    turns = [ChatTurn(role="system", content=SYSTEM_PROMPTS[mode])]
    if is_first_turn:
        turns.append(ChatTurn(role="assistant", content=DISCLAIMER))
    turns.append(ChatTurn(role="user", content=message))
    return turns


class CompletionGateway:
    """Turns one user message into an assistant reply plus its spoken rendition.

    The LLM call and the speech synthesis run back to back; a failure in
    either step discards everything, so callers never see text without audio.
    """

    def __init__(self, client, settings):
        self.client = client
        self.settings = settings
        self.logger = logging.getLogger("aitherapist")

    def resolve_mode(self, raw_mode) -> ConversationMode:
        mode = ConversationMode.parse(raw_mode)
        if mode is None:
            self.logger.warning("chat.invalid_mode mode=%r", raw_mode)
            raise GatewayError(ErrorKind.INVALID_MODE, "Invalid session type")
        return mode

    def complete(self, message: str, raw_mode, is_first_turn: bool) -> CompletionResult:
        mode = self.resolve_mode(raw_mode)
        if not message or not message.strip():
            raise GatewayError(ErrorKind.MISSING_INPUT, "No message provided")

        turns = build_messages(message, mode, is_first_turn)
        s = self.settings
        try:
            text = self.client.chat_completion(
                [t.to_upstream() for t in turns],
                model=s.CHAT_MODEL,
                temperature=s.CHAT_TEMPERATURE,
                max_tokens=s.CHAT_MAX_TOKENS,
            )
            self.logger.info("chat.completion mode=%s chars=%d", mode.value, len(text))
            audio = self.client.synthesize_speech(
                text,
                model=s.TTS_MODEL,
                voice=s.TTS_VOICE,
                speed=s.TTS_SPEED,
                response_format=s.TTS_FORMAT,
            )
            self.logger.info("chat.tts mode=%s bytes=%d", mode.value, len(audio))
        except Exception as e:
            self.logger.exception("chat.error.upstream mode=%s err=%s", mode.value, e)
            raise GatewayError(ErrorKind.UPSTREAM_FAILURE, GENERIC_FAILURE) from e

        return CompletionResult(text=text, audio_b64=encode_base64_audio(audio))
