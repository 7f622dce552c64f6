from typing import Any, List, Literal, Optional

from pydantic import BaseModel


class ChatTurn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
    audioContent: Optional[str] = None

    def to_upstream(self) -> dict:
        return {"role": self.role, "content": self.content}

# sessionType/audioData stay untyped so the gateways, not request validation,
# decide what counts as an invalid mode or missing audio.
class ChatRequest(BaseModel):
    message: Optional[str] = None
    sessionType: Any = None
    isFirstMessage: Optional[bool] = False

class ChatResponse(BaseModel):
    response: str
    audioContent: str

class TranscribeRequest(BaseModel):
    audioData: Any = None
    format: str = "mp3"

class TranscribeResponse(BaseModel):
    text: str

class HealthResponse(BaseModel):
    status: str

class ModesResponse(BaseModel):
    modes: List[str]

class ErrorResponse(BaseModel):
    error: str
