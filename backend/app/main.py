import logging
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .config import settings
from .errors import GatewayError
from .models.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    ModesResponse,
    TranscribeRequest,
    TranscribeResponse,
)
from .prompts import ConversationMode
from .services.completion import CompletionGateway
from .services.openai_api import OpenAIClient
from .services.stream_session import StreamingSession, error_message
from .services.transcription import TranscriptionGateway

app = FastAPI(title="AI Therapist Relay")

# Logging
logger = logging.getLogger("aitherapist")
if not logger.handlers:
    handler = logging.StreamHandler()
    fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(fmt)
    logger.addHandler(handler)
logger.setLevel(settings.LOG_LEVEL)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

# Globals / Singletons
COMPLETION = None
TRANSCRIPTION = None


def build_client():
    if not settings.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY not set. See backend/.env.example")
    return OpenAIClient(
        api_key=settings.OPENAI_API_KEY,
        api_url=settings.OPENAI_API_URL,
        timeout=settings.UPSTREAM_TIMEOUT,
    )

@app.on_event("startup")
def load_services():
    global COMPLETION, TRANSCRIPTION
    settings.validate()
    client = build_client()
    COMPLETION = CompletionGateway(client, settings)
    TRANSCRIPTION = TranscriptionGateway(client, settings)
    logger.info(
        "Relay ready. chat_model=%s tts=%s/%s stt=%s stream_mode=%s",
        settings.CHAT_MODEL, settings.TTS_MODEL, settings.TTS_VOICE, settings.STT_MODEL, settings.STREAM_TRANSCRIBE_MODE,
    )

@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("request.invalid path=%s errors=%s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}

@app.post("/api/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
async def chat(req: Optional[ChatRequest] = None):
    req = req or ChatRequest()
    message = req.message or ""
    logger.info("chat.request mode=%s first=%s chars=%d", req.sessionType, req.isFirstMessage, len(message))
    result = await run_in_threadpool(COMPLETION.complete, message, req.sessionType, bool(req.isFirstMessage))
    return ChatResponse(response=result.text, audioContent=result.audio_b64)

@app.post("/api/transcribe", response_model=TranscribeResponse, responses=ERROR_RESPONSES)
async def transcribe(req: Optional[TranscribeRequest] = None):
    req = req or TranscribeRequest()
    text = await run_in_threadpool(TRANSCRIPTION.transcribe_base64, req.audioData, req.format)
    return TranscribeResponse(text=text)

@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="healthy")

@app.get("/api/modes", response_model=ModesResponse)
async def modes():
    return ModesResponse(modes=[m.value for m in ConversationMode])

@app.websocket("/")
async def audio_stream(ws: WebSocket):
    await ws.accept()
    session = StreamingSession(
        TRANSCRIPTION,
        tmp_dir=settings.STREAM_TMP_DIR,
        audio_format=settings.STREAM_AUDIO_FORMAT,
        transcribe_mode=settings.STREAM_TRANSCRIBE_MODE,
    )
    logger.info("stream.connected sid=%s client=%s", session.session_id, ws.client)
    try:
        while True:
            msg = await ws.receive()
            msg_type = msg.get("type")
            if msg_type == "websocket.disconnect":
                break
            if msg_type != "websocket.receive":
                continue

            data = msg.get("text")
            if data is None and msg.get("bytes") is not None:
                data = msg["bytes"].decode("utf-8", errors="replace")
            if data is None:
                continue

            try:
                reply = await session.handle(data)
            except Exception as e:
                logger.exception("stream.error sid=%s err=%s", session.session_id, e)
                reply = error_message("Failed to process audio stream", str(e))
            if reply is not None:
                try:
                    await ws.send_json(reply)
                except (WebSocketDisconnect, RuntimeError) as e:
                    logger.warning("stream.send_failed sid=%s type=%s err=%s", session.session_id, reply.get("type"), e)
                    break
    finally:
        session.close()


def run():
    import uvicorn

    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT)
