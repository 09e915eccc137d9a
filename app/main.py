"""
FastAPI backend: chat with streaming (NDJSON), direct astrology tool endpoint, health checks.
Startup fails if AstrologyAPI credentials are missing; per-request failures degrade to a
friendly message instead of an error status.
"""
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from langchain_core.messages import HumanMessage, AIMessage
from pydantic import BaseModel, Field
import openai

from app.config import get_settings
from graph.graph import get_graph
from tools.astrology_tool import ResilientToolAdapter, get_astrology_adapter

log = logging.getLogger(__name__)
logging.basicConfig(level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)

QUOTA_MESSAGE = (
    "The stars are quiet for a moment: our language model quota has been exceeded. "
    "Please try again in a little while."
)
FALLBACK_MESSAGE = (
    "I can't reach the astrology service right now, but I can still talk about general "
    "Vedic astrology. Please ask your question again in simple words."
)


def get_adapter() -> ResilientToolAdapter:
    return get_astrology_adapter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate credentials and build the graph on startup. ConfigurationError aborts the boot."""
    get_settings().require_astrology_credentials()
    get_adapter()
    get_graph()
    yield


app = FastAPI(title="ZodiAI", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=8000)
    conversation_id: str | None = Field(default=None, description="Optional conversation id for context")


class ChatChunk(BaseModel):
    type: str = "token"
    content: str = ""


def _run_graph(message: str, conversation_id: str) -> tuple[str, str | None]:
    """Run the graph to completion. Returns (reply, error_code); never raises."""
    graph = get_graph()
    config = {"configurable": {"thread_id": conversation_id}}
    initial = {"messages": [HumanMessage(content=message)]}
    final_state = None
    try:
        for event in graph.stream(initial, config=config, stream_mode="values"):
            if isinstance(event, dict):
                final_state = event
    except openai.RateLimitError as e:
        log.error("openai_quota_exceeded", extra={"error": str(e)[:200]})
        return QUOTA_MESSAGE, "rate_limit_exceeded"
    except Exception as e:
        log.error("graph_stream_error", extra={"error": str(e)[:200]})
        return FALLBACK_MESSAGE, "internal_error"

    messages = (final_state or {}).get("messages") or []
    for m in reversed(messages):
        if isinstance(m, AIMessage) and m.content:
            return m.content, None
    return FALLBACK_MESSAGE, "empty_response"


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["x-request-id"] = rid
    return response


@app.post("/chat/stream")
async def chat_stream(req: ChatRequest, request: Request):
    """Stream chat response as NDJSON (one JSON object per line)."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    conv_id = req.conversation_id or str(uuid.uuid4())
    log.info("chat_stream_start", extra={"request_id": request_id, "conversation_id": conv_id})

    def gen():
        reply, _ = _run_graph(req.message, conv_id)
        for ch in reply:
            yield ChatChunk(type="token", content=ch).model_dump_json() + "\n"
        yield ChatChunk(type="done", content="").model_dump_json() + "\n"

    return StreamingResponse(
        gen(),
        media_type="application/x-ndjson",
        headers={"x-request-id": request_id, "x-conversation-id": conv_id},
    )


@app.post("/chat")
def chat(req: ChatRequest, request: Request):
    """Non-streaming chat: returns full response once done. Plain def: runs in the threadpool."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    conv_id = req.conversation_id or str(uuid.uuid4())
    start = time.perf_counter()
    log.info("chat_start", extra={"request_id": request_id, "conversation_id": conv_id})
    reply, error = _run_graph(req.message, conv_id)
    duration = time.perf_counter() - start
    log.info("chat_done", extra={"request_id": request_id, "duration_sec": round(duration, 3), "error": error})
    body = {"response": reply, "conversation_id": conv_id}
    if error:
        body["error"] = error
    return body


@app.post("/tools/astrology")
def astrology(payload: dict[str, Any] = Body(...)):
    """Invoke the astrology tool directly. Always 200 with a ToolResult, even for invalid input."""
    return get_adapter().invoke(payload)


@app.get("/health")
async def health():
    """Basic health check."""
    return {"status": "ok"}


@app.get("/health/ready")
async def health_ready():
    """Readiness: AstrologyAPI credentials and LLM key present (never echoes secret values)."""
    settings = get_settings()
    checks = {
        "astrology_credentials": "ok" if settings.astrology_configured else "missing",
        "llm_key": "ok" if (settings.openai_api_key or settings.azure_openai_api_key) else "missing",
    }
    return {"status": "ok" if all(v == "ok" for v in checks.values()) else "degraded", "checks": checks}
