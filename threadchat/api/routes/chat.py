"""Streaming chat API route."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from ...app import Application
from ...errors import CompletionError
from ...logging_config import get_logger
from ...streaming import SSE_HEADERS, encode_frame, sse_stream

logger = get_logger(__name__)

CHAT_MAX_TOKENS = 4096
DEFAULT_FILE_QUESTION = "Summarize this file."
FILE_SYSTEM_PROMPT = (
    "You are an AI assistant. Use ONLY the following file content to answer "
    "the user's question. Do not hallucinate. If the content is not relevant, "
    "say that the file does not contain the answer.\n\n"
    "File content:\n{content}"
)


class ChatMessage(BaseModel):
    """One history entry as sent by the client."""

    role: str
    content: str = ""
    file: dict[str, Any] | None = None
    extracted_text: str | None = None


class ChatRequest(BaseModel):
    """Request model for a streamed chat completion."""

    messages: list[ChatMessage]


def build_prompt(messages: list[ChatMessage]) -> tuple[list[dict], str | None]:
    """Turn client history into assistant messages plus an optional system prompt.

    When the last message carries extracted file text, only that file answers
    the question on the message's second and later lines.
    """
    last = messages[-1]
    if last.extracted_text and last.extracted_text.strip():
        query = "\n".join(last.content.split("\n")[1:]).strip()
        return (
            [{"role": "user", "content": query or DEFAULT_FILE_QUESTION}],
            FILE_SYSTEM_PROMPT.format(content=last.extracted_text),
        )

    history = [
        {"role": m.role, "content": m.content}
        for m in messages
        if m.role in ("user", "assistant") and m.content.strip()
    ]
    # Conversations start with a user turn
    while history and history[0]["role"] != "user":
        history.pop(0)
    return history, None


def create_chat_router(app: Application) -> APIRouter:
    """Create chat router."""
    router = APIRouter(prefix="/api", tags=["chat"])

    @router.post("/chat")
    async def chat(request: ChatRequest) -> StreamingResponse:
        """Stream the assistant's reply as SSE frames."""
        if not request.messages:
            raise HTTPException(status_code=400, detail="Messages are required")

        messages, system = build_prompt(request.messages)
        if not messages:
            raise HTTPException(status_code=400, detail="No user message to answer")

        deltas = app.llm.stream_complete(
            messages, system=system, max_tokens=CHAT_MAX_TOKENS
        )

        # Fail with a JSON error if the upstream call breaks before any output
        try:
            first = await anext(deltas)
        except StopAsyncIteration:
            first = None
        except CompletionError as e:
            logger.error("Chat completion failed: %s", e, extra={"route": "/api/chat"})
            raise HTTPException(status_code=500, detail=str(e))

        async def body():
            if first:
                yield encode_frame(first)
            try:
                async for frame in sse_stream(deltas):
                    yield frame
            except CompletionError as e:
                logger.error("Chat stream broke off: %s", e, extra={"route": "/api/chat"})
                raise

        return StreamingResponse(
            body(), media_type="text/event-stream", headers=SSE_HEADERS
        )

    return router
