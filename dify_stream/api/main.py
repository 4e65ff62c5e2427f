import json

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import StreamingResponse
import uvicorn
import httpx

from ..core.config_manager import ConfigManager
from ..core.exceptions import ChatClientError
from ..services.chat.models import ChatRequest, ResponseMode
from ..services.chat_service.chat_service import ChatService
from ..core.logging import logger
from .middleware import RequestLoggerMiddleware

app = FastAPI()

# Initialize ConfigManager
config_manager = ConfigManager()
app.state.config_manager = config_manager


@app.on_event("startup")
async def startup_event():
    # Initialize httpx client
    app.state.httpx_client = httpx.AsyncClient()

    # Initialize ChatService
    app.state.chat_service = ChatService(app.state.config_manager, app.state.httpx_client)


@app.on_event("shutdown")
async def shutdown_event():
    # Close httpx client
    await app.state.httpx_client.aclose()

app.add_middleware(RequestLoggerMiddleware)


@app.get("/health")
async def health_check():
    return {"status": "ok"}


def _bad_request(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": {"type": "VALIDATION_ERROR", "message": message,
                          "status": None, "code": "validation_error"}}
    )


def _parse_chat_request(body) -> ChatRequest:
    if not isinstance(body, dict):
        raise _bad_request("Request body must be a JSON object")

    try:
        response_mode = ResponseMode(body.get("response_mode", ResponseMode.STREAMING.value))
    except ValueError:
        raise _bad_request("response_mode must be 'streaming' or 'blocking'")

    return ChatRequest(
        query=body.get("query") or "",
        conversation_id=body.get("conversation_id"),
        user=body.get("user"),
        inputs=body.get("inputs") or {},
        response_mode=response_mode,
        files=body.get("files"),
    )


@app.post("/v1/chat")
async def chat(request: Request):
    """
    Relay one chat call.

    Streaming requests are answered with an event stream carrying one
    `data: {...}` line per update. Blocking requests return the ChatResult.
    """
    request_id = getattr(request.state, 'request_id', 'unknown')

    try:
        body = await request.json()
    except json.JSONDecodeError:
        body = None
    chat_request = _parse_chat_request(body)

    chat_service: ChatService = app.state.chat_service

    if chat_request.response_mode is ResponseMode.BLOCKING:
        try:
            result = await chat_service.send_blocking_chat(chat_request)
        except ChatClientError as e:
            raise HTTPException(status_code=e.http_status, detail=e.to_dict())
        return result.to_dict()

    logger.info("Relaying streaming chat", request_id=request_id, has_conversation_id=bool(chat_request.conversation_id))

    async def generate():
        async for update in chat_service.stream_chat(chat_request):
            yield f"data: {json.dumps(update.to_dict(), ensure_ascii=False)}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(generate(), media_type="text/event-stream")


@app.get("/v1/performance")
async def get_performance():
    return app.state.chat_service.get_performance_snapshot()


@app.post("/v1/performance/reset")
async def reset_performance():
    app.state.chat_service.reset_performance_state()
    return {"status": "ok"}


@app.get("/v1/config")
async def get_config_info():
    return app.state.config_manager.get_config_info()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
