"""
RAGRefine Chat - FastAPI Entry Point

SSE-streaming chat endpoint with RAGRefine tool calling, plus dataset
proxy endpoints for the chat UI.
"""

from dotenv import load_dotenv
load_dotenv()

import json
import asyncio
import traceback

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware

from ragrefine_chat import config
from ragrefine_chat.orchestrator.orchestrator import ChatCompletionOrchestrator
from ragrefine_chat.orchestrator.message_updates import (
    StatusKind,
    status_update,
    turn_complete_update,
)
from ragrefine_chat.orchestrator.tools import get_tools
from ragrefine_chat.shared.ragrefine_client import (
    RAGRefineAPIError,
    RAGRefineClient,
    is_dataset_file,
    is_dataset_mime_type,
    upload_dataset_to_ragrefine,
)


# ── App Setup ─────────────────────────────────────────────────

app = FastAPI(title="RAGRefine Chat")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

print("RAGRefine Chat API starting...")

orchestrator = ChatCompletionOrchestrator()
ragrefine = RAGRefineClient()


@app.on_event("startup")
async def startup_log_config():
    print(f"  [Config] model={config.LLM_MODEL} base_url={config.OPENAI_BASE_URL}")
    print(f"  [Config] ragrefine={config.RAGREFINE_API_URL} streaming={config.STREAMING_SUPPORTED} "
          f"max_iterations={config.MAX_TOOL_ITERATIONS} unknown_tools={config.UNKNOWN_TOOL_POLICY}")


@app.exception_handler(RAGRefineAPIError)
async def ragrefine_error_handler(request: Request, exc: RAGRefineAPIError):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


# ── Streaming Broker ──────────────────────────────────────────

class StreamingBroker:
    """Async queue-based SSE broker."""

    def __init__(self):
        self._q = asyncio.Queue()
        self._closed = asyncio.Event()

    async def put(self, item: dict):
        await self._q.put(item)

    async def close(self):
        if not self._closed.is_set():
            await self._q.put({"type": "__BROKER_EOF__"})
            self._closed.set()

    async def iterate(self):
        while True:
            item = await self._q.get()
            self._q.task_done()
            if item.get("type") == "__BROKER_EOF__":
                break
            yield item


# ── Background Orchestrator Runner ────────────────────────────

async def run_orchestrator_with_broker(data: dict, broker: StreamingBroker, abort_event: asyncio.Event):
    """Run one chat turn and stream its updates via broker."""
    try:
        await broker.put(status_update(StatusKind.STARTED))

        result = await orchestrator.run(
            messages=data.get("messages") or [],
            preprompt=data.get("preprompt"),
            broker=broker,
            abort_event=abort_event,
            generate_settings=data.get("generate_settings"),
            conversation_id=data.get("conversation_id"),
            token=data.get("token"),
        )

        if not result.interrupted:
            await broker.put(status_update(StatusKind.FINISHED))
        await broker.put(turn_complete_update(result.iterations, result.interrupted))
        await broker.close()

    except Exception as e:
        traceback.print_exc()
        await broker.put(status_update(StatusKind.ERROR, str(e)))
        await broker.close()


# ── Chat Endpoints ────────────────────────────────────────────

@app.post("/chat/stream")
async def chat_stream(request: Request):
    """Main chat endpoint with SSE streaming."""
    data = await request.json()
    messages = data.get("messages") or []
    print(f"Incoming chat turn: {len(messages)} messages, conversation={data.get('conversation_id')}")

    broker = StreamingBroker()
    abort_event = asyncio.Event()

    # Run orchestrator in background
    task = asyncio.create_task(run_orchestrator_with_broker(data, broker, abort_event))

    async def sse():
        disconnected = True
        try:
            async for event in broker.iterate():
                yield "data: " + json.dumps(event, default=str, ensure_ascii=False) + "\n\n"
            disconnected = False
        finally:
            if disconnected and not task.done():
                print("  [SSE] Client disconnected, aborting turn")
                abort_event.set()
                task.cancel()
            await broker.close()

    return StreamingResponse(sse(), media_type="text/event-stream")


@app.post("/chat")
async def chat(request: Request):
    """Non-streaming chat turn; returns the final answer as JSON."""
    data = await request.json()
    result = await orchestrator.run(
        messages=data.get("messages") or [],
        preprompt=data.get("preprompt"),
        stream=False,
        generate_settings=data.get("generate_settings"),
        conversation_id=data.get("conversation_id"),
        token=data.get("token"),
    )
    return result.to_dict()


@app.get("/tools")
async def list_tools():
    return {"tools": get_tools()}


# ── Dataset Endpoints ─────────────────────────────────────────

@app.get("/datasets")
async def list_datasets():
    datasets = await asyncio.to_thread(ragrefine.list_datasets)
    return {"datasets": datasets, "count": len(datasets)}


@app.get("/datasets/{dataset_path:path}/info")
async def dataset_info(dataset_path: str):
    return await asyncio.to_thread(ragrefine.get_dataset_info, dataset_path)


@app.get("/datasets/{dataset_path:path}/sample")
async def dataset_sample(dataset_path: str, n_rows: int = 5):
    return await asyncio.to_thread(ragrefine.read_dataset_sample, dataset_path, n_rows)


@app.post("/datasets")
async def upload_dataset(file: UploadFile = File(...)):
    """Forward an uploaded dataset file to RAGRefine."""
    if not (is_dataset_file(file.filename) or is_dataset_mime_type(file.content_type)):
        return JSONResponse(status_code=400, content={"error": f"Not a dataset file: {file.filename}"})

    content = await file.read()
    result = await asyncio.to_thread(
        upload_dataset_to_ragrefine, file.filename, content, file.content_type, ragrefine
    )
    return JSONResponse(status_code=200 if result.success else 502, content=result.to_dict())


@app.get("/checker")
async def checker():
    """Health check endpoint."""
    return {"status": "ok", "version": config.APP_VERSION}
