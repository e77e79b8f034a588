"""AutoTest API: chat-style streaming endpoint plus a plain JSON test endpoint."""

import asyncio
import json
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from autotest.core.report import Reporter
from autotest.core.runner import run_tests
from autotest.models.types import TestRequest, TestType
from autotest.utils.config import load_settings
from autotest.utils.request_parser import USAGE, parse_request

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

app = FastAPI(title="AutoTest API", version=VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

settings = load_settings()


class ChatMessage(BaseModel):
    role: str = "user"
    content: str = ""


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = []


class ApiTestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str | None = None
    test_type: TestType = Field(TestType.FULL, alias="testType")
    context: str | None = None


@app.get("/health")
def health():
    return {
        "name": "AutoTest",
        "status": "running",
        "version": VERSION,
        "description": "Autonomous frontend testing",
    }


@app.post("/")
async def chat(req: ChatRequest):
    """Stream progress and the final report as chat-completion SSE chunks."""
    last_message = req.messages[-1].content if req.messages else ""
    test_req = parse_request(last_message)

    return StreamingResponse(
        _chat_events(test_req),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@app.post("/api/test")
async def api_test(req: ApiTestRequest):
    if not req.url:
        return JSONResponse(status_code=400, content={"error": "url is required"})

    test_req = TestRequest(url=req.url, test_type=req.test_type, context=req.context)
    try:
        report = await run_tests(test_req, settings=settings)
    except Exception as e:
        logger.exception("Test run failed for %s", req.url)
        return JSONResponse(status_code=500, content={"error": str(e)[:500]})
    return report.to_dict()


async def _chat_events(test_req: TestRequest | None):
    if test_req is None:
        yield _sse_chunk(USAGE)
        yield _sse_end()
        return

    yield _sse_chunk(f"🔍 Starting {test_req.test_type.value} test on **{test_req.url}**...\n\n")

    queue: asyncio.Queue = asyncio.Queue()

    def on_progress(event_type: str, data: dict):
        line = progress_message(event_type, data)
        if line:
            queue.put_nowait(line)

    task = asyncio.create_task(run_tests(test_req, settings=settings, on_progress=on_progress))
    task.add_done_callback(lambda _: queue.put_nowait(None))

    try:
        while True:
            line = await queue.get()
            if line is None:
                break
            yield _sse_chunk(line)

        try:
            report = task.result()
        except Exception as e:
            logger.exception("Test run failed for %s", test_req.url)
            yield _sse_chunk(f"\n❌ Error during testing: {e}\n")
        else:
            yield _sse_chunk(Reporter().format_for_chat(report))
        yield _sse_end()
    finally:
        # client went away mid-stream
        if not task.done():
            logger.info("Stream closed early, cancelling test run for %s", test_req.url)
            task.cancel()


def progress_message(event_type: str, data: dict) -> str | None:
    if event_type == "crawl_start":
        return "📄 Discovering pages and checking for errors...\n"
    if event_type == "pages_discovered":
        return (
            f"Found {data.get('pages', 0)} page(s), {data.get('forms', 0)} form(s), "
            f"{data.get('buttons', 0)} button(s)\n\n"
        )
    if event_type == "testing_forms":
        return f"📝 Testing {data.get('count', 0)} form(s) on {data.get('url', '')}...\n"
    if event_type == "testing_buttons":
        return f"🖱️ Testing {data.get('count', 0)} button(s) on {data.get('url', '')}...\n"
    if event_type == "checking_visual":
        return f"👁️ Checking visual layout on {data.get('url', '')}...\n"
    if event_type == "run_complete":
        return "\n✅ Testing complete.\n\n"
    return None


def _sse_chunk(content: str) -> str:
    payload = json.dumps({"choices": [{"index": 0, "delta": {"content": content, "role": "assistant"}}]})
    return f"data: {payload}\n\n"


def _sse_end() -> str:
    payload = json.dumps({"choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}]})
    return f"data: {payload}\n\ndata: [DONE]\n\n"


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
