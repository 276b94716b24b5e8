import json
from types import SimpleNamespace

import pytest

from ragrefine_chat.orchestrator.contracts import ToolResult
from ragrefine_chat.shared.llm_client import CompletionResult


class FakeBroker:
    """Collects events instead of queueing them for SSE."""

    def __init__(self):
        self.events = []

    async def put(self, item: dict):
        self.events.append(item)

    def of_type(self, kind: str) -> list:
        return [e for e in self.events if e["type"] == kind]

    @property
    def types(self) -> list:
        return [e["type"] for e in self.events]


class FakeHTTPResponse:
    """Just enough of requests.Response for the RAGRefine client."""

    def __init__(self, status_code: int = 200, payload=None, text: str = None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload, ensure_ascii=False)

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeStream:
    """Async chunk stream with an awaitable close(), like openai.AsyncStream."""

    def __init__(self, chunks, hang_after: bool = False):
        self.chunks = list(chunks)
        self.hang_after = hang_after
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        import asyncio
        for chunk in self.chunks:
            yield chunk
        if self.hang_after:
            await asyncio.Event().wait()

    async def close(self):
        self.closed = True


class FakeLLM:
    """
    Stands in for LLMClient.

    `responses` is either a list consumed in order or a callable
    (tools, stream) -> response. Responses may already be CompletionResults.
    """

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def create_chat_completion(self, messages, tools=None, stream=True, generate_settings=None,
                                     conversation_id=None, token=None):
        self.calls.append({
            "messages": list(messages),
            "tools": tools,
            "stream": stream,
            "generate_settings": generate_settings,
            "conversation_id": conversation_id,
            "token": token,
        })
        if callable(self.responses):
            item = self.responses(tools, stream)
        else:
            item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, CompletionResult):
            return item
        return CompletionResult(response=item)


class FakeInvoker:
    def __init__(self, content="ok"):
        self.content = content
        self.calls = []

    async def invoke(self, call) -> ToolResult:
        self.calls.append(call)
        content = self.content(call) if callable(self.content) else self.content
        return ToolResult(tool_call_id=call.id, name=call.name, content=content)


# ── Chunk / completion builders ──────────────────────────────

def text_chunk(content: str, finish_reason: str = None, **delta_fields):
    delta = SimpleNamespace(content=content, **delta_fields)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)])


def tool_delta_chunk(index: int, id: str = None, name: str = None, arguments: str = None,
                     finish_reason: str = None):
    function = SimpleNamespace(name=name, arguments=arguments)
    tool_call = SimpleNamespace(index=index, id=id, type="function" if id else None, function=function)
    delta = SimpleNamespace(content=None, tool_calls=[tool_call])
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)])


def finish_chunk(reason: str):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=None), finish_reason=reason)])


def openai_tool_call(id: str, name: str, arguments: str):
    return SimpleNamespace(id=id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


def completion(content: str = None, tool_calls: list = None):
    message = SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls)
    finish = "tool_calls" if tool_calls else "stop"
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish)])


def streamed_tool_call(id: str, name: str, arguments: str) -> FakeStream:
    """One complete tool call delivered as name + two argument fragments."""
    split = len(arguments) // 2
    return FakeStream([
        tool_delta_chunk(0, id=id, name=name, arguments=""),
        tool_delta_chunk(0, arguments=arguments[:split]),
        tool_delta_chunk(0, arguments=arguments[split:]),
        finish_chunk("tool_calls"),
    ])


def streamed_text(*tokens: str) -> FakeStream:
    return FakeStream([text_chunk(t) for t in tokens] + [finish_chunk("stop")])


@pytest.fixture
def broker():
    return FakeBroker()
