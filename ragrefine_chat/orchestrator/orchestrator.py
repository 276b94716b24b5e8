"""
RAGRefine Chat - Completion Orchestrator

Runs one chat turn as a tool-calling loop:

  AWAITING_RESPONSE → (TOOL_CALLS_DETECTED → TOOLS_EXECUTING → AWAITING_RESPONSE) | FINAL

Each iteration sends the accumulated history plus the tool catalog to the
model. Tool calls are executed against RAGRefine (bounded fan-out, results
appended in call order) and the loop repeats; a reply without tool calls is
the final answer. After MAX_TOOL_ITERATIONS a last request without tools is
sent and its answer returned as-is.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ragrefine_chat import config
from ragrefine_chat.orchestrator.contracts import (
    ChatTurnResult,
    RouterMetadata,
    ToolCallRequest,
    ToolResult,
    make_assistant_tool_call_message,
)
from ragrefine_chat.orchestrator import message_updates as updates
from ragrefine_chat.orchestrator.message_updates import AnalysisStatus, emit
from ragrefine_chat.orchestrator.stream_accumulator import StreamAccumulator
from ragrefine_chat.orchestrator.system_prompt import prepare_messages
from ragrefine_chat.orchestrator.tool_classifier import ToolGroup, classify
from ragrefine_chat.orchestrator.tool_invoker import RemoteToolInvoker, unknown_tool_result
from ragrefine_chat.orchestrator.tools import get_display_name, get_tools
from ragrefine_chat.shared.llm_client import get_llm_client


_STREAM_END = object()


class ChatTurnAborted(Exception):
    """The caller's abort event fired while the turn was in flight."""


@dataclass
class TurnContext:
    broker: object = None
    abort_event: Optional[asyncio.Event] = None
    generate_settings: Optional[dict] = None
    conversation_id: Optional[str] = None
    token: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.abort_event is not None and self.abort_event.is_set()

    def check_abort(self):
        if self.aborted:
            raise ChatTurnAborted()


@dataclass
class IterationOutcome:
    text: str = ""
    tool_calls: list = field(default_factory=list)
    router_metadata: Optional[RouterMetadata] = None


async def _await_or_abort(coro, abort_event: Optional[asyncio.Event]):
    """Await `coro`, cancelling it and raising ChatTurnAborted if the abort event fires first."""
    if abort_event is None:
        return await coro
    if abort_event.is_set():
        coro.close()
        raise ChatTurnAborted()

    task = asyncio.ensure_future(coro)
    waiter = asyncio.ensure_future(abort_event.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        waiter.cancel()
        raise

    if task in done:
        waiter.cancel()
        return task.result()
    task.cancel()
    # let the cancelled request unwind before the stream is closed
    await asyncio.wait({task})
    raise ChatTurnAborted()


async def _next_chunk(iterator):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _STREAM_END


async def _close_stream(stream):
    close = getattr(stream, "close", None) or getattr(stream, "aclose", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


class ChatCompletionOrchestrator:
    """Tool-calling chat loop over an OpenAI-compatible endpoint."""

    def __init__(
        self,
        llm_client=None,
        invoker: RemoteToolInvoker = None,
        max_iterations: int = None,
        max_concurrency: int = None,
        unknown_tool_policy: str = None,
    ):
        self.llm_client = llm_client
        self.invoker = invoker or RemoteToolInvoker()
        self.max_iterations = max_iterations if max_iterations is not None else config.MAX_TOOL_ITERATIONS
        self.max_concurrency = max(1, max_concurrency or config.TOOL_MAX_CONCURRENCY)
        self.unknown_tool_policy = unknown_tool_policy or config.UNKNOWN_TOOL_POLICY
        if self.unknown_tool_policy not in config.UNKNOWN_TOOL_POLICIES:
            raise ValueError(f"Unknown tool policy: {self.unknown_tool_policy}")

    @property
    def llm(self):
        if self.llm_client is None:
            self.llm_client = get_llm_client()
        return self.llm_client

    async def run(
        self,
        messages: list,
        preprompt: str = None,
        broker=None,
        stream: bool = None,
        abort_event: asyncio.Event = None,
        generate_settings: dict = None,
        conversation_id: str = None,
        token: str = None,
    ) -> ChatTurnResult:
        """
        Run one chat turn to its final answer.

        Args:
            messages: Conversation so far (UI or OpenAI message dicts).
            preprompt: Optional system preprompt combined with the tool prompt.
            broker: Receives stream/reasoning/activeAnalysis/routerMetadata/finalAnswer events.
            stream: Streaming vs. single-response mode. Defaults to STREAMING_SUPPORTED.
            abort_event: When set, the turn stops without running further tools
                or emitting a final answer.

        Returns:
            ChatTurnResult with the final text and the full message history.
        """
        stream = config.STREAMING_SUPPORTED if stream is None else stream
        ctx = TurnContext(broker, abort_event, generate_settings, conversation_id, token)
        current_messages = prepare_messages(messages, preprompt)
        tool_results = []
        router_metadata = None
        iteration = 0

        print(f"  [Orchestrator] Turn started: {len(current_messages)} messages, stream={stream}")

        try:
            while iteration < self.max_iterations:
                ctx.check_abort()
                outcome = await self._request(current_messages, ctx, stream, tools=get_tools())
                router_metadata = outcome.router_metadata or router_metadata
                ctx.check_abort()

                if not outcome.tool_calls:
                    return await self._finish(ctx, outcome.text, current_messages, router_metadata, iteration, tool_results)

                print(f"  [Orchestrator] Iteration {iteration + 1}: "
                      f"{[tc.name for tc in outcome.tool_calls]}")
                results = await self._execute_tools(outcome.tool_calls, ctx)
                current_messages = (
                    current_messages
                    + [make_assistant_tool_call_message(outcome.tool_calls)]
                    + [r.to_message() for r in results]
                )
                tool_results.extend(results)
                iteration += 1

            print(f"  [Orchestrator] Reached {self.max_iterations} iterations, forcing final answer without tools")
            ctx.check_abort()
            outcome = await self._request(current_messages, ctx, stream, tools=None)
            router_metadata = outcome.router_metadata or router_metadata
            ctx.check_abort()
            return await self._finish(ctx, outcome.text, current_messages, router_metadata, iteration, tool_results)

        except ChatTurnAborted:
            print(f"  [Orchestrator] Turn aborted after {iteration} iterations")
            return ChatTurnResult(
                final_text=None,
                messages=current_messages,
                router_metadata=router_metadata,
                iterations=iteration,
                interrupted=True,
                tool_results=tool_results,
            )

    # ---------------------------------------------------------
    # One model request
    # ---------------------------------------------------------
    async def _request(self, messages: list, ctx: TurnContext, stream: bool, tools: list = None) -> IterationOutcome:
        completion = await _await_or_abort(
            self.llm.create_chat_completion(
                messages,
                tools=tools,
                stream=stream,
                generate_settings=ctx.generate_settings,
                conversation_id=ctx.conversation_id,
                token=ctx.token,
            ),
            ctx.abort_event,
        )
        if stream:
            accumulator = await self._consume_stream(completion.response, ctx)
            tool_calls = accumulator.tool_calls if accumulator.requests_tools else []
            text = accumulator.text
        else:
            text, tool_calls = self._read_completion(completion.response)

        if tools is None:
            tool_calls = []
        return IterationOutcome(text=text, tool_calls=tool_calls, router_metadata=completion.router_metadata)

    async def _consume_stream(self, response, ctx: TurnContext) -> StreamAccumulator:
        accumulator = StreamAccumulator()
        iterator = response.__aiter__()
        try:
            while True:
                chunk = await _await_or_abort(_next_chunk(iterator), ctx.abort_event)
                if chunk is _STREAM_END:
                    break
                fragments = accumulator.add_chunk(chunk)
                if fragments.reasoning:
                    await emit(ctx.broker, updates.reasoning_update(fragments.reasoning))
                if fragments.text:
                    await emit(ctx.broker, updates.stream_update(fragments.text))
        finally:
            await _close_stream(response)

        if accumulator.finish_reason:
            print(f"  [Orchestrator] Stream finish_reason={accumulator.finish_reason}")
        return accumulator

    @staticmethod
    def _read_completion(response) -> tuple:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return "", []
        message = choices[0].message
        tool_calls = [
            ToolCallRequest.from_openai(tc, index=i)
            for i, tc in enumerate(getattr(message, "tool_calls", None) or [])
        ]
        return message.content or "", tool_calls

    # ---------------------------------------------------------
    # Tool execution
    # ---------------------------------------------------------
    async def _execute_tools(self, tool_calls: list, ctx: TurnContext) -> list:
        """Run every tool call with bounded concurrency; results keep call order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run_one(call: ToolCallRequest) -> Optional[ToolResult]:
            classification = classify(call.name)
            if not classification.is_known:
                if self.unknown_tool_policy == "drop":
                    print(f"  [Orchestrator] Dropping unknown tool call: {call.name}")
                    return None
                return unknown_tool_result(call)

            async with semaphore:
                ctx.check_abort()
                if classification.group is ToolGroup.ANALYSIS:
                    return await self._run_analysis(call, ctx)
                return await self.invoker.invoke(call)

        outcomes = await asyncio.gather(*[run_one(tc) for tc in tool_calls], return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return [r for r in outcomes if r is not None]

    async def _run_analysis(self, call: ToolCallRequest, ctx: TurnContext) -> ToolResult:
        started_at = datetime.now(timezone.utc).isoformat()
        display_name = get_display_name(call.name)
        dataset_path = call.parse_arguments().get("dataset_path", "")

        await emit(ctx.broker, updates.active_analysis_update(
            call.name, display_name, dataset_path, AnalysisStatus.EXECUTING, started_at,
        ))
        result = await self.invoker.invoke(call)
        status = AnalysisStatus.FAILED if result.is_error else AnalysisStatus.COMPLETED
        await emit(ctx.broker, updates.active_analysis_update(
            call.name, display_name, dataset_path, status, started_at, results=result.content,
        ))
        return result

    # ---------------------------------------------------------
    # Final answer
    # ---------------------------------------------------------
    async def _finish(
        self,
        ctx: TurnContext,
        text: str,
        messages: list,
        router_metadata: Optional[RouterMetadata],
        iterations: int,
        tool_results: list,
    ) -> ChatTurnResult:
        if router_metadata:
            await emit(ctx.broker, updates.router_metadata_update(router_metadata))
        await emit(ctx.broker, updates.final_answer_update(text))
        print(f"  [Orchestrator] Final answer after {iterations} tool iterations ({len(text)} chars)")
        return ChatTurnResult(
            final_text=text,
            messages=messages + [{"role": "assistant", "content": text}],
            router_metadata=router_metadata,
            iterations=iterations,
            interrupted=False,
            tool_results=tool_results,
        )
