"""
Stream Accumulator

Folds streamed chat completion chunks into text and
complete tool calls.

Tool-call deltas are keyed by their positional index. The first delta for an
index fixes the call's id (synthesized as call_{index} when absent) and
name; later deltas only extend the arguments string.
"""

from dataclasses import dataclass
from typing import Optional

from ragrefine_chat.orchestrator.contracts import ToolCallRequest

TOOL_CALLS_FINISH_REASON = "tool_calls"


def _field(obj, name: str):
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


@dataclass
class ChunkFragments:
    """What a single chunk contributes to the user-visible stream."""
    text: str = ""
    reasoning: str = ""


class StreamAccumulator:

    def __init__(self):
        self._calls = {}
        self._text_parts = []
        self.finish_reason: Optional[str] = None

    def add_tool_call_delta(self, delta) -> None:
        index = _field(delta, "index")
        index = 0 if index is None else index
        function = _field(delta, "function")
        arguments = _field(function, "arguments") or ""

        existing = self._calls.get(index)
        if existing is None:
            self._calls[index] = ToolCallRequest(
                id=_field(delta, "id") or f"call_{index}",
                name=_field(function, "name") or "",
                arguments=arguments,
            )
        else:
            existing.arguments += arguments

    def add_chunk(self, chunk) -> ChunkFragments:
        fragments = ChunkFragments()
        choices = _field(chunk, "choices") or []
        if not choices:
            return fragments
        choice = choices[0]
        delta = _field(choice, "delta")

        if delta is not None:
            fragments.reasoning = _field(delta, "reasoning_content") or _field(delta, "reasoning") or ""
            fragments.text = _field(delta, "content") or ""
            if fragments.text:
                self._text_parts.append(fragments.text)
            tool_calls = _field(delta, "tool_calls") or []
            if not isinstance(tool_calls, list):
                tool_calls = [tool_calls]
            for tc in tool_calls:
                self.add_tool_call_delta(tc)

        finish_reason = _field(choice, "finish_reason")
        if finish_reason:
            self.finish_reason = finish_reason
        return fragments

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    @property
    def tool_calls(self) -> list:
        return [self._calls[idx] for idx in sorted(self._calls)]

    @property
    def requests_tools(self) -> bool:
        return self.finish_reason == TOOL_CALLS_FINISH_REASON and bool(self._calls)
