"""
Chat Contracts — shapes passed between the orchestrator, the tool invoker
and the HTTP layer.

Conversation messages stay plain OpenAI-style dicts; the tool-call side of a
turn uses small dataclasses with converters back to message dicts.
"""

import json
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ToolCallRequest:
    """One tool call requested by the model. `arguments` is the raw JSON string."""
    id: str
    name: str
    arguments: str = ""

    @classmethod
    def from_openai(cls, tool_call, index: int = 0) -> "ToolCallRequest":
        """Build from a complete (non-streamed) OpenAI tool_call object or dict."""
        if isinstance(tool_call, dict):
            function = tool_call.get("function") or {}
            call_id = tool_call.get("id")
            name = function.get("name") or ""
            arguments = function.get("arguments") or ""
        else:
            function = getattr(tool_call, "function", None)
            call_id = getattr(tool_call, "id", None)
            name = getattr(function, "name", None) or ""
            arguments = getattr(function, "arguments", None) or ""
        return cls(id=call_id or f"call_{index}", name=name, arguments=arguments)

    def parse_arguments(self) -> dict:
        """Parsed arguments; malformed or non-object JSON degrades to {}."""
        try:
            parsed = json.loads(self.arguments or "{}")
        except (ValueError, RecursionError):
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def to_message_entry(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class ToolResult:
    tool_call_id: str
    name: str
    content: str
    role: str = "tool"

    def to_message(self) -> dict:
        return {
            "role": self.role,
            "tool_call_id": self.tool_call_id,
            "name": self.name,
            "content": self.content,
        }

    @property
    def is_error(self) -> bool:
        return self.content.startswith("Error")


@dataclass
class RouterMetadata:
    """Routing info read from inference response headers."""
    route: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None

    @classmethod
    def from_headers(cls, headers) -> Optional["RouterMetadata"]:
        """
        Capture router metadata from response headers.

        Route + model win when both are present; otherwise a lone provider
        header is still recorded. Returns None when nothing was sent.
        """
        if headers is None:
            return None
        route = headers.get("X-Router-Route")
        model = headers.get("X-Router-Model")
        provider = headers.get("x-inference-provider")
        if route and model:
            return cls(route=route, model=model, provider=provider or None)
        if provider:
            return cls(provider=provider)
        return None

    def to_dict(self) -> dict:
        return {k: v for k, v in (("route", self.route), ("model", self.model), ("provider", self.provider)) if v}


@dataclass
class ChatTurnResult:
    final_text: Optional[str]
    messages: list
    router_metadata: Optional[RouterMetadata] = None
    iterations: int = 0
    interrupted: bool = False
    tool_results: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "final_text": self.final_text,
            "router_metadata": self.router_metadata.to_dict() if self.router_metadata else None,
            "iterations": self.iterations,
            "interrupted": self.interrupted,
            "messages": self.messages,
        }


def make_assistant_tool_call_message(tool_calls: list) -> dict:
    """Assistant turn echoing the model's tool calls exactly as received."""
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [tc.to_message_entry() for tc in tool_calls],
    }
