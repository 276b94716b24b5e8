"""
Remote Tool Invoker

Executes one model tool call against RAGRefine.

Each call becomes exactly one outbound request: analysis tools share a
uniform POST to /api/tools/execute, lookup tools map to parameterized GETs.
invoke() never raises; every failure is encoded into the ToolResult content
so the model can read it and adapt.
"""

import json
import asyncio
from dataclasses import dataclass
from typing import Optional

from ragrefine_chat.orchestrator.contracts import ToolCallRequest, ToolResult
from ragrefine_chat.orchestrator.formatters import (
    DEFAULT_MAX_LINES,
    DEFAULT_SAMPLE_ROWS,
    format_tool_response,
    positive_int,
)
from ragrefine_chat.orchestrator.tool_classifier import ToolHandler, classify
from ragrefine_chat.shared.ragrefine_client import RAGRefineClient, encode_segment


LOG_PREVIEW_CHARS = 200


@dataclass(frozen=True)
class OutboundRequest:
    method: str
    path: str
    params: Optional[dict] = None
    body: Optional[dict] = None


def _segment(args: dict, key: str) -> str:
    return encode_segment(args.get(key, ""))


# ── Lookup routes (dataset + result queries) ─────────────────────
LOOKUP_ROUTES = {
    "ragrefine_list_datasets": lambda a: OutboundRequest("GET", "/api/datasets"),
    "ragrefine_get_dataset_info": lambda a: OutboundRequest(
        "GET", f"/api/datasets/{_segment(a, 'dataset_path')}/info"
    ),
    "ragrefine_read_dataset_sample": lambda a: OutboundRequest(
        "GET",
        f"/api/datasets/{_segment(a, 'dataset_path')}/sample",
        params={"n_rows": positive_int(a.get("n_rows"), DEFAULT_SAMPLE_ROWS)},
    ),
    "ragrefine_list_analysis_results": lambda a: OutboundRequest("GET", "/api/results"),
    "ragrefine_get_result_summary": lambda a: OutboundRequest(
        "GET", f"/api/results/{_segment(a, 'run_id')}/summary"
    ),
    "ragrefine_read_result_file": lambda a: OutboundRequest(
        "GET",
        f"/api/results/{_segment(a, 'run_id')}/files/{_segment(a, 'filename')}",
        params={"max_lines": positive_int(a.get("max_lines"), DEFAULT_MAX_LINES)},
    ),
}


def build_request(name: str, args: dict) -> Optional[OutboundRequest]:
    """Map a tool call to its outbound request. None for names outside the catalog."""
    classification = classify(name)
    if classification.handler is ToolHandler.ANALYSIS_EXECUTE:
        return OutboundRequest("POST", "/api/tools/execute", body={"tool_name": name, "arguments": args})
    if classification.handler is ToolHandler.NONE:
        return None
    route = LOOKUP_ROUTES.get(name)
    if route is None:
        raise ValueError(f"No route registered for catalog tool: {name}")
    return route(args)


def unknown_tool_result(call: ToolCallRequest) -> ToolResult:
    return ToolResult(tool_call_id=call.id, name=call.name, content=f"Error: Unknown tool: {call.name}")


def _preview(text: str) -> str:
    if len(text) <= LOG_PREVIEW_CHARS:
        return text
    return text[:LOG_PREVIEW_CHARS] + "..."


class RemoteToolInvoker:
    """Runs tool calls through a RAGRefineClient off the event loop."""

    def __init__(self, client: RAGRefineClient = None):
        self.client = client or RAGRefineClient()

    async def invoke(self, call: ToolCallRequest) -> ToolResult:
        try:
            args = call.parse_arguments()
            print(f"  [ToolInvoker] {call.name} args={_preview(json.dumps(args, ensure_ascii=False))}")

            request = build_request(call.name, args)
            if request is None:
                print(f"  [ToolInvoker] Unknown tool: {call.name}")
                return unknown_tool_result(call)

            status, text = await asyncio.to_thread(
                self.client.request, request.method, request.path, request.params, request.body
            )
            if not 200 <= status < 300:
                print(f"  [ToolInvoker] {call.name} -> HTTP {status}: {_preview(text)}")
                content = f"Error: {status} {text}"
            else:
                content = format_tool_response(call.name, json.loads(text), args)
        except Exception as e:
            print(f"  [ToolInvoker] {call.name} failed: {e}")
            content = f"Error executing tool: {e}"

        return ToolResult(tool_call_id=call.id, name=call.name, content=content)
