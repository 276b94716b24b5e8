"""
Message Updates

Factory functions for the events pushed to the broker.

Every event is {"type": <kind>, "data": {...}} using the chat UI's update
vocabulary.
"""

from datetime import datetime, timezone

from ragrefine_chat.orchestrator.contracts import RouterMetadata


class UpdateType:
    STATUS = "status"
    STREAM = "stream"
    REASONING = "reasoning"
    ACTIVE_ANALYSIS = "activeAnalysis"
    ROUTER_METADATA = "routerMetadata"
    FINAL_ANSWER = "finalAnswer"
    TURN_COMPLETE = "turn_complete"


class StatusKind:
    STARTED = "started"
    ERROR = "error"
    FINISHED = "finished"


class AnalysisStatus:
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def status_update(status: str, message: str = None) -> dict:
    data = {"status": status, "timestamp": _now()}
    if message:
        data["message"] = message
    return {"type": UpdateType.STATUS, "data": data}


def stream_update(token: str) -> dict:
    return {"type": UpdateType.STREAM, "data": {"token": token}}


def reasoning_update(token: str) -> dict:
    return {"type": UpdateType.REASONING, "data": {"subtype": "stream", "token": token}}


def active_analysis_update(
    tool_name: str,
    tool_display_name: str,
    dataset_path: str,
    status: str,
    started_at: str,
    results: str = None,
) -> dict:
    analysis = {
        "tool_name": tool_name,
        "tool_display_name": tool_display_name,
        "dataset_path": dataset_path,
        "status": status,
        "started_at": started_at,
    }
    if results is not None:
        analysis["results"] = results
    return {"type": UpdateType.ACTIVE_ANALYSIS, "data": {"activeAnalysis": analysis}}


def router_metadata_update(metadata: RouterMetadata) -> dict:
    return {"type": UpdateType.ROUTER_METADATA, "data": metadata.to_dict()}


def final_answer_update(text: str, interrupted: bool = False) -> dict:
    return {"type": UpdateType.FINAL_ANSWER, "data": {"text": text, "interrupted": interrupted}}


def turn_complete_update(iterations: int, interrupted: bool) -> dict:
    return {
        "type": UpdateType.TURN_COMPLETE,
        "data": {"iterations": iterations, "interrupted": interrupted, "timestamp": _now()},
    }


async def emit(broker, update: dict):
    """Push an update through the broker (no-op without one)."""
    if broker is None:
        return
    await broker.put(update)
