"""
Tool Name Classifier

Resolves a tool name to its catalog group and the invoker handler that
processes it. The lookup table is built once from the static catalog, so
only names that are actually in the catalog classify as known.
"""

from dataclasses import dataclass
from enum import Enum

from ragrefine_chat.orchestrator.tools import ANALYSIS_TOOLS, DATASET_TOOLS, RESULT_TOOLS, tool_name


class ToolGroup(str, Enum):
    ANALYSIS = "analysis"
    DATASET = "dataset"
    RESULT = "result"
    UNKNOWN = "unknown"


class ToolHandler(str, Enum):
    ANALYSIS_EXECUTE = "analysis_execute"
    DATASET_QUERY = "dataset_query"
    RESULT_QUERY = "result_query"
    NONE = "none"


GROUP_HANDLERS = {
    ToolGroup.ANALYSIS: ToolHandler.ANALYSIS_EXECUTE,
    ToolGroup.DATASET: ToolHandler.DATASET_QUERY,
    ToolGroup.RESULT: ToolHandler.RESULT_QUERY,
    ToolGroup.UNKNOWN: ToolHandler.NONE,
}


@dataclass(frozen=True)
class ToolClassification:
    name: str
    group: ToolGroup
    handler: ToolHandler

    @property
    def is_known(self) -> bool:
        return self.group is not ToolGroup.UNKNOWN


def _build_registry() -> dict:
    registry = {}
    for group, tools in (
        (ToolGroup.ANALYSIS, ANALYSIS_TOOLS),
        (ToolGroup.DATASET, DATASET_TOOLS),
        (ToolGroup.RESULT, RESULT_TOOLS),
    ):
        for tool in tools:
            name = tool_name(tool)
            if name in registry:
                raise ValueError(f"Duplicate tool name in catalog: {name}")
            registry[name] = group
    return registry


_REGISTRY = _build_registry()


def classify(name: str) -> ToolClassification:
    """Classify a tool name. Names outside the catalog return ToolGroup.UNKNOWN."""
    group = _REGISTRY.get(name or "", ToolGroup.UNKNOWN)
    return ToolClassification(name=name or "", group=group, handler=GROUP_HANDLERS[group])


def is_ragrefine_tool(name: str) -> bool:
    return classify(name).is_known


def tools_in_group(group: ToolGroup) -> list:
    return [name for name, g in _REGISTRY.items() if g is group]
