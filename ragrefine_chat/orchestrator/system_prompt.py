"""
System prompt for RAGRefine tool use, and its injection into a chat history.
"""

from ragrefine_chat.orchestrator.tool_classifier import ToolGroup, tools_in_group
from ragrefine_chat.orchestrator.tools import get_display_name, get_tools, tool_name


USAGE_EXAMPLES = [
    "데이터셋으로 RAGAS 분석 실행해줘",
    "질문들을 주제별로 클러스터링 해줘",
    "키워드 분석 해줘",
    "진단 플레이북 실행해줘",
]

MESSAGE_FIELDS = ("content", "name", "tool_calls", "tool_call_id")


def _summary(description: str) -> str:
    return description.split(".")[0] or description[:100]


def get_tools_description() -> str:
    """Korean markdown overview of the catalog, grouped by tool group."""
    descriptions = []
    descriptions_by_name = {tool_name(t): t["function"].get("description", "") for t in get_tools()}

    analysis_tools = tools_in_group(ToolGroup.ANALYSIS)
    if analysis_tools:
        descriptions += ["## 📊 분석 도구 (Analysis Tools)", "", "다음과 같은 분석을 실행할 수 있습니다:", ""]
        for name in analysis_tools:
            descriptions.append(f"- **{get_display_name(name)}**: {_summary(descriptions_by_name[name])}")
        descriptions += ["", "### 사용 예시"]
        descriptions += [f'- "{example}"' for example in USAGE_EXAMPLES]
        descriptions.append("")

    if tools_in_group(ToolGroup.DATASET):
        descriptions += [
            "## 📁 데이터셋 도구 (Dataset Tools)",
            "",
            "데이터셋 정보를 조회할 수 있습니다:",
            "- 사용 가능한 데이터셋 목록 조회",
            "- 데이터셋 상세 정보 확인",
            "- 데이터셋 샘플 데이터 읽기",
            "",
        ]

    if tools_in_group(ToolGroup.RESULT):
        descriptions += [
            "## 📈 분석 결과 도구 (Result Tools)",
            "",
            "과거 분석 결과를 조회할 수 있습니다:",
            "- 분석 결과 목록 조회",
            "- 결과 요약 정보 확인",
            "- 결과 파일 내용 읽기",
            "",
        ]

    return "\n".join(descriptions)


def get_system_prompt() -> str:
    return f"""당신은 RAGRefine 분석 도구를 사용할 수 있는 AI 어시스턴트입니다.

{get_tools_description()}

## 중요 안내

### 도구 설명 요청
사용자가 다음과 같은 질문을 하면 **위 도구 목록을 친절하고 쉽게 설명**해주세요:
- "무슨 분석을 할 수 있냐"
- "어떤 분석 도구가 있어?"
- "분석 기능 목록 보여줘"
- "어떤 분석을 실행할 수 있나요?"
- "사용 가능한 분석 종류 알려줘"

**답변 방식**:
- 각 분석 도구를 간단명료하게 설명하세요
- 사용 예시를 함께 보여주세요
- 데이터셋이 필요하다는 점을 언급하세요

### 분석 실행
- 사용자가 분석을 요청하면 적절한 도구를 사용하여 실행하세요
- 분석 실행 시 **자동으로 의존성이 있는 다른 분석도 함께 실행**됩니다
  - 예: 진단 플레이북 실행 시 → RAGAS 분석도 자동 실행
  - 예: 종합 보고서 생성 시 → 여러 분석 자동 실행
- 도구를 사용할 때는 `dataset_path`가 필요합니다
- 사용자가 데이터셋을 지정하지 않으면 먼저 목록을 보여주고 선택하게 해주세요

### 언어
- 한국어로 응답하세요"""


def normalize_message(message: dict) -> dict:
    """Map a UI message (`role` or legacy `from`) to an OpenAI chat message."""
    normalized = {"role": message.get("role") or message.get("from") or "user"}
    for key in MESSAGE_FIELDS:
        if key in message:
            normalized[key] = message[key]
    normalized.setdefault("content", "")
    return normalized


def prepare_messages(messages: list, preprompt: str = None) -> list:
    """
    Normalise the conversation and inject the RAGRefine system prompt.

    An existing leading system message gets the prompt appended; otherwise a
    new system message (preprompt + prompt) is prepended.
    """
    prepared = [normalize_message(m) for m in messages]
    system_prompt = get_system_prompt()

    if prepared and prepared[0]["role"] == "system":
        existing = prepared[0].get("content") or ""
        prepared[0]["content"] = existing + ("\n\n" if existing else "") + system_prompt
        return prepared

    combined = f"{preprompt}\n\n{system_prompt}" if preprompt else system_prompt
    return [{"role": "system", "content": combined}] + prepared
