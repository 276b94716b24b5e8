"""
Tool Response Formatters

Turn RAGRefine JSON responses into the human-readable (Korean) text blocks
the model sees as tool results. One formatter per lookup tool; every
analysis tool shares the execution-plan formatter. Anything without a rule
falls back to the service's textual result fields.
"""

import json

from ragrefine_chat.orchestrator.tool_classifier import ToolGroup, classify

DEFAULT_SAMPLE_ROWS = 5
DEFAULT_MAX_LINES = 100
MAX_LISTED_FILES = 10

COMPLETION_MARKER = "완료"


def _kb(size) -> str:
    try:
        return f"{float(size or 0) / 1024:.1f}KB"
    except (TypeError, ValueError):
        return "0.0KB"


def _thousands(value, unknown: str) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:,}"
    return unknown


def positive_int(value, default: int) -> int:
    """Coerce a model-supplied count (e.g. "3" or 2.5) to an int, else `default`."""
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if number > 0 else default


def _as_text(value) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def format_list_datasets(result: dict, args: dict) -> str:
    datasets = result.get("datasets") or []
    count = result.get("count") or 0
    dataset_list = "\n".join(f"- {ds.get('name', '')} ({_kb(ds.get('size'))})" for ds in datasets)
    return f"📁 사용 가능한 데이터셋 (총 {count}개):\n\n{dataset_list or '데이터셋이 없습니다.'}"


def format_dataset_info(result: dict, args: dict) -> str:
    if not result.get("exists"):
        return f"❌ 데이터셋을 찾을 수 없습니다: {args.get('dataset_path')}"
    columns = result.get("columns") or []
    return (
        "📊 데이터셋 정보:\n\n"
        f"- 경로: {result.get('path')}\n"
        f"- 행 수: {_thousands(result.get('rows'), '알 수 없음')}\n"
        f"- 컬럼 ({len(columns)}개): {', '.join(str(c) for c in columns)}\n"
        f"- 크기: {_kb(result.get('size'))}"
    )


def format_dataset_sample(result: dict, args: dict) -> str:
    requested = positive_int(args.get("n_rows"), DEFAULT_SAMPLE_ROWS)
    sample = (result.get("sample") or [])[:requested]
    if sample:
        sample_text = "\n".join(
            f"\n[행 {idx + 1}]\n{json.dumps(row, indent=2, ensure_ascii=False)}"
            for idx, row in enumerate(sample)
        )
    else:
        sample_text = "샘플 데이터가 없습니다."
    return (
        f"📄 데이터셋 샘플 ({result.get('n_rows') or 0}행, "
        f"전체 {_thousands(result.get('total_rows'), '?')}행):\n{sample_text}"
    )


def format_list_results(result: dict, args: dict) -> str:
    results = result.get("results") or []
    count = result.get("count") or 0
    result_list = "\n".join(
        f"- {r.get('run_id')} ({r.get('timestamp') or '알 수 없음'}, 파일 {r.get('file_count') or 0}개)"
        for r in results
    )
    return f"📈 분석 결과 목록 (총 {count}개):\n\n{result_list or '결과가 없습니다.'}"


def format_result_summary(result: dict, args: dict) -> str:
    summary = result.get("summary") or {}
    all_files = result.get("files") or []
    files = ", ".join(str(f) for f in all_files[:MAX_LISTED_FILES])
    file_info = f"{files}... (총 {len(all_files)}개)" if len(all_files) > MAX_LISTED_FILES else files

    def flag(key):
        return "✅" if summary.get(key) else "❌"

    return (
        "📋 분석 결과 요약:\n\n"
        f"- 실행 ID: {result.get('run_id')}\n"
        f"- 파일 수: {result.get('file_count') or 0}개\n"
        f"- 파일 목록: {file_info or '없음'}\n"
        f"- HTML 보고서: {flag('has_html_report')}\n"
        f"- Excel 보고서: {flag('has_excel_report')}\n"
        f"- JSON 데이터: {flag('has_json_data')}"
    )


def format_result_file(result: dict, args: dict) -> str:
    if result.get("error"):
        return f"❌ 오류: {result['error']}"
    truncated = ""
    if result.get("truncated"):
        max_lines = positive_int(args.get("max_lines"), DEFAULT_MAX_LINES)
        truncated = f"\n\n⚠️ 일부만 표시됨 (전체 {result.get('total_lines')}줄 중 {max_lines}줄)"
    return f"📄 파일 내용 ({result.get('filename')}):\n\n{result.get('content') or '내용 없음'}{truncated}"


def build_execution_info(result: dict) -> dict:
    """Structured plan block embedded for UI consumption."""
    plan = result.get("execution_plan") or []
    info = {
        "has_dependencies": len(plan) > 1,
        "execution_plan": plan,
        "executed_tools": result.get("executed_tools") or [],
    }
    for key in ("final_result", "output_dir", "files"):
        if key in result:
            info[key] = result[key]
    return info


def format_analysis_execution(result: dict, args: dict) -> str:
    plan = result.get("execution_plan") or []
    if not plan:
        return format_fallback(result, args)

    final_text = _as_text(result.get("final_result") or COMPLETION_MARKER)
    plan_block = f"<execution_plan>{json.dumps(build_execution_info(result), ensure_ascii=False)}</execution_plan>"

    if len(plan) > 1:
        chain = " → ".join(str(step.get("tool_name", "")) for step in plan if isinstance(step, dict))
        return f"✅ 분석 완료 (의존성 자동 실행: {chain})\n\n최종 결과:\n{final_text}\n\n{plan_block}"
    return f"{final_text}\n\n{plan_block}"


def format_fallback(result, args: dict) -> str:
    if not isinstance(result, dict):
        return _as_text(result) if result else COMPLETION_MARKER
    return _as_text(result.get("final_result") or result.get("result") or COMPLETION_MARKER)


FORMATTERS = {
    "ragrefine_list_datasets": format_list_datasets,
    "ragrefine_get_dataset_info": format_dataset_info,
    "ragrefine_read_dataset_sample": format_dataset_sample,
    "ragrefine_list_analysis_results": format_list_results,
    "ragrefine_get_result_summary": format_result_summary,
    "ragrefine_read_result_file": format_result_file,
}


def format_tool_response(name: str, result, args: dict) -> str:
    """Format a 2xx JSON response for tool `name`."""
    formatter = FORMATTERS.get(name)
    if formatter is None and classify(name).group is ToolGroup.ANALYSIS:
        formatter = format_analysis_execution
    if formatter is None or not isinstance(result, dict):
        return format_fallback(result, args)
    return formatter(result, args)
