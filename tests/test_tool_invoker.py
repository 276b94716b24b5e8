import asyncio
import json
import re

import pytest
import requests

from conftest import FakeHTTPResponse
from ragrefine_chat.orchestrator.contracts import ToolCallRequest
from ragrefine_chat.orchestrator.tool_invoker import RemoteToolInvoker, build_request
from ragrefine_chat.shared.ragrefine_client import RAGRefineClient

BASE_URL = "http://ragrefine.test"


@pytest.fixture
def http(monkeypatch):
    """Patch requests.request; queue responses and record outgoing calls."""
    state = {"responses": [], "calls": []}

    def fake_request(method, url, headers=None, params=None, timeout=None, data=None):
        state["calls"].append({"method": method, "url": url, "params": params, "data": data})
        response = state["responses"].pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(requests, "request", fake_request)
    return state


@pytest.fixture
def invoker():
    return RemoteToolInvoker(RAGRefineClient(base_url=BASE_URL))


def invoke(invoker, name, arguments="") -> str:
    call = ToolCallRequest(id="call_1", name=name, arguments=arguments)
    result = asyncio.run(invoker.invoke(call))
    assert result.tool_call_id == "call_1"
    assert result.name == name
    assert result.role == "tool"
    return result.content


def test_list_datasets_formats_one_bullet_per_dataset(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {
        "datasets": [{"name": "a.csv", "size": 2048}, {"name": "b.csv", "size": 512}],
        "count": 2,
    }))

    content = invoke(invoker, "ragrefine_list_datasets")

    assert content.startswith("📁 사용 가능한 데이터셋")
    bullets = [line for line in content.splitlines() if line.startswith("- ")]
    assert bullets == ["- a.csv (2.0KB)", "- b.csv (0.5KB)"]
    assert http["calls"][0]["method"] == "GET"
    assert http["calls"][0]["url"] == f"{BASE_URL}/api/datasets"


def test_list_datasets_empty(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {"datasets": [], "count": 0}))
    assert invoke(invoker, "ragrefine_list_datasets") == "📁 사용 가능한 데이터셋 (총 0개):\n\n데이터셋이 없습니다."


def test_missing_dataset_reports_not_found_with_path(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {"exists": False}))

    content = invoke(invoker, "ragrefine_get_dataset_info", json.dumps({"dataset_path": "missing.csv"}))

    assert content == "❌ 데이터셋을 찾을 수 없습니다: missing.csv"


def test_dataset_info(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {
        "exists": True, "path": "data/a.csv", "rows": 12345, "columns": ["question", "answer"], "size": 10240,
    }))

    content = invoke(invoker, "ragrefine_get_dataset_info", json.dumps({"dataset_path": "data/a.csv"}))

    assert content == (
        "📊 데이터셋 정보:\n\n"
        "- 경로: data/a.csv\n"
        "- 행 수: 12,345\n"
        "- 컬럼 (2개): question, answer\n"
        "- 크기: 10.0KB"
    )
    assert http["calls"][0]["url"] == f"{BASE_URL}/api/datasets/data%2Fa.csv/info"


def test_http_error_is_returned_as_content(http, invoker):
    http["responses"].append(FakeHTTPResponse(500, text="boom"))

    content = invoke(invoker, "ragrefine_run_ragas_analysis", json.dumps({"dataset_path": "a.csv"}))

    assert content == "Error: 500 boom"


def test_transport_failure_is_returned_as_content(http, invoker):
    http["responses"].append(requests.ConnectionError("connection refused"))

    content = invoke(invoker, "ragrefine_list_datasets")

    assert content == "Error executing tool: connection refused"


def test_non_json_success_body_is_an_execution_error(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, text="<html>"))
    assert invoke(invoker, "ragrefine_list_datasets").startswith("Error executing tool: ")


def test_unknown_tool_makes_no_request(http, invoker):
    assert invoke(invoker, "web_search") == "Error: Unknown tool: web_search"
    assert http["calls"] == []


def test_malformed_arguments_still_execute(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {"datasets": [], "count": 0}))

    content = invoke(invoker, "ragrefine_list_datasets", "{\"dataset_pa")

    assert content.startswith("📁")
    assert len(http["calls"]) == 1


@pytest.mark.parametrize("raw", ["[" * 100000, "{\"a\":" * 100000], ids=["array", "object"])
def test_deeply_nested_arguments_still_execute(http, invoker, raw):
    http["responses"].append(FakeHTTPResponse(200, {"datasets": [], "count": 0}))

    content = invoke(invoker, "ragrefine_list_datasets", raw)

    assert content.startswith("📁")
    assert len(http["calls"]) == 1



def test_analysis_tools_post_to_execute(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {"final_result": "RAGAS 점수 0.82"}))
    args = {"dataset_path": "a.csv", "metrics": ["faithfulness"]}

    content = invoke(invoker, "ragrefine_run_ragas_analysis", json.dumps(args))

    call = http["calls"][0]
    assert call["method"] == "POST"
    assert call["url"] == f"{BASE_URL}/api/tools/execute"
    assert json.loads(call["data"]) == {"tool_name": "ragrefine_run_ragas_analysis", "arguments": args}
    assert content == "RAGAS 점수 0.82"


@pytest.mark.parametrize("payload,expected", [
    ({"final_result": "done", "result": "ignored"}, "done"),
    ({"result": "generic"}, "generic"),
    ({}, "완료"),
])
def test_analysis_without_plan_uses_fallback_fields(http, invoker, payload, expected):
    http["responses"].append(FakeHTTPResponse(200, payload))
    assert invoke(invoker, "ragrefine_run_keybert_analysis", "{}") == expected


def test_multi_step_plan_narrates_chain_and_embeds_block(http, invoker):
    plan = [
        {"tool_name": "ragrefine_run_ragas_analysis", "status": "completed"},
        {"tool_name": "ragrefine_run_diagnostic_playbook", "status": "completed"},
    ]
    http["responses"].append(FakeHTTPResponse(200, {
        "execution_plan": plan,
        "executed_tools": ["ragrefine_run_ragas_analysis", "ragrefine_run_diagnostic_playbook"],
        "final_result": "플레이북 완료",
        "output_dir": "results/run_1",
    }))

    content = invoke(invoker, "ragrefine_run_diagnostic_playbook", json.dumps({"dataset_path": "a.csv"}))

    assert content.startswith(
        "✅ 분석 완료 (의존성 자동 실행: ragrefine_run_ragas_analysis → ragrefine_run_diagnostic_playbook)\n\n"
        "최종 결과:\n플레이북 완료\n\n<execution_plan>"
    )
    block = json.loads(re.search(r"<execution_plan>(.*)</execution_plan>", content).group(1))
    assert block["has_dependencies"] is True
    assert block["execution_plan"] == plan
    assert block["output_dir"] == "results/run_1"
    assert "files" not in block


def test_single_step_plan_embeds_block_without_chain(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {
        "execution_plan": [{"tool_name": "ragrefine_run_ragas_analysis"}],
    }))

    content = invoke(invoker, "ragrefine_run_ragas_analysis", json.dumps({"dataset_path": "a.csv"}))

    assert content.startswith("완료\n\n<execution_plan>")
    assert "의존성" not in content
    block = json.loads(re.search(r"<execution_plan>(.*)</execution_plan>", content).group(1))
    assert block["has_dependencies"] is False
    assert block["executed_tools"] == []


def test_sample_defaults_and_row_cap(http, invoker):
    rows = [{"question": f"q{i}"} for i in range(7)]
    http["responses"].append(FakeHTTPResponse(200, {"sample": rows, "n_rows": 3, "total_rows": 1200}))

    content = invoke(invoker, "ragrefine_read_dataset_sample", json.dumps({"dataset_path": "dir/a b.csv", "n_rows": 3}))

    assert content.startswith("📄 데이터셋 샘플 (3행, 전체 1,200행):\n")
    assert "[행 3]" in content
    assert "[행 4]" not in content
    assert http["calls"][0]["url"] == f"{BASE_URL}/api/datasets/dir%2Fa%20b.csv/sample"
    assert http["calls"][0]["params"] == {"n_rows": 3}


def test_sample_default_row_count(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {"sample": []}))

    content = invoke(invoker, "ragrefine_read_dataset_sample", json.dumps({"dataset_path": "a.csv"}))

    assert http["calls"][0]["params"] == {"n_rows": 5}
    assert content == "📄 데이터셋 샘플 (0행, 전체 ?행):\n샘플 데이터가 없습니다."


@pytest.mark.parametrize("n_rows,expected_rows", [("3", 3), (2.5, 2), ("abc", 5), (0, 5), (-2, 5), (None, 5)])
def test_sample_row_count_is_coerced_to_int(http, invoker, n_rows, expected_rows):
    rows = [{"question": f"q{i}"} for i in range(7)]
    http["responses"].append(FakeHTTPResponse(200, {"sample": rows, "n_rows": 7, "total_rows": 7}))

    content = invoke(invoker, "ragrefine_read_dataset_sample", json.dumps({"dataset_path": "a.csv", "n_rows": n_rows}))

    assert http["calls"][0]["params"] == {"n_rows": expected_rows}
    assert f"[행 {expected_rows}]" in content
    assert f"[행 {expected_rows + 1}]" not in content
    assert not content.startswith("Error")



def test_list_results(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {
        "results": [{"run_id": "run_1", "timestamp": "2024-05-01", "file_count": 3}, {"run_id": "run_2"}],
        "count": 2,
    }))

    content = invoke(invoker, "ragrefine_list_analysis_results")

    assert content == (
        "📈 분석 결과 목록 (총 2개):\n\n"
        "- run_1 (2024-05-01, 파일 3개)\n"
        "- run_2 (알 수 없음, 파일 0개)"
    )
    assert http["calls"][0]["url"] == f"{BASE_URL}/api/results"


def test_result_summary_truncates_file_list(http, invoker):
    files = [f"f{i}.csv" for i in range(12)]
    http["responses"].append(FakeHTTPResponse(200, {
        "run_id": "run_1", "file_count": 12, "files": files,
        "summary": {"has_html_report": True, "has_excel_report": False, "has_json_data": True},
    }))

    content = invoke(invoker, "ragrefine_get_result_summary", json.dumps({"run_id": "run_1"}))

    assert f"- 파일 목록: {', '.join(files[:10])}... (총 12개)" in content
    assert "- HTML 보고서: ✅" in content
    assert "- Excel 보고서: ❌" in content
    assert "- JSON 데이터: ✅" in content
    assert http["calls"][0]["url"] == f"{BASE_URL}/api/results/run_1/summary"


def test_result_file_truncation_notice_and_default_lines(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {
        "filename": "report.md", "content": "# 보고서", "truncated": True, "total_lines": 400,
    }))

    content = invoke(invoker, "ragrefine_read_result_file", json.dumps({"run_id": "run 1", "filename": "report.md"}))

    assert content == "📄 파일 내용 (report.md):\n\n# 보고서\n\n⚠️ 일부만 표시됨 (전체 400줄 중 100줄)"
    assert http["calls"][0]["url"] == f"{BASE_URL}/api/results/run%201/files/report.md"
    assert http["calls"][0]["params"] == {"max_lines": 100}


def test_result_file_error_field(http, invoker):
    http["responses"].append(FakeHTTPResponse(200, {"error": "File not found"}))
    content = invoke(invoker, "ragrefine_read_result_file", json.dumps({"run_id": "r", "filename": "x"}))
    assert content == "❌ 오류: File not found"


def test_repeated_reads_are_identical(http, invoker):
    payload = {"exists": True, "path": "a.csv", "rows": 10, "columns": ["q"], "size": 100}
    http["responses"] += [FakeHTTPResponse(200, payload), FakeHTTPResponse(200, payload)]
    args = json.dumps({"dataset_path": "a.csv"})

    assert invoke(invoker, "ragrefine_get_dataset_info", args) == invoke(invoker, "ragrefine_get_dataset_info", args)


def test_build_request_for_unknown_tool_is_none():
    assert build_request("something_else", {}) is None
