from conftest import finish_chunk, openai_tool_call, text_chunk, tool_delta_chunk
from ragrefine_chat.orchestrator.contracts import ToolCallRequest
from ragrefine_chat.orchestrator.stream_accumulator import StreamAccumulator


def accumulate(chunks) -> StreamAccumulator:
    accumulator = StreamAccumulator()
    for chunk in chunks:
        accumulator.add_chunk(chunk)
    return accumulator


def as_tuple(call: ToolCallRequest) -> tuple:
    return call.id, call.name, call.arguments


def test_fragments_for_one_index_fold_into_one_call():
    accumulator = accumulate([
        tool_delta_chunk(0, id="call_1", name="ragrefine_run_ragas_analysis"),
        tool_delta_chunk(0, arguments="{\"dataset"),
        tool_delta_chunk(0, arguments="_path\":\"a.csv\"}"),
        finish_chunk("tool_calls"),
    ])

    assert [as_tuple(c) for c in accumulator.tool_calls] == [
        ("call_1", "ragrefine_run_ragas_analysis", "{\"dataset_path\":\"a.csv\"}"),
    ]
    assert accumulator.requests_tools


def test_streamed_calls_match_complete_tool_calls():
    complete = [
        openai_tool_call("call_a", "ragrefine_list_datasets", "{}"),
        openai_tool_call("call_b", "ragrefine_read_dataset_sample", "{\"dataset_path\":\"x.csv\",\"n_rows\":3}"),
    ]
    streamed = accumulate([
        tool_delta_chunk(0, id="call_a", name="ragrefine_list_datasets", arguments="{"),
        tool_delta_chunk(1, id="call_b", name="ragrefine_read_dataset_sample", arguments="{\"dataset_path\""),
        tool_delta_chunk(0, arguments="}"),
        tool_delta_chunk(1, arguments=":\"x.csv\","),
        tool_delta_chunk(1, arguments="\"n_rows\":3}"),
        finish_chunk("tool_calls"),
    ])

    expected = [as_tuple(ToolCallRequest.from_openai(tc, i)) for i, tc in enumerate(complete)]
    assert [as_tuple(c) for c in streamed.tool_calls] == expected


def test_missing_id_is_synthesized_from_index():
    accumulator = accumulate([tool_delta_chunk(2, name="ragrefine_list_datasets", arguments="{}")])
    assert accumulator.tool_calls[0].id == "call_2"


def test_name_and_id_fixed_after_first_delta():
    accumulator = accumulate([
        tool_delta_chunk(0, id="call_1", name="ragrefine_list_datasets", arguments=""),
        tool_delta_chunk(0, id="call_other", name="other", arguments="{}"),
    ])
    assert as_tuple(accumulator.tool_calls[0]) == ("call_1", "ragrefine_list_datasets", "{}")


def test_calls_ordered_by_index_not_arrival():
    accumulator = accumulate([
        tool_delta_chunk(1, id="second", name="ragrefine_list_analysis_results"),
        tool_delta_chunk(0, id="first", name="ragrefine_list_datasets"),
    ])
    assert [c.id for c in accumulator.tool_calls] == ["first", "second"]


def test_text_tokens_and_reasoning_fragments():
    accumulator = StreamAccumulator()
    first = accumulator.add_chunk(text_chunk("안녕", reasoning_content="생각 중"))
    second = accumulator.add_chunk(text_chunk("하세요"))
    accumulator.add_chunk(finish_chunk("stop"))

    assert (first.text, first.reasoning) == ("안녕", "생각 중")
    assert (second.text, second.reasoning) == ("하세요", "")
    assert accumulator.text == "안녕하세요"
    assert accumulator.finish_reason == "stop"
    assert not accumulator.requests_tools


def test_tool_deltas_without_tool_calls_finish_do_not_request_tools():
    accumulator = accumulate([
        tool_delta_chunk(0, id="call_1", name="ragrefine_list_datasets", arguments="{}"),
        finish_chunk("stop"),
    ])
    assert accumulator.tool_calls
    assert not accumulator.requests_tools


def test_dict_chunks_and_empty_choices():
    accumulator = accumulate([
        {"choices": []},
        {"choices": [{"delta": {"tool_calls": [
            {"index": 0, "id": "call_x", "function": {"name": "ragrefine_list_datasets", "arguments": "{}"}},
        ]}, "finish_reason": None}]},
        {"choices": [{"delta": {}, "finish_reason": "tool_calls"}]},
    ])
    assert as_tuple(accumulator.tool_calls[0]) == ("call_x", "ragrefine_list_datasets", "{}")
    assert accumulator.requests_tools
