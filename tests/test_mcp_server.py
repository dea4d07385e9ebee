import io
import json

from conftest import StubFormatterClient
from daxformatter.core.config import DaxFormatterConfig
from daxformatter.mcp import handlers
from daxformatter.mcp import server as server_module
from daxformatter.mcp.server import McpServer, read_lines


def _serve(context, *lines, raw: bytes = b""):
    payload = b"".join(line.encode("utf-8") + b"\n" for line in lines) + raw
    output = io.BytesIO()
    server = McpServer(context, output=output)
    server.serve(io.BytesIO(payload))
    return [json.loads(line) for line in output.getvalue().decode("utf-8").splitlines()]


def test_read_lines_strips_terminators_and_skips_blank_lines():
    stream = io.BytesIO(b'{"a":1}\r\n\n   \n{"b":2}\n{"c":3}')
    assert list(read_lines(stream)) == ['{"a":1}', '{"b":2}', '{"c":3}']


def test_read_lines_replaces_invalid_utf8():
    lines = list(read_lines(io.BytesIO(b'{"method":"\xff"}\n')))
    assert lines == ['{"method":"\ufffd"}']


def test_one_response_per_identified_request_in_order(stub_client, make_context):
    responses = _serve(
        make_context(stub_client),
        '{"jsonrpc":"2.0","id":1,"method":"initialize","params":{}}',
        '{"jsonrpc":"2.0","method":"notifications/initialized"}',
        '{"jsonrpc":"2.0","id":2,"method":"tools/list"}',
        '{"jsonrpc":"2.0","id":3,"method":"tools/call"',
        '{"jsonrpc":"2.0","id":"x","method":"nope"}',
        '{"jsonrpc":"2.0","id":4,"method":"tools/call",'
        '"params":{"name":"format_dax","arguments":{"dax":"SUM(Sales[Amount])"}}}',
    )

    assert [response["id"] for response in responses] == [1, 2, None, "x", 4]
    assert responses[0]["result"]["serverInfo"]["name"] == "dax-formatter-mcp"
    assert len(responses[1]["result"]["tools"]) == 2
    assert responses[2]["error"]["code"] == -32700
    assert responses[3]["error"]["code"] == -32601
    assert "```dax\nSUM(SALES[AMOUNT])\n```" in responses[4]["result"]["content"][0]["text"]
    for response in responses:
        assert response["jsonrpc"] == "2.0"
        assert ("result" in response) != ("error" in response)


def test_truncated_json_gets_parse_error_with_null_id(stub_client, make_context):
    responses = _serve(make_context(stub_client), '{"jsonrpc":"2.0","id":9,"method":"tools/li')

    assert responses == [
        {"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": responses[0]["error"]["message"]}}
    ]
    assert responses[0]["error"]["message"].startswith("Parse error")


def test_invalid_utf8_line_gets_parse_error(stub_client, make_context):
    responses = _serve(make_context(stub_client), raw=b"\xff\xfe{not json}\n")

    assert len(responses) == 1
    assert responses[0]["error"]["code"] == -32700


def test_envelope_shape_errors_are_parse_errors(stub_client, make_context):
    responses = _serve(make_context(stub_client), "[]", '{"jsonrpc":"2.0","id":1}', "42")

    assert [response["error"]["code"] for response in responses] == [-32700, -32700, -32700]
    assert all(response["id"] is None for response in responses)


def test_requests_without_id_get_no_response(stub_client, make_context):
    responses = _serve(
        make_context(stub_client),
        '{"jsonrpc":"2.0","method":"tools/list"}',
        '{"jsonrpc":"2.0","id":5,"method":"notifications/progress"}',
    )
    assert responses == []


def test_explicit_null_id_gets_response(stub_client, make_context):
    responses = _serve(make_context(stub_client), '{"jsonrpc":"2.0","id":null,"method":"prompts/list"}')
    assert responses == [{"jsonrpc": "2.0", "id": None, "result": {"prompts": []}}]


def test_unexpected_handler_error_is_internal_error_and_loop_continues(stub_client, make_context, monkeypatch):
    def boom(msg_id, params, context):
        raise RuntimeError("kaboom")

    monkeypatch.setitem(handlers.METHOD_HANDLERS, handlers.McpMethod.RESOURCES_LIST, boom)

    responses = _serve(
        make_context(stub_client),
        '{"jsonrpc":"2.0","id":"r1","method":"resources/list"}',
        '{"jsonrpc":"2.0","id":"r2","method":"prompts/list"}',
    )

    assert responses[0]["id"] == "r1"
    assert responses[0]["error"]["code"] == -32603
    assert "kaboom" in responses[0]["error"]["message"]
    assert responses[1] == {"jsonrpc": "2.0", "id": "r2", "result": {"prompts": []}}


def test_batch_fallback_through_transport(make_context):
    client = StubFormatterClient(failing={"bad("})
    responses = _serve(
        make_context(client),
        '{"jsonrpc":"2.0","id":11,"method":"tools/call","params":{"name":"format_dax_multiple",'
        '"arguments":{"expressions":["a","bad(","c"]}}}',
    )

    text = responses[0]["result"]["content"][0]["text"]
    assert text.startswith("Formatted 3 DAX expressions (fallback mode):")
    assert text.index("**Expression 1:**") < text.index("**Expression 2 (Error):**") < text.index("**Expression 3:**")


def test_each_response_is_one_line(make_context):
    client = StubFormatterClient(formatter=lambda e: "EVALUATE\n\tROW ( \"x\", 1 )")
    output = io.BytesIO()
    server = McpServer(make_context(client), output=output)
    server.serve(
        io.BytesIO(
            b'{"jsonrpc":"2.0","id":1,"method":"tools/call","params":{"name":"format_dax","arguments":{"dax":"x"}}}\n'
        )
    )

    assert output.getvalue().count(b"\n") == 1
    assert output.getvalue().endswith(b"\n")


class _BrokenOutput:
    def __init__(self):
        self.writes = 0

    def write(self, data):
        self.writes += 1
        raise BrokenPipeError("pipe closed")

    def flush(self):
        pass


def test_broken_output_stops_the_loop(stub_client, make_context):
    output = _BrokenOutput()
    server = McpServer(make_context(stub_client), output=output)

    server.serve(
        io.BytesIO(
            b'{"jsonrpc":"2.0","id":1,"method":"tools/list"}\n'
            b'{"jsonrpc":"2.0","id":2,"method":"tools/list"}\n'
        )
    )

    assert server.transport_closed is True
    assert output.writes == 1


def test_run_serves_until_end_of_input(monkeypatch):
    for name in ("DAXFMT_SERVICE_URL", "DAXFMT_BATCH_FALLBACK", "DAXFMT_TIMEOUT_SEC", "DAXFMT_MAX_RETRIES"):
        monkeypatch.delenv(name, raising=False)
    created = []

    class _RecordingClient(StubFormatterClient):
        def __init__(self, **kwargs):
            super().__init__()
            self.kwargs = kwargs
            self.closed = False
            created.append(self)

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            self.closed = True

    monkeypatch.setattr(server_module, "DaxFormatterClient", _RecordingClient)
    output = io.BytesIO()

    server_module.run(
        DaxFormatterConfig.from_env(),
        stream=io.BytesIO(b'{"jsonrpc":"2.0","id":1,"method":"initialize"}\n'),
        output=output,
    )

    assert json.loads(output.getvalue())["result"]["protocolVersion"] == "2024-11-05"
    assert created[0].kwargs == {"base_url": "https://www.daxformatter.com", "timeout": 30.0, "max_retries": 0}
    assert created[0].closed is True


def _strict_loads(line):
    def reject(constant):
        raise ValueError(f"non-JSON constant {constant}")

    return json.loads(line, parse_constant=reject)


def test_overflowing_numeric_id_gets_parse_error_with_null_id(stub_client, make_context):
    output = io.BytesIO()
    server = McpServer(make_context(stub_client), output=output)

    server.serve(io.BytesIO(b'{"jsonrpc":"2.0","id":1e400,"method":"resources/list"}\n'))

    response = _strict_loads(output.getvalue().decode("utf-8"))
    assert response["id"] is None
    assert response["error"]["code"] == -32700


def test_lone_surrogate_id_is_echoed_as_json_escape(stub_client, make_context):
    output = io.BytesIO()
    server = McpServer(make_context(stub_client), output=output)

    server.serve(
        io.BytesIO(
            b'{"jsonrpc":"2.0","id":"\\ud800","method":"prompts/list"}\n'
            b'{"jsonrpc":"2.0","id":2,"method":"prompts/list"}\n'
        )
    )

    lines = output.getvalue().decode("utf-8").splitlines()
    assert [_strict_loads(line)["id"] for line in lines] == ["\ud800", 2]
