"""Tests for MCPServerBase dispatch and the STDIO transport."""

import io
import json

import pytest
from polygon_mcp.mcp.server.base import (
    ErrorCode,
    MCPError,
    MCPResource,
    MCPServerBase,
    MCPTool,
)
from polygon_mcp.mcp.server.stdio_server import StdioMCPServer


class EchoServer(MCPServerBase):
    """Concrete implementation of MCPServerBase for testing."""

    def __init__(self):
        super().__init__(name="echo", version="9.9.9")
        self.register_resource(MCPResource(uri="echo://hello", name="Hello", mime_type="text/plain"))
        self.register_tool(MCPTool(
            name="echo",
            description="Echo the arguments back",
            input_schema={"type": "object", "properties": {}},
        ))
        self.closed = False

    async def read_resource(self, uri):
        if uri != "echo://hello":
            raise MCPError(ErrorCode.INVALID_REQUEST, f"Unknown resource: {uri}")
        return {"contents": [{"uri": uri, "mimeType": "text/plain", "text": "hello"}]}

    async def call_tool(self, tool_name, arguments):
        if tool_name == "explode":
            raise RuntimeError("kaboom")
        return {"content": [{"type": "text", "text": json.dumps(arguments)}]}

    async def close(self):
        self.closed = True


@pytest.fixture
def server():
    """Create an EchoServer instance."""
    return EchoServer()


def request(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def test_error_to_dict():
    """Test JSON-RPC error rendering with and without data."""
    assert MCPError(ErrorCode.INVALID_PARAMS, "bad").to_dict() == {"code": -32602, "message": "bad"}
    assert MCPError(ErrorCode.INTERNAL_ERROR, "x", data={"k": 1}).to_dict() == {
        "code": -32603,
        "message": "x",
        "data": {"k": 1},
    }


def test_resource_to_dict_without_description():
    """Test that an absent description is omitted."""
    resource = MCPResource(uri="a://b", name="B", mime_type="application/json")
    assert resource.to_dict() == {"uri": "a://b", "name": "B", "mimeType": "application/json"}


@pytest.mark.asyncio
async def test_initialize(server):
    """Test the initialize handshake."""
    response = await server.handle_request(request("initialize", {"clientInfo": {"name": "host"}}))

    result = response["result"]
    assert response["jsonrpc"] == "2.0"
    assert response["id"] == 1
    assert result["protocolVersion"] == "2024-11-05"
    assert result["serverInfo"] == {"name": "echo", "version": "9.9.9"}
    assert result["capabilities"] == {"resources": {}, "tools": {}}


@pytest.mark.asyncio
async def test_ping(server):
    """Test ping."""
    response = await server.handle_request(request("ping"))
    assert response["result"] == {}


@pytest.mark.asyncio
async def test_list_methods(server):
    """Test resources/list and tools/list."""
    resources = await server.handle_request(request("resources/list"))
    tools = await server.handle_request(request("tools/list", request_id="abc"))

    assert resources["result"]["resources"][0]["uri"] == "echo://hello"
    assert tools["id"] == "abc"
    assert tools["result"]["tools"][0]["inputSchema"] == {"type": "object", "properties": {}}


@pytest.mark.asyncio
async def test_read_resource(server):
    """Test resources/read dispatch."""
    response = await server.handle_request(request("resources/read", {"uri": "echo://hello"}))
    assert response["result"]["contents"][0]["text"] == "hello"


@pytest.mark.asyncio
async def test_read_resource_error(server):
    """Test that MCPError becomes a JSON-RPC error object."""
    response = await server.handle_request(request("resources/read", {"uri": "echo://nope"}))

    assert "result" not in response
    assert response["error"] == {"code": -32600, "message": "Unknown resource: echo://nope"}


@pytest.mark.asyncio
async def test_call_tool(server):
    """Test tools/call dispatch passes arguments through."""
    response = await server.handle_request(
        request("tools/call", {"name": "echo", "arguments": {"symbol": "AAPL"}})
    )
    assert json.loads(response["result"]["content"][0]["text"]) == {"symbol": "AAPL"}


@pytest.mark.asyncio
async def test_call_tool_without_arguments(server):
    """Test that missing arguments reach the tool as None."""
    response = await server.handle_request(request("tools/call", {"name": "echo"}))
    assert response["result"]["content"][0]["text"] == "null"


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_error(server):
    """Test that an escaped exception is answered with InternalError."""
    response = await server.handle_request(request("tools/call", {"name": "explode"}))
    assert response["error"] == {"code": -32603, "message": "kaboom"}


@pytest.mark.asyncio
async def test_unknown_method(server):
    """Test MethodNotFound for unsupported methods."""
    response = await server.handle_request(request("prompts/list"))
    assert response["error"]["code"] == ErrorCode.METHOD_NOT_FOUND


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, params",
    [
        ("resources/read", {}),
        ("resources/read", {"uri": 5}),
        ("tools/call", {"arguments": {}}),
        ("tools/call", ["get_stock_price"]),
    ],
)
async def test_malformed_params(server, method, params):
    """Test InvalidParams for malformed request params."""
    response = await server.handle_request(request(method, params))
    assert response["error"]["code"] == ErrorCode.INVALID_PARAMS


@pytest.mark.asyncio
@pytest.mark.parametrize("message", [[1, 2], "ping", {"id": 4}, {"id": 4, "method": 12}])
async def test_invalid_request(server, message):
    """Test InvalidRequest for messages that are not requests."""
    response = await server.handle_request(message)
    assert response["error"]["code"] == ErrorCode.INVALID_REQUEST


@pytest.mark.asyncio
async def test_notification_gets_no_response(server):
    """Test that notifications are not answered."""
    response = await server.handle_request({"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert response is None


@pytest.mark.asyncio
async def test_stdio_round_trip(server):
    """Test the STDIO loop end to end."""
    lines = [
        json.dumps(request("initialize", {}, request_id=1)),
        json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
        "",
        "{not json",
        json.dumps(request("tools/call", {"name": "echo", "arguments": {"a": 1}}, request_id=2)),
    ]
    stdin = io.StringIO("\n".join(lines) + "\n")
    stdout = io.StringIO()

    transport = StdioMCPServer(server, stdin=stdin, stdout=stdout)
    await transport.start()

    responses = [json.loads(line) for line in stdout.getvalue().splitlines()]
    assert len(responses) == 3
    assert responses[0]["id"] == 1
    assert responses[0]["result"]["serverInfo"]["name"] == "echo"
    assert responses[1] == {"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}}
    assert responses[2]["id"] == 2
    assert json.loads(responses[2]["result"]["content"][0]["text"]) == {"a": 1}
    assert transport.running is False


@pytest.mark.asyncio
async def test_stdio_close_stops_and_closes_server(server):
    """Test that closing the transport releases the server."""
    transport = StdioMCPServer(server, stdin=io.StringIO(""), stdout=io.StringIO())
    transport.running = True

    await transport.close()

    assert transport.running is False
    assert server.closed is True
