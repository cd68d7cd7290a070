"""Base MCP server class following Model Context Protocol specification."""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Dict, List, Optional

from polygon_mcp.utils.logger import logger

PROTOCOL_VERSION = "2024-11-05"


class ErrorCode(IntEnum):
    """JSON-RPC error codes used by MCP."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class MCPError(Exception):
    """Protocol-level error reported back to the client as a JSON-RPC error."""

    def __init__(self, code: ErrorCode, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        error = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class MCPTool:
    """Represents an MCP tool definition."""

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: Dict[str, Any],
    ):
        self.name = name
        self.description = description
        self.input_schema = input_schema

    def to_dict(self) -> Dict[str, Any]:
        """Convert to MCP tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class MCPResource:
    """Represents an MCP resource definition."""

    def __init__(
        self,
        uri: str,
        name: str,
        mime_type: str,
        description: Optional[str] = None,
    ):
        self.uri = uri
        self.name = name
        self.mime_type = mime_type
        self.description = description

    def to_dict(self) -> Dict[str, Any]:
        """Convert to MCP resource format."""
        resource = {
            "uri": self.uri,
            "name": self.name,
            "mimeType": self.mime_type,
        }
        if self.description is not None:
            resource["description"] = self.description
        return resource


class MCPServerBase(ABC):
    """Base class for MCP servers exposing resources and tools."""

    def __init__(self, name: str, version: str = "1.0.0"):
        self.name = name
        self.version = version
        self.tools: Dict[str, MCPTool] = {}
        self.resources: Dict[str, MCPResource] = {}

    def register_tool(self, tool: MCPTool):
        """Register a tool with this server."""
        self.tools[tool.name] = tool
        logger.info(f"MCP Server '{self.name}' registered tool: {tool.name}")

    def register_resource(self, resource: MCPResource):
        """Register a resource with this server."""
        self.resources[resource.uri] = resource
        logger.info(f"MCP Server '{self.name}' registered resource: {resource.uri}")

    def list_resources(self) -> List[Dict[str, Any]]:
        return [resource.to_dict() for resource in self.resources.values()]

    def list_tools(self) -> List[Dict[str, Any]]:
        return [tool.to_dict() for tool in self.tools.values()]

    @abstractmethod
    async def read_resource(self, uri: str) -> Dict[str, Any]:
        """
        Read a resource by URI.

        Returns:
            Dict with 'contents' (list of resource content items)

        Raises:
            MCPError: for unknown URIs or upstream failures
        """
        pass

    @abstractmethod
    async def call_tool(self, tool_name: str, arguments: Any) -> Dict[str, Any]:
        """
        Execute a tool with given arguments.

        Returns:
            Dict with 'content' (list of content items) and optional 'isError'

        Raises:
            MCPError: for unknown tools or malformed arguments
        """
        pass

    async def close(self):
        """Release any resources held by the server."""

    async def handle_request(self, request: Any) -> Optional[Dict[str, Any]]:
        """Handle an MCP protocol request.

        Returns None for notifications, which get no response.
        """
        if not isinstance(request, dict) or not isinstance(request.get("method"), str):
            request_id = request.get("id") if isinstance(request, dict) else None
            return self._error_response(
                request_id, MCPError(ErrorCode.INVALID_REQUEST, "Invalid request")
            )

        method = request["method"]
        params = request.get("params")
        if params is None:
            params = {}
        is_notification = "id" not in request
        request_id = request.get("id")

        if is_notification:
            logger.debug(f"Received notification: {method}")
            return None

        try:
            if not isinstance(params, dict):
                raise MCPError(ErrorCode.INVALID_PARAMS, "params must be an object")
            result = await self._dispatch(method, params)
        except MCPError as e:
            return self._error_response(request_id, e)
        except Exception as e:
            logger.exception(f"Unhandled error in {method}: {e}")
            return self._error_response(
                request_id, MCPError(ErrorCode.INTERNAL_ERROR, str(e) or type(e).__name__)
            )

        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "result": result,
        }

    async def _dispatch(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if method == "initialize":
            return self._handle_initialize(params)
        elif method == "ping":
            return {}
        elif method == "resources/list":
            return {"resources": self.list_resources()}
        elif method == "resources/read":
            uri = params.get("uri")
            if not isinstance(uri, str):
                raise MCPError(ErrorCode.INVALID_PARAMS, "uri must be a string")
            return await self.read_resource(uri)
        elif method == "tools/list":
            return {"tools": self.list_tools()}
        elif method == "tools/call":
            tool_name = params.get("name")
            if not isinstance(tool_name, str):
                raise MCPError(ErrorCode.INVALID_PARAMS, "name must be a string")
            return await self.call_tool(tool_name, params.get("arguments"))
        else:
            raise MCPError(ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}")

    def _handle_initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Handle initialize request."""
        client_info = params.get("clientInfo") or {}
        logger.info(f"Initialize from client: {client_info.get('name', 'unknown')}")
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {
                "name": self.name,
                "version": self.version,
            },
            "capabilities": {
                "resources": {},
                "tools": {},
            },
        }

    def _error_response(self, request_id: Any, error: MCPError) -> Dict[str, Any]:
        """Create an error response."""
        logger.error(f"[MCP Error] request {request_id}: {error.message}")
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "error": error.to_dict(),
        }
