"""STDIO transport for MCP servers."""

import asyncio
import json
import sys
from typing import Optional, TextIO

from polygon_mcp.mcp.server.base import ErrorCode, MCPError, MCPServerBase
from polygon_mcp.utils.logger import logger


class StdioMCPServer:
    """MCP server using STDIO transport.

    Reads one JSON-RPC message per line from stdin and writes each response
    as a single line on stdout.
    """

    def __init__(
        self,
        server: MCPServerBase,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ):
        self.server = server
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.running = False
        self.shutdown_task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the STDIO server."""
        self.running = True
        logger.info(f"Starting MCP STDIO server: {self.server.name}")

        try:
            while self.running:
                line = await self._read_line()
                if line is None:
                    break
                if not line:
                    continue

                try:
                    request = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.error(f"Invalid JSON received: {e}")
                    await self._write_response({
                        "jsonrpc": "2.0",
                        "id": None,
                        "error": MCPError(ErrorCode.PARSE_ERROR, "Parse error").to_dict(),
                    })
                    continue

                response = await self.server.handle_request(request)
                if response is not None:
                    await self._write_response(response)
        finally:
            self.running = False
            logger.info(f"MCP STDIO server stopped: {self.server.name}")

    async def _read_line(self) -> Optional[str]:
        """Read a line from stdin asynchronously.

        Returns None at end of input, and an empty string for blank lines.
        """
        loop = asyncio.get_running_loop()
        line = await loop.run_in_executor(None, self.stdin.readline)
        if not line:
            return None
        return line.strip()

    async def _write_response(self, response: dict):
        """Write a response to stdout."""
        self.stdout.write(json.dumps(response) + "\n")
        self.stdout.flush()

    def stop(self):
        """Stop the server."""
        self.running = False

    async def close(self):
        """Stop reading and release the wrapped server's resources."""
        self.stop()
        await self.server.close()
