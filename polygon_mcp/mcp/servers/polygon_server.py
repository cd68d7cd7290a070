"""MCP server exposing Polygon.io stock prices as a resource and a tool."""

import asyncio
import os
import signal
import sys
from typing import Any, Dict, Optional

from polygon_mcp.core.models import (
    ArgsValidationError,
    StockData,
    parse_stock_price_args,
)
from polygon_mcp.mcp.server.base import (
    ErrorCode,
    MCPError,
    MCPResource,
    MCPServerBase,
    MCPTool,
)
from polygon_mcp.mcp.server.stdio_server import StdioMCPServer
from polygon_mcp.tools.polygon_client import PolygonAPIError, PolygonClient
from polygon_mcp.utils.config import (
    SERVER_NAME,
    SERVER_VERSION,
    ConfigurationError,
    Settings,
    get_settings,
)
from polygon_mcp.utils.logger import logger, setup_logger

STOCK_PRICE_TOOL = "get_stock_price"
JSON_MIME_TYPE = "application/json"


def api_error_message(error: PolygonAPIError) -> str:
    return f"Polygon API error: {error.message}"


class PolygonStockServer(MCPServerBase):
    """Serves the current price of the default symbol and ad-hoc price lookups."""

    def __init__(self, settings: Settings, client: Optional[PolygonClient] = None):
        super().__init__(name=SERVER_NAME, version=SERVER_VERSION)
        self.settings = settings
        self.client = client or PolygonClient(settings)
        self._register_resources()
        self._register_tools()

    def _register_resources(self):
        symbol = self.settings.default_symbol
        self.register_resource(MCPResource(
            uri=self.settings.current_resource_uri,
            name=f"Current stock price for {symbol}",
            mime_type=JSON_MIME_TYPE,
            description="Real-time stock data including price, volume, and daily stats",
        ))

    def _register_tools(self):
        # date is listed as required here but validation treats it as optional
        self.register_tool(MCPTool(
            name=STOCK_PRICE_TOOL,
            description="Get stock price information for a specific symbol",
            input_schema={
                "type": "object",
                "properties": {
                    "symbol": {
                        "type": "string",
                        "description": "Stock symbol (e.g., AAPL)",
                    },
                    "date": {
                        "type": "string",
                        "description": "Date in YYYY-MM-DD format (optional, defaults to latest)",
                    },
                },
                "required": ["symbol", "date"],
            },
        ))

    async def read_resource(self, uri: str) -> Dict[str, Any]:
        """Return the current snapshot for the default symbol."""
        if uri != self.settings.current_resource_uri:
            raise MCPError(ErrorCode.INVALID_REQUEST, f"Unknown resource: {uri}")

        try:
            quote = await self.client.get_last_trade(self.settings.default_symbol)
        except PolygonAPIError as e:
            raise MCPError(ErrorCode.INTERNAL_ERROR, api_error_message(e)) from e

        stock_data = StockData.from_quote(quote, use_quote_date=False)
        return {
            "contents": [
                {
                    "uri": uri,
                    "mimeType": JSON_MIME_TYPE,
                    "text": stock_data.to_json(),
                }
            ],
        }

    async def call_tool(self, tool_name: str, arguments: Any) -> Dict[str, Any]:
        """Run get_stock_price.

        Upstream failures are reported in-band with isError set rather than
        as protocol errors, so clients can tell a failed lookup from a
        malformed call.
        """
        if tool_name != STOCK_PRICE_TOOL:
            raise MCPError(ErrorCode.METHOD_NOT_FOUND, f"Unknown tool: {tool_name}")

        args = parse_stock_price_args(arguments)
        if isinstance(args, ArgsValidationError):
            logger.warning(f"Rejected {tool_name} arguments: {args.reason}")
            raise MCPError(ErrorCode.INVALID_PARAMS, "Invalid stock price arguments")

        try:
            if args.date:
                quote = await self.client.get_daily_open_close(args.symbol, args.date)
            else:
                quote = await self.client.get_last_trade(args.symbol)
        except PolygonAPIError as e:
            logger.error(f"Tool {tool_name} failed: {e.message}")
            return {
                "content": [{"type": "text", "text": api_error_message(e)}],
                "isError": True,
            }

        stock_data = StockData.from_quote(quote)
        return {
            "content": [{"type": "text", "text": stock_data.to_json()}],
        }

    async def close(self):
        await self.client.close()


async def shutdown(transport: StdioMCPServer):
    """Close the host connection and exit with status 0."""
    logger.info("Received SIGINT, shutting down")
    await transport.close()
    sys.stdout.flush()
    sys.stderr.flush()
    # The stdin reader thread cannot be interrupted, so skip interpreter teardown.
    os._exit(0)


def handle_sigint(transport: StdioMCPServer):
    """Schedule shutdown; the task is kept on the transport until it exits."""
    transport.shutdown_task = asyncio.ensure_future(shutdown(transport))


async def main(settings: Optional[Settings] = None):
    """Run the Polygon stock MCP server on stdio."""
    settings = settings or get_settings()
    setup_logger(settings.log_level)

    server_impl = PolygonStockServer(settings)
    transport = StdioMCPServer(server_impl)

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, handle_sigint, transport)

    logger.info("Polygon Stock MCP server running on stdio")
    try:
        await transport.start()
    finally:
        await server_impl.close()


def run():
    """Console entry point."""
    try:
        asyncio.run(main())
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Polygon Stock MCP server failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
