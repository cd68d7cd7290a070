"""Simple script to run the Polygon stock MCP server on stdio."""

from polygon_mcp.mcp.servers.polygon_server import run

if __name__ == "__main__":
    # stdout is reserved for JSON-RPC traffic; all logging goes to stderr
    run()
