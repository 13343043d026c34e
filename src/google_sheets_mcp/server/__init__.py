"""MCP server implementation for Google Sheets.

Provides 5 read-only tools:

Sheets Tools (3):
- Spreadsheet metadata and owner
- Tab listing in sheet order
- Tab data, whole tab or A1 range

Drive Tools (2):
- File search by name
- Content search across all tabs of a spreadsheet

Transport: Stdio (for Claude Desktop / Claude Code)
Authentication: OAuth 2.0, token created with ``google-sheets-mcp setup``
"""

from google_sheets_mcp.server.google_sheets_server import GoogleSheetsServer, main


def create_server() -> GoogleSheetsServer:
    """Create and configure a Google Sheets MCP server.

    Returns:
        GoogleSheetsServer: Configured server instance ready to run.

    Example:
        >>> server = create_server()
        >>> asyncio.run(server.run())
    """
    return GoogleSheetsServer()


__all__ = ["create_server", "GoogleSheetsServer", "main"]
