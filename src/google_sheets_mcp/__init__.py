"""Read-only Google Sheets and Drive tools served over MCP."""

from google_sheets_mcp.__version__ import __version__

__all__ = ["__version__"]
