"""Allow ``python -m google_sheets_mcp`` to start the stdio server."""

from google_sheets_mcp.server import main

if __name__ == "__main__":
    main()
