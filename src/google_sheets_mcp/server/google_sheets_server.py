"""Google Sheets MCP server.

Exposes five read-only tools over stdio:

- google_sheets_get_info: spreadsheet metadata, owner and sheet list
- google_sheets_list_tabs: tab names and IDs in sheet order
- google_sheets_get_tab_data: cell values from one tab, optionally a range
- google_drive_search_files: Drive file search by name
- google_drive_search_content: rows containing a term, across all tabs

Every tool returns a single text block. Failures are reported as one line
prefixed with ``Error:``; nothing is raised to the MCP host.
"""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool, ToolAnnotations
from pydantic import ValidationError

from google_sheets_mcp.__version__ import __version__
from google_sheets_mcp.auth import CredentialStore, OAuthManager
from google_sheets_mcp.config import AppPaths
from google_sheets_mcp.errors import SheetsMcpError, TokenExpired
from google_sheets_mcp.server.formatting import (
    INFO_HINT,
    RANGE_HINT,
    RESULTS_HINT,
    enforce_character_limit,
    format_content_matches_markdown,
    format_files_markdown,
    format_info_markdown,
    format_tab_data_markdown,
    format_tabs_markdown,
    info_to_json,
    render_json,
    tab_data_to_json,
)
from google_sheets_mcp.server.schemas import (
    GetInfoRequest,
    GetTabDataRequest,
    ListTabsRequest,
    SearchContentRequest,
    SearchFilesRequest,
    ToolRequest,
    describe_validation_error,
    input_schema,
)
from google_sheets_mcp.server.sheets_gateway import SheetsGateway

# Configure logging (stderr; stdout carries the MCP stream)
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SERVER_NAME = "google-sheets-mcp"


class ToolSpec(NamedTuple):
    """Registration entry binding a tool name to its model and handler."""

    title: str
    description: str
    model: type[ToolRequest]
    handler: Callable[[Any], Awaitable[str]]


def _one_line(text: str) -> str:
    return " ".join(text.split())


class GoogleSheetsServer:
    """MCP server for read-only Google Sheets access.

    Attributes:
        server: MCP Server instance.
        manager: OAuthManager supplying credentials.
        gateway: SheetsGateway performing the API calls.
    """

    def __init__(
        self,
        manager: OAuthManager | None = None,
        gateway: SheetsGateway | None = None,
    ) -> None:
        """Initialize the Google Sheets MCP server.

        Args:
            manager: OAuth manager. Defaults to one using the standard paths.
            gateway: API gateway. Defaults to one sharing ``manager``.
        """
        self.server = Server(SERVER_NAME, version=__version__)
        self.manager = manager or OAuthManager()
        self.gateway = gateway or SheetsGateway(self.manager)
        self.tools = self._build_registry()
        self._setup_handlers()

    def _build_registry(self) -> dict[str, ToolSpec]:
        return {
            "google_sheets_get_info": ToolSpec(
                title="Get Google Sheets Info",
                description=(
                    "Get metadata about a Google Spreadsheet: title, locale, timezone, owner "
                    "and the list of sheets/tabs with their sizes. Does NOT read cell data; "
                    "use google_sheets_get_tab_data for that."
                ),
                model=GetInfoRequest,
                handler=self._get_info,
            ),
            "google_sheets_list_tabs": ToolSpec(
                title="List Google Sheets Tabs",
                description=(
                    "List all tabs/sheets in a Google Spreadsheet in sheet order, with their "
                    "IDs. For sizes and owner information use google_sheets_get_info."
                ),
                model=ListTabsRequest,
                handler=self._list_tabs,
            ),
            "google_sheets_get_tab_data": ToolSpec(
                title="Get Google Sheets Tab Data",
                description=(
                    "Read cell values from a tab of a Google Spreadsheet. Reads the whole tab "
                    "or a range in A1 notation (e.g. 'A1:D10', 'B:E'). Responses over "
                    "25000 characters are rejected; narrow the range to read large tabs."
                ),
                model=GetTabDataRequest,
                handler=self._get_tab_data,
            ),
            "google_drive_search_files": ToolSpec(
                title="Search Google Drive by Filename",
                description=(
                    "Search Google Drive for files whose name contains the query, most "
                    "recently modified first. Returned IDs can be used with "
                    "google_drive_search_content."
                ),
                model=SearchFilesRequest,
                handler=self._search_files,
            ),
            "google_drive_search_content": ToolSpec(
                title="Search Spreadsheet Contents",
                description=(
                    "Search the cell values of every tab in a spreadsheet for a term "
                    "(case-insensitive). Returns matching rows with sheet name, row, column "
                    "and row context; only the first matching cell of each row is reported."
                ),
                model=SearchContentRequest,
                handler=self._search_content,
            ),
        }

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return list of available tools."""
            return self.list_tool_definitions()

        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            text = await self.handle_tool_call(name, arguments)
            return [TextContent(type="text", text=text)]

    def list_tool_definitions(self) -> list[Tool]:
        """Build the MCP tool definitions."""
        return [
            Tool(
                name=name,
                description=entry.description,
                inputSchema=input_schema(entry.model),
                annotations=ToolAnnotations(
                    title=entry.title,
                    readOnlyHint=True,
                    destructiveHint=False,
                    idempotentHint=True,
                    openWorldHint=True,
                ),
            )
            for name, entry in self.tools.items()
        ]

    async def handle_tool_call(self, name: str, arguments: dict[str, Any] | None) -> str:
        """Validate, dispatch and render one tool call.

        Args:
            name: Tool name.
            arguments: Raw tool arguments from the host.

        Returns:
            Rendered response, or a single ``Error: ...`` line.
        """
        entry = self.tools.get(name)
        if entry is None:
            return f"Error: Unknown tool: {name}"

        try:
            request = entry.model.model_validate(arguments or {})
        except ValidationError as e:
            return f"Error: Invalid input for {name}: {_one_line(describe_validation_error(e))}"

        try:
            return await entry.handler(request)
        except TokenExpired as e:
            # Pick up a re-authorized token file on the next call
            self.manager.invalidate()
            logger.warning(f"Tool {name} failed: {e}")
            return f"Error: {_one_line(str(e))}"
        except SheetsMcpError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return f"Error: {_one_line(str(e))}"
        except Exception as e:
            logger.exception(f"Error calling tool {name}")
            return f"Error: Unknown error occurred: {_one_line(str(e)) or type(e).__name__}"

    async def _get_info(self, request: GetInfoRequest) -> str:
        info = await self.gateway.get_info(request.url)
        if request.response_format == "json":
            text = render_json(info_to_json(info))
        else:
            text = format_info_markdown(info)
        return enforce_character_limit(text, INFO_HINT)

    async def _list_tabs(self, request: ListTabsRequest) -> str:
        listing = await self.gateway.list_tabs(request.url)
        if request.response_format == "json":
            text = render_json(listing)
        else:
            text = format_tabs_markdown(listing)
        return enforce_character_limit(text, INFO_HINT)

    async def _get_tab_data(self, request: GetTabDataRequest) -> str:
        data = await self.gateway.get_tab_data(request.url, request.tab_name, request.range)
        if request.response_format == "json":
            text = render_json(tab_data_to_json(data))
        else:
            text = format_tab_data_markdown(data)
        return enforce_character_limit(text, RANGE_HINT)

    async def _search_files(self, request: SearchFilesRequest) -> str:
        search = await self.gateway.search_files(
            request.query, request.file_type, request.max_results
        )
        if request.response_format == "json":
            text = render_json(search)
        else:
            text = format_files_markdown(search)
        return enforce_character_limit(text, RESULTS_HINT)

    async def _search_content(self, request: SearchContentRequest) -> str:
        search = await self.gateway.search_content(
            request.spreadsheet_id, request.search_term, request.max_results
        )
        if request.response_format == "json":
            text = render_json(search)
        else:
            text = format_content_matches_markdown(search)
        return enforce_character_limit(text, RESULTS_HINT)

    async def close(self) -> None:
        """Release the HTTP client."""
        await self.gateway.close()

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()


def main() -> None:
    """Entry point for the Google Sheets MCP server.

    Exits with status 1 before serving if the OAuth client file is missing.
    A missing token is not fatal: tools report it with an authorization URL.
    """
    paths = AppPaths.from_env()
    store = CredentialStore(paths)
    if not store.has_client_credentials():
        logger.error(
            f"OAuth credentials file not found at: {store.credentials_path}. "
            "Run 'google-sheets-mcp doctor' for setup instructions."
        )
        sys.exit(1)

    logger.info("Google Sheets MCP server starting (stdio)")
    server = GoogleSheetsServer(manager=OAuthManager(store))
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
